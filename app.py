# app.py - Haptics Studio front end

import io
import logging

import pandas as pd
import streamlit as st

from haptics.config_validation import DEFAULT_OPTIONS, validate_options
from haptics.data_loader import MissingColumnsError, load_dataframe
from haptics.models import samples_from_dataframe
from haptics.integrated_analysis import analyze_switch_test
from haptics.qc_checks import format_qc_for_display
from haptics.reporting import format_metrics_text, format_value, generate_test_report
from haptics.charts import create_time_series_chart, create_force_travel_chart
from generate_switch_sample_data import SCENARIOS, generate_switch_csv

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

st.set_page_config(
    page_title="Haptics Studio",
    page_icon="🔘",
    layout="wide",
)


@st.cache_data(show_spinner=False)
def load_uploaded(content: bytes) -> pd.DataFrame:
    return load_dataframe(io.BytesIO(content))


@st.cache_data(show_spinner=False)
def load_sample(scenario: str, seed: int) -> pd.DataFrame:
    buffer = io.StringIO()
    generate_switch_csv(scenario=scenario, seed=seed).to_csv(buffer, index=False)
    buffer.seek(0)
    return load_dataframe(buffer)


st.title("🔘 Haptics Studio")
st.markdown("Switch actuation analysis: **Fa, Fra, ΔF, Frr, Tm** from a single press/release cycle")

# --- SIDEBAR: DATA SOURCE + OPTIONS ---
with st.sidebar:
    st.header("📂 Data")
    source = st.radio("Source", ["Upload file", "Sample data"])

    uploaded_file = None
    scenario = None
    if source == "Upload file":
        uploaded_file = st.file_uploader("Upload CSV", type=['csv', 'txt'])
    else:
        scenario = st.selectbox(
            "Scenario", list(SCENARIOS),
            format_func=lambda s: f"{s} - {SCENARIOS[s]['description']}"
        )
        seed = st.number_input("Seed", value=42, step=1)

    st.markdown("---")
    st.header("⚙️ Analysis Options")
    return_window_mm = st.number_input(
        "Return window (mm)", min_value=0.0,
        value=DEFAULT_OPTIONS.return_window_mm, step=0.005, format="%.3f"
    )
    frr_window_samples = st.number_input(
        "Frr fallback window (samples)", min_value=0,
        value=DEFAULT_OPTIONS.frr_window_samples, step=1
    )
    travel_percent = st.number_input(
        "Voltage band (% of travel)", min_value=0.0, max_value=50.0,
        value=DEFAULT_OPTIONS.travel_percent_for_voltage_medians, step=0.5
    )

    st.markdown("---")
    st.header("📝 Test Info")
    test_id_input = st.text_input("Test ID", placeholder="derived from file name")
    part = st.text_input("Part")
    serial_num = st.text_input("Serial number")
    operator = st.text_input("Operator")

try:
    options = validate_options({
        'return_window_mm': return_window_mm,
        'frr_window_samples': int(frr_window_samples),
        'travel_percent_for_voltage_medians': travel_percent,
    })
except ValueError as e:
    st.error(str(e))
    st.stop()

# --- LOAD DATA ---
if source == "Upload file":
    if uploaded_file is None:
        st.info("⬅️ Upload a test export (Index, Force (N), Voltage (V), Linear (mm)) to begin")
        st.stop()
    source_name = uploaded_file.name
    try:
        df = load_uploaded(uploaded_file.getvalue())
    except MissingColumnsError as e:
        st.error(f"Missing columns: {', '.join(e.missing)}")
        st.caption(f"Found: {', '.join(e.available)}")
        st.stop()
    except ValueError as e:
        st.error(f"Could not read file: {e}")
        st.stop()
else:
    source_name = f"sample_{scenario}.csv"
    df = load_sample(scenario, int(seed))

if df.empty:
    st.warning("The file contains no data rows")
    st.stop()

samples = samples_from_dataframe(df)
st.success(f"Loaded: `{source_name}` (#rows={len(samples)})")

metadata = {'part': part or None, 'serial_num': serial_num or None, 'operator': operator or None}
result = analyze_switch_test(
    samples,
    options=options,
    test_id=test_id_input or source_name.rsplit('.', 1)[0],
    source_name=source_name,
    metadata={k: v for k, v in metadata.items() if v},
)
metrics = result.metrics

# --- RESULTS ---
st.subheader("📊 Results")

c1, c2, c3, c4, c5 = st.columns(5)
c1.metric("Fa (N)", format_value(metrics.fa), help=f"Actuation force @ index {metrics.fa_index}")
c2.metric("Fra (N)", format_value(metrics.fra), help=f"Actuation return force @ index {metrics.fra_index}")
c3.metric("ΔF (N)", format_value(metrics.delta_f), help="Tactile effect = Fa - Fra")
c4.metric("Frr (N)", format_value(metrics.frr), help="Return force near rest")
c5.metric("Tm (mm)", format_value(metrics.tm), help="Total mechanical travel")

if result.undefined_metrics:
    st.warning(f"Undefined metrics (no eligible samples): {', '.join(result.undefined_metrics)}")

tab_time, tab_fxd, tab_text, tab_data = st.tabs(
    ["Time Series", "Force vs Distance", "Summary", "Data"]
)

with tab_time:
    st.plotly_chart(create_time_series_chart(samples, metrics, options), use_container_width=True)

with tab_fxd:
    st.plotly_chart(create_force_travel_chart(samples, metrics, options), use_container_width=True)

with tab_text:
    st.code(format_metrics_text(metrics), language=None)

with tab_data:
    st.dataframe(df, use_container_width=True, height=400)

# --- QC + TRACEABILITY ---
with st.expander("🔍 Quality Control", expanded=not result.passed_qc or result.has_warnings):
    st.markdown(format_qc_for_display(result.qc_report))

with st.expander("🔗 Traceability"):
    st.json(result.traceability)

# --- EXPORT ---
st.subheader("💾 Export")
col_html, col_json = st.columns(2)
with col_html:
    st.download_button(
        "Download HTML report",
        data=generate_test_report(result),
        file_name=f"{result.test_id}_report.html",
        mime="text/html",
    )
with col_json:
    st.download_button(
        "Download JSON record",
        data=result.to_json(),
        file_name=f"{result.test_id}_metrics.json",
        mime="application/json",
    )
