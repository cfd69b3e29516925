"""
Reporting Module
================
Text and HTML renderings of an analysis result.

- format_metrics_text: fixed-width summary for consoles and text widgets
- generate_test_report: standalone HTML report with summary cards,
  metrics table, QC results, traceability and interactive charts

Undefined (NaN) metrics are shown as "n/a", never as numbers.
"""

import html
import json
import math
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional, Union

from .charts import create_time_series_chart, create_force_travel_chart
from .models import HapticMetrics


UNDEFINED = "n/a"

# (field, label, unit)
METRIC_ROWS = [
    ('fa', 'Fa (actuation force)', 'N'),
    ('fra', 'Fra (actuation return force)', 'N'),
    ('delta_f', 'ΔF (tactile effect = Fa - Fra)', 'N'),
    ('frr', 'Frr (return force near rest)', 'N'),
    ('tm', 'Tm (mechanical travel total)', 'mm'),
]

VOLTAGE_ROWS = [
    ('high_voltage_median', 'High median', 'V'),
    ('low_voltage_median', 'Low median', 'V'),
    ('threshold_used', 'Threshold', 'V'),
]


def format_value(value: Optional[float], digits: int = 3) -> str:
    if value is None or not math.isfinite(value):
        return UNDEFINED
    return f"{value:.{digits}f}"


def format_metrics_text(metrics: HapticMetrics) -> str:
    """
    Render metrics as a fixed-width text block.

    Example output:
        Results
        -------
        Fa  (actuation force)           : 3.267 N   @ index 412
        ...
    """
    f = format_value
    return "\n".join([
        "Results",
        "-------",
        f"Fa  (actuation force)           : {f(metrics.fa)} N   @ index {metrics.fa_index}",
        f"Fra (actuation return force)    : {f(metrics.fra)} N   @ index {metrics.fra_index}",
        f"ΔF  (tactile effect = Fa - Fra) : {f(metrics.delta_f)} N",
        f"Frr (return force near rest)    : {f(metrics.frr)} N",
        f"Tm  (mechanical travel total)   : {f(metrics.tm)} mm",
        "",
        "Voltage levels (auto-detected)",
        f"High median: {f(metrics.high_voltage_median)} V",
        f"Low  median: {f(metrics.low_voltage_median)} V",
        f"Threshold  : {f(metrics.threshold_used)} V",
    ])


# =============================================================================
# HTML TEMPLATES
# =============================================================================

HTML_HEAD = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
    <style>
        :root {{
            --primary-color: #2c3e50;
            --success-color: #27ae60;
            --warning-color: #f39c12;
            --danger-color: #e74c3c;
            --light-bg: #f8f9fa;
            --border-color: #dee2e6;
        }}

        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            line-height: 1.6;
            color: #333;
            max-width: 1200px;
            margin: 0 auto;
            padding: 20px;
        }}

        .report-header {{
            border-bottom: 3px solid var(--primary-color);
            padding-bottom: 20px;
            margin-bottom: 30px;
        }}

        .report-meta {{
            display: flex;
            flex-wrap: wrap;
            gap: 20px;
            font-size: 0.9em;
            color: #666;
        }}

        .section {{
            margin-bottom: 40px;
        }}

        .section h2 {{
            color: var(--primary-color);
            border-bottom: 2px solid var(--border-color);
            padding-bottom: 10px;
        }}

        .status-badge {{
            display: inline-block;
            padding: 4px 12px;
            border-radius: 4px;
            font-weight: 600;
            text-transform: uppercase;
        }}

        .status-pass {{ background: #d4edda; color: #155724; }}
        .status-fail {{ background: #f8d7da; color: #721c24; }}
        .status-warn {{ background: #fff3cd; color: #856404; }}

        table {{
            width: 100%;
            border-collapse: collapse;
            margin: 15px 0;
        }}

        th, td {{
            padding: 10px 15px;
            text-align: left;
            border-bottom: 1px solid var(--border-color);
        }}

        th {{
            background: var(--light-bg);
            color: var(--primary-color);
        }}

        .metrics-table td:nth-child(2) {{
            text-align: right;
            font-family: 'Consolas', 'Monaco', monospace;
        }}

        .traceability-box {{
            background: var(--light-bg);
            border: 1px solid var(--border-color);
            border-radius: 8px;
            padding: 20px;
            font-family: 'Consolas', 'Monaco', monospace;
            font-size: 0.85em;
            overflow-x: auto;
        }}

        .traceability-box .label {{
            display: inline-block;
            min-width: 200px;
            color: #666;
        }}

        .summary-cards {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(180px, 1fr));
            gap: 20px;
        }}

        .summary-card {{
            background: var(--light-bg);
            border-radius: 8px;
            padding: 20px;
            text-align: center;
        }}

        .summary-card .value {{
            font-size: 2em;
            font-weight: 700;
            color: var(--primary-color);
        }}

        .summary-card .label {{
            font-size: 0.9em;
            color: #666;
        }}

        .footer {{
            margin-top: 50px;
            padding-top: 20px;
            border-top: 1px solid var(--border-color);
            text-align: center;
            font-size: 0.85em;
            color: #888;
        }}
    </style>
</head>
<body>
"""

HTML_FOOTER = """
    <div class="footer">
        <p>Generated by Haptics Studio</p>
        <p>Report generated: {timestamp}</p>
    </div>
</body>
</html>
"""


# =============================================================================
# SECTION GENERATORS
# =============================================================================

def generate_summary_cards(metrics: HapticMetrics) -> str:
    """Cards for Fa, Fra, dF and Tm."""
    values = metrics.to_dict()
    cards = []
    for key, label, unit in [METRIC_ROWS[0], METRIC_ROWS[1], METRIC_ROWS[2], METRIC_ROWS[4]]:
        cards.append(f"""
            <div class="summary-card">
                <div class="value">{format_value(values[key])}</div>
                <div class="label">{html.escape(label.split(' (')[0])} ({unit})</div>
            </div>
        """)
    return f"""
    <div class="summary-cards">
        {''.join(cards)}
    </div>
    """


def generate_metrics_table(metrics: HapticMetrics) -> str:
    """HTML table of all metrics and voltage levels."""
    values = metrics.to_dict()
    rows = []
    for key, label, unit in METRIC_ROWS + VOLTAGE_ROWS:
        rows.append(
            f"<tr><td>{html.escape(label)}</td>"
            f"<td>{format_value(values[key])}</td><td>{unit}</td></tr>"
        )
    rows.append(f"<tr><td>Fa index</td><td>{metrics.fa_index}</td><td>-</td></tr>")
    rows.append(f"<tr><td>Fra index</td><td>{metrics.fra_index}</td><td>-</td></tr>")

    return f"""
    <table class="metrics-table">
        <thead>
            <tr><th>Parameter</th><th>Value</th><th>Unit</th></tr>
        </thead>
        <tbody>
            {''.join(rows)}
        </tbody>
    </table>
    """


def generate_qc_section(qc_report: Dict[str, Any]) -> str:
    """Generate HTML for QC results section."""
    passed = qc_report.get('passed', True)
    summary = qc_report.get('summary', {})

    if not passed:
        status_class, status_text = 'status-fail', 'FAILED'
    elif qc_report.get('has_warnings'):
        status_class, status_text = 'status-warn', 'PASSED WITH WARNINGS'
    else:
        status_class, status_text = 'status-pass', 'PASSED'

    rows = []
    for check in qc_report.get('checks', []):
        rows.append(
            f"<tr><td>{html.escape(check.get('name', 'Unknown'))}</td>"
            f"<td>{check.get('status', '')}</td>"
            f"<td>{html.escape(check.get('message', ''))}</td></tr>"
        )

    return f"""
    <div class="section">
        <h2>Quality Control</h2>
        <p>Status: <span class="status-badge {status_class}">{status_text}</span></p>
        <p>
            Summary: {summary.get('passed', 0)} passed,
            {summary.get('warnings', 0)} warnings,
            {summary.get('failed', 0)} failed
        </p>
        <table>
            <thead><tr><th>Check</th><th>Status</th><th>Message</th></tr></thead>
            <tbody>{''.join(rows)}</tbody>
        </table>
    </div>
    """


def generate_traceability_section(traceability: Dict[str, Any]) -> str:
    """Generate HTML for traceability section."""
    important_fields = [
        ('source_name', 'Source'),
        ('source_file_hash', 'File Hash'),
        ('record_fingerprint', 'Record Fingerprint'),
        ('sample_count', 'Samples'),
        ('peak_position', 'Peak Position'),
        ('options_hash', 'Options Hash'),
        ('analyst', 'Analyst'),
        ('workstation', 'Workstation'),
        ('analyzed_at_utc', 'Analysis Time (UTC)'),
        ('processing_version', 'Processing Version'),
    ]

    fields = []
    for key, label in important_fields:
        value = traceability.get(key)
        if value is not None:
            fields.append(
                f'<div><span class="label">{label}:</span>'
                f'<span>{html.escape(str(value))}</span></div>'
            )

    return f"""
    <div class="section">
        <h2>Traceability Record</h2>
        <div class="traceability-box">
            {''.join(fields)}
        </div>
    </div>
    """


# =============================================================================
# MAIN REPORT GENERATOR
# =============================================================================

def generate_test_report(
    result,
    include_charts: bool = True,
    include_options_snapshot: bool = True,
) -> str:
    """
    Generate complete HTML report for a single switch test.

    Args:
        result: AnalysisResult from integrated_analysis
        include_charts: Embed the interactive plotly charts
        include_options_snapshot: Include the analysis options as JSON

    Returns:
        Complete HTML report as string
    """
    metrics = result.metrics
    traceability = result.traceability

    title = f"Switch Test Report: {html.escape(str(result.test_id))}"
    timestamp = traceability.get('analyzed_at_utc') or datetime.now().isoformat()
    analyst = traceability.get('analyst', 'Unknown')

    parts = [HTML_HEAD.format(title=title)]

    parts.append(f"""
    <div class="report-header">
        <h1>{title}</h1>
        <div class="report-meta">
            <span>Analyst: {html.escape(str(analyst))}</span>
            <span>Date: {timestamp[:10]}</span>
            <span>Samples: {len(result.samples)}</span>
        </div>
    </div>
    """)

    if result.metadata:
        meta_rows = [
            f"<tr><td>{html.escape(str(k))}</td><td>{html.escape(str(v))}</td></tr>"
            for k, v in result.metadata.items() if v is not None
        ]
        parts.append(f"""
        <div class="section">
            <h2>Test Information</h2>
            <table><tbody>{''.join(meta_rows)}</tbody></table>
        </div>
        """)

    parts.append(f"""
    <div class="section">
        <h2>Key Results</h2>
        {generate_summary_cards(metrics)}
    </div>
    """)

    undefined_note = ""
    if metrics.undefined_fields:
        undefined_note = (
            "<p><em>Undefined (n/a): "
            f"{html.escape(', '.join(metrics.undefined_fields))}</em></p>"
        )

    parts.append(f"""
    <div class="section">
        <h2>All Metrics</h2>
        {generate_metrics_table(metrics)}
        {undefined_note}
    </div>
    """)

    if include_charts:
        time_fig = create_time_series_chart(result.samples, metrics, result.options)
        fxd_fig = create_force_travel_chart(result.samples, metrics, result.options)
        parts.append(f"""
        <div class="section">
            <h2>Charts</h2>
            {time_fig.to_html(full_html=False, include_plotlyjs='cdn')}
            {fxd_fig.to_html(full_html=False, include_plotlyjs=False)}
        </div>
        """)

    if result.qc_report is not None:
        parts.append(generate_qc_section(result.qc_report.to_dict()))

    parts.append(generate_traceability_section(traceability))

    if include_options_snapshot:
        options_json = json.dumps(result.options.model_dump(), indent=2)
        parts.append(f"""
        <div class="section">
            <h2>Analysis Options</h2>
            <div class="traceability-box"><pre>{html.escape(options_json)}</pre></div>
        </div>
        """)

    parts.append(HTML_FOOTER.format(timestamp=datetime.now().isoformat()))

    return ''.join(parts)


def save_report(html_content: str, filepath: Union[str, Path]) -> Path:
    """Save HTML report to file."""
    filepath = Path(filepath)

    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(html_content)

    return filepath
