"""
Presentation Tests
==================
Tests for metric annotation placement, plotly charts, the text summary
and the HTML report.

Run with: python -m pytest tests/test_reporting.py -v
"""

import sys
import tempfile
import pytest
from pathlib import Path

import plotly.graph_objects as go

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from haptics.models import Sample, HapticMetrics
from haptics.analyzer import compute_metrics
from haptics.integrated_analysis import analyze_switch_test
from haptics.charts import annotation_points, create_time_series_chart, create_force_travel_chart
from haptics.reporting import (
    UNDEFINED,
    format_value,
    format_metrics_text,
    generate_metrics_table,
    generate_test_report,
    save_report,
)

NAN = float('nan')


def create_reference_samples(start_index=0):
    rows = [
        (1.0, 9.0, 0.0),
        (2.0, 9.0, 0.5),
        (3.0, 4.0, 1.0),
        (3.5, 1.0, 1.2),
        (2.0, 1.0, 0.8),
        (1.5, 9.0, 0.1),
        (1.0, 9.0, 0.0),
    ]
    return [Sample(start_index + i, f, v, t) for i, (f, v, t) in enumerate(rows)]


def create_metrics(**overrides):
    values = dict(
        fa=3.0, fa_index=2, fra=1.5, fra_index=5, frr=1.0, tm=1.2,
        high_voltage_median=9.0, low_voltage_median=1.0, threshold_used=5.0,
    )
    values.update(overrides)
    return HapticMetrics(**values)


class TestAnnotationPoints:
    """Tests for locating the metric markers."""

    def test_reference_points(self):
        samples = create_reference_samples()
        points = annotation_points(samples, compute_metrics(samples))

        assert points.fa == (2, 1.0, 3.0)
        assert points.fra == (5, 0.1, 1.5)
        assert points.frr == (0.0, 1.0)

    def test_fa_by_index_fra_by_position(self):
        samples = create_reference_samples(start_index=100)
        points = annotation_points(samples, compute_metrics(samples))

        assert points.fa[0] == 102
        assert points.fra[0] == 105

    def test_unknown_fa_index(self):
        points = annotation_points(create_reference_samples(), create_metrics(fa_index=999))
        assert points.fa is None

    def test_fra_position_out_of_range(self):
        points = annotation_points(create_reference_samples(), create_metrics(fra_index=7))
        assert points.fra is None

    def test_frr_undefined(self):
        points = annotation_points(create_reference_samples(), create_metrics(frr=NAN))
        assert points.frr is None

    def test_frr_at_start_when_not_returned(self):
        samples = [
            Sample(0, 0.5, 8.0, 0.05),
            Sample(1, 3.0, 1.0, 1.0),
            Sample(2, 1.6, 8.0, 0.4),
        ]
        points = annotation_points(samples, create_metrics(frr=1.6))
        assert points.frr == (0.05, 1.6)


class TestCharts:
    """Tests for the plotly figures."""

    def test_time_series_raw(self):
        fig = create_time_series_chart(create_reference_samples())

        assert isinstance(fig, go.Figure)
        assert [t.name for t in fig.data] == ["Force (N)", "Voltage (V)"]
        assert len(fig.layout.shapes) == 0

    def test_time_series_with_metrics(self):
        samples = create_reference_samples()
        fig = create_time_series_chart(samples, compute_metrics(samples))

        names = [t.name for t in fig.data]
        assert "Threshold (5.00 V)" in names
        assert "High level (9.00 V)" in names
        assert len(fig.layout.shapes) >= 2
        texts = [a.text for a in fig.layout.annotations]
        assert "Fa (actuation)" in texts
        assert "Fra (return)" in texts

    def test_undefined_threshold_not_drawn(self):
        fig = create_time_series_chart(create_reference_samples(), create_metrics(threshold_used=NAN))

        names = [t.name for t in fig.data]
        assert not any(n.startswith("Threshold") for n in names)

    def test_force_travel_markers(self):
        samples = create_reference_samples()
        fig = create_force_travel_chart(samples, compute_metrics(samples))

        markers = {t.name: (t.x[0], t.y[0]) for t in fig.data if t.mode == 'markers'}
        assert markers["Fa (3.00 N)"] == (1.0, 3.0)
        assert markers["Fra (1.50 N)"] == (0.1, 1.5)
        assert markers["Frr (1.00 N)"] == (0.0, 1.0)

    def test_empty_record(self):
        fig = create_force_travel_chart([])
        assert len(fig.data) == 2


class TestTextSummary:
    """Tests for the fixed-width text block."""

    def test_format_value(self):
        assert format_value(3.26749) == "3.267"
        assert format_value(NAN) == UNDEFINED
        assert format_value(None) == UNDEFINED

    def test_reference_text(self):
        samples = create_reference_samples()
        text = format_metrics_text(compute_metrics(samples))

        assert "Fa  (actuation force)           : 3.000 N   @ index 2" in text
        assert "Fra (actuation return force)    : 1.500 N   @ index 5" in text
        assert "1.500 N" in text.splitlines()[4]
        assert "Threshold  : 5.000 V" in text

    def test_undefined_as_na(self):
        text = format_metrics_text(create_metrics(threshold_used=NAN, frr=NAN))

        assert "Threshold  : n/a V" in text
        assert "Frr (return force near rest)    : n/a N" in text
        assert "nan" not in text


class TestHtmlReport:
    """Tests for the HTML report."""

    def test_metrics_table(self):
        table = generate_metrics_table(create_metrics(frr=NAN))

        assert "<td>3.000</td>" in table
        assert "<td>n/a</td>" in table

    def test_full_report(self):
        result = analyze_switch_test(create_reference_samples(), test_id="SW-001",
                                     metadata={'operator': 'jsmith'})
        html = generate_test_report(result)

        assert html.startswith("\n<!DOCTYPE html>")
        assert "Switch Test Report: SW-001" in html
        assert "Quality Control" in html
        assert "Traceability Record" in html
        assert "jsmith" in html
        assert "plotly" in html
        assert "return_window_mm" in html

    def test_report_without_charts(self):
        result = analyze_switch_test(create_reference_samples())
        html = generate_test_report(result, include_charts=False, include_options_snapshot=False)

        assert "Charts" not in html
        assert "Analysis Options" not in html

    def test_test_id_escaped(self):
        result = analyze_switch_test(create_reference_samples(), test_id="<b>x</b>")
        html = generate_test_report(result, include_charts=False)

        assert "<b>x</b>" not in html
        assert "&lt;b&gt;x&lt;/b&gt;" in html

    def test_undefined_note(self):
        samples = [
            Sample(0, 1.0, NAN, 0.0),
            Sample(1, 2.0, 5.0, 1.0),
            Sample(2, 1.0, NAN, 0.0),
        ]
        html = generate_test_report(analyze_switch_test(samples), include_charts=False)

        assert "Undefined (n/a): high_voltage_median, threshold_used" in html

    def test_save_report(self):
        result = analyze_switch_test(create_reference_samples())

        with tempfile.TemporaryDirectory() as tmpdir:
            path = save_report(generate_test_report(result, include_charts=False),
                               Path(tmpdir) / "report.html")
            assert path.exists()
            assert "Haptics Studio" in path.read_text(encoding='utf-8')
