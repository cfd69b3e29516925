"""
Chart Builders
==============
Interactive plotly figures for a switch actuation record.

- Time series: force (left axis) and voltage (right axis) against the
  acquisition index, with Fa/Fra markers and voltage reference lines
- Force vs travel: the force-displacement curve with Fa, Fra and Frr markers

Metrics are optional; without them only the raw curves are drawn.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from .analyzer import find_peak_position
from .config_validation import AnalysisOptions, DEFAULT_OPTIONS
from .models import Sample, HapticMetrics


FORCE_COLOR = 'darkblue'
VOLTAGE_COLOR = 'darkgreen'
FA_COLOR = 'red'
FRA_COLOR = 'orange'
FRR_COLOR = 'purple'
THRESHOLD_COLOR = 'purple'
LEVEL_COLOR = 'gray'


@dataclass(frozen=True)
class AnnotationPoints:
    """
    Resolved chart coordinates for the metric markers.

    Each point is (sequence_index, travel_mm, force_n) or None when it
    cannot be located in the record.
    """
    fa: Optional[Tuple[int, float, float]]
    fra: Optional[Tuple[int, float, float]]
    frr: Optional[Tuple[float, float]]  # (travel_mm, force_n)


def _is_number(value: float) -> bool:
    return value is not None and math.isfinite(value)


def annotation_points(
    samples: Sequence[Sample],
    metrics: HapticMetrics,
    options: Optional[AnalysisOptions] = None
) -> AnnotationPoints:
    """
    Locate the Fa, Fra and Frr markers.

    ``fa_index`` is a sequence index, so Fa is looked up by that field;
    ``fra_index`` is a position, so Fra is taken from that position.
    Frr sits at the middle travel of the returned samples after the peak
    (the start travel when none returned).
    """
    options = options or DEFAULT_OPTIONS

    fa = None
    for s in samples:
        if s.sequence_index == metrics.fa_index:
            fa = (s.sequence_index, s.travel_mm, s.force_n)
            break

    fra = None
    if 0 <= metrics.fra_index < len(samples):
        s = samples[metrics.fra_index]
        fra = (s.sequence_index, s.travel_mm, s.force_n)

    frr = None
    if samples and _is_number(metrics.frr):
        start_mm = samples[0].travel_mm
        idx_max = find_peak_position(samples)
        returned = sorted(
            s.travel_mm for s in samples[idx_max:]
            if abs(s.travel_mm - start_mm) <= options.return_window_mm
        )
        x_frr = returned[len(returned) // 2] if returned else start_mm
        frr = (x_frr, metrics.frr)

    return AnnotationPoints(fa=fa, fra=fra, frr=frr)


def _add_voltage_levels(fig: go.Figure, x_range: Tuple[float, float], metrics: HapticMetrics):
    """Threshold and high/low levels as horizontal lines on the voltage axis."""
    lines = [
        ('Threshold', metrics.threshold_used, THRESHOLD_COLOR, 'dash'),
        ('High level', metrics.high_voltage_median, LEVEL_COLOR, 'dot'),
        ('Low level', metrics.low_voltage_median, LEVEL_COLOR, 'dot'),
    ]
    for name, value, color, dash in lines:
        if not _is_number(value):
            continue
        fig.add_trace(
            go.Scatter(
                x=list(x_range), y=[value, value],
                mode='lines', name=f"{name} ({value:.2f} V)",
                line=dict(color=color, dash=dash, width=2 if name == 'Threshold' else 1),
            ),
            secondary_y=True,
        )


def _finite_range(values: Sequence[float]) -> Optional[Tuple[float, float]]:
    finite = [v for v in values if _is_number(v)]
    if not finite:
        return None
    return min(finite), max(finite)


def create_time_series_chart(
    samples: Sequence[Sample],
    metrics: Optional[HapticMetrics] = None,
    options: Optional[AnalysisOptions] = None,
    height: int = 450
) -> go.Figure:
    """Force and voltage against the acquisition index."""
    xs = [s.sequence_index for s in samples]

    fig = make_subplots(specs=[[{"secondary_y": True}]])
    fig.add_trace(
        go.Scatter(x=xs, y=[s.force_n for s in samples], name="Force (N)",
                   line=dict(color=FORCE_COLOR, width=2)),
        secondary_y=False,
    )
    fig.add_trace(
        go.Scatter(x=xs, y=[s.voltage_v for s in samples], name="Voltage (V)",
                   line=dict(color=VOLTAGE_COLOR, width=2)),
        secondary_y=True,
    )

    if metrics is not None and samples:
        points = annotation_points(samples, metrics, options)
        if points.fa is not None:
            fig.add_vline(x=points.fa[0], line_width=2, line_color=FA_COLOR,
                          annotation_text="Fa (actuation)")
        if points.fra is not None:
            fig.add_vline(x=points.fra[0], line_width=2, line_color=FRA_COLOR,
                          annotation_text="Fra (return)")

        x_range = _finite_range(xs)
        if x_range is not None:
            _add_voltage_levels(fig, x_range, metrics)

    fig.update_xaxes(title_text="Index")
    fig.update_yaxes(title_text="Force (N)", secondary_y=False)
    fig.update_yaxes(title_text="Voltage (V)", secondary_y=True)
    fig.update_layout(
        title="Force & Voltage vs Index",
        height=height,
        margin=dict(t=50, b=10),
        legend=dict(x=1.08, y=1, xanchor='left'),
    )
    return fig


def create_force_travel_chart(
    samples: Sequence[Sample],
    metrics: Optional[HapticMetrics] = None,
    options: Optional[AnalysisOptions] = None,
    height: int = 450
) -> go.Figure:
    """Force and voltage against travel, with metric markers."""
    travel = [s.travel_mm for s in samples]

    fig = make_subplots(specs=[[{"secondary_y": True}]])
    fig.add_trace(
        go.Scatter(x=travel, y=[s.force_n for s in samples], name="Force (N)",
                   line=dict(color=FORCE_COLOR, width=2)),
        secondary_y=False,
    )
    fig.add_trace(
        go.Scatter(x=travel, y=[s.voltage_v for s in samples], name="Voltage (V)",
                   line=dict(color=VOLTAGE_COLOR, width=2)),
        secondary_y=True,
    )

    if metrics is not None and samples:
        points = annotation_points(samples, metrics, options)
        markers = [
            (points.fa and (points.fa[1], points.fa[2]), f"Fa ({metrics.fa:.2f} N)", FA_COLOR),
            (points.fra and (points.fra[1], points.fra[2]), f"Fra ({metrics.fra:.2f} N)", FRA_COLOR),
            (points.frr, f"Frr ({metrics.frr:.2f} N)", FRR_COLOR),
        ]
        for point, name, color in markers:
            if point is None:
                continue
            fig.add_trace(
                go.Scatter(x=[point[0]], y=[point[1]], mode='markers', name=name,
                           marker=dict(color=color, size=11)),
                secondary_y=False,
            )

        x_range = _finite_range(travel)
        if x_range is not None:
            _add_voltage_levels(fig, x_range, metrics)

    fig.update_xaxes(title_text="Linear (mm)")
    fig.update_yaxes(title_text="Force (N)", secondary_y=False)
    fig.update_yaxes(title_text="Voltage (V)", secondary_y=True)
    fig.update_layout(
        title="Force vs Distance",
        height=height,
        margin=dict(t=50, b=10),
        legend=dict(x=1.08, y=1, xanchor='left'),
    )
    return fig
