"""
Haptic Metrics Extraction
=========================
Extracts industry-standard switch metrics from a single press/release cycle.

Definitions:
- Fa:  actuation force, force at electrical actuation on the press stroke
- Fra: actuation return force, force at electrical de-actuation on release
- dF:  tactile effect, Fa - Fra
- Frr: return force near rest after release
- Tm:  total mechanical travel

Pipeline:
1. Threshold detection: high/low voltage levels are the medians near the
   start and near the bottom of travel; the threshold is their midpoint
2. Phase segmentation at peak travel (last peak wins on ties)
3. Crossing location against the threshold in each phase
4. Median-based Frr near the start position

Nothing here raises for degenerate data except an empty sequence;
statistics over empty subsets are NaN.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from .config_validation import AnalysisOptions, DEFAULT_OPTIONS
from .models import Sample, HapticMetrics

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Raised when there is no sample sequence to analyze."""


@dataclass(frozen=True)
class VoltageLevels:
    """Auto-detected voltage levels and the travel extremes they came from."""
    high_voltage_median: float
    low_voltage_median: float
    threshold_used: float
    travel: float
    min_mm: float


@dataclass(frozen=True)
class PhaseSplit:
    """Press and release phases split at peak travel (peak in both)."""
    idx_max: int
    press: Tuple[Sample, ...]
    release: Tuple[Sample, ...]


# =============================================================================
# MEDIAN ESTIMATOR
# =============================================================================

def robust_median(values: Iterable[float]) -> float:
    """
    Median of the finite values; NaN if there are none.

    Example:
        >>> robust_median([3.0, float('nan'), 1.0, 2.0])
        2.0
    """
    arr = np.asarray(list(values), dtype=float)
    finite = np.sort(arr[np.isfinite(arr)])
    n = finite.size
    if n == 0:
        return float('nan')
    mid = n // 2
    if n % 2 == 1:
        return float(finite[mid])
    return float(0.5 * (finite[mid - 1] + finite[mid]))


# =============================================================================
# THRESHOLD DETECTION
# =============================================================================

def detect_voltage_threshold(
    samples: Sequence[Sample],
    travel_percent: float = 5.0
) -> VoltageLevels:
    """
    Derive the electrical actuation threshold from the data itself.

    The high level is the median voltage in the start band
    (travel <= min + pct% of travel), the low level the median voltage in
    the bottom band (travel >= min + (100 - pct)% of travel).

    Args:
        samples: Sample sequence
        travel_percent: Band width as a percentage of total travel

    Returns:
        VoltageLevels; an empty band gives a NaN median and a NaN threshold
    """
    travel_mm = np.array([s.travel_mm for s in samples], dtype=float)
    voltage = np.array([s.voltage_v for s in samples], dtype=float)

    usable = np.isfinite(travel_mm)
    finite = travel_mm[usable]
    if finite.size:
        max_mm = float(finite.max())
        min_mm = float(finite.min())
        travel = max_mm - min_mm
    else:
        min_mm = travel = float('nan')

    start_band_top = min_mm + (travel_percent / 100.0) * travel
    bottom_band_bottom = min_mm + (100.0 - travel_percent) / 100.0 * travel

    # non-finite travel belongs to neither band; a NaN bound empties the band
    high_v = robust_median(voltage[usable & (travel_mm <= start_band_top)])
    low_v = robust_median(voltage[usable & (travel_mm >= bottom_band_bottom)])

    return VoltageLevels(
        high_voltage_median=high_v,
        low_voltage_median=low_v,
        threshold_used=(high_v + low_v) / 2.0,
        travel=travel,
        min_mm=min_mm,
    )


# =============================================================================
# PHASE SEGMENTATION
# =============================================================================

def find_peak_position(samples: Sequence[Sample]) -> int:
    """
    Position of the maximum travel; the last one wins on ties.

    Non-finite travel (NaN, +inf, -inf) never wins, matching the travel
    extremes used for Tm. If no value is finite the last position is used.
    """
    travel_mm = np.array([s.travel_mm for s in samples], dtype=float)
    travel_mm = np.where(np.isfinite(travel_mm), travel_mm, -np.inf)
    reversed_pos = int(np.argmax(travel_mm[::-1]))
    return len(travel_mm) - 1 - reversed_pos


def segment_phases(samples: Sequence[Sample]) -> PhaseSplit:
    """Split into press [0, idx_max] and release [idx_max, end]."""
    idx_max = find_peak_position(samples)
    samples = tuple(samples)
    return PhaseSplit(
        idx_max=idx_max,
        press=samples[:idx_max + 1],
        release=samples[idx_max:],
    )


# =============================================================================
# CROSSING LOCATION
# =============================================================================

def _first_or_last(phase: Sequence[Sample], mask: np.ndarray) -> Tuple[int, Sample]:
    hits = np.nonzero(mask)[0]
    offset = int(hits[0]) if hits.size else len(phase) - 1
    return offset, phase[offset]


def locate_actuation(press: Sequence[Sample], threshold: float) -> Tuple[int, Sample]:
    """First press sample with voltage below the threshold, else the last one."""
    voltage = np.array([s.voltage_v for s in press], dtype=float)
    return _first_or_last(press, voltage < threshold)


def locate_return(release: Sequence[Sample], threshold: float) -> Tuple[int, Sample]:
    """First release sample with voltage above the threshold, else the last one."""
    voltage = np.array([s.voltage_v for s in release], dtype=float)
    return _first_or_last(release, voltage > threshold)


# =============================================================================
# RETURN FORCE
# =============================================================================

def estimate_return_force(
    samples: Sequence[Sample],
    idx_max: int,
    return_window_mm: float = 0.02,
    frr_window_samples: int = 50
) -> float:
    """
    Frr: median force after the peak while within the return window of the
    starting position.

    Falls back to the median force over the last ``frr_window_samples`` of
    the whole record (not just the release phase) when no sample returned.
    """
    start_mm = samples[0].travel_mm
    after_peak = samples[idx_max:]

    near_start = [
        s.force_n for s in after_peak
        if abs(s.travel_mm - start_mm) <= return_window_mm
    ]
    if near_start:
        return robust_median(near_start)

    tail_start = max(len(samples) - max(frr_window_samples, 0), 0)
    return robust_median(s.force_n for s in samples[tail_start:])


# =============================================================================
# METRICS ASSEMBLY
# =============================================================================

def compute_metrics(
    samples: Optional[Sequence[Sample]],
    options: Optional[AnalysisOptions] = None
) -> HapticMetrics:
    """
    Compute Fa, Fra, Frr, Tm (and dF) from one press/release cycle.

    Args:
        samples: Ordered sample sequence
        options: Analysis options (defaults if None)

    Returns:
        HapticMetrics

    Raises:
        InvalidInputError: If samples is None or empty

    Example:
        >>> metrics = compute_metrics(load_csv("TaskData 1.csv"))
        >>> print(f"Fa={metrics.fa:.3f} N, Fra={metrics.fra:.3f} N")
    """
    options = options or DEFAULT_OPTIONS

    if samples is None or len(samples) == 0:
        raise InvalidInputError("No data")

    phases = segment_phases(samples)
    levels = detect_voltage_threshold(samples, options.travel_percent_for_voltage_medians)

    _, fa_sample = locate_actuation(phases.press, levels.threshold_used)
    fra_offset, fra_sample = locate_return(phases.release, levels.threshold_used)

    frr = estimate_return_force(
        samples,
        phases.idx_max,
        options.return_window_mm,
        options.frr_window_samples,
    )

    metrics = HapticMetrics(
        fa=fa_sample.force_n,
        fa_index=fa_sample.sequence_index,
        fra=fra_sample.force_n,
        fra_index=phases.idx_max + fra_offset,
        frr=frr,
        tm=levels.travel,
        high_voltage_median=levels.high_voltage_median,
        low_voltage_median=levels.low_voltage_median,
        threshold_used=levels.threshold_used,
    )

    logger.debug(
        f"n={len(samples)} idx_max={phases.idx_max} "
        f"high={levels.high_voltage_median:.4g}V low={levels.low_voltage_median:.4g}V "
        f"threshold={levels.threshold_used:.4g}V "
        f"fa_index={metrics.fa_index} fra_index={metrics.fra_index}"
    )

    return metrics
