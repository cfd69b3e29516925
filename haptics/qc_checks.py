"""
Pre-Analysis Quality Control Module
====================================
Advisory data quality checks for switch actuation records.

The metrics extraction never rejects data beyond an empty record: it
resolves missing crossings and empty bands with fallbacks and NaN. These
checks tell the engineer WHEN those fallbacks were needed, so that an
undefined or fallback-derived metric is not mistaken for a measurement.

QC Check Categories:
1. Record integrity (enough samples, monotonic acquisition index)
2. Channel completeness (no excess NaN)
3. Cycle shape (non-zero travel, single travel peak)
4. Electrical signal (both voltage bands populated, usable voltage swing)

Each check returns PASS, WARN, FAIL or SKIP with detailed diagnostics.
"""

import numpy as np
import pandas as pd
from typing import Dict, Any, Optional, List, Sequence
from dataclasses import dataclass, field
from enum import Enum

from .analyzer import detect_voltage_threshold
from .config_validation import AnalysisOptions, DEFAULT_OPTIONS
from .models import Sample


CHANNELS = ('force_n', 'voltage_v', 'travel_mm')


class QCStatus(Enum):
    """Quality control check status."""
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"
    SKIP = "SKIP"  # Check not applicable


@dataclass
class QCCheckResult:
    """
    Result of a single QC check.

    Attributes:
        name: Check identifier
        status: PASS, WARN, FAIL, or SKIP
        message: Human-readable result description
        details: Additional diagnostic information
        blocking: If True, FAIL status blocks analysis
    """
    name: str
    status: QCStatus
    message: str
    details: Optional[Dict[str, Any]] = None
    blocking: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'status': self.status.value,
            'message': self.message,
            'details': self.details,
            'blocking': self.blocking
        }

    def __str__(self) -> str:
        return f"[{self.status.value}] {self.name}: {self.message}"


@dataclass
class QCReport:
    """
    Complete QC report for a record.

    Aggregates all individual check results and determines
    overall pass/fail status.
    """
    checks: List[QCCheckResult] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: pd.Timestamp.now().isoformat())

    @property
    def passed(self) -> bool:
        """True if no blocking checks failed."""
        return not any(
            c.status == QCStatus.FAIL and c.blocking
            for c in self.checks
        )

    @property
    def has_warnings(self) -> bool:
        return any(c.status == QCStatus.WARN for c in self.checks)

    @property
    def blocking_failures(self) -> List[QCCheckResult]:
        return [c for c in self.checks if c.status == QCStatus.FAIL and c.blocking]

    @property
    def warnings(self) -> List[QCCheckResult]:
        return [c for c in self.checks if c.status == QCStatus.WARN]

    @property
    def summary(self) -> Dict[str, int]:
        """Count of checks by status."""
        return {
            'total': len(self.checks),
            'passed': sum(1 for c in self.checks if c.status == QCStatus.PASS),
            'warnings': sum(1 for c in self.checks if c.status == QCStatus.WARN),
            'failed': sum(1 for c in self.checks if c.status == QCStatus.FAIL),
            'skipped': sum(1 for c in self.checks if c.status == QCStatus.SKIP),
        }

    def add_check(self, check: QCCheckResult):
        self.checks.append(check)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'passed': self.passed,
            'has_warnings': self.has_warnings,
            'summary': self.summary,
            'checks': [c.to_dict() for c in self.checks],
            'timestamp': self.timestamp,
            'blocking_failures': [c.to_dict() for c in self.blocking_failures],
        }

    def __str__(self) -> str:
        lines = [
            f"QC Report - {'PASSED' if self.passed else 'FAILED'}",
            f"  Checks: {self.summary['passed']} passed, {self.summary['warnings']} warnings, {self.summary['failed']} failed",
            ""
        ]
        for check in self.checks:
            lines.append(f"  {check}")
        return "\n".join(lines)


def _channel(samples: Sequence[Sample], channel: str) -> np.ndarray:
    return np.array([getattr(s, channel) for s in samples], dtype=float)


# =============================================================================
# RECORD INTEGRITY
# =============================================================================

def check_sample_count(
    samples: Sequence[Sample],
    min_samples: int = 10
) -> QCCheckResult:
    """
    Check that the record holds enough samples for meaningful medians.

    An empty record cannot be analyzed at all.
    """
    n = len(samples)

    if n == 0:
        return QCCheckResult(
            name="sample_count",
            status=QCStatus.FAIL,
            message="Record is empty",
            details={'n_samples': 0},
            blocking=True
        )

    if n < min_samples:
        return QCCheckResult(
            name="sample_count",
            status=QCStatus.WARN,
            message=f"Only {n} samples (< {min_samples}); metrics may be unreliable",
            details={'n_samples': n, 'min_samples': min_samples},
            blocking=False
        )

    return QCCheckResult(
        name="sample_count",
        status=QCStatus.PASS,
        message=f"{n} samples",
        details={'n_samples': n}
    )


def check_sequence_monotonic(samples: Sequence[Sample]) -> QCCheckResult:
    """
    Verify acquisition indices are strictly increasing.

    Decreasing or repeated indices indicate concatenated or re-sorted
    exports; annotation by index becomes ambiguous.
    """
    if len(samples) < 2:
        return QCCheckResult(
            name="sequence_monotonic",
            status=QCStatus.SKIP,
            message="Fewer than 2 samples",
            blocking=False
        )

    indices = np.array([s.sequence_index for s in samples], dtype=np.int64)
    diffs = np.diff(indices)
    non_positive = diffs <= 0
    n_violations = int(np.sum(non_positive))

    if n_violations == 0:
        contiguous = bool(np.all(diffs == 1))
        return QCCheckResult(
            name="sequence_monotonic",
            status=QCStatus.PASS,
            message="Acquisition indices are strictly increasing",
            details={'contiguous': contiguous, 'first_index': int(indices[0])}
        )

    violation_positions = np.where(non_positive)[0][:5].tolist()

    return QCCheckResult(
        name="sequence_monotonic",
        status=QCStatus.WARN,
        message=f"Acquisition indices not monotonic: {n_violations} violations found",
        details={
            'n_violations': n_violations,
            'first_violation_positions': violation_positions,
        },
        blocking=False
    )


# =============================================================================
# CHANNEL COMPLETENESS
# =============================================================================

def check_nan_ratio(
    samples: Sequence[Sample],
    channel: str,
    max_nan_ratio: float = 0.05
) -> QCCheckResult:
    """
    Check for excessive NaN/missing values in one channel.

    Args:
        samples: Sample sequence
        channel: 'force_n', 'voltage_v' or 'travel_mm'
        max_nan_ratio: Maximum allowed ratio of NaN values (0-1)
    """
    if channel not in CHANNELS:
        return QCCheckResult(
            name=f"nan_ratio_{channel}",
            status=QCStatus.SKIP,
            message=f"Channel '{channel}' not found",
            blocking=False
        )

    data = _channel(samples, channel)
    n_total = len(data)
    n_nan = int(np.sum(~np.isfinite(data)))
    nan_ratio = n_nan / n_total if n_total > 0 else 0

    details = {
        'n_nan': n_nan,
        'n_total': n_total,
        'nan_ratio': nan_ratio
    }

    if nan_ratio <= max_nan_ratio:
        return QCCheckResult(
            name=f"nan_ratio_{channel}",
            status=QCStatus.PASS,
            message=f"'{channel}': {nan_ratio*100:.1f}% NaN (≤{max_nan_ratio*100:.0f}%)",
            details=details
        )

    status = QCStatus.FAIL if nan_ratio > 0.20 else QCStatus.WARN

    return QCCheckResult(
        name=f"nan_ratio_{channel}",
        status=status,
        message=f"'{channel}': {nan_ratio*100:.1f}% NaN (>{max_nan_ratio*100:.0f}%)",
        details=details,
        blocking=(status == QCStatus.FAIL)
    )


# =============================================================================
# CYCLE SHAPE
# =============================================================================

def check_travel_range(
    samples: Sequence[Sample],
    min_travel_mm: float = 0.0
) -> QCCheckResult:
    """
    Check the actuator actually moved.

    Zero travel collapses both voltage bands onto the same samples and
    makes the threshold meaningless.
    """
    travel = _channel(samples, 'travel_mm')
    finite = travel[np.isfinite(travel)]

    if finite.size == 0:
        return QCCheckResult(
            name="travel_range",
            status=QCStatus.FAIL,
            message="No finite travel values",
            blocking=True
        )

    tm = float(finite.max() - finite.min())

    if tm <= min_travel_mm:
        return QCCheckResult(
            name="travel_range",
            status=QCStatus.FAIL,
            message=f"Travel range {tm:.4g} mm (≤{min_travel_mm:g} mm): actuator did not move",
            details={'travel_mm': tm},
            blocking=True
        )

    return QCCheckResult(
        name="travel_range",
        status=QCStatus.PASS,
        message=f"Travel range {tm:.4g} mm",
        details={'travel_mm': tm, 'min_mm': float(finite.min()), 'max_mm': float(finite.max())}
    )


def check_single_peak(samples: Sequence[Sample]) -> QCCheckResult:
    """
    Check that the maximum travel is reached at a single position.

    Several positions at the maximum means the last one is used as the
    press/release boundary.
    """
    travel = _channel(samples, 'travel_mm')
    finite = travel[np.isfinite(travel)]

    if finite.size == 0:
        return QCCheckResult(
            name="single_peak",
            status=QCStatus.SKIP,
            message="No finite travel values",
            blocking=False
        )

    peak_positions = np.where(travel == finite.max())[0]

    if len(peak_positions) == 1:
        return QCCheckResult(
            name="single_peak",
            status=QCStatus.PASS,
            message=f"Single travel peak at position {int(peak_positions[0])}",
            details={'peak_position': int(peak_positions[0])}
        )

    return QCCheckResult(
        name="single_peak",
        status=QCStatus.WARN,
        message=(
            f"Maximum travel reached at {len(peak_positions)} positions; "
            f"using the last ({int(peak_positions[-1])}) as phase boundary"
        ),
        details={'peak_positions': peak_positions[:10].tolist()},
        blocking=False
    )


# =============================================================================
# ELECTRICAL SIGNAL
# =============================================================================

def check_voltage_bands(
    samples: Sequence[Sample],
    options: Optional[AnalysisOptions] = None
) -> QCCheckResult:
    """
    Check both voltage-level bands produce a defined median.

    An empty band leaves the threshold undefined; Fa and Fra then fall
    back to the last sample of each phase.
    """
    options = options or DEFAULT_OPTIONS
    levels = detect_voltage_threshold(samples, options.travel_percent_for_voltage_medians)

    details = {
        'high_voltage_median': levels.high_voltage_median,
        'low_voltage_median': levels.low_voltage_median,
        'threshold_used': levels.threshold_used,
        'travel_percent': options.travel_percent_for_voltage_medians,
    }

    undefined = []
    if np.isnan(levels.high_voltage_median):
        undefined.append('start')
    if np.isnan(levels.low_voltage_median):
        undefined.append('bottom')

    if undefined:
        return QCCheckResult(
            name="voltage_bands",
            status=QCStatus.WARN,
            message=f"No finite voltage in {' and '.join(undefined)} band; threshold undefined",
            details=details,
            blocking=False
        )

    return QCCheckResult(
        name="voltage_bands",
        status=QCStatus.PASS,
        message=(
            f"High {levels.high_voltage_median:.3f} V, low {levels.low_voltage_median:.3f} V, "
            f"threshold {levels.threshold_used:.3f} V"
        ),
        details=details
    )


def check_voltage_swing(
    samples: Sequence[Sample],
    options: Optional[AnalysisOptions] = None,
    min_swing_v: float = 0.5
) -> QCCheckResult:
    """
    Check the switch actually changed electrical state.

    The high level (near start) should sit clearly above the low level
    (near bottom); otherwise crossings are noise-driven.
    """
    options = options or DEFAULT_OPTIONS
    levels = detect_voltage_threshold(samples, options.travel_percent_for_voltage_medians)
    swing = levels.high_voltage_median - levels.low_voltage_median

    if np.isnan(swing):
        return QCCheckResult(
            name="voltage_swing",
            status=QCStatus.SKIP,
            message="Voltage levels undefined",
            blocking=False
        )

    if swing < min_swing_v:
        return QCCheckResult(
            name="voltage_swing",
            status=QCStatus.WARN,
            message=f"Voltage swing {swing:.3f} V (<{min_swing_v:g} V): switch may not have actuated",
            details={'swing_v': swing, 'min_swing_v': min_swing_v},
            blocking=False
        )

    return QCCheckResult(
        name="voltage_swing",
        status=QCStatus.PASS,
        message=f"Voltage swing {swing:.3f} V",
        details={'swing_v': swing}
    )


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def run_qc_checks(
    samples: Sequence[Sample],
    options: Optional[AnalysisOptions] = None
) -> QCReport:
    """
    Run all QC checks on a record.

    Args:
        samples: Sample sequence
        options: Analysis options (band width for the voltage checks)

    Returns:
        QCReport with all check results
    """
    options = options or DEFAULT_OPTIONS
    report = QCReport()

    report.add_check(check_sample_count(samples))
    if len(samples) == 0:
        return report

    report.add_check(check_sequence_monotonic(samples))

    for channel in CHANNELS:
        report.add_check(check_nan_ratio(samples, channel))

    report.add_check(check_travel_range(samples))
    report.add_check(check_single_peak(samples))

    report.add_check(check_voltage_bands(samples, options))
    report.add_check(check_voltage_swing(samples, options))

    return report


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def assert_qc_passed(report: QCReport, raise_on_fail: bool = True) -> bool:
    """
    Check if QC passed and optionally raise exception on failure.

    Raises:
        ValueError: If QC failed and raise_on_fail is True
    """
    if report.passed:
        return True

    if raise_on_fail:
        failure_msgs = [f"  - {f.name}: {f.message}" for f in report.blocking_failures]
        raise ValueError(
            "QC FAILED - Analysis blocked:\n" + "\n".join(failure_msgs)
        )

    return False


def format_qc_for_display(report: QCReport) -> str:
    """
    Format QC report for display in UI.

    Returns:
        Markdown-formatted string
    """
    lines = []

    if report.passed:
        lines.append("#### Quality Control: PASSED")
    else:
        lines.append("#### Quality Control: FAILED")

    lines.append("")
    lines.append(f"**Summary:** {report.summary['passed']} passed, "
                 f"{report.summary['warnings']} warnings, "
                 f"{report.summary['failed']} failed")
    lines.append("")

    if report.blocking_failures:
        lines.append("**Blocking Failures**")
        for check in report.blocking_failures:
            lines.append(f"- **{check.name}**: {check.message}")
        lines.append("")

    if report.warnings:
        lines.append("**Warnings**")
        for check in report.warnings:
            lines.append(f"- **{check.name}**: {check.message}")
        lines.append("")

    passed_checks = [c for c in report.checks if c.status == QCStatus.PASS]
    if passed_checks:
        lines.append("**Passed Checks**")
        for check in passed_checks:
            lines.append(f"- {check.name}")

    return "\n".join(lines)
