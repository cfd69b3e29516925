"""
Integrated Analysis Module
==========================
Combines ingestion, QC, metrics extraction and traceability into one call.

This module provides high-level functions that:
1. Run advisory QC checks on the record
2. Compute the haptic metrics
3. Attach a full traceability record
4. Return a result object ready for display, reporting or export

Usage:
    from haptics.integrated_analysis import analyze_file

    result = analyze_file("TaskData 1.csv", test_id="SW-PROTO-01")
    print(result.metrics.fa, result.metrics.fra)
"""

import json
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional, List, Sequence, Union

from .analyzer import compute_metrics
from .config_validation import AnalysisOptions, DEFAULT_OPTIONS, options_to_dict
from .data_loader import load_dataframe
from .models import Sample, HapticMetrics, samples_from_dataframe
from .qc_checks import QCReport, run_qc_checks
from .traceability import check_source_unchanged, trace_record

logger = logging.getLogger(__name__)


class AnalysisResult:
    """
    Complete analysis result for one switch actuation record.

    Contains:
    - The analyzed samples (for charting)
    - The extracted metrics
    - QC report
    - Full traceability record
    """

    def __init__(
        self,
        test_id: str,
        samples: Sequence[Sample],
        metrics: HapticMetrics,
        options: AnalysisOptions,
        qc_report: Optional[QCReport],
        traceability: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.test_id = test_id
        self.samples = tuple(samples)
        self.metrics = metrics
        self.options = options
        self.qc_report = qc_report
        self.traceability = traceability
        self.metadata = metadata or {}
        self.timestamp = datetime.now().isoformat()

    @property
    def passed_qc(self) -> bool:
        """Whether QC checks passed (True when QC was not run)."""
        return self.qc_report.passed if self.qc_report else True

    @property
    def has_warnings(self) -> bool:
        return self.qc_report.has_warnings if self.qc_report else False

    @property
    def undefined_metrics(self) -> List[str]:
        """Metric fields that are undefined (NaN) for this record."""
        return self.metrics.undefined_fields

    def to_record(self) -> Dict[str, Any]:
        """
        Flatten to a single record (metrics + options + traceability).

        NaN metrics are stored as None.
        """
        record = {
            'test_id': self.test_id,
            'test_timestamp': self.timestamp,
            'qc_passed': self.passed_qc,
            'qc_summary': self.qc_report.summary if self.qc_report else None,
        }
        record.update(self.metadata)

        for key, value in self.metrics.to_dict().items():
            if isinstance(value, float) and not math.isfinite(value):
                value = None
            record[key] = value

        record.update({f"opt_{k}": v for k, v in options_to_dict(self.options).items()})
        record.update(self.traceability)
        return record

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_record(), indent=indent, default=str)


def analyze_switch_test(
    samples: Sequence[Sample],
    options: Optional[AnalysisOptions] = None,
    test_id: Optional[str] = None,
    file_path: Optional[Union[str, Path]] = None,
    source_name: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    run_qc: bool = True,
) -> AnalysisResult:
    """
    Analyze one switch actuation record.

    Args:
        samples: Ordered sample sequence
        options: Analysis options (defaults if None)
        test_id: Test identifier (derived from the file name if omitted)
        file_path: Source file, hashed for traceability
        source_name: Display name for in-memory sources
        metadata: Free-form test metadata (part, serial, operator...)
        run_qc: Run the advisory QC checks

    Returns:
        AnalysisResult

    Raises:
        InvalidInputError: If samples is empty
    """
    options = options or DEFAULT_OPTIONS

    if test_id is None:
        if file_path is not None:
            test_id = Path(file_path).stem
        else:
            test_id = source_name or "unnamed"

    metrics = compute_metrics(samples, options)

    qc_report = run_qc_checks(samples, options) if run_qc else None
    if qc_report is not None:
        for check in qc_report.warnings:
            logger.warning(f"[{test_id}] QC {check.name}: {check.message}")

    undefined = metrics.undefined_fields
    if undefined:
        logger.warning(f"[{test_id}] Undefined metrics (NaN): {', '.join(undefined)}")

    traceability = trace_record(
        samples, options, file_path=file_path, source_name=source_name
    ).to_dict()

    logger.info(
        f"[{test_id}] Fa={metrics.fa:.3f} N, Fra={metrics.fra:.3f} N, "
        f"Frr={metrics.frr:.3f} N, Tm={metrics.tm:.3f} mm"
    )

    return AnalysisResult(
        test_id=test_id,
        samples=samples,
        metrics=metrics,
        options=options,
        qc_report=qc_report,
        traceability=traceability,
        metadata=metadata,
    )


def analyze_file(
    file_path: Union[str, Path],
    options: Optional[AnalysisOptions] = None,
    test_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    run_qc: bool = True,
    expected_hash: Optional[str] = None,
) -> AnalysisResult:
    """
    Load a test export from disk and analyze it.

    Pass the ``source_file_hash`` of an earlier result as ``expected_hash``
    to refuse re-analysis of a file that has since been edited.

    Raises:
        SourceChangedError: If ``expected_hash`` no longer matches the file
    """
    file_path = Path(file_path)
    if expected_hash is not None:
        check_source_unchanged(file_path, expected_hash)
        logger.info(f"Source verified unchanged: {file_path.name}")
    samples = samples_from_dataframe(load_dataframe(file_path))

    return analyze_switch_test(
        samples,
        options=options,
        test_id=test_id,
        file_path=file_path,
        metadata=metadata,
        run_qc=run_qc,
    )
