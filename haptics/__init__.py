"""
Haptics Studio - Core Module
============================
Switch actuation test analysis: force, voltage and travel samples from a
single press/release cycle in, haptic metrics (Fa, Fra, dF, Frr, Tm) out.

Components:
- models: Sample and HapticMetrics records
- analyzer: Metrics extraction (threshold, phases, crossings, Frr)
- config_validation: Pydantic-based analysis options
- data_loader: Tabular export ingestion with explicit column matching
- qc_checks: Advisory data quality checks
- traceability: Record fingerprints, source hashes and analysis context
- integrated_analysis: High-level analysis API
- charts / reporting: Plotly figures, text and HTML reports

Usage:
    from haptics.data_loader import load_csv
    from haptics.analyzer import compute_metrics
    from haptics.integrated_analysis import analyze_file
    from haptics.reporting import format_metrics_text, generate_test_report
"""

from .models import (
    Sample,
    HapticMetrics,
    samples_from_dataframe,
    samples_to_dataframe,
)

from .config_validation import (
    AnalysisOptions,
    DEFAULT_OPTIONS,
    validate_options,
    load_options_file,
    save_options_file,
)

from .analyzer import (
    InvalidInputError,
    VoltageLevels,
    PhaseSplit,
    robust_median,
    detect_voltage_threshold,
    find_peak_position,
    segment_phases,
    locate_actuation,
    locate_return,
    estimate_return_force,
    compute_metrics,
)

from .data_loader import (
    ColumnMapping,
    MissingColumnsError,
    match_columns,
    load_dataframe,
    load_csv,
)

from .qc_checks import (
    QCStatus,
    QCCheckResult,
    QCReport,
    run_qc_checks,
    assert_qc_passed,
    format_qc_for_display,
)

from .traceability import (
    PROCESSING_VERSION,
    SourceChangedError,
    TraceRecord,
    fingerprint_samples,
    trace_record,
    check_source_unchanged,
)

from .integrated_analysis import (
    AnalysisResult,
    analyze_switch_test,
    analyze_file,
)

from .reporting import (
    format_metrics_text,
    generate_test_report,
    save_report,
)

from .charts import (
    annotation_points,
    create_time_series_chart,
    create_force_travel_chart,
)

__version__ = "1.0.0"
