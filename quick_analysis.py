import logging

from haptics.config_validation import AnalysisOptions
from haptics.integrated_analysis import analyze_file
from haptics.reporting import format_metrics_text, generate_test_report, save_report

logging.basicConfig(level=logging.INFO)

# Create the input first with: python generate_switch_sample_data.py
# Run complete analysis: QC, metrics, traceability
result = analyze_file(
    "sample_data/switch_nominal.csv",
    options=AnalysisOptions(return_window_mm=0.02, travel_percent_for_voltage_medians=5.0),
    test_id="SW-PROTO-001",
    metadata={
        'part': 'TACT-6x6',
        'serial_num': 'SN-001',
        'operator': 'jsmith',
    }
)

# Check results
print(f"QC Passed: {result.passed_qc}")
print(format_metrics_text(result.metrics))

# Save report and record
save_report(generate_test_report(result), "SW-PROTO-001_report.html")
with open("SW-PROTO-001_metrics.json", "w") as f:
    f.write(result.to_json())

# Re-running later refuses an export that was edited in the meantime
recheck = analyze_file(
    "sample_data/switch_nominal.csv",
    test_id="SW-PROTO-001",
    expected_hash=result.traceability['source_file_hash'],
)
print(f"Re-analysis matches: {recheck.traceability['record_fingerprint'] == result.traceability['record_fingerprint']}")
