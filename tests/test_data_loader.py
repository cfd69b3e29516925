"""
Data Loading Tests
==================
Tests for column matching, delimiter detection, numeric parsing and the
sample-sequence conversion.

Run with: python -m pytest tests/test_data_loader.py -v
"""

import sys
import io
import math
import tempfile
import pytest
from pathlib import Path

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from haptics.data_loader import (
    MissingColumnsError,
    ColumnMapping,
    match_columns,
    read_table,
    load_dataframe,
    load_csv,
)
from haptics.models import CANONICAL_COLUMNS, Sample, samples_from_dataframe, samples_to_dataframe


COMMA_EXPORT = (
    "Index,Date Time,Force (N),Voltage (V),Linear (mm)\n"
    "0,2024-01-01 09:00:00.000,1.0,9.0,0.0\n"
    "1,2024-01-01 09:00:00.005,2.0,9.0,0.5\n"
    "2,2024-01-01 09:00:00.010,3.0,4.0,1.0\n"
    "3,2024-01-01 09:00:00.015,3.5,1.0,1.2\n"
    "4,2024-01-01 09:00:00.020,2.0,1.0,0.8\n"
    "5,2024-01-01 09:00:00.025,1.5,9.0,0.1\n"
    "6,2024-01-01 09:00:00.030,1.0,9.0,0.0\n"
)

SEMICOLON_EXPORT = (
    "linear (mm);voltage (v);force (n);index\n"
    "0.0;9.0;1.0;10\n"
    "1.2;1.0;3.5;11\n"
    "0.0;9.0;1.0;12\n"
)


def create_export_file(tmpdir, content, name="export.csv"):
    path = Path(tmpdir) / name
    path.write_text(content)
    return path


class TestMatchColumns:
    """Tests for header matching."""

    def test_exact_headers(self):
        mapping = match_columns(['index', 'force (n)', 'voltage (v)', 'linear (mm)'])
        assert mapping == ColumnMapping('index', 'force (n)', 'voltage (v)', 'linear (mm)')

    def test_case_and_whitespace_insensitive(self):
        mapping = match_columns([' INDEX ', 'Force (N)', '  voltage (V)', 'Linear (MM) '])

        assert mapping.index == ' INDEX '
        assert mapping.force == 'Force (N)'
        assert mapping.linear == 'Linear (MM) '
        assert mapping.time is None

    def test_order_independent(self):
        mapping = match_columns(['Linear (mm)', 'Voltage (V)', 'Index', 'Force (N)'])
        assert mapping.rename_map() == {
            'Index': 'index',
            'Force (N)': 'force_n',
            'Voltage (V)': 'voltage_v',
            'Linear (mm)': 'travel_mm',
        }

    def test_optional_time_column(self):
        mapping = match_columns(['Index', 'Date Time', 'Force (N)', 'Voltage (V)', 'Linear (mm)'])

        assert mapping.time == 'Date Time'
        assert mapping.rename_map()['Date Time'] == 'time_raw'

    def test_extra_columns_ignored(self):
        mapping = match_columns(['Index', 'Temp (C)', 'Force (N)', 'Voltage (V)', 'Linear (mm)'])
        assert 'Temp (C)' not in mapping.rename_map()

    def test_duplicate_keeps_first(self):
        mapping = match_columns(['Index', 'Force (N)', 'FORCE (N)', 'Voltage (V)', 'Linear (mm)'])
        assert mapping.force == 'Force (N)'

    def test_reports_all_missing(self):
        with pytest.raises(MissingColumnsError) as exc_info:
            match_columns(['Index', 'Force (N)'])

        assert exc_info.value.missing == ['voltage (v)', 'linear (mm)']
        assert exc_info.value.available == ['Index', 'Force (N)']

    def test_missing_columns_is_value_error(self):
        with pytest.raises(ValueError):
            match_columns([])


class TestReadTable:
    """Tests for raw table reading."""

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            read_table("does/not/exist.csv")

    def test_values_kept_as_text(self):
        df = read_table(io.StringIO(COMMA_EXPORT))

        assert list(df.columns) == ['Index', 'Date Time', 'Force (N)', 'Voltage (V)', 'Linear (mm)']
        assert df['Force (N)'].iloc[0] == '1.0'
        assert len(df) == 7

    def test_headers_stripped(self):
        df = read_table(io.StringIO("Index ,Force (N) ,Voltage (V),Linear (mm)\n0,1.0,9.0,0.0\n"))
        assert list(df.columns) == ['Index', 'Force (N)', 'Voltage (V)', 'Linear (mm)']

    def test_bytes_source(self):
        df = read_table(COMMA_EXPORT.encode('utf-8'))
        assert len(df) == 7


class TestLoadDataframe:
    """Tests for canonical DataFrame loading."""

    def test_comma_delimited(self):
        df = load_dataframe(io.StringIO(COMMA_EXPORT))

        assert list(df.columns) == CANONICAL_COLUMNS
        assert len(df) == 7
        assert df['force_n'].tolist() == [1.0, 2.0, 3.0, 3.5, 2.0, 1.5, 1.0]
        assert df['index'].dtype == 'int64'

    def test_semicolon_delimited_any_order(self):
        df = load_dataframe(io.StringIO(SEMICOLON_EXPORT))

        assert df['index'].tolist() == [10, 11, 12]
        assert df['travel_mm'].tolist() == [0.0, 1.2, 0.0]
        assert df['voltage_v'].tolist() == [9.0, 1.0, 9.0]

    def test_time_raw_kept_verbatim(self):
        df = load_dataframe(io.StringIO(COMMA_EXPORT))
        assert df['time_raw'].iloc[2] == '2024-01-01 09:00:00.010'

    def test_time_raw_absent(self):
        df = load_dataframe(io.StringIO(SEMICOLON_EXPORT))
        assert df['time_raw'].isna().all()

    def test_non_numeric_value(self):
        content = "Index,Force (N),Voltage (V),Linear (mm)\n0,1.0,9.0,0.0\n1,abc,9.0,0.5\n"

        with pytest.raises(ValueError, match="abc"):
            load_dataframe(io.StringIO(content))

    def test_decimal_comma_rejected(self):
        content = "Index;Force (N);Voltage (V);Linear (mm)\n0;1,5;9.0;0.0\n"

        with pytest.raises(ValueError, match="force_n"):
            load_dataframe(io.StringIO(content))

    def test_blank_cell_is_nan(self):
        content = "Index,Force (N),Voltage (V),Linear (mm)\n0,1.0,,0.0\n1,2.0,9.0,0.5\n"
        df = load_dataframe(io.StringIO(content))

        assert math.isnan(df['voltage_v'].iloc[0])

    def test_missing_index_value(self):
        content = "Index,Force (N),Voltage (V),Linear (mm)\n0,1.0,9.0,0.0\n,2.0,9.0,0.5\n"

        with pytest.raises(ValueError, match="index"):
            load_dataframe(io.StringIO(content))

    def test_short_row_without_time(self):
        content = (
            "Index,Force (N),Voltage (V),Linear (mm),Date Time\n"
            "0,1.0,9.0,0.0,2024-01-01\n"
            "1,2.0,9.0,0.5\n"
        )
        samples = load_csv(io.StringIO(content))

        assert samples[0].time_raw == '2024-01-01'
        assert samples[1].time_raw is None
        assert samples[1].travel_mm == 0.5

    def test_short_row_missing_numeric_field(self):
        content = "Index,Force (N),Voltage (V),Linear (mm)\n0,1.0,9.0,0.0\n1,2.0,9.0\n"
        df = load_dataframe(io.StringIO(content))

        assert math.isnan(df['travel_mm'].iloc[1])

    def test_fractional_index_rejected(self):
        content = "Index,Force (N),Voltage (V),Linear (mm)\n0,1.0,9.0,0.0\n1.5,2.0,9.0,0.5\n"

        with pytest.raises(ValueError, match=r"Non-integer value '1.5' in column 'index' \(data row 2\)"):
            load_dataframe(io.StringIO(content))

    def test_integral_float_index_accepted(self):
        content = "Index,Force (N),Voltage (V),Linear (mm)\n0.0,1.0,9.0,0.0\n1.0,2.0,9.0,0.5\n"
        assert load_dataframe(io.StringIO(content))['index'].tolist() == [0, 1]

    def test_missing_columns(self):
        content = "Index,Force (N),Voltage (V)\n0,1.0,9.0\n"

        with pytest.raises(MissingColumnsError) as exc_info:
            load_dataframe(io.StringIO(content))

        assert exc_info.value.missing == ['linear (mm)']

    def test_header_only(self):
        df = load_dataframe(io.StringIO("Index,Force (N),Voltage (V),Linear (mm)\n"))
        assert df.empty


class TestLoadCsv:
    """Tests for loading straight into samples."""

    def test_from_path(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = create_export_file(tmpdir, COMMA_EXPORT)
            samples = load_csv(path)

        assert len(samples) == 7
        assert samples[3] == Sample(3, 3.5, 1.0, 1.2, '2024-01-01 09:00:00.015')

    def test_from_string_path(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = create_export_file(tmpdir, SEMICOLON_EXPORT)
            samples = load_csv(str(path))

        assert [s.sequence_index for s in samples] == [10, 11, 12]
        assert all(s.time_raw is None for s in samples)

    def test_order_preserved(self):
        content = "Index,Force (N),Voltage (V),Linear (mm)\n5,1.0,9.0,0.0\n2,2.0,9.0,0.5\n9,3.0,1.0,1.0\n"
        samples = load_csv(io.StringIO(content))

        assert [s.sequence_index for s in samples] == [5, 2, 9]


class TestSampleConversion:
    """Tests for DataFrame <-> sample conversion."""

    def test_dataframe_round_trip(self):
        samples = [Sample(0, 1.0, 9.0, 0.0, 't0'), Sample(1, 2.0, 1.0, 1.0, None)]
        assert samples_from_dataframe(samples_to_dataframe(samples)) == samples

    def test_missing_canonical_column(self):
        df = samples_to_dataframe([Sample(0, 1.0, 9.0, 0.0)]).drop(columns=['voltage_v'])

        with pytest.raises(ValueError, match="voltage_v"):
            samples_from_dataframe(df)
