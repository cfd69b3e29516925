"""
Analysis Options Tests
======================
Tests for option defaults, validation and JSON persistence.

Run with: python -m pytest tests/test_config_validation.py -v
"""

import sys
import json
import tempfile
import pytest
from pathlib import Path

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from haptics.config_validation import (
    AnalysisOptions,
    DEFAULT_OPTIONS,
    options_to_dict,
    validate_options,
    load_options_file,
    save_options_file,
)


class TestDefaults:
    """Tests for the default option values."""

    def test_default_values(self):
        assert DEFAULT_OPTIONS.return_window_mm == 0.02
        assert DEFAULT_OPTIONS.frr_window_samples == 50
        assert DEFAULT_OPTIONS.travel_percent_for_voltage_medians == 5.0

    def test_options_to_dict(self):
        assert options_to_dict(DEFAULT_OPTIONS) == {
            'return_window_mm': 0.02,
            'frr_window_samples': 50,
            'travel_percent_for_voltage_medians': 5.0,
        }

    def test_options_are_immutable(self):
        with pytest.raises(Exception):
            DEFAULT_OPTIONS.return_window_mm = 1.0

        assert DEFAULT_OPTIONS.return_window_mm == 0.02


class TestValidateOptions:
    """Tests for validate_options."""

    def test_empty_dict_gives_defaults(self):
        assert validate_options({}) == DEFAULT_OPTIONS

    def test_partial_override(self):
        options = validate_options({'frr_window_samples': 10})

        assert options.frr_window_samples == 10
        assert options.return_window_mm == 0.02

    def test_boundaries_accepted(self):
        options = validate_options({
            'return_window_mm': 0.0,
            'frr_window_samples': 0,
            'travel_percent_for_voltage_medians': 50.0,
        })
        assert options.travel_percent_for_voltage_medians == 50.0

    @pytest.mark.parametrize('data', [
        {'return_window_mm': -0.01},
        {'frr_window_samples': -1},
        {'travel_percent_for_voltage_medians': 60.0},
        {'travel_percent_for_voltage_medians': -1.0},
        {'return_window_mm': float('inf')},
        {'frr_window_samples': 'many'},
    ])
    def test_invalid_values(self, data):
        with pytest.raises(ValueError, match="validation failed"):
            validate_options(data)

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="return_windw_mm"):
            validate_options({'return_windw_mm': 0.05})


class TestOptionsFile:
    """Tests for loading and saving option files."""

    def test_save_and_load(self):
        options = AnalysisOptions(return_window_mm=0.05, frr_window_samples=20)

        with tempfile.TemporaryDirectory() as tmpdir:
            path = save_options_file(options, Path(tmpdir) / "options.json")
            loaded = load_options_file(path)

        assert loaded == options

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_options_file("no_such_options.json")

    def test_invalid_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "options.json"
            path.write_text("{not json")

            with pytest.raises(ValueError, match="Invalid JSON"):
                load_options_file(path)

    def test_non_object_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "options.json"
            path.write_text(json.dumps([1, 2, 3]))

            with pytest.raises(ValueError, match="JSON object"):
                load_options_file(path)

    def test_invalid_values_in_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "options.json"
            path.write_text(json.dumps({'travel_percent_for_voltage_medians': 75}))

            with pytest.raises(ValueError):
                load_options_file(path)
