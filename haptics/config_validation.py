"""
Configuration Validation Module
===============================
Schema validation for analysis options using pydantic.

Key Principle: Fail fast on bad options. A typo in an options file should
raise an immediate, clear error - not silently produce wrong metrics.

Options:
- return_window_mm: distance from the start position counted as "returned"
- frr_window_samples: fallback window (samples) for the Frr median
- travel_percent_for_voltage_medians: travel band (%) used to detect the
  high/low voltage levels
"""

import json
from pathlib import Path
from typing import Dict, Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class AnalysisOptions(BaseModel):
    """Tunable parameters of the metrics extraction."""
    model_config = ConfigDict(frozen=True, extra='forbid')

    return_window_mm: float = Field(
        0.02, ge=0, description="How close to the starting position (mm) counts as returned"
    )
    frr_window_samples: int = Field(
        50, ge=0, description="Samples at the end of the record used for the Frr fallback median"
    )
    travel_percent_for_voltage_medians: float = Field(
        5.0, ge=0, le=50,
        description="High voltage from the bottom X% of travel, low voltage from the top X%"
    )

    @field_validator('return_window_mm', 'travel_percent_for_voltage_medians')
    @classmethod
    def check_finite(cls, v):
        if v != v or v in (float('inf'), float('-inf')):
            raise ValueError(f"must be a finite number, got {v}")
        return v


DEFAULT_OPTIONS = AnalysisOptions()


def options_to_dict(options: AnalysisOptions) -> Dict[str, Any]:
    return options.model_dump()


def validate_options(data: Dict[str, Any]) -> AnalysisOptions:
    """
    Validate an options dictionary.

    Args:
        data: Mapping of option name to value (missing keys take defaults)

    Returns:
        Validated AnalysisOptions

    Raises:
        ValueError: If validation fails
    """
    try:
        return AnalysisOptions(**data)
    except ValidationError as e:
        raise ValueError(f"Analysis options validation failed:\n{str(e)}")


def load_options_file(path: Union[str, Path]) -> AnalysisOptions:
    """
    Load and validate an options JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the JSON is malformed or validation fails
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Options file not found: {path}")

    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {str(e)}")

    if not isinstance(data, dict):
        raise ValueError(f"Options file {path} must contain a JSON object")

    return validate_options(data)


def save_options_file(options: AnalysisOptions, path: Union[str, Path]) -> Path:
    """Write options as pretty-printed JSON."""
    path = Path(path)
    with open(path, 'w') as f:
        json.dump(options_to_dict(options), f, indent=2)
    return path
