"""
Data Loading Module
===================
Reads bench-test exports into an ordered sample sequence.

Expected logical columns (matched case-insensitively, whitespace-trimmed,
in any order):
- index
- force (n)
- voltage (v)
- linear (mm)
- date time (optional, kept as raw text)

Numbers always use '.' as the decimal separator, independent of locale.
The delimiter is detected from the file.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union, IO

import pandas as pd

from .models import Sample, CANONICAL_COLUMNS, samples_from_dataframe

logger = logging.getLogger(__name__)


COL_INDEX = 'index'
COL_FORCE = 'force (n)'
COL_VOLTAGE = 'voltage (v)'
COL_LINEAR = 'linear (mm)'
COL_TIME = 'date time'

REQUIRED_COLUMNS = (COL_INDEX, COL_FORCE, COL_VOLTAGE, COL_LINEAR)
OPTIONAL_COLUMNS = (COL_TIME,)

# logical header -> canonical DataFrame column
_CANONICAL_NAMES = {
    COL_INDEX: 'index',
    COL_FORCE: 'force_n',
    COL_VOLTAGE: 'voltage_v',
    COL_LINEAR: 'travel_mm',
    COL_TIME: 'time_raw',
}

DataSource = Union[str, Path, IO[str], IO[bytes]]


class MissingColumnsError(ValueError):
    """Raised when required columns are absent from the input table."""

    def __init__(self, missing: List[str], available: List[str]):
        self.missing = list(missing)
        self.available = list(available)
        super().__init__(
            f"Missing required columns: {self.missing}. "
            f"Available columns: {self.available}"
        )


@dataclass(frozen=True)
class ColumnMapping:
    """Actual header names found in the file for each logical column."""
    index: str
    force: str
    voltage: str
    linear: str
    time: Optional[str] = None

    def rename_map(self) -> Dict[str, str]:
        """Actual header -> canonical column name."""
        mapping = {
            self.index: _CANONICAL_NAMES[COL_INDEX],
            self.force: _CANONICAL_NAMES[COL_FORCE],
            self.voltage: _CANONICAL_NAMES[COL_VOLTAGE],
            self.linear: _CANONICAL_NAMES[COL_LINEAR],
        }
        if self.time is not None:
            mapping[self.time] = _CANONICAL_NAMES[COL_TIME]
        return mapping


def normalize_header(name) -> str:
    return str(name).strip().lower()


def match_columns(columns: Iterable) -> ColumnMapping:
    """
    Map the file's headers to the logical columns.

    Duplicate normalized headers keep their first occurrence.

    Raises:
        MissingColumnsError: Listing every required column that is absent
    """
    columns = list(columns)
    found: Dict[str, str] = {}
    for col in columns:
        found.setdefault(normalize_header(col), col)

    missing = [c for c in REQUIRED_COLUMNS if c not in found]
    if missing:
        raise MissingColumnsError(missing, [str(c) for c in columns])

    return ColumnMapping(
        index=found[COL_INDEX],
        force=found[COL_FORCE],
        voltage=found[COL_VOLTAGE],
        linear=found[COL_LINEAR],
        time=found.get(COL_TIME),
    )


def read_table(source: DataSource) -> pd.DataFrame:
    """
    Read a delimited text table with delimiter auto-detection.

    Args:
        source: File path, text buffer or binary buffer (e.g. an upload)

    Raises:
        FileNotFoundError: If a path is given and does not exist
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Data file not found: {path}")
        source = path
    elif isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)

    df = pd.read_csv(
        source,
        sep=None,
        engine='python',
        decimal='.',
        skipinitialspace=True,
        skip_blank_lines=True,
        dtype=str,
        keep_default_na=False,
    )
    df.columns = [str(c).strip() for c in df.columns]
    return df


def _coerce_numeric(raw: pd.Series, column: str) -> pd.Series:
    text = raw.astype(str).str.strip()
    values = pd.to_numeric(text, errors='coerce')
    # blank cells and literal NaN are accepted as missing values
    bad = values.isna() & ~text.str.lower().isin(['', 'nan'])
    if bad.any():
        row = int(bad.to_numpy().nonzero()[0][0])
        raise ValueError(
            f"Non-numeric value {text.iloc[row]!r} in column '{column}' (data row {row + 1})"
        )
    return values.astype(float)


def load_dataframe(source: DataSource) -> pd.DataFrame:
    """
    Load a test export into a DataFrame with canonical columns
    (index, force_n, voltage_v, travel_mm, time_raw).

    Raises:
        MissingColumnsError: If required columns are missing
        ValueError: If a required column holds non-numeric values
    """
    raw = read_table(source)
    mapping = match_columns(raw.columns)

    df = raw[list(mapping.rename_map())].rename(columns=mapping.rename_map())

    for col in ('force_n', 'voltage_v', 'travel_mm'):
        df[col] = _coerce_numeric(df[col], col)

    index = _coerce_numeric(df['index'], 'index')
    if index.isna().any():
        row = int(index.isna().to_numpy().nonzero()[0][0])
        raise ValueError(f"Missing value in column 'index' (data row {row + 1})")
    fractional = (index % 1) != 0
    if fractional.any():
        row = int(fractional.to_numpy().nonzero()[0][0])
        raise ValueError(
            f"Non-integer value {str(df['index'].iloc[row]).strip()!r} in column 'index' (data row {row + 1})"
        )
    df['index'] = index.astype('int64')

    if 'time_raw' in df.columns:
        # short rows leave the trailing field as NaN
        df['time_raw'] = df['time_raw'].map(
            lambda v: v.strip() if isinstance(v, str) and v.strip() else None
        )
    else:
        df['time_raw'] = None

    logger.info(f"Loaded {len(df)} rows; columns: {mapping.rename_map()}")

    return df[CANONICAL_COLUMNS].reset_index(drop=True)


def load_csv(source: DataSource) -> List[Sample]:
    """
    Load a test export as an ordered list of samples.

    Example:
        >>> samples = load_csv("TaskData 1.csv")
        >>> samples[0].force_n
    """
    return samples_from_dataframe(load_dataframe(source))
