"""
Data Model
==========
Immutable records shared by ingestion, analysis and presentation.

- Sample: one acquisition tick of the force/voltage/travel bench
- HapticMetrics: result of a single metrics-extraction call

A "sample sequence" is any ordered ``Sequence[Sample]``: the order is the
acquisition order and must describe one press-then-release cycle.
"""

import math
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional, List, Sequence

import numpy as np
import pandas as pd


# Canonical column names used by DataFrames built from/for samples
CANONICAL_COLUMNS = ['index', 'force_n', 'voltage_v', 'travel_mm', 'time_raw']


@dataclass(frozen=True)
class Sample:
    """
    Single raw observation of the switch test bench.

    Attributes:
        sequence_index: Acquisition position as logged (not necessarily
            contiguous or zero-based)
        force_n: Actuator force in N
        voltage_v: Switch contact voltage in V
        travel_mm: Actuator travel in mm
        time_raw: Raw timestamp text, carried through and never parsed
    """
    sequence_index: int
    force_n: float
    voltage_v: float
    travel_mm: float
    time_raw: Optional[str] = None


@dataclass(frozen=True)
class HapticMetrics:
    """
    Haptic metrics extracted from one press/release cycle.

    Undefined values (statistics over an empty subset) are NaN. Note that
    ``fa_index`` is the matched sample's own ``sequence_index`` while
    ``fra_index`` is a position in the sequence.
    """
    fa: float
    fa_index: int
    fra: float
    fra_index: int
    frr: float
    tm: float
    high_voltage_median: float
    low_voltage_median: float
    threshold_used: float

    @property
    def delta_f(self) -> float:
        """Tactile effect (Fa - Fra)."""
        return self.fa - self.fra

    @property
    def undefined_fields(self) -> List[str]:
        """Names of float fields that are NaN."""
        values = self.to_dict()
        return [
            name for name, value in values.items()
            if isinstance(value, float) and math.isnan(value)
        ]

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['delta_f'] = self.delta_f
        return result


def samples_from_dataframe(df: pd.DataFrame) -> List[Sample]:
    """
    Build samples from a DataFrame with canonical columns.

    ``time_raw`` is optional; every other canonical column is required.
    """
    missing = [c for c in CANONICAL_COLUMNS[:4] if c not in df.columns]
    if missing:
        raise ValueError(f"DataFrame is missing columns: {missing}")

    times = df['time_raw'] if 'time_raw' in df.columns else [None] * len(df)

    samples = []
    for idx, force, volt, travel, time_raw in zip(
        df['index'], df['force_n'], df['voltage_v'], df['travel_mm'], times
    ):
        if time_raw is not None and not isinstance(time_raw, str):
            time_raw = None if pd.isna(time_raw) else str(time_raw)
        samples.append(Sample(
            sequence_index=int(idx),
            force_n=float(force),
            voltage_v=float(volt),
            travel_mm=float(travel),
            time_raw=time_raw,
        ))
    return samples


def samples_to_dataframe(samples: Sequence[Sample]) -> pd.DataFrame:
    """Inverse of ``samples_from_dataframe``."""
    return pd.DataFrame({
        'index': np.array([s.sequence_index for s in samples], dtype=np.int64),
        'force_n': np.array([s.force_n for s in samples], dtype=float),
        'voltage_v': np.array([s.voltage_v for s in samples], dtype=float),
        'travel_mm': np.array([s.travel_mm for s in samples], dtype=float),
        'time_raw': [s.time_raw for s in samples],
    }, columns=CANONICAL_COLUMNS)
