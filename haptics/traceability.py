"""
Record Traceability
===================
Ties a metrics result to the exact record, source file and options it
came from.

- Record fingerprint: SHA-256 over the analyzed channels, independent of
  the export's delimiter, header spelling or column order
- Source file hash: SHA-256 of the bytes on disk (file sources only)
- Options hash: SHA-256 of the validated AnalysisOptions
- Cycle signature: sample count, index span, travel extremes and peak
  position, enough to spot a truncated or re-cut export at a glance

Before re-analyzing a file, ``check_source_unchanged`` confirms it still
matches the hash stored with the earlier result.
"""

import getpass
import hashlib
import platform
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional, Sequence, Union

import numpy as np

from .analyzer import find_peak_position
from .config_validation import AnalysisOptions
from .models import Sample


# Increment when the metrics definitions change
PROCESSING_VERSION = "1.1.0"

HASH_PREFIX = "sha256:"


class SourceChangedError(ValueError):
    """Raised when a source file no longer matches its recorded hash."""


def hash_source_file(path: Union[str, Path]) -> str:
    """SHA-256 of a file's bytes, prefixed with 'sha256:'."""
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        while True:
            block = f.read(1 << 16)
            if not block:
                break
            digest.update(block)
    return HASH_PREFIX + digest.hexdigest()


def fingerprint_samples(samples: Sequence[Sample]) -> str:
    """
    Hash of the analyzed channels (index, force, voltage, travel).

    Two exports holding the same numbers fingerprint identically. The raw
    timestamp text is left out since it never enters the metrics.
    """
    index = np.array([s.sequence_index for s in samples], dtype='<i8')
    channels = np.array(
        [(s.force_n, s.voltage_v, s.travel_mm) for s in samples], dtype='<f8'
    ).reshape(-1, 3)

    digest = hashlib.sha256()
    digest.update(index.tobytes())
    digest.update(channels.tobytes())
    return HASH_PREFIX + digest.hexdigest()


def hash_options(options: AnalysisOptions) -> str:
    return HASH_PREFIX + hashlib.sha256(options.model_dump_json().encode('utf-8')).hexdigest()


def cycle_signature(samples: Sequence[Sample]) -> Dict[str, Any]:
    """Shape summary of the press/release cycle that was analyzed."""
    travel = np.array([s.travel_mm for s in samples], dtype=float)
    finite = travel[np.isfinite(travel)]

    return {
        'sample_count': len(samples),
        'first_index': samples[0].sequence_index if samples else None,
        'last_index': samples[-1].sequence_index if samples else None,
        'peak_position': find_peak_position(samples) if samples else None,
        'travel_min_mm': float(finite.min()) if finite.size else None,
        'travel_max_mm': float(finite.max()) if finite.size else None,
    }


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class TraceRecord:
    """Where a result came from and who produced it."""
    source_name: str
    source_path: Optional[str]
    source_file_hash: Optional[str]
    record_fingerprint: str
    options_hash: str
    cycle: Dict[str, Any]
    analyst: str = field(default_factory=_current_user)
    workstation: str = field(default_factory=platform.node)
    analyzed_at_utc: str = field(default_factory=_utc_now)
    processing_version: str = PROCESSING_VERSION

    def to_dict(self) -> Dict[str, Any]:
        """Flat dictionary; the cycle signature is merged in."""
        result = asdict(self)
        result.update(result.pop('cycle'))
        return result


def trace_record(
    samples: Sequence[Sample],
    options: AnalysisOptions,
    file_path: Optional[Union[str, Path]] = None,
    source_name: Optional[str] = None
) -> TraceRecord:
    """
    Build the trace for one analysis.

    Args:
        samples: The analyzed record
        options: Options the metrics were computed with
        file_path: Source file on disk (None for uploads and generated data)
        source_name: Display name; defaults to the file name
    """
    if file_path is not None:
        path = Path(file_path)
        source_path = str(path.absolute())
        source_file_hash = hash_source_file(path)
        source_name = source_name or path.name
    else:
        source_path = source_file_hash = None
        source_name = source_name or "uploaded_data"

    return TraceRecord(
        source_name=source_name,
        source_path=source_path,
        source_file_hash=source_file_hash,
        record_fingerprint=fingerprint_samples(samples),
        options_hash=hash_options(options),
        cycle=cycle_signature(samples),
    )


def check_source_unchanged(file_path: Union[str, Path], expected_hash: str) -> str:
    """
    Confirm a source file still matches the hash recorded earlier.

    Returns:
        The current hash

    Raises:
        FileNotFoundError: If the file is gone
        SourceChangedError: If the contents changed
    """
    current = hash_source_file(file_path)
    if current != expected_hash:
        raise SourceChangedError(
            f"Source file {file_path} changed since it was analyzed: "
            f"expected {expected_hash}, found {current}"
        )
    return current
