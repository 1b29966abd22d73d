"""Fingerprints for datasets, feature columns and snapshots.

A fingerprint is enough to tell, from logs alone, whether two sessions worked
on the same samples or restored the same snapshot.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import numpy as np


def fingerprint_array(arr: np.ndarray, name: str) -> dict[str, Any]:
    """Generate reproducibility fingerprint for numpy array.

    Args:
        arr: Numpy array to fingerprint
        name: Descriptive name for the array (e.g., "samples", "frequency")

    Returns:
        Dictionary with fingerprint data suitable for JSON serialization
    """
    arr = np.ascontiguousarray(arr)
    if arr.size:
        value_range = [float(np.nanmin(arr)), float(np.nanmax(arr))]
    else:
        value_range = None
    return {
        "name": name,
        "sha256": hashlib.sha256(arr.tobytes()).hexdigest(),
        "shape": list(arr.shape),
        "dtype": str(arr.dtype),
        "range": value_range,
        "n_nans": int(np.isnan(arr).sum()) if np.issubdtype(arr.dtype, np.floating) else 0,
    }


def fingerprint_file(path: Path | str) -> dict[str, Any]:
    """Generate fingerprint for input file.

    Args:
        path: Path to file

    Returns:
        Dictionary with file fingerprint data
    """
    path = Path(path)
    content = path.read_bytes()
    return {
        "path": str(path),
        "filename": path.name,
        "sha256": hashlib.sha256(content).hexdigest(),
        "size_bytes": len(content),
    }


def fingerprint_config(config: dict[str, Any]) -> str:
    """Short, order-independent hash of a JSON-serializable mapping."""
    config_str = json.dumps(config, sort_keys=True, default=str)
    return hashlib.sha256(config_str.encode()).hexdigest()[:16]
