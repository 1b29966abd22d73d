"""Airfoil self-noise dataset loader.

The raw file is whitespace-separated text, one sample per line, six numbers
per line in the configured column order (the NASA airfoil self-noise layout:
frequency, angle of attack, chord length, free-stream velocity, suction side
displacement thickness, sound pressure level).
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import TYPE_CHECKING

import polars as pl
from loguru import logger

from airfoil_features.config.engine import AIRFOIL_COLUMNS, EngineConfig
from airfoil_features.paths import REPO_ROOT
from airfoil_features.storage.schemas import validate_samples
from airfoil_features.telemetry.provenance import fingerprint_file

if TYPE_CHECKING:
    from collections.abc import Sequence


def parse_dataset(text: str, columns: Sequence[str] = AIRFOIL_COLUMNS) -> pl.DataFrame:
    """Parse whitespace-separated samples into a Float64 frame.

    Blank lines are ignored.

    Args:
        text: File contents
        columns: Column names, one per value on each line

    Returns:
        DataFrame with one Float64 column per name

    Raises:
        ValueError: If a line has the wrong number of values or a value is
            not a finite number.
    """
    columns = list(columns)
    rows: list[list[float]] = []

    for line_no, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        fields = line.split()
        try:
            values = [float(v) for v in fields]
        except ValueError:
            values = []
        if len(values) != len(columns) or not all(math.isfinite(v) for v in values):
            msg = f"Invalid data at line {line_no}: {line.strip()}"
            raise ValueError(msg)
        rows.append(values)

    return pl.DataFrame(rows, schema={c: pl.Float64 for c in columns}, orient="row")


def _resolve_path(path: Path | str) -> Path:
    """Relative paths are tried against the working directory, then the repo root."""
    path = Path(path)
    if path.is_absolute() or path.exists():
        return path
    return REPO_ROOT / path


def load_dataset(
    path: Path | str | None = None,
    config: EngineConfig | None = None,
    validate: bool = True,
) -> pl.DataFrame:
    """Load and validate the sample file.

    Args:
        path: Data file (defaults to the configured dataset path)
        config: Engine configuration for the path and column layout
        validate: Check the frame against AirfoilSampleSchema

    Returns:
        Sample DataFrame

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file cannot be parsed or fails validation.
    """
    config = config or EngineConfig()
    path = _resolve_path(path if path is not None else config.dataset.path)
    if not path.exists():
        msg = f"Dataset file not found: {path}"
        raise FileNotFoundError(msg)

    df = parse_dataset(path.read_text(), config.dataset.columns)

    if validate:
        is_valid, errors = validate_samples(df)
        if not is_valid:
            msg = f"Invalid dataset {path}: {errors}"
            raise ValueError(msg)

    fingerprint = fingerprint_file(path)
    logger.bind(context={"file": fingerprint, "rows": df.height}).info(
        f"Loaded {df.height} samples from {path.name}"
    )
    return df
