"""Validation for store snapshots and raw sample frames.

Snapshots are plain JSON-compatible dicts and are checked structurally before
the store touches any state. Sample frames are validated with pandera's
polars backend.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pandera.polars as pa
import polars as pl
from pandera.errors import SchemaError, SchemaErrors

from airfoil_features.config.engine import SUPPORTED_SNAPSHOT_VERSIONS
from airfoil_features.transforms import TransformKind

# Version written by export_config() unless configured otherwise
SNAPSHOT_VERSION = 2

_TRANSFORM_KINDS = {kind.value for kind in TransformKind}


class AirfoilSampleSchema(pa.DataFrameModel):
    """Raw airfoil self-noise samples.

    Physical magnitudes are non-negative; the angle of attack may be any sign.
    """

    frequency: float = pa.Field(ge=0)
    angle_of_attack: float
    chord_length: float = pa.Field(ge=0)
    free_stream_velocity: float = pa.Field(ge=0)
    suction_side_displacement_thickness: float = pa.Field(ge=0)
    sound_pressure_level: float

    class Config:
        coerce = True
        strict = "filter"  # Drop any extra columns


def validate_samples(df: pl.DataFrame) -> tuple[bool, list[str]]:
    """Validate a sample frame against AirfoilSampleSchema.

    Args:
        df: Polars DataFrame of raw samples

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    missing = [c for c in AirfoilSampleSchema.to_schema().columns if c not in df.columns]
    if missing:
        return False, [f"column '{c}' not in dataframe" for c in missing]

    try:
        AirfoilSampleSchema.validate(df, lazy=True)
    except SchemaErrors as e:
        return False, [str(err) for err in e.schema_errors]
    except SchemaError as e:
        return False, [str(e)]
    except pl.exceptions.PolarsError as e:
        return False, [f"{type(e).__name__}: {e}"]
    return True, []


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def _as_matrix(value: Any) -> np.ndarray | None:
    """Numeric 2-D array of a nested list, None if it is not one."""
    if not isinstance(value, list):
        return None
    try:
        arr = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError):
        return None
    if arr.size == 0:
        return arr.reshape(0, 0)
    return arr if arr.ndim == 2 else None


def _as_vector(value: Any) -> np.ndarray | None:
    if not isinstance(value, list):
        return None
    try:
        arr = np.asarray(value, dtype=np.float64)
    except (TypeError, ValueError):
        return None
    return arr if arr.ndim == 1 else None


def _validate_transformed_entry(i: int, entry: Any, errors: list[str]) -> None:
    where = f"transformedFeatures[{i}]"
    if not isinstance(entry, dict):
        errors.append(f"{where} must be an object")
        return

    if not isinstance(entry.get("sourceFeatureId"), str):
        errors.append(f"{where}.sourceFeatureId must be a string")

    transform = entry.get("transform")
    if not isinstance(transform, str) or transform not in _TRANSFORM_KINDS:
        errors.append(f"{where}.transform must be one of {sorted(_TRANSFORM_KINDS)}, got {transform!r}")
    elif transform == TransformKind.NONE.value:
        errors.append(f"{where}.transform cannot be 'none'")

    params = entry.get("transformParams")
    if params is not None:
        if not isinstance(params, dict):
            errors.append(f"{where}.transformParams must be an object")
        else:
            if not isinstance(params.get("expression", ""), str):
                errors.append(f"{where}.transformParams.expression must be a string")
            inverse = params.get("inverseExpression")
            if inverse is not None and not isinstance(inverse, str):
                errors.append(f"{where}.transformParams.inverseExpression must be a string")

    if transform == TransformKind.CUSTOM.value and not (
        isinstance(params, dict) and params.get("expression")
    ):
        errors.append(f"{where} is a custom transform without an expression")

    for key in ("customName", "id"):
        if key in entry and entry[key] is not None and not isinstance(entry[key], str):
            errors.append(f"{where}.{key} must be a string")


def _validate_pca_result(i: int, result: Any, errors: list[str]) -> None:
    where = f"pcaResults[{i}]"
    if not isinstance(result, dict):
        errors.append(f"{where} must be an object")
        return

    for key in ("id", "name"):
        if not isinstance(result.get(key), str):
            errors.append(f"{where}.{key} must be a string")
    if not _is_str_list(result.get("sourceFeatureIds")):
        errors.append(f"{where}.sourceFeatureIds must be a list of strings")
        return
    created_at = result.get("createdAt", 0)
    if isinstance(created_at, bool) or not isinstance(created_at, (int, float)):
        errors.append(f"{where}.createdAt must be a number")

    components = _as_matrix(result.get("components"))
    projections = _as_matrix(result.get("projections"))
    mean = _as_vector(result.get("mean"))
    if components is None:
        errors.append(f"{where}.components must be a numeric matrix")
    if projections is None:
        errors.append(f"{where}.projections must be a numeric matrix")
    if mean is None:
        errors.append(f"{where}.mean must be a numeric list")
    if components is None or projections is None or mean is None:
        return

    n_sources = len(result["sourceFeatureIds"])
    k = components.shape[0]
    if components.size and components.shape[1] != n_sources:
        errors.append(f"{where}.components rows must have one loading per source feature ({n_sources})")
    if len(mean) != n_sources:
        errors.append(f"{where}.mean must have one entry per source feature ({n_sources})")
    if projections.size and projections.shape[1] != k:
        errors.append(f"{where}.projections rows must have one score per component ({k})")

    num_components = result.get("numComponents", k)
    if isinstance(num_components, bool) or not isinstance(num_components, int) or num_components != k:
        errors.append(f"{where}.numComponents must equal the number of components ({k})")

    for key in ("explainedVariance", "explainedVarianceRatio", "cumulativeVarianceRatio", "singularValues"):
        if key in result:
            vec = _as_vector(result[key])
            if vec is None or (vec.size and len(vec) != k):
                errors.append(f"{where}.{key} must be a numeric list of length {k}")


def _validate_pca_feature(i: int, entry: Any, errors: list[str]) -> None:
    where = f"pcaFeatures[{i}]"
    if not isinstance(entry, dict):
        errors.append(f"{where} must be an object")
        return
    if not isinstance(entry.get("pcaId"), str):
        errors.append(f"{where}.pcaId must be a string")
    index = entry.get("componentIndex")
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        errors.append(f"{where}.componentIndex must be a non-negative integer")
    for key in ("id", "name"):
        if key in entry and not isinstance(entry[key], str):
            errors.append(f"{where}.{key} must be a string")


def validate_store_config(config: Any) -> tuple[bool, list[str]]:
    """Validate a feature store snapshot before import.

    Checks structure only; references to features that do not exist are
    handled during import.

    Args:
        config: Decoded snapshot

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    errors: list[str] = []

    if not isinstance(config, dict):
        return False, [f"Snapshot must be an object, got {type(config).__name__}"]

    version = config.get("version")
    if isinstance(version, bool) or version not in SUPPORTED_SNAPSHOT_VERSIONS:
        errors.append(
            f"Unsupported snapshot version {version!r} (supported: {list(SUPPORTED_SNAPSHOT_VERSIONS)})"
        )

    transformed = config.get("transformedFeatures")
    if not isinstance(transformed, list):
        errors.append("transformedFeatures must be a list")
    else:
        for i, entry in enumerate(transformed):
            _validate_transformed_entry(i, entry, errors)

    results = config.get("pcaResults")
    if not isinstance(results, list):
        errors.append("pcaResults must be a list")
    else:
        for i, result in enumerate(results):
            _validate_pca_result(i, result, errors)

    pca_features = config.get("pcaFeatures", [])
    if not isinstance(pca_features, list):
        errors.append("pcaFeatures must be a list")
    else:
        for i, entry in enumerate(pca_features):
            _validate_pca_feature(i, entry, errors)

    if not _is_str_list(config.get("selectedFeatureIds")):
        errors.append("selectedFeatureIds must be a list of strings")

    return len(errors) == 0, errors
