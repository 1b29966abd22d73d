"""View generators over a FeatureStore.

Views are built on demand from the store's feature columns and never cached,
so they always reflect the current derivation graph.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import polars as pl

from airfoil_features.stats import pearson_correlation

if TYPE_CHECKING:
    from collections.abc import Sequence

    from airfoil_features.storage.models import FeatureDefinition
    from airfoil_features.storage.store import FeatureStore


def _resolve(store: FeatureStore, feature_ids: Sequence[str] | None) -> list[FeatureDefinition]:
    """Features for the given ids (unknown ids dropped), or the selection."""
    ids = store.selected_feature_ids if feature_ids is None else feature_ids
    features = (store.get_feature(fid) for fid in ids)
    return [f for f in features if f is not None]


def to_wide(
    store: FeatureStore,
    feature_ids: Sequence[str] | None = None,
    include_target: bool = True,
) -> pl.DataFrame:
    """Generate wide format suitable for model training.

    One row per sample, one Float64 column per feature id, with the target
    appended last unless excluded.

    Args:
        store: Feature store
        feature_ids: Columns to include (defaults to the selection)
        include_target: Append the target column if not already present

    Returns:
        Wide format DataFrame with a leading sample_index column
    """
    features = _resolve(store, feature_ids)
    target = store.get_feature(store.target_id)
    if include_target and target is not None and all(f.id != target.id for f in features):
        features.append(target)

    if not features:
        return pl.DataFrame()

    n_samples = len(features[0].values)
    return pl.DataFrame(
        {"sample_index": np.arange(n_samples, dtype=np.uint32)}
        | {f.id: f.values for f in features}
    )


def to_long(store: FeatureStore, feature_ids: Sequence[str] | None = None) -> pl.DataFrame:
    """Generate long format: sample_index, feature, type, value."""
    features = _resolve(store, feature_ids)
    if not features:
        return pl.DataFrame(
            schema={"sample_index": pl.UInt32, "feature": pl.Utf8, "type": pl.Utf8, "value": pl.Float64}
        )

    frames = [
        pl.DataFrame({
            "sample_index": np.arange(len(f.values), dtype=np.uint32),
            "feature": [f.id] * len(f.values),
            "type": [f.type.value] * len(f.values),
            "value": f.values,
        })
        for f in features
    ]
    return pl.concat(frames)


def stats_table(store: FeatureStore, feature_ids: Sequence[str] | None = None) -> pl.DataFrame:
    """One row of descriptive statistics per feature.

    Args:
        store: Feature store
        feature_ids: Features to describe (defaults to all features, target included)

    Returns:
        DataFrame with columns: id, name, type, transform, count, min, q1,
        median, q3, max, mean, std
    """
    if feature_ids is None:
        features = store.get_all_features(include_target=True)
    else:
        features = _resolve(store, feature_ids)

    return pl.DataFrame(
        [
            {
                "id": f.id,
                "name": f.name,
                "type": f.type.value,
                "transform": f.transform.value,
                "count": f.stats.count,
                "min": f.stats.min,
                "q1": f.stats.q1,
                "median": f.stats.median,
                "q3": f.stats.q3,
                "max": f.stats.max,
                "mean": f.stats.mean,
                "std": f.stats.std,
            }
            for f in features
        ],
        schema={
            "id": pl.Utf8,
            "name": pl.Utf8,
            "type": pl.Utf8,
            "transform": pl.Utf8,
            "count": pl.Int64,
            "min": pl.Float64,
            "q1": pl.Float64,
            "median": pl.Float64,
            "q3": pl.Float64,
            "max": pl.Float64,
            "mean": pl.Float64,
            "std": pl.Float64,
        },
    )


def feature_matrix(store: FeatureStore, feature_ids: Sequence[str] | None = None) -> np.ndarray:
    """(n_samples x n_features) matrix of the given features, selection by default."""
    features = _resolve(store, feature_ids)
    if not features:
        return np.empty((0, 0))
    return np.column_stack([f.values for f in features])


def correlation_matrix(store: FeatureStore, feature_ids: Sequence[str] | None = None) -> pl.DataFrame:
    """Pairwise Pearson correlations.

    Returns:
        DataFrame with a leading ``feature`` column and one column per feature id
    """
    features = _resolve(store, feature_ids)
    ids = [f.id for f in features]
    n = len(features)

    corr = np.eye(n)
    for i in range(n):
        for j in range(i + 1, n):
            if len(features[i].values) == 0:
                value = 0.0
            else:
                value = pearson_correlation(features[i].values, features[j].values)
            corr[i, j] = corr[j, i] = value

    return pl.DataFrame({"feature": ids} | {fid: corr[:, k] for k, fid in enumerate(ids)})
