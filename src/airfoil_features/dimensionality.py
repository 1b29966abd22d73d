"""Principal Component Analysis over selected features.

PCA runs on the centered but unscaled feature matrix, so features on large
scales dominate unless the caller transforms them first (z-score, min-max).

Uses numpy for the matrix work and sklearn for the decomposition (imported
lazily, like the rest of the analysis code). Failures are returned in
PCAOutput.error rather than raised, so a rejected run never leaves the caller
with a half-built result.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np
import polars as pl

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import ArrayLike


# Variance thresholds reported by summarize_pca()
VARIANCE_THRESHOLDS = (0.90, 0.95, 0.99)


@dataclass
class PCAOutput:
    """Decomposition of an (n_samples x n_features) matrix into k components.

    Attributes:
        components: (k x n_features) unit loading vectors, in order of variance
        explained_variance: Eigenvalues of the sample covariance, s^2 / (n - 1)
        explained_variance_ratio: Eigenvalue over the total variance
        cumulative_variance_ratio: Running sum of explained_variance_ratio
        projections: (n_samples x k) component scores
        mean: Column means used for centering
        singular_values: Singular values of the centered matrix
        feature_names: Names of the input columns
        error: Reason the decomposition failed, None on success
    """

    components: np.ndarray = field(default_factory=lambda: np.empty((0, 0)))
    explained_variance: np.ndarray = field(default_factory=lambda: np.empty(0))
    explained_variance_ratio: np.ndarray = field(default_factory=lambda: np.empty(0))
    cumulative_variance_ratio: np.ndarray = field(default_factory=lambda: np.empty(0))
    projections: np.ndarray = field(default_factory=lambda: np.empty((0, 0)))
    mean: np.ndarray = field(default_factory=lambda: np.empty(0))
    singular_values: np.ndarray = field(default_factory=lambda: np.empty(0))
    feature_names: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def num_components(self) -> int:
        return int(self.components.shape[0])


def compute_pca(
    data: ArrayLike,
    feature_names: Sequence[str],
    num_components: int | None = None,
) -> PCAOutput:
    """Run PCA on a sample matrix.

    Args:
        data: (n_samples x n_features) matrix
        feature_names: One name per column
        num_components: Components to keep; defaults to and is clamped at
            min(n_samples, n_features)

    Returns:
        PCAOutput; on failure only ``error`` and ``feature_names`` are set
    """
    from sklearn.decomposition import PCA

    names = list(feature_names)
    X = np.asarray(data, dtype=np.float64)

    if X.ndim != 2:
        return PCAOutput(feature_names=names, error=f"Expected a 2-D matrix, got {X.ndim} dimension(s)")

    n_samples, n_features = X.shape
    if n_features != len(names):
        return PCAOutput(
            feature_names=names,
            error=f"Feature count mismatch: data has {n_features} features but {len(names)} names provided",
        )
    if n_features < 2:
        return PCAOutput(feature_names=names, error=f"Need at least 2 features for PCA, got {n_features}")
    if n_samples < 2:
        return PCAOutput(feature_names=names, error=f"Need at least 2 samples for PCA, got {n_samples}")
    if not np.all(np.isfinite(X)):
        return PCAOutput(feature_names=names, error="Data contains NaN or infinite values")

    max_components = min(n_samples, n_features)
    k = max_components if num_components is None else max(1, min(int(num_components), max_components))

    try:
        pca = PCA(n_components=k, svd_solver="full")
        projections = pca.fit_transform(X)
    except (ValueError, np.linalg.LinAlgError) as e:
        return PCAOutput(feature_names=names, error=f"Decomposition failed: {e}")

    explained_variance = np.asarray(pca.explained_variance_, dtype=np.float64)

    # Ratio over the variance of all features, not only the kept components
    total_variance = float(np.var(X, axis=0, ddof=1).sum())
    if total_variance > 0:
        ratio = explained_variance / total_variance
    else:
        ratio = np.zeros_like(explained_variance)

    return PCAOutput(
        components=np.asarray(pca.components_, dtype=np.float64),
        explained_variance=explained_variance,
        explained_variance_ratio=ratio,
        cumulative_variance_ratio=np.cumsum(ratio),
        projections=np.asarray(projections, dtype=np.float64),
        mean=np.asarray(pca.mean_, dtype=np.float64),
        singular_values=np.asarray(pca.singular_values_, dtype=np.float64),
        feature_names=names,
    )


def project_data(data: ArrayLike, mean: ArrayLike, components: ArrayLike) -> np.ndarray:
    """Project new samples onto existing components: (X - mean) @ C.T."""
    X = np.atleast_2d(np.asarray(data, dtype=np.float64))
    C = np.atleast_2d(np.asarray(components, dtype=np.float64))
    return (X - np.asarray(mean, dtype=np.float64)) @ C.T


def reconstruct_data(pc_values: ArrayLike, mean: ArrayLike, components: ArrayLike) -> np.ndarray:
    """Map component scores back to feature space.

    Each row is ``mean + sum_j pc_values[j] * components[j]``. Fewer score
    columns than components gives the reconstruction from the leading
    components only.

    Args:
        pc_values: (n_samples x k) scores, or a single score vector
        mean: Column means of the original PCA
        components: (n_components x n_features) loadings

    Returns:
        (n_samples x n_features) reconstruction

    Raises:
        ValueError: If k exceeds the number of components.
    """
    P = np.atleast_2d(np.asarray(pc_values, dtype=np.float64))
    C = np.atleast_2d(np.asarray(components, dtype=np.float64))
    k = P.shape[1]
    if k > C.shape[0]:
        msg = f"Got {k} component scores but only {C.shape[0]} components"
        raise ValueError(msg)
    return np.asarray(mean, dtype=np.float64) + P @ C[:k]


def component_loadings(
    components: ArrayLike,
    component_index: int,
    feature_names: Sequence[str],
) -> pl.DataFrame:
    """Loadings of one component, sorted by absolute loading (largest first).

    Raises:
        ValueError: If component_index is out of range.
    """
    C = np.atleast_2d(np.asarray(components, dtype=np.float64))
    if component_index < 0 or component_index >= C.shape[0]:
        msg = f"Invalid component index: {component_index}"
        raise ValueError(msg)

    loadings = C[component_index]
    return pl.DataFrame({
        "feature": list(feature_names),
        "loading": loadings.tolist(),
        "abs_loading": np.abs(loadings).tolist(),
    }).sort("abs_loading", descending=True)


def optimal_components(cumulative_variance_ratio: ArrayLike, threshold: float = 0.95) -> int:
    """Smallest number of components whose cumulative ratio reaches threshold.

    Returns the number of components when the threshold is never reached.
    """
    cumvar = np.asarray(cumulative_variance_ratio, dtype=np.float64)
    reached = np.nonzero(cumvar >= threshold)[0]
    if len(reached) == 0:
        return len(cumvar)
    return int(reached[0]) + 1


def participation_ratio(eigenvalues: ArrayLike) -> float:
    """Compute Participation Ratio (effective dimensionality from statistical physics).

    Ranges from 1 (all variance in one dimension) to K (variance evenly
    spread over K dimensions).

    Formula: D_PR = (sum(lambda_i))^2 / sum(lambda_i^2)

    Args:
        eigenvalues: Array of eigenvalues (explained variances)

    Returns:
        Participation ratio (effective dimensionality)
    """
    eig = np.asarray(eigenvalues, dtype=np.float64)
    if len(eig) == 0 or np.sum(eig) == 0:
        return 0.0

    sum_eig_sq = np.sum(eig**2)
    if sum_eig_sq == 0:
        return 0.0

    return float(np.sum(eig) ** 2 / sum_eig_sq)


def summarize_pca(
    output: PCAOutput,
    max_loadings: int = 5,
) -> dict[str, Any]:
    """Create a summary of a PCA run for reports.

    Args:
        output: Result of compute_pca()
        max_loadings: Top features listed per component

    Returns:
        Summary dict, or {"error": ...} for a failed run
    """
    if output.error is not None:
        return {"error": output.error}

    n_features = len(output.feature_names)
    cumvar = output.cumulative_variance_ratio
    n_for = {t: optimal_components(cumvar, t) for t in VARIANCE_THRESHOLDS}
    d_pr = participation_ratio(output.explained_variance)

    top_contributors = []
    for i in range(output.num_components):
        loadings = component_loadings(output.components, i, output.feature_names).head(max_loadings)
        top_contributors.append({
            "component": f"PC{i + 1}",
            "variance_explained": float(output.explained_variance_ratio[i]),
            "top_features": loadings.select("feature", "loading").to_dicts(),
        })

    return {
        "n_samples": int(output.projections.shape[0]),
        "n_features": n_features,
        "n_components": output.num_components,
        "n_components_90_variance": n_for[0.90],
        "n_components_95_variance": n_for[0.95],
        "n_components_99_variance": n_for[0.99],
        "participation_ratio": d_pr,
        "explained_variance_ratio": output.explained_variance_ratio.tolist(),
        "cumulative_variance": cumvar.tolist(),
        "top_contributors_per_component": top_contributors,
        "interpretation": _interpret_dimensionality(
            n_features,
            n_for[0.95],
            float(cumvar[-1]) if len(cumvar) else 0.0,
            d_pr,
        ),
    }


def _interpret_dimensionality(
    n_features: int,
    n_components_95: int,
    kept_variance: float,
    d_pr: float,
) -> str:
    """Generate human-readable interpretation of dimensionality.

    Args:
        n_features: Number of input features
        n_components_95: Components needed for 95% variance
        kept_variance: Cumulative variance ratio of the kept components
        d_pr: Participation Ratio (effective dimensionality)

    Returns:
        Interpretation string
    """
    ratio = n_components_95 / n_features if n_features else 1.0

    if ratio < 0.2:
        dim_interp = "highly redundant (strong compression possible)"
    elif ratio < 0.4:
        dim_interp = "moderately redundant (good compression possible)"
    elif ratio < 0.6:
        dim_interp = "some redundancy (limited compression)"
    else:
        dim_interp = "low redundancy (features mostly independent)"

    kept_interp = ""
    if kept_variance < 0.95:
        kept_interp = f" Kept components explain only {kept_variance:.1%} of the variance."

    pr_interp = f" Participation ratio: {d_pr:.1f} (effective dimensions)."

    return (
        f"Feature space is {dim_interp}. {n_components_95}/{n_features} components explain 95% variance."
        f"{pr_interp}{kept_interp}"
    )


# =========================================================================
# Naming
# =========================================================================

_NON_ALPHA_RE = re.compile(r"[^a-zA-Z\s]")


def _abbreviate(name: str) -> str:
    """First letter of each word, upper-cased, at most 3 characters."""
    words = _NON_ALPHA_RE.sub("", name).split()
    return "".join(w[0].upper() for w in words)[:3]


def generate_pca_display_name(
    custom_name: str | None = None,
    source_feature_names: Sequence[str] | None = None,
    ordinal: int = 0,
) -> str:
    """Display name for a PCA result.

    A custom name wins. Otherwise the source names are abbreviated, e.g.
    ``PCA(F,AoA,CL)`` for up to three sources and ``PCA(F,AoA+3)`` beyond.
    With no source names the ordinal is used: ``PCA 4``.
    """
    if custom_name:
        return custom_name
    if not source_feature_names:
        return f"PCA {ordinal}"

    abbreviations = [_abbreviate(name) for name in source_feature_names]
    if len(abbreviations) <= 3:
        return f"PCA({','.join(abbreviations)})"
    return f"PCA({','.join(abbreviations[:2])}+{len(abbreviations) - 2})"


def generate_pc_feature_name(
    pca_name: str,
    component_index: int,
    variance_ratio: float | None = None,
) -> str:
    """Feature name for a saved component, e.g. ``PCA(F,AoA) PC1 (62.3%)``."""
    pc_num = component_index + 1
    if variance_ratio is not None:
        return f"{pca_name} PC{pc_num} ({variance_ratio * 100:.1f}%)"
    return f"{pca_name} PC{pc_num}"
