"""Records held by the feature store.

Feature values and PCA arrays are float64 numpy arrays marked read-only once
committed, so a caller holding a reference cannot change stored data behind
the store's back. Snapshots use the camelCase wire keys of the exported JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np

from airfoil_features.transforms import TransformKind, TransformParams

if TYPE_CHECKING:
    from numpy.typing import ArrayLike

    from airfoil_features.stats import FeatureStats


def readonly_array(values: ArrayLike, ndim: int = 1) -> np.ndarray:
    """Copy to a read-only float64 array with at least ndim dimensions."""
    arr = np.array(values, dtype=np.float64, copy=True)
    if ndim == 2:
        arr = np.atleast_2d(arr) if arr.size else arr.reshape(0, 0)
    arr.flags.writeable = False
    return arr


class FeatureType(str, Enum):
    """Where a feature's values come from."""

    ORIGINAL = "original"
    TRANSFORMED = "transformed"
    PCA = "pca"


class DiagnosticCode(str, Enum):
    """Reason codes for rejected operations and degraded results."""

    UNKNOWN_FEATURE = "unknown_feature"
    UNKNOWN_PCA_RESULT = "unknown_pca_result"
    UNKNOWN_TRANSFORM = "unknown_transform"
    ORIGINAL_FEATURE = "original_feature"
    HAS_DEPENDENTS = "has_dependents"
    NONE_TRANSFORM = "none_transform"
    MISSING_EXPRESSION = "missing_expression"
    INSUFFICIENT_FEATURES = "insufficient_features"
    DECOMPOSITION_FAILED = "decomposition_failed"
    INVALID_COMPONENT = "invalid_component"
    EVALUATION_FALLBACK = "evaluation_fallback"
    NO_INVERSE = "no_inverse"
    NOT_INITIALIZED = "not_initialized"
    INVALID_SNAPSHOT = "invalid_snapshot"
    IMPORT_SKIPPED = "import_skipped"


@dataclass(frozen=True)
class Diagnostic:
    """One rejected operation or degraded result."""

    code: DiagnosticCode
    message: str
    subject: str | None = None


@dataclass
class FeatureDefinition:
    """A named column of values plus how it was derived.

    Attributes:
        id: Immutable unique id
        name: Display name
        type: original, transformed or pca
        values: Read-only float64 values, one per sample
        stats: Statistics of values
        transform: Transform applied to the source (none for original and pca)
        source_feature_id: Source of a transformed feature
        source_feature_ids: Sources of the PCA a pca feature came from
        transform_params: Expressions of a custom transform
        pca_id: PCA result a pca feature was materialized from
        component_index: 0-based component of that PCA result
    """

    id: str
    name: str
    type: FeatureType
    values: np.ndarray
    stats: FeatureStats
    transform: TransformKind = TransformKind.NONE
    source_feature_id: str | None = None
    source_feature_ids: tuple[str, ...] = ()
    transform_params: TransformParams | None = None
    pca_id: str | None = None
    component_index: int | None = None

    @property
    def sources(self) -> tuple[str, ...]:
        """Every feature id this one is derived from."""
        if self.source_feature_id is not None:
            return (self.source_feature_id,)
        return self.source_feature_ids


@dataclass
class PCAResult:
    """A stored PCA run. Immutable once saved; only deletion changes it."""

    id: str
    name: str
    created_at: int
    source_feature_ids: list[str]
    source_feature_names: list[str]
    components: np.ndarray
    explained_variance: np.ndarray
    explained_variance_ratio: np.ndarray
    cumulative_variance_ratio: np.ndarray
    projections: np.ndarray
    mean: np.ndarray
    singular_values: np.ndarray
    num_components: int = field(default=0)

    def __post_init__(self) -> None:
        self.components = readonly_array(self.components, ndim=2)
        self.projections = readonly_array(self.projections, ndim=2)
        self.explained_variance = readonly_array(self.explained_variance)
        self.explained_variance_ratio = readonly_array(self.explained_variance_ratio)
        self.cumulative_variance_ratio = readonly_array(self.cumulative_variance_ratio)
        self.mean = readonly_array(self.mean)
        self.singular_values = readonly_array(self.singular_values)
        self.source_feature_ids = list(self.source_feature_ids)
        self.source_feature_names = list(self.source_feature_names)
        if not self.num_components:
            self.num_components = int(self.components.shape[0])

    def to_dict(self) -> dict[str, Any]:
        """Wire form with camelCase keys and nested lists."""
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "sourceFeatureIds": list(self.source_feature_ids),
            "sourceFeatureNames": list(self.source_feature_names),
            "components": self.components.tolist(),
            "explainedVariance": self.explained_variance.tolist(),
            "explainedVarianceRatio": self.explained_variance_ratio.tolist(),
            "cumulativeVarianceRatio": self.cumulative_variance_ratio.tolist(),
            "projections": self.projections.tolist(),
            "mean": self.mean.tolist(),
            "singularValues": self.singular_values.tolist(),
            "numComponents": self.num_components,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PCAResult:
        """Build from the wire form.

        Raises:
            KeyError: If a required key is missing.
            ValueError: If an array is not numeric.
        """
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            created_at=int(data.get("createdAt", 0)),
            source_feature_ids=list(data["sourceFeatureIds"]),
            source_feature_names=list(data.get("sourceFeatureNames", [])),
            components=data["components"],
            explained_variance=data.get("explainedVariance", []),
            explained_variance_ratio=data.get("explainedVarianceRatio", []),
            cumulative_variance_ratio=data.get("cumulativeVarianceRatio", []),
            projections=data["projections"],
            mean=data["mean"],
            singular_values=data.get("singularValues", []),
            num_components=int(data.get("numComponents", 0)),
        )
