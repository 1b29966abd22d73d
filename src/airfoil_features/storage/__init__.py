"""Feature Storage Module.

Holds the derivation graph of features and stored PCA results, and generates
tabular views from it on demand.

Design Principles:
- Feature values are immutable once committed
- Derived features always reference existing sources (no dangling edges)
- Rejections are reported as diagnostics, never raised
"""

from airfoil_features.storage.graph import DerivationGraph
from airfoil_features.storage.models import (
    Diagnostic,
    DiagnosticCode,
    FeatureDefinition,
    FeatureType,
    PCAResult,
)
from airfoil_features.storage.schemas import (
    SNAPSHOT_VERSION,
    AirfoilSampleSchema,
    validate_samples,
    validate_store_config,
)
from airfoil_features.storage.store import FeatureStore
from airfoil_features.storage.views import (
    correlation_matrix,
    feature_matrix,
    stats_table,
    to_long,
    to_wide,
)

__all__ = [
    "AirfoilSampleSchema",
    "DerivationGraph",
    "Diagnostic",
    "DiagnosticCode",
    "FeatureDefinition",
    "FeatureStore",
    "FeatureType",
    "PCAResult",
    "SNAPSHOT_VERSION",
    "correlation_matrix",
    "feature_matrix",
    "stats_table",
    "to_long",
    "to_wide",
    "validate_samples",
    "validate_store_config",
]
