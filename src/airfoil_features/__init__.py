"""Airfoil Features - feature engineering and PCA for airfoil self-noise regression.

Maintains a derivation graph of dataset features (original, transformed and
PCA-derived), evaluates forward/inverse transforms including user-authored
expressions, and computes, stores and reconstructs PCA results.

Example:
    >>> from airfoil_features import FeatureStore, TransformParams, load_dataset
    >>> store = FeatureStore()
    >>> store.initialize_from_data(load_dataset())
    >>> fid = store.add_transformed_feature("frequency", "custom", TransformParams("log(x)", "exp(x)"))
"""

__version__ = "0.1.0"

# Path utilities
from airfoil_features.paths import (
    ensure_dirs,
    get_artifacts_dir,
    get_config_dir,
    get_data_dir,
    get_log_dir,
    get_snapshot_dir,
)

# Configuration
from airfoil_features.config import EngineConfig, load_engine_config

# Statistics
from airfoil_features.stats import FeatureStats, compute_stats, pearson_correlation

# Transforms
from airfoil_features.transforms import (
    ExpressionError,
    TransformKind,
    TransformParams,
    apply_inverse_transform,
    apply_transform,
    has_inverse,
    validate_custom_transform,
)

# PCA
from airfoil_features.dimensionality import PCAOutput, compute_pca, reconstruct_data

# Storage
from airfoil_features.storage import (
    DiagnosticCode,
    FeatureDefinition,
    FeatureStore,
    FeatureType,
    PCAResult,
)

# Dataset
from airfoil_features.dataset import load_dataset, parse_dataset

__all__ = [
    # Version
    "__version__",
    # Path utilities
    "ensure_dirs",
    "get_artifacts_dir",
    "get_config_dir",
    "get_data_dir",
    "get_log_dir",
    "get_snapshot_dir",
    # Configuration
    "EngineConfig",
    "load_engine_config",
    # Statistics
    "FeatureStats",
    "compute_stats",
    "pearson_correlation",
    # Transforms
    "ExpressionError",
    "TransformKind",
    "TransformParams",
    "apply_inverse_transform",
    "apply_transform",
    "has_inverse",
    "validate_custom_transform",
    # PCA
    "PCAOutput",
    "compute_pca",
    "reconstruct_data",
    # Storage
    "DiagnosticCode",
    "FeatureDefinition",
    "FeatureStore",
    "FeatureType",
    "PCAResult",
    # Dataset
    "load_dataset",
    "parse_dataset",
]
