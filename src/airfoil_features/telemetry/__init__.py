"""Telemetry module for feature engine reproducibility.

This module provides:
- fingerprint_array / fingerprint_file / fingerprint_config: reproducible hashes
- Event types for structured telemetry logging
"""

from airfoil_features.telemetry.provenance import (
    fingerprint_array,
    fingerprint_config,
    fingerprint_file,
)

from airfoil_features.telemetry.events import (
    DatasetLoadEvent,
    FeatureDerivedEvent,
    PCARunEvent,
    SnapshotEvent,
    log_dataset_load,
    log_feature_derived,
    log_pca_run,
    log_snapshot,
)

__all__ = [
    # Provenance
    "fingerprint_array",
    "fingerprint_config",
    "fingerprint_file",
    # Events
    "DatasetLoadEvent",
    "FeatureDerivedEvent",
    "PCARunEvent",
    "SnapshotEvent",
    "log_dataset_load",
    "log_feature_derived",
    "log_pca_run",
    "log_snapshot",
]
