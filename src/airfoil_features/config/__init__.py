"""Configuration Module for the feature engine.

Loads and validates config/engine.toml.
"""

from airfoil_features.config.engine import (
    AIRFOIL_COLUMNS,
    AIRFOIL_LABELS,
    DatasetConfig,
    EngineConfig,
    LoggingConfig,
    PCAConfig,
    SnapshotConfig,
    load_engine_config,
    validate_engine_config,
)

__all__ = [
    "AIRFOIL_COLUMNS",
    "AIRFOIL_LABELS",
    "DatasetConfig",
    "EngineConfig",
    "LoggingConfig",
    "PCAConfig",
    "SnapshotConfig",
    "load_engine_config",
    "validate_engine_config",
]
