"""Engine Configuration Loader and Validator.

Loads config/engine.toml and provides typed access to configuration. Every
field has a default matching the airfoil self-noise dataset, so ``EngineConfig()``
is usable without a file.
"""

from __future__ import annotations

import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from airfoil_features.paths import get_config_dir

AIRFOIL_COLUMNS = [
    "frequency",
    "angle_of_attack",
    "chord_length",
    "free_stream_velocity",
    "suction_side_displacement_thickness",
    "sound_pressure_level",
]

AIRFOIL_LABELS = {
    "frequency": "Frequency (Hz)",
    "angle_of_attack": "Angle of Attack (deg)",
    "chord_length": "Chord Length (m)",
    "free_stream_velocity": "Free-stream Velocity (m/s)",
    "suction_side_displacement_thickness": "Suction Side Displacement Thickness (m)",
    "sound_pressure_level": "Sound Pressure Level (dB)",
}

SUPPORTED_SNAPSHOT_VERSIONS = (1, 2)


@dataclass
class DatasetConfig:
    """Raw dataset layout."""

    path: str = "data/airfoil_self_noise.dat"
    columns: list[str] = field(default_factory=lambda: list(AIRFOIL_COLUMNS))
    target: str = "sound_pressure_level"
    labels: dict[str, str] = field(default_factory=lambda: dict(AIRFOIL_LABELS))

    @property
    def feature_columns(self) -> list[str]:
        """Input columns, i.e. every column except the target."""
        return [c for c in self.columns if c != self.target]

    def label_for(self, column: str) -> str:
        """Display label, falling back to the column id."""
        return self.labels.get(column, column)


@dataclass
class PCAConfig:
    """PCA reporting defaults."""

    variance_threshold: float = 0.95
    max_loadings_reported: int = 5


@dataclass
class SnapshotConfig:
    """Feature store snapshot format."""

    version: int = 2
    indent: int = 2


@dataclass
class LoggingConfig:
    """Logging sinks used by the CLI."""

    component: str = "feature_engine"
    level: str = "DEBUG"
    console_level: str = "WARNING"
    log_dir: str = "logs/ndjson"
    rotation: str = "10 MB"
    retention: str = "7 days"


@dataclass
class EngineConfig:
    """Complete engine configuration."""

    dataset: DatasetConfig = field(default_factory=DatasetConfig)
    pca: PCAConfig = field(default_factory=PCAConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def target(self) -> str:
        """Designated prediction target column."""
        return self.dataset.target

    @property
    def original_feature_ids(self) -> list[str]:
        """Input feature ids, the default selection after seeding."""
        return self.dataset.feature_columns


def load_engine_config(config_path: Path | str | None = None) -> EngineConfig:
    """Load engine configuration from TOML file.

    Args:
        config_path: Path to config file. If None, searches upward from the
            working directory for a project root (pyproject.toml) and uses its
            config/engine.toml, falling back to the repository config dir.

    Returns:
        Parsed EngineConfig.

    Raises:
        FileNotFoundError: If the config file does not exist.
    """
    if config_path is None:
        current = Path.cwd()
        while current != current.parent:
            if (current / "pyproject.toml").exists():
                config_path = current / "config" / "engine.toml"
                break
            current = current.parent
        else:
            config_path = get_config_dir() / "engine.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "rb") as f:
        raw = tomllib.load(f)

    ds_raw = raw.get("dataset", {})
    defaults = DatasetConfig()
    labels = dict(defaults.labels)
    labels.update(ds_raw.get("labels", {}))
    dataset = DatasetConfig(
        path=ds_raw.get("path", defaults.path),
        columns=ds_raw.get("columns", defaults.columns),
        target=ds_raw.get("target", defaults.target),
        labels=labels,
    )

    pca_raw = raw.get("pca", {})
    pca = PCAConfig(
        variance_threshold=pca_raw.get("variance_threshold", 0.95),
        max_loadings_reported=pca_raw.get("max_loadings_reported", 5),
    )

    snap_raw = raw.get("snapshot", {})
    snapshot = SnapshotConfig(
        version=snap_raw.get("version", 2),
        indent=snap_raw.get("indent", 2),
    )

    log_raw = raw.get("logging", {})
    logging = LoggingConfig(
        component=log_raw.get("component", "feature_engine"),
        level=log_raw.get("level", "DEBUG"),
        console_level=log_raw.get("console_level", "WARNING"),
        log_dir=log_raw.get("log_dir", "logs/ndjson"),
        rotation=log_raw.get("rotation", "10 MB"),
        retention=log_raw.get("retention", "7 days"),
    )

    return EngineConfig(dataset=dataset, pca=pca, snapshot=snapshot, logging=logging)


def validate_engine_config(config: EngineConfig) -> tuple[bool, list[str]]:
    """Validate engine configuration.

    Args:
        config: EngineConfig to validate.

    Returns:
        Tuple of (is_valid, list of error messages).
    """
    errors = []

    ds = config.dataset
    if not ds.columns:
        errors.append("No dataset columns specified")
    if len(set(ds.columns)) != len(ds.columns):
        errors.append(f"Duplicate dataset columns: {ds.columns}")
    if ds.target not in ds.columns:
        errors.append(f"Target column {ds.target!r} is not one of the dataset columns")
    if len(ds.feature_columns) < 1:
        errors.append("At least one input column besides the target is required")
    unknown_labels = sorted(set(ds.labels) - set(ds.columns))
    if unknown_labels:
        errors.append(f"Labels given for unknown columns: {unknown_labels}")

    if not 0 < config.pca.variance_threshold <= 1:
        errors.append(
            f"pca.variance_threshold must be in (0, 1], got {config.pca.variance_threshold}"
        )
    if config.pca.max_loadings_reported < 1:
        errors.append("pca.max_loadings_reported must be positive")

    if config.snapshot.version not in SUPPORTED_SNAPSHOT_VERSIONS:
        errors.append(
            f"Unsupported snapshot version {config.snapshot.version} "
            f"(supported: {list(SUPPORTED_SNAPSHOT_VERSIONS)})"
        )

    valid_levels = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
    if config.logging.level not in valid_levels:
        errors.append(f"Unknown log level: {config.logging.level}")
    if config.logging.console_level and config.logging.console_level not in valid_levels:
        errors.append(f"Unknown console log level: {config.logging.console_level}")

    return len(errors) == 0, errors


def print_config_summary(config: EngineConfig) -> None:
    """Print configuration summary to stdout."""
    print("=" * 60)
    print("FEATURE ENGINE CONFIGURATION")
    print("=" * 60)
    print()
    print("Dataset:")
    print(f"  Path: {config.dataset.path}")
    print(f"  Inputs: {', '.join(config.dataset.feature_columns)}")
    print(f"  Target: {config.dataset.target}")
    print()
    print("PCA:")
    print(f"  Variance threshold: {config.pca.variance_threshold:.0%}")
    print()
    print("Snapshot:")
    print(f"  Version: {config.snapshot.version}")
    print()
    print("Logging:")
    print(f"  Component: {config.logging.component} ({config.logging.level})")
    print(f"  Directory: {config.logging.log_dir}")
    print("=" * 60)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Load and validate engine config")
    parser.add_argument("--config", "-c", type=Path, help="Config file path")
    parser.add_argument("--validate", "-v", action="store_true", help="Validate config")
    args = parser.parse_args()

    try:
        config = load_engine_config(args.config)
        print_config_summary(config)

        if args.validate:
            is_valid, errors = validate_engine_config(config)
            if not is_valid:
                print("\nConfiguration errors:")
                for err in errors:
                    print(f"  - {err}")
                sys.exit(1)
            print("\nConfiguration is valid")

    except FileNotFoundError as e:
        print(e)
        sys.exit(1)
