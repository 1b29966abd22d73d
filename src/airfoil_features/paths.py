"""Repository-local path configuration.

All paths are relative to the repository root.
"""
from pathlib import Path

# Navigate from src/airfoil_features/ to repo root
REPO_ROOT = Path(__file__).parent.parent.parent


def get_config_dir() -> Path:
    """Return the config directory (tracked in git)."""
    return REPO_ROOT / "config"


def get_data_dir() -> Path:
    """Return the data directory (dataset files are not tracked)."""
    return REPO_ROOT / "data"


def get_artifacts_dir() -> Path:
    """Return the artifacts directory (gitignored)."""
    return REPO_ROOT / "artifacts"


def get_log_dir() -> Path:
    """Return the logs directory (gitignored)."""
    return REPO_ROOT / "logs"


def get_snapshot_dir() -> Path:
    """Return the directory for exported feature store snapshots."""
    return get_artifacts_dir() / "snapshots"


def ensure_dirs() -> None:
    """Create all required directories if they don't exist."""
    for d in [
        get_data_dir(),
        get_artifacts_dir(),
        get_log_dir(),
        get_snapshot_dir(),
    ]:
        d.mkdir(parents=True, exist_ok=True)
