"""Telemetry event definitions for the feature engine.

Structured event types:
- dataset.load: sample matrix fingerprint when the store is seeded
- feature.derived: a transformed or PCA feature was committed
- pca.run: a decomposition finished (successfully or not)
- snapshot.export / snapshot.import: store configuration round trips

Events go through loguru, so an NDJSON sink picks them up with full context.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from airfoil_features.ndjson_logger import get_trace_id


@dataclass
class DatasetLoadEvent:
    """Event logged when the store is seeded with raw samples."""

    sha256_hash: str
    row_count: int
    column_count: int
    columns: list[str]
    target: str
    event_type: str = "dataset.load"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "event_type": self.event_type,
            "sha256_hash": self.sha256_hash,
            "row_count": self.row_count,
            "column_count": self.column_count,
            "columns": self.columns,
            "target": self.target,
        }


@dataclass
class FeatureDerivedEvent:
    """Event logged when a derived feature is added to the store."""

    feature_id: str
    feature_type: str
    transform: str
    source_ids: list[str]
    fallback_count: int = 0
    event_type: str = "feature.derived"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "event_type": self.event_type,
            "feature_id": self.feature_id,
            "feature_type": self.feature_type,
            "transform": self.transform,
            "source_ids": self.source_ids,
            "fallback_count": self.fallback_count,
        }


@dataclass
class PCARunEvent:
    """Event logged for every decomposition attempt."""

    pca_id: str | None
    source_ids: list[str]
    num_components: int
    cumulative_variance: float | None
    error: str | None = None
    event_type: str = "pca.run"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "event_type": self.event_type,
            "pca_id": self.pca_id,
            "source_ids": self.source_ids,
            "num_components": self.num_components,
            "cumulative_variance": (
                round(self.cumulative_variance, 10) if self.cumulative_variance is not None else None
            ),
            "error": self.error,
        }


@dataclass
class SnapshotEvent:
    """Event logged when a store snapshot is exported or imported."""

    direction: str  # "export" or "import"
    version: int
    config_hash: str
    counts: dict[str, int] = field(default_factory=dict)

    @property
    def event_type(self) -> str:
        return f"snapshot.{self.direction}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "event_type": self.event_type,
            "version": self.version,
            "config_hash": self.config_hash,
            "counts": self.counts,
        }


def _emit_event(event_dict: dict[str, Any], level: str = "INFO") -> None:
    """Emit event to loguru with proper formatting.

    Args:
        event_dict: Event data to log
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    log_entry = {
        "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
        "trace_id": get_trace_id(),
        **event_dict,
    }
    logger.bind(context=log_entry).log(level, f"[{event_dict.get('event_type', 'event')}]")


def log_dataset_load(
    sha256_hash: str,
    row_count: int,
    columns: list[str],
    target: str,
) -> DatasetLoadEvent:
    """Log dataset load event and return the event object."""
    event = DatasetLoadEvent(
        sha256_hash=sha256_hash,
        row_count=row_count,
        column_count=len(columns),
        columns=columns,
        target=target,
    )
    _emit_event(event.to_dict())
    return event


def log_feature_derived(
    feature_id: str,
    feature_type: str,
    transform: str,
    source_ids: list[str],
    fallback_count: int = 0,
) -> FeatureDerivedEvent:
    """Log a committed derived feature.

    Evaluation fallbacks raise the level to WARNING so they stand out in the
    NDJSON stream.
    """
    event = FeatureDerivedEvent(
        feature_id=feature_id,
        feature_type=feature_type,
        transform=transform,
        source_ids=source_ids,
        fallback_count=fallback_count,
    )
    _emit_event(event.to_dict(), level="WARNING" if fallback_count else "DEBUG")
    return event


def log_pca_run(
    pca_id: str | None,
    source_ids: list[str],
    num_components: int,
    cumulative_variance: float | None = None,
    error: str | None = None,
) -> PCARunEvent:
    """Log a PCA run, failed runs at ERROR level."""
    event = PCARunEvent(
        pca_id=pca_id,
        source_ids=source_ids,
        num_components=num_components,
        cumulative_variance=cumulative_variance,
        error=error,
    )
    _emit_event(event.to_dict(), level="ERROR" if error else "INFO")
    return event


def log_snapshot(
    direction: str,
    version: int,
    config_hash: str,
    counts: dict[str, int] | None = None,
) -> SnapshotEvent:
    """Log snapshot export/import."""
    event = SnapshotEvent(
        direction=direction,
        version=version,
        config_hash=config_hash,
        counts=counts or {},
    )
    _emit_event(event.to_dict())
    return event
