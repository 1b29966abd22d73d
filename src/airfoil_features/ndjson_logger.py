"""NDJSON structured logging for the feature engine.

One JSON object per line, written through loguru:

{
    "ts": "2026-01-20T00:00:00.000000Z",  # UTC ISO 8601
    "level": "WARNING",
    "msg": "Cannot delete feature with dependents",
    "component": "feature_engine",
    "pid": 12345,
    "trace_id": "abc123",
    "provenance": {
        "session_id": "sess_20260125_120000",
        "git_sha": "0dc100c",
        "dataset_hash": null               # Set once a dataset is loaded
    },
    "context": {...}                       # Whatever was passed to logger.bind()
}

Library modules only call ``logger``; sinks are installed by the CLI (or an
embedding application) through ``setup_ndjson_logger``.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from airfoil_features.paths import get_log_dir

_state: dict[str, str | None] = {
    "trace_id": None,
    "session_id": None,
    "git_sha": None,
    "dataset_hash": None,
}


def get_trace_id() -> str:
    """Get or create a trace ID for the current session."""
    if _state["trace_id"] is None:
        _state["trace_id"] = uuid.uuid4().hex[:16]
    return _state["trace_id"]


def get_session_id() -> str:
    """Get or create a session ID for provenance tracking."""
    if _state["session_id"] is None:
        _state["session_id"] = f"sess_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}"
    return _state["session_id"]


def get_git_sha() -> str:
    """Get git SHA for provenance tracking (cached)."""
    if _state["git_sha"] is None:
        try:
            result = subprocess.run(
                ["git", "rev-parse", "HEAD"],
                capture_output=True,
                text=True,
                check=True,
                timeout=5,
            )
            _state["git_sha"] = result.stdout.strip()[:8]
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
            _state["git_sha"] = "unknown"
    return _state["git_sha"]


def set_dataset_hash(dataset_hash: str | None) -> None:
    """Record the fingerprint of the dataset the engine is working on."""
    _state["dataset_hash"] = dataset_hash


def get_provenance() -> dict:
    """Get current provenance context for logging."""
    return {
        "session_id": get_session_id(),
        "git_sha": get_git_sha(),
        "dataset_hash": _state["dataset_hash"],
    }


class NDJSONFormatter:
    """Format log records as NDJSON with stable schema."""

    def __init__(self, component: str):
        self.component = component

    def format(self, record: dict) -> str:
        """Format a loguru record as NDJSON."""
        try:
            extra = dict(record.get("extra", {}))
            context = extra.pop("context", {})
            if not isinstance(context, dict):
                context = {"value": context}

            for k, v in extra.items():
                if k.startswith("_"):
                    continue
                try:
                    json.dumps(v)
                    context[k] = v
                except (TypeError, ValueError):
                    context[k] = str(v)

            log_entry = {
                "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
                "level": record["level"].name,
                "msg": record["message"],
                "component": self.component,
                "pid": os.getpid(),
                "trace_id": get_trace_id(),
                "provenance": get_provenance(),
            }

            if context:
                log_entry["context"] = context

            if record.get("exception"):
                exc = record["exception"]
                log_entry["exception"] = {
                    "type": exc.type.__name__ if exc.type else None,
                    "value": str(exc.value) if exc.value else None,
                }

            # loguru runs format_map() on the returned string
            json_str = json.dumps(log_entry, default=str)
            return json_str.replace("{", "{{").replace("}", "}}") + "\n"

        except (TypeError, ValueError, KeyError, AttributeError) as e:
            fallback = {
                "ts": datetime.now(timezone.utc).isoformat(),
                "level": "ERROR",
                "msg": f"Logging format error ({type(e).__name__}): {e}",
                "component": self.component,
                "trace_id": get_trace_id(),
            }
            json_str = json.dumps(fallback)
            return json_str.replace("{", "{{").replace("}", "}}") + "\n"


def setup_ndjson_logger(
    component: str,
    log_dir: Path | str | None = None,
    level: str = "DEBUG",
    rotation: str = "10 MB",
    retention: str = "7 days",
    console_level: str | None = "WARNING",
):
    """Setup NDJSON logging for a component.

    Args:
        component: Component name, also the log file stem
        log_dir: Directory for log files (default: repo logs/ndjson/)
        level: Minimum log level for file logging
        rotation: Log rotation policy (e.g., "10 MB", "1 day")
        retention: Log retention policy (e.g., "7 days", "3 files")
        console_level: Minimum log level for console output, None to disable

    Returns:
        Configured loguru logger instance
    """
    log_dir = get_log_dir() / "ndjson" if log_dir is None else Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    formatter = NDJSONFormatter(component=component)

    logger.remove()

    logger.add(
        str(log_dir / f"{component}.jsonl"),
        format=formatter.format,
        level=level,
        rotation=rotation,
        retention=retention,
        compression="gz",
        catch=True,
    )

    if console_level:
        logger.add(
            sys.stderr,
            format="<level>{level}</level>: <level>{message}</level>",
            level=console_level,
            catch=True,
        )

    return logger
