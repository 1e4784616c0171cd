"""
Structured logging setup (JSONL format).

Console output goes to stderr as one JSON object per line; a rotating
file copy lives in the platform log directory:
- macOS: ~/Library/Logs/terminaut/
- Linux: ~/.local/state/terminaut/log/
"""

from __future__ import annotations

import json
import sys
import traceback
from contextvars import ContextVar
from pathlib import Path

import platformdirs
from loguru import logger

APP_NAME = "terminaut"

# Correlation ID for one user action (navigate, launch, search)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)

_RESERVED_EXTRA = ("operation", "status", "trace_id", "metrics")


def _error_field(exception) -> dict | None:
    if not exception:
        return None
    exc_type, exc_value, exc_tb = exception
    return {
        "type": getattr(exc_type, "__name__", "Unknown"),
        "message": str(exc_value) if exc_value else "Unknown error",
        "traceback_lines": traceback.format_tb(exc_tb) if exc_tb else [],
    }


def json_sink(message) -> None:
    """Write one JSON object per record to stderr."""
    record = message.record
    extra = record["extra"]
    entry = {
        "timestamp": record["time"].isoformat(timespec="milliseconds"),
        "level": record["level"].name.lower(),
        "component": f'{record["name"]}.{record["function"]}',
        "operation": extra.get("operation", "unknown"),
        "operation_status": extra.get("status"),
        "trace_id": extra.get("trace_id") or trace_id_var.get(),
        "message": record["message"],
        "context": {k: v for k, v in extra.items() if k not in _RESERVED_EXTRA},
        "metrics": extra.get("metrics", {}),
        "error": _error_field(record["exception"]),
    }
    sys.stderr.write(json.dumps(entry, default=str) + "\n")


def log_directory() -> Path:
    """Platform log directory for the file sink (created on demand)."""
    return Path(platformdirs.user_log_dir(appname=APP_NAME, ensure_exists=True))


def setup_logger(level: str = "INFO", log_to_file: bool = True):
    """
    Configure Loguru for machine-readable JSONL output.

    Args:
        level: Minimum level for the stderr sink
        log_to_file: Also write a rotated DEBUG-level file under log_directory()

    Returns:
        The configured loguru logger
    """
    logger.remove()
    logger.add(json_sink, level=level.upper())

    if log_to_file:
        try:
            log_file = log_directory() / f"{APP_NAME}.jsonl"
        except OSError as e:
            logger.warning(
                "Log directory unavailable, file logging disabled",
                operation="setup_logger",
                status="fallback",
                error=str(e),
            )
            return logger

        logger.add(
            str(log_file),
            format="{message}",
            serialize=True,
            rotation="10 MB",
            retention="7 days",
            compression="gz",
            level="DEBUG",
        )

    return logger
