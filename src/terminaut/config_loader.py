"""
Configuration loading.

Configuration: ~/.config/terminaut/config.toml (XDG style), deep-merged over
DEFAULT_CONFIG. Preferences remembered between runs (last terminal, window
count) live next to it in preferences.toml and are written atomically.
"""

from __future__ import annotations

import contextlib
import copy
import errno
import json
import os
import re
import tempfile
import textwrap
import time
import tomllib
from pathlib import Path

from loguru import logger

from terminaut.errors import Error, ErrorType, Result

CONFIG_DIR = Path("~/.config/terminaut").expanduser()
CONFIG_PATH = CONFIG_DIR / "config.toml"
PREFERENCES_PATH = CONFIG_DIR / "preferences.toml"

# Environment override for the core binary location. Read only by the
# composition point (app.create_gateway), never by the gateway itself.
CORE_BIN_ENV = "TERMINAUT_CORE_BIN"

# Used as-is when config.toml is absent; user tables are merged over these.
# Zero timeouts mean "block until the child exits".
DEFAULT_CONFIG = {
    "core": {
        "binary": "",
        "timeout": 0,
        "min_version": "",
    },
    "launcher": {
        "terminal": "terminal",
        "windows": 1,
        "interpreter": "/usr/bin/osascript",
        "timeout": 0,
    },
    "search": {
        "limit": 25,
    },
    "logging": {
        "level": "INFO",
        "file": True,
    },
}

DEFAULT_PREFERENCES = {
    "last_terminal": None,
    "window_count": None,
}


def default_config() -> dict:
    return copy.deepcopy(DEFAULT_CONFIG)


_TOML_LINE = re.compile(r"line\s+(\d+)", re.IGNORECASE)


def toml_error_location(
    error: tomllib.TOMLDecodeError, file_path: Path
) -> tuple[int | None, str | None]:
    """
    Locate a TOML parse error in its source file.

    Returns:
        (line_number, stripped line text); either may be None when tomllib
        did not report a position or the file can no longer be read
    """
    match = _TOML_LINE.search(str(error))
    if not match:
        return None, None
    line_number = int(match.group(1))
    try:
        lines = file_path.read_text().splitlines()
    except OSError:
        return line_number, None
    if line_number > len(lines):
        return line_number, None
    return line_number, lines[line_number - 1].strip()


def describe_toml_error(error: tomllib.TOMLDecodeError, file_path: Path) -> str:
    line_number, line = toml_error_location(error, file_path)
    if line_number is None:
        return f"Invalid TOML in {file_path}: {error}"
    shown = f": {textwrap.shorten(line, width=60, placeholder='...')}" if line else ""
    return f"Invalid TOML in {file_path} on line {line_number}{shown} ({error})"


def deep_merge(base: dict, override: dict) -> dict:
    """New dict with ``override`` layered over ``base``; nested tables merge."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        merged[key] = (
            deep_merge(current, value)
            if isinstance(current, dict) and isinstance(value, dict)
            else value
        )
    return merged


def load_config_from_path(config_path: Path) -> Result[dict]:
    """
    Load configuration from a TOML file, merged over the defaults.

    Args:
        config_path: Path to the TOML file

    Returns:
        Result[dict]: Ok with merged config, or Err with error details
    """
    start_time = time.perf_counter()

    if not config_path.exists():
        return Result.err(Error(
            error_type=ErrorType.FILE_NOT_FOUND,
            message=f"Config file not found: {config_path}",
            context={"config_path": str(config_path)},
        ))

    try:
        with open(config_path, "rb") as f:
            user_config = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        line_number, _ = toml_error_location(e, config_path)
        message = describe_toml_error(e, config_path)
        logger.error(
            "Invalid TOML syntax in configuration file",
            operation="load_config_from_path",
            status="failed",
            file=str(config_path),
            line_number=line_number,
            error=message,
        )
        return Result.err(Error(
            error_type=ErrorType.PARSE_ERROR,
            message=message,
            context={"config_path": str(config_path), "line_number": line_number},
            original_exception=e,
        ))
    except OSError as e:
        return Result.err(Error(
            error_type=ErrorType.FILE_NOT_FOUND,
            message=f"Config file unreadable: {e}",
            context={"config_path": str(config_path)},
            original_exception=e,
        ))

    merged = deep_merge(default_config(), user_config)
    duration_ms = int((time.perf_counter() - start_time) * 1000)
    logger.debug(
        "Config loaded successfully",
        operation="load_config_from_path",
        status="success",
        config_path=str(config_path),
        metrics={"duration_ms": duration_ms},
    )
    return Result.ok(merged)


def load_config(config_path: Path | None = None) -> dict:
    """
    Load the user configuration, falling back to defaults on any failure.

    A missing file is normal (defaults apply silently); an unreadable or
    invalid one is logged and ignored.
    """
    config_path = config_path or CONFIG_PATH
    result = load_config_from_path(config_path)
    if result.is_ok():
        return result.value

    if result.error.error_type is not ErrorType.FILE_NOT_FOUND or config_path.exists():
        logger.warning(
            "Using default configuration",
            operation="load_config",
            status="fallback",
            file=str(config_path),
            error=result.error.message,
        )
    return default_config()


def _timeout(config: dict, section: str) -> float | None:
    raw = config.get(section, {}).get("timeout") or 0
    try:
        seconds = float(raw)
    except (TypeError, ValueError):
        logger.warning(
            "Ignoring invalid timeout, calls will block",
            operation="load_config",
            status="fallback",
            section=section,
            value=repr(raw),
        )
        return None
    return seconds if seconds > 0 else None


def core_timeout(config: dict) -> float | None:
    return _timeout(config, "core")


def launcher_timeout(config: dict) -> float | None:
    return _timeout(config, "launcher")


# =============================================================================
# Preferences
# =============================================================================


def load_preferences(path: Path | None = None) -> dict:
    """
    Load remembered launch preferences.

    Returns:
        dict with keys: last_terminal (str|None), window_count (int|None)
    """
    path = path or PREFERENCES_PATH
    defaults = dict(DEFAULT_PREFERENCES)

    if not path.exists():
        return defaults

    try:
        with open(path, "rb") as f:
            prefs = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(
            "Failed to load preferences, using defaults",
            operation="load_preferences",
            status="fallback",
            file=str(path),
            error=str(e),
            error_type=type(e).__name__,
        )
        return defaults

    return {**defaults, **prefs}


def atomic_write_file(path: Path, content: str) -> None:
    """
    Replace ``path`` with ``content`` so readers never see a partial file.

    Raises:
        OSError: The staged copy could not be written or renamed into place
            (ENOSPC keeps its errno with a "Disk full" message)
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    staged: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as tmp:
            staged = Path(tmp.name)
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(staged, path)
    except OSError as e:
        if staged is not None:
            with contextlib.suppress(OSError):
                staged.unlink()
        if e.errno == errno.ENOSPC:
            raise OSError(errno.ENOSPC, f"Disk full, cannot write {path}") from e
        raise


def _toml_string(value: str) -> str:
    # JSON string escapes are a subset of TOML basic-string escapes
    return json.dumps(value)


def save_preferences(prefs: dict, path: Path | None = None) -> bool:
    """
    Save launch preferences atomically.

    Returns:
        True if written, False if the write failed (logged)
    """
    path = path or PREFERENCES_PATH
    lines = [
        "# Terminaut preferences",
        "# Delete this file to forget the remembered terminal and window count",
        "",
    ]
    if prefs.get("last_terminal"):
        lines.append(f"last_terminal = {_toml_string(prefs['last_terminal'])}")
    if prefs.get("window_count") is not None:
        lines.append(f"window_count = {int(prefs['window_count'])}")

    try:
        atomic_write_file(path, "\n".join(lines) + "\n")
    except OSError as e:
        logger.error(
            "Failed to save preferences",
            operation="save_preferences",
            status="failed",
            file=str(path),
            error=str(e),
        )
        return False

    logger.debug(
        "Preferences saved",
        operation="save_preferences",
        status="success",
        file=str(path),
    )
    return True
