"""
Process-delegating gateway.

Each operation is one short-lived ``term-core-cli`` invocation:

    term-core-cli <subcommand> [positional...] [--flag value]...

Exit 0 means stdout is the payload (bare text for ``normalize``/``version``,
JSON otherwise). Nonzero exit means stderr holds the reason. There is no
connection pooling, no retry and, unless a timeout is configured, no upper
bound on how long a hung core blocks the caller.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
import time
import uuid
from pathlib import Path
from typing import Callable, TypeVar

from loguru import logger
from packaging.version import InvalidVersion, Version

from terminaut.errors import BinaryNotFound, CommandFailed, CommandTimeout, DecodeFailed
from terminaut.gateway import CoreGateway
from terminaut.models import (
    DirectoryEntry,
    LaunchProfile,
    ProjectRoot,
    RecentEntry,
    SearchResult,
    TaggedPath,
)

M = TypeVar("M")

CORE_BINARY_NAME = "term-core-cli"

# Bundled auxiliary executable shipped inside the package
PACKAGE_BIN_DIR = Path(__file__).parent / "bin"

# Development tree layout: <repo>/apps/<platform>/<app> next to <repo>/target
DEV_DEBUG_BUILD = Path("../../target/debug") / CORE_BINARY_NAME
DEV_RELEASE_BUILD = Path("../../target/release") / CORE_BINARY_NAME


# =============================================================================
# Binary Discovery
# =============================================================================


def is_executable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def core_binary_candidates(
    explicit: str | os.PathLike | None = None,
    override: str | os.PathLike | None = None,
    *,
    package_dir: Path | None = None,
    cwd: Path | None = None,
    app_path: Path | None = None,
) -> list[Path]:
    """
    Build the ordered list of places the core binary may live.

    Priority:
    1. explicit path supplied by the caller
    2. override path from configuration (e.g. TERMINAUT_CORE_BIN)
    3. auxiliary executable bundled in the package
    4. development debug build relative to the working directory
    5. development release build relative to the working directory
    6. next to the running application
    7. next to the running application's parent directory

    Args:
        explicit: Caller-supplied path
        override: Configured override path
        package_dir: Directory holding bundled executables (default: terminaut/bin)
        cwd: Working directory for dev-tree paths (default: os.getcwd())
        app_path: Running application path (default: sys.argv[0])

    Returns:
        Candidate paths, highest priority first
    """
    package_dir = package_dir if package_dir is not None else PACKAGE_BIN_DIR
    cwd = cwd if cwd is not None else Path.cwd()
    if app_path is None:
        app_path = Path(sys.argv[0] or ".").absolute()
    app_dir = Path(os.path.normpath(app_path.parent))

    candidates: list[Path] = []
    if explicit:
        candidates.append(Path(explicit).expanduser())
    if override:
        candidates.append(Path(override).expanduser())
    candidates.append(package_dir / CORE_BINARY_NAME)
    candidates.append(Path(os.path.normpath(cwd / DEV_DEBUG_BUILD)))
    candidates.append(Path(os.path.normpath(cwd / DEV_RELEASE_BUILD)))
    candidates.append(app_dir / CORE_BINARY_NAME)
    candidates.append(app_dir.parent / CORE_BINARY_NAME)
    return candidates


def locate_core_binary(
    explicit: str | os.PathLike | None = None,
    override: str | os.PathLike | None = None,
    **kwargs,
) -> Path:
    """
    Return the first candidate that is an existing executable file.

    Raises:
        BinaryNotFound: If no candidate resolves
    """
    candidates = core_binary_candidates(explicit, override, **kwargs)
    for path in candidates:
        if is_executable_file(path):
            logger.debug(
                "Found core binary",
                operation="locate_core_binary",
                status="success",
                path=str(path),
            )
            return path

    logger.debug(
        "Core binary not found",
        operation="locate_core_binary",
        status="not_found",
        searched=[str(p) for p in candidates],
    )
    raise BinaryNotFound([str(p) for p in candidates])


# =============================================================================
# Argument Vectors
# =============================================================================


def profile_save_args(
    id: uuid.UUID | None,
    name: str,
    command: str | None,
    working_dir: str | None,
    terminal: str | None,
    windows: int,
) -> list[str]:
    """argv for ``profiles save``; optional flags only when meaningful."""
    args = ["profiles", "save", name]
    if id is not None:
        args += ["--id", str(id)]
    if command:
        args += ["--command", command]
    if working_dir:
        args += ["--working-dir", working_dir]
    if terminal:
        args += ["--terminal", terminal]
    if windows > 0:
        args += ["--windows", str(windows)]
    return args


def tag_add_args(path: str, label: str, color: str) -> list[str]:
    args = ["tags", "add", path, label]
    if color:
        args += ["--color", color]
    return args


def search_args(start: str, query: str, limit: int) -> list[str]:
    return ["search", query, "--start", start, "--limit", str(limit)]


# =============================================================================
# Gateway
# =============================================================================


class ProcessGateway(CoreGateway):
    """Gateway backed by the external ``term-core-cli`` process."""

    kind = "core"

    def __init__(
        self,
        binary_path: str | os.PathLike | None = None,
        override_path: str | os.PathLike | None = None,
        timeout: float | None = None,
        **discovery,
    ):
        """
        Locate the core binary once; later calls never re-run discovery.

        Args:
            binary_path: Explicit binary location (highest priority)
            override_path: Configured override (sourced from the environment
                by the composition point, never read here)
            timeout: Seconds before a call is killed; None blocks indefinitely
            **discovery: Extra keyword arguments for core_binary_candidates()

        Raises:
            BinaryNotFound: No candidate resolved
        """
        self.executable = locate_core_binary(binary_path, override_path, **discovery)
        self.timeout = timeout if timeout and timeout > 0 else None

    # -- process plumbing ----------------------------------------------------

    def _run(self, args: list[str]) -> bytes:
        cmd = [str(self.executable), *args]
        start_time = time.perf_counter()
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.error(
                "Core call timed out",
                operation="core_call",
                status="timeout",
                subcommand=args[0],
                timeout=self.timeout,
            )
            raise CommandTimeout(self.timeout) from None
        except OSError as e:
            logger.error(
                "Core call could not be spawned",
                operation="core_call",
                status="exec_error",
                subcommand=args[0],
                error=str(e),
            )
            raise CommandFailed(str(e)) from e

        duration_ms = int((time.perf_counter() - start_time) * 1000)

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            logger.warning(
                "Core call failed",
                operation="core_call",
                status="failed",
                subcommand=args[0],
                returncode=result.returncode,
                stderr=stderr[:500],
                metrics={"duration_ms": duration_ms},
            )
            raise CommandFailed(stderr or "unknown error")

        logger.debug(
            "Core call complete",
            operation="core_call",
            status="success",
            argv=args,
            metrics={"duration_ms": duration_ms, "stdout_bytes": len(result.stdout)},
        )
        return result.stdout

    def _run_string(self, args: list[str]) -> str:
        data = self._run(args)
        try:
            return data.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            raise DecodeFailed(str(e)) from e

    def _run_json(self, args: list[str]):
        data = self._run(args)
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeFailed(f"{args[0]}: {e}") from e

    def _run_list(self, args: list[str], decode: Callable[[object], M]) -> list[M]:
        payload = self._run_json(args)
        if not isinstance(payload, list):
            raise DecodeFailed(f"{args[0]}: expected a JSON array")
        try:
            return [decode(item) for item in payload]
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeFailed(f"{args[0]}: {e}") from e

    def _run_ack(self, args: list[str]) -> None:
        payload = self._run_json(args)
        if not isinstance(payload, dict):
            raise DecodeFailed(f"{args[0]}: expected a JSON object")

    # -- contract ------------------------------------------------------------

    def normalize(self, path: str) -> str:
        return self._run_string(["normalize", path])

    def list_directory(self, path: str) -> list[DirectoryEntry]:
        return self._run_list(["list", path], DirectoryEntry.from_dict)

    def list_favorites(self) -> list[str]:
        return self._run_list(["favorites", "list"], _as_str)

    def add_favorite(self, path: str) -> None:
        self._run_ack(["favorites", "add", path])

    def remove_favorite(self, path: str) -> None:
        self._run_ack(["favorites", "remove", path])

    def list_recents(self) -> list[RecentEntry]:
        return self._run_list(["recents", "list"], RecentEntry.from_dict)

    def touch_recent(self, path: str) -> None:
        self._run_ack(["recents", "touch", path])

    def detect_projects(self, path: str) -> list[ProjectRoot]:
        return self._run_list(["projects", path], ProjectRoot.from_dict)

    def list_tags(self) -> list[TaggedPath]:
        return self._run_list(["tags", "list"], TaggedPath.from_dict)

    def tags_for(self, path: str) -> list[TaggedPath]:
        return self._run_list(["tags", "for", path], TaggedPath.from_dict)

    def add_tag(self, path: str, label: str, color: str) -> None:
        self._run_ack(tag_add_args(path, label, color))

    def remove_tag(self, path: str, label: str) -> None:
        self._run_ack(["tags", "remove", path, label])

    def list_profiles(self) -> list[LaunchProfile]:
        return self._run_list(["profiles", "list"], LaunchProfile.from_dict)

    def save_profile(
        self,
        id: uuid.UUID | None,
        name: str,
        command: str | None = None,
        working_dir: str | None = None,
        terminal: str | None = None,
        windows: int = 1,
    ) -> LaunchProfile:
        args = profile_save_args(id, name, command, working_dir, terminal, windows)
        payload = self._run_json(args)
        if not isinstance(payload, dict):
            raise DecodeFailed("profiles save: expected a JSON object")
        try:
            return LaunchProfile.from_dict(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeFailed(f"profiles save: {e}") from e

    def delete_profile(self, id: uuid.UUID) -> None:
        self._run_ack(["profiles", "delete", str(id)])

    def search(self, start: str, query: str, limit: int) -> list[SearchResult]:
        return self._run_list(search_args(start, query, limit), SearchResult.from_dict)

    # -- version -------------------------------------------------------------

    def core_version(self) -> str:
        return self._run_string(["version"])

    def is_compatible(self, minimum: str) -> bool:
        """True if the core reports a version >= ``minimum``."""
        reported = self.core_version()
        try:
            return Version(reported) >= Version(minimum)
        except InvalidVersion:
            logger.warning(
                "Unparseable core version",
                operation="is_compatible",
                status="invalid",
                reported=reported,
                minimum=minimum,
            )
            return False


def _as_str(item: object) -> str:
    if not isinstance(item, str):
        raise TypeError(f"expected a string, got {type(item).__name__}")
    return item
