"""
Browser session: the gateway's consumer.

Sequences fetch/mutate calls for one browsing context and keeps the latest
snapshot. Navigations carry a sequence number; a response older than the
last applied one is discarded, so two overlapping navigations can no longer
overwrite each other out of order.
"""

from __future__ import annotations

import itertools
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from uuid import uuid4

from loguru import logger

from terminaut.errors import CoreError, Result
from terminaut.gateway import CoreGateway
from terminaut.launcher import TerminalKind, TerminalLauncher, clamp_windows, shell_escape
from terminaut.logging_config import trace_id_var
from terminaut.models import (
    DirectoryEntry,
    LaunchProfile,
    ProjectRoot,
    RecentEntry,
    SearchResult,
    TaggedPath,
)

DEFAULT_SEARCH_LIMIT = 25


@dataclass(frozen=True)
class NavigationRequest:
    sequence: int
    path: str


@dataclass(frozen=True)
class Snapshot:
    path: str
    entries: list[DirectoryEntry] = field(default_factory=list)
    favorites: list[str] = field(default_factory=list)
    recents: list[RecentEntry] = field(default_factory=list)
    projects: list[ProjectRoot] = field(default_factory=list)
    tags_for_path: list[TaggedPath] = field(default_factory=list)
    all_tags: list[TaggedPath] = field(default_factory=list)
    profiles: list[LaunchProfile] = field(default_factory=list)


class BrowserSession:
    def __init__(
        self,
        gateway: CoreGateway,
        launcher: TerminalLauncher | None = None,
        start_path: str | None = None,
        selected_terminal: TerminalKind = TerminalKind.TERMINAL,
        window_count: int = 1,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
    ):
        self.gateway = gateway
        self.launcher = launcher or TerminalLauncher()
        self.selected_terminal = selected_terminal
        self.window_count = window_count
        self.search_limit = search_limit
        self.snapshot = Snapshot(path=start_path or str(Path.home()))
        self.search_query = ""
        self.search_results: list[SearchResult] = []
        self.error_message: str | None = None

        self._sequence = itertools.count(1)
        self._applied_sequence = 0
        self._lock = threading.Lock()

    @property
    def current_path(self) -> str:
        return self.snapshot.path

    # -- navigation ----------------------------------------------------------

    def begin(self, path: str) -> NavigationRequest:
        with self._lock:
            return NavigationRequest(sequence=next(self._sequence), path=path)

    def fetch(self, path: str) -> Result[Snapshot]:
        """Gather everything the browser shows for ``path``; touches recents."""
        gateway = self.gateway
        try:
            normalized = gateway.normalize(path)
            snapshot = Snapshot(
                path=normalized,
                entries=gateway.list_directory(normalized),
                favorites=gateway.list_favorites(),
                recents=gateway.list_recents(),
                projects=gateway.detect_projects(normalized),
                tags_for_path=gateway.tags_for(normalized),
                all_tags=gateway.list_tags(),
                profiles=gateway.list_profiles(),
            )
            gateway.touch_recent(normalized)
        except CoreError as e:
            return Result.err(e.to_error(path=path))
        return Result.ok(snapshot)

    def apply(self, request: NavigationRequest, result: Result[Snapshot]) -> bool:
        """
        Apply a navigation response unless a newer one was already applied.

        Returns:
            True if the session state changed (or the error was recorded),
            False if the response was stale and dropped
        """
        with self._lock:
            if request.sequence <= self._applied_sequence:
                logger.debug(
                    "Discarding stale navigation response",
                    operation="apply_navigation",
                    status="stale",
                    sequence=request.sequence,
                    applied=self._applied_sequence,
                    path=request.path,
                )
                return False
            self._applied_sequence = request.sequence

            if result.is_err():
                self.error_message = result.error.message
                return True
            self.snapshot = result.value
            self.error_message = None

        if self.search_query.strip():
            self.search(self.search_query)
        else:
            self.search_results = []
        return True

    def navigate(self, path: str) -> bool:
        request = self.begin(path)
        token = trace_id_var.set(str(uuid4()))
        try:
            result = self.fetch(path)
            if result.is_err():
                logger.warning(
                    "Navigation failed",
                    operation="navigate",
                    status="failed",
                    path=path,
                    error=result.error.message,
                )
            self.apply(request, result)
        finally:
            trace_id_var.reset(token)
        return result.is_ok()

    def refresh(self) -> bool:
        return self.navigate(self.current_path)

    # -- mutations -----------------------------------------------------------

    def _mutate(self, operation: str, action) -> bool:
        try:
            action()
        except CoreError as e:
            self.error_message = e.message
            logger.warning(
                "Session action failed",
                operation=operation,
                status="failed",
                error=str(e),
            )
            return False
        return self.refresh()

    def add_favorite(self, path: str) -> bool:
        def action():
            self.gateway.add_favorite(path)
            self.gateway.touch_recent(path)
        return self._mutate("add_favorite", action)

    def remove_favorite(self, path: str) -> bool:
        return self._mutate("remove_favorite", lambda: self.gateway.remove_favorite(path))

    def add_tag(self, label: str, color: str) -> bool:
        path = self.current_path
        return self._mutate("add_tag", lambda: self.gateway.add_tag(path, label, color))

    def remove_tag(self, tag: TaggedPath) -> bool:
        return self._mutate("remove_tag", lambda: self.gateway.remove_tag(tag.path, tag.tag))

    def save_profile(
        self,
        name: str,
        command: str | None = None,
        working_dir: str | None = None,
        terminal: TerminalKind | None = None,
        windows: int = 1,
        id: uuid.UUID | None = None,
    ) -> bool:
        raw_terminal = terminal.value if terminal else None
        return self._mutate("save_profile", lambda: self.gateway.save_profile(
            id, name, command, working_dir, raw_terminal, windows
        ))

    def delete_profile(self, profile: LaunchProfile) -> bool:
        return self._mutate("delete_profile", lambda: self.gateway.delete_profile(profile.id))

    # -- launching -----------------------------------------------------------

    def _launch(self, kind: TerminalKind, path: str, windows: int, command: str | None) -> bool:
        try:
            self.launcher.open(kind, path, windows, command)
            self.gateway.touch_recent(path)
        except CoreError as e:
            self.error_message = e.message
            logger.warning(
                "Launch failed",
                operation="launch",
                status="failed",
                terminal=kind.value,
                path=path,
                error=str(e),
            )
            return False
        # The windows are open; a failed listing only shows up in error_message
        self.navigate(path)
        return True

    def open_terminal(self, path: str, command: str | None = None) -> bool:
        return self._launch(self.selected_terminal, path, self.window_count, command)

    def run_profile(self, profile: LaunchProfile) -> bool:
        """Launch ``profile``: its own directory/terminal, else the session's."""
        destination = profile.working_dir or self.current_path
        kind = TerminalKind.parse(profile.terminal) or self.selected_terminal
        return self._launch(kind, destination, clamp_windows(profile.windows), profile.command)

    # -- search --------------------------------------------------------------

    def search(self, query: str) -> list[SearchResult]:
        self.search_query = query
        trimmed = query.strip()
        if not trimmed:
            self.search_results = []
            return self.search_results
        try:
            self.search_results = self.gateway.search(self.current_path, trimmed, self.search_limit)
        except CoreError as e:
            self.error_message = e.message
            logger.warning(
                "Search failed",
                operation="search",
                status="failed",
                query=trimmed,
                error=str(e),
            )
        return self.search_results

    def cd_command(self) -> str:
        return f"cd {shell_escape(self.current_path)}"
