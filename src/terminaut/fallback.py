"""
In-process fallback gateway.

Used when the core binary cannot be found (or when explicitly requested).
Guarantees are deliberately weaker than the core's:

- ``normalize`` only expands a leading ``~``; symlinks and ``.``/``..`` are
  left as given.
- favorites, recents and projects are always empty and their mutations are
  no-ops (there is no durable store here).
- tags and profiles live in memory and are lost when the process exits.
- search scores are a placeholder (the query length), not relevance.
"""

from __future__ import annotations

import os
import threading
import uuid
from typing import Callable, Iterable, Iterator

from loguru import logger

from terminaut.errors import CommandFailed
from terminaut.gateway import CoreGateway
from terminaut.models import (
    DirectoryEntry,
    LaunchProfile,
    ProjectRoot,
    RecentEntry,
    SearchResult,
    TaggedPath,
)

Walker = Callable[[str], Iterable[tuple[str, list[str], list[str]]]]


class FallbackGateway(CoreGateway):
    kind = "fallback"

    def __init__(self, walk: Walker = os.walk):
        self._walk = walk
        self._lock = threading.Lock()
        self._tags: list[TaggedPath] = []
        self._profiles: list[LaunchProfile] = []

    # -- paths ---------------------------------------------------------------

    def normalize(self, path: str) -> str:
        return os.path.expanduser(path)

    def _absolute(self, path: str) -> str:
        # Entry and result paths are identities and must not depend on cwd
        return os.path.abspath(self.normalize(path))

    def list_directory(self, path: str) -> list[DirectoryEntry]:
        """Non-hidden immediate children, sorted case-insensitively by name."""
        directory = self._absolute(path)
        entries: list[DirectoryEntry] = []
        try:
            with os.scandir(directory) as it:
                for item in it:
                    if item.name.startswith("."):
                        continue
                    entries.append(_entry_from_scandir(item))
        except OSError as e:
            logger.warning(
                "Directory listing failed",
                operation="list_directory",
                status="failed",
                path=directory,
                error=str(e),
            )
            raise CommandFailed(
                f"Unable to list {directory}: {e.strerror or e}", source="filesystem"
            ) from e

        entries.sort(key=lambda entry: entry.name.lower())
        return entries

    # -- no durable store ----------------------------------------------------

    def list_favorites(self) -> list[str]:
        return []

    def add_favorite(self, path: str) -> None:
        _log_ignored("add_favorite", path)

    def remove_favorite(self, path: str) -> None:
        _log_ignored("remove_favorite", path)

    def list_recents(self) -> list[RecentEntry]:
        return []

    def touch_recent(self, path: str) -> None:
        _log_ignored("touch_recent", path)

    def detect_projects(self, path: str) -> list[ProjectRoot]:
        return []

    # -- tags ----------------------------------------------------------------

    def list_tags(self) -> list[TaggedPath]:
        with self._lock:
            return list(self._tags)

    def tags_for(self, path: str) -> list[TaggedPath]:
        normalized = self.normalize(path)
        with self._lock:
            return [tag for tag in self._tags if tag.path == normalized]

    def add_tag(self, path: str, label: str, color: str) -> None:
        normalized = self.normalize(path)
        record = TaggedPath(path=normalized, tag=label, color=color)
        with self._lock:
            for index, existing in enumerate(self._tags):
                if existing.matches(normalized, label):
                    self._tags[index] = record
                    return
            self._tags.append(record)

    def remove_tag(self, path: str, label: str) -> None:
        normalized = self.normalize(path)
        with self._lock:
            self._tags = [tag for tag in self._tags if not tag.matches(normalized, label)]

    # -- profiles ------------------------------------------------------------

    def list_profiles(self) -> list[LaunchProfile]:
        with self._lock:
            return list(self._profiles)

    def save_profile(
        self,
        id: uuid.UUID | None,
        name: str,
        command: str | None = None,
        working_dir: str | None = None,
        terminal: str | None = None,
        windows: int = 1,
    ) -> LaunchProfile:
        profile = LaunchProfile(
            id=id or uuid.uuid4(),
            name=name,
            command=command,
            working_dir=working_dir,
            terminal=terminal,
            windows=windows,
        )
        with self._lock:
            for index, existing in enumerate(self._profiles):
                if existing.id == profile.id:
                    self._profiles[index] = profile
                    break
            else:
                self._profiles.append(profile)
        return profile

    def delete_profile(self, id: uuid.UUID) -> None:
        with self._lock:
            self._profiles = [p for p in self._profiles if p.id != id]

    # -- search --------------------------------------------------------------

    def search(self, start: str, query: str, limit: int) -> list[SearchResult]:
        """
        Substring search over relative paths below ``start``.

        A blank query returns immediately without touching the filesystem.
        Every result's score is ``len(query)``; the order is walk order, not
        relevance.
        """
        if not query.strip():
            return []

        root = self._absolute(start)
        needle = query.lower()
        results: list[SearchResult] = []
        for relative in self._relative_paths(root):
            if len(results) >= limit:
                break
            if needle in relative.lower():
                results.append(SearchResult(
                    path=os.path.join(root, relative),
                    name=os.path.basename(relative),
                    score=len(query),
                ))

        logger.debug(
            "Fallback search complete",
            operation="search",
            status="success",
            root=root,
            metrics={"results": len(results), "limit": limit},
        )
        return results

    def _relative_paths(self, root: str) -> Iterator[str]:
        for dirpath, dirnames, filenames in self._walk(root):
            dirnames.sort()
            rel_dir = os.path.relpath(dirpath, root)
            prefix = "" if rel_dir == os.curdir else rel_dir
            for name in dirnames + sorted(filenames):
                yield os.path.join(prefix, name)


def _entry_from_scandir(item: os.DirEntry) -> DirectoryEntry:
    try:
        is_dir = item.is_dir()
    except OSError:
        is_dir = False
    try:
        mtime: int | None = int(item.stat().st_mtime)
    except OSError:
        mtime = None
    return DirectoryEntry(
        name=item.name,
        path=item.path,
        is_directory=is_dir,
        modification_time=mtime,
    )


def _log_ignored(operation: str, path: str) -> None:
    logger.debug(
        "No durable store in fallback mode - ignored",
        operation=operation,
        status="noop",
        path=path,
    )
