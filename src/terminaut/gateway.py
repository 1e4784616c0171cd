"""
Gateway capability contract.

One abstraction for every path / favorite / recent / tag / profile / search
operation, fulfilled either by the external core process
(``core_client.ProcessGateway``) or in-process (``fallback.FallbackGateway``).
The implementation is chosen once at startup (``app.create_gateway``).

Every method returns its result or raises exactly one ``errors.CoreError``
subclass; a failed call leaves shared state unchanged.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod

from terminaut.models import (
    DirectoryEntry,
    LaunchProfile,
    ProjectRoot,
    RecentEntry,
    SearchResult,
    TaggedPath,
)


class CoreGateway(ABC):
    kind: str = "abstract"

    # -- paths ---------------------------------------------------------------

    @abstractmethod
    def normalize(self, path: str) -> str:
        """Return the canonical absolute form of ``path``."""

    @abstractmethod
    def list_directory(self, path: str) -> list[DirectoryEntry]:
        """Immediate children of ``path``."""

    # -- favorites -----------------------------------------------------------

    @abstractmethod
    def list_favorites(self) -> list[str]: ...

    @abstractmethod
    def add_favorite(self, path: str) -> None: ...

    @abstractmethod
    def remove_favorite(self, path: str) -> None: ...

    # -- recents -------------------------------------------------------------

    @abstractmethod
    def list_recents(self) -> list[RecentEntry]: ...

    @abstractmethod
    def touch_recent(self, path: str) -> None:
        """Upsert the recency timestamp for ``path``."""

    # -- projects ------------------------------------------------------------

    @abstractmethod
    def detect_projects(self, path: str) -> list[ProjectRoot]: ...

    # -- tags ----------------------------------------------------------------

    @abstractmethod
    def list_tags(self) -> list[TaggedPath]: ...

    @abstractmethod
    def tags_for(self, path: str) -> list[TaggedPath]: ...

    @abstractmethod
    def add_tag(self, path: str, label: str, color: str) -> None:
        """Upsert by (path, case-insensitive label); re-adding replaces color."""

    @abstractmethod
    def remove_tag(self, path: str, label: str) -> None: ...

    # -- profiles ------------------------------------------------------------

    @abstractmethod
    def list_profiles(self) -> list[LaunchProfile]: ...

    @abstractmethod
    def save_profile(
        self,
        id: uuid.UUID | None,
        name: str,
        command: str | None = None,
        working_dir: str | None = None,
        terminal: str | None = None,
        windows: int = 1,
    ) -> LaunchProfile:
        """Update the profile with ``id`` if given, else create a new one."""

    @abstractmethod
    def delete_profile(self, id: uuid.UUID) -> None:
        """Remove exactly the profile whose id matches."""

    # -- search --------------------------------------------------------------

    @abstractmethod
    def search(self, start: str, query: str, limit: int) -> list[SearchResult]:
        """At most ``limit`` results for ``query`` below ``start``."""
