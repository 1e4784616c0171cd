"""
Data records crossing the core process boundary.

All records are immutable and built fresh on every gateway call. Wire keys
follow the core's snake_case JSON (``is_dir``, ``mod_date``,
``last_opened_utc``, ``working_dir``).
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone


def _require_str(data: dict, key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _require_int(data: dict, key: str) -> int:
    value = data[key]
    # bool is an int subclass; the core never sends one for a number field
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    path: str
    is_directory: bool
    modification_time: int | None = None

    @property
    def id(self) -> str:
        return self.path

    @property
    def extension(self) -> str:
        return os.path.splitext(self.path)[1].lstrip(".").lower()

    @property
    def sort_kind(self) -> str:
        """Folder for directories, else the lowercase extension or Document."""
        if self.is_directory:
            return "Folder"
        return self.extension or "Document"

    @classmethod
    def from_dict(cls, data: dict) -> DirectoryEntry:
        is_dir = data["is_dir"]
        if not isinstance(is_dir, bool):
            raise TypeError("is_dir must be a boolean")
        mod_date = None
        if data.get("mod_date") is not None:
            mod_date = _require_int(data, "mod_date")
        return cls(
            name=_require_str(data, "name"),
            path=_require_str(data, "path"),
            is_directory=is_dir,
            modification_time=mod_date,
        )

    def to_dict(self) -> dict:
        data = {"name": self.name, "path": self.path, "is_dir": self.is_directory}
        if self.modification_time is not None:
            data["mod_date"] = self.modification_time
        return data


@dataclass(frozen=True)
class RecentEntry:
    path: str
    last_opened_epoch_seconds: int

    @property
    def id(self) -> str:
        return self.path

    @property
    def last_opened(self) -> datetime:
        return datetime.fromtimestamp(self.last_opened_epoch_seconds, tz=timezone.utc)

    @classmethod
    def from_dict(cls, data: dict) -> RecentEntry:
        return cls(
            path=_require_str(data, "path"),
            last_opened_epoch_seconds=_require_int(data, "last_opened_utc"),
        )

    def to_dict(self) -> dict:
        return {"path": self.path, "last_opened_utc": self.last_opened_epoch_seconds}


@dataclass(frozen=True)
class ProjectRoot:
    path: str
    marker: str

    @property
    def id(self) -> str:
        return self.path

    @classmethod
    def from_dict(cls, data: dict) -> ProjectRoot:
        return cls(path=_require_str(data, "path"), marker=_require_str(data, "marker"))

    def to_dict(self) -> dict:
        return {"path": self.path, "marker": self.marker}


@dataclass(frozen=True)
class TaggedPath:
    """A label attached to a path.

    Identity is the pair (path, case-insensitive tag); ``color`` is free-form
    (usually ``#RRGGBB``) and not validated here.
    """

    path: str
    tag: str
    color: str

    @property
    def key(self) -> str:
        return f"{self.path}::{self.tag.lower()}"

    def matches(self, path: str, label: str) -> bool:
        return self.path == path and self.tag.casefold() == label.casefold()

    @classmethod
    def from_dict(cls, data: dict) -> TaggedPath:
        return cls(
            path=_require_str(data, "path"),
            tag=_require_str(data, "tag"),
            color=_require_str(data, "color"),
        )

    def to_dict(self) -> dict:
        return {"path": self.path, "tag": self.tag, "color": self.color}


@dataclass(frozen=True)
class LaunchProfile:
    """A saved launch recipe.

    ``windows`` is kept exactly as saved; it is clamped to [1, 5] only when
    the profile is launched. A missing ``working_dir`` means "the current
    navigation path at run time".
    """

    id: uuid.UUID
    name: str
    command: str | None = None
    working_dir: str | None = None
    terminal: str | None = None
    windows: int = 1

    @classmethod
    def from_dict(cls, data: dict) -> LaunchProfile:
        windows = 1
        if data.get("windows") is not None:
            windows = _require_int(data, "windows")
        return cls(
            id=uuid.UUID(_require_str(data, "id")),
            name=_require_str(data, "name"),
            command=_optional_str(data, "command"),
            working_dir=_optional_str(data, "working_dir"),
            terminal=_optional_str(data, "terminal"),
            windows=windows,
        )

    def to_dict(self) -> dict:
        data = {"id": str(self.id), "name": self.name}
        if self.command is not None:
            data["command"] = self.command
        if self.working_dir is not None:
            data["working_dir"] = self.working_dir
        if self.terminal is not None:
            data["terminal"] = self.terminal
        data["windows"] = self.windows
        return data


@dataclass(frozen=True)
class SearchResult:
    path: str
    name: str
    score: int

    @property
    def id(self) -> str:
        return self.path

    @classmethod
    def from_dict(cls, data: dict) -> SearchResult:
        return cls(
            path=_require_str(data, "path"),
            name=_require_str(data, "name"),
            score=_require_int(data, "score"),
        )

    def to_dict(self) -> dict:
        return {"path": self.path, "name": self.name, "score": self.score}
