"""Shared fixtures: a fake term-core-cli written as a POSIX shell script."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

FAKE_CORE_SCRIPT = """#!/bin/sh
printf '%s\\n' "$@" > "$FAKE_CORE_ARGS"
if [ -n "$FAKE_CORE_STDERR" ]; then
    printf '%s' "$FAKE_CORE_STDERR" >&2
fi
printf '%s' "$FAKE_CORE_STDOUT"
exit "${FAKE_CORE_EXIT:-0}"
"""


def make_executable(path: Path, content: str = "#!/bin/sh\nexit 0\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class FakeCore:
    def __init__(self, path: Path, args_file: Path, monkeypatch: pytest.MonkeyPatch):
        self.path = path
        self.args_file = args_file
        self._monkeypatch = monkeypatch
        monkeypatch.setenv("FAKE_CORE_ARGS", str(args_file))
        self.respond()

    def respond(self, stdout: str = "", stderr: str = "", exit_code: int = 0) -> None:
        self._monkeypatch.setenv("FAKE_CORE_STDOUT", stdout)
        self._monkeypatch.setenv("FAKE_CORE_STDERR", stderr)
        self._monkeypatch.setenv("FAKE_CORE_EXIT", str(exit_code))

    def argv(self) -> list[str]:
        return self.args_file.read_text().splitlines()


@pytest.fixture
def fake_core(tmp_path, monkeypatch) -> FakeCore:
    binary = make_executable(tmp_path / "core" / "term-core-cli", FAKE_CORE_SCRIPT)
    return FakeCore(binary, tmp_path / "core" / "argv.txt", monkeypatch)


@pytest.fixture
def isolated_discovery(tmp_path) -> dict:
    """Discovery keyword arguments pointing at empty directories."""
    empty = tmp_path / "nowhere"
    empty.mkdir(exist_ok=True)
    return {
        "package_dir": empty / "bin",
        "cwd": empty / "apps" / "macos",
        "app_path": empty / "app" / "Contents" / "MacOS" / "terminaut",
    }


@pytest.fixture
def home(tmp_path, monkeypatch) -> Path:
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


def pytest_configure(config):
    # The fake core is a shell script; nothing here runs on Windows.
    if os.name == "nt":
        pytest.exit("terminaut tests need a POSIX shell")
