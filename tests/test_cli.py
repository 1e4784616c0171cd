import json

import pytest
from typer.testing import CliRunner

from terminaut import __version__
from terminaut.cli import app
from terminaut.config_loader import default_config
from terminaut.fallback import FallbackGateway

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch):
    monkeypatch.setattr("terminaut.cli.setup_logger", lambda **kwargs: None)
    monkeypatch.setattr("terminaut.cli.load_config", default_config)


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"terminaut {__version__}" in result.stdout


def test_ls_json_with_fallback(tmp_path):
    (tmp_path / "b.txt").write_text("")
    (tmp_path / "A").mkdir()
    (tmp_path / "a.txt").write_text("")

    result = runner.invoke(app, ["--fallback", "--json", "ls", str(tmp_path)])

    assert result.exit_code == 0
    names = [entry["name"] for entry in json.loads(result.stdout)]
    assert names == ["A", "a.txt", "b.txt"]


def test_normalize_with_fallback(home):
    result = runner.invoke(app, ["--fallback", "normalize", "~/src"])

    assert result.exit_code == 0
    assert result.stdout.strip() == str(home / "src")


def test_ls_through_core(fake_core):
    fake_core.respond(stdout='[{"name": "x", "path": "/x", "is_dir": false}]')

    result = runner.invoke(app, ["--core", str(fake_core.path), "--json", "ls", "/x"])

    assert result.exit_code == 0
    assert json.loads(result.stdout) == [{"name": "x", "path": "/x", "is_dir": False}]


def test_core_failure_exits_nonzero(fake_core):
    fake_core.respond(stderr="permission denied", exit_code=1)

    result = runner.invoke(app, ["--core", str(fake_core.path), "recents"])

    assert result.exit_code == 1


def test_invalid_profile_id_exits_nonzero():
    result = runner.invoke(app, ["--fallback", "profiles", "delete", "not-a-uuid"])

    assert result.exit_code == 1


def test_profile_save_json():
    result = runner.invoke(app, [
        "--fallback", "--json", "profiles", "save", "dev",
        "--command", "make dev", "--terminal", "iterm", "--windows", "7",
    ])

    assert result.exit_code == 0
    saved = json.loads(result.stdout)
    assert saved["name"] == "dev"
    assert saved["terminal"] == "iterm"
    assert saved["windows"] == 7


class RecordingLauncher:
    def __init__(self):
        self.calls = []

    def open(self, kind, path, windows, command=None):
        self.calls.append((kind, path, windows, command))


def test_open_at_unlistable_path_still_succeeds(tmp_path, monkeypatch):
    target = tmp_path / "file.txt"
    target.write_text("")
    launcher = RecordingLauncher()
    monkeypatch.setattr("terminaut.cli.create_launcher", lambda config: launcher)
    monkeypatch.setattr("terminaut.cli.load_preferences", lambda: {})

    result = runner.invoke(app, ["--fallback", "open", str(target), "--windows", "2"])

    assert result.exit_code == 0
    assert [(path, windows) for _, path, windows, _ in launcher.calls] == [(str(target), 2)]


class RecordingGateway(FallbackGateway):
    def __init__(self):
        super().__init__()
        self.seen = []

    def detect_projects(self, path):
        self.seen.append(("projects", path))
        return []

    def tags_for(self, path):
        self.seen.append(("tags_for", path))
        return []


def test_path_arguments_are_normalized_before_reaching_gateway(home, monkeypatch):
    gateway = RecordingGateway()
    monkeypatch.setattr("terminaut.cli.create_gateway", lambda *args, **kwargs: gateway)

    assert runner.invoke(app, ["projects", "~/src"]).exit_code == 0
    assert runner.invoke(app, ["tags", "for", "~/src"]).exit_code == 0

    assert gateway.seen == [
        ("projects", str(home / "src")),
        ("tags_for", str(home / "src")),
    ]
