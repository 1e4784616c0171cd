import re
import shlex
import subprocess

import pytest

from terminaut.errors import AutomationFailed, CommandFailed, CommandTimeout
from terminaut.launcher import (
    TerminalKind,
    TerminalLauncher,
    applescript_escape,
    build_script,
    clamp_windows,
    shell_command,
    shell_escape,
)

TRICKY_PATH = "/Users/me/it's a \"quoted\" dir\\x"


def applescript_unescape(literal: str) -> str:
    return re.sub(r"\\(.)", r"\1", literal)


def string_literal(script: str, prefix: str) -> str:
    match = re.search(rf'{prefix} "(.*)"$', script, re.MULTILINE)
    assert match, script
    return match.group(1)


@pytest.mark.parametrize("kind", list(TerminalKind))
@pytest.mark.parametrize("windows, repeats", [(0, 1), (-3, 1), (99, 5), (3, 3)])
def test_window_count_is_clamped(kind, windows, repeats):
    script = build_script(kind, "/tmp", windows)

    assert re.findall(r"repeat (\d+)", script) == [str(repeats)]


def test_clamp_windows_bounds():
    assert [clamp_windows(n) for n in (0, -3, 1, 5, 6, 99)] == [1, 1, 1, 5, 5, 5]


def test_shell_escape_quotes_single_quotes():
    assert shell_escape("it's") == "'it'\\''s'"
    assert shell_escape("plain") == "'plain'"


def test_applescript_escape_backslash_before_quote():
    assert applescript_escape('a\\b"c') == 'a\\\\b\\"c'


def test_shell_command_defaults_to_login_shell():
    assert shell_command("/p") == "cd '/p' && exec $SHELL -l"
    assert shell_command("/p", "   ") == "cd '/p' && exec $SHELL -l"
    assert shell_command("/p", "make dev") == "cd '/p' && make dev"


@pytest.mark.parametrize("kind, prefix", [
    (TerminalKind.TERMINAL, "do script"),
    (TerminalKind.ITERM, "write text"),
])
def test_path_survives_both_escaping_layers(kind, prefix):
    script = build_script(kind, TRICKY_PATH, 1)

    shell_line = applescript_unescape(string_literal(script, prefix))

    assert shlex.split(shell_line) == ["cd", TRICKY_PATH, "&&", "exec", "$SHELL", "-l"]


def test_command_survives_both_escaping_layers():
    command = 'echo "hi there" | grep \'hi\''
    script = build_script(TerminalKind.TERMINAL, "/p", 1, command)

    shell_line = applescript_unescape(string_literal(script, "do script"))

    assert shell_line == f"cd '/p' && {command}"


def test_ghostty_uses_launch_flags():
    script = build_script(TerminalKind.GHOSTTY, TRICKY_PATH, 2, "make dev")

    assert "tell application" not in script
    launch = shlex.split(applescript_unescape(string_literal(script, "do shell script")))
    assert launch[:4] == ["open", "-na", "Ghostty", "--args"]
    assert launch[4] == f"--working-directory={TRICKY_PATH}"
    assert launch[5] == "--command"
    assert shlex.split(launch[6]) == ["cd", TRICKY_PATH, "&&", "make", "dev"]


def test_ghostty_without_command_has_no_command_flag():
    script = build_script(TerminalKind.GHOSTTY, "/p", 1)

    assert "--command" not in script


def test_iterm_script_creates_windows_with_default_profile():
    script = build_script(TerminalKind.ITERM, "/p", 2)

    assert 'tell application "iTerm2"' in script
    assert "create window with default profile" in script
    assert "tell current session of current window" in script


def test_terminal_kind_parse():
    assert TerminalKind.parse("iterm") is TerminalKind.ITERM
    assert TerminalKind.parse(" Ghostty ") is TerminalKind.GHOSTTY
    assert TerminalKind.parse("xterm") is None
    assert TerminalKind.parse(None) is None
    assert TerminalKind.ITERM.display_name == "iTerm2"


# -- execution ---------------------------------------------------------------


class RecordingRun:
    def __init__(self, returncode=0, stderr=""):
        self.returncode = returncode
        self.stderr = stderr
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, self.returncode, stdout="", stderr=self.stderr)


def test_open_runs_interpreter_with_script(monkeypatch):
    run = RecordingRun()
    monkeypatch.setattr("terminaut.launcher.subprocess.run", run)

    TerminalLauncher(interpreter="/usr/bin/osascript").open(TerminalKind.TERMINAL, "/p", 99)

    (cmd, kwargs), = run.calls
    assert cmd[:2] == ["/usr/bin/osascript", "-e"]
    assert cmd[2] == build_script(TerminalKind.TERMINAL, "/p", 5)
    assert kwargs["capture_output"] is True


def test_nonzero_exit_raises_automation_failed(monkeypatch):
    monkeypatch.setattr(
        "terminaut.launcher.subprocess.run",
        RecordingRun(returncode=1, stderr="execution error: Not authorized (-1743)\n"),
    )

    with pytest.raises(AutomationFailed) as excinfo:
        TerminalLauncher().open(TerminalKind.ITERM, "/p", 1)

    assert isinstance(excinfo.value, CommandFailed)
    assert excinfo.value.message == "execution error: Not authorized (-1743)"


def test_empty_stderr_gets_placeholder(monkeypatch):
    monkeypatch.setattr("terminaut.launcher.subprocess.run", RecordingRun(returncode=1))

    with pytest.raises(AutomationFailed) as excinfo:
        TerminalLauncher().open(TerminalKind.GHOSTTY, "/p", 1)

    assert excinfo.value.message == "Unknown AppleScript error"


def test_missing_interpreter_raises_automation_failed(tmp_path):
    launcher = TerminalLauncher(interpreter=str(tmp_path / "no-osascript"))

    with pytest.raises(AutomationFailed):
        launcher.open(TerminalKind.TERMINAL, "/p", 1)


def test_launcher_timeout(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr("terminaut.launcher.subprocess.run", fake_run)

    with pytest.raises(CommandTimeout):
        TerminalLauncher(timeout=1).open(TerminalKind.TERMINAL, "/p", 1)
