"""
Terminal automation.

Builds an AppleScript that opens ``clamp(windows, 1, 5)`` windows/tabs of
Terminal, iTerm2 or Ghostty at a directory and runs it with ``osascript``.

Escaping is two separate layers, always applied in this order:
1. shell: the ``cd <path> && <command>`` line is single-quote escaped
   (``'`` becomes ``'\\''``);
2. AppleScript: the finished shell line is embedded in a ``"..."`` literal,
   escaping backslashes and double quotes.
"""

from __future__ import annotations

import subprocess
import time
from enum import Enum

from loguru import logger

from terminaut.errors import AutomationFailed, CommandTimeout

MIN_WINDOWS = 1
MAX_WINDOWS = 5

DEFAULT_INTERPRETER = "/usr/bin/osascript"


class TerminalKind(str, Enum):
    TERMINAL = "terminal"
    ITERM = "iterm"
    GHOSTTY = "ghostty"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, raw: str | None) -> TerminalKind | None:
        """Kind for a stored raw value; None when empty or unknown."""
        if not raw:
            return None
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return None


_DISPLAY_NAMES = {
    TerminalKind.TERMINAL: "Terminal",
    TerminalKind.ITERM: "iTerm2",
    TerminalKind.GHOSTTY: "Ghostty",
}


def clamp_windows(windows: int) -> int:
    return max(MIN_WINDOWS, min(MAX_WINDOWS, windows))


# =============================================================================
# Escaping
# =============================================================================


def shell_escape(value: str) -> str:
    """Single-quote ``value`` for a POSIX shell."""
    return "'" + value.replace("'", "'\\''") + "'"


def applescript_escape(value: str) -> str:
    """Escape ``value`` for the inside of an AppleScript string literal."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _has_command(command: str | None) -> bool:
    return bool(command and command.strip())


def shell_command(path: str, command: str | None = None) -> str:
    """
    Shell line run in each new window.

    Returns:
        ``cd '<path>' && <command>``, or ``cd '<path>' && exec $SHELL -l``
        when no command is given
    """
    base = f"cd {shell_escape(path)}"
    if _has_command(command):
        return f"{base} && {command}"
    return f"{base} && exec $SHELL -l"


# =============================================================================
# Script Builders
# =============================================================================


def terminal_script(path: str, count: int, command: str | None = None) -> str:
    line = applescript_escape(shell_command(path, command))
    return (
        'tell application "Terminal"\n'
        "    activate\n"
        f"    repeat {count}\n"
        f'        do script "{line}"\n'
        "    end repeat\n"
        "end tell"
    )


def iterm_script(path: str, count: int, command: str | None = None) -> str:
    line = applescript_escape(shell_command(path, command))
    return (
        'tell application "iTerm2"\n'
        "    activate\n"
        f"    repeat {count}\n"
        "        create window with default profile\n"
        "        tell current session of current window\n"
        f'            write text "{line}"\n'
        "        end tell\n"
        "    end repeat\n"
        "end tell"
    )


def ghostty_script(path: str, count: int, command: str | None = None) -> str:
    """Ghostty has no scripting dictionary; launch it with CLI flags instead."""
    launch = f"open -na Ghostty --args --working-directory={shell_escape(path)}"
    if _has_command(command):
        inner = f"cd {shell_escape(path)} && {command}"
        launch += f" --command {shell_escape(inner)}"
    line = applescript_escape(launch)
    return (
        f"repeat {count}\n"
        f'    do shell script "{line}"\n'
        "end repeat"
    )


_BUILDERS = {
    TerminalKind.TERMINAL: terminal_script,
    TerminalKind.ITERM: iterm_script,
    TerminalKind.GHOSTTY: ghostty_script,
}


def build_script(
    kind: TerminalKind, path: str, windows: int, command: str | None = None
) -> str:
    """AppleScript opening ``clamp_windows(windows)`` windows of ``kind``."""
    return _BUILDERS[TerminalKind(kind)](path, clamp_windows(windows), command)


# =============================================================================
# Execution
# =============================================================================


class TerminalLauncher:
    """Runs generated scripts through the automation interpreter."""

    def __init__(self, interpreter: str = DEFAULT_INTERPRETER, timeout: float | None = None):
        self.interpreter = interpreter
        self.timeout = timeout if timeout and timeout > 0 else None

    def open(
        self,
        kind: TerminalKind,
        path: str,
        windows: int,
        command: str | None = None,
    ) -> None:
        """
        Request ``clamp_windows(windows)`` windows of ``kind`` at ``path``.

        Success only means the interpreter accepted the script; the terminal
        application may still be opening windows when this returns.

        Raises:
            AutomationFailed: Interpreter exited nonzero or could not start
            CommandTimeout: A timeout is configured and was exceeded
        """
        kind = TerminalKind(kind)
        count = clamp_windows(windows)
        script = build_script(kind, path, count, command)
        self.run_script(script, operation=f"open_{kind.value}")
        logger.info(
            "Terminal windows requested",
            operation="open_terminal",
            status="success",
            terminal=kind.value,
            path=path,
            has_command=_has_command(command),
            metrics={"windows": count},
        )

    def run_script(self, script: str, operation: str = "run_script") -> None:
        start_time = time.perf_counter()
        try:
            result = subprocess.run(
                [self.interpreter, "-e", script],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.error(
                "Automation script timed out",
                operation=operation,
                status="timeout",
                timeout=self.timeout,
            )
            raise CommandTimeout(self.timeout) from None
        except OSError as e:
            logger.error(
                "Automation interpreter could not be spawned",
                operation=operation,
                status="exec_error",
                interpreter=self.interpreter,
                error=str(e),
            )
            raise AutomationFailed(str(e)) from e

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            logger.error(
                "Automation script failed",
                operation=operation,
                status="failed",
                returncode=result.returncode,
                stderr=stderr[:500],
                metrics={"duration_ms": duration_ms},
            )
            raise AutomationFailed(stderr or "Unknown AppleScript error")

        logger.debug(
            "Automation script complete",
            operation=operation,
            status="success",
            metrics={"duration_ms": duration_ms},
        )
