"""
Terminaut CLI.

    terminaut ls ~/src                      (list a directory)
    terminaut open ~/src/app -t iterm -w 2  (open two iTerm2 windows there)
    terminaut search main --start ~/src     (find paths below a directory)
    terminaut tags add ~/src/app work       (tag a path)
    terminaut profiles save dev --command "make dev" --windows 2

Global options pick the gateway: ``--fallback`` forces the in-process one,
``--core PATH`` names the core binary explicitly.
"""

from __future__ import annotations

import json
import os
import uuid
from dataclasses import dataclass, field
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from terminaut import __version__
from terminaut.app import create_gateway, create_launcher
from terminaut.config_loader import load_config, load_preferences, save_preferences
from terminaut.errors import CoreError
from terminaut.gateway import CoreGateway
from terminaut.launcher import TerminalKind
from terminaut.logging_config import setup_logger
from terminaut.session import BrowserSession

app = typer.Typer(
    name="terminaut",
    help="Browse directories and open terminal windows there.",
    no_args_is_help=True,
)
favorites_app = typer.Typer(help="Favorite directories.", no_args_is_help=True)
tags_app = typer.Typer(help="Colored labels on paths.", no_args_is_help=True)
profiles_app = typer.Typer(help="Saved launch profiles.", no_args_is_help=True)
app.add_typer(favorites_app, name="favorites")
app.add_typer(tags_app, name="tags")
app.add_typer(profiles_app, name="profiles")

console = Console()
err_console = Console(stderr=True)


@dataclass
class CliState:
    config: dict
    force_fallback: bool = False
    core_path: Optional[str] = None
    as_json: bool = False
    _gateway: Optional[CoreGateway] = field(default=None, repr=False)

    @property
    def gateway(self) -> CoreGateway:
        if self._gateway is None:
            self._gateway = create_gateway(
                self.config,
                force_fallback=self.force_fallback,
                explicit_binary=self.core_path,
            )
        return self._gateway


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj


def _fail(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


def _call(fn, *args):
    try:
        return fn(*args)
    except CoreError as e:
        _fail(str(e))


def _warn_after_launch(session: BrowserSession) -> None:
    if session.error_message:
        err_console.print(f"[yellow]Warning:[/yellow] {escape(session.error_message)}")


def _emit_json(payload) -> None:
    typer.echo(json.dumps(payload))


def _parse_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError:
        _fail(f"Invalid profile id: {raw}")


def version_callback(value: bool):
    if value:
        typer.echo(f"terminaut {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    fallback: bool = typer.Option(False, "--fallback", help="Use the in-process gateway."),
    core: Optional[str] = typer.Option(None, "--core", help="Path to term-core-cli."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of tables."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr."),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True, help="Show version."
    ),
):
    config = load_config()
    logging_config = config.get("logging", {})
    setup_logger(
        level="DEBUG" if verbose else logging_config.get("level", "INFO"),
        log_to_file=bool(logging_config.get("file", True)),
    )
    ctx.obj = CliState(config=config, force_fallback=fallback, core_path=core, as_json=as_json)


# =============================================================================
# Paths
# =============================================================================


@app.command()
def normalize(ctx: typer.Context, path: str):
    """Print the canonical absolute form of PATH."""
    typer.echo(_call(_state(ctx).gateway.normalize, path))


@app.command("ls")
def list_directory(ctx: typer.Context, path: str = typer.Argument(".")):
    """List the immediate children of PATH."""
    state = _state(ctx)
    gateway = state.gateway
    entries = _call(gateway.list_directory, _call(gateway.normalize, path))
    if state.as_json:
        _emit_json([entry.to_dict() for entry in entries])
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Modified", justify="right")
    for entry in entries:
        name = f"[blue]{escape(entry.name)}/[/blue]" if entry.is_directory else escape(entry.name)
        modified = str(entry.modification_time) if entry.modification_time is not None else "-"
        table.add_row(name, entry.sort_kind, modified)
    console.print(table)


@app.command()
def search(
    ctx: typer.Context,
    query: str,
    start: str = typer.Option(".", "--start", help="Directory to search below."),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum results."),
):
    """Find paths below --start whose relative path contains QUERY."""
    state = _state(ctx)
    gateway = state.gateway
    limit = limit if limit is not None else state.config.get("search", {}).get("limit", 25)
    results = _call(gateway.search, _call(gateway.normalize, start), query, limit)
    if state.as_json:
        _emit_json([result.to_dict() for result in results])
        return
    for result in results:
        console.print(f"{escape(result.name)}  [dim]{escape(result.path)}[/dim]")


@app.command()
def projects(ctx: typer.Context, path: str = typer.Argument(".")):
    """Project roots detected at or around PATH."""
    state = _state(ctx)
    gateway = state.gateway
    roots = _call(gateway.detect_projects, _call(gateway.normalize, path))
    if state.as_json:
        _emit_json([root.to_dict() for root in roots])
        return
    for root in roots:
        console.print(f"{escape(root.path)}  [dim]({escape(root.marker)})[/dim]")


@app.command()
def recents(ctx: typer.Context):
    """Recently opened directories."""
    state = _state(ctx)
    entries = _call(state.gateway.list_recents)
    if state.as_json:
        _emit_json([entry.to_dict() for entry in entries])
        return
    for entry in entries:
        console.print(f"{entry.last_opened:%Y-%m-%d %H:%M}  {escape(entry.path)}")


# =============================================================================
# Favorites
# =============================================================================


@favorites_app.command("list")
def favorites_list(ctx: typer.Context):
    state = _state(ctx)
    paths = _call(state.gateway.list_favorites)
    if state.as_json:
        _emit_json(paths)
        return
    for path in paths:
        console.print(escape(path))


@favorites_app.command("add")
def favorites_add(ctx: typer.Context, path: str):
    gateway = _state(ctx).gateway
    _call(gateway.add_favorite, _call(gateway.normalize, path))


@favorites_app.command("remove")
def favorites_remove(ctx: typer.Context, path: str):
    gateway = _state(ctx).gateway
    _call(gateway.remove_favorite, _call(gateway.normalize, path))


# =============================================================================
# Tags
# =============================================================================


def _print_tags(state: CliState, tags) -> None:
    if state.as_json:
        _emit_json([tag.to_dict() for tag in tags])
        return
    for tag in tags:
        console.print(f"{escape(tag.tag)} ({escape(tag.color)})  [dim]{escape(tag.path)}[/dim]")


@tags_app.command("list")
def tags_list(ctx: typer.Context):
    state = _state(ctx)
    _print_tags(state, _call(state.gateway.list_tags))


@tags_app.command("for")
def tags_for(ctx: typer.Context, path: str):
    state = _state(ctx)
    gateway = state.gateway
    _print_tags(state, _call(gateway.tags_for, _call(gateway.normalize, path)))


@tags_app.command("add")
def tags_add(
    ctx: typer.Context,
    path: str,
    label: str,
    color: str = typer.Option("#0a84ff", "--color", help="Tag color (#RRGGBB)."),
):
    gateway = _state(ctx).gateway
    _call(gateway.add_tag, _call(gateway.normalize, path), label, color)


@tags_app.command("remove")
def tags_remove(ctx: typer.Context, path: str, label: str):
    gateway = _state(ctx).gateway
    _call(gateway.remove_tag, _call(gateway.normalize, path), label)


# =============================================================================
# Profiles
# =============================================================================


@profiles_app.command("list")
def profiles_list(ctx: typer.Context):
    state = _state(ctx)
    profiles = _call(state.gateway.list_profiles)
    if state.as_json:
        _emit_json([profile.to_dict() for profile in profiles])
        return

    table = Table(show_header=True, header_style="bold")
    for column in ("Id", "Name", "Command", "Directory", "Terminal", "Windows"):
        table.add_column(column)
    for profile in profiles:
        table.add_row(
            str(profile.id),
            escape(profile.name),
            escape(profile.command or ""),
            escape(profile.working_dir or "(current)"),
            profile.terminal or "(selected)",
            str(profile.windows),
        )
    console.print(table)


@profiles_app.command("save")
def profiles_save(
    ctx: typer.Context,
    name: str,
    profile_id: Optional[str] = typer.Option(None, "--id", help="Update this profile."),
    command: Optional[str] = typer.Option(None, "--command", "-c"),
    working_dir: Optional[str] = typer.Option(None, "--working-dir", "-d"),
    terminal: Optional[TerminalKind] = typer.Option(None, "--terminal", "-t"),
    windows: int = typer.Option(1, "--windows", "-w"),
):
    state = _state(ctx)
    parsed_id = _parse_id(profile_id) if profile_id else None
    profile = _call(
        state.gateway.save_profile,
        parsed_id,
        name,
        command,
        working_dir,
        terminal.value if terminal else None,
        windows,
    )
    if state.as_json:
        _emit_json(profile.to_dict())
    else:
        console.print(f"Saved profile [bold]{escape(profile.name)}[/bold] ({profile.id})")


@profiles_app.command("delete")
def profiles_delete(ctx: typer.Context, profile_id: str):
    _call(_state(ctx).gateway.delete_profile, _parse_id(profile_id))


@profiles_app.command("run")
def profiles_run(
    ctx: typer.Context,
    profile_id: str,
    path: str = typer.Option(".", "--path", help="Directory used when the profile has none."),
):
    state = _state(ctx)
    wanted = _parse_id(profile_id)
    profile = next((p for p in _call(state.gateway.list_profiles) if p.id == wanted), None)
    if profile is None:
        _fail(f"No profile with id {profile_id}")

    session = _session(state, path)
    if not session.run_profile(profile):
        _fail(session.error_message or "launch failed")
    _warn_after_launch(session)


# =============================================================================
# Launching
# =============================================================================


def _session(state: CliState, path: str) -> BrowserSession:
    prefs = load_preferences()
    launcher_config = state.config.get("launcher", {})
    terminal = (
        TerminalKind.parse(prefs.get("last_terminal"))
        or TerminalKind.parse(launcher_config.get("terminal"))
        or TerminalKind.TERMINAL
    )
    windows = prefs.get("window_count") or launcher_config.get("windows", 1)
    gateway = state.gateway
    return BrowserSession(
        gateway,
        create_launcher(state.config),
        start_path=_call(gateway.normalize, os.path.abspath(os.path.expanduser(path))),
        selected_terminal=terminal,
        window_count=windows,
        search_limit=state.config.get("search", {}).get("limit", 25),
    )


@app.command("open")
def open_terminal(
    ctx: typer.Context,
    path: str = typer.Argument("."),
    terminal: Optional[TerminalKind] = typer.Option(None, "--terminal", "-t"),
    windows: Optional[int] = typer.Option(None, "--windows", "-w", help="1-5 windows."),
    command: Optional[str] = typer.Option(None, "--command", "-c", help="Run instead of a shell."),
    remember: bool = typer.Option(False, "--remember", help="Remember terminal and window count."),
):
    """Open terminal windows at PATH."""
    state = _state(ctx)
    session = _session(state, path)
    if terminal is not None:
        session.selected_terminal = terminal
    if windows is not None:
        session.window_count = windows

    if not session.open_terminal(session.current_path, command):
        _fail(session.error_message or "launch failed")
    _warn_after_launch(session)

    if remember:
        save_preferences({
            "last_terminal": session.selected_terminal.value,
            "window_count": session.window_count,
        })
