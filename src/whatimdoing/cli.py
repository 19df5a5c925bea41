"""Command-line interface for the activity tracker."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer

from .config import TrackerSettings
from .normalization import normalize_activity_text
from .paths import default_path_for
from .presenters import StatusTitlePresenter, build_context_menu
from .reporting import HistoryPrinter, format_duration, time_ago
from .storage import BACKENDS, open_adapter
from .store import ActivityStore
from .truncation import truncate_by_count

app = typer.Typer(help="Record what you are doing right now.")


@dataclass(slots=True)
class _Options:
    backend: str = "json"
    data_path: Optional[Path] = None
    settings: TrackerSettings = field(default_factory=TrackerSettings)


def _open_store(ctx: typer.Context) -> ActivityStore:
    options: _Options = ctx.obj
    try:
        adapter = open_adapter(
            options.backend,
            options.data_path or default_path_for(options.backend),
            max_history=options.settings.max_history_size,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--backend") from exc
    store = ActivityStore(adapter, options.settings)
    ctx.call_on_close(adapter.close)
    return store


@app.callback(no_args_is_help=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
    backend: str = typer.Option(
        "json", "--backend", help=f"Storage backend ({', '.join(BACKENDS)})."
    ),
    data_path: Optional[Path] = typer.Option(
        None,
        "--data",
        path_type=Path,
        help="Location of the state file or SQLite database.",
    ),
    max_history: int = typer.Option(
        500, "--max-history", min=1, help="Number of past activities to keep."
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    ctx.obj = _Options(
        backend=backend,
        data_path=data_path,
        settings=TrackerSettings.from_options(max_history=max_history),
    )


@app.command("set")
def set_activity(
    ctx: typer.Context,
    words: List[str] = typer.Argument(..., help="What you are doing right now."),
) -> None:
    """Start a new current activity, archiving the previous one."""
    store = _open_store(ctx)
    text = normalize_activity_text(" ".join(words), store.settings.max_input_length)
    activity = store.start_activity(text)
    if activity is None:
        typer.echo("Nothing to record; the activity text is empty.")
        raise typer.Exit(code=1)
    typer.echo(f"Now: {activity.text}")


@app.command()
def clear(ctx: typer.Context) -> None:
    """Stop the current activity without starting another."""
    store = _open_store(ctx)
    archived = store.clear_current()
    if archived is None:
        typer.echo("No activity set")
        return
    duration = format_duration(archived.duration) if archived.duration is not None else ""
    typer.echo(f"Stopped: {archived.text} ({duration})")


@app.command()
def status(ctx: typer.Context) -> None:
    """Print the status title and how long the current activity has run."""
    store = _open_store(ctx)
    presenter = StatusTitlePresenter(store)
    current = store.current_activity
    if current is None:
        typer.echo(presenter.title)
    else:
        typer.echo(f"{presenter.title} ({time_ago(current.started_at, datetime.now())})")
    presenter.close()


@app.command()
def recent(
    ctx: typer.Context,
    limit: int = typer.Option(5, "--limit", "-n", min=1, help="Number of suggestions."),
) -> None:
    """List recent distinct activities."""
    store = _open_store(ctx)
    activities = store.recent_activities(limit)
    if not activities:
        typer.echo("No recent activities.")
        return
    for activity in activities:
        label = truncate_by_count(activity.text, store.settings.menu_label_length)
        duration = format_duration(activity.duration) if activity.duration is not None else ""
        typer.echo(f"{label:<{store.settings.menu_label_length}} {duration}")


@app.command()
def history(
    ctx: typer.Context,
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by text."),
) -> None:
    """Show history grouped by day."""
    store = _open_store(ctx)
    now = datetime.now()
    printer = HistoryPrinter(width=store.settings.history_label_width)
    printer.print_current(store.current_activity, now)
    print()
    printer.print_history(store.search_history(search), now.date())


@app.command("clear-history")
def clear_history(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete every archived activity. The current one is kept."""
    store = _open_store(ctx)
    if not store.history:
        typer.echo("History is already empty.")
        return
    if not yes:
        typer.confirm(f"Delete {len(store.history)} archived activities?", abort=True)
    store.clear_history()
    typer.echo("History cleared.")


@app.command()
def menu(ctx: typer.Context) -> None:
    """Print the context menu entries."""
    store = _open_store(ctx)
    for item in build_context_menu(store):
        if item.is_separator:
            typer.echo("-" * 20)
        elif not item.enabled:
            typer.echo(f"[{item.label}]")
        else:
            typer.echo(f"  {item.label}")


@app.command()
def web(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the dashboard."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the dashboard."
    ),
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Automatically launch the dashboard in your default browser.",
    ),
) -> None:
    """Start the local dashboard API."""
    from .server_runner import run_dashboard

    options: _Options = ctx.obj
    try:
        run_dashboard(
            host=host,
            port=port,
            backend=options.backend,
            data_path=options.data_path,
            settings=options.settings,
            open_browser=open_browser,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--backend") from exc
