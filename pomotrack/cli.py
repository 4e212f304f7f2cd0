"""Command-line interface for PomoTrack.

Every command reads and writes the shared snapshot store, so commands can
be issued from separate processes: a ``pause`` in one terminal is picked up
by the countdown loop of a ``start`` or ``run`` in another on its next tick.
"""

from __future__ import annotations

import logging
import signal
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
from PyQt6.QtCore import QCoreApplication
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .alerts.notifier import (
    AlarmNotifier,
    CompositeNotifier,
    LoggingNotifier,
    Notifier,
    format_remaining,
)
from .alerts.sounds import AlarmSounds
from .errors import PomoTrackError, StorageUnavailable
from .settings import Settings, load_settings
from .store.db import configure_engine, init_db
from .store.snapshot import Phase, Snapshot
from .store.store import SnapshotStore
from .timer.engine import TimerEngine, wall_clock_ms

app = typer.Typer(
    name="pomotrack",
    help="Deadline-based Pomodoro timer that survives restarts",
    no_args_is_help=True,
)

console = Console()


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("pomotrack")


def _qt_app() -> QCoreApplication:
    return QCoreApplication.instance() or QCoreApplication(sys.argv)


@contextmanager
def _reporting_errors():
    try:
        yield
    except PomoTrackError as error:
        console.print(f"[red]{error}[/red]")
        raise typer.Exit(1)


class ConsoleNotifier(Notifier):
    """Shows the countdown as a rich spinner line."""

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._task = progress.add_task("Waiting...", total=None)
        self._label = ""

    def phase_started(self, phase: Phase) -> None:
        self._label = phase.name.title()
        self._progress.console.print(f"[bold green]{self._label} started[/bold green]")

    def progress(self, remaining_ms: int) -> None:
        self._progress.update(
            self._task,
            description=f"{self._label} {format_remaining(remaining_ms)} remaining",
        )

    def dismiss(self) -> None:
        self._progress.update(self._task, description="Stopped")


def _print_message(title: str, body: str) -> None:
    console.print(f"[bold yellow]{title}[/bold yellow] {body}")


def _build_engine(
    settings: Settings, extra: list[Notifier] | None = None
) -> TimerEngine:
    sounds = None
    if settings.sound_enabled:
        sounds = AlarmSounds()
        sounds.set_volume(settings.sound_volume)
    alarm = AlarmNotifier(
        sounds=sounds,
        show_message=_print_message if settings.notifications_enabled else None,
        alarm_seconds=settings.alarm_seconds,
    )
    notifiers: list[Notifier] = [LoggingNotifier(), alarm, *(extra or [])]
    return TimerEngine(
        SnapshotStore(),
        CompositeNotifier(notifiers),
        tick_interval_ms=settings.tick_interval_ms,
    )


def _follow(settings: Settings, start: bool) -> None:
    """Run the countdown in the foreground until it stops running."""
    qt_app = _qt_app()
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        engine = _build_engine(settings, [ConsoleNotifier(progress)])

        def on_state(snap: Snapshot) -> None:
            if not snap.is_running:
                qt_app.quit()

        engine.state_changed.connect(on_state)
        # Ctrl+C leaves the countdown persisted; ``pomotrack run`` resumes it.
        previous = signal.signal(signal.SIGINT, lambda *_: qt_app.quit())
        try:
            if start:
                engine.start()
            else:
                engine.restore()
            if engine.is_looping:
                qt_app.exec()
        finally:
            signal.signal(signal.SIGINT, previous)

    _print_status(engine.store.read())


def _print_status(snap: Snapshot) -> None:
    table = Table(title="PomoTrack", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Phase", snap.phase.name.title())
    if snap.paused_from is not None:
        table.add_row("Paused from", snap.paused_from.name.title())
    table.add_row("Round", f"{snap.current_round}/{snap.total_rounds}")
    table.add_row("Remaining", format_remaining(snap.remaining_at(wall_clock_ms())))
    table.add_row("Focus", f"{snap.focus_minutes} min")
    table.add_row("Break", f"{snap.break_minutes} min")
    console.print(table)


# ═══════════════════════════════════════════════════════════════════════════
#  COMMANDS
# ═══════════════════════════════════════════════════════════════════════════


@app.callback()
def main(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(None, "--db", help="Path to the state database"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Deadline-based Pomodoro timer that survives restarts."""
    settings = load_settings()
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    setup_logging(level)

    db_path = db or Path(settings.db_path)
    with _reporting_errors():
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            configure_engine(f"sqlite:///{db_path}")
            init_db()
        except (OSError, SQLAlchemyError) as error:
            raise StorageUnavailable(f"cannot open {db_path}: {error}") from error

    _qt_app()
    ctx.obj = settings


@app.command("start")
def start_command(
    ctx: typer.Context,
    follow: bool = typer.Option(
        True, "--follow/--detach", help="Keep counting down in this terminal"
    ),
) -> None:
    """Start a cycle or resume a paused interval."""
    with _reporting_errors():
        if follow:
            _follow(ctx.obj, start=True)
        else:
            engine = TimerEngine(SnapshotStore(), LoggingNotifier())
            engine.start()
            _print_status(engine.store.read())


@app.command("run")
def run_command(ctx: typer.Context) -> None:
    """Pick up a persisted countdown after a restart."""
    with _reporting_errors():
        _follow(ctx.obj, start=False)


@app.command("pause")
def pause_command() -> None:
    """Pause the running interval."""
    with _reporting_errors():
        engine = TimerEngine(SnapshotStore(), LoggingNotifier())
        engine.pause()
        _print_status(engine.store.read())


@app.command("stop")
def stop_command() -> None:
    """Abandon the cycle and go back to Idle."""
    with _reporting_errors():
        engine = TimerEngine(SnapshotStore(), LoggingNotifier())
        engine.stop()
        _print_status(engine.store.read())


@app.command("reset")
def reset_command() -> None:
    """Reset the state to Idle, keeping durations."""
    with _reporting_errors():
        engine = TimerEngine(SnapshotStore(), LoggingNotifier())
        engine.reset()
        _print_status(engine.store.read())


@app.command("config")
def config_command(
    focus: int = typer.Argument(..., help="Focus minutes"),
    break_minutes: int = typer.Argument(..., metavar="BREAK", help="Break minutes"),
    rounds: int = typer.Argument(..., help="Number of rounds"),
) -> None:
    """Set focus/break minutes and the number of rounds."""
    with _reporting_errors():
        engine = TimerEngine(SnapshotStore(), LoggingNotifier())
        engine.update_config(focus, break_minutes, rounds)
        _print_status(engine.store.read())


@app.command("status")
def status_command() -> None:
    """Show the current phase, round and time left."""
    with _reporting_errors():
        _print_status(SnapshotStore().read())


@app.command("version")
def version_command() -> None:
    """Show version information."""
    console.print(f"[bold]PomoTrack[/bold] version [cyan]{__version__}[/cyan]")
