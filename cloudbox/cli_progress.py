"""Console rendering and progress helpers for the cloudbox CLI."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
import time

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from .models import BatchResult, BulkResult, ProgressSnapshot, TransferUnit, UnitOutcome
from .utils.formatting import format_size, render_meter
from .workspace.store import WorkspaceView


console = Console()


def _echo(message: str) -> None:
    console.print(message)


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]cloudbox[/bold green]",
        subtitle="[dim]storage client[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_folders(view: WorkspaceView) -> None:
    table = Table(title="Folders")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    for folder in view.folders:
        marker = " *" if folder.id == view.folder_id else ""
        table.add_row(folder.id, f"{folder.name}{marker}")
    console.print(table)


def render_listing(view: WorkspaceView, folder_name: Optional[str] = None) -> None:
    """Render the visible slice of the listing plus the storage meter."""
    table = Table(title=folder_name or "Home")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("URL", overflow="fold")
    for entry in view.visible:
        table.add_row(entry.id, entry.name, entry.type.value, format_size(entry.size), entry.location_url)
    console.print(table)

    shown = len(view.visible)
    suffix = " [dim](more available)[/dim]" if view.has_more else ""
    _echo(f"Showing {shown}/{len(view.listing)} files{suffix}")
    _echo(
        f"[bold]Storage used:[/bold] {view.total_size_label} "
        f"[green]{render_meter(view.total_size_bytes, view.quota_bytes)}[/green] "
        f"of {format_size(view.quota_bytes)}"
    )


def render_bulk_result(result: BulkResult) -> None:
    _echo(
        f"[bold]Deleted[/bold] {len(result.succeeded)}/{len(result.attempted)}"
        + (f" [red]failed={len(result.failed)}[/red]" if result.failed else "")
        + (" [yellow]cancelled[/yellow]" if result.cancelled else "")
    )
    for file_id, error in result.failed.items():
        _echo(f"  [red]FAIL[/red] {file_id}: {error}")


class UploadProgressDisplay:
    """Event-based console display for an upload batch."""

    def __init__(self):
        self._active_tasks: Dict[str, Tuple[TaskID, int]] = {}
        self._overall_task_id: Optional[TaskID] = None
        self._live: Optional[Live] = None
        self._meta_progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=28),
            TextColumn("{task.completed}/{task.total}"),
            TextColumn("[dim]{task.fields[detail]}", justify="left"),
            expand=False,
            console=console,
        )
        self._file_progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold green]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=42),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            expand=False,
            console=console,
        )

    def _emit_timeline(self, status: str, name: str, size_bytes: Optional[int] = None, error: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        size_label = f" {format_size(size_bytes)}" if size_bytes else ""
        error_label = f" cause={error}" if error else ""
        color = {"DONE": "green", "FAIL": "red", "WAVE": "blue"}.get(status, "white")
        _echo(f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {name}{size_label}{error_label}")

    def _start_live(self) -> None:
        if self._live is not None:
            return
        self._live = Live(
            Group(self._meta_progress, self._file_progress),
            console=console,
            refresh_per_second=8,
            vertical_overflow="visible",
        )
        self._live.start()
        self._overall_task_id = self._meta_progress.add_task(
            "overall",
            label="Overall",
            total=1,
            completed=0,
            detail="uploaded=0 failed=0",
        )

    def _stop_live(self) -> None:
        if self._live is None:
            return
        self._live.stop()
        self._live = None

    def on_wave_start(self, index: int, names: List[str]) -> None:
        self._start_live()
        self._emit_timeline("WAVE", f"#{index}: {', '.join(names)}")

    def on_unit_start(self, unit: TransferUnit) -> None:
        self._start_live()
        task_id = self._file_progress.add_task(
            "upload",
            label=unit.name[:60],
            total=max(unit.bytes_total, 1),
        )
        self._active_tasks[unit.name] = (task_id, max(unit.bytes_total, 1))

    def on_progress(self, snapshot: ProgressSnapshot) -> None:
        current = self._active_tasks.get(snapshot.current_file_name or "")
        if current is not None:
            task_id, total = current
            self._file_progress.update(task_id, completed=total * snapshot.percent_for_current_file // 100)
        if self._overall_task_id is not None:
            self._meta_progress.update(
                self._overall_task_id,
                completed=snapshot.units_settled,
                total=max(snapshot.units_total, 1),
                detail=(
                    f"uploaded={snapshot.units_completed} failed={snapshot.units_failed} "
                    f"{snapshot.aggregate_percent}%"
                ),
            )

    def _finish_unit(self, outcome: UnitOutcome) -> None:
        current = self._active_tasks.pop(outcome.name, None)
        if current is not None:
            self._file_progress.remove_task(current[0])

    def on_unit_complete(self, outcome: UnitOutcome) -> None:
        self._finish_unit(outcome)
        self._emit_timeline("DONE", outcome.name, size_bytes=outcome.size)

    def on_unit_fail(self, outcome: UnitOutcome) -> None:
        self._finish_unit(outcome)
        self._emit_timeline("FAIL", outcome.name, size_bytes=outcome.size, error=outcome.error)

    def on_finish(self, result: BatchResult) -> None:
        self._stop_live()
        cancelled = " [yellow]cancelled[/yellow]" if result.cancelled else ""
        _echo(
            f"[bold]Finished[/bold] uploaded={result.uploaded_files} total={result.total_files} "
            f"failed={result.failed_files} skipped={result.skipped_files}{cancelled}"
        )
