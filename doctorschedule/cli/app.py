"""
Main CLI application using Typer.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.http_backend import HttpSlotBackend
from ..adapters.json_backend import JsonFileSlotBackend
from ..adapters.mock_backend import MockSlotBackend, generate_demo_slots
from ..config import AppConfig, load_config
from ..domain.models import DailyTemplate, TimeSlot, parse_date, sort_slots
from ..services.slot_editor import EditorMode, EditorOutcome, SlotEditorWorkflow
from ..services.slot_store import SlotBackendProtocol, TimeSlotStore

app = typer.Typer(
    name="doctorschedule",
    help="Manage the time slots in which a doctor is available for patient visits",
    add_completion=False
)

console = Console()

SELECTION_FORMAT = "YYYY-MM-DD HH:mm"


@dataclass
class CliState:
    config: AppConfig
    mock: bool = False


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _build_backend(config: AppConfig, mock: bool) -> SlotBackendProtocol:
    """Pick the backing store named in the configuration."""
    storage = config.storage

    if mock or storage.backend == "mock":
        return MockSlotBackend(latency_seconds=storage.latency_ms / 1000)

    if storage.backend == "http":
        return HttpSlotBackend(base_url=storage.base_url, timeout_seconds=storage.timeout_seconds)

    return JsonFileSlotBackend(path=storage.path)


def _build_store(state: CliState) -> TimeSlotStore:
    config = state.config
    return TimeSlotStore(
        backend=_build_backend(config, state.mock),
        timeout_seconds=config.storage.timeout_seconds,
        strict_ranges=config.strict_ranges,
        strict_deletes=config.strict_deletes,
    )


async def _open_workflow(state: CliState) -> SlotEditorWorkflow:
    """Create the store, load the current collection and wrap it in the workflow."""
    store = _build_store(state)
    result = await store.fetch_all()
    if not result.ok:
        raise RuntimeError(result.message)
    return SlotEditorWorkflow(store)


def _report(outcome: EditorOutcome, success_message: str) -> None:
    if outcome.ok:
        console.print(f"[green]✓ {success_message}[/green]")
        return

    if outcome.message:
        console.print(f"[bold red]Error:[/bold red] {outcome.message}")
    else:
        console.print("[yellow]Cancelled.[/yellow]")
    raise typer.Exit(1)


def _render_slots(slots: List[TimeSlot], title: str) -> None:
    if not slots:
        console.print("[yellow]No time slots found.[/yellow]")
        return

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Date", style="bold")
    table.add_column("Time")
    table.add_column("Status")

    for slot in sort_slots(slots):
        status = "[green]available[/green]" if slot.available else "[red]unavailable[/red]"
        table.add_row(slot.id, slot.date, f"{slot.start_time} - {slot.end_time}", status)

    console.print()
    console.print(table)
    console.print()


def _parse_templates(values: Optional[List[str]], config: AppConfig) -> List[DailyTemplate]:
    if not values:
        return config.defaults.get_templates()
    return [DailyTemplate.parse(value) for value in values]


def _parse_instant(value: str, label: str):
    try:
        return pendulum.from_format(value, SELECTION_FORMAT)
    except ValueError as e:
        raise ValueError(f"Invalid {label} '{value}', expected YYYY-MM-DD HH:MM") from e


def _run(coro) -> None:
    """Run a command coroutine, turning failures into exit code 1."""
    try:
        asyncio.run(coro)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    mock: Annotated[bool, typer.Option("--mock", help="Use generated demo data instead of the configured store.")] = False,
):
    """
    Doctor availability schedule.
    """
    try:
        config = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    _configure_logging(config.log_level)
    ctx.obj = CliState(config=config, mock=mock)


@app.command("list")
def list_slots(
    ctx: typer.Context,
    date_from: Annotated[Optional[str], typer.Option("--from", help="First date to show (YYYY-MM-DD)")] = None,
    date_to: Annotated[Optional[str], typer.Option("--to", help="Last date to show (YYYY-MM-DD)")] = None,
):
    """
    List time slots ordered by date and start time.
    """
    state: CliState = ctx.obj

    async def command() -> None:
        workflow = await _open_workflow(state)
        lower = parse_date(date_from) if date_from else None
        upper = parse_date(date_to) if date_to else None

        slots = [
            event.slot for event in workflow.events()
            if (lower is None or parse_date(event.slot.date) >= lower)
            and (upper is None or parse_date(event.slot.date) <= upper)
        ]
        _render_slots(slots, title="Time slots")

    _run(command())


@app.command()
def add(
    ctx: typer.Context,
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    end: Annotated[str, typer.Argument(help="End time (HH:MM)")],
):
    """
    Add a single available time slot (replaces a slot with the same start).
    """
    state: CliState = ctx.obj

    async def command() -> None:
        workflow = await _open_workflow(state)
        outcome = await workflow.request_create(date, start, end)
        _report(outcome, f"Added {outcome.slot.id}" if outcome.slot else "Added")

    _run(command())


@app.command("set-availability")
def set_availability(
    ctx: typer.Context,
    slot_id: Annotated[str, typer.Argument(help="Slot id, e.g. 2025-06-02-09:00")],
    available: Annotated[bool, typer.Option("--available/--unavailable", help="Whether patients may book the slot")] = True,
):
    """
    Mark a slot as available or unavailable.
    """
    state: CliState = ctx.obj

    async def command() -> None:
        workflow = await _open_workflow(state)
        outcome = await workflow.request_availability_change(slot_id, available)
        label = "available" if available else "unavailable"
        _report(outcome, f"{slot_id} is now {label}")

    _run(command())


@app.command()
def delete(
    ctx: typer.Context,
    slot_id: Annotated[str, typer.Argument(help="Slot id, e.g. 2025-06-02-09:00")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt")] = False,
):
    """
    Delete a time slot after confirmation.
    """
    state: CliState = ctx.obj

    def confirm(target: str) -> bool:
        if yes:
            return True
        return typer.confirm(f"Are you sure you want to delete time slot {target}?", default=False)

    async def command() -> None:
        workflow = await _open_workflow(state)
        outcome = await workflow.request_delete(slot_id, confirm)
        _report(outcome, f"Deleted {slot_id}")

    _run(command())


@app.command()
def bulk(
    ctx: typer.Context,
    start: Annotated[str, typer.Option("--start", help="First date (YYYY-MM-DD)")],
    end: Annotated[str, typer.Option("--end", help="Last date, inclusive (YYYY-MM-DD)")],
    slot: Annotated[Optional[List[str]], typer.Option("--slot", "-s", help="Daily window HH:MM-HH:MM; repeat for more")] = None,
    weekdays_only: Annotated[Optional[bool], typer.Option("--weekdays-only/--all-days", help="Skip Saturdays and Sundays")] = None,
    strict: Annotated[bool, typer.Option("--strict", help="Report an error when start is after end")] = False,
):
    """
    Replace every slot in a date range with a recurring daily template.

    Examples:

        doctorschedule bulk --start 2025-06-02 --end 2025-06-06 --slot 09:00-09:30 --slot 09:30-10:00
    """
    state: CliState = ctx.obj
    config = state.config

    async def command() -> None:
        templates = _parse_templates(slot, config)
        only_weekdays = config.defaults.weekdays_only if weekdays_only is None else weekdays_only

        workflow = await _open_workflow(state)
        outcome = await workflow.request_bulk(
            start, end, templates, only_weekdays, strict=strict or None
        )
        _report(outcome, f"Scheduled {len(outcome.slots)} slot(s) from {start} to {end}")

    _run(command())


@app.command()
def select(
    ctx: typer.Context,
    start: Annotated[str, typer.Argument(help="Selection start (YYYY-MM-DD HH:MM)")],
    end: Annotated[str, typer.Argument(help="Selection end (YYYY-MM-DD HH:MM)")],
    apply: Annotated[bool, typer.Option("--apply", help="Save the selection (create, or update availability)")] = False,
    available: Annotated[bool, typer.Option("--available/--unavailable", help="Availability to save in edit mode")] = True,
):
    """
    Resolve a calendar selection into the create or edit flow.
    """
    state: CliState = ctx.obj

    async def command() -> None:
        start_at = _parse_instant(start, "selection start")
        end_at = _parse_instant(end, "selection end")

        workflow = await _open_workflow(state)
        session = workflow.handle_selection(start_at, end_at)

        if session.mode == EditorMode.CREATE:
            body = (
                f"[bold]New time slot[/bold]\n\n"
                f"Date: {session.date}\nTime: {session.start_time} - {session.end_time}"
            )
        else:
            body = (
                f"[bold]Edit time slot[/bold] {session.slot.id}\n\n"
                f"Date: {session.date}\nTime: {session.start_time} - {session.end_time}\n"
                f"Status: {'available' if session.slot.available else 'unavailable'}"
            )
        console.print(Panel.fit(body, title=session.mode.value))

        if apply:
            outcome = await workflow.submit(session, available=available)
            _report(outcome, "Saved")

    _run(command())


@app.command()
def seed(
    ctx: typer.Context,
    days: Annotated[int, typer.Option("--days", min=1, help="Number of calendar days to generate")] = 7,
    start: Annotated[Optional[str], typer.Option("--start", help="First day (YYYY-MM-DD), defaults to today")] = None,
    random_seed: Annotated[Optional[int], typer.Option("--seed", help="Random seed for availability")] = None,
):
    """
    Fill the configured store with a week of demo slots.
    """
    state: CliState = ctx.obj

    async def command() -> None:
        first_day = parse_date(start) if start else pendulum.today().date()
        slots = generate_demo_slots(start_day=first_day, days=days, seed=random_seed)
        last_day = first_day.add(days=days - 1).to_date_string()

        store = _build_store(state)
        result = await store.replace_range(first_day, last_day, slots)
        if not result.ok:
            raise RuntimeError(result.message)
        console.print(f"[green]✓ Generated {len(slots)} demo slot(s)[/green]")

    _run(command())


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]doctorschedule[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
