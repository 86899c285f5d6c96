"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.catalog import ConfigServiceCatalog, ConfigWorkingHoursProvider
from ..adapters.distance import build_distance_provider
from ..adapters.file_calendar import FileCalendarClient
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import PlannerError
from ..domain.models import StopRequest
from ..domain.route_optimizer import RouteOptimizer
from ..domain.slot_finder import SlotFinder
from ..services.day_route_planner import DayRoutePlanner
from ..services.slot_search import SlotSearchService

app = typer.Typer(
    name="visitplanner",
    help="Find appointment slots and plan routes for on-site service work",
    add_completion=False
)

console = Console()

REASON_MESSAGES = {
    "not_available_on_day": "Not working on the requested day.",
    "no_slots_found": "No free slots in the search window. Try more days or a shorter service.",
    "too_far": "Destination is beyond the maximum travel time.",
}


def _load_config(config_file: Optional[Path], verbose: bool = False) -> AppConfig:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def _parse_date(value: Optional[str], tz: str):
    if not value:
        return pendulum.today(tz).date()
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid date '{value}', expected YYYY-MM-DD") from exc


def _parse_stop(value: str, default_minutes: int) -> StopRequest:
    """Parse ``LOCATION`` or ``LOCATION@MINUTES``."""
    location, separator, minutes = value.rpartition("@")
    if not separator:
        return StopRequest(location=value.strip(), duration_minutes=default_minutes)
    if not minutes.strip().isdigit():
        raise typer.BadParameter(f"Invalid stop '{value}', expected LOCATION@MINUTES")
    return StopRequest(location=location.strip(), duration_minutes=int(minutes))


@app.command()
def find(
    destination: Annotated[str, typer.Argument(help="Appointment address")],
    service_id: Annotated[str, typer.Option("--service", "-s", help="Service id from the config")],
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    calendar_file: Annotated[Optional[Path], typer.Option("--calendar", help="JSON file with busy calendar events")] = None,
    date: Annotated[Optional[str], typer.Option("--date", help="First day to search (YYYY-MM-DD), default today")] = None,
    days: Annotated[Optional[int], typer.Option("--days", "-d", help="Number of days to search")] = None,
    max_candidates: Annotated[Optional[int], typer.Option("--max", "-n", help="Maximum number of slots")] = None,
    all_slots: Annotated[bool, typer.Option("--all", help="Show several slots per day instead of the first")] = False,
    skip: Annotated[int, typer.Option("--skip", help="Skip this many slots (more options)")] = 0,
    origin: Annotated[Optional[str], typer.Option("--origin", help="Departure address, default from config")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
):
    """
    Find available appointment slots for a service at a destination.

    Examples:

        visitplanner find "Breda" --service tuning
        visitplanner find "Eindhoven" -s repair --date 2024-11-25 --days 7 --all
    """
    try:
        config = _load_config(config_file, verbose)
        tz = config.timezone
        service = ConfigServiceCatalog(config).get_service(service_id)
        start_date = _parse_date(date, tz)

        search_service = SlotSearchService(
            calendar_client=FileCalendarClient(calendar_file, timezone=tz),
            working_hours=ConfigWorkingHoursProvider.from_config(config),
            distance_provider=build_distance_provider(config),
            slot_finder=SlotFinder(timezone=tz, step_minutes=config.search.slot_step_minutes),
            default_origin=config.origin,
        )
        result = search_service.search(
            resource_id=config.resource_id,
            service=service,
            destination=destination,
            origin=origin,
            start_date=start_date,
            window_days=days or config.search.window_days,
            max_candidates=max_candidates or config.search.max_candidates,
            all_slots=all_slots,
            max_slots_per_day=config.search.max_slots_per_day,
            skip_count=skip,
            max_travel_minutes=config.search.max_travel_minutes,
        )

        console.print()
        if result.travel is not None:
            marker = " [yellow](estimated)[/yellow]" if result.travel.is_estimated else ""
            console.print(
                f"Travel to [bold]{destination}[/bold]: "
                f"{result.travel.duration_minutes} min, {result.travel.distance_km:g} km{marker}"
            )

        if not result.available:
            console.print(f"[yellow]⚠ {REASON_MESSAGES[result.reason.value]}[/yellow]\n")
            return

        table = Table(title=f"{len(result.slots)} available slot(s)", show_header=True, header_style="bold cyan")
        table.add_column("Date", style="bold yellow")
        table.add_column("Leave")
        table.add_column("Appointment", style="bold")
        table.add_column("Free again")
        table.add_column("From", style="dim")

        for slot in result.slots:
            candidate = slot.candidate
            table.add_row(
                candidate.appointment_start.format("ddd DD.MM.YYYY"),
                candidate.travel_start.format("HH:mm"),
                f"{candidate.appointment_start.format('HH:mm')} - {candidate.appointment_end.format('HH:mm')}",
                candidate.slot_end.format("HH:mm"),
                slot.origin,
            )

        console.print(table)
        console.print()

    except (PlannerError, ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def plan_route(
    stops: Annotated[List[str], typer.Argument(help="Stops as LOCATION or LOCATION@MINUTES")],
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file")] = None,
    origin: Annotated[Optional[str], typer.Option("--origin", help="Start address, default from config")] = None,
    date: Annotated[Optional[str], typer.Option("--date", help="Day to plan (YYYY-MM-DD), default today")] = None,
    start: Annotated[str, typer.Option("--start", help="Departure time HH:MM")] = "08:30",
    duration: Annotated[int, typer.Option("--duration", help="Default minutes per stop")] = 60,
    no_return: Annotated[bool, typer.Option("--no-return", help="Do not count the drive back")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
):
    """
    Order a day's stops to minimise driving and show the timetable.
    """
    try:
        config = _load_config(config_file, verbose)
        tz = config.timezone
        day = _parse_date(date, tz)
        try:
            day_start = pendulum.from_format(f"{day.to_date_string()} {start}", "YYYY-MM-DD HH:mm", tz=tz)
        except ValueError as exc:
            raise typer.BadParameter(f"Invalid start time '{start}', expected HH:MM") from exc

        stop_requests = [_parse_stop(stop, duration) for stop in stops]
        planner = DayRoutePlanner(
            RouteOptimizer(build_distance_provider(config), max_iterations=config.routing.max_iterations),
            return_to_origin=config.routing.return_to_origin,
        )
        plan = planner.plan_day(
            origin=origin or config.origin,
            stops=stop_requests,
            day_start=day_start,
            return_to_origin=False if no_return else None,
        )

        table = Table(title=f"Route from {plan.route.origin_location}", show_header=True, header_style="bold cyan")
        table.add_column("#", style="dim")
        table.add_column("Stop", style="bold yellow")
        table.add_column("Drive")
        table.add_column("Arrive", style="bold")
        table.add_column("Leave")

        for position, stop in enumerate(plan.route.stops, 1):
            table.add_row(
                str(position),
                stop.label or stop.location,
                f"{stop.travel_minutes_from_previous} min / {stop.travel_km_from_previous:g} km",
                stop.arrival_time.format("HH:mm"),
                stop.departure_time.format("HH:mm"),
            )

        console.print()
        console.print(table)
        console.print(
            f"Total driving: [bold]{plan.route.total_travel_minutes} min[/bold], "
            f"{plan.route.total_distance_km:g} km. Done at {plan.finish_time.format('HH:mm')}. "
            f"Saved {plan.savings_minutes} min against the given order."
        )
        if plan.is_estimated:
            console.print("[yellow]⚠ Some travel times are estimates.[/yellow]")
        console.print()

    except (PlannerError, ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def travel_time(
    destination: Annotated[str, typer.Argument(help="Destination address")],
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file")] = None,
    origin: Annotated[Optional[str], typer.Option("--origin", help="Departure address, default from config")] = None,
):
    """
    Show the travel estimate between two addresses.
    """
    try:
        config = _load_config(config_file)
        start = origin or config.origin
        estimate = build_distance_provider(config).estimate(start, destination)
        marker = " (estimated)" if estimate.is_estimated else ""
        console.print(
            f"\n{start} → {destination}: [bold]{estimate.duration_minutes} min[/bold], "
            f"{estimate.distance_km:g} km{marker}\n"
        )
    except (PlannerError, ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def list_services(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="Path to config file"
    )
):
    """
    List all configured services.
    """
    try:
        config = _load_config(config_file)

        if not config.services:
            console.print("[yellow]No services defined in the config file.[/yellow]")
            return

        table = Table(
            title="Configured services",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Id", style="bold yellow")
        table.add_column("Name")
        table.add_column("Duration", justify="right")
        table.add_column("Buffers (before/after)", justify="right", style="dim")

        for service in config.services:
            table.add_row(
                service.id,
                service.display_name(),
                f"{service.duration_minutes} min",
                f"{service.buffer_before_minutes}/{service.buffer_after_minutes} min",
            )

        console.print()
        console.print(table)
        console.print()

    except (PlannerError, ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]visitplanner[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
