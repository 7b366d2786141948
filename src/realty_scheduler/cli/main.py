"""Main CLI entry point for the showing scheduler."""

import logging
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.table import Table
from rich.prompt import Confirm

from ..config import settings
from ..gateway import GatewayError, InMemoryBookingGateway, RestBookingGateway
from ..scheduling.calendar_index import sort_reminders
from ..scheduling.lifecycle import CancelNotAllowedError, DEFAULT_CANCEL_REASON
from ..scheduling.models import (
    Appointment,
    AppointmentMode,
    AppointmentStatus,
    Condominium,
    Lead,
    Reminder,
    ReminderPriority,
    ReminderType,
    Unit,
)
from ..scheduling.slot_planner import SlotPlanner
from ..scheduling.timezones import combine_local, local_day
from ..view import CalendarViewModel, render_appointment, render_day, render_month, render_notice
from ..view.labels import PRIORITY_LABELS, REMINDER_TYPE_LABELS, label, message

console = Console()


def demo_gateway(tz=None) -> InMemoryBookingGateway:
    """Gateway pre-loaded with a small sample agenda."""
    today = datetime.now(tz).date()
    planner = SlotPlanner(tz)
    condos = [Condominium("c1", "Aldea Zama"), Condominium("c2", "Selvanova")]
    units = [
        Unit("u1", "A-101", "c1", "Aldea Zama"),
        Unit("u2", "B-204", "c1", "Aldea Zama"),
        Unit("u3", "PH-3", "c2", "Selvanova"),
    ]
    leads = [
        Lead("l1", "María", "López", "+52 984 100 2000", "maria@example.com"),
        Lead("l2", "John", "Carter", "+1 555 0100"),
    ]

    showing = planner.plan_slots(AppointmentMode.INDIVIDUAL, combine_local(today, "10:00", tz))
    restricted = planner.plan_slots(AppointmentMode.INDIVIDUAL, combine_local(today, "16:00", tz))
    appointments = [
        Appointment(
            id="apt-1", date=showing.start, end_time=showing.end,
            mode=AppointmentMode.INDIVIDUAL, status=AppointmentStatus.CONFIRMED,
            client_name="María López", lead_id="l1", client_phone="+52 984 100 2000",
            unit_id="u1", condominium_name="Aldea Zama", unit_number="A-101",
            notes="Wants a ground floor unit", can_edit=True, can_cancel=True,
        ),
        Appointment(
            id="apt-2", date=restricted.start, end_time=restricted.end,
            mode=AppointmentMode.INDIVIDUAL, status=AppointmentStatus.PENDING,
            client_name="Cliente de otro asesor", lead_id="l9", client_phone="+52 984 000 0000",
            condominium_name="Selvanova", unit_number="PH-3",
            notes="Private", is_restricted=True,
        ),
    ]
    reminders = [
        Reminder("r1", "l2", ReminderType.CALL, "Call John about financing",
                 combine_local(today, "09:00", tz), ReminderPriority.URGENT),
        Reminder("r2", "l1", ReminderType.WHATSAPP, "Send brochure",
                 combine_local(today + timedelta(days=1), "12:00", tz), ReminderPriority.LOW),
    ]
    return InMemoryBookingGateway(appointments, reminders, leads, units, condos)


def get_view_model(ctx: click.Context) -> CalendarViewModel:
    """Build the view-model for the configured gateway."""
    obj = ctx.ensure_object(dict)
    if "vm" not in obj:
        tz = settings.tz
        gateway = demo_gateway(tz) if obj.get("demo") else RestBookingGateway.from_settings(settings)
        obj["vm"] = CalendarViewModel(gateway, tz=tz, language=obj.get("language") or settings.language)
    return obj["vm"]


def print_notices(vm: CalendarViewModel):
    for notice in vm.pop_notices():
        console.print(render_notice(notice))


def warn_unavailable(vm: CalendarViewModel):
    for name in sorted(vm.unavailable):
        console.print(f"[yellow]{message('load_failed', vm.language)}: {name}[/yellow]")


def parse_day(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"{value!r} is not a YYYY-MM-DD date")


@click.group()
@click.version_option(version="1.0.0", prog_name="scheduler")
@click.option("--demo", is_flag=True, help="Use built-in sample data instead of the booking server")
@click.option("--lang", "language", type=click.Choice(["es", "en"]), help="Display language")
@click.option("--verbose", "-v", is_flag=True, help="Log gateway traffic")
@click.pass_context
def cli(ctx: click.Context, demo: bool, language: Optional[str], verbose: bool):
    """Showing scheduler - book showings and tours, browse the agent calendar.

    \b
    Quick Start:
      scheduler month                                   # Current month grid
      scheduler day 2024-03-10                          # Day detail
      scheduler book -l LEAD -d 2024-03-10 -t 10:00 -u UNIT
      scheduler book -l LEAD -d 2024-03-10 -s CONDO:UNIT -s CONDO:UNIT
      scheduler cancel APPOINTMENT_ID
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    ctx.ensure_object(dict)
    ctx.obj["demo"] = demo
    ctx.obj["language"] = language


@cli.command()
@click.option("--year", type=int, help="Year to show")
@click.option("--month", type=click.IntRange(1, 12), help="Month to show")
@click.pass_context
def month(ctx: click.Context, year: Optional[int], month: Optional[int]):
    """Show the month grid with appointment and reminder markers."""
    vm = get_view_model(ctx)
    vm.load()
    warn_unavailable(vm)

    if year or month:
        vm.year = year or vm.year
        vm.month = month or vm.month

    console.print(render_month(vm.index, vm.year, vm.month, vm.language, today=vm.today))
    counts = vm.index.month_counts(vm.year, vm.month)
    console.print(f"[dim]{counts['appointments']} {message('appointments', vm.language)}, "
                  f"{counts['reminders']} {message('reminders', vm.language).lower()}[/dim]")


@cli.command()
@click.argument("day", required=False)
@click.pass_context
def day(ctx: click.Context, day: Optional[str]):
    """Show reminders and appointments for a day (default today)."""
    vm = get_view_model(ctx)
    vm.load()
    warn_unavailable(vm)

    vm.select_day(parse_day(day) or vm.today)
    console.print(render_day(vm.selected_detail, vm.language, vm.tz))


@cli.command()
@click.argument("appointment_id")
@click.pass_context
def show(ctx: click.Context, appointment_id: str):
    """Show one appointment; restricted ones hide contact details and notes."""
    vm = get_view_model(ctx)
    vm.load()

    appointment = vm.find_appointment(appointment_id)
    if not appointment:
        console.print(f"[red]Appointment {appointment_id} not found[/red]")
        raise SystemExit(1)

    console.print(render_appointment(appointment, vm.language, vm.tz))


def parse_stop(value: str) -> Tuple[str, str]:
    condominium_id, _, unit_id = value.partition(":")
    if not condominium_id or not unit_id:
        raise click.BadParameter(f"{value!r} is not CONDOMINIUM:UNIT")
    return condominium_id, unit_id


@cli.command()
@click.option("--lead", "-l", "lead_id", required=True, help="Lead ID")
@click.option("--date", "-d", "day", required=True, help="Day (YYYY-MM-DD)")
@click.option("--time", "-t", "start", default="10:00", show_default=True, help="Start time (HH:MM)")
@click.option("--unit", "-u", "unit_id", help="Unit for an individual showing")
@click.option("--stop", "-s", "stops", multiple=True, help="Tour stop as CONDOMINIUM:UNIT, in visit order")
@click.option("--notes", "-n", default="", help="Notes for the appointment")
@click.pass_context
def book(ctx: click.Context, lead_id: str, day: str, start: str, unit_id: Optional[str],
         stops: Tuple[str, ...], notes: str):
    """Book an individual showing (60 min) or a tour (30 min per stop, max 3)."""
    vm = get_view_model(ctx)
    vm.load()
    vm.load_reference_data()
    warn_unavailable(vm)

    form = vm.open_booking(parse_day(day))
    form.time = start
    form.notes = notes

    if not vm.select_lead(lead_id):
        console.print(f"[red]Lead {lead_id} not found[/red]")
        raise SystemExit(1)

    if stops:
        vm.switch_mode(AppointmentMode.TOUR)
        for value in stops:
            condominium_id, stop_unit = parse_stop(value)
            if not vm.add_tour_stop(condominium_id, stop_unit):
                print_notices(vm)
                raise SystemExit(1)
    else:
        form.unit_id = unit_id or ""

    for overlap in vm.advisory_overlaps():
        console.print(f"[yellow]{message('overlap_warning', vm.language)}: "
                      f"{overlap.client_name} ({overlap.id})[/yellow]")

    created = vm.submit()
    print_notices(vm)
    if not created:
        raise SystemExit(1)

    console.print(render_appointment(created, vm.language, vm.tz))


@cli.command()
@click.argument("appointment_id")
@click.option("--reason", "-r", default=DEFAULT_CANCEL_REASON, show_default=True, help="Cancellation reason")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def cancel(ctx: click.Context, appointment_id: str, reason: str, yes: bool):
    """Cancel an appointment after confirmation."""
    vm = get_view_model(ctx)
    vm.load()

    try:
        vm.open_cancel(appointment_id)
    except CancelNotAllowedError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)

    if not yes and not Confirm.ask(message("confirm_cancel", vm.language)):
        vm.abort_cancel()
        return

    updated = vm.confirm_cancel(reason)
    print_notices(vm)
    if not updated:
        raise SystemExit(1)


@cli.command()
@click.option("--days", default=7, show_default=True, help="How many days ahead to list")
@click.pass_context
def reminders(ctx: click.Context, days: int):
    """List upcoming lead reminders by day and priority."""
    vm = get_view_model(ctx)
    try:
        items = vm.gateway.fetch_reminders()
    except GatewayError as e:
        console.print(f"[yellow]{message('load_failed', vm.language)}: {e}[/yellow]")
        items = []

    end = vm.today + timedelta(days=days)
    upcoming = [r for r in items if vm.today <= local_day(r.due_date, vm.tz) < end]
    if not upcoming:
        console.print("[yellow]No upcoming reminders.[/yellow]")
        return

    table = Table(title=f"{message('reminders', vm.language)} ({len(upcoming)})")
    table.add_column("Day")
    table.add_column("Title", style="cyan")
    table.add_column("Type")
    table.add_column("Priority")
    table.add_column("Status", style="dim")

    for current in sorted({local_day(r.due_date, vm.tz) for r in upcoming}):
        for reminder in sort_reminders(r for r in upcoming if local_day(r.due_date, vm.tz) == current):
            table.add_row(
                current.isoformat(),
                reminder.title,
                label(REMINDER_TYPE_LABELS, reminder.reminder_type, vm.language),
                label(PRIORITY_LABELS, reminder.priority, vm.language),
                reminder.status.value,
            )

    console.print(table)


if __name__ == "__main__":
    cli()
