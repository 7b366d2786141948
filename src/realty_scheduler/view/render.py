"""Rich renderables for the month grid, day detail and appointment detail."""

import io
from datetime import date
from typing import Dict, Optional, List

from rich import box
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..scheduling.calendar_index import CalendarIndex, DayDetail, DayMarkers, MarkerKind
from ..scheduling.lifecycle import AppointmentDetailView, detail_view
from ..scheduling.models import Appointment, AppointmentMode, AppointmentStatus, Reminder, ReminderStatus
from ..scheduling.timezones import to_local
from .calendar_view import Notice
from .labels import (
    MODE_LABELS,
    MONTHS,
    PRIORITY_LABELS,
    REMINDER_TYPE_LABELS,
    STATUS_LABELS,
    WEEKDAYS,
    label,
    message,
)

MARKER_STYLES = {
    MarkerKind.APPOINTMENT: ("●", "blue"),
    MarkerKind.APPOINTMENT_RESTRICTED: ("●", "grey50"),
    MarkerKind.APPOINTMENT_COMPLETED: ("●", "green"),
    MarkerKind.APPOINTMENT_CANCELLED: ("●", "red"),
    MarkerKind.REMINDER_URGENT: ("◆", "red"),
    MarkerKind.REMINDER_HIGH: ("◆", "dark_orange"),
    MarkerKind.REMINDER_MEDIUM: ("◆", "blue"),
    MarkerKind.REMINDER_LOW: ("◆", "grey50"),
    MarkerKind.REMINDER_COMPLETED: ("◆", "green"),
}

STATUS_STYLES = {
    AppointmentStatus.PENDING: "yellow",
    AppointmentStatus.CONFIRMED: "blue",
    AppointmentStatus.COMPLETED: "green",
    AppointmentStatus.CANCELLED: "red",
}

NOTICE_STYLES = {"success": "green", "error": "red", "warning": "yellow"}


def _hhmm(instant, tz) -> str:
    return to_local(instant, tz).strftime("%H:%M")


def markers_text(day_markers: DayMarkers) -> Text:
    text = Text()
    for kind in day_markers.markers:
        glyph, style = MARKER_STYLES[kind]
        text.append(glyph, style=style)
    if day_markers.overflow:
        text.append(f"+{day_markers.overflow}", style="dim")
    return text


def render_month(
    index: CalendarIndex,
    year: int,
    month: int,
    language: str = "es",
    today: Optional[date] = None,
    selected: Optional[date] = None,
) -> Table:
    """Sunday-first month grid with presence markers per day."""
    title = f"{MONTHS[language][month - 1].capitalize()} {year}"
    table = Table(title=title, box=box.SIMPLE_HEAVY, show_lines=False)
    for name in WEEKDAYS[language]:
        table.add_column(name, justify="center", min_width=6)

    summary: Dict[date, DayMarkers] = index.month_summary(year, month)
    cells: List[Text] = [Text("") for _ in range(index.leading_blanks(year, month))]

    for day in index.month_days(year, month):
        cell = Text(str(day.day))
        if day == selected:
            cell.stylize("reverse")
        elif day == today:
            cell.stylize("bold")
        if day in summary:
            cell.append("\n")
            cell.append_text(markers_text(summary[day]))
        cells.append(cell)

    while len(cells) % 7:
        cells.append(Text(""))
    for week in range(0, len(cells), 7):
        table.add_row(*cells[week:week + 7])

    return table


def _reminder_row(reminder: Reminder, language: str, tz) -> List[Text]:
    done = reminder.status == ReminderStatus.COMPLETED
    title = Text(reminder.title, style="strike dim" if done else "")
    return [
        Text(_hhmm(reminder.due_date, tz)),
        title,
        Text(label(REMINDER_TYPE_LABELS, reminder.reminder_type, language)),
        Text(label(PRIORITY_LABELS, reminder.priority, language),
             style=MARKER_STYLES[MarkerKind("reminder_" + reminder.priority.value)][1]),
    ]


def _appointment_row(appointment: Appointment, language: str, tz) -> List[Text]:
    window = f"{_hhmm(appointment.date, tz)} - {_hhmm(appointment.end_time, tz)}"
    client = Text(appointment.client_name, style="dim" if appointment.is_restricted else "")
    if appointment.is_restricted:
        client.append(" (" + message("limited_view", language) + ")", style="dim italic")

    if appointment.mode == AppointmentMode.TOUR:
        where = f"Tour ({len(appointment.tour_stops)})"
    else:
        where = appointment.property_label
    return [
        Text(window),
        client,
        Text(where),
        Text(label(STATUS_LABELS, appointment.status, language), style=STATUS_STYLES[appointment.status]),
        Text(appointment.id, style="dim"),
    ]


def render_day(detail: DayDetail, language: str = "es", tz=None) -> Group:
    """Reminders first, then appointments, as ordered by the index."""
    parts = []
    heading = f"{detail.day.isoformat()} · {len(detail.appointments)} {message('appointments', language)}"
    parts.append(Text(heading, style="bold"))

    if detail.is_empty:
        parts.append(Text(message("no_items", language), style="dim"))
        return Group(*parts)

    if detail.reminders:
        reminders = Table(title=message("reminders", language), box=box.MINIMAL, show_header=False)
        for _ in range(4):
            reminders.add_column()
        for reminder in detail.reminders:
            reminders.add_row(*_reminder_row(reminder, language, tz))
        parts.append(reminders)

    if detail.appointments:
        appointments = Table(box=box.MINIMAL, show_header=False)
        for _ in range(5):
            appointments.add_column()
        for apt in detail.appointments:
            appointments.add_row(*_appointment_row(apt, language, tz))
        parts.append(appointments)

    return Group(*parts)


def render_detail(view: AppointmentDetailView, language: str = "es", tz=None) -> Panel:
    """Appointment detail; phone, email and notes are absent from restricted views."""
    lines = Text()
    lines.append(label(STATUS_LABELS, view.status, language), style=STATUS_STYLES[view.status])
    if view.is_restricted:
        lines.append("  [" + message("limited_view", language) + "]", style="dim")
    lines.append("\n\n")

    start = to_local(view.start, tz)
    lines.append(start.strftime("%Y-%m-%d") + "\n", style="bold")
    lines.append(f"{_hhmm(view.start, tz)} - {_hhmm(view.end, tz)}\n\n")

    lines.append(view.client_name + "\n", style="bold")
    if view.client_phone:
        lines.append(view.client_phone + "\n")
    if view.client_email:
        lines.append(view.client_email + "\n")

    if view.condominium_name:
        lines.append("\n" + view.condominium_name + "\n", style="bold")
        if view.unit_number:
            lines.append(f"{message('unit', language)} {view.unit_number}\n")

    if view.stops:
        lines.append("\n")
        for stop in view.stops:
            lines.append(f"{stop.sequence + 1}. {_hhmm(stop.start, tz)}  {stop.label}\n")
            if stop.notes:
                lines.append(f"   {stop.notes}\n", style="italic")

    if view.notes:
        lines.append("\n" + view.notes + "\n", style="italic")

    if view.cancel_offered:
        lines.append("\n[" + message("cancel_action", language) + "]", style="red")

    return Panel(lines, title=label(MODE_LABELS, view.mode, language), subtitle=view.id, expand=False)


def render_appointment(appointment: Appointment, language: str = "es", tz=None) -> Panel:
    return render_detail(detail_view(appointment), language, tz)


def render_notice(notice: Notice) -> Text:
    text = Text(notice.title, style=f"bold {NOTICE_STYLES.get(notice.level, '')}".strip())
    if notice.description:
        text.append(f": {notice.description}")
    return text


def to_text(renderable, width: int = 100) -> str:
    """Render to plain text, for logs and tests."""
    console = Console(width=width, record=True, file=io.StringIO(), color_system=None)
    console.print(renderable)
    return console.export_text()
