"""Month-grid index of appointments and reminders."""

import calendar
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .models import Appointment, AppointmentStatus, Reminder, ReminderStatus
from .timezones import local_day

MAX_VISIBLE_MARKERS = 4


class MarkerKind(Enum):
    """Compact dot shown in a day cell."""
    APPOINTMENT = "appointment"
    APPOINTMENT_RESTRICTED = "appointment_restricted"
    APPOINTMENT_COMPLETED = "appointment_completed"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    REMINDER_URGENT = "reminder_urgent"
    REMINDER_HIGH = "reminder_high"
    REMINDER_MEDIUM = "reminder_medium"
    REMINDER_LOW = "reminder_low"
    REMINDER_COMPLETED = "reminder_completed"


def appointment_marker(appointment: Appointment) -> MarkerKind:
    if appointment.status == AppointmentStatus.CANCELLED:
        return MarkerKind.APPOINTMENT_CANCELLED
    if appointment.status == AppointmentStatus.COMPLETED:
        return MarkerKind.APPOINTMENT_COMPLETED
    if appointment.is_restricted:
        return MarkerKind.APPOINTMENT_RESTRICTED
    return MarkerKind.APPOINTMENT


def reminder_marker(reminder: Reminder) -> MarkerKind:
    if reminder.status == ReminderStatus.COMPLETED:
        return MarkerKind.REMINDER_COMPLETED
    return MarkerKind("reminder_" + reminder.priority.value)


@dataclass
class DayMarkers:
    """Visible markers for one day plus the count that did not fit."""

    day: date
    markers: List[MarkerKind] = field(default_factory=list)
    overflow: int = 0

    @property
    def total(self) -> int:
        return len(self.markers) + self.overflow


@dataclass
class DayDetail:
    """Everything scheduled on a day, in display order."""

    day: date
    reminders: List[Reminder] = field(default_factory=list)
    appointments: List[Appointment] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.reminders and not self.appointments

    def __len__(self) -> int:
        return len(self.reminders) + len(self.appointments)


def sort_reminders(reminders: Iterable[Reminder]) -> List[Reminder]:
    """Urgent first, then high, medium, low; ties by earliest due date."""
    return sorted(reminders, key=lambda r: (-r.priority.rank, r.due_date))


def sort_appointments(appointments: Iterable[Appointment]) -> List[Appointment]:
    return sorted(appointments, key=lambda a: a.date)


class CalendarIndex:
    """Buckets a flat snapshot of appointments and reminders by local day.

    Built once per fetched snapshot; month navigation only reads from it.
    """

    def __init__(
        self,
        appointments: Iterable[Appointment] = (),
        reminders: Iterable[Reminder] = (),
        tz=None,
    ):
        self.tz = tz
        self._appointments: Dict[date, List[Appointment]] = defaultdict(list)
        self._reminders: Dict[date, List[Reminder]] = defaultdict(list)

        for apt in appointments:
            self._appointments[local_day(apt.date, tz)].append(apt)
        for reminder in reminders:
            self._reminders[local_day(reminder.due_date, tz)].append(reminder)

    def appointments_on(self, day: date) -> List[Appointment]:
        return sort_appointments(self._appointments.get(day, []))

    def reminders_on(self, day: date) -> List[Reminder]:
        return sort_reminders(self._reminders.get(day, []))

    def has_items(self, day: date) -> bool:
        return bool(self._appointments.get(day)) or bool(self._reminders.get(day))

    def day_detail(self, day: date) -> DayDetail:
        """Ordered detail list for a selected day, never truncated."""
        return DayDetail(
            day=day,
            reminders=self.reminders_on(day),
            appointments=self.appointments_on(day),
        )

    def markers_for_day(self, day: date, limit: int = MAX_VISIBLE_MARKERS) -> DayMarkers:
        detail = self.day_detail(day)
        kinds = [reminder_marker(r) for r in detail.reminders]
        kinds += [appointment_marker(a) for a in detail.appointments]
        return DayMarkers(day=day, markers=kinds[:limit], overflow=max(0, len(kinds) - limit))

    @staticmethod
    def month_days(year: int, month: int) -> List[date]:
        """Every day of the month, first to last."""
        days_in_month = calendar.monthrange(year, month)[1]
        first = date(year, month, 1)
        return [first + timedelta(days=i) for i in range(days_in_month)]

    @staticmethod
    def leading_blanks(year: int, month: int) -> int:
        """Empty cells before day 1 in a Sunday-first grid."""
        return (date(year, month, 1).weekday() + 1) % 7

    def month_summary(self, year: int, month: int, limit: int = MAX_VISIBLE_MARKERS) -> Dict[date, DayMarkers]:
        """Markers for every day of the month that has something on it."""
        return {
            day: self.markers_for_day(day, limit)
            for day in self.month_days(year, month)
            if self.has_items(day)
        }

    def month_counts(self, year: int, month: int) -> Dict[str, int]:
        """Totals for the month header."""
        appointments = 0
        reminders = 0
        for day in self.month_days(year, month):
            appointments += len(self._appointments.get(day, []))
            reminders += len(self._reminders.get(day, []))
        return {"appointments": appointments, "reminders": reminders}


def shift_month(year: int, month: int, delta: int) -> tuple:
    """Move (year, month) by delta months."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_of(day: Optional[date]) -> tuple:
    day = day or date.today()
    return day.year, day.month
