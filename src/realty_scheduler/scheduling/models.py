"""Data models for appointments, tour stops and reminders."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List

from .timezones import minutes_between


class AppointmentMode(Enum):
    """How an appointment visits properties."""
    INDIVIDUAL = "individual"
    TOUR = "tour"


class AppointmentStatus(Enum):
    """Appointment status, owned by the booking server."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReminderPriority(Enum):
    """Reminder priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Higher rank sorts first in the day detail."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    ReminderPriority.URGENT: 3,
    ReminderPriority.HIGH: 2,
    ReminderPriority.MEDIUM: 1,
    ReminderPriority.LOW: 0,
}


class ReminderStatus(Enum):
    """Reminder status."""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReminderType(Enum):
    """Kind of follow-up a reminder asks for."""
    FOLLOW_UP = "follow_up"
    CALL = "call"
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    MEETING = "meeting"
    DOCUMENT = "document"
    OTHER = "other"


@dataclass
class TourStop:
    """One property visited during a tour.

    The stop's sequence is its index in the owning list, it is not stored.
    """

    unit_id: str
    condominium_id: str
    notes: str = ""

    # Display labels, filled from the unit catalog when known
    condominium_name: Optional[str] = None
    unit_number: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.unit_id) and bool(self.condominium_id)


@dataclass
class Appointment:
    """A showing or tour as returned by the booking server."""

    id: str
    date: datetime
    end_time: datetime
    mode: AppointmentMode
    status: AppointmentStatus
    client_name: str
    lead_id: str = ""

    client_phone: Optional[str] = None
    client_email: Optional[str] = None

    # Individual mode
    unit_id: Optional[str] = None
    condominium_name: Optional[str] = None
    unit_number: Optional[str] = None

    # Tour mode
    tour_stops: List[TourStop] = field(default_factory=list)

    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None

    # Server-asserted viewer permissions
    is_restricted: bool = False
    can_edit: bool = False
    can_cancel: bool = False

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.date, self.end_time)

    @property
    def property_label(self) -> str:
        """Condominium and unit, as shown on the day card."""
        if not self.condominium_name:
            return ""
        if self.unit_number:
            return f"{self.condominium_name} - {self.unit_number}"
        return self.condominium_name


@dataclass
class Reminder:
    """A lead follow-up reminder, read-only to the scheduler."""

    id: str
    lead_id: str
    reminder_type: ReminderType
    title: str
    due_date: datetime
    priority: ReminderPriority = ReminderPriority.MEDIUM
    status: ReminderStatus = ReminderStatus.PENDING
    description: Optional[str] = None


@dataclass
class Lead:
    """Prospective client, source of the contact fields on a booking."""

    id: str
    first_name: str
    last_name: str = ""
    phone: str = ""
    email: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Condominium:
    """Building that holds units."""

    id: str
    name: str


@dataclass
class Unit:
    """A property that can be shown."""

    id: str
    unit_number: str
    condominium_id: str
    condominium_name: Optional[str] = None
    is_active: bool = True
