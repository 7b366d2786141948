"""Scheduling module for showings and tours."""

from .models import (
    Appointment,
    AppointmentMode,
    AppointmentStatus,
    Reminder,
    ReminderPriority,
    ReminderStatus,
    ReminderType,
    TourStop,
    Lead,
    Unit,
    Condominium,
)
from .slot_planner import (
    SlotPlanner,
    BookingForm,
    BookingRequest,
    SlotPlan,
    TourStopList,
    ValidationFailure,
    BookingValidationError,
    TourCapacityError,
)
from .calendar_index import CalendarIndex, DayDetail, DayMarkers, MarkerKind
from .lifecycle import CancellationFlow, CancelNotAllowedError, cancel_offered, detail_view

__all__ = [
    "Appointment",
    "AppointmentMode",
    "AppointmentStatus",
    "Reminder",
    "ReminderPriority",
    "ReminderStatus",
    "ReminderType",
    "TourStop",
    "Lead",
    "Unit",
    "Condominium",
    "SlotPlanner",
    "BookingForm",
    "BookingRequest",
    "SlotPlan",
    "TourStopList",
    "ValidationFailure",
    "BookingValidationError",
    "TourCapacityError",
    "CalendarIndex",
    "DayDetail",
    "DayMarkers",
    "MarkerKind",
    "CancellationFlow",
    "CancelNotAllowedError",
    "cancel_offered",
    "detail_view",
]
