"""Slot planning and pre-submission validation for showings and tours."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, List, Dict, Iterable, Iterator

from .models import Appointment, AppointmentMode, AppointmentStatus, Lead, TourStop, Unit
from .timezones import add_minutes, as_utc, combine_local, minutes_between, to_local

logger = logging.getLogger(__name__)

INDIVIDUAL_DURATION_MINUTES = 60
TOUR_STOP_MINUTES = 30
MAX_TOUR_STOPS = 3
DEFAULT_START_TIME = "10:00"


class ValidationFailure(Enum):
    """Which booking rule rejected the form."""
    MISSING_LEAD = "missing_lead"
    MISSING_UNIT = "missing_unit"
    EMPTY_TOUR = "empty_tour"
    INCOMPLETE_TOUR_STOP = "incomplete_tour_stop"
    DUPLICATE_TOUR_UNIT = "duplicate_tour_unit"
    INVALID_TIME = "invalid_time"

    @property
    def message(self) -> str:
        return _FAILURE_MESSAGES[self]


_FAILURE_MESSAGES = {
    ValidationFailure.MISSING_LEAD: "Select a lead",
    ValidationFailure.MISSING_UNIT: "Select a property",
    ValidationFailure.EMPTY_TOUR: "Add at least one property to the tour",
    ValidationFailure.INCOMPLETE_TOUR_STOP: "Every tour stop needs a condominium and a unit",
    ValidationFailure.DUPLICATE_TOUR_UNIT: "duplicate unit in tour",
    ValidationFailure.INVALID_TIME: "Select a valid date and time",
}


class BookingValidationError(ValueError):
    """A booking form failed local validation; nothing was sent."""

    def __init__(self, failure: ValidationFailure, detail: str = ""):
        self.failure = failure
        self.detail = detail
        super().__init__(f"{failure.message}: {detail}" if detail else failure.message)


class TourCapacityError(ValueError):
    """Raised when a tour would exceed the maximum number of stops."""


class TourStopList:
    """Ordered, index-stable sequence of tour stops, capped at three."""

    def __init__(self, stops: Optional[Iterable[TourStop]] = None, capacity: int = MAX_TOUR_STOPS):
        self.capacity = capacity
        self._stops: List[TourStop] = []
        for stop in stops or []:
            self.append(stop)

    def __len__(self) -> int:
        return len(self._stops)

    def __iter__(self) -> Iterator[TourStop]:
        return iter(self._stops)

    def __getitem__(self, index: int) -> TourStop:
        return self._stops[index]

    @property
    def is_full(self) -> bool:
        return len(self._stops) >= self.capacity

    def _check_capacity(self):
        if self.is_full:
            raise TourCapacityError(f"Maximum {self.capacity} properties per tour")

    def append(self, stop: Optional[TourStop] = None) -> TourStop:
        """Add a stop at the end; a blank stop when none is given."""
        return self.insert_at(len(self._stops), stop)

    def insert_at(self, index: int, stop: Optional[TourStop] = None) -> TourStop:
        self._check_capacity()
        if not 0 <= index <= len(self._stops):
            raise IndexError(f"Tour stop index {index} out of range")
        stop = stop or TourStop(unit_id="", condominium_id="")
        self._stops.insert(index, stop)
        return stop

    def remove_at(self, index: int) -> TourStop:
        return self._stops.pop(index)

    def move(self, from_index: int, to_index: int):
        """Reorder a stop; other stops keep their relative order."""
        if not 0 <= to_index < len(self._stops):
            raise IndexError(f"Tour stop index {to_index} out of range")
        stop = self._stops.pop(from_index)
        self._stops.insert(to_index, stop)

    def update_at(self, index: int, **changes) -> TourStop:
        stop = self._stops[index]
        for key, value in changes.items():
            if not hasattr(stop, key):
                raise AttributeError(f"TourStop has no field {key!r}")
            setattr(stop, key, value)
        return stop

    def clear(self):
        self._stops.clear()

    def taken_unit_ids(self, except_index: Optional[int] = None) -> set:
        """Units already used by other stops, to filter a stop's unit picker."""
        return {
            s.unit_id for i, s in enumerate(self._stops)
            if s.unit_id and i != except_index
        }

    def to_list(self) -> List[TourStop]:
        return list(self._stops)


@dataclass
class BookingForm:
    """In-progress booking as the agent fills it in."""

    day: Optional[date] = None
    time: str = DEFAULT_START_TIME
    mode: AppointmentMode = AppointmentMode.INDIVIDUAL
    lead_id: str = ""
    client_name: str = ""
    client_phone: str = ""
    client_email: str = ""
    notes: str = ""
    unit_id: str = ""
    tour_stops: TourStopList = field(default_factory=TourStopList)

    def select_lead(self, lead: Lead):
        """Copy the lead's contact fields onto the booking."""
        self.lead_id = lead.id
        self.client_name = lead.full_name
        self.client_phone = lead.phone or ""
        self.client_email = lead.email or ""

    def switch_mode(self, mode: AppointmentMode):
        """Change mode, dropping the other mode's property selection."""
        self.mode = mode
        if mode == AppointmentMode.INDIVIDUAL:
            self.tour_stops.clear()
        else:
            self.unit_id = ""


@dataclass
class Slot:
    """Computed window for one stop of an appointment."""

    sequence: int
    start: datetime
    end: datetime
    plan_start: datetime
    unit_id: str = ""

    @property
    def offset_minutes(self) -> int:
        """Minutes from the appointment start to this stop."""
        return minutes_between(self.plan_start, self.start)


@dataclass
class SlotPlan:
    """Start, end and per-stop windows for a booking."""

    mode: AppointmentMode
    start: datetime
    end: datetime
    slots: List[Slot] = field(default_factory=list)

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start, self.end)


@dataclass
class BookingRequest:
    """Normalized create request, ready for the booking gateway."""

    mode: AppointmentMode
    lead_id: str
    client_name: str
    date: datetime
    end_time: datetime
    client_phone: str = ""
    client_email: str = ""
    notes: str = ""
    unit_id: Optional[str] = None
    condominium_name: Optional[str] = None
    unit_number: Optional[str] = None
    tour_stops: List[TourStop] = field(default_factory=list)


class SlotPlanner:
    """Turn a booking form into a validation failure or a booking request.

    Overlap with existing appointments is never checked here: the server is
    the authority on double booking. ``advisory_overlaps`` only reports them.
    """

    def __init__(self, tz=None):
        self.tz = tz

    def validate(self, form: BookingForm) -> Optional[ValidationFailure]:
        """Return the first rule the form breaks, or None."""
        if not form.lead_id:
            return ValidationFailure.MISSING_LEAD

        if form.mode == AppointmentMode.INDIVIDUAL:
            if not form.unit_id:
                return ValidationFailure.MISSING_UNIT
        else:
            if len(form.tour_stops) == 0:
                return ValidationFailure.EMPTY_TOUR
            if not all(stop.is_complete for stop in form.tour_stops):
                return ValidationFailure.INCOMPLETE_TOUR_STOP
            unit_ids = [stop.unit_id for stop in form.tour_stops]
            if len(set(unit_ids)) != len(unit_ids):
                return ValidationFailure.DUPLICATE_TOUR_UNIT

        if form.day is None:
            return ValidationFailure.INVALID_TIME
        try:
            combine_local(form.day, form.time, self.tz)
        except ValueError:
            return ValidationFailure.INVALID_TIME

        return None

    def plan_slots(self, mode: AppointmentMode, start: datetime, stop_count: int = 1) -> SlotPlan:
        """Derive end time and per-stop windows from a start instant."""
        if mode == AppointmentMode.INDIVIDUAL:
            end = add_minutes(start, INDIVIDUAL_DURATION_MINUTES)
            return SlotPlan(mode, start, end, [Slot(0, start, end, start)])

        if not 1 <= stop_count <= MAX_TOUR_STOPS:
            raise ValueError(f"A tour has 1 to {MAX_TOUR_STOPS} stops, got {stop_count}")

        slots = [
            Slot(
                i,
                add_minutes(start, TOUR_STOP_MINUTES * i),
                add_minutes(start, TOUR_STOP_MINUTES * (i + 1)),
                start,
            )
            for i in range(stop_count)
        ]
        return SlotPlan(mode, start, add_minutes(start, TOUR_STOP_MINUTES * stop_count), slots)

    def plan(self, form: BookingForm) -> SlotPlan:
        """Validate the form and compute its slot plan."""
        failure = self.validate(form)
        if failure:
            raise BookingValidationError(failure)

        start = combine_local(form.day, form.time, self.tz)
        if form.mode == AppointmentMode.INDIVIDUAL:
            plan = self.plan_slots(form.mode, start)
            plan.slots[0].unit_id = form.unit_id
        else:
            plan = self.plan_slots(form.mode, start, len(form.tour_stops))
            for slot, stop in zip(plan.slots, form.tour_stops):
                slot.unit_id = stop.unit_id
        return plan

    def build_request(self, form: BookingForm, units: Optional[Dict[str, Unit]] = None) -> BookingRequest:
        """Build the create request, raising BookingValidationError on bad input."""
        plan = self.plan(form)
        units = units or {}

        request = BookingRequest(
            mode=form.mode,
            lead_id=form.lead_id,
            client_name=form.client_name,
            client_phone=form.client_phone,
            client_email=form.client_email,
            date=plan.start,
            end_time=plan.end,
            notes=form.notes,
        )

        if form.mode == AppointmentMode.INDIVIDUAL:
            unit = units.get(form.unit_id)
            request.unit_id = form.unit_id
            if unit:
                request.condominium_name = unit.condominium_name
                request.unit_number = unit.unit_number
        else:
            stops = []
            for stop in form.tour_stops:
                unit = units.get(stop.unit_id)
                stops.append(TourStop(
                    unit_id=stop.unit_id,
                    condominium_id=stop.condominium_id,
                    notes=stop.notes,
                    condominium_name=unit.condominium_name if unit else stop.condominium_name,
                    unit_number=unit.unit_number if unit else stop.unit_number,
                ))
            request.tour_stops = stops

        logger.debug(f"Built {form.mode.value} booking for lead {form.lead_id} at {plan.start.isoformat()}")
        return request

    def advisory_overlaps(self, plan: SlotPlan, appointments: Iterable[Appointment]) -> List[Appointment]:
        """Existing live appointments whose window intersects the plan.

        Shown to the agent while booking; never blocks submission.
        """
        plan_day = to_local(plan.start, self.tz).date()
        overlaps = []
        for apt in appointments:
            if apt.status == AppointmentStatus.CANCELLED:
                continue
            if to_local(apt.date, self.tz).date() != plan_day:
                continue
            if as_utc(apt.date) < as_utc(plan.end) and as_utc(apt.end_time) > as_utc(plan.start):
                overlaps.append(apt)
        return sorted(overlaps, key=lambda a: as_utc(a.date))
