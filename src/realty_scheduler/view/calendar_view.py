"""View-model for the seller calendar page.

Holds the last fetched snapshot, the month being shown, the selected day and
the booking form. Mutations go through the booking gateway and are followed
by a full re-fetch; nothing is changed locally ahead of the server.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, List, Dict, Set

from ..gateway.base import BookingGateway, GatewayError
from ..scheduling.calendar_index import CalendarIndex, DayDetail, DayMarkers, month_of, shift_month
from ..scheduling.lifecycle import (
    CancellationFlow,
    CancelNotAllowedError,
    DEFAULT_CANCEL_REASON,
    check_server_transition,
)
from ..scheduling.models import Appointment, AppointmentMode, Condominium, Lead, Reminder, Unit
from ..scheduling.slot_planner import (
    BookingForm,
    BookingValidationError,
    SlotPlanner,
    TourCapacityError,
)
from ..scheduling.timezones import to_local
from .labels import VALIDATION_LABELS, label, message

logger = logging.getLogger(__name__)


@dataclass
class Notice:
    """User-visible acknowledgement, rendered as a toast."""

    level: str  # "success", "error", "warning"
    title: str
    description: str = ""


class CalendarViewModel:
    """Calendar page state and actions."""

    def __init__(
        self,
        gateway: BookingGateway,
        tz=None,
        language: str = "es",
        today: Optional[date] = None,
    ):
        self.gateway = gateway
        self.tz = tz
        self.language = language
        self.planner = SlotPlanner(tz)

        self.today = today or to_local(datetime.now().astimezone(), tz).date()
        self.year, self.month = month_of(self.today)
        self.selected_day: Optional[date] = None

        self.appointments: List[Appointment] = []
        self.reminders: List[Reminder] = []
        self.index = CalendarIndex(tz=tz)

        self.leads: List[Lead] = []
        self.units: List[Unit] = []
        self.condominiums: List[Condominium] = []
        self.unavailable: Set[str] = set()

        self.form: Optional[BookingForm] = None
        self.submitting = False
        self.cancel_flow: Optional[CancellationFlow] = None
        self.notices: List[Notice] = []

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _notify(self, level: str, title: str, description: str = "") -> Notice:
        notice = Notice(level, title, description)
        self.notices.append(notice)
        return notice

    def pop_notices(self) -> List[Notice]:
        notices, self.notices = self.notices, []
        return notices

    def load(self):
        """Fetch appointments and reminders; failures leave empty collections."""
        previous: Dict[str, Appointment] = {a.id: a for a in self.appointments}

        try:
            self.appointments = self.gateway.fetch()
            self.unavailable.discard("appointments")
        except GatewayError as e:
            logger.warning(f"Appointments unavailable: {e}")
            self.appointments = []
            self.unavailable.add("appointments")

        try:
            self.reminders = self.gateway.fetch_reminders()
            self.unavailable.discard("reminders")
        except GatewayError as e:
            logger.warning(f"Reminders unavailable: {e}")
            self.reminders = []
            self.unavailable.add("reminders")

        for apt in self.appointments:
            if apt.id in previous:
                check_server_transition(previous[apt.id], apt)

        self.index = CalendarIndex(self.appointments, self.reminders, self.tz)

    def load_reference_data(self):
        """Fetch leads, condominiums and units for the booking form."""
        for name, fetch in (
            ("leads", self.gateway.fetch_leads),
            ("condominiums", self.gateway.fetch_condominiums),
            ("units", self.gateway.fetch_units),
        ):
            try:
                setattr(self, name, fetch())
                self.unavailable.discard(name)
            except GatewayError as e:
                logger.warning(f"{name.capitalize()} unavailable: {e}")
                setattr(self, name, [])
                self.unavailable.add(name)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next_month(self):
        self.year, self.month = shift_month(self.year, self.month, 1)

    def previous_month(self):
        self.year, self.month = shift_month(self.year, self.month, -1)

    def go_to_today(self):
        self.year, self.month = month_of(self.today)
        self.selected_day = self.today

    def select_day(self, day: date):
        self.selected_day = day
        self.year, self.month = month_of(day)

    @property
    def month_markers(self) -> Dict[date, DayMarkers]:
        return self.index.month_summary(self.year, self.month)

    @property
    def selected_detail(self) -> Optional[DayDetail]:
        if self.selected_day is None:
            return None
        return self.index.day_detail(self.selected_day)

    def find_appointment(self, appointment_id: str) -> Optional[Appointment]:
        for apt in self.appointments:
            if apt.id == appointment_id:
                return apt
        return None

    # ------------------------------------------------------------------
    # Booking form
    # ------------------------------------------------------------------

    def open_booking(self, day: Optional[date] = None) -> BookingForm:
        self.form = BookingForm(day=day or self.selected_day or self.today)
        return self.form

    def close_booking(self):
        self.form = None

    def _require_form(self) -> BookingForm:
        if self.form is None:
            raise RuntimeError("No booking in progress")
        return self.form

    def select_lead(self, lead_id: str) -> bool:
        """Pick a lead and copy its contact details onto the booking."""
        form = self._require_form()
        lead = next((candidate for candidate in self.leads if candidate.id == lead_id), None)
        if lead is None:
            return False
        form.select_lead(lead)
        return True

    def switch_mode(self, mode: AppointmentMode):
        self._require_form().switch_mode(mode)

    @property
    def unit_picker_enabled(self) -> bool:
        """The unit dropdown stays disabled until units have loaded."""
        return "units" not in self.unavailable and bool(self.units)

    def units_for(self, condominium_id: Optional[str] = None, stop_index: Optional[int] = None) -> List[Unit]:
        """Units offered in a picker, hiding ones already used by other tour stops."""
        taken: Set[str] = set()
        if self.form is not None and self.form.mode == AppointmentMode.TOUR:
            taken = self.form.tour_stops.taken_unit_ids(except_index=stop_index)
        return [
            u for u in self.units
            if u.is_active
            and (not condominium_id or u.condominium_id == condominium_id)
            and u.id not in taken
        ]

    def add_tour_stop(self, condominium_id: str = "", unit_id: str = "", notes: str = "") -> bool:
        """Append a tour stop; a fourth stop is refused with a notice."""
        form = self._require_form()
        try:
            stop = form.tour_stops.append()
        except TourCapacityError:
            self._notify("error", message("max_tour_stops", self.language))
            return False
        stop.condominium_id = condominium_id
        stop.unit_id = unit_id
        stop.notes = notes
        return True

    def remove_tour_stop(self, index: int):
        self._require_form().tour_stops.remove_at(index)

    def update_tour_stop(self, index: int, **changes):
        self._require_form().tour_stops.update_at(index, **changes)

    def move_tour_stop(self, from_index: int, to_index: int):
        self._require_form().tour_stops.move(from_index, to_index)

    def advisory_overlaps(self) -> List[Appointment]:
        """Existing appointments that overlap the booking being built."""
        form = self._require_form()
        if self.planner.validate(form) is not None:
            return []
        return self.planner.advisory_overlaps(self.planner.plan(form), self.appointments)

    def submit(self) -> Optional[Appointment]:
        """Validate and send the booking; every outcome leaves a notice."""
        form = self._require_form()
        if self.submitting:
            self._notify("warning", message("submit_in_progress", self.language))
            return None

        try:
            request = self.planner.build_request(form, {u.id: u for u in self.units})
        except BookingValidationError as e:
            self._notify("error", label(VALIDATION_LABELS, e.failure, self.language))
            return None

        self.submitting = True
        try:
            created = self.gateway.create(request)
        except GatewayError as e:
            self._notify("error", message("create_failed", self.language), e.message)
            return None
        finally:
            self.submitting = False

        self._notify("success", message("appointment_created", self.language))
        self.form = None
        self.load()
        return created

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def open_cancel(self, appointment_id: str) -> CancellationFlow:
        """Start the two-step cancel; raises when no cancel is offered."""
        appointment = self.find_appointment(appointment_id)
        if appointment is None:
            raise CancelNotAllowedError(f"Unknown appointment {appointment_id}")
        flow = CancellationFlow(appointment, self.gateway)
        flow.request()
        self.cancel_flow = flow
        return flow

    def abort_cancel(self):
        if self.cancel_flow:
            self.cancel_flow.abort()
        self.cancel_flow = None

    def confirm_cancel(self, reason: str = DEFAULT_CANCEL_REASON) -> Optional[Appointment]:
        """Send the confirmed cancellation, then re-fetch on success."""
        flow = self.cancel_flow
        if flow is None:
            raise CancelNotAllowedError("No cancellation awaiting confirmation")
        if flow.in_flight:
            self._notify("warning", message("submit_in_progress", self.language))
            return None

        try:
            updated = flow.confirm(reason)
        except GatewayError as e:
            self._notify("error", message("cancel_failed", self.language), e.message)
            return None
        finally:
            self.cancel_flow = None

        self._notify("success", message("appointment_cancelled", self.language))
        self.load()
        return updated
