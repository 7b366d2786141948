"""In-memory booking gateway, for demos and tests."""

import logging
import uuid
from dataclasses import replace
from typing import Optional, List, Dict, Iterable

from ..scheduling.models import (
    Appointment,
    AppointmentStatus,
    Condominium,
    Lead,
    Reminder,
    Unit,
)
from ..scheduling.slot_planner import BookingRequest
from .base import BookingGateway, GatewayError

logger = logging.getLogger(__name__)


class InMemoryBookingGateway(BookingGateway):
    """Holds appointments in a dict and plays the server's part.

    New appointments start pending and cancellable by their creator. Queued
    rejections (``reject_next``) let callers exercise server-side refusals
    such as a conflicting booking.
    """

    def __init__(
        self,
        appointments: Iterable[Appointment] = (),
        reminders: Iterable[Reminder] = (),
        leads: Iterable[Lead] = (),
        units: Iterable[Unit] = (),
        condominiums: Iterable[Condominium] = (),
    ):
        self.appointments: Dict[str, Appointment] = {a.id: a for a in appointments}
        self.reminders: List[Reminder] = list(reminders)
        self.leads: List[Lead] = list(leads)
        self.units: List[Unit] = list(units)
        self.condominiums: List[Condominium] = list(condominiums)
        self.calls: List[str] = []
        self._rejections: List[GatewayError] = []

    def reject_next(self, message: str, status_code: int = 409):
        """Make the next call fail with the given server message."""
        self._rejections.append(GatewayError(message, status_code=status_code))

    def _record(self, call: str):
        self.calls.append(call)
        if self._rejections:
            raise self._rejections.pop(0)

    def fetch(self) -> List[Appointment]:
        self._record("fetch")
        return [replace(a) for a in self.appointments.values()]

    def create(self, request: BookingRequest) -> Appointment:
        self._record("create")
        appointment = Appointment(
            id=str(uuid.uuid4())[:8],
            date=request.date,
            end_time=request.end_time,
            mode=request.mode,
            status=AppointmentStatus.PENDING,
            client_name=request.client_name,
            lead_id=request.lead_id,
            client_phone=request.client_phone or None,
            client_email=request.client_email or None,
            unit_id=request.unit_id,
            condominium_name=request.condominium_name,
            unit_number=request.unit_number,
            tour_stops=list(request.tour_stops),
            notes=request.notes or None,
            can_edit=True,
            can_cancel=True,
        )
        self.appointments[appointment.id] = appointment
        logger.info(f"Stored appointment {appointment.id}")
        return replace(appointment)

    def cancel(self, appointment_id: str, reason: str) -> Appointment:
        self._record("cancel")
        appointment = self.appointments.get(appointment_id)
        if not appointment:
            raise GatewayError("Appointment not found", status_code=404)
        if not appointment.can_cancel:
            raise GatewayError("You do not have permission to cancel this appointment", status_code=403)
        if appointment.status not in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED):
            raise GatewayError(f"Cannot cancel a {appointment.status.value} appointment", status_code=400)

        appointment.status = AppointmentStatus.CANCELLED
        appointment.cancellation_reason = reason
        appointment.can_cancel = False
        return replace(appointment)

    def set_status(self, appointment_id: str, status: AppointmentStatus):
        """Server-side status change (confirm, complete)."""
        self.appointments[appointment_id].status = status

    def fetch_reminders(self) -> List[Reminder]:
        self._record("fetch_reminders")
        return list(self.reminders)

    def fetch_leads(self) -> List[Lead]:
        self._record("fetch_leads")
        return list(self.leads)

    def fetch_condominiums(self) -> List[Condominium]:
        self._record("fetch_condominiums")
        return list(self.condominiums)

    def fetch_units(self, condominium_id: Optional[str] = None, active_only: bool = True) -> List[Unit]:
        self._record("fetch_units")
        return [
            u for u in self.units
            if (not condominium_id or u.condominium_id == condominium_id)
            and (not active_only or u.is_active)
        ]
