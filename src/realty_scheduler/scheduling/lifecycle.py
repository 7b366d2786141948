"""Appointment status lifecycle, cancel permissions and the restricted view.

Status and the permission flags (can_edit, can_cancel, is_restricted) are
asserted by the booking server on every fetch. Nothing here derives them; it
only decides what the current viewer is offered based on those values.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List

from .models import Appointment, AppointmentMode, AppointmentStatus
from .slot_planner import TOUR_STOP_MINUTES
from .timezones import add_minutes

logger = logging.getLogger(__name__)

DEFAULT_CANCEL_REASON = "Cancelled by seller"

# Forward order of server-driven states; cancelled sits outside it
_FORWARD_ORDER = [
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.COMPLETED,
]

CANCELLABLE_STATUSES = {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED}
TERMINAL_STATUSES = {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}


class CancelNotAllowedError(Exception):
    """The viewer may not cancel this appointment."""


def is_terminal(status: AppointmentStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    """Whether the lifecycle allows moving from current to target."""
    if current == target:
        return True
    if target == AppointmentStatus.CANCELLED:
        return current in CANCELLABLE_STATUSES
    if current == AppointmentStatus.CANCELLED:
        return False
    return _FORWARD_ORDER.index(target) > _FORWARD_ORDER.index(current)


def check_server_transition(previous: Appointment, current: Appointment):
    """Log, but accept, a server update the lifecycle would not produce."""
    if not can_transition(previous.status, current.status):
        logger.warning(
            f"Appointment {current.id} moved {previous.status.value} -> {current.status.value}; "
            "keeping server value"
        )


def cancel_offered(appointment: Appointment) -> bool:
    """Whether the cancel control is shown for this appointment."""
    return appointment.can_cancel and appointment.status in CANCELLABLE_STATUSES


class CancelStep(Enum):
    """Where a two-step cancellation stands."""
    IDLE = "idle"
    CONFIRMING = "confirming"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"


class CancellationFlow:
    """Cancel control followed by an explicit confirmation step.

    ``confirm`` sends the request through the gateway. On failure the
    appointment held here keeps its previous status and the error is kept
    for display; the caller decides whether to retry.
    """

    def __init__(self, appointment: Appointment, gateway):
        self.appointment = appointment
        self.gateway = gateway
        self.step = CancelStep.IDLE
        self.error: Optional[str] = None

    @property
    def in_flight(self) -> bool:
        return self.step == CancelStep.SUBMITTING

    def request(self):
        """Open the confirmation step."""
        if not cancel_offered(self.appointment):
            raise CancelNotAllowedError(
                f"Appointment {self.appointment.id} cannot be cancelled "
                f"(status={self.appointment.status.value}, can_cancel={self.appointment.can_cancel})"
            )
        self.step = CancelStep.CONFIRMING
        self.error = None

    def abort(self):
        """Close the confirmation step without sending anything."""
        if self.step == CancelStep.CONFIRMING:
            self.step = CancelStep.IDLE

    def confirm(self, reason: str = DEFAULT_CANCEL_REASON) -> Appointment:
        """Send the cancellation; returns the server's updated appointment."""
        if self.step != CancelStep.CONFIRMING:
            raise CancelNotAllowedError("Cancellation must be requested before it is confirmed")

        self.step = CancelStep.SUBMITTING
        try:
            updated = self.gateway.cancel(self.appointment.id, reason)
        except Exception as e:
            self.step = CancelStep.FAILED
            self.error = str(e)
            logger.error(f"Cancel failed for appointment {self.appointment.id}: {e}")
            raise

        self.step = CancelStep.DONE
        logger.info(f"Appointment {updated.id} cancelled: {reason}")
        return updated


@dataclass
class StopView:
    sequence: int
    label: str
    start: Optional[datetime] = None
    notes: Optional[str] = None


@dataclass
class AppointmentDetailView:
    """Fields of an appointment the current viewer is allowed to see.

    Phone, email and notes stay None for restricted appointments even when
    the payload carries them.
    """

    id: str
    mode: AppointmentMode
    status: AppointmentStatus
    start: datetime
    end: datetime
    client_name: str
    is_restricted: bool
    cancel_offered: bool
    client_phone: Optional[str] = None
    client_email: Optional[str] = None
    notes: Optional[str] = None
    condominium_name: Optional[str] = None
    unit_number: Optional[str] = None
    stops: List[StopView] = field(default_factory=list)


def detail_view(appointment: Appointment, stop_minutes: int = TOUR_STOP_MINUTES) -> AppointmentDetailView:
    """Project an appointment onto what the viewer may see."""
    view = AppointmentDetailView(
        id=appointment.id,
        mode=appointment.mode,
        status=appointment.status,
        start=appointment.date,
        end=appointment.end_time,
        client_name=appointment.client_name,
        is_restricted=appointment.is_restricted,
        cancel_offered=cancel_offered(appointment),
        condominium_name=appointment.condominium_name,
        unit_number=appointment.unit_number,
    )

    for i, stop in enumerate(appointment.tour_stops):
        label = " - ".join(p for p in (stop.condominium_name, stop.unit_number) if p) or stop.unit_id
        view.stops.append(StopView(
            sequence=i,
            label=label,
            start=add_minutes(appointment.date, stop_minutes * i),
            notes=None if appointment.is_restricted else (stop.notes or None),
        ))

    if not appointment.is_restricted:
        view.client_phone = appointment.client_phone or None
        view.client_email = appointment.client_email or None
        view.notes = appointment.notes or None

    return view
