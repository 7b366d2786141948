"""Booking gateway interface and errors."""

from abc import ABC, abstractmethod
from typing import Optional, List

from ..scheduling.models import Appointment, Condominium, Lead, Reminder, Unit
from ..scheduling.slot_planner import BookingRequest


class GatewayError(Exception):
    """The booking server rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class GatewayUnavailableError(GatewayError, ConnectionError):
    """The booking server could not be reached."""


class MalformedResponseError(GatewayError, ValueError):
    """The booking server answered with a payload that failed validation."""


class BookingGateway(ABC):
    """Remote store of appointments, the authority on ids, status and permissions.

    The server may reject a booking for reasons the client cannot see, such
    as a conflicting appointment; callers surface the message as is.
    """

    @abstractmethod
    def fetch(self) -> List[Appointment]:
        """All appointments in the current viewer's scope."""

    @abstractmethod
    def create(self, request: BookingRequest) -> Appointment:
        """Persist a new appointment."""

    @abstractmethod
    def cancel(self, appointment_id: str, reason: str) -> Appointment:
        """Cancel an appointment, returning its updated state."""

    @abstractmethod
    def fetch_reminders(self) -> List[Reminder]:
        pass

    @abstractmethod
    def fetch_leads(self) -> List[Lead]:
        pass

    @abstractmethod
    def fetch_condominiums(self) -> List[Condominium]:
        pass

    @abstractmethod
    def fetch_units(self, condominium_id: Optional[str] = None, active_only: bool = True) -> List[Unit]:
        pass
