"""Booking gateway: the remote store of appointments."""

from .base import BookingGateway, GatewayError, GatewayUnavailableError, MalformedResponseError
from .rest import RestBookingGateway
from .memory import InMemoryBookingGateway

__all__ = [
    "BookingGateway",
    "GatewayError",
    "GatewayUnavailableError",
    "MalformedResponseError",
    "RestBookingGateway",
    "InMemoryBookingGateway",
]
