"""REST client for the booking server."""

import logging
from typing import Optional, List, Dict, Any, Type

import requests
from pydantic import BaseModel, ValidationError

from ..scheduling.models import Appointment, Condominium, Lead, Reminder, Unit
from ..scheduling.slot_planner import BookingRequest
from .base import BookingGateway, GatewayError, GatewayUnavailableError, MalformedResponseError
from .schemas import (
    AppointmentSchema,
    CancelPayload,
    CondominiumSchema,
    CreateAppointmentPayload,
    LeadSchema,
    Page,
    ReminderSchema,
    UnitSchema,
)

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000


def _kind(schema: Type[BaseModel]) -> str:
    return schema.__name__.replace("Schema", "").lower()


class RestBookingGateway(BookingGateway):
    """Cookie-authenticated JSON client for the appointment endpoints."""

    def __init__(
        self,
        base_url: str,
        session_cookie: Optional[str] = None,
        cookie_name: str = "connect.sid",
        timeout: float = 10,
        session: Optional[requests.Session] = None,
        leads_url: Optional[str] = None,
        units_url: Optional[str] = None,
        condominiums_url: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if session_cookie:
            self.session.cookies.set(cookie_name, session_cookie)

        self.leads_url = leads_url or f"{self.base_url}/leads"
        self.units_url = units_url or f"{self.base_url}/units"
        self.condominiums_url = condominiums_url or f"{self.base_url}/condominiums"

    @classmethod
    def from_settings(cls, settings) -> "RestBookingGateway":
        return cls(
            base_url=settings.api_url,
            session_cookie=settings.session_cookie,
            cookie_name=settings.cookie_name,
            timeout=settings.http_timeout,
            leads_url=settings.leads_url,
            units_url=settings.units_url,
            condominiums_url=settings.condominiums_url,
        )

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return decoded JSON, raising gateway errors."""
        url = self._url(path)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise GatewayUnavailableError(f"Could not reach booking server: {e}") from e

        if not response.ok:
            message = self._error_message(response)
            logger.error(f"{method} {url} returned {response.status_code}: {message}")
            raise GatewayError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"{method} {url} did not return JSON", response.status_code) from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            for key in ("message", "error", "detail"):
                if body.get(key):
                    return str(body[key])
        return response.text.strip() or response.reason or f"HTTP {response.status_code}"

    @staticmethod
    def _parse(schema: Type[BaseModel], payload: Any):
        try:
            return schema.model_validate(payload).to_model()
        except ValidationError as e:
            raise MalformedResponseError(f"Invalid {_kind(schema)} payload: {e}") from e

    def _parse_list(self, schema: Type[BaseModel], payload: Any) -> list:
        if isinstance(payload, dict) and "data" in payload:
            payload = payload["data"]
        if not isinstance(payload, list):
            raise MalformedResponseError(f"Expected a list of {_kind(schema)} items")
        return [self._parse(schema, item) for item in payload]

    def _fetch_paged(self, url: str, schema: Type[BaseModel], params: Optional[Dict[str, Any]] = None) -> list:
        """Collect every page of a reference-data listing."""
        items: list = []
        offset = 0
        while True:
            query = dict(params or {}, limit=PAGE_SIZE, offset=offset)
            try:
                page = Page.from_json(self._request("GET", url, params=query))
            except ValidationError as e:
                raise MalformedResponseError(f"Invalid page from {url}: {e}") from e

            items.extend(self._parse(schema, item) for item in page.data)
            offset += len(page.data)

            if not page.data or page.total is None or offset >= page.total:
                return items

    def fetch(self) -> List[Appointment]:
        return self._parse_list(AppointmentSchema, self._request("GET", "appointments"))

    def create(self, request: BookingRequest) -> Appointment:
        body = CreateAppointmentPayload.from_request(request).to_json()
        appointment = self._parse(AppointmentSchema, self._request("POST", "appointments", json=body))
        logger.info(f"Created {appointment.mode.value} appointment {appointment.id} for {appointment.client_name}")
        return appointment

    def cancel(self, appointment_id: str, reason: str) -> Appointment:
        body = CancelPayload(cancellation_reason=reason).to_json()
        payload = self._request("PATCH", f"appointments/{appointment_id}/cancel", json=body)
        return self._parse(AppointmentSchema, payload)

    def fetch_reminders(self) -> List[Reminder]:
        return self._parse_list(ReminderSchema, self._request("GET", "reminders"))

    def fetch_leads(self) -> List[Lead]:
        return self._fetch_paged(self.leads_url, LeadSchema)

    def fetch_condominiums(self) -> List[Condominium]:
        return self._fetch_paged(self.condominiums_url, CondominiumSchema)

    def fetch_units(self, condominium_id: Optional[str] = None, active_only: bool = True) -> List[Unit]:
        params: Dict[str, Any] = {}
        if condominium_id:
            params["condominiumId"] = condominium_id
        if active_only:
            params["isActive"] = "true"
        return self._fetch_paged(self.units_url, UnitSchema, params)
