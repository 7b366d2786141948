"""Pydantic models for booking server requests and responses.

The server speaks camelCase JSON. Responses are validated here and converted
to the scheduling dataclasses; anything that does not validate is rejected.
"""

from datetime import datetime
from typing import Optional, List, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, AliasChoices, model_validator

from ..scheduling.models import (
    Appointment,
    AppointmentMode,
    AppointmentStatus,
    Condominium,
    Lead,
    Reminder,
    ReminderPriority,
    ReminderStatus,
    ReminderType,
    TourStop,
    Unit,
)
from ..scheduling.slot_planner import (
    BookingRequest,
    INDIVIDUAL_DURATION_MINUTES,
    MAX_TOUR_STOPS,
    TOUR_STOP_MINUTES,
)
from ..scheduling.timezones import add_minutes, ensure_aware, to_utc_iso


class ServerModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


class TourStopSchema(ServerModel):
    unit_id: str = Field(alias="unitId", min_length=1)
    condominium_id: str = Field("", alias="condominiumId")
    notes: Optional[str] = None
    condominium_name: Optional[str] = Field(None, alias="condominiumName")
    unit_number: Optional[str] = Field(None, alias="unitNumber")

    def to_model(self) -> TourStop:
        return TourStop(
            unit_id=self.unit_id,
            condominium_id=self.condominium_id,
            notes=self.notes or "",
            condominium_name=self.condominium_name,
            unit_number=self.unit_number,
        )


class AppointmentSchema(ServerModel):
    id: str = Field(min_length=1)
    date: datetime
    end_time: Optional[datetime] = Field(None, alias="endTime")
    mode: Literal["individual", "tour"] = "individual"
    status: Literal["pending", "confirmed", "completed", "cancelled"]
    client_name: str = Field(alias="clientName")
    client_phone: Optional[str] = Field(None, alias="clientPhone")
    client_email: Optional[str] = Field(None, alias="clientEmail")
    lead_id: Optional[str] = Field(None, alias="leadId")
    unit_id: Optional[str] = Field(None, alias="unitId")
    condominium_name: Optional[str] = Field(None, alias="condominiumName")
    unit_number: Optional[str] = Field(None, alias="unitNumber")
    tour_stops: Optional[List[TourStopSchema]] = Field(None, alias="tourStops")
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = Field(None, alias="cancellationReason")
    is_restricted: bool = Field(False, alias="isRestricted")
    can_edit: bool = Field(False, alias="canEdit")
    can_cancel: bool = Field(False, alias="canCancel")

    @model_validator(mode="after")
    def _check_shape(self):
        if self.end_time is not None and ensure_aware(self.end_time) < ensure_aware(self.date):
            raise ValueError("endTime is before date")

        stops = self.tour_stops or []
        if self.mode == "individual":
            if stops:
                raise ValueError("individual appointment carries tourStops")
            return self

        if not 1 <= len(stops) <= MAX_TOUR_STOPS:
            raise ValueError(f"tour has {len(stops)} stops, expected 1 to {MAX_TOUR_STOPS}")
        unit_ids = [s.unit_id for s in stops]
        if len(set(unit_ids)) != len(unit_ids):
            raise ValueError("tour visits the same unit twice")
        return self

    def to_model(self) -> Appointment:
        start = ensure_aware(self.date)
        stops = [s.to_model() for s in self.tour_stops or []]
        if self.end_time is not None:
            end = ensure_aware(self.end_time)
        elif self.mode == "tour":
            end = add_minutes(start, TOUR_STOP_MINUTES * len(stops))
        else:
            end = add_minutes(start, INDIVIDUAL_DURATION_MINUTES)

        return Appointment(
            id=self.id,
            date=start,
            end_time=end,
            mode=AppointmentMode(self.mode),
            status=AppointmentStatus(self.status),
            client_name=self.client_name,
            lead_id=self.lead_id or "",
            client_phone=self.client_phone,
            client_email=self.client_email,
            unit_id=self.unit_id,
            condominium_name=self.condominium_name,
            unit_number=self.unit_number,
            tour_stops=stops,
            notes=self.notes,
            cancellation_reason=self.cancellation_reason,
            is_restricted=self.is_restricted,
            can_edit=self.can_edit,
            can_cancel=self.can_cancel,
        )


class ReminderSchema(ServerModel):
    id: str = Field(min_length=1)
    lead_id: str = Field(alias="leadId")
    reminder_type: Literal["follow_up", "call", "whatsapp", "email", "meeting", "document", "other"] = Field(
        "other", alias="reminderType"
    )
    title: str
    description: Optional[str] = None
    due_date: datetime = Field(validation_alias=AliasChoices("dueDate", "reminderDate", "due_date"))
    priority: Literal["low", "medium", "high", "urgent"] = "medium"
    status: Literal["pending", "completed", "cancelled"] = "pending"

    def to_model(self) -> Reminder:
        return Reminder(
            id=self.id,
            lead_id=self.lead_id,
            reminder_type=ReminderType(self.reminder_type),
            title=self.title,
            description=self.description,
            due_date=ensure_aware(self.due_date),
            priority=ReminderPriority(self.priority),
            status=ReminderStatus(self.status),
        )


class LeadSchema(ServerModel):
    id: str = Field(min_length=1)
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    phone: Optional[str] = None
    email: Optional[str] = None

    def to_model(self) -> Lead:
        return Lead(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            phone=self.phone or "",
            email=self.email,
        )


class CondominiumRef(ServerModel):
    name: str


class CondominiumSchema(ServerModel):
    id: str = Field(min_length=1)
    name: str

    def to_model(self) -> Condominium:
        return Condominium(id=self.id, name=self.name)


class UnitSchema(ServerModel):
    id: str = Field(min_length=1)
    unit_number: str = Field(alias="unitNumber")
    condominium_id: str = Field(alias="condominiumId")
    condominium: Optional[CondominiumRef] = None
    is_active: bool = Field(True, alias="isActive")

    def to_model(self) -> Unit:
        return Unit(
            id=self.id,
            unit_number=self.unit_number,
            condominium_id=self.condominium_id,
            condominium_name=self.condominium.name if self.condominium else None,
            is_active=self.is_active,
        )


class Page(ServerModel):
    """Paged reference-data response: ``{"data": [...], "total": n}``."""

    data: List[Any]
    total: Optional[int] = None

    @classmethod
    def from_json(cls, payload: Any) -> "Page":
        if isinstance(payload, list):
            return cls(data=payload, total=len(payload))
        return cls.model_validate(payload)


class TourStopPayload(ServerModel):
    unit_id: str = Field(serialization_alias="unitId")
    condominium_id: str = Field(serialization_alias="condominiumId")
    notes: str = ""


class CreateAppointmentPayload(ServerModel):
    """Body of ``POST /appointments``."""

    mode: Literal["individual", "tour"]
    lead_id: str = Field(serialization_alias="leadId", min_length=1)
    client_name: str = Field(serialization_alias="clientName")
    client_phone: str = Field("", serialization_alias="clientPhone")
    client_email: str = Field("", serialization_alias="clientEmail")
    date: str
    notes: str = ""
    unit_id: Optional[str] = Field(None, serialization_alias="unitId")
    condominium_name: Optional[str] = Field(None, serialization_alias="condominiumName")
    unit_number: Optional[str] = Field(None, serialization_alias="unitNumber")
    tour_stops: Optional[List[TourStopPayload]] = Field(None, serialization_alias="tourStops")

    @classmethod
    def from_request(cls, request: BookingRequest) -> "CreateAppointmentPayload":
        payload = cls(
            mode=request.mode.value,
            lead_id=request.lead_id,
            client_name=request.client_name,
            client_phone=request.client_phone,
            client_email=request.client_email,
            date=to_utc_iso(request.date),
            notes=request.notes,
        )
        if request.mode == AppointmentMode.INDIVIDUAL:
            payload.unit_id = request.unit_id
            payload.condominium_name = request.condominium_name
            payload.unit_number = request.unit_number
        else:
            payload.tour_stops = [
                TourStopPayload(unit_id=s.unit_id, condominium_id=s.condominium_id, notes=s.notes)
                for s in request.tour_stops
            ]
        return payload

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class CancelPayload(ServerModel):
    """Body of ``PATCH /appointments/{id}/cancel``."""

    cancellation_reason: str = Field(serialization_alias="cancellationReason", min_length=1)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)
