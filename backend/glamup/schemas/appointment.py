# backend/glamup/schemas/appointment.py
"""
Pydantic schemas for appointment operations.

Requests carry an explicit ``actor`` describing who performs the mutation.
Times are "HH:MM" in the business's local day; end times are optional
and derived from the booked duration when omitted.
"""

import datetime as dt
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from ..core.actor import Actor
from ..core.enums import (
    ActorKind,
    AppointmentStatus,
    ClientModel,
    LocationType,
    PaymentMethod,
    PaymentStatus,
    TimeStatus,
)
from ._strict_base import StrictRequestModel


def _minute_precision(value: dt.time) -> dt.time:
    if value.second or value.microsecond:
        raise ValueError("Times must be given to the minute (HH:MM)")
    if value.tzinfo is not None:
        raise ValueError("Times are local to the business; omit the UTC offset")
    return value


MinuteTime = Annotated[dt.time, AfterValidator(_minute_precision)]


class ActorIn(StrictRequestModel):
    kind: ActorKind
    id: str = Field(..., min_length=1, max_length=64)

    def to_actor(self) -> Actor:
        return Actor(kind=self.kind, id=self.id)


class AppointmentCreate(StrictRequestModel):
    """Create a new appointment pair."""

    business_id: str
    client_id: str
    client_model: ClientModel = ClientModel.CLIENT
    team_member_id: str
    category_id: Optional[str] = None
    service_ids: Optional[List[str]] = None
    package_id: Optional[str] = None

    date: dt.date
    start_time: MinuteTime
    end_time: Optional[MinuteTime] = None

    discount: Decimal = Field(default=Decimal("0"), ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    status: Optional[AppointmentStatus] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.CASH
    location_type: LocationType = LocationType.BUSINESS
    location_address: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    actor: ActorIn

    @field_validator("status")
    @classmethod
    def _initial_status(cls, value: Optional[AppointmentStatus]) -> Optional[AppointmentStatus]:
        if value is not None and value not in AppointmentStatus.active():
            raise ValueError("New appointments start as PENDING or CONFIRMED")
        return value


class ClientAppointmentCreate(AppointmentCreate):
    """Client-app booking; the acting client is the booked client."""

    @model_validator(mode="after")
    def _actor_is_client(self) -> "ClientAppointmentCreate":
        if self.actor.kind != ActorKind.CLIENT:
            raise ValueError("Client bookings must be made by a client actor")
        if self.actor.id != self.client_id:
            raise ValueError("Clients can only book for themselves")
        return self


class AppointmentUpdate(StrictRequestModel):
    """In-place edit of an open appointment; omitted fields are kept."""

    team_member_id: Optional[str] = None
    category_id: Optional[str] = None
    service_ids: Optional[List[str]] = None
    package_id: Optional[str] = None
    date: Optional[dt.date] = None
    start_time: Optional[MinuteTime] = None
    end_time: Optional[MinuteTime] = None
    discount: Optional[Decimal] = Field(default=None, ge=0)
    payment_method: Optional[PaymentMethod] = None
    location_type: Optional[LocationType] = None
    location_address: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    actor: ActorIn

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"actor"})


class RescheduleRequest(StrictRequestModel):
    date: dt.date
    start_time: MinuteTime
    end_time: Optional[MinuteTime] = None
    team_member_id: Optional[str] = None
    service_ids: Optional[List[str]] = None
    package_id: Optional[str] = None
    actor: ActorIn


class CancelRequest(StrictRequestModel):
    reason: Optional[str] = Field(default=None, max_length=500)
    actor: ActorIn


class StatusChangeRequest(StrictRequestModel):
    actor: ActorIn

    @model_validator(mode="after")
    def _actor_is_business(self) -> "StatusChangeRequest":
        if self.actor.kind != ActorKind.BUSINESS:
            raise ValueError("Only the business can change an appointment's status")
        return self


# Responses


class ServiceSnapshot(BaseModel):
    service_id: str
    name: str
    duration: int
    price: float


class PackageSnapshot(BaseModel):
    package_id: str
    name: str
    duration: int
    price: float
    services: List[Dict[str, Any]] = Field(default_factory=list)


class _AppointmentResponseBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    appointment_id: str
    business_id: str
    client_id: str
    client_model: str
    team_member_id: str
    category_id: Optional[str] = None
    services: List[ServiceSnapshot] = Field(default_factory=list)
    package: Optional[PackageSnapshot] = None
    date: str
    end_date: str
    start_time: str
    end_time: str
    duration: int
    total_price: float
    discount: float
    final_price: float
    currency: str
    payment_status: str
    payment_method: str
    status: str
    notes: Optional[str] = None
    location_type: str
    cancellation_reason: Optional[str] = None
    cancellation_date: Optional[str] = None
    cancellation_by: Optional[str] = None
    parent_appointment_id: Optional[str] = None
    is_rescheduled: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class BusinessAppointmentResponse(_AppointmentResponseBase):
    created_by: str
    updated_by: Optional[str] = None
    created_via: str
    cancelled_by_id: Optional[str] = None
    confirmed_at: Optional[str] = None
    completed_at: Optional[str] = None


class ClientAppointmentResponse(_AppointmentResponseBase):
    business_name: str
    business_logo: Optional[str] = None
    business_address: Optional[str] = None
    business_phone: Optional[str] = None
    category_name: Optional[str] = None
    team_member_name: str
    team_member_profile_pic: Optional[str] = None
    location_address: Optional[str] = None
    rating: Optional[int] = None
    review: Optional[str] = None
    time_status: Optional[TimeStatus] = None


class AppointmentPairResponse(BaseModel):
    business_appointment: BusinessAppointmentResponse
    client_appointment: Optional[ClientAppointmentResponse] = None

    @classmethod
    def from_rows(
        cls, business_row: Any, client_row: Optional[Any] = None
    ) -> "AppointmentPairResponse":
        """Build from ORM rows; the client view is tagged Past or Upcoming."""
        client_view = None
        if client_row is not None:
            client_view = ClientAppointmentResponse(
                **client_row.to_dict(), time_status=client_row.time_status(dt.datetime.now())
            )
        return cls(
            business_appointment=BusinessAppointmentResponse(**business_row.to_dict()),
            client_appointment=client_view,
        )


class RescheduleResponse(BaseModel):
    previous: AppointmentPairResponse
    current: AppointmentPairResponse


class ServiceHistoryVisit(BaseModel):
    appointment_id: str
    date: str
    start_time: str
    business_id: str
    business_name: str
    status: str
    time_status: TimeStatus


class ServiceHistoryEntry(BaseModel):
    service_id: str
    name: str
    count: int
    last_booked: str
    appointments: List[ServiceHistoryVisit]


class LineageResponse(BaseModel):
    """Newest first; the last element is the original booking."""

    appointment_id: str
    chain: List[BusinessAppointmentResponse]
