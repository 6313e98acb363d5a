# backend/glamup/models/appointment.py
"""
Appointment models for GlamUp.

One logical booking is persisted as a pair of rows sharing ``appointment_id``:

- ``BusinessAppointment`` is the business-of-record view (tenant, team
  member, polymorphic client, audit and payment fields).
- ``ClientAppointment`` is the client-of-record view with denormalized
  business, team member and category display fields.

Both rows carry the same services/package snapshot, schedule window and
status. Rescheduling never edits a row in place: the old pair is cancelled
with ``is_rescheduled`` set and the new pair points back at it through
``parent_appointment_id``.
"""

from datetime import date, datetime, time, timezone
import logging
from typing import Any, Optional, cast

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.constants import DEFAULT_CURRENCY, MINUTES_PER_DAY
from ..core.enums import (
    ActorKind,
    AppointmentStatus,
    CreatedVia,
    LocationType,
    PaymentMethod,
    PaymentStatus,
    TimeStatus,
)
from ..core.time_of_day import TimeOfDay, window_minutes
from ..database import Base

logger = logging.getLogger(__name__)

_STATUS_CHECK = "status IN ('PENDING', 'CONFIRMED', 'CANCELLED', 'COMPLETED', 'NO_SHOW')"
_PAYMENT_STATUS_CHECK = "payment_status IN ('PENDING', 'PARTIAL', 'PAID', 'REFUNDED')"


def _iso(value: Optional[Any]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _hhmm(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value is not None else None


class AppointmentRecordMixin:
    """Columns and lifecycle helpers shared by both mirrors."""

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    appointment_id = Column(String(32), nullable=False, unique=True, index=True)

    client_id = Column(String(26), nullable=False, index=True)
    client_model = Column(String(20), nullable=False)
    team_member_id = Column(String(26), nullable=False, index=True)
    category_id = Column(String(26), nullable=True)

    # Snapshot (exactly one of services / package)
    services = Column(JSON, nullable=False, default=list)
    package = Column(JSON, nullable=True)

    # Schedule window
    date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    duration = Column(Integer, nullable=False)

    # Pricing
    total_price = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    final_price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.CASH.value)

    status = Column(String(20), nullable=False, default=AppointmentStatus.PENDING.value, index=True)
    notes = Column(Text, nullable=True)
    location_type = Column(String(20), nullable=False, default=LocationType.BUSINESS.value)

    # Cancellation
    cancellation_reason = Column(Text, nullable=True)
    cancellation_date = Column(DateTime(timezone=True), nullable=True)
    cancellation_by = Column(String(20), nullable=True)

    # Lineage
    is_rescheduled = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def window(self) -> tuple[TimeOfDay, TimeOfDay]:
        return TimeOfDay.from_time(self.start_time), TimeOfDay.from_time(self.end_time)

    def window_minutes(self, reference_date: date) -> tuple[int, int]:
        """Absolute window in minutes from midnight of ``reference_date``."""
        start, end = window_minutes(
            self.start_time, self.end_time, (self.date - reference_date).days
        )
        if self.end_date is not None:
            stored_end = TimeOfDay.from_time(self.end_time).minutes + (
                self.end_date - reference_date
            ).days * MINUTES_PER_DAY
            if stored_end > start:
                end = stored_end
        return start, end

    def starts_at(self) -> datetime:
        return datetime.combine(cast(date, self.date), cast(time, self.start_time))

    def time_status(self, now: datetime) -> TimeStatus:
        """Past/Upcoming relative to ``now`` (naive, business-local)."""
        return TimeStatus.PAST if self.starts_at() < now else TimeStatus.UPCOMING

    def cancel(
        self,
        cancelled_by: ActorKind,
        reason: Optional[str] = None,
        *,
        rescheduled: bool = False,
        at: Optional[datetime] = None,
    ) -> None:
        """Pass the same ``at`` to both mirrors so their cancellation dates match."""
        self.status = AppointmentStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancellation_date = at or datetime.now(timezone.utc)
        self.cancellation_by = cancelled_by.value
        if rescheduled:
            self.is_rescheduled = True

    def _base_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "appointment_id": self.appointment_id,
            "client_id": self.client_id,
            "client_model": self.client_model,
            "team_member_id": self.team_member_id,
            "category_id": self.category_id,
            "services": list(self.services or []),
            "package": self.package,
            "date": _iso(self.date),
            "end_date": _iso(self.end_date),
            "start_time": _hhmm(self.start_time),
            "end_time": _hhmm(self.end_time),
            "duration": self.duration,
            "total_price": float(self.total_price) if self.total_price is not None else None,
            "discount": float(self.discount) if self.discount is not None else 0.0,
            "final_price": float(self.final_price) if self.final_price is not None else None,
            "currency": self.currency,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "status": self.status,
            "notes": self.notes,
            "location_type": self.location_type,
            "cancellation_reason": self.cancellation_reason,
            "cancellation_date": _iso(self.cancellation_date),
            "cancellation_by": self.cancellation_by,
            "parent_appointment_id": self.parent_appointment_id,
            "is_rescheduled": bool(self.is_rescheduled),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class BusinessAppointment(AppointmentRecordMixin, Base):
    """Business-facing record of an appointment."""

    __tablename__ = "business_appointments"

    business_id = Column(String(26), ForeignKey("businesses.id"), nullable=False, index=True)

    # Audit
    created_by = Column(String(26), nullable=False)
    updated_by = Column(String(26), nullable=True)
    created_via = Column(String(20), nullable=False, default=CreatedVia.BUSINESS.value)
    cancelled_by_id = Column(String(26), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    parent_appointment_id = Column(
        String(26), ForeignKey("business_appointments.id"), nullable=True, index=True
    )
    parent = relationship(
        "BusinessAppointment",
        remote_side="BusinessAppointment.id",
        uselist=False,
        post_update=True,
    )

    __table_args__ = (
        CheckConstraint(_STATUS_CHECK, name="ck_business_appointments_status"),
        CheckConstraint(_PAYMENT_STATUS_CHECK, name="ck_business_appointments_payment_status"),
        CheckConstraint("duration > 0", name="check_business_appointment_duration"),
        CheckConstraint("final_price >= 0", name="check_business_appointment_price"),
    )

    def __repr__(self) -> str:
        return (
            f"<BusinessAppointment {self.appointment_id}: team_member={self.team_member_id}, "
            f"date={self.date}, time={self.start_time}-{self.end_time}, status={self.status}>"
        )

    def confirm(self, actor_id: str) -> None:
        self.status = AppointmentStatus.CONFIRMED.value
        self.confirmed_at = datetime.now(timezone.utc)
        self.updated_by = actor_id

    def complete(self, actor_id: str) -> None:
        self.status = AppointmentStatus.COMPLETED.value
        self.completed_at = datetime.now(timezone.utc)
        self.updated_by = actor_id

    def mark_no_show(self, actor_id: str) -> None:
        self.status = AppointmentStatus.NO_SHOW.value
        self.updated_by = actor_id

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        data = self._base_dict()
        data.update(
            {
                "business_id": self.business_id,
                "created_by": self.created_by,
                "updated_by": self.updated_by,
                "created_via": self.created_via,
                "cancelled_by_id": self.cancelled_by_id,
                "confirmed_at": _iso(self.confirmed_at),
                "completed_at": _iso(self.completed_at),
            }
        )
        return data


class ClientAppointment(AppointmentRecordMixin, Base):
    """Client-facing record of an appointment with denormalized display fields."""

    __tablename__ = "client_appointments"

    business_id = Column(String(26), ForeignKey("businesses.id"), nullable=False, index=True)
    business_name = Column(String(255), nullable=False)
    business_logo = Column(String(512), nullable=True)
    business_address = Column(Text, nullable=True)
    business_phone = Column(String(32), nullable=True)

    category_name = Column(String(255), nullable=True)
    team_member_name = Column(String(255), nullable=False)
    team_member_profile_pic = Column(String(512), nullable=True)

    location_address = Column(Text, nullable=True)

    # Feedback
    rating = Column(Integer, nullable=True)
    review = Column(Text, nullable=True)
    review_date = Column(DateTime(timezone=True), nullable=True)

    parent_appointment_id = Column(
        String(26), ForeignKey("client_appointments.id"), nullable=True, index=True
    )
    parent = relationship(
        "ClientAppointment",
        remote_side="ClientAppointment.id",
        uselist=False,
        post_update=True,
    )

    __table_args__ = (
        CheckConstraint(_STATUS_CHECK, name="ck_client_appointments_status"),
        CheckConstraint(_PAYMENT_STATUS_CHECK, name="ck_client_appointments_payment_status"),
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="check_rating"),
    )

    def __repr__(self) -> str:
        return (
            f"<ClientAppointment {self.appointment_id}: client={self.client_id}, "
            f"date={self.date}, time={self.start_time}-{self.end_time}, status={self.status}>"
        )

    def to_dict(self) -> dict[str, Any]:
        data = self._base_dict()
        data.update(
            {
                "business_id": self.business_id,
                "business_name": self.business_name,
                "business_logo": self.business_logo,
                "business_address": self.business_address,
                "business_phone": self.business_phone,
                "category_name": self.category_name,
                "team_member_name": self.team_member_name,
                "team_member_profile_pic": self.team_member_profile_pic,
                "location_address": self.location_address,
                "rating": self.rating,
                "review": self.review,
            }
        )
        return data


Index(
    "ix_business_appointment_slot",
    BusinessAppointment.team_member_id,
    BusinessAppointment.date,
    BusinessAppointment.status,
)

Index(
    "ix_business_appointment_client_slot",
    BusinessAppointment.business_id,
    BusinessAppointment.client_id,
    BusinessAppointment.date,
)
