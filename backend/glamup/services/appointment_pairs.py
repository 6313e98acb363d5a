# backend/glamup/services/appointment_pairs.py
"""
Shared write path for appointment pairs.

Booking, update and reschedule all go through ``AppointmentPairWriter``:
lock the participants, check the window, then build and insert both
mirrors from one draft. Storage conflicts raised while writing are
translated into slot conflicts.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.appointment_ids import generate_appointment_id
from ..core.constants import CLIENT_CONFLICT_MESSAGE, TEAM_MEMBER_CONFLICT_MESSAGE
from ..core.enums import (
    AppointmentStatus,
    ClientModel,
    CreatedVia,
    LocationType,
    PaymentMethod,
    PaymentStatus,
)
from ..core.exceptions import (
    RepositoryException,
    SlotConflictException,
    TransactionException,
    ValidationException,
)
from ..core.time_of_day import TimeOfDay
from ..models.appointment import BusinessAppointment, ClientAppointment
from ..models.business import Business, TeamMember
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.appointment_repository import (
    BusinessAppointmentRepository,
    ClientAppointmentRepository,
)
from ..repositories.factory import RepositoryFactory
from ..repositories.identity_repository import IdentityRepository
from .conflict_checker import SCOPE_CLIENT, ConflictChecker
from .entity_resolver import ResolvedOffering
from .pricing import apply_discount

logger = logging.getLogger(__name__)

GENERIC_CONFLICT_MESSAGE = "This time slot is no longer available"

AppointmentPair = Tuple[BusinessAppointment, ClientAppointment]

_MAX_ID_ATTEMPTS = 5


def end_date_for(day: date, start: TimeOfDay, end: TimeOfDay) -> date:
    """The day the window ends on; the next day when it ran past midnight."""
    if end.rolled_over or end.minutes <= start.minutes:
        return day + timedelta(days=1)
    return day


@dataclass
class AppointmentDraft:
    """Everything needed to build both mirrors of one booking."""

    business: Business
    team_member: TeamMember
    client_id: str
    client_model: ClientModel
    offering: ResolvedOffering
    date: date
    start: TimeOfDay
    end: TimeOfDay
    created_by: str
    created_via: CreatedVia
    status: AppointmentStatus = AppointmentStatus.PENDING
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    discount: Decimal = Decimal("0.00")
    currency: str = "INR"
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.CASH
    location_type: LocationType = LocationType.BUSINESS
    location_address: Optional[str] = None
    notes: Optional[str] = None
    parent_business_row_id: Optional[str] = None
    parent_client_row_id: Optional[str] = None

    @property
    def end_date(self) -> date:
        return end_date_for(self.date, self.start, self.end)


def build_pair(draft: AppointmentDraft, appointment_id: str) -> AppointmentPair:
    """Build (not persist) both mirrors from one draft so they cannot diverge."""
    prices = apply_discount(draft.offering.total_price, draft.discount)
    shared: Dict[str, Any] = {
        "appointment_id": appointment_id,
        "business_id": draft.business.id,
        "client_id": draft.client_id,
        "client_model": draft.client_model.value,
        "team_member_id": draft.team_member.id,
        "category_id": draft.category_id,
        "services": [dict(item) for item in draft.offering.services],
        "package": dict(draft.offering.package) if draft.offering.package else None,
        "date": draft.date,
        "end_date": draft.end_date,
        "start_time": draft.start.to_time(),
        "end_time": draft.end.to_time(),
        "duration": draft.offering.total_duration,
        "total_price": prices.total_price,
        "discount": prices.discount,
        "final_price": prices.final_price,
        "currency": draft.currency,
        "payment_status": draft.payment_status.value,
        "payment_method": draft.payment_method.value,
        "status": draft.status.value,
        "notes": draft.notes,
        "location_type": draft.location_type.value,
        "is_rescheduled": False,
        "is_deleted": False,
    }
    business_row = BusinessAppointment(
        **shared,
        created_by=draft.created_by,
        created_via=draft.created_via.value,
        parent_appointment_id=draft.parent_business_row_id,
    )
    client_row = ClientAppointment(
        **shared,
        business_name=draft.business.name,
        business_logo=draft.business.logo_url,
        business_address=draft.business.address,
        business_phone=draft.business.phone,
        category_name=draft.category_name,
        team_member_name=draft.team_member.name,
        team_member_profile_pic=draft.team_member.profile_pic,
        location_address=draft.location_address,
        parent_appointment_id=draft.parent_client_row_id,
    )
    return business_row, client_row


def _is_deadlock_error(exc: BaseException) -> bool:
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in ("40P01", "40001"):
        return True
    message = str(exc).lower()
    return "deadlock detected" in message or "could not serialize" in message


def _is_unique_violation(exc: BaseException) -> bool:
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode == "23505":
        return True
    message = str(exc).lower()
    return "unique constraint" in message or "duplicate key" in message


def _is_lost_race(exc: BaseException) -> bool:
    """A concurrent writer took the slot or the row we were waiting on."""
    return _is_unique_violation(exc) or _is_deadlock_error(exc)


class AppointmentPairWriter:
    """Locks, checks and inserts appointment pairs inside the caller's transaction."""

    def __init__(
        self,
        db: Session,
        business_repository: Optional[BusinessAppointmentRepository] = None,
        client_repository: Optional[ClientAppointmentRepository] = None,
        identity_repository: Optional[IdentityRepository] = None,
        conflict_checker: Optional[ConflictChecker] = None,
    ):
        self.db = db
        self.business_repository = (
            business_repository or RepositoryFactory.create_business_appointment_repository(db)
        )
        self.client_repository = (
            client_repository or RepositoryFactory.create_client_appointment_repository(db)
        )
        self.identity_repository = (
            identity_repository or RepositoryFactory.create_identity_repository(db)
        )
        self.conflict_checker = conflict_checker or ConflictChecker(
            db, identity_repository=self.identity_repository
        )

    def lock_participants(
        self, team_member_id: str, client_id: str, client_model: ClientModel
    ) -> None:
        """Serialize writers for this team member and client until commit."""
        self.identity_repository.lock_team_member(team_member_id)
        self.identity_repository.lock_client(client_id, client_model)

    def ensure_available(
        self,
        *,
        team_member_id: str,
        business_id: str,
        client_id: str,
        day: date,
        start: TimeOfDay,
        end: TimeOfDay,
        exclude_appointment_id: Optional[str] = None,
    ) -> None:
        """
        Raise SlotConflictException when the window overlaps an active booking.

        The error details carry ``conflict_scope`` ("team_member" or "client")
        and the conflicting appointments.
        """
        conflicts = self.conflict_checker.find_conflicts(
            team_member_id,
            day,
            day,
            start,
            end,
            exclude_appointment_id=exclude_appointment_id,
            client_id=client_id,
            business_id=business_id,
        )
        if not conflicts:
            return

        scope = conflicts[0]["scope"]
        prometheus_metrics.record_slot_conflict(scope)
        message = CLIENT_CONFLICT_MESSAGE if scope == SCOPE_CLIENT else TEAM_MEMBER_CONFLICT_MESSAGE
        raise SlotConflictException(
            message,
            details={
                "conflict_scope": scope,
                "team_member_id": team_member_id,
                "client_id": client_id,
                "date": day.isoformat(),
                "start_time": str(start),
                "end_time": str(end),
                "conflicts": conflicts,
            },
        )

    def new_appointment_id(self) -> str:
        """Shared id unused by either mirror table."""
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = generate_appointment_id()
            if not self.business_repository.exists(
                appointment_id=candidate
            ) and not self.client_repository.exists(appointment_id=candidate):
                return candidate
        raise TransactionException("Could not allocate a unique appointment id")

    def insert_pair(self, draft: AppointmentDraft) -> AppointmentPair:
        business_row, client_row = build_pair(draft, self.new_appointment_id())
        self.business_repository.add(business_row)
        self.client_repository.add(client_row)
        logger.info(
            f"Created appointment pair {business_row.appointment_id} for team member "
            f"{business_row.team_member_id} on {business_row.date} "
            f"{business_row.start_time}-{business_row.end_time}"
        )
        return business_row, client_row

    @staticmethod
    @contextmanager
    def translate_storage_errors(context: Dict[str, Any]) -> Iterator[None]:
        """
        Map write-time storage failures onto the domain taxonomy.

        Unique violations and deadlocks mean a concurrent writer won the
        slot. Other integrity violations (CHECK, foreign key) reject the
        data itself; anything else is a failed unit of work.
        """
        try:
            yield
        except (IntegrityError, OperationalError) as exc:
            if _is_lost_race(exc):
                raise SlotConflictException(GENERIC_CONFLICT_MESSAGE, details=context) from exc
            if isinstance(exc, IntegrityError):
                raise ValidationException(
                    "Appointment violates a data constraint", details=context
                ) from exc
            raise
        except RepositoryException as exc:
            cause = exc.__cause__
            if cause is not None and _is_lost_race(cause):
                raise SlotConflictException(GENERIC_CONFLICT_MESSAGE, details=context) from exc
            if isinstance(cause, IntegrityError):
                raise ValidationException(
                    "Appointment violates a data constraint", details=context
                ) from exc
            raise TransactionException(f"Failed to write appointment: {exc}") from exc


def pair_conflict_context(
    team_member_id: str, client_id: str, day: date, start: TimeOfDay, end: TimeOfDay
) -> Dict[str, Any]:
    return {
        "team_member_id": team_member_id,
        "client_id": client_id,
        "date": day.isoformat(),
        "start_time": str(start),
        "end_time": str(end),
    }


def mirror_fields(
    business_row: BusinessAppointment, client_row: Optional[ClientAppointment], **values: Any
) -> List[Any]:
    """Apply the same field values to both mirrors; returns the rows touched."""
    touched: List[Any] = [business_row]
    for key, value in values.items():
        setattr(business_row, key, value)
    if client_row is not None:
        for key, value in values.items():
            setattr(client_row, key, value)
        touched.append(client_row)
    return touched


def offering_from_row(row: BusinessAppointment) -> ResolvedOffering:
    """Carry an existing booking's snapshot over unchanged."""
    return ResolvedOffering(
        services=[dict(item) for item in (row.services or [])],
        package=dict(row.package) if row.package else None,
        total_duration=int(row.duration),
        total_price=Decimal(str(row.total_price)),
        category_id=row.category_id,
    )


def ensure_actor_can_modify(
    actor: Actor, row: BusinessAppointment, identity_repository: IdentityRepository
) -> None:
    """
    Clients may only act on their own appointments, and business users only
    on appointments of the business they own.
    """
    if actor.is_client:
        allowed = actor.id == row.client_id
    else:
        allowed = actor.id == identity_repository.get_business_owner_id(row.business_id)
    if not allowed:
        raise ValidationException(
            "You don't have permission to modify this appointment",
            details={"appointment_id": row.appointment_id},
        )
