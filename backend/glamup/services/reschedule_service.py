# backend/glamup/services/reschedule_service.py
"""
Reschedule Service for GlamUp

A reschedule never edits a booking in place. The current pair is cancelled
and flagged ``is_rescheduled``; a new pair with a fresh appointment id is
created whose mirrors point back at the superseded rows. Following
``parent_appointment_id`` from any booking walks its history back to the
original.
"""

from datetime import date, datetime, timezone
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.enums import AppointmentStatus, ClientModel, CreatedVia, LocationType, PaymentMethod
from ..core.exceptions import AlreadyTerminalException, NotFoundException
from ..core.time_of_day import TimeLike, TimeOfDay
from ..models.appointment import BusinessAppointment
from ..repositories.appointment_repository import (
    BusinessAppointmentRepository,
    ClientAppointmentRepository,
)
from ..repositories.factory import RepositoryFactory
from .appointment_pairs import (
    AppointmentDraft,
    AppointmentPair,
    AppointmentPairWriter,
    ensure_actor_can_modify,
    offering_from_row,
    pair_conflict_context,
)
from .base import BaseService
from .entity_resolver import EntityResolver
from .notification_service import NotificationService
from .pricing import resolve_end_time

logger = logging.getLogger(__name__)

# Guards against a corrupted parent pointer forming a cycle
MAX_LINEAGE_DEPTH = 500


class RescheduleService(BaseService):
    """Supersedes appointment pairs and reads their history."""

    def __init__(
        self,
        db: Session,
        entity_resolver: Optional[EntityResolver] = None,
        notification_service: Optional[NotificationService] = None,
        writer: Optional[AppointmentPairWriter] = None,
        business_repository: Optional[BusinessAppointmentRepository] = None,
        client_repository: Optional[ClientAppointmentRepository] = None,
    ):
        super().__init__(db)
        self.business_repository = (
            business_repository or RepositoryFactory.create_business_appointment_repository(db)
        )
        self.client_repository = (
            client_repository or RepositoryFactory.create_client_appointment_repository(db)
        )
        self.entity_resolver = entity_resolver or EntityResolver(db)
        self.writer = writer or AppointmentPairWriter(
            db,
            business_repository=self.business_repository,
            client_repository=self.client_repository,
        )
        self.notification_service = notification_service or NotificationService(db)

    @BaseService.measure_operation("reschedule_appointment")
    def reschedule(
        self,
        appointment_id: str,
        new_date: date,
        start_time: TimeLike,
        actor: Actor,
        end_time: Optional[TimeLike] = None,
        new_team_member_id: Optional[str] = None,
        service_ids: Optional[Sequence[str]] = None,
        package_id: Optional[str] = None,
    ) -> Tuple[AppointmentPair, AppointmentPair]:
        """
        Replace a booking with a new one at a different window.

        The new pair starts PENDING and keeps the client, category and
        pricing of the old one unless services or a package are given.

        Returns:
            ((old business row, old client row), (new business row, new client row))

        Raises:
            NotFoundException: Unknown appointment, or the client mirror is missing
            AlreadyTerminalException: The appointment is cancelled, completed or a no-show
            SlotConflictException: The new window is taken
        """
        self.log_operation(
            "reschedule_appointment",
            appointment_id=appointment_id,
            new_date=new_date.isoformat(),
            actor=actor.label,
        )
        start = TimeOfDay.parse(start_time)

        with self.transaction():
            old_business = self.business_repository.get_by_appointment_id(
                appointment_id, for_update=True
            )
            if not old_business:
                raise NotFoundException(
                    "Appointment not found", details={"appointment_id": appointment_id}
                )
            ensure_actor_can_modify(actor, old_business, self.writer.identity_repository)
            if old_business.status in [status.value for status in AppointmentStatus.terminal()]:
                raise AlreadyTerminalException(appointment_id, old_business.status, "reschedule")

            old_client = self.client_repository.get_by_appointment_id(
                appointment_id, for_update=True
            )
            if not old_client:
                # Both new mirrors need a parent; refuse rather than start a broken chain
                raise NotFoundException(
                    "Client record for this appointment is missing",
                    details={"appointment_id": appointment_id},
                )

            business_id = old_business.business_id
            business = self.entity_resolver.resolve_business(business_id)
            team_member_id = new_team_member_id or old_business.team_member_id
            team_member = self.entity_resolver.resolve_team_member(team_member_id, business_id)

            if service_ids or package_id:
                offering = self.entity_resolver.resolve_offering(
                    business_id, service_ids=service_ids, package_id=package_id
                )
            else:
                offering = offering_from_row(old_business)
            end = resolve_end_time(start, offering.total_duration, end_time)

            client_model = ClientModel(old_business.client_model)
            context = pair_conflict_context(
                team_member_id, old_business.client_id, new_date, start, end
            )
            with self.writer.translate_storage_errors(context):
                self.writer.lock_participants(team_member_id, old_business.client_id, client_model)
                self.writer.ensure_available(
                    team_member_id=team_member_id,
                    business_id=business_id,
                    client_id=old_business.client_id,
                    day=new_date,
                    start=start,
                    end=end,
                    exclude_appointment_id=appointment_id,
                )

                reason = f"Rescheduled by {actor.label}"
                cancelled_at = datetime.now(timezone.utc)
                old_business.cancel(actor.kind, reason, rescheduled=True, at=cancelled_at)
                old_business.cancelled_by_id = actor.id
                old_business.updated_by = actor.id
                old_client.cancel(actor.kind, reason, rescheduled=True, at=cancelled_at)

                draft = AppointmentDraft(
                    business=business,
                    team_member=team_member,
                    client_id=old_business.client_id,
                    client_model=client_model,
                    offering=offering,
                    date=new_date,
                    start=start,
                    end=end,
                    created_by=actor.id if not actor.is_client else old_business.created_by,
                    created_via=CreatedVia(old_business.created_via),
                    status=AppointmentStatus.PENDING,
                    category_id=old_business.category_id,
                    category_name=old_client.category_name,
                    discount=old_business.discount,
                    currency=old_business.currency,
                    payment_method=PaymentMethod(old_business.payment_method),
                    location_type=LocationType(old_business.location_type),
                    location_address=old_client.location_address,
                    notes=old_business.notes,
                    parent_business_row_id=old_business.id,
                    parent_client_row_id=old_client.id,
                )
                new_business, new_client = self.writer.insert_pair(draft)

        self.logger.info(
            f"Rescheduled {appointment_id} -> {new_business.appointment_id} "
            f"({new_date} {start}-{end})"
        )
        if team_member_id != old_business.team_member_id:
            self.notification_service.notify_team_member_reassigned(
                new_client, old_client.team_member_name
            )
        return (old_business, old_client), (new_business, new_client)

    @BaseService.measure_operation("get_lineage")
    def get_lineage(self, appointment_id: str) -> List[BusinessAppointment]:
        """
        Walk a booking's history through its business mirror.

        Returns:
            The appointment first, then each superseded predecessor, ending
            with the original booking (whose parent is None)
        """
        current = self.business_repository.get_by_appointment_id(appointment_id)
        if not current:
            raise NotFoundException(
                "Appointment not found", details={"appointment_id": appointment_id}
            )

        chain = [current]
        seen = {current.id}
        while current.parent_appointment_id and len(chain) < MAX_LINEAGE_DEPTH:
            parent = self.business_repository.get_by_id(current.parent_appointment_id)
            if parent is None or parent.id in seen:
                self.logger.warning(
                    f"Broken lineage for {appointment_id} at row {current.id} "
                    f"(parent {current.parent_appointment_id})"
                )
                break
            chain.append(parent)
            seen.add(parent.id)
            current = parent
        return chain
