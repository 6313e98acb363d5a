# backend/glamup/services/cancellation_service.py
"""
Cancellation Service for GlamUp

Cancels both mirrors of an appointment in one transaction. The business
row is the record of truth: if its client mirror cannot be found the
cancellation still commits and the inconsistency is logged.
"""

from datetime import datetime, timezone
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.enums import AppointmentStatus
from ..core.exceptions import AlreadyTerminalException, NotFoundException
from ..models.appointment import BusinessAppointment
from ..repositories.appointment_repository import (
    BusinessAppointmentRepository,
    ClientAppointmentRepository,
)
from ..repositories.factory import RepositoryFactory
from .appointment_pairs import ensure_actor_can_modify
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


class CancellationService(BaseService):
    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
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
        self.identity_repository = RepositoryFactory.create_identity_repository(db)
        self.notification_service = notification_service or NotificationService(db)

    @BaseService.measure_operation("cancel_appointment")
    def cancel(
        self, appointment_id: str, reason: Optional[str], actor: Actor
    ) -> BusinessAppointment:
        """
        Cancel an appointment on both mirrors.

        Args:
            appointment_id: Shared id of the pair
            reason: Free text; defaults to "Cancelled by <client|business>"
            actor: Who is cancelling

        Returns:
            The cancelled business row

        Raises:
            NotFoundException: Unknown appointment
            AlreadyTerminalException: Already cancelled, completed or a no-show
        """
        self.log_operation("cancel_appointment", appointment_id=appointment_id, actor=actor.label)
        reason = (reason or "").strip() or f"Cancelled by {actor.label}"

        with self.transaction():
            business_row = self.business_repository.get_by_appointment_id(
                appointment_id, for_update=True
            )
            if not business_row:
                raise NotFoundException(
                    "Appointment not found", details={"appointment_id": appointment_id}
                )
            ensure_actor_can_modify(actor, business_row, self.identity_repository)
            if business_row.status in [status.value for status in AppointmentStatus.terminal()]:
                raise AlreadyTerminalException(appointment_id, business_row.status, "cancel")

            cancelled_at = datetime.now(timezone.utc)
            business_row.cancel(actor.kind, reason, at=cancelled_at)
            business_row.cancelled_by_id = actor.id
            business_row.updated_by = actor.id

            client_row = self.client_repository.get_by_appointment_id(
                appointment_id, for_update=True
            )
            if client_row is None:
                self.logger.warning(
                    f"Mirror inconsistency: no client record for appointment {appointment_id}; "
                    "cancelling the business record only"
                )
            else:
                client_row.cancel(actor.kind, reason, at=cancelled_at)
            self.business_repository.flush()

        self.notification_service.notify_cancelled(business_row, client_row, actor.kind, reason)
        return business_row
