# backend/glamup/services/booking_service.py
"""
Booking Service for GlamUp

Creates appointment pairs and owns every in-place change to a still-open
booking: edits, confirmation, completion and no-show. Each mutation runs
in one transaction and is applied to both mirrors; notifications go out
after commit and never affect the outcome.
"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.actor import Actor
from ..core.config import settings
from ..core.enums import AppointmentStatus, ClientModel, CreatedVia
from ..core.exceptions import (
    AlreadyTerminalException,
    BusinessRuleException,
    NotFoundException,
    ValidationException,
)
from ..core.time_of_day import TimeOfDay
from ..models.appointment import BusinessAppointment, ClientAppointment
from ..repositories.appointment_repository import (
    BusinessAppointmentRepository,
    ClientAppointmentRepository,
)
from ..repositories.factory import RepositoryFactory
from ..schemas.appointment import AppointmentCreate
from .appointment_pairs import (
    AppointmentDraft,
    AppointmentPair,
    AppointmentPairWriter,
    end_date_for,
    ensure_actor_can_modify,
    mirror_fields,
    offering_from_row,
    pair_conflict_context,
)
from .base import BaseService
from .entity_resolver import EntityResolver
from .notification_service import NotificationService
from .pricing import apply_discount, compute_end_time, resolve_end_time

logger = logging.getLogger(__name__)


class BookingService(BaseService):
    """
    Service layer for creating and editing appointment pairs.
    """

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

    # Creation

    @BaseService.measure_operation("create_booking")
    def create_booking(self, request: AppointmentCreate, actor: Actor) -> AppointmentPair:
        """
        Create both mirrors of a new appointment.

        Args:
            request: Booking data (services or package, window, pricing)
            actor: Client booking for themselves, or the business

        Returns:
            Tuple of (BusinessAppointment, ClientAppointment)

        Raises:
            ValidationException: Missing or contradictory fields
            NotFoundException: A referenced entity is missing or inactive
            SlotConflictException: Team member or client is already booked
        """
        self.log_operation(
            "create_booking",
            business_id=request.business_id,
            team_member_id=request.team_member_id,
            client_id=request.client_id,
            date=request.date.isoformat(),
            actor=actor.label,
        )
        if actor.is_client and actor.id != request.client_id:
            raise ValidationException("Clients can only book appointments for themselves")

        start = TimeOfDay.parse(request.start_time)

        with self.transaction():
            resolved = self.entity_resolver.resolve_booking(
                client_id=request.client_id,
                team_member_id=request.team_member_id,
                business_id=request.business_id,
                date_from=request.date,
                date_to=request.date,
                category_id=request.category_id,
                service_ids=request.service_ids,
                package_id=request.package_id,
                client_model=request.client_model,
            )
            end = resolve_end_time(start, resolved.total_duration, request.end_time)

            if request.status is not None:
                status = request.status
            elif actor.is_client:
                status = AppointmentStatus.PENDING
            else:
                status = AppointmentStatus.CONFIRMED

            draft = AppointmentDraft(
                business=resolved.business,
                team_member=resolved.team_member,
                client_id=request.client_id,
                client_model=resolved.client_model,
                offering=resolved.offering,
                date=request.date,
                start=start,
                end=end,
                created_by=resolved.business.owner_id if actor.is_client else actor.id,
                created_via=CreatedVia.CLIENT_BOOKING if actor.is_client else CreatedVia.BUSINESS,
                status=status,
                category_id=resolved.category.id if resolved.category else None,
                category_name=resolved.category.name if resolved.category else None,
                discount=request.discount,
                currency=request.currency or settings.default_currency,
                payment_status=request.payment_status,
                payment_method=request.payment_method,
                location_type=request.location_type,
                location_address=request.location_address,
                notes=request.notes,
            )

            context = pair_conflict_context(
                request.team_member_id, request.client_id, request.date, start, end
            )
            with self.writer.translate_storage_errors(context):
                self.writer.lock_participants(
                    request.team_member_id, request.client_id, resolved.client_model
                )
                self.writer.ensure_available(
                    team_member_id=request.team_member_id,
                    business_id=request.business_id,
                    client_id=request.client_id,
                    day=request.date,
                    start=start,
                    end=end,
                )
                business_row, client_row = self.writer.insert_pair(draft)

        self.notification_service.notify_booked(business_row, client_row)
        return business_row, client_row

    # In-place edits

    def _load_open_pair(
        self, appointment_id: str, actor: Actor, action: str
    ) -> Tuple[BusinessAppointment, Optional[ClientAppointment]]:
        business_row = self.business_repository.get_by_appointment_id(
            appointment_id, for_update=True
        )
        if not business_row:
            raise NotFoundException(
                "Appointment not found", details={"appointment_id": appointment_id}
            )
        ensure_actor_can_modify(actor, business_row, self.writer.identity_repository)
        if business_row.status not in [status.value for status in AppointmentStatus.active()]:
            raise AlreadyTerminalException(appointment_id, business_row.status, action)

        client_row = self.client_repository.get_by_appointment_id(
            appointment_id, for_update=True
        )
        if client_row is None:
            self.logger.warning(
                f"Client mirror missing for appointment {appointment_id} during {action}"
            )
        return business_row, client_row

    @BaseService.measure_operation("update_booking")
    def update_booking(
        self, appointment_id: str, changes: Dict[str, Any], actor: Actor
    ) -> Tuple[BusinessAppointment, Optional[ClientAppointment]]:
        """
        Edit an open appointment in place and send it back for confirmation.

        Availability is re-checked only when the window or the team member
        changes, ignoring the appointment itself. Both mirrors are rewritten
        and the status returns to PENDING.
        """
        self.log_operation("update_booking", appointment_id=appointment_id, actor=actor.label)
        previous_team_member_name: Optional[str] = None

        with self.transaction():
            business_row, client_row = self._load_open_pair(appointment_id, actor, "update")
            business_id = business_row.business_id

            new_team_member_id = changes.get("team_member_id") or business_row.team_member_id
            team_member_changed = new_team_member_id != business_row.team_member_id
            team_member = (
                self.entity_resolver.resolve_team_member(new_team_member_id, business_id)
                if team_member_changed
                else None
            )

            service_ids = changes.get("service_ids")
            package_id = changes.get("package_id")
            offering_changed = bool(service_ids) or bool(package_id)
            if offering_changed:
                offering = self.entity_resolver.resolve_offering(
                    business_id, service_ids=service_ids, package_id=package_id
                )
            else:
                offering = offering_from_row(business_row)

            category_id = business_row.category_id
            category_name = client_row.category_name if client_row else None
            requested_category = changes.get("category_id")
            if requested_category:
                category = self.entity_resolver.resolve_category(requested_category, business_id)
                category_id, category_name = category.id, category.name
            elif offering_changed and offering.category_id:
                category = self.entity_resolver.catalog_repository.get_active_category(
                    offering.category_id, business_id
                )
                if category:
                    category_id, category_name = category.id, category.name

            old_start, old_end = business_row.window
            new_date = changes.get("date") or business_row.date
            new_start = (
                TimeOfDay.parse(changes["start_time"]) if changes.get("start_time") else old_start
            )
            if changes.get("end_time"):
                new_end = resolve_end_time(new_start, offering.total_duration, changes["end_time"])
            elif new_start != old_start or offering_changed:
                new_end = compute_end_time(new_start, offering.total_duration)
            else:
                new_end = old_end
            window_changed = (new_date, new_start, new_end) != (
                business_row.date,
                old_start,
                old_end,
            )

            context = pair_conflict_context(
                new_team_member_id, business_row.client_id, new_date, new_start, new_end
            )
            with self.writer.translate_storage_errors(context):
                if window_changed or team_member_changed:
                    self.writer.lock_participants(
                        new_team_member_id,
                        business_row.client_id,
                        ClientModel(business_row.client_model),
                    )
                    self.writer.ensure_available(
                        team_member_id=new_team_member_id,
                        business_id=business_id,
                        client_id=business_row.client_id,
                        day=new_date,
                        start=new_start,
                        end=new_end,
                        exclude_appointment_id=appointment_id,
                    )

                discount = changes.get("discount")
                prices = apply_discount(
                    offering.total_price,
                    discount if discount is not None else business_row.discount,
                )
                values: Dict[str, Any] = {
                    "team_member_id": new_team_member_id,
                    "category_id": category_id,
                    "services": offering.services,
                    "package": offering.package,
                    "date": new_date,
                    "end_date": end_date_for(new_date, new_start, new_end),
                    "start_time": new_start.to_time(),
                    "end_time": new_end.to_time(),
                    "duration": offering.total_duration,
                    "total_price": prices.total_price,
                    "discount": prices.discount,
                    "final_price": prices.final_price,
                    "status": AppointmentStatus.PENDING.value,
                }
                for key in ("payment_method", "location_type"):
                    if changes.get(key) is not None:
                        values[key] = changes[key].value
                if "notes" in changes:
                    values["notes"] = changes["notes"]
                mirror_fields(business_row, client_row, **values)
                business_row.updated_by = actor.id

                if client_row is not None:
                    client_row.category_name = category_name
                    if "location_address" in changes:
                        client_row.location_address = changes["location_address"]
                    if team_member is not None:
                        previous_team_member_name = client_row.team_member_name
                        client_row.team_member_name = team_member.name
                        client_row.team_member_profile_pic = team_member.profile_pic
                self.business_repository.flush()

        if team_member_changed and client_row is not None:
            self.notification_service.notify_team_member_reassigned(
                client_row, previous_team_member_name
            )
        return business_row, client_row

    # Status transitions

    def _transition(
        self,
        appointment_id: str,
        actor: Actor,
        action: str,
        allowed_from: Tuple[AppointmentStatus, ...],
        apply: Callable[[BusinessAppointment], None],
    ) -> Tuple[BusinessAppointment, Optional[ClientAppointment]]:
        if actor.is_client:
            raise ValidationException(f"Only the business can {action} an appointment")

        with self.transaction():
            business_row, client_row = self._load_open_pair(appointment_id, actor, action)
            if business_row.status not in [status.value for status in allowed_from]:
                raise BusinessRuleException(
                    f"Cannot {action} an appointment with status {business_row.status}",
                    details={"appointment_id": appointment_id, "status": business_row.status},
                )
            apply(business_row)
            if client_row is not None:
                client_row.status = business_row.status
            self.business_repository.flush()

        self.log_operation(
            "status_transition",
            appointment_id=appointment_id,
            action=action,
            new_status=business_row.status,
        )
        return business_row, client_row

    @BaseService.measure_operation("confirm_booking")
    def confirm_booking(
        self, appointment_id: str, actor: Actor
    ) -> Tuple[BusinessAppointment, Optional[ClientAppointment]]:
        """PENDING -> CONFIRMED on both mirrors."""
        business_row, client_row = self._transition(
            appointment_id,
            actor,
            "confirm",
            (AppointmentStatus.PENDING,),
            lambda row: row.confirm(actor.id),
        )
        if client_row is not None:
            self.notification_service.notify_confirmed(client_row)
        return business_row, client_row

    @BaseService.measure_operation("complete_booking")
    def complete_booking(
        self, appointment_id: str, actor: Actor
    ) -> Tuple[BusinessAppointment, Optional[ClientAppointment]]:
        """PENDING or CONFIRMED -> COMPLETED on both mirrors."""
        business_row, client_row = self._transition(
            appointment_id,
            actor,
            "complete",
            AppointmentStatus.active(),
            lambda row: row.complete(actor.id),
        )
        if client_row is not None:
            self.notification_service.notify_completed(client_row)
        return business_row, client_row

    @BaseService.measure_operation("mark_no_show")
    def mark_no_show(
        self, appointment_id: str, actor: Actor
    ) -> Tuple[BusinessAppointment, Optional[ClientAppointment]]:
        return self._transition(
            appointment_id,
            actor,
            "mark as no-show",
            AppointmentStatus.active(),
            lambda row: row.mark_no_show(actor.id),
        )
