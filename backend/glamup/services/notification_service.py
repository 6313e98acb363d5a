# backend/glamup/services/notification_service.py
"""
Notification Service for GlamUp

Sends appointment emails to the counter-party of each booking event using
Jinja2 templates. Notifications are fire-and-forget: every public method
logs and swallows its own failures, so a booking flow never fails or rolls
back because an email could not be delivered.
"""

import logging
import time
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import ActorKind, ClientModel, CreatedVia
from ..models.appointment import BusinessAppointment, ClientAppointment
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.identity_repository import IdentityRepository
from .base import BaseService
from .email import EmailService
from .template_service import TemplateService

logger = logging.getLogger(__name__)

TEMPLATE_ROOT = "email/appointments"


class NotificationService(BaseService):
    """
    Appointment notifications.

    Each ``notify_*`` method returns True when an email was handed to the
    provider, False when it was skipped or failed.
    """

    def __init__(
        self,
        db: Session,
        template_service: Optional[TemplateService] = None,
        email_service: Optional[EmailService] = None,
        identity_repository: Optional[IdentityRepository] = None,
        max_attempts: int = 2,
        retry_backoff_seconds: float = 0.5,
    ) -> None:
        super().__init__(db)
        self.template_service = template_service or TemplateService()
        self.email_service = email_service or EmailService()
        self.identity_repository = (
            identity_repository or RepositoryFactory.create_identity_repository(db)
        )
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds

    # Recipients

    def _business_contact(self, business_id: str) -> tuple[Optional[str], str]:
        business = self.identity_repository.get_by_id(business_id)
        if not business:
            return None, ""
        return business.email, business.name

    def _client_contact(self, client_id: str, client_model: str) -> tuple[Optional[str], str]:
        client = self.identity_repository.get_active_client(client_id, ClientModel(client_model))
        if not client:
            return None, ""
        return client.email, client.name

    # Delivery

    def _send_with_retry(self, to_email: str, subject: str, html: str) -> None:
        for attempt in range(1, self.max_attempts + 1):
            try:
                self.email_service.send_email(to_email, subject, html)
                return
            except Exception as e:
                if attempt >= self.max_attempts:
                    raise
                wait_time = self.retry_backoff_seconds * (2 ** (attempt - 1))
                self.logger.warning(
                    f"Attempt {attempt}/{self.max_attempts} to email {to_email} failed: {str(e)}. "
                    f"Retrying in {wait_time}s..."
                )
                if wait_time:
                    time.sleep(wait_time)

    def _dispatch(
        self,
        event_type: str,
        to_email: Optional[str],
        subject: str,
        template: str,
        context: Dict[str, Any],
    ) -> bool:
        if not settings.notifications_enabled:
            self.logger.debug(f"Notifications disabled; skipping {event_type}")
            return False
        if not to_email:
            self.logger.info(f"No recipient email for {event_type}; skipping")
            prometheus_metrics.record_notification_outcome(event_type, "skipped")
            return False

        started = time.monotonic()
        try:
            html = self.template_service.render_template(f"{TEMPLATE_ROOT}/{template}", context)
            self._send_with_retry(to_email, subject, html)
        except Exception as e:
            self.logger.error(f"Failed to send {event_type} notification to {to_email}: {str(e)}")
            prometheus_metrics.record_notification_outcome(event_type, "failed")
            return False
        finally:
            prometheus_metrics.observe_notification_dispatch(
                event_type, time.monotonic() - started
            )

        prometheus_metrics.record_notification_outcome(event_type, "sent")
        self.log_operation(f"notification_{event_type}", to_email=to_email)
        return True

    def _notify_client(
        self,
        event_type: str,
        subject: str,
        template: str,
        client_appointment: ClientAppointment,
        **extra: Any,
    ) -> bool:
        to_email, client_name = self._client_contact(
            client_appointment.client_id, client_appointment.client_model
        )
        context = {
            "client_name": client_name or "there",
            "business_name": client_appointment.business_name,
            "appointment": client_appointment.to_dict(),
            **extra,
        }
        return self._dispatch(event_type, to_email, subject, template, context)

    def _notify_business(
        self,
        event_type: str,
        subject: str,
        template: str,
        client_appointment: ClientAppointment,
        **extra: Any,
    ) -> bool:
        to_email, business_name = self._business_contact(client_appointment.business_id)
        _, client_name = self._client_contact(
            client_appointment.client_id, client_appointment.client_model
        )
        context = {
            "client_name": client_name or "A client",
            "business_name": business_name or client_appointment.business_name,
            "appointment": client_appointment.to_dict(),
            **extra,
        }
        return self._dispatch(event_type, to_email, subject, template, context)

    # Public API: never raises

    def notify_booked(
        self, business_appointment: BusinessAppointment, client_appointment: ClientAppointment
    ) -> bool:
        """Tell the party that did not create the booking about it."""
        try:
            if business_appointment.created_via == CreatedVia.CLIENT_BOOKING.value:
                return self._notify_business(
                    "appointment_booked_business",
                    f"New appointment {client_appointment.appointment_id}",
                    "business_booked.html",
                    client_appointment,
                )
            return self._notify_client(
                "appointment_booked",
                f"Your appointment at {client_appointment.business_name} is booked",
                "client_booked.html",
                client_appointment,
            )
        except Exception as e:
            self.logger.error(f"notify_booked failed for {client_appointment.appointment_id}: {e}")
            return False

    def notify_cancelled(
        self,
        business_appointment: BusinessAppointment,
        client_appointment: Optional[ClientAppointment],
        cancelled_by: ActorKind,
        reason: Optional[str] = None,
    ) -> bool:
        """Tell the counter-party of whoever cancelled."""
        if client_appointment is None:
            self.logger.info(
                f"No client mirror for {business_appointment.appointment_id}; "
                "skipping cancellation email"
            )
            return False
        try:
            if cancelled_by == ActorKind.CLIENT:
                return self._notify_business(
                    "appointment_cancelled_business",
                    f"Appointment {client_appointment.appointment_id} cancelled",
                    "business_cancelled.html",
                    client_appointment,
                    reason=reason,
                )
            return self._notify_client(
                "appointment_cancelled",
                f"Your appointment at {client_appointment.business_name} was cancelled",
                "client_cancelled.html",
                client_appointment,
                reason=reason,
            )
        except Exception as e:
            self.logger.error(
                f"notify_cancelled failed for {business_appointment.appointment_id}: {e}"
            )
            return False

    def notify_confirmed(self, client_appointment: ClientAppointment) -> bool:
        try:
            return self._notify_client(
                "appointment_confirmed",
                f"Your appointment at {client_appointment.business_name} is confirmed",
                "client_confirmed.html",
                client_appointment,
            )
        except Exception as e:
            self.logger.error(f"notify_confirmed failed: {e}")
            return False

    def notify_completed(self, client_appointment: ClientAppointment) -> bool:
        try:
            return self._notify_client(
                "appointment_completed",
                f"Thanks for visiting {client_appointment.business_name}",
                "client_completed.html",
                client_appointment,
            )
        except Exception as e:
            self.logger.error(f"notify_completed failed: {e}")
            return False

    def notify_team_member_reassigned(
        self, client_appointment: ClientAppointment, previous_team_member_name: Optional[str]
    ) -> bool:
        try:
            return self._notify_client(
                "team_member_reassigned",
                f"Your appointment at {client_appointment.business_name} has a new stylist",
                "client_team_member_reassigned.html",
                client_appointment,
                previous_team_member_name=previous_team_member_name,
            )
        except Exception as e:
            self.logger.error(f"notify_team_member_reassigned failed: {e}")
            return False
