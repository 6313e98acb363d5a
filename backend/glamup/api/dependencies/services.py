# backend/glamup/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each request gets fresh service instances bound to its database session.
"""

from functools import lru_cache
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.appointment_query_service import AppointmentQueryService
from ...services.booking_service import BookingService
from ...services.cancellation_service import CancellationService
from ...services.email import EmailService
from ...services.notification_service import NotificationService
from ...services.reschedule_service import RescheduleService
from ...services.template_service import TemplateService
from .database import get_db

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_template_service() -> TemplateService:
    """Get singleton template service (the Jinja2 environment is reusable)."""
    return TemplateService()


def get_email_service() -> EmailService:
    return EmailService()


def get_notification_service(
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> NotificationService:
    """
    Get notification service instance.

    Args:
        db: Database session
        email_service: Email service for sending emails

    Returns:
        NotificationService instance
    """
    return NotificationService(
        db, template_service=get_template_service(), email_service=email_service
    )


def get_booking_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> BookingService:
    return BookingService(db, notification_service=notification_service)


def get_reschedule_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> RescheduleService:
    return RescheduleService(db, notification_service=notification_service)


def get_cancellation_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> CancellationService:
    return CancellationService(db, notification_service=notification_service)


def get_appointment_query_service(db: Session = Depends(get_db)) -> AppointmentQueryService:
    return AppointmentQueryService(db)
