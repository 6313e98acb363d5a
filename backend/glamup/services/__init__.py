# backend/glamup/services/__init__.py
"""
Service layer for GlamUp.

Services own transactions and business rules; repositories only read and
flush.
"""

from .appointment_query_service import AppointmentQueryService
from .base import BaseService
from .booking_service import BookingService
from .cancellation_service import CancellationService
from .conflict_checker import ConflictChecker
from .entity_resolver import EntityResolver
from .notification_service import NotificationService
from .reschedule_service import RescheduleService

__all__ = [
    "BaseService",
    "AppointmentQueryService",
    "BookingService",
    "CancellationService",
    "ConflictChecker",
    "EntityResolver",
    "NotificationService",
    "RescheduleService",
]
