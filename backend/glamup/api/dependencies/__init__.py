# backend/glamup/api/dependencies/__init__.py
"""
Central export point for all dependencies.
"""

from .database import get_db
from .services import (
    get_appointment_query_service,
    get_booking_service,
    get_cancellation_service,
    get_notification_service,
    get_reschedule_service,
)

__all__ = [
    # Database
    "get_db",
    # Services
    "get_appointment_query_service",
    "get_booking_service",
    "get_cancellation_service",
    "get_notification_service",
    "get_reschedule_service",
]
