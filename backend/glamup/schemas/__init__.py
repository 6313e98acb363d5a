"""Request and response schemas for the GlamUp API."""

from .appointment import (
    ActorIn,
    AppointmentCreate,
    AppointmentPairResponse,
    AppointmentUpdate,
    BusinessAppointmentResponse,
    CancelRequest,
    ClientAppointmentCreate,
    ClientAppointmentResponse,
    LineageResponse,
    RescheduleRequest,
    RescheduleResponse,
    ServiceHistoryEntry,
    StatusChangeRequest,
)
from .base_responses import PaginatedResponse

__all__ = [
    "ActorIn",
    "AppointmentCreate",
    "AppointmentPairResponse",
    "AppointmentUpdate",
    "BusinessAppointmentResponse",
    "CancelRequest",
    "ClientAppointmentCreate",
    "ClientAppointmentResponse",
    "LineageResponse",
    "PaginatedResponse",
    "RescheduleRequest",
    "RescheduleResponse",
    "ServiceHistoryEntry",
    "StatusChangeRequest",
]
