# backend/glamup/core/enums.py
"""
Core enums for the GlamUp scheduling engine.

Values are stored verbatim in the database, so they must stay stable.
"""

from enum import Enum


class AppointmentStatus(str, Enum):
    """Appointment lifecycle statuses shared by both mirrors."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"

    @classmethod
    def active(cls) -> tuple["AppointmentStatus", ...]:
        """Statuses that occupy a slot."""
        return (cls.PENDING, cls.CONFIRMED)

    @classmethod
    def terminal(cls) -> tuple["AppointmentStatus", ...]:
        return (cls.CANCELLED, cls.COMPLETED, cls.NO_SHOW)


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    ONLINE = "online"
    OTHER = "other"


class LocationType(str, Enum):
    """Where the appointment takes place."""

    BUSINESS = "business"
    CLIENT = "client"
    ONLINE = "online"
    OTHER = "other"


class ClientModel(str, Enum):
    """Which client table an appointment's client id points into."""

    CLIENT = "Client"
    REGISTERED_CLIENT = "RegisteredClient"


class CreatedVia(str, Enum):
    BUSINESS = "business"
    CLIENT_BOOKING = "client_booking"


class ActorKind(str, Enum):
    """The party performing a mutation."""

    CLIENT = "client"
    BUSINESS = "business"


class BusinessStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class TimeStatus(str, Enum):
    """Past/Upcoming tag shown on client appointment lists."""

    PAST = "Past"
    UPCOMING = "Upcoming"
