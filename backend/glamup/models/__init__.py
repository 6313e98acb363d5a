# backend/glamup/models/__init__.py
"""
SQLAlchemy models for GlamUp.

Importing this package registers every table on ``Base.metadata``.
"""

from .appointment import BusinessAppointment, ClientAppointment
from .business import Business, TeamMember
from .catalog import Category, Package, Service
from .client import Client, RegisteredClient

__all__ = [
    "Business",
    "TeamMember",
    "Client",
    "RegisteredClient",
    "Category",
    "Service",
    "Package",
    "BusinessAppointment",
    "ClientAppointment",
]
