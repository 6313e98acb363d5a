# backend/glamup/repositories/__init__.py
"""
Repository layer for GlamUp.

Repositories encapsulate data access; services own transactions.
"""

from .appointment_repository import BusinessAppointmentRepository, ClientAppointmentRepository
from .base_repository import BaseRepository, IRepository
from .catalog_repository import CatalogRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .factory import RepositoryFactory
from .identity_repository import IdentityRepository

__all__ = [
    "IRepository",
    "BaseRepository",
    "RepositoryFactory",
    "BusinessAppointmentRepository",
    "ClientAppointmentRepository",
    "CatalogRepository",
    "ConflictCheckerRepository",
    "IdentityRepository",
]
