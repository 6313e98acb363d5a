# backend/glamup/repositories/factory.py
"""
Repository Factory for GlamUp

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .appointment_repository import (
        BusinessAppointmentRepository,
        ClientAppointmentRepository,
    )
    from .catalog_repository import CatalogRepository
    from .conflict_checker_repository import ConflictCheckerRepository
    from .identity_repository import IdentityRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.
    """

    @staticmethod
    def create_conflict_checker_repository(db: Session) -> "ConflictCheckerRepository":
        """Create repository for conflict checking queries."""
        from .conflict_checker_repository import ConflictCheckerRepository

        return ConflictCheckerRepository(db)

    @staticmethod
    def create_business_appointment_repository(db: Session) -> "BusinessAppointmentRepository":
        from .appointment_repository import BusinessAppointmentRepository

        return BusinessAppointmentRepository(db)

    @staticmethod
    def create_client_appointment_repository(db: Session) -> "ClientAppointmentRepository":
        from .appointment_repository import ClientAppointmentRepository

        return ClientAppointmentRepository(db)

    @staticmethod
    def create_catalog_repository(db: Session) -> "CatalogRepository":
        """Create repository for catalog lookups."""
        from .catalog_repository import CatalogRepository

        return CatalogRepository(db)

    @staticmethod
    def create_identity_repository(db: Session) -> "IdentityRepository":
        """Create repository for business, team member and client lookups."""
        from .identity_repository import IdentityRepository

        return IdentityRepository(db)
