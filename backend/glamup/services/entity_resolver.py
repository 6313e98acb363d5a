# backend/glamup/services/entity_resolver.py
"""
Entity Resolver for GlamUp

Validates and loads everything a booking request references: business,
client, team member, category and either a list of services or a package.
All identities must belong to the requesting business and be active.
The resolver never writes.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
import logging
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.enums import ClientModel
from ..core.exceptions import (
    CrossTenantException,
    InvalidCombinationException,
    NotFoundException,
    ValidationException,
)
from ..models.business import Business, TeamMember
from ..models.catalog import Category, Package, Service
from ..repositories.catalog_repository import CatalogModel, CatalogRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.identity_repository import AnyClient, IdentityRepository
from .base import BaseService
from .pricing import to_money, total_for

logger = logging.getLogger(__name__)


@dataclass
class ResolvedOffering:
    """Services or package snapshot with aggregate duration and price."""

    services: List[Dict[str, Any]] = field(default_factory=list)
    package: Optional[Dict[str, Any]] = None
    total_duration: int = 0
    total_price: Decimal = Decimal("0.00")
    category_id: Optional[str] = None


@dataclass
class ResolvedBooking:
    business: Business
    client: AnyClient
    client_model: ClientModel
    team_member: TeamMember
    category: Optional[Category]
    offering: ResolvedOffering

    @property
    def total_duration(self) -> int:
        return self.offering.total_duration

    @property
    def total_price(self) -> Decimal:
        return self.offering.total_price


def ensure_services_xor_package(
    service_ids: Optional[Sequence[str]], package_id: Optional[str]
) -> None:
    """Exactly one of a non-empty service list or a package id."""
    has_services = bool(service_ids)
    has_package = bool(package_id)
    if has_services and has_package:
        raise InvalidCombinationException(
            "Provide either services or a package, not both",
            details={"service_ids": list(service_ids or []), "package_id": package_id},
        )
    if not has_services and not has_package:
        raise InvalidCombinationException("Either services or a package is required")


class EntityResolver(BaseService):
    """Loads and validates booking references for one tenant."""

    def __init__(
        self,
        db: Session,
        catalog_repository: Optional[CatalogRepository] = None,
        identity_repository: Optional[IdentityRepository] = None,
    ):
        super().__init__(db)
        self.catalog_repository = (
            catalog_repository or RepositoryFactory.create_catalog_repository(db)
        )
        self.identity_repository = (
            identity_repository or RepositoryFactory.create_identity_repository(db)
        )

    def resolve_booking(
        self,
        *,
        client_id: str,
        team_member_id: str,
        business_id: str,
        date_from: date,
        date_to: date,
        category_id: Optional[str] = None,
        service_ids: Optional[Sequence[str]] = None,
        package_id: Optional[str] = None,
        client_model: ClientModel = ClientModel.CLIENT,
    ) -> ResolvedBooking:
        """
        Resolve every reference of a booking request.

        Raises:
            ValidationException: date range is inverted
            InvalidCombinationException: both or neither of services/package
            NotFoundException: a reference is missing, inactive or deleted
            CrossTenantException: a reference belongs to another business
        """
        if date_from > date_to:
            raise ValidationException(
                "Start date must be on or before end date",
                details={"date_from": date_from.isoformat(), "date_to": date_to.isoformat()},
            )
        ensure_services_xor_package(service_ids, package_id)

        business = self.resolve_business(business_id)
        client = self.resolve_client(client_id, business_id, client_model)
        team_member = self.resolve_team_member(team_member_id, business_id)
        category = self.resolve_category(category_id, business_id) if category_id else None
        offering = self.resolve_offering(
            business_id, service_ids=service_ids, package_id=package_id
        )

        if category is None and offering.category_id:
            category = self.catalog_repository.get_active_category(
                offering.category_id, business_id
            )

        return ResolvedBooking(
            business=business,
            client=client,
            client_model=client_model,
            team_member=team_member,
            category=category,
            offering=offering,
        )

    def resolve_business(self, business_id: str) -> Business:
        business = self.identity_repository.get_active_business(business_id)
        if not business:
            raise NotFoundException("Business not found", details={"business_id": business_id})
        return business

    def resolve_client(
        self, client_id: str, business_id: str, client_model: ClientModel
    ) -> AnyClient:
        client = self.identity_repository.get_active_client(client_id, client_model)
        if not client:
            raise NotFoundException(
                "Client not found",
                details={"client_id": client_id, "client_model": client_model.value},
            )
        # Ad-hoc clients are tenant-owned; registered clients are platform-wide
        owner = getattr(client, "business_id", None)
        if owner is not None and owner != business_id:
            raise CrossTenantException("Client", client_id, business_id)
        return client

    def resolve_team_member(self, team_member_id: str, business_id: str) -> TeamMember:
        team_member = self.identity_repository.get_active_team_member(team_member_id, business_id)
        if team_member:
            return team_member
        owner = self.identity_repository.get_team_member_business_id(team_member_id)
        if owner is not None and owner != business_id:
            raise CrossTenantException("Team member", team_member_id, business_id)
        raise NotFoundException(
            "Team member not found or inactive", details={"team_member_id": team_member_id}
        )

    def resolve_category(self, category_id: str, business_id: str) -> Category:
        category = self.catalog_repository.get_active_category(category_id, business_id)
        if not category:
            self._raise_missing(Category, "Category", category_id, business_id)
        return category

    def resolve_offering(
        self,
        business_id: str,
        *,
        service_ids: Optional[Sequence[str]] = None,
        package_id: Optional[str] = None,
    ) -> ResolvedOffering:
        """Snapshot the requested services or package with their totals."""
        ensure_services_xor_package(service_ids, package_id)

        if package_id:
            package = self.catalog_repository.get_active_package(package_id, business_id)
            if not package:
                self._raise_missing(Package, "Package", package_id, business_id)
            return ResolvedOffering(
                package=package.snapshot(),
                total_duration=int(package.duration),
                total_price=to_money(package.final_price),
                category_id=package.category_id,
            )

        requested = list(service_ids or [])
        services = self.catalog_repository.get_active_services(requested, business_id)
        if len(services) != len(requested):
            found = {service.id for service in services}
            for service_id in requested:
                if service_id not in found:
                    self._raise_missing(Service, "Service", service_id, business_id)

        snapshots = [service.snapshot() for service in services]
        duration, price = total_for(snapshots)
        return ResolvedOffering(
            services=snapshots,
            total_duration=duration,
            total_price=price,
            category_id=services[0].category_id if services else None,
        )

    def _raise_missing(
        self, model: CatalogModel, label: str, entity_id: str, business_id: str
    ) -> NoReturn:
        owner = self.catalog_repository.get_owner_business_id(model, entity_id)
        if owner is not None and owner != business_id:
            raise CrossTenantException(label, entity_id, business_id)
        raise NotFoundException(
            f"{label} not found or inactive",
            details={f"{label.lower()}_id": entity_id},
        )
