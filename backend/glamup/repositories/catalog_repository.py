# backend/glamup/repositories/catalog_repository.py
"""
Catalog Repository for GlamUp

Read-only access to categories, services and packages as the scheduling
core consumes them. Every lookup is scoped to a business; an entity that
exists under another business is reported through ``get_owner_business_id``
so callers can tell a cross-tenant reference from a missing one.
"""

import logging
from typing import Dict, List, Optional, Sequence, Type, Union

from sqlalchemy.orm import Session

from ..models.catalog import Category, Package, Service
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

CatalogModel = Union[Type[Category], Type[Service], Type[Package]]


class CatalogRepository(BaseRepository[Service]):
    """Repository for catalog lookups used while resolving bookings."""

    def __init__(self, db: Session):
        super().__init__(db, Service)

    def _active_query(self, model: CatalogModel, business_id: str):
        return self.db.query(model).filter(
            model.business_id == business_id,
            model.is_active.is_(True),
            model.is_deleted.is_(False),
        )

    def get_active_service(self, service_id: str, business_id: str) -> Optional[Service]:
        query = self._active_query(Service, business_id).filter(Service.id == service_id)
        return self._execute_first(query)

    def get_active_services(self, service_ids: Sequence[str], business_id: str) -> List[Service]:
        """
        Load active services of a business, in the order the ids were given.

        Ids that do not resolve are simply absent from the result.
        """
        if not service_ids:
            return []
        query = self._active_query(Service, business_id).filter(Service.id.in_(list(service_ids)))
        by_id: Dict[str, Service] = {service.id: service for service in self._execute_query(query)}
        return [by_id[service_id] for service_id in service_ids if service_id in by_id]

    def get_active_package(self, package_id: str, business_id: str) -> Optional[Package]:
        query = self._active_query(Package, business_id).filter(Package.id == package_id)
        return self._execute_first(query)

    def get_active_category(self, category_id: str, business_id: str) -> Optional[Category]:
        query = self._active_query(Category, business_id).filter(Category.id == category_id)
        return self._execute_first(query)

    def get_owner_business_id(self, model: CatalogModel, entity_id: str) -> Optional[str]:
        """Business that owns an entity regardless of its state, or None if it doesn't exist."""
        query = self.db.query(model.business_id).filter(model.id == entity_id)
        return self._execute_scalar(query)
