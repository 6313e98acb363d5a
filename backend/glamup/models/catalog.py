# backend/glamup/models/catalog.py
"""
Catalog models: categories, services and packages offered by a business.

Catalog management lives outside the scheduling core. Appointments copy a
snapshot of name, duration and price at booking time, so later catalog
edits never rewrite history.
"""

from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.sql import func
import ulid

from ..core.constants import DEFAULT_CURRENCY
from ..database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    business_id = Column(String(26), ForeignKey("businesses.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Service(Base):
    """A bookable service with its current duration and price."""

    __tablename__ = "services"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    business_id = Column(String(26), ForeignKey("businesses.id"), nullable=False, index=True)
    category_id = Column(String(26), ForeignKey("categories.id"), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)
    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("duration > 0", name="check_service_duration_positive"),
        CheckConstraint("price >= 0", name="check_service_price_non_negative"),
    )

    def snapshot(self) -> dict[str, Any]:
        """Name/duration/price as copied into an appointment."""
        return {
            "service_id": self.id,
            "name": self.name,
            "duration": int(self.duration),
            "price": float(self.price),
        }


class Package(Base):
    """
    A bundle of services sold at its own duration and price.

    ``services`` holds the member services as they were when the package was
    assembled, so package pricing is never re-derived from live services.
    """

    __tablename__ = "packages"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    business_id = Column(String(26), ForeignKey("businesses.id"), nullable=False, index=True)
    category_id = Column(String(26), ForeignKey("categories.id"), nullable=True)
    name = Column(String(255), nullable=False)
    duration = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    final_price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)
    services = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (CheckConstraint("duration > 0", name="check_package_duration_positive"),)

    def snapshot(self) -> dict[str, Any]:
        return {
            "package_id": self.id,
            "name": self.name,
            "duration": int(self.duration),
            "price": float(self.final_price),
            "services": list(self.services or []),
        }
