# backend/glamup/models/client.py
"""
Client models.

A business keeps its own ad-hoc client records (``clients``) while platform
users who book through the app live in ``registered_clients``. Appointments
reference either one through ``client_id`` plus ``client_model``.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.sql import func
import ulid

from ..database import Base


class Client(Base):
    """Client record created by a business for walk-ins and phone bookings."""

    __tablename__ = "clients"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    business_id = Column(String(26), ForeignKey("businesses.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<Client {self.id}: {self.name} business={self.business_id}>"


class RegisteredClient(Base):
    """Platform-wide client account, not owned by any single business."""

    __tablename__ = "registered_clients"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone = Column(String(32), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<RegisteredClient {self.id}: {self.email}>"
