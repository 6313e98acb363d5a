# backend/glamup/models/business.py
"""
Business (tenant) and team member models.

These rows are owned by the business profile collaborator; the scheduling
core only reads them to validate tenancy and denormalize display fields.
"""

from typing import Any

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import BusinessStatus
from ..database import Base


class Business(Base):
    """A tenant: every scheduling entity belongs to exactly one business."""

    __tablename__ = "businesses"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    owner_id = Column(String(26), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    address = Column(Text, nullable=True)
    logo_url = Column(String(512), nullable=True)
    status = Column(String(20), nullable=False, default=BusinessStatus.ACTIVE.value)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    team_members = relationship("TeamMember", back_populates="business")

    @property
    def is_active(self) -> bool:
        return self.status == BusinessStatus.ACTIVE.value and not self.is_deleted

    def __repr__(self) -> str:
        return f"<Business {self.id}: {self.name} ({self.status})>"


class TeamMember(Base):
    """A staff member who performs appointments."""

    __tablename__ = "team_members"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    business_id = Column(String(26), ForeignKey("businesses.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    profile_pic = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    business = relationship("Business", back_populates="team_members")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "email": self.email,
            "profile_pic": self.profile_pic,
        }

    def __repr__(self) -> str:
        return f"<TeamMember {self.id}: {self.name} business={self.business_id}>"
