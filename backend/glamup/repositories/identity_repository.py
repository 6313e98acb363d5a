# backend/glamup/repositories/identity_repository.py
"""
Identity Repository for GlamUp

Loads businesses, team members and clients for the scheduling core, and
takes the row locks that serialize concurrent bookings for the same team
member or client.
"""

import logging
from typing import Any, Optional, Union

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import BusinessStatus, ClientModel
from ..core.exceptions import RepositoryException
from ..database.session_utils import supports_row_locks
from ..models.business import Business, TeamMember
from ..models.client import Client, RegisteredClient
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

AnyClient = Union[Client, RegisteredClient]


class IdentityRepository(BaseRepository[Business]):
    """Repository for tenant and participant lookups."""

    def __init__(self, db: Session):
        super().__init__(db, Business)

    def get_active_business(self, business_id: str) -> Optional[Business]:
        query = self._build_query().filter(
            Business.id == business_id,
            Business.status == BusinessStatus.ACTIVE.value,
            Business.is_deleted.is_(False),
        )
        return self._execute_first(query)

    def get_active_team_member(self, team_member_id: str, business_id: str) -> Optional[TeamMember]:
        query = self.db.query(TeamMember).filter(
            TeamMember.id == team_member_id,
            TeamMember.business_id == business_id,
            TeamMember.is_active.is_(True),
            TeamMember.is_deleted.is_(False),
        )
        return self._execute_first(query)

    def get_business_owner_id(self, business_id: str) -> Optional[str]:
        query = self.db.query(Business.owner_id).filter(Business.id == business_id)
        return self._execute_scalar(query)

    def get_team_member_business_id(self, team_member_id: str) -> Optional[str]:
        query = self.db.query(TeamMember.business_id).filter(TeamMember.id == team_member_id)
        return self._execute_scalar(query)

    def get_active_client(
        self, client_id: str, client_model: ClientModel = ClientModel.CLIENT
    ) -> Optional[AnyClient]:
        """
        Load an active client from the table named by ``client_model``.

        Registered clients are platform-wide; ad-hoc clients carry a
        ``business_id`` that the caller checks for tenancy.
        """
        model = RegisteredClient if client_model == ClientModel.REGISTERED_CLIENT else Client
        query = self.db.query(model).filter(
            model.id == client_id,
            model.is_active.is_(True),
            model.is_deleted.is_(False),
        )
        return self._execute_first(query)

    def _lock_row(self, model, row_id: str) -> Optional[Any]:
        query = self.db.query(model).filter(model.id == row_id)
        if supports_row_locks(self.db):
            return self._execute_first(query.with_for_update(of=model))

        # SQLite: a no-op write takes the database write lock up front. Other
        # writers wait on it until this transaction commits or rolls back.
        statement = (
            update(model)
            .where(model.id == row_id)
            .values(name=model.name)
            .execution_options(synchronize_session=False)
        )
        try:
            self.db.execute(statement)
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking {model.__name__} {row_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock {model.__name__}: {str(e)}") from e
        return self._execute_first(query)

    def lock_team_member(self, team_member_id: str) -> Optional[TeamMember]:
        """
        Take a row lock on a team member for the rest of the transaction.

        Bookings for the same team member queue behind this lock, so the
        availability check and the insert that follows cannot interleave.
        """
        return self._lock_row(TeamMember, team_member_id)

    def lock_client(self, client_id: str, client_model: ClientModel) -> Optional[AnyClient]:
        model = RegisteredClient if client_model == ClientModel.REGISTERED_CLIENT else Client
        return self._lock_row(model, client_id)
