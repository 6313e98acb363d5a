# backend/glamup/repositories/appointment_repository.py
"""
Appointment Repositories for GlamUp

One repository per mirror. Both look rows up by the shared
``appointment_id``; the scheduling services are the only writers.
"""

from datetime import date, time
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..core.enums import AppointmentStatus
from ..models.appointment import BusinessAppointment, ClientAppointment
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BusinessAppointmentRepository(BaseRepository[BusinessAppointment]):
    """Data access for the business-side mirror."""

    def __init__(self, db: Session):
        super().__init__(db, BusinessAppointment)

    def get_by_appointment_id(
        self, appointment_id: str, *, for_update: bool = False
    ) -> Optional[BusinessAppointment]:
        query = self._build_query().filter(
            BusinessAppointment.appointment_id == appointment_id,
            BusinessAppointment.is_deleted.is_(False),
        )
        if for_update and self.dialect_name != "sqlite":
            query = query.with_for_update(of=BusinessAppointment)
        return self._execute_first(query)

    def list_for_business(
        self,
        business_id: str,
        *,
        statuses: Optional[Sequence[str]] = None,
        team_member_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        descending: bool = False,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[BusinessAppointment], int]:
        """
        Page through a business's appointments.

        Returns:
            Tuple of (page items, total matching rows)
        """
        query = self._build_query().filter(
            BusinessAppointment.business_id == business_id,
            BusinessAppointment.is_deleted.is_(False),
        )
        if statuses:
            query = query.filter(BusinessAppointment.status.in_(list(statuses)))
        if team_member_id:
            query = query.filter(BusinessAppointment.team_member_id == team_member_id)
        if date_from:
            query = query.filter(BusinessAppointment.date >= date_from)
        if date_to:
            query = query.filter(BusinessAppointment.date <= date_to)

        total = self._count(query)
        if descending:
            query = query.order_by(
                BusinessAppointment.date.desc(), BusinessAppointment.start_time.desc()
            )
        else:
            query = query.order_by(BusinessAppointment.date, BusinessAppointment.start_time)
        return self._execute_query(query.offset(skip).limit(limit)), total


class ClientAppointmentRepository(BaseRepository[ClientAppointment]):
    """Data access for the client-side mirror."""

    def __init__(self, db: Session):
        super().__init__(db, ClientAppointment)

    def get_by_appointment_id(
        self, appointment_id: str, *, for_update: bool = False
    ) -> Optional[ClientAppointment]:
        query = self._build_query().filter(
            ClientAppointment.appointment_id == appointment_id,
            ClientAppointment.is_deleted.is_(False),
        )
        if for_update and self.dialect_name != "sqlite":
            query = query.with_for_update(of=ClientAppointment)
        return self._execute_first(query)

    def _client_query(self, client_id: str, statuses: Optional[Sequence[str]]):
        query = self._build_query().filter(
            ClientAppointment.client_id == client_id,
            ClientAppointment.is_deleted.is_(False),
        )
        if statuses:
            query = query.filter(ClientAppointment.status.in_(list(statuses)))
        return query

    def _ordered(self, query, descending: bool):
        if descending:
            return query.order_by(
                ClientAppointment.date.desc(), ClientAppointment.start_time.desc()
            )
        return query.order_by(ClientAppointment.date, ClientAppointment.start_time)

    def list_for_client(
        self,
        client_id: str,
        *,
        statuses: Optional[Sequence[str]] = None,
        descending: bool = False,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[ClientAppointment], int]:
        query = self._client_query(client_id, statuses)
        total = self._count(query)
        page = self._execute_query(self._ordered(query, descending).offset(skip).limit(limit))
        return page, total

    def list_upcoming_for_client(
        self,
        client_id: str,
        today: date,
        current_time: time,
        *,
        descending: bool = False,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[ClientAppointment], int]:
        """Active appointments later today or on a later date."""
        active = [status.value for status in AppointmentStatus.active()]
        query = self._client_query(client_id, active).filter(
            or_(
                ClientAppointment.date > today,
                (ClientAppointment.date == today) & (ClientAppointment.start_time >= current_time),
            )
        )
        total = self._count(query)
        page = self._execute_query(self._ordered(query, descending).offset(skip).limit(limit))
        return page, total

    def list_for_service_history(self, client_id: str) -> List[ClientAppointment]:
        """Every appointment that counts toward a client's service history."""
        statuses = [
            AppointmentStatus.PENDING.value,
            AppointmentStatus.CONFIRMED.value,
            AppointmentStatus.COMPLETED.value,
        ]
        query = self._client_query(client_id, statuses)
        return self._execute_query(self._ordered(query, descending=True))
