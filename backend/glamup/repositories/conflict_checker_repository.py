# backend/glamup/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository for GlamUp

Loads the business-side appointments that can block a requested window.
Only the business mirror is consulted: it is the record of truth for a
team member's calendar, and the client mirror always carries the same
window and status.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import AppointmentStatus
from ..models.appointment import BusinessAppointment
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_BLOCKING_STATUSES = [status.value for status in AppointmentStatus.active()]


class ConflictCheckerRepository(BaseRepository[BusinessAppointment]):
    """
    Repository for conflict checking data access.
    """

    def __init__(self, db: Session):
        super().__init__(db, BusinessAppointment)
        self.logger = logging.getLogger(__name__)

    def _blocking_query(
        self,
        date_from: date,
        date_to: date,
        exclude_appointment_id: Optional[str],
    ):
        query = self._build_query().filter(
            BusinessAppointment.date <= date_to,
            BusinessAppointment.end_date >= date_from,
            BusinessAppointment.status.in_(_BLOCKING_STATUSES),
            BusinessAppointment.is_deleted.is_(False),
        )
        if exclude_appointment_id:
            query = query.filter(BusinessAppointment.appointment_id != exclude_appointment_id)
        return query

    def get_team_member_appointments_for_conflict_check(
        self,
        team_member_id: str,
        date_from: date,
        date_to: date,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[BusinessAppointment]:
        """
        Get active appointments for a team member that touch [date_from, date_to].

        A booking that started the evening before and ran past midnight
        counts for the day it ends on.

        Args:
            team_member_id: The team member to check
            date_from: First date of the range (inclusive)
            date_to: Last date of the range (inclusive)
            exclude_appointment_id: Shared appointment id to ignore

        Returns:
            Appointments ordered by date and start time
        """
        query = self._blocking_query(date_from, date_to, exclude_appointment_id).filter(
            BusinessAppointment.team_member_id == team_member_id
        )
        return self._execute_query(
            query.order_by(BusinessAppointment.date, BusinessAppointment.start_time)
        )

    def get_client_appointments_for_conflict_check(
        self,
        business_id: str,
        client_id: str,
        date_from: date,
        date_to: date,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[BusinessAppointment]:
        """Active appointments of one client in one business, across team members."""
        query = self._blocking_query(date_from, date_to, exclude_appointment_id).filter(
            BusinessAppointment.business_id == business_id,
            BusinessAppointment.client_id == client_id,
        )
        return self._execute_query(
            query.order_by(BusinessAppointment.date, BusinessAppointment.start_time)
        )
