# backend/glamup/services/conflict_checker.py
"""
Conflict Checker Service for GlamUp

Decides whether a requested window is free:
- for the team member, across all of their active appointments
- for the client, across every team member of the same business

Windows are half-open; touching boundaries never conflict. The checker is
read-only and must run inside the transaction that performs the write.
"""

from datetime import date, timedelta
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.constants import MINUTES_PER_DAY
from ..core.time_of_day import TimeLike, TimeOfDay, window_minutes, windows_overlap
from ..models.appointment import BusinessAppointment
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from ..repositories.factory import RepositoryFactory
from ..repositories.identity_repository import IdentityRepository
from .base import BaseService

logger = logging.getLogger(__name__)

SCOPE_TEAM_MEMBER = "team_member"
SCOPE_CLIENT = "client"


class ConflictChecker(BaseService):
    """
    Service for checking appointment slot conflicts.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[ConflictCheckerRepository] = None,
        identity_repository: Optional[IdentityRepository] = None,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)
        self.identity_repository = (
            identity_repository or RepositoryFactory.create_identity_repository(db)
        )

    @staticmethod
    def _overlapping(
        appointments: List[BusinessAppointment],
        requested: List[Tuple[int, int]],
        reference_date: date,
    ) -> List[BusinessAppointment]:
        overlapping = []
        for appointment in appointments:
            existing = appointment.window_minutes(reference_date)
            if any(windows_overlap(existing, window) for window in requested):
                overlapping.append(appointment)
        return overlapping

    @staticmethod
    def _describe(appointment: BusinessAppointment, scope: str) -> Dict[str, Any]:
        start, end = appointment.window
        return {
            "scope": scope,
            "appointment_id": appointment.appointment_id,
            "team_member_id": appointment.team_member_id,
            "date": appointment.date.isoformat(),
            "start_time": str(start),
            "end_time": str(end),
            "status": appointment.status,
        }

    @BaseService.measure_operation("find_conflicts")
    def find_conflicts(
        self,
        team_member_id: str,
        date_from: date,
        date_to: date,
        start_time: TimeLike,
        end_time: TimeLike,
        exclude_appointment_id: Optional[str] = None,
        client_id: Optional[str] = None,
        business_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        List the active appointments that overlap the requested window.

        Args:
            team_member_id: Team member whose calendar is checked
            date_from: First date of the range (inclusive)
            date_to: Last date of the range (inclusive)
            start_time: Requested start
            end_time: Requested end; at or before start means it ends the next day
            exclude_appointment_id: Shared id of the booking being replaced
            client_id: Also check this client's own appointments
            business_id: Business for the client check; defaults to the team member's

        Returns:
            Conflict dicts with a ``scope`` of "team_member" or "client"
        """
        start = TimeOfDay.parse(start_time)
        end = TimeOfDay.parse(end_time)
        # One window per requested day, in minutes from midnight of date_from
        requested = [
            window_minutes(start, end, offset) for offset in range((date_to - date_from).days + 1)
        ]
        if not requested:
            return []
        last_day = date_to
        if requested[-1][1] > len(requested) * MINUTES_PER_DAY:
            last_day = date_to + timedelta(days=1)

        team_member_rows = self.repository.get_team_member_appointments_for_conflict_check(
            team_member_id, date_from, last_day, exclude_appointment_id
        )
        conflicts = [
            self._describe(appointment, SCOPE_TEAM_MEMBER)
            for appointment in self._overlapping(team_member_rows, requested, date_from)
        ]

        if client_id:
            scope_business_id = business_id or self.identity_repository.get_team_member_business_id(
                team_member_id
            )
            if scope_business_id:
                client_rows = self.repository.get_client_appointments_for_conflict_check(
                    scope_business_id, client_id, date_from, last_day, exclude_appointment_id
                )
                seen = {conflict["appointment_id"] for conflict in conflicts}
                conflicts.extend(
                    self._describe(appointment, SCOPE_CLIENT)
                    for appointment in self._overlapping(client_rows, requested, date_from)
                    if appointment.appointment_id not in seen
                )

        if conflicts:
            self.logger.warning(
                f"Found {len(conflicts)} appointment conflicts for team member {team_member_id} "
                f"between {date_from} and {date_to} at {start}-{end}"
            )
        return conflicts

    def is_slot_available(
        self,
        team_member_id: str,
        date_from: date,
        date_to: date,
        start_time: TimeLike,
        end_time: TimeLike,
        exclude_appointment_id: Optional[str] = None,
        client_id: Optional[str] = None,
        business_id: Optional[str] = None,
    ) -> bool:
        """True only when neither the team member nor the client has an overlap."""
        conflicts = self.find_conflicts(
            team_member_id,
            date_from,
            date_to,
            start_time,
            end_time,
            exclude_appointment_id=exclude_appointment_id,
            client_id=client_id,
            business_id=business_id,
        )
        return not conflicts
