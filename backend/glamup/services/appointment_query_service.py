# backend/glamup/services/appointment_query_service.py
"""
Read-only appointment views for the client and business apps.
"""

from datetime import date, datetime
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.constants import MAX_PAGE_SIZE
from ..core.enums import ClientModel
from ..core.exceptions import NotFoundException, ValidationException
from ..models.appointment import BusinessAppointment, ClientAppointment
from ..repositories.appointment_repository import (
    BusinessAppointmentRepository,
    ClientAppointmentRepository,
)
from ..repositories.factory import RepositoryFactory
from ..repositories.identity_repository import IdentityRepository
from .base import BaseService

logger = logging.getLogger(__name__)

SORT_ASCENDING = "date"
SORT_DESCENDING = "-date"


def _page_bounds(page: int, per_page: int) -> Tuple[int, int]:
    if page < 1:
        raise ValidationException("page must be at least 1")
    if not 1 <= per_page <= MAX_PAGE_SIZE:
        raise ValidationException(f"per_page must be between 1 and {MAX_PAGE_SIZE}")
    return (page - 1) * per_page, per_page


def _is_descending(sort: str) -> bool:
    if sort not in (SORT_ASCENDING, SORT_DESCENDING):
        raise ValidationException(
            f"sort must be '{SORT_ASCENDING}' or '{SORT_DESCENDING}'", details={"sort": sort}
        )
    return sort == SORT_DESCENDING


class AppointmentQueryService(BaseService):
    """Lists and lookups over both appointment mirrors."""

    def __init__(
        self,
        db: Session,
        business_repository: Optional[BusinessAppointmentRepository] = None,
        client_repository: Optional[ClientAppointmentRepository] = None,
        identity_repository: Optional[IdentityRepository] = None,
    ):
        super().__init__(db)
        self.business_repository = (
            business_repository or RepositoryFactory.create_business_appointment_repository(db)
        )
        self.client_repository = (
            client_repository or RepositoryFactory.create_client_appointment_repository(db)
        )
        self.identity_repository = (
            identity_repository or RepositoryFactory.create_identity_repository(db)
        )

    def _require_client(self, client_id: str, client_model: ClientModel) -> None:
        if not self.identity_repository.get_active_client(client_id, client_model):
            raise NotFoundException("Client not found", details={"client_id": client_id})

    @staticmethod
    def _with_time_status(appointment: ClientAppointment, now: datetime) -> Dict[str, Any]:
        data = appointment.to_dict()
        data["time_status"] = appointment.time_status(now).value
        return data

    @BaseService.measure_operation("list_client_appointments")
    def list_client_appointments(
        self,
        client_id: str,
        *,
        statuses: Optional[Sequence[str]] = None,
        sort: str = SORT_ASCENDING,
        page: int = 1,
        per_page: int = 10,
        client_model: ClientModel = ClientModel.REGISTERED_CLIENT,
        now: Optional[datetime] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Page through a client's appointments, each tagged Past or Upcoming.

        Returns:
            Tuple of (appointment dicts, total matching)
        """
        skip, limit = _page_bounds(page, per_page)
        descending = _is_descending(sort)
        self._require_client(client_id, client_model)

        rows, total = self.client_repository.list_for_client(
            client_id, statuses=statuses, descending=descending, skip=skip, limit=limit
        )
        now = now or datetime.now()
        return [self._with_time_status(row, now) for row in rows], total

    @BaseService.measure_operation("list_upcoming_client_appointments")
    def list_upcoming_client_appointments(
        self,
        client_id: str,
        *,
        sort: str = SORT_ASCENDING,
        page: int = 1,
        per_page: int = 10,
        client_model: ClientModel = ClientModel.REGISTERED_CLIENT,
        now: Optional[datetime] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Pending or confirmed appointments starting now or later."""
        skip, limit = _page_bounds(page, per_page)
        descending = _is_descending(sort)
        self._require_client(client_id, client_model)

        now = now or datetime.now()
        rows, total = self.client_repository.list_upcoming_for_client(
            client_id,
            now.date(),
            now.time().replace(second=0, microsecond=0),
            descending=descending,
            skip=skip,
            limit=limit,
        )
        return [self._with_time_status(row, now) for row in rows], total

    @BaseService.measure_operation("get_appointment")
    def get_appointment(
        self, appointment_id: str
    ) -> Tuple[BusinessAppointment, Optional[ClientAppointment]]:
        business_row = self.business_repository.get_by_appointment_id(appointment_id)
        if not business_row:
            raise NotFoundException(
                "Appointment not found", details={"appointment_id": appointment_id}
            )
        return business_row, self.client_repository.get_by_appointment_id(appointment_id)

    @BaseService.measure_operation("list_business_appointments")
    def list_business_appointments(
        self,
        business_id: str,
        *,
        statuses: Optional[Sequence[str]] = None,
        team_member_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        sort: str = SORT_ASCENDING,
        page: int = 1,
        per_page: int = 10,
    ) -> Tuple[List[BusinessAppointment], int]:
        skip, limit = _page_bounds(page, per_page)
        descending = _is_descending(sort)
        if date_from and date_to and date_from > date_to:
            raise ValidationException("date_from must be on or before date_to")
        if not self.identity_repository.get_by_id(business_id):
            raise NotFoundException("Business not found", details={"business_id": business_id})

        return self.business_repository.list_for_business(
            business_id,
            statuses=statuses,
            team_member_id=team_member_id,
            date_from=date_from,
            date_to=date_to,
            descending=descending,
            skip=skip,
            limit=limit,
        )

    @BaseService.measure_operation("get_service_history")
    def get_service_history(
        self,
        client_id: str,
        *,
        page: int = 1,
        per_page: int = 10,
        client_model: ClientModel = ClientModel.REGISTERED_CLIENT,
        now: Optional[datetime] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Group a client's non-cancelled appointments by booked service.

        Package bookings are counted per member service. Entries are ordered
        by how often the service was booked, then by the latest booking.

        Returns:
            Tuple of (history entries, total distinct services)
        """
        skip, limit = _page_bounds(page, per_page)
        self._require_client(client_id, client_model)
        now = now or datetime.now()

        history: Dict[str, Dict[str, Any]] = {}
        for appointment in self.client_repository.list_for_service_history(client_id):
            booked = list(appointment.services or [])
            if not booked and appointment.package:
                booked = list(appointment.package.get("services") or [])
            visit = {
                "appointment_id": appointment.appointment_id,
                "date": appointment.date.isoformat(),
                "start_time": appointment.start_time.strftime("%H:%M"),
                "business_id": appointment.business_id,
                "business_name": appointment.business_name,
                "status": appointment.status,
                "time_status": appointment.time_status(now).value,
            }
            for service in booked:
                service_id = service.get("service_id")
                if not service_id:
                    continue
                entry = history.setdefault(
                    service_id,
                    {
                        "service_id": service_id,
                        "name": service.get("name", ""),
                        "count": 0,
                        "last_booked": appointment.date,
                        "appointments": [],
                    },
                )
                entry["count"] += 1
                entry["last_booked"] = max(entry["last_booked"], appointment.date)
                entry["appointments"].append(visit)

        entries = sorted(
            history.values(), key=lambda item: (item["count"], item["last_booked"]), reverse=True
        )
        for entry in entries:
            entry["last_booked"] = entry["last_booked"].isoformat()
        return entries[skip : skip + limit], len(entries)
