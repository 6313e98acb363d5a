# backend/glamup/routes/v1/appointments.py
"""
Shared appointment routes - API v1

Endpoints:
    GET /appointments/{appointment_id} - Both mirrors of one appointment
    GET /appointments/{appointment_id}/lineage - Reschedule history, newest first
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, status

from ...api.dependencies import get_appointment_query_service, get_reschedule_service
from ...core.exceptions import DomainException
from ...schemas.appointment import (
    AppointmentPairResponse,
    BusinessAppointmentResponse,
    LineageResponse,
)
from ...services.appointment_query_service import AppointmentQueryService
from ...services.reschedule_service import RescheduleService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["appointments-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("/appointments/{appointment_id}", response_model=AppointmentPairResponse)
async def get_appointment(
    appointment_id: str,
    query_service: AppointmentQueryService = Depends(get_appointment_query_service),
) -> AppointmentPairResponse:
    try:
        business_row, client_row = await asyncio.to_thread(
            query_service.get_appointment, appointment_id
        )
        return AppointmentPairResponse.from_rows(business_row, client_row)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/appointments/{appointment_id}/lineage", response_model=LineageResponse)
async def get_appointment_lineage(
    appointment_id: str,
    reschedule_service: RescheduleService = Depends(get_reschedule_service),
) -> LineageResponse:
    try:
        chain = await asyncio.to_thread(reschedule_service.get_lineage, appointment_id)
        return LineageResponse(
            appointment_id=appointment_id,
            chain=[BusinessAppointmentResponse(**row.to_dict()) for row in chain],
        )
    except DomainException as e:
        handle_domain_exception(e)
