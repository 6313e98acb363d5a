# backend/glamup/routes/v1/business_appointments.py
"""
Business appointment routes - API v1

Endpoints used by the business dashboard.

Endpoints:
    POST /business/{business_id}/appointments - Book on behalf of a client
    GET /business/{business_id}/appointments - Paginated, filterable list
    PATCH /business/appointments/{appointment_id} - Edit an open appointment
    POST /business/appointments/{appointment_id}/cancel - Cancel
    POST /business/appointments/{appointment_id}/confirm - PENDING -> CONFIRMED
    POST /business/appointments/{appointment_id}/complete - Mark completed
    POST /business/appointments/{appointment_id}/no-show - Mark no-show
    POST /business/appointments/{appointment_id}/reschedule - Reschedule
"""

import asyncio
from datetime import date
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from ...api.dependencies import (
    get_appointment_query_service,
    get_booking_service,
    get_cancellation_service,
    get_reschedule_service,
)
from ...core.enums import AppointmentStatus
from ...core.exceptions import DomainException, ValidationException
from ...schemas.appointment import (
    AppointmentCreate,
    AppointmentPairResponse,
    AppointmentUpdate,
    BusinessAppointmentResponse,
    CancelRequest,
    RescheduleRequest,
    RescheduleResponse,
    StatusChangeRequest,
)
from ...schemas.base_responses import PaginatedResponse
from ...services.appointment_query_service import AppointmentQueryService
from ...services.booking_service import BookingService
from ...services.cancellation_service import CancellationService
from ...services.reschedule_service import RescheduleService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["business-appointments-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post(
    "/business/{business_id}/appointments",
    response_model=AppointmentPairResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Team member, client or service not found"},
        409: {"description": "Time slot not available"},
    },
)
async def create_business_appointment(
    business_id: str,
    payload: AppointmentCreate = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> AppointmentPairResponse:
    """Book on behalf of a client; CONFIRMED unless another status is given."""
    try:
        if payload.business_id != business_id:
            raise ValidationException(
                "business_id in the body does not match the URL",
                details={"path": business_id, "body": payload.business_id},
            )
        business_row, client_row = await asyncio.to_thread(
            booking_service.create_booking, payload, payload.actor.to_actor()
        )
        return AppointmentPairResponse.from_rows(business_row, client_row)
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/business/{business_id}/appointments",
    response_model=PaginatedResponse[BusinessAppointmentResponse],
)
async def list_business_appointments(
    business_id: str,
    status_filter: Optional[List[AppointmentStatus]] = Query(None, alias="status"),
    team_member_id: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    sort: str = Query("date", pattern="^-?date$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    query_service: AppointmentQueryService = Depends(get_appointment_query_service),
) -> PaginatedResponse[BusinessAppointmentResponse]:
    try:
        rows, total = await asyncio.to_thread(
            query_service.list_business_appointments,
            business_id,
            statuses=[s.value for s in status_filter] if status_filter else None,
            team_member_id=team_member_id,
            date_from=date_from,
            date_to=date_to,
            sort=sort,
            page=page,
            per_page=per_page,
        )
        return PaginatedResponse.build(
            [BusinessAppointmentResponse(**row.to_dict()) for row in rows], total, page, per_page
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.patch(
    "/business/appointments/{appointment_id}", response_model=AppointmentPairResponse
)
async def update_business_appointment(
    appointment_id: str,
    payload: AppointmentUpdate = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> AppointmentPairResponse:
    try:
        business_row, client_row = await asyncio.to_thread(
            booking_service.update_booking,
            appointment_id,
            payload.changes(),
            payload.actor.to_actor(),
        )
        return AppointmentPairResponse.from_rows(business_row, client_row)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/business/appointments/{appointment_id}/cancel", response_model=AppointmentPairResponse
)
async def cancel_business_appointment(
    appointment_id: str,
    payload: CancelRequest = Body(...),
    cancellation_service: CancellationService = Depends(get_cancellation_service),
    query_service: AppointmentQueryService = Depends(get_appointment_query_service),
) -> AppointmentPairResponse:
    try:
        await asyncio.to_thread(
            cancellation_service.cancel, appointment_id, payload.reason, payload.actor.to_actor()
        )
        business_row, client_row = await asyncio.to_thread(
            query_service.get_appointment, appointment_id
        )
        return AppointmentPairResponse.from_rows(business_row, client_row)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/business/appointments/{appointment_id}/confirm", response_model=AppointmentPairResponse
)
async def confirm_appointment(
    appointment_id: str,
    payload: StatusChangeRequest = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> AppointmentPairResponse:
    try:
        business_row, client_row = await asyncio.to_thread(
            booking_service.confirm_booking, appointment_id, payload.actor.to_actor()
        )
        return AppointmentPairResponse.from_rows(business_row, client_row)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/business/appointments/{appointment_id}/complete", response_model=AppointmentPairResponse
)
async def complete_appointment(
    appointment_id: str,
    payload: StatusChangeRequest = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> AppointmentPairResponse:
    try:
        business_row, client_row = await asyncio.to_thread(
            booking_service.complete_booking, appointment_id, payload.actor.to_actor()
        )
        return AppointmentPairResponse.from_rows(business_row, client_row)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/business/appointments/{appointment_id}/no-show", response_model=AppointmentPairResponse
)
async def mark_appointment_no_show(
    appointment_id: str,
    payload: StatusChangeRequest = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> AppointmentPairResponse:
    try:
        business_row, client_row = await asyncio.to_thread(
            booking_service.mark_no_show, appointment_id, payload.actor.to_actor()
        )
        return AppointmentPairResponse.from_rows(business_row, client_row)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/business/appointments/{appointment_id}/reschedule",
    response_model=RescheduleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def reschedule_business_appointment(
    appointment_id: str,
    payload: RescheduleRequest = Body(...),
    reschedule_service: RescheduleService = Depends(get_reschedule_service),
) -> RescheduleResponse:
    try:
        previous, current = await asyncio.to_thread(
            reschedule_service.reschedule,
            appointment_id,
            payload.date,
            payload.start_time,
            payload.actor.to_actor(),
            end_time=payload.end_time,
            new_team_member_id=payload.team_member_id,
            service_ids=payload.service_ids,
            package_id=payload.package_id,
        )
        return RescheduleResponse(
            previous=AppointmentPairResponse.from_rows(*previous),
            current=AppointmentPairResponse.from_rows(*current),
        )
    except DomainException as e:
        handle_domain_exception(e)
