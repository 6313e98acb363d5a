# backend/glamup/routes/v1/client_appointments.py
"""
Client appointment routes - API v1

Endpoints used by the client app. All business logic is delegated to the
service layer; the acting client is named in each mutation's ``actor``.

Endpoints:
    POST /client/appointments - Book an appointment
    GET /client/appointments/{appointment_id} - Client view of one appointment
    PATCH /client/appointments/{appointment_id} - Edit an open appointment
    POST /client/appointments/{appointment_id}/cancel - Cancel
    POST /client/appointments/{appointment_id}/reschedule - Reschedule
    GET /client/{client_id}/appointments - Paginated list with Past/Upcoming tags
    GET /client/{client_id}/appointments/upcoming - Pending/confirmed, not yet started
    GET /client/{client_id}/service-history - Services booked, most frequent first
"""

import asyncio
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
from ...core.exceptions import DomainException, NotFoundException
from ...schemas.appointment import (
    AppointmentPairResponse,
    AppointmentUpdate,
    CancelRequest,
    ClientAppointmentCreate,
    ClientAppointmentResponse,
    RescheduleRequest,
    RescheduleResponse,
    ServiceHistoryEntry,
)
from ...schemas.base_responses import PaginatedResponse
from ...services.appointment_query_service import AppointmentQueryService
from ...services.booking_service import BookingService
from ...services.cancellation_service import CancellationService
from ...services.reschedule_service import RescheduleService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["client-appointments-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post(
    "/client/appointments",
    response_model=AppointmentPairResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Business, team member, client or service not found"},
        409: {"description": "Time slot not available"},
    },
)
async def book_appointment(
    payload: ClientAppointmentCreate = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> AppointmentPairResponse:
    """Book an appointment from the client app; it starts as PENDING."""
    try:
        business_row, client_row = await asyncio.to_thread(
            booking_service.create_booking, payload, payload.actor.to_actor()
        )
        return AppointmentPairResponse.from_rows(business_row, client_row)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/client/appointments/{appointment_id}", response_model=ClientAppointmentResponse)
async def get_client_appointment(
    appointment_id: str,
    query_service: AppointmentQueryService = Depends(get_appointment_query_service),
) -> ClientAppointmentResponse:
    try:
        business_row, client_row = await asyncio.to_thread(
            query_service.get_appointment, appointment_id
        )
        if client_row is None:
            raise NotFoundException(
                "Appointment not found", details={"appointment_id": appointment_id}
            )
        pair = AppointmentPairResponse.from_rows(business_row, client_row)
        return pair.client_appointment
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/client/appointments/{appointment_id}", response_model=AppointmentPairResponse)
async def update_client_appointment(
    appointment_id: str,
    payload: AppointmentUpdate = Body(...),
    booking_service: BookingService = Depends(get_booking_service),
) -> AppointmentPairResponse:
    """Edit an open appointment; it goes back to PENDING for the business to confirm."""
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
    "/client/appointments/{appointment_id}/cancel", response_model=AppointmentPairResponse
)
async def cancel_client_appointment(
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
    "/client/appointments/{appointment_id}/reschedule",
    response_model=RescheduleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def reschedule_client_appointment(
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


@router.get(
    "/client/{client_id}/appointments",
    response_model=PaginatedResponse[ClientAppointmentResponse],
)
async def list_client_appointments(
    client_id: str,
    status_filter: Optional[List[AppointmentStatus]] = Query(None, alias="status"),
    sort: str = Query("date", pattern="^-?date$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    query_service: AppointmentQueryService = Depends(get_appointment_query_service),
) -> PaginatedResponse[ClientAppointmentResponse]:
    try:
        items, total = await asyncio.to_thread(
            query_service.list_client_appointments,
            client_id,
            statuses=[s.value for s in status_filter] if status_filter else None,
            sort=sort,
            page=page,
            per_page=per_page,
        )
        return PaginatedResponse.build(
            [ClientAppointmentResponse(**item) for item in items], total, page, per_page
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/client/{client_id}/appointments/upcoming",
    response_model=PaginatedResponse[ClientAppointmentResponse],
)
async def list_upcoming_client_appointments(
    client_id: str,
    sort: str = Query("date", pattern="^-?date$"),
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    query_service: AppointmentQueryService = Depends(get_appointment_query_service),
) -> PaginatedResponse[ClientAppointmentResponse]:
    try:
        items, total = await asyncio.to_thread(
            query_service.list_upcoming_client_appointments,
            client_id,
            sort=sort,
            page=page,
            per_page=per_page,
        )
        return PaginatedResponse.build(
            [ClientAppointmentResponse(**item) for item in items], total, page, per_page
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/client/{client_id}/service-history",
    response_model=PaginatedResponse[ServiceHistoryEntry],
)
async def get_client_service_history(
    client_id: str,
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    query_service: AppointmentQueryService = Depends(get_appointment_query_service),
) -> PaginatedResponse[ServiceHistoryEntry]:
    try:
        entries, total = await asyncio.to_thread(
            query_service.get_service_history, client_id, page=page, per_page=per_page
        )
        return PaginatedResponse.build(
            [ServiceHistoryEntry(**entry) for entry in entries], total, page, per_page
        )
    except DomainException as e:
        handle_domain_exception(e)
