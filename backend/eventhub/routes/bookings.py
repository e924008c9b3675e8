"""
EventHub Backend — Booking & Availability Routes
==================================================

    GET   /api/availability/{service_id}/{date}   is that UTC day free?
    POST  /api/bookings                           book (bearer token required)
    GET   /api/bookings                           list, optional ?userId= / ?serviceId=
    GET   /api/bookings/{id}                      one booking with user and service
    PATCH /api/bookings/{id}                      change status

The booking owner is always the token's user; a userId in the body is ignored.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from eventhub.dependencies import (
    get_availability_service,
    get_booking_service,
    get_current_claims,
)
from eventhub.schemas.booking import (
    AvailabilityResponse,
    BookingCreate,
    BookingDetail,
    BookingResponse,
    BookingStatusUpdate,
)
from eventhub.schemas.common import ErrorResponse
from eventhub.schemas.user import TokenClaims
from eventhub.services.availability_service import AvailabilityService
from eventhub.services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Bookings"])


@router.get(
    "/availability/{service_id}/{date}",
    response_model=AvailabilityResponse,
    responses={400: {"description": "Unparsable date", "model": ErrorResponse}},
    summary="Check whether a service is free on a day",
)
async def check_availability(
    service_id: int,
    date: str,
    availability: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResponse:
    available = await availability.is_available(service_id, date)
    message = (
        "Service is available on this date"
        if available
        else "Service is already booked for this date"
    )
    return AvailabilityResponse(available=available, message=message)


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing or invalid fields", "model": ErrorResponse},
        401: {"description": "No bearer token", "model": ErrorResponse},
        403: {"description": "Invalid or expired token", "model": ErrorResponse},
        404: {"description": "Unknown service", "model": ErrorResponse},
        409: {"description": "Day already booked", "model": ErrorResponse},
    },
    summary="Book a service for a day",
)
async def create_booking(
    payload: BookingCreate,
    claims: TokenClaims = Depends(get_current_claims),
    bookings: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    booking = await bookings.create_booking(
        user_id=claims.user_id,
        service_id=payload.service_id,
        date=payload.date,
        price=payload.price,
        status=payload.status,
    )
    return BookingResponse.model_validate(booking)


@router.get("/bookings", response_model=List[BookingDetail], summary="List bookings")
async def list_bookings(
    user_id: Optional[int] = Query(default=None, alias="userId"),
    service_id: Optional[int] = Query(default=None, alias="serviceId"),
    bookings: BookingService = Depends(get_booking_service),
) -> List[BookingDetail]:
    rows = await bookings.list_bookings(user_id=user_id, service_id=service_id)
    return [BookingDetail.model_validate(b) for b in rows]


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingDetail,
    responses={404: {"description": "Unknown booking", "model": ErrorResponse}},
    summary="Get one booking",
)
async def get_booking(
    booking_id: int,
    bookings: BookingService = Depends(get_booking_service),
) -> BookingDetail:
    return BookingDetail.model_validate(await bookings.get_booking(booking_id))


@router.patch(
    "/bookings/{booking_id}",
    response_model=BookingDetail,
    responses={
        400: {"description": "Unknown status", "model": ErrorResponse},
        404: {"description": "Unknown booking", "model": ErrorResponse},
        409: {"description": "Day taken by another booking", "model": ErrorResponse},
    },
    summary="Confirm or cancel a booking",
)
async def update_booking_status(
    booking_id: int,
    payload: BookingStatusUpdate,
    bookings: BookingService = Depends(get_booking_service),
) -> BookingDetail:
    booking = await bookings.set_status(booking_id, payload.status)
    return BookingDetail.model_validate(booking)
