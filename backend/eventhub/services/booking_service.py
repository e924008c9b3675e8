"""
EventHub Backend — Booking Workflow
=====================================

What:  Creates bookings, changes their status and lists them.
Why:   A booking touches three things: the service's price, the
       availability rule and the user's notification. This module sequences
       them so routes only translate HTTP to calls.
How:   Writes go through AvailabilityService (reserve / reactivate) so the
       one-booking-per-day rule is applied the same way for new and
       re-confirmed bookings. Confirmation emails are sent after the write
       and never undo it.
Who:   POST/GET /api/bookings, GET/PATCH /api/bookings/{id}.

Status transitions:
    confirmed ──PATCH cancelled──▶ cancelled      (frees the day)
    cancelled ──PATCH confirmed──▶ confirmed      (re-checks the day, may 409)
    same status                                   (no-op, no notification)
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from eventhub.exceptions import DatabaseError, NotFoundError, ValidationError
from eventhub.models import Booking, Service, User
from eventhub.models.booking import BOOKING_STATUSES, STATUS_CANCELLED, STATUS_CONFIRMED
from eventhub.services.availability_service import AvailabilityService, DateInput
from eventhub.services.notifier import Notifier

logger = logging.getLogger(__name__)


def _validate_status(status: Optional[str]) -> str:
    if status not in BOOKING_STATUSES:
        raise ValidationError(
            message=f"Status must be one of: {', '.join(BOOKING_STATUSES)}",
            field="status",
            context={"value": status},
        )
    return status


class BookingService:
    """Booking workflow for one request's database session."""

    def __init__(self, db: AsyncSession, availability: AvailabilityService, notifier: Notifier):
        self.db = db
        self.availability = availability
        self.notifier = notifier

    async def create_booking(
        self,
        *,
        user_id: int,
        service_id: Optional[int],
        date: Optional[DateInput],
        price: Optional[int] = None,
        status: Optional[str] = None,
    ) -> Booking:
        """
        Book a service for the UTC day containing `date`.

        Omitted price takes the service's current price; omitted status
        means confirmed. A confirmed booking sends the booking email.

        Raises:
            ValidationError: missing service/date, bad date, unknown status
            NotFoundError: service does not exist
            ConflictError: day already booked
        """
        if service_id is None:
            raise ValidationError(message="serviceId is required", field="serviceId")
        if date is None or (isinstance(date, str) and not date.strip()):
            raise ValidationError(message="date is required", field="date")
        status = _validate_status(status or STATUS_CONFIRMED)

        service = await self._get_service(service_id)
        if price is None:
            price = service.price

        booking = await self.availability.reserve(
            user_id=user_id,
            service_id=service_id,
            when=date,
            price=price,
            status=status,
        )

        if status == STATUS_CONFIRMED:
            user = await self._get_user(user_id)
            await self._notify_confirmed(booking, user, service)
        return booking

    async def set_status(self, booking_id: int, status: Optional[str]) -> Booking:
        """
        Move a booking to `status`.

        Raises:
            ValidationError: status not confirmed/cancelled
            NotFoundError: unknown booking
            ConflictError: re-confirming onto a day taken by another booking
        """
        status = _validate_status(status)
        booking = await self.get_booking(booking_id)

        if booking.status == status:
            return booking

        if status == STATUS_CONFIRMED:
            await self.availability.reactivate(booking)
            await self._notify_confirmed(booking, booking.user, booking.service)
        else:
            booking.status = STATUS_CANCELLED
            try:
                await self.db.flush()
            except SQLAlchemyError as e:
                logger.error("Failed to cancel booking %d: %s", booking_id, e, exc_info=True)
                raise DatabaseError(context={"booking_id": booking_id})

        logger.info("Booking %d is now %s", booking_id, status)
        return booking

    async def get_booking(self, booking_id: int) -> Booking:
        """Fetch one booking with its user and service loaded."""
        query = (
            select(Booking)
            .options(selectinload(Booking.user), selectinload(Booking.service))
            .where(Booking.id == booking_id)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Failed to load booking %d: %s", booking_id, e)
            raise DatabaseError(context={"booking_id": booking_id})

        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError(resource="Booking", resource_id=str(booking_id))
        return booking

    async def list_bookings(
        self,
        user_id: Optional[int] = None,
        service_id: Optional[int] = None,
    ) -> List[Booking]:
        """All bookings (optionally filtered), newest day first, with user and service."""
        query = (
            select(Booking)
            .options(selectinload(Booking.user), selectinload(Booking.service))
            .order_by(Booking.date.desc(), Booking.id.desc())
        )
        if user_id is not None:
            query = query.where(Booking.user_id == user_id)
        if service_id is not None:
            query = query.where(Booking.service_id == service_id)

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Failed to list bookings: %s", e)
            raise DatabaseError()
        return list(result.scalars().all())

    async def _get_user(self, user_id: int) -> Optional[User]:
        try:
            return await self.db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load user %d: %s", user_id, e)
            raise DatabaseError(context={"user_id": user_id})

    async def _get_service(self, service_id: int) -> Service:
        try:
            service = await self.db.get(Service, service_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load service %d: %s", service_id, e)
            raise DatabaseError(context={"service_id": service_id})
        if service is None:
            raise NotFoundError(resource="Service", resource_id=str(service_id))
        return service

    async def _notify_confirmed(self, booking: Booking, user: Optional[User], service: Service) -> None:
        """Send the confirmation email; failures are logged and dropped."""
        if user is None:
            logger.warning("Booking %d has no user to notify", booking.id)
            return
        try:
            await self.notifier.send_booking_confirmation(
                email=user.email,
                name=user.name,
                service_name=service.name,
                booking_id=booking.id,
                date_label=booking.date.strftime("%Y-%m-%d"),
                price=booking.price,
            )
        except Exception as e:
            logger.warning(
                "Booking %d saved but confirmation email to %s failed: %s",
                booking.id,
                user.email,
                e,
            )
