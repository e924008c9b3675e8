"""
EventHub Backend — Availability Engine
========================================

What:  Decides whether a service can be booked on a calendar day, and writes
       the booking when it can.
Why:   "One active booking per service per day" is the one rule in the
       marketplace that depends on concurrent state. Keeping the check and
       the insert in one component keeps that rule in one place.
How:   Every date is collapsed to the UTC midnight of its day (normalize).
       A day is taken when a booking with status != 'cancelled' exists in
       [midnight, midnight + 24h - 1ms]. reserve() runs that check and then
       inserts at the normalized date.
Who:   BookingService (create, re-confirm) and GET /api/availability.

Concurrency:
    Check-then-insert is not atomic on its own: two requests can both see a
    free day before either inserts. The bookings table carries a partial
    unique index on (service_id, date) for non-cancelled rows, so the
    second insert fails inside the database. That IntegrityError is turned
    into the same ConflictError the check would have raised, so callers see
    one outcome whichever side caught the clash.

        request A: check (free) ──── insert ✓ ── commit
        request B: check (free) ────────── insert ✗ IntegrityError → ConflictError
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.exceptions import ConflictError, DatabaseError, EventHubError, ValidationError
from eventhub.models import Booking
from eventhub.models.booking import ACTIVE_DAY_INDEX, STATUS_CANCELLED, STATUS_CONFIRMED

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)
ONE_MILLISECOND = timedelta(milliseconds=1)

# SQLite names the columns instead of the index in its error text
SQLITE_DAY_CLASH = "UNIQUE constraint failed: bookings.service_id, bookings.date"

DateInput = Union[str, datetime, date]


def normalize(value: datetime) -> datetime:
    """
    Map any instant to the UTC midnight of its calendar day.

    Naive datetimes are taken to be UTC. The result is timezone-aware and
    normalize(normalize(d)) == normalize(d).
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return datetime.combine(value.date(), time.min, tzinfo=timezone.utc)


def parse_date(raw: Optional[DateInput]) -> datetime:
    """
    Turn client input into a datetime, before any normalization.

    Accepts a calendar day ("2024-07-01"), an ISO-8601 timestamp
    ("2024-07-01T18:30:00+02:00", "2024-07-01T10:00:00.000Z"), or a
    date/datetime object.

    Raises:
        ValidationError: empty or unparsable input
    """
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime.combine(raw, time.min)
    if raw is None or not str(raw).strip():
        raise ValidationError(message="A booking date is required", field="date")

    text = str(raw).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(
            message=f"Invalid date '{raw}'. Use YYYY-MM-DD or an ISO-8601 timestamp.",
            field="date",
            context={"value": str(raw)},
        )


def day_window(day: datetime) -> tuple[datetime, datetime]:
    """Inclusive bounds of a normalized day: [midnight, midnight + 24h - 1ms]."""
    return day, day + ONE_DAY - ONE_MILLISECOND


def to_day(raw: Optional[DateInput]) -> datetime:
    """
    parse_date + normalize, refusing days whose window leaves the calendar.

    Raises:
        ValidationError: empty, unparsable, or out-of-range input
    """
    try:
        day = normalize(parse_date(raw))
        day_window(day)
    except OverflowError:
        raise ValidationError(
            message=f"Date '{raw}' is out of the supported range.",
            field="date",
            context={"value": str(raw)},
        )
    return day


def is_day_clash(error: IntegrityError) -> bool:
    """True when the IntegrityError comes from the one-active-booking-per-day index."""
    text = str(error.orig)
    return ACTIVE_DAY_INDEX in text or SQLITE_DAY_CLASH in text


class AvailabilityService:
    """
    Availability checks and reservations for one database session.

    Built per request with the request's session (see eventhub.dependencies);
    holds no state of its own.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_active_booking(
        self,
        service_id: int,
        day: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[Booking]:
        """
        Return the non-cancelled booking holding `day` for `service_id`, if any.

        `day` must already be normalized.
        """
        start, end = day_window(day)
        query = (
            select(Booking)
            .where(Booking.service_id == service_id)
            .where(Booking.date >= start)
            .where(Booking.date <= end)
            .where(Booking.status != STATUS_CANCELLED)
            .limit(1)
        )
        if exclude_booking_id is not None:
            query = query.where(Booking.id != exclude_booking_id)
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Availability query failed for service %s: %s", service_id, e)
            raise DatabaseError(
                message="Could not check availability. Please try again.",
                context={"service_id": service_id, "error_type": type(e).__name__},
            )
        return result.scalars().first()

    async def is_available(self, service_id: int, when: DateInput) -> bool:
        """
        True when no active booking exists for the service on that UTC day.

        Pure read; invalid dates raise ValidationError.
        """
        day = to_day(when)
        existing = await self.find_active_booking(service_id, day)
        return existing is None

    async def reserve(
        self,
        *,
        user_id: int,
        service_id: int,
        when: DateInput,
        price: int,
        status: str = STATUS_CONFIRMED,
    ) -> Booking:
        """
        Insert a booking for the normalized day if the day is free.

        A booking created directly as 'cancelled' never occupies the day,
        so it skips the check.

        Raises:
            ValidationError: invalid date
            ConflictError: the day already holds an active booking
            DatabaseError: unexpected store failure
        """
        day = to_day(when)

        if status != STATUS_CANCELLED:
            existing = await self.find_active_booking(service_id, day)
            if existing is not None:
                raise self._conflict(service_id, day)

        booking = Booking(
            user_id=user_id,
            service_id=service_id,
            date=day,
            price=price,
            status=status,
        )
        self.db.add(booking)
        await self._flush_or_conflict(service_id, day)
        logger.info(
            "Booking %s reserved: service=%s day=%s status=%s",
            booking.id,
            service_id,
            day.date().isoformat(),
            status,
        )
        return booking

    async def reactivate(self, booking: Booking) -> Booking:
        """
        Flip a cancelled booking back to confirmed under the same day rule.

        Raises:
            ConflictError: another active booking took the day meanwhile
        """
        day = normalize(booking.date)
        service_id = booking.service_id
        existing = await self.find_active_booking(service_id, day, exclude_booking_id=booking.id)
        if existing is not None:
            raise self._conflict(service_id, day)

        booking.status = STATUS_CONFIRMED
        await self._flush_or_conflict(service_id, day)
        return booking

    async def _flush_or_conflict(self, service_id: int, day: datetime) -> None:
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            if not is_day_clash(e):
                logger.error("Booking write for service %s violated a constraint: %s", service_id, e.orig)
                raise DatabaseError(
                    message="Could not save the booking. Please try again.",
                    context={"service_id": service_id, "error_type": type(e).__name__},
                )
            # Another request inserted the same (service, day) after our check
            logger.warning(
                "Unique index rejected booking for service %s on %s: %s",
                service_id,
                day.date().isoformat(),
                e.orig,
            )
            raise self._conflict(service_id, day)
        except EventHubError:
            raise
        except SQLAlchemyError as e:
            logger.error("Booking write failed for service %s: %s", service_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not save the booking. Please try again.",
                context={"service_id": service_id, "error_type": type(e).__name__},
            )

    @staticmethod
    def _conflict(service_id: int, day: datetime) -> ConflictError:
        return ConflictError(
            message="This service is already booked for the selected date",
            context={"service_id": service_id, "date": day.date().isoformat()},
        )
