"""
EventHub Backend — Admin Reporting
====================================

What:  Read-only aggregates over bookings and services for the admin
       dashboard.
How:   Each figure is one aggregate query; nothing is cached, so the numbers
       always reflect committed data at request time.

Revenue split:
    total_revenue    = SUM(price) over confirmed bookings
    cancelled_value  = SUM(price) over cancelled bookings
    Their sum is the value of every booking ever made.
"""

import logging
from typing import Dict, List

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.exceptions import DatabaseError
from eventhub.models import Booking, Service
from eventhub.models.booking import BOOKING_STATUSES, STATUS_CANCELLED, STATUS_CONFIRMED
from eventhub.schemas.admin import AdminStatsResponse, TopService

logger = logging.getLogger(__name__)

TOP_SERVICES_LIMIT = 3


class ReportService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def total_bookings(self) -> int:
        result = await self.db.execute(select(func.count(Booking.id)))
        return int(result.scalar_one())

    async def total_services(self) -> int:
        result = await self.db.execute(select(func.count(Service.id)))
        return int(result.scalar_one())

    async def bookings_by_status(self) -> Dict[str, int]:
        """Count per status; every known status is present, zero when unused."""
        result = await self.db.execute(
            select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
        )
        counts = {status: 0 for status in BOOKING_STATUSES}
        for status, count in result.all():
            counts[status] = int(count)
        return counts

    async def _revenue_by_status(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(Booking.status, func.coalesce(func.sum(Booking.price), 0)).group_by(Booking.status)
        )
        return {status: int(total) for status, total in result.all()}

    async def total_revenue(self) -> int:
        return (await self._revenue_by_status()).get(STATUS_CONFIRMED, 0)

    async def cancelled_value(self) -> int:
        return (await self._revenue_by_status()).get(STATUS_CANCELLED, 0)

    async def top_services(self, limit: int = TOP_SERVICES_LIMIT) -> List[TopService]:
        """Services with the most bookings (any status); ties go to the lower id."""
        booking_count = func.count(Booking.id).label("booking_count")
        query = (
            select(Service.id, Service.name, booking_count)
            .join(Booking, Booking.service_id == Service.id)
            .group_by(Service.id, Service.name)
            .order_by(booking_count.desc(), Service.id.asc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return [
            TopService(service_id=service_id, name=name, booking_count=int(count))
            for service_id, name, count in result.all()
        ]

    async def stats(self) -> AdminStatsResponse:
        try:
            revenue = await self._revenue_by_status()
            return AdminStatsResponse(
                total_bookings=await self.total_bookings(),
                total_revenue=revenue.get(STATUS_CONFIRMED, 0),
                cancelled_value=revenue.get(STATUS_CANCELLED, 0),
                bookings_by_status=await self.bookings_by_status(),
                top_services=await self.top_services(),
                total_services=await self.total_services(),
            )
        except SQLAlchemyError as e:
            logger.error("Failed to compute admin stats: %s", e, exc_info=True)
            raise DatabaseError(message="Could not compute statistics. Please try again later.")
