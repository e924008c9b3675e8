"""
EventHub Backend — Review Service
===================================

Append-only reviews. After each new review the service's aggregate is
rebuilt from the stored reviews:

    review_count' = review_count + 1
    rating'       = round(avg(reviews.rating), 1)

The mean is taken over the raw ratings, so rounding never compounds.
A service seeded with a rating but no stored reviews (catalog imports)
keeps that seed as the weight of its prior count.
"""

import logging
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from eventhub.exceptions import DatabaseError, NotFoundError, ValidationError
from eventhub.models import Review, Service

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class ReviewService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_review(
        self,
        *,
        user_id: int,
        service_id: Optional[int],
        rating: Optional[int],
        comment: str = "",
        avatar: str = "",
    ) -> Review:
        if service_id is None:
            raise ValidationError(message="serviceId is required", field="serviceId")
        if rating is None or not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(
                message=f"Rating must be between {MIN_RATING} and {MAX_RATING}",
                field="rating",
                context={"value": rating},
            )

        service = await self._get_service(service_id)

        review = Review(
            user_id=user_id,
            service_id=service_id,
            rating=rating,
            comment=comment or "",
            avatar=avatar or "",
        )
        self.db.add(review)

        try:
            await self.db.flush()
            stored_sum, stored_count = (
                await self.db.execute(
                    select(func.coalesce(func.sum(Review.rating), 0), func.count(Review.id)).where(
                        Review.service_id == service_id
                    )
                )
            ).one()
            service.rating = self._mean(service, int(stored_sum), int(stored_count))
            service.review_count = (service.review_count or 0) + 1
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to save review for service %d: %s", service_id, e, exc_info=True)
            raise DatabaseError(context={"service_id": service_id})

        logger.info(
            "Review %d on service %d: rating=%d (service now %.1f over %d reviews)",
            review.id,
            service_id,
            rating,
            service.rating,
            service.review_count,
        )
        return review

    async def _get_service(self, service_id: int) -> Service:
        try:
            service = await self.db.get(Service, service_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load service %d: %s", service_id, e)
            raise DatabaseError(context={"service_id": service_id})
        if service is None:
            raise NotFoundError(resource="Service", resource_id=str(service_id))
        return service

    @staticmethod
    def _mean(service: Service, stored_sum: int, stored_count: int) -> float:
        # Reviews counted on the service but absent from the table (seeded
        # aggregates) contribute at the seeded rating.
        seeded = max((service.review_count or 0) + 1 - stored_count, 0)
        total = stored_sum + (service.rating or 0.0) * seeded
        return round(total / (stored_count + seeded), 1)

    async def list_reviews(self, service_id: Optional[int] = None) -> List[Review]:
        """Newest first, with user and service loaded. Unknown service_id raises NotFoundError."""
        if service_id is not None:
            await self._get_service(service_id)

        query = (
            select(Review)
            .options(selectinload(Review.user), selectinload(Review.service))
            .order_by(Review.date.desc(), Review.id.desc())
        )
        if service_id is not None:
            query = query.where(Review.service_id == service_id)
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Failed to list reviews: %s", e)
            raise DatabaseError()
        return list(result.scalars().all())

    async def get_review(self, review_id: int) -> Review:
        query = (
            select(Review)
            .options(selectinload(Review.user), selectinload(Review.service))
            .where(Review.id == review_id)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Failed to load review %d: %s", review_id, e)
            raise DatabaseError(context={"review_id": review_id})
        review = result.scalar_one_or_none()
        if review is None:
            raise NotFoundError(resource="Review", resource_id=str(review_id))
        return review
