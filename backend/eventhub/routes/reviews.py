"""
EventHub Backend — Review Routes
==================================

    GET  /api/reviews    all reviews, optional ?serviceId=
    POST /api/reviews    leave a review (bearer token required)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from eventhub.dependencies import get_current_claims, get_review_service
from eventhub.schemas.common import ErrorResponse
from eventhub.schemas.review import ReviewCreate, ReviewDetail
from eventhub.schemas.user import TokenClaims
from eventhub.services.review_service import ReviewService

router = APIRouter(prefix="/api", tags=["Reviews"])


@router.get("/reviews", response_model=List[ReviewDetail], summary="List reviews")
async def list_reviews(
    service_id: Optional[int] = Query(default=None, alias="serviceId"),
    reviews: ReviewService = Depends(get_review_service),
) -> List[ReviewDetail]:
    rows = await reviews.list_reviews(service_id=service_id)
    return [ReviewDetail.model_validate(r) for r in rows]


@router.post(
    "/reviews",
    response_model=ReviewDetail,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Rating out of range", "model": ErrorResponse},
        401: {"description": "No bearer token", "model": ErrorResponse},
        403: {"description": "Invalid or expired token", "model": ErrorResponse},
        404: {"description": "Unknown service", "model": ErrorResponse},
    },
    summary="Review a service",
)
async def create_review(
    payload: ReviewCreate,
    claims: TokenClaims = Depends(get_current_claims),
    reviews: ReviewService = Depends(get_review_service),
) -> ReviewDetail:
    review = await reviews.create_review(
        user_id=claims.user_id,
        service_id=payload.service_id,
        rating=payload.rating,
        comment=payload.comment,
        avatar=payload.avatar,
    )
    return ReviewDetail.model_validate(await reviews.get_review(review.id))
