from typing import Optional

from eventhub.schemas.common import CamelModel, UTCDateTime
from eventhub.schemas.service import ServiceSummary
from eventhub.schemas.user import UserSummary


class ReviewCreate(CamelModel):
    service_id: Optional[int] = None
    rating: Optional[int] = None
    comment: str = ""
    avatar: str = ""


class ReviewResponse(CamelModel):
    id: int
    user_id: int
    service_id: int
    rating: int
    comment: str
    date: UTCDateTime
    avatar: str


class ReviewDetail(ReviewResponse):
    user: UserSummary
    service: ServiceSummary
