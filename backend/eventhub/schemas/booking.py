"""
EventHub Backend — Booking & Availability Schemas
===================================================

The create body keeps service_id and date optional at the schema level so
that a missing value is reported by the booking workflow as a regular
validation error (400) naming the field, like every other business rule.
"""

from typing import Optional

from pydantic import Field

from eventhub.schemas.common import CamelModel, UTCDateTime
from eventhub.schemas.service import ServiceSummary
from eventhub.schemas.user import UserSummary


class BookingCreate(CamelModel):
    service_id: Optional[int] = None
    date: Optional[str] = Field(
        default=None,
        description="Calendar day (YYYY-MM-DD) or ISO-8601 timestamp; only the UTC day is kept",
    )
    price: Optional[int] = Field(
        default=None,
        ge=0,
        description="Price snapshot; defaults to the service's current price",
    )
    status: Optional[str] = Field(default=None, description="'confirmed' (default) or 'cancelled'")


class BookingStatusUpdate(CamelModel):
    status: Optional[str] = None


class BookingResponse(CamelModel):
    id: int
    user_id: int
    service_id: int
    date: UTCDateTime
    price: int
    status: str
    created_at: UTCDateTime


class BookingDetail(BookingResponse):
    user: UserSummary
    service: ServiceSummary


class AvailabilityResponse(CamelModel):
    available: bool
    message: str
