"""
EventHub Backend — Admin Reporting Schemas
============================================

Revenue is split by status: `total_revenue` counts confirmed bookings only,
`cancelled_value` holds what cancelled bookings were worth. Their sum is
the all-bookings figure.
"""

from typing import Dict, List

from pydantic import Field

from eventhub.schemas.common import CamelModel


class TopService(CamelModel):
    service_id: int
    name: str
    booking_count: int


class AdminStatsResponse(CamelModel):
    total_bookings: int
    total_revenue: int = Field(description="Sum of prices of confirmed bookings")
    cancelled_value: int = Field(description="Sum of prices of cancelled bookings")
    bookings_by_status: Dict[str, int]
    top_services: List[TopService] = Field(description="Up to 3 services with the most bookings")
    total_services: int
