from fastapi import APIRouter, Depends

from eventhub.dependencies import get_report_service
from eventhub.schemas.admin import AdminStatsResponse
from eventhub.schemas.common import ErrorResponse
from eventhub.services.report_service import ReportService

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get(
    "/stats",
    response_model=AdminStatsResponse,
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="Dashboard totals",
    description=(
        "Booking count, confirmed revenue, value of cancelled bookings, counts per "
        "status, the three most-booked services and the number of services."
    ),
)
async def admin_stats(reports: ReportService = Depends(get_report_service)) -> AdminStatsResponse:
    return await reports.stats()
