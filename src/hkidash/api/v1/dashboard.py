"""
Dashboard summary endpoint.
"""

from fastapi import APIRouter

from hkidash.api.deps import CurrentUser, DbSession
from hkidash.schemas.dashboard import DashboardStatsResponse, RecentRecordResponse
from hkidash.services.dashboard_service import get_dashboard_stats

router = APIRouter()


@router.get("/stats", response_model=DashboardStatsResponse)
async def dashboard_stats(db: DbSession, current_user: CurrentUser) -> DashboardStatsResponse:
    """Record totals per status group, per status and per year, plus the latest five."""
    stats = await get_dashboard_stats(db)
    return DashboardStatsResponse(
        total=stats.total,
        accepted=stats.accepted,
        in_process=stats.in_process,
        rejected=stats.rejected,
        by_status=stats.by_status,
        by_year=stats.by_year,
        recent=[
            RecentRecordResponse(
                id=record.id,
                title=record.title,
                applicant_name=record.applicant.name,
                status_name=record.status.name,
                created_at=record.created_at,
            )
            for record in stats.recent
        ],
    )
