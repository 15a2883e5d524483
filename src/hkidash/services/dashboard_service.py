"""Summary figures for the dashboard landing page."""

from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from hkidash.core.exceptions import UpstreamFailure
from hkidash.core.logging import get_logger
from hkidash.models import FilingRecord, FilingStatus

logger = get_logger(__name__)

# Status names grouped on the summary cards
ACCEPTED_STATUSES = ("Diterima", "Didaftar")
IN_PROCESS_STATUS = "Dalam Proses"
REJECTED_STATUS = "Ditolak"

RECENT_LIMIT = 5


@dataclass
class DashboardStats:
    total: int = 0
    accepted: int = 0
    in_process: int = 0
    rejected: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_year: dict[int, int] = field(default_factory=dict)
    recent: list[FilingRecord] = field(default_factory=list)


async def get_dashboard_stats(db: AsyncSession) -> DashboardStats:
    """
    Count records overall, per status and per year, and fetch the latest five.

    Statuses are matched by name, so a renamed or missing status simply
    counts as zero.

    Raises:
        UpstreamFailure: If any of the queries fail
    """
    try:
        status_rows = (
            await db.execute(
                select(FilingStatus.name, func.count(FilingRecord.id))
                .select_from(FilingStatus)
                .outerjoin(FilingRecord, FilingRecord.status_id == FilingStatus.id)
                .group_by(FilingStatus.id, FilingStatus.name)
                .order_by(FilingStatus.id)
            )
        ).all()

        year_rows = (
            await db.execute(
                select(FilingRecord.year, func.count(FilingRecord.id))
                .where(FilingRecord.year.is_not(None))
                .group_by(FilingRecord.year)
                .order_by(FilingRecord.year)
            )
        ).all()

        total = await db.scalar(select(func.count()).select_from(FilingRecord)) or 0

        recent = (
            await db.execute(
                select(FilingRecord)
                .options(joinedload(FilingRecord.applicant), joinedload(FilingRecord.status))
                .order_by(FilingRecord.created_at.desc(), FilingRecord.id.desc())
                .limit(RECENT_LIMIT)
            )
        ).scalars().all()
    except SQLAlchemyError as e:
        logger.error(f"Dashboard stats query failed: {e}")
        raise UpstreamFailure("Gagal memuat ringkasan dashboard.", e) from e

    by_status = {name: count for name, count in status_rows}
    return DashboardStats(
        total=total,
        accepted=sum(by_status.get(name, 0) for name in ACCEPTED_STATUSES),
        in_process=by_status.get(IN_PROCESS_STATUS, 0),
        rejected=by_status.get(REJECTED_STATUS, 0),
        by_status=by_status,
        by_year={year: count for year, count in year_rows},
        recent=list(recent),
    )
