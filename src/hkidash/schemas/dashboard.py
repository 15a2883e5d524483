"""Schemas for the dashboard summary."""

from datetime import datetime

from hkidash.schemas.record import CamelModel


class RecentRecordResponse(CamelModel):
    id: int
    title: str
    applicant_name: str
    status_name: str
    created_at: datetime


class DashboardStatsResponse(CamelModel):
    total: int
    accepted: int
    in_process: int
    rejected: int
    by_status: dict[str, int]
    by_year: dict[int, int]
    recent: list[RecentRecordResponse]
