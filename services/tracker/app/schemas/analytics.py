"""Pydantic schemas for analytics API responses."""

from pydantic import BaseModel, Field


class AnalyticsSummary(BaseModel):
    """Scan statistics derived on demand from a code's history."""

    total_scans: int = Field(description="Number of scans in the history")
    today_scans: int = Field(default=0, description="Scans since local midnight")
    weekly_scans: int = Field(default=0, description="Scans since Monday 00:00")
    monthly_scans: int = Field(default=0, description="Scans since the 1st of the month")
    scans_by_date: dict[str, int] = Field(
        default_factory=dict,
        description="Scans per ISO date for the 30 days ending today, oldest first",
    )
    scans_by_hour: dict[str, int] = Field(
        default_factory=dict,
        description="Scans per hour of day ('00'..'23') over the whole history",
    )


class CodeAnalyticsResponse(AnalyticsSummary):
    """Analytics for one tracked code."""

    code_id: str
    name: str
    timezone: str = Field(description="Zone used for day, week and hour buckets")
