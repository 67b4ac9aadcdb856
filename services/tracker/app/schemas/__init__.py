"""Pydantic schemas."""

from app.schemas.analytics import AnalyticsSummary, CodeAnalyticsResponse
from app.schemas.code import CodeCreate, CodeListResponse, CodeResponse, ScanResponse

__all__ = [
    "AnalyticsSummary",
    "CodeAnalyticsResponse",
    "CodeCreate",
    "CodeListResponse",
    "CodeResponse",
    "ScanResponse",
]
