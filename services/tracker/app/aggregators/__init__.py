"""Scan aggregation logic for analytics."""

from app.aggregators.scan_analytics import (
    compute_analytics,
    date_window,
    start_of_day,
    start_of_month,
    start_of_week,
)

__all__ = [
    "compute_analytics",
    "date_window",
    "start_of_day",
    "start_of_month",
    "start_of_week",
]
