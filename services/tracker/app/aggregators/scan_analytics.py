"""Scan analytics: day/week/month counts and date/hour histograms.

Everything here is pure. Instants are converted to one zone before any
bucketing, and naive instants are read as UTC. Weeks start on Monday.
"""

from collections import Counter
from datetime import date, datetime, time, timedelta, timezone, tzinfo

import structlog
from qrtrack_shared import TrackedCode

from app.schemas.analytics import AnalyticsSummary

logger = structlog.get_logger()

DATE_WINDOW_DAYS = 30
HOURS_PER_DAY = 24


def to_zone(instant: datetime, tz: tzinfo) -> datetime:
    """Express `instant` in `tz`, treating naive values as UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(tz)


def _midnight(day: date, tz: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def start_of_day(now: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Local midnight of the day containing `now`."""
    return _midnight(to_zone(now, tz).date(), tz)


def start_of_week(now: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Local midnight of the Monday on or before `now`."""
    today = to_zone(now, tz).date()
    return _midnight(today - timedelta(days=today.weekday()), tz)


def start_of_month(now: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Local midnight of the first day of `now`'s month."""
    return _midnight(to_zone(now, tz).date().replace(day=1), tz)


def date_window(now: datetime, tz: tzinfo = timezone.utc, days: int = DATE_WINDOW_DAYS) -> list[date]:
    """The `days` calendar dates ending at `now`'s date, oldest first."""
    today = to_zone(now, tz).date()
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def compute_analytics(
    code: TrackedCode,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> AnalyticsSummary:
    """Derive the analytics summary for `code` as seen at `now`.

    Args:
        code: Tracked code whose scan list is summarized. Not modified.
        now: Reference instant for the day, week, month and 30-day window.
        tz: Zone that defines calendar days and hours of day.

    Returns:
        Summary with every date and hour bucket present, zero or not.
    """
    total_scans = len(code.scans)
    if total_scans != code.total_scans:
        logger.warning(
            "Scan counter mismatch",
            code_id=code.id,
            stored_total=code.total_scans,
            scan_count=total_scans,
        )

    local_times = [to_zone(scan.timestamp, tz) for scan in code.scans]

    day_start = start_of_day(now, tz)
    week_start = start_of_week(now, tz)
    month_start = start_of_month(now, tz)

    # Lower boundaries are inclusive
    today_scans = sum(1 for ts in local_times if ts >= day_start)
    weekly_scans = sum(1 for ts in local_times if ts >= week_start)
    monthly_scans = sum(1 for ts in local_times if ts >= month_start)

    per_date = Counter(ts.date() for ts in local_times)
    scans_by_date = {day.isoformat(): per_date[day] for day in date_window(now, tz)}

    per_hour = Counter(ts.hour for ts in local_times)
    scans_by_hour = {f"{hour:02d}": per_hour[hour] for hour in range(HOURS_PER_DAY)}

    return AnalyticsSummary(
        total_scans=total_scans,
        today_scans=today_scans,
        weekly_scans=weekly_scans,
        monthly_scans=monthly_scans,
        scans_by_date=scans_by_date,
        scans_by_hour=scans_by_hour,
    )
