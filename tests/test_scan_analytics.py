from datetime import timedelta
from zoneinfo import ZoneInfo

from structlog.testing import CapturingLogger

from conftest import make_code, utc

from app.aggregators import compute_analytics, scan_analytics, start_of_day, start_of_month, start_of_week

# Wednesday
NOW = utc(2024, 3, 13, 15, 30)


def test_empty_history_has_every_bucket_at_zero():
    summary = compute_analytics(make_code(), NOW)

    assert summary.total_scans == 0
    assert summary.today_scans == summary.weekly_scans == summary.monthly_scans == 0
    assert len(summary.scans_by_date) == 30
    assert len(summary.scans_by_hour) == 24
    assert set(summary.scans_by_date.values()) == {0}
    assert set(summary.scans_by_hour.values()) == {0}


def test_date_window_is_thirty_days_ending_today_oldest_first():
    summary = compute_analytics(make_code(), NOW)

    keys = list(summary.scans_by_date)
    assert keys[0] == "2024-02-13"
    assert keys[-1] == "2024-03-13"
    assert keys == sorted(keys)


def test_hour_keys_are_zero_padded():
    summary = compute_analytics(make_code(), NOW)

    assert list(summary.scans_by_hour) == [f"{h:02d}" for h in range(24)]


def test_boundaries_follow_monday_week_and_calendar_month():
    assert start_of_day(NOW) == utc(2024, 3, 13)
    assert start_of_week(NOW) == utc(2024, 3, 11)
    assert start_of_month(NOW) == utc(2024, 3, 1)
    # A Monday is its own week start
    assert start_of_week(utc(2024, 3, 11, 0, 0)) == utc(2024, 3, 11)


def test_period_counts():
    code = make_code(timestamps=[
        utc(2024, 3, 13, 9, 0),    # today
        utc(2024, 3, 12, 23, 59),  # this week
        utc(2024, 3, 11, 0, 0),    # this week, exactly on Monday midnight
        utc(2024, 3, 10, 12, 0),   # Sunday: last week, this month
        utc(2024, 3, 1, 0, 0),     # first instant of the month
        utc(2024, 2, 29, 23, 59),  # last month
    ])

    summary = compute_analytics(code, NOW)

    assert summary.total_scans == 6
    assert summary.today_scans == 1
    assert summary.weekly_scans == 3
    assert summary.monthly_scans == 5


def test_scan_exactly_at_start_of_day_counts_as_today():
    code = make_code(timestamps=[start_of_day(NOW), start_of_day(NOW) - timedelta(microseconds=1)])

    summary = compute_analytics(code, NOW)

    assert summary.today_scans == 1


def test_identical_timestamps_are_counted_separately():
    ts = utc(2024, 3, 13, 8, 15)
    summary = compute_analytics(make_code(timestamps=[ts, ts, ts]), NOW)

    assert summary.today_scans == 3
    assert summary.scans_by_date["2024-03-13"] == 3
    assert summary.scans_by_hour["08"] == 3


def test_date_histogram_excludes_scans_outside_window():
    code = make_code(timestamps=[
        utc(2024, 3, 13, 1, 0),
        utc(2024, 2, 13, 0, 0),   # oldest day in the window
        utc(2024, 2, 12, 23, 59),  # one day too old
        utc(2023, 6, 1, 12, 0),
    ])

    summary = compute_analytics(code, NOW)

    assert summary.scans_by_date["2024-03-13"] == 1
    assert summary.scans_by_date["2024-02-13"] == 1
    assert "2024-02-12" not in summary.scans_by_date
    assert sum(summary.scans_by_date.values()) == 2


def test_hour_histogram_covers_whole_history():
    code = make_code(timestamps=[
        utc(2023, 6, 1, 12, 0),
        utc(2024, 3, 13, 12, 45),
        utc(2024, 3, 1, 0, 5),
    ])

    summary = compute_analytics(code, NOW)

    assert summary.scans_by_hour["12"] == 2
    assert summary.scans_by_hour["00"] == 1
    assert sum(summary.scans_by_hour.values()) == summary.total_scans


def test_naive_timestamps_are_read_as_utc():
    code = make_code(timestamps=[utc(2024, 3, 13, 10, 0)])
    naive_now = NOW.replace(tzinfo=None)

    summary = compute_analytics(code, naive_now)

    assert summary.today_scans == 1


def test_buckets_use_the_requested_zone():
    tokyo = ZoneInfo("Asia/Tokyo")
    # 23:30 UTC on the 12th is 08:30 on the 13th in Tokyo
    code = make_code(timestamps=[utc(2024, 3, 12, 23, 30)])
    # 19:00 on the 13th in Tokyo
    now = utc(2024, 3, 13, 10, 0)

    in_utc = compute_analytics(code, now)
    in_tokyo = compute_analytics(code, now, tz=tokyo)

    assert in_utc.today_scans == 0
    assert in_utc.scans_by_hour["23"] == 1
    assert in_tokyo.today_scans == 1
    assert in_tokyo.scans_by_date["2024-03-13"] == 1
    assert in_tokyo.scans_by_hour["08"] == 1


def test_is_pure_and_repeatable():
    code = make_code(timestamps=[utc(2024, 3, 13, 9, 0), utc(2024, 3, 2, 18, 0)])
    snapshot = code.model_dump()

    first = compute_analytics(code, NOW)
    second = compute_analytics(code, NOW)

    assert first == second
    assert code.model_dump() == snapshot


def test_counter_mismatch_trusts_scan_list_and_warns(monkeypatch):
    captured = CapturingLogger()
    monkeypatch.setattr(scan_analytics, "logger", captured)
    code = make_code(timestamps=[utc(2024, 3, 13, 9, 0), utc(2024, 3, 13, 10, 0)])
    code = code.model_copy(update={"total_scans": 7})

    summary = compute_analytics(code, NOW)

    assert summary.total_scans == 2
    assert len(captured.calls) == 1
    call = captured.calls[0]
    assert call.method_name == "warning"
    assert call.args == ("Scan counter mismatch",)
    assert call.kwargs["stored_total"] == 7
    assert call.kwargs["scan_count"] == 2
