"""Tests for report period resolution and analysis depth."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from focus_reports.core.periods import days_difference, is_deep_analysis, resolve_period
from focus_reports.core.schemas_reports import ExplicitRange, ReportPeriod

NOW = datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc)


def test_last7days_covers_six_days_back_through_end_of_today():
    label, period = resolve_period("last7days", now=NOW)

    assert label == "last7days"
    assert period.start_date == datetime(2026, 10, 13, 0, 0, tzinfo=timezone.utc)
    assert period.end_date == datetime(2026, 10, 19, 23, 59, 59, 999000, tzinfo=timezone.utc)
    assert days_difference(period.start_date, period.end_date) == 7


def test_today_is_a_single_day():
    label, period = resolve_period("today", now=NOW)

    assert label == "today"
    assert period.start_date.date() == NOW.date()
    assert period.end_date.date() == NOW.date()
    assert days_difference(period.start_date, period.end_date) == 1


def test_explicit_range_is_normalized_to_day_boundaries():
    label, period = resolve_period(
        ExplicitRange(start_date="2026-09-01T14:00:00", end_date="2026-09-30"), now=NOW
    )

    assert label == "custom"
    assert period.start_date == datetime(2026, 9, 1, tzinfo=timezone.utc)
    assert period.end_date.hour == 23
    assert period.end_date.microsecond == 999000
    assert days_difference(period.start_date, period.end_date) == 30


def test_explicit_range_accepts_camel_case_mapping():
    label, period = resolve_period({"startDate": "2026-10-01", "endDate": "2026-10-03"}, now=NOW)

    assert label == "custom"
    assert days_difference(period.start_date, period.end_date) == 3


@pytest.mark.parametrize(
    "time_range",
    [
        None,
        "last-month",
        ExplicitRange(start_date="2026-10-10", end_date="2026-10-01"),
        ExplicitRange(start_date="not a date", end_date="2026-10-01"),
        ExplicitRange(start_date="2026-10-01"),
    ],
)
def test_unusable_selectors_fall_back_to_last7days(time_range):
    label, period = resolve_period(time_range, now=NOW)

    assert label == "last7days"
    assert period.start_date == datetime(2026, 10, 13, tzinfo=timezone.utc)


def test_boundaries_follow_caller_timezone():
    # 02:00 UTC on the 19th is still the 18th in New York
    now = datetime(2026, 10, 19, 2, 0, tzinfo=timezone.utc)

    _, period = resolve_period("today", now=now, timezone="America/New_York")

    assert period.start_date.date().isoformat() == "2026-10-18"
    assert period.start_date.utcoffset().total_seconds() == -4 * 3600


def test_unknown_timezone_uses_utc():
    _, period = resolve_period("today", now=NOW, timezone="Mars/Olympus_Mons")

    assert period.start_date.utcoffset().total_seconds() == 0


def test_deep_analysis_threshold():
    assert is_deep_analysis(20) is False
    assert is_deep_analysis(21) is True
    assert is_deep_analysis(30) is True
    assert is_deep_analysis(10, min_days=10) is True


def test_report_period_rejects_inverted_range():
    with pytest.raises(ValidationError):
        ReportPeriod(
            start_date=datetime(2026, 10, 2, tzinfo=timezone.utc),
            end_date=datetime(2026, 10, 1, tzinfo=timezone.utc),
        )
