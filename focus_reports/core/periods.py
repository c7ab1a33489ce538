"""Report period resolution and analysis-depth decisions.

Periods are whole calendar days in the caller's timezone: the start is
00:00:00.000 and the end is 23:59:59.999.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from focus_reports.core.logging import get_logger, log_with_context
from focus_reports.core.schemas_reports import ExplicitRange, ReportPeriod, TimeRangePreset

logger = get_logger(__name__)

ONE_DAY = timedelta(days=1)
DEFAULT_DEEP_ANALYSIS_MIN_DAYS = 21

TimeRangeInput = str | ExplicitRange | Mapping[str, Any] | None


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def get_timezone(name: str | None) -> ZoneInfo:
    """Resolve an IANA timezone name, falling back to UTC for unknown names."""
    if not name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {name!r}, using UTC")
        return ZoneInfo("UTC")


def localize(value: datetime, tz: ZoneInfo) -> datetime:
    """Read naive datetimes as wall-clock time in tz, convert aware ones to tz."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def _parse_boundary(value: Any, tz: ZoneInfo) -> datetime | None:
    if isinstance(value, datetime):
        return localize(value, tz)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return localize(parsed, tz)


def _last_7_days(now: datetime) -> tuple[datetime, datetime]:
    return start_of_day(now - 6 * ONE_DAY), end_of_day(now)


def apply_time_range_policy(
    time_range: TimeRangeInput, now: datetime, tz: ZoneInfo
) -> tuple[str, datetime, datetime]:
    """
    Map a time-range selector onto concrete day boundaries.

    The policy is lenient: unknown or missing presets, unparseable explicit
    dates and inverted explicit ranges all resolve to the last 7 days.

    Returns:
        Tuple of (resolved preset label, start, end)
    """
    if isinstance(time_range, Mapping):
        time_range = ExplicitRange.model_validate(time_range)

    if isinstance(time_range, ExplicitRange):
        start = _parse_boundary(time_range.start_date, tz)
        end = _parse_boundary(time_range.end_date, tz)
        if start is None or end is None:
            log_with_context(
                logger,
                logging.WARNING,
                "Unparseable explicit range, falling back to last7days",
                start=time_range.start_date,
                end=time_range.end_date,
            )
        else:
            start, end = start_of_day(start), end_of_day(end)
            if start <= end:
                return TimeRangePreset.CUSTOM.value, start, end
            log_with_context(
                logger,
                logging.WARNING,
                "Explicit range start is after end, falling back to last7days",
                start=start.isoformat(),
                end=end.isoformat(),
            )
        start, end = _last_7_days(now)
        return TimeRangePreset.LAST_7_DAYS.value, start, end

    if time_range == TimeRangePreset.TODAY.value:
        return TimeRangePreset.TODAY.value, start_of_day(now), end_of_day(now)

    if time_range != TimeRangePreset.LAST_7_DAYS.value:
        logger.warning(f"Unknown time range {time_range!r}, falling back to last7days")

    start, end = _last_7_days(now)
    return TimeRangePreset.LAST_7_DAYS.value, start, end


def resolve_period(
    time_range: TimeRangeInput,
    now: datetime | None = None,
    timezone: str | None = None,
) -> tuple[str, ReportPeriod]:
    """
    Resolve a time-range selector into a report period.

    Args:
        time_range: Preset name ("last7days", "today") or explicit start/end range
        now: Reference instant (defaults to the current time)
        timezone: IANA timezone used for day boundaries

    Returns:
        Tuple of (resolved preset label, ReportPeriod)
    """
    tz = get_timezone(timezone)
    now = localize(now, tz) if now is not None else datetime.now(tz)

    label, start, end = apply_time_range_policy(time_range, now, tz)
    return label, ReportPeriod(start_date=start, end_date=end)


def days_difference(start: datetime, end: datetime) -> int:
    """Length of a period in days, rounded up."""
    return math.ceil((end - start) / ONE_DAY)


def is_deep_analysis(days: int, min_days: int = DEFAULT_DEEP_ANALYSIS_MIN_DAYS) -> bool:
    return days >= min_days
