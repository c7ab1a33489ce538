"""Daily card slicing and progress statistics."""

import re
from datetime import datetime
from zoneinfo import ZoneInfo

from focus_reports.core.periods import days_difference, localize
from focus_reports.core.schemas_goals import DailyCard
from focus_reports.core.schemas_reports import AnalysisWindow, ProgressAnalysis, ReportPeriod

TASK_ID_PREFIX = "task-"

_WHITESPACE = re.compile(r"\s+")


def task_identifier(text: str) -> str:
    """Derive the stable task identifier used as a key in task_completions."""
    return TASK_ID_PREFIX + _WHITESPACE.sub("-", text.strip()).lower()


def task_label(task_id: str, known_tasks: list[str] | None = None) -> str:
    """Resolve a task identifier back to a human-readable label."""
    for task in known_tasks or []:
        if task_identifier(task) == task_id:
            return task
    label = task_id[len(TASK_ID_PREFIX):] if task_id.startswith(TASK_ID_PREFIX) else task_id
    return label.replace("-", " ")


def slice_cards(cards: list[DailyCard], period: ReportPeriod) -> list[DailyCard]:
    """
    Select the cards inside a period, newest first.

    Both bounds are inclusive. Naive card dates are read in the period's timezone.
    """
    tz = period.start_date.tzinfo or ZoneInfo("UTC")
    start = localize(period.start_date, tz)
    end = localize(period.end_date, tz)

    selected = [card for card in cards if start <= localize(card.date, tz) <= end]
    selected.sort(key=lambda card: localize(card.date, tz), reverse=True)
    return selected


def is_card_completed(card: DailyCard) -> bool:
    """A day counts as done when the main task or any sub-task was completed."""
    if card.completed.daily_task:
        return True
    return any(done is True for done in card.task_completions.values())


def compute_progress_analysis(
    cards: list[DailyCard],
    period: ReportPeriod,
    now: datetime | None = None,
) -> ProgressAnalysis:
    """
    Compute aggregate statistics over an already-sliced list of cards.

    Args:
        cards: Cards inside the period, newest first
        period: The analysis period
        now: Fallback for last_update when there are no cards

    Returns:
        ProgressAnalysis with completion_rate in [0, 100]
    """
    total = len(cards)
    completed = sum(1 for card in cards if is_card_completed(card))
    rate = (completed / total) * 100 if total else 0.0

    if cards:
        tz = period.start_date.tzinfo or ZoneInfo("UTC")
        last_update = max(localize(card.date, tz) for card in cards)
    else:
        last_update = now or datetime.now(period.end_date.tzinfo)

    return ProgressAnalysis(
        total_records=total,
        completed_tasks=completed,
        completion_rate=rate,
        last_update=last_update,
        time_range=AnalysisWindow(
            start=period.start_date,
            end=period.end_date,
            days=days_difference(period.start_date, period.end_date),
        ),
    )
