"""Format retrieved historical reports for prompt injection.

Truncates from the lowest-ranked report first when the context limit is hit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from focus_reports.core.report_format import format_report_content

if TYPE_CHECKING:
    from focus_reports.core.schemas_reports import Report

KEY_SECTION_MARKERS = ("Key", "Pattern")
DEFAULT_MAX_CONTEXT_CHARS = 6000

CONTEXT_LEAD_IN = "Consider the following historical context when providing analysis:"
CONTEXT_CLOSING = (
    "Please incorporate relevant historical patterns and trends in your analysis "
    "while maintaining focus on the current time period."
)


@dataclass
class HistoricalInsight:
    date: datetime | None
    completion_rate: float
    key_points: str


def extract_insight(report: Report) -> HistoricalInsight:
    """Pull the date, completion rate and key/pattern section bodies from a report."""
    sections = format_report_content(report.content).sections
    key_points = "\n".join(
        section.content
        for section in sections
        if any(marker in section.title for marker in KEY_SECTION_MARKERS)
    )
    return HistoricalInsight(
        date=report.created_at or report.period.end_date,
        completion_rate=report.analysis.completion_rate,
        key_points=key_points,
    )


def _format_insight(insight: HistoricalInsight) -> str:
    date_text = insight.date.strftime("%Y-%m-%d") if insight.date else "unknown"
    return (
        f"Date: {date_text}\n"
        f"Completion Rate: {insight.completion_rate:.1f}%\n"
        f"Key Points:\n"
        f"{insight.key_points}"
    ).rstrip()


def format_historical_context(
    insights: list[HistoricalInsight],
    max_chars: int = DEFAULT_MAX_CONTEXT_CHARS,
) -> str:
    """
    Build the "Historical Context:" block, one paragraph per report.

    Args:
        insights: Insights ordered most relevant first
        max_chars: Character limit for the whole block

    Returns:
        Formatted block, or "" when there are no insights
    """
    if not insights:
        return ""

    header = "Historical Context:"
    paragraphs: list[str] = []
    chars_used = len(header)

    for insight in insights:
        paragraph = _format_insight(insight)
        if paragraphs and chars_used + len(paragraph) + 2 > max_chars:
            break
        paragraphs.append(paragraph)
        chars_used += len(paragraph) + 2

    return header + "\n\n" + "\n\n".join(paragraphs)


def combine_prompt_with_context(base_prompt: str, context: str) -> str:
    if not context:
        return base_prompt
    return f"{base_prompt}\n\n{CONTEXT_LEAD_IN}\n{context}\n\n{CONTEXT_CLOSING}"
