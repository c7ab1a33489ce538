"""Prompt construction for goal progress reports."""

from zoneinfo import ZoneInfo

from focus_reports.core.periods import localize
from focus_reports.core.progress_stats import task_label
from focus_reports.core.schemas_goals import DailyCard, Goal
from focus_reports.core.schemas_reports import ProgressAnalysis

ANALYSIS_ASPECTS = """Please analyze from the following aspects:
1. Progress Assessment: Analyze the current progress, including completion rate and efficiency
2. Pattern Recognition: Analyze the user's work/study pattern, find the pattern
3. Improvement Suggestions: Based on the analysis, propose specific improvement suggestions
4. Encouraging Feedback: Give positive feedback and encouragement

Please reply in English, with a positive and encouraging tone, and specific suggestions that are easy to follow."""


def _glyph(done: bool) -> str:
    return "✓" if done else "✗"


def format_card_line(
    card: DailyCard,
    known_tasks: list[str] | None = None,
    tz: ZoneInfo | None = None,
) -> str:
    """
    One line per day: main task, reward, sub-task tally and notes.

    The date is the card's calendar day in tz, the same reading slice_cards uses.
    """
    completions = card.task_completions
    done_count = sum(1 for done in completions.values() if done is True)
    tally = f"{done_count}/{len(completions)}"
    if completions:
        details = ", ".join(
            f"{task_label(task_id, known_tasks)} {_glyph(done is True)}"
            for task_id, done in completions.items()
        )
        tally = f"{tally}: {details}"
    notes = "; ".join(record.content for record in card.records if record.content)
    day = localize(card.date, tz) if tz else card.date

    return (
        f"- {day.strftime('%Y-%m-%d')}: "
        f"Main Task {_glyph(card.completed.daily_task)}, "
        f"Reward {_glyph(card.completed.daily_reward)}, "
        f"Sub-tasks ({tally}), "
        f"Notes: {notes or 'No detailed records'}"
    )


def build_progress_prompt(goal: Goal, cards: list[DailyCard], analysis: ProgressAnalysis) -> str:
    """
    Build the report generation prompt.

    Args:
        goal: Goal being analyzed
        cards: Cards inside the period, newest first
        analysis: Aggregate statistics for the period

    Returns:
        Prompt text
    """
    window = analysis.time_range
    tz = window.start.tzinfo or ZoneInfo("UTC")
    daily_lines = (
        "\n".join(format_card_line(card, goal.daily_tasks, tz) for card in cards)
        or "- No daily records"
    )

    return f"""As a professional goal analysis assistant, please generate a detailed analysis report based on the following information:

Goal Information:
Title: {goal.title}
Current Task: {goal.current_task or 'None'}
Priority: {goal.priority if goal.priority not in (None, '') else 'Not set'}

Daily Progress Data:
- Total Records: {analysis.total_records}
- Completed Tasks: {analysis.completed_tasks}
- Completion Rate: {analysis.completion_rate:.1f}%

Analysis Period: {window.start.strftime('%Y-%m-%d')} - {window.end.strftime('%Y-%m-%d')} ({window.days} days)

Detailed Daily Records:
{daily_lines}

{ANALYSIS_ASPECTS}"""
