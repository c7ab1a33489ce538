"""Prompt construction for weekly reflection memos."""

from focus_reports.core.schemas_memos import Memo, MemoPhase
from focus_reports.core.schemas_reports import Report

SYSTEM_PROMPT = (
    "You are a thoughtful reflection assistant helping users create meaningful weekly memos."
)

AI_DRAFT_FAILURE_MESSAGE = "Memo content generation failed, please try again later"
NEXT_WEEK_PLAN_FAILURE_MESSAGE = "Next week plan generation failed, please try again later"


def _period_text(report: Report) -> str:
    start = report.period.start_date.strftime("%Y-%m-%d")
    end = report.period.end_date.strftime("%Y-%m-%d")
    return f"{start} - {end}"


def build_ai_draft_prompt(goal_title: str, report: Report, original_memo: str) -> str:
    return f"""As a professional goal reflection assistant, help the user create a comprehensive weekly memo based on their AI progress analysis and initial thoughts.

Context Information:
Goal: {goal_title}
Analysis Period: {_period_text(report)}

AI Progress Analysis:
{report.content}

User's Initial Memo:
{original_memo}

Please create a well-structured weekly memo that:
1. **Progress Summary**: Synthesize key achievements and challenges from the analysis
2. **Personal Insights**: Incorporate and expand on the user's initial thoughts
3. **Pattern Recognition**: Identify trends and patterns in the user's progress
4. **Actionable Reflections**: Provide specific, actionable insights for improvement

Guidelines:
- Keep the tone personal and reflective
- Balance analytical insights with emotional support
- Focus on growth and learning opportunities
- Maintain a length of 200-400 words
- Use clear, engaging language

Please respond in English with a well-formatted memo."""


_PHASE_HEADINGS = {
    MemoPhase.ORIGINAL_MEMO: "User's Initial Memo",
    MemoPhase.AI_DRAFT: "AI-Assisted Draft",
    MemoPhase.FINAL_MEMO: "User's Final Memo",
}


def build_next_week_plan_prompt(goal_title: str, report: Report, memos: list[Memo]) -> str:
    """Forward-looking plan prompt built from whichever reflection phases exist."""
    reflections = "\n\n".join(
        f"{_PHASE_HEADINGS[memo.phase]}:\n{memo.content}"
        for memo in memos
        if memo.phase in _PHASE_HEADINGS and memo.content.strip()
    )

    return f"""As a professional goal planning assistant, help the user turn this week's reflections into a concrete plan for next week.

Context Information:
Goal: {goal_title}
Analysis Period: {_period_text(report)}
Completion Rate: {report.analysis.completion_rate:.1f}%

AI Progress Analysis:
{report.content}

This Week's Reflections:
{reflections}

Please create a next-week plan that:
1. **Focus Areas**: Name the two or three priorities for next week
2. **Daily Actions**: Suggest small, specific daily actions for the main task
3. **Obstacles**: Anticipate likely obstacles and how to handle them
4. **Success Check**: Describe how the user will know the week went well

Keep it practical, encouraging and under 300 words. Please respond in English."""
