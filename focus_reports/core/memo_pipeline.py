"""Memo sub-pipeline: phase-tagged reflections attached to a saved report.

Phases, in workflow order: originalMemo → aiDraft → finalMemo → nextWeekPlan.
Each (report, phase) pair holds at most one memo; saving a phase again
replaces its content and refreshes its timestamp.
"""

import asyncio
import logging

from focus_reports.chains.generate_memo import (
    AI_DRAFT_FAILURE_MESSAGE,
    NEXT_WEEK_PLAN_FAILURE_MESSAGE,
    SYSTEM_PROMPT,
    build_ai_draft_prompt,
    build_next_week_plan_prompt,
)
from focus_reports.core.config import Settings, get_settings
from focus_reports.core.embeddings import EmbeddingProvider, EmbeddingVector
from focus_reports.core.errors import InvalidMemoError, PreconditionError, ReportNotFoundError
from focus_reports.core.llm import CompletionProvider, ModelTier
from focus_reports.core.logging import get_logger, log_with_context
from focus_reports.core.retrieval import ContextRetrievalEngine
from focus_reports.core.schemas_memos import MEMO_PHASE_ORDER, Memo, MemoPhase
from focus_reports.core.schemas_reports import Report
from focus_reports.db.goals import GoalReader
from focus_reports.db.reports import ReportStore

logger = get_logger(__name__)

REFLECTION_PHASES = (MemoPhase.ORIGINAL_MEMO, MemoPhase.AI_DRAFT, MemoPhase.FINAL_MEMO)


def next_available_phase(memos: list[Memo]) -> MemoPhase | None:
    """First phase in workflow order without content, or None when all are filled."""
    filled = {memo.phase for memo in memos if memo.content.strip()}
    for phase in MEMO_PHASE_ORDER:
        if phase not in filled:
            return phase
    return None


def _find_memo(memos: list[Memo], phase: MemoPhase) -> Memo | None:
    for memo in memos:
        if memo.phase == phase and memo.content.strip():
            return memo
    return None


class MemoPipeline:
    def __init__(
        self,
        goals: GoalReader,
        store: ReportStore,
        completion: CompletionProvider,
        embedder: EmbeddingProvider,
        retrieval: ContextRetrievalEngine,
        settings: Settings | None = None,
    ):
        self.goals = goals
        self.store = store
        self.completion = completion
        self.embedder = embedder
        self.retrieval = retrieval
        self.settings = settings or get_settings()

    async def _require_report(self, report_id: str) -> Report:
        report = await asyncio.to_thread(self.store.get_report, report_id)
        if report is None:
            raise ReportNotFoundError(report_id=report_id)
        return report

    async def _embed_best_effort(self, text: str, report_id: str) -> EmbeddingVector | None:
        try:
            return await self.embedder.embed(text)
        except Exception as e:
            log_with_context(logger, logging.WARNING, f"Failed to embed memo: {e}", report_id=report_id)
            return None

    async def _goal_title(self, report: Report) -> str:
        goal = await asyncio.to_thread(self.goals.get_goal_by_id, report.goal_id)
        return goal.title if goal else "Untitled goal"

    async def add_or_update_memo(self, report_id: str, phase: MemoPhase, content: str) -> Memo:
        """
        Create the memo for a phase, or replace its content.

        Raises:
            InvalidMemoError: If content is empty
            ReportNotFoundError: If the report does not exist
        """
        content = (content or "").strip()
        if not content:
            raise InvalidMemoError("Memo content is required")

        await self._require_report(report_id)

        embedding = await self._embed_best_effort(content, report_id)
        memo = await asyncio.to_thread(self.store.upsert_memo, report_id, phase, content, embedding)
        await asyncio.to_thread(self.store.touch_report, report_id)

        log_with_context(
            logger, logging.INFO, "Saved memo", report_id=report_id, phase=phase.value
        )
        return memo

    async def generate_ai_draft(self, report_id: str) -> Memo:
        """
        Draft a reflective memo from the report and the user's original memo.

        Raises:
            ReportNotFoundError: If the report does not exist
            PreconditionError: If there is no original memo yet
            GenerationError: If completion fails after the fallback attempt
        """
        report = await self._require_report(report_id)
        memos = await asyncio.to_thread(self.store.list_memos, report_id)

        original = _find_memo(memos, MemoPhase.ORIGINAL_MEMO)
        if original is None:
            raise PreconditionError(
                "Please create an original memo first before generating AI draft",
                missing_phase=MemoPhase.ORIGINAL_MEMO.value,
            )

        prompt = build_ai_draft_prompt(await self._goal_title(report), report, original.content)
        prompt = await self.retrieval.enhance(prompt, report.goal_id, query_text=original.content)

        content = await self.completion.complete(
            prompt,
            ModelTier.LARGE,
            system_prompt=SYSTEM_PROMPT,
            temperature=self.settings.REPORT_TEMPERATURE,
            max_tokens=self.settings.MEMO_MAX_TOKENS,
            failure_message=AI_DRAFT_FAILURE_MESSAGE,
        )
        return await self.add_or_update_memo(report_id, MemoPhase.AI_DRAFT, content)

    async def generate_next_week_plan(self, report_id: str) -> Memo:
        """
        Draft next week's plan from whichever reflection phases exist.

        Raises:
            ReportNotFoundError: If the report does not exist
            PreconditionError: If no reflection memo exists yet
            GenerationError: If completion fails after the fallback attempt
        """
        report = await self._require_report(report_id)
        memos = await asyncio.to_thread(self.store.list_memos, report_id)

        reflections = [m for m in memos if m.phase in REFLECTION_PHASES and m.content.strip()]
        if not reflections:
            raise PreconditionError(
                "Please create an original memo first before generating next week plan",
                missing_phase=MemoPhase.ORIGINAL_MEMO.value,
            )

        prompt = build_next_week_plan_prompt(await self._goal_title(report), report, reflections)

        content = await self.completion.complete(
            prompt,
            ModelTier.LARGE,
            system_prompt=SYSTEM_PROMPT,
            temperature=self.settings.REPORT_TEMPERATURE,
            max_tokens=self.settings.MEMO_MAX_TOKENS,
            failure_message=NEXT_WEEK_PLAN_FAILURE_MESSAGE,
        )
        return await self.add_or_update_memo(report_id, MemoPhase.NEXT_WEEK_PLAN, content)

    async def list_memos(self, report_id: str) -> list[Memo]:
        """A report's memos, oldest first."""
        await self._require_report(report_id)
        memos = await asyncio.to_thread(self.store.list_memos, report_id)
        return sorted(memos, key=lambda memo: memo.timestamp)
