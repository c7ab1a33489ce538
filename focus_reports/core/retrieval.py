"""Historical context retrieval for report and memo prompts.

Pipeline: embed query → vector match (or recent-reports fallback) → scope to
goal → extract insights → format → combine with the base prompt.

Graceful degradation: enhance() never raises. Any failure leaves the base
prompt unchanged.

Usage:
    engine = ContextRetrievalEngine(store, embedder)
    prompt = await engine.enhance(prompt, goal_id)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from focus_reports.core.config import get_settings
from focus_reports.core.embeddings import EmbeddingProvider
from focus_reports.core.logging import get_logger, log_with_context
from focus_reports.core.retrieval_format import (
    combine_prompt_with_context,
    extract_insight,
    format_historical_context,
)
from focus_reports.core.schemas_reports import Report
from focus_reports.db.reports import ReportStore

logger = get_logger(__name__)


@dataclass
class RetrievalResult:
    """Historical reports found for a goal."""

    reports: list[Report] = field(default_factory=list)
    source: str = "none"  # "vector" | "recent" | "none"


class ContextRetrievalEngine:
    def __init__(
        self,
        store: ReportStore,
        embedder: EmbeddingProvider,
        result_limit: int | None = None,
        candidate_pool: int | None = None,
        recent_limit: int | None = None,
    ):
        settings = get_settings()
        self.store = store
        self.embedder = embedder
        self.result_limit = result_limit or settings.RETRIEVAL_RESULT_LIMIT
        self.candidate_pool = candidate_pool or settings.RETRIEVAL_CANDIDATE_POOL
        self.recent_limit = recent_limit or settings.RETRIEVAL_RECENT_LIMIT

    async def retrieve(self, goal_id: str, query_text: str) -> RetrievalResult:
        """
        Find historical reports for a goal similar to query_text.

        Falls back to the goal's most recent embedded reports when the vector
        search is unavailable.
        """
        query_embedding = await self.embedder.embed(query_text)

        try:
            reports = await asyncio.to_thread(
                self.store.match_reports,
                query_embedding,
                goal_id,
                match_count=self.result_limit,
                candidate_pool=self.candidate_pool,
            )
            source = "vector"
        except Exception as e:
            log_with_context(
                logger,
                logging.WARNING,
                f"Vector match unavailable, using recent reports: {e}",
                goal_id=goal_id,
            )
            reports = await asyncio.to_thread(
                self.store.find_recent_by_goal, goal_id, self.recent_limit
            )
            source = "recent"

        scoped = [report for report in reports if report.goal_id == goal_id]
        return RetrievalResult(reports=scoped[: self.result_limit], source=source)

    async def enhance(
        self,
        base_prompt: str,
        goal_id: str,
        query_text: str | None = None,
    ) -> str:
        """
        Append a historical context block to base_prompt.

        Args:
            base_prompt: Prompt to enhance
            goal_id: Only this goal's reports are considered
            query_text: Text to embed for similarity (defaults to base_prompt)

        Returns:
            Enhanced prompt, or base_prompt unchanged when nothing is found or
            anything fails
        """
        try:
            result = await self.retrieve(goal_id, query_text or base_prompt)

            if not result.reports:
                log_with_context(logger, logging.INFO, "No historical reports found", goal_id=goal_id)
                return base_prompt

            insights = [extract_insight(report) for report in result.reports]
            context = format_historical_context(insights)

            log_with_context(
                logger,
                logging.INFO,
                f"Enhanced prompt with {len(insights)} historical reports",
                goal_id=goal_id,
                source=result.source,
            )
            return combine_prompt_with_context(base_prompt, context)

        except Exception as e:
            log_with_context(
                logger,
                logging.WARNING,
                f"Context retrieval failed, using base prompt: {e}",
                goal_id=goal_id,
            )
            return base_prompt
