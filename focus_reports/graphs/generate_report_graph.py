"""Progress report generation LangGraph pipeline.

resolve_period → load_goal → analyze_progress → build_prompt
    → [deep] enhance_prompt → generate_analysis → persist_report → [deep] save_embedding
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from langgraph.graph import END, StateGraph

from focus_reports.chains.generate_progress_report import build_progress_prompt
from focus_reports.core.config import Settings, get_settings
from focus_reports.core.embeddings import EmbeddingProvider
from focus_reports.core.errors import GoalNotFoundError, ReportNotFoundError
from focus_reports.core.llm import DEFAULT_SYSTEM_PROMPT, CompletionProvider, ModelTier
from focus_reports.core.logging import get_logger, log_with_context
from focus_reports.core.periods import days_difference, is_deep_analysis, resolve_period
from focus_reports.core.progress_stats import compute_progress_analysis, slice_cards
from focus_reports.core.retrieval import ContextRetrievalEngine
from focus_reports.core.schemas_goals import DailyCard, Goal
from focus_reports.core.schemas_reports import (
    AnalysisType,
    ProgressAnalysis,
    Report,
    ReportPeriod,
)
from focus_reports.db.goals import GoalReader
from focus_reports.db.reports import ReportStore

logger = get_logger(__name__)

MAX_STEPS = 10


@dataclass
class ReportGenerationState:
    """State for the report generation graph."""

    # Input fields
    goal_id: str
    user_id: str | None = None
    time_range: Any = None
    timezone: str | None = None
    now: datetime | None = None

    # Processing state
    step_count: int = 0
    time_range_label: str = ""
    period: ReportPeriod | None = None
    days: int = 0
    is_deep: bool = False
    goal: Goal | None = None
    cards: list[DailyCard] = field(default_factory=list)
    analysis: ProgressAnalysis | None = None
    prompt: str = ""
    raw_content: str = ""

    # Output
    report: Report | None = None
    embedding_saved: bool = False


def _check_max_steps(state: ReportGenerationState) -> int:
    """Increment step count, raise if exceeded."""
    step_count = state.step_count + 1
    if step_count > MAX_STEPS:
        raise RuntimeError(f"Graph exceeded max steps ({MAX_STEPS})")
    return step_count


class ReportGenerator:
    """Runs the report generation graph over injected adapters."""

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
        self._graph = self._build_graph()

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    async def resolve_period_node(self, state: ReportGenerationState) -> dict[str, Any]:
        step_count = _check_max_steps(state)

        label, period = resolve_period(
            state.time_range,
            now=state.now,
            timezone=state.timezone or self.settings.DEFAULT_TIMEZONE,
        )
        days = days_difference(period.start_date, period.end_date)
        deep = is_deep_analysis(days, self.settings.DEEP_ANALYSIS_MIN_DAYS)

        log_with_context(
            logger,
            logging.INFO,
            f"Resolved {label} period of {days} days",
            goal_id=state.goal_id,
            analysis="deep" if deep else "basic",
        )
        return {
            "step_count": step_count,
            "time_range_label": label,
            "period": period,
            "days": days,
            "is_deep": deep,
        }

    async def load_goal_node(self, state: ReportGenerationState) -> dict[str, Any]:
        step_count = _check_max_steps(state)

        goal = await asyncio.to_thread(self.goals.get_goal_by_id, state.goal_id)
        if goal is None:
            log_with_context(logger, logging.WARNING, "Goal not found", goal_id=state.goal_id)
            raise GoalNotFoundError(state.goal_id)

        return {"step_count": step_count, "goal": goal}

    async def analyze_progress_node(self, state: ReportGenerationState) -> dict[str, Any]:
        step_count = _check_max_steps(state)

        cards = slice_cards(state.goal.daily_cards, state.period)
        analysis = compute_progress_analysis(cards, state.period, now=state.now)

        log_with_context(
            logger,
            logging.INFO,
            f"Analyzed {analysis.total_records} cards",
            goal_id=state.goal_id,
            completion_rate=round(analysis.completion_rate, 1),
        )
        return {"step_count": step_count, "cards": cards, "analysis": analysis}

    async def build_prompt_node(self, state: ReportGenerationState) -> dict[str, Any]:
        step_count = _check_max_steps(state)
        prompt = build_progress_prompt(state.goal, state.cards, state.analysis)
        return {"step_count": step_count, "prompt": prompt}

    async def enhance_prompt_node(self, state: ReportGenerationState) -> dict[str, Any]:
        step_count = _check_max_steps(state)

        try:
            prompt = await self.retrieval.enhance(state.prompt, state.goal_id)
        except Exception as e:
            log_with_context(
                logger, logging.WARNING, f"Prompt enhancement failed: {e}", goal_id=state.goal_id
            )
            prompt = state.prompt

        return {"step_count": step_count, "prompt": prompt}

    async def generate_analysis_node(self, state: ReportGenerationState) -> dict[str, Any]:
        step_count = _check_max_steps(state)

        if state.is_deep:
            tier, max_tokens = ModelTier.LARGE, self.settings.DEEP_MAX_TOKENS
        else:
            tier, max_tokens = ModelTier.SMALL, self.settings.BASIC_MAX_TOKENS

        raw_content = await self.completion.complete(
            state.prompt,
            tier,
            system_prompt=DEFAULT_SYSTEM_PROMPT,
            temperature=self.settings.REPORT_TEMPERATURE,
            max_tokens=max_tokens,
        )
        return {"step_count": step_count, "raw_content": raw_content}

    async def persist_report_node(self, state: ReportGenerationState) -> dict[str, Any]:
        step_count = _check_max_steps(state)

        report = Report(
            goal_id=state.goal_id,
            user_id=state.user_id or state.goal.user_id,
            period=state.period,
            content=state.raw_content,
            analysis=state.analysis,
            analysis_type=AnalysisType.DEEP if state.is_deep else AnalysisType.BASIC,
            time_range=state.time_range_label,
        )
        saved = await asyncio.to_thread(self.store.save_report, report)
        return {"step_count": step_count, "report": saved}

    async def save_embedding_node(self, state: ReportGenerationState) -> dict[str, Any]:
        step_count = _check_max_steps(state)
        report = state.report

        try:
            embedding = await self.embedder.embed(report.content)
            await asyncio.to_thread(self.store.update_report_embedding, report.id, embedding)
        except Exception as e:
            log_with_context(
                logger,
                logging.WARNING,
                f"Failed to save report embedding: {e}",
                goal_id=state.goal_id,
                report_id=report.id,
            )
            return {"step_count": step_count, "embedding_saved": False}

        return {
            "step_count": step_count,
            "embedding_saved": True,
            "report": report.model_copy(update={"has_embedding": True}),
        }

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    @staticmethod
    def route_after_prompt(state: ReportGenerationState) -> str:
        return "enhance_prompt" if state.is_deep else "generate_analysis"

    @staticmethod
    def route_after_persist(state: ReportGenerationState) -> str:
        return "save_embedding" if state.is_deep else END

    def _build_graph(self):
        graph = StateGraph(ReportGenerationState)

        graph.add_node("resolve_period", self.resolve_period_node)
        graph.add_node("load_goal", self.load_goal_node)
        graph.add_node("analyze_progress", self.analyze_progress_node)
        graph.add_node("build_prompt", self.build_prompt_node)
        graph.add_node("enhance_prompt", self.enhance_prompt_node)
        graph.add_node("generate_analysis", self.generate_analysis_node)
        graph.add_node("persist_report", self.persist_report_node)
        graph.add_node("save_embedding", self.save_embedding_node)

        graph.set_entry_point("resolve_period")
        graph.add_edge("resolve_period", "load_goal")
        graph.add_edge("load_goal", "analyze_progress")
        graph.add_edge("analyze_progress", "build_prompt")
        graph.add_conditional_edges(
            "build_prompt",
            self.route_after_prompt,
            {"enhance_prompt": "enhance_prompt", "generate_analysis": "generate_analysis"},
        )
        graph.add_edge("enhance_prompt", "generate_analysis")
        graph.add_edge("generate_analysis", "persist_report")
        graph.add_conditional_edges(
            "persist_report",
            self.route_after_persist,
            {"save_embedding": "save_embedding", END: END},
        )
        graph.add_edge("save_embedding", END)

        return graph.compile()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def generate_report(
        self,
        goal_id: str,
        user_id: str | None = None,
        time_range: Any = None,
        timezone: str | None = None,
        now: datetime | None = None,
    ) -> Report:
        """
        Generate, persist and (for deep analysis) embed a progress report.

        Args:
            goal_id: Goal to analyze
            user_id: Requesting user
            time_range: "last7days", "today" or an explicit start/end range
            timezone: IANA timezone for day boundaries
            now: Reference instant (defaults to the current time)

        Returns:
            The saved report

        Raises:
            GoalNotFoundError: If the goal does not exist
            GenerationError: If completion fails after the fallback attempt
        """
        initial_state = ReportGenerationState(
            goal_id=goal_id,
            user_id=user_id,
            time_range=time_range,
            timezone=timezone,
            now=now,
        )

        final_state = await self._graph.ainvoke(initial_state)

        report = final_state.get("report")
        if report is None:
            raise RuntimeError("Report graph finished without a report")
        return report

    async def get_latest_report(self, goal_id: str, user_id: str | None = None) -> Report:
        report = await asyncio.to_thread(self.store.find_latest_report, goal_id, user_id)
        if report is None:
            raise ReportNotFoundError(goal_id=goal_id)
        return report

    async def save_report_embedding(self, report_id: str) -> Report:
        """
        Embed an already stored report.

        Raises:
            ReportNotFoundError: If the report does not exist
            EmbeddingError: If the embedding cannot be produced
        """
        report = await asyncio.to_thread(self.store.get_report, report_id)
        if report is None:
            raise ReportNotFoundError(report_id=report_id)

        embedding = await self.embedder.embed(report.content)
        await asyncio.to_thread(self.store.update_report_embedding, report_id, embedding)

        log_with_context(logger, logging.INFO, "Saved report embedding", report_id=report_id)
        return report.model_copy(update={"has_embedding": True})
