"""API endpoints for progress reports and their memos."""

import asyncio
from typing import Any, Awaitable, TypeVar

from fastapi import APIRouter, Depends, Query

from focus_reports.api.dependencies import get_memo_pipeline, get_report_generator
from focus_reports.core.config import get_settings
from focus_reports.core.errors import GenerationTimeoutError, ReportPipelineError
from focus_reports.core.logging import get_logger
from focus_reports.core.memo_pipeline import MemoPipeline, next_available_phase
from focus_reports.core.schemas_memos import MemoCreate, MemoListResponse, MemoPhase, MemoUpdate
from focus_reports.core.schemas_reports import GenerateReportRequest, ReportResponse
from focus_reports.graphs.generate_report_graph import ReportGenerator

logger = get_logger(__name__)

router = APIRouter()

T = TypeVar("T")


def _ok(data: Any) -> dict:
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json", by_alias=True)
    return {"success": True, "data": data}


async def _with_timeout(awaitable: Awaitable[T]) -> T:
    """Bound a completion or embedding call by REQUEST_TIMEOUT_SECONDS."""
    timeout = get_settings().REQUEST_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning(f"Provider call timed out after {timeout}s")
        raise GenerationTimeoutError(timeout) from e


@router.post("/{goal_id}")
async def generate_report(
    goal_id: str,
    request: GenerateReportRequest | None = None,
    generator: ReportGenerator = Depends(get_report_generator),
) -> dict:
    """
    Generate a progress report for a goal.

    Args:
        goal_id: Goal id
        request: Time range selector, optional user id and timezone

    Returns:
        Envelope with the formatted report

    Raises:
        404 GOAL_NOT_FOUND, 500 GENERATION_FAILED, 504 GENERATION_TIMEOUT
    """
    request = request or GenerateReportRequest()

    try:
        report = await _with_timeout(
            generator.generate_report(
                goal_id,
                user_id=request.user_id,
                time_range=request.time_range,
                timezone=request.timezone,
            )
        )
        return _ok(ReportResponse.from_report(report))

    except ReportPipelineError:
        raise
    except Exception as e:
        logger.exception(f"Failed to generate report for goal {goal_id}")
        raise ReportPipelineError(f"Failed to generate AI report: {e}") from e


@router.get("/{goal_id}/latest")
async def get_latest_report(
    goal_id: str,
    user_id: str | None = Query(None, alias="userId", description="Restrict to this user"),
    generator: ReportGenerator = Depends(get_report_generator),
) -> dict:
    """Most recent report for a goal."""
    try:
        report = await generator.get_latest_report(goal_id, user_id)
        return _ok(ReportResponse.from_report(report))

    except ReportPipelineError:
        raise
    except Exception as e:
        logger.exception(f"Failed to load latest report for goal {goal_id}")
        raise ReportPipelineError("Failed to retrieve latest report") from e


@router.post("/{report_id}/embedding")
async def save_report_embedding(
    report_id: str,
    generator: ReportGenerator = Depends(get_report_generator),
) -> dict:
    """Embed an existing report for future context retrieval."""
    try:
        report = await _with_timeout(generator.save_report_embedding(report_id))
        return _ok({"reportId": report.id, "hasEmbedding": report.has_embedding})

    except ReportPipelineError:
        raise
    except Exception as e:
        logger.exception(f"Failed to save embedding for report {report_id}")
        raise ReportPipelineError("Failed to save report embedding") from e


@router.post("/{report_id}/memos")
async def add_memo(
    report_id: str,
    body: MemoCreate,
    memos: MemoPipeline = Depends(get_memo_pipeline),
) -> dict:
    """Create or replace the memo for a phase."""
    try:
        memo = await _with_timeout(memos.add_or_update_memo(report_id, body.phase, body.content))
        return _ok(memo)

    except ReportPipelineError:
        raise
    except Exception as e:
        logger.exception(f"Failed to add memo to report {report_id}")
        raise ReportPipelineError("Failed to add memo") from e


@router.patch("/{report_id}/memos/{phase}")
async def update_memo(
    report_id: str,
    phase: MemoPhase,
    body: MemoUpdate,
    memos: MemoPipeline = Depends(get_memo_pipeline),
) -> dict:
    """Replace a phase's memo content."""
    try:
        memo = await _with_timeout(memos.add_or_update_memo(report_id, phase, body.content))
        return _ok(memo)

    except ReportPipelineError:
        raise
    except Exception as e:
        logger.exception(f"Failed to update {phase.value} memo on report {report_id}")
        raise ReportPipelineError("Failed to update memo") from e


@router.post("/{report_id}/memos/suggest")
async def suggest_memo(
    report_id: str,
    memos: MemoPipeline = Depends(get_memo_pipeline),
) -> dict:
    """Generate the AI draft memo from the original memo."""
    try:
        memo = await _with_timeout(memos.generate_ai_draft(report_id))
        return _ok(memo)

    except ReportPipelineError:
        raise
    except Exception as e:
        logger.exception(f"Failed to generate AI draft for report {report_id}")
        raise ReportPipelineError("Failed to generate AI draft") from e


@router.post("/{report_id}/memos/next-week-plan")
async def suggest_next_week_plan(
    report_id: str,
    memos: MemoPipeline = Depends(get_memo_pipeline),
) -> dict:
    """Generate next week's plan from the existing reflections."""
    try:
        memo = await _with_timeout(memos.generate_next_week_plan(report_id))
        return _ok(memo)

    except ReportPipelineError:
        raise
    except Exception as e:
        logger.exception(f"Failed to generate next week plan for report {report_id}")
        raise ReportPipelineError("Failed to generate next week plan") from e


@router.get("/{report_id}/memos")
async def list_memos(
    report_id: str,
    memos: MemoPipeline = Depends(get_memo_pipeline),
) -> dict:
    """List a report's memos, oldest first, with the next phase to fill."""
    try:
        items = await memos.list_memos(report_id)
        return _ok(
            MemoListResponse(
                report_id=report_id,
                memos=items,
                count=len(items),
                next_phase=next_available_phase(items),
            )
        )

    except ReportPipelineError:
        raise
    except Exception as e:
        logger.exception(f"Failed to list memos for report {report_id}")
        raise ReportPipelineError("Failed to list memos") from e
