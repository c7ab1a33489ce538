"""Pydantic schemas for report memos."""

from datetime import datetime
from enum import Enum

from pydantic import Field

from focus_reports.core.schemas_goals import CamelModel


class MemoPhase(str, Enum):
    """Memo phases, declared in workflow order."""

    ORIGINAL_MEMO = "originalMemo"
    AI_DRAFT = "aiDraft"
    FINAL_MEMO = "finalMemo"
    NEXT_WEEK_PLAN = "nextWeekPlan"


MEMO_PHASE_ORDER: list[MemoPhase] = list(MemoPhase)


class Memo(CamelModel):
    id: str | None = None
    report_id: str | None = None
    phase: MemoPhase
    content: str
    timestamp: datetime
    has_embedding: bool = False


class MemoCreate(CamelModel):
    content: str = ""
    phase: MemoPhase = MemoPhase.ORIGINAL_MEMO


class MemoUpdate(CamelModel):
    content: str = ""


class MemoListResponse(CamelModel):
    report_id: str
    memos: list[Memo] = Field(default_factory=list)
    count: int
    next_phase: MemoPhase | None = None
