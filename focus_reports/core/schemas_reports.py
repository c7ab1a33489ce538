"""Pydantic schemas for progress reports."""

from datetime import datetime
from enum import Enum

from pydantic import Field, model_validator

from focus_reports.core.schemas_goals import CamelModel
from focus_reports.core.schemas_memos import Memo


class AnalysisType(str, Enum):
    BASIC = "basic"
    DEEP = "deep"


class TimeRangePreset(str, Enum):
    LAST_7_DAYS = "last7days"
    TODAY = "today"
    CUSTOM = "custom"


class ExplicitRange(CamelModel):
    """Caller-supplied date range; values are parsed leniently downstream."""

    start_date: str | None = None
    end_date: str | None = None


class ReportPeriod(CamelModel):
    start_date: datetime
    end_date: datetime

    @model_validator(mode="after")
    def _check_order(self) -> "ReportPeriod":
        if self.start_date > self.end_date:
            raise ValueError("period start_date must not be after end_date")
        return self


class AnalysisWindow(CamelModel):
    start: datetime
    end: datetime
    days: int


class ProgressAnalysis(CamelModel):
    total_records: int = Field(..., ge=0)
    completed_tasks: int = Field(..., ge=0)
    completion_rate: float = Field(..., ge=0.0, le=100.0)
    last_update: datetime
    time_range: AnalysisWindow


class ReportSection(CamelModel):
    title: str
    content: str


class FormattedReportContent(CamelModel):
    summary: str
    details: str
    sections: list[ReportSection] = Field(default_factory=list)


class Report(CamelModel):
    id: str | None = None
    goal_id: str
    user_id: str | None = None
    period: ReportPeriod
    content: str
    analysis: ProgressAnalysis
    analysis_type: AnalysisType
    time_range: str = TimeRangePreset.LAST_7_DAYS.value
    has_embedding: bool = False
    memos: list[Memo] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ============================================================================
# API request / response models
# ============================================================================


class GenerateReportRequest(CamelModel):
    time_range: str | ExplicitRange | None = None
    user_id: str | None = None
    timezone: str | None = None


class ReportDateRange(CamelModel):
    start: datetime
    end: datetime


class ReportResponse(CamelModel):
    id: str | None
    goal_id: str
    content: FormattedReportContent
    generated_at: datetime | None
    date_range: ReportDateRange
    analysis: ProgressAnalysis
    analysis_type: AnalysisType
    time_range: str
    has_embedding: bool

    @classmethod
    def from_report(cls, report: Report) -> "ReportResponse":
        from focus_reports.core.report_format import format_report_content

        return cls(
            id=report.id,
            goal_id=report.goal_id,
            content=format_report_content(report.content),
            generated_at=report.created_at,
            date_range=ReportDateRange(start=report.period.start_date, end=report.period.end_date),
            analysis=report.analysis,
            analysis_type=report.analysis_type,
            time_range=report.time_range,
            has_embedding=report.has_embedding,
        )
