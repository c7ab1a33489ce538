"""Report and memo persistence."""

import logging
from datetime import datetime, timezone
from typing import Any, Protocol

from supabase import Client

from focus_reports.core.embeddings import EmbeddingVector
from focus_reports.core.logging import get_logger, log_with_context
from focus_reports.core.schemas_memos import Memo, MemoPhase
from focus_reports.core.schemas_reports import (
    AnalysisType,
    ProgressAnalysis,
    Report,
    ReportPeriod,
)
from focus_reports.db.supabase_client import get_supabase

logger = get_logger(__name__)

REPORT_COLUMNS = (
    "id, goal_id, user_id, period_start, period_end, content, analysis, "
    "analysis_type, time_range, has_embedding, created_at, updated_at"
)
MEMO_COLUMNS = "id, report_id, phase, content, has_embedding, timestamp"


def _utc_now_iso() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(timezone.utc).isoformat()


def report_to_row(report: Report) -> dict[str, Any]:
    """Serialize a report for insertion. Embeddings are written separately."""
    return {
        "goal_id": report.goal_id,
        "user_id": report.user_id,
        "period_start": report.period.start_date.isoformat(),
        "period_end": report.period.end_date.isoformat(),
        "content": report.content,
        "analysis": report.analysis.model_dump(mode="json", by_alias=True),
        "analysis_type": report.analysis_type.value,
        "time_range": report.time_range,
    }


def row_to_report(row: dict[str, Any]) -> Report:
    return Report(
        id=str(row["id"]),
        goal_id=str(row["goal_id"]),
        user_id=row.get("user_id"),
        period=ReportPeriod(start_date=row["period_start"], end_date=row["period_end"]),
        content=row.get("content") or "",
        analysis=ProgressAnalysis.model_validate(row["analysis"]),
        analysis_type=AnalysisType(row.get("analysis_type") or AnalysisType.BASIC.value),
        time_range=row.get("time_range") or "last7days",
        has_embedding=bool(row.get("has_embedding")),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def row_to_memo(row: dict[str, Any]) -> Memo:
    return Memo(
        id=str(row["id"]) if row.get("id") else None,
        report_id=str(row["report_id"]) if row.get("report_id") else None,
        phase=MemoPhase(row["phase"]),
        content=row.get("content") or "",
        timestamp=row["timestamp"],
        has_embedding=bool(row.get("has_embedding")),
    )


class ReportStore(Protocol):
    def save_report(self, report: Report) -> Report: ...

    def get_report(self, report_id: str) -> Report | None: ...

    def find_latest_report(self, goal_id: str, user_id: str | None = None) -> Report | None: ...

    def find_recent_by_goal(self, goal_id: str, limit: int) -> list[Report]: ...

    def match_reports(
        self,
        query_embedding: EmbeddingVector,
        goal_id: str,
        match_count: int,
        candidate_pool: int,
    ) -> list[Report]: ...

    def update_report_embedding(self, report_id: str, embedding: EmbeddingVector) -> None: ...

    def touch_report(self, report_id: str) -> None: ...

    def upsert_memo(
        self,
        report_id: str,
        phase: MemoPhase,
        content: str,
        embedding: EmbeddingVector | None = None,
    ) -> Memo: ...

    def list_memos(self, report_id: str) -> list[Memo]: ...


class SupabaseReportStore:
    """
    Reports live in `reports`; memos in `report_memos`, unique on (report_id, phase).

    pgvector similarity search goes through the `match_reports` SQL function.
    """

    def __init__(self, client: Client | None = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    def save_report(self, report: Report) -> Report:
        """
        Insert a new report.

        Returns:
            The stored report, with id and timestamps

        Raises:
            Exception: If database operation fails
        """
        try:
            response = self.client.table("reports").insert(report_to_row(report)).execute()
            if not response.data:
                raise ValueError("No data returned from save_report")

            saved = row_to_report(response.data[0])
            log_with_context(
                logger,
                logging.INFO,
                f"Saved {saved.analysis_type.value} report",
                goal_id=saved.goal_id,
                report_id=saved.id,
            )
            return saved

        except Exception as e:
            logger.error(f"Failed to save report for goal {report.goal_id}: {e}")
            raise

    def get_report(self, report_id: str) -> Report | None:
        try:
            response = (
                self.client.table("reports")
                .select(REPORT_COLUMNS)
                .eq("id", report_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to get report {report_id}: {e}")
            raise

        if not response.data:
            return None
        return row_to_report(response.data[0])

    def find_latest_report(self, goal_id: str, user_id: str | None = None) -> Report | None:
        try:
            query = self.client.table("reports").select(REPORT_COLUMNS).eq("goal_id", goal_id)
            if user_id:
                query = query.eq("user_id", user_id)
            response = query.order("created_at", desc=True).limit(1).execute()
        except Exception as e:
            logger.error(f"Failed to find latest report for goal {goal_id}: {e}")
            raise

        if not response.data:
            return None
        return row_to_report(response.data[0])

    def find_recent_by_goal(self, goal_id: str, limit: int) -> list[Report]:
        """Most recent reports for a goal that have a stored embedding."""
        try:
            response = (
                self.client.table("reports")
                .select(REPORT_COLUMNS)
                .eq("goal_id", goal_id)
                .eq("has_embedding", True)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to list recent reports for goal {goal_id}: {e}")
            raise

        return [row_to_report(row) for row in response.data or []]

    def match_reports(
        self,
        query_embedding: EmbeddingVector,
        goal_id: str,
        match_count: int,
        candidate_pool: int,
    ) -> list[Report]:
        """
        Vector similarity search over a goal's embedded reports.

        Returns:
            Reports ordered by cosine similarity, most similar first
        """
        try:
            response = self.client.rpc(
                "match_reports",
                {
                    "query_embedding": query_embedding.to_list(),
                    "filter_goal_id": goal_id,
                    "match_count": match_count,
                    "candidate_pool": candidate_pool,
                },
            ).execute()
        except Exception as e:
            logger.error(f"Failed to match reports for goal {goal_id}: {e}")
            raise

        if not response.data:
            log_with_context(logger, logging.INFO, "No matching reports found", goal_id=goal_id)
            return []

        log_with_context(
            logger, logging.INFO, f"Found {len(response.data)} matching reports", goal_id=goal_id
        )
        return [row_to_report(row) for row in response.data]

    def update_report_embedding(self, report_id: str, embedding: EmbeddingVector) -> None:
        try:
            self.client.table("reports").update(
                {
                    "embedding": embedding.to_list(),
                    "has_embedding": True,
                    "updated_at": _utc_now_iso(),
                }
            ).eq("id", report_id).execute()
        except Exception as e:
            logger.error(f"Failed to update embedding for report {report_id}: {e}")
            raise

    def touch_report(self, report_id: str) -> None:
        try:
            self.client.table("reports").update({"updated_at": _utc_now_iso()}).eq(
                "id", report_id
            ).execute()
        except Exception as e:
            logger.error(f"Failed to touch report {report_id}: {e}")
            raise

    def upsert_memo(
        self,
        report_id: str,
        phase: MemoPhase,
        content: str,
        embedding: EmbeddingVector | None = None,
    ) -> Memo:
        """
        Create or replace the memo for (report_id, phase) in one statement.

        The embedding column is left untouched when no embedding is given.

        Raises:
            Exception: If database operation fails
        """
        payload: dict[str, Any] = {
            "report_id": report_id,
            "phase": phase.value,
            "content": content,
            "timestamp": _utc_now_iso(),
        }
        if embedding is not None:
            payload["embedding"] = embedding.to_list()
            payload["has_embedding"] = True

        try:
            response = (
                self.client.table("report_memos")
                .upsert(payload, on_conflict="report_id,phase")
                .execute()
            )
            if not response.data:
                raise ValueError("No data returned from upsert_memo")

            log_with_context(
                logger, logging.INFO, f"Upserted {phase.value} memo", report_id=report_id
            )
            return row_to_memo(response.data[0])

        except Exception as e:
            logger.error(f"Failed to upsert {phase.value} memo for report {report_id}: {e}")
            raise

    def list_memos(self, report_id: str) -> list[Memo]:
        """List a report's memos, oldest first."""
        try:
            response = (
                self.client.table("report_memos")
                .select(MEMO_COLUMNS)
                .eq("report_id", report_id)
                .order("timestamp", desc=False)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to list memos for report {report_id}: {e}")
            raise

        return [row_to_memo(row) for row in response.data or []]
