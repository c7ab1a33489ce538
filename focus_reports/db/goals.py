"""Read-only goal access."""

from typing import Protocol

from supabase import Client

from focus_reports.core.logging import get_logger
from focus_reports.core.schemas_goals import Goal
from focus_reports.db.supabase_client import get_supabase

logger = get_logger(__name__)

GOAL_COLUMNS = (
    "id, user_id, title, description, motivation, target_date, priority, "
    "daily_tasks, current_settings, daily_cards"
)


class GoalReader(Protocol):
    def get_goal_by_id(self, goal_id: str) -> Goal | None: ...


class SupabaseGoalReader:
    """Reads goals (with their daily cards) from the `goals` table."""

    def __init__(self, client: Client | None = None):
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase()
        return self._client

    def get_goal_by_id(self, goal_id: str) -> Goal | None:
        """
        Fetch a goal by id.

        Returns:
            Goal or None if it does not exist

        Raises:
            Exception: If database operation fails
        """
        try:
            response = (
                self.client.table("goals")
                .select(GOAL_COLUMNS)
                .eq("id", goal_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to get goal {goal_id}: {e}")
            raise

        if not response.data:
            return None
        return Goal.model_validate(response.data[0])
