"""Pydantic schemas for goals and their daily cards (read-only inputs)."""

from datetime import date, datetime, time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting both camelCase (stored JSON) and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GoalSettings(CamelModel):
    daily_task: str = ""
    daily_reward: str = ""


class CardCompletion(CamelModel):
    daily_task: bool = False
    daily_reward: bool = False


class ProgressRecord(CamelModel):
    content: str = ""
    created_at: datetime | None = None


class DailyCard(CamelModel):
    """One calendar day's completion and notes record for a goal."""

    date: datetime
    completed: CardCompletion = Field(default_factory=CardCompletion)
    task_completions: dict[str, bool] = Field(default_factory=dict)
    records: list[ProgressRecord] = Field(default_factory=list)

    @field_validator("date", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        # Cards are often stored as bare YYYY-MM-DD dates
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime.combine(value, time.min)
        if isinstance(value, str):
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        return value

    @field_validator("task_completions", mode="before")
    @classmethod
    def _coerce_completions(cls, value: Any) -> Any:
        return value or {}

    @field_validator("records", mode="before")
    @classmethod
    def _coerce_records(cls, value: Any) -> Any:
        return value or []


class Goal(CamelModel):
    id: str
    user_id: str | None = None
    title: str
    description: str = ""
    motivation: str = ""
    target_date: datetime | None = None
    priority: int | str | None = None
    daily_tasks: list[str] = Field(default_factory=list)
    current_settings: GoalSettings | None = None
    daily_cards: list[DailyCard] = Field(default_factory=list)

    @field_validator("daily_tasks", "daily_cards", mode="before")
    @classmethod
    def _coerce_lists(cls, value: Any) -> Any:
        return value or []

    @property
    def current_task(self) -> str | None:
        if self.current_settings and self.current_settings.daily_task:
            return self.current_settings.daily_task
        return None
