"""Data models for tickoff."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, field_validator, model_validator


def as_utc(moment: datetime) -> datetime:
    # Naive timestamps in old data are taken to be UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class Filter(str, Enum):
    """Which tasks the list view shows."""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


class Task(BaseModel):
    """A single task.

    Field names match the persisted JSON layout, so ``model_dump()`` is the
    stored record.
    """

    id: int
    text: str
    completed: bool = False
    createdAt: str
    updatedAt: str

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("task text must not be blank")
        return value

    @field_validator("createdAt", "updatedAt")
    @classmethod
    def iso_timestamp(cls, value: str) -> str:
        # Raises ValueError for anything that isn't ISO-8601
        datetime.fromisoformat(value)
        return value

    @model_validator(mode="after")
    def updated_not_before_created(self) -> Task:
        created = as_utc(datetime.fromisoformat(self.createdAt))
        updated = as_utc(datetime.fromisoformat(self.updatedAt))
        if updated < created:
            raise ValueError("updatedAt must not be earlier than createdAt")
        return self

    def matches(self, filter: Filter) -> bool:
        """Check whether this task is visible under the given filter."""
        if filter is Filter.ACTIVE:
            return not self.completed
        if filter is Filter.COMPLETED:
            return self.completed
        return True


@dataclass(frozen=True)
class TaskSnapshot:
    """Read-only view of the store: copies of the tasks plus the edit cursor."""

    tasks: tuple[Task, ...] = ()
    editing_id: int | None = None

    def __len__(self) -> int:
        return len(self.tasks)

    def get(self, task_id: int) -> Task | None:
        """Get a task by ID."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    @property
    def completed_count(self) -> int:
        return sum(1 for task in self.tasks if task.completed)
