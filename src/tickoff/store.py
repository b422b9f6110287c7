"""The task store: the one owner of the task list and the edit cursor.

Every mutation is followed by a save attempt. A failed save is logged and
remembered in ``last_save_error`` but never raised, so the in-memory list
stays the source of truth and the user can keep working.
"""

from __future__ import annotations

import logging
from datetime import datetime

from tickoff.clock import Clock, IdGenerator, SystemClock, TimestampIds
from tickoff.models import Task, TaskSnapshot, as_utc
from tickoff.storage import CorruptDataError, PersistenceError, TaskRepository

logger = logging.getLogger(__name__)


class TaskStore:
    """Authoritative in-memory task list, kept in sync with a repository."""

    def __init__(
        self,
        repository: TaskRepository,
        clock: Clock | None = None,
        ids: IdGenerator | None = None,
    ) -> None:
        self._repository = repository
        self._clock = clock or SystemClock()
        self._ids = ids or TimestampIds(self._clock)
        self._tasks: list[Task] = []
        self._editing_id: int | None = None
        self.last_save_error: PersistenceError | None = None

    @property
    def editing_id(self) -> int | None:
        return self._editing_id

    @property
    def completed_count(self) -> int:
        return sum(1 for task in self._tasks if task.completed)

    def load(self) -> None:
        """Replace the in-memory list with what the repository holds.

        Absent, unreadable and malformed data all leave an empty list.
        """
        self._editing_id = None
        try:
            tasks = self._repository.load()
        except CorruptDataError as e:
            logger.warning("Ignoring malformed task list: %s", e)
            tasks = None
        except PersistenceError as e:
            logger.warning("Could not load task list, starting empty: %s", e)
            tasks = None

        self._tasks = tasks or []
        logger.info("Loaded %d task(s)", len(self._tasks))

    def snapshot(self) -> TaskSnapshot:
        """Copies of the current tasks plus the edit cursor."""
        return TaskSnapshot(
            tasks=tuple(task.model_copy() for task in self._tasks),
            editing_id=self._editing_id,
        )

    def get(self, task_id: int) -> Task | None:
        """Get a copy of a task by ID."""
        task = self._find(task_id)
        return task.model_copy() if task else None

    def add(self, text: str) -> Task | None:
        """Add a task, or commit the pending edit if one is in progress.

        Blank text is ignored and leaves the edit cursor alone.

        Returns:
            A copy of the created or updated task, or None if nothing changed.
        """
        text = text.strip()
        if not text:
            return None

        if self._editing_id is not None:
            task = self._find(self._editing_id)
            self._editing_id = None
            if task is not None:
                task.text = text
                self._touch(task)
            self._save()
            return task.model_copy() if task else None

        now = self._now()
        task = Task(
            id=self._fresh_id(),
            text=text,
            completed=False,
            createdAt=now,
            updatedAt=now,
        )
        self._tasks.append(task)
        self._save()
        return task.model_copy()

    def toggle(self, task_id: int) -> Task | None:
        """Flip a task between active and completed."""
        task = self._find(task_id)
        if task is None:
            return None

        task.completed = not task.completed
        self._touch(task)
        self._save()
        return task.model_copy()

    def begin_edit(self, task_id: int) -> Task | None:
        """Point the edit cursor at a task so the next ``add`` updates it."""
        task = self._find(task_id)
        if task is None:
            return None

        self._editing_id = task_id
        return task.model_copy()

    def cancel_edit(self) -> None:
        self._editing_id = None

    def delete(self, task_id: int) -> bool:
        """Remove a task. Returns True if it existed."""
        task = self._find(task_id)
        if task is None:
            return False

        self._tasks.remove(task)
        if self._editing_id == task_id:
            self._editing_id = None
        self._save()
        return True

    def clear_completed(self) -> int:
        """Remove every completed task. Returns how many were removed."""
        remaining = [task for task in self._tasks if not task.completed]
        removed = len(self._tasks) - len(remaining)
        if removed == 0:
            return 0

        self._tasks = remaining
        if self._editing_id is not None and self._find(self._editing_id) is None:
            self._editing_id = None
        self._save()
        return removed

    def _find(self, task_id: int) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def _fresh_id(self) -> int:
        existing = {task.id for task in self._tasks}
        candidate = self._ids.next_id()
        while candidate in existing:
            candidate = self._ids.next_id()
        return candidate

    def _now(self) -> str:
        return self._clock.now().isoformat()

    def _touch(self, task: Task) -> None:
        now = self._clock.now()
        if as_utc(now) < as_utc(datetime.fromisoformat(task.createdAt)):
            task.updatedAt = task.createdAt
        else:
            task.updatedAt = now.isoformat()

    def _save(self) -> None:
        try:
            self._repository.save(self._tasks)
        except PersistenceError as e:
            logger.warning("Could not save task list, keeping changes in memory: %s", e)
            self.last_save_error = e
        else:
            self.last_save_error = None
