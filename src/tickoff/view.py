"""View projection: what the list should show for a given snapshot and filter.

Everything here is a pure function of its arguments, so it is safe to call on
every render.
"""

from __future__ import annotations

from dataclasses import dataclass

from tickoff.models import Filter, Task, TaskSnapshot

EMPTY_STATE_MESSAGES: dict[Filter, str] = {
    Filter.ALL: "No tasks yet. Add one above to get started! 🚀",
    Filter.ACTIVE: "No active tasks. Great job! 🎉",
    Filter.COMPLETED: "No completed tasks yet. Keep working! 💪",
}

ADD_LABEL = "Add Task"
UPDATE_LABEL = "Update Task"


@dataclass(frozen=True)
class Summary:
    """Counts shown under the list."""

    total: int
    active: int
    completed: int
    label: str


@dataclass(frozen=True)
class TaskRow:
    """One rendered line of the list."""

    id: int
    text: str
    completed: bool
    editing: bool
    can_edit: bool
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class Confirmation:
    """A destructive action waiting for the user to say yes."""

    action: str
    message: str
    task_id: int | None = None
    count: int = 0


@dataclass(frozen=True)
class ViewModel:
    """Everything a rendering surface needs to draw the list."""

    filter: Filter
    rows: tuple[TaskRow, ...]
    summary: Summary
    show_clear_completed: bool
    empty_message: str | None
    submit_label: str
    input_text: str = ""
    confirmation: Confirmation | None = None
    warning: str | None = None


def filtered_tasks(snapshot: TaskSnapshot, filter: Filter) -> tuple[Task, ...]:
    """Tasks visible under ``filter``, in their original order."""
    return tuple(task for task in snapshot.tasks if task.matches(filter))


def empty_state_message(filter: Filter) -> str:
    return EMPTY_STATE_MESSAGES[filter]


def summary(snapshot: TaskSnapshot) -> Summary:
    """Count tasks and build the "N tasks remaining" label."""
    total = len(snapshot.tasks)
    completed = snapshot.completed_count
    active = total - completed

    if total == 0:
        label = "No tasks"
    elif active == 0:
        label = "All tasks completed! 🎉"
    elif active == 1:
        label = "1 task remaining"
    else:
        label = f"{active} tasks remaining"

    return Summary(total=total, active=active, completed=completed, label=label)


def should_show_clear_completed(snapshot: TaskSnapshot) -> bool:
    return snapshot.completed_count > 0


def project(
    snapshot: TaskSnapshot,
    filter: Filter = Filter.ALL,
    input_text: str = "",
    confirmation: Confirmation | None = None,
    warning: str | None = None,
) -> ViewModel:
    """Build the complete view model for one render."""
    visible = filtered_tasks(snapshot, filter)
    rows = tuple(
        TaskRow(
            id=task.id,
            text=task.text,
            completed=task.completed,
            editing=task.id == snapshot.editing_id,
            can_edit=not task.completed,
            created_at=task.createdAt,
            updated_at=task.updatedAt,
        )
        for task in visible
    )

    return ViewModel(
        filter=filter,
        rows=rows,
        summary=summary(snapshot),
        show_clear_completed=should_show_clear_completed(snapshot),
        empty_message=None if rows else empty_state_message(filter),
        submit_label=UPDATE_LABEL if snapshot.editing_id is not None else ADD_LABEL,
        input_text=input_text,
        confirmation=confirmation,
        warning=warning,
    )
