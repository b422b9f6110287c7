"""Intent dispatch: turns user intents into store calls and re-renders.

The input layer reduces raw events to the intents below. Destructive
actions are two-phase: ``RequestDelete``/``RequestClearCompleted`` only
record a pending ``Confirmation``, and nothing is removed until a ``Confirm``
intent arrives.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from tickoff.models import Filter
from tickoff.store import TaskStore
from tickoff.view import Confirmation, ViewModel, project

logger = logging.getLogger(__name__)

DELETE_MESSAGE = "Are you sure you want to delete this task?"


@dataclass(frozen=True)
class SubmitText:
    text: str


@dataclass(frozen=True)
class Toggle:
    task_id: int


@dataclass(frozen=True)
class BeginEdit:
    task_id: int


@dataclass(frozen=True)
class CancelEdit:
    pass


@dataclass(frozen=True)
class RequestDelete:
    task_id: int


@dataclass(frozen=True)
class RequestClearCompleted:
    pass


@dataclass(frozen=True)
class Confirm:
    pass


@dataclass(frozen=True)
class Dismiss:
    pass


@dataclass(frozen=True)
class SelectFilter:
    filter: Filter


Intent = (
    SubmitText
    | Toggle
    | BeginEdit
    | CancelEdit
    | RequestDelete
    | RequestClearCompleted
    | Confirm
    | Dismiss
    | SelectFilter
)

Renderer = Callable[[ViewModel], None]


def clear_completed_message(count: int) -> str:
    return f"Delete {count} completed task{'s' if count > 1 else ''}?"


class IntentDispatcher:
    """Applies intents to a store in arrival order and renders after each."""

    def __init__(self, store: TaskStore, renderer: Renderer | None = None) -> None:
        self.store = store
        self.renderer = renderer
        self.filter = Filter.ALL
        self.input_text = ""
        self.pending: Confirmation | None = None

    def dispatch(self, intent: Intent) -> ViewModel:
        """Handle one intent, then project and render the new view."""
        logger.debug("Dispatching %r", intent)

        if isinstance(intent, SubmitText):
            if self.store.add(intent.text) is not None:
                self.input_text = ""
            else:
                self.input_text = intent.text
        elif isinstance(intent, Toggle):
            self.store.toggle(intent.task_id)
        elif isinstance(intent, BeginEdit):
            task = self.store.begin_edit(intent.task_id)
            if task is not None:
                self.input_text = task.text
        elif isinstance(intent, CancelEdit):
            self.store.cancel_edit()
            self.input_text = ""
        elif isinstance(intent, RequestDelete):
            if self.store.get(intent.task_id) is not None:
                self.pending = Confirmation(
                    action="delete", message=DELETE_MESSAGE, task_id=intent.task_id
                )
        elif isinstance(intent, RequestClearCompleted):
            confirmation = self._clear_confirmation(self.store.completed_count)
            if confirmation is not None:
                self.pending = confirmation
        elif isinstance(intent, Confirm):
            self._confirm()
        elif isinstance(intent, Dismiss):
            self.pending = None
        elif isinstance(intent, SelectFilter):
            self.filter = intent.filter
        else:
            raise TypeError(f"Unknown intent: {intent!r}")

        return self.refresh()

    def refresh(self) -> ViewModel:
        """Project the current state and hand it to the renderer."""
        error = self.store.last_save_error
        view = project(
            self.store.snapshot(),
            self.filter,
            input_text=self.input_text,
            confirmation=self.pending,
            warning=f"Changes not saved: {error}" if error else None,
        )
        if self.renderer is not None:
            self.renderer(view)
        return view

    def _confirm(self) -> None:
        pending, self.pending = self.pending, None
        if pending is None:
            return

        if pending.action == "delete" and pending.task_id is not None:
            was_editing = self.store.editing_id == pending.task_id
            self.store.delete(pending.task_id)
            if was_editing:
                self.input_text = ""
        elif pending.action == "clear_completed":
            count = self.store.completed_count
            if count != pending.count:
                # The list changed since the question was asked; ask again
                logger.debug("Completed count moved from %d to %d", pending.count, count)
                self.pending = self._clear_confirmation(count)
                return
            self.store.clear_completed()

    @staticmethod
    def _clear_confirmation(count: int) -> Confirmation | None:
        if count == 0:
            return None
        return Confirmation(
            action="clear_completed",
            message=clear_completed_message(count),
            count=count,
        )


class CommandError(ValueError):
    """A shell command line could not be turned into an intent."""


ID_COMMANDS: dict[str, Callable[[int], Intent]] = {
    "toggle": Toggle,
    "done": Toggle,
    "edit": BeginEdit,
    "delete": RequestDelete,
    "rm": RequestDelete,
}

BARE_COMMANDS: dict[str, Callable[[], Intent]] = {
    "cancel": CancelEdit,
    "esc": CancelEdit,
    "clear": RequestClearCompleted,
    "yes": Confirm,
    "y": Confirm,
    "no": Dismiss,
    "n": Dismiss,
}

FILTER_NAMES = frozenset(f.value for f in Filter)


def parse_command(line: str) -> Intent | None:
    """Parse one interactive shell line into an intent.

    Returns None for blank lines. A line only counts as a command when its
    arguments fit that command, so "clear the garage" or "done laundry" are
    submitted as task text like anything else.

    Raises:
        CommandError: A command that needs an argument was given none.
    """
    parts = line.split()
    if not parts:
        return None

    command, args = parts[0].lower(), parts[1:]

    if command == "add":
        return SubmitText(line.strip()[len(parts[0]) :].strip())

    if command in ID_COMMANDS:
        if not args:
            raise CommandError(f"usage: {command} <id>")
        task_id = _task_id(args)
        if task_id is not None:
            return ID_COMMANDS[command](task_id)
    elif command == "filter":
        if not args:
            raise CommandError("usage: filter all|active|completed")
        if len(args) == 1 and args[0].lower() in FILTER_NAMES:
            return SelectFilter(Filter(args[0].lower()))
    elif command in BARE_COMMANDS and not args:
        return BARE_COMMANDS[command]()

    return SubmitText(line)


def _task_id(args: list[str]) -> int | None:
    if len(args) != 1:
        return None
    try:
        return int(args[0])
    except ValueError:
        return None
