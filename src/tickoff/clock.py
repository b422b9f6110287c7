"""Time and identity sources.

The store never reads the wall clock directly; it asks a ``Clock`` for the
current instant and an ``IdGenerator`` for fresh task ids, so tests can swap
in deterministic versions.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class IdGenerator(Protocol):
    def next_id(self) -> int: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class TimestampIds:
    """Millisecond-timestamp ids that never repeat within a process.

    Two calls inside the same millisecond would otherwise collide, so each id
    is at least one greater than the previous one.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._last = 0

    def next_id(self) -> int:
        candidate = int(self._clock.now().timestamp() * 1000)
        self._last = max(candidate, self._last + 1)
        return self._last


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime, step: timedelta | None = None) -> None:
        self._now = start
        self._step = step or timedelta(0)

    def now(self) -> datetime:
        current = self._now
        self._now = self._now + self._step
        return current

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta


class SequentialIds:
    """Hands out ids from a fixed starting point, or from an explicit sequence."""

    def __init__(self, start: int = 1, sequence: Iterable[int] | None = None) -> None:
        self._next = start
        self._sequence = iter(sequence) if sequence is not None else None

    def next_id(self) -> int:
        if self._sequence is not None:
            return next(self._sequence)
        value = self._next
        self._next += 1
        return value
