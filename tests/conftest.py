"""Shared fixtures for tickoff tests."""

from __future__ import annotations

import os
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from tickoff.clock import FixedClock, SequentialIds
from tickoff.storage import MemoryKeyValueStore, TaskRepository
from tickoff.store import TaskStore

START = datetime(2025, 1, 10, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_project(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary project directory and change to it."""
    original_dir = os.getcwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(original_dir)


@pytest.fixture
def clock() -> FixedClock:
    """A clock that moves one second per reading."""
    return FixedClock(START, step=timedelta(seconds=1))


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def repository(kv: MemoryKeyValueStore) -> TaskRepository:
    return TaskRepository(kv)


@pytest.fixture
def store(repository: TaskRepository, clock: FixedClock) -> TaskStore:
    """An empty, loaded store with deterministic ids starting at 1."""
    task_store = TaskStore(repository, clock=clock, ids=SequentialIds(start=1))
    task_store.load()
    return task_store


@pytest.fixture
def sample_tasks_data() -> list[dict]:
    """Stored task records as written by the browser version."""
    return [
        {
            "id": 1736503200000,
            "text": "Buy milk",
            "completed": False,
            "createdAt": "2025-01-10T10:00:00.000Z",
            "updatedAt": "2025-01-10T10:00:00.000Z",
        },
        {
            "id": 1736503260000,
            "text": "Walk the dog",
            "completed": True,
            "createdAt": "2025-01-10T10:01:00.000Z",
            "updatedAt": "2025-01-10T11:30:00.000Z",
        },
    ]
