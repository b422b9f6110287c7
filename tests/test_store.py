"""Tests for tickoff.store module."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from tickoff.clock import FixedClock, SequentialIds
from tickoff.storage import (
    DEFAULT_KEY,
    FileKeyValueStore,
    MemoryKeyValueStore,
    StorageError,
    TaskRepository,
)
from tickoff.store import TaskStore

START = datetime(2025, 1, 10, 10, 0, 0, tzinfo=timezone.utc)


class FailingKeyValueStore(MemoryKeyValueStore):
    """Memory store whose reads and/or writes can be made to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_reads = False
        self.fail_writes = False
        self.writes = 0

    def get(self, key: str) -> bytes | None:
        if self.fail_reads:
            raise StorageError("store unavailable")
        return super().get(key)

    def set(self, key: str, value: bytes) -> None:
        if self.fail_writes:
            raise StorageError("quota exceeded")
        self.writes += 1
        super().set(key, value)


@pytest.fixture
def failing_kv() -> FailingKeyValueStore:
    return FailingKeyValueStore()


@pytest.fixture
def counting_store(failing_kv: FailingKeyValueStore, clock: FixedClock) -> TaskStore:
    task_store = TaskStore(TaskRepository(failing_kv), clock=clock, ids=SequentialIds(start=1))
    task_store.load()
    return task_store


def _texts(store: TaskStore) -> list[str]:
    return [task.text for task in store.snapshot().tasks]


class TestLoad:
    """Tests for TaskStore.load."""

    def test_absent_key_loads_empty(self, store: TaskStore) -> None:
        """Test a fresh store is empty."""
        assert len(store.snapshot()) == 0
        assert store.editing_id is None

    def test_loads_stored_tasks(
        self, kv: MemoryKeyValueStore, repository: TaskRepository, sample_tasks_data: list[dict]
    ) -> None:
        """Test stored tasks are loaded in order."""
        kv.set(DEFAULT_KEY, json.dumps(sample_tasks_data).encode())
        task_store = TaskStore(repository)
        task_store.load()
        assert _texts(task_store) == ["Buy milk", "Walk the dog"]
        assert task_store.completed_count == 1

    def test_malformed_loads_empty(
        self,
        kv: MemoryKeyValueStore,
        repository: TaskRepository,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test malformed data falls back to empty with a warning."""
        kv.set(DEFAULT_KEY, b"{broken")
        task_store = TaskStore(repository)
        with caplog.at_level(logging.WARNING, logger="tickoff.store"):
            task_store.load()
        assert len(task_store.snapshot()) == 0
        assert "malformed" in caplog.text

    def test_duplicate_ids_load_empty(
        self, kv: MemoryKeyValueStore, repository: TaskRepository, sample_tasks_data: list[dict]
    ) -> None:
        """Test a list with repeated ids is treated as malformed."""
        data = [sample_tasks_data[0], sample_tasks_data[0]]
        kv.set(DEFAULT_KEY, json.dumps(data).encode())
        task_store = TaskStore(repository)
        task_store.load()
        assert len(task_store.snapshot()) == 0

    def test_read_failure_loads_empty(
        self, failing_kv: FailingKeyValueStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test an unreadable store does not crash load."""
        failing_kv.fail_reads = True
        task_store = TaskStore(TaskRepository(failing_kv))
        with caplog.at_level(logging.WARNING, logger="tickoff.store"):
            task_store.load()
        assert len(task_store.snapshot()) == 0
        assert "store unavailable" in caplog.text

    def test_load_clears_edit_cursor(self, store: TaskStore) -> None:
        """Test reloading drops any edit in progress."""
        task = store.add("A")
        assert task is not None
        store.begin_edit(task.id)
        store.load()
        assert store.editing_id is None


class TestAdd:
    """Tests for TaskStore.add."""

    def test_add_creates_task(self, store: TaskStore) -> None:
        """Test a new task gets id, text, flags and timestamps."""
        task = store.add("Buy milk")
        assert task is not None
        assert task.id == 1
        assert task.text == "Buy milk"
        assert task.completed is False
        assert task.createdAt == START.isoformat()
        assert task.updatedAt == task.createdAt

    def test_add_trims_text(self, store: TaskStore) -> None:
        """Test stored text is trimmed."""
        store.add("   Buy milk  ")
        assert _texts(store) == ["Buy milk"]

    def test_add_appends_in_order(self, store: TaskStore) -> None:
        """Test insertion order is kept."""
        for text in ("A", "B", "C"):
            store.add(text)
        assert _texts(store) == ["A", "B", "C"]

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text_is_noop(self, counting_store: TaskStore, failing_kv: FailingKeyValueStore, text: str) -> None:
        """Test blank text changes nothing and writes nothing."""
        counting_store.add("A")
        writes = failing_kv.writes

        assert counting_store.add(text) is None
        assert len(counting_store.snapshot()) == 1
        assert failing_kv.writes == writes

    def test_blank_text_keeps_edit_cursor(self, store: TaskStore) -> None:
        """Test blank text does not end an edit."""
        task = store.add("A")
        assert task is not None
        store.begin_edit(task.id)
        store.add("   ")
        assert store.editing_id == task.id

    def test_add_persists(self, store: TaskStore, repository: TaskRepository) -> None:
        """Test every add is saved."""
        store.add("A")
        loaded = repository.load()
        assert loaded is not None
        assert [t.text for t in loaded] == ["A"]

    def test_ids_skip_existing(
        self, kv: MemoryKeyValueStore, repository: TaskRepository, sample_tasks_data: list[dict]
    ) -> None:
        """Test a generated id already in the list is never reused."""
        kv.set(DEFAULT_KEY, json.dumps(sample_tasks_data).encode())
        existing = sample_tasks_data[0]["id"]
        task_store = TaskStore(repository, ids=SequentialIds(sequence=[existing, existing + 1]))
        task_store.load()

        task = task_store.add("New")
        assert task is not None
        assert task.id == existing + 1


class TestEdit:
    """Tests for begin_edit / add-as-update / cancel_edit."""

    def test_begin_edit_sets_cursor(self, store: TaskStore) -> None:
        """Test begin_edit points the cursor at the task."""
        task = store.add("A")
        assert task is not None
        edited = store.begin_edit(task.id)
        assert edited is not None
        assert edited.text == "A"
        assert store.editing_id == task.id
        assert store.snapshot().editing_id == task.id

    def test_begin_edit_missing_is_noop(self, store: TaskStore) -> None:
        """Test begin_edit on an unknown id does nothing."""
        assert store.begin_edit(99) is None
        assert store.editing_id is None

    def test_add_while_editing_updates(self, store: TaskStore) -> None:
        """Test add commits the edit instead of creating a task."""
        a = store.add("A")
        store.add("B")
        assert a is not None
        store.begin_edit(a.id)

        updated = store.add("A-edited")

        assert updated is not None
        assert updated.id == a.id
        assert _texts(store) == ["A-edited", "B"]
        assert store.editing_id is None

    def test_edit_bumps_updated_at_only(self, store: TaskStore) -> None:
        """Test commit changes updatedAt but not createdAt."""
        a = store.add("A")
        assert a is not None
        store.begin_edit(a.id)
        updated = store.add("A2")
        assert updated is not None
        assert updated.createdAt == a.createdAt
        assert updated.updatedAt > a.updatedAt

    def test_cancel_edit(self, store: TaskStore) -> None:
        """Test cancel clears the cursor and leaves data alone."""
        a = store.add("A")
        assert a is not None
        store.begin_edit(a.id)
        store.cancel_edit()
        assert store.editing_id is None
        store.add("B")
        assert _texts(store) == ["A", "B"]

    def test_cancel_edit_without_cursor(self, store: TaskStore) -> None:
        """Test cancel is safe with nothing being edited."""
        store.cancel_edit()
        assert store.editing_id is None


class TestToggle:
    """Tests for TaskStore.toggle."""

    def test_toggle_flips(self, store: TaskStore) -> None:
        """Test toggle flips completed back and forth."""
        a = store.add("A")
        assert a is not None
        toggled = store.toggle(a.id)
        assert toggled is not None
        assert toggled.completed is True
        assert toggled.updatedAt > a.updatedAt
        again = store.toggle(a.id)
        assert again is not None
        assert again.completed is False

    def test_toggle_missing_is_noop(self, counting_store: TaskStore, failing_kv: FailingKeyValueStore) -> None:
        """Test toggling an unknown id writes nothing."""
        counting_store.add("A")
        writes = failing_kv.writes
        assert counting_store.toggle(99) is None
        assert failing_kv.writes == writes

    def test_updated_at_never_before_created_at(self, repository: TaskRepository) -> None:
        """Test a clock going backwards cannot break updatedAt >= createdAt."""
        clock = FixedClock(START)
        task_store = TaskStore(repository, clock=clock, ids=SequentialIds())
        task = task_store.add("A")
        assert task is not None

        clock.advance(timedelta(hours=-1))
        toggled = task_store.toggle(task.id)
        assert toggled is not None
        assert toggled.updatedAt == toggled.createdAt


class TestDelete:
    """Tests for TaskStore.delete."""

    def test_delete(self, store: TaskStore) -> None:
        """Test delete removes the task."""
        a = store.add("A")
        store.add("B")
        assert a is not None
        assert store.delete(a.id) is True
        assert _texts(store) == ["B"]

    def test_delete_missing_is_noop(self, counting_store: TaskStore, failing_kv: FailingKeyValueStore) -> None:
        """Test deleting an unknown id changes and writes nothing."""
        counting_store.add("A")
        writes = failing_kv.writes
        assert counting_store.delete(99) is False
        assert len(counting_store.snapshot()) == 1
        assert failing_kv.writes == writes

    def test_delete_edited_task_clears_cursor(self, store: TaskStore) -> None:
        """Test deleting the task being edited ends the edit."""
        a = store.add("A")
        assert a is not None
        store.begin_edit(a.id)
        store.delete(a.id)
        assert store.editing_id is None
        store.add("C")
        assert _texts(store) == ["C"]

    def test_delete_other_task_keeps_cursor(self, store: TaskStore) -> None:
        """Test deleting a different task keeps the edit going."""
        a = store.add("A")
        b = store.add("B")
        assert a is not None and b is not None
        store.begin_edit(a.id)
        store.delete(b.id)
        assert store.editing_id == a.id


class TestClearCompleted:
    """Tests for TaskStore.clear_completed."""

    def test_clears_only_completed(self, store: TaskStore) -> None:
        """Test completed tasks go, active ones stay in order."""
        ids = [t.id for t in (store.add("A"), store.add("B"), store.add("C")) if t]
        store.toggle(ids[0])
        store.toggle(ids[2])
        assert store.clear_completed() == 2
        assert _texts(store) == ["B"]

    def test_nothing_completed_writes_nothing(
        self, counting_store: TaskStore, failing_kv: FailingKeyValueStore
    ) -> None:
        """Test no write when there is nothing to clear."""
        counting_store.add("A")
        writes = failing_kv.writes
        assert counting_store.clear_completed() == 0
        assert failing_kv.writes == writes

    def test_clearing_edited_task_clears_cursor(self, store: TaskStore) -> None:
        """Test the cursor never points at a removed task."""
        a = store.add("A")
        assert a is not None
        store.toggle(a.id)
        store.begin_edit(a.id)
        store.clear_completed()
        assert store.editing_id is None


class TestSnapshot:
    """Tests for TaskStore.snapshot."""

    def test_snapshot_is_a_copy(self, store: TaskStore) -> None:
        """Test mutating a snapshot task does not touch the store."""
        store.add("A")
        snapshot = store.snapshot()
        snapshot.tasks[0].text = "hacked"
        snapshot.tasks[0].completed = True
        assert _texts(store) == ["A"]
        assert store.completed_count == 0

    def test_get_returns_copy(self, store: TaskStore) -> None:
        """Test get does not expose the stored instance."""
        a = store.add("A")
        assert a is not None
        copy = store.get(a.id)
        assert copy is not None
        copy.text = "hacked"
        assert _texts(store) == ["A"]

    def test_ids_unique_over_mixed_operations(self, store: TaskStore) -> None:
        """Test ids stay unique through adds, toggles, deletes and clears."""
        for i in range(10):
            store.add(f"task {i}")
        for task in store.snapshot().tasks[::2]:
            store.toggle(task.id)
        store.delete(store.snapshot().tasks[1].id)
        store.clear_completed()
        for i in range(5):
            store.add(f"more {i}")

        ids = [task.id for task in store.snapshot().tasks]
        assert len(ids) == len(set(ids))


class TestSaveFailures:
    """Tests for persistence failures during mutations."""

    def test_failed_save_keeps_memory_state(
        self,
        counting_store: TaskStore,
        failing_kv: FailingKeyValueStore,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test the mutation still happens and the failure is recorded."""
        failing_kv.fail_writes = True
        with caplog.at_level(logging.WARNING, logger="tickoff.store"):
            task = counting_store.add("A")

        assert task is not None
        assert _texts(counting_store) == ["A"]
        assert isinstance(counting_store.last_save_error, StorageError)
        assert "quota exceeded" in caplog.text

    def test_successful_save_clears_error(
        self, counting_store: TaskStore, failing_kv: FailingKeyValueStore
    ) -> None:
        """Test the warning goes away once a save works again."""
        failing_kv.fail_writes = True
        counting_store.add("A")
        failing_kv.fail_writes = False
        counting_store.add("B")

        assert counting_store.last_save_error is None
        loaded = TaskRepository(failing_kv).load()
        assert loaded is not None
        assert [t.text for t in loaded] == ["A", "B"]

    def test_invalid_file_key_never_raises(self, tmp_path: Path) -> None:
        """Test a key the file backend refuses is a storage failure, not a crash."""
        task_store = TaskStore(TaskRepository(FileKeyValueStore(tmp_path), key="a/b"))
        task_store.load()
        assert len(task_store.snapshot()) == 0

        task = task_store.add("x")
        assert task is not None
        assert _texts(task_store) == ["x"]
        assert isinstance(task_store.last_save_error, StorageError)
        assert list(tmp_path.iterdir()) == []


class TestScenarios:
    """End-to-end store scenarios."""

    def test_reload_round_trip(self, store: TaskStore, repository: TaskRepository, clock: FixedClock) -> None:
        """Test a second store sees exactly what the first saved."""
        a = store.add("A")
        store.add("B")
        assert a is not None
        store.toggle(a.id)

        fresh = TaskStore(repository, clock=clock)
        fresh.load()
        assert fresh.snapshot().tasks == store.snapshot().tasks
