"""Persistence for the task list.

Tasks live under a single key of a byte-oriented key-value store, as a JSON
array of records:

    [
        {
            "id": 1736503200000,
            "text": "Buy milk",
            "completed": false,
            "createdAt": "2025-01-10T10:00:00+00:00",
            "updatedAt": "2025-01-10T10:00:00+00:00"
        }
    ]

``TaskRepository`` turns that blob into ``Task`` models and back. It raises
on every failure; deciding what a failure means for the user is the store's
job.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from tickoff.models import Task

logger = logging.getLogger(__name__)

DEFAULT_KEY = "todoTasks"


class PersistenceError(Exception):
    """Saving or loading the task list failed."""


class StorageError(PersistenceError):
    """The underlying key-value store could not be read or written."""


class CorruptDataError(PersistenceError):
    """The stored blob exists but is not a valid task list."""


def is_valid_key(key: str) -> bool:
    """Check that a key names a plain file inside the storage directory."""
    return bool(key) and not key.startswith(".") and "/" not in key and "\\" not in key


class KeyValueStore(Protocol):
    def get(self, key: str) -> bytes | None: ...

    def set(self, key: str, value: bytes) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Dict-backed store, lost when the process exits."""

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self.data: dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.data[key] = bytes(value)

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileKeyValueStore:
    """One file per key inside a directory."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not is_valid_key(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.root / key

    def get(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{key}.")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Could not write {path}: {e}") from e

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Could not remove {path}: {e}") from e


class TaskRepository:
    """Reads and writes the whole task list under one key."""

    def __init__(self, kv: KeyValueStore, key: str = DEFAULT_KEY) -> None:
        self.kv = kv
        self.key = key

    def save(self, tasks: Iterable[Task]) -> None:
        """Serialise the full ordered list, overwriting what was stored."""
        try:
            blob = json.dumps([task.model_dump() for task in tasks], ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Could not serialise tasks: {e}") from e

        self.kv.set(self.key, blob.encode("utf-8"))
        logger.debug("Saved task list under %r (%d bytes)", self.key, len(blob))

    def load(self) -> list[Task] | None:
        """Load the stored list.

        Returns:
            The tasks in stored order, or None when nothing is stored.

        Raises:
            CorruptDataError: The blob is not a valid task list.
            StorageError: The store could not be read.
        """
        raw = self.kv.get(self.key)
        if raw is None:
            return None

        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptDataError(f"Stored task list is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise CorruptDataError(
                f"Stored task list must be a JSON array, got {type(data).__name__}"
            )

        tasks: list[Task] = []
        seen: set[int] = set()
        for index, item in enumerate(data):
            try:
                task = Task.model_validate(item)
            except ValidationError as e:
                raise CorruptDataError(f"Invalid task record at index {index}: {e}") from e
            if task.id in seen:
                raise CorruptDataError(f"Duplicate task id {task.id}")
            seen.add(task.id)
            tasks.append(task)

        return tasks

    def clear(self) -> None:
        """Remove the stored list entirely."""
        self.kv.remove(self.key)
