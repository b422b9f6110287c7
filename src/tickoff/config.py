"""Configuration models for tickoff."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from tickoff.storage import DEFAULT_KEY, is_valid_key


class StorageConfig(BaseModel):
    """Configuration for the key-value store backing the task list."""

    backend: Literal["file", "memory"] = "file"
    directory: str = ".tickoff/storage"
    key: str = DEFAULT_KEY

    @field_validator("key")
    @classmethod
    def plain_key(cls, value: str) -> str:
        if not is_valid_key(value):
            raise ValueError(f"storage key must be a plain file name, got {value!r}")
        return value


class DisplayConfig(BaseModel):
    """Configuration for rendering."""

    html_output: str = ".tickoff/tasks.html"
    show_timestamps: bool = False


class LoggingConfig(BaseModel):
    """Configuration for diagnostics."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    file: str | None = None


class TickoffConfig(BaseModel):
    """Main configuration for tickoff."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> TickoffConfig:
        """Load configuration from file or return defaults."""
        if path is None:
            path = CONFIG_FILE

        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        return cls.model_validate(data)

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file."""
        if path is None:
            path = CONFIG_FILE

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(exclude_none=True), f, indent=2)


# Default config directory
TICKOFF_DIR = Path(".tickoff")
CONFIG_FILE = TICKOFF_DIR / "config.json"
