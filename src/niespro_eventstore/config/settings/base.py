"""Config settings – Settings base class and EventStoreSettings."""
from __future__ import annotations

import dataclasses
import logging
import re
from typing import ClassVar

from niespro_eventstore.config.validation import InvalidSettingValueError

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclasses.dataclass
class Settings:
    """Base class for 12-factor settings.

    Subclasses set ``_prefix``; ``EnvSettingsLoader`` then reads
    ``<PREFIX>_<FIELD>`` for every dataclass field.
    """

    _prefix: ClassVar[str] = ""

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Override to add cross-field validation."""


@dataclasses.dataclass
class EventStoreSettings(Settings):
    """Settings for the SQL-backed event store (``EVENT_STORE_*``)."""

    _prefix: ClassVar[str] = "EVENT_STORE"

    database_url: str = "sqlite+aiosqlite:///./events.db"
    echo: bool = False
    table_name: str = "event_store"
    schema_version: str = "1.0"
    conflict_retry_attempts: int = 3
    conflict_retry_max_wait: float = 1.0
    log_level: str = "INFO"

    def _validate(self) -> None:
        if not self.database_url:
            raise InvalidSettingValueError("database_url", self.database_url, "must not be empty")
        if not _TABLE_NAME.match(self.table_name):
            raise InvalidSettingValueError("table_name", self.table_name, "must be a plain SQL identifier")
        if self.conflict_retry_attempts < 1:
            raise InvalidSettingValueError(
                "conflict_retry_attempts", self.conflict_retry_attempts, "must be at least 1"
            )
        if self.conflict_retry_max_wait < 0:
            raise InvalidSettingValueError(
                "conflict_retry_max_wait", self.conflict_retry_max_wait, "must not be negative"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise InvalidSettingValueError("log_level", self.log_level, "unknown logging level")


__all__ = ["EventStoreSettings", "Settings"]
