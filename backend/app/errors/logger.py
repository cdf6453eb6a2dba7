"""Error logger fanning classified records out to console, storage and remote sinks."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from .classifier import classify
from .models import ErrorCategory, ErrorRecord, ErrorSeverity
from .storage import InMemoryKeyValueStore, KeyValueStore

ERROR_LOG_KEY = "app_errors"

LOGGER = logging.getLogger("subscriptions.errors")

_SEVERITY_LEVELS = {
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


@dataclass(frozen=True)
class LoggerConfig:
    """Which sinks the error logger writes to, and how many records it keeps."""

    enable_console_logging: bool = True
    enable_remote_logging: bool = False
    enable_storage_logging: bool = True
    max_stored_errors: int = 100

    def __post_init__(self) -> None:
        if self.max_stored_errors < 0:
            raise ValueError("max_stored_errors must be >= 0")

    def with_overrides(self, **changes: Any) -> "LoggerConfig":
        """Return a copy with ``changes`` applied."""

        return replace(self, **changes)


class RemoteErrorSink(Protocol):
    """External error reporting service."""

    async def send(self, record: ErrorRecord) -> None:
        ...


class ErrorLogger:
    """Emits classified errors to every enabled sink.

    Each sink is written independently and failures are reported through the
    module logger; :meth:`log_error` never raises.
    """

    def __init__(
        self,
        config: Optional[LoggerConfig] = None,
        *,
        store: Optional[KeyValueStore] = None,
        remote_sink: Optional[RemoteErrorSink] = None,
        console: Optional[logging.Logger] = None,
    ) -> None:
        self._config = config or LoggerConfig()
        self._store = store if store is not None else InMemoryKeyValueStore()
        self._remote_sink = remote_sink
        self._console = console or LOGGER
        self._store_lock = asyncio.Lock()

    @property
    def config(self) -> LoggerConfig:
        return self._config

    async def log_error(self, record: ErrorRecord) -> None:
        if self._config.enable_console_logging:
            self._log_to_console(record)

        if self._config.enable_storage_logging:
            try:
                await self._append_to_store(record)
            except Exception as exc:
                self._console.error("Failed to store error record: %s", exc)

        if self._config.enable_remote_logging and self._remote_sink is not None:
            try:
                await self._remote_sink.send(record)
            except Exception as exc:
                self._console.error("Failed to send error record to remote sink: %s", exc)

    async def capture(
        self,
        raw: Any,
        context: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        *,
        category: Optional[ErrorCategory] = None,
        fallback_message: Optional[str] = None,
    ) -> ErrorRecord:
        """Classify ``raw`` and log the resulting record."""

        record = classify(
            raw,
            context,
            severity,
            category=category,
            fallback_message=fallback_message,
        )
        await self.log_error(record)
        return record

    async def get_stored_errors(self) -> List[ErrorRecord]:
        try:
            return await self._read_stored()
        except Exception as exc:
            self._console.error("Failed to read stored error records: %s", exc)
            return []

    async def clear_stored_errors(self) -> None:
        try:
            async with self._store_lock:
                await self._store.set_item(ERROR_LOG_KEY, json.dumps([]))
        except Exception as exc:
            self._console.error("Failed to clear stored error records: %s", exc)

    def _log_to_console(self, record: ErrorRecord) -> None:
        self._console.log(
            _SEVERITY_LEVELS.get(record.severity, logging.ERROR),
            "[%s] [%s] %s",
            record.severity.value.upper(),
            record.category.value,
            record.message,
            extra={
                "error_code": record.code,
                "error_context": record.context,
                "error_timestamp": record.timestamp.isoformat(),
            },
        )

    def _decode_stored(self, raw: Optional[str]) -> List[Any]:
        if not raw:
            return []
        try:
            stored = json.loads(raw)
        except ValueError as exc:
            self._console.warning("Discarding unreadable stored error log: %s", exc)
            return []
        if not isinstance(stored, list):
            self._console.warning("Discarding stored error log of type %s", type(stored).__name__)
            return []
        return stored

    async def _read_stored(self) -> List[ErrorRecord]:
        raw = await self._store.get_item(ERROR_LOG_KEY)
        records: List[ErrorRecord] = []
        for item in self._decode_stored(raw):
            try:
                records.append(ErrorRecord.model_validate(item))
            except ValidationError:
                self._console.warning("Skipping malformed stored error record")
        return records

    async def _append_to_store(self, record: ErrorRecord) -> None:
        limit = self._config.max_stored_errors
        async with self._store_lock:
            raw = await self._store.get_item(ERROR_LOG_KEY)
            stored = self._decode_stored(raw)
            stored.append(record.model_dump(mode="json"))
            stored = stored[-limit:] if limit > 0 else []
            await self._store.set_item(ERROR_LOG_KEY, json.dumps(stored))


__all__ = ["ERROR_LOG_KEY", "ErrorLogger", "LoggerConfig", "RemoteErrorSink"]
