"""Runtime configuration for the subscription engine."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from .errors import LoggerConfig


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings for the account and ledger tables."""

    host: str = "127.0.0.1"
    port: int = 5432
    database: str = "cardshows"
    user: str = "cardshows"
    password: str = ""
    connect_timeout: float = 5.0

    def connect_kwargs(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": self.password,
        }


@dataclass(frozen=True)
class EngineConfig:
    """Settings shared by the payment, reconciliation and error-logging layers."""

    backend_url: str
    merchant_display_name: str = "Card Show Finder"
    return_url: Optional[str] = None
    currency: str = "usd"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logger: LoggerConfig = field(default_factory=LoggerConfig)
    error_log_dir: Optional[str] = None


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_float(value: Optional[str], *, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Expected float value, got {value!r}") from exc


def load_engine_config(env: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """Load :class:`EngineConfig` from environment variables.

    When ``env`` is omitted a ``.env`` file is loaded into the process
    environment first.
    """

    if env is None:
        load_dotenv()
        env = os.environ

    backend_url = (env.get("SUPABASE_URL") or "").strip()
    if not backend_url:
        raise ValueError("SUPABASE_URL must be set")

    database = DatabaseConfig(
        host=env.get("DB_HOST", "127.0.0.1"),
        port=_to_int(env.get("DB_PORT"), default=5432),
        database=env.get("DB_NAME", "cardshows"),
        user=env.get("DB_USER", "cardshows"),
        password=env.get("DB_PASSWORD", ""),
        connect_timeout=max(0.0, _to_float(env.get("DB_CONNECT_TIMEOUT"), default=5.0)),
    )

    logger = LoggerConfig(
        enable_console_logging=_to_bool(env.get("ERROR_LOG_CONSOLE"), default=True),
        enable_storage_logging=_to_bool(env.get("ERROR_LOG_STORAGE"), default=True),
        enable_remote_logging=_to_bool(env.get("ERROR_LOG_REMOTE"), default=False),
        max_stored_errors=max(0, _to_int(env.get("ERROR_LOG_MAX_STORED"), default=100)),
    )

    return EngineConfig(
        backend_url=backend_url.rstrip("/"),
        merchant_display_name=env.get("PAYMENT_MERCHANT_NAME") or "Card Show Finder",
        return_url=env.get("PAYMENT_RETURN_URL") or None,
        currency=(env.get("PAYMENT_CURRENCY") or "usd").strip().lower(),
        database=database,
        logger=logger,
        error_log_dir=env.get("ERROR_LOG_DIR") or None,
    )


__all__ = ["DatabaseConfig", "EngineConfig", "load_engine_config"]
