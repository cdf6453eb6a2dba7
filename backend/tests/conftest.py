from __future__ import annotations

import pytest

from backend.app.errors import ErrorLogger, InMemoryKeyValueStore, LoggerConfig
from backend.tests.fakes import FakePaymentLedger


@pytest.fixture
def error_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def error_logger(error_store: InMemoryKeyValueStore) -> ErrorLogger:
    return ErrorLogger(LoggerConfig(enable_console_logging=False), store=error_store)


@pytest.fixture
def ledger() -> FakePaymentLedger:
    return FakePaymentLedger()
