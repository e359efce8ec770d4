"""Pytest fixtures for finplan tests.

Provides fixtures for:
- A controllable clock for TTL tests
- Recording error service and notifier
- Sample dropdown mapping rows
"""

from __future__ import annotations

import pytest

from finplan.utils.notify import Notifier
from finplan.utils.sheet.cache import CacheLayer, MemoryCacheStore

from tests.fakes import FakeClock, FakeSpreadsheet, RecordingErrorService


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def errors() -> RecordingErrorService:
    return RecordingErrorService()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def shared_store(clock) -> MemoryCacheStore:
    return MemoryCacheStore(clock)


@pytest.fixture
def cache(shared_store, errors, clock) -> CacheLayer:
    return CacheLayer(
        shared=shared_store,
        enabled=True,
        default_expiry_seconds=3600,
        known_keys=["dropdownsData", "finance_overview_categories"],
        error_service=errors,
        clock=clock,
    )


@pytest.fixture
def mapping_rows() -> list[list[str]]:
    return [
        ["Type", "Category", "Sub-Category"],
        ["Income", "Salary", ""],
        ["Expense", "Food", "Groceries"],
        ["Expense", "Food", "Dining"],
    ]


@pytest.fixture
def spreadsheet(mapping_rows) -> FakeSpreadsheet:
    return FakeSpreadsheet({"Dropdowns": mapping_rows})
