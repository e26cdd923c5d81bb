"""Shared fixtures for the vidcat test-suite."""

from __future__ import annotations

import io
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, List, Optional

import pytest
from rich.console import Console

from vidcat.config.settings import Settings
from vidcat.db.store import InMemoryCatalogStore
from vidcat.services.catalog import CatalogService

PROVIDER_ENV_VARS = (
    "DATABASE_URL",
    "YOUTUBE_API_KEY",
    "GEMINI_API_KEY",
    "GROQ_API_KEY",
    "AI_PROVIDER",
    "ENABLE_SUMMARIZATION",
    "CATALOG_DATA_FILE",
    "LOG_LEVEL",
)

BASE_TIME = datetime(2025, 11, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_settings(tmp_path) -> Callable[..., Settings]:
    def factory(**overrides: object) -> Settings:
        values = {"CATALOG_DATA_FILE": str(tmp_path / "catalog.json"), "LOG_LEVEL": "ERROR"}
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return factory


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=120)


class TickingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self._current = start

    def __call__(self) -> datetime:
        value = self._current
        self._current += timedelta(seconds=1)
        return value


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def store() -> InMemoryCatalogStore:
    return InMemoryCatalogStore()


@pytest.fixture
def catalog(store, console, clock) -> CatalogService:
    return CatalogService(store, console=console, clock=clock)


class FakeCursor:
    """Cursor replaying scripted results; each ``execute`` consumes one response."""

    def __init__(self, connection: "FakeConnection") -> None:
        self._connection = connection
        self._rows: List[dict] = []
        self.rowcount = -1

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def execute(self, query: str, params: Optional[dict] = None) -> None:
        self._connection.executed.append((query, dict(params or {})))
        response = self._connection.responses.pop(0) if self._connection.responses else []
        if isinstance(response, Exception):
            raise response
        if isinstance(response, int):
            self._rows = []
            self.rowcount = response
            return
        self._rows = list(response)
        self.rowcount = len(self._rows)

    def fetchone(self) -> Optional[dict]:
        return self._rows[0] if self._rows else None

    def fetchall(self) -> List[dict]:
        return list(self._rows)


class FakeConnection:
    """Stand-in for a psycopg2 connection used by repository tests."""

    def __init__(self, responses: Optional[list] = None) -> None:
        self.responses: list = list(responses or [])
        self.executed: List[tuple] = []

    def cursor(self, cursor_factory: object = None) -> FakeCursor:
        return FakeCursor(self)

    @contextmanager
    def factory(self) -> Iterator["FakeConnection"]:
        yield self


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()
