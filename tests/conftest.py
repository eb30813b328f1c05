"""Shared test fixtures."""

from datetime import datetime, timezone

import pytest

from cardy.app import App
from cardy.catalog import CardCatalog
from cardy.kvstore import MemoryStore, SqliteStore
from cardy.repository import LocalRepository
from cardy.scheduler import ReviewScheduler
from cardy.study import StudyService


class Clock:
    """Settable clock for code that takes a clock callable."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def tmp_cardy_dir(tmp_path):
    """Create a temporary cardy directory with a policies/ subdir."""
    cardy_dir = tmp_path / "cardy_dir"
    cardy_dir.mkdir()
    (cardy_dir / "policies").mkdir()
    return cardy_dir


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def sqlite_store():
    """In-memory SQLite key-value store."""
    s = SqliteStore.open(":memory:")
    yield s
    s.close()


@pytest.fixture
def catalog():
    return CardCatalog.load()


@pytest.fixture
def clock():
    return Clock(utc(2025, 4, 11, 9, 0, 0))


@pytest.fixture
def repo(store, clock):
    return LocalRepository(store, clock=clock)


@pytest.fixture
def service(repo, clock):
    return StudyService(repo, ReviewScheduler(), clock=clock)


@pytest.fixture
def app(tmp_cardy_dir, monkeypatch):
    """App instance with tmp cardy_dir and in-memory store."""
    monkeypatch.delenv("CARDY_MONGO_URI", raising=False)
    a = App(cardy_dir=tmp_cardy_dir)
    a.init_store(":memory:")
    yield a
    a.close()
