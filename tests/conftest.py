"""
Pytest configuration and shared fixtures for Crossplay tests.

Fixtures wire deterministic clocks into the cache store and rate limiter so
that no test depends on real time.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path

import pytest

from crossplay.services.cache_store import SQLiteCacheStore
from crossplay.services.rate_limiter import SourceRateLimiter
from tests.fakes import FakeClock, FakeTime


@pytest.fixture(autouse=True)
def reset_package_logger() -> Generator[None, None, None]:
    """Undo handler setup done by CLI tests so caplog keeps working."""
    yield
    logger = logging.getLogger("crossplay")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def cache_store(tmp_path: Path, clock: FakeClock) -> Generator[SQLiteCacheStore, None, None]:
    """SQLite cache in a temporary directory driven by the fake clock."""
    store = SQLiteCacheStore(tmp_path / "cache" / "crossplay_cache.db", clock=clock)
    yield store
    store.close()


@pytest.fixture
def instant_limiter(fake_time: FakeTime) -> SourceRateLimiter:
    """Limiter that never really waits."""
    return SourceRateLimiter(
        "test",
        min_interval=0.5,
        sleep=fake_time.sleep,
        clock=fake_time.clock,
    )
