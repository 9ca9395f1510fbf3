# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import fillmap  # noqa: F401
except ImportError:
    raise ImportError("fillmap is not installed. Run: pip install -e '.[dev]'") from None

import pytest
import structlog

from fillmap.repository import InMemoryRepository
from fillmap.repository_sqlite import SqliteRepository


@pytest.fixture
async def memory_repo():
    repo = InMemoryRepository()
    yield repo
    await repo.close()


@pytest.fixture
async def sqlite_repo(tmp_path):
    """Create a SqliteRepository in a temp directory, yield, then close."""
    repo = await SqliteRepository.create(tmp_path / "fillmap.db")
    yield repo
    await repo.close()


@pytest.fixture(params=["memory", "sqlite"])
async def repo(request, tmp_path):
    """Run the test once per repository backend."""
    if request.param == "memory":
        r = InMemoryRepository()
    else:
        r = await SqliteRepository.create(tmp_path / "fillmap.db")
    yield r
    await r.close()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Keep structlog context variables from leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def fixed_clock():
    """Deterministic clock: 1_700_000_000.0, advancing one second per call."""
    state = {"now": 1_700_000_000.0}

    def clock() -> float:
        state["now"] += 1.0
        return state["now"]

    return clock
