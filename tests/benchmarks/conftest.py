"""conftest.py for benchmarks.

One event loop is shared by the whole session so per-round timings do not
include loop start-up.
"""

from __future__ import annotations

import asyncio

import pytest


@pytest.fixture(scope="session")
def event_loop():
    """Session-scoped event loop shared by all async benchmark helpers."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture(scope="session")
def run_async(event_loop):
    """Run a coroutine to completion on the session loop."""

    def _run(coro):
        return event_loop.run_until_complete(coro)

    return _run
