"""
Shared pytest configuration.

The environment is set before any application module is imported so the
database engine and the API settings pick up the test values.
"""

import asyncio
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test_secret_key_for_testing_purposes_only")
os.environ.setdefault("TOKEN_ENCRYPTION_KEY", "Jxv2F0mCn9m3b6tW5ePuXh1cK4oQ8yZsR7aLdNgVfBI=")

import pytest  # noqa: E402

from inbox_actions.storage.database import drop_db, init_db  # noqa: E402


@pytest.fixture
def database():
    """Fresh schema on the in-memory database for one test."""
    init_db()
    yield
    drop_db()


@pytest.fixture
def count_loop_ticks():
    """
    Await a coroutine while a ticker runs on the same event loop.

    Returns the coroutine result and the number of ticks; a blocking call
    inside the coroutine starves the ticker.
    """
    async def run(awaitable, interval=0.005):
        ticks = 0

        async def ticker():
            nonlocal ticks
            while True:
                await asyncio.sleep(interval)
                ticks += 1

        task = asyncio.create_task(ticker())
        try:
            result = await awaitable
        finally:
            task.cancel()
        return result, ticks

    return run
