"""Fixtures wiring the API routers to the in-memory test database."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from ballot_api.api.router import create_router
from ballot_api.core.background import InProcessTaskRunner
from ballot_api.core.config import get_settings
from ballot_api.core.dependencies import get_async_session, get_ledger, get_task_runner
from ballot_api.lib.ledger import LoggingLedger


@pytest.fixture
def task_runner() -> InProcessTaskRunner:
    """A private background runner so tests can drain it."""
    return InProcessTaskRunner()


@pytest.fixture
def app(settings, async_session, task_runner) -> FastAPI:
    """Create a FastAPI app with every v1 router and test overrides."""
    app = FastAPI()
    app.include_router(create_router(settings))

    async def _session_override() -> AsyncGenerator:
        yield async_session

    app.dependency_overrides[get_async_session] = _session_override
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_ledger] = lambda: LoggingLedger()
    app.dependency_overrides[get_task_runner] = lambda: task_runner
    return app


@pytest.fixture
async def client(app: FastAPI, task_runner: InProcessTaskRunner) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client bound to the test app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    await task_runner.drain()
