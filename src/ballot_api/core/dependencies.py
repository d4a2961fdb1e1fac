"""FastAPI dependency injection for database sessions and ballot collaborators.

Provides get_async_session plus the configured ballot codec, ledger, and
background task runner, each overridable in tests.
"""

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.background import BackgroundTaskRunner, task_runner
from ballot_api.core.config import Settings, get_settings
from ballot_api.core.database import get_session_factory
from ballot_api.lib.ballots import BallotCodec, get_codec
from ballot_api.lib.ledger import BaseLedger, build_ledger


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


def get_ballot_codec(settings: Annotated[Settings, Depends(get_settings)]) -> BallotCodec:
    """Return the codec configured for stored ballot payloads."""
    return get_codec(settings.ballot_codec)


@lru_cache(maxsize=4)
def _ledger_for(enabled: bool, url: str | None, timeout: float) -> BaseLedger:
    return build_ledger(enabled, url, timeout)


def get_ledger(settings: Annotated[Settings, Depends(get_settings)]) -> BaseLedger:
    """Return the ledger accepted ballots are reported to."""
    return _ledger_for(settings.ledger_enabled, settings.ledger_url, settings.ledger_timeout)


def get_task_runner() -> BackgroundTaskRunner:
    """Return the in-process background task runner."""
    return task_runner
