"""Shared test fixtures for settings, async database sessions, and election factories."""

import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ballot_api.core.config import Settings
from ballot_api.models import Base
from ballot_api.models.election import Candidate, Election

TEST_NULLIFIER_SECRET = "test-nullifier-secret-not-for-production"


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        nullifier_secret=TEST_NULLIFIER_SECRET,
        ballot_codec="base64-json",
    )


@pytest.fixture
async def async_engine(settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    session_factory = async_sessionmaker(async_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


def make_election(
    scheme: str = "single_choice",
    candidate_names: tuple[str, ...] = ("Alice", "Bob"),
    *,
    now: datetime | None = None,
    phase: str = "voting",
    **overrides,
) -> Election:
    """Build an unsaved Election whose windows put ``now`` in ``phase``."""
    now = now or datetime.now(UTC)
    hour = timedelta(hours=1)
    windows = {
        "upcoming": (now + hour, now + 2 * hour, now + 3 * hour, now + 4 * hour),
        "registration": (now - hour, now + hour, now + 2 * hour, now + 3 * hour),
        "waiting": (now - 2 * hour, now - hour, now + hour, now + 2 * hour),
        "voting": (now - 3 * hour, now - 2 * hour, now - hour, now + 24 * hour),
        "completed": (now - 4 * hour, now - 3 * hour, now - 2 * hour, now - hour),
    }[phase]
    fields = {
        "id": uuid.uuid4(),
        "title": "Student Council 2026",
        "description": None,
        "scheme": scheme,
        "max_rankings": 3,
        "credit_budget": 100,
        "estimated_eligible_voters": 1000,
        "eligible_departments": [],
        "eligible_years": [],
        "registration_start": windows[0],
        "registration_end": windows[1],
        "voting_start": windows[2],
        "voting_end": windows[3],
    }
    fields.update(overrides)
    election = Election(**fields)
    election.candidates = [
        Candidate(id=uuid.uuid4(), name=name, position=index) for index, name in enumerate(candidate_names)
    ]
    return election


@pytest.fixture
def election_factory(async_session: AsyncSession):
    """Persist elections built by make_election."""

    async def _create(*args, **kwargs) -> Election:
        election = make_election(*args, **kwargs)
        async_session.add(election)
        await async_session.commit()
        return election

    return _create


@pytest.fixture
def build_election():
    """Return make_election for tests that persist elections themselves."""
    return make_election
