"""Shared fixtures."""

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from roadmap_gateway.api.deps import get_db, get_generator
from roadmap_gateway.core.config import Settings
from roadmap_gateway.core.database import build_session_factory, init_db
from roadmap_gateway.main import app
from roadmap_gateway.schemas.roadmap import Milestone, MilestoneResource, MilestoneTask, ResourceType


@pytest.fixture
def settings() -> Settings:
    """Settings with no credentials, independent of the host environment."""
    return Settings(
        _env_file=None,
        OPENAI_API_KEY=None,
        GEMINI_API_KEY=None,
        SEARCHAPI_API_KEY=None,
        SEARCHAPI_BASE_URL="https://search.test/api/v1/search",
        GEMINI_API_BASE_URL="https://gemini.test/v1beta",
        SEARCH_RETRIES=1,
    )


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory bound to a fresh in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)

    yield build_session_factory(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


class FakeGenerator:
    """Stands in for ``RoadmapGenerator`` in API tests."""

    def __init__(self, milestones: list[Milestone] | None = None, error: Exception | None = None) -> None:
        self.milestones = milestones or []
        self.error = error
        self.calls: list[tuple] = []

    async def generate(self, category, course, preferences):
        self.calls.append((category, course, preferences))
        if self.error is not None:
            raise self.error
        return self.milestones


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator(milestones=make_milestones(2, 3))


@pytest_asyncio.fixture
async def api_client(
    test_session: AsyncSession, fake_generator: FakeGenerator
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """In-process client for the FastAPI app with DB and generator overridden."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_generator] = lambda: fake_generator
    try:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.clear()


def make_milestones(count: int, tasks_per_milestone: int, completed: int = 0) -> list[Milestone]:
    """Build ``count`` milestones, marking the first ``completed`` tasks done."""
    milestones = []
    remaining = completed
    for i in range(count):
        tasks = []
        for j in range(tasks_per_milestone):
            tasks.append(
                MilestoneTask(
                    id=f"task-{i + 1}-{j + 1}",
                    title=f"Task {j + 1}",
                    completed=remaining > 0,
                )
            )
            remaining -= 1
        milestones.append(
            Milestone(
                id=f"milestone-{i + 1}",
                title=f"Milestone {i + 1}",
                overview=f"Overview {i + 1}",
                skills=["Routing", "Subnetting"],
                timeframe=f"Month {i + 1}",
                resources=[
                    MilestoneResource(
                        type=ResourceType.COURSE,
                        title="Networking Basics",
                        url="https://www.coursera.org/learn/networking",
                    )
                ],
                tasks=tasks,
            )
        )
    return milestones


@pytest.fixture
def milestone_factory():
    return make_milestones
