"""API dependencies."""

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap_gateway.core.config import get_settings
from roadmap_gateway.core.database import get_session
from roadmap_gateway.enrichment.search import SearchApiClient
from roadmap_gateway.generation.generator import RoadmapGenerator
from roadmap_gateway.generation.providers import build_providers


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in get_session():
        yield session


@lru_cache
def get_generator() -> RoadmapGenerator:
    """Generator wired to the configured providers and search backend."""
    settings = get_settings()
    return RoadmapGenerator(build_providers(settings), SearchApiClient(settings), settings)


DBDep = Annotated[AsyncSession, Depends(get_db)]
GeneratorDep = Annotated[RoadmapGenerator, Depends(get_generator)]
