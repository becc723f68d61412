"""Roadmap stores used by the orchestrator.

Both stores keep the persistence contract: ``create`` always returns an id
(a local one when the backend is unavailable) and ``update_progress`` never
raises for backend failures.
"""

from typing import Protocol

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from roadmap_gateway.core.auth import USER_ID_HEADER, AuthStateProvider
from roadmap_gateway.core.database import get_db_session
from roadmap_gateway.core.logging import get_logger
from roadmap_gateway.schemas.roadmap import Milestone, Roadmap, StoredRoadmapResponse
from roadmap_gateway.services import roadmap_service

logger = get_logger(__name__)


class RoadmapStore(Protocol):
    async def create(self, user_id: str, category: str, course: str, milestones: list[Milestone]) -> str: ...

    async def update_progress(self, roadmap_id: str, milestones: list[Milestone]) -> None: ...

    async def get_latest(self, user_id: str) -> Roadmap | None: ...


class DatabaseRoadmapStore:
    """Talks to the database directly through ``roadmap_service``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory

    async def create(self, user_id: str, category: str, course: str, milestones: list[Milestone]) -> str:
        async with get_db_session(self._session_factory) as db:
            return await roadmap_service.create_roadmap(db, user_id, category, course, milestones)

    async def update_progress(self, roadmap_id: str, milestones: list[Milestone]) -> None:
        async with get_db_session(self._session_factory) as db:
            await roadmap_service.update_roadmap_progress(db, roadmap_id, milestones)

    async def get_latest(self, user_id: str) -> Roadmap | None:
        try:
            async with get_db_session(self._session_factory) as db:
                stored = await roadmap_service.get_latest_roadmap_by_user(db, user_id)
                if stored is None:
                    return None
                return Roadmap(
                    id=stored.id,
                    category=stored.category,
                    course=stored.course,
                    milestones=roadmap_service.snapshot_milestones(stored),
                )
        except SQLAlchemyError as e:
            logger.warning("Restoring latest roadmap failed", user_id=user_id, error=str(e))
            return None


class HttpRoadmapStore:
    """Talks to the gateway's ``/api/roadmaps`` routes as the signed-in user."""

    def __init__(
        self,
        base_url: str,
        auth: AuthStateProvider,
        timeout: float,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._timeout = timeout
        self._client = client

    async def _request(self, method: str, path: str, user_id: str, **kwargs) -> httpx.Response:
        headers = {USER_ID_HEADER: user_id}
        url = f"{self._base_url}{path}"
        if self._client is not None:
            return await self._client.request(method, url, headers=headers, timeout=self._timeout, **kwargs)
        async with httpx.AsyncClient() as client:
            return await client.request(method, url, headers=headers, timeout=self._timeout, **kwargs)

    async def create(self, user_id: str, category: str, course: str, milestones: list[Milestone]) -> str:
        body = {
            "category": category,
            "course": course,
            "milestones": [m.model_dump(mode="json", by_alias=True) for m in milestones],
        }
        try:
            response = await self._request("POST", "/api/roadmaps", user_id, json=body)
            response.raise_for_status()
            return str(response.json()["id"])
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            roadmap_id = roadmap_service.fallback_roadmap_id()
            logger.warning("Remote roadmap save failed, using local id", roadmap_id=roadmap_id, error=str(e))
            return roadmap_id

    async def update_progress(self, roadmap_id: str, milestones: list[Milestone]) -> None:
        user_id = self._auth.user_id
        if not user_id:
            return
        body = {"milestones": [m.model_dump(mode="json", by_alias=True) for m in milestones]}
        try:
            response = await self._request("PATCH", f"/api/roadmaps/{roadmap_id}/progress", user_id, json=body)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Remote progress update failed", roadmap_id=roadmap_id, error=str(e))

    async def get_latest(self, user_id: str) -> Roadmap | None:
        try:
            response = await self._request("GET", "/api/roadmaps/latest", user_id)
            if response.status_code == httpx.codes.NOT_FOUND:
                return None
            response.raise_for_status()
            stored = StoredRoadmapResponse.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Fetching latest roadmap failed", error=str(e))
            return None
        return Roadmap(id=stored.id, category=stored.category, course=stored.course, milestones=stored.milestones)
