"""Client-side orchestration of roadmap generation and progress."""

import asyncio

from roadmap_gateway.client.gateway_client import GatewayClient
from roadmap_gateway.client.stores import RoadmapStore
from roadmap_gateway.core.auth import AuthStateProvider
from roadmap_gateway.core.logging import get_logger
from roadmap_gateway.schemas.roadmap import GenerationPreferences, Milestone, Roadmap
from roadmap_gateway.services.roadmap_service import fallback_roadmap_id

logger = get_logger(__name__)


class RoadmapOrchestrator:
    """Requests roadmaps from the gateway and keeps them persisted.

    - ``generate`` issues one gateway call; concurrent calls for the same
      (category, course) share it. A save follows when a user is signed in.
    - ``toggle_task`` updates the roadmap locally and persists progress in the
      background without making the caller wait.
    - Signing out or switching users drops the current roadmap and cancels
      in-flight generations.
    """

    def __init__(
        self,
        gateway: GatewayClient,
        store: RoadmapStore,
        auth: AuthStateProvider,
        preferences: GenerationPreferences | None = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._auth = auth
        self._preferences = preferences
        self._inflight: dict[tuple[str, str], asyncio.Task[Roadmap]] = {}
        self._background: set[asyncio.Task[None]] = set()
        self._unsubscribe = auth.subscribe(self._on_auth_change)
        self.current: Roadmap | None = None

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self, category: str, course: str) -> Roadmap:
        """Generate a roadmap for already-validated input.

        Raises:
            GenerationError: If the gateway could not produce a roadmap
            asyncio.CancelledError: If the request was cancelled via ``cancel``
        """
        key = (category, course)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._generate(category, course))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        else:
            logger.info("Joining in-flight generation", category=category, course=course)

        # Only ``cancel`` stops the shared request, not a waiter going away
        return await asyncio.shield(task)

    def cancel(self, category: str, course: str) -> bool:
        """Stop waiting for an in-flight generation. Returns False if none was running."""
        task = self._inflight.get((category, course))
        if task is None or task.done():
            return False
        task.cancel()
        logger.info("Generation cancelled", category=category, course=course)
        return True

    def _forget(self, key: tuple[str, str], task: asyncio.Task[Roadmap]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _generate(self, category: str, course: str) -> Roadmap:
        milestones = await self._gateway.generate(category, course, self._preferences)
        roadmap = Roadmap(category=category, course=course, milestones=milestones)

        user_id = self._auth.user_id
        if user_id:
            roadmap.id = await self._save(user_id, roadmap)

        self.current = roadmap
        logger.info(
            "Roadmap ready",
            roadmap_id=roadmap.id,
            milestone_count=len(milestones),
            saved=roadmap.id is not None,
        )
        return roadmap

    async def _save(self, user_id: str, roadmap: Roadmap) -> str:
        try:
            return await self._store.create(user_id, roadmap.category, roadmap.course, roadmap.milestones)
        except Exception:
            # Best-effort: the roadmap is returned even when the save fails
            roadmap_id = fallback_roadmap_id()
            logger.warning("Saving roadmap failed, using local id", roadmap_id=roadmap_id, exc_info=True)
            return roadmap_id

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def toggle_task(self, roadmap: Roadmap, milestone_index: int, task_index: int) -> Roadmap:
        """Flip one task and return the updated roadmap.

        Raises:
            IndexError: If the milestone or task does not exist
        """
        updated = roadmap.model_copy(deep=True)
        task = updated.milestones[milestone_index].tasks[task_index]
        task.completed = not task.completed

        self.current = updated
        if updated.id and self._auth.user_id:
            self._schedule_progress_update(updated.id, updated.milestones)
        return updated

    def _schedule_progress_update(self, roadmap_id: str, milestones: list[Milestone]) -> None:
        snapshot = [m.model_copy(deep=True) for m in milestones]
        background = asyncio.create_task(self._persist_progress(roadmap_id, snapshot))
        self._background.add(background)
        background.add_done_callback(self._background.discard)

    async def _persist_progress(self, roadmap_id: str, milestones: list[Milestone]) -> None:
        try:
            await self._store.update_progress(roadmap_id, milestones)
        except Exception:
            logger.warning("Progress update failed", roadmap_id=roadmap_id, exc_info=True)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def restore_latest(self) -> Roadmap | None:
        """Load the signed-in user's latest stored roadmap, if any."""
        user_id = self._auth.user_id
        if not user_id:
            return None
        roadmap = await self._store.get_latest(user_id)
        if roadmap is not None:
            self.current = roadmap
        return roadmap

    def _on_auth_change(self, user_id: str | None) -> None:
        self.current = None
        for key in list(self._inflight):
            self.cancel(*key)

    async def drain(self) -> None:
        """Wait for background progress updates to finish."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def aclose(self) -> None:
        self._unsubscribe()
        await self.drain()
