"""Roadmap persistence and progress tracking.

Writes are best-effort: a failed insert yields a client-side id so the
roadmap stays usable, and a failed progress update is dropped. Nothing here
uses optimistic concurrency; the last writer wins.
"""

import asyncio
import secrets
import string
import time

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap_gateway.core.config import get_settings
from roadmap_gateway.core.logging import get_logger
from roadmap_gateway.models.roadmap import Roadmap
from roadmap_gateway.schemas.roadmap import Milestone, RoadmapProgress

logger = get_logger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


# ============================================================================
# Progress Calculation
# ============================================================================


def compute_progress(milestones: list[Milestone]) -> RoadmapProgress:
    """Derive progress statistics from the milestone/task tree.

    Pure: no I/O, no hidden state. ``current_milestone_index`` is the first
    milestone with an incomplete task, or the last index when all are done.
    """
    return RoadmapProgress.from_milestones(milestones)


def fallback_roadmap_id() -> str:
    """Client-side id used when the store is unreachable: ``{epoch_ms}-{base36}``."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(11))
    return f"{int(time.time() * 1000)}-{suffix}"


def _snapshot(milestones: list[Milestone]) -> list[dict[str, object]]:
    return [m.model_dump(mode="json", by_alias=True) for m in milestones]


def _apply_progress(roadmap: Roadmap, milestones: list[Milestone]) -> None:
    stats = compute_progress(milestones)
    roadmap.milestone_count = len(milestones)
    roadmap.progress_pct = stats.progress_pct
    roadmap.is_completed = stats.is_completed
    roadmap.milestones_snapshot = _snapshot(milestones)


# ============================================================================
# Writes
# ============================================================================


async def _upsert_roadmap(
    db: AsyncSession,
    user_id: str,
    category: str,
    course: str,
    milestones: list[Milestone],
) -> str:
    result = await db.execute(
        select(Roadmap).where(
            Roadmap.user_id == user_id,
            Roadmap.category == category,
            Roadmap.course == course,
        )
    )
    roadmap = result.scalar_one_or_none()
    if roadmap is None:
        roadmap = Roadmap(user_id=user_id, category=category, course=course)
        db.add(roadmap)

    roadmap.title = f"{category} - {course}"
    roadmap.overview = milestones[0].overview if milestones else ""
    _apply_progress(roadmap, milestones)

    await db.commit()
    await db.refresh(roadmap)
    return roadmap.id


async def create_roadmap(
    db: AsyncSession,
    user_id: str,
    category: str,
    course: str,
    milestones: list[Milestone],
) -> str:
    """Store a roadmap with its progress snapshot and return its id.

    Upserts on (user_id, category, course). If the store fails or times
    out, returns a locally generated id instead of raising.

    Note: This function commits the transaction.
    """
    settings = get_settings()
    try:
        async with asyncio.timeout(settings.PERSISTENCE_TIMEOUT_SECONDS):
            roadmap_id = await _upsert_roadmap(db, user_id, category, course, milestones)
    except (SQLAlchemyError, TimeoutError) as e:
        await _safe_rollback(db)
        roadmap_id = fallback_roadmap_id()
        logger.warning(
            "Roadmap persistence failed, using local id",
            user_id=user_id,
            roadmap_id=roadmap_id,
            error=str(e),
        )
        return roadmap_id

    logger.info("Roadmap saved", roadmap_id=roadmap_id, user_id=user_id, category=category, course=course)
    return roadmap_id


async def update_roadmap_progress(
    db: AsyncSession,
    roadmap_id: str,
    milestones: list[Milestone],
    user_id: str | None = None,
) -> None:
    """Overwrite the stored snapshot and progress. Failures are logged and dropped.

    With ``user_id``, a roadmap owned by someone else is treated as unknown.

    Note: This function commits the transaction.
    """
    settings = get_settings()
    try:
        async with asyncio.timeout(settings.PERSISTENCE_TIMEOUT_SECONDS):
            roadmap = await db.get(Roadmap, roadmap_id)
            if roadmap is None or (user_id is not None and roadmap.user_id != user_id):
                logger.info("Progress update for unknown roadmap ignored", roadmap_id=roadmap_id, user_id=user_id)
                return
            _apply_progress(roadmap, milestones)
            await db.commit()
    except (SQLAlchemyError, TimeoutError) as e:
        await _safe_rollback(db)
        logger.warning("Roadmap progress update failed", roadmap_id=roadmap_id, error=str(e))
        return

    logger.debug("Roadmap progress updated", roadmap_id=roadmap_id, progress_pct=roadmap.progress_pct)


async def _safe_rollback(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except SQLAlchemyError as e:
        logger.debug("Rollback after persistence failure failed", error=str(e))


# ============================================================================
# Reads
# ============================================================================


async def get_roadmap(db: AsyncSession, roadmap_id: str) -> Roadmap | None:
    """Get a roadmap by ID; ``None`` if absent or unreadable."""
    try:
        return await db.get(Roadmap, roadmap_id)
    except SQLAlchemyError as e:
        logger.warning("Fetch roadmap failed", roadmap_id=roadmap_id, error=str(e))
        return None


async def get_latest_roadmap_by_user(db: AsyncSession, user_id: str) -> Roadmap | None:
    """Most recently created roadmap for ``user_id``; ``None`` if absent or unreadable."""
    try:
        result = await db.execute(
            select(Roadmap)
            .where(Roadmap.user_id == user_id)
            .order_by(Roadmap.created_at.desc())
            .limit(1)
        )
    except SQLAlchemyError as e:
        logger.warning("Fetch latest roadmap failed", user_id=user_id, error=str(e))
        return None
    return result.scalar_one_or_none()


def snapshot_milestones(roadmap: Roadmap) -> list[Milestone]:
    """Rebuild milestones from a stored JSON snapshot."""
    return [Milestone.model_validate(m) for m in roadmap.milestones_snapshot or []]
