"""Coerce whatever a provider returned into canonical milestones."""

from typing import Any

from roadmap_gateway.core.logging import get_logger
from roadmap_gateway.schemas.roadmap import (
    Milestone,
    MilestoneResource,
    MilestoneTask,
    ResourceType,
)

logger = get_logger(__name__)

MAX_SKILLS = 4
MAX_TITLE_LENGTH = 60


def _text(value: Any, default: str = "") -> str:
    """Stringify ``value``, falling back to ``default`` for falsy values."""
    if not value:
        return default
    return str(value)


def _trim(text: str, limit: int) -> str:
    text = text.strip()
    return text if len(text) <= limit else text[: limit - 1].rstrip() + "…"


def _normalize_task(raw: Any, milestone_index: int, task_index: int) -> MilestoneTask:
    default_id = f"task-{milestone_index + 1}-{task_index + 1}"
    if isinstance(raw, str):
        title = _trim(raw, MAX_TITLE_LENGTH)
        return MilestoneTask(
            id=default_id,
            title=title or f"Task {task_index + 1}",
            description=title,
        )
    raw = raw if isinstance(raw, dict) else {}
    return MilestoneTask(
        id=_text(raw.get("id"), default_id),
        title=_text(raw.get("title"), "Task"),
        description=_text(raw.get("description")),
        duration=_text(raw.get("duration"), "1 hour"),
        completed=bool(raw.get("completed") or False),
    )


def _normalize_resource(raw: Any) -> MilestoneResource:
    if isinstance(raw, str):
        return MilestoneResource(type=ResourceType.ARTICLE, title=_trim(raw, MAX_TITLE_LENGTH), url="")
    raw = raw if isinstance(raw, dict) else {}
    kind = ResourceType.ARTICLE if raw.get("type") == ResourceType.ARTICLE.value else ResourceType.COURSE
    return MilestoneResource(
        type=kind,
        title=_text(raw.get("title"), "Resource"),
        description=_text(raw.get("description")),
        url=_text(raw.get("url")),
    )


def _normalize_milestone(raw: Any, index: int) -> Milestone:
    raw = raw if isinstance(raw, dict) else {}
    tasks = raw.get("tasks") if isinstance(raw.get("tasks"), list) else []
    resources = raw.get("resources") if isinstance(raw.get("resources"), list) else []
    skills = raw.get("skills") if isinstance(raw.get("skills"), list) else []

    return Milestone(
        id=_text(raw.get("id"), f"milestone-{index + 1}"),
        title=_text(raw.get("title") or raw.get("milestone"), f"Milestone {index + 1}"),
        overview=_text(raw.get("overview") or raw.get("description")),
        skills=[str(s) for s in skills][:MAX_SKILLS],
        timeframe=_text(raw.get("timeframe") or raw.get("duration"), f"Month {index + 1}"),
        resources=[_normalize_resource(r) for r in resources],
        tasks=[_normalize_task(t, index, j) for j, t in enumerate(tasks)],
    )


def ensure_structure(raw: Any) -> list[Milestone] | None:
    """Return canonical milestones, or ``None`` if ``raw`` is structurally invalid.

    Accepts ``{"milestones": [...]}`` or a bare milestone list. A payload
    without at least one milestone is invalid so the next provider is tried.
    """
    if isinstance(raw, list):
        items = raw
    elif isinstance(raw, dict) and isinstance(raw.get("milestones"), list):
        items = raw["milestones"]
    else:
        logger.warning("Invalid roadmap structure", payload_type=type(raw).__name__)
        return None

    if not items:
        logger.warning("Roadmap payload contained no milestones")
        return None

    return [_normalize_milestone(m, i) for i, m in enumerate(items)]
