"""Roadmap schemas for API requests and responses.

Field names are snake_case in Python and camelCase on the wire
(``maxResources``, ``progressPct``...), matching what the mobile client sends.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from roadmap_gateway.core.config import get_settings


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResourceType(str, Enum):
    """Kind of external learning asset."""

    COURSE = "COURSE"
    ARTICLE = "ARTICLE"


class MilestoneResource(CamelModel):
    """A link to an external course or article."""

    type: ResourceType
    title: str
    description: str = ""
    url: str


class MilestoneTask(CamelModel):
    """Atomic unit of work; ``completed`` is only ever flipped by the user."""

    id: str
    title: str
    description: str = ""
    duration: str = "1 hour"
    completed: bool = False


class Milestone(CamelModel):
    """One stage of a linear learning path."""

    id: str
    title: str
    overview: str = ""
    skills: list[str] = Field(default_factory=list)
    timeframe: str = ""
    resources: list[MilestoneResource] = Field(default_factory=list)
    tasks: list[MilestoneTask] = Field(default_factory=list)


# ============================================================================
# Progress
# ============================================================================


class RoadmapProgress(CamelModel):
    """Progress derived from the milestone/task tree."""

    total_tasks: int
    completed_tasks: int
    progress_pct: int
    current_milestone_index: int
    is_completed: bool

    @classmethod
    def from_milestones(cls, milestones: list[Milestone]) -> "RoadmapProgress":
        total = sum(len(m.tasks) for m in milestones)
        completed = sum(1 for m in milestones for t in m.tasks if t.completed)
        # Half-up rounding, so 41.67 -> 42 and 12.5 -> 13
        pct = (200 * completed + total) // (2 * total) if total > 0 else 0

        # A milestone without tasks counts as complete
        current = next(
            (i for i, m in enumerate(milestones) if not all(t.completed for t in m.tasks)),
            max(0, len(milestones) - 1),
        )
        return cls(
            total_tasks=total,
            completed_tasks=completed,
            progress_pct=pct,
            current_milestone_index=current,
            is_completed=total > 0 and completed == total,
        )


class Roadmap(CamelModel):
    """A generated roadmap as held by the client.

    ``id`` is absent until the roadmap has been persisted (or given a local
    fallback id). Progress is recomputed from ``milestones`` on every access.
    """

    id: str | None = None
    category: str
    course: str
    milestones: list[Milestone]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def progress(self) -> RoadmapProgress:
        return RoadmapProgress.from_milestones(self.milestones)

    @computed_field(alias="isCompleted")  # type: ignore[prop-decorator]
    @property
    def is_completed(self) -> bool:
        return self.progress.is_completed


# ============================================================================
# Generation
# ============================================================================


class GenerationPreferences(CamelModel):
    """Per-request knobs for generation and enrichment.

    Parsing is lenient: values of the wrong type fall back to defaults
    instead of failing the request.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    search_api_key: str | None = None
    free_only: bool = False
    max_resources: int = 3
    allowed_domains: list[str] | None = None
    openai_api_key: str | None = None
    gemini_api_key: str | None = None

    @field_validator("search_api_key", "openai_api_key", "gemini_api_key", mode="before")
    @classmethod
    def _keep_string_keys(cls, value: Any) -> str | None:
        return value if isinstance(value, str) and value else None

    @field_validator("free_only", mode="before")
    @classmethod
    def _truthy(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("max_resources", mode="before")
    @classmethod
    def _clamp_max_resources(cls, value: Any) -> int:
        settings = get_settings()
        try:
            requested = int(float(value)) if value is not None else 0
        except (TypeError, ValueError, OverflowError):
            requested = 0
        if not requested:
            requested = settings.DEFAULT_MAX_RESOURCES
        return max(settings.MIN_RESOURCES, min(settings.MAX_RESOURCES, requested))

    @field_validator("allowed_domains", mode="before")
    @classmethod
    def _domain_list(cls, value: Any) -> list[str] | None:
        if not isinstance(value, list):
            return None
        return [d for d in value if isinstance(d, str) and d]

    def public_view(self) -> dict[str, Any]:
        """Preferences with credentials removed, safe to embed in a prompt."""
        return self.model_dump(
            by_alias=True,
            exclude={"search_api_key", "openai_api_key", "gemini_api_key"},
            exclude_none=True,
        )


class GenerateRoadmapRequest(CamelModel):
    """Body of ``POST /api/roadmaps/generate``."""

    category: str | None = None
    course: str | None = None
    preferences: GenerationPreferences = Field(default_factory=GenerationPreferences)

    @field_validator("category", "course", mode="before")
    @classmethod
    def _text_or_none(cls, value: Any) -> str | None:
        if value is None or isinstance(value, (dict, list)):
            return None
        text = str(value).strip()
        return text or None

    @field_validator("preferences", mode="before")
    @classmethod
    def _object_or_empty(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}


class GenerateRoadmapResponse(CamelModel):
    milestones: list[Milestone]


class ErrorResponse(BaseModel):
    error: str


# ============================================================================
# Persistence
# ============================================================================


class RoadmapCreate(CamelModel):
    """Persist a freshly generated roadmap for the calling user."""

    category: str
    course: str
    milestones: list[Milestone]


class RoadmapCreated(CamelModel):
    id: str


class RoadmapProgressUpdate(CamelModel):
    milestones: list[Milestone]


class StoredRoadmapResponse(CamelModel):
    """A persisted roadmap with its denormalized progress columns."""

    id: str
    category: str
    course: str
    title: str
    overview: str
    milestone_count: int
    progress_pct: int
    is_completed: bool
    milestones: list[Milestone]
    created_at: datetime
    updated_at: datetime
