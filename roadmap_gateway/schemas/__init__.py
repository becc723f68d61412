"""Pydantic schemas."""

from roadmap_gateway.schemas.roadmap import (
    ErrorResponse,
    GenerateRoadmapRequest,
    GenerateRoadmapResponse,
    GenerationPreferences,
    Milestone,
    MilestoneResource,
    MilestoneTask,
    ResourceType,
    Roadmap,
    RoadmapCreate,
    RoadmapCreated,
    RoadmapProgress,
    RoadmapProgressUpdate,
    StoredRoadmapResponse,
)

__all__ = [
    "ResourceType",
    "MilestoneResource",
    "MilestoneTask",
    "Milestone",
    "Roadmap",
    "RoadmapProgress",
    "GenerationPreferences",
    "GenerateRoadmapRequest",
    "GenerateRoadmapResponse",
    "ErrorResponse",
    "RoadmapCreate",
    "RoadmapCreated",
    "RoadmapProgressUpdate",
    "StoredRoadmapResponse",
]
