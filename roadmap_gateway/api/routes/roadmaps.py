"""Roadmap API routes."""

from fastapi import APIRouter, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from roadmap_gateway.api.deps import DBDep, GeneratorDep
from roadmap_gateway.core.auth import CurrentUserDep
from roadmap_gateway.core.exceptions import GenerationError
from roadmap_gateway.core.logging import get_logger
from roadmap_gateway.models.roadmap import Roadmap
from roadmap_gateway.schemas.roadmap import (
    ErrorResponse,
    GenerateRoadmapRequest,
    GenerateRoadmapResponse,
    RoadmapCreate,
    RoadmapCreated,
    RoadmapProgressUpdate,
    StoredRoadmapResponse,
)
from roadmap_gateway.services import roadmap_service

logger = get_logger(__name__)
router = APIRouter(prefix="/roadmaps", tags=["roadmaps"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _stored_response(roadmap: Roadmap) -> dict:
    return StoredRoadmapResponse(
        id=roadmap.id,
        category=roadmap.category,
        course=roadmap.course,
        title=roadmap.title,
        overview=roadmap.overview,
        milestone_count=roadmap.milestone_count,
        progress_pct=roadmap.progress_pct,
        is_completed=roadmap.is_completed,
        milestones=roadmap_service.snapshot_milestones(roadmap),
        created_at=roadmap.created_at,
        updated_at=roadmap.updated_at,
    ).model_dump(mode="json", by_alias=True)


@router.post(
    "/generate",
    response_model=GenerateRoadmapResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def generate_roadmap(request: Request, generator: GeneratorDep) -> JSONResponse:
    """Generate a roadmap for ``{category, course, preferences}``.

    Returns ``{"milestones": [...]}`` with ``Cache-Control: no-store``.
    """
    try:
        body = await request.json()
    except ValueError as e:
        logger.warning("Malformed generation request body", error=str(e))
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")

    data = GenerateRoadmapRequest.model_validate(body if isinstance(body, dict) else {})
    if not data.category or not data.course:
        return _error(status.HTTP_400_BAD_REQUEST, "Missing category or course")

    try:
        milestones = await generator.generate(data.category, data.course, data.preferences)
    except GenerationError as e:
        return _error(status.HTTP_502_BAD_GATEWAY, e.message)
    except Exception:
        logger.error("Roadmap generation crashed", category=data.category, course=data.course, exc_info=True)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")

    content = GenerateRoadmapResponse(milestones=milestones).model_dump(mode="json", by_alias=True)
    return JSONResponse(content=content, headers={"Cache-Control": "no-store"})


# Registered ahead of ``/{roadmap_id}`` so ``GET /generate`` is not read as an id
@router.api_route("/generate", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def generate_roadmap_method_not_allowed() -> None:
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method Not Allowed",
        headers={"Allow": "POST"},
    )


@router.post("", response_model=RoadmapCreated, status_code=status.HTTP_201_CREATED)
async def create_roadmap(data: RoadmapCreate, user_id: CurrentUserDep, db: DBDep) -> RoadmapCreated:
    """Store a generated roadmap for the caller.

    Always answers with an id; when the store is down it is a local one.
    """
    roadmap_id = await roadmap_service.create_roadmap(
        db,
        user_id=user_id,
        category=data.category,
        course=data.course,
        milestones=data.milestones,
    )
    return RoadmapCreated(id=roadmap_id)


@router.patch("/{roadmap_id}/progress", status_code=status.HTTP_204_NO_CONTENT)
async def update_roadmap_progress(
    roadmap_id: str,
    data: RoadmapProgressUpdate,
    user_id: CurrentUserDep,
    db: DBDep,
) -> Response:
    """Replace the stored milestones and progress (best-effort)."""
    await roadmap_service.update_roadmap_progress(db, roadmap_id, data.milestones, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/latest", response_model=StoredRoadmapResponse)
async def get_latest_roadmap(user_id: CurrentUserDep, db: DBDep) -> dict:
    """Get the caller's most recently created roadmap."""
    roadmap = await roadmap_service.get_latest_roadmap_by_user(db, user_id)
    if not roadmap:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No roadmap found",
        )
    return _stored_response(roadmap)


@router.get("/{roadmap_id}", response_model=StoredRoadmapResponse)
async def get_roadmap(roadmap_id: str, user_id: CurrentUserDep, db: DBDep) -> dict:
    """Get one of the caller's roadmaps by ID."""
    roadmap = await roadmap_service.get_roadmap(db, roadmap_id)
    if not roadmap or roadmap.user_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Roadmap not found",
        )
    return _stored_response(roadmap)
