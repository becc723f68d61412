"""Service layer modules."""

from roadmap_gateway.services import roadmap_service

__all__ = [
    "roadmap_service",
]
