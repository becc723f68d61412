"""API routes."""

from roadmap_gateway.api.routes import roadmaps

__all__ = ["roadmaps"]
