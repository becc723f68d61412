"""Database models."""

from roadmap_gateway.models.roadmap import Roadmap

__all__ = [
    "Roadmap",
]
