"""Roadmap drafting with AI providers."""

from roadmap_gateway.generation.generator import RoadmapGenerator
from roadmap_gateway.generation.providers import GeminiProvider, OpenAIProvider, Provider, build_providers

__all__ = ["RoadmapGenerator", "Provider", "OpenAIProvider", "GeminiProvider", "build_providers"]
