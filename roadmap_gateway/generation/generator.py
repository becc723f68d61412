"""Roadmap generation: provider chain, normalization and enrichment."""

from roadmap_gateway.core.config import Settings
from roadmap_gateway.core.exceptions import GenerationError, ProviderError
from roadmap_gateway.core.logging import get_logger
from roadmap_gateway.enrichment.engine import (
    ResourceEnricher,
    is_placeholder_url,
    resolve_domains,
    resolve_search_api_key,
)
from roadmap_gateway.enrichment.search import SearchApiClient
from roadmap_gateway.generation.llm_utils import parse_llm_json_response
from roadmap_gateway.generation.normalize import ensure_structure
from roadmap_gateway.generation.prompts import ROADMAP_SYSTEM_PROMPT, build_user_prompt
from roadmap_gateway.generation.providers import Provider
from roadmap_gateway.schemas.roadmap import GenerationPreferences, Milestone

logger = get_logger(__name__)


class RoadmapGenerator:
    """Produces a finalized milestone list for one (category, course) request."""

    def __init__(
        self,
        providers: list[Provider],
        search: SearchApiClient,
        settings: Settings,
    ) -> None:
        self._providers = providers
        self._search = search
        self._settings = settings

    async def generate(
        self,
        category: str,
        course: str,
        preferences: GenerationPreferences,
    ) -> list[Milestone]:
        """Generate, enrich and clean a roadmap.

        Raises:
            GenerationError: If no provider produced a structurally valid roadmap
        """
        milestones = await self._draft(category, course, preferences)

        api_key = resolve_search_api_key(self._settings, preferences)
        if api_key:
            enricher = ResourceEnricher(self._search, api_key, self._settings)
            domains = resolve_domains(self._settings, preferences)
            for milestone in milestones:
                await enricher.enrich(milestone, domains, preferences.max_resources)
        else:
            logger.info("No search key configured, skipping enrichment")

        self._drop_placeholder_resources(milestones)
        return milestones

    async def _draft(
        self,
        category: str,
        course: str,
        preferences: GenerationPreferences,
    ) -> list[Milestone]:
        user_prompt = build_user_prompt(category, course, preferences)

        for provider in self._providers:
            api_key = provider.resolve_api_key(preferences)
            if not api_key:
                logger.info("Provider not configured, skipping", provider=provider.name)
                continue

            try:
                content = await provider.complete(ROADMAP_SYSTEM_PROMPT, user_prompt, api_key)
                payload = parse_llm_json_response(content)
            except (ProviderError, ValueError) as e:
                logger.warning("Provider failed, trying next", provider=provider.name, error=str(e))
                continue

            milestones = ensure_structure(payload)
            if milestones is None:
                logger.warning("Provider returned an invalid roadmap, trying next", provider=provider.name)
                continue

            logger.info(
                "Roadmap drafted",
                provider=provider.name,
                category=category,
                course=course,
                milestone_count=len(milestones),
            )
            return milestones

        logger.error("All providers failed", category=category, course=course)
        raise GenerationError("AI generation failed")

    def _drop_placeholder_resources(self, milestones: list[Milestone]) -> None:
        placeholder = self._settings.PLACEHOLDER_DOMAIN
        for milestone in milestones:
            milestone.resources = [
                r for r in milestone.resources if r.url and not is_placeholder_url(r.url, placeholder)
            ]
