"""Resource enrichment: replace model-suggested links with live search hits."""

import re
from urllib.parse import urlparse

import httpx

from roadmap_gateway.core.config import Settings
from roadmap_gateway.core.exceptions import SearchError
from roadmap_gateway.core.logging import get_logger
from roadmap_gateway.enrichment.search import SearchApiClient, SearchResult
from roadmap_gateway.schemas.roadmap import (
    GenerationPreferences,
    Milestone,
    MilestoneResource,
    ResourceType,
)

logger = get_logger(__name__)


def resolve_search_api_key(settings: Settings, preferences: GenerationPreferences) -> str | None:
    """Server configuration wins; the request may supply a key otherwise."""
    return settings.SEARCHAPI_API_KEY or preferences.search_api_key


def resolve_domains(settings: Settings, preferences: GenerationPreferences) -> list[str]:
    if preferences.allowed_domains is not None:
        return list(preferences.allowed_domains)
    if preferences.free_only:
        return list(settings.FREE_RESOURCE_DOMAINS)
    return list(settings.DEFAULT_RESOURCE_DOMAINS)


def is_placeholder_url(url: str, placeholder_domain: str) -> bool:
    """True if ``url`` points at the scaffolding domain (or a subdomain of it)."""
    if not url:
        return False
    host = (urlparse(url).hostname or "").lower()
    placeholder = placeholder_domain.lower()
    if host:
        return host == placeholder or host.endswith("." + placeholder)
    return placeholder in url.lower()


class ResourceEnricher:
    """Fills each milestone's resources from domain-scoped web searches.

    Milestones are processed one at a time and domains one at a time, so at
    most one search is in flight per generation.
    """

    def __init__(self, search: SearchApiClient, api_key: str, settings: Settings) -> None:
        self._search = search
        self._api_key = api_key
        self._settings = settings
        self._course_domain = re.compile(settings.COURSE_DOMAIN_PATTERN, re.IGNORECASE)
        self._course_keyword = re.compile(settings.COURSE_KEYWORD_PATTERN, re.IGNORECASE)

    def classify(self, result: SearchResult) -> ResourceType:
        parsed = urlparse(result.url)
        source = f"{parsed.hostname or ''}{parsed.path}"
        if self._course_domain.search(source):
            return ResourceType.COURSE
        if self._course_keyword.search(result.title) or self._course_keyword.search(result.url):
            return ResourceType.COURSE
        return ResourceType.ARTICLE

    async def enrich(self, milestone: Milestone, domains: list[str], max_resources: int) -> None:
        """Replace ``milestone.resources`` with at most ``max_resources`` links.

        Search hits come first (one COURSE and one ARTICLE when available),
        then leftovers, then the model's own non-placeholder suggestions.
        """
        first_skill = milestone.skills[0] if milestone.skills else ""
        query = f"{milestone.title} {first_skill}".strip()

        courses: list[MilestoneResource] = []
        articles: list[MilestoneResource] = []

        for domain in domains:
            if len(courses) + len(articles) >= max_resources:
                break
            try:
                results = await self._search.search(query, domain, self._api_key)
            except (SearchError, httpx.HTTPError, TimeoutError) as e:
                logger.warning("Search failed, skipping domain", domain=domain, error=str(e))
                continue

            for result in results:
                kind = self.classify(result)
                bucket = courses if kind is ResourceType.COURSE else articles
                if any(r.url == result.url for r in bucket):
                    continue
                bucket.append(
                    MilestoneResource(
                        type=kind,
                        title=result.title,
                        description=result.snippet or "Relevant resource",
                        url=result.url,
                    )
                )

        combined: list[MilestoneResource] = []

        def add(resource: MilestoneResource) -> None:
            if len(combined) < max_resources and all(r.url != resource.url for r in combined):
                combined.append(resource)

        if courses:
            add(courses[0])
        if articles:
            add(articles[0])
        for leftover in courses[1:] + articles[1:]:
            add(leftover)

        for suggested in milestone.resources:
            if suggested.url and not is_placeholder_url(suggested.url, self._settings.PLACEHOLDER_DOMAIN):
                add(suggested)

        logger.debug(
            "Milestone enriched",
            milestone_id=milestone.id,
            searched_courses=len(courses),
            searched_articles=len(articles),
            resource_count=len(combined),
        )
        milestone.resources = combined
