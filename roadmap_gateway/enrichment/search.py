"""SearchAPI client for domain-scoped Google searches."""

from dataclasses import dataclass

import httpx

from roadmap_gateway.core.config import Settings
from roadmap_gateway.core.exceptions import SearchError
from roadmap_gateway.core.logging import get_logger

logger = get_logger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


@dataclass(frozen=True)
class SearchResult:
    title: str
    url: str
    snippet: str = ""


class SearchApiClient:
    """Runs ``{query} site:{domain}`` searches against SearchAPI.

    Searches are idempotent GETs, so a failed attempt is retried
    ``SEARCH_RETRIES`` times; every attempt carries ``SEARCH_TIMEOUT_SECONDS``.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client

    async def _get_with_retry(self, client: httpx.AsyncClient, params: dict) -> httpx.Response:
        retries = max(0, self._settings.SEARCH_RETRIES)
        for attempt in range(retries + 1):
            try:
                response = await client.get(self._settings.SEARCHAPI_BASE_URL, params=params)
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status not in RETRYABLE_STATUS or attempt == retries:
                    raise SearchError(f"search returned HTTP {status}") from e
                logger.warning("Search request failed, retrying", status=status, attempt=attempt + 1)
            except httpx.TransportError as e:
                if attempt == retries:
                    raise SearchError(f"search transport error: {e}") from e
                logger.warning("Search request failed, retrying", error=str(e), attempt=attempt + 1)
        raise SearchError("search retries exhausted")

    async def search(self, query: str, domain: str, api_key: str) -> list[SearchResult]:
        """Return organic results for ``query`` restricted to ``domain``."""
        params = {
            "engine": "google",
            "q": f"{query} site:{domain}",
            "api_key": api_key,
        }

        if self._client is not None:
            response = await self._get_with_retry(self._client, params)
        else:
            async with httpx.AsyncClient(timeout=self._settings.SEARCH_TIMEOUT_SECONDS) as client:
                response = await self._get_with_retry(client, params)

        try:
            data = response.json()
        except ValueError as e:
            raise SearchError("search returned invalid JSON") from e

        organic = data.get("organic_results") if isinstance(data, dict) else None
        results = []
        for item in organic if isinstance(organic, list) else []:
            if not isinstance(item, dict):
                continue
            title, link = item.get("title"), item.get("link")
            if not title or not link:
                continue
            results.append(SearchResult(title=str(title), url=str(link), snippet=str(item.get("snippet") or "")))

        logger.debug("Search completed", domain=domain, result_count=len(results))
        return results
