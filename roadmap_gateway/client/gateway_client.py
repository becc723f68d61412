"""HTTP client for the generation endpoint."""

import httpx

from roadmap_gateway.core.exceptions import GenerationError
from roadmap_gateway.core.logging import get_logger
from roadmap_gateway.schemas.roadmap import GenerateRoadmapResponse, GenerationPreferences, Milestone

logger = get_logger(__name__)

GENERATE_PATH = "/api/roadmaps/generate"
UNREACHABLE_MESSAGE = "Could not reach the roadmap service. Check your connection and try again."


class GatewayClient:
    """Calls ``POST /api/roadmaps/generate`` once per request, never retrying."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    async def _post(self, client: httpx.AsyncClient, body: dict) -> httpx.Response:
        return await client.post(f"{self._base_url}{GENERATE_PATH}", json=body, timeout=self._timeout)

    async def generate(
        self,
        category: str,
        course: str,
        preferences: GenerationPreferences | None = None,
    ) -> list[Milestone]:
        """Request a roadmap.

        Raises:
            GenerationError: With the gateway's error message, or a generic one
                if the gateway could not be reached
        """
        body: dict = {"category": category, "course": course}
        if preferences is not None:
            body["preferences"] = preferences.model_dump(by_alias=True, exclude_none=True)

        try:
            if self._client is not None:
                response = await self._post(self._client, body)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, body)
        except httpx.HTTPError as e:
            logger.warning("Roadmap service unreachable", error=str(e))
            raise GenerationError(UNREACHABLE_MESSAGE) from e

        if response.status_code != httpx.codes.OK:
            try:
                message = response.json().get("error")
            except (ValueError, AttributeError):
                message = None
            logger.warning("Roadmap generation rejected", status=response.status_code, error=message)
            raise GenerationError(message or "Roadmap generation failed")

        try:
            return GenerateRoadmapResponse.model_validate(response.json()).milestones
        except ValueError as e:
            logger.warning("Roadmap service returned an unexpected body", error=str(e))
            raise GenerationError("Roadmap generation failed") from e
