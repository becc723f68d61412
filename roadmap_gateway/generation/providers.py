"""AI provider clients used to draft roadmaps.

Each provider exposes the same two operations: resolve a credential for the
request and return the raw text of one completion. Parsing and validation
happen once, in the generator, so adding a provider only means adding a
class here and listing it in ``build_providers``.
"""

from abc import ABC, abstractmethod

import httpx
import openai
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI

from roadmap_gateway.core.config import Settings
from roadmap_gateway.core.exceptions import ProviderError
from roadmap_gateway.core.logging import get_logger
from roadmap_gateway.schemas.roadmap import GenerationPreferences

logger = get_logger(__name__)


class Provider(ABC):
    """A text-generation backend that can draft a roadmap."""

    name: str

    @abstractmethod
    def resolve_api_key(self, preferences: GenerationPreferences) -> str | None:
        """Return the credential to use, or ``None`` if the provider is unconfigured."""

    @abstractmethod
    async def complete(self, system_prompt: str, user_prompt: str, api_key: str) -> str:
        """Run one completion and return its text.

        Raises:
            ProviderError: On transport failure, non-2xx status or empty output
        """


class OpenAIProvider(Provider):
    """Primary provider: OpenAI chat completions in JSON-object mode."""

    name = "openai"

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def resolve_api_key(self, preferences: GenerationPreferences) -> str | None:
        return self._settings.OPENAI_API_KEY or preferences.openai_api_key

    def _build_llm(self, api_key: str) -> Runnable:
        settings = self._settings
        kwargs: dict = {
            "model": settings.OPENAI_MODEL,
            "temperature": settings.GENERATION_TEMPERATURE,
            "api_key": api_key,
            "timeout": settings.PROVIDER_TIMEOUT_SECONDS,
            "max_retries": 0,  # exactly one attempt per provider
        }
        if settings.OPENAI_API_BASE_URL:
            kwargs["base_url"] = settings.OPENAI_API_BASE_URL

        return ChatOpenAI(**kwargs).bind(response_format={"type": "json_object"})

    async def complete(self, system_prompt: str, user_prompt: str, api_key: str) -> str:
        llm = self._build_llm(api_key)
        logger.info("Calling OpenAI", model=self._settings.OPENAI_MODEL)
        try:
            resp = await llm.ainvoke(
                [
                    SystemMessage(content=system_prompt),
                    HumanMessage(content=user_prompt),
                ]
            )
        except (openai.OpenAIError, httpx.HTTPError, TimeoutError) as e:
            raise ProviderError(self.name, str(e)) from e

        content = resp.content if isinstance(resp.content, str) else ""
        if not content.strip():
            raise ProviderError(self.name, "empty completion")
        return content


class GeminiProvider(Provider):
    """Secondary provider: Gemini ``generateContent`` with a JSON response type."""

    name = "gemini"

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client

    def resolve_api_key(self, preferences: GenerationPreferences) -> str | None:
        return self._settings.GEMINI_API_KEY or preferences.gemini_api_key

    async def _post(self, client: httpx.AsyncClient, url: str, api_key: str, body: dict) -> dict:
        response = await client.post(url, json=body, headers={"x-goog-api-key": api_key})
        response.raise_for_status()
        return response.json()

    async def complete(self, system_prompt: str, user_prompt: str, api_key: str) -> str:
        settings = self._settings
        url = f"{settings.GEMINI_API_BASE_URL.rstrip('/')}/models/{settings.GEMINI_MODEL}:generateContent"
        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": f"System Instruction:\n{system_prompt}\n\n{user_prompt}"}],
                }
            ],
            "generationConfig": {
                "temperature": settings.GENERATION_TEMPERATURE,
                "responseMimeType": "application/json",
            },
        }

        logger.info("Calling Gemini", model=settings.GEMINI_MODEL)
        try:
            if self._client is not None:
                data = await self._post(self._client, url, api_key, body)
            else:
                async with httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS) as client:
                    data = await self._post(client, url, api_key, body)
        except httpx.HTTPStatusError as e:
            raise ProviderError(self.name, f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(self.name, str(e) or type(e).__name__) from e

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not isinstance(text, str) or not text.strip():
            raise ProviderError(self.name, "no text in response")
        return text


def build_providers(settings: Settings) -> list[Provider]:
    """Providers in the order they are tried."""
    return [OpenAIProvider(settings), GeminiProvider(settings)]
