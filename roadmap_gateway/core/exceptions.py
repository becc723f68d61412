"""Error types shared across the generation pipeline."""


class ProviderError(Exception):
    """A single AI provider attempt failed (transport, status, or empty output)."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class GenerationError(Exception):
    """Roadmap generation failed; ``message`` is safe to show to end users."""

    def __init__(self, message: str = "AI generation failed") -> None:
        super().__init__(message)
        self.message = message


class SearchError(Exception):
    """A scoped web search could not be completed."""
