"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    APP_NAME: str = "Roadmap Gateway"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENV: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./roadmaps.db"
    DATABASE_ECHO: bool = False
    PERSISTENCE_TIMEOUT_SECONDS: float = 10.0

    # AI providers (tried in this order: OpenAI, then Gemini)
    OPENAI_API_KEY: str | None = None
    OPENAI_API_BASE_URL: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    GEMINI_API_KEY: str | None = None
    GEMINI_API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_MODEL: str = "gemini-1.5-flash-latest"
    GENERATION_TEMPERATURE: float = 0.4
    PROVIDER_TIMEOUT_SECONDS: float = 120.0

    # Search enrichment
    SEARCHAPI_API_KEY: str | None = None
    SEARCHAPI_BASE_URL: str = "https://www.searchapi.io/api/v1/search"
    SEARCH_TIMEOUT_SECONDS: float = 15.0
    SEARCH_RETRIES: int = 1
    DEFAULT_MAX_RESOURCES: int = 3
    MIN_RESOURCES: int = 2
    MAX_RESOURCES: int = 5
    DEFAULT_RESOURCE_DOMAINS: list[str] = [
        "coursera.org",
        "edx.org",
        "freecodecamp.org",
        "developer.mozilla.org",
        "khanacademy.org",
        "docs.python.org",
    ]
    FREE_RESOURCE_DOMAINS: list[str] = [
        "freecodecamp.org",
        "developer.mozilla.org",
        "khanacademy.org",
        "docs.python.org",
    ]
    # Heuristics; review periodically as platforms change their URL layout
    COURSE_DOMAIN_PATTERN: str = r"coursera|edx|freecodecamp\.org/learn|udacity|udemy"
    COURSE_KEYWORD_PATTERN: str = r"course|learn|specialization"
    PLACEHOLDER_DOMAIN: str = "example.com"

    # Client
    GATEWAY_URL: str = "http://localhost:8000"
    GATEWAY_TIMEOUT_SECONDS: float = 180.0

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENV == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
