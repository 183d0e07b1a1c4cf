from typing import Annotated, Any, Literal

from pydantic import BeforeValidator
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_model_list(value: Any) -> list[str] | Any:
    if isinstance(value, str) and not value.startswith("["):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "Logo Forge"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    # Any OpenAI-compatible endpoint works (OpenRouter, Gemini, Groq, local vLLM...).
    LLM_API_KEY: str | None = None
    LLM_BASE_URL: str | None = None

    MODEL_DEFAULT: str = "gpt-4o-mini"
    MODEL_FALLBACKS: Annotated[list[str] | str, BeforeValidator(parse_model_list)] = []

    # Per-stage overrides; None means MODEL_DEFAULT.
    MODEL_REQUIREMENTS: str | None = None
    MODEL_MOODBOARD: str | None = None
    MODEL_SELECTION: str | None = None
    MODEL_SVG: str | None = None
    MODEL_ACCESSIBILITY: str | None = None
    MODEL_UNIQUENESS: str | None = None

    LLM_TIMEOUT_SECONDS: float = 60.0
    LLM_MAX_RETRIES: int = 3
    LLM_RETRY_INITIAL_DELAY: float = 1.0
    LLM_RETRY_BACKOFF: float = 2.0
    LLM_RETRY_MAX_DELAY: float = 10.0

    CACHE_MAX_ENTRIES: int = 256
    CACHE_TTL_SECONDS: float | None = 2 * 60 * 60

    @property
    def debug_errors(self) -> bool:
        return self.ENVIRONMENT == "local"


settings = Settings()  # type: ignore
