"""
Configuration management for the Voice Relay.
Loads settings from environment variables with sensible defaults.
"""

from enum import Enum
from functools import lru_cache
from typing import List

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from voice_relay.core.exceptions import MissingCredentialException


DEFAULT_SYSTEM_PROMPT = (
    "You are Roberto, a helpful AI assistant. Respond concisely and helpfully."
)


class Settings(BaseSettings):
    """Relay backend settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================
    # Application Settings
    # =========================
    APP_NAME: str = "Roberto AI"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Environment name")

    # =========================
    # API Keys
    # =========================
    OPENAI_API_KEY: str = Field(..., description="API key for the language model provider")

    # =========================
    # Server Settings
    # =========================
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=3000, description="Server port")
    CORS_ORIGINS: List[str] = Field(default=["*"], description="Allowed CORS origins")

    # =========================
    # Model Settings
    # =========================
    LLM_BASE_URL: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of an OpenAI-compatible chat completions API"
    )
    LLM_MODEL_ID: str = Field(default="gpt-4", description="Chat model to use")
    LLM_TEMPERATURE: float = Field(default=0.7, description="Sampling temperature")
    LLM_MAX_TOKENS: int = Field(default=500, description="Maximum tokens to generate")
    LLM_TIMEOUT_SECONDS: float = Field(default=30.0, description="LLM API timeout")
    DEFAULT_SYSTEM_PROMPT: str = Field(
        default=DEFAULT_SYSTEM_PROMPT,
        description="System prompt used when the caller sends none"
    )

    # =========================
    # Logging Settings
    # =========================
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    @field_validator("OPENAI_API_KEY")
    @classmethod
    def _key_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("OPENAI_API_KEY must not be empty")
        return value


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_settings() -> Settings:
    """
    Load settings for a serving process.

    Raises MissingCredentialException when the provider key is absent, so the
    caller can refuse to start instead of failing on the first request.
    """
    try:
        return get_settings()
    except ValidationError as e:
        missing = [
            ".".join(str(part) for part in err["loc"])
            for err in e.errors()
        ]
        if "OPENAI_API_KEY" in missing:
            raise MissingCredentialException("OPENAI_API_KEY") from e
        raise


# =========================
# Widget Settings
# =========================

class WidgetPosition(str, Enum):
    """Screen corner the widget button is pinned to."""
    BOTTOM_RIGHT = "bottom-right"
    BOTTOM_LEFT = "bottom-left"
    TOP_RIGHT = "top-right"
    TOP_LEFT = "top-left"


class WidgetConfig(BaseSettings):
    """
    Caller-supplied widget options. Every field is optional; values can also
    come from VOICE_WIDGET_* environment variables.
    """

    model_config = SettingsConfigDict(env_prefix="VOICE_WIDGET_", extra="ignore")

    position: WidgetPosition = WidgetPosition.BOTTOM_RIGHT
    button_color: str = "#e60000"
    api_endpoint: str = "http://localhost:3000/api/chat"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    voice_name: str = ""
    speech_rate: float = Field(default=1.0, gt=0)
    speech_pitch: float = Field(default=1.0, ge=0)
    speech_volume: float = Field(default=1.0, ge=0, le=1)

    @field_validator("button_color")
    @classmethod
    def _hex_color(cls, value: str) -> str:
        digits = value[1:] if value.startswith("#") else ""
        if len(digits) not in (3, 6) or any(c not in "0123456789abcdefABCDEF" for c in digits):
            raise ValueError(f"button_color must be a hex color like #e60000, got {value!r}")
        return value.lower()
