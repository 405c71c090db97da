"""Provider configuration models.

Type-safe configuration for chat, image, and speech backends. Service names
are normalized by the models themselves: unknown or missing services fall
back to the default (Gemini) provider instead of failing validation.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator


class ChatService(str, Enum):
    """Chat backends."""

    DEFAULT = "default"
    GEMINI = "gemini"
    OPENAI = "openai"


class ImageService(str, Enum):
    """Image backends."""

    DEFAULT = "default"
    GEMINI = "gemini"
    OPENAI = "openai"
    IMAGEROUTER = "imagerouter"
    POLLINATIONS = "pollinations"
    HUGGINGFACE = "huggingface"
    STABILITY = "stability"
    AIHORDE = "aihorde"


_SERVICE_ALIASES = {
    "openai-compatible": "openai",
    "openai_compatible": "openai",
    "google": "gemini",
    "ai-horde": "aihorde",
    "stablehorde": "aihorde",
}


def _coerce_service(value: Any, enum_cls: type[Enum], default: Enum) -> Enum:
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str) or not value.strip():
        return default
    name = value.strip().lower()
    name = _SERVICE_ALIASES.get(name, name)
    try:
        return enum_cls(name)
    except ValueError:
        return default


class ChatProviderConfig(BaseModel):
    """Per-character chat backend configuration.

    ``rate_limit`` is the minimum interval between requests for the
    character, in seconds.
    """

    service: ChatService = Field(default=ChatService.DEFAULT)
    api_key: SecretStr | None = Field(default=None)
    api_endpoint: str | None = Field(default=None)
    model: str | None = Field(default=None)
    rate_limit: float | None = Field(default=None, ge=0.0)

    @field_validator("service", mode="before")
    @classmethod
    def normalize_service(cls, v: Any) -> ChatService:
        return _coerce_service(v, ChatService, ChatService.DEFAULT)


class ImageProviderConfig(BaseModel):
    """Image generation plugin settings."""

    service: ImageService = Field(default=ImageService.DEFAULT)
    api_key: SecretStr | None = Field(default=None)
    api_endpoint: str | None = Field(default=None)
    model: str | None = Field(default=None)
    style: str | None = Field(default=None, description="Style preset name")
    custom_style_prompt: str | None = Field(
        default=None, description="Style prompt used when style is 'Custom'"
    )
    negative_prompt: str | None = Field(default=None)
    rate_limit: float | None = Field(default=None, ge=0.0)

    @field_validator("service", mode="before")
    @classmethod
    def normalize_service(cls, v: Any) -> ImageService:
        return _coerce_service(v, ImageService, ImageService.DEFAULT)


class SpeechProviderConfig(BaseModel):
    """Text-to-speech settings."""

    voice: str = Field(default="Puck")
    api_key: SecretStr | None = Field(default=None)


def secret_value(secret: SecretStr | None) -> str | None:
    """Return the plain value of an optional secret, or None when blank."""
    if secret is None:
        return None
    value = secret.get_secret_value().strip()
    return value or None


__all__ = [
    "ChatProviderConfig",
    "ChatService",
    "ImageProviderConfig",
    "ImageService",
    "SpeechProviderConfig",
    "secret_value",
]
