"""Settings model for the ai-nexus services."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config_models import ChunkingConfig, PollingConfig, RetryConfig
from .error_codes import ErrorCode
from .exceptions import ConfigError


class Config(BaseSettings):
    """Service configuration using pydantic-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
        populate_by_name=True,
    )

    # Default Gemini credentials, used when a character has no key of its own
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "api_key"),
        description="Default Gemini API key",
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST API base URL",
    )

    # Models
    chat_model: str = Field(default="gemini-2.5-flash")
    thinking_model: str = Field(default="gemini-3-pro-preview")
    thinking_budget: int = Field(default=32768, ge=0)
    image_model: str = Field(default="gemini-2.5-flash-image")
    tts_model: str = Field(default="gemini-2.5-flash-preview-tts")
    tts_voice: str = Field(default="Puck")
    embedding_model: str = Field(default="text-embedding-004")
    openai_default_model: str = Field(
        default="llama3",
        description="Model used by OpenAI-compatible chat when none is configured",
    )

    # Network
    request_timeout: float = Field(default=120.0, gt=0.0)

    # RAG
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    top_k: int = Field(default=3, ge=1)
    vector_store: Literal["memory", "chroma"] = Field(default="chroma")
    data_dir: Path = Field(
        default=Path(".ai_nexus"),
        description="Directory for persistent data (chroma_db, logs)",
    )

    # Resilience
    retry: RetryConfig = Field(default_factory=RetryConfig)
    image_polling: PollingConfig = Field(default_factory=PollingConfig)

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_dir: Path | None = Field(default=None, description="Directory for JSON logs")

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def parse_path(cls, v: Any) -> Path | None:
        """Convert string to Path."""
        if v is None:
            return None
        if isinstance(v, (str, Path)):
            return Path(v).expanduser()
        msg = f"Path field must be string or Path, got {type(v).__name__}"
        raise ValueError(msg)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown log level: {v}"
            raise ValueError(msg)
        return level

    @model_validator(mode="after")
    def validate_config(self) -> Config:
        """Validate cross-field configuration values."""
        if self.vector_store == "chroma" and self.data_dir == Path():
            msg = "data_dir is required for the chroma vector store"
            raise ConfigError(
                msg,
                suggestion="Set DATA_DIR or data_dir in config.yaml",
                error_code=ErrorCode.CFG_FILE_INVALID.value,
            )
        return self

    @property
    def chroma_path(self) -> Path:
        return self.data_dir / "chroma_db"
