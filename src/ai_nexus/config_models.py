"""Nested configuration models shared by settings and services."""

from pydantic import BaseModel, Field, model_validator


class RetryConfig(BaseModel):
    """Retry configuration for provider calls."""

    max_retries: int = Field(default=3, ge=1)
    initial_delay: float = Field(default=2.0, ge=0.0)
    jitter: float = Field(default=1.0, ge=0.0)


class ChunkingConfig(BaseModel):
    """Document chunking parameters."""

    chunk_size: int = Field(default=1000, ge=1)
    overlap: int = Field(default=200, ge=0)

    @model_validator(mode="after")
    def _overlap_below_size(self) -> "ChunkingConfig":
        if self.overlap >= self.chunk_size:
            msg = f"overlap ({self.overlap}) must be smaller than chunk_size ({self.chunk_size})"
            raise ValueError(msg)
        return self


class PollingConfig(BaseModel):
    """Polling limits for asynchronous image job providers."""

    interval: float = Field(default=2.0, ge=0.0)
    max_attempts: int = Field(default=60, ge=1)


__all__ = [
    "ChunkingConfig",
    "PollingConfig",
    "RetryConfig",
]
