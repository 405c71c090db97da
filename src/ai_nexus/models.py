"""Data models shared by the RAG pipeline and the chat orchestrator."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator

from .providers.config_models import ChatProviderConfig


def new_source_id() -> str:
    return f"source-{uuid.uuid4()}"


def new_chunk_id() -> str:
    return f"chunk-{uuid.uuid4()}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EmbeddingService(str, Enum):
    """Embedding backends.

    OPENAI covers any OpenAI-compatible endpoint, including Ollama.
    """

    GEMINI = "gemini"
    OPENAI = "openai"


class EmbeddingConfig(BaseModel):
    """Embedding backend settings, copied into each retrieval call."""

    service: EmbeddingService = Field(default=EmbeddingService.GEMINI)
    api_key: SecretStr | None = Field(default=None)
    api_endpoint: str | None = Field(
        default=None,
        description="e.g. http://localhost:11434/api/embeddings for Ollama",
    )
    model: str = Field(default="text-embedding-004")

    @field_validator("service", mode="before")
    @classmethod
    def normalize_service(cls, v: Any) -> EmbeddingService:
        if isinstance(v, EmbeddingService):
            return v
        if isinstance(v, str) and v.strip().lower() in {
            "openai",
            "openai-compatible",
            "ollama",
        }:
            return EmbeddingService.OPENAI
        return EmbeddingService.GEMINI


class Source(BaseModel):
    """An uploaded document in the knowledge library."""

    id: str = Field(default_factory=new_source_id)
    file_name: str
    file_type: str = ""
    created_at: datetime = Field(default_factory=_utc_now)
    raw_payload: str | None = None


class VectorChunk(BaseModel):
    """A text window of a source together with its embedding."""

    id: str = Field(default_factory=new_chunk_id)
    source_id: str
    content: str
    embedding: list[float]


class ScoredChunk(BaseModel):
    """A chunk ranked against a query during retrieval."""

    chunk: VectorChunk
    similarity: float


class UploadedFile(BaseModel):
    """In-memory document handed to the indexer."""

    name: str
    content: str
    mime_type: str = "text/plain"


class MessageRole(str, Enum):
    USER = "user"
    MODEL = "model"
    NARRATOR = "narrator"
    SYSTEM = "system"


class AttachmentStatus(str, Enum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


class Attachment(BaseModel):
    """Media attached to a message, carried as a data URI."""

    url: str
    mime_type: str | None = None
    status: AttachmentStatus = AttachmentStatus.DONE


class Message(BaseModel):
    """One turn of a conversation."""

    id: str = Field(default_factory=lambda: f"msg-{uuid.uuid4()}")
    role: MessageRole
    content: str = ""
    attachment: Attachment | None = None


class Character(BaseModel):
    """An AI persona with its own backend and knowledge configuration."""

    id: str
    name: str
    description: str = ""
    physical_appearance: str = ""
    personality_traits: str = ""
    personality: str = ""
    memory: str = ""
    lore: list[str] = Field(default_factory=list)
    search_enabled: bool = False
    thinking_enabled: bool = False
    voice: str | None = None
    api_config: ChatProviderConfig | None = None
    embedding_config: EmbeddingConfig | None = None
    knowledge_source_ids: list[str] = Field(default_factory=list)
