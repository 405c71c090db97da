"""Embedding clients for the RAG pipeline.

Supports:
- Gemini: ``models/{model}:embedContent`` REST endpoint
- OpenAI-compatible endpoints (``/v1/embeddings``) and Ollama
  (``/api/embeddings``), selected from the configured endpoint
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx

from ai_nexus.config import Config
from ai_nexus.error_codes import ErrorCode
from ai_nexus.exceptions import AINexusError, ConfigError, EmbeddingError
from ai_nexus.models import EmbeddingConfig, EmbeddingService
from ai_nexus.providers.config_models import secret_value
from ai_nexus.providers.retry_utils import (
    network_error,
    raise_for_provider_status,
    read_json_object,
)
from ai_nexus.utils.logging import get_logger
from ai_nexus.utils.retry import with_retry

logger = get_logger(__name__)

OLLAMA_EMBEDDINGS_PATH = "/api/embeddings"


class EmbeddingClient(Protocol):
    """Converts text to a fixed-length vector."""

    async def generate_embedding(
        self, text: str, config: EmbeddingConfig
    ) -> list[float]: ...


class HttpEmbeddingClient:
    """Embedding client talking to Gemini or OpenAI-compatible HTTP APIs.

    Transient failures are retried with backoff; anything else surfaces as
    EmbeddingError. Missing endpoints or keys raise ConfigError.
    """

    def __init__(
        self,
        settings: Config,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize embedding client.

        Args:
            settings: Application configuration (default key, base URL, retry)
            client: Shared HTTP client (created lazily if None)
            sleep: Awaitable sleep used between retries (injectable for tests)
        """
        self.settings = settings
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.request_timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def generate_embedding(self, text: str, config: EmbeddingConfig) -> list[float]:
        """Embed one piece of text.

        Raises:
            ConfigError: If the endpoint or key required by the service is missing
            EmbeddingError: On provider or network failure
        """
        retry = self.settings.retry
        try:
            return await with_retry(
                lambda: self._request_embedding(text, config),
                max_retries=retry.max_retries,
                initial_delay=retry.initial_delay,
                jitter=retry.jitter,
                sleep=self._sleep,
            )
        except (ConfigError, EmbeddingError):
            raise
        except (AINexusError, httpx.HTTPError, ValueError) as e:
            logger.error(
                "embedding_failed",
                service=config.service.value,
                model=config.model,
                error=str(e),
                error_type=type(e).__name__,
            )
            msg = f"Embedding request failed: {e}"
            raise EmbeddingError(
                msg,
                suggestion="Check the embedding service, endpoint, and API key",
                error_code=ErrorCode.RAG_EMBEDDING_FAILED.value,
                context={"service": config.service.value, "model": config.model},
            ) from e

    async def _post(self, url: str, provider: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.post(url, **kwargs)
        except httpx.TransportError as e:
            raise network_error(e, provider) from e
        await raise_for_provider_status(response, provider)
        return response

    async def _request_embedding(self, text: str, config: EmbeddingConfig) -> list[float]:
        if config.service == EmbeddingService.OPENAI:
            return await self._openai_embedding(text, config)
        return await self._gemini_embedding(text, config)

    async def _gemini_embedding(self, text: str, config: EmbeddingConfig) -> list[float]:
        api_key = secret_value(config.api_key) or self.settings.gemini_api_key
        if not api_key:
            msg = "Gemini API key is not configured for embeddings"
            raise ConfigError(
                msg,
                suggestion="Set GEMINI_API_KEY or an API key in the embedding settings",
                error_code=ErrorCode.CFG_MISSING_KEY.value,
            )
        model = config.model
        url = f"{self.settings.gemini_base_url}/models/{model}:embedContent"
        response = await self._post(
            url,
            "Gemini",
            headers={"x-goog-api-key": api_key},
            json={
                "model": f"models/{model}",
                "content": {"parts": [{"text": text}]},
            },
        )
        data = read_json_object(response, "Gemini")
        values = (data.get("embedding") or {}).get("values")
        return self._validate_vector(values, config)

    async def _openai_embedding(self, text: str, config: EmbeddingConfig) -> list[float]:
        endpoint = config.api_endpoint
        if not endpoint:
            msg = "Embedding API endpoint is not configured"
            raise ConfigError(
                msg,
                suggestion="Set an endpoint such as http://localhost:11434/api/embeddings",
                error_code=ErrorCode.CFG_MISSING_ENDPOINT.value,
            )

        headers = {"Content-Type": "application/json"}
        api_key = secret_value(config.api_key)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        if OLLAMA_EMBEDDINGS_PATH in endpoint:
            payload: dict[str, Any] = {"model": config.model, "prompt": text}
        else:
            payload = {"model": config.model, "input": text}

        response = await self._post(endpoint, "OpenAI", headers=headers, json=payload)
        data = read_json_object(response, "OpenAI")

        values = data.get("embedding")
        if values is None:
            items = data.get("data") or []
            values = items[0].get("embedding") if items else None
        return self._validate_vector(values, config)

    @staticmethod
    def _validate_vector(values: Any, config: EmbeddingConfig) -> list[float]:
        if not isinstance(values, list) or not values:
            msg = "Embedding response did not contain a vector"
            raise EmbeddingError(
                msg,
                error_code=ErrorCode.RAG_EMBEDDING_FAILED.value,
                context={"service": config.service.value, "model": config.model},
            )
        return [float(v) for v in values]
