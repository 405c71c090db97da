"""Base generation provider interface."""

import asyncio
import base64
from abc import ABC
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

import httpx

from ai_nexus.config import Config
from ai_nexus.exceptions import AINexusError
from ai_nexus.models import Message
from ai_nexus.utils.logging import get_logger
from ai_nexus.utils.retry import with_retry

from .config_models import (
    ChatProviderConfig,
    ImageProviderConfig,
    SpeechProviderConfig,
)
from .retry_utils import network_error, raise_for_provider_status

logger = get_logger(__name__)

T = TypeVar("T")


class GenerationKind(str, Enum):
    """Kinds of generation a provider can serve."""

    CHAT = "chat"
    IMAGE = "image"
    SPEECH = "speech"


@dataclass
class ChatRequest:
    """Normalized chat payload handed to a provider."""

    system_instruction: str
    history: list[Message]
    thinking_enabled: bool = False
    search_enabled: bool = False
    extra: dict[str, Any] = field(default_factory=dict)


def to_data_uri(content: bytes, content_type: str | None) -> str:
    mime = (content_type or "image/png").split(";")[0].strip() or "image/png"
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


def error_text(error: BaseException) -> str:
    """Human-readable error text without code or suggestion decorations."""
    if isinstance(error, AINexusError):
        return error.message
    return str(error) or type(error).__name__


class BaseGenerationProvider(ABC):
    """Abstract base class for generation providers.

    A provider implements any subset of chat streaming, image generation,
    and speech synthesis; ``kinds`` lists what it serves. All HTTP calls go
    through the shared client and are retried on transient failures.
    """

    name: str = "base"
    kinds: frozenset[GenerationKind] = frozenset()

    def __init__(
        self,
        settings: Config,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        **kwargs: Any,
    ):
        """Initialize the provider.

        Args:
            settings: Application configuration
            client: Shared HTTP client (created lazily if None)
            sleep: Awaitable sleep for backoff and polling (injectable for tests)
            **kwargs: Provider-specific configuration options
        """
        self.settings = settings
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self.config = kwargs
        logger.debug(
            "provider_initialized",
            provider=self.__class__.__name__,
            config=self._safe_config_for_logging(),
        )

    def _safe_config_for_logging(self) -> dict[str, Any]:
        """Return config with sensitive data redacted for logging."""
        safe_config = self.config.copy()
        for key in ["api_key", "token", "password"]:
            if key in safe_config:
                safe_config[key] = "***REDACTED***"
        return safe_config

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.request_timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _with_retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        retry = self.settings.retry
        return await with_retry(
            operation,
            max_retries=retry.max_retries,
            initial_delay=retry.initial_delay,
            jitter=retry.jitter,
            sleep=self._sleep,
        )

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a buffered request, retrying transient failures.

        Raises:
            TransientProviderError: If the last attempt was rate limited
            FatalProviderError: For other HTTP errors and network failures
        """

        async def attempt() -> httpx.Response:
            try:
                response = await self.client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                raise network_error(e, self.name) from e
            await raise_for_provider_status(response, self.name)
            return response

        return await self._with_retry(attempt)

    async def _open_stream(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Open a streamed response, retrying transient failures.

        Only opening the stream is retried; the caller owns the returned
        response and must close it.
        """

        async def attempt() -> httpx.Response:
            request = self.client.build_request(method, url, **kwargs)
            try:
                response = await self.client.send(request, stream=True)
            except httpx.TransportError as e:
                raise network_error(e, self.name) from e
            try:
                await raise_for_provider_status(response, self.name)
            except BaseException:
                await response.aclose()
                raise
            return response

        return await self._with_retry(attempt)

    async def download_as_data_uri(self, url: str) -> str:
        """Fetch an image URL as a data URI, returning the URL on failure."""
        try:
            response = await self._request("GET", url)
        except (AINexusError, httpx.HTTPError) as e:
            logger.warning(
                "image_download_failed",
                provider=self.name,
                url=url,
                error=str(e),
            )
            return url
        return to_data_uri(response.content, response.headers.get("content-type"))

    def error_chunk(self, error: BaseException) -> str:
        """Final chunk emitted when a chat stream fails."""
        return f"[Error: {error_text(error)}]"

    def stream_chat(
        self, config: ChatProviderConfig, request: ChatRequest
    ) -> AsyncIterator[str]:
        """Stream text deltas for a chat turn, in arrival order."""
        raise NotImplementedError(f"{self.name} does not support chat")

    async def generate_image(self, prompt: str, config: ImageProviderConfig) -> str:
        """Generate an image and return it as a data URI (or URL)."""
        raise NotImplementedError(f"{self.name} does not support images")

    async def generate_speech(self, text: str, config: SpeechProviderConfig) -> bytes:
        """Synthesize speech and return raw audio bytes."""
        raise NotImplementedError(f"{self.name} does not support speech")
