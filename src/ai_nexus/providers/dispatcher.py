"""Provider dispatcher: routes chat, image, and speech calls to backends."""

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, cast

import httpx

from ai_nexus.config import Config
from ai_nexus.utils.logging import get_logger

from .aihorde import AIHordeProvider
from .base import BaseGenerationProvider, ChatRequest, GenerationKind
from .config_models import (
    ChatProviderConfig,
    ChatService,
    ImageProviderConfig,
    ImageService,
    SpeechProviderConfig,
)
from .gemini import GeminiProvider
from .huggingface import HuggingFaceProvider
from .openai_compatible import OpenAICompatibleProvider
from .pollinations import PollinationsProvider
from .stability import StabilityProvider

logger = get_logger(__name__)

ProviderClass = type[BaseGenerationProvider]


def build_image_prompt(prompt: str, config: ImageProviderConfig) -> str:
    """Decorate an image prompt with the configured style and negative prompt."""
    style_prompt = ""
    style = config.style
    if style and style != "Default (None)":
        if style == "Custom":
            if config.custom_style_prompt:
                style_prompt = f"{config.custom_style_prompt}, "
        else:
            style_prompt = f"{style} style, "
    negative = f". Negative prompt: {config.negative_prompt}" if config.negative_prompt else ""
    return f"{style_prompt}{prompt}{negative}"


class ProviderDispatcher:
    """Looks up the provider for a service and invokes it.

    Lookup is a table keyed by the service enum; config models already map
    unknown services to DEFAULT, which resolves to Gemini. Provider
    instances are created once and share one HTTP client.
    """

    CHAT_PROVIDERS: dict[ChatService, ProviderClass] = {
        ChatService.DEFAULT: GeminiProvider,
        ChatService.GEMINI: GeminiProvider,
        ChatService.OPENAI: OpenAICompatibleProvider,
    }

    IMAGE_PROVIDERS: dict[ImageService, ProviderClass] = {
        ImageService.DEFAULT: GeminiProvider,
        ImageService.GEMINI: GeminiProvider,
        ImageService.OPENAI: OpenAICompatibleProvider,
        ImageService.IMAGEROUTER: OpenAICompatibleProvider,
        ImageService.POLLINATIONS: PollinationsProvider,
        ImageService.HUGGINGFACE: HuggingFaceProvider,
        ImageService.STABILITY: StabilityProvider,
        ImageService.AIHORDE: AIHordeProvider,
    }

    SPEECH_PROVIDER: ProviderClass = GeminiProvider

    def __init__(
        self,
        settings: Config,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        """Initialize dispatcher.

        Args:
            settings: Application configuration
            client: HTTP client shared by all providers (created if None)
            sleep: Awaitable sleep passed to providers (injectable for tests)
        """
        self.settings = settings
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=settings.request_timeout)
        self._sleep = sleep
        self._instances: dict[ProviderClass, BaseGenerationProvider] = {}

    def _instance(self, provider_class: ProviderClass) -> BaseGenerationProvider:
        provider = self._instances.get(provider_class)
        if provider is None:
            kwargs: dict[str, Any] = {"client": self.client}
            if self._sleep is not None:
                kwargs["sleep"] = self._sleep
            provider = provider_class(self.settings, **kwargs)
            self._instances[provider_class] = provider
        return provider

    def resolve(self, kind: GenerationKind, service: Any = None) -> BaseGenerationProvider:
        """Return the provider serving ``kind`` for ``service``."""
        if kind == GenerationKind.CHAT:
            key = service if isinstance(service, ChatService) else ChatService.DEFAULT
            provider_class = self.CHAT_PROVIDERS.get(key, GeminiProvider)
        elif kind == GenerationKind.IMAGE:
            key = service if isinstance(service, ImageService) else ImageService.DEFAULT
            provider_class = self.IMAGE_PROVIDERS.get(key, GeminiProvider)
        else:
            provider_class = self.SPEECH_PROVIDER
        return self._instance(provider_class)

    def gemini(self) -> GeminiProvider:
        return cast(GeminiProvider, self._instance(GeminiProvider))

    def stream_chat(
        self, config: ChatProviderConfig, request: ChatRequest
    ) -> AsyncIterator[str]:
        provider = self.resolve(GenerationKind.CHAT, config.service)
        logger.debug("dispatch_chat", service=config.service.value, provider=provider.name)
        return provider.stream_chat(config, request)

    async def generate_image(self, prompt: str, config: ImageProviderConfig) -> str:
        provider = self.resolve(GenerationKind.IMAGE, config.service)
        full_prompt = build_image_prompt(prompt, config)
        logger.info(
            "dispatch_image",
            service=config.service.value,
            provider=provider.name,
            prompt_length=len(full_prompt),
        )
        return await provider.generate_image(full_prompt, config)

    async def generate_speech(self, text: str, config: SpeechProviderConfig) -> bytes:
        provider = self.resolve(GenerationKind.SPEECH)
        return await provider.generate_speech(text, config)

    async def generate(self, kind: GenerationKind, config: Any, payload: Any) -> Any:
        """Invoke the provider for ``kind``.

        Args:
            kind: Generation kind
            config: ChatProviderConfig, ImageProviderConfig, or SpeechProviderConfig
            payload: ChatRequest for chat, prompt text for image and speech

        Returns:
            Async iterator of text deltas for chat, a data URI for images,
            raw audio bytes for speech
        """
        if kind == GenerationKind.CHAT:
            return self.stream_chat(config, payload)
        if kind == GenerationKind.IMAGE:
            return await self.generate_image(payload, config)
        return await self.generate_speech(payload, config)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
