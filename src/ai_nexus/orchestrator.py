"""Chat orchestrator: the entry point the UI and CLI call for generation.

Combines the character persona, optional knowledge-base context, per-key
rate limiting, and provider dispatch into an ordered stream of text deltas.
Streaming failures never raise to the caller; they end the stream with a
readable error chunk. Retrieval failures do raise, before any output.
"""

import re
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from .config import Config
from .error_codes import ErrorCode
from .exceptions import AINexusError, ConfigError, FatalProviderError, ProviderError
from .models import Character, Message, MessageRole
from .providers.base import ChatRequest, GenerationKind, error_text
from .providers.config_models import (
    ChatProviderConfig,
    ChatService,
    ImageProviderConfig,
    ImageService,
    SpeechProviderConfig,
)
from .providers.dispatcher import ProviderDispatcher
from .rag.service import RAGService
from .utils.logging import get_logger
from .utils.rate_limit import RateLimiter

logger = get_logger(__name__)

IMAGE_RATE_LIMIT_KEY = "default-image-generator"
MISSING_OPENAI_ENDPOINT_MESSAGE = (
    "Error: OpenAI-compatible API endpoint is not configured for this character."
)
GENERIC_ERROR_MESSAGE = "Sorry, an error occurred while responding."
IMAGE_SETTINGS_HINT = "Check the image plugin settings (API key, endpoint) and logs."

ChunkCallback = Callable[[str], None]


class GenerationState(str, Enum):
    """Lifecycle of one chat generation call."""

    IDLE = "idle"
    RATE_LIMIT_WAIT = "rate_limit_wait"
    DISPATCHED = "dispatched"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERRORED = "errored"


_ALLOWED_TRANSITIONS: dict[GenerationState, set[GenerationState]] = {
    GenerationState.IDLE: {GenerationState.RATE_LIMIT_WAIT},
    GenerationState.RATE_LIMIT_WAIT: {GenerationState.DISPATCHED, GenerationState.ERRORED},
    GenerationState.DISPATCHED: {
        GenerationState.STREAMING,
        GenerationState.COMPLETED,
        GenerationState.ERRORED,
    },
    GenerationState.STREAMING: {GenerationState.COMPLETED, GenerationState.ERRORED},
    GenerationState.COMPLETED: set(),
    GenerationState.ERRORED: set(),
}


@dataclass
class GenerationCall:
    """Tracks the state of one generation call."""

    state: GenerationState = GenerationState.IDLE
    history: list[GenerationState] = field(
        default_factory=lambda: [GenerationState.IDLE]
    )
    error: BaseException | None = None

    def advance(self, new_state: GenerationState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            msg = f"Invalid generation state transition: {self.state.value} -> {new_state.value}"
            raise RuntimeError(msg)
        self.state = new_state
        self.history.append(new_state)

    def fail(self, error: BaseException | None = None) -> None:
        self.error = error
        self.advance(GenerationState.ERRORED)


def build_system_instruction(
    character: Character, participants: list[Character] | None = None
) -> str:
    """Render a character's persona into a system instruction."""
    participants = participants or []
    instruction = f"You are an AI character named {character.name}.\n\n"

    if len(participants) > 1:
        others = ", ".join(p.name for p in participants if p.id != character.id)
        instruction += (
            f"You are in a group conversation with: {others}. "
            "Interact with them naturally based on your persona.\n\n"
        )

    instruction += "== CORE IDENTITY ==\n"
    if character.description:
        instruction += f"Description: {character.description}\n"
    if character.physical_appearance:
        instruction += f"Physical Appearance: {character.physical_appearance}\n"
    if character.personality_traits:
        instruction += f"Personality Traits: {character.personality_traits}\n"
    instruction += "\n"

    if character.personality:
        instruction += f"== ROLE INSTRUCTION ==\n{character.personality}\n\n"

    if character.memory:
        instruction += f"== MEMORY (Recent Events) ==\n{character.memory}\n\n"

    facts = [fact for fact in character.lore if fact.strip()]
    if facts:
        instruction += "== LORE (Key Facts) ==\n"
        instruction += "\n".join(f"- {fact}" for fact in facts) + "\n\n"

    instruction += "== TOOLS ==\n"
    if character.search_enabled:
        instruction += (
            "You have access to Google Search to find real-time information. "
            "Use it when the user asks about current events or factual topics.\n"
        )
    instruction += (
        "You can see images and hear audio if provided. "
        "Analyze them as your character would.\n"
    )
    instruction += (
        "You have the ability to generate images. To do so, include a special "
        "command in your response: [generate_image: A detailed description of "
        "the image you want to create].\n\n"
    )
    instruction += (
        "Engage in conversation based on this complete persona. "
        "Do not break character. Respond to the user's last message."
    )
    return instruction


def clean_text_for_speech(text: str) -> str:
    """Drop bracketed commands and markdown emphasis before synthesis."""
    return re.sub(r"\[.*?\]", "", text).replace("*", "")


def _last_user_message(history: list[Message]) -> str | None:
    for message in reversed(history):
        if message.role == MessageRole.USER and message.content.strip():
            return message.content
    return None


class ChatOrchestrator:
    """Runs chat, image, and speech generation for characters."""

    def __init__(
        self,
        settings: Config,
        dispatcher: ProviderDispatcher | None = None,
        rate_limiter: RateLimiter | None = None,
        rag_service: RAGService | None = None,
    ):
        """Initialize orchestrator.

        Args:
            settings: Application configuration
            dispatcher: Provider dispatcher (created from settings if None)
            rate_limiter: Rate limiter scoped to this orchestrator's session
            rag_service: Enables knowledge-base context when given
        """
        self.settings = settings
        self.dispatcher = dispatcher or ProviderDispatcher(settings)
        self.rate_limiter = rate_limiter or RateLimiter()
        self.rag_service = rag_service

    async def _knowledge_context(
        self, character: Character, history: list[Message]
    ) -> str | None:
        if self.rag_service is None or not character.knowledge_source_ids:
            return None
        query = _last_user_message(history)
        if not query:
            return None
        return await self.rag_service.find_relevant_context(
            query, character, top_k=self.settings.top_k
        )

    async def iter_chat_response(
        self,
        character: Character,
        participants: list[Character],
        history: list[Message],
        system_override: str | None = None,
        call: GenerationCall | None = None,
    ) -> AsyncIterator[str]:
        """Stream a character's reply as ordered text deltas.

        Args:
            character: Speaking character
            participants: Everyone in the conversation, including the speaker
            history: Conversation so far, oldest first
            system_override: Extra instructions for this response only
            call: Optional tracker observing the state transitions

        Raises:
            ConfigError, EmbeddingError, StorageError: From knowledge retrieval,
                before anything is streamed
        """
        call = call or GenerationCall()
        config = character.api_config or ChatProviderConfig()

        system_instruction = build_system_instruction(character, participants)
        context = await self._knowledge_context(character, history)
        if context:
            system_instruction += (
                "\n\n== KNOWLEDGE BASE (Relevant Context) ==\n"
                "Use the following excerpts from your knowledge base when relevant:\n"
                f"{context}"
            )
        if system_override:
            system_instruction += (
                "\n\n[ADDITIONAL INSTRUCTIONS FOR THIS RESPONSE ONLY]:\n"
                f"{system_override}"
            )
            logger.info("system_override_applied", character_id=character.id)

        call.advance(GenerationState.RATE_LIMIT_WAIT)
        await self.rate_limiter.gate(character.id, config.rate_limit)

        if config.service == ChatService.OPENAI and not config.api_endpoint:
            logger.warning("openai_endpoint_missing", character_id=character.id)
            call.fail(
                ConfigError(
                    MISSING_OPENAI_ENDPOINT_MESSAGE,
                    error_code=ErrorCode.CFG_MISSING_ENDPOINT.value,
                )
            )
            yield MISSING_OPENAI_ENDPOINT_MESSAGE
            return

        provider = self.dispatcher.resolve(GenerationKind.CHAT, config.service)
        request = ChatRequest(
            system_instruction=system_instruction,
            history=history,
            thinking_enabled=character.thinking_enabled,
            search_enabled=character.search_enabled,
        )
        logger.info(
            "chat_dispatched",
            character_id=character.id,
            service=config.service.value,
            provider=provider.name,
        )
        call.advance(GenerationState.DISPATCHED)

        try:
            stream = await self.dispatcher.generate(GenerationKind.CHAT, config, request)
            async for delta in stream:
                if call.state == GenerationState.DISPATCHED:
                    call.advance(GenerationState.STREAMING)
                yield delta
        except Exception as e:
            logger.error(
                "chat_stream_failed",
                character_id=character.id,
                state=call.state.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            call.fail(e)
            yield provider.error_chunk(e)
            return

        call.advance(GenerationState.COMPLETED)

    async def stream_chat_response(
        self,
        character: Character,
        participants: list[Character],
        history: list[Message],
        on_chunk: ChunkCallback | None = None,
        system_override: str | None = None,
    ) -> str:
        """Callback flavor of ``iter_chat_response``.

        Returns:
            The full streamed text
        """
        parts: list[str] = []
        async for delta in self.iter_chat_response(
            character, participants, history, system_override=system_override
        ):
            parts.append(delta)
            if on_chunk is not None:
                on_chunk(delta)
        return "".join(parts)

    async def generate_image_from_prompt(
        self,
        prompt: str,
        settings: ImageProviderConfig | dict[str, Any] | None = None,
    ) -> str:
        """Generate an image with the configured image plugin.

        Returns:
            Image data URI (or a direct URL for providers that only offer one)

        Raises:
            ConfigError, ProviderError: Message prefixed with a pointer to the
                plugin settings
        """
        if settings is None:
            config = ImageProviderConfig()
        elif isinstance(settings, ImageProviderConfig):
            config = settings
        else:
            config = ImageProviderConfig.model_validate(settings)

        try:
            await self.rate_limiter.gate(IMAGE_RATE_LIMIT_KEY, config.rate_limit)
            if (
                config.service in (ImageService.OPENAI, ImageService.IMAGEROUTER)
                and not config.api_endpoint
            ):
                msg = f"{config.service.value} requires a configured API endpoint."
                raise ConfigError(msg, error_code=ErrorCode.CFG_MISSING_ENDPOINT.value)
            return await self.dispatcher.generate(GenerationKind.IMAGE, config, prompt)
        except (AINexusError, httpx.HTTPError, ValueError) as e:
            logger.error(
                "image_generation_failed",
                service=config.service.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise self._image_error(e) from e

    @staticmethod
    def _image_error(error: BaseException) -> AINexusError:
        message = (
            "Image generation failed. Please check the plugin settings "
            f"(API key, endpoint) and logs. Details: {error_text(error)}"
        )
        if isinstance(error, ProviderError):
            return type(error)(
                message,
                suggestion=IMAGE_SETTINGS_HINT,
                error_code=error.error_code,
                context=error.context,
                status_code=error.status_code,
            )
        if isinstance(error, ConfigError):
            return ConfigError(
                message,
                suggestion=IMAGE_SETTINGS_HINT,
                error_code=error.error_code,
                context=error.context,
            )
        return FatalProviderError(
            message,
            suggestion=IMAGE_SETTINGS_HINT,
            error_code=ErrorCode.PRV_IMAGE_FAILED.value,
        )

    async def generate_speech(
        self,
        text: str,
        voice: str | None = None,
        api_key: str | None = None,
        clean: bool = True,
    ) -> bytes:
        """Synthesize speech for a message.

        Returns:
            Raw 24kHz 16-bit mono PCM audio
        """
        spoken = clean_text_for_speech(text) if clean else text
        config = SpeechProviderConfig(
            voice=voice or self.settings.tts_voice,
            api_key=api_key,
        )
        try:
            return await self.dispatcher.generate(GenerationKind.SPEECH, config, spoken)
        except Exception as e:
            logger.error("speech_generation_failed", voice=config.voice, error=str(e))
            raise

    async def generate_content(self, prompt: str, api_key: str | None = None) -> str:
        """Single-shot text generation with the default model."""
        try:
            return await self.dispatcher.gemini().generate_content(prompt, api_key)
        except Exception as e:
            logger.error("generate_content_failed", error=str(e))
            raise

    async def stream_generic_response(
        self,
        system_instruction: str,
        prompt: str,
        on_chunk: ChunkCallback | None = None,
        api_key: str | None = None,
    ) -> str:
        """Stream a one-off answer outside any character conversation.

        Errors end the stream with a generic apology chunk.

        Returns:
            The full streamed text
        """
        parts: list[str] = []

        def emit(text: str) -> None:
            parts.append(text)
            if on_chunk is not None:
                on_chunk(text)

        try:
            async for delta in self.dispatcher.gemini().stream_generic(
                system_instruction, prompt, api_key
            ):
                emit(delta)
        except Exception as e:
            logger.error("generic_stream_failed", error=str(e), error_type=type(e).__name__)
            emit(GENERIC_ERROR_MESSAGE)
        return "".join(parts)

    async def aclose(self) -> None:
        await self.dispatcher.aclose()
