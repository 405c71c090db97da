"""Gemini provider using the Generative Language REST API.

Serves chat streaming (``streamGenerateContent`` with SSE), image generation
(``gemini-2.5-flash-image``), and text-to-speech (prebuilt voices).
"""

import base64
import binascii
from collections.abc import AsyncIterator
from typing import Any

from ai_nexus.error_codes import ErrorCode
from ai_nexus.exceptions import ConfigError, FatalProviderError
from ai_nexus.utils.llm_logging import (
    log_generation_error,
    log_generation_request,
    log_generation_success,
)
from ai_nexus.utils.logging import get_logger

from .base import BaseGenerationProvider, ChatRequest, GenerationKind, error_text
from .config_models import (
    ChatProviderConfig,
    ChatService,
    ImageProviderConfig,
    SpeechProviderConfig,
    secret_value,
)
from .history import normalize_gemini_history
from .retry_utils import read_json_object
from .streaming import extract_gemini_text, iter_sse_events

logger = get_logger(__name__)

AVAILABLE_VOICES = ("Puck", "Charon", "Kore", "Fenrir", "Zephyr")


class GeminiProvider(BaseGenerationProvider):
    """Default provider for chat, image, and speech generation."""

    name = "Gemini"
    kinds = frozenset({GenerationKind.CHAT, GenerationKind.IMAGE, GenerationKind.SPEECH})

    def _api_key(self, custom_key: str | None = None) -> str:
        if custom_key:
            return custom_key
        if self.settings.gemini_api_key:
            return self.settings.gemini_api_key
        msg = (
            "Default Gemini API key not configured. "
            "Please set a custom API key for the character or plugin."
        )
        raise ConfigError(
            msg,
            suggestion="Set GEMINI_API_KEY (or API_KEY) in the environment or .env",
            error_code=ErrorCode.CFG_MISSING_KEY.value,
        )

    def _url(self, model: str, method: str) -> str:
        return f"{self.settings.gemini_base_url}/models/{model}:{method}"

    def error_chunk(self, error: BaseException) -> str:
        return f"Sorry, an error occurred with the Gemini API: {error_text(error)}"

    async def _stream_contents(
        self, model: str, body: dict[str, Any], api_key: str, operation: str
    ) -> AsyncIterator[str]:
        start_time = log_generation_request(
            provider="gemini", model=model, operation=operation
        )
        output_length = 0
        try:
            response = await self._open_stream(
                "POST",
                self._url(model, "streamGenerateContent"),
                params={"alt": "sse"},
                headers={"x-goog-api-key": api_key},
                json=body,
            )
            try:
                async for event in iter_sse_events(response.aiter_text()):
                    text = extract_gemini_text(event)
                    if text:
                        output_length += len(text)
                        yield text
            finally:
                await response.aclose()
        except Exception as e:
            log_generation_error(
                provider="gemini",
                model=model,
                operation=operation,
                start_time=start_time,
                error=e,
            )
            raise
        log_generation_success(
            provider="gemini",
            model=model,
            operation=operation,
            start_time=start_time,
            output_length=output_length,
        )

    async def stream_chat(
        self, config: ChatProviderConfig, request: ChatRequest
    ) -> AsyncIterator[str]:
        """Stream a chat turn.

        Thinking mode switches to the thinking model with a thinking budget;
        otherwise search mode enables the Google Search tool. A character's
        own key is used only when its service is explicitly Gemini.
        """
        custom_key = (
            secret_value(config.api_key) if config.service == ChatService.GEMINI else None
        )
        api_key = self._api_key(custom_key)

        contents = normalize_gemini_history(request.history)
        if not contents:
            logger.warning("gemini_empty_history")
            return

        model = self.settings.chat_model
        body: dict[str, Any] = {
            "contents": contents,
            "systemInstruction": {"parts": [{"text": request.system_instruction}]},
        }
        if request.thinking_enabled:
            model = self.settings.thinking_model
            body["generationConfig"] = {
                "thinkingConfig": {"thinkingBudget": self.settings.thinking_budget}
            }
        elif request.search_enabled:
            body["tools"] = [{"googleSearch": {}}]

        logger.info(
            "gemini_chat_started",
            model=model,
            thinking=request.thinking_enabled,
            search=request.search_enabled,
            turns=len(contents),
        )
        async for text in self._stream_contents(model, body, api_key, "chat"):
            yield text

    async def stream_generic(
        self, system_instruction: str, prompt: str, api_key: str | None = None
    ) -> AsyncIterator[str]:
        """Stream a single-prompt answer under a system instruction."""
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "systemInstruction": {"parts": [{"text": system_instruction}]},
        }
        async for text in self._stream_contents(
            self.settings.chat_model, body, self._api_key(api_key), "generic"
        ):
            yield text

    async def generate_content(self, prompt: str, api_key: str | None = None) -> str:
        """Single-shot text generation."""
        response = await self._request(
            "POST",
            self._url(self.settings.chat_model, "generateContent"),
            headers={"x-goog-api-key": self._api_key(api_key)},
            json={"contents": [{"role": "user", "parts": [{"text": prompt}]}]},
        )
        return extract_gemini_text(read_json_object(response, self.name))

    async def generate_image(self, prompt: str, config: ImageProviderConfig) -> str:
        model = config.model or self.settings.image_model
        logger.info("gemini_image_started", model=model, prompt_length=len(prompt))
        response = await self._request(
            "POST",
            self._url(model, "generateContent"),
            headers={"x-goog-api-key": self._api_key(secret_value(config.api_key))},
            json={
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"imageConfig": {"aspectRatio": "1:1"}},
            },
        )
        data = read_json_object(response, self.name)

        candidates = data.get("candidates") or []
        if not candidates:
            msg = "No candidates returned from Gemini API."
            raise FatalProviderError(msg, error_code=ErrorCode.PRV_MALFORMED_RESPONSE.value)

        parts = (candidates[0].get("content") or {}).get("parts") or []
        for part in parts:
            inline = part.get("inlineData")
            if inline and inline.get("data"):
                return f"data:image/png;base64,{inline['data']}"
        for part in parts:
            if part.get("text"):
                msg = f"Model refused or failed to generate image. Response: {part['text']}"
                raise FatalProviderError(msg, error_code=ErrorCode.PRV_REFUSED.value)

        msg = "No image data found in response."
        raise FatalProviderError(msg, error_code=ErrorCode.PRV_MALFORMED_RESPONSE.value)

    async def generate_speech(self, text: str, config: SpeechProviderConfig) -> bytes:
        """Synthesize speech as raw 24kHz 16-bit mono PCM."""
        model = self.settings.tts_model
        voice = config.voice or self.settings.tts_voice
        logger.info("gemini_speech_started", voice=voice, preview=text[:30])
        response = await self._request(
            "POST",
            self._url(model, "generateContent"),
            headers={"x-goog-api-key": self._api_key(secret_value(config.api_key))},
            json={
                "contents": [{"parts": [{"text": text}]}],
                "generationConfig": {
                    "responseModalities": ["AUDIO"],
                    "speechConfig": {
                        "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}}
                    },
                },
            },
        )
        data = read_json_object(response, self.name)
        try:
            audio = data["candidates"][0]["content"]["parts"][0]["inlineData"]["data"]
        except (KeyError, IndexError, TypeError):
            audio = None
        if not audio:
            msg = "No audio data received from Gemini TTS."
            raise FatalProviderError(msg, error_code=ErrorCode.PRV_MALFORMED_RESPONSE.value)
        try:
            return base64.b64decode(audio)
        except binascii.Error as e:
            msg = "Gemini TTS returned invalid base64 audio."
            raise FatalProviderError(
                msg, error_code=ErrorCode.PRV_MALFORMED_RESPONSE.value
            ) from e
