"""OpenAI-compatible provider (OpenAI, Ollama, LM Studio, ImageRouter, ...)."""

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

from .base import BaseGenerationProvider, ChatRequest, GenerationKind
from .config_models import ChatProviderConfig, ImageProviderConfig, secret_value
from .history import build_openai_messages
from .retry_utils import read_json_object
from .streaming import extract_openai_delta, iter_sse_events

logger = get_logger(__name__)

DEFAULT_IMAGE_ENDPOINT = "https://api.openai.com/v1/images/generations"
DEFAULT_IMAGE_MODEL = "dall-e-3"
# Local servers such as Ollama accept any bearer token
PLACEHOLDER_CHAT_KEY = "ollama"


class OpenAICompatibleProvider(BaseGenerationProvider):
    """Chat streaming and image generation against OpenAI-style endpoints."""

    name = "OpenAI"
    kinds = frozenset({GenerationKind.CHAT, GenerationKind.IMAGE})

    async def stream_chat(
        self, config: ChatProviderConfig, request: ChatRequest
    ) -> AsyncIterator[str]:
        """Stream a chat completion from ``config.api_endpoint``.

        The endpoint is the full chat completions URL. Requests always carry
        a bearer token, falling back to a placeholder for local servers.
        """
        endpoint = config.api_endpoint
        if not endpoint:
            msg = "OpenAI-compatible API endpoint is not configured for this character."
            raise ConfigError(msg, error_code=ErrorCode.CFG_MISSING_ENDPOINT.value)

        model = config.model or self.settings.openai_default_model
        payload: dict[str, Any] = {
            "model": model,
            "messages": build_openai_messages(request.system_instruction, request.history),
            "stream": True,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {secret_value(config.api_key) or PLACEHOLDER_CHAT_KEY}",
        }

        start_time = log_generation_request(
            provider="openai",
            model=model,
            operation="chat",
            prompt_length=len(request.system_instruction),
            messages=len(payload["messages"]),
        )
        output_length = 0
        try:
            response = await self._open_stream("POST", endpoint, headers=headers, json=payload)
            try:
                async for event in iter_sse_events(response.aiter_text()):
                    piece = extract_openai_delta(event)
                    if piece:
                        output_length += len(piece)
                        yield piece
            finally:
                await response.aclose()
        except Exception as e:
            log_generation_error(
                provider="openai",
                model=model,
                operation="chat",
                start_time=start_time,
                error=e,
            )
            raise
        log_generation_success(
            provider="openai",
            model=model,
            operation="chat",
            start_time=start_time,
            output_length=output_length,
        )

    async def generate_image(self, prompt: str, config: ImageProviderConfig) -> str:
        endpoint = config.api_endpoint or DEFAULT_IMAGE_ENDPOINT
        api_key = secret_value(config.api_key)
        model = config.model or DEFAULT_IMAGE_MODEL

        if not api_key and "openai.com" in endpoint:
            msg = "API Key is required for OpenAI image generation."
            raise ConfigError(msg, error_code=ErrorCode.CFG_MISSING_KEY.value)

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        logger.info("openai_image_started", endpoint=endpoint, model=model)
        response = await self._request(
            "POST",
            endpoint,
            headers=headers,
            json={
                "model": model,
                "prompt": prompt,
                "n": 1,
                "size": "1024x1024",
                "response_format": "b64_json",
            },
        )
        items = read_json_object(response, self.name).get("data") or []
        if items:
            first = items[0]
            if first.get("b64_json"):
                return f"data:image/png;base64,{first['b64_json']}"
            if first.get("url"):
                return await self.download_as_data_uri(first["url"])

        msg = "No image data returned from OpenAI API."
        raise FatalProviderError(msg, error_code=ErrorCode.PRV_MALFORMED_RESPONSE.value)
