"""Unit tests for generation providers.

Tests cover:
- Gemini chat streaming, images, and speech
- OpenAI-compatible chat streaming and images
- Keyless and keyed image services
- AI Horde job polling
- Status classification and retries
"""

from __future__ import annotations

import base64
import json

import httpx
import pytest
import respx

from ai_nexus.config import Config
from ai_nexus.error_codes import ErrorCode
from ai_nexus.exceptions import (
    ConfigError,
    FatalProviderError,
    ProviderTimeoutError,
    TransientProviderError,
)
from ai_nexus.models import Message, MessageRole
from ai_nexus.providers.aihorde import HORDE_URL, AIHordeProvider
from ai_nexus.providers.base import ChatRequest
from ai_nexus.providers.config_models import (
    ChatProviderConfig,
    ImageProviderConfig,
    SpeechProviderConfig,
)
from ai_nexus.providers.gemini import GeminiProvider
from ai_nexus.providers.huggingface import HuggingFaceProvider
from ai_nexus.providers.openai_compatible import OpenAICompatibleProvider
from ai_nexus.providers.pollinations import PollinationsProvider
from ai_nexus.providers.stability import StabilityProvider

GEMINI_HOST = "generativelanguage.googleapis.com"
CHAT_URL = "http://localhost:11434/v1/chat/completions"


def sse(*events) -> str:
    lines = []
    for event in events:
        payload = event if isinstance(event, str) else json.dumps(event)
        lines.append(f"data: {payload}\n\n")
    return "".join(lines)


def gemini_event(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def openai_event(text: str) -> dict:
    return {"choices": [{"index": 0, "delta": {"content": text}}]}


def gemini_path(model: str, method: str) -> str:
    return f"/v1beta/models/{model}:{method}"


async def collect(stream) -> list[str]:
    return [piece async for piece in stream]


@pytest.fixture
def chat_request():
    return ChatRequest(
        system_instruction="You are Aria.",
        history=[Message(role=MessageRole.USER, content="Hi there")],
    )


@pytest.fixture
def gemini(test_config, sleep_recorder):
    return GeminiProvider(test_config, sleep=sleep_recorder)


@pytest.fixture
def openai_provider(test_config, sleep_recorder):
    return OpenAICompatibleProvider(test_config, sleep=sleep_recorder)


# Gemini chat


@pytest.mark.asyncio
@respx.mock
async def test_gemini_streams_deltas_in_order(gemini, chat_request):
    route = respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash", "streamGenerateContent")
    ).mock(
        return_value=httpx.Response(
            200,
            text=sse(gemini_event("Hello"), gemini_event(", "), gemini_event("traveler")),
            headers={"content-type": "text/event-stream"},
        )
    )

    pieces = await collect(gemini.stream_chat(ChatProviderConfig(), chat_request))

    assert pieces == ["Hello", ", ", "traveler"]
    request = route.calls.last.request
    assert request.url.params["alt"] == "sse"
    assert request.headers["x-goog-api-key"] == "test-gemini-key"
    body = json.loads(request.content)
    assert body["systemInstruction"] == {"parts": [{"text": "You are Aria."}]}
    assert body["contents"] == [{"role": "user", "parts": [{"text": "Hi there"}]}]
    assert "tools" not in body


@pytest.mark.asyncio
@respx.mock
async def test_gemini_thinking_uses_thinking_model(gemini, chat_request):
    chat_request.thinking_enabled = True
    chat_request.search_enabled = True
    route = respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-3-pro-preview", "streamGenerateContent")
    ).mock(return_value=httpx.Response(200, text=sse(gemini_event("Hmm"))))

    pieces = await collect(gemini.stream_chat(ChatProviderConfig(), chat_request))

    assert pieces == ["Hmm"]
    body = json.loads(route.calls.last.request.content)
    assert body["generationConfig"] == {"thinkingConfig": {"thinkingBudget": 32768}}
    assert "tools" not in body


@pytest.mark.asyncio
@respx.mock
async def test_gemini_search_adds_google_search_tool(gemini, chat_request):
    chat_request.search_enabled = True
    route = respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash", "streamGenerateContent")
    ).mock(return_value=httpx.Response(200, text=sse(gemini_event("News"))))

    await collect(gemini.stream_chat(ChatProviderConfig(), chat_request))

    body = json.loads(route.calls.last.request.content)
    assert body["tools"] == [{"googleSearch": {}}]


@pytest.mark.asyncio
@respx.mock
async def test_gemini_custom_key_only_for_explicit_service(gemini, chat_request):
    route = respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash", "streamGenerateContent")
    ).mock(return_value=httpx.Response(200, text=sse(gemini_event("ok"))))

    await collect(
        gemini.stream_chat(ChatProviderConfig(service="gemini", api_key="own-key"), chat_request)
    )
    assert route.calls.last.request.headers["x-goog-api-key"] == "own-key"

    await collect(
        gemini.stream_chat(ChatProviderConfig(service="default", api_key="own-key"), chat_request)
    )
    assert route.calls.last.request.headers["x-goog-api-key"] == "test-gemini-key"


@pytest.mark.asyncio
async def test_gemini_without_key_raises_config_error(chat_request, sleep_recorder):
    provider = GeminiProvider(Config(vector_store="memory"), sleep=sleep_recorder)

    with pytest.raises(ConfigError) as exc_info:
        await collect(provider.stream_chat(ChatProviderConfig(), chat_request))
    assert exc_info.value.message.startswith("Default Gemini API key not configured.")


@pytest.mark.asyncio
async def test_gemini_empty_history_yields_nothing(gemini):
    request = ChatRequest(system_instruction="sys", history=[])
    assert await collect(gemini.stream_chat(ChatProviderConfig(), request)) == []


@pytest.mark.asyncio
@respx.mock
async def test_gemini_rate_limit_is_retried(gemini, chat_request, sleep_recorder):
    route = respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash", "streamGenerateContent")
    ).mock(
        side_effect=[
            httpx.Response(429, text="RESOURCE_EXHAUSTED"),
            httpx.Response(200, text=sse(gemini_event("finally"))),
        ]
    )

    pieces = await collect(gemini.stream_chat(ChatProviderConfig(), chat_request))

    assert pieces == ["finally"]
    assert route.call_count == 2
    assert len(sleep_recorder.delays) == 1


@pytest.mark.asyncio
@respx.mock
async def test_gemini_persistent_rate_limit_raises_after_max_retries(
    gemini, chat_request, sleep_recorder
):
    route = respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash", "streamGenerateContent")
    ).mock(return_value=httpx.Response(429, text="quota"))

    with pytest.raises(TransientProviderError) as exc_info:
        await collect(gemini.stream_chat(ChatProviderConfig(), chat_request))

    assert route.call_count == 3
    assert exc_info.value.status_code == 429
    assert exc_info.value.message == "Gemini API Error: 429 - quota"


@pytest.mark.asyncio
@respx.mock
async def test_gemini_bad_request_is_not_retried(gemini, chat_request):
    route = respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash", "streamGenerateContent")
    ).mock(return_value=httpx.Response(400, text="invalid"))

    with pytest.raises(FatalProviderError) as exc_info:
        await collect(gemini.stream_chat(ChatProviderConfig(), chat_request))

    assert route.call_count == 1
    assert exc_info.value.error_code == ErrorCode.PRV_HTTP_ERROR.value


@pytest.mark.asyncio
@respx.mock
async def test_gemini_stream_generic(gemini):
    route = respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash", "streamGenerateContent")
    ).mock(return_value=httpx.Response(200, text=sse(gemini_event("A"), gemini_event("B"))))

    pieces = await collect(gemini.stream_generic("Be brief.", "Summarize", api_key="k2"))

    assert pieces == ["A", "B"]
    request = route.calls.last.request
    assert request.headers["x-goog-api-key"] == "k2"
    assert json.loads(request.content)["contents"] == [
        {"role": "user", "parts": [{"text": "Summarize"}]}
    ]


@pytest.mark.asyncio
@respx.mock
async def test_gemini_generate_content(gemini):
    respx.post(host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash", "generateContent")).mock(
        return_value=httpx.Response(200, json=gemini_event("A title"))
    )

    assert await gemini.generate_content("Name this chat") == "A title"


def test_gemini_error_chunk(gemini):
    chunk = gemini.error_chunk(FatalProviderError("bad things", error_code="X"))
    assert chunk == "Sorry, an error occurred with the Gemini API: bad things"


# Gemini image and speech


@pytest.mark.asyncio
@respx.mock
async def test_gemini_image_returns_data_uri(gemini):
    route = respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash-image", "generateContent")
    ).mock(
        return_value=httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"inlineData": {"data": "SU1H"}}]}}]},
        )
    )

    result = await gemini.generate_image("a castle", ImageProviderConfig())

    assert result == "data:image/png;base64,SU1H"
    body = json.loads(route.calls.last.request.content)
    assert body["generationConfig"] == {"imageConfig": {"aspectRatio": "1:1"}}


@pytest.mark.asyncio
@respx.mock
async def test_gemini_image_refusal(gemini):
    respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash-image", "generateContent")
    ).mock(
        return_value=httpx.Response(
            200, json={"candidates": [{"content": {"parts": [{"text": "I can't draw that"}]}}]}
        )
    )

    with pytest.raises(FatalProviderError) as exc_info:
        await gemini.generate_image("a castle", ImageProviderConfig())
    assert exc_info.value.error_code == ErrorCode.PRV_REFUSED.value
    assert "I can't draw that" in exc_info.value.message


@pytest.mark.asyncio
@respx.mock
async def test_gemini_image_without_candidates(gemini):
    respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash-image", "generateContent")
    ).mock(return_value=httpx.Response(200, json={"candidates": []}))

    with pytest.raises(FatalProviderError):
        await gemini.generate_image("a castle", ImageProviderConfig())


@pytest.mark.asyncio
@respx.mock
async def test_gemini_speech_decodes_audio(gemini):
    pcm = b"\x01\x02\x03\x04"
    route = respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash-preview-tts", "generateContent")
    ).mock(
        return_value=httpx.Response(
            200,
            json={
                "candidates": [
                    {
                        "content": {
                            "parts": [{"inlineData": {"data": base64.b64encode(pcm).decode()}}]
                        }
                    }
                ]
            },
        )
    )

    audio = await gemini.generate_speech("Hello", SpeechProviderConfig(voice="Kore"))

    assert audio == pcm
    body = json.loads(route.calls.last.request.content)
    assert body["generationConfig"]["responseModalities"] == ["AUDIO"]
    assert (
        body["generationConfig"]["speechConfig"]["voiceConfig"]["prebuiltVoiceConfig"][
            "voiceName"
        ]
        == "Kore"
    )


@pytest.mark.asyncio
@respx.mock
async def test_gemini_speech_without_audio(gemini):
    respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash-preview-tts", "generateContent")
    ).mock(return_value=httpx.Response(200, json={"candidates": []}))

    with pytest.raises(FatalProviderError, match="No audio data received"):
        await gemini.generate_speech("Hello", SpeechProviderConfig())


# OpenAI-compatible


@pytest.mark.asyncio
@respx.mock
async def test_openai_streams_with_placeholder_bearer(openai_provider, chat_request):
    route = respx.post(CHAT_URL).mock(
        return_value=httpx.Response(
            200,
            text=sse(openai_event("Hi"), openai_event("!"), "[DONE]"),
            headers={"content-type": "text/event-stream"},
        )
    )
    config = ChatProviderConfig(service="openai", api_endpoint=CHAT_URL)

    pieces = await collect(openai_provider.stream_chat(config, chat_request))

    assert pieces == ["Hi", "!"]
    request = route.calls.last.request
    assert request.headers["authorization"] == "Bearer ollama"
    body = json.loads(request.content)
    assert body == {
        "model": "llama3",
        "messages": [
            {"role": "system", "content": "You are Aria."},
            {"role": "user", "content": "Hi there"},
        ],
        "stream": True,
    }


@pytest.mark.asyncio
@respx.mock
async def test_openai_uses_configured_key_and_model(openai_provider, chat_request):
    route = respx.post(CHAT_URL).mock(
        return_value=httpx.Response(200, text=sse(openai_event("ok"), "[DONE]"))
    )
    config = ChatProviderConfig(
        service="openai", api_endpoint=CHAT_URL, api_key="sk-1", model="mistral"
    )

    await collect(openai_provider.stream_chat(config, chat_request))

    request = route.calls.last.request
    assert request.headers["authorization"] == "Bearer sk-1"
    assert json.loads(request.content)["model"] == "mistral"


@pytest.mark.asyncio
@respx.mock
async def test_openai_skips_malformed_chunks(openai_provider, chat_request):
    respx.post(CHAT_URL).mock(
        return_value=httpx.Response(
            200, text=sse(openai_event("a"), "{broken", openai_event("b"), "[DONE]")
        )
    )
    config = ChatProviderConfig(service="openai", api_endpoint=CHAT_URL)

    assert await collect(openai_provider.stream_chat(config, chat_request)) == ["a", "b"]


@pytest.mark.asyncio
async def test_openai_without_endpoint(openai_provider, chat_request):
    with pytest.raises(ConfigError):
        await collect(
            openai_provider.stream_chat(ChatProviderConfig(service="openai"), chat_request)
        )


@pytest.mark.asyncio
async def test_openai_image_requires_key_for_openai_host(openai_provider):
    with pytest.raises(ConfigError):
        await openai_provider.generate_image("cat", ImageProviderConfig(service="openai"))


@pytest.mark.asyncio
@respx.mock
async def test_openai_image_b64(openai_provider):
    url = "https://api.imagerouter.io/v1/openai/images/generations"
    route = respx.post(url).mock(
        return_value=httpx.Response(200, json={"data": [{"b64_json": "QkFTRTY0"}]})
    )

    result = await openai_provider.generate_image(
        "cat", ImageProviderConfig(service="imagerouter", api_endpoint=url, model="flux")
    )

    assert result == "data:image/png;base64,QkFTRTY0"
    body = json.loads(route.calls.last.request.content)
    assert body == {
        "model": "flux",
        "prompt": "cat",
        "n": 1,
        "size": "1024x1024",
        "response_format": "b64_json",
    }
    assert "authorization" not in route.calls.last.request.headers


@pytest.mark.asyncio
@respx.mock
async def test_openai_image_url_is_downloaded(openai_provider):
    respx.post("https://api.openai.com/v1/images/generations").mock(
        return_value=httpx.Response(200, json={"data": [{"url": "https://cdn.test/img.png"}]})
    )
    respx.get("https://cdn.test/img.png").mock(
        return_value=httpx.Response(200, content=b"PNG", headers={"content-type": "image/png"})
    )

    result = await openai_provider.generate_image(
        "cat", ImageProviderConfig(service="openai", api_key="sk-1")
    )

    assert result == f"data:image/png;base64,{base64.b64encode(b'PNG').decode()}"


# Other image services


@pytest.mark.asyncio
@respx.mock
async def test_pollinations_downloads_image(test_config, sleep_recorder):
    provider = PollinationsProvider(test_config, sleep=sleep_recorder)
    route = respx.get(host="image.pollinations.ai").mock(
        return_value=httpx.Response(200, content=b"JPG", headers={"content-type": "image/jpeg"})
    )

    result = await provider.generate_image("a red fox", ImageProviderConfig())

    assert result == f"data:image/jpeg;base64,{base64.b64encode(b'JPG').decode()}"
    request = route.calls.last.request
    assert "/prompt/a%20red%20fox?" in str(request.url)
    assert request.url.params["model"] == "flux"
    assert request.url.params["nologo"] == "true"


@pytest.mark.asyncio
@respx.mock
async def test_pollinations_falls_back_to_url(test_config, sleep_recorder):
    provider = PollinationsProvider(test_config, sleep=sleep_recorder)
    respx.get(host="image.pollinations.ai").mock(return_value=httpx.Response(500))

    result = await provider.generate_image("fox", ImageProviderConfig(model="turbo"))

    assert result == "https://image.pollinations.ai/prompt/fox?model=turbo&nologo=true"


@pytest.mark.asyncio
@respx.mock
async def test_huggingface_returns_binary_as_data_uri(test_config, sleep_recorder):
    provider = HuggingFaceProvider(test_config, sleep=sleep_recorder)
    route = respx.post(
        "https://api-inference.huggingface.co/models/black-forest-labs/FLUX.1-dev"
    ).mock(
        return_value=httpx.Response(200, content=b"IMG", headers={"content-type": "image/jpeg"})
    )

    result = await provider.generate_image("fox", ImageProviderConfig(api_key="hf_x"))

    assert result == f"data:image/jpeg;base64,{base64.b64encode(b'IMG').decode()}"
    request = route.calls.last.request
    assert json.loads(request.content) == {"inputs": "fox"}
    assert request.headers["authorization"] == "Bearer hf_x"


@pytest.mark.asyncio
async def test_stability_requires_key(test_config, sleep_recorder):
    provider = StabilityProvider(test_config, sleep=sleep_recorder)

    with pytest.raises(ConfigError, match="API Key is required for Stability.ai"):
        await provider.generate_image("fox", ImageProviderConfig(service="stability"))


@pytest.mark.asyncio
@respx.mock
async def test_stability_returns_first_artifact(test_config, sleep_recorder):
    provider = StabilityProvider(test_config, sleep=sleep_recorder)
    route = respx.post(
        "https://api.stability.ai/v1/generation/stable-diffusion-xl-1024-v1-0/text-to-image"
    ).mock(return_value=httpx.Response(200, json={"artifacts": [{"base64": "U1RBQg=="}]}))

    result = await provider.generate_image("fox", ImageProviderConfig(api_key="sk-stab"))

    assert result == "data:image/png;base64,U1RBQg=="
    body = json.loads(route.calls.last.request.content)
    assert body["text_prompts"] == [{"text": "fox"}]
    assert (body["width"], body["height"], body["samples"]) == (1024, 1024, 1)


# AI Horde


@pytest.fixture
def horde(test_config, sleep_recorder):
    return AIHordeProvider(test_config, sleep=sleep_recorder)


@pytest.mark.asyncio
@respx.mock
async def test_horde_polls_until_done(horde, sleep_recorder):
    submit = respx.post(f"{HORDE_URL}/generate/async").mock(
        return_value=httpx.Response(202, json={"id": "job-1"})
    )
    respx.get(f"{HORDE_URL}/generate/status/job-1").mock(
        side_effect=[
            httpx.Response(200, json={"done": False, "is_possible": True}),
            httpx.Response(200, json={"done": True, "generations": [{"img": "https://horde/img.webp"}]}),
        ]
    )

    result = await horde.generate_image("fox", ImageProviderConfig(service="aihorde"))

    assert result == "https://horde/img.webp"
    assert submit.calls.last.request.headers["apikey"] == "0000000000"
    assert sleep_recorder.delays == [0.0, 0.0]


@pytest.mark.asyncio
@respx.mock
async def test_horde_times_out_after_max_attempts(horde, sleep_recorder):
    respx.post(f"{HORDE_URL}/generate/async").mock(
        return_value=httpx.Response(202, json={"id": "job-2"})
    )
    status = respx.get(f"{HORDE_URL}/generate/status/job-2").mock(
        return_value=httpx.Response(200, json={"done": False, "is_possible": True})
    )

    with pytest.raises(ProviderTimeoutError, match="AI Horde generation timed out."):
        await horde.generate_image("fox", ImageProviderConfig(service="aihorde"))

    assert status.call_count == 3
    assert len(sleep_recorder.delays) == 3


@pytest.mark.asyncio
@respx.mock
async def test_horde_impossible_job(horde):
    respx.post(f"{HORDE_URL}/generate/async").mock(
        return_value=httpx.Response(202, json={"id": "job-3"})
    )
    respx.get(f"{HORDE_URL}/generate/status/job-3").mock(
        return_value=httpx.Response(200, json={"done": False, "is_possible": False})
    )

    with pytest.raises(FatalProviderError) as exc_info:
        await horde.generate_image("fox", ImageProviderConfig(service="aihorde"))
    assert exc_info.value.error_code == ErrorCode.PRV_JOB_IMPOSSIBLE.value


@pytest.mark.asyncio
@respx.mock
async def test_horde_missing_job_id(horde):
    respx.post(f"{HORDE_URL}/generate/async").mock(
        return_value=httpx.Response(202, json={"message": "queued?"})
    )

    with pytest.raises(FatalProviderError, match="did not return a Job ID"):
        await horde.generate_image("fox", ImageProviderConfig(service="aihorde"))


@pytest.mark.asyncio
@respx.mock
async def test_horde_failed_status_reads_count_as_attempts(horde):
    respx.post(f"{HORDE_URL}/generate/async").mock(
        return_value=httpx.Response(202, json={"id": "job-4"})
    )
    status = respx.get(f"{HORDE_URL}/generate/status/job-4").mock(
        return_value=httpx.Response(500)
    )

    with pytest.raises(ProviderTimeoutError):
        await horde.generate_image("fox", ImageProviderConfig(service="aihorde"))
    assert status.call_count == 3


@pytest.mark.asyncio
@respx.mock
async def test_horde_network_errors_while_polling_count_as_attempts(horde):
    respx.post(f"{HORDE_URL}/generate/async").mock(
        return_value=httpx.Response(202, json={"id": "job-5"})
    )
    status = respx.get(f"{HORDE_URL}/generate/status/job-5").mock(
        side_effect=httpx.ConnectError("connection reset")
    )

    with pytest.raises(ProviderTimeoutError):
        await horde.generate_image("fox", ImageProviderConfig(service="aihorde"))
    assert status.call_count == 3


# Network failures and malformed bodies


@pytest.mark.asyncio
@respx.mock
async def test_connection_failure_is_fatal_and_not_retried(gemini):
    route = respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash-preview-tts", "generateContent")
    ).mock(side_effect=httpx.ConnectError("connection refused"))

    with pytest.raises(FatalProviderError) as exc_info:
        await gemini.generate_speech("Hello", SpeechProviderConfig())

    assert route.call_count == 1
    assert exc_info.value.error_code == ErrorCode.PRV_NETWORK_ERROR.value
    assert exc_info.value.message == "Gemini request failed: connection refused"


@pytest.mark.asyncio
@respx.mock
async def test_stream_open_timeout_is_fatal(gemini, chat_request):
    respx.post(
        host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash", "streamGenerateContent")
    ).mock(side_effect=httpx.ReadTimeout("timed out"))

    with pytest.raises(FatalProviderError) as exc_info:
        await collect(gemini.stream_chat(ChatProviderConfig(), chat_request))

    assert exc_info.value.error_code == ErrorCode.PRV_NETWORK_ERROR.value


@pytest.mark.asyncio
@respx.mock
async def test_non_json_body_is_malformed_response(gemini):
    respx.post(host=GEMINI_HOST, path=gemini_path("gemini-2.5-flash", "generateContent")).mock(
        return_value=httpx.Response(200, text="<html>gateway</html>")
    )

    with pytest.raises(FatalProviderError) as exc_info:
        await gemini.generate_content("Name this chat")

    assert exc_info.value.error_code == ErrorCode.PRV_MALFORMED_RESPONSE.value
    assert exc_info.value.message.startswith("Gemini returned a malformed response")


@pytest.mark.asyncio
@respx.mock
async def test_json_array_body_is_malformed_response(test_config, sleep_recorder):
    provider = StabilityProvider(test_config, sleep=sleep_recorder)
    respx.post(
        "https://api.stability.ai/v1/generation/stable-diffusion-xl-1024-v1-0/text-to-image"
    ).mock(return_value=httpx.Response(200, json=[{"base64": "U1RBQg=="}]))

    with pytest.raises(FatalProviderError, match="expected an object, got list"):
        await provider.generate_image("fox", ImageProviderConfig(api_key="sk-stab"))
