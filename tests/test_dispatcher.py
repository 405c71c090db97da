"""Tests for provider routing and image prompt decoration."""

import pytest

from ai_nexus.providers.aihorde import AIHordeProvider
from ai_nexus.providers.base import GenerationKind
from ai_nexus.providers.config_models import (
    ChatProviderConfig,
    ChatService,
    ImageProviderConfig,
    ImageService,
)
from ai_nexus.providers.dispatcher import ProviderDispatcher, build_image_prompt
from ai_nexus.providers.gemini import GeminiProvider
from ai_nexus.providers.huggingface import HuggingFaceProvider
from ai_nexus.providers.openai_compatible import OpenAICompatibleProvider
from ai_nexus.providers.pollinations import PollinationsProvider
from ai_nexus.providers.stability import StabilityProvider


@pytest.fixture
def dispatcher(test_config, sleep_recorder):
    return ProviderDispatcher(test_config, sleep=sleep_recorder)


@pytest.mark.parametrize(
    ("service", "expected"),
    [
        ("default", GeminiProvider),
        ("gemini", GeminiProvider),
        ("openai", OpenAICompatibleProvider),
        ("openai-compatible", OpenAICompatibleProvider),
        ("something-new", GeminiProvider),
        (None, GeminiProvider),
    ],
)
def test_chat_routing(dispatcher, service, expected):
    config = ChatProviderConfig(service=service)
    assert isinstance(dispatcher.resolve(GenerationKind.CHAT, config.service), expected)


@pytest.mark.parametrize(
    ("service", "expected"),
    [
        ("default", GeminiProvider),
        ("gemini", GeminiProvider),
        ("openai", OpenAICompatibleProvider),
        ("imagerouter", OpenAICompatibleProvider),
        ("pollinations", PollinationsProvider),
        ("huggingface", HuggingFaceProvider),
        ("stability", StabilityProvider),
        ("aihorde", AIHordeProvider),
        ("midjourney", GeminiProvider),
    ],
)
def test_image_routing(dispatcher, service, expected):
    config = ImageProviderConfig(service=service)
    assert isinstance(dispatcher.resolve(GenerationKind.IMAGE, config.service), expected)


def test_unknown_service_normalizes_to_default():
    assert ChatProviderConfig(service="claude").service == ChatService.DEFAULT
    assert ImageProviderConfig(service="dalle").service == ImageService.DEFAULT


def test_speech_always_uses_gemini(dispatcher):
    assert isinstance(dispatcher.resolve(GenerationKind.SPEECH), GeminiProvider)


def test_provider_instances_are_shared(dispatcher):
    first = dispatcher.resolve(GenerationKind.CHAT, ChatService.GEMINI)
    second = dispatcher.resolve(GenerationKind.IMAGE, ImageService.DEFAULT)

    assert first is second
    assert first is dispatcher.gemini()
    assert first.client is dispatcher.client


def test_image_prompt_with_style_and_negative_prompt():
    config = ImageProviderConfig(style="Anime", negative_prompt="blurry, text")
    assert build_image_prompt("a cat", config) == (
        "Anime style, a cat. Negative prompt: blurry, text"
    )


def test_image_prompt_with_custom_style():
    config = ImageProviderConfig(style="Custom", custom_style_prompt="oil on canvas")
    assert build_image_prompt("a cat", config) == "oil on canvas, a cat"


def test_image_prompt_custom_style_without_text():
    assert build_image_prompt("a cat", ImageProviderConfig(style="Custom")) == "a cat"


def test_image_prompt_default_style_adds_nothing():
    config = ImageProviderConfig(style="Default (None)")
    assert build_image_prompt("a cat", config) == "a cat"


@pytest.mark.asyncio
async def test_dispatcher_closes_owned_client(test_config):
    dispatcher = ProviderDispatcher(test_config)
    await dispatcher.aclose()
    assert dispatcher.client.is_closed


def test_gemini_accessor_matches_speech_provider(dispatcher):
    provider = dispatcher.gemini()

    assert isinstance(provider, GeminiProvider)
    assert provider is dispatcher.resolve(GenerationKind.SPEECH)
