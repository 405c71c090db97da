"""Pytest configuration and fixtures for the test suite."""

import pytest

from ai_nexus.config import Config, RetryConfig, reset_config
from ai_nexus.config_models import PollingConfig
from ai_nexus.models import Character, EmbeddingConfig, Message, MessageRole
from ai_nexus.providers.config_models import ChatProviderConfig
from ai_nexus.rag import InMemoryVectorStore, RAGService
from tests.fixtures import MockChatProvider, MockDispatcher, MockEmbeddingClient

ENV_VARS = ("GEMINI_API_KEY", "API_KEY", "AI_NEXUS_CONFIG", "VECTOR_STORE", "DATA_DIR")


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep developer .env files and API keys out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def test_config(tmp_path):
    """Config with a default key, in-memory storage, and no backoff delays."""
    return Config(
        gemini_api_key="test-gemini-key",
        vector_store="memory",
        data_dir=tmp_path / "data",
        retry=RetryConfig(max_retries=3, initial_delay=0.0, jitter=0.0),
        image_polling=PollingConfig(interval=0.0, max_attempts=3),
    )


@pytest.fixture
def sleep_recorder():
    """Awaitable sleep that records requested delays instead of sleeping."""
    delays: list[float] = []

    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture
def mock_embedding_client():
    """Provide a mock embedding client for testing."""
    return MockEmbeddingClient()


@pytest.fixture
def vector_store():
    """Provide an empty in-memory vector store."""
    return InMemoryVectorStore()


@pytest.fixture
def rag_service(mock_embedding_client, vector_store):
    """RAG service over the mock embedding client and in-memory store."""
    return RAGService(mock_embedding_client, vector_store, chunk_size=1000, overlap=200)


@pytest.fixture
def embedding_config():
    return EmbeddingConfig(service="gemini", model="text-embedding-004")


@pytest.fixture
def sample_character(embedding_config):
    """Provide a sample character with a full persona."""
    return Character(
        id="char-aria",
        name="Aria",
        description="A wandering bard.",
        physical_appearance="Tall, with silver hair.",
        personality_traits="Curious, witty",
        personality="Speak in rhyme when excited.",
        memory="Met the user at the tavern yesterday.",
        lore=["Born in Eldoria", "  ", "Plays the lute"],
        embedding_config=embedding_config,
    )


@pytest.fixture
def openai_character():
    """Character routed to an OpenAI-compatible endpoint."""
    return Character(
        id="char-local",
        name="Local",
        api_config=ChatProviderConfig(
            service="openai",
            api_endpoint="http://localhost:11434/v1/chat/completions",
            model="llama3",
        ),
    )


@pytest.fixture
def user_history():
    return [Message(role=MessageRole.USER, content="Tell me about dragons.")]


@pytest.fixture
def mock_chat_provider(test_config):
    return MockChatProvider(test_config)


@pytest.fixture
def mock_dispatcher(mock_chat_provider):
    return MockDispatcher(mock_chat_provider)
