"""
Shared pytest fixtures for memorybank tests.

This module provides:
- Deterministic embedding and reasoning test doubles
- An in-memory vector store
- A ready-to-use engine factory
- Mock LLM SDK clients (OpenAI, Google)
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from memorybank.memory.engine import MemoryEngine
from memorybank.memory.in_memory_store import InMemoryVectorStore
from tests.fixtures import (
    KeywordEmbeddingService,
    ScriptedDecisionService,
    ScriptedExtractionService,
)


# =============================================================================
# Core Fixtures
# =============================================================================


@pytest.fixture
def embedder() -> KeywordEmbeddingService:
    """Embedder where facts about residence or hiking share an axis."""
    return KeywordEmbeddingService(axes={"lives in": 0, "hiking": 1, "coffee": 2})


@pytest.fixture
def store() -> InMemoryVectorStore:
    """Provide an empty in-memory vector store."""
    return InMemoryVectorStore()


@pytest.fixture
def make_engine(store, embedder):
    """
    Build an initialized engine around the shared store and embedder.

    Usage: engine = await make_engine(facts=[...], actions=[...])
    """
    async def _make(
        facts=None,
        actions=None,
        extraction=None,
        decision=None,
        **kwargs,
    ) -> MemoryEngine:
        engine = MemoryEngine(
            vector_store=store,
            embedding_service=embedder,
            extraction_service=extraction or ScriptedExtractionService(facts),
            decision_service=decision or ScriptedDecisionService(actions),
            **kwargs,
        )
        await engine.initialize()
        return engine

    return _make


@pytest.fixture
def sample_config_yaml(tmp_path) -> Path:
    """Create a sample config.yaml file."""
    config_path = tmp_path / "config.yaml"
    config_content = """
llm:
  provider: openai
  openai_model: gpt-4o-mini
  google_model: gemini-2.0-flash

memory:
  store_type: pgvector
  embedding_provider: openai
  top_k: 3
  threshold: 0.25

engine:
  concurrent_retrieval: false
  collaborator_timeout: 5

logging:
  level: DEBUG
"""
    config_path.write_text(config_content)
    return config_path


# =============================================================================
# Mock External Services
# =============================================================================


@pytest.fixture
def mock_google_genai():
    """Mock google.genai.Client for Gemini API tests."""
    with patch("google.genai.Client") as mock_client_class:
        mock_client = MagicMock()

        mock_response = MagicMock()
        mock_response.text = '{"facts": ["lives in Paris"]}'
        mock_response.usage_metadata = MagicMock(
            prompt_token_count=100,
            candidates_token_count=50,
            total_token_count=150,
        )

        mock_embedding = MagicMock()
        mock_embedding.values = [0.1, 0.2, 0.3]
        mock_embed_response = MagicMock()
        mock_embed_response.embeddings = [mock_embedding]

        mock_aio = MagicMock()
        mock_aio.models.generate_content = AsyncMock(return_value=mock_response)
        mock_aio.models.embed_content = AsyncMock(return_value=mock_embed_response)
        mock_client.aio = mock_aio

        mock_client_class.return_value = mock_client
        yield mock_client_class


@pytest.fixture
def mock_openai():
    """Mock AsyncOpenAI for OpenAI API tests."""
    # Patch at the module where it's imported, not where it's defined
    with patch("memorybank.llm.openai_client.AsyncOpenAI") as mock_client_class:
        mock_client = MagicMock()

        mock_message = MagicMock()
        mock_message.content = '{"facts": ["lives in Paris"]}'

        mock_choice = MagicMock()
        mock_choice.message = mock_message

        mock_response = MagicMock()
        mock_response.choices = [mock_choice]
        mock_response.model = "gpt-4o-mini"
        mock_response.usage = MagicMock(
            prompt_tokens=100,
            completion_tokens=50,
            total_tokens=150,
        )

        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)
        mock_client_class.return_value = mock_client
        yield mock_client_class


@pytest.fixture
def mock_llm():
    """A provider-agnostic LLM mock whose reply content tests can set."""
    llm = MagicMock()
    llm.provider_name = "TestProvider"
    llm.model_name = "test-model"
    llm.generate = AsyncMock()
    return llm


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set mock environment variables for testing."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-openai-key")
    monkeypatch.setenv("GOOGLE_API_KEY", "test-google-key")
    monkeypatch.setenv("POSTGRES_URL", "postgresql://test@localhost/test")
