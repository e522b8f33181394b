"""
Tests for embedding provider abstraction.

Tests cover:
- Provider interface
- OpenAI embeddings provider
- Hugging Face inference provider
- Deterministic mock provider
- Provider factory and settings wiring
"""
import pytest
from unittest.mock import Mock, AsyncMock, patch

from app.config import Settings
from app.services.embedding_providers import (
    MODEL_DIMENSIONS,
    EmbeddingProvider,
    HuggingFaceEmbeddings,
    MockEmbeddingProvider,
    OpenAIEmbeddings,
    get_embedding_provider,
    provider_from_settings,
)


class TestEmbeddingProviderInterface:
    """Tests for the provider protocol."""

    def test_interface_defines_required_methods(self):
        """Interface should define embed, embed_batch, and dimensions."""
        assert hasattr(EmbeddingProvider, "embed")
        assert hasattr(EmbeddingProvider, "embed_batch")
        assert hasattr(EmbeddingProvider, "dimensions")

    def test_all_providers_implement_interface(self):
        for provider in (
            OpenAIEmbeddings(api_key="test"),
            HuggingFaceEmbeddings(api_key="test"),
            MockEmbeddingProvider(),
        ):
            assert isinstance(provider, EmbeddingProvider)


class TestOpenAIEmbeddings:
    """Tests for OpenAI embeddings provider."""

    def test_openai_provider_initialization(self):
        """Should initialize with default model."""
        provider = OpenAIEmbeddings(api_key="test-key")
        assert provider.model == "text-embedding-3-small"
        assert provider.dimensions == 1536

    def test_openai_provider_custom_model(self):
        provider = OpenAIEmbeddings(api_key="test-key", model="text-embedding-3-large")
        assert provider.dimensions == 3072

    @pytest.mark.asyncio
    async def test_openai_embed_single_text(self):
        """Should embed a single text."""
        provider = OpenAIEmbeddings(api_key="test-key")

        mock_response = Mock()
        mock_response.data = [Mock(embedding=[0.1] * 1536)]

        with patch.object(provider, "_client") as mock_client:
            mock_client.embeddings.create = AsyncMock(return_value=mock_response)

            embedding = await provider.embed("Wedding videographer\nLondon")

            assert len(embedding) == 1536
            mock_client.embeddings.create.assert_called_once_with(
                input=["Wedding videographer London"], model="text-embedding-3-small"
            )

    @pytest.mark.asyncio
    async def test_openai_embed_batch_keeps_order_around_empty_texts(self):
        """Empty texts get zero vectors in their original positions."""
        provider = OpenAIEmbeddings(api_key="test-key")

        mock_response = Mock()
        mock_response.data = [Mock(embedding=[0.1] * 1536), Mock(embedding=[0.2] * 1536)]

        with patch.object(provider, "_client") as mock_client:
            mock_client.embeddings.create = AsyncMock(return_value=mock_response)

            embeddings = await provider.embed_batch(["Text 1", "", "Text 2"])

        assert embeddings[0][0] == 0.1
        assert all(v == 0.0 for v in embeddings[1])
        assert embeddings[2][0] == 0.2

    @pytest.mark.asyncio
    async def test_openai_handles_empty_text(self):
        """Should return zero vector for empty text."""
        provider = OpenAIEmbeddings(api_key="test-key")

        embedding = await provider.embed("")

        assert len(embedding) == 1536
        assert all(v == 0.0 for v in embedding)


class TestHuggingFaceEmbeddings:
    """Tests for the Hugging Face inference provider."""

    def test_default_model(self):
        provider = HuggingFaceEmbeddings(api_key="hf-test")
        assert provider.model == "sentence-transformers/all-MiniLM-L6-v2"
        assert provider.dimensions == 384

    @pytest.mark.asyncio
    async def test_embed_single_text(self):
        provider = HuggingFaceEmbeddings(api_key="hf-test")

        with patch.object(provider, "_request", AsyncMock(return_value=[[1, 2, 3]])) as mock_request:
            embedding = await provider.embed("  plumber  ")

        assert embedding == [1.0, 2.0, 3.0]
        mock_request.assert_awaited_once_with(["plumber"])

    @pytest.mark.asyncio
    async def test_embed_batch_skips_empty(self):
        provider = HuggingFaceEmbeddings(api_key="hf-test")

        with patch.object(provider, "_request", AsyncMock(return_value=[[0.5] * 384])) as mock_request:
            embeddings = await provider.embed_batch(["", "electrician"])

        mock_request.assert_awaited_once_with(["electrician"])
        assert all(v == 0.0 for v in embeddings[0])
        assert embeddings[1][0] == 0.5

    @pytest.mark.asyncio
    async def test_empty_text_makes_no_request(self):
        provider = HuggingFaceEmbeddings(api_key="hf-test")

        with patch.object(provider, "_request", AsyncMock()) as mock_request:
            embedding = await provider.embed("")

        mock_request.assert_not_called()
        assert len(embedding) == 384


class TestMockEmbeddingProvider:
    """Tests for mock embedding provider."""

    @pytest.mark.asyncio
    async def test_mock_provider_returns_deterministic_embeddings(self):
        provider = MockEmbeddingProvider()
        assert await provider.embed("video editing") == await provider.embed("video editing")

    @pytest.mark.asyncio
    async def test_mock_provider_different_inputs_different_outputs(self):
        provider = MockEmbeddingProvider()
        assert await provider.embed("video editing") != await provider.embed("plumbing")

    def test_mock_provider_configurable_dimensions(self):
        assert MockEmbeddingProvider(dimensions=16).dimensions == 16

    @pytest.mark.asyncio
    async def test_mock_values_in_range(self):
        embedding = await MockEmbeddingProvider(dimensions=32).embed("anything")
        assert len(embedding) == 32
        assert all(-1.0 <= v <= 1.0 for v in embedding)

    @pytest.mark.asyncio
    async def test_mock_records_calls(self):
        provider = MockEmbeddingProvider()
        await provider.embed_batch(["a", "b"])
        assert provider.calls == ["a", "b"]


class TestEmbeddingProviderFactory:
    """Tests for provider factory."""

    def test_factory_creates_openai_provider(self):
        provider = get_embedding_provider("openai", api_key="test")
        assert isinstance(provider, OpenAIEmbeddings)

    def test_factory_creates_huggingface_provider(self):
        provider = get_embedding_provider("HuggingFace", api_key="test", model_name="BAAI/bge-large-en-v1.5")
        assert isinstance(provider, HuggingFaceEmbeddings)
        assert provider.dimensions == MODEL_DIMENSIONS["BAAI/bge-large-en-v1.5"]

    def test_factory_requires_api_key(self):
        with pytest.raises(ValueError):
            get_embedding_provider("openai")

    def test_factory_invalid_provider(self):
        with pytest.raises(ValueError, match="Unknown embedding provider"):
            get_embedding_provider("word2vec")

    def test_provider_from_settings(self):
        settings = Settings(embedding_provider="mock", embedding_dimensions=12, _env_file=None)
        provider = provider_from_settings(settings)
        assert isinstance(provider, MockEmbeddingProvider)
        assert provider.dimensions == 12
