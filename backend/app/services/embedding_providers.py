"""
Embedding Providers - Swappable Text-to-Vector Backends

Key Classes:
    - EmbeddingProvider: Protocol every provider implements
    - OpenAIEmbeddings: OpenAI embeddings API (text-embedding-3-small default)
    - HuggingFaceEmbeddings: Hugging Face hosted inference API
    - MockEmbeddingProvider: Deterministic hash-based vectors for tests

Providers raise whatever their client raises; EmbeddingStore wraps those
failures as DependencyUnavailable.
"""

import hashlib
import logging
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import httpx
from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


MODEL_DIMENSIONS: Dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "sentence-transformers/all-MiniLM-L6-v2": 384,
    "sentence-transformers/all-mpnet-base-v2": 768,
    "BAAI/bge-large-en-v1.5": 1024,
}

HUGGINGFACE_API_URL = "https://api-inference.huggingface.co/pipeline/feature-extraction"


@runtime_checkable
class EmbeddingProvider(Protocol):
    """
    Protocol defining the embedding provider interface.

    All embedding providers must implement:
    - embed(): Single text to embedding
    - embed_batch(): Multiple texts to embeddings
    - dimensions: Embedding vector size
    """

    @property
    def dimensions(self) -> int:
        ...

    async def embed(self, text: str) -> List[float]:
        ...

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        ...


class OpenAIEmbeddings:
    """
    OpenAI API embeddings provider.

    Empty texts get zero vectors without an API call.

    Example:
        >>> provider = OpenAIEmbeddings(api_key="sk-...")
        >>> embedding = await provider.embed("Video editor, Premiere Pro")
    """

    def __init__(self, api_key: str, model: str = "text-embedding-3-small") -> None:
        self.api_key = api_key
        self.model = model
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    @property
    def dimensions(self) -> int:
        return MODEL_DIMENSIONS.get(self.model, 1536)

    async def embed(self, text: str) -> List[float]:
        text = text.replace("\n", " ").strip()
        if not text:
            return [0.0] * self.dimensions

        response = await self._get_client().embeddings.create(
            input=[text],
            model=self.model,
        )
        return response.data[0].embedding

    async def embed_batch(self, texts: List[str], batch_size: int = 100) -> List[List[float]]:
        """
        Embed multiple texts with automatic batching.

        Args:
            texts: List of texts to embed
            batch_size: Maximum texts per API call (default 100)

        Returns:
            List of embedding vectors in same order as input
        """
        cleaned_texts = [t.replace("\n", " ").strip() for t in texts]

        non_empty_indices = [i for i, t in enumerate(cleaned_texts) if t]
        non_empty_texts = [cleaned_texts[i] for i in non_empty_indices]

        if not non_empty_texts:
            return [[0.0] * self.dimensions for _ in texts]

        client = self._get_client()
        all_embeddings = []
        for i in range(0, len(non_empty_texts), batch_size):
            batch = non_empty_texts[i:i + batch_size]
            response = await client.embeddings.create(input=batch, model=self.model)
            all_embeddings.extend([d.embedding for d in response.data])

        result = [[0.0] * self.dimensions for _ in texts]
        for idx, emb in zip(non_empty_indices, all_embeddings):
            result[idx] = emb
        return result


class HuggingFaceEmbeddings:
    """
    Hugging Face inference API provider (sentence-transformers models).

    Uses the feature-extraction pipeline, which returns one pooled vector
    per input sentence.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "sentence-transformers/all-MiniLM-L6-v2",
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @property
    def dimensions(self) -> int:
        return MODEL_DIMENSIONS.get(self.model, 384)

    async def _request(self, inputs: List[str]) -> List[List[float]]:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{HUGGINGFACE_API_URL}/{self.model}",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"inputs": inputs, "options": {"wait_for_model": True}},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()

    async def embed(self, text: str) -> List[float]:
        text = text.strip()
        if not text:
            return [0.0] * self.dimensions
        vectors = await self._request([text])
        return [float(v) for v in vectors[0]]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        cleaned_texts = [t.strip() for t in texts]
        non_empty_indices = [i for i, t in enumerate(cleaned_texts) if t]

        result = [[0.0] * self.dimensions for _ in texts]
        if not non_empty_indices:
            return result

        vectors = await self._request([cleaned_texts[i] for i in non_empty_indices])
        for idx, vec in zip(non_empty_indices, vectors):
            result[idx] = [float(v) for v in vec]
        return result


class MockEmbeddingProvider:
    """
    Mock embedding provider for testing.

    Generates deterministic embeddings based on text hash, so equal texts
    always produce equal vectors.
    """

    def __init__(self, dimensions: int = 384) -> None:
        self._dimensions = dimensions
        self.calls: List[str] = []

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _text_to_embedding(self, text: str) -> List[float]:
        if not text:
            return [0.0] * self._dimensions

        text_hash = hashlib.md5(text.encode()).hexdigest()

        embedding = []
        for i in range(self._dimensions):
            idx = (i * 2) % len(text_hash)
            char_val = int(text_hash[idx:idx + 2], 16)
            # Normalize to [-1, 1]
            embedding.append((char_val / 127.5) - 1)
        return embedding

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        return self._text_to_embedding(text)

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.calls.extend(texts)
        return [self._text_to_embedding(t) for t in texts]


def get_embedding_provider(
    provider_name: str = "openai",
    api_key: Optional[str] = None,
    model_name: Optional[str] = None,
    **kwargs: Any
) -> EmbeddingProvider:
    """
    Factory function to create embedding provider instances.

    Args:
        provider_name: "openai", "huggingface", or "mock"
        api_key: API key for hosted providers
        model_name: Optional model name override
        **kwargs: Provider-specific arguments (dimensions for mock)

    Raises:
        ValueError: If provider is unknown or required args missing
    """
    provider_name = provider_name.lower()

    if provider_name == "openai":
        if not api_key:
            raise ValueError("OpenAI embeddings require api_key")
        return OpenAIEmbeddings(api_key=api_key, model=model_name or "text-embedding-3-small")

    elif provider_name == "huggingface":
        if not api_key:
            raise ValueError("Hugging Face embeddings require api_key")
        return HuggingFaceEmbeddings(
            api_key=api_key,
            model=model_name or "sentence-transformers/all-MiniLM-L6-v2",
        )

    elif provider_name == "mock":
        return MockEmbeddingProvider(dimensions=kwargs.get("dimensions", 384))

    else:
        raise ValueError(
            f"Unknown embedding provider: {provider_name}. "
            f"Supported: openai, huggingface, mock"
        )


def provider_from_settings(settings) -> EmbeddingProvider:
    """Build the configured provider from Settings."""
    name = settings.embedding_provider.lower()
    if name == "huggingface":
        return get_embedding_provider(name, api_key=settings.huggingface_api_key, model_name=settings.huggingface_model)
    if name == "mock":
        return get_embedding_provider(name, dimensions=settings.embedding_dimensions)
    return get_embedding_provider(name, api_key=settings.openai_api_key, model_name=settings.embedding_model)
