"""Embedding service using OpenAI.

Generates vector embeddings for text chunks and queries.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

import httpx
from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel

from policy_rag.core.errors import EmbeddingServiceError, ValidationError

logger = logging.getLogger(__name__)


class EmbeddingConfig(BaseModel):
    """Embedding model binding, passed explicitly to the embedder factory."""

    model: str = "text-embedding-ada-002"
    dimensions: int = 1536
    batch_size: int = 100
    api_key: str = ""
    base_url: str | None = None
    timeout_seconds: float = 120.0


def normalize_query(query: str) -> str:
    """Replace literal ``\\n`` escape sequences with spaces."""
    return query.replace("\\n", " ")


class BaseEmbedder(ABC):
    """Embedding provider interface.

    ``embed_texts`` guarantees one vector per input, in input order, all of
    the same dimensionality. Implementations provide ``_embed_batch``.
    """

    async def embed_text(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        text = text.strip()
        if not text:
            raise ValidationError("Cannot embed empty text")

        vectors = await self.embed_texts([text])
        return vectors[0]

    async def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts.

        Args:
            texts: Texts to embed

        Returns:
            Embedding vectors, aligned with ``texts``
        """
        if not texts:
            return []

        vectors = await self._embed_batch(list(texts))

        if len(vectors) != len(texts):
            raise EmbeddingServiceError(
                f"Embedder returned {len(vectors)} vectors for {len(texts)} inputs"
            )
        dims = {len(v) for v in vectors}
        if len(dims) != 1:
            raise EmbeddingServiceError(f"Embedder returned mixed dimensions: {sorted(dims)}")

        return vectors

    async def embed_query(self, query: str) -> list[float]:
        """Embed a search query after escape-sequence cleanup."""
        return await self.embed_text(normalize_query(query))

    @abstractmethod
    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts*, returning vectors in the same order."""


class OpenAIEmbedder(BaseEmbedder):
    """OpenAI embedding service.

    Uses text-embedding-ada-002 by default.
    """

    def __init__(self, client: AsyncOpenAI, config: EmbeddingConfig):
        self.client = client
        self.config = config

    @property
    def model(self) -> str:
        return self.config.model

    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        all_embeddings: list[list[float]] = []

        # Process in batches
        for batch_start in range(0, len(texts), self.config.batch_size):
            batch = texts[batch_start : batch_start + self.config.batch_size]
            try:
                response = await self.client.embeddings.create(input=batch, model=self.model)
            except OpenAIError as e:
                raise EmbeddingServiceError(f"Embedding request failed: {e}") from e

            # The API tags each item with its input position
            ordered = sorted(response.data, key=lambda item: item.index)
            all_embeddings.extend(item.embedding for item in ordered)

        logger.debug(f"[Embedder] Embedded {len(texts)} texts with {self.model}")
        return all_embeddings


def create_embedder(config: EmbeddingConfig) -> OpenAIEmbedder:
    """Build an OpenAI embedder for *config*."""
    if not config.api_key:
        raise EmbeddingServiceError("No OpenAI API key configured for embeddings")

    logger.info(f"Initializing embedder with model '{config.model}'")

    # Longer timeout for batch embedding of large documents
    client = AsyncOpenAI(
        api_key=config.api_key,
        base_url=config.base_url,
        timeout=httpx.Timeout(config.timeout_seconds, connect=30.0),
    )
    return OpenAIEmbedder(client=client, config=config)
