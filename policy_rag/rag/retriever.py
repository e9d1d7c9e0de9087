"""RAG Retriever - semantic search over stored policy chunks.

Combines query embedding and a cosine-similarity scan of the resource
store, returning ranked chunks with citation metadata.
"""

import asyncio
import logging
from dataclasses import dataclass

from policy_rag.core.config import Settings, get_settings
from policy_rag.core.errors import OperationTimeoutError
from policy_rag.db.database import get_session_maker
from policy_rag.db.repository import ResourceStore
from policy_rag.rag.embedder import BaseEmbedder, create_embedder, normalize_query

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.3
DEFAULT_LIMIT = 8


@dataclass
class RetrievedChunk:
    """A chunk retrieved from similarity search."""

    content: str
    similarity: float
    source_file: str | None
    policy_number: str | None
    resource_id: str

    @property
    def citation(self) -> str:
        """Human-readable source reference for this chunk."""
        if self.policy_number and self.source_file:
            return f"{self.policy_number} ({self.source_file})"
        return self.policy_number or self.source_file or "Knowledge base entry"


class Retriever:
    """Semantic retrieval over the resource store.

    Results are chunks with similarity strictly above ``similarity_threshold``,
    highest first, at most ``limit`` of them. No re-ranking or deduplication
    is applied.
    """

    def __init__(
        self,
        store: ResourceStore,
        embedder: BaseEmbedder,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        limit: int = DEFAULT_LIMIT,
        default_timeout: float | None = None,
    ):
        self.store = store
        self.embedder = embedder
        self.similarity_threshold = similarity_threshold
        self.limit = limit
        self.default_timeout = default_timeout

    async def retrieve(self, query: str, timeout: float | None = None) -> list[RetrievedChunk]:
        """Retrieve relevant chunks for a query.

        Args:
            query: User's question
            timeout: Seconds before the call is aborted (defaults to retriever setting)

        Returns:
            Relevant chunks sorted by similarity; empty when nothing matches

        Raises:
            EmbeddingServiceError: Query embedding failed
            StorageError: Similarity scan failed
            OperationTimeoutError: The timeout expired
        """
        query = normalize_query(query)
        if not query.strip():
            return []

        timeout = timeout if timeout is not None else self.default_timeout
        try:
            async with asyncio.timeout(timeout):
                query_vector = await self.embedder.embed_query(query)
                hits = await self.store.search_similar(
                    query_vector,
                    threshold=self.similarity_threshold,
                    limit=self.limit,
                )
        except TimeoutError as e:
            raise OperationTimeoutError(f"Retrieval timed out after {timeout} seconds") from e

        logger.info(f"[Retriever] {len(hits)} chunks above {self.similarity_threshold} for query")
        return [
            RetrievedChunk(
                content=hit.content,
                similarity=hit.similarity,
                source_file=hit.source_file,
                policy_number=hit.policy_number,
                resource_id=hit.resource_id,
            )
            for hit in hits
        ]

    def format_context(
        self,
        chunks: list[RetrievedChunk],
        max_chars: int = 8000,
    ) -> str:
        """Format retrieved chunks as context for the LLM with citations.

        Args:
            chunks: Retrieved chunks
            max_chars: Maximum context length

        Returns:
            Formatted context string with source references
        """
        if not chunks:
            return ""

        context_parts = []
        citation_refs = []
        total_chars = 0

        for i, chunk in enumerate(chunks, 1):
            # Format chunk with source marker
            chunk_text = f"[{i}] {chunk.content}\n"

            if total_chars + len(chunk_text) > max_chars:
                break

            context_parts.append(chunk_text)
            citation_refs.append(f"[{i}] {chunk.citation} (similarity {chunk.similarity:.2f})")
            total_chars += len(chunk_text)

        # Build final context with citation legend at the end
        context = "\n".join(context_parts)
        citations = "\n".join(citation_refs)

        return f"{context}\n\n---\nSources:\n{citations}"


def create_retriever(settings: Settings | None = None) -> Retriever:
    """Build a Retriever wired to the configured database and OpenAI."""
    settings = settings or get_settings()
    return Retriever(
        store=ResourceStore(get_session_maker(), dimensions=settings.embedding_dimensions),
        embedder=create_embedder(settings.embedding_config()),
        similarity_threshold=settings.retrieval_similarity_threshold,
        limit=settings.retrieval_limit,
        default_timeout=settings.operation_timeout_seconds,
    )
