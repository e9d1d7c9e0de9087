"""Resource store - persistence and similarity scans for the knowledge base.

Provides async insert operations for resources and their chunk embeddings,
plus the cosine-similarity scan used by retrieval.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import uuid4

import numpy as np
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from policy_rag.core.errors import StorageError
from policy_rag.db.models import Embedding, Resource

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingRecord:
    """A chunk and its vector, ready to be persisted."""

    resource_id: str
    content: str
    vector: list[float]


@dataclass
class SimilarChunk:
    """A stored chunk joined with its resource's provenance metadata."""

    embedding_id: str
    resource_id: str
    content: str
    similarity: float
    source_file: str | None
    policy_number: str | None


def cosine_similarities(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Cosine similarity of each row of *matrix* against *query*.

    Rows (or a query) with zero norm score 0.0.
    """
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)


class ResourceStore:
    """Repository for resources and embeddings.

    Resources and embeddings are append-only; every insert runs in its own
    transaction.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        dimensions: int | None = None,
    ):
        self.session_maker = session_maker
        self.dimensions = dimensions

    async def insert_resource(
        self,
        content: str,
        source_file: str | None = None,
        policy_number: str | None = None,
    ) -> str:
        """Persist a new resource and return its ID."""
        resource_id = str(uuid4())
        resource = Resource(
            id=resource_id,
            content=content,
            source_file=source_file,
            policy_number=policy_number,
        )
        try:
            async with self.session_maker() as db:
                db.add(resource)
                await db.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to store resource: {e}") from e

        logger.info(
            f"[Store] Created resource {resource_id} (source={source_file}, policy={policy_number})"
        )
        return resource_id

    async def insert_embeddings(self, records: Sequence[EmbeddingRecord]) -> int:
        """Persist a batch of embeddings.

        Returns:
            Number of rows written
        """
        if not records:
            return 0

        self._check_dimensions(records)

        rows = [
            Embedding(
                id=str(uuid4()),
                resource_id=record.resource_id,
                content=record.content,
                vector=list(record.vector),
            )
            for record in records
        ]
        try:
            async with self.session_maker() as db:
                db.add_all(rows)
                await db.commit()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to store embeddings: {e}") from e

        logger.info(f"[Store] Stored {len(rows)} embeddings")
        return len(rows)

    async def search_similar(
        self,
        query_vector: Sequence[float],
        threshold: float = 0.3,
        limit: int = 8,
    ) -> list[SimilarChunk]:
        """Scan stored embeddings for chunks similar to *query_vector*.

        Similarity is ``1 - cosine_distance``. Only rows with similarity
        strictly above *threshold* are returned, highest first, at most
        *limit* of them.
        """
        try:
            async with self.session_maker() as db:
                if db.bind.dialect.name == "postgresql":
                    return await self._search_pgvector(db, query_vector, threshold, limit)
                return await self._search_full_scan(db, query_vector, threshold, limit)
        except SQLAlchemyError as e:
            raise StorageError(f"Similarity search failed: {e}") from e

    async def get_resource(self, resource_id: str) -> Resource | None:
        """Get a resource by ID."""
        try:
            async with self.session_maker() as db:
                result = await db.execute(select(Resource).where(Resource.id == resource_id))
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load resource: {e}") from e

    async def count_embeddings(self, resource_id: str | None = None) -> int:
        """Count stored embeddings, optionally for a single resource."""
        query = select(func.count(Embedding.id))
        if resource_id:
            query = query.where(Embedding.resource_id == resource_id)
        try:
            async with self.session_maker() as db:
                result = await db.execute(query)
                return result.scalar() or 0
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to count embeddings: {e}") from e

    async def _search_pgvector(
        self,
        db: AsyncSession,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[SimilarChunk]:
        similarity = (1 - Embedding.vector.cosine_distance(list(query_vector))).label("similarity")
        query = (
            select(
                Embedding.id,
                Embedding.resource_id,
                Embedding.content,
                similarity,
                Resource.source_file,
                Resource.policy_number,
            )
            .join(Resource, Embedding.resource_id == Resource.id)
            .where(similarity > threshold)
            .order_by(similarity.desc())
            .limit(limit)
        )
        result = await db.execute(query)
        return [
            SimilarChunk(
                embedding_id=row.id,
                resource_id=row.resource_id,
                content=row.content,
                similarity=float(row.similarity),
                source_file=row.source_file,
                policy_number=row.policy_number,
            )
            for row in result.all()
        ]

    async def _search_full_scan(
        self,
        db: AsyncSession,
        query_vector: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[SimilarChunk]:
        # Dialects without a vector operator: score every row in numpy
        query = select(
            Embedding.id,
            Embedding.resource_id,
            Embedding.content,
            Embedding.vector,
            Resource.source_file,
            Resource.policy_number,
        ).join(Resource, Embedding.resource_id == Resource.id)
        rows = (await db.execute(query)).all()
        if not rows:
            return []

        matrix = np.vstack([np.asarray(row.vector, dtype=np.float64) for row in rows])
        scores = cosine_similarities(matrix, np.asarray(query_vector, dtype=np.float64))

        ranked = sorted(
            (i for i in range(len(rows)) if scores[i] > threshold),
            key=lambda i: scores[i],
            reverse=True,
        )
        return [
            SimilarChunk(
                embedding_id=rows[i].id,
                resource_id=rows[i].resource_id,
                content=rows[i].content,
                similarity=float(scores[i]),
                source_file=rows[i].source_file,
                policy_number=rows[i].policy_number,
            )
            for i in ranked[:limit]
        ]

    def _check_dimensions(self, records: Sequence[EmbeddingRecord]) -> None:
        expected = self.dimensions or len(records[0].vector)
        for record in records:
            if len(record.vector) != expected:
                raise StorageError(
                    f"Embedding dimension mismatch: expected {expected}, got {len(record.vector)}"
                )
