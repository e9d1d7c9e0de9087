"""Integration tests for ResourceStore against in-memory SQLite."""

import numpy as np
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from policy_rag.core.errors import ErrorKind, StorageError
from policy_rag.db.repository import EmbeddingRecord, ResourceStore, cosine_similarities

pytestmark = pytest.mark.integration


async def _seed(store: ResourceStore, vectors: list[list[float]], **resource_kwargs) -> str:
    resource_id = await store.insert_resource(content="policy text", **resource_kwargs)
    await store.insert_embeddings(
        [
            EmbeddingRecord(resource_id=resource_id, content=f"chunk {i}", vector=v)
            for i, v in enumerate(vectors)
        ]
    )
    return resource_id


class TestInserts:
    @pytest.mark.asyncio
    async def test_insert_resource_persists_metadata(self, store: ResourceStore) -> None:
        resource_id = await store.insert_resource(
            content="# P-018\nInformation security.",
            source_file="P-018 Information Security.pdf",
            policy_number="P-018",
        )

        resource = await store.get_resource(resource_id)

        assert resource is not None
        assert resource.content == "# P-018\nInformation security."
        assert resource.source_file == "P-018 Information Security.pdf"
        assert resource.policy_number == "P-018"
        assert resource.created_at is not None

    @pytest.mark.asyncio
    async def test_inline_fact_has_no_provenance(self, store: ResourceStore) -> None:
        resource = await store.get_resource(await store.insert_resource(content="A fact."))
        assert resource.source_file is None
        assert resource.policy_number is None

    @pytest.mark.asyncio
    async def test_insert_embeddings_links_to_resource(self, store: ResourceStore) -> None:
        resource_id = await _seed(store, [[1.0, 0.0], [0.0, 1.0]])
        other_id = await _seed(store, [[1.0, 1.0]])

        assert await store.count_embeddings() == 3
        assert await store.count_embeddings(resource_id) == 2
        assert await store.count_embeddings(other_id) == 1

    @pytest.mark.asyncio
    async def test_empty_batch_is_a_no_op(self, store: ResourceStore) -> None:
        assert await store.insert_embeddings([]) == 0

    @pytest.mark.asyncio
    async def test_mixed_dimensions_are_rejected_before_writing(self, store: ResourceStore) -> None:
        resource_id = await store.insert_resource(content="text")
        records = [
            EmbeddingRecord(resource_id=resource_id, content="a", vector=[1.0, 0.0]),
            EmbeddingRecord(resource_id=resource_id, content="b", vector=[1.0, 0.0, 0.0]),
        ]

        with pytest.raises(StorageError, match="dimension mismatch"):
            await store.insert_embeddings(records)
        assert await store.count_embeddings() == 0

    @pytest.mark.asyncio
    async def test_configured_dimensions_are_enforced(self, session_maker) -> None:
        store = ResourceStore(session_maker, dimensions=3)
        resource_id = await store.insert_resource(content="text")

        with pytest.raises(StorageError) as exc_info:
            await store.insert_embeddings(
                [EmbeddingRecord(resource_id=resource_id, content="a", vector=[1.0, 0.0])]
            )
        assert exc_info.value.kind is ErrorKind.STORAGE

    @pytest.mark.asyncio
    async def test_database_errors_become_storage_errors(self) -> None:
        engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
        store = ResourceStore(async_sessionmaker(engine, class_=AsyncSession))

        # Tables were never created
        with pytest.raises(StorageError, match="Failed to store resource"):
            await store.insert_resource(content="text")

        await engine.dispose()


class TestSearchSimilar:
    @pytest.mark.asyncio
    async def test_empty_store_returns_nothing(self, store: ResourceStore) -> None:
        assert await store.search_similar([1.0, 0.0]) == []

    @pytest.mark.asyncio
    async def test_results_are_thresholded_and_ranked(self, store: ResourceStore) -> None:
        await _seed(
            store,
            [
                [0.0, 1.0],  # orthogonal -> 0.0
                [1.0, 1.0],  # ~0.707
                [1.0, 0.0],  # 1.0
                [-1.0, 0.0],  # -1.0
                [1.0, 3.0],  # ~0.316
                [1.0, 4.0],  # ~0.243
            ],
        )

        hits = await store.search_similar([1.0, 0.0], threshold=0.3, limit=8)

        assert [h.content for h in hits] == ["chunk 2", "chunk 1", "chunk 4"]
        assert hits[0].similarity == pytest.approx(1.0)
        assert hits[1].similarity == pytest.approx(0.7071, abs=1e-3)
        assert all(h.similarity > 0.3 for h in hits)

    @pytest.mark.asyncio
    async def test_similarity_equal_to_threshold_is_excluded(self, store: ResourceStore) -> None:
        await _seed(store, [[0.0, 1.0], [1.0, 0.0]])

        above_zero = await store.search_similar([1.0, 0.0], threshold=0.0)
        assert [h.content for h in above_zero] == ["chunk 1"]

        assert await store.search_similar([1.0, 0.0], threshold=1.0) == []

    @pytest.mark.asyncio
    async def test_limit_caps_results(self, store: ResourceStore) -> None:
        await _seed(store, [[1.0, i / 10] for i in range(12)])

        hits = await store.search_similar([1.0, 0.0], threshold=0.3, limit=8)

        assert len(hits) == 8
        similarities = [h.similarity for h in hits]
        assert similarities == sorted(similarities, reverse=True)
        assert hits[0].content == "chunk 0"

    @pytest.mark.asyncio
    async def test_hits_carry_resource_metadata(self, store: ResourceStore) -> None:
        policy_id = await _seed(
            store, [[1.0, 0.0]], source_file="PM-001 AML.pdf", policy_number="PM-001"
        )
        fact_id = await _seed(store, [[0.9, 0.1]])

        hits = await store.search_similar([1.0, 0.0])

        by_resource = {h.resource_id: h for h in hits}
        assert by_resource[policy_id].source_file == "PM-001 AML.pdf"
        assert by_resource[policy_id].policy_number == "PM-001"
        assert by_resource[fact_id].source_file is None
        assert by_resource[fact_id].policy_number is None


def test_cosine_similarities_handles_zero_vectors() -> None:
    matrix = np.array([[1.0, 0.0], [0.0, 0.0], [0.0, 2.0]])
    scores = cosine_similarities(matrix, np.array([1.0, 0.0]))
    assert scores.tolist() == pytest.approx([1.0, 0.0, 0.0])

    assert cosine_similarities(matrix, np.zeros(2)).tolist() == [0.0, 0.0, 0.0]
