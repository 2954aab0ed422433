"""Tests for the semantic leg (Chroma collection is mocked)."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from oracle_kb_chroma import QueryResult
from oracle_kb_common import DocumentNotFoundError, VectorStoreConnectionError
from oracle_kb_contracts import DocumentType, Provenance
from oracle_kb_storage import SemanticQueryAdapter, normalize_semantic_score, where_for_type


def query_result(rows):
    """rows: list of (id, distance) with generated documents/metadatas."""
    return QueryResult(
        ids=[r[0] for r in rows],
        documents=[f"content {r[0]}" for r in rows],
        distances=[r[1] for r in rows],
        metadatas=[{"type": "learning", "source_file": f"{r[0]}.md", "concepts": '["a"]'} for r in rows],
    )


@pytest.fixture
def collection():
    c = MagicMock()
    c.query_by_text = AsyncMock(return_value=query_result([]))
    c.query_by_embedding = AsyncMock(return_value=query_result([]))
    c.get_embedding = AsyncMock(return_value=[0.1, 0.2, 0.3])
    c.count = AsyncMock(return_value=12)
    c.info = AsyncMock(return_value={"name": "oracle_knowledge"})
    return c


@pytest.fixture
def adapter(collection):
    return SemanticQueryAdapter(collection, preview_chars=500)


class TestNormalizeSemanticScore:
    @pytest.mark.parametrize("d", [0.0, 0.1, 0.25, 0.5, 0.9, 1.0])
    def test_exactly_one_minus_distance(self, d):
        assert normalize_semantic_score(d) == 1 - d

    def test_not_clamped(self):
        assert normalize_semantic_score(1.4) == pytest.approx(-0.4)


class TestWhereForType:
    def test_all_means_no_filter(self):
        assert where_for_type("all") is None
        assert where_for_type(None) is None

    def test_type_filter(self):
        assert where_for_type("principle") == {"type": "principle"}


class TestSearch:
    async def test_builds_semantic_candidates(self, adapter, collection):
        collection.query_by_text.return_value = query_result([("a", 0.1), ("b", 0.4)])

        candidates = await adapter.search("trust", "learning", 10)

        collection.query_by_text.assert_awaited_once_with("trust", 10, where={"type": "learning"})
        assert [c.id for c in candidates] == ["a", "b"]
        first = candidates[0]
        assert first.provenance is Provenance.SEMANTIC
        assert first.raw_distance == 0.1
        assert first.semantic_score == pytest.approx(0.9)
        assert first.lexical_score is None and first.raw_rank is None
        assert first.document.type is DocumentType.LEARNING
        assert first.document.source_locator == "a.md"
        assert first.document.concepts == frozenset({"a"})

    async def test_missing_metadata_is_unknown_type(self, adapter, collection):
        collection.query_by_text.return_value = QueryResult(
            ids=["a"], documents=[None], distances=[0.2], metadatas=[None]
        )

        candidates = await adapter.search("trust")

        assert candidates[0].document.type is DocumentType.UNKNOWN
        assert candidates[0].document.content == ""

    async def test_errors_propagate(self, adapter, collection):
        collection.query_by_text.side_effect = VectorStoreConnectionError("down")

        with pytest.raises(VectorStoreConnectionError):
            await adapter.search("trust")


class TestNearestNeighbors:
    async def test_queries_n_plus_one_and_drops_self(self, adapter, collection):
        collection.query_by_embedding.return_value = query_result(
            [("self", 0.0), ("a", 0.1), ("b", 0.2), ("c", 0.3)]
        )

        neighbours = await adapter.nearest_neighbors("self", 3)

        collection.query_by_embedding.assert_awaited_once_with([0.1, 0.2, 0.3], 4)
        assert [c.id for c in neighbours] == ["a", "b", "c"]

    async def test_self_never_returned_even_if_backend_repeats_it(self, adapter, collection):
        collection.query_by_embedding.return_value = query_result(
            [("a", 0.1), ("self", 0.0), ("self", 0.0), ("b", 0.2)]
        )

        neighbours = await adapter.nearest_neighbors("self", 3)

        assert "self" not in [c.id for c in neighbours]
        assert len(neighbours) <= 3

    async def test_trims_to_n_when_self_absent(self, adapter, collection):
        collection.query_by_embedding.return_value = query_result([("a", 0.1), ("b", 0.2), ("c", 0.3)])

        neighbours = await adapter.nearest_neighbors("self", 2)

        assert [c.id for c in neighbours] == ["a", "b"]

    async def test_missing_embedding(self, adapter, collection):
        collection.get_embedding.return_value = None

        with pytest.raises(DocumentNotFoundError):
            await adapter.nearest_neighbors("missing", 5)

        collection.query_by_embedding.assert_not_awaited()


class TestCollectionStats:
    async def test_count(self, adapter):
        assert await adapter.collection_count() == 12

    async def test_count_degrades_to_zero(self, adapter, collection):
        collection.count.side_effect = VectorStoreConnectionError("down")

        assert await adapter.collection_count() == 0

    async def test_info_degrades_to_empty(self, adapter, collection):
        collection.info.side_effect = RuntimeError("boom")

        assert await adapter.collection_info() == {}
