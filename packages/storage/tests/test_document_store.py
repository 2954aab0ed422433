"""Tests for DocumentStore against a real FTS5 index."""

import pytest

from oracle_kb_common import StorageError
from oracle_kb_contracts import DocumentType
from oracle_kb_storage import DocumentStore, LexicalQueryAdapter


class TestRankedSearch:
    async def test_matches_content(self, store):
        results = await store.ranked_search("deleted")

        assert [doc_id for doc_id, _ in results] == ["principle_nothing_deleted"]

    async def test_ranks_are_negative_and_ordered(self, store):
        results = await store.ranked_search("safety")

        assert len(results) == 2
        ranks = [rank for _, rank in results]
        assert all(rank < 0 for rank in ranks)
        assert ranks == sorted(ranks)

    async def test_porter_stemming(self, store):
        results = await store.ranked_search("pushing")

        assert [doc_id for doc_id, _ in results] == ["learning_force_push"]

    async def test_type_filter(self, store):
        results = await store.ranked_search("safety", type_filter="learning")

        assert [doc_id for doc_id, _ in results] == ["learning_force_push"]

    async def test_all_means_no_filter(self, store):
        assert len(await store.ranked_search("safety", type_filter="all")) == 2

    async def test_limit(self, store):
        assert len(await store.ranked_search("safety", limit=1)) == 1

    async def test_no_match(self, store):
        assert await store.ranked_search("kubernetes") == []

    async def test_invalid_match_syntax_raises_storage_error(self, store):
        with pytest.raises(StorageError, match="Full-text search failed"):
            await store.ranked_search('"unterminated')


class TestGet:
    async def test_get_many_joins_content(self, store):
        docs = await store.get_many(["principle_nothing_deleted", "missing"])

        assert set(docs) == {"principle_nothing_deleted"}
        doc = docs["principle_nothing_deleted"]
        assert doc.type is DocumentType.PRINCIPLE
        assert doc.content.startswith("Nothing is deleted")
        assert doc.concepts == frozenset({"history", "safety"})

    async def test_get_many_empty(self, store):
        assert await store.get_many([]) == {}

    async def test_get(self, store):
        doc = await store.get("learning_force_push")

        assert doc.project == "oracle"
        assert await store.get("missing") is None


class TestUpsert:
    async def test_update_replaces_fts_entry(self, store, document):
        await store.upsert(
            document("retro_2025_01_10", type="retro", content="Rewritten: kubernetes migration notes")
        )

        assert await store.ranked_search("pairing") == []
        assert [d for d, _ in await store.ranked_search("kubernetes")] == ["retro_2025_01_10"]
        assert await store.count() == 3

    async def test_count_by_type(self, store):
        assert await store.count_by_type() == {"learning": 1, "principle": 1, "retro": 1}


class TestLexicalAdapterIntegration:
    async def test_sanitized_query_runs(self, store):
        adapter = LexicalQueryAdapter(store)

        candidates = await adapter.search("force-push? (main)")

        assert candidates[0].id == "learning_force_push"
        assert 0 < candidates[0].lexical_score <= 1
