"""End-to-end search over a real SQLite index and a fake chroma-mcp session."""

import asyncio
from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest

from oracle_kb_chroma import ConnectionState
from oracle_kb_contracts import Provenance
from oracle_kb_storage import SearchContext, find_similar, hybrid_search

QUERY_RESPONSE = (
    "{'ids': [['principle_nothing_deleted', 'learning_vector_only']], "
    "'distances': [[0.1, 0.3]], "
    "'documents': [['Nothing is deleted.', 'Only the vector index knows me.']], "
    "'metadatas': [[{'type': 'principle', 'source_file': 'p.md', 'concepts': '[\"history\"]'}, "
    "{'type': 'learning', 'source_file': 'l.md', 'concepts': None, 'project': 'oracle'}]]}"
)


class FakeChromaSession:
    def __init__(self):
        self.calls = []

    async def initialize(self):
        return None

    async def call_tool(self, name, arguments=None):
        self.calls.append(name)
        if name == "chroma_query_documents":
            text = QUERY_RESPONSE
        elif name == "chroma_get_collection_count":
            text = "2"
        elif name == "chroma_get_documents":
            text = "{'ids': ['principle_nothing_deleted'], 'embeddings': array([[0.1, 0.2]])}"
        else:
            text = "{}"
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)], isError=False)


@pytest.fixture
def fake_session():
    return FakeChromaSession()


@pytest.fixture
async def ctx(test_settings, fake_session, document):
    @asynccontextmanager
    async def factory(params):
        yield fake_session

    context = await SearchContext.open(test_settings, session_factory=factory)
    await context.store.upsert(
        document(
            "principle_nothing_deleted",
            content="Nothing is deleted. History is append only.",
            concepts=["history"],
        )
    )
    await context.store.upsert(
        document("learning_lexical_only", type="learning", content="Deleted branches stay in the reflog.")
    )
    yield context
    await context.close()


async def test_hybrid_search_end_to_end(ctx):
    outcome = await hybrid_search(ctx, "deleted", limit=5)

    by_id = {r.id: r for r in outcome.results}
    assert set(by_id) == {"principle_nothing_deleted", "learning_vector_only", "learning_lexical_only"}
    assert by_id["principle_nothing_deleted"].provenance is Provenance.HYBRID
    assert by_id["learning_vector_only"].provenance is Provenance.SEMANTIC
    assert by_id["learning_lexical_only"].provenance is Provenance.LEXICAL
    assert outcome.results[0].id == "principle_nothing_deleted"
    assert outcome.metadata.warning is None
    assert ctx.chroma.state is ConnectionState.CONNECTED


async def test_search_is_recorded(ctx):
    await hybrid_search(ctx, "deleted", limit=2)

    entries = await ctx.search_log.recent()

    assert entries[0].query == "deleted"
    assert entries[0].results_count == 2


async def test_find_similar_end_to_end(ctx):
    results = await find_similar(ctx, "principle_nothing_deleted", limit=5)

    assert [r.id for r in results] == ["learning_vector_only"]


async def test_stats(ctx):
    stats = await ctx.stats()

    assert stats["documents"] == 2
    assert stats["by_type"] == {"learning": 1, "principle": 1}
    assert stats["database"] == "healthy"
    assert stats["chroma_status"] == "connected"
    assert stats["vector_count"] == 2


async def test_close_releases_everything(ctx):
    await ctx.chroma.connect()

    await ctx.close()

    assert ctx.chroma.state is ConnectionState.DISCONNECTED
    assert ctx.conn is None


async def test_warmup_connects_in_background(ctx, fake_session):
    task = ctx.start_warmup()

    assert ctx.start_warmup() is task
    await task

    assert ctx.chroma.state is ConnectionState.CONNECTED
    assert fake_session.calls == []


async def test_warmup_failure_is_logged_not_raised(test_settings):
    @asynccontextmanager
    async def missing_launcher(params):
        raise FileNotFoundError("uvx")
        yield

    context = await SearchContext.open(test_settings, session_factory=missing_launcher)
    try:
        await context.start_warmup()

        assert context.chroma.state is ConnectionState.UNAVAILABLE
        outcome = await hybrid_search(context, "deleted", limit=5)
        assert outcome.metadata.warning.startswith("Semantic search unavailable")
    finally:
        await context.close()


async def test_close_cancels_pending_warmup(test_settings):
    @asynccontextmanager
    async def slow_handshake(params):
        await asyncio.sleep(10)
        yield FakeChromaSession()

    context = await SearchContext.open(test_settings, session_factory=slow_handshake)
    task = context.start_warmup()
    await asyncio.sleep(0.01)

    await context.close()

    assert task.done()
    assert context.chroma.state is ConnectionState.DISCONNECTED
