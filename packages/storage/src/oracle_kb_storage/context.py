"""SearchContext - the resources a search runs against.

One context per process. It owns the SQLite connection and the single
ChromaMcpClient, and is passed explicitly to every search function.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Optional

import aiosqlite
from oracle_kb_chroma import ChromaCollection, ChromaMcpClient, SessionFactory
from oracle_kb_common import Settings, VectorStoreError, get_logger, get_settings

from oracle_kb_storage.connection import (
    DatabaseConfig,
    check_connection_health,
    close_database,
    open_database,
)
from oracle_kb_storage.document_store import DocumentStore
from oracle_kb_storage.fusion import FusionWeights
from oracle_kb_storage.lexical import LexicalQueryAdapter
from oracle_kb_storage.search_log import SearchLog
from oracle_kb_storage.semantic import SemanticQueryAdapter

logger = get_logger(__name__)


@dataclass
class SearchContext:
    """Explicit bundle of stores, adapters and search parameters.

    Attributes:
        store: Document store (lexical leg backend)
        search_log: Search history
        chroma: Shared chroma-mcp client
        collection: Collection verbs bound to ``chroma``
        lexical: Lexical leg adapter
        semantic: Semantic leg adapter
        weights: Fusion weights
        semantic_timeout: Upper bound for the semantic leg, in seconds
        max_search_limit: Largest accepted page size
        conn: Open SQLite connection, closed by ``close()``
    """

    store: DocumentStore
    search_log: SearchLog
    chroma: ChromaMcpClient
    collection: ChromaCollection
    lexical: LexicalQueryAdapter
    semantic: SemanticQueryAdapter
    weights: FusionWeights = field(default_factory=FusionWeights)
    semantic_timeout: float = 30.0
    max_search_limit: int = 100
    conn: Optional[aiosqlite.Connection] = None
    warmup_task: Optional[asyncio.Task] = field(default=None, repr=False)

    @classmethod
    async def open(
        cls,
        settings: Optional[Settings] = None,
        session_factory: Optional[SessionFactory] = None,
    ) -> "SearchContext":
        """Open the database and prepare (but not spawn) the Chroma client.

        chroma-mcp is spawned lazily by the first semantic call.

        Raises:
            StorageError: If the database cannot be opened
        """
        settings = settings or get_settings()
        conn = await open_database(DatabaseConfig.from_settings(settings))

        chroma = ChromaMcpClient(
            settings.chroma_collection,
            settings.chroma_data_dir,
            python_version=settings.chroma_python_version,
            command=settings.chroma_command,
            handshake_timeout=settings.chroma_handshake_timeout_seconds,
            shutdown_timeout=settings.chroma_shutdown_timeout_seconds,
            session_factory=session_factory,
        )
        collection = ChromaCollection(chroma)
        store = DocumentStore(conn)

        logger.info(
            "search_context_opened",
            db_path=str(settings.db_path),
            collection=settings.chroma_collection,
        )
        return cls(
            store=store,
            search_log=SearchLog(conn),
            chroma=chroma,
            collection=collection,
            lexical=LexicalQueryAdapter(
                store, decay=settings.lexical_decay, preview_chars=settings.content_preview_chars
            ),
            semantic=SemanticQueryAdapter(collection, preview_chars=settings.content_preview_chars),
            weights=FusionWeights(
                lexical=settings.lexical_weight,
                semantic=settings.semantic_weight,
                corroboration_boost=settings.corroboration_boost,
            ),
            semantic_timeout=settings.semantic_timeout_seconds,
            max_search_limit=settings.max_search_limit,
            conn=conn,
        )

    def start_warmup(self) -> asyncio.Task:
        """Connect to chroma-mcp in the background.

        The first semantic search then finds the subprocess already spawned
        instead of paying for the spawn and handshake inside its own timeout.
        Failures are logged; the next semantic call tries again.
        """
        if self.warmup_task is None:
            self.warmup_task = asyncio.create_task(self._warm_up())
        return self.warmup_task

    async def _warm_up(self) -> None:
        try:
            await self.chroma.connect()
        except VectorStoreError as e:
            logger.warning("chroma_warmup_failed", error=str(e))
        else:
            logger.info("chroma_warmup_completed")

    async def close(self) -> None:
        """Release chroma-mcp and the database. Never raises."""
        if self.warmup_task is not None and not self.warmup_task.done():
            self.warmup_task.cancel()
            await asyncio.gather(self.warmup_task, return_exceptions=True)
        await self.chroma.close()
        await close_database(self.conn)
        self.conn = None
        logger.info("search_context_closed")

    async def stats(self) -> dict[str, Any]:
        """Counts and backend health for status reporting."""
        database_ok = self.conn is not None and await check_connection_health(self.conn)
        chroma_status = await self.chroma.health_check()
        return {
            "documents": await self.store.count() if database_ok else 0,
            "by_type": await self.store.count_by_type() if database_ok else {},
            "database": "healthy" if database_ok else "unhealthy",
            "chroma_status": chroma_status,
            "chroma_state": self.chroma.state.value,
            "vector_count": await self.semantic.collection_count() if chroma_status == "connected" else 0,
            "collection": self.collection.name,
        }
