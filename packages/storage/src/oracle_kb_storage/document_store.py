"""DocumentStore - document metadata and FTS5 content.

Provides:
- Ranked full-text search (FTS5 ``rank``, negative, closer to 0 = better)
- Batch and single document lookup
- Upsert into both the documents table and the FTS5 index
- Counts for status reporting
"""

import json
import time
from typing import Optional

import aiosqlite
from oracle_kb_common import StorageError, get_logger
from oracle_kb_contracts import Document

logger = get_logger(__name__)

_SELECT_DOCUMENTS = """
    SELECT d.id, d.type, d.source_file, d.concepts, d.project, f.content
    FROM oracle_documents d
    LEFT JOIN oracle_fts f ON f.id = d.id
"""


def _row_to_document(row: aiosqlite.Row) -> Document:
    return Document(
        id=row["id"],
        type=row["type"],
        content=row["content"] or "",
        source_locator=row["source_file"] or "",
        concepts=row["concepts"],
        project=row["project"],
    )


def _now_ms() -> int:
    return int(time.time() * 1000)


class DocumentStore:
    """Storage operations for knowledge documents.

    The search path only reads; ``upsert`` exists for ingestion tooling.
    """

    def __init__(self, conn: aiosqlite.Connection):
        self.conn = conn

    async def ranked_search(
        self,
        query: str,
        type_filter: Optional[str] = None,
        limit: int = 10,
    ) -> list[tuple[str, float]]:
        """Full-text search returning ``(id, rank)`` pairs, best first.

        Args:
            query: Sanitized FTS5 MATCH expression
            type_filter: Document type, or None/"all" for every type
            limit: Maximum rows

        Raises:
            StorageError: If the FTS5 query fails
        """
        sql = """
            SELECT f.id, rank
            FROM oracle_fts f
            JOIN oracle_documents d ON f.id = d.id
            WHERE oracle_fts MATCH ?
        """
        params: list = [query]
        if type_filter and type_filter != "all":
            sql += " AND d.type = ?"
            params.append(type_filter)
        sql += " ORDER BY rank LIMIT ?"
        params.append(limit)

        try:
            async with self.conn.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except Exception as e:
            logger.error("fts_search_failed", query=query, error=str(e))
            raise StorageError(f"Full-text search failed: {e}") from e

        return [(row[0], float(row[1])) for row in rows]

    async def get_many(self, ids: list[str]) -> dict[str, Document]:
        """Fetch documents by id. Missing ids are absent from the result."""
        if not ids:
            return {}
        placeholders = ",".join("?" for _ in ids)
        try:
            async with self.conn.execute(
                f"{_SELECT_DOCUMENTS} WHERE d.id IN ({placeholders})", list(ids)
            ) as cursor:
                rows = await cursor.fetchall()
        except Exception as e:
            logger.error("document_fetch_failed", count=len(ids), error=str(e))
            raise StorageError(f"Failed to fetch documents: {e}") from e

        return {row["id"]: _row_to_document(row) for row in rows}

    async def get(self, doc_id: str) -> Optional[Document]:
        docs = await self.get_many([doc_id])
        return docs.get(doc_id)

    async def upsert(self, document: Document, created_by: Optional[str] = None) -> Document:
        """Insert or replace a document and its FTS5 entry.

        Raises:
            StorageError: If the write fails (the transaction is rolled back)
        """
        now = _now_ms()
        concepts = sorted(document.concepts)
        try:
            await self.conn.execute(
                """
                INSERT INTO oracle_documents (
                    id, type, source_file, concepts, project,
                    created_by, created_at, updated_at, indexed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    type = excluded.type,
                    source_file = excluded.source_file,
                    concepts = excluded.concepts,
                    project = excluded.project,
                    updated_at = excluded.updated_at,
                    indexed_at = excluded.indexed_at
                """,
                (
                    document.id,
                    document.type.value,
                    document.source_locator,
                    json.dumps(concepts),
                    document.project.lower() if document.project else None,
                    created_by,
                    now,
                    now,
                    now,
                ),
            )
            await self.conn.execute("DELETE FROM oracle_fts WHERE id = ?", (document.id,))
            await self.conn.execute(
                "INSERT INTO oracle_fts (id, content, concepts) VALUES (?, ?, ?)",
                (document.id, document.content, " ".join(concepts)),
            )
            await self.conn.commit()
        except Exception as e:
            await self.conn.rollback()
            logger.error("document_upsert_failed", doc_id=document.id, error=str(e))
            raise StorageError(f"Failed to store document '{document.id}': {e}") from e

        logger.info("document_upserted", doc_id=document.id, type=document.type.value)
        return document

    async def count(self) -> int:
        async with self.conn.execute("SELECT COUNT(*) FROM oracle_documents") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def count_by_type(self) -> dict[str, int]:
        """Document counts keyed by type."""
        async with self.conn.execute(
            "SELECT type, COUNT(*) FROM oracle_documents GROUP BY type ORDER BY type"
        ) as cursor:
            rows = await cursor.fetchall()
        return {row[0]: row[1] for row in rows}
