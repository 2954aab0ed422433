"""SearchLog - record of every search served.

A failure to record never fails the search that triggered it.
"""

import json
import time
from datetime import datetime, timezone
from typing import Optional

import aiosqlite
from oracle_kb_common import StorageError, get_logger
from oracle_kb_contracts import SearchLogEntry

logger = get_logger(__name__)


class SearchLog:
    """Append-only search history in the ``search_log`` table."""

    def __init__(self, conn: aiosqlite.Connection):
        self.conn = conn

    async def log_search(
        self,
        query: str,
        type_filter: str,
        mode: str,
        results_count: int,
        elapsed_ms: int,
        result_ids: list[str],
        warning: Optional[str] = None,
    ) -> bool:
        """Record a search. Returns False (and logs) if the write failed."""
        try:
            await self.conn.execute(
                """
                INSERT INTO search_log (
                    query, type, mode, results_count, search_time_ms,
                    result_ids, warning, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    query,
                    type_filter,
                    mode,
                    results_count,
                    elapsed_ms,
                    json.dumps(result_ids),
                    warning,
                    int(time.time() * 1000),
                ),
            )
            await self.conn.commit()
            return True
        except Exception as e:
            logger.warning("search_log_write_failed", query=query, error=str(e))
            return False

    async def recent(self, limit: int = 20) -> list[SearchLogEntry]:
        """Most recent searches, newest first.

        Raises:
            StorageError: If the log cannot be read
        """
        try:
            async with self.conn.execute(
                """
                SELECT id, query, type, mode, results_count, search_time_ms,
                       result_ids, warning, created_at
                FROM search_log
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (limit,),
            ) as cursor:
                rows = await cursor.fetchall()
        except Exception as e:
            logger.error("search_log_read_failed", error=str(e))
            raise StorageError(f"Failed to read search log: {e}") from e

        return [
            SearchLogEntry(
                id=row["id"],
                query=row["query"],
                type=row["type"],
                mode=row["mode"],
                results_count=row["results_count"],
                search_time_ms=row["search_time_ms"],
                result_ids=json.loads(row["result_ids"] or "[]"),
                warning=row["warning"],
                created_at=datetime.fromtimestamp(row["created_at"] / 1000, tz=timezone.utc),
            )
            for row in rows
        ]
