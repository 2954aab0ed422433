"""SQLite connection management with aiosqlite.

Provides:
- Database configuration
- Connection opening (WAL mode, busy timeout, lock-contention retry)
- Schema initialization (documents table, FTS5 index, search log)
- Health checks
"""

import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import aiosqlite
from oracle_kb_common import Settings, StorageError, get_logger, retry_on_exception

logger = get_logger(__name__)


SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS oracle_documents (
        id TEXT PRIMARY KEY,
        type TEXT NOT NULL DEFAULT 'unknown',
        source_file TEXT NOT NULL DEFAULT '',
        concepts TEXT NOT NULL DEFAULT '[]',
        project TEXT,
        created_by TEXT,
        created_at INTEGER NOT NULL,
        updated_at INTEGER NOT NULL,
        indexed_at INTEGER
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_documents_type ON oracle_documents(type)",
    "CREATE INDEX IF NOT EXISTS idx_documents_project ON oracle_documents(project)",
    """
    CREATE VIRTUAL TABLE IF NOT EXISTS oracle_fts USING fts5(
        id UNINDEXED,
        content,
        concepts,
        tokenize='porter unicode61'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS search_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        query TEXT NOT NULL,
        type TEXT,
        mode TEXT,
        results_count INTEGER NOT NULL DEFAULT 0,
        search_time_ms INTEGER,
        result_ids TEXT NOT NULL DEFAULT '[]',
        warning TEXT,
        created_at INTEGER NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_search_log_created ON search_log(created_at)",
)


@dataclass
class DatabaseConfig:
    """SQLite database configuration.

    Attributes:
        path: Database file (default: ~/.oracle/oracle.db)
        busy_timeout_ms: How long a writer waits on a locked database (default: 5000)
        wal: Enable write-ahead logging for concurrent readers (default: True)
    """

    path: Path = field(default_factory=lambda: Path.home() / ".oracle" / "oracle.db")
    busy_timeout_ms: int = 5000
    wal: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseConfig":
        return cls(path=Path(settings.db_path).expanduser())


@retry_on_exception((sqlite3.OperationalError,), max_attempts=3, min_wait_seconds=0.1, max_wait_seconds=1.0)
async def _connect(path: Path) -> aiosqlite.Connection:
    return await aiosqlite.connect(path)


async def init_schema(conn: aiosqlite.Connection) -> None:
    """Create tables and the FTS5 index if missing. Idempotent."""
    for statement in SCHEMA_STATEMENTS:
        await conn.execute(statement)
    await conn.commit()


async def open_database(config: Optional[DatabaseConfig] = None) -> aiosqlite.Connection:
    """Open the database and ensure the schema exists.

    Args:
        config: Database configuration (default: DatabaseConfig())

    Returns:
        Open aiosqlite connection with ``aiosqlite.Row`` rows

    Raises:
        StorageError: If the database cannot be opened or initialized

    Example:
        >>> conn = await open_database(DatabaseConfig(path=Path("/tmp/oracle.db")))
        >>> store = DocumentStore(conn)
    """
    if config is None:
        config = DatabaseConfig()

    try:
        config.path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("opening_database", path=str(config.path))

        conn = await _connect(config.path)
        conn.row_factory = aiosqlite.Row
        if config.wal:
            await conn.execute("PRAGMA journal_mode = WAL")
        await conn.execute(f"PRAGMA busy_timeout = {int(config.busy_timeout_ms)}")
        await init_schema(conn)

        logger.info("database_opened", path=str(config.path))
        return conn

    except Exception as e:
        logger.error("database_open_failed", path=str(config.path), error=str(e))
        raise StorageError(f"Failed to open database: {e}") from e


async def close_database(conn: Optional[aiosqlite.Connection]) -> None:
    """Close a connection. Errors are logged, not raised."""
    if conn is None:
        return
    try:
        await conn.close()
    except Exception as e:
        logger.warning("database_close_warning", error=str(e))
    else:
        logger.info("database_closed")


async def check_connection_health(conn: aiosqlite.Connection) -> bool:
    """Check database connection health.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        async with conn.execute("SELECT 1") as cursor:
            row = await cursor.fetchone()
        return row is not None and row[0] == 1
    except Exception as e:
        logger.error("health_check_failed", error=str(e))
        return False
