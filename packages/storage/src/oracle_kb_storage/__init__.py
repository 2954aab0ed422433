"""Oracle KB Storage - documents, search legs and hybrid search.

Version: 1.0.0

This package provides:
- Database connection management (aiosqlite, WAL)
- DocumentStore (documents table + FTS5 index)
- SearchLog (search history)
- Lexical leg (FTS5 query sanitizing and rank normalization)
- Semantic leg (Chroma via chroma-mcp)
- Weighted result fusion and pagination
- SearchContext and hybrid search orchestration

Exclusive DB ownership - no shared database access from other packages.
"""

from oracle_kb_storage.connection import (
    DatabaseConfig,
    check_connection_health,
    close_database,
    init_schema,
    open_database,
)
from oracle_kb_storage.context import SearchContext
from oracle_kb_storage.document_store import DocumentStore
from oracle_kb_storage.fusion import FusionWeights, fuse_results, paginate
from oracle_kb_storage.lexical import LexicalQueryAdapter, normalize_fts_score, sanitize_fts_query
from oracle_kb_storage.search import (
    TYPE_FILTERS,
    find_similar,
    hybrid_search,
    validate_search,
)
from oracle_kb_storage.search_log import SearchLog
from oracle_kb_storage.semantic import (
    SemanticQueryAdapter,
    normalize_semantic_score,
    where_for_type,
)

__version__ = "1.0.0"

__all__ = [
    # Connection
    "DatabaseConfig",
    "open_database",
    "close_database",
    "init_schema",
    "check_connection_health",
    # Stores
    "DocumentStore",
    "SearchLog",
    # Legs
    "LexicalQueryAdapter",
    "sanitize_fts_query",
    "normalize_fts_score",
    "SemanticQueryAdapter",
    "normalize_semantic_score",
    "where_for_type",
    # Fusion
    "FusionWeights",
    "fuse_results",
    "paginate",
    # Search
    "SearchContext",
    "TYPE_FILTERS",
    "hybrid_search",
    "find_similar",
    "validate_search",
]
