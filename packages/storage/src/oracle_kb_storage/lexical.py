"""Lexical (keyword) leg: FTS5 over the document store.

Score semantics:
- raw rank: FTS5 ``rank``, negative, closer to 0 = better
- lexical_score: exp(-decay * |rank|), in (0, 1], higher = better
"""

import math
import re

from oracle_kb_common import get_logger
from oracle_kb_contracts import Provenance, ScoredCandidate

from oracle_kb_storage.document_store import DocumentStore

logger = get_logger(__name__)

# FTS5 operators and punctuation that break MATCH parsing
_FTS_SPECIAL = re.compile(r"[?*+\-()^~\"':./]")
_WHITESPACE = re.compile(r"\s+")

DEFAULT_DECAY = 0.3


def sanitize_fts_query(query: str) -> str:
    """Strip FTS5 special characters from a user query.

    Each special character becomes a space; whitespace is collapsed and
    trimmed. A query made only of special characters is returned unchanged
    (with a warning) rather than emptied.

    Example:
        >>> sanitize_fts_query("time: 15:30")
        'time 15 30'
        >>> sanitize_fts_query("???")
        '???'
    """
    cleaned = _WHITESPACE.sub(" ", _FTS_SPECIAL.sub(" ", query)).strip()
    if not cleaned:
        logger.warning("fts_query_empty_after_sanitize", query=query)
        return query
    return cleaned


def normalize_fts_score(rank: float, decay: float = DEFAULT_DECAY) -> float:
    """Map an FTS5 rank to (0, 1]; better ranks give higher scores.

    Example:
        >>> round(normalize_fts_score(-1.2), 4)
        0.6977
    """
    return math.exp(-decay * abs(rank))


class LexicalQueryAdapter:
    """Runs sanitized queries against the document store."""

    def __init__(self, store: DocumentStore, decay: float = DEFAULT_DECAY, preview_chars: int = 500):
        self.store = store
        self.decay = decay
        self.preview_chars = preview_chars

    async def search(self, query: str, type_filter: str = "all", limit: int = 10) -> list[ScoredCandidate]:
        """Return lexical candidates, best rank first.

        Raises:
            StorageError: If the FTS5 query fails
        """
        safe_query = sanitize_fts_query(query)
        ranked = await self.store.ranked_search(safe_query, type_filter, limit)
        if not ranked:
            return []

        docs = await self.store.get_many([doc_id for doc_id, _ in ranked])
        candidates = []
        for doc_id, rank in ranked:
            doc = docs.get(doc_id)
            if doc is None:
                continue
            candidates.append(
                ScoredCandidate(
                    document=doc.truncated(self.preview_chars),
                    provenance=Provenance.LEXICAL,
                    raw_rank=rank,
                    lexical_score=normalize_fts_score(rank, self.decay),
                )
            )

        logger.debug("lexical_search_completed", query=safe_query, results=len(candidates))
        return candidates
