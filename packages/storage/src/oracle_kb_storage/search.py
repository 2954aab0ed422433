"""Hybrid search combining FTS5 keywords and Chroma vectors.

Provides:
- Input validation
- Concurrent lexical and semantic legs (semantic bounded by a timeout)
- Weighted fusion and pagination
- Degraded mode: a failed or empty semantic leg becomes a warning

Score semantics:
- lexical_score: exp(-decay * |rank|), higher = better
- semantic_score: 1 - distance, higher = more similar
- score: fused weighted score, higher = better
"""

import asyncio
import time
from typing import Optional, Union, assert_never

from oracle_kb_common import (
    DocumentNotFoundError,
    InvalidSearchError,
    SearchError,
    get_logger,
    instrument_function,
)
from oracle_kb_contracts import (
    DocumentType,
    Provenance,
    ScoredCandidate,
    SearchMetadata,
    SearchMode,
    SearchOutcome,
    SearchResultItem,
    SourceBreakdown,
)

from oracle_kb_storage.context import SearchContext
from oracle_kb_storage.fusion import fuse_results, paginate

logger = get_logger(__name__)

TYPE_FILTERS = frozenset(
    {"all"} | {t.value for t in DocumentType if t is not DocumentType.UNKNOWN}
)

SEMANTIC_EMPTY_WARNING = "Semantic search returned no results. Using keyword results."


def _semantic_unavailable(reason: str) -> str:
    return f"Semantic search unavailable: {reason}. Using keyword results only."


def validate_search(
    query: str,
    type_filter: str,
    limit: int,
    offset: int,
    max_limit: int,
) -> None:
    """Reject bad parameters before any backend is queried.

    Raises:
        InvalidSearchError: On blank query, out-of-range limit, negative
            offset or unknown type filter
    """
    if not query or not query.strip():
        raise InvalidSearchError("Query cannot be empty")
    if limit < 1 or limit > max_limit:
        raise InvalidSearchError(f"limit must be between 1 and {max_limit}, got {limit}")
    if offset < 0:
        raise InvalidSearchError(f"offset must be >= 0, got {offset}")
    if type_filter not in TYPE_FILTERS:
        raise InvalidSearchError(
            f"Unknown type '{type_filter}'; expected one of {sorted(TYPE_FILTERS)}"
        )


async def _lexical_leg(ctx: SearchContext, query: str, type_filter: str, limit: int) -> list[ScoredCandidate]:
    try:
        return await ctx.lexical.search(query, type_filter, limit)
    except SearchError:
        raise
    except Exception as e:
        logger.error("lexical_search_failed", query=query, error=str(e))
        raise SearchError(f"Keyword search failed: {e}") from e


async def _semantic_leg(
    ctx: SearchContext, query: str, type_filter: str, limit: int
) -> tuple[list[ScoredCandidate], Optional[str]]:
    """Run the semantic leg; failures and timeouts become a warning."""
    try:
        results = await asyncio.wait_for(
            ctx.semantic.search(query, type_filter, limit), timeout=ctx.semantic_timeout
        )
    except asyncio.TimeoutError:
        logger.warning("semantic_search_timeout", timeout=ctx.semantic_timeout)
        return [], _semantic_unavailable(f"timed out after {ctx.semantic_timeout:g}s")
    except Exception as e:
        logger.warning("semantic_search_failed", error=str(e), error_type=type(e).__name__)
        return [], _semantic_unavailable(str(e) or type(e).__name__)

    if not results:
        return [], SEMANTIC_EMPTY_WARNING
    return results, None


@instrument_function("hybrid_search")
async def hybrid_search(
    ctx: SearchContext,
    query: str,
    type_filter: str = "all",
    limit: int = 5,
    offset: int = 0,
    mode: Union[SearchMode, str] = SearchMode.HYBRID,
) -> SearchOutcome:
    """Search the knowledge base.

    In hybrid mode both legs run concurrently and each asks for
    ``2 * limit`` candidates so fusion has material to rank.

    Args:
        ctx: Search context
        query: Free-text query
        type_filter: Document type or "all"
        limit: Page size (1..ctx.max_search_limit)
        offset: Results to skip
        mode: hybrid, fts (keywords only) or vector (semantic only)

    Returns:
        SearchOutcome with the requested page, the fused total and metadata

    Raises:
        InvalidSearchError: If parameters are invalid
        SearchError: If the lexical leg fails

    Example:
        >>> outcome = await hybrid_search(ctx, "nothing is deleted", limit=5)
        >>> for item in outcome.results:
        ...     print(f"{item.score:.3f} {item.provenance.value} {item.id}")
    """
    try:
        mode = SearchMode(mode)
    except ValueError as e:
        raise InvalidSearchError(f"Unknown search mode '{mode}'") from e
    validate_search(query, type_filter, limit, offset, ctx.max_search_limit)

    start = time.perf_counter()
    fetch = limit * 2
    lexical: list[ScoredCandidate] = []
    semantic: list[ScoredCandidate] = []
    warning: Optional[str] = None

    if mode is SearchMode.HYBRID:
        semantic_task = asyncio.create_task(_semantic_leg(ctx, query, type_filter, fetch))
        try:
            lexical = await _lexical_leg(ctx, query, type_filter, fetch)
        except BaseException:
            semantic_task.cancel()
            await asyncio.gather(semantic_task, return_exceptions=True)
            raise
        semantic, warning = await semantic_task
    elif mode is SearchMode.FTS:
        lexical = await _lexical_leg(ctx, query, type_filter, fetch)
    elif mode is SearchMode.VECTOR:
        semantic, warning = await _semantic_leg(ctx, query, type_filter, fetch)
    else:
        assert_never(mode)

    fused = fuse_results(lexical, semantic, ctx.weights)
    page = paginate(fused, offset, limit)
    items = [SearchResultItem.from_candidate(c) for c in page]

    sources = SourceBreakdown(
        lexical=sum(1 for c in page if c.provenance is Provenance.LEXICAL),
        semantic=sum(1 for c in page if c.provenance is Provenance.SEMANTIC),
        hybrid=sum(1 for c in page if c.provenance is Provenance.HYBRID),
    )
    elapsed_ms = int((time.perf_counter() - start) * 1000)

    metadata = SearchMetadata(
        mode=mode,
        limit=limit,
        offset=offset,
        total=len(fused),
        lexical_matches=len(lexical),
        semantic_matches=len(semantic),
        sources=sources,
        elapsed_ms=elapsed_ms,
        warning=warning,
    )

    logger.info(
        "search_completed",
        query=query,
        mode=mode.value,
        type=type_filter,
        returned=len(items),
        total=len(fused),
        elapsed_ms=elapsed_ms,
        degraded=warning is not None,
    )
    await ctx.search_log.log_search(
        query,
        type_filter,
        mode.value,
        len(items),
        elapsed_ms,
        [item.id for item in items],
        warning,
    )

    return SearchOutcome(results=items, total=len(fused), metadata=metadata)


@instrument_function("find_similar")
async def find_similar(ctx: SearchContext, doc_id: str, limit: int = 5) -> list[SearchResultItem]:
    """Nearest neighbours of a stored document, excluding the document itself.

    Raises:
        InvalidSearchError: If limit is out of range
        DocumentNotFoundError: If the document has no stored embedding
        SearchError: If chroma-mcp fails
    """
    if not doc_id:
        raise InvalidSearchError("Document id cannot be empty")
    if limit < 1 or limit > ctx.max_search_limit:
        raise InvalidSearchError(f"limit must be between 1 and {ctx.max_search_limit}, got {limit}")

    try:
        neighbours = await ctx.semantic.nearest_neighbors(doc_id, limit)
    except DocumentNotFoundError:
        raise
    except Exception as e:
        logger.error("similar_search_failed", doc_id=doc_id, error=str(e))
        raise SearchError(f"Similarity search failed: {e}") from e

    logger.info("similar_search_completed", doc_id=doc_id, returned=len(neighbours))
    return [
        SearchResultItem.from_candidate(c.model_copy(update={"fused_score": c.semantic_score}))
        for c in neighbours
    ]
