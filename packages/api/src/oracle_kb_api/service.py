"""Shared service layer for the oracle-kb API.

The SearchContext lives on ``app.state.search_context`` (installed by the
lifespan) and reaches endpoints through the ``get_search_context``
dependency. The functions here wrap the storage operations with metrics.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, Request

from oracle_kb_common import get_logger
from oracle_kb_contracts import SearchLogEntry, SearchMode, SearchOutcome, SearchResultItem
from oracle_kb_storage import SearchContext, find_similar, hybrid_search

from oracle_kb_api import metrics

logger = get_logger(__name__)


def current_context(request: Request) -> Optional[SearchContext]:
    """The application's search context, or None before startup."""
    return getattr(request.app.state, "search_context", None)


def get_search_context(request: Request) -> SearchContext:
    """FastAPI dependency for endpoints that need the search context.

    Raises:
        HTTPException: 503 if the application has not finished starting
    """
    context = current_context(request)
    if context is None:
        raise HTTPException(status_code=503, detail="Search context not initialized")
    return context


async def search(
    ctx: SearchContext,
    query: str,
    type_filter: str = "all",
    limit: int = 5,
    offset: int = 0,
    mode: SearchMode = SearchMode.HYBRID,
) -> SearchOutcome:
    """Execute a search and record its metrics."""
    outcome = await hybrid_search(
        ctx,
        query,
        type_filter=type_filter,
        limit=limit,
        offset=offset,
        mode=mode,
    )
    metrics.track_search(outcome)
    return outcome


async def similar(ctx: SearchContext, doc_id: str, limit: int = 5) -> list[SearchResultItem]:
    return await find_similar(ctx, doc_id, limit)


async def recent_searches(ctx: SearchContext, limit: int = 20) -> list[SearchLogEntry]:
    return await ctx.search_log.recent(limit)


async def get_stats(ctx: SearchContext) -> dict[str, Any]:
    """Corpus statistics and backend health; updates corpus gauges."""
    stats = await ctx.stats()
    metrics.update_corpus_metrics(stats)
    return stats
