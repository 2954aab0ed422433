"""Search endpoints.

Provides hybrid search (FTS5 keywords + Chroma vectors), similar-document
lookup and the search log.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from oracle_kb_common import DocumentNotFoundError, InvalidSearchError, SearchError
from oracle_kb_contracts import SearchOutcome
from oracle_kb_storage import SearchContext

from oracle_kb_api import schemas
from oracle_kb_api import service

router = APIRouter()


@router.post("", response_model=SearchOutcome)
async def search(
    request: schemas.SearchRequest,
    ctx: SearchContext = Depends(service.get_search_context),
) -> SearchOutcome:
    """Execute hybrid search.

    When the semantic leg is down the response still succeeds with keyword
    results; ``metadata.warning`` explains the degradation.

    Parameters
    ----------
    request : SearchRequest
        - query: Search text
        - type: all/principle/pattern/learning/retro
        - limit: Max results (1-100, default 5)
        - offset: Results to skip
        - mode: hybrid/fts/vector

    Returns
    -------
    SearchOutcome
        Page of results, fused total and diagnostic metadata.
    """
    try:
        return await service.search(
            ctx,
            request.query,
            type_filter=request.type.value,
            limit=request.limit,
            offset=request.offset,
            mode=request.mode,
        )
    except InvalidSearchError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SearchError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/similar/{doc_id}", response_model=schemas.SimilarResponse)
async def similar(
    doc_id: str,
    limit: int = Query(5, ge=1, le=100, description="Maximum neighbours"),
    ctx: SearchContext = Depends(service.get_search_context),
) -> schemas.SimilarResponse:
    """Find documents nearest to a stored document (never the document itself)."""
    try:
        results = await service.similar(ctx, doc_id, limit)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidSearchError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SearchError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return schemas.SimilarResponse(doc_id=doc_id, results=results)


@router.get("/logs", response_model=schemas.SearchLogResponse)
async def search_logs(
    limit: int = Query(20, ge=1, le=500, description="Number of entries"),
    ctx: SearchContext = Depends(service.get_search_context),
) -> schemas.SearchLogResponse:
    """Recent searches, newest first."""
    entries = await service.recent_searches(ctx, limit)
    return schemas.SearchLogResponse(entries=entries)
