"""Health check endpoints.

- /health/live - Liveness probe (is the process alive?)
- /health - Database ping plus chroma-mcp status
- /stats - Corpus statistics
- /metrics - Prometheus exposition
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from oracle_kb_common import get_logger
from oracle_kb_storage import SearchContext

from oracle_kb_api import schemas
from oracle_kb_api import service
from oracle_kb_api.metrics import metrics_endpoint

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health/live")
async def liveness() -> dict:
    """Liveness probe - is the process alive?

    Returns 200 if the process is running.
    """
    return {"status": "alive"}


@router.get("/health", response_model=schemas.HealthCheck)
async def health_check(request: Request) -> schemas.HealthCheck:
    """Primary health check with actual dependency validation.

    The database is required; chroma-mcp being unavailable only degrades
    search to keywords, so it is reported but does not fail the check.
    """
    db_status = "connected"
    chroma_status = "unknown"
    overall_status = "healthy"

    context = service.current_context(request)
    try:
        if context is None:
            raise RuntimeError("Search context not initialized")
        stats = await service.get_stats(context)
        chroma_status = stats.get("chroma_status", "unknown")
        if stats.get("database") != "healthy":
            db_status = "disconnected"
            overall_status = "degraded"
    except Exception as e:
        logger.warning("health_check_failed", error=str(e))
        db_status = "disconnected"
        overall_status = "degraded"

    return schemas.HealthCheck(
        status=overall_status,
        version="1.0.0",
        database=db_status,
        chroma=chroma_status,
    )


@router.get("/stats", response_model=schemas.StatsResponse)
async def get_stats(
    ctx: SearchContext = Depends(service.get_search_context),
) -> schemas.StatsResponse:
    """Document counts by type, Chroma entry count and backend status."""
    stats_data = await service.get_stats(ctx)
    return schemas.StatsResponse(**stats_data)


@router.get("/metrics")
async def metrics(request: Request):
    """Prometheus metrics endpoint.

    Returns metrics in Prometheus text format for scraping.
    """
    return await metrics_endpoint(request)
