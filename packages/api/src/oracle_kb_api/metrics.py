"""Prometheus metrics for the oracle-kb API.

Three metric categories:

1. RED Metrics (Rate, Errors, Duration)
   - Request counts by endpoint, method, status
   - Request duration histograms
   - In-flight request gauges

2. Search Metrics
   - Search duration per mode
   - Results returned, empty searches
   - Degraded searches and semantic leg failures

3. Corpus Metrics
   - Document counts in the store and the Chroma collection

Usage:
    from oracle_kb_api.metrics import (
        instrument_request,
        track_search,
        update_corpus_metrics,
    )
"""

import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.requests import Request
from starlette.responses import Response

from oracle_kb_contracts import SearchOutcome

# ==============================================================================
# RED Metrics (Rate, Errors, Duration)
# ==============================================================================

REQUEST_COUNT = Counter(
    "oracle_kb_requests_total",
    "Total HTTP requests",
    ["endpoint", "method", "status"],
)

REQUEST_DURATION = Histogram(
    "oracle_kb_request_duration_seconds",
    "HTTP request duration in seconds",
    ["endpoint", "method"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

REQUESTS_IN_PROGRESS = Gauge(
    "oracle_kb_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["endpoint"],
)

# ==============================================================================
# Search Metrics
# ==============================================================================

SEARCH_DURATION = Histogram(
    "oracle_kb_search_duration_seconds",
    "Search execution time in seconds",
    ["mode"],  # hybrid, fts, vector
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0, 30.0],
)

SEARCH_RESULTS_RETURNED = Histogram(
    "oracle_kb_search_results_returned",
    "Number of results returned per search",
    buckets=[0, 1, 2, 3, 5, 10, 20, 50, 100],
)

SEARCH_EMPTY_TOTAL = Counter(
    "oracle_kb_search_empty_total",
    "Total searches returning zero results",
)

SEARCH_DEGRADED_TOTAL = Counter(
    "oracle_kb_search_degraded_total",
    "Total searches answered with a warning (semantic leg failed or empty)",
    ["mode"],
)

SEMANTIC_FAILURES_TOTAL = Counter(
    "oracle_kb_semantic_failures_total",
    "Semantic leg failures and timeouts",
)

# ==============================================================================
# Corpus Metrics
# ==============================================================================

DOCUMENTS_TOTAL = Gauge(
    "oracle_kb_documents_total",
    "Total number of documents in the store",
)

CHROMA_DOCUMENTS_TOTAL = Gauge(
    "oracle_kb_chroma_documents_total",
    "Total number of entries in the Chroma collection",
)


# ==============================================================================
# Helper Functions
# ==============================================================================


@contextmanager
def instrument_request(endpoint: str, method: str) -> Generator[None, None, None]:
    """Context manager to instrument an HTTP request.

    Tracks:
    - Request duration (histogram)
    - In-flight requests (gauge)

    Usage:
        with instrument_request("/search", "POST"):
            # Handle request
            pass
    """
    REQUESTS_IN_PROGRESS.labels(endpoint=endpoint).inc()
    start_time = time.time()

    try:
        yield
    finally:
        duration = time.time() - start_time
        REQUEST_DURATION.labels(endpoint=endpoint, method=method).observe(duration)
        REQUESTS_IN_PROGRESS.labels(endpoint=endpoint).dec()


def track_request_status(endpoint: str, method: str, status: int) -> None:
    """Record request completion with status code."""
    REQUEST_COUNT.labels(
        endpoint=endpoint,
        method=method,
        status=str(status),
    ).inc()


def track_search(outcome: SearchOutcome) -> None:
    """Track search metrics from a completed search.

    Args:
        outcome: The search response, including its metadata
    """
    meta = outcome.metadata
    mode = meta.mode.value
    SEARCH_RESULTS_RETURNED.observe(len(outcome.results))
    SEARCH_DURATION.labels(mode=mode).observe(meta.elapsed_ms / 1000)
    if not outcome.results:
        SEARCH_EMPTY_TOTAL.inc()
    if meta.warning:
        SEARCH_DEGRADED_TOTAL.labels(mode=mode).inc()
        if meta.warning.startswith("Semantic search unavailable"):
            SEMANTIC_FAILURES_TOTAL.inc()


def update_corpus_metrics(stats: dict) -> None:
    """Update corpus gauges from a stats dictionary.

    Args:
        stats: Dictionary with keys: documents, vector_count
    """
    if "documents" in stats:
        DOCUMENTS_TOTAL.set(stats["documents"])
    if "vector_count" in stats:
        CHROMA_DOCUMENTS_TOTAL.set(stats["vector_count"])


# ==============================================================================
# Metrics Endpoint
# ==============================================================================


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    Mount this at /metrics in your FastAPI app.
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
