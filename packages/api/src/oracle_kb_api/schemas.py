"""Pydantic schemas for API request/response models.

Search results reuse the contracts models (SearchOutcome,
SearchResultItem, SearchLogEntry); this module adds the request bodies
and the health/status envelopes.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from oracle_kb_contracts import SearchLogEntry, SearchMode, SearchResultItem


# === Enums ===


class TypeFilter(str, Enum):
    """Document type filter accepted by search."""

    all = "all"
    principle = "principle"
    pattern = "pattern"
    learning = "learning"
    retro = "retro"


# === Request Models ===


class SearchRequest(BaseModel):
    """Search request body."""

    query: str = Field(..., description="Search query text", min_length=1)
    type: TypeFilter = Field(TypeFilter.all, description="Filter by document type")
    limit: int = Field(5, ge=1, le=100, description="Maximum results")
    offset: int = Field(0, ge=0, description="Results to skip (pagination)")
    mode: SearchMode = Field(
        SearchMode.HYBRID,
        description="hybrid (default), fts (keywords only) or vector (semantic only)",
    )


# === Response Models ===


class SimilarResponse(BaseModel):
    """Nearest neighbours of a stored document."""

    doc_id: str
    results: list[SearchResultItem]


class SearchLogResponse(BaseModel):
    """Recent searches, newest first."""

    entries: list[SearchLogEntry]


class HealthCheck(BaseModel):
    """Health check response."""

    status: str = Field(..., description="healthy or degraded")
    version: str
    database: str = Field(..., description="connected or disconnected")
    chroma: str = Field(..., description="unknown, connected or unavailable")


class StatsResponse(BaseModel):
    """Corpus and backend statistics."""

    documents: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    database: str = "unknown"
    chroma_status: str = "unknown"
    chroma_state: Optional[str] = None
    vector_count: int = 0
    collection: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str
