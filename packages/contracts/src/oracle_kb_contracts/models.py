"""Pydantic models for the oracle knowledge base.

These schemas define the contract between all packages. Documents match the
SQLite table ``oracle_documents`` and the metadata stored alongside each
entry of the Chroma collection.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator


class DocumentType(str, Enum):
    """Knowledge document types."""

    PRINCIPLE = "principle"
    PATTERN = "pattern"
    LEARNING = "learning"
    RETRO = "retro"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "DocumentType":
        return cls.UNKNOWN


class SearchMode(str, Enum):
    """Which retrieval legs a search uses."""

    HYBRID = "hybrid"
    FTS = "fts"
    VECTOR = "vector"


class Provenance(str, Enum):
    """Which leg(s) surfaced a result."""

    LEXICAL = "lexical"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


def parse_concepts(value: Any) -> list[str]:
    """Parse concept tags from a list or a JSON-encoded string.

    Anything unparseable yields an empty list.

    Example:
        >>> parse_concepts('["trust", "safety"]')
        ['trust', 'safety']
        >>> parse_concepts("not json")
        []
    """
    if not value:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(v) for v in value]
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return []
        return [str(v) for v in parsed] if isinstance(parsed, list) else []
    return []


class Document(BaseModel):
    """Knowledge document as seen by the retrieval engine (read-only).

    Matches SQLite table: oracle_documents
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    type: DocumentType = DocumentType.UNKNOWN
    content: str = ""
    source_locator: str = Field("", description="Source file path in the vault")
    concepts: frozenset[str] = Field(default_factory=frozenset)
    project: Optional[str] = None

    @field_validator("concepts", mode="before")
    @classmethod
    def coerce_concepts(cls, v: Any) -> frozenset[str]:
        """Accept lists, sets or JSON strings."""
        return frozenset(parse_concepts(v))

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v: Any) -> Any:
        """Missing or unrecognised types are unknown."""
        if not v:
            return DocumentType.UNKNOWN
        return DocumentType(v)

    @field_serializer("concepts")
    def serialize_concepts(self, concepts: frozenset[str]) -> list[str]:
        return sorted(concepts)

    def truncated(self, max_chars: int) -> "Document":
        """Copy with content cut to ``max_chars`` for transport."""
        if len(self.content) <= max_chars:
            return self
        return self.model_copy(update={"content": self.content[:max_chars]})


class ScoredCandidate(BaseModel):
    """A document scored by one or both retrieval legs.

    Created per query and discarded after the response is built.

    Invariant: single-leg candidates carry only their own leg's raw value
    and normalized score; the other leg's fields are None (not zero).
    Hybrid candidates carry both.
    """

    model_config = ConfigDict(frozen=True)

    document: Document
    provenance: Provenance
    raw_rank: Optional[float] = Field(None, description="FTS5 rank (negative, closer to 0 = better)")
    raw_distance: Optional[float] = Field(None, description="Chroma distance (lower = more similar)")
    lexical_score: Optional[float] = None
    semantic_score: Optional[float] = None
    fused_score: float = 0.0

    @property
    def id(self) -> str:
        return self.document.id

    @model_validator(mode="after")
    def check_provenance_fields(self) -> "ScoredCandidate":
        has_lexical = self.raw_rank is not None and self.lexical_score is not None
        has_semantic = self.raw_distance is not None and self.semantic_score is not None
        no_lexical = self.raw_rank is None and self.lexical_score is None
        no_semantic = self.raw_distance is None and self.semantic_score is None

        if self.provenance is Provenance.HYBRID:
            ok = has_lexical and has_semantic
        elif self.provenance is Provenance.LEXICAL:
            ok = has_lexical and no_semantic
        else:
            ok = has_semantic and no_lexical
        if not ok:
            raise ValueError(
                f"{self.provenance.value} candidate has inconsistent scores "
                f"(lexical={self.lexical_score}, semantic={self.semantic_score})"
            )
        return self


class SearchResultItem(BaseModel):
    """One entry of a search response page."""

    id: str
    type: DocumentType
    content: str
    source_locator: str
    concepts: list[str] = Field(default_factory=list)
    project: Optional[str] = None
    score: float
    provenance: Provenance
    lexical_score: Optional[float] = None
    semantic_score: Optional[float] = None

    @classmethod
    def from_candidate(cls, candidate: ScoredCandidate) -> "SearchResultItem":
        doc = candidate.document
        return cls(
            id=doc.id,
            type=doc.type,
            content=doc.content,
            source_locator=doc.source_locator,
            concepts=sorted(doc.concepts),
            project=doc.project,
            score=candidate.fused_score,
            provenance=candidate.provenance,
            lexical_score=candidate.lexical_score,
            semantic_score=candidate.semantic_score,
        )


class SourceBreakdown(BaseModel):
    """How many results on the page came from each leg."""

    lexical: int = 0
    semantic: int = 0
    hybrid: int = 0


class SearchMetadata(BaseModel):
    """Diagnostic metadata attached to every search response."""

    mode: SearchMode
    limit: int
    offset: int
    total: int
    lexical_matches: int = Field(0, description="Raw lexical leg result count")
    semantic_matches: int = Field(0, description="Raw semantic leg result count")
    sources: SourceBreakdown = Field(default_factory=SourceBreakdown)
    elapsed_ms: int = 0
    warning: Optional[str] = Field(
        None, description="Set when a leg failed or returned nothing (degraded mode)"
    )


class SearchOutcome(BaseModel):
    """Paginated, fused search response."""

    results: list[SearchResultItem] = Field(default_factory=list)
    total: int = 0
    metadata: SearchMetadata


class SearchLogEntry(BaseModel):
    """One recorded search."""

    id: int
    query: str
    type: Optional[str] = None
    mode: Optional[str] = None
    results_count: int = 0
    search_time_ms: Optional[int] = None
    result_ids: list[str] = Field(default_factory=list)
    warning: Optional[str] = None
    created_at: datetime
