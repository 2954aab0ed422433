"""Oracle KB Contracts - Pure Pydantic schemas.

Version: 1.0.0

This package contains ONLY Pydantic schemas with no business logic.
Dependencies: pydantic only (no logging, no DB drivers).
"""

from oracle_kb_contracts.models import (
    # Documents
    Document,
    DocumentType,
    parse_concepts,
    # Scoring
    Provenance,
    ScoredCandidate,
    # Search envelope
    SearchMetadata,
    SearchMode,
    SearchOutcome,
    SearchResultItem,
    SourceBreakdown,
    # Search log
    SearchLogEntry,
)

__version__ = "1.0.0"

__all__ = [
    "Document",
    "DocumentType",
    "parse_concepts",
    "Provenance",
    "ScoredCandidate",
    "SearchMetadata",
    "SearchMode",
    "SearchOutcome",
    "SearchResultItem",
    "SourceBreakdown",
    "SearchLogEntry",
]
