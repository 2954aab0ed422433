"""Shared test fixtures for the oracle-kb repository.

Provides:
- Factories for documents and scored candidates
- An isolated Settings instance rooted in a temporary directory
"""

from pathlib import Path

import pytest

from oracle_kb_common import Settings
from oracle_kb_contracts import Document, Provenance, ScoredCandidate
from oracle_kb_storage import normalize_fts_score, normalize_semantic_score


def make_document(doc_id: str, **overrides) -> Document:
    """Document with sensible defaults for tests."""
    fields = {
        "id": doc_id,
        "type": "principle",
        "content": f"Content of {doc_id}",
        "source_locator": f"ψ/memory/resonance/{doc_id}.md",
        "concepts": ["oracle"],
    }
    fields.update(overrides)
    return Document(**fields)


def lexical_candidate(doc_id: str, rank: float, **doc_fields) -> ScoredCandidate:
    return ScoredCandidate(
        document=make_document(doc_id, **doc_fields),
        provenance=Provenance.LEXICAL,
        raw_rank=rank,
        lexical_score=normalize_fts_score(rank),
    )


def semantic_candidate(doc_id: str, distance: float, **doc_fields) -> ScoredCandidate:
    return ScoredCandidate(
        document=make_document(doc_id, **doc_fields),
        provenance=Provenance.SEMANTIC,
        raw_distance=distance,
        semantic_score=normalize_semantic_score(distance),
    )


@pytest.fixture
def lexical():
    """Factory: lexical("a", -1.2) -> lexical ScoredCandidate."""
    return lexical_candidate


@pytest.fixture
def semantic():
    """Factory: semantic("b", 0.1) -> semantic ScoredCandidate."""
    return semantic_candidate


@pytest.fixture
def document():
    """Factory: document("a", type="learning") -> Document."""
    return make_document


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment and the user's home directory.

    Usage:
        async def test_context(test_settings):
            ctx = await SearchContext.open(test_settings)
    """
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        db_path=tmp_path / "oracle.db",
        chroma_data_dir=tmp_path / "chroma",
        chroma_handshake_timeout_seconds=1.0,
        chroma_shutdown_timeout_seconds=0.2,
        semantic_timeout_seconds=1.0,
    )
