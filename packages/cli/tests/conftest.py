"""Fixtures for CLI testing."""

import pytest
from typer.testing import CliRunner

from oracle_kb_contracts import (
    Provenance,
    SearchMetadata,
    SearchMode,
    SearchOutcome,
    SearchResultItem,
    SourceBreakdown,
)


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    return CliRunner()


def make_item(doc_id: str, score: float, provenance: Provenance = Provenance.HYBRID, **fields) -> SearchResultItem:
    values = {
        "id": doc_id,
        "type": "principle",
        "content": f"Content of {doc_id}",
        "source_locator": f"ψ/memory/resonance/{doc_id}.md",
        "concepts": ["trust"],
        "score": score,
        "provenance": provenance,
        "lexical_score": 0.5 if provenance is not Provenance.SEMANTIC else None,
        "semantic_score": 0.8 if provenance is not Provenance.LEXICAL else None,
    }
    values.update(fields)
    return SearchResultItem(**values)


@pytest.fixture
def item():
    """Factory: item("a", 0.7) -> SearchResultItem."""
    return make_item


@pytest.fixture
def search_outcome():
    """Two hybrid results, no warning."""
    results = [make_item("principle_nothing_deleted", 0.693), make_item("learning_force_push", 0.453)]
    return SearchOutcome(
        results=results,
        total=2,
        metadata=SearchMetadata(
            mode=SearchMode.HYBRID,
            limit=5,
            offset=0,
            total=2,
            lexical_matches=2,
            semantic_matches=2,
            sources=SourceBreakdown(hybrid=2),
            elapsed_ms=14,
        ),
    )
