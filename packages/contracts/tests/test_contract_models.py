"""Tests for Pydantic models in contracts package.

Focus: validators, provenance invariant, concept coercion
"""

import pytest
from pydantic import ValidationError

from oracle_kb_contracts import (
    Document,
    DocumentType,
    Provenance,
    ScoredCandidate,
    SearchResultItem,
    parse_concepts,
)


class TestDocumentType:
    """Test DocumentType enum."""

    def test_all_document_types_available(self):
        assert DocumentType.PRINCIPLE == "principle"
        assert DocumentType.PATTERN == "pattern"
        assert DocumentType.LEARNING == "learning"
        assert DocumentType.RETRO == "retro"
        assert DocumentType.UNKNOWN == "unknown"

    def test_unrecognised_value_maps_to_unknown(self):
        assert DocumentType("handoff") is DocumentType.UNKNOWN


class TestParseConcepts:
    """Test concept parsing from metadata."""

    def test_handles_none(self):
        assert parse_concepts(None) == []

    def test_handles_lists(self):
        assert parse_concepts(["trust", "safety"]) == ["trust", "safety"]

    def test_parses_json_strings(self):
        assert parse_concepts('["trust","safety"]') == ["trust", "safety"]

    def test_invalid_json_is_empty(self):
        assert parse_concepts("not json") == []

    def test_json_non_list_is_empty(self):
        assert parse_concepts('{"a": 1}') == []


class TestDocument:
    """Test Document model."""

    def test_minimal_document(self):
        doc = Document(id="doc1")

        assert doc.type is DocumentType.UNKNOWN
        assert doc.concepts == frozenset()
        assert doc.project is None

    def test_concepts_order_insensitive(self):
        a = Document(id="doc1", concepts=["trust", "safety"])
        b = Document(id="doc1", concepts='["safety", "trust"]')

        assert a.concepts == b.concepts

    def test_concepts_serialized_sorted(self):
        doc = Document(id="doc1", concepts=["zeta", "alpha"])

        assert doc.model_dump(mode="json")["concepts"] == ["alpha", "zeta"]

    def test_missing_type_is_unknown(self):
        assert Document(id="doc1", type=None).type is DocumentType.UNKNOWN
        assert Document(id="doc1", type="").type is DocumentType.UNKNOWN

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            Document(id="")

    def test_truncated(self):
        doc = Document(id="doc1", content="x" * 600)

        assert len(doc.truncated(500).content) == 500
        assert doc.truncated(1000) is doc
        assert len(doc.content) == 600


class TestScoredCandidate:
    """Test the provenance/score invariant."""

    doc = Document(id="doc1", type="principle")

    def test_lexical_candidate(self):
        c = ScoredCandidate(
            document=self.doc,
            provenance=Provenance.LEXICAL,
            raw_rank=-1.2,
            lexical_score=0.7,
        )
        assert c.id == "doc1"
        assert c.semantic_score is None

    def test_lexical_candidate_with_semantic_score_rejected(self):
        with pytest.raises(ValidationError):
            ScoredCandidate(
                document=self.doc,
                provenance=Provenance.LEXICAL,
                raw_rank=-1.2,
                lexical_score=0.7,
                raw_distance=0.0,
                semantic_score=0.0,
            )

    def test_semantic_candidate_requires_distance(self):
        with pytest.raises(ValidationError):
            ScoredCandidate(
                document=self.doc,
                provenance=Provenance.SEMANTIC,
                semantic_score=0.9,
            )

    def test_hybrid_candidate_requires_both(self):
        with pytest.raises(ValidationError):
            ScoredCandidate(
                document=self.doc,
                provenance=Provenance.HYBRID,
                raw_rank=-1.0,
                lexical_score=0.74,
            )

        c = ScoredCandidate(
            document=self.doc,
            provenance=Provenance.HYBRID,
            raw_rank=-1.0,
            lexical_score=0.74,
            raw_distance=0.1,
            semantic_score=0.9,
            fused_score=0.9,
        )
        assert c.provenance is Provenance.HYBRID

    def test_zero_scores_are_set_not_missing(self):
        c = ScoredCandidate(
            document=self.doc,
            provenance=Provenance.SEMANTIC,
            raw_distance=1.0,
            semantic_score=0.0,
        )
        assert c.semantic_score == 0.0


class TestSearchResultItem:
    """Test conversion from candidates."""

    def test_from_candidate(self):
        doc = Document(
            id="doc1",
            type="learning",
            content="Nothing is deleted",
            source_locator="ψ/memory/learnings/x.md",
            concepts=["history", "safety"],
            project="oracle",
        )
        c = ScoredCandidate(
            document=doc,
            provenance=Provenance.SEMANTIC,
            raw_distance=0.2,
            semantic_score=0.8,
            fused_score=0.4,
        )

        item = SearchResultItem.from_candidate(c)

        assert item.id == "doc1"
        assert item.type is DocumentType.LEARNING
        assert item.score == pytest.approx(0.4)
        assert item.concepts == ["history", "safety"]
        assert item.provenance is Provenance.SEMANTIC
        assert item.lexical_score is None
