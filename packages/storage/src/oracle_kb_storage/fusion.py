"""Weighted fusion of the lexical and semantic legs.

Fused score:
- hybrid (found by both):  (w_lex * s_lex + w_sem * s_sem) * boost
- lexical only:            s_lex * w_lex
- semantic only:           s_sem * w_sem

The result never contains duplicate ids; within a leg the first occurrence
of an id wins.
"""

from dataclasses import dataclass

from oracle_kb_contracts import Provenance, ScoredCandidate


@dataclass(frozen=True)
class FusionWeights:
    """Weights for combining the two legs.

    Attributes:
        lexical: Weight of the lexical score (default: 0.5)
        semantic: Weight of the semantic score (default: 0.5)
        corroboration_boost: Multiplier for documents found by both legs (default: 1.1)
    """

    lexical: float = 0.5
    semantic: float = 0.5
    corroboration_boost: float = 1.1

    def __post_init__(self):
        if self.lexical < 0 or self.semantic < 0:
            raise ValueError("Fusion weights must be non-negative")
        if self.corroboration_boost < 1.0:
            raise ValueError("corroboration_boost must be >= 1.0")


def fuse_results(
    lexical: list[ScoredCandidate],
    semantic: list[ScoredCandidate],
    weights: FusionWeights = FusionWeights(),
) -> list[ScoredCandidate]:
    """Merge two candidate lists into one ranked, de-duplicated list.

    Example:
        >>> fused = fuse_results(lexical_candidates, semantic_candidates)
        >>> [c.provenance for c in fused]
        [<Provenance.HYBRID: 'hybrid'>, <Provenance.LEXICAL: 'lexical'>]
    """
    merged: dict[str, ScoredCandidate] = {}

    for c in lexical:
        if c.id in merged:
            continue
        merged[c.id] = c.model_copy(update={"fused_score": c.lexical_score * weights.lexical})

    seen_semantic: set[str] = set()
    for c in semantic:
        if c.id in seen_semantic:
            continue
        seen_semantic.add(c.id)

        existing = merged.get(c.id)
        if existing is None:
            merged[c.id] = c.model_copy(update={"fused_score": c.semantic_score * weights.semantic})
            continue

        # keep the lexical document payload; add the semantic evidence
        fused = (
            weights.lexical * existing.lexical_score + weights.semantic * c.semantic_score
        ) * weights.corroboration_boost
        merged[c.id] = ScoredCandidate(
            document=existing.document,
            provenance=Provenance.HYBRID,
            raw_rank=existing.raw_rank,
            raw_distance=c.raw_distance,
            lexical_score=existing.lexical_score,
            semantic_score=c.semantic_score,
            fused_score=fused,
        )

    return sorted(merged.values(), key=lambda c: c.fused_score, reverse=True)


def paginate(results: list[ScoredCandidate], offset: int, limit: int) -> list[ScoredCandidate]:
    """Page ``[offset, offset + limit)`` of a fused list."""
    return results[offset : offset + limit]
