"""Semantic (vector) leg: Chroma collection via chroma-mcp.

Score semantics:
- raw distance: Chroma distance, lower = more similar
- semantic_score: 1 - distance (not clamped; large distances go negative)
"""

from typing import Any, Optional

from oracle_kb_chroma import ChromaCollection, QueryResult
from oracle_kb_common import DocumentNotFoundError, get_logger
from oracle_kb_contracts import Document, Provenance, ScoredCandidate

logger = get_logger(__name__)


def normalize_semantic_score(distance: float) -> float:
    """Similarity from distance: exactly ``1 - distance``."""
    return 1 - distance


def where_for_type(type_filter: Optional[str]) -> Optional[dict[str, Any]]:
    """Chroma ``where`` clause for a type filter; "all" means none."""
    if not type_filter or type_filter == "all":
        return None
    return {"type": type_filter}


def _document_from_row(doc_id: str, content: Optional[str], metadata: Optional[dict[str, Any]]) -> Document:
    metadata = metadata or {}
    return Document(
        id=doc_id,
        type=metadata.get("type"),
        content=content or "",
        source_locator=str(metadata.get("source_file") or ""),
        concepts=metadata.get("concepts"),
        project=metadata.get("project") or None,
    )


class SemanticQueryAdapter:
    """Turns Chroma query results into scored candidates."""

    def __init__(self, collection: ChromaCollection, preview_chars: int = 500):
        self.collection = collection
        self.preview_chars = preview_chars

    def _candidates(self, result: QueryResult, exclude_id: Optional[str] = None) -> list[ScoredCandidate]:
        candidates = []
        for i, (doc_id, distance) in enumerate(zip(result.ids, result.distances)):
            if doc_id == exclude_id or distance is None:
                continue
            distance = float(distance)
            doc = _document_from_row(doc_id, result.documents[i], result.metadatas[i])
            candidates.append(
                ScoredCandidate(
                    document=doc.truncated(self.preview_chars),
                    provenance=Provenance.SEMANTIC,
                    raw_distance=distance,
                    semantic_score=normalize_semantic_score(distance),
                )
            )
        return candidates

    async def search(self, query: str, type_filter: str = "all", limit: int = 10) -> list[ScoredCandidate]:
        """Return semantic candidates, nearest first.

        Raises:
            VectorStoreError: If chroma-mcp fails (the orchestrator degrades)
        """
        result = await self.collection.query_by_text(query, limit, where=where_for_type(type_filter))
        candidates = self._candidates(result)
        logger.debug("semantic_search_completed", results=len(candidates))
        return candidates

    async def nearest_neighbors(self, doc_id: str, n: int = 5) -> list[ScoredCandidate]:
        """Documents nearest to ``doc_id``'s stored embedding, never itself.

        Queries for ``n + 1`` so that dropping the document itself still
        leaves ``n`` neighbours.

        Raises:
            DocumentNotFoundError: If ``doc_id`` has no stored embedding
        """
        embedding = await self.collection.get_embedding(doc_id)
        if embedding is None:
            raise DocumentNotFoundError(f"No embedding found for document: {doc_id}")

        result = await self.collection.query_by_embedding(embedding, n + 1)
        return self._candidates(result, exclude_id=doc_id)[:n]

    async def collection_count(self) -> int:
        """Entry count, or 0 when chroma-mcp is unreachable."""
        try:
            return await self.collection.count()
        except Exception as e:
            logger.warning("chroma_count_failed", error=str(e))
            return 0

    async def collection_info(self) -> dict[str, Any]:
        """Collection info, or {} when chroma-mcp is unreachable."""
        try:
            return await self.collection.info()
        except Exception as e:
            logger.warning("chroma_info_failed", error=str(e))
            return {}
