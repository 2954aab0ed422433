"""Typed verbs over a single Chroma collection.

Each method maps to one chroma-mcp tool and parses its response with
:func:`parse_response`.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from oracle_kb_common import VectorStoreConnectionError, VectorStoreError, get_logger

from oracle_kb_chroma.lifecycle import ChromaMcpClient
from oracle_kb_chroma.response_parser import parse_response

logger = get_logger(__name__)


def _first_row(payload: dict[str, Any], key: str) -> list[Any]:
    """Chroma nests per-query results one level deep; take the first query."""
    value = payload.get(key)
    if not value:
        return []
    first = value[0]
    return list(first) if first is not None else []


@dataclass
class QueryResult:
    """Results of a single Chroma query (first query row only)."""

    ids: list[str] = field(default_factory=list)
    documents: list[Optional[str]] = field(default_factory=list)
    distances: list[float] = field(default_factory=list)
    metadatas: list[Optional[dict[str, Any]]] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "QueryResult":
        if not isinstance(payload, dict):
            return cls()
        ids = [str(i) for i in _first_row(payload, "ids")]
        documents = _first_row(payload, "documents")
        distances = _first_row(payload, "distances")
        metadatas = _first_row(payload, "metadatas")
        # pad missing columns so every row is addressable by index
        n = len(ids)
        documents += [None] * (n - len(documents))
        metadatas += [None] * (n - len(metadatas))
        return cls(ids=ids, documents=documents[:n], distances=distances, metadatas=metadatas[:n])

    def __len__(self) -> int:
        return len(self.ids)


class ChromaCollection:
    """Collection operations on top of a shared :class:`ChromaMcpClient`."""

    def __init__(self, client: ChromaMcpClient, name: Optional[str] = None):
        self.client = client
        self.name = name or client.collection_name

    async def ensure_collection(self) -> None:
        """Create the collection with the default embedding function if missing."""
        try:
            await self.client.call("chroma_get_collection_info", {"collection_name": self.name})
            return
        except VectorStoreError as e:
            if isinstance(e, VectorStoreConnectionError):
                raise
            logger.info("chroma_collection_missing", collection=self.name)

        await self.client.call(
            "chroma_create_collection",
            {"collection_name": self.name, "embedding_function_name": "default"},
        )
        logger.info("chroma_collection_created", collection=self.name)

    async def delete_collection(self) -> None:
        """Delete the collection; a missing collection is ignored."""
        try:
            await self.client.call("chroma_delete_collection", {"collection_name": self.name})
        except VectorStoreError as e:
            if isinstance(e, VectorStoreConnectionError):
                raise
            logger.info("chroma_collection_delete_skipped", collection=self.name, reason=str(e))

    async def add_documents(
        self,
        ids: list[str],
        documents: list[str],
        metadatas: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        if not ids:
            return
        arguments: dict[str, Any] = {
            "collection_name": self.name,
            "documents": documents,
            "ids": ids,
        }
        if metadatas:
            arguments["metadatas"] = metadatas
        await self.client.call("chroma_add_documents", arguments)
        logger.debug("chroma_documents_added", collection=self.name, count=len(ids))

    async def query_by_text(
        self,
        text: str,
        n_results: int,
        where: Optional[dict[str, Any]] = None,
    ) -> QueryResult:
        """Embed ``text`` with the collection's embedding function and query."""
        arguments: dict[str, Any] = {
            "collection_name": self.name,
            "query_texts": [text],
            "n_results": n_results,
            "include": ["documents", "metadatas", "distances"],
        }
        if where:
            arguments["where"] = json.dumps(where)
        raw = await self.client.call("chroma_query_documents", arguments)
        return QueryResult.from_payload(parse_response(raw))

    async def query_by_embedding(self, embedding: list[float], n_results: int) -> QueryResult:
        arguments = {
            "collection_name": self.name,
            "query_embeddings": [embedding],
            "n_results": n_results,
            "include": ["documents", "metadatas", "distances"],
        }
        raw = await self.client.call("chroma_query_documents", arguments)
        return QueryResult.from_payload(parse_response(raw))

    async def get_documents(self, ids: list[str], include_embeddings: bool = False) -> dict[str, Any]:
        """Fetch entries by id.

        Returns:
            Parsed payload with ``ids``, ``documents``, ``metadatas`` and,
            when requested, ``embeddings`` (flat per-id lists)
        """
        include = ["documents", "metadatas"]
        if include_embeddings:
            include.insert(0, "embeddings")
        raw = await self.client.call(
            "chroma_get_documents",
            {"collection_name": self.name, "ids": ids, "include": include},
        )
        payload = parse_response(raw)
        return payload if isinstance(payload, dict) else {}

    async def get_embedding(self, doc_id: str) -> Optional[list[float]]:
        """Stored embedding for ``doc_id``, or None if absent."""
        payload = await self.get_documents([doc_id], include_embeddings=True)
        embeddings = payload.get("embeddings") or []
        if not embeddings or embeddings[0] is None or len(embeddings[0]) == 0:
            return None
        return [float(x) for x in embeddings[0]]

    async def count(self) -> int:
        """Number of entries; accepts a bare number or ``{"count": n}``."""
        raw = await self.client.call("chroma_get_collection_count", {"collection_name": self.name})
        payload = parse_response(raw)
        if isinstance(payload, dict):
            payload = payload.get("count", 0)
        return int(payload)

    async def info(self) -> dict[str, Any]:
        raw = await self.client.call("chroma_get_collection_info", {"collection_name": self.name})
        payload = parse_response(raw)
        return payload if isinstance(payload, dict) else {"info": payload}
