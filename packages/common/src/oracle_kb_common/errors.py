"""Custom error types for the oracle knowledge base.

All errors follow the "fail fast" principle with explicit messages.

Degraded search (one leg down) is not an error: it is reported through
the ``warning`` field of the search metadata.
"""


class OracleKBError(Exception):
    """Base exception for all oracle-kb errors."""

    pass


class StorageError(OracleKBError):
    """Error during document store operations."""

    pass


class SearchError(OracleKBError):
    """Error during search operations (FTS or vector)."""

    pass


class InvalidSearchError(SearchError, ValueError):
    """Search parameters rejected before any backend was queried."""

    pass


class DocumentNotFoundError(OracleKBError, LookupError):
    """Requested document (or its stored embedding) does not exist."""

    pass


class VectorStoreError(OracleKBError):
    """Error reported by the chroma-mcp subprocess."""

    pass


class VectorStoreConnectionError(VectorStoreError, ConnectionError):
    """chroma-mcp is unreachable or the handshake failed."""

    pass


class VectorStoreUnavailableError(VectorStoreConnectionError):
    """chroma-mcp cannot be spawned at all; no further attempts are made."""

    pass


class ProtocolParseError(VectorStoreError):
    """chroma-mcp response could not be interpreted, even after repair.

    Attributes:
        text: The original response text, kept for diagnosis
    """

    def __init__(self, message: str, text: str = ""):
        super().__init__(message)
        self.text = text
