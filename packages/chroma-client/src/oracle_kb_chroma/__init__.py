"""Oracle KB Chroma client - chroma-mcp over MCP stdio.

Provides:
- ChromaMcpClient: subprocess lifecycle with single reconnect-and-retry
- ChromaCollection: typed collection verbs
- parse_response: tolerant parser for Python-repr responses
"""

from oracle_kb_chroma.collection import ChromaCollection, QueryResult
from oracle_kb_chroma.lifecycle import (
    ChromaMcpClient,
    ConnectionState,
    SessionFactory,
    is_disconnect_error,
    is_transport_disconnect,
    open_stdio_session,
)
from oracle_kb_chroma.response_parser import parse_response, repair_response_text

__version__ = "1.0.0"

__all__ = [
    "ChromaMcpClient",
    "ConnectionState",
    "SessionFactory",
    "ChromaCollection",
    "QueryResult",
    "is_disconnect_error",
    "is_transport_disconnect",
    "open_stdio_session",
    "parse_response",
    "repair_response_text",
]
