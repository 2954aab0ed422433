"""Oracle KB Common - Shared utilities.

Version: 1.0.0

This package provides:
- Settings (pydantic-settings)
- Structured logging (structlog)
- Retry/reconnect patterns (tenacity)
- OpenTelemetry instrumentation helpers
- Custom error types
"""

from oracle_kb_common.config import Settings, get_settings
from oracle_kb_common.errors import (
    DocumentNotFoundError,
    InvalidSearchError,
    OracleKBError,
    ProtocolParseError,
    SearchError,
    StorageError,
    VectorStoreConnectionError,
    VectorStoreError,
    VectorStoreUnavailableError,
)
from oracle_kb_common.instrumentation import (
    get_tracer,
    init_telemetry,
    instrument_function,
)
from oracle_kb_common.logging_config import configure_logging, get_logger
from oracle_kb_common.retry import retry_on_exception, with_reconnect

__version__ = "1.0.0"

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Logging
    "configure_logging",
    "get_logger",
    # Retry
    "retry_on_exception",
    "with_reconnect",
    # Instrumentation
    "init_telemetry",
    "get_tracer",
    "instrument_function",
    # Errors
    "OracleKBError",
    "StorageError",
    "SearchError",
    "InvalidSearchError",
    "DocumentNotFoundError",
    "VectorStoreError",
    "VectorStoreConnectionError",
    "VectorStoreUnavailableError",
    "ProtocolParseError",
]
