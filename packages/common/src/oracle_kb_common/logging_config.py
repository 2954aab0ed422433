"""structlog setup for oracle-kb.

Logs always go to stderr: ``oracle-kb search --format json`` writes its
payload to stdout and must stay parseable.
"""

import logging
import sys
from typing import Optional, TextIO

import structlog

# Chatty third-party loggers, held at WARNING unless we are debugging
_NOISY_LOGGERS = ("mcp", "httpx", "aiosqlite", "uvicorn.access")


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    stream: Optional[TextIO] = None,
) -> None:
    """Configure structlog over stdlib logging.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: One JSON object per line instead of the console renderer
        stream: Destination (default: ``sys.stderr`` at call time)
    """
    stream = stream or sys.stderr
    numeric_level = getattr(logging, level.upper())
    logging.basicConfig(format="%(message)s", stream=stream, level=numeric_level, force=True)
    quiet_level = numeric_level if numeric_level <= logging.DEBUG else max(numeric_level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=stream.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
