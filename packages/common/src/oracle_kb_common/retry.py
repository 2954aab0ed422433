"""Retry patterns using tenacity.

Provides:
- Exponential backoff for transient local failures (SQLite lock contention)
- A bounded reconnect-then-retry wrapper for long-lived subprocess clients
"""

from typing import Awaitable, Callable, Type, TypeVar

from tenacity import (
    AsyncRetrying,
    retry,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from oracle_kb_common.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def retry_on_exception(
    exception_types: tuple[Type[Exception], ...],
    max_attempts: int = 3,
    min_wait_seconds: float = 1.0,
    max_wait_seconds: float = 10.0,
) -> Callable:
    """Decorator for retrying functions that may raise specific exceptions.

    Uses exponential backoff: wait = min(max_wait, min_wait * 2^(attempt-1))

    Args:
        exception_types: Tuple of exception types to retry on
        max_attempts: Maximum number of attempts (default: 3)
        min_wait_seconds: Minimum wait time between retries (default: 1.0s)
        max_wait_seconds: Maximum wait time between retries (default: 10.0s)

    Returns:
        Decorator function

    Example:
        >>> @retry_on_exception((sqlite3.OperationalError,), max_attempts=5)
        ... async def open_database(path: Path) -> aiosqlite.Connection:
        ...     return await aiosqlite.connect(path)
    """
    return retry(
        retry=retry_if_exception_type(exception_types),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=min_wait_seconds,
            min=min_wait_seconds,
            max=max_wait_seconds,
        ),
        reraise=True,  # Re-raise exception after exhausting retries
    )


async def with_reconnect(
    fn: Callable[[], Awaitable[T]],
    *,
    is_disconnect: Callable[[BaseException], bool],
    reconnect: Callable[[], Awaitable[None]],
    max_attempts: int = 2,
) -> T:
    """Run ``fn``, reconnecting and retrying when it fails with a disconnection.

    Only errors matching ``is_disconnect`` are retried. Before every retry
    ``reconnect`` is awaited once. There is no wait between attempts: the
    reconnect itself (spawn + handshake) is the delay. After ``max_attempts``
    the last error propagates unmodified.

    Args:
        fn: Zero-argument coroutine function performing the call
        is_disconnect: Predicate classifying disconnection-class errors
        reconnect: Coroutine function re-establishing the connection
        max_attempts: Total attempts including the first (default: 2)

    Returns:
        Whatever ``fn`` returns

    Example:
        >>> text = await with_reconnect(
        ...     lambda: client.invoke("chroma_query_documents", args),
        ...     is_disconnect=lambda e: isinstance(e, ConnectionError),
        ...     reconnect=client.connect,
        ... )
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception(is_disconnect),
        stop=stop_after_attempt(max_attempts),
        reraise=True,
    ):
        with attempt:
            attempt_number = attempt.retry_state.attempt_number
            if attempt_number > 1:
                logger.info("reconnecting_before_retry", attempt=attempt_number)
                await reconnect()
            return await fn()

    # AsyncRetrying either returns from inside the loop or re-raises
    raise AssertionError("unreachable")
