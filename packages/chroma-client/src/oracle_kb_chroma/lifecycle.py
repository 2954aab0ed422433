"""Lifecycle of the chroma-mcp subprocess.

caller -> MCP ClientSession -> stdio -> chroma-mcp -> ChromaDB

The stdio transport is held open by a single owner task: the MCP SDK's
anyio cancel scopes must be entered and exited by the same task, and the
session has to outlive the request that first connected it.

State machine:
    DISCONNECTED --connect ok--> CONNECTED
    DISCONNECTED --connect fails--> DISCONNECTED (raises)
    any --launcher missing--> UNAVAILABLE (terminal)
    CONNECTED --call fails with disconnection--> DISCONNECTED, reconnect once, retry once
    CONNECTED --call fails otherwise--> CONNECTED (error propagates)
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Optional

import anyio
from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from oracle_kb_common import (
    ProtocolParseError,
    VectorStoreConnectionError,
    VectorStoreError,
    VectorStoreUnavailableError,
    get_logger,
    with_reconnect,
)

logger = get_logger(__name__)

SessionFactory = Callable[[StdioServerParameters], AsyncContextManager[Any]]

_TRANSPORT_CLOSED = (
    anyio.ClosedResourceError,
    anyio.BrokenResourceError,
    anyio.EndOfStream,
    BrokenPipeError,
    ConnectionResetError,
)
_DISCONNECT_MESSAGES = ("not connected", "connection closed")


class ConnectionState(str, Enum):
    """Connection state of the chroma-mcp subprocess."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    UNAVAILABLE = "unavailable"


@asynccontextmanager
async def open_stdio_session(params: StdioServerParameters) -> AsyncIterator[ClientSession]:
    """Spawn the server process and open an MCP session over its stdio."""
    async with stdio_client(params) as (read_stream, write_stream):
        async with ClientSession(read_stream, write_stream) as session:
            yield session


def is_transport_disconnect(exc: BaseException) -> bool:
    """True if ``exc`` means the subprocess transport is gone."""
    if isinstance(exc, _TRANSPORT_CLOSED):
        return True
    if isinstance(exc, BaseExceptionGroup):
        return any(is_transport_disconnect(e) for e in exc.exceptions)
    message = str(exc).lower()
    return any(m in message for m in _DISCONNECT_MESSAGES)


def is_disconnect_error(exc: BaseException) -> bool:
    """Retry predicate: a lost connection worth one reconnect."""
    return isinstance(exc, VectorStoreConnectionError) and not isinstance(
        exc, VectorStoreUnavailableError
    )


def _is_spawn_failure(exc: BaseException) -> bool:
    if isinstance(exc, (FileNotFoundError, PermissionError)):
        return True
    if isinstance(exc, BaseExceptionGroup):
        return any(_is_spawn_failure(e) for e in exc.exceptions)
    return False


def _result_text(operation: str, result: Any) -> str:
    content = getattr(result, "content", None) or []
    first = content[0] if content else None
    if first is None or getattr(first, "type", None) != "text" or getattr(first, "text", None) is None:
        raise ProtocolParseError(f"Unexpected response type from {operation}")
    return first.text


class ChromaMcpClient:
    """Owns the chroma-mcp subprocess and its MCP session.

    One instance per process, shared by every adapter through the search
    context. All connection-state transitions happen inside this class.

    Example:
        >>> client = ChromaMcpClient("oracle_knowledge", Path("~/.chromadb"))
        >>> await client.connect()
        >>> text = await client.call("chroma_get_collection_count",
        ...                          {"collection_name": "oracle_knowledge"})
        >>> await client.close()
    """

    def __init__(
        self,
        collection_name: str,
        data_dir: Path,
        python_version: str = "3.12",
        command: str = "uvx",
        handshake_timeout: float = 20.0,
        shutdown_timeout: float = 5.0,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.collection_name = collection_name
        self.data_dir = Path(data_dir).expanduser()
        self.python_version = python_version
        self.command = command
        self.handshake_timeout = handshake_timeout
        self.shutdown_timeout = shutdown_timeout
        self._session_factory = session_factory or open_stdio_session

        self._state = ConnectionState.DISCONNECTED
        self.chroma_status = "unknown"
        self._session: Any = None
        self._owner: Optional[asyncio.Task] = None
        self._closing: Optional[asyncio.Event] = None
        self._ready: Optional[asyncio.Future] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ConnectionState:
        return self._state

    def server_parameters(self) -> StdioServerParameters:
        return StdioServerParameters(
            command=self.command,
            args=[
                "--python",
                self.python_version,
                "chroma-mcp",
                "--client-type",
                "persistent",
                "--data-dir",
                str(self.data_dir),
            ],
        )

    async def connect(self) -> None:
        """Spawn chroma-mcp and complete the MCP handshake.

        No-op when already connected. If the caller is cancelled while the
        handshake is in flight, the half-open subprocess is torn down before
        the cancellation propagates.

        Raises:
            VectorStoreUnavailableError: Launcher cannot be executed (terminal)
            VectorStoreConnectionError: Spawn or handshake failed
        """
        async with self._lock:
            if self._state is ConnectionState.CONNECTED and self._session is not None:
                return
            if self._state is ConnectionState.UNAVAILABLE:
                raise VectorStoreUnavailableError(
                    f"chroma-mcp launcher '{self.command}' is unavailable"
                )
            if self._owner is not None:
                # session lost on its own; reap the old owner first
                await self._teardown()

            self._state = ConnectionState.CONNECTING
            logger.info("chroma_connecting", collection=self.collection_name, data_dir=str(self.data_dir))

            self._ready = asyncio.get_running_loop().create_future()
            self._closing = asyncio.Event()
            self._owner = asyncio.create_task(self._hold_session(self._ready, self._closing))

            try:
                await asyncio.wait_for(asyncio.shield(self._ready), timeout=self.handshake_timeout)
            except asyncio.CancelledError:
                logger.warning("chroma_connect_cancelled")
                await self._teardown()
                self._state = ConnectionState.DISCONNECTED
                raise
            except Exception as e:
                await self._teardown()
                if _is_spawn_failure(e):
                    self._state = ConnectionState.UNAVAILABLE
                    logger.error("chroma_unavailable", command=self.command, error=str(e))
                    raise VectorStoreUnavailableError(
                        f"Cannot launch chroma-mcp with '{self.command}': {e}"
                    ) from e
                self._state = ConnectionState.DISCONNECTED
                logger.error("chroma_connection_failed", error=str(e) or type(e).__name__)
                raise VectorStoreConnectionError(
                    f"Chroma connection failed: {str(e) or type(e).__name__}"
                ) from e

            self._state = ConnectionState.CONNECTED
            logger.info("chroma_connected", collection=self.collection_name)

    async def _hold_session(self, ready: asyncio.Future, closing: asyncio.Event) -> None:
        """Owner task: keep the session open until asked to close.

        Only the current owner publishes its session or changes state; an
        owner that has been replaced or torn down just exits.
        """
        me = asyncio.current_task()
        published = None
        try:
            async with self._session_factory(self.server_parameters()) as session:
                await session.initialize()
                if self._owner is not me:
                    return
                self._session = published = session
                ready.set_result(None)
                await closing.wait()
        except asyncio.CancelledError:
            if not ready.done():
                ready.cancel()
            raise
        except Exception as e:
            if not ready.done():
                ready.set_exception(e)
            else:
                logger.warning("chroma_session_lost", error=str(e))
        finally:
            if published is not None and self._session is published:
                self._session = None
                if self._state is ConnectionState.CONNECTED:
                    self._state = ConnectionState.DISCONNECTED

    async def _teardown(self) -> None:
        """Leave the session gracefully, then force-terminate if needed.

        An owner still in its handshake has nothing to close gracefully and
        is cancelled straight away.
        """
        owner, self._owner = self._owner, None
        ready, self._ready = self._ready, None
        if self._closing is not None:
            self._closing.set()
        self._session = None
        if owner is None:
            return

        if ready is not None and not ready.done():
            owner.cancel()
        _, pending = await asyncio.wait({owner}, timeout=self.shutdown_timeout)
        if pending:
            logger.warning("chroma_force_terminate", timeout=self.shutdown_timeout)
            owner.cancel()
            await asyncio.wait({owner})

        if not owner.cancelled() and owner.exception() is not None:
            logger.warning("chroma_close_error", error=str(owner.exception()))

    async def close(self) -> None:
        """Release the session and subprocess. Idempotent; never raises."""
        async with self._lock:
            if self._owner is None and self._session is None:
                return
            try:
                await self._teardown()
            except Exception as e:
                logger.warning("chroma_close_error", error=str(e))
            finally:
                if self._state is not ConnectionState.UNAVAILABLE:
                    self._state = ConnectionState.DISCONNECTED
            logger.info("chroma_closed")

    async def _drop_connection(self, session: Any, reason: str) -> None:
        """Tear down ``session`` if it is still the live one.

        A failure reported by a session that has already been replaced
        leaves the new session alone.
        """
        async with self._lock:
            if session is not self._session:
                logger.debug("chroma_stale_disconnect_ignored", reason=reason)
                return
            logger.warning("chroma_connection_lost", reason=reason)
            if self._state is not ConnectionState.UNAVAILABLE:
                self._state = ConnectionState.DISCONNECTED
            try:
                await self._teardown()
            except Exception as e:
                logger.warning("chroma_close_error", error=str(e))

    async def _invoke(self, operation: str, arguments: dict[str, Any]) -> str:
        session = self._session
        if session is None or self._state is not ConnectionState.CONNECTED:
            raise VectorStoreConnectionError("Not connected")

        try:
            result = await session.call_tool(operation, arguments=arguments)
        except Exception as e:
            if is_transport_disconnect(e):
                await self._drop_connection(session, str(e) or type(e).__name__)
                raise VectorStoreConnectionError(f"Not connected: {e}") from e
            raise

        if getattr(result, "isError", False):
            detail = _result_text(operation, result) if getattr(result, "content", None) else ""
            raise VectorStoreError(f"{operation} failed: {detail}")
        return _result_text(operation, result)

    async def call(self, operation: str, arguments: dict[str, Any]) -> str:
        """Invoke a chroma-mcp tool and return its text payload.

        A disconnection triggers exactly one reconnect and one retry; a
        second failure propagates unmodified.

        Raises:
            VectorStoreConnectionError: Not reachable, even after one reconnect
            VectorStoreError: The tool reported an error
            ProtocolParseError: The response carried no text payload
        """
        await self.connect()
        return await with_reconnect(
            lambda: self._invoke(operation, arguments),
            is_disconnect=is_disconnect_error,
            reconnect=self.connect,
            max_attempts=2,
        )

    async def health_check(self) -> str:
        """Probe the collection count and record ``chroma_status``.

        Returns:
            "connected" or "unavailable". Never raises.
        """
        try:
            await self.call(
                "chroma_get_collection_count", {"collection_name": self.collection_name}
            )
        except Exception as e:
            logger.warning("chroma_health_check_failed", error=str(e))
            self.chroma_status = "unavailable"
        else:
            self.chroma_status = "connected"
        return self.chroma_status
