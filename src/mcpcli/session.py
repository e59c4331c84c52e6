# Session layer for mcp-cli
# ABOUTME: One Session owns at most one live connection over stdio, sse or http
# ABOUTME: Wire protocol is delegated to the mcp SDK; this module manages lifecycles
import logging
from collections.abc import Awaitable, Callable, Mapping
from contextlib import AbstractAsyncContextManager, AsyncExitStack
from enum import Enum
from functools import partial
from typing import Any, TypeVar

import anyio
import httpx
from mcp import ClientSession, McpError, StdioServerParameters, types
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamable_http_client

from mcpcli import __version__
from mcpcli.errors import (
    ConnectError,
    NotConnectedError,
    OperationTimeoutError,
    ProtocolError,
)
from mcpcli.models import (
    ConnectionDescriptor,
    ContentBlock,
    EventStreamDescriptor,
    PipeDescriptor,
    StreamingHTTPDescriptor,
    ToolDescriptor,
    ToolResult,
)
from mcpcli.utils.env import child_environment

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ABOUTME: Default per-operation deadline in seconds
DEFAULT_TIMEOUT = 30.0

# ABOUTME: Client identity sent in the initialize handshake
CLIENT_NAME = "mcp-cli"


class SessionState(str, Enum):
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    CLOSED = "closed"


class HeaderInjectingTransport(httpx.AsyncBaseTransport):
    """httpx transport that stamps a fixed header set on every request.

    ABOUTME: Wraps another transport, so reconnects and session POSTs are covered too
    ABOUTME: Injected headers replace any same-named header already on the request
    """

    def __init__(
        self,
        headers: Mapping[str, str] | None = None,
        wrapped: httpx.AsyncBaseTransport | None = None,
        retries: int = 0,
    ) -> None:
        self.headers = dict(headers or {})
        self.wrapped = wrapped or httpx.AsyncHTTPTransport(retries=retries)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        for key, value in self.headers.items():
            request.headers[key] = value
        return await self.wrapped.handle_async_request(request)

    async def aclose(self) -> None:
        await self.wrapped.aclose()


def create_http_client(
    headers: dict[str, str] | None = None,
    timeout: httpx.Timeout | None = None,
    auth: httpx.Auth | None = None,
    *,
    inject_headers: Mapping[str, str] | None = None,
    max_retries: int = 0,
) -> httpx.AsyncClient:
    """Build the httpx client used by the network transports.

    ABOUTME: First three parameters follow the mcp SDK's client factory protocol
    ABOUTME: Retries cover failed connection attempts, using httpx's own backoff

    Args:
        headers: Default headers supplied by the SDK
        timeout: Timeout supplied by the SDK (defaults to DEFAULT_TIMEOUT)
        auth: Optional httpx auth handler
        inject_headers: Headers forced onto every outbound request
        max_retries: Connection retry count, 0 disables retries

    Returns:
        Unopened httpx.AsyncClient; the caller owns it
    """
    transport = HeaderInjectingTransport(inject_headers, retries=max(0, max_retries))
    return httpx.AsyncClient(
        headers=headers,
        timeout=timeout if timeout is not None else httpx.Timeout(DEFAULT_TIMEOUT),
        auth=auth,
        transport=transport,
        follow_redirects=True,
    )


def _leaf_exception(exc: BaseException) -> BaseException:
    # Task groups wrap failures; report the first real one
    while isinstance(exc, BaseExceptionGroup) and exc.exceptions:
        exc = exc.exceptions[0]
    return exc


def _is_timeout(exc: BaseException) -> bool:
    return isinstance(exc, (TimeoutError, httpx.TimeoutException))


def _to_content_block(block: Any) -> ContentBlock:
    raw = block.model_dump(mode="json", by_alias=True, exclude_none=True)
    return ContentBlock(
        type=str(raw.get("type", "")),
        text=raw.get("text") if raw.get("type") == "text" else None,
        raw=raw,
    )


class Session:
    """Uniform client contract over the three transports.

    ABOUTME: States: unconnected -> connected -> closed, reset() re-arms a closed session
    ABOUTME: Every awaited request is bounded by its own deadline
    ABOUTME: close() is idempotent and tears down the process or HTTP client

    Usage:
        session = Session()
        await session.connect(descriptor, deadline=30)
        try:
            tools = await session.list_tools()
        finally:
            await session.close()
    """

    def __init__(self, client_name: str = CLIENT_NAME, client_version: str = __version__) -> None:
        self.client_info = types.Implementation(name=client_name, version=client_version)
        self._state = SessionState.UNCONNECTED
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None
        self._label = ""
        self.server_info: types.Implementation | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def connect(self, descriptor: ConnectionDescriptor, deadline: float = DEFAULT_TIMEOUT) -> None:
        """Connect using whichever transport the descriptor describes.

        Raises:
            ConnectError: If the descriptor type is unknown or connecting fails
            OperationTimeoutError: If the handshake exceeds the deadline
        """
        if isinstance(descriptor, PipeDescriptor):
            await self.connect_pipe(descriptor, deadline)
        elif isinstance(descriptor, EventStreamDescriptor):
            await self.connect_event_stream(descriptor, deadline)
        elif isinstance(descriptor, StreamingHTTPDescriptor):
            await self.connect_streaming_http(descriptor, deadline)
        else:
            raise ConnectError(f"Unsupported connection descriptor: {type(descriptor).__name__}")

    async def connect_pipe(self, descriptor: PipeDescriptor, deadline: float = DEFAULT_TIMEOUT) -> None:
        """Spawn the server as a child process and talk over its stdin/stdout.

        ABOUTME: Child gets a private copy of os.environ with descriptor.env applied
        ABOUTME: The child's stderr is passed through to ours

        Raises:
            ConnectError: If the process cannot be spawned or the handshake fails
            OperationTimeoutError: If the handshake exceeds the deadline
        """
        self._ensure_unconnected()
        params = StdioServerParameters(
            command=descriptor.command,
            args=list(descriptor.args),
            env=child_environment(descriptor.env),
        )
        logger.debug("Spawning stdio server: %s %s", descriptor.command, " ".join(descriptor.args))
        await self._open(stdio_client(params), deadline, f"stdio:{descriptor.command}")

    async def connect_event_stream(
        self, descriptor: EventStreamDescriptor, deadline: float = DEFAULT_TIMEOUT
    ) -> None:
        """Open a server-sent events connection.

        ABOUTME: The SSE read timeout equals the deadline, which bounds the endpoint handshake

        Raises:
            ConnectError: If the endpoint is empty or connecting fails
            OperationTimeoutError: If the handshake exceeds the deadline
        """
        self._ensure_unconnected()
        if not descriptor.endpoint:
            raise ConnectError("sse transport requires an endpoint url")

        factory = partial(create_http_client, inject_headers=descriptor.headers)
        logger.debug("Connecting to SSE endpoint %s", descriptor.endpoint)
        transport = sse_client(
            descriptor.endpoint,
            timeout=deadline,
            sse_read_timeout=deadline,
            httpx_client_factory=factory,
        )
        await self._open(transport, deadline, f"sse:{descriptor.endpoint}")

    async def connect_streaming_http(
        self, descriptor: StreamingHTTPDescriptor, deadline: float = DEFAULT_TIMEOUT
    ) -> None:
        """Open a streamable HTTP connection.

        Raises:
            ConnectError: If the endpoint is empty or connecting fails
            OperationTimeoutError: If the handshake exceeds the deadline
        """
        self._ensure_unconnected()
        if not descriptor.endpoint:
            raise ConnectError("http transport requires an endpoint url")

        client = create_http_client(
            timeout=httpx.Timeout(deadline),
            inject_headers=descriptor.headers,
            max_retries=descriptor.max_retries,
        )
        logger.debug(
            "Connecting to streamable HTTP endpoint %s (retries=%d)",
            descriptor.endpoint,
            descriptor.max_retries,
        )
        await self._open(
            streamable_http_client(descriptor.endpoint, http_client=client),
            deadline,
            f"http:{descriptor.endpoint}",
            client=client,
        )

    async def list_tools(self, deadline: float = DEFAULT_TIMEOUT) -> list[ToolDescriptor]:
        """List every tool the server advertises, following pagination.

        Raises:
            NotConnectedError: If no connection is active
            OperationTimeoutError: If listing exceeds the deadline
            ProtocolError: If the server rejects the request
        """
        session = self._require_session("list tools")
        tools: list[ToolDescriptor] = []
        cursor: str | None = None

        async def fetch_all() -> None:
            nonlocal cursor
            while True:
                if cursor:
                    page = await session.list_tools(params=types.PaginatedRequestParams(cursor=cursor))
                else:
                    page = await session.list_tools()
                tools.extend(
                    ToolDescriptor(
                        name=tool.name,
                        description=tool.description,
                        input_schema=dict(tool.inputSchema or {}),
                    )
                    for tool in page.tools
                )
                cursor = page.nextCursor
                if not cursor:
                    return

        await self._request("list tools", fetch_all, deadline)
        logger.debug("Server %s advertised %d tool(s)", self._label, len(tools))
        return tools

    async def call_tool(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
        deadline: float = DEFAULT_TIMEOUT,
    ) -> ToolResult:
        """Invoke a tool and return its result.

        ABOUTME: A server-side failure is reported in ToolResult.is_error, not raised

        Raises:
            NotConnectedError: If no connection is active
            OperationTimeoutError: If the call exceeds the deadline
            ProtocolError: If the server rejects the request
        """
        session = self._require_session(f"call tool '{name}'")

        async def call() -> types.CallToolResult:
            return await session.call_tool(name, arguments=dict(arguments or {}))

        result = await self._request(f"call tool '{name}'", call, deadline)
        return ToolResult(
            tool_name=name,
            is_error=bool(result.isError),
            content=[_to_content_block(block) for block in result.content],
        )

    async def close(self) -> None:
        """Release the connection; a no-op unless connected."""
        if self._state is not SessionState.CONNECTED:
            return

        failure = await self._teardown()
        if failure is not None:
            logger.warning("Error while closing %s: %s", self._label, failure)
        else:
            logger.debug("Closed %s", self._label)

    def reset(self) -> None:
        """Return a closed session to the unconnected state so it can connect again."""
        if self._state is SessionState.CONNECTED:
            raise ConnectError("Cannot reset a connected session; close it first")
        self._state = SessionState.UNCONNECTED
        self.server_info = None
        self._label = ""

    def _ensure_unconnected(self) -> None:
        if self._state is not SessionState.UNCONNECTED:
            raise ConnectError(f"Session is {self._state.value}; use a new session to connect again")

    def _require_session(self, operation: str) -> ClientSession:
        if self._state is not SessionState.CONNECTED or self._session is None:
            raise NotConnectedError(operation)
        return self._session

    async def _teardown(self) -> BaseException | None:
        """Exit the transport contexts; return the failure instead of raising it."""
        stack, self._stack = self._stack, None
        self._session = None
        self._state = SessionState.CLOSED
        if stack is None:
            return None
        try:
            await stack.aclose()
        except Exception as e:
            return _leaf_exception(e)
        return None

    async def _request(self, operation: str, func: Callable[[], Awaitable[T]], deadline: float) -> T:
        try:
            with anyio.fail_after(deadline):
                return await func()
        except TimeoutError as e:
            raise OperationTimeoutError(operation, deadline, e) from e
        except McpError as e:
            raise ProtocolError(f"Failed to {operation}: {e.error.message}", e) from e
        except (anyio.ClosedResourceError, anyio.BrokenResourceError) as e:
            raise ProtocolError(f"Failed to {operation}: connection closed", e) from e
        except anyio.get_cancelled_exc_class():
            # A crashed transport task cancels its host; unwinding reveals the cause
            failure = await self._teardown()
            if failure is None:
                raise
            logger.debug("Transport for %s failed during %s", self._label, operation, exc_info=failure)
            raise ProtocolError(f"Failed to {operation}: {failure}", failure) from failure

    async def _open(
        self,
        transport: AbstractAsyncContextManager[tuple[Any, ...]],
        deadline: float,
        label: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        init_result: types.InitializeResult | None = None
        try:
            async with AsyncExitStack() as attempt:
                if client is not None:
                    await attempt.enter_async_context(client)
                streams = await attempt.enter_async_context(transport)
                read_stream, write_stream = streams[0], streams[1]
                session = await attempt.enter_async_context(
                    ClientSession(read_stream, write_stream, client_info=self.client_info)
                )
                with anyio.fail_after(deadline):
                    init_result = await session.initialize()
                # Keep the contexts open past this block
                stack = attempt.pop_all()
        except Exception as e:
            cause = _leaf_exception(e)
            if _is_timeout(cause):
                raise OperationTimeoutError(f"connect to {label}", deadline, cause) from e
            if isinstance(cause, McpError):
                raise ConnectError(f"Handshake with {label} failed: {cause.error.message}", cause) from e
            raise ConnectError(f"Failed to connect to {label}: {cause}", cause) from e

        if init_result is None:
            raise ConnectError(f"Failed to connect to {label}: transport closed during handshake")

        self._stack = stack
        self._session = session
        self._label = label
        self._state = SessionState.CONNECTED
        self.server_info = init_result.serverInfo
        logger.info(
            "Connected to %s (%s %s)",
            label,
            init_result.serverInfo.name,
            init_result.serverInfo.version,
        )
