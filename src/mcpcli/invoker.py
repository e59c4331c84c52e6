# Invocation facade for mcp-cli
# ABOUTME: Ties a server definition to a short-lived Session for one operation
# ABOUTME: The session is always closed before these helpers return
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from mcpcli.models import ConnectionDescriptor, ServerDefinition, ToolDescriptor, ToolResult
from mcpcli.resolver import parse_key_values, resolve_definition
from mcpcli.session import CLIENT_NAME, DEFAULT_TIMEOUT, Session

logger = logging.getLogger(__name__)


def _descriptor_for(target: ServerDefinition | ConnectionDescriptor) -> ConnectionDescriptor:
    if isinstance(target, ServerDefinition):
        return resolve_definition(target)
    return target


@asynccontextmanager
async def open_session(
    target: ServerDefinition | ConnectionDescriptor,
    timeout: float = DEFAULT_TIMEOUT,
    client_name: str = CLIENT_NAME,
) -> AsyncIterator[Session]:
    """Connect to a server for the duration of a ``with`` block.

    ABOUTME: Resolution errors surface before any process or socket is opened

    Args:
        target: Stored definition or an already-resolved descriptor
        timeout: Deadline for the handshake
        client_name: Client identity sent to the server

    Raises:
        MissingParameterError, UnknownTransportError: If the target cannot be resolved
        ConnectError: If connecting fails
        OperationTimeoutError: If the handshake exceeds the deadline
    """
    descriptor = _descriptor_for(target)
    session = Session(client_name=client_name)
    try:
        await session.connect(descriptor, timeout)
        yield session
    finally:
        await session.close()


async def enumerate_tools(
    target: ServerDefinition | ConnectionDescriptor,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[ToolDescriptor]:
    """Connect, list the server's tools and disconnect."""
    async with open_session(target, timeout) as session:
        return await session.list_tools(timeout)


async def invoke_tool(
    target: ServerDefinition | ConnectionDescriptor,
    tool_name: str,
    flat_args: Iterable[str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    client_name: str = CLIENT_NAME,
) -> ToolResult:
    """Connect, call one tool with ``key=value`` arguments and disconnect.

    ABOUTME: Argument values are always sent as strings
    ABOUTME: A remote failure comes back as ToolResult.is_error, not an exception

    Args:
        target: Stored definition or an already-resolved descriptor
        tool_name: Name of the tool to call
        flat_args: Tokens like ["timezone=UTC"]; a token without "=" maps to ""
        timeout: Deadline for each step (connect, call)
        client_name: Client identity sent to the server

    Returns:
        ToolResult from the server
    """
    arguments = parse_key_values(flat_args)
    logger.debug("Invoking %s with %s", tool_name, arguments)
    async with open_session(target, timeout, client_name) as session:
        return await session.call_tool(tool_name, arguments, timeout)
