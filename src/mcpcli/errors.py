# Error taxonomy for mcp-cli


class MCPCliError(Exception):
    """Base exception for all mcp-cli failures.

    ABOUTME: Carries the underlying exception (if any) in ``cause``
    ABOUTME: CLI commands map subclasses to exit codes
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class ConfigFormatError(MCPCliError):
    """Config file exists but matches neither the native nor the foreign schema."""

    pass


class PersistenceError(MCPCliError):
    """Config file or directory could not be written."""

    pass


class MissingParameterError(MCPCliError):
    """A field required by the selected transport is absent."""

    pass


class UnknownTransportError(MCPCliError):
    """Transport token is not one of stdio, sse or http."""

    def __init__(self, transport: str, cause: BaseException | None = None):
        super().__init__(
            f"Unknown transport type: '{transport}' (valid: stdio, sse, http)", cause
        )
        self.transport = transport


class ConnectError(MCPCliError):
    """Spawning the server, reaching it, or completing the handshake failed."""

    pass


class ProtocolError(ConnectError):
    """The server rejected a request or the connection dropped mid-session."""

    pass


class NotConnectedError(MCPCliError):
    """An operation was attempted on a session that is not connected."""

    def __init__(self, operation: str):
        super().__init__(f"Cannot {operation}: session is not connected")
        self.operation = operation


class OperationTimeoutError(MCPCliError, TimeoutError):
    """The caller-supplied deadline elapsed before the operation completed."""

    def __init__(self, operation: str, deadline: float, cause: BaseException | None = None):
        super().__init__(f"{operation} timed out after {deadline:g} seconds", cause)
        self.operation = operation
        self.deadline = deadline


class RemoteToolError(MCPCliError):
    """The remote server flagged a tool invocation as failed.

    ABOUTME: Never raised by the session itself; the flag travels in ToolResult
    ABOUTME: ToolResult.raise_for_error() converts it on request
    """

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Tool '{tool_name}' failed: {message}" if message else f"Tool '{tool_name}' failed")
        self.tool_name = tool_name
