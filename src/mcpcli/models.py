# Core data models for mcp-cli
from dataclasses import dataclass, field
from typing import Any, Literal

from mcpcli.errors import RemoteToolError

# ABOUTME: Transport tokens as stored in config.json
# ABOUTME: "" marks a foreign entry whose transport could not be inferred
TransportName = Literal["stdio", "sse", "http", ""]

TRANSPORTS: tuple[str, ...] = ("stdio", "sse", "http")

DEFAULT_CONFIG_VERSION = "1.0.0"


@dataclass(frozen=True)
class ServerDefinition:
    """Immutable description of how to reach one MCP server.

    ABOUTME: Uses frozen dataclass so updates are always full replacement
    ABOUTME: stdio uses command/args/env, sse and http use url/headers
    ABOUTME: max_retries only applies to the http transport
    """
    name: str
    transport: TransportName
    command: str | None = None
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    url: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    max_retries: int = 0


@dataclass
class Config:
    """mcp-cli configuration loaded from config.json.

    ABOUTME: Contains version and dict of named server definitions
    ABOUTME: Servers dict uses name as key so names stay unique
    """
    version: str
    servers: dict[str, ServerDefinition]


@dataclass(frozen=True)
class PipeDescriptor:
    """Connection parameters for a server spawned as a child process."""
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class EventStreamDescriptor:
    """Connection parameters for a server-sent events endpoint."""
    endpoint: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StreamingHTTPDescriptor:
    """Connection parameters for a streamable HTTP endpoint."""
    endpoint: str
    headers: dict[str, str] = field(default_factory=dict)
    max_retries: int = 0


ConnectionDescriptor = PipeDescriptor | EventStreamDescriptor | StreamingHTTPDescriptor


@dataclass(frozen=True)
class ToolDescriptor:
    """A tool advertised by a server."""
    name: str
    description: str | None = None
    input_schema: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ContentBlock:
    """One block of tool output.

    ABOUTME: Only text blocks carry ``text``; other types keep their payload in ``raw``
    """
    type: str
    text: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_text(self) -> bool:
        return self.type == "text" and self.text is not None


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a tool invocation.

    ABOUTME: is_error is set by the remote server, not by the transport
    ABOUTME: content keeps every block in server order
    """
    tool_name: str
    is_error: bool = False
    content: list[ContentBlock] = field(default_factory=list)

    def text_blocks(self) -> list[str]:
        """Return the text of every text block, in order."""
        return [block.text for block in self.content if block.is_text and block.text is not None]

    def raise_for_error(self) -> None:
        """Raise RemoteToolError if the server flagged the call as failed."""
        if self.is_error:
            raise RemoteToolError(self.tool_name, "\n".join(self.text_blocks()))
