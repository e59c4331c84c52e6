# mcp-cli - Command-line client for Model Context Protocol servers
# ABOUTME: Version information
__version__ = "0.1.0"

# ABOUTME: Export core data models
# ABOUTME: Export config store, resolver and session entry points
from mcpcli.config import ConfigStore, get_config_path, load_config
from mcpcli.errors import (
    ConfigFormatError,
    ConnectError,
    MCPCliError,
    MissingParameterError,
    NotConnectedError,
    OperationTimeoutError,
    PersistenceError,
    ProtocolError,
    RemoteToolError,
    UnknownTransportError,
)
from mcpcli.invoker import enumerate_tools, invoke_tool, open_session
from mcpcli.models import (
    Config,
    ContentBlock,
    EventStreamDescriptor,
    PipeDescriptor,
    ServerDefinition,
    StreamingHTTPDescriptor,
    ToolDescriptor,
    ToolResult,
)
from mcpcli.resolver import build_server_definition, parse_arg, resolve
from mcpcli.session import Session, SessionState

__all__ = [
    "__version__",
    "Config",
    "ConfigStore",
    "ContentBlock",
    "EventStreamDescriptor",
    "PipeDescriptor",
    "ServerDefinition",
    "StreamingHTTPDescriptor",
    "ToolDescriptor",
    "ToolResult",
    "get_config_path",
    "load_config",
    "build_server_definition",
    "parse_arg",
    "resolve",
    "Session",
    "SessionState",
    "open_session",
    "enumerate_tools",
    "invoke_tool",
    "MCPCliError",
    "ConfigFormatError",
    "PersistenceError",
    "MissingParameterError",
    "UnknownTransportError",
    "ConnectError",
    "ProtocolError",
    "NotConnectedError",
    "OperationTimeoutError",
    "RemoteToolError",
]
