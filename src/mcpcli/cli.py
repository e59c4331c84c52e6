# CLI interface for mcp-cli
import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from mcpcli import __version__
from mcpcli.config import ConfigStore, default_claude_desktop_path, load_claude_desktop_config
from mcpcli.errors import (
    ConfigFormatError,
    MCPCliError,
    MissingParameterError,
    PersistenceError,
    UnknownTransportError,
)
from mcpcli.invoker import enumerate_tools, invoke_tool
from mcpcli.models import ServerDefinition, ToolDescriptor, ToolResult
from mcpcli.resolver import build_server_definition, parse_key_values, resolve
from mcpcli.session import DEFAULT_TIMEOUT
from mcpcli.utils import validate_server

logger = logging.getLogger(__name__)

# ABOUTME: Exit codes
# 0 = success, 1 = remote tool reported failure, 2 = config/usage error, 3 = fatal
EXIT_SUCCESS = 0
EXIT_TOOL_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_FATAL = 3

# ABOUTME: Client identity used by ad-hoc exec calls
EXEC_CLIENT_NAME = "mcp-cli-exec"

# ABOUTME: Tool descriptions longer than this are cut in listings
DESCRIPTION_LIMIT = 100

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

CONFIG_ERRORS = (ConfigFormatError, PersistenceError, MissingParameterError, UnknownTransportError)


def _error(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


def _exit_code_for(error: MCPCliError) -> int:
    if isinstance(error, CONFIG_ERRORS):
        return EXIT_CONFIG_ERROR
    return EXIT_FATAL


def _open_store(args: argparse.Namespace) -> ConfigStore:
    return ConfigStore(args.config)


def _truncate(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def print_tools(label: str, tools: list[ToolDescriptor]) -> None:
    """Print a numbered tool listing with shortened descriptions."""
    print(f"Tools for {label}:")
    print()
    if not tools:
        print("No tools available.")
        return

    for index, tool in enumerate(tools, start=1):
        print(f"{index}. {tool.name}")
        if tool.description and tool.description.strip():
            # First line only
            summary = tool.description.strip().splitlines()[0]
            print(f"   └─ {_truncate(summary)}")


def print_result(result: ToolResult) -> int:
    """Print every text block of a tool result.

    Returns:
        EXIT_TOOL_ERROR if the server flagged the call as failed, else EXIT_SUCCESS
    """
    if result.is_error:
        print("✗ Tool execution failed")
    for text in result.text_blocks():
        print(text)
    skipped = len(result.content) - len(result.text_blocks())
    if skipped:
        print(f"({skipped} non-text content block(s) not shown)")
    return EXIT_TOOL_ERROR if result.is_error else EXIT_SUCCESS


def cmd_add(args: argparse.Namespace) -> int:
    """Execute add command.

    ABOUTME: Builds a definition from flags, validates it, then upserts it
    ABOUTME: Environment problems are printed as warnings and never block the save
    """
    try:
        definition = build_server_definition(
            args.name,
            args.transport,
            command=args.server_command,
            args=args.server_args,
            env=parse_key_values(args.env),
            url=args.url,
            headers=parse_key_values(args.header),
            max_retries=args.retries,
        )
        store = _open_store(args)
        replacing = store.exists(args.name)
        store.add(args.name, definition)
    except MCPCliError as e:
        _error(str(e))
        return _exit_code_for(e)

    for issue in validate_server(definition):
        print(f"  Warning: {issue.message}")

    verb = "Replaced" if replacing else "Added"
    print(f"✓ {verb} server: {args.name} ({definition.transport})")
    return EXIT_SUCCESS


def describe_server(server: ServerDefinition) -> str:
    """One-line connection summary for listings."""
    if server.transport == "stdio":
        return " ".join([server.command or "", *server.args]).strip()
    return server.url or ""


def cmd_list(args: argparse.Namespace) -> int:
    """Execute list command.

    ABOUTME: Prints a usage hint when nothing is configured
    """
    try:
        store = _open_store(args)
    except MCPCliError as e:
        _error(str(e))
        return _exit_code_for(e)

    servers = store.servers
    if not servers:
        print("No MCP servers configured.")
        print("Usage:")
        print("  mcp-cli add <name> --transport stdio --command <cmd> [--args <arg>]...")
        print("  mcp-cli add time --command uvx --args mcp-server-time")
        print("  mcp-cli add context7 --transport http --url https://mcp.context7.com/mcp")
        return EXIT_SUCCESS

    print(f"MCP Servers in {store.path}:")
    print()
    for name in sorted(servers):
        server = servers[name]
        print(f"  {name} ({server.transport or 'unknown'})")
        if server.transport == "stdio":
            print(f"    command: {describe_server(server)}")
        elif server.url:
            print(f"    url: {server.url}")
        if server.headers:
            print(f"    headers: {', '.join(sorted(server.headers))}")
        print()

    print(f"Total: {len(servers)} server(s)")
    return EXIT_SUCCESS


def cmd_remove(args: argparse.Namespace) -> int:
    """Execute remove command."""
    try:
        store = _open_store(args)
        removed = store.remove(args.name)
    except MCPCliError as e:
        _error(str(e))
        return _exit_code_for(e)

    if not removed:
        _error(f"Server not found: {args.name}")
        return EXIT_CONFIG_ERROR

    print(f"✓ Removed server: {args.name}")
    return EXIT_SUCCESS


def _lookup(args: argparse.Namespace, name: str) -> ServerDefinition | None:
    store = _open_store(args)
    server = store.get(name)
    if server is None:
        _error(f"Server not found: {name}")
        return None
    return server


def cmd_tools(args: argparse.Namespace) -> int:
    """Execute tools command: connect to a stored server and list its tools."""
    try:
        server = _lookup(args, args.server)
        if server is None:
            return EXIT_CONFIG_ERROR
        tools = asyncio.run(enumerate_tools(server, args.timeout))
    except MCPCliError as e:
        _error(str(e))
        return _exit_code_for(e)

    print_tools(args.server, tools)
    return EXIT_SUCCESS


def cmd_call(args: argparse.Namespace) -> int:
    """Execute call command: invoke one tool on a stored server.

    ABOUTME: An unknown server name fails before any connection is attempted
    """
    try:
        server = _lookup(args, args.server)
        if server is None:
            return EXIT_CONFIG_ERROR
        print(f"Calling {args.tool} on {args.server}...")
        print()
        result = asyncio.run(invoke_tool(server, args.tool, args.arg, args.timeout))
    except MCPCliError as e:
        _error(str(e))
        return _exit_code_for(e)

    return print_result(result)


def cmd_exec(args: argparse.Namespace) -> int:
    """Execute exec command: connect ad hoc, without a stored definition.

    ABOUTME: --list enumerates tools, otherwise a tool name is required
    """
    if not args.list and not args.tool:
        _error("exec requires a tool name unless --list is given")
        return EXIT_CONFIG_ERROR

    try:
        descriptor = resolve(
            args.transport,
            {
                "command": args.server_command,
                "args": args.server_args or [],
                "env": parse_key_values(args.env),
                "url": args.url,
                "headers": parse_key_values(args.header),
                "max_retries": args.retries,
            },
        )
        if args.list:
            tools = asyncio.run(enumerate_tools(descriptor, args.timeout))
            print_tools(f"{args.transport} server", tools)
            return EXIT_SUCCESS

        print(f"Executing {args.tool} on {args.transport} server...")
        print()
        result = asyncio.run(
            invoke_tool(descriptor, args.tool, args.arg, args.timeout, client_name=EXEC_CLIENT_NAME)
        )
    except MCPCliError as e:
        _error(str(e))
        return _exit_code_for(e)

    return print_result(result)


def cmd_import(args: argparse.Namespace) -> int:
    """Execute import command.

    ABOUTME: Copies every mcpServers entry of a desktop-assistant file into the store
    ABOUTME: Entries whose transport cannot be inferred are skipped and reported
    """
    source = Path(args.path).expanduser() if args.path else default_claude_desktop_path()
    try:
        foreign = load_claude_desktop_config(source)
        store = _open_store(args)
    except MCPCliError as e:
        _error(str(e))
        return _exit_code_for(e)

    print(f"Importing servers from {source}")
    imported = 0
    skipped = 0
    for name in sorted(foreign.servers):
        definition = foreign.servers[name]
        try:
            store.add(name, definition)
        except (MissingParameterError, UnknownTransportError) as e:
            print(f"  ⚠ Skipped {name}: {e}")
            skipped += 1
            continue
        except PersistenceError as e:
            _error(str(e))
            return EXIT_CONFIG_ERROR
        print(f"  ✓ {name} ({definition.transport})")
        imported += 1

    print()
    print(f"Import complete: {imported} imported, {skipped} skipped")
    return EXIT_SUCCESS


def _add_connection_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--command",
        dest="server_command",
        help="Command to run (stdio transport)"
    )
    parser.add_argument(
        "--args",
        dest="server_args",
        action="append",
        default=[],
        metavar="ARG",
        help="Argument for the command, repeatable (stdio transport)"
    )
    parser.add_argument(
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Environment variable for the command, repeatable (stdio transport)"
    )
    parser.add_argument(
        "--url",
        help="Endpoint URL (sse/http transport)"
    )
    parser.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="HTTP header, repeatable (sse/http transport)"
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=3,
        help="Max connection retries (http transport, default: 3)"
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="mcp-cli",
        description="Command-line client for Model Context Protocol servers"
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"mcp-cli v{__version__}"
    )
    parser.add_argument(
        "--config",
        help="Path to config file (default: $MCP_CLI_CONFIG or ~/.mcp-cli/config.json)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Deadline in seconds for each connect/list/call step (default: {DEFAULT_TIMEOUT:g})"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    # add command
    add_parser = subparsers.add_parser(
        "add",
        help="Add or replace a server configuration"
    )
    add_parser.add_argument(
        "name",
        help="Name of the server"
    )
    add_parser.add_argument(
        "--transport", "-t",
        default="stdio",
        help="Transport type: stdio, sse or http (default: stdio)"
    )
    _add_connection_flags(add_parser)

    # list command
    subparsers.add_parser(
        "list",
        help="List all configured servers"
    )

    # remove command
    remove_parser = subparsers.add_parser(
        "remove",
        help="Remove a server configuration"
    )
    remove_parser.add_argument(
        "name",
        help="Name of the server to remove"
    )

    # tools command
    tools_parser = subparsers.add_parser(
        "tools",
        help="List the tools a configured server provides"
    )
    tools_parser.add_argument(
        "server",
        help="Name of a configured server"
    )

    # call command
    call_parser = subparsers.add_parser(
        "call",
        help="Call a tool on a configured server"
    )
    call_parser.add_argument(
        "server",
        help="Name of a configured server"
    )
    call_parser.add_argument(
        "tool",
        help="Name of the tool"
    )
    call_parser.add_argument(
        "--arg", "-a",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Tool argument, repeatable"
    )

    # exec command
    exec_parser = subparsers.add_parser(
        "exec",
        help="Call a tool without a stored configuration"
    )
    exec_parser.add_argument(
        "transport",
        help="Transport type: stdio, sse or http"
    )
    exec_parser.add_argument(
        "tool",
        nargs="?",
        help="Name of the tool (omit with --list)"
    )
    _add_connection_flags(exec_parser)
    exec_parser.add_argument(
        "--arg", "-a",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Tool argument, repeatable"
    )
    exec_parser.add_argument(
        "--list",
        action="store_true",
        help="List available tools instead of calling one"
    )

    # import command
    import_parser = subparsers.add_parser(
        "import",
        help="Import servers from a Claude Desktop config file"
    )
    import_parser.add_argument(
        "path",
        nargs="?",
        help="Path to claude_desktop_config.json (default: platform location)"
    )

    return parser


COMMANDS = {
    "add": cmd_add,
    "list": cmd_list,
    "remove": cmd_remove,
    "tools": cmd_tools,
    "call": cmd_call,
    "exec": cmd_exec,
    "import": cmd_import,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point.

    ABOUTME: Parses args and dispatches to appropriate command
    ABOUTME: Returns exit code for sys.exit()
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )

    command = COMMANDS.get(args.subcommand)
    if command is None:
        # No command specified, show help
        parser.print_help()
        return EXIT_SUCCESS

    try:
        return command(args)
    except KeyboardInterrupt:
        _error("Interrupted")
        return EXIT_FATAL
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"Fatal error: {e}", file=sys.stderr)
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
