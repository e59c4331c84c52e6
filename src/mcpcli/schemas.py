# On-disk schemas understood by mcp-cli
# ABOUTME: Native schema is read and written; the desktop-assistant
# ABOUTME: "mcpServers" schema is only read and normalized on load
import logging
from collections.abc import Callable
from typing import Any

from mcpcli.models import DEFAULT_CONFIG_VERSION, Config, ServerDefinition

logger = logging.getLogger(__name__)

# ABOUTME: Type alias for one raw server entry
ServerData = dict[str, Any]


def server_to_dict(server: ServerDefinition) -> ServerData:
    """Convert ServerDefinition to native config dict.

    ABOUTME: Omits empty and zero fields for cleaner output
    ABOUTME: Uses camelCase "maxRetries" key like the file format
    """
    result: ServerData = {
        "name": server.name,
        "transport": server.transport,
    }

    if server.command:
        result["command"] = server.command
    if server.args:
        result["args"] = list(server.args)
    if server.env:
        result["env"] = dict(server.env)
    if server.url:
        result["url"] = server.url
    if server.headers:
        result["headers"] = dict(server.headers)
    if server.max_retries:
        result["maxRetries"] = server.max_retries

    return result


def dict_to_server(name: str, data: ServerData) -> ServerDefinition:
    """Convert native config dict to ServerDefinition.

    ABOUTME: Handles missing optional fields gracefully
    ABOUTME: The map key wins when the entry's "name" disagrees
    """
    return ServerDefinition(
        name=name,
        transport=str(data.get("transport") or ""),
        command=data.get("command") or None,
        args=[str(arg) for arg in data.get("args") or []],
        env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
        url=data.get("url") or None,
        headers={str(k): str(v) for k, v in (data.get("headers") or {}).items()},
        max_retries=int(data.get("maxRetries") or 0),
    )


def detect_transport_type(url: str) -> str:
    """Infer the network transport from a URL.

    Examples:
        >>> detect_transport_type("https://example.com/sse")
        'sse'
        >>> detect_transport_type("https://example.com/mcp")
        'http'
    """
    if "/sse" in url:
        return "sse"
    return "http"


def foreign_entry_to_server(name: str, data: ServerData) -> ServerDefinition:
    """Normalize one desktop-assistant "mcpServers" entry.

    ABOUTME: command present -> stdio; else url present -> sse or http by URL
    ABOUTME: Neither present -> empty transport, rejected when resolved
    """
    command = data.get("command") or None
    url = data.get("url") or None

    if command:
        transport = "stdio"
    elif url:
        transport = detect_transport_type(url)
    else:
        transport = ""
        logger.warning("Server '%s' has neither command nor url; transport unknown", name)

    return ServerDefinition(
        name=name,
        transport=transport,  # type: ignore[arg-type]
        command=command,
        args=[str(arg) for arg in data.get("args") or []],
        env={str(k): str(v) for k, v in (data.get("env") or {}).items()},
        url=url,
        headers={str(k): str(v) for k, v in (data.get("headers") or {}).items()},
    )


def config_to_dict(config: Config) -> dict[str, Any]:
    """Build the native JSON document for a Config."""
    return {
        "version": config.version,
        "servers": {
            name: server_to_dict(server) for name, server in config.servers.items()
        },
    }


def _is_native(data: dict[str, Any]) -> bool:
    return isinstance(data.get("servers"), dict)


def _parse_native(data: dict[str, Any]) -> Config:
    servers = {
        name: dict_to_server(name, entry if isinstance(entry, dict) else {})
        for name, entry in data["servers"].items()
    }
    return Config(version=str(data.get("version") or DEFAULT_CONFIG_VERSION), servers=servers)


def is_foreign_config(data: dict[str, Any]) -> bool:
    return isinstance(data.get("mcpServers"), dict)


def parse_foreign_config(data: dict[str, Any]) -> Config:
    servers = {
        name: foreign_entry_to_server(name, entry if isinstance(entry, dict) else {})
        for name, entry in data["mcpServers"].items()
    }
    logger.info("Normalized %d server(s) from mcpServers format", len(servers))
    return Config(version=DEFAULT_CONFIG_VERSION, servers=servers)


# ABOUTME: Tried in order, first matching predicate wins
# ABOUTME: Native comes first so a file with both keys is read as native
SCHEMAS: list[tuple[str, Callable[[dict[str, Any]], bool], Callable[[dict[str, Any]], Config]]] = [
    ("native", _is_native, _parse_native),
    ("mcpServers", is_foreign_config, parse_foreign_config),
]


def parse_config_data(data: Any) -> Config | None:
    """Parse a decoded JSON document with the first schema that matches.

    Returns:
        Parsed Config, or None when no schema matches
    """
    if not isinstance(data, dict):
        return None

    for schema_name, matches, parse in SCHEMAS:
        if matches(data):
            logger.debug("Config matched %s schema", schema_name)
            return parse(data)

    return None
