# Transport resolution for mcp-cli
# ABOUTME: Turns a ServerDefinition or ad-hoc CLI flags into a connection descriptor
# ABOUTME: No I/O beyond reading os.environ for ${VAR} expansion
from collections.abc import Iterable, Mapping
from typing import Any

from mcpcli.errors import MissingParameterError, UnknownTransportError
from mcpcli.models import (
    ConnectionDescriptor,
    EventStreamDescriptor,
    PipeDescriptor,
    ServerDefinition,
    StreamingHTTPDescriptor,
    TRANSPORTS,
)
from mcpcli.utils.env import expand_env_vars

# ABOUTME: Alternate spellings accepted on input, mapped to canonical tokens
TRANSPORT_ALIASES = {
    "streamable-http": "http",
    "streamable_http": "http",
}


def parse_arg(token: str) -> tuple[str, str]:
    """Split a ``key=value`` token on the first ``=``.

    ABOUTME: A token without "=" is a key with an empty value, not an error

    Examples:
        >>> parse_arg("key=value")
        ('key', 'value')
        >>> parse_arg("novalue")
        ('novalue', '')
        >>> parse_arg("k=v=w")
        ('k', 'v=w')
    """
    key, _, value = token.partition("=")
    return key, value


def parse_key_values(tokens: Iterable[str] | None) -> dict[str, str]:
    """Parse repeated ``key=value`` tokens into a dict (later keys win)."""
    result: dict[str, str] = {}
    for token in tokens or []:
        key, value = parse_arg(token)
        result[key] = value
    return result


def normalize_transport(transport: str) -> str:
    """Return the canonical transport token, raising for unknown ones."""
    key = (transport or "").strip().lower()
    key = TRANSPORT_ALIASES.get(key, key)
    if key not in TRANSPORTS:
        raise UnknownTransportError(transport)
    return key


def validate_definition(definition: ServerDefinition) -> None:
    """Reject definitions that could never be connected.

    Raises:
        UnknownTransportError: If transport is not stdio, sse or http
        MissingParameterError: If stdio lacks command or sse/http lacks url
    """
    transport = normalize_transport(definition.transport)
    if transport == "stdio" and not definition.command:
        raise MissingParameterError(
            f"Server '{definition.name}': stdio transport requires a command"
        )
    if transport in ("sse", "http") and not definition.url:
        raise MissingParameterError(
            f"Server '{definition.name}': {transport} transport requires a url"
        )


def build_server_definition(
    name: str,
    transport: str,
    *,
    command: str | None = None,
    args: Iterable[str] | None = None,
    env: Mapping[str, str] | None = None,
    url: str | None = None,
    headers: Mapping[str, str] | None = None,
    max_retries: int = 0,
) -> ServerDefinition:
    """Create a validated ServerDefinition from flag values.

    ABOUTME: Populates only the fields relevant to the transport
    ABOUTME: Irrelevant flags (e.g. --url for stdio) are dropped

    Raises:
        UnknownTransportError: If transport is unknown
        MissingParameterError: If a required field is absent
    """
    kind = normalize_transport(transport)

    if kind == "stdio":
        definition = ServerDefinition(
            name=name,
            transport="stdio",
            command=command or None,
            args=list(args or []),
            env=dict(env or {}),
        )
    else:
        definition = ServerDefinition(
            name=name,
            transport=kind,  # type: ignore[arg-type]
            url=url or None,
            headers=dict(headers or {}),
            max_retries=max(0, int(max_retries)) if kind == "http" else 0,
        )

    validate_definition(definition)
    return definition


def _field(source: ServerDefinition | Mapping[str, Any], name: str, default: Any = None) -> Any:
    if isinstance(source, ServerDefinition):
        return getattr(source, name, default)
    return source.get(name, default)


def resolve(
    transport_kind: str,
    source: ServerDefinition | Mapping[str, Any],
) -> ConnectionDescriptor:
    """Build a connection descriptor for one connection attempt.

    ABOUTME: Accepts a stored ServerDefinition or a mapping of ad-hoc flags
    ABOUTME: Expands ${VAR} references in every string value

    Args:
        transport_kind: "stdio", "sse" or "http" (or an accepted alias)
        source: ServerDefinition, or mapping with command/args/env/url/headers/max_retries

    Returns:
        PipeDescriptor, EventStreamDescriptor or StreamingHTTPDescriptor

    Raises:
        UnknownTransportError: If transport_kind is not recognized
        MissingParameterError: If command (stdio) or endpoint (sse/http) is empty
    """
    kind = normalize_transport(transport_kind)

    if kind == "stdio":
        command = _field(source, "command")
        if not command:
            raise MissingParameterError("stdio transport requires a command")
        return PipeDescriptor(
            command=expand_env_vars(command),
            args=[expand_env_vars(str(arg)) for arg in _field(source, "args") or []],
            env={
                key: expand_env_vars(str(value))
                for key, value in (_field(source, "env") or {}).items()
            },
        )

    endpoint = _field(source, "url")
    if not endpoint:
        raise MissingParameterError(f"{kind} transport requires an endpoint url")

    endpoint = expand_env_vars(endpoint)
    headers = {
        key: expand_env_vars(str(value))
        for key, value in (_field(source, "headers") or {}).items()
    }

    if kind == "sse":
        return EventStreamDescriptor(endpoint=endpoint, headers=headers)

    return StreamingHTTPDescriptor(
        endpoint=endpoint,
        headers=headers,
        max_retries=max(0, int(_field(source, "max_retries") or 0)),
    )


def resolve_definition(definition: ServerDefinition) -> ConnectionDescriptor:
    """Resolve a stored definition using its own transport."""
    return resolve(definition.transport, definition)
