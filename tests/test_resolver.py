# Tests for transport resolution
import warnings

import pytest

from mcpcli.errors import MissingParameterError, UnknownTransportError
from mcpcli.models import (
    EventStreamDescriptor,
    PipeDescriptor,
    ServerDefinition,
    StreamingHTTPDescriptor,
    TRANSPORTS,
)
from mcpcli.resolver import (
    build_server_definition,
    normalize_transport,
    parse_arg,
    parse_key_values,
    resolve,
    resolve_definition,
)


class TestParseArg:
    """Tests for permissive key=value parsing."""

    def test_key_value(self):
        assert parse_arg("key=value") == ("key", "value")

    def test_token_without_equals_is_key_with_empty_value(self):
        assert parse_arg("novalue") == ("novalue", "")

    def test_splits_on_first_equals_only(self):
        assert parse_arg("k=v=w") == ("k", "v=w")

    def test_empty_value(self):
        assert parse_arg("key=") == ("key", "")

    def test_parse_key_values_later_wins(self):
        assert parse_key_values(["a=1", "b", "a=2"]) == {"a": "2", "b": ""}
        assert parse_key_values(None) == {}


class TestNormalizeTransport:
    """Tests for transport token handling."""

    @pytest.mark.parametrize("token", ["stdio", "sse", "http", "HTTP", " sse "])
    def test_known_tokens(self, token):
        assert normalize_transport(token) == token.strip().lower()

    def test_streamable_alias(self):
        assert normalize_transport("streamable-http") == "http"

    def test_accepts_exactly_the_stored_tokens(self):
        assert tuple(normalize_transport(token) for token in TRANSPORTS) == TRANSPORTS
        with pytest.raises(UnknownTransportError):
            normalize_transport("")

    def test_unknown_token_named_in_error(self):
        with pytest.raises(UnknownTransportError) as exc_info:
            normalize_transport("websocket")
        assert exc_info.value.transport == "websocket"
        assert "websocket" in str(exc_info.value)


class TestResolve:
    """Tests for resolve()."""

    def test_stdio_from_definition(self):
        definition = ServerDefinition(
            name="time", transport="stdio", command="uvx", args=["mcp-server-time"], env={"TZ": "UTC"}
        )
        assert resolve_definition(definition) == PipeDescriptor(
            command="uvx", args=["mcp-server-time"], env={"TZ": "UTC"}
        )

    def test_stdio_without_command(self):
        with pytest.raises(MissingParameterError):
            resolve("stdio", {"command": ""})

    @pytest.mark.parametrize("kind", ["sse", "http"])
    def test_network_without_endpoint(self, kind):
        with pytest.raises(MissingParameterError):
            resolve(kind, {"url": None, "headers": {"A": "b"}})

    def test_sse_descriptor(self):
        descriptor = resolve("sse", {"url": "https://x/sse", "headers": {"X-Key": "k"}})
        assert descriptor == EventStreamDescriptor(endpoint="https://x/sse", headers={"X-Key": "k"})

    def test_http_descriptor_keeps_retries(self):
        descriptor = resolve("http", {"url": "https://x/mcp", "max_retries": 3})
        assert descriptor == StreamingHTTPDescriptor(endpoint="https://x/mcp", max_retries=3)

    def test_negative_retries_clamped(self):
        assert resolve("http", {"url": "https://x/mcp", "max_retries": -2}).max_retries == 0

    def test_unknown_transport(self):
        with pytest.raises(UnknownTransportError):
            resolve("carrier-pigeon", {"url": "https://x"})

    def test_indeterminate_foreign_entry_rejected(self):
        definition = ServerDefinition(name="ghost", transport="")
        with pytest.raises(UnknownTransportError):
            resolve_definition(definition)

    def test_env_references_expanded(self, monkeypatch):
        monkeypatch.setenv("API_TOKEN", "s3cret")
        monkeypatch.setenv("MCP_HOST", "example.com")

        descriptor = resolve(
            "http",
            {"url": "https://${MCP_HOST}/mcp", "headers": {"Authorization": "Bearer ${API_TOKEN}"}},
        )

        assert descriptor.endpoint == "https://example.com/mcp"
        assert descriptor.headers == {"Authorization": "Bearer s3cret"}

    def test_unset_reference_left_verbatim(self, monkeypatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            descriptor = resolve("stdio", {"command": "uvx", "args": ["${NOT_SET_ANYWHERE}"]})
        assert descriptor.args == ["${NOT_SET_ANYWHERE}"]


class TestBuildServerDefinition:
    """Tests for building definitions from CLI flags."""

    def test_stdio_drops_network_fields(self):
        definition = build_server_definition(
            "time", "stdio", command="uvx", args=["mcp-server-time"], url="https://ignored", max_retries=3
        )
        assert definition == ServerDefinition(
            name="time", transport="stdio", command="uvx", args=["mcp-server-time"]
        )

    def test_sse_drops_retries(self):
        definition = build_server_definition("events", "sse", url="https://x/sse", max_retries=3)
        assert definition.max_retries == 0
        assert definition.command is None

    def test_http_keeps_retries(self):
        definition = build_server_definition(
            "api", "streamable-http", url="https://x/mcp", headers={"A": "1"}, max_retries=3
        )
        assert definition.transport == "http"
        assert definition.max_retries == 3
        assert definition.headers == {"A": "1"}

    def test_stdio_without_command_rejected_at_creation(self):
        with pytest.raises(MissingParameterError):
            build_server_definition("time", "stdio", args=["mcp-server-time"])

    def test_http_without_url_rejected(self):
        with pytest.raises(MissingParameterError):
            build_server_definition("api", "http")
