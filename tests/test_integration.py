# ABOUTME: End-to-end tests against a real stdio server and unreachable endpoints
# ABOUTME: The stdio server is tests/servers/echo_server.py run with this interpreter
import asyncio
import sys
from pathlib import Path

import pytest
from httpcore._backends.auto import AutoBackend

from mcpcli.errors import ConnectError, OperationTimeoutError
from mcpcli.invoker import enumerate_tools, invoke_tool, open_session
from mcpcli.models import EventStreamDescriptor, PipeDescriptor, ServerDefinition, StreamingHTTPDescriptor

ECHO_SERVER = str(Path(__file__).parent / "servers" / "echo_server.py")

# Nothing listens on the discard port
UNREACHABLE = "http://127.0.0.1:9"


def echo_definition(**env: str) -> ServerDefinition:
    return ServerDefinition(
        name="echo",
        transport="stdio",
        command=sys.executable,
        args=[ECHO_SERVER],
        env=dict(env),
    )


class TestStdioServer:
    """Tests against a real child process."""

    def test_enumerate_tools(self):
        tools = asyncio.run(enumerate_tools(echo_definition(), timeout=30))
        names = {tool.name for tool in tools}
        assert {"echo", "read_env", "fail"} <= names
        echo = next(tool for tool in tools if tool.name == "echo")
        assert echo.description == "Return the text unchanged."
        assert "text" in echo.input_schema["properties"]

    def test_invoke_echo(self):
        result = asyncio.run(invoke_tool(echo_definition(), "echo", ["text=hello world"], timeout=30))
        assert result.is_error is False
        assert result.text_blocks() == ["hello world"]

    def test_env_override_reaches_child(self):
        result = asyncio.run(
            invoke_tool(echo_definition(MCP_CLI_PROBE="override"), "read_env", ["name=MCP_CLI_PROBE"], timeout=30)
        )
        assert result.text_blocks() == ["override"]

    def test_parent_environment_inherited(self, monkeypatch):
        monkeypatch.setenv("MCP_CLI_PARENT_PROBE", "from-parent")
        result = asyncio.run(
            invoke_tool(echo_definition(), "read_env", ["name=MCP_CLI_PARENT_PROBE"], timeout=30)
        )
        assert result.text_blocks() == ["from-parent"]

    def test_remote_failure_is_flagged(self):
        result = asyncio.run(invoke_tool(echo_definition(), "fail", ["message=boom"], timeout=30))
        assert result.is_error is True
        assert any("boom" in text for text in result.text_blocks())

    def test_session_reused_for_several_calls(self):
        async def scenario():
            async with open_session(echo_definition(), timeout=30) as session:
                first = await session.call_tool("echo", {"text": "one"})
                second = await session.call_tool("echo", {"text": "two"})
                return first.text_blocks() + second.text_blocks()

        assert asyncio.run(scenario()) == ["one", "two"]


def test_missing_executable_is_connect_error():
    descriptor = PipeDescriptor(command="definitely-not-an-mcp-server-xyz")
    with pytest.raises(ConnectError):
        asyncio.run(enumerate_tools(descriptor, timeout=10))


def test_child_exiting_early_fails_handshake():
    descriptor = PipeDescriptor(command=sys.executable, args=["-c", "pass"])
    with pytest.raises((ConnectError, OperationTimeoutError)):
        asyncio.run(enumerate_tools(descriptor, timeout=10))


@pytest.mark.parametrize("max_retries", [0, 3])
def test_unreachable_streaming_http_fails_after_all_retries(monkeypatch, max_retries):
    for proxy_var in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(proxy_var, raising=False)
    attempts = []
    original_connect = AutoBackend.connect_tcp

    async def counting_connect(self, *args, **kwargs):
        attempts.append(args)
        return await original_connect(self, *args, **kwargs)

    monkeypatch.setattr(AutoBackend, "connect_tcp", counting_connect)
    descriptor = StreamingHTTPDescriptor(endpoint=f"{UNREACHABLE}/mcp", max_retries=max_retries)

    with pytest.raises(ConnectError):
        asyncio.run(enumerate_tools(descriptor, timeout=15))

    assert len(attempts) == max_retries + 1


def test_unreachable_event_stream():
    descriptor = EventStreamDescriptor(endpoint=f"{UNREACHABLE}/sse", headers={"X-Api-Key": "k"})
    with pytest.raises((ConnectError, OperationTimeoutError)):
        asyncio.run(enumerate_tools(descriptor, timeout=10))
