# Tests for the invocation facade
import asyncio

import pytest

import mcpcli.invoker as invoker_module
from mcpcli.errors import MissingParameterError, NotConnectedError, OperationTimeoutError
from mcpcli.invoker import enumerate_tools, invoke_tool, open_session
from mcpcli.models import PipeDescriptor, ServerDefinition, ToolDescriptor, ToolResult


class FakeSession:
    """Records calls; close() must always be reached."""

    instances: list["FakeSession"] = []

    def __init__(self, client_name="mcp-cli"):
        self.client_name = client_name
        self.descriptor = None
        self.closed = False
        self.fail_with: Exception | None = None
        self.calls: list[tuple] = []
        FakeSession.instances.append(self)

    async def connect(self, descriptor, deadline):
        self.descriptor = descriptor
        self.deadline = deadline

    async def list_tools(self, deadline):
        if self.fail_with:
            raise self.fail_with
        return [ToolDescriptor(name="get_time")]

    async def call_tool(self, name, arguments, deadline):
        self.calls.append((name, arguments))
        if self.fail_with:
            raise self.fail_with
        return ToolResult(tool_name=name)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_session(monkeypatch):
    FakeSession.instances = []
    monkeypatch.setattr(invoker_module, "Session", FakeSession)
    return FakeSession


TIME_SERVER = ServerDefinition(name="time", transport="stdio", command="uvx", args=["mcp-server-time"])


def test_enumerate_resolves_and_closes(fake_session):
    tools = asyncio.run(enumerate_tools(TIME_SERVER, timeout=12))

    session = fake_session.instances[0]
    assert [tool.name for tool in tools] == ["get_time"]
    assert session.descriptor == PipeDescriptor(command="uvx", args=["mcp-server-time"])
    assert session.deadline == 12
    assert session.closed


def test_invoke_parses_flat_args(fake_session):
    result = asyncio.run(invoke_tool(TIME_SERVER, "get_time", ["timezone=UTC", "verbose", "expr=a=b"]))

    session = fake_session.instances[0]
    assert result.tool_name == "get_time"
    assert session.calls == [("get_time", {"timezone": "UTC", "verbose": "", "expr": "a=b"})]
    assert session.closed


def test_session_closed_when_operation_fails(fake_session):
    async def scenario():
        async with open_session(TIME_SERVER) as session:
            session.fail_with = OperationTimeoutError("list tools", 1)
            await session.list_tools(1)

    with pytest.raises(OperationTimeoutError):
        asyncio.run(scenario())

    assert fake_session.instances[0].closed


def test_invoke_closes_on_failure(fake_session, monkeypatch):
    original_call = FakeSession.call_tool

    async def failing_call(self, name, arguments, deadline):
        self.fail_with = NotConnectedError("call tool")
        return await original_call(self, name, arguments, deadline)

    monkeypatch.setattr(FakeSession, "call_tool", failing_call)

    with pytest.raises(NotConnectedError):
        asyncio.run(invoke_tool(TIME_SERVER, "get_time"))

    assert fake_session.instances[0].closed


def test_resolution_error_before_session(fake_session):
    broken = ServerDefinition(name="api", transport="http")

    with pytest.raises(MissingParameterError):
        asyncio.run(enumerate_tools(broken))

    assert fake_session.instances == []


def test_descriptor_accepted_directly(fake_session):
    descriptor = PipeDescriptor(command="uvx")
    asyncio.run(invoke_tool(descriptor, "get_time", client_name="mcp-cli-exec"))

    session = fake_session.instances[0]
    assert session.descriptor is descriptor
    assert session.client_name == "mcp-cli-exec"
