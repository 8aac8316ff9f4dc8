"""Integration tests for MCPConnectionManager with real server processes."""

import asyncio

import pytest

from whispo_mcp.domain.events.mcp_events import MCPEventType
from whispo_mcp.domain.exceptions.mcp import MCPConnectionClosedError, MCPToolNotFoundError
from whispo_mcp.domain.model.mcp.connection import ConnectionState
from whispo_mcp.infrastructure.mcp.connection_manager import MCPConnectionManager


@pytest.fixture
async def manager(settings, publisher):
    async with MCPConnectionManager(settings=settings, publisher=publisher) as manager:
        yield manager


@pytest.fixture
def mixed_config(fake_server_config, enabled_config):
    return enabled_config(
        fake_server_config(name="editor", tools=["echo", "get_active_file", "crash"]),
        fake_server_config(name="notes", tools=["echo", "get_glossary"]),
        fake_server_config(name="broken", mode="bad-handshake"),
        fake_server_config(name="off", enabled=False),
    )


@pytest.mark.integration
class TestInitializeAll:
    """Tests for connecting a whole configuration."""

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, manager, mixed_config, publisher):
        report = await manager.initialize_all(mixed_config)

        assert report.connected == ["editor", "notes"]
        assert list(report.failed) == ["broken"]
        assert "protocolVersion" in report.failed["broken"]
        assert report.skipped == ["off"]
        assert not report.ok

        connected = publisher.of_type(MCPEventType.SERVER_CONNECTED)
        assert sorted(event.server_name for event in connected) == ["editor", "notes"]
        failed = publisher.of_type(MCPEventType.SERVER_FAILED)
        assert [event.server_name for event in failed] == ["broken"]

    @pytest.mark.asyncio
    async def test_states_include_failed_servers(self, manager, mixed_config):
        await manager.initialize_all(mixed_config)

        states = await manager.connection_states()

        assert states["editor"].state == ConnectionState.READY
        assert states["broken"].state == ConnectionState.FAILED
        assert states["broken"].error_message
        assert "off" not in states

    @pytest.mark.asyncio
    async def test_second_initialize_keeps_ready_connections(self, manager, mixed_config):
        await manager.initialize_all(mixed_config)
        editor = await manager.get_connection("editor")

        report = await manager.initialize_all(mixed_config)

        assert await manager.get_connection("editor") is editor
        assert report.connected == ["editor", "notes"]
        assert list(report.failed) == ["broken"]


@pytest.mark.integration
class TestRouting:
    """Tests for tool routing across servers."""

    @pytest.mark.asyncio
    async def test_tools_are_listed_in_configuration_order(self, manager, mixed_config):
        await manager.initialize_all(mixed_config)

        names = [tool.name for tool in await manager.list_tools()]

        assert names == ["echo", "get_active_file", "crash", "echo", "get_glossary"]

    @pytest.mark.asyncio
    async def test_first_server_listing_a_tool_wins(self, manager, mixed_config):
        await manager.initialize_all(mixed_config)

        assert await manager.find_tool_server("echo") == "editor"
        assert await manager.find_tool_server("get_glossary") == "notes"
        assert await manager.find_tool_server("missing") is None

    @pytest.mark.asyncio
    async def test_call_tool_routes_by_name_or_explicit_server(self, manager, mixed_config):
        await manager.initialize_all(mixed_config)

        glossary = await manager.call_tool("get_glossary")
        echoed = await manager.call_tool("echo", {"text": "hi"}, server_name="notes")

        assert "A P I" in glossary.text
        assert echoed.text == "hi"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, manager, mixed_config):
        await manager.initialize_all(mixed_config)

        with pytest.raises(MCPToolNotFoundError):
            await manager.call_tool("missing")

    @pytest.mark.asyncio
    async def test_raw_request(self, manager, mixed_config):
        await manager.initialize_all(mixed_config)

        assert await manager.request("notes", "ping") == {}

    @pytest.mark.asyncio
    async def test_concurrent_calls_across_servers(self, manager, mixed_config):
        await manager.initialize_all(mixed_config)

        results = await asyncio.gather(
            *(
                manager.call_tool("echo", {"text": str(i)}, server_name=name)
                for i in range(10)
                for name in ("editor", "notes")
            )
        )

        assert sorted(int(r.text) for r in results) == sorted(list(range(10)) * 2)


@pytest.mark.integration
class TestLifecycle:
    """Tests for crashes, disconnects and shutdown."""

    @pytest.mark.asyncio
    async def test_crashed_server_publishes_closed_and_stops_routing(
        self, manager, mixed_config, publisher
    ):
        await manager.initialize_all(mixed_config)

        with pytest.raises(MCPConnectionClosedError):
            await manager.call_tool("crash")

        closed = publisher.of_type(MCPEventType.SERVER_CLOSED)
        assert [event.server_name for event in closed] == ["editor"]
        # echo now falls through to the next READY server
        assert await manager.find_tool_server("echo") == "notes"

        report = await manager.initialize_all(mixed_config)
        assert "editor" in report.connected
        assert await manager.find_tool_server("echo") == "editor"

    @pytest.mark.asyncio
    async def test_disconnect_server(self, manager, mixed_config):
        await manager.initialize_all(mixed_config)
        notes = await manager.get_connection("notes")

        assert await manager.disconnect_server("notes") is True
        assert await manager.disconnect_server("notes") is False
        assert notes.state == ConnectionState.CLOSED
        assert [t.name for t in await manager.list_tools()] == ["echo", "get_active_file", "crash"]

    @pytest.mark.asyncio
    async def test_shutdown_closes_every_process(self, manager, mixed_config):
        await manager.initialize_all(mixed_config)
        connections = [await manager.get_connection(name) for name in ("editor", "notes")]

        await manager.shutdown()
        await manager.shutdown()

        for connection in connections:
            assert connection.state == ConnectionState.CLOSED
            assert connection._process.returncode is not None
        assert await manager.list_tools() == []
