"""
Tests for the MCP tool server that exposes the local agents over stdio.
"""

import json

import httpx
import pytest
from mcp.types import CallToolRequest, ListToolsRequest

from agentrelay.agents.catalog import AGENTS
from agentrelay.agents.registry import ToolDispatcher, build_default_dispatcher
from agentrelay.errors import ToolError
from agentrelay.mcp.tool_server import create_tool_server, handle_call_tool, list_tool_definitions


def files_list(args):
    return {"path": args["path"], "items": ["a.txt", "b.txt"]}


def files_read(args):
    raise ToolError(f"File not found: {args['path']}")


@pytest.fixture
def dispatcher():
    """Dispatcher with just two files tools registered."""
    dispatcher = ToolDispatcher(require_all=False)
    dispatcher.register("files_list", files_list)
    dispatcher.register("files_read", files_read)
    return dispatcher


class TestListTools:
    def test_only_registered_tools(self, dispatcher):
        tools = list_tool_definitions(dispatcher)
        assert [t.name for t in tools] == ["files_read", "files_list"]

    def test_schema_and_description(self, dispatcher):
        [_, files_list] = list_tool_definitions(dispatcher)
        assert files_list.description == "📁 List the files in a directory"
        assert files_list.inputSchema["required"] == ["path"]
        assert files_list.inputSchema["properties"]["recursive"]["type"] == "boolean"

    def test_default_dispatcher_exposes_whole_catalog(self, test_config):
        dispatcher = build_default_dispatcher(test_config, httpx.AsyncClient())
        expected = sum(len(a.tools) for a in AGENTS)
        assert len(list_tool_definitions(dispatcher)) == expected


class TestCallTool:
    @pytest.mark.asyncio
    async def test_success_is_json(self, dispatcher):
        [content] = await handle_call_tool(dispatcher, "files_list", {"path": "/tmp"})
        assert content.type == "text"
        assert json.loads(content.text) == {"path": "/tmp", "items": ["a.txt", "b.txt"]}

    @pytest.mark.asyncio
    async def test_tool_error(self, dispatcher):
        [content] = await handle_call_tool(dispatcher, "files_read", {"path": "/nope"})
        assert content.text == "Error: File not found: /nope"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, dispatcher):
        [content] = await handle_call_tool(dispatcher, "teleport", None)
        assert content.text == "Error: Unknown tool: teleport"


class TestServer:
    def test_handlers_registered(self, dispatcher):
        server = create_tool_server(dispatcher)
        assert server.name == "agentrelay-tools"
        assert ListToolsRequest in server.request_handlers
        assert CallToolRequest in server.request_handlers

    @pytest.mark.asyncio
    async def test_list_tools_handler(self, dispatcher):
        server = create_tool_server(dispatcher)
        handler = server.request_handlers[ListToolsRequest]

        response = await handler(ListToolsRequest(method="tools/list"))

        assert [t.name for t in response.root.tools] == ["files_read", "files_list"]
