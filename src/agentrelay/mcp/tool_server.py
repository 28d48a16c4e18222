#!/usr/bin/env python3
"""
MCP tool server for the local agents.

Exposes the same toolset the relay worker runs, over MCP stdio, so a local
MCP client can call the agents directly without going through chat.

Usage (MCP client config):
    {"command": "agentrelay-mcp"}
"""

import asyncio
import json
import logging
from typing import Any

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from agentrelay.agents.catalog import AGENTS
from agentrelay.agents.registry import ToolDispatcher, build_default_dispatcher
from agentrelay.config import load_config
from agentrelay.errors import ToolError
from agentrelay.logs import setup_logging

log = logging.getLogger("agentrelay.mcp")


def list_tool_definitions(dispatcher: ToolDispatcher) -> list[Tool]:
    """MCP tool definitions for every catalog tool the dispatcher can run."""
    return [
        Tool(
            name=tool.name,
            description=f"{agent.emoji} {tool.description}",
            inputSchema=tool.input_schema(),
        )
        for agent in AGENTS
        for tool in agent.tools
        if tool.name in dispatcher
    ]


async def handle_call_tool(dispatcher: ToolDispatcher, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
    """Run one tool and render its result (or error) as text."""
    try:
        value = await dispatcher.execute(name, arguments or {})
    except ToolError as e:
        return [TextContent(type="text", text=f"Error: {e}")]
    return [TextContent(type="text", text=json.dumps(value, indent=2, ensure_ascii=False, default=str))]


def create_tool_server(dispatcher: ToolDispatcher) -> Server:
    server = Server("agentrelay-tools")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return list_tool_definitions(dispatcher)

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        return await handle_call_tool(dispatcher, name, arguments)

    return server


async def run() -> None:
    config = load_config()
    # stdout carries the MCP protocol, so logs go to stderr and the log file only.
    setup_logging("tool-server", config.logs_path)
    async with httpx.AsyncClient(timeout=30.0) as http:
        server = create_tool_server(build_default_dispatcher(config, http))
        log.info("MCP tool server started")
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()
