"""MCP (Model Context Protocol) server for Homebridge.

Uses the low-level mcp Server API so tool schemas come straight from
TOOL_DEFINITIONS.
"""

from __future__ import annotations

from typing import Any

from mcp.server import Server
from mcp.types import TextContent, Tool

from homebridge_mcp.log import get_logger
from homebridge_mcp.tools import TOOL_DEFINITIONS, ToolExecutor

logger = get_logger("mcp")

SERVER_NAME = "homebridge-mcp-server"


class ToolCallFailed(Exception):
    """Raised from call_tool so the MCP runtime returns an isError result."""


def list_tool_specs() -> list[Tool]:
    tools: list[Tool] = []
    for td in TOOL_DEFINITIONS:
        func = td.get("function", {})
        name = func.get("name", "")
        if not name:
            continue
        tools.append(Tool(
            name=name,
            description=func.get("description", ""),
            inputSchema=func.get("parameters", {"type": "object", "properties": {}}),
        ))
    return tools


def create_mcp_server(executor: ToolExecutor) -> Server:
    """Create the MCP server with all Homebridge tools registered."""
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return list_tool_specs()

    @server.call_tool()
    async def call_tool(
        name: str, arguments: dict[str, Any] | None = None,
    ) -> list[TextContent]:
        logger.info("mcp_tool_call", tool=name, args=sorted((arguments or {}).keys()))
        result = await executor.execute(name, arguments or {})
        if result.is_error:
            raise ToolCallFailed(result.text)
        return [TextContent(type="text", text=result.text)]

    return server
