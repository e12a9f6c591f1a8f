"""Homebridge MCP server entry point.

Serves the Homebridge tools over stdio:

    HOMEBRIDGE_URL=http://homebridge.local:8581 \
    HOMEBRIDGE_USERNAME=admin HOMEBRIDGE_PASSWORD=secret \
    homebridge-mcp
"""

from __future__ import annotations

import asyncio
import sys

from mcp.server.stdio import stdio_server

from homebridge_mcp import __version__
from homebridge_mcp.client import HomebridgeClient
from homebridge_mcp.config import Settings
from homebridge_mcp.exceptions import ConfigurationError
from homebridge_mcp.log import get_logger, setup_logging
from homebridge_mcp.mcp_server import create_mcp_server
from homebridge_mcp.tools import ToolExecutor


async def serve(client: HomebridgeClient) -> None:
    """Run the MCP server on stdin/stdout until the client disconnects."""
    logger = get_logger("main")
    server = create_mcp_server(ToolExecutor(client))
    logger.info("server_starting", version=__version__, url=client.url)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream, write_stream, server.create_initialization_options(),
            )
    finally:
        await client.close()
        logger.info("server_stopped")


def main() -> None:
    settings = Settings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("main")

    try:
        client = HomebridgeClient(settings)
    except ConfigurationError as e:
        logger.error("configuration_error", error=str(e), variable=e.variable)
        sys.exit(1)

    asyncio.run(serve(client))


if __name__ == "__main__":
    main()
