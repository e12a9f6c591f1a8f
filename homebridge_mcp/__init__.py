"""MCP server exposing the Homebridge Config UI REST API as tools."""

from homebridge_mcp.client import HomebridgeClient
from homebridge_mcp.config import Settings

__all__ = ["HomebridgeClient", "Settings"]

__version__ = "1.0.1"
