"""MCP tool definitions and execution.

Each tool maps to one (occasionally two) Homebridge API calls. Tools are
defined in OpenAI-compatible JSON Schema and executed here; results are
rendered as text for the MCP layer.
"""

from __future__ import annotations

import asyncio
import inspect
import json
from dataclasses import dataclass
from typing import Any

from homebridge_mcp.client import HomebridgeClient
from homebridge_mcp.exceptions import ToolError
from homebridge_mcp.log import get_logger

logger = get_logger("tools")

_NO_PARAMS: dict[str, Any] = {"type": "object", "properties": {}}

_PLUGIN_NAME_PARAMS: dict[str, Any] = {
    "type": "object",
    "properties": {
        "plugin_name": {
            "type": "string",
            "description": "The npm package name of the plugin, e.g. homebridge-hue",
        },
    },
    "required": ["plugin_name"],
}

_UNIQUE_ID = {
    "type": "string",
    "description": "The unique identifier of the accessory",
}

# ------------------------------------------------------------------
# Tool definitions (OpenAI function-calling format)
# ------------------------------------------------------------------

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    # --- Accessories ---
    {
        "type": "function",
        "function": {
            "name": "list_accessories",
            "description": (
                "List all Homebridge accessories with their current state "
                "(on/off, brightness, temperature, etc.)"
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "room": {
                        "type": "string",
                        "description": "Filter by room name (case-insensitive)",
                    },
                    "type": {
                        "type": "string",
                        "description": "Filter by accessory type, e.g. Lightbulb, Switch, Thermostat",
                    },
                    "manufacturer": {
                        "type": "string",
                        "description": "Filter by manufacturer (case-insensitive, contains match)",
                    },
                    "exclude_manufacturer": {
                        "type": "string",
                        "description": (
                            "Exclude accessories from this manufacturer "
                            "(case-insensitive, contains match)"
                        ),
                    },
                    "name": {
                        "type": "string",
                        "description": "Filter by service name (case-insensitive, contains match)",
                    },
                },
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_accessory",
            "description": (
                "Get detailed information about a specific accessory by its uniqueId. "
                "Use list_accessories first to find the uniqueId."
            ),
            "parameters": {
                "type": "object",
                "properties": {"unique_id": _UNIQUE_ID},
                "required": ["unique_id"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "set_accessory",
            "description": (
                "Control a Homebridge accessory: turn it on/off, set brightness, "
                "color temperature, etc. Use list_accessories first to find the "
                "uniqueId and available characteristic types."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "unique_id": _UNIQUE_ID,
                    "characteristic_type": {
                        "type": "string",
                        "description": (
                            "The characteristic to set, e.g. On, Brightness, "
                            "ColorTemperature, Hue, Saturation, TargetTemperature, "
                            "TargetDoorState"
                        ),
                    },
                    "value": {
                        "type": ["string", "number", "boolean"],
                        "description": "The value to set, e.g. true/false for On, 0-100 for Brightness",
                    },
                },
                "required": ["unique_id", "characteristic_type", "value"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_accessory_layout",
            "description": "Get the accessories room layout as configured in the Homebridge UI.",
            "parameters": _NO_PARAMS,
        },
    },
    # --- Server ---
    {
        "type": "function",
        "function": {
            "name": "get_homebridge_status",
            "description": (
                "Check if Homebridge is running and get its current status "
                "(up/down, version, plugins status)."
            ),
            "parameters": _NO_PARAMS,
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_server_status",
            "description": (
                "Get Homebridge server information including version, Node.js version, "
                "uptime, OS details, and Homebridge instance ID."
            ),
            "parameters": _NO_PARAMS,
        },
    },
    {
        "type": "function",
        "function": {
            "name": "restart_homebridge",
            "description": (
                "Restart the Homebridge service. This will temporarily make all "
                "accessories unavailable."
            ),
            "parameters": _NO_PARAMS,
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_pairing_info",
            "description": (
                "Get the HomeKit pairing information (setup code, QR code URL) "
                "for this Homebridge instance."
            ),
            "parameters": _NO_PARAMS,
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_cached_accessories",
            "description": (
                "List all cached accessories stored by Homebridge. "
                "These persist across restarts."
            ),
            "parameters": _NO_PARAMS,
        },
    },
    {
        "type": "function",
        "function": {
            "name": "remove_cached_accessory",
            "description": (
                "Remove a specific cached accessory by its UUID. "
                "Useful for cleaning up stale accessories."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "uuid": {
                        "type": "string",
                        "description": "The UUID of the cached accessory to remove",
                    },
                },
                "required": ["uuid"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "reset_cached_accessories",
            "description": (
                "Reset ALL cached accessories. WARNING: This removes all cached "
                "accessories and requires a Homebridge restart."
            ),
            "parameters": _NO_PARAMS,
        },
    },
    # --- Config ---
    {
        "type": "function",
        "function": {
            "name": "get_config",
            "description": (
                "Read the current Homebridge config.json content, including bridge "
                "settings, accessories, and platforms."
            ),
            "parameters": _NO_PARAMS,
        },
    },
    {
        "type": "function",
        "function": {
            "name": "update_config",
            "description": (
                "Update the Homebridge config.json file. You must provide the FULL "
                "config object; it replaces the entire file. Use get_config first, "
                "then modify and pass back the complete object."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "config": {
                        "type": "object",
                        "description": "The complete config.json object to write",
                    },
                },
                "required": ["config"],
            },
        },
    },
    # --- Plugins ---
    {
        "type": "function",
        "function": {
            "name": "list_plugins",
            "description": (
                "List all currently installed Homebridge plugins with their "
                "versions and update status."
            ),
            "parameters": _NO_PARAMS,
        },
    },
    {
        "type": "function",
        "function": {
            "name": "search_plugins",
            "description": "Search the npm registry for Homebridge plugins matching a query.",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Search query, e.g. hue, camera, thermostat",
                    },
                },
                "required": ["query"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "lookup_plugin",
            "description": "Get detailed information about a specific Homebridge plugin from the npm registry.",
            "parameters": _PLUGIN_NAME_PARAMS,
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_plugin_versions",
            "description": "Get available versions and dist-tags for a specific Homebridge plugin.",
            "parameters": _PLUGIN_NAME_PARAMS,
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_plugin_config_schema",
            "description": (
                "Get the config.schema.json for a plugin, which describes how to "
                "configure it in Homebridge."
            ),
            "parameters": _PLUGIN_NAME_PARAMS,
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_plugin_changelog",
            "description": "Get the CHANGELOG.md content for an installed Homebridge plugin.",
            "parameters": _PLUGIN_NAME_PARAMS,
        },
    },
    # --- Platform ---
    {
        "type": "function",
        "function": {
            "name": "get_system_info",
            "description": (
                "Get system information for the machine running Homebridge "
                "(CPU, memory, OS, network interfaces, uptime)."
            ),
            "parameters": _NO_PARAMS,
        },
    },
]

# Used in "Error <action>: ..." messages.
_ERROR_ACTIONS: dict[str, str] = {
    "list_accessories": "listing accessories",
    "get_accessory": "getting accessory",
    "set_accessory": "setting accessory",
    "get_accessory_layout": "getting layout",
    "get_homebridge_status": "getting Homebridge status",
    "get_server_status": "getting server info",
    "restart_homebridge": "restarting Homebridge",
    "get_pairing_info": "getting pairing info",
    "get_cached_accessories": "getting cached accessories",
    "remove_cached_accessory": "removing cached accessory",
    "reset_cached_accessories": "resetting cached accessories",
    "get_config": "getting config",
    "update_config": "updating config",
    "list_plugins": "listing plugins",
    "search_plugins": "searching plugins",
    "lookup_plugin": "looking up plugin",
    "get_plugin_versions": "getting plugin versions",
    "get_plugin_config_schema": "getting plugin config schema",
    "get_plugin_changelog": "getting plugin changelog",
    "get_system_info": "getting system info",
}


@dataclass
class ToolResult:
    """Rendered tool output handed to the MCP layer."""

    text: str
    is_error: bool = False


def _lower(value: Any) -> str:
    return value.lower() if isinstance(value, str) else ""


def _no_content(result: Any) -> bool:
    # Empty JSON containers are real results.
    return result is None or result == ""


def compact_accessory(accessory: dict[str, Any]) -> dict[str, Any]:
    """Reduce a raw accessory record to the fields useful for listing."""
    info = accessory.get("accessoryInformation") or {}
    return {
        "uniqueId": accessory.get("uniqueId"),
        "serviceName": accessory.get("serviceName"),
        "type": accessory.get("type"),
        "manufacturer": info.get("Manufacturer"),
        "model": info.get("Model"),
        "values": accessory.get("values") or {},
    }


def filter_accessories(
    accessories: list[dict[str, Any]],
    type: str | None = None,
    manufacturer: str | None = None,
    exclude_manufacturer: str | None = None,
    name: str | None = None,
) -> list[dict[str, Any]]:
    """Apply the non-room list filters. All matching is case-insensitive."""
    result = accessories
    if type:
        wanted = type.lower()
        result = [a for a in result if _lower(a.get("type")) == wanted]
    if manufacturer:
        mfr = manufacturer.lower()
        result = [
            a for a in result
            if mfr in _lower((a.get("accessoryInformation") or {}).get("Manufacturer"))
        ]
    if exclude_manufacturer:
        excl = exclude_manufacturer.lower()
        # Accessories without a manufacturer are kept.
        result = [
            a for a in result
            if excl not in _lower((a.get("accessoryInformation") or {}).get("Manufacturer"))
        ]
    if name:
        n = name.lower()
        result = [a for a in result if n in _lower(a.get("serviceName"))]
    return result


def enrich_layout(
    layout: list[dict[str, Any]], accessories: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Join layout services with accessory records by uniqueId."""
    by_id = {a.get("uniqueId"): a for a in accessories}
    rooms = []
    for room in layout:
        services = []
        for svc in room.get("services", []):
            acc = by_id.get(svc.get("uniqueId"))
            info = (acc or {}).get("accessoryInformation") or {}
            services.append({
                "uniqueId": svc.get("uniqueId"),
                "serviceName": (acc or {}).get("serviceName") or svc.get("customName") or "Unknown",
                "type": (acc or {}).get("type") or "Unknown",
                "manufacturer": info.get("Manufacturer"),
            })
        rooms.append({"name": room.get("name"), "services": services})
    return rooms


# ------------------------------------------------------------------
# Tool executor
# ------------------------------------------------------------------


class ToolExecutor:
    """Executes MCP tool calls against the Homebridge API."""

    def __init__(self, client: HomebridgeClient) -> None:
        self.client = client

    async def execute(self, tool_name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Execute a tool and render its result (or failure) as text."""
        arguments = arguments or {}
        handler = getattr(self, f"_tool_{tool_name}", None)
        if not handler:
            return ToolResult(f"Unknown tool: {tool_name}", is_error=True)

        # Drop arguments the handler doesn't accept (clients sometimes send
        # extra parameters not in the tool schema).
        params = inspect.signature(handler).parameters
        filtered = {k: v for k, v in arguments.items() if k in params}
        if len(filtered) != len(arguments):
            dropped = set(arguments) - set(params)
            logger.warning("tool_args_filtered", tool=tool_name, dropped=sorted(dropped))

        missing = [
            p.name for p in params.values()
            if p.default is inspect.Parameter.empty and p.name not in filtered
        ]
        if missing:
            return ToolResult(
                f"Missing required argument(s) for {tool_name}: {', '.join(missing)}",
                is_error=True,
            )

        action = _ERROR_ACTIONS.get(tool_name, f"running {tool_name}")
        try:
            result = await handler(**filtered)
        except ToolError as e:
            logger.info("tool_rejected", tool=tool_name, reason=str(e))
            return ToolResult(str(e), is_error=True)
        except Exception as e:
            logger.exception("tool_execution_error", tool=tool_name)
            return ToolResult(f"Error {action}: {e}", is_error=True)

        if isinstance(result, str):
            return ToolResult(result)
        return ToolResult(json.dumps(result, indent=2, ensure_ascii=False, default=str))

    # ------------------------------------------------------------------
    # Accessories
    # ------------------------------------------------------------------

    async def _tool_list_accessories(
        self,
        room: str | None = None,
        type: str | None = None,
        manufacturer: str | None = None,
        exclude_manufacturer: str | None = None,
        name: str | None = None,
    ) -> list[dict[str, Any]]:
        accessories = await self.client.get_accessories()

        if room:
            layout = await self.client.get_accessory_layout()
            matched = next(
                (r for r in layout if _lower(r.get("name")) == room.lower()), None,
            )
            if matched is None:
                available = ", ".join(str(r.get("name")) for r in layout)
                raise ToolError(f'Room not found: "{room}". Available rooms: {available}')
            room_ids = {s.get("uniqueId") for s in matched.get("services", [])}
            accessories = [a for a in accessories if a.get("uniqueId") in room_ids]

        accessories = filter_accessories(
            accessories,
            type=type,
            manufacturer=manufacturer,
            exclude_manufacturer=exclude_manufacturer,
            name=name,
        )
        return [compact_accessory(a) for a in accessories]

    async def _tool_get_accessory(self, unique_id: str) -> dict[str, Any]:
        accessories = await self.client.get_accessories()
        for acc in accessories:
            if acc.get("uniqueId") == unique_id:
                return acc
        raise ToolError(f"Accessory not found with uniqueId: {unique_id}")

    async def _tool_set_accessory(
        self, unique_id: str, characteristic_type: str, value: Any,
    ) -> Any:
        if not isinstance(value, (str, int, float, bool)):
            raise ToolError(
                f"Invalid value for {characteristic_type}: expected string, number or boolean"
            )
        return await self.client.set_accessory_characteristic(
            unique_id, characteristic_type, value,
        )

    async def _tool_get_accessory_layout(self) -> list[dict[str, Any]]:
        layout, accessories = await asyncio.gather(
            self.client.get_accessory_layout(),
            self.client.get_accessories(),
        )
        return enrich_layout(layout, accessories)

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    async def _tool_get_homebridge_status(self) -> Any:
        return await self.client.get_homebridge_status()

    async def _tool_get_server_status(self) -> Any:
        return await self.client.get_server_information()

    async def _tool_restart_homebridge(self) -> Any:
        result = await self.client.restart_server()
        if _no_content(result):
            return "Homebridge restart initiated successfully."
        return result

    async def _tool_get_pairing_info(self) -> Any:
        return await self.client.get_pairing_info()

    async def _tool_get_cached_accessories(self) -> Any:
        return await self.client.get_cached_accessories()

    async def _tool_remove_cached_accessory(self, uuid: str) -> str:
        await self.client.remove_cached_accessory(uuid)
        return f"Cached accessory {uuid} removed successfully."

    async def _tool_reset_cached_accessories(self) -> str:
        await self.client.reset_cached_accessories()
        return "All cached accessories have been reset. A Homebridge restart may be required."

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------

    async def _tool_get_config(self) -> Any:
        return await self.client.get_config()

    async def _tool_update_config(self, config: dict[str, Any]) -> Any:
        if not isinstance(config, dict):
            raise ToolError("config must be a JSON object")
        result = await self.client.update_config(config)
        if _no_content(result):
            return (
                "Config updated successfully. A Homebridge restart may be required "
                "for changes to take effect."
            )
        return result

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------

    async def _tool_list_plugins(self) -> Any:
        return await self.client.get_plugins()

    async def _tool_search_plugins(self, query: str) -> Any:
        return await self.client.search_plugins(query)

    async def _tool_lookup_plugin(self, plugin_name: str) -> Any:
        return await self.client.lookup_plugin(plugin_name)

    async def _tool_get_plugin_versions(self, plugin_name: str) -> Any:
        return await self.client.get_plugin_versions(plugin_name)

    async def _tool_get_plugin_config_schema(self, plugin_name: str) -> Any:
        return await self.client.get_plugin_config_schema(plugin_name)

    async def _tool_get_plugin_changelog(self, plugin_name: str) -> Any:
        return await self.client.get_plugin_changelog(plugin_name)

    # ------------------------------------------------------------------
    # Platform
    # ------------------------------------------------------------------

    async def _tool_get_system_info(self) -> Any:
        return await self.client.get_system_info()
