"""Homebridge Config UI REST API client.

Handles JWT login, token refresh, and all API calls used by the tools.

Usage:
    from homebridge_mcp.client import HomebridgeClient
    from homebridge_mcp.config import Settings

    hb = HomebridgeClient(Settings())

    # List accessories with their current values
    accessories = await hb.get_accessories()

    # Turn a light on
    await hb.set_accessory_characteristic(unique_id, "On", True)

The token is acquired lazily on the first request. A 401 triggers one
refresh attempt, then a full login if refresh fails, then exactly one
retry of the original request.
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

import httpx

from homebridge_mcp.config import Settings
from homebridge_mcp.exceptions import ApiError, AuthenticationError, ConfigurationError
from homebridge_mcp.log import get_logger

logger = get_logger("homebridge-client")


def _segment(value: str) -> str:
    """Percent-encode a caller-supplied value for use as one path segment."""
    return quote(str(value), safe="")


class HomebridgeClient:
    """Async Homebridge Config UI REST API client."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = settings or Settings()

        if not settings.homebridge_url:
            raise ConfigurationError("HOMEBRIDGE_URL")
        if not settings.homebridge_username:
            raise ConfigurationError("HOMEBRIDGE_USERNAME")
        if not settings.homebridge_password:
            raise ConfigurationError("HOMEBRIDGE_PASSWORD")

        self.url = settings.homebridge_url.rstrip("/")
        self._username = settings.homebridge_username
        self._password = settings.homebridge_password
        self._timeout = settings.request_timeout
        self._token: str | None = None
        self._client = http_client

    @property
    def token(self) -> str | None:
        return self._token

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def authenticate(self) -> None:
        """Log in with username/password and store the access token.

        Raises:
            AuthenticationError: The login endpoint returned a non-2xx status.
        """
        client = await self._get_client()
        resp = await client.post(
            f"{self.url}/api/auth/login",
            json={"username": self._username, "password": self._password},
        )
        if not resp.is_success:
            logger.warning("homebridge_login_failed", status=resp.status_code)
            raise AuthenticationError(resp.status_code, resp.text)

        self._token = resp.json()["access_token"]
        logger.info("homebridge_login", url=self.url)

    async def refresh_token(self) -> bool:
        """Exchange the current token for a fresh one.

        Returns False instead of raising so the caller can fall back to a
        full login.
        """
        if not self._token:
            return False

        try:
            client = await self._get_client()
            resp = await client.post(
                f"{self.url}/api/auth/refresh",
                headers={"Authorization": f"Bearer {self._token}"},
            )
            if not resp.is_success:
                logger.info("homebridge_refresh_rejected", status=resp.status_code)
                return False
            self._token = resp.json()["access_token"]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.info("homebridge_refresh_failed", error=str(e))
            return False

        logger.debug("homebridge_token_refreshed")
        return True

    async def ensure_authenticated(self) -> None:
        if not self._token:
            await self.authenticate()

    # ------------------------------------------------------------------
    # Generic request
    # ------------------------------------------------------------------

    async def _send(self, method: str, path: str, body: Any = None) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._token}"}
        content = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            content = json.dumps(body)

        client = await self._get_client()
        return await client.request(
            method, f"{self.url}{path}", headers=headers, content=content,
        )

    async def request(self, method: str, path: str, body: Any = None) -> Any:
        """Send an authenticated request and decode the response.

        Returns parsed JSON for ``application/json`` responses and the raw
        body text for anything else.

        Raises:
            AuthenticationError: Login failed (initially or after a 401).
            ApiError: The final response had a non-2xx status.
        """
        await self.ensure_authenticated()

        resp = await self._send(method, path, body)

        if resp.status_code == 401:
            logger.info("homebridge_token_rejected", method=method, path=path)
            if not await self.refresh_token():
                await self.authenticate()
            resp = await self._send(method, path, body)

        if not resp.is_success:
            raise ApiError(resp.status_code, method, path, resp.text)

        if "application/json" in resp.headers.get("content-type", ""):
            return resp.json()
        return resp.text

    # ------------------------------------------------------------------
    # Accessories
    # ------------------------------------------------------------------

    async def get_accessories(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/accessories")

    async def get_accessory_layout(self) -> list[dict[str, Any]]:
        """Get the room layout as configured in the Homebridge UI."""
        return await self.request("GET", "/api/accessories/layout")

    async def set_accessory_characteristic(
        self,
        unique_id: str,
        characteristic_type: str,
        value: str | int | float | bool,
    ) -> Any:
        """Set one characteristic (On, Brightness, ...) of an accessory."""
        result = await self.request(
            "PUT",
            f"/api/accessories/{_segment(unique_id)}",
            {"characteristicType": characteristic_type, "value": value},
        )
        logger.info(
            "accessory_set",
            unique_id=unique_id,
            characteristic=characteristic_type,
            value=value,
        )
        return result

    # ------------------------------------------------------------------
    # Server / status
    # ------------------------------------------------------------------

    async def get_homebridge_status(self) -> dict[str, Any]:
        return await self.request("GET", "/api/status/homebridge")

    async def get_server_information(self) -> dict[str, Any]:
        return await self.request("GET", "/api/status/server-information")

    async def restart_server(self) -> Any:
        logger.info("homebridge_restart_requested")
        return await self.request("PUT", "/api/server/restart")

    async def get_pairing_info(self) -> dict[str, Any]:
        return await self.request("GET", "/api/server/pairing")

    async def get_cached_accessories(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/server/cached-accessories")

    async def remove_cached_accessory(self, uuid: str) -> Any:
        return await self.request(
            "DELETE", f"/api/server/cached-accessories/{_segment(uuid)}"
        )

    async def reset_cached_accessories(self) -> Any:
        return await self.request("PUT", "/api/server/reset-cached-accessories")

    # ------------------------------------------------------------------
    # Config editor
    # ------------------------------------------------------------------

    async def get_config(self) -> dict[str, Any]:
        """Read the full config.json document."""
        return await self.request("GET", "/api/config-editor")

    async def update_config(self, config: dict[str, Any]) -> Any:
        """Replace config.json with ``config`` (the whole document)."""
        return await self.request("POST", "/api/config-editor", config)

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------

    async def get_plugins(self) -> list[dict[str, Any]]:
        return await self.request("GET", "/api/plugins")

    async def search_plugins(self, query: str) -> list[dict[str, Any]]:
        return await self.request("GET", f"/api/plugins/search/{_segment(query)}")

    async def lookup_plugin(self, plugin_name: str) -> dict[str, Any]:
        return await self.request("GET", f"/api/plugins/lookup/{_segment(plugin_name)}")

    async def get_plugin_versions(self, plugin_name: str) -> dict[str, Any]:
        return await self.request(
            "GET", f"/api/plugins/lookup/{_segment(plugin_name)}/versions"
        )

    async def get_plugin_config_schema(self, plugin_name: str) -> dict[str, Any]:
        return await self.request(
            "GET", f"/api/plugins/config-schema/{_segment(plugin_name)}"
        )

    async def get_plugin_changelog(self, plugin_name: str) -> Any:
        """Usually plain-text markdown, returned unparsed."""
        return await self.request(
            "GET", f"/api/plugins/changelog/{_segment(plugin_name)}"
        )

    # ------------------------------------------------------------------
    # Platform tools
    # ------------------------------------------------------------------

    async def get_system_info(self) -> dict[str, Any]:
        return await self.request("GET", "/api/platform-tools/system-information")
