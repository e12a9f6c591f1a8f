"""Exception hierarchy for the Homebridge MCP server.

Usage:
    from homebridge_mcp.exceptions import ApiError

    try:
        await client.get_accessories()
    except ApiError as e:
        logger.error("request_failed", status=e.status_code, path=e.path)
"""


class HomebridgeError(Exception):
    """Base exception for all Homebridge MCP errors."""


class ConfigurationError(HomebridgeError):
    """A required environment variable is missing or empty."""

    def __init__(self, variable: str):
        self.variable = variable
        super().__init__(f"{variable} environment variable is required")


class AuthenticationError(HomebridgeError):
    """Login to the Homebridge UI was rejected."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Authentication failed ({status_code}): {body}")


class ApiError(HomebridgeError):
    """A Homebridge API call returned a non-success status.

    Raised after the single token-recovery retry, so a 401 here means the
    server kept rejecting fresh credentials.
    """

    def __init__(self, status_code: int, method: str, path: str, body: str):
        self.status_code = status_code
        self.method = method
        self.path = path
        self.body = body
        super().__init__(f"Homebridge API error {status_code} {method} {path}: {body}")


class ToolError(HomebridgeError):
    """A tool call failed for a reason that should be shown to the caller as-is."""
