"""Configuration loaded from environment variables / .env file.

Usage:
    from homebridge_mcp.config import Settings
    settings = Settings()
    print(settings.homebridge_url)

The Homebridge credentials default to empty strings; the client refuses
to start without them and names the missing variable.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Homebridge Config UI ---
    homebridge_url: str = ""  # e.g. http://homebridge.local:8581
    homebridge_username: str = ""
    homebridge_password: str = ""
    request_timeout: float = 30.0

    # --- General ---
    log_level: str = "INFO"
    log_format: str = "auto"  # auto | json | console
