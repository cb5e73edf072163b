"""Application settings (env/.env)."""

from __future__ import annotations

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the Joplin Data API, the exporter and the MCP server."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    joplin_token: str = Field(alias="JOPLIN_TOKEN", min_length=1)
    joplin_base_url: AnyHttpUrl = Field(
        default="http://127.0.0.1:41184",
        alias="JOPLIN_BASE_URL",
    )

    http_timeout_seconds: float = Field(
        default=15.0,
        alias="HTTP_TIMEOUT_SECONDS",
        gt=0,
    )

    export_uri_scheme: str = Field(
        default="joplin",
        alias="EXPORT_URI_SCHEME",
        pattern=r"^[A-Za-z][A-Za-z0-9+.-]*$",
    )
    export_images_dir: str = Field(default="images", alias="EXPORT_IMAGES_DIR", min_length=1)
    export_filename_replacement: str = Field(default="-", alias="EXPORT_FILENAME_REPLACEMENT")

    # Only the ASGI server needs an API key; the CLI runs without one.
    mcp_api_key: str | None = Field(default=None, alias="MCP_API_KEY", min_length=1)
    mcp_host: str = Field(default="127.0.0.1", alias="MCP_HOST")
    mcp_port: int = Field(default=5005, alias="MCP_PORT", ge=1, le=65535)
