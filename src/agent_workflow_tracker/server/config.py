"""Configuration for the HTTP server.

Workflow behaviour (state file, step catalog, persistence policy) is configured
through :class:`agent_workflow_tracker.tracker.config.TrackerSettings`; this only
covers how the HTTP surface is served.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    host: str = Field(default="127.0.0.1", validation_alias="WORKFLOW_HTTP_HOST")
    port: int = Field(default=8765, ge=1, le=65535, validation_alias="WORKFLOW_HTTP_PORT")

    # Dev-friendly CORS for local dashboards. Override via WORKFLOW_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="WORKFLOW_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
