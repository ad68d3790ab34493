"""Settings for the Raindrop.io MCP server.

All settings are loaded from environment variables with the ``RAINDROP_``
prefix.  ``RAINDROP_API_TOKEN`` is the only required value; every other
field has a typed default.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from raindrop_mcp import __version__

DEFAULT_TOOLS_CONFIG = Path(__file__).resolve().parent.parent / "config" / "tools.yaml"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Raindrop MCP configuration.

    Every field can be overridden by an environment variable prefixed with
    ``RAINDROP_``.  For example, ``RAINDROP_MAX_RETRIES=0`` disables retries.
    """

    # ── Service identity ────────────────────────────────────────────
    SERVICE_NAME: str = "raindrop-mcp"
    SERVICE_VERSION: str = __version__

    # ── Raindrop.io API ─────────────────────────────────────────────
    API_TOKEN: str = Field(min_length=1)
    BASE_URL: str = "https://api.raindrop.io/rest/v1"
    REQUEST_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)

    # ── Resilience ──────────────────────────────────────────────────
    MAX_RETRIES: int = Field(default=3, ge=0)  # Retries after the first attempt
    RETRY_BASE_DELAY: float = Field(default=1.0, ge=0)  # Seconds, doubled per retry

    # ── Process lifecycle ───────────────────────────────────────────
    SHUTDOWN_GRACE_SECONDS: float = Field(default=5.0, ge=0)
    LOG_LEVEL: LogLevel = "INFO"

    # ── Tool catalogue ──────────────────────────────────────────────
    TOOLS_CONFIG_PATH: Path = DEFAULT_TOOLS_CONFIG

    model_config = {
        "env_prefix": "RAINDROP_",
    }

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value
