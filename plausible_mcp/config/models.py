"""Environment-driven configuration.

All recognized options are declared once on :class:`EnvSettings`, each with a
literal default. Values are read from the process environment and an optional
``.env`` file in the working directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PLAUSIBLE_API_URL = "https://plausible.io"
ANALYTICS_FILENAME = "analytics.json"


class EnvSettings(BaseSettings):
    """Environment-driven settings and .env support.

    Attributes
    ----------
    plausible_api_url: str
        Default Plausible base URL used when a request supplies none.
    plausible_api_key: str
        Default Plausible API key. Required in stdio mode; optional in HTTP
        mode where clients usually pass their own key.
    port: int
        HTTP listen port.
    host: str
        HTTP bind address.
    analytics_dir: Path
        Directory holding the local analytics snapshot (``analytics.json``).
    firebase_service_account_path: Optional[str]
        Extra location searched for a Firebase service-account JSON file.
    firebase_database_url: Optional[str]
        Firebase Realtime Database URL. Derived from the service account's
        project id when unset.
    log_level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".
    mcp_server_cache_size: int
        Maximum number of credential-scoped MCP servers kept in memory.
    mcp_json_response: bool
        Answer MCP POSTs with plain JSON instead of SSE framing.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    plausible_api_url: str = Field(DEFAULT_PLAUSIBLE_API_URL)
    plausible_api_key: str = Field("")
    port: int = Field(8080, ge=1, le=65535)
    host: str = Field("0.0.0.0")
    analytics_dir: Path = Field(Path("/app/data"))
    firebase_service_account_path: Optional[str] = None
    firebase_database_url: Optional[str] = None
    log_level: str = Field("INFO")
    mcp_server_cache_size: int = Field(
        1024,
        ge=1,
        description="Capacity of the credential-scoped server cache (LRU)",
    )
    mcp_json_response: bool = Field(
        False,
        description="Return JSON responses from /mcp instead of SSE streams",
    )

    @property
    def analytics_file(self) -> Path:
        """Full path of the local analytics snapshot."""
        return self.analytics_dir / ANALYTICS_FILENAME
