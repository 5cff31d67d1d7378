"""Configuration for the Google MCP OAuth client.

Core components receive an explicit ``OAuthConfig``. Only the command line
edge builds one from the environment via ``OAuthConfig.from_env()``.

Environment Variables:
    GOOGLE_CLIENT_ID: OAuth 2.0 client ID (required)
    GOOGLE_CLIENT_SECRET: OAuth 2.0 client secret (required)
    GOOGLE_REDIRECT_URI: Redirect URI (default: http://localhost:3000/oauth/callback)
    TOKEN_STORAGE_PATH: Credential file (default: ~/.google-mcp/tokens.json)
"""

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from google_mcp.auth.scopes import DEFAULT_SCOPES
from google_mcp.errors import create_validation_error

DEFAULT_OAUTH_HOST = "localhost"
DEFAULT_OAUTH_PORT = 3000
DEFAULT_CALLBACK_PATH = "/oauth/callback"
DEFAULT_REDIRECT_URI = f"http://{DEFAULT_OAUTH_HOST}:{DEFAULT_OAUTH_PORT}{DEFAULT_CALLBACK_PATH}"

DEFAULT_TOKEN_PATH = "~/.google-mcp/tokens.json"


def expand_path(path: str | Path) -> Path:
    """Expand a leading ``~`` to the user's home directory."""
    return Path(path).expanduser()


class OAuthConfig(BaseModel):
    """Settings for a single installation's OAuth credential.

    Attributes:
        client_id: Google OAuth client ID.
        client_secret: Google OAuth client secret.
        redirect_uri: Where Google sends the user after consent.
        scopes: Scopes requested during authorization.
        token_path: Credential file location.
        callback_timeout: Seconds to wait for the consent callback.
            None waits until the callback arrives.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    scopes: tuple[str, ...] = Field(default=DEFAULT_SCOPES)
    token_path: Path = Field(default_factory=lambda: expand_path(DEFAULT_TOKEN_PATH))
    callback_timeout: float | None = None

    @field_validator("client_id", "client_secret")
    @classmethod
    def _require_value(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("token_path", mode="before")
    @classmethod
    def _expand_token_path(cls, value: str | Path) -> Path:
        return expand_path(value)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "OAuthConfig":
        """Build configuration from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            Populated configuration.

        Raises:
            GoogleMCPError: If the client ID or secret is missing or blank.
        """
        env = os.environ if environ is None else environ

        client_id = env.get("GOOGLE_CLIENT_ID", "").strip()
        client_secret = env.get("GOOGLE_CLIENT_SECRET", "").strip()
        if not client_id or not client_secret:
            raise create_validation_error(
                "Missing required environment variables: "
                "GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET"
            )

        overrides: dict[str, str] = {}
        redirect_uri = env.get("GOOGLE_REDIRECT_URI", "").strip()
        if redirect_uri:
            overrides["redirect_uri"] = redirect_uri
        token_path = env.get("TOKEN_STORAGE_PATH", "").strip()
        if token_path:
            overrides["token_path"] = token_path

        return cls(client_id=client_id, client_secret=client_secret, **overrides)

