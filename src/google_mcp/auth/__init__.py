"""OAuth authentication for Google MCP.

This package manages the single OAuth2 credential used for
Google Drive, Docs and Calendar.

Quick Start:
    ```python
    from google_mcp.auth import GoogleOAuthClient, OAuthConfig

    client = GoogleOAuthClient(
        OAuthConfig(
            client_id="your-client-id",
            client_secret="your-client-secret",  # pragma: allowlist secret
        )
    )

    # Authenticate once (opens a local callback listener)
    await client.authenticate()

    # Get credentials for API use, refreshed when close to expiry
    credentials = await client.get_client()
    ```
"""

from google_mcp.auth.config import DEFAULT_REDIRECT_URI, OAuthConfig
from google_mcp.auth.models import (
    CredentialRecord,
    SessionEvent,
    SessionState,
    StoredCredentials,
    evaluate_credentials,
    next_state,
)
from google_mcp.auth.oauth_client import GoogleOAuthClient, create_oauth_client
from google_mcp.auth.scopes import DEFAULT_SCOPES, SCOPE_GROUPS, SCOPES, granted_groups
from google_mcp.auth.token_store import TokenStore

__all__ = [
    "GoogleOAuthClient",
    "create_oauth_client",
    "OAuthConfig",
    "TokenStore",
    "CredentialRecord",
    "StoredCredentials",
    "SessionState",
    "SessionEvent",
    "evaluate_credentials",
    "next_state",
    "SCOPES",
    "DEFAULT_SCOPES",
    "SCOPE_GROUPS",
    "granted_groups",
    "DEFAULT_REDIRECT_URI",
]
