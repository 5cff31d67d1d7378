"""Shared pytest fixtures for google-mcp tests.

This module provides reusable fixtures for credential records, token
storage, the OAuth session manager and mocked Google API access.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from google_mcp.auth.config import OAuthConfig
from google_mcp.auth.models import CredentialRecord
from google_mcp.auth.oauth_client import GoogleOAuthClient
from google_mcp.auth.token_store import TokenStore
from google_mcp.tools.api import GoogleAPIs

# =============================================================================
# Credential Fixtures
# =============================================================================


@pytest.fixture
def valid_record() -> CredentialRecord:
    """Create a credential record that expires in an hour."""
    return CredentialRecord(
        access_token="test_access_token_abc123",
        refresh_token="test_refresh_token_xyz789",
        expiry=datetime.now(timezone.utc) + timedelta(hours=1),
        scope="https://www.googleapis.com/auth/drive",
    )


@pytest.fixture
def near_expiry_record() -> CredentialRecord:
    """Create a credential record inside the five minute refresh window."""
    return CredentialRecord(
        access_token="stale_access_token",
        refresh_token="test_refresh_token",
        expiry=datetime.now(timezone.utc) + timedelta(minutes=2),
    )


@pytest.fixture
def expired_record() -> CredentialRecord:
    """Create a credential record that expired an hour ago."""
    return CredentialRecord(
        access_token="expired_access_token",
        refresh_token="test_refresh_token",
        expiry=datetime.now(timezone.utc) - timedelta(hours=1),
    )


# =============================================================================
# Token Store Fixtures
# =============================================================================


@pytest.fixture
def temp_token_path(tmp_path: Path) -> Path:
    """Get the path for a temporary tokens.json file."""
    return tmp_path / ".google-mcp" / "tokens.json"


@pytest.fixture
def token_store(temp_token_path: Path) -> TokenStore:
    """Create a TokenStore writing under tmp_path."""
    return TokenStore(token_path=temp_token_path)


# =============================================================================
# OAuth Client Fixtures
# =============================================================================


@pytest.fixture
def oauth_config(temp_token_path: Path) -> OAuthConfig:
    """Create an OAuth configuration pointing at temporary storage."""
    return OAuthConfig(
        client_id="test-client-id.apps.googleusercontent.com",
        client_secret="test-client-secret",  # pragma: allowlist secret
        token_path=temp_token_path,
    )


@pytest.fixture
def oauth_client(oauth_config: OAuthConfig, token_store: TokenStore) -> GoogleOAuthClient:
    """Create a GoogleOAuthClient that never opens a browser."""
    return GoogleOAuthClient(oauth_config, store=token_store, open_browser=False)


@pytest.fixture
def mock_google_credentials() -> MagicMock:
    """Create a mock Google OAuth2 Credentials object."""
    mock_creds = MagicMock()
    mock_creds.token = "mock_access_token"
    mock_creds.refresh_token = "mock_refresh_token"
    mock_creds.expiry = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1)
    mock_creds.granted_scopes = None
    mock_creds.scopes = ["https://www.googleapis.com/auth/drive"]
    return mock_creds


# =============================================================================
# Google API Fixtures
# =============================================================================


def _make_response(
    json_data: Any = None,
    status_code: int = 200,
    text: str | None = None,
    method: str = "GET",
    url: str = "https://www.googleapis.com/test",
) -> httpx.Response:
    """Create a real httpx Response bound to a request."""
    request = httpx.Request(method, url)
    if text is not None:
        return httpx.Response(status_code, text=text, request=request)
    if json_data is None:
        return httpx.Response(status_code, request=request)
    return httpx.Response(status_code, json=json_data, request=request)


def _google_error(code: int, message: str) -> httpx.Response:
    """Create a Google style JSON error response."""
    return _make_response(
        {"error": {"code": code, "message": message, "errors": [{"message": message}]}},
        status_code=code,
    )


@pytest.fixture
def mock_http_client() -> MagicMock:
    """Create an httpx.AsyncClient whose request() is an AsyncMock."""
    client = MagicMock(spec=httpx.AsyncClient)
    client.request = AsyncMock()
    return client


@pytest.fixture
def apis(mock_google_credentials: MagicMock, mock_http_client: MagicMock) -> GoogleAPIs:
    """Create GoogleAPIs over the mocked HTTP client."""
    return GoogleAPIs(mock_google_credentials, mock_http_client)


@pytest.fixture
def make_response():
    """Factory for real httpx responses."""
    return _make_response


@pytest.fixture
def google_error():
    """Factory for Google JSON error responses."""
    return _google_error
