"""Unit tests for GoogleOAuthClient.

Tests cover credential loading, automatic refresh, the interactive
authorization flow and revocation. Google endpoints are never contacted.
"""

import io
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials

from google_mcp.auth.config import OAuthConfig
from google_mcp.auth.models import CredentialRecord, SessionState
from google_mcp.auth.oauth_client import (
    GOOGLE_REVOKE_URI,
    GoogleOAuthClient,
    create_oauth_client,
)
from google_mcp.auth.token_store import TokenStore
from google_mcp.errors import ErrorType, GoogleMCPError, TokenStorageError


def _fake_refresh(new_token: str = "refreshed_access_token"):
    def refresh(self: Credentials, request: Any) -> None:
        self.token = new_token
        self.expiry = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1)

    return refresh


@pytest.mark.unit
class TestGoogleOAuthClientInit:
    """Tests for construction and the factory."""

    def test_should_fix_scopes_and_redirect_uri(self, oauth_client: GoogleOAuthClient) -> None:
        assert oauth_client.redirect_uri == "http://localhost:3000/oauth/callback"
        assert "https://www.googleapis.com/auth/drive" in oauth_client.scopes
        assert "https://www.googleapis.com/auth/documents" in oauth_client.scopes
        assert "https://www.googleapis.com/auth/calendar" in oauth_client.scopes

    def test_should_start_without_credentials(self, oauth_client: GoogleOAuthClient) -> None:
        assert oauth_client.state == SessionState.NO_CREDENTIAL

    def test_should_default_store_to_config_path(self, oauth_config: OAuthConfig) -> None:
        client = GoogleOAuthClient(oauth_config)
        assert client.token_path == oauth_config.token_path

    def test_should_build_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GOOGLE_CLIENT_ID", "env-client-id")
        monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "env-secret")  # pragma: allowlist secret
        monkeypatch.setenv("TOKEN_STORAGE_PATH", "/tmp/google-mcp-test/tokens.json")

        client = create_oauth_client()

        assert client.config.client_id == "env-client-id"
        assert str(client.token_path) == "/tmp/google-mcp-test/tokens.json"

    def test_should_reject_missing_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GOOGLE_CLIENT_ID", raising=False)
        monkeypatch.delenv("GOOGLE_CLIENT_SECRET", raising=False)

        with pytest.raises(GoogleMCPError, match="GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET"):
            create_oauth_client()


@pytest.mark.unit
class TestGetClient:
    """Tests for GoogleOAuthClient.get_client()."""

    @pytest.mark.asyncio
    async def test_should_require_authentication_on_fresh_install(
        self, oauth_client: GoogleOAuthClient
    ) -> None:
        with pytest.raises(GoogleMCPError) as exc_info:
            await oauth_client.get_client()

        error = exc_info.value
        assert error.error_type == ErrorType.AUTH_ERROR
        assert error.message == "Not authenticated. Please run the OAuth flow first."
        assert error.details["code"] == "INSUFFICIENT_PERMISSIONS"
        assert error.details["required_scopes"] == list(oauth_client.scopes)
        assert oauth_client.state == SessionState.NO_CREDENTIAL

    @pytest.mark.asyncio
    async def test_should_return_stored_credentials_without_refresh(
        self,
        oauth_client: GoogleOAuthClient,
        token_store: TokenStore,
        valid_record: CredentialRecord,
    ) -> None:
        token_store.save(valid_record)

        with patch.object(Credentials, "refresh", autospec=True) as mock_refresh:
            credentials = await oauth_client.get_client()

        mock_refresh.assert_not_called()
        assert credentials.token == "test_access_token_abc123"
        assert credentials.refresh_token == "test_refresh_token_xyz789"
        assert credentials.expiry.tzinfo is None
        assert oauth_client.state == SessionState.VALID

    @pytest.mark.asyncio
    async def test_should_refresh_near_expiry_token(
        self,
        oauth_client: GoogleOAuthClient,
        token_store: TokenStore,
        near_expiry_record: CredentialRecord,
    ) -> None:
        """Verify a token inside the window is refreshed and persisted."""
        token_store.save(near_expiry_record)

        with patch.object(
            Credentials, "refresh", autospec=True, side_effect=_fake_refresh()
        ) as mock_refresh:
            credentials = await oauth_client.get_client()

        mock_refresh.assert_called_once()
        assert credentials.token == "refreshed_access_token"
        assert oauth_client.state == SessionState.VALID

        stored = token_store.load()
        assert stored is not None
        assert stored.access_token == "refreshed_access_token"
        assert stored.refresh_token == "test_refresh_token"
        assert not stored.needs_refresh()

    @pytest.mark.asyncio
    async def test_should_refresh_expired_token(
        self,
        oauth_client: GoogleOAuthClient,
        token_store: TokenStore,
        expired_record: CredentialRecord,
    ) -> None:
        token_store.save(expired_record)

        with patch.object(Credentials, "refresh", autospec=True, side_effect=_fake_refresh("new")):
            credentials = await oauth_client.get_client()

        assert credentials.token == "new"

    @pytest.mark.asyncio
    async def test_should_not_refresh_token_without_expiry(
        self, oauth_client: GoogleOAuthClient, token_store: TokenStore
    ) -> None:
        token_store.save(CredentialRecord(access_token="forever", refresh_token="r"))

        with patch.object(Credentials, "refresh", autospec=True) as mock_refresh:
            credentials = await oauth_client.get_client()

        mock_refresh.assert_not_called()
        assert credentials.token == "forever"

    @pytest.mark.asyncio
    async def test_should_force_reauthentication_when_refresh_fails(
        self,
        oauth_client: GoogleOAuthClient,
        token_store: TokenStore,
        near_expiry_record: CredentialRecord,
    ) -> None:
        """Verify a rejected refresh leaves the stored record untouched."""
        token_store.save(near_expiry_record)
        before = token_store.token_path.read_text()

        with patch.object(
            Credentials, "refresh", autospec=True, side_effect=RefreshError("invalid_grant")
        ):
            with pytest.raises(GoogleMCPError) as exc_info:
                await oauth_client.get_client()

        assert exc_info.value.error_type == ErrorType.AUTH_ERROR
        assert exc_info.value.message == (
            "Failed to refresh authentication token. Please re-authenticate."
        )
        assert isinstance(exc_info.value.__cause__, RefreshError)
        assert token_store.token_path.read_text() == before
        assert oauth_client.state == SessionState.NEAR_EXPIRY

    @pytest.mark.asyncio
    async def test_should_propagate_save_failure_after_refresh(
        self,
        oauth_client: GoogleOAuthClient,
        token_store: TokenStore,
        near_expiry_record: CredentialRecord,
    ) -> None:
        token_store.save(near_expiry_record)

        with (
            patch.object(Credentials, "refresh", autospec=True, side_effect=_fake_refresh()),
            patch.object(token_store, "save", side_effect=TokenStorageError("disk full")),
        ):
            with pytest.raises(TokenStorageError):
                await oauth_client.get_client()

        assert oauth_client.state == SessionState.NEAR_EXPIRY

    @pytest.mark.asyncio
    async def test_should_recover_after_store_is_cleared(
        self,
        oauth_client: GoogleOAuthClient,
        token_store: TokenStore,
        valid_record: CredentialRecord,
    ) -> None:
        token_store.save(valid_record)
        await oauth_client.get_client()

        token_store.delete()

        with pytest.raises(GoogleMCPError):
            await oauth_client.get_client()
        assert oauth_client.state == SessionState.NO_CREDENTIAL


@pytest.mark.unit
class TestCredentialConversion:
    """Tests for converting google-auth Credentials to records."""

    def test_should_keep_previous_refresh_token(
        self, oauth_client: GoogleOAuthClient, mock_google_credentials: MagicMock
    ) -> None:
        mock_google_credentials.refresh_token = None
        previous = CredentialRecord(access_token="old", refresh_token="keep-me")

        record = oauth_client._credentials_to_record(mock_google_credentials, previous=previous)

        assert record.access_token == "mock_access_token"
        assert record.refresh_token == "keep-me"

    def test_should_join_scopes(
        self, oauth_client: GoogleOAuthClient, mock_google_credentials: MagicMock
    ) -> None:
        mock_google_credentials.granted_scopes = ["scope-a", "scope-b"]

        record = oauth_client._credentials_to_record(mock_google_credentials)

        assert record.scope == "scope-a scope-b"
        assert record.expiry is not None
        assert record.expiry.tzinfo == timezone.utc


class _FakeCallbackServer:
    """Stands in for HTTPServer, replaying a fixed list of request paths."""

    def __init__(self, paths: list[str]) -> None:
        self.paths = list(paths)
        self.responses: list[bytes] = []
        self.address: tuple[str, int] | None = None
        self.handler_cls: Any = None
        self.timeout: float | None = None
        self.closed = False

    def __call__(self, address: tuple[str, int], handler_cls: Any) -> "_FakeCallbackServer":
        self.address = address
        self.handler_cls = handler_cls
        return self

    def __enter__(self) -> "_FakeCallbackServer":
        return self

    def __exit__(self, *exc_info: Any) -> bool:
        self.closed = True
        return False

    def handle_request(self) -> None:
        # Like HTTPServer.handle_request after server.timeout with no request
        if not self.paths:
            return
        path = self.paths.pop(0)
        handler = self.handler_cls.__new__(self.handler_cls)
        handler.path = path
        handler.command = "GET"
        handler.request_version = "HTTP/1.1"
        handler.requestline = f"GET {path} HTTP/1.1"
        handler.client_address = ("127.0.0.1", 54321)
        handler.wfile = io.BytesIO()
        handler.do_GET()
        self.responses.append(handler.wfile.getvalue())


@pytest.fixture
def mock_flow(mock_google_credentials: MagicMock) -> MagicMock:
    """Create a mock google-auth-oauthlib Flow."""
    flow = MagicMock()
    flow.authorization_url.return_value = ("https://accounts.google.com/o/oauth2/auth?x=1", "s")
    flow.credentials = mock_google_credentials
    return flow


def _run_flow(
    client: GoogleOAuthClient, mock_flow: MagicMock, paths: list[str]
) -> tuple[_FakeCallbackServer, Any]:
    fake_server = _FakeCallbackServer(paths)
    with (
        patch("google_mcp.auth.oauth_client.Flow.from_client_config", return_value=mock_flow),
        patch("google_mcp.auth.oauth_client.HTTPServer", new=fake_server),
        patch("google_mcp.auth.oauth_client.secrets.token_urlsafe", return_value="state123"),
    ):
        try:
            result = client._run_oauth_flow()
        except Exception as e:
            result = e
    return fake_server, result


@pytest.mark.unit
class TestAuthorizationFlow:
    """Tests for the interactive authorization-code flow."""

    def test_should_exchange_code_and_save_tokens(
        self,
        oauth_client: GoogleOAuthClient,
        token_store: TokenStore,
        mock_flow: MagicMock,
    ) -> None:
        server, result = _run_flow(
            oauth_client, mock_flow, ["/oauth/callback?code=auth-code&state=state123"]
        )

        assert isinstance(result, CredentialRecord)
        assert result.access_token == "mock_access_token"
        assert result.refresh_token == "mock_refresh_token"
        mock_flow.fetch_token.assert_called_once_with(code="auth-code")
        assert server.address == ("localhost", 3000)
        assert server.responses[0].startswith(b"HTTP/1.0 200")
        assert b"Authentication Successful" in server.responses[0]
        assert server.closed

        stored = token_store.load()
        assert stored is not None
        assert stored.access_token == "mock_access_token"

    def test_should_request_offline_access_with_consent(
        self, oauth_client: GoogleOAuthClient, mock_flow: MagicMock
    ) -> None:
        _run_flow(oauth_client, mock_flow, ["/oauth/callback?code=c&state=state123"])

        mock_flow.authorization_url.assert_called_once_with(
            access_type="offline", prompt="consent", state="state123"
        )

    def test_should_ignore_unrelated_paths(
        self, oauth_client: GoogleOAuthClient, mock_flow: MagicMock
    ) -> None:
        server, result = _run_flow(
            oauth_client,
            mock_flow,
            ["/favicon.ico", "/oauth/callback?code=c&state=state123"],
        )

        assert isinstance(result, CredentialRecord)
        assert server.responses[0].startswith(b"HTTP/1.0 404")
        assert server.responses[1].startswith(b"HTTP/1.0 200")
        assert server.closed

    def test_should_fail_on_consent_error(
        self, oauth_client: GoogleOAuthClient, token_store: TokenStore, mock_flow: MagicMock
    ) -> None:
        server, result = _run_flow(
            oauth_client, mock_flow, ["/oauth/callback?error=access_denied&state=state123"]
        )

        assert isinstance(result, GoogleMCPError)
        assert result.error_type == ErrorType.AUTH_ERROR
        assert result.message == "OAuth error: access_denied"
        assert server.responses[0].startswith(b"HTTP/1.0 400")
        assert server.closed
        mock_flow.fetch_token.assert_not_called()
        assert token_store.load() is None

    def test_should_fail_on_state_mismatch(
        self, oauth_client: GoogleOAuthClient, mock_flow: MagicMock
    ) -> None:
        server, result = _run_flow(
            oauth_client, mock_flow, ["/oauth/callback?code=c&state=forged"]
        )

        assert isinstance(result, GoogleMCPError)
        assert result.message == "OAuth state mismatch"
        assert server.responses[0].startswith(b"HTTP/1.0 400")
        assert server.closed
        mock_flow.fetch_token.assert_not_called()

    def test_should_fail_without_code(
        self, oauth_client: GoogleOAuthClient, mock_flow: MagicMock
    ) -> None:
        server, result = _run_flow(oauth_client, mock_flow, ["/oauth/callback?state=state123"])

        assert isinstance(result, GoogleMCPError)
        assert result.message == "No authorization code"
        assert server.responses[0].startswith(b"HTTP/1.0 400")
        assert server.closed

    def test_should_fail_when_exchange_fails(
        self, oauth_client: GoogleOAuthClient, token_store: TokenStore, mock_flow: MagicMock
    ) -> None:
        mock_flow.fetch_token.side_effect = ValueError("invalid_grant")

        server, result = _run_flow(
            oauth_client, mock_flow, ["/oauth/callback?code=c&state=state123"]
        )

        assert isinstance(result, ValueError)
        assert server.responses[0].startswith(b"HTTP/1.0 500")
        assert server.closed
        assert token_store.load() is None

    def test_should_time_out_waiting_for_callback(
        self, oauth_config: OAuthConfig, token_store: TokenStore, mock_flow: MagicMock
    ) -> None:
        config = oauth_config.model_copy(update={"callback_timeout": 0.0})
        client = GoogleOAuthClient(config, store=token_store, open_browser=False)

        server, result = _run_flow(client, mock_flow, [])

        assert isinstance(result, GoogleMCPError)
        assert result.error_type == ErrorType.AUTH_ERROR
        assert result.message == "Timed out waiting for the OAuth callback"
        assert server.timeout == 0.0
        assert server.closed
        mock_flow.fetch_token.assert_not_called()
        assert token_store.load() is None

    def test_should_open_browser_when_enabled(
        self, oauth_config: OAuthConfig, token_store: TokenStore
    ) -> None:
        client = GoogleOAuthClient(oauth_config, store=token_store, open_browser=True)

        with patch("google_mcp.auth.oauth_client.webbrowser.open") as mock_open:
            client._emit_authorization_url("https://accounts.google.com/auth")

        mock_open.assert_called_once_with("https://accounts.google.com/auth")

    def test_should_not_open_browser_when_disabled(self, oauth_client: GoogleOAuthClient) -> None:
        with patch("google_mcp.auth.oauth_client.webbrowser.open") as mock_open:
            oauth_client._emit_authorization_url("https://accounts.google.com/auth")

        mock_open.assert_not_called()

    @pytest.mark.asyncio
    async def test_should_mark_session_valid_after_authentication(
        self, oauth_client: GoogleOAuthClient, valid_record: CredentialRecord
    ) -> None:
        with patch.object(oauth_client, "_run_oauth_flow", return_value=valid_record):
            record = await oauth_client.authenticate()

        assert record == valid_record
        assert oauth_client.state == SessionState.VALID


@pytest.mark.unit
class TestRevoke:
    """Tests for GoogleOAuthClient.revoke()."""

    @pytest.mark.asyncio
    async def test_should_revoke_and_clear_credentials(
        self,
        oauth_client: GoogleOAuthClient,
        token_store: TokenStore,
        valid_record: CredentialRecord,
    ) -> None:
        token_store.save(valid_record)

        with patch.object(oauth_client, "_revoke_upstream", new=AsyncMock()) as mock_revoke:
            await oauth_client.revoke()

        mock_revoke.assert_awaited_once_with("test_refresh_token_xyz789")
        assert not token_store.token_path.exists()
        assert oauth_client.state == SessionState.NO_CREDENTIAL

        with pytest.raises(GoogleMCPError) as exc_info:
            await oauth_client.get_client()
        assert exc_info.value.error_type == ErrorType.AUTH_ERROR

    @pytest.mark.asyncio
    async def test_should_revoke_access_token_without_refresh_token(
        self, oauth_client: GoogleOAuthClient, token_store: TokenStore
    ) -> None:
        token_store.save(CredentialRecord(access_token="only-access"))

        with patch.object(oauth_client, "_revoke_upstream", new=AsyncMock()) as mock_revoke:
            await oauth_client.revoke()

        mock_revoke.assert_awaited_once_with("only-access")

    @pytest.mark.asyncio
    async def test_should_keep_credentials_when_revocation_fails(
        self,
        oauth_client: GoogleOAuthClient,
        token_store: TokenStore,
        valid_record: CredentialRecord,
    ) -> None:
        token_store.save(valid_record)
        failure = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

        with patch.object(oauth_client, "_revoke_upstream", new=failure):
            with pytest.raises(GoogleMCPError) as exc_info:
                await oauth_client.revoke()

        assert exc_info.value.error_type == ErrorType.API_ERROR
        assert exc_info.value.details["code"] == "REVOKE_FAILED"
        assert token_store.load() == valid_record

    @pytest.mark.asyncio
    async def test_should_require_credentials_to_revoke(
        self, oauth_client: GoogleOAuthClient
    ) -> None:
        with pytest.raises(GoogleMCPError) as exc_info:
            await oauth_client.revoke()

        assert exc_info.value.error_type == ErrorType.AUTH_ERROR
        assert "No credentials to revoke" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_should_post_token_to_revocation_endpoint(
        self, oauth_client: GoogleOAuthClient
    ) -> None:
        http_client = MagicMock()
        http_client.post = AsyncMock(
            return_value=httpx.Response(200, request=httpx.Request("POST", GOOGLE_REVOKE_URI))
        )

        with patch("google_mcp.auth.oauth_client.httpx.AsyncClient") as mock_client_cls:
            mock_client_cls.return_value.__aenter__.return_value = http_client
            await oauth_client._revoke_upstream("token-to-revoke")

        http_client.post.assert_awaited_once_with(
            GOOGLE_REVOKE_URI, data={"token": "token-to-revoke"}
        )

    @pytest.mark.asyncio
    async def test_should_raise_when_revocation_rejected(
        self, oauth_client: GoogleOAuthClient
    ) -> None:
        http_client = MagicMock()
        http_client.post = AsyncMock(
            return_value=httpx.Response(
                400,
                json={"error": "invalid_token"},
                request=httpx.Request("POST", GOOGLE_REVOKE_URI),
            )
        )

        with patch("google_mcp.auth.oauth_client.httpx.AsyncClient") as mock_client_cls:
            mock_client_cls.return_value.__aenter__.return_value = http_client
            with pytest.raises(httpx.HTTPStatusError):
                await oauth_client._revoke_upstream("bad-token")


@pytest.mark.unit
class TestStatus:
    """Tests for is_authenticated() and get_status()."""

    @pytest.mark.asyncio
    async def test_should_report_not_authenticated(self, oauth_client: GoogleOAuthClient) -> None:
        assert await oauth_client.is_authenticated() is False

    @pytest.mark.asyncio
    async def test_should_report_authenticated(
        self,
        oauth_client: GoogleOAuthClient,
        token_store: TokenStore,
        expired_record: CredentialRecord,
    ) -> None:
        """Verify an expired but refreshable record still counts."""
        token_store.save(expired_record)
        assert await oauth_client.is_authenticated() is True

    @pytest.mark.asyncio
    async def test_should_report_false_on_unexpected_failure(
        self, oauth_client: GoogleOAuthClient, token_store: TokenStore
    ) -> None:
        with patch.object(token_store, "load", side_effect=RuntimeError("boom")):
            assert await oauth_client.is_authenticated() is False

    def test_should_return_state_and_record(
        self,
        oauth_client: GoogleOAuthClient,
        token_store: TokenStore,
        near_expiry_record: CredentialRecord,
    ) -> None:
        assert oauth_client.get_status() == (SessionState.NO_CREDENTIAL, None)

        token_store.save(near_expiry_record)
        state, record = oauth_client.get_status()

        assert state == SessionState.NEAR_EXPIRY
        assert record == near_expiry_record
