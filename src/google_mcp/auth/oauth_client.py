"""OAuth session manager for Google MCP.

Handles the whole lifecycle of the installation's single OAuth grant:
interactive authorization, expiry detection, transparent refresh and
revocation. Persistence goes through ``TokenStore``; failures are raised as
``GoogleMCPError`` so the tool layer can classify them.

The interactive flow runs a one-shot HTTP listener on the redirect URI
(default http://localhost:3000/oauth/callback) and exchanges the returned
authorization code using google-auth-oauthlib.
"""

import asyncio
import logging
import secrets
import sys
import time
import webbrowser
from datetime import timezone
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from urllib.parse import parse_qs, urlparse

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from google_mcp.auth.config import (
    DEFAULT_CALLBACK_PATH,
    DEFAULT_OAUTH_HOST,
    DEFAULT_OAUTH_PORT,
    OAuthConfig,
)
from google_mcp.auth.models import (
    CredentialRecord,
    SessionEvent,
    SessionState,
    evaluate_credentials,
    next_state,
)
from google_mcp.auth.token_store import TokenStore
from google_mcp.errors import (
    ErrorType,
    GoogleMCPError,
    TokenStorageError,
    create_auth_error,
)

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"  # nosec B105
GOOGLE_REVOKE_URI = "https://oauth2.googleapis.com/revoke"

SUCCESS_PAGE = b"""<!DOCTYPE html>
<html>
  <head><title>Authentication Successful</title></head>
  <body>
    <h1>Authentication Successful!</h1>
    <p>You can close this window and return to the application.</p>
  </body>
</html>
"""


class _CallbackOutcome:
    """Result of the single terminal callback."""

    def __init__(self) -> None:
        self.record: CredentialRecord | None = None
        self.error: BaseException | None = None

    @property
    def done(self) -> bool:
        return self.record is not None or self.error is not None


def _authorization_failed(message: str) -> GoogleMCPError:
    return GoogleMCPError(
        ErrorType.AUTH_ERROR,
        message,
        {
            "code": "AUTHORIZATION_FAILED",
            "remediation": "Run the authentication flow again and approve access",
        },
    )


class GoogleOAuthClient:
    """OAuth session manager for Google Drive, Docs and Calendar.

    Attributes:
        config: OAuth settings for this installation.
        scopes: Scopes requested during authorization. Fixed at construction.
        store: Credential persistence.
        state: Last known session state.

    Example:
        ```python
        client = GoogleOAuthClient(OAuthConfig(client_id="...", client_secret="..."))

        # One time, interactive
        await client.authenticate()

        # Before every API call
        credentials = await client.get_client()
        ```
    """

    def __init__(
        self,
        config: OAuthConfig,
        store: TokenStore | None = None,
        open_browser: bool = True,
    ) -> None:
        """Initialize the session manager.

        Args:
            config: OAuth settings. Client ID and secret are required.
            store: Credential store. Defaults to one at ``config.token_path``.
            open_browser: Try to open the authorization URL in a browser.
        """
        self.config = config
        self.scopes: tuple[str, ...] = tuple(config.scopes)
        self.redirect_uri = config.redirect_uri
        self.store = store or TokenStore(config.token_path)
        self.open_browser = open_browser
        self.state = SessionState.NO_CREDENTIAL
        self._credentials: Credentials | None = None

        logger.debug(
            "OAuth client initialized (redirect_uri=%s, scopes=%s)",
            self.redirect_uri,
            list(self.scopes),
        )

    @property
    def token_path(self) -> Path:
        """Get the credential file path."""
        return self.store.token_path

    def _client_config(self) -> dict:
        return {
            "web": {
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }

    def _record_to_credentials(self, record: CredentialRecord) -> Credentials:
        """Convert a stored record to google-auth Credentials."""
        # google-auth compares against naive UTC datetimes
        expiry = None
        if record.expiry is not None:
            expiry = record.expiry.astimezone(timezone.utc).replace(tzinfo=None)

        return Credentials(
            token=record.access_token,
            refresh_token=record.refresh_token,
            token_uri=GOOGLE_TOKEN_URI,
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
            scopes=list(self.scopes),
            expiry=expiry,
        )

    def _credentials_to_record(
        self,
        credentials: Credentials,
        previous: CredentialRecord | None = None,
    ) -> CredentialRecord:
        """Convert google-auth Credentials to a storable record.

        Args:
            credentials: Credentials after an exchange or refresh.
            previous: Record being replaced. Its refresh token is kept when
                Google does not issue a new one.
        """
        refresh_token = credentials.refresh_token
        if not refresh_token and previous is not None:
            refresh_token = previous.refresh_token

        granted = getattr(credentials, "granted_scopes", None) or credentials.scopes
        scope = " ".join(granted) if isinstance(granted, (list, tuple, set, frozenset)) else None

        return CredentialRecord(  # nosec B106 - "Bearer" is the OAuth token type
            access_token=credentials.token,
            refresh_token=refresh_token,
            expiry=credentials.expiry,
            token_type="Bearer",
            scope=scope or None,
        )

    async def get_client(self) -> Credentials:
        """Get ready-to-use credentials, refreshing them if about to expire.

        Returns:
            Authenticated google-auth Credentials.

        Raises:
            GoogleMCPError: AuthError if no credentials are stored or the
                refresh fails. Interactive authentication is then required.
            TokenStorageError: If refreshed credentials cannot be saved.
        """
        record = self.store.load()
        self.state = next_state(self.state, SessionEvent.LOADED, evaluate_credentials(record))

        if record is None:
            raise create_auth_error(
                "Not authenticated. Please run the OAuth flow first.",
                list(self.scopes),
            )

        self._credentials = self._record_to_credentials(record)

        if self.state == SessionState.NEAR_EXPIRY:
            logger.info("Token expired, refreshing...")
            await self._refresh_token(record)

        return self._credentials

    async def _refresh_token(self, record: CredentialRecord) -> None:
        """Exchange the refresh token for a new access token and persist it.

        A failed refresh is not retried: the refresh token may have been
        revoked, so the user has to authenticate again.
        """
        credentials = self._credentials
        self.state = next_state(self.state, SessionEvent.REFRESH_STARTED)

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, credentials.refresh, Request())
        except GoogleAuthError as e:
            self.state = next_state(self.state, SessionEvent.REFRESH_FAILED)
            logger.error("Failed to refresh token: %s", e)
            raise create_auth_error(
                "Failed to refresh authentication token. Please re-authenticate."
            ) from e

        new_record = self._credentials_to_record(credentials, previous=record)
        try:
            self.store.save(new_record)
        except TokenStorageError:
            self.state = next_state(self.state, SessionEvent.REFRESH_FAILED)
            raise

        self.state = next_state(self.state, SessionEvent.REFRESH_SUCCEEDED)
        logger.info("Token refreshed successfully")

    async def authenticate(self) -> CredentialRecord:
        """Run the interactive authorization-code flow.

        Prints the authorization URL, waits for Google to redirect back to
        the local listener, exchanges the code and saves the tokens.

        Returns:
            The saved credential record.

        Raises:
            GoogleMCPError: If the callback reports an error or carries no code.
            OSError: If the listener cannot bind its port.
            Exception: Whatever the token exchange or save raised.
        """
        loop = asyncio.get_running_loop()
        record = await loop.run_in_executor(None, self._run_oauth_flow)

        self.state = next_state(self.state, SessionEvent.AUTHORIZED)
        logger.info("Authentication successful")
        return record

    def _run_oauth_flow(self) -> CredentialRecord:
        """Run the OAuth flow (blocking operation).

        Returns:
            The saved credential record.
        """
        flow = Flow.from_client_config(
            self._client_config(),
            scopes=list(self.scopes),
            redirect_uri=self.redirect_uri,
        )

        # Generate state for CSRF protection
        state = secrets.token_urlsafe(32)

        # prompt=consent makes Google issue a refresh token on every authorization
        auth_url, _ = flow.authorization_url(
            access_type="offline",
            prompt="consent",
            state=state,
        )

        parsed = urlparse(self.redirect_uri)
        host = parsed.hostname or DEFAULT_OAUTH_HOST
        port = parsed.port or DEFAULT_OAUTH_PORT
        callback_path = parsed.path or DEFAULT_CALLBACK_PATH

        outcome = _CallbackOutcome()
        manager = self

        class OAuthCallbackHandler(BaseHTTPRequestHandler):
            """HTTP handler for the OAuth redirect."""

            def log_message(self, format: str, *args) -> None:
                """Route HTTP server logs through logging."""
                logger.debug("OAuth callback: " + format, *args)

            def _respond(self, status: int, body: bytes, content_type: str = "text/plain") -> None:
                self.send_response(status)
                self.send_header("Content-Type", content_type)
                self.end_headers()
                self.wfile.write(body)

            def do_GET(self) -> None:
                """Handle GET request from OAuth redirect."""
                request_parsed = urlparse(self.path)

                if request_parsed.path != callback_path:
                    self._respond(404, b"Not Found")
                    return

                query_params = parse_qs(request_parsed.query)

                if "error" in query_params:
                    error = query_params["error"][0]
                    self._respond(400, f"Authentication error: {error}".encode())
                    outcome.error = _authorization_failed(f"OAuth error: {error}")
                    return

                if query_params.get("state", [None])[0] != state:
                    self._respond(400, b"Invalid state parameter")
                    outcome.error = _authorization_failed("OAuth state mismatch")
                    return

                code = query_params.get("code", [None])[0]
                if not code:
                    self._respond(400, b"No authorization code received")
                    outcome.error = _authorization_failed("No authorization code")
                    return

                try:
                    flow.fetch_token(code=code)
                    record = manager._credentials_to_record(flow.credentials)
                    manager.store.save(record)
                except Exception as e:
                    logger.error("OAuth callback error: %s", e)
                    self._respond(500, b"Internal server error")
                    outcome.error = e
                    return

                manager._credentials = flow.credentials
                self._respond(200, SUCCESS_PAGE, "text/html")
                outcome.record = record

        timeout = self.config.callback_timeout
        with HTTPServer((host, port), OAuthCallbackHandler) as server:
            server.timeout = timeout
            self._emit_authorization_url(auth_url)

            deadline = time.monotonic() + timeout if timeout is not None else None
            while not outcome.done:
                server.handle_request()
                if deadline is not None and not outcome.done and time.monotonic() >= deadline:
                    raise _authorization_failed("Timed out waiting for the OAuth callback")

        if outcome.error is not None:
            raise outcome.error

        return outcome.record

    def _emit_authorization_url(self, auth_url: str) -> None:
        """Show the authorization URL to the user."""
        logger.info("Please visit this URL to authenticate:")
        print(f"\n{auth_url}\n", file=sys.stderr)

        if self.open_browser:
            try:
                webbrowser.open(auth_url)
            except webbrowser.Error as e:
                logger.warning("Could not open browser: %s", e)

    async def revoke(self) -> None:
        """Revoke the grant upstream and delete the local credentials.

        Raises:
            GoogleMCPError: If nothing is stored or Google rejects the revocation.
        """
        record = self.store.load()
        current = evaluate_credentials(record)
        if record is None:
            raise create_auth_error("Not authenticated. No credentials to revoke.", list(self.scopes))

        # Revoking the refresh token invalidates the whole grant
        token = record.refresh_token or record.access_token
        try:
            await self._revoke_upstream(token)
        except httpx.HTTPError as e:
            logger.error("Failed to revoke credentials: %s", e)
            raise GoogleMCPError(
                ErrorType.API_ERROR,
                "Failed to revoke credentials",
                {
                    "code": "REVOKE_FAILED",
                    "reason": str(e),
                    "remediation": "Check your network connection and try again",
                },
            ) from e

        self.state = next_state(current, SessionEvent.REVOKED)
        self._credentials = None
        self.store.delete()
        self.state = next_state(self.state, SessionEvent.CLEARED)
        logger.info("Credentials revoked and cleared")

    async def _revoke_upstream(self, token: str) -> None:
        """POST the token to Google's revocation endpoint.

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx answer.
        """
        async with httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=10.0)) as client:
            response = await client.post(GOOGLE_REVOKE_URI, data={"token": token})
            response.raise_for_status()

    async def is_authenticated(self) -> bool:
        """Check whether credentials are stored.

        Advisory only: any unexpected failure reports False.
        """
        try:
            return self.store.load() is not None
        except Exception as e:
            logger.warning("Authentication check failed: %s", e)
            return False

    def get_status(self) -> tuple[SessionState, CredentialRecord | None]:
        """Get the state of the stored credentials.

        Returns:
            Tuple of (SessionState, CredentialRecord or None).
        """
        record = self.store.load()
        return evaluate_credentials(record), record


def create_oauth_client(
    config: OAuthConfig | None = None,
    store: TokenStore | None = None,
) -> GoogleOAuthClient:
    """Create an OAuth client, reading the environment if no config is given.

    Raises:
        GoogleMCPError: If GOOGLE_CLIENT_ID or GOOGLE_CLIENT_SECRET is missing.
    """
    return GoogleOAuthClient(config or OAuthConfig.from_env(), store=store)
