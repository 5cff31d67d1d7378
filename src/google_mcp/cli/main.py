"""Command-line interface for google-mcp.

Environment Variables:
    GOOGLE_CLIENT_ID: OAuth 2.0 client ID (required)
    GOOGLE_CLIENT_SECRET: OAuth 2.0 client secret (required)
    GOOGLE_REDIRECT_URI: OAuth redirect URI (default: http://localhost:3000/oauth/callback)
    TOKEN_STORAGE_PATH: Path to store tokens (default: ~/.google-mcp/tokens.json)
    LOG_LEVEL: Logging level: debug, info, warn, error (default: info)
"""

import asyncio
import logging
import sys

import click

from google_mcp.__version__ import __version__
from google_mcp.auth import SessionState, create_oauth_client, granted_groups
from google_mcp.errors import GoogleMCPError

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(level_name: str) -> None:
    """Send log output to stderr at the requested level.

    stdout carries the MCP protocol, so it must stay clean.
    """
    level = LOG_LEVELS.get(level_name.lower(), logging.INFO)
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _fail(message: str) -> None:
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    envvar="LOG_LEVEL",
    default="info",
    show_default=True,
    type=click.Choice(sorted(LOG_LEVELS), case_sensitive=False),
    help="Logging level",
)
@click.pass_context
def main(ctx: click.Context, log_level: str) -> None:
    """Google MCP Server - Google Drive, Docs and Calendar tools over MCP.

    Run without a command to start the MCP server.
    """
    configure_logging(log_level)
    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


@main.command()
def auth() -> None:
    """Run the OAuth authentication flow.

    Opens the Google consent page, waits for the redirect on the local
    callback URI and stores the tokens at TOKEN_STORAGE_PATH.
    """
    try:
        client = create_oauth_client()
        click.echo("Starting OAuth authentication flow...", err=True)
        asyncio.run(client.authenticate())
    except GoogleMCPError as e:
        _fail(f"Authentication failed: {e.message}")
    except Exception as e:
        _fail(f"Authentication failed: {e}")

    click.echo("✓ Authentication complete. You can now start the server.", err=True)
    click.echo(f"Token stored at: {client.token_path}", err=True)


@main.command()
def revoke() -> None:
    """Revoke stored credentials with Google and delete them locally."""
    try:
        client = create_oauth_client()
        asyncio.run(client.revoke())
    except GoogleMCPError as e:
        _fail(f"Revocation failed: {e.message}")

    click.echo("✓ Credentials revoked.", err=True)


@main.command()
def serve() -> None:
    """Start the MCP server on stdio.

    Authentication is required before starting the server.
    Run 'google-mcp auth' if not already authenticated.
    """
    from google_mcp.server import GoogleMCPServer

    try:
        server = GoogleMCPServer()
        asyncio.run(server.run())
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)
    except GoogleMCPError as e:
        _fail(e.message)


@main.command()
def status() -> None:
    """Show the state of the stored credentials."""
    try:
        client = create_oauth_client()
    except GoogleMCPError as e:
        _fail(e.message)

    state, record = client.get_status()

    click.echo("Google MCP Status:")
    click.echo(f"  Token file: {client.token_path}")

    if state == SessionState.NO_CREDENTIAL:
        click.echo("  ❌ Not authenticated")
        click.echo("")
        click.echo("Run 'google-mcp auth' to authenticate.")
        sys.exit(1)

    if state == SessionState.NEAR_EXPIRY:
        click.echo("  ⚠️  Token expired or about to expire (refreshes automatically on use)")
    else:
        click.echo("  ✓ Authenticated")

    if record.expiry is not None:
        click.echo(f"  Token expires: {record.expiry.strftime('%Y-%m-%d %H:%M:%S UTC')}")
    if record.scope:
        groups = granted_groups(record.scope)
        click.echo(f"  Access: {', '.join(groups) if groups else 'custom scopes'}")
    click.echo(f"  Refresh token: {'present' if record.refresh_token else 'missing'}")


if __name__ == "__main__":
    main()
