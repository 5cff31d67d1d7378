"""Google MCP server for Drive, Docs and Calendar.

Each tool call fetches credentials from the ``GoogleOAuthClient`` (which
refreshes them when they are about to expire), then dispatches to the tool
handler. Failures never escape as protocol errors: they are classified by
``handle_error`` and returned as JSON text content.
"""

import asyncio
import json
import logging
from typing import Any

import httpx
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from google_mcp.auth import GoogleOAuthClient, create_oauth_client
from google_mcp.errors import create_auth_error, handle_error
from google_mcp.tools import TOOLS, GoogleAPIs, handle_tool_call

logger = logging.getLogger(__name__)

SERVER_NAME = "google-mcp"


class GoogleMCPServer:
    """MCP server exposing Google Drive, Docs and Calendar tools.

    Attributes:
        server: MCP Server instance.
        oauth_client: Session manager providing fresh credentials.
    """

    def __init__(self, oauth_client: GoogleOAuthClient | None = None) -> None:
        """Initialize the server.

        Args:
            oauth_client: Session manager. Defaults to one configured from
                the environment.
        """
        self.server = Server(SERVER_NAME)
        self.oauth_client = oauth_client or create_oauth_client()
        self._http_client: httpx.AsyncClient | None = None
        self._setup_handlers()
        logger.info("Google MCP Server initialized")

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create shared HTTP client with connection pooling."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                http2=True,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release resources."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _setup_handlers(self) -> None:
        """Register MCP tool handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            return self.list_tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            return await self.call_tool(name, arguments)

    def list_tools(self) -> list[Tool]:
        """Return the tool catalog."""
        return list(TOOLS)

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        """Run one tool call and render its result as JSON text.

        Args:
            name: Tool name.
            arguments: Tool arguments.

        Returns:
            A single text item holding the success envelope or error record.
        """
        logger.debug("Tool called: %s", name)
        try:
            credentials = await self.oauth_client.get_client()
            apis = GoogleAPIs(credentials, await self._get_http_client())
            result = await handle_tool_call(name, arguments, apis)
        except Exception as e:
            result = handle_error(e).to_dict()
            logger.error("Tool error: %s", name)

        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    async def run(self) -> None:
        """Run the MCP server using stdio transport.

        Raises:
            GoogleMCPError: If no credentials are stored.
        """
        if not await self.oauth_client.is_authenticated():
            logger.warning("Not authenticated. Please run authentication first.")
            logger.warning("Set GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET environment variables.")
            logger.warning("Then run: google-mcp auth")
            raise create_auth_error("Not authenticated", list(self.oauth_client.scopes))

        logger.info("Google MCP Server running on stdio")
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            await self.close()


def main() -> None:
    """Entry point for the Google MCP server."""
    server = GoogleMCPServer()
    asyncio.run(server.run())
