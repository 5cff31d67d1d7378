"""MCP server for Google Drive, Docs and Calendar.

Drive Tools (7): list, metadata, read, create, update, create folder, share
Docs Tools (6): read, create, append, find/replace, insert, outline
Calendar Tools (7): list, get, create, update, delete events, free time,
list calendars

Transport: Stdio
Authentication: OAuth 2.0 with automatic token refresh
"""

from google_mcp.server.google_mcp_server import GoogleMCPServer, main


def create_server() -> GoogleMCPServer:
    """Create a server configured from the environment.

    Example:
        >>> server = create_server()
        >>> asyncio.run(server.run())
    """
    return GoogleMCPServer()


__all__ = ["create_server", "GoogleMCPServer", "main"]
