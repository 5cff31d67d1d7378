"""Google MCP Server.

Expose Google Drive, Docs, and Calendar as MCP tools backed by a single
OAuth 2.0 credential stored on local disk.
"""

from google_mcp.__version__ import __version__

__all__ = ["__version__"]
