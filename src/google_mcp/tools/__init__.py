"""MCP tools for Google Drive, Docs and Calendar.

Every handler takes ``(arguments, apis)`` and returns either
``{"success": True, "data": ...}`` or a serialized ``ErrorResponse``.
"""

from google_mcp.tools.api import GoogleAPIs
from google_mcp.tools.registry import TOOL_HANDLERS, TOOLS, handle_tool_call
from google_mcp.tools.responses import ToolResponse, success_response

__all__ = [
    "GoogleAPIs",
    "TOOLS",
    "TOOL_HANDLERS",
    "handle_tool_call",
    "ToolResponse",
    "success_response",
]
