"""Response envelopes shared by all tool handlers."""

import functools
from collections.abc import Awaitable, Callable
from typing import Any

from google_mcp.errors import handle_error
from google_mcp.tools.api import GoogleAPIs

ToolResponse = dict[str, Any]
ToolHandler = Callable[[dict[str, Any], GoogleAPIs], Awaitable[ToolResponse]]


def success_response(data: Any) -> ToolResponse:
    return {"success": True, "data": data}


def tool_handler(
    func: Callable[[dict[str, Any], GoogleAPIs], Awaitable[Any]],
) -> ToolHandler:
    """Wrap a handler so it returns the success envelope or a classified error."""

    @functools.wraps(func)
    async def wrapper(args: dict[str, Any], apis: GoogleAPIs) -> ToolResponse:
        try:
            data = await func(args, apis)
        except Exception as e:
            return handle_error(e).to_dict()
        return success_response(data)

    return wrapper
