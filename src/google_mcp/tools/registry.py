"""Tool catalog and dispatch.

``TOOLS`` is what ``list_tools`` advertises; ``TOOL_HANDLERS`` maps each
tool name to its handler. Both are built from the same table so a tool can
not be listed without being callable.
"""

import logging
from typing import Any

from mcp.types import Tool

from google_mcp.errors import ErrorResponse, ErrorType
from google_mcp.tools import calendar, docs, drive
from google_mcp.tools.api import GoogleAPIs
from google_mcp.tools.responses import ToolHandler, ToolResponse

logger = logging.getLogger(__name__)


def _string(description: str, enum: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "string", "description": description}
    if enum:
        schema["enum"] = enum
    return schema


def _number(description: str) -> dict[str, Any]:
    return {"type": "number", "description": description}


def _emails(description: str) -> dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "description": description}


def _schema(properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


_FILE_ID = _string("The ID of the file")
_DOCUMENT_ID = _string("The ID of the Google Doc")
_CALENDAR_ID = _string("Calendar ID")
_DEFAULT_CALENDAR_ID = _string('Calendar ID (default: "primary")')
_EVENT_ID = _string("Event ID")

_CATALOG: list[tuple[Tool, ToolHandler]] = [
    # Drive
    (
        Tool(
            name="drive_list_files",
            description=(
                "List and search files in Google Drive with optional filters for name, "
                "type, folder, and modification date"
            ),
            inputSchema=_schema(
                {
                    "query": _string(
                        "Search query (e.g., \"name contains 'report'\", "
                        "\"mimeType='application/pdf'\")"
                    ),
                    "maxResults": _number("Maximum number of files to return (default: 10, max: 100)"),
                    "orderBy": _string('Sort order (e.g., "modifiedTime desc", "name")'),
                    "pageToken": _string("Token for pagination to get next page of results"),
                }
            ),
        ),
        drive.list_files,
    ),
    (
        Tool(
            name="drive_get_file_metadata",
            description="Get detailed metadata for a specific file in Google Drive",
            inputSchema=_schema({"fileId": _FILE_ID}, ["fileId"]),
        ),
        drive.get_file_metadata,
    ),
    (
        Tool(
            name="drive_read_file",
            description=(
                "Read the contents of a file from Google Drive (text files, Google Docs, Sheets, etc.)"
            ),
            inputSchema=_schema(
                {
                    "fileId": _string("The ID of the file to read"),
                    "mimeType": _string(
                        "MIME type for export (for Google Docs/Sheets/Slides, "
                        'e.g., "text/plain", "application/pdf")'
                    ),
                },
                ["fileId"],
            ),
        ),
        drive.read_file,
    ),
    (
        Tool(
            name="drive_create_file",
            description="Create a new file in Google Drive with content",
            inputSchema=_schema(
                {
                    "name": _string("The name of the file"),
                    "content": _string("The content of the file"),
                    "mimeType": _string("MIME type of the file (default: text/plain)"),
                    "folderId": _string("The ID of the folder to create the file in (optional)"),
                },
                ["name", "content"],
            ),
        ),
        drive.create_file,
    ),
    (
        Tool(
            name="drive_update_file",
            description="Update the contents of an existing file in Google Drive",
            inputSchema=_schema(
                {
                    "fileId": _string("The ID of the file to update"),
                    "content": _string("The new content of the file"),
                },
                ["fileId", "content"],
            ),
        ),
        drive.update_file,
    ),
    (
        Tool(
            name="drive_create_folder",
            description="Create a new folder in Google Drive",
            inputSchema=_schema(
                {
                    "name": _string("The name of the folder"),
                    "parentFolderId": _string("The ID of the parent folder (optional)"),
                },
                ["name"],
            ),
        ),
        drive.create_folder,
    ),
    (
        Tool(
            name="drive_share_file",
            description="Share a file or folder with a specific user",
            inputSchema=_schema(
                {
                    "fileId": _string("The ID of the file or folder to share"),
                    "email": _string("Email address of the user to share with"),
                    "role": _string("Permission role", list(drive.SHARE_ROLES)),
                },
                ["fileId", "email", "role"],
            ),
        ),
        drive.share_file,
    ),
    # Docs
    (
        Tool(
            name="docs_read_document",
            description="Read the contents of a Google Doc",
            inputSchema=_schema(
                {
                    "documentId": _DOCUMENT_ID,
                    "format": _string("Output format", list(docs.READ_FORMATS)),
                },
                ["documentId"],
            ),
        ),
        docs.read_document,
    ),
    (
        Tool(
            name="docs_create_document",
            description="Create a new Google Doc",
            inputSchema=_schema(
                {
                    "title": _string("The title of the document"),
                    "content": _string("Initial content of the document (optional)"),
                },
                ["title"],
            ),
        ),
        docs.create_document,
    ),
    (
        Tool(
            name="docs_append_content",
            description="Append content to the end of a Google Doc",
            inputSchema=_schema(
                {"documentId": _DOCUMENT_ID, "content": _string("Content to append")},
                ["documentId", "content"],
            ),
        ),
        docs.append_content,
    ),
    (
        Tool(
            name="docs_replace_content",
            description="Find and replace text in a Google Doc",
            inputSchema=_schema(
                {
                    "documentId": _DOCUMENT_ID,
                    "findText": _string("Text to find"),
                    "replaceText": _string("Text to replace with"),
                    "matchCase": {
                        "type": "boolean",
                        "description": "Whether to match case (default: false)",
                    },
                },
                ["documentId", "findText", "replaceText"],
            ),
        ),
        docs.replace_content,
    ),
    (
        Tool(
            name="docs_insert_content",
            description="Insert content at a specific position in a Google Doc",
            inputSchema=_schema(
                {
                    "documentId": _DOCUMENT_ID,
                    "content": _string("Content to insert"),
                    "index": _number("Position to insert at (1 is the start of the body)"),
                },
                ["documentId", "content", "index"],
            ),
        ),
        docs.insert_content,
    ),
    (
        Tool(
            name="docs_get_structure",
            description="Get the outline/structure of a Google Doc (headings and their positions)",
            inputSchema=_schema({"documentId": _DOCUMENT_ID}, ["documentId"]),
        ),
        docs.get_structure,
    ),
    # Calendar
    (
        Tool(
            name="calendar_list_events",
            description="List events from Google Calendar within a time range",
            inputSchema=_schema(
                {
                    "calendarId": _DEFAULT_CALENDAR_ID,
                    "timeMin": _string("Start time (ISO 8601 format)"),
                    "timeMax": _string("End time (ISO 8601 format)"),
                    "maxResults": _number("Maximum number of events (default: 10, max: 250)"),
                    "query": _string("Free text search terms"),
                }
            ),
        ),
        calendar.list_events,
    ),
    (
        Tool(
            name="calendar_get_event",
            description="Get details of a specific calendar event",
            inputSchema=_schema(
                {"calendarId": _CALENDAR_ID, "eventId": _EVENT_ID}, ["calendarId", "eventId"]
            ),
        ),
        calendar.get_event,
    ),
    (
        Tool(
            name="calendar_create_event",
            description="Create a new calendar event",
            inputSchema=_schema(
                {
                    "calendarId": _DEFAULT_CALENDAR_ID,
                    "summary": _string("Event title/summary"),
                    "start": _string("Start time (ISO 8601 format)"),
                    "end": _string("End time (ISO 8601 format)"),
                    "description": _string("Event description (optional)"),
                    "attendees": _emails("Email addresses of attendees (optional)"),
                    "location": _string("Event location (optional)"),
                },
                ["summary", "start", "end"],
            ),
        ),
        calendar.create_event,
    ),
    (
        Tool(
            name="calendar_update_event",
            description="Update an existing calendar event",
            inputSchema=_schema(
                {
                    "calendarId": _CALENDAR_ID,
                    "eventId": _EVENT_ID,
                    "summary": _string("Event title/summary (optional)"),
                    "start": _string("Start time (ISO 8601 format, optional)"),
                    "end": _string("End time (ISO 8601 format, optional)"),
                    "description": _string("Event description (optional)"),
                    "attendees": _emails("Email addresses of attendees (optional)"),
                    "location": _string("Event location (optional)"),
                },
                ["calendarId", "eventId"],
            ),
        ),
        calendar.update_event,
    ),
    (
        Tool(
            name="calendar_delete_event",
            description="Delete a calendar event",
            inputSchema=_schema(
                {"calendarId": _CALENDAR_ID, "eventId": _EVENT_ID}, ["calendarId", "eventId"]
            ),
        ),
        calendar.delete_event,
    ),
    (
        Tool(
            name="calendar_find_free_time",
            description="Find available time slots in a calendar",
            inputSchema=_schema(
                {
                    "calendarId": _DEFAULT_CALENDAR_ID,
                    "timeMin": _string("Start of search period (ISO 8601 format)"),
                    "timeMax": _string("End of search period (ISO 8601 format)"),
                    "duration": _number("Desired duration in minutes"),
                },
                ["timeMin", "timeMax", "duration"],
            ),
        ),
        calendar.find_free_time,
    ),
    (
        Tool(
            name="calendar_list_calendars",
            description="List all accessible calendars",
            inputSchema=_schema({}),
        ),
        calendar.list_calendars,
    ),
]

TOOLS: list[Tool] = [tool for tool, _ in _CATALOG]
TOOL_HANDLERS: dict[str, ToolHandler] = {tool.name: handler for tool, handler in _CATALOG}


async def handle_tool_call(
    name: str, arguments: dict[str, Any] | None, apis: GoogleAPIs
) -> ToolResponse:
    """Dispatch a tool call by name.

    Args:
        name: Tool name.
        arguments: Tool arguments, may be None.
        apis: Authenticated API access.

    Returns:
        The success envelope or a serialized ``ErrorResponse``. Unknown
        tools produce a ``ValidationError`` response.
    """
    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        logger.warning("Unknown tool requested: %s", name)
        return ErrorResponse(
            error_type=ErrorType.VALIDATION_ERROR, message=f"Unknown tool: {name}"
        ).to_dict()

    logger.debug("Calling tool %s", name)
    return await handler(arguments or {}, apis)
