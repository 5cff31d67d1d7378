"""Google Drive tools: list, read, create, update, organize and share files."""

import logging
from typing import Any

from google_mcp.tools.api import DRIVE_API_BASE, DRIVE_UPLOAD_BASE, GoogleAPIs
from google_mcp.tools.responses import tool_handler
from google_mcp.utils.validators import (
    validate_email,
    validate_enum,
    validate_file_id,
    validate_number,
    validate_string,
)

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
GOOGLE_APPS_PREFIX = "application/vnd.google-apps."
SHARE_ROLES = ("reader", "writer", "commenter")

LIST_FIELDS = "nextPageToken, files(id, name, mimeType, modifiedTime, size, webViewLink, parents)"
CREATE_FIELDS = "id, name, mimeType, webViewLink"
UPDATE_FIELDS = "id, name, mimeType, modifiedTime, webViewLink"

# Export formats used when reading native Google files
EXPORT_MIME_TYPES = {
    "application/vnd.google-apps.document": "text/plain",
    "application/vnd.google-apps.spreadsheet": (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    ),
    "application/vnd.google-apps.presentation": (
        "application/vnd.openxmlformats-officedocument.presentationml.presentation"
    ),
    "application/vnd.google-apps.drawing": "image/png",
}


def default_export_mime_type(google_mime_type: str) -> str:
    return EXPORT_MIME_TYPES.get(google_mime_type, "text/plain")


def _file_summary(file: dict[str, Any]) -> dict[str, Any]:
    summary = {
        "id": file.get("id"),
        "name": file.get("name"),
        "mimeType": file.get("mimeType"),
        "modifiedTime": file.get("modifiedTime"),
    }
    for key in ("size", "webViewLink", "parents"):
        if file.get(key):
            summary[key] = file[key]
    return summary


@tool_handler
async def list_files(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    """List Drive files, optionally filtered by a Drive search query.

    Args:
        args: ``query``, ``maxResults`` (1-100, default 10), ``orderBy``
            and ``pageToken``, all optional.
        apis: Authenticated API access.

    Returns:
        ``{"files": [...], "nextPageToken": ...}``
    """
    max_results = args.get("maxResults")
    page_size = validate_number(max_results, "maxResults", 1, 100) if max_results else 10

    response = await apis.request(
        "GET",
        f"{DRIVE_API_BASE}/files",
        params={
            "q": args.get("query"),
            "pageSize": page_size,
            "orderBy": args.get("orderBy"),
            "pageToken": args.get("pageToken"),
            "fields": LIST_FIELDS,
        },
    )

    files = [_file_summary(f) for f in response.get("files", [])]
    return {"files": files, "nextPageToken": response.get("nextPageToken")}


@tool_handler
async def get_file_metadata(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    file_id = validate_file_id(args.get("fileId"))
    return await apis.request("GET", f"{DRIVE_API_BASE}/files/{file_id}", params={"fields": "*"})


@tool_handler
async def read_file(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    """Read a file's content as text.

    Native Google files (Docs, Sheets, Slides, Drawings) are exported, using
    ``mimeType`` from the arguments when given. Other files are downloaded.
    """
    file_id = validate_file_id(args.get("fileId"))

    metadata = await apis.request(
        "GET", f"{DRIVE_API_BASE}/files/{file_id}", params={"fields": "mimeType, name"}
    )
    mime_type = metadata.get("mimeType") or ""

    if mime_type.startswith(GOOGLE_APPS_PREFIX):
        export_mime_type = args.get("mimeType") or default_export_mime_type(mime_type)
        logger.debug("Exporting %s as %s", file_id, export_mime_type)
        response = await apis.request_raw(
            "GET",
            f"{DRIVE_API_BASE}/files/{file_id}/export",
            params={"mimeType": export_mime_type},
        )
    else:
        response = await apis.request_raw(
            "GET", f"{DRIVE_API_BASE}/files/{file_id}", params={"alt": "media"}
        )

    return {
        "fileName": metadata.get("name"),
        "mimeType": metadata.get("mimeType"),
        "content": response.text,
    }


@tool_handler
async def create_file(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    """Create a file with text content, optionally inside a folder."""
    name = validate_string(args.get("name"), "name")
    content = validate_string(args.get("content"), "content")
    mime_type = args.get("mimeType") or "text/plain"

    metadata: dict[str, Any] = {"name": name}
    folder_id = args.get("folderId")
    if folder_id:
        metadata["parents"] = [validate_file_id(folder_id, "folderId")]

    return await apis.upload(
        "POST",
        f"{DRIVE_UPLOAD_BASE}/files",
        metadata=metadata,
        content=content,
        mime_type=mime_type,
        params={"fields": CREATE_FIELDS},
    )


@tool_handler
async def update_file(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    """Replace a file's content, keeping its current MIME type."""
    file_id = validate_file_id(args.get("fileId"))
    content = validate_string(args.get("content"), "content")

    current = await apis.request(
        "GET", f"{DRIVE_API_BASE}/files/{file_id}", params={"fields": "mimeType"}
    )

    return await apis.upload(
        "PATCH",
        f"{DRIVE_UPLOAD_BASE}/files/{file_id}",
        metadata={},
        content=content,
        mime_type=current.get("mimeType") or "text/plain",
        params={"fields": UPDATE_FIELDS},
    )


@tool_handler
async def create_folder(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    name = validate_string(args.get("name"), "name")

    metadata: dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME_TYPE}
    parent_folder_id = args.get("parentFolderId")
    if parent_folder_id:
        metadata["parents"] = [validate_file_id(parent_folder_id, "parentFolderId")]

    return await apis.request(
        "POST",
        f"{DRIVE_API_BASE}/files",
        params={"fields": CREATE_FIELDS},
        json_data=metadata,
    )


@tool_handler
async def share_file(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    """Grant a user reader, writer or commenter access to a file."""
    file_id = validate_file_id(args.get("fileId"))
    email = validate_email(args.get("email"))
    role = validate_enum(args.get("role"), "role", SHARE_ROLES)

    permission = await apis.request(
        "POST",
        f"{DRIVE_API_BASE}/files/{file_id}/permissions",
        params={"fields": "id, emailAddress, role, type"},
        json_data={"type": "user", "role": role, "emailAddress": email},
    )

    return {
        "permissionId": permission.get("id"),
        "emailAddress": permission.get("emailAddress"),
        "role": permission.get("role"),
        "message": f"File shared with {email} as {role}",
    }
