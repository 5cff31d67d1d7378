"""Google Docs tools.

Documents are read through ``documents.get`` and edited through
``documents.batchUpdate``. Text positions are Docs body indices, where the
first writable position is 1.
"""

from typing import Any

from google_mcp.errors import create_validation_error
from google_mcp.tools.api import DOCS_API_BASE, GoogleAPIs
from google_mcp.tools.responses import tool_handler
from google_mcp.utils.validators import (
    validate_document_id,
    validate_enum,
    validate_number,
    validate_required,
    validate_string,
)

READ_FORMATS = ("text", "markdown")
HEADING_PREFIX = "HEADING_"
TABLE_PLACEHOLDER = "[Table content]"


def document_url(document_id: str) -> str:
    return f"https://docs.google.com/document/d/{document_id}/edit"


def _heading_level(paragraph: dict[str, Any]) -> int | None:
    style = paragraph.get("paragraphStyle", {}).get("namedStyleType") or ""
    if not style.startswith(HEADING_PREFIX):
        return None
    try:
        return int(style[len(HEADING_PREFIX) :])
    except ValueError:
        return None


def _paragraph_text(paragraph: dict[str, Any]) -> str:
    runs = (
        element.get("textRun", {}).get("content") or ""
        for element in paragraph.get("elements", [])
    )
    return "".join(runs)


def extract_text(document: dict[str, Any], markdown: bool = False) -> str:
    """Flatten a document body to text, one line per non-empty paragraph.

    Tables are replaced with a placeholder line. With ``markdown`` set,
    headings get a ``#`` prefix matching their level.
    """
    lines = []
    for element in document.get("body", {}).get("content", []):
        if "paragraph" in element:
            paragraph = element["paragraph"]
            text = _paragraph_text(paragraph).strip()
            level = _heading_level(paragraph)
            if markdown and level is not None:
                text = f"{'#' * level} {text}".strip()
            if text:
                lines.append(text)
        elif "table" in element:
            lines.append(TABLE_PLACEHOLDER)
    return "\n".join(lines)


def extract_headings(document: dict[str, Any]) -> list[dict[str, Any]]:
    headings = []
    for element in document.get("body", {}).get("content", []):
        paragraph = element.get("paragraph")
        if not paragraph:
            continue
        level = _heading_level(paragraph)
        text = _paragraph_text(paragraph).strip()
        if level is not None and text:
            headings.append({"level": level, "text": text, "index": element.get("startIndex", 0)})
    return headings


async def _batch_update(
    apis: GoogleAPIs, document_id: str, requests: list[dict[str, Any]]
) -> dict[str, Any]:
    return await apis.request(
        "POST",
        f"{DOCS_API_BASE}/documents/{document_id}:batchUpdate",
        json_data={"requests": requests},
    )


def _insert_text(index: int, text: str) -> dict[str, Any]:
    return {"insertText": {"location": {"index": index}, "text": text}}


@tool_handler
async def read_document(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    document_id = validate_document_id(args.get("documentId"))
    fmt = validate_enum(args.get("format") or "text", "format", READ_FORMATS)

    document = await apis.request("GET", f"{DOCS_API_BASE}/documents/{document_id}")

    return {
        "documentId": document.get("documentId"),
        "title": document.get("title"),
        "content": extract_text(document, markdown=fmt == "markdown"),
    }


@tool_handler
async def create_document(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    """Create a document, optionally seeding it with initial content."""
    title = validate_string(args.get("title"), "title")

    document = await apis.request("POST", f"{DOCS_API_BASE}/documents", json_data={"title": title})
    document_id = document["documentId"]

    content = args.get("content")
    if content:
        await _batch_update(apis, document_id, [_insert_text(1, content)])

    return {
        "documentId": document_id,
        "title": document.get("title"),
        "documentUrl": document_url(document_id),
    }


@tool_handler
async def append_content(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    """Append a new paragraph at the end of the document body."""
    document_id = validate_document_id(args.get("documentId"))
    content = validate_string(args.get("content"), "content")

    document = await apis.request("GET", f"{DOCS_API_BASE}/documents/{document_id}")
    body = document.get("body", {}).get("content") or [{}]
    end_index = body[-1].get("endIndex") or 1

    # The body always ends with a newline that cannot be written past
    await _batch_update(apis, document_id, [_insert_text(max(end_index - 1, 1), "\n" + content)])

    return {"message": "Content appended successfully", "documentId": document_id}


@tool_handler
async def replace_content(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    document_id = validate_document_id(args.get("documentId"))
    find_text = validate_string(args.get("findText"), "findText")
    replace_text = validate_required(args.get("replaceText"), "replaceText")
    # An empty replacement deletes the matches
    if not isinstance(replace_text, str):
        raise create_validation_error("replaceText must be a string")
    match_case = bool(args.get("matchCase", False))

    result = await _batch_update(
        apis,
        document_id,
        [
            {
                "replaceAllText": {
                    "containsText": {"text": find_text, "matchCase": match_case},
                    "replaceText": replace_text,
                }
            }
        ],
    )

    replies = result.get("replies") or [{}]
    count = replies[0].get("replaceAllText", {}).get("occurrencesChanged") or 0

    return {
        "message": f"Replaced {count} occurrence(s)",
        "replacementCount": count,
        "documentId": document_id,
    }


@tool_handler
async def insert_content(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    document_id = validate_document_id(args.get("documentId"))
    content = validate_string(args.get("content"), "content")
    index = int(validate_number(args.get("index"), "index", min_value=1))

    await _batch_update(apis, document_id, [_insert_text(index, content)])

    return {"message": f"Content inserted at index {index}", "documentId": document_id}


@tool_handler
async def get_structure(args: dict[str, Any], apis: GoogleAPIs) -> dict[str, Any]:
    """Return the document's heading outline."""
    document_id = validate_document_id(args.get("documentId"))

    document = await apis.request("GET", f"{DOCS_API_BASE}/documents/{document_id}")

    return {
        "documentId": document.get("documentId"),
        "title": document.get("title"),
        "structure": {"headings": extract_headings(document)},
    }
