"""Authenticated access to the Google REST APIs used by the tools.

``GoogleAPIs`` wraps a shared ``httpx.AsyncClient`` and the credentials
returned by ``GoogleOAuthClient.get_client()``. Non-2xx answers raise
``httpx.HTTPStatusError``, which ``handle_error`` classifies by status code.
"""

import json
import logging
from typing import Any

import httpx
from google.oauth2.credentials import Credentials

logger = logging.getLogger(__name__)

# Google API base URLs
DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_BASE = "https://www.googleapis.com/upload/drive/v3"
DOCS_API_BASE = "https://docs.googleapis.com/v1"
CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"

MULTIPART_BOUNDARY = "google_mcp_boundary"


def _drop_none(params: dict[str, Any] | None) -> dict[str, Any] | None:
    # httpx would send None as an empty value
    if params is None:
        return None
    return {key: value for key, value in params.items() if value is not None}


class GoogleAPIs:
    """Google Drive, Docs and Calendar REST access for one tool call.

    Attributes:
        credentials: Authenticated google-auth credentials.
        http_client: Shared HTTP client with connection pooling.
    """

    def __init__(self, credentials: Credentials, http_client: httpx.AsyncClient) -> None:
        self.credentials = credentials
        self.http_client = http_client

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self.credentials.token}"}
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated JSON request.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Full URL to request.
            params: Optional query parameters. None values are dropped.
            json_data: Optional JSON body data.

        Returns:
            JSON response as a dictionary, empty for bodiless answers.

        Raises:
            httpx.HTTPStatusError: If the request fails.
        """
        logger.debug("%s %s", method, url)
        response = await self.http_client.request(
            method=method,
            url=url,
            params=_drop_none(params),
            json=json_data,
            headers=self._headers({"Accept": "application/json"}),
        )
        response.raise_for_status()
        if response.status_code == 204 or not response.content:
            return {}
        result: dict[str, Any] = response.json()
        return result

    async def request_raw(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
    ) -> httpx.Response:
        """Make an authenticated request returning the raw response.

        Raises:
            httpx.HTTPStatusError: If the request fails.
        """
        logger.debug("%s %s (raw)", method, url)
        response = await self.http_client.request(
            method=method,
            url=url,
            params=_drop_none(params),
            content=content,
            headers=self._headers(headers),
            timeout=timeout,
        )
        response.raise_for_status()
        return response

    async def upload(
        self,
        method: str,
        url: str,
        metadata: dict[str, Any],
        content: str,
        mime_type: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a Drive multipart upload (JSON metadata plus media).

        Raises:
            httpx.HTTPStatusError: If the request fails.
        """
        body_parts = [
            f"--{MULTIPART_BOUNDARY}",
            "Content-Type: application/json; charset=UTF-8",
            "",
            json.dumps(metadata),
            f"--{MULTIPART_BOUNDARY}",
            f"Content-Type: {mime_type}",
            "",
            content,
            f"--{MULTIPART_BOUNDARY}--",
        ]
        body = "\r\n".join(body_parts)

        response = await self.request_raw(
            method,
            url,
            params={"uploadType": "multipart", **(params or {})},
            content=body.encode("utf-8"),
            headers={"Content-Type": f"multipart/related; boundary={MULTIPART_BOUNDARY}"},
            timeout=60.0,
        )
        result: dict[str, Any] = response.json()
        return result
