"""Error taxonomy and classification for Google MCP.

Every failure that reaches a tool boundary is turned into an ``ErrorResponse``
with one of four kinds:

- ``AuthError``: missing, expired or revoked credentials, insufficient scopes
- ``ValidationError``: malformed input or a resource ID that does not exist
- ``APIError``: generic upstream failure, including rate limiting
- ``NetworkError``: upstream server-side failure (5xx)

Example:
    ```python
    try:
        credentials = await oauth_client.get_client()
    except Exception as e:
        response = handle_error(e)
        if response.error_type == ErrorType.AUTH_ERROR:
            print(response.details.required_scopes)
    ```
"""

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

GENERIC_API_ERROR_MESSAGE = "An error occurred while calling the Google API"
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"

REMEDIATIONS = {
    401: "Please re-authenticate by running the OAuth flow again",
    403: "Check that you have the required permissions and OAuth scopes",
    404: "The requested resource was not found. Verify the ID is correct",
    429: "Rate limit exceeded. Please wait a moment and try again",
}
DEFAULT_REMEDIATION = "Please check your request and try again"


class ErrorType(str, Enum):
    """Fixed set of error kinds reported to callers."""

    AUTH_ERROR = "AuthError"
    VALIDATION_ERROR = "ValidationError"
    API_ERROR = "APIError"
    NETWORK_ERROR = "NetworkError"


class ErrorDetails(BaseModel):
    """Structured details attached to an error.

    Unknown keys are kept so callers can attach arbitrary context.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    code: str | None = Field(default=None, description="Machine readable error code")
    required_scopes: list[str] | None = Field(
        default=None, alias="requiredScopes", description="Scopes needed to resolve the error"
    )
    remediation: str | None = Field(default=None, description="How the user can fix it")


class ErrorResponse(BaseModel):
    """Uniform error envelope returned from every failed tool call."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    error: Literal[True] = True
    error_type: ErrorType = Field(..., alias="errorType")
    message: str
    details: ErrorDetails | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with wire field names, dropping unset details."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GoogleMCPError(Exception):
    """An already-classified failure.

    Attributes:
        error_type: Kind of error.
        message: Human readable message.
        details: Optional structured details.
    """

    def __init__(
        self,
        error_type: ErrorType,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.details = details

    def to_response(self) -> ErrorResponse:
        """Convert to the caller-visible error envelope."""
        return ErrorResponse(
            error_type=self.error_type,
            message=self.message,
            details=ErrorDetails(**self.details) if self.details else None,
        )


class TokenStorageError(Exception):
    """Raised when credentials cannot be written to disk."""


def handle_error(error: object) -> ErrorResponse:
    """Classify any failure into an ``ErrorResponse``.

    The first matching rule wins:

    1. ``GoogleMCPError`` is passed through unchanged.
    2. Anything exposing an upstream status code (``httpx.HTTPStatusError``,
       a Google error mapping, an object with an integer ``code``) is
       classified by that code.
    3. Other exceptions become ``APIError`` with their own message.
    4. Anything else becomes ``APIError`` with a fixed message.

    Args:
        error: The failure value.

    Returns:
        Classified error record. It is also logged at ERROR level.
    """
    if isinstance(error, GoogleMCPError):
        logger.error("%s: %s", error.error_type.value, error.message)
        return error.to_response()

    api_error = _extract_api_error(error)
    if api_error is not None:
        code, message = api_error
        logger.error("Google API Error (%s): %s", code, message)
        return ErrorResponse(
            error_type=_error_type_for_code(code),
            message=message,
            details=ErrorDetails(
                code=str(code) if code is not None else None,
                remediation=REMEDIATIONS.get(code, DEFAULT_REMEDIATION),
            ),
        )

    if isinstance(error, Exception) and str(error):
        logger.error("Unexpected error: %s", error)
        return ErrorResponse(error_type=ErrorType.API_ERROR, message=str(error))

    logger.error("Unexpected error: %r", error)
    return ErrorResponse(error_type=ErrorType.API_ERROR, message=UNEXPECTED_ERROR_MESSAGE)


def _extract_api_error(error: object) -> tuple[int | None, str] | None:
    """Pull (status code, message) out of an upstream failure.

    Returns:
        None when the value does not look like an upstream API error.
    """
    if isinstance(error, httpx.HTTPStatusError):
        code = error.response.status_code
        message, errors = _parse_error_body(error.response)
        return code, _pick_message(message, errors)

    if isinstance(error, Mapping):
        if "code" not in error and "errors" not in error:
            return None
        code = error.get("code")
        return _as_status(code), _pick_message(error.get("message"), error.get("errors"))

    code = getattr(error, "code", None)
    errors = getattr(error, "errors", None)
    if _as_status(code) is not None or isinstance(errors, list):
        return _as_status(code), _pick_message(getattr(error, "message", None), errors)

    return None


def _parse_error_body(response: httpx.Response) -> tuple[str | None, list | None]:
    """Read message/errors from a Google JSON error body."""
    try:
        body = response.json()
    except ValueError:
        return None, None

    if not isinstance(body, dict):
        return None, None

    error = body.get("error")
    if isinstance(error, dict):
        return error.get("message"), error.get("errors")
    # OAuth endpoints answer {"error": "invalid_grant", "error_description": "..."}
    if isinstance(error, str):
        return body.get("error_description") or error, None
    return None, None


def _as_status(code: object) -> int | None:
    if isinstance(code, bool) or not isinstance(code, int):
        return None
    return code


def _pick_message(message: object, errors: object) -> str:
    if isinstance(message, str) and message:
        return message
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, Mapping):
            return first.get("message") or "Unknown error"
        return "Unknown error"
    return GENERIC_API_ERROR_MESSAGE


def _error_type_for_code(code: int | None) -> ErrorType:
    if not code:
        return ErrorType.API_ERROR
    if code in (401, 403):
        return ErrorType.AUTH_ERROR
    if code == 429:
        return ErrorType.API_ERROR
    if code == 404:
        return ErrorType.VALIDATION_ERROR
    if code >= 500:
        return ErrorType.NETWORK_ERROR
    return ErrorType.API_ERROR


def create_auth_error(message: str, required_scopes: list[str] | None = None) -> GoogleMCPError:
    """Build an authentication error that tells the user to re-authorize."""
    return GoogleMCPError(
        ErrorType.AUTH_ERROR,
        message,
        {
            "code": "INSUFFICIENT_PERMISSIONS",
            "required_scopes": required_scopes,
            "remediation": "Please re-authenticate with the required scopes",
        },
    )


def create_validation_error(message: str) -> GoogleMCPError:
    """Build a validation error for bad caller input."""
    return GoogleMCPError(
        ErrorType.VALIDATION_ERROR,
        message,
        {
            "code": "INVALID_INPUT",
            "remediation": "Please check your input parameters and try again",
        },
    )
