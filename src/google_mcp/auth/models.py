"""Credential models and session state for Google MCP.

The credential file holds a single ``StoredCredentials`` envelope:

    {
      "credentials": {"access_token": "...", "refresh_token": "...", ...},
      "timestamp": "2025-01-15T10:00:00Z"
    }

``timestamp`` records when the file was written. It is informational only;
expiry decisions use ``CredentialRecord.expiry``.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator

# Refresh this long before the access token actually expires
EXPIRY_LOOKAHEAD = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_utc(value: datetime) -> datetime:
    # google-auth reports naive datetimes that are already UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CredentialRecord(BaseModel):
    """The OAuth grant for this installation.

    Attributes:
        access_token: Bearer token sent with API calls.
        refresh_token: Long-lived token for obtaining new access tokens.
        expiry: When the access token expires. None means it never does.
        token_type: Token type tag, normally "Bearer".
        scope: Space separated scopes reported by Google, if any.
    """

    access_token: str
    refresh_token: str | None = None
    expiry: datetime | None = None
    token_type: str = "Bearer"
    scope: str | None = None

    @field_validator("expiry")
    @classmethod
    def _normalize_expiry(cls, value: datetime | None) -> datetime | None:
        return _ensure_utc(value) if value is not None else None

    def needs_refresh(self, now: datetime | None = None) -> bool:
        """Check whether the token expires within the look-ahead window.

        Args:
            now: Current time. Defaults to the current UTC time.

        Returns:
            True if ``expiry - now`` is under five minutes. Records without
            an expiry never need a refresh.
        """
        if self.expiry is None:
            return False
        current = _ensure_utc(now) if now is not None else _utcnow()
        return self.expiry - current < EXPIRY_LOOKAHEAD


class StoredCredentials(BaseModel):
    """On-disk envelope around a credential record."""

    credentials: CredentialRecord
    timestamp: datetime = Field(default_factory=_utcnow)


class SessionState(str, Enum):
    """Lifecycle state of the OAuth session."""

    NO_CREDENTIAL = "no_credential"
    VALID = "valid"
    NEAR_EXPIRY = "near_expiry"
    REFRESHING = "refreshing"
    REVOKED = "revoked"


class SessionEvent(str, Enum):
    """Events that move the session between states."""

    LOADED = "loaded"
    AUTHORIZED = "authorized"
    REFRESH_STARTED = "refresh_started"
    REFRESH_SUCCEEDED = "refresh_succeeded"
    REFRESH_FAILED = "refresh_failed"
    REVOKED = "revoked"
    CLEARED = "cleared"


class InvalidTransitionError(Exception):
    """Raised when an event is not allowed in the current state."""


_TRANSITIONS: dict[tuple[SessionState, SessionEvent], SessionState] = {
    (SessionState.NEAR_EXPIRY, SessionEvent.REFRESH_STARTED): SessionState.REFRESHING,
    (SessionState.REFRESHING, SessionEvent.REFRESH_SUCCEEDED): SessionState.VALID,
    (SessionState.REFRESHING, SessionEvent.REFRESH_FAILED): SessionState.NEAR_EXPIRY,
    (SessionState.VALID, SessionEvent.REVOKED): SessionState.REVOKED,
    (SessionState.NEAR_EXPIRY, SessionEvent.REVOKED): SessionState.REVOKED,
    (SessionState.REVOKED, SessionEvent.CLEARED): SessionState.NO_CREDENTIAL,
}


def evaluate_credentials(
    record: CredentialRecord | None, now: datetime | None = None
) -> SessionState:
    """Derive the session state from whatever is currently stored.

    Args:
        record: Loaded credential record, or None if nothing is stored.
        now: Current time. Defaults to the current UTC time.

    Returns:
        NO_CREDENTIAL, NEAR_EXPIRY or VALID.
    """
    if record is None:
        return SessionState.NO_CREDENTIAL
    if record.needs_refresh(now):
        return SessionState.NEAR_EXPIRY
    return SessionState.VALID


def next_state(
    current: SessionState,
    event: SessionEvent,
    loaded: SessionState | None = None,
) -> SessionState:
    """Apply an event to the session state.

    ``LOADED`` and ``AUTHORIZED`` are accepted in any state since the
    credential file is the source of truth. ``LOADED`` requires the state
    computed by ``evaluate_credentials`` for the freshly loaded record.

    Args:
        current: Current state.
        event: Event to apply.
        loaded: State derived from storage, required for ``LOADED``.

    Returns:
        The new state.

    Raises:
        InvalidTransitionError: If the event is not valid in ``current``.
    """
    if event == SessionEvent.LOADED:
        if loaded is None:
            raise InvalidTransitionError("LOADED requires the evaluated storage state")
        return loaded
    if event == SessionEvent.AUTHORIZED:
        return SessionState.VALID

    try:
        return _TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransitionError(
            f"Cannot apply {event.value} in state {current.value}"
        ) from None
