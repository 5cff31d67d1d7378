"""Google OAuth 2.0 scopes used by the Drive, Docs and Calendar tools."""


class SCOPES:
    """Scope URLs grouped by product."""

    # Drive
    DRIVE_FILE = "https://www.googleapis.com/auth/drive.file"
    DRIVE = "https://www.googleapis.com/auth/drive"
    DRIVE_READONLY = "https://www.googleapis.com/auth/drive.readonly"

    # Docs
    DOCUMENTS = "https://www.googleapis.com/auth/documents"
    DOCUMENTS_READONLY = "https://www.googleapis.com/auth/documents.readonly"

    # Calendar
    CALENDAR = "https://www.googleapis.com/auth/calendar"
    CALENDAR_READONLY = "https://www.googleapis.com/auth/calendar.readonly"
    CALENDAR_EVENTS = "https://www.googleapis.com/auth/calendar.events"


# Full Drive access is needed for listing and reading files the app did not create
DEFAULT_SCOPES: tuple[str, ...] = (
    SCOPES.DRIVE,
    SCOPES.DOCUMENTS,
    SCOPES.CALENDAR,
)

SCOPE_GROUPS: dict[str, tuple[str, ...]] = {
    "drive": (SCOPES.DRIVE,),
    "docs": (SCOPES.DOCUMENTS,),
    "calendar": (SCOPES.CALENDAR,),
    "readonly": (
        SCOPES.DRIVE_READONLY,
        SCOPES.DOCUMENTS_READONLY,
        SCOPES.CALENDAR_READONLY,
    ),
}


def granted_groups(scope: str | None) -> list[str]:
    """Name the scope groups fully covered by a space separated scope string."""
    granted = set((scope or "").split())
    return [name for name, scopes in SCOPE_GROUPS.items() if granted.issuperset(scopes)]
