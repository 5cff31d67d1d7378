"""OAuth credential persistence for Google MCP.

This module stores exactly one credential record as JSON, readable only by
the owning user.

Storage Location: ~/.google-mcp/tokens.json (override with TOKEN_STORAGE_PATH)

Unreadable or corrupted files are treated the same as a missing file: the
fix in both cases is to authenticate again.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from google_mcp.auth.config import DEFAULT_TOKEN_PATH, expand_path
from google_mcp.auth.models import CredentialRecord, StoredCredentials
from google_mcp.errors import TokenStorageError

logger = logging.getLogger(__name__)


class TokenStore:
    """JSON file storage for a single OAuth credential record.

    Attributes:
        token_path: Path to the tokens.json file.

    Example:
        ```python
        store = TokenStore("~/.google-mcp/tokens.json")

        store.save(CredentialRecord(access_token="abc123", refresh_token="xyz"))

        record = store.load()
        if record:
            print(f"Token expires at: {record.expiry}")
        ```
    """

    def __init__(self, token_path: str | Path | None = None) -> None:
        """Initialize token storage.

        Args:
            token_path: Custom path for tokens.json. A leading ``~`` is
                expanded. Defaults to ~/.google-mcp/tokens.json
        """
        self.token_path = expand_path(token_path or DEFAULT_TOKEN_PATH)

    def _ensure_credentials_dir(self) -> None:
        """Create missing credential directories as owner-only.

        Directories that already exist are left as they are.
        """
        missing = []
        creds_dir = self.token_path.parent
        while not creds_dir.exists():
            missing.append(creds_dir)
            creds_dir = creds_dir.parent

        for directory in reversed(missing):
            directory.mkdir(mode=0o700)
            # mkdir applies the umask
            directory.chmod(0o700)

    def save(self, record: CredentialRecord) -> None:
        """Persist a credential record, replacing any previous one.

        Args:
            record: Credentials to store.

        Raises:
            TokenStorageError: If the directory or file cannot be written.
        """
        stored = StoredCredentials(credentials=record)

        try:
            self._ensure_credentials_dir()
            # Create the file owner-only before any secret is written to it
            self.token_path.touch(mode=0o600, exist_ok=True)
            self.token_path.chmod(0o600)
            with open(self.token_path, "w") as f:
                f.write(stored.model_dump_json(indent=2))
        except OSError as e:
            logger.error("Failed to save tokens to %s: %s", self.token_path, e)
            raise TokenStorageError("Failed to save authentication tokens") from e

        logger.info("Tokens saved successfully")

    def load(self) -> CredentialRecord | None:
        """Load the stored credential record.

        Returns:
            The record, or None if nothing is stored or the file is unreadable.
        """
        try:
            with open(self.token_path) as f:
                content = f.read()
        except FileNotFoundError:
            logger.debug("No stored tokens found")
            return None
        except OSError as e:
            logger.error("Failed to load tokens: %s", e)
            return None

        try:
            stored = StoredCredentials.model_validate_json(content)
        except (ValidationError, ValueError) as e:
            logger.error("Failed to load tokens: %s", e)
            return None

        logger.debug("Tokens loaded successfully")
        return stored.credentials

    def delete(self) -> None:
        """Remove the stored record.

        A missing file counts as success. Other failures are logged, not raised.
        """
        try:
            self.token_path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error("Failed to delete tokens: %s", e)
            return

        logger.info("Tokens deleted successfully")

    def exists(self) -> bool:
        """Check whether a readable record is currently stored."""
        return self.load() is not None
