"""Credential Store - persisted access token and actor snapshot

The session is kept as a single JSON document so token and actor are
always written (and cleared) together.
"""
import json
import os
import tempfile
from typing import Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from ..config.settings import Settings, settings as default_settings
from ..domain.errors import CredentialStorageError
from ..domain.models import PersistedSession
from ..utils.logger import get_logger

logger = get_logger(__name__)


class CredentialStore(Protocol):
    """Where the session survives between runs"""

    def load(self) -> Optional[PersistedSession]:
        ...

    def save(self, session: PersistedSession) -> None:
        ...

    def clear(self) -> None:
        ...


class FileCredentialStore:
    """
    JSON file credential store

    Writes go to a temp file in the same directory followed by
    ``os.replace`` so a crash never leaves half a session on disk.
    """

    def __init__(self, path: Optional[str] = None, config: Optional[Settings] = None):
        config = config or default_settings
        self.path = path or config.credentials_path

    def load(self) -> Optional[PersistedSession]:
        """
        Read the persisted session

        Returns:
            The session, or None when nothing is persisted

        Raises:
            CredentialStorageError: If the file exists but cannot be used
        """
        if not os.path.exists(self.path):
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise CredentialStorageError(
                "Persisted session is unreadable",
                details={"path": self.path, "error": str(e)}
            )

        try:
            return PersistedSession.model_validate(raw)
        except PydanticValidationError as e:
            raise CredentialStorageError(
                "Persisted session is malformed",
                details={"path": self.path, "errors": e.error_count()}
            )

    def save(self, session: PersistedSession) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        payload = session.model_dump(mode="json")

        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".session-", suffix=".tmp", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise CredentialStorageError(
                "Could not persist session",
                details={"path": self.path, "error": str(e)}
            )

        logger.debug("Session persisted", extra={"actor_id": session.actor.id})

    def clear(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CredentialStorageError(
                "Could not clear persisted session",
                details={"path": self.path, "error": str(e)}
            )


class InMemoryCredentialStore:
    """Credential store kept in memory (tests, embedding)"""

    def __init__(self, session: Optional[PersistedSession] = None):
        self._session = session
        self.fail_on_save = False
        self.fail_on_clear = False

    def load(self) -> Optional[PersistedSession]:
        return self._session

    def save(self, session: PersistedSession) -> None:
        if self.fail_on_save:
            raise CredentialStorageError("Credential storage unavailable")
        self._session = session

    def clear(self) -> None:
        if self.fail_on_clear:
            raise CredentialStorageError("Credential storage unavailable")
        self._session = None
