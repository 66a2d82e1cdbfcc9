"""Key/value persistence for learning data.

``FallbackStorage`` composes a primary store (normally Firestore) with a local
store. A successful primary write is not repeated locally; loads prefer the
primary and fall back to the local copy.
"""

import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from google.api_core import exceptions as google_exceptions
from google.auth import default as google_auth_default
from google.auth.exceptions import GoogleAuthError
from google.cloud import firestore
from google.oauth2 import service_account

from ..config import DATA_SOURCE_TAG, DEFAULT_COLLECTION
from ..exceptions import PersistenceError

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _check_key(key: str) -> str:
    if not key or not _KEY_PATTERN.match(key):
        raise PersistenceError(f"Invalid storage key: {key!r}")
    return key


class Storage(ABC):
    """Read/write/delete of JSON-compatible documents by key."""

    @abstractmethod
    def save(self, key: str, data: dict[str, Any]) -> bool:
        """Write a document.

        Returns:
            True if the document reached the primary store

        Raises:
            PersistenceError: If nothing could be written

        """

    @abstractmethod
    def load(self, key: str) -> dict[str, Any] | None:
        """Read a document, or None if it does not exist."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a document; missing documents are ignored."""

    def is_available(self) -> bool:
        return True

    def status(self) -> dict[str, bool]:
        return {"is_primary_available": self.is_available(), "has_fallback": False}


class InMemoryStorage(Storage):
    """Dictionary-backed store, used for tests and ephemeral sessions."""

    def __init__(self) -> None:
        self._documents: dict[str, str] = {}

    def save(self, key: str, data: dict[str, Any]) -> bool:
        # Round-trip through JSON so stored data cannot alias live objects
        self._documents[_check_key(key)] = json.dumps(data)
        return True

    def load(self, key: str) -> dict[str, Any] | None:
        raw = self._documents.get(_check_key(key))
        return json.loads(raw) if raw is not None else None

    def delete(self, key: str) -> None:
        self._documents.pop(_check_key(key), None)

    def keys(self) -> list[str]:
        return list(self._documents)


class LocalJsonStorage(Storage):
    """One JSON file per key in a local directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"ai_{_check_key(key)}.json"

    def save(self, key: str, data: dict[str, Any]) -> bool:
        path = self._path(key)
        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Failed to write {path}: {e}") from e
        return True

    def load(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with path.open(encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to delete {key}: {e}") from e

    def is_available(self) -> bool:
        return os.access(self.directory if self.directory.exists() else self.directory.parent, os.W_OK)


def build_firestore_client(project: str | None, credentials_path: str | None = None) -> firestore.Client:
    """Create a Firestore client from a service account file or default credentials."""
    scopes = ["https://www.googleapis.com/auth/cloud-platform"]
    if credentials_path and os.path.exists(credentials_path):
        credentials = service_account.Credentials.from_service_account_file(
            credentials_path, scopes=scopes
        )
    else:
        credentials, _ = google_auth_default(scopes=scopes)
    return firestore.Client(project=project, credentials=credentials)


class FirestoreStorage(Storage):
    """Documents in a Firestore collection.

    Payloads are stored as a JSON string so nested arrays and arbitrary map
    keys survive Firestore's document restrictions.
    """

    def __init__(
        self,
        project: str | None = None,
        collection: str = DEFAULT_COLLECTION,
        credentials_path: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.project = project
        self.collection = collection
        self.credentials_path = credentials_path
        self._client = client
        self._unavailable_reason: str | None = None

    @property
    def client(self) -> Any:
        if self._client is None:
            try:
                self._client = build_firestore_client(self.project, self.credentials_path)
            except (GoogleAuthError, google_exceptions.GoogleAPIError, ValueError, OSError) as e:
                self._unavailable_reason = str(e)
                raise PersistenceError(f"Firestore unavailable: {e}") from e
        return self._client

    def _document(self, key: str) -> Any:
        return self.client.collection(self.collection).document(_check_key(key))

    def save(self, key: str, data: dict[str, Any]) -> bool:
        document = {
            "payload": json.dumps(data),
            "last_updated": datetime.now(timezone.utc).isoformat(),
            "source": DATA_SOURCE_TAG,
        }
        try:
            self._document(key).set(document)
        except (google_exceptions.GoogleAPIError, GoogleAuthError, TypeError, ValueError) as e:
            raise PersistenceError(f"Firestore write of '{key}' failed: {e}") from e
        logger.debug(f"Saved '{key}' to Firestore")
        return True

    def load(self, key: str) -> dict[str, Any] | None:
        try:
            snapshot = self._document(key).get()
        except (google_exceptions.GoogleAPIError, GoogleAuthError) as e:
            raise PersistenceError(f"Firestore read of '{key}' failed: {e}") from e

        if not snapshot.exists:
            return None
        stored = snapshot.to_dict() or {}
        payload = stored.get("payload")
        if payload is None:
            # Documents written without the JSON envelope
            return {k: v for k, v in stored.items() if k not in ("last_updated", "source")}
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Firestore document '{key}' is not valid JSON: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._document(key).delete()
        except (google_exceptions.GoogleAPIError, GoogleAuthError) as e:
            raise PersistenceError(f"Firestore delete of '{key}' failed: {e}") from e

    def is_available(self) -> bool:
        if self._unavailable_reason is not None:
            return False
        try:
            self.client
        except PersistenceError:
            return False
        return True


class FallbackStorage(Storage):
    """Primary store with a local fallback."""

    def __init__(self, primary: Storage, fallback: Storage) -> None:
        self.primary = primary
        self.fallback = fallback

    def save(self, key: str, data: dict[str, Any]) -> bool:
        try:
            return self.primary.save(key, data)
        except PersistenceError as e:
            logger.warning(f"Primary store rejected '{key}', saving locally: {e}")

        try:
            self.fallback.save(key, data)
        except PersistenceError as e:
            raise PersistenceError(f"All stores failed to save '{key}': {e}") from e
        return False

    def load(self, key: str) -> dict[str, Any] | None:
        try:
            data = self.primary.load(key)
            if data is not None:
                return data
        except PersistenceError as e:
            logger.warning(f"Primary store could not load '{key}', trying local copy: {e}")

        return self.fallback.load(key)

    def delete(self, key: str) -> None:
        errors = []
        for store in (self.primary, self.fallback):
            try:
                store.delete(key)
            except PersistenceError as e:
                errors.append(str(e))
        if len(errors) == 2:
            raise PersistenceError(f"Could not delete '{key}': {'; '.join(errors)}")

    def is_available(self) -> bool:
        return self.primary.is_available()

    def status(self) -> dict[str, bool]:
        return {"is_primary_available": self.primary.is_available(), "has_fallback": True}
