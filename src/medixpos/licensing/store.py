"""Signed local license store.

The license record is cached on disk between sessions so the app can start
offline. The record is written as an HS256 JWT signed with an
installation secret: editing the file by hand (to extend an expiry or
swap a key) breaks the signature, and a record that fails verification
is discarded rather than trusted.

Thread-safe via a lock on all file operations.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from pathlib import Path

import jwt
from pydantic import ValidationError

from medixpos.models import LicenseRecord

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"
_TOKEN_TYPE = "license-record"


class LicenseStoreError(Exception):
    """Raised when the license store is misconfigured."""


def default_secret(app_name: str, app_version: str) -> str:
    """Derive the signing secret for an app build."""
    seed = f"{app_name}-{app_version}-medixpos-license-secret"
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()


class LicenseStore:
    """File-backed store for a single signed ``LicenseRecord``."""

    def __init__(
        self,
        path: str | Path,
        secret: str,
        organization_id: str,
    ) -> None:
        if not secret:
            raise LicenseStoreError("Signing secret must not be empty")
        self._path = Path(path)
        self._secret = secret
        self._organization_id = organization_id
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def empty(self) -> LicenseRecord:
        return LicenseRecord(organization_id=self._organization_id)

    def load(self) -> LicenseRecord:
        """Read and verify the stored record.

        Returns an empty record if nothing is stored. A file that cannot be
        read, or a record that fails signature verification or schema
        validation, is deleted.
        """
        with self._lock:
            if not self._path.exists():
                return self.empty()

            try:
                token = self._path.read_text(encoding="utf-8").strip()
            except (UnicodeDecodeError, OSError) as e:
                logger.warning("Discarding unreadable license file: %s", e)
                self._delete()
                return self.empty()

            try:
                payload = jwt.decode(
                    token,
                    self._secret,
                    algorithms=[_ALGORITHM],
                    options={"require": ["type", "record"]},
                )
            except jwt.InvalidSignatureError:
                logger.warning(
                    "License signature verification failed - possible tampering"
                )
                self._delete()
                return self.empty()
            except jwt.InvalidTokenError as e:
                logger.warning("Discarding unreadable license record: %s", e)
                self._delete()
                return self.empty()

            if payload.get("type") != _TOKEN_TYPE:
                logger.warning("Discarding license record of unexpected type")
                self._delete()
                return self.empty()

            try:
                return LicenseRecord(**payload["record"])
            except (ValidationError, TypeError) as e:
                logger.warning("Discarding invalid license record: %s", e)
                self._delete()
                return self.empty()

    def save(self, record: LicenseRecord) -> None:
        """Sign and write *record*, replacing any stored one."""
        payload = {
            "type": _TOKEN_TYPE,
            "record": record.model_dump(mode="json"),
        }
        token = jwt.encode(payload, self._secret, algorithm=_ALGORITHM)
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(token, encoding="utf-8")

    def clear(self) -> None:
        with self._lock:
            self._delete()

    def _delete(self) -> None:
        self._path.unlink(missing_ok=True)
