"""
File-backed lookaside store for licenses.

One file per license, ``<store_dir>/<id>.json``, holding the document bytes
exactly as they were ingested.
"""

import contextlib
import errno
import os
import tempfile
from pathlib import Path

from shared.errors import StorageError, ValidationError
from shared.logging import get_logger
from ..domain.models import LicenseFound, LicenseNotFound, LookupResult

_FORBIDDEN_KEY_CHARS = ("/", "\\", "\x00")
# Longest file name most filesystems accept, in bytes
_MAX_FILENAME_BYTES = 255
# Lookup errors that mean the entry cannot exist rather than that it is unreadable
_ABSENT_ERRNOS = (errno.ENOENT, errno.ENAMETOOLONG, errno.ENOTDIR)


class InvalidStorageKeyError(ValidationError):
    """License id that cannot name a single file in the store."""

    def __init__(self, license_id: str):
        self.license_id = license_id
        super().__init__("License .id is not a valid storage key")


class LookasideStore:
    """Flat key/value store of license documents on the local filesystem."""

    SUFFIX = ".json"

    def __init__(self, store_dir: str):
        self.store_dir = Path(store_dir)
        self.logger = get_logger("licenses.storage.lookaside")

    @staticmethod
    def is_valid_key(license_id: str) -> bool:
        if not license_id or license_id in (".", ".."):
            return False
        if any(char in license_id for char in _FORBIDDEN_KEY_CHARS):
            return False
        return len(f"{license_id}{LookasideStore.SUFFIX}".encode("utf-8", "surrogatepass")) <= _MAX_FILENAME_BYTES

    def path_for(self, license_id: str) -> Path:
        return self.store_dir / f"{license_id}{self.SUFFIX}"

    def ensure_directory(self) -> None:
        """Create the store directory if it does not exist yet."""
        try:
            self.store_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self.logger.error("Failed to create store directory", store_dir=str(self.store_dir), error=str(exc))
            raise StorageError("Failed to create license store") from exc

    def is_writable(self) -> bool:
        return self.store_dir.is_dir() and os.access(self.store_dir, os.W_OK)

    def get(self, license_id: str) -> LookupResult:
        """Look up a stored license. A missing entry is a normal outcome."""
        if not self.is_valid_key(license_id):
            return LicenseNotFound(license_id)

        path = self.path_for(license_id)
        try:
            body = path.read_bytes()
        except OSError as exc:
            if exc.errno in _ABSENT_ERRNOS:
                return LicenseNotFound(license_id)
            self.logger.error("Failed to read stored license", license_id=license_id, error=str(exc))
            raise StorageError("Failed to read license") from exc

        return LicenseFound(body)

    def put(self, license_id: str, document: bytes) -> str:
        """Write ``document`` under ``license_id``, replacing any previous entry.

        The bytes land in a temporary file that is renamed over the target,
        so readers see either the old or the new document. Returns the key used.
        """
        if not self.is_valid_key(license_id):
            raise InvalidStorageKeyError(license_id)

        path = self.path_for(license_id)
        try:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.store_dir, prefix=".tmp-", suffix=self.SUFFIX)
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(document)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            self.logger.error("Failed to store license", license_id=license_id, error=str(exc))
            raise StorageError("Failed to store license") from exc

        self.logger.debug("License stored", license_id=license_id, path=str(path), size=len(document))
        return license_id
