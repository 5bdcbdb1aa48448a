"""Filesystem document area.

Files are addressed by random storage keys and sharded into sub-directories
named after the first two characters of the key. Writes go to a temporary
file first and are hard-linked into place, so a final path never shows a
partial payload and never replaces an existing file.
"""

import contextlib
import hashlib
import logging
import os
import re
import tempfile
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from shelby.domain.errors import DocumentFileMissing, StorageIoError, ValidationError

logger = logging.getLogger(__name__)

TEMP_DIRNAME = ".tmp"
DEFAULT_MIME_TYPE = "application/octet-stream"
MAX_KEY_ATTEMPTS = 8

_KEY_PATTERN = re.compile(r"^[0-9a-f]{32}$")


@dataclass(frozen=True)
class DocumentHandle:
    """Reference to a stored file plus the facts learned while writing it."""

    storage_key: str
    filename: str
    mime_type: str
    size: int
    checksum: str


def _key_of(handle_or_key: DocumentHandle | str) -> str:
    if isinstance(handle_or_key, DocumentHandle):
        return handle_or_key.storage_key
    return handle_or_key


class DocumentStore:
    """Atomic put/get/remove of binary payloads under one root directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.temp_dir = self.root / TEMP_DIRNAME

    def open(self) -> None:
        """Create the document area if needed."""
        try:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIoError(f"Cannot open document area {self.root}: {exc}") from exc

    def path_for(self, storage_key: str) -> Path:
        """Final path of a storage key."""
        if not _KEY_PATTERN.match(storage_key):
            raise ValidationError(f"Invalid storage key '{storage_key}'")
        return self.root / storage_key[:2] / storage_key

    def put(self, payload: bytes, filename: str, mime_type: str | None = None) -> DocumentHandle:
        """Store a payload under a fresh storage key.

        Args:
            payload: File content
            filename: Original filename, kept for metadata only
            mime_type: MIME type; defaults to application/octet-stream

        Returns:
            DocumentHandle of the stored file

        Raises:
            ValidationError: If payload is not bytes or filename is empty
            StorageIoError: If the file cannot be written
        """
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise ValidationError("Document payload must be bytes")
        if not filename or not filename.strip():
            raise ValidationError("Document filename is required")

        payload = bytes(payload)
        checksum = hashlib.sha256(payload).hexdigest()

        try:
            self.temp_dir.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self.temp_dir, prefix="upload-")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                storage_key = self._link_into_place(temp_path)
            finally:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(temp_path)
        except OSError as exc:
            raise StorageIoError(f"Cannot store document '{filename}': {exc}") from exc

        logger.info("Stored document file %s (%d bytes)", storage_key, len(payload))
        return DocumentHandle(
            storage_key=storage_key,
            filename=filename.strip(),
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            size=len(payload),
            checksum=checksum,
        )

    def _link_into_place(self, temp_path: str) -> str:
        for _ in range(MAX_KEY_ATTEMPTS):
            storage_key = uuid.uuid4().hex
            final_path = self.path_for(storage_key)
            final_path.parent.mkdir(exist_ok=True)
            try:
                os.link(temp_path, final_path)
            except FileExistsError:
                continue
            self._sync_directory(final_path.parent)
            return storage_key
        raise StorageIoError("Could not allocate a unique storage key")

    @staticmethod
    def _sync_directory(directory: Path) -> None:
        if os.name != "posix":
            return
        fd = os.open(directory, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

    def get(self, handle_or_key: DocumentHandle | str) -> bytes:
        """Read a stored payload.

        Raises:
            DocumentFileMissing: If no file exists for the key
            StorageIoError: If the file cannot be read
        """
        storage_key = _key_of(handle_or_key)
        path = self.path_for(storage_key)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise DocumentFileMissing(f"Document file {storage_key} does not exist") from exc
        except OSError as exc:
            raise StorageIoError(f"Cannot read document file {storage_key}: {exc}") from exc

    def remove(self, handle_or_key: DocumentHandle | str) -> None:
        """Delete a stored file. Removing a missing file is not an error."""
        storage_key = _key_of(handle_or_key)
        path = self.path_for(storage_key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageIoError(f"Cannot remove document file {storage_key}: {exc}") from exc
        logger.info("Removed document file %s", storage_key)

    def exists(self, handle_or_key: DocumentHandle | str) -> bool:
        return self.path_for(_key_of(handle_or_key)).is_file()

    def iter_keys(self) -> Iterator[str]:
        """Yield the storage keys of every file in the document area."""
        if not self.root.is_dir():
            return
        for shard in sorted(self.root.iterdir()):
            if not shard.is_dir() or len(shard.name) != 2:
                continue
            for path in sorted(shard.iterdir()):
                if _KEY_PATTERN.match(path.name) and path.name.startswith(shard.name):
                    yield path.name

    def age(self, storage_key: str) -> float:
        """Seconds since the file for storage_key was last modified."""
        try:
            return time.time() - self.path_for(storage_key).stat().st_mtime
        except FileNotFoundError as exc:
            raise DocumentFileMissing(f"Document file {storage_key} does not exist") from exc

    def purge_stale_temporaries(self, max_age: float) -> int:
        """Delete temporaries left behind by interrupted writes.

        Returns:
            Number of removed temporary files
        """
        if not self.temp_dir.is_dir():
            return 0
        removed = 0
        now = time.time()
        for path in self.temp_dir.iterdir():
            try:
                if now - path.stat().st_mtime >= max_age:
                    path.unlink()
                    removed += 1
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise StorageIoError(f"Cannot purge temporary file {path.name}: {exc}") from exc
        return removed
