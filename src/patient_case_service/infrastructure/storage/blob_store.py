"""Blob storage for uploaded investigation files.

Blobs are addressed by an opaque storage key generated on ``put``. Deleting a
key that does not exist is a no-op, not an error.
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict
from uuid import uuid4

logger = logging.getLogger(__name__)

# Storage keys are plain file names: no separators, no parent references
_STORAGE_KEY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_EXTENSION_RE = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


class BlobStoreException(Exception):
    """Base exception for blob store errors."""
    pass


def is_valid_storage_key(storage_key: str) -> bool:
    return bool(_STORAGE_KEY_RE.match(storage_key or "")) and ".." not in storage_key


def generate_storage_key(original_name: str) -> str:
    """Build a collision-resistant key that keeps the original extension."""
    suffix = Path(original_name or "").suffix.lower()
    if not _EXTENSION_RE.match(suffix):
        suffix = ""
    return f"{int(time.time() * 1000)}-{uuid4().hex}{suffix}"


# ============================================================
# Blob Store Interface
# ============================================================

class BlobStore(ABC):
    """
    Abstract interface for physical file storage.

    Implementations:
    - LocalBlobStore: Files in a directory on disk
    - InMemoryBlobStore: Testing and development
    """

    @abstractmethod
    def put(self, data: bytes, original_name: str) -> str:
        """
        Store file bytes under a newly generated key.

        Args:
            data: File content
            original_name: Client-side file name, used for the key extension

        Returns:
            The storage key

        Raises:
            BlobStoreException: If the bytes could not be stored
        """
        pass

    @abstractmethod
    def delete(self, storage_key: str) -> bool:
        """
        Delete a blob.

        Returns:
            True if a blob was removed, False if it did not exist

        Raises:
            BlobStoreException: If the blob exists but could not be removed
        """
        pass

    @abstractmethod
    def exists(self, storage_key: str) -> bool:
        """Return whether a blob is stored under ``storage_key``."""
        pass

    @abstractmethod
    def open(self, storage_key: str) -> bytes:
        """
        Read a blob back.

        Raises:
            FileNotFoundError: If no blob is stored under ``storage_key``
        """
        pass


# ============================================================
# Local Disk Implementation
# ============================================================

class LocalBlobStore(BlobStore):
    """Blob store backed by a single upload directory."""

    def __init__(self, root: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, storage_key: str) -> Path:
        return self.root / storage_key

    def put(self, data: bytes, original_name: str) -> str:
        storage_key = generate_storage_key(original_name)
        path = self._path(storage_key)
        try:
            # "xb" refuses to overwrite an existing blob
            f = open(path, "xb")
        except OSError as e:
            logger.error(f"[storage] Failed to create blob for {original_name}: {e}")
            raise BlobStoreException(f"Failed to store {original_name}: {e}") from e

        try:
            with f:
                f.write(data)
        except OSError as e:
            logger.error(f"[storage] Failed to write blob {storage_key} for {original_name}: {e}")
            # The partial file was created by this call and nobody holds its key
            try:
                path.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.error(f"[storage] Failed to remove partial blob {storage_key}: {cleanup_error}")
            raise BlobStoreException(f"Failed to store {original_name}: {e}") from e

        logger.info(f"[storage] Stored blob {storage_key} ({len(data)} bytes)")
        return storage_key

    def delete(self, storage_key: str) -> bool:
        if not is_valid_storage_key(storage_key):
            return False
        try:
            self._path(storage_key).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"[storage] Failed to delete blob {storage_key}: {e}")
            raise BlobStoreException(f"Failed to delete {storage_key}: {e}") from e

        logger.info(f"[storage] Deleted blob {storage_key}")
        return True

    def exists(self, storage_key: str) -> bool:
        if not is_valid_storage_key(storage_key):
            return False
        return self._path(storage_key).is_file()

    def open(self, storage_key: str) -> bytes:
        if not self.exists(storage_key):
            raise FileNotFoundError(f"Blob not found: {storage_key}")
        return self._path(storage_key).read_bytes()


# ============================================================
# In-Memory Implementation (for Testing)
# ============================================================

class InMemoryBlobStore(BlobStore):
    """
    In-memory blob store for testing and development.

    Data stored in dictionary, not persistent across restarts.
    """

    def __init__(self):
        self._blobs: Dict[str, bytes] = {}

    def put(self, data: bytes, original_name: str) -> str:
        storage_key = generate_storage_key(original_name)
        while storage_key in self._blobs:
            storage_key = generate_storage_key(original_name)
        self._blobs[storage_key] = bytes(data)
        return storage_key

    def delete(self, storage_key: str) -> bool:
        return self._blobs.pop(storage_key, None) is not None

    def exists(self, storage_key: str) -> bool:
        return storage_key in self._blobs

    def open(self, storage_key: str) -> bytes:
        if storage_key not in self._blobs:
            raise FileNotFoundError(f"Blob not found: {storage_key}")
        return self._blobs[storage_key]

    def __len__(self) -> int:
        return len(self._blobs)

    def clear(self):
        """Clear all blobs (testing utility)."""
        self._blobs.clear()
