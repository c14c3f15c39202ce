"""Blob storage package."""

from .blob_store import (
    BlobStore,
    BlobStoreException,
    InMemoryBlobStore,
    LocalBlobStore,
    generate_storage_key,
    is_valid_storage_key,
)

__all__ = [
    "BlobStore",
    "BlobStoreException",
    "InMemoryBlobStore",
    "LocalBlobStore",
    "generate_storage_key",
    "is_valid_storage_key",
]
