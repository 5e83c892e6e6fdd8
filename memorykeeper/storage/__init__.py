"""
Blob storage for generated media.

The enhancement pipeline only needs ``store(data, content_type) -> url``;
``create_blob_store`` picks the backend configured in StorageConfig.
"""

from memorykeeper.storage.base import BlobStore, create_blob_store
from memorykeeper.storage.errors import StorageError

__all__ = ["BlobStore", "StorageError", "create_blob_store"]
