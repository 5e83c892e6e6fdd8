"""
Blob Store Protocol

Contract for persisting generated images and audio and handing back a
permanent URL. Object keys group media by kind and use random names so
concurrent enhancements never collide.
"""

import mimetypes
import uuid
from typing import Protocol, runtime_checkable

from memorykeeper.config import StorageConfig
from memorykeeper.gateways.errors import ConfigurationError


# mimetypes maps audio/mpeg to .mp2 on some platforms
_EXTENSION_OVERRIDES = {
    "audio/mpeg": ".mp3",
    "image/jpeg": ".jpg",
}


@runtime_checkable
class BlobStore(Protocol):
    """Opaque media store used by the enhancement pipeline."""

    def store(self, data: bytes, content_type: str) -> str:
        """Persist data and return a permanent URL.

        Raises:
            StorageError: the backend rejected or could not receive the data
        """
        ...


def media_folder(content_type: str) -> str:
    """Folder name for a MIME type ("images", "audio" or "files")."""
    major = content_type.split("/", 1)[0].lower()
    if major == "image":
        return "images"
    if major == "audio":
        return "audio"
    return "files"


def extension_for(content_type: str) -> str:
    content_type = content_type.split(";", 1)[0].strip().lower()
    if content_type in _EXTENSION_OVERRIDES:
        return _EXTENSION_OVERRIDES[content_type]
    return mimetypes.guess_extension(content_type) or ".bin"


def object_name(content_type: str) -> str:
    """Relative object name, e.g. ``images/3f2c....png``."""
    return f"{media_folder(content_type)}/{uuid.uuid4().hex}{extension_for(content_type)}"


def create_blob_store(config: StorageConfig) -> BlobStore:
    """Create the blob store selected by ``config.backend``.

    Raises:
        ConfigurationError: unknown backend or missing bucket
    """
    backend = (config.backend or "").lower()

    if backend == "local":
        from memorykeeper.storage.local import LocalBlobStore
        return LocalBlobStore(config.local_dir)

    if backend == "s3":
        if not config.s3_bucket:
            raise ConfigurationError(
                "S3 storage selected but no bucket configured. "
                "Set MEMORY_KEEPER_STORAGE_S3_BUCKET or storage.s3_bucket in config.yaml."
            )
        from memorykeeper.storage.s3 import S3BlobStore
        return S3BlobStore(config)

    raise ConfigurationError(f"Unknown storage backend: {config.backend}. Supported: local, s3")
