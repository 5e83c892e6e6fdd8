"""Blob store errors."""

from typing import Optional

from memorykeeper.gateways.errors import ErrorKind


class StorageError(Exception):
    """Raised when media could not be persisted to the blob store.

    Attributes:
        backend: Name of the failing backend ("s3", "local")
        kind: Always ErrorKind.STORAGE_FAILURE
    """
    kind = ErrorKind.STORAGE_FAILURE

    def __init__(self, message: str, backend: Optional[str] = None):
        super().__init__(message)
        self.backend = backend
