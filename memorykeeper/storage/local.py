"""Local directory blob store, used for development and the CLI."""

import logging
from pathlib import Path
from typing import Union

from memorykeeper.storage.base import object_name
from memorykeeper.storage.errors import StorageError


logger = logging.getLogger(__name__)


class LocalBlobStore:
    """Writes media under a directory and returns ``file://`` URIs."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def store(self, data: bytes, content_type: str) -> str:
        if not data:
            raise StorageError("Refusing to store empty media", backend="local")

        target = self.root / object_name(content_type)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write {target}: {e}", backend="local") from e

        logger.debug(f"Stored {len(data)} bytes at {target}")
        return target.resolve().as_uri()
