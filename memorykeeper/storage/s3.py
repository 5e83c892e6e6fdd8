"""
S3 Blob Store

Uploads generated media with boto3 ``put_object``. Credentials come from the
storage config when both keys are set, otherwise from boto3's default chain
(environment, shared config, instance role).
"""

import logging
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from memorykeeper.config import StorageConfig
from memorykeeper.storage.base import object_name
from memorykeeper.storage.errors import StorageError


logger = logging.getLogger(__name__)


class S3BlobStore:
    """Blob store backed by an S3 bucket."""

    def __init__(self, config: StorageConfig, client=None):
        """Initialize the store.

        Args:
            config: Storage configuration (bucket, region, prefix, ...)
            client: Optional pre-built boto3 S3 client (created lazily otherwise)
        """
        self.config = config
        self.client = client

    def _ensure_client_initialized(self):
        """Ensure the S3 client is initialized."""
        if self.client is None:
            client_kwargs = {'region_name': self.config.s3_region}
            if self.config.access_key_id and self.config.secret_access_key:
                client_kwargs['aws_access_key_id'] = self.config.access_key_id
                client_kwargs['aws_secret_access_key'] = self.config.secret_access_key
            self.client = boto3.client('s3', **client_kwargs)

    def _key(self, content_type: str) -> str:
        prefix = (self.config.s3_prefix or "").strip("/")
        name = object_name(content_type)
        return f"{prefix}/{name}" if prefix else name

    def public_url(self, key: str) -> str:
        base: Optional[str] = self.config.public_base_url
        if base:
            return f"{base.rstrip('/')}/{key}"
        return f"https://{self.config.s3_bucket}.s3.{self.config.s3_region}.amazonaws.com/{key}"

    def store(self, data: bytes, content_type: str) -> str:
        if not data:
            raise StorageError("Refusing to store empty media", backend="s3")

        self._ensure_client_initialized()
        key = self._key(content_type)
        try:
            self.client.put_object(
                Bucket=self.config.s3_bucket,
                Key=key,
                Body=data,
                ContentType=content_type
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(
                f"Failed to upload s3://{self.config.s3_bucket}/{key}: {e}",
                backend="s3"
            ) from e

        logger.info(f"Uploaded {len(data)} bytes to s3://{self.config.s3_bucket}/{key}")
        return self.public_url(key)
