"""
Media storage abstraction for post attachments (S3-compatible) and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import boto3
from botocore.config import Config


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def presign_put(
        self, path: str, expires_in: int = 3600, content_type: str = "application/octet-stream"
    ) -> str:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/media"
    signed: list = field(default_factory=list)

    def presign_put(
        self, path: str, expires_in: int = 3600, content_type: str = "application/octet-stream"
    ) -> str:
        self.signed.append(("put", path))
        return f"{self.base_url}/{path}?op=put&expires={expires_in}"


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client for post media.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def presign_put(
        self, path: str, expires_in: int = 3600, content_type: str = "application/octet-stream"
    ) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="put_object",
            Params={
                "Bucket": self.bucket,
                "Key": path,
                "ContentType": content_type,
            },
            ExpiresIn=expires_in,
        )
