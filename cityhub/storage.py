"""
Storage abstraction for the platform's S3-compatible buckets and in-memory
testing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError


class StorageError(Exception):
    pass


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def upload_bytes(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str | None = None,
        upsert: bool = False,
    ) -> None:
        ...

    def public_url(self, bucket: str, path: str) -> str:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage/v1/object/public"
    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def upload_bytes(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str | None = None,
        upsert: bool = False,
    ) -> None:
        key = (bucket, path)
        if key in self.stored_objects and not upsert:
            raise StorageError(f"The resource already exists: {bucket}/{path}")
        self.stored_objects[key] = (data, content_type)

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/{bucket}/{path}"


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client for the platform's storage endpoint.
    """

    endpoint: str
    region: str
    access_key_id: str
    secret_access_key: str
    public_url_for: Callable[[str, str], str]

    def __post_init__(self):
        # The storage gateway only understands path-style addressing.
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def upload_bytes(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str | None = None,
        upsert: bool = False,
    ) -> None:
        params = {"Bucket": bucket, "Key": path, "Body": data}
        if content_type:
            params["ContentType"] = content_type
        try:
            if not upsert:
                try:
                    self._client.head_object(Bucket=bucket, Key=path)
                except ClientError as exc:
                    if exc.response.get("Error", {}).get("Code") not in ("404", "NoSuchKey", "NotFound"):
                        raise
                else:
                    raise StorageError(f"The resource already exists: {bucket}/{path}")
            self._client.put_object(**params)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(str(exc)) from exc

    def public_url(self, bucket: str, path: str) -> str:
        return self.public_url_for(bucket, path)
