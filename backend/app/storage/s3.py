from __future__ import annotations

import mimetypes
from pathlib import Path, PurePosixPath
from typing import Any

import boto3
from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError

from app.errors import RemoteStorageError, StorageNotConfigured
from app.storage.base import RemoteAsset, resolve_resource_type


class S3Storage:
    """
    S3 (or S3-compatible, via endpoint_url) object storage.

    The stored public id is the object key, extension included.
    """

    name = "s3"

    def __init__(
        self,
        bucket: str | None,
        region: str = "us-east-1",
        *,
        endpoint_url: str | None = None,
        public_base_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        client: Any = None,
    ):
        if not bucket:
            raise StorageNotConfigured("S3 bucket not configured (S3_BUCKET)")
        self.bucket = bucket
        self.region = region
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )

    def upload(
        self,
        local_path: str,
        *,
        public_id: str,
        folder: str | None = None,
        resource_type: str = "auto",
        content_type: str | None = None,
    ) -> RemoteAsset:
        src = Path(local_path)
        key = str(PurePosixPath(folder or "") / f"{public_id}{src.suffix.lower()}")
        ctype = content_type or mimetypes.guess_type(src.name)[0] or "application/octet-stream"
        try:
            size = src.stat().st_size
            self.client.upload_file(str(src), self.bucket, key, ExtraArgs={"ContentType": ctype})
        except (Boto3Error, BotoCoreError, ClientError, OSError) as e:
            raise RemoteStorageError(f"S3 upload failed: {e}") from e
        fmt = src.suffix.lstrip(".").lower()
        return RemoteAsset(
            backend=self.name,
            public_id=key,
            url=self.url(key),
            size_bytes=size,
            format=fmt,
            resource_type=resolve_resource_type(resource_type, fmt),
        )

    def url(self, public_id: str, *, resource_type: str = "image") -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{public_id}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{public_id}"

    def delete(self, public_id: str, *, resource_type: str = "image") -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=public_id)
        except (BotoCoreError, ClientError) as e:
            raise RemoteStorageError(f"S3 delete failed: {e}") from e
