from __future__ import annotations

from app.config import Settings, get_settings
from app.errors import UnknownStorageBackend
from app.storage.base import RemoteAsset, RemoteStorage
from app.storage.local import LocalStorage


def get_storage(settings: Settings | None = None) -> RemoteStorage:
    s = settings or get_settings()
    backend = (s.storage_backend or "local").strip().lower()
    if backend == "local":
        return LocalStorage(s.media_dir, s.media_url_base)
    if backend == "cloudinary":
        from app.storage.cloudinary_storage import CloudinaryStorage

        return CloudinaryStorage(s.cloudinary_cloud_name, s.cloudinary_api_key, s.cloudinary_api_secret)
    if backend == "s3":
        from app.storage.s3 import S3Storage

        return S3Storage(
            s.s3_bucket,
            s.s3_region,
            endpoint_url=s.s3_endpoint_url,
            public_base_url=s.s3_public_base_url,
            access_key_id=s.aws_access_key_id,
            secret_access_key=s.aws_secret_access_key,
        )
    raise UnknownStorageBackend(f"Unknown storage backend: {s.storage_backend}")


__all__ = ["RemoteAsset", "RemoteStorage", "get_storage"]
