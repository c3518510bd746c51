from __future__ import annotations

import logging
from typing import Any

import cloudinary
import cloudinary.uploader
import cloudinary.utils
from cloudinary.exceptions import Error as CloudinaryError

from app.errors import RemoteStorageError, StorageNotConfigured
from app.storage.base import RemoteAsset


log = logging.getLogger("mediarelay.storage")


class CloudinaryStorage:
    """
    Hands cached files to Cloudinary and returns the secure delivery URL.

    The three credentials are the account's cloud name, API key and API secret
    (CLOUDINARY_CLOUD_NAME / CLOUDINARY_API_KEY / CLOUDINARY_API_SECRET).
    """

    name = "cloudinary"

    def __init__(self, cloud_name: str | None, api_key: str | None, api_secret: str | None):
        missing = [k for k, v in (("cloud_name", cloud_name), ("api_key", api_key), ("api_secret", api_secret)) if not v]
        if missing:
            raise StorageNotConfigured(f"Cloudinary credentials missing: {', '.join(missing)}")
        self.cloud_name = cloud_name
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    def upload(
        self,
        local_path: str,
        *,
        public_id: str,
        folder: str | None = None,
        resource_type: str = "auto",
        content_type: str | None = None,
    ) -> RemoteAsset:
        options: dict[str, Any] = {"public_id": public_id, "resource_type": resource_type, "overwrite": False}
        if folder:
            options["folder"] = folder
        try:
            res = cloudinary.uploader.upload(local_path, **options)
        except CloudinaryError as e:
            raise RemoteStorageError(f"Cloudinary upload failed: {e}") from e

        url = res.get("secure_url") or res.get("url")
        if not url or not res.get("public_id"):
            raise RemoteStorageError("Cloudinary upload returned no URL")
        return RemoteAsset(
            backend=self.name,
            public_id=str(res["public_id"]),
            url=str(url),
            size_bytes=int(res.get("bytes") or 0),
            format=str(res.get("format") or ""),
            resource_type=str(res.get("resource_type") or resource_type),
        )

    def url(self, public_id: str, *, resource_type: str = "image") -> str:
        url, _ = cloudinary.utils.cloudinary_url(public_id, resource_type=resource_type, secure=True)
        return url

    def delete(self, public_id: str, *, resource_type: str = "image") -> None:
        try:
            res = cloudinary.uploader.destroy(public_id, resource_type=resource_type, invalidate=True)
        except CloudinaryError as e:
            raise RemoteStorageError(f"Cloudinary delete failed: {e}") from e
        result = (res or {}).get("result")
        if result == "not found":
            log.info("remote_delete_missing backend=cloudinary public_id=%s", public_id)
            return
        if result != "ok":
            raise RemoteStorageError(f"Cloudinary delete returned {result!r}")
