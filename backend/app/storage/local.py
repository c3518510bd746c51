from __future__ import annotations

import shutil
from pathlib import Path, PurePosixPath

from app.errors import RemoteStorageError
from app.storage.base import RemoteAsset, resolve_resource_type


class LocalStorage:
    """
    Keeps "remote" assets on local disk and serves them from ``url_base``.

    Used for development and tests; the app mounts ``media_dir`` at ``url_base``.
    """

    name = "local"

    def __init__(self, media_dir: str, url_base: str = "/media"):
        self.media_dir = Path(media_dir)
        self.url_base = url_base.rstrip("/")

    def _target(self, key: str) -> Path:
        target = (self.media_dir / key).resolve()
        root = self.media_dir.resolve()
        if root not in target.parents:
            raise RemoteStorageError(f"Invalid asset key: {key}")
        return target

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
        fmt = src.suffix.lstrip(".").lower()
        key = str(PurePosixPath(folder or "") / f"{public_id}{src.suffix.lower()}")
        dest = self._target(key)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, dest)
            size = dest.stat().st_size
        except OSError as e:
            raise RemoteStorageError(f"Local media write failed: {e}") from e
        return RemoteAsset(
            backend=self.name,
            public_id=key,
            url=self.url(key),
            size_bytes=size,
            format=fmt,
            resource_type=resolve_resource_type(resource_type, fmt),
        )

    def url(self, public_id: str, *, resource_type: str = "image") -> str:
        return f"{self.url_base}/{public_id}"

    def delete(self, public_id: str, *, resource_type: str = "image") -> None:
        try:
            self._target(public_id).unlink(missing_ok=True)
        except OSError as e:
            raise RemoteStorageError(f"Local media delete failed: {e}") from e
