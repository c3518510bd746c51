from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from app.uploads.extensions import IMAGES


@dataclass(frozen=True)
class RemoteAsset:
    backend: str
    public_id: str
    url: str
    size_bytes: int = 0
    format: str = ""
    resource_type: str = "image"


class RemoteStorage(Protocol):
    name: str

    def upload(
        self,
        local_path: str,
        *,
        public_id: str,
        folder: str | None = None,
        resource_type: str = "auto",
        content_type: str | None = None,
    ) -> RemoteAsset: ...

    def url(self, public_id: str, *, resource_type: str = "image") -> str: ...

    def delete(self, public_id: str, *, resource_type: str = "image") -> None: ...


def resolve_resource_type(resource_type: str, fmt: str) -> str:
    """Maps "auto" to the concrete type a media host would report for ``fmt``."""
    if resource_type != "auto":
        return resource_type
    return "image" if fmt in IMAGES else "raw"
