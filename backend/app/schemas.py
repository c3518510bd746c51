from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class ImageInfo(BaseModel):
    url: str
    public_id: str
    filename: str = ""
    size_bytes: int = 0
    format: str = ""
    resource_type: str = "image"
    backend: str = ""


class PostResponse(BaseModel):
    post_id: str
    title: str
    body: str = ""
    status: Literal["processing", "ready", "failed"] = "ready"
    error: str | None = None
    upload_set: str = "images"
    image: ImageInfo | None = None
    job: dict[str, Any] | None = None
    created_at: str


class PostListResponse(BaseModel):
    items: list[PostResponse]


class UploadSetItem(BaseModel):
    name: str
    resource_type: str
    extensions: list[str] | None = None


class UploadSetListResponse(BaseModel):
    items: list[UploadSetItem]
