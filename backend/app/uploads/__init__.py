from __future__ import annotations

from app.uploads.extensions import ALL, DATA, DEFAULTS, DOCUMENTS, IMAGES, TEXT, AllExcept
from app.uploads.sets import CachedFile, UploadSet, get_upload_set, get_upload_sets

__all__ = [
    "ALL",
    "AllExcept",
    "CachedFile",
    "DATA",
    "DEFAULTS",
    "DOCUMENTS",
    "IMAGES",
    "TEXT",
    "UploadSet",
    "get_upload_set",
    "get_upload_sets",
]
