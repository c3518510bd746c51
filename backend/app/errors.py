"""
Domain errors for the upload -> cache -> remote -> persist pipeline.

Each error carries the HTTP status the API answers with; routes translate them into
HTTPException so services stay framework-agnostic.
"""

from __future__ import annotations


class UploadError(Exception):
    status_code = 400


class UploadNotAllowed(UploadError):
    pass


class EmptyUpload(UploadError):
    pass


class UploadTooLarge(UploadError):
    status_code = 413

    def __init__(self, limit_bytes: int):
        super().__init__(f"File exceeds the {limit_bytes} byte upload limit")
        self.limit_bytes = limit_bytes


class UnknownUploadSet(UploadError):
    status_code = 404

    def __init__(self, name: str):
        super().__init__(f"Unknown upload set: {name}")
        self.name = name


class RemoteStorageError(Exception):
    status_code = 502


class StorageNotConfigured(RemoteStorageError):
    status_code = 503


class UnknownStorageBackend(RemoteStorageError):
    status_code = 500
