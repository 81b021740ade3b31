# mediastore/storage/errors.py
from __future__ import annotations


class MediaStoreError(Exception):
    """Base for every failure the storage layer reports to its callers."""

    kind = "Error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"ok": False, "error": self.kind, "detail": self.message}


class InvalidAddress(MediaStoreError):
    kind = "InvalidAddress"
    status_code = 400


class MissingIdentity(MediaStoreError):
    kind = "MissingIdentity"
    status_code = 400


class MissingParameter(MediaStoreError):
    kind = "MissingParameter"
    status_code = 400


class NotFound(MediaStoreError):
    kind = "NotFound"
    status_code = 404


class StorageIOError(MediaStoreError):
    kind = "IOError"
    status_code = 500


class UploadTooLarge(MediaStoreError):
    kind = "UploadTooLarge"
    status_code = 413

    def __init__(self, max_bytes: int):
        super().__init__(f"File too large (> {max_bytes} bytes)")
        self.max_bytes = max_bytes
