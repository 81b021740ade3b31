# mediastore/storage/__init__.py
"""
Filesystem asset store: per-tenant, per-collection files, each with a
{id}.meta.json sidecar kept in step with the bytes it describes.
"""
from .errors import (  # noqa: F401
    InvalidAddress,
    MediaStoreError,
    MissingIdentity,
    MissingParameter,
    NotFound,
    StorageIOError,
    UploadTooLarge,
)
from .models import Address, AssetMetadata, AuthoritativeMetadata, DerivedMetadata, Metadata  # noqa: F401
from .store import MediaStore  # noqa: F401
