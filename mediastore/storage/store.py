# mediastore/storage/store.py
from __future__ import annotations
from dataclasses import dataclass

from .access import AssetAccess
from .namespace import NamespaceOps
from .paths import PathResolver
from .relocation import Relocator
from .sidecar import SidecarStore
from .uploads import UploadPipeline


@dataclass
class MediaStore:
    """Wires the storage components over one root. Holds no per-request state."""

    resolver: PathResolver
    sidecars: SidecarStore
    uploads: UploadPipeline
    namespace: NamespaceOps
    relocation: Relocator
    assets: AssetAccess

    @classmethod
    def create(cls, root, staging_dir_name: str = "tmp", url_prefix: str = "/media", max_bytes: int = 0) -> "MediaStore":
        resolver = PathResolver(root, staging_dir_name=staging_dir_name, url_prefix=url_prefix)
        sidecars = SidecarStore(resolver)
        return cls(
            resolver=resolver,
            sidecars=sidecars,
            uploads=UploadPipeline(resolver, sidecars, max_bytes=max_bytes),
            namespace=NamespaceOps(resolver),
            relocation=Relocator(resolver, sidecars),
            assets=AssetAccess(resolver, sidecars),
        )

    @classmethod
    def from_settings(cls, settings) -> "MediaStore":
        return cls.create(
            settings.storage_root,
            staging_dir_name=settings.staging_dir_name,
            url_prefix=settings.url_prefix,
            max_bytes=settings.max_upload_bytes,
        )

    def ensure_layout(self) -> None:
        self.resolver.staging_dir().mkdir(parents=True, exist_ok=True)
