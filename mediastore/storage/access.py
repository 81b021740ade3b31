# mediastore/storage/access.py
from __future__ import annotations
import logging
import mimetypes
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import NotFound, StorageIOError
from .models import FALLBACK_NOTE, Address, AssetFile, AuthoritativeMetadata, DerivedMetadata, Metadata
from .paths import PathResolver, asset_key, is_sidecar
from .sidecar import SidecarStore

logger = logging.getLogger(__name__)


def guess_mime_from_path(path: Path, fallback: str = "application/octet-stream") -> str:
    mime, _encoding = mimetypes.guess_type(path.name)
    return mime or fallback


def _created_at(path: Path) -> str:
    st = path.stat()
    ts = getattr(st, "st_birthtime", None) or st.st_ctime
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class AssetAccess:
    """Single-asset reads and deletes."""

    def __init__(self, resolver: PathResolver, sidecars: SidecarStore):
        self.resolver = resolver
        self.sidecars = sidecars

    def _existing(self, address: Address, filename: str) -> Path:
        path = self.resolver.path_for(address, filename)
        if is_sidecar(filename) or not path.is_file():
            raise NotFound("File not found")
        return path

    def locate(self, tenant_id: str, collection_id: str, filename: str, subdir: Optional[str] = "") -> AssetFile:
        address = self.resolver.address(tenant_id, collection_id, subdir)
        path = self._existing(address, filename)
        key = asset_key(filename)
        fields = self.sidecars.read(address, key) or {}
        if fields.get("filename") != filename:
            fields = {}
        return AssetFile(
            file_id=fields.get("id") or key,
            abs_path=path,
            original_name=fields.get("originalname") or filename,
            mime=fields.get("mimetype") or guess_mime_from_path(path),
            size=path.stat().st_size,
        )

    def _find_by_key(self, address: Address, key: str) -> Optional[Path]:
        directory = self.resolver.directory(address)
        try:
            candidates = sorted(
                p for p in directory.iterdir()
                if p.is_file() and not is_sidecar(p.name) and asset_key(p.name) == key
            )
        except (FileNotFoundError, NotADirectoryError):
            return None
        return candidates[0] if candidates else None

    def describe(self, tenant_id: str, collection_id: str, ref: str, subdir: Optional[str] = "") -> Metadata:
        """Sidecar metadata for `ref` (an id or a stored name), else stat-derived fallback."""
        address = self.resolver.address(tenant_id, collection_id, subdir)
        direct = self.resolver.path_for(address, ref)
        path: Optional[Path] = direct if direct.is_file() and not is_sidecar(ref) else None
        key = asset_key(ref) if path is not None else ref

        fields = self.sidecars.read(address, key)
        if fields is not None and path is not None and fields.get("filename") != ref:
            # sidecar under this stem describes a sibling asset
            fields = None
        if fields is not None:
            return AuthoritativeMetadata(fields)

        if path is None:
            path = self._find_by_key(address, key)
        if path is None:
            raise NotFound("Metadata not found")

        name = path.name
        return DerivedMetadata({
            "id": asset_key(name),
            "filename": name,
            "tenantId": address.tenant_id,
            "collectionId": address.collection_id,
            "dir": address.subdir,
            "size": path.stat().st_size,
            "mimetype": guess_mime_from_path(path),
            "uploadedAt": _created_at(path),
            "url": self.resolver.url_for(address, name),
            "downloadUrl": self.resolver.download_url_for(address, name),
            "fallback": True,
            "note": FALLBACK_NOTE,
        })

    def delete(self, tenant_id: str, collection_id: str, filename: str, subdir: Optional[str] = "") -> Address:
        address = self.resolver.address(tenant_id, collection_id, subdir)
        path = self._existing(address, filename)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise NotFound("File not found") from e
        except OSError as e:
            raise StorageIOError(f"Failed to delete {filename}: {e}") from e
        logger.info("Deleted %s from %s", filename, address)
        self.sidecars.delete(address, asset_key(filename), owner_name=filename)
        return address
