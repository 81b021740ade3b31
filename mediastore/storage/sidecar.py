# mediastore/storage/sidecar.py
from __future__ import annotations
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import InvalidAddress, StorageIOError
from .models import SIDECAR_ABSENT, SIDECAR_RELOCATED, Address
from .paths import SIDECAR_SUFFIX, PathResolver, asset_key

logger = logging.getLogger(__name__)


def _atomic_write_json(path: Path, fields: Dict[str, Any]) -> None:
    data = json.dumps(fields, indent=2, ensure_ascii=False)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=".", suffix=SIDECAR_SUFFIX)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class SidecarStore:
    """JSON metadata documents stored beside the asset as {key}.meta.json."""

    def __init__(self, resolver: PathResolver):
        self.resolver = resolver

    def write(self, address: Address, key: str, fields: Dict[str, Any]) -> Path:
        path = self.resolver.sidecar_path(address, key)
        try:
            _atomic_write_json(path, fields)
        except OSError as e:
            raise StorageIOError(f"Failed to write metadata {path.name}: {e}") from e
        return path

    def _load(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("Unreadable sidecar ignored: %s", path, exc_info=True)
            return None
        if not isinstance(data, dict):
            logger.warning("Sidecar is not a JSON object: %s", path)
            return None
        return data

    def read(self, address: Address, key: str) -> Optional[Dict[str, Any]]:
        """Sidecar fields, or None when absent, unreadable or orphaned."""
        data = self._load(self.resolver.sidecar_path(address, key))
        if data is None:
            return None
        filename = data.get("filename")
        if not isinstance(filename, str) or not filename:
            return None
        try:
            owner = self.resolver.path_for(address, filename)
        except InvalidAddress:
            return None
        if not owner.is_file():
            # orphaned: the bytes it describes are gone
            return None
        return data

    def relocate(
        self,
        old_address: Address,
        new_address: Address,
        old_name: str,
        new_name: str,
        original_name: Optional[str] = None,
    ) -> str:
        old_key, new_key = asset_key(old_name), asset_key(new_name)
        src = self.resolver.sidecar_path(old_address, old_key)
        dst = self.resolver.sidecar_path(new_address, new_key)

        data = self._load(src)
        if data is None:
            return SIDECAR_ABSENT

        if dst != src:
            occupant = self._load(dst)
            owner = occupant.get("filename") if occupant is not None else None
            if isinstance(owner, str) and owner and owner != new_name:
                try:
                    taken = self.resolver.path_for(new_address, owner).is_file()
                except InvalidAddress:
                    taken = False
                if taken:
                    # same stem, different live asset: never overwrite its metadata
                    raise StorageIOError(f"Metadata {dst.name} already describes {owner}")

        data.update({
            "id": new_key,
            "filename": new_name,
            "storedName": new_name,
            "url": self.resolver.url_for(new_address, new_name),
            "downloadUrl": self.resolver.download_url_for(new_address, new_name),
            "tenantId": new_address.tenant_id,
            "collectionId": new_address.collection_id,
            "dir": new_address.subdir,
        })
        if original_name is not None:
            data["originalname"] = original_name

        try:
            _atomic_write_json(dst, data)
            if src != dst:
                os.unlink(src)
        except OSError as e:
            raise StorageIOError(f"Failed to relocate metadata {src.name} -> {dst.name}: {e}") from e
        return SIDECAR_RELOCATED

    def delete(self, address: Address, key: str, owner_name: Optional[str] = None) -> bool:
        """Best-effort removal; never raises."""
        try:
            path = self.resolver.sidecar_path(address, key)
            if owner_name is not None:
                data = self._load(path)
                if data is not None and data.get("filename") not in (None, owner_name):
                    # belongs to another asset sharing the same stem
                    return False
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except Exception:
            logger.exception("Failed to delete metadata for %s in %s", key, address)
            return False
