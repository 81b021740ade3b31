# mediastore/storage/relocation.py
"""
Move / rename an asset together with its sidecar.

Two steps, in this order:
  1) bytes: os.replace() the stored file. Failure aborts the operation.
  2) sidecar: SidecarStore.relocate(). Failure is logged and reported back
     as RelocationResult.sidecar == "failed"; the bytes stay where they are.

There is no lock: concurrent move/rename/delete of the same file race and the
last one wins (os.replace overwrites an existing destination).
"""
from __future__ import annotations
import logging
import os
from typing import Optional

from .errors import InvalidAddress, MissingParameter, NotFound, StorageIOError
from .models import SIDECAR_ABSENT, SIDECAR_FAILED, Address, RelocationResult
from .paths import PathResolver, asset_key, check_segment, is_sidecar
from .sidecar import SidecarStore

logger = logging.getLogger(__name__)


class Relocator:
    def __init__(self, resolver: PathResolver, sidecars: SidecarStore):
        self.resolver = resolver
        self.sidecars = sidecars

    def _relocate_sidecar(
        self,
        old: Address,
        new: Address,
        old_name: str,
        new_name: str,
        original_name: Optional[str] = None,
    ) -> str:
        try:
            return self.sidecars.relocate(old, new, old_name, new_name, original_name=original_name)
        except Exception:
            logger.exception("Metadata not relocated for %s (%s -> %s)", old_name, old, new)
            return SIDECAR_FAILED

    def _drop_replaced_sidecar(self, address: Address, name: str) -> None:
        # bytes at `name` were replaced by a file without metadata
        if self.sidecars.delete(address, asset_key(name), owner_name=name):
            logger.info("Dropped stale metadata for replaced %s in %s", name, address)

    def move(
        self,
        tenant_id: str,
        collection_id: str,
        filename: str,
        from_dir: Optional[str],
        to_dir: Optional[str],
    ) -> RelocationResult:
        src_addr = self.resolver.address(tenant_id, collection_id, from_dir)
        dst_addr = self.resolver.address(tenant_id, collection_id, to_dir)
        src = self.resolver.path_for(src_addr, filename)
        dst = self.resolver.path_for(dst_addr, filename)

        if is_sidecar(filename) or not src.is_file():
            raise NotFound("File not found")
        if src == dst:
            return RelocationResult(filename, dst_addr, self._relocate_sidecar(src_addr, dst_addr, filename, filename))

        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            os.replace(src, dst)
        except FileNotFoundError as e:
            raise NotFound("File not found") from e
        except OSError as e:
            raise StorageIOError(f"Failed to move {filename}: {e}") from e
        logger.info("Moved %s: %s -> %s", filename, src_addr.subdir or "/", dst_addr.subdir or "/")

        sidecar = self._relocate_sidecar(src_addr, dst_addr, filename, filename)
        if sidecar == SIDECAR_ABSENT:
            self._drop_replaced_sidecar(dst_addr, filename)
        return RelocationResult(filename, dst_addr, sidecar)

    def rename(
        self,
        tenant_id: str,
        collection_id: str,
        filename: str,
        subdir: Optional[str],
        new_name: Optional[str],
    ) -> RelocationResult:
        if not new_name or not new_name.strip():
            raise MissingParameter("Missing newName")
        new_name = check_segment(new_name, "newName")
        if is_sidecar(new_name):
            raise InvalidAddress("newName must not end with a metadata suffix")

        address = self.resolver.address(tenant_id, collection_id, subdir)
        src = self.resolver.path_for(address, filename)
        dst = self.resolver.path_for(address, new_name)
        if is_sidecar(filename) or not src.is_file():
            raise NotFound("File not found")
        if src == dst:
            return RelocationResult(new_name, address, self._relocate_sidecar(address, address, filename, new_name))

        try:
            os.replace(src, dst)
        except FileNotFoundError as e:
            raise NotFound("File not found") from e
        except OSError as e:
            raise StorageIOError(f"Failed to rename {filename}: {e}") from e
        logger.info("Renamed %s -> %s in %s", filename, new_name, address)

        sidecar = self._relocate_sidecar(address, address, filename, new_name, original_name=new_name)
        if sidecar == SIDECAR_ABSENT:
            self._drop_replaced_sidecar(address, new_name)
        return RelocationResult(new_name, address, sidecar)
