# mediastore/storage/uploads.py
"""
Staged upload pipeline.

  1) stream incoming bytes to {root}/{staging}/{id}{ext}
  2) validate tenant / collection (discard the staged file on failure)
  3) create the destination directory
  4) os.replace() the staged file into {tenant}/{collection}/{dir}/{id}{ext}
  5) write the sidecar (failure is logged; the commit stands)
  6) return the metadata

Everything before step 4 completes cleans up the staged file.
"""
from __future__ import annotations
import logging
import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Optional

from .errors import MissingIdentity, MissingParameter, StorageIOError, UploadTooLarge
from .models import AssetMetadata
from .paths import PathResolver
from .sidecar import SidecarStore

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1MB chunks

_EXT_RE = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


def _safe_ext(original_name: str) -> str:
    _stem, ext = os.path.splitext(os.path.basename(original_name or ""))
    return ext if _EXT_RE.match(ext) else ""


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError:
        logger.exception("Failed to discard staged upload %s", path)


class UploadPipeline:
    def __init__(self, resolver: PathResolver, sidecars: SidecarStore, max_bytes: int = 0):
        self.resolver = resolver
        self.sidecars = sidecars
        self.max_bytes = max_bytes

    def _stage(self, stream: BinaryIO, staged: Path) -> int:
        total = 0
        with staged.open("wb") as out:
            while True:
                chunk = stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                total += len(chunk)
                if self.max_bytes and total > self.max_bytes:
                    raise UploadTooLarge(self.max_bytes)
                out.write(chunk)
        return total

    def commit(
        self,
        tenant_id: Optional[str],
        collection_id: Optional[str],
        subdir: Optional[str],
        stream: Optional[BinaryIO],
        original_name: Optional[str],
        mime_type: Optional[str],
        size_bytes: Optional[int] = None,
    ) -> AssetMetadata:
        if stream is None:
            raise MissingParameter("No file uploaded")

        staging = self.resolver.staging_dir()
        asset_id = uuid.uuid4().hex
        stored_name = f"{asset_id}{_safe_ext(original_name or '')}"
        staged = staging / stored_name

        try:
            staging.mkdir(parents=True, exist_ok=True)
            total = self._stage(stream, staged)
        except OSError as e:
            _discard(staged)
            raise StorageIOError(f"Failed to stage upload: {e}") from e
        except BaseException:
            _discard(staged)
            raise

        try:
            if not tenant_id or not collection_id:
                raise MissingIdentity("Missing tenantId or collectionId")
            if not original_name:
                raise MissingParameter("No file uploaded")
            address = self.resolver.address(tenant_id, collection_id, subdir)
            dest = self.resolver.path_for(address, stored_name)
            dest.parent.mkdir(parents=True, exist_ok=True)
            os.replace(staged, dest)
        except OSError as e:
            _discard(staged)
            raise StorageIOError(f"Failed to commit upload: {e}") from e
        except BaseException:
            _discard(staged)
            raise

        if size_bytes is not None and size_bytes != total:
            logger.warning("Declared size %s != received %s for %s", size_bytes, total, dest)

        meta = AssetMetadata(
            id=asset_id,
            filename=stored_name,
            stored_name=stored_name,
            original_name=original_name,
            mime_type=mime_type or "application/octet-stream",
            size=total,
            uploaded_at=datetime.now(timezone.utc).isoformat(),
            url=self.resolver.url_for(address, stored_name),
            download_url=self.resolver.download_url_for(address, stored_name),
            tenant_id=address.tenant_id,
            collection_id=address.collection_id,
            dir=address.subdir,
        )
        try:
            self.sidecars.write(address, asset_id, meta.to_fields())
        except StorageIOError:
            logger.exception("Failed to write metadata for %s; asset kept without sidecar", dest)

        logger.info("Committed upload %s (%d bytes) -> %s", original_name, total, dest)
        return meta
