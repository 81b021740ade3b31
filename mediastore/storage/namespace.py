# mediastore/storage/namespace.py
from __future__ import annotations
import logging
import os
import shutil
from pathlib import Path
from typing import Dict, List, Optional

from .errors import MissingParameter, NotFound, StorageIOError
from .paths import PathResolver, is_sidecar, split_subdir

logger = logging.getLogger(__name__)


def _scan(path: Path) -> Dict[str, List[str]]:
    folders: List[str] = []
    files: List[str] = []
    try:
        with os.scandir(path) as it:
            for entry in it:
                if entry.is_dir(follow_symlinks=False):
                    folders.append(entry.name)
                elif entry.is_file() and not is_sidecar(entry.name):
                    files.append(entry.name)
    except (FileNotFoundError, NotADirectoryError):
        pass
    except OSError as e:
        raise StorageIOError(f"Failed to list {path.name}: {e}") from e
    return {"folders": sorted(folders), "files": sorted(files)}


class NamespaceOps:
    """Tenant / collection / folder level operations. Directories are created lazily."""

    def __init__(self, resolver: PathResolver):
        self.resolver = resolver

    def _folder(self, tenant_id: str, collection_id: str, relative_path: Optional[str]) -> Path:
        if not split_subdir(relative_path):
            raise MissingParameter("Missing folder path")
        return self.resolver.directory(self.resolver.address(tenant_id, collection_id, relative_path))

    def list_children(self, tenant_id: str, collection_id: str, subdir: Optional[str] = "") -> Dict[str, List[str]]:
        address = self.resolver.address(tenant_id, collection_id, subdir)
        return _scan(self.resolver.directory(address))

    def list_files(self, tenant_id: str, collection_id: str, subdir: Optional[str] = "") -> List[str]:
        return self.list_children(tenant_id, collection_id, subdir)["files"]

    def search(self, tenant_id: str, collection_id: str, query: Optional[str], subdir: Optional[str] = "") -> List[str]:
        q = (query or "").lower()
        return [f for f in self.list_files(tenant_id, collection_id, subdir) if q in f.lower()]

    def create_folder(self, tenant_id: str, collection_id: str, relative_path: Optional[str]) -> Path:
        path = self._folder(tenant_id, collection_id, relative_path)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Failed to create folder {relative_path}: {e}") from e
        logger.info("Created folder %s", path)
        return path

    def delete_folder(self, tenant_id: str, collection_id: str, relative_path: Optional[str]) -> None:
        path = self._folder(tenant_id, collection_id, relative_path)
        if not path.is_dir():
            raise NotFound("Folder not found")
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise StorageIOError(f"Failed to delete folder {relative_path}: {e}") from e
        logger.info("Deleted folder %s", path)

    def list_collections(self, tenant_id: str) -> List[str]:
        return _scan(self.resolver.tenant_dir(tenant_id))["folders"]

    def create_collection(self, tenant_id: str, collection_id: str) -> Path:
        path = self.resolver.directory(self.resolver.address(tenant_id, collection_id))
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageIOError(f"Failed to create collection {collection_id}: {e}") from e
        logger.info("Created collection %s", path)
        return path
