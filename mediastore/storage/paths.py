# mediastore/storage/paths.py
"""
Logical address -> physical path mapping.

Layout under the storage root:
    {tenant}/{collection}/{subdir...}/{storedName}
    {tenant}/{collection}/{subdir...}/{id}.meta.json
    {staging}/{id}{ext}                     (in-flight uploads)

Resolution is pure string work (os.path only); it never touches the disk.
"""
from __future__ import annotations
import os
import re
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote, urlencode

from .errors import InvalidAddress
from .models import Address

SIDECAR_SUFFIX = ".meta.json"

_BAD_CHARS_RE = re.compile(r"[/\\\x00-\x1f\x7f]")


def is_sidecar(name: str) -> bool:
    return name.endswith(SIDECAR_SUFFIX)


def asset_key(stored_name: str) -> str:
    """Stem shared by an asset and its sidecar: 'ab12.pdf' -> 'ab12'."""
    stem, _ext = os.path.splitext(stored_name)
    return stem or stored_name


def sidecar_name(key: str) -> str:
    return f"{key}{SIDECAR_SUFFIX}"


def check_segment(value: Optional[str], label: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidAddress(f"{label} must not be empty")
    value = str(value)
    if value in (".", ".."):
        raise InvalidAddress(f"{label} must not be '{value}'")
    if _BAD_CHARS_RE.search(value):
        raise InvalidAddress(f"{label} contains an illegal character: {value!r}")
    return value


def split_subdir(subdir: Optional[str]) -> List[str]:
    """'a//b/' -> ['a', 'b']; '' or None -> []."""
    if not subdir:
        return []
    parts = [p for p in str(subdir).split("/") if p]
    return [check_segment(p, "dir") for p in parts]


class PathResolver:
    def __init__(self, root, staging_dir_name: str = "tmp", url_prefix: str = "/media"):
        self.root = Path(os.path.abspath(os.fspath(root)))
        self.staging_dir_name = check_segment(staging_dir_name, "staging dir")
        self.url_prefix = "/" + url_prefix.strip("/") if url_prefix.strip("/") else ""

    # ---------- addresses ----------
    def address(self, tenant_id: Optional[str], collection_id: Optional[str], subdir: Optional[str] = "") -> Address:
        tenant = self.check_tenant(tenant_id)
        collection = check_segment(collection_id, "collection")
        return Address(tenant, collection, "/".join(split_subdir(subdir)))

    def check_tenant(self, tenant_id: Optional[str]) -> str:
        tenant = check_segment(tenant_id, "tenant")
        if tenant == self.staging_dir_name:
            raise InvalidAddress(f"tenant '{tenant}' is reserved")
        return tenant

    # ---------- physical paths ----------
    def _contain(self, *parts: str) -> Path:
        joined = os.path.normpath(os.path.join(str(self.root), *parts))
        root = str(self.root)
        try:
            inside = os.path.commonpath([root, joined]) == root
        except ValueError:
            inside = False
        if not inside or joined == root:
            raise InvalidAddress("address escapes the storage root")
        return Path(joined)

    def tenant_dir(self, tenant_id: str) -> Path:
        return self._contain(self.check_tenant(tenant_id))

    def directory(self, address: Address) -> Path:
        return self._contain(address.tenant_id, address.collection_id, *split_subdir(address.subdir))

    def path_for(self, address: Address, name: str) -> Path:
        name = check_segment(name, "filename")
        return self._contain(address.tenant_id, address.collection_id, *split_subdir(address.subdir), name)

    def resolve(self, tenant_id: str, collection_id: str, subdir: Optional[str], name: str) -> Path:
        return self.path_for(self.address(tenant_id, collection_id, subdir), name)

    def sidecar_path(self, address: Address, key: str) -> Path:
        return self.path_for(address, sidecar_name(key))

    def staging_dir(self) -> Path:
        return self._contain(self.staging_dir_name)

    # ---------- urls ----------
    def url_for(self, address: Address, name: str) -> str:
        return self._url(address, name, "")

    def download_url_for(self, address: Address, name: str) -> str:
        return self._url(address, name, "/download")

    def _url(self, address: Address, name: str, suffix: str) -> str:
        base = "/".join(quote(p, safe="") for p in (address.tenant_id, address.collection_id, name))
        url = f"{self.url_prefix}/{base}{suffix}"
        if address.subdir:
            url += "?" + urlencode({"dir": address.subdir})
        return url
