# mediastore/services/streaming.py
from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple
from urllib.parse import quote

from fastapi import Request

from mediastore.storage.models import AssetFile


READ_CHUNK = 64 * 1024

_HEADER_UNSAFE = str.maketrans("", "", "\"\r\n")

def _utc_http_date(dt: datetime) -> str:
    return dt.strftime("%a, %d %b %Y %H:%M:%S GMT")

def iter_file(path: Path, start: int = 0, end_excl: Optional[int] = None) -> Iterator[bytes]:
    """Yield the bytes of path[start:end_excl] in READ_CHUNK pieces."""
    with path.open("rb") as f:
        f.seek(start)
        pos = start
        while end_excl is None or pos < end_excl:
            want = READ_CHUNK if end_excl is None else min(READ_CHUNK, end_excl - pos)
            block = f.read(want)
            if not block:
                return
            pos += len(block)
            yield block

def content_disposition(name: str, *, attachment: bool) -> str:
    """inline/attachment header with an ASCII filename and the UTF-8 original in filename*."""
    clean = (name or "").translate(_HEADER_UNSAFE).strip() or "file"
    fallback = clean.encode("ascii", "replace").decode("ascii")
    kind = "attachment" if attachment else "inline"
    encoded = quote(clean, safe="")
    return f"{kind}; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"

def parse_range(range_header: str, total: int) -> Optional[Tuple[int, int]]:
    """'bytes=a-b' -> (start, end_exclusive). Multi-range and junk -> None (serve whole file)."""
    if not range_header or not range_header.startswith("bytes="):
        return None
    val = range_header.split("=", 1)[1].strip()
    if "," in val or "-" not in val:
        return None
    start_s, end_s = (s.strip() for s in val.split("-", 1))
    try:
        if start_s == "":
            if end_s == "":
                return None
            length = int(end_s)
            if length <= 0:
                return None
            return (max(total - length, 0), total)
        start = int(start_s)
        if end_s == "":
            end_excl = total
        else:
            end = int(end_s)
            if end < start:
                return None
            end_excl = end + 1
    except ValueError:
        return None
    return (start, min(end_excl, total))

def etag_for(asset: AssetFile) -> str:
    st = asset.abs_path.stat()
    return f"{asset.file_id}-{st.st_size:x}-{st.st_mtime_ns:x}"

def build_headers(asset: AssetFile, *, download: bool) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    headers["Cache-Control"] = "no-cache"
    headers["ETag"] = f"\"{etag_for(asset)}\""
    headers["Content-Disposition"] = content_disposition(asset.original_name, attachment=download)
    headers["X-Content-Type-Options"] = "nosniff"
    headers["Accept-Ranges"] = "bytes"
    headers["Date"] = _utc_http_date(datetime.now(timezone.utc))
    return headers

def resolve_if_none_match(request: Request) -> Optional[str]:
    inm = request.headers.get("if-none-match")
    if not inm:
        return None
    token = inm.split(",")[0].strip()
    if token.startswith("W/"):
        token = token[2:]
    return token.strip('"')
