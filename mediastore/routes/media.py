"""
Media asset endpoints (mounted under MEDIA_URL_PREFIX, default /media).

POST   /{tenant}/{collection}/upload                 multipart: file, dir?
GET    /{tenant}/{collection}/{filename}             ?dir=   raw bytes (Range / If-None-Match aware)
GET    /{tenant}/{collection}/{filename}/download    ?dir=   bytes as attachment
GET    /meta/{tenant}/{collection}/{id}              ?dir=   sidecar JSON, or stat-derived fallback
GET    /{tenant}/{collection}/dir                    ?path=  {"folders": [...], "files": [...]}
GET    /{tenant}/{collection}/search                 ?query=&dir=
POST   /{tenant}/{collection}/create-folder          {"path": "a/b"}
DELETE /{tenant}/{collection}/delete-folder          {"path": "a/b"}
POST   /{tenant}/{collection}/{filename}/move        {"fromDir": "", "toDir": "x"}
POST   /{tenant}/{collection}/{filename}/rename      {"newName": "y.pdf", "dir": ""}
DELETE /{tenant}/{collection}/{filename}             ?dir=
GET    /{tenant}                                     collection names
GET    /{tenant}/{collection}                        ?dir=   file names
POST   /{tenant}/{collection}                        create collection

Fixed segments (meta, upload, dir, search, create-folder, delete-folder) are
registered before the {filename} routes, so those words cannot be fetched as
filenames at the collection top level.

Every storage call is blocking file I/O and runs in the threadpool.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from mediastore.config import settings
from mediastore.services.streaming import build_headers, iter_file, parse_range, resolve_if_none_match
from mediastore.storage import MediaStore

logger = logging.getLogger("uvicorn.error")

router = APIRouter(tags=["media"])


@lru_cache(maxsize=1)
def get_store() -> MediaStore:
    return MediaStore.from_settings(settings)


# ---------- Models ----------
class FolderBody(BaseModel):
    path: Optional[str] = Field(None, description="Folder path relative to the collection, e.g. 'a/b'")

class MoveBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    from_dir: Optional[str] = Field("", alias="fromDir")
    to_dir: Optional[str] = Field("", alias="toDir")

class RenameBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    new_name: Optional[str] = Field(None, alias="newName")
    dir: Optional[str] = None


# ---------- Helpers ----------
async def _serve(request: Request, store: MediaStore, tenant: str, collection: str,
                 filename: str, subdir: Optional[str], *, download: bool) -> Response:
    asset = await run_in_threadpool(store.assets.locate, tenant, collection, filename, subdir or "")
    resp_headers = await run_in_threadpool(build_headers, asset, download=download)

    req_etag = resolve_if_none_match(request)
    if req_etag and req_etag == resp_headers["ETag"].strip('"'):
        return Response(status_code=304, headers=resp_headers)

    total = asset.size or 0
    mime = asset.mime or "application/octet-stream"
    range_header = request.headers.get("range")
    rng = parse_range(range_header, total) if range_header else None

    if rng:
        start, end_excl = rng
        if start >= end_excl or start < 0 or end_excl > total:
            return JSONResponse(
                status_code=416,
                content={"ok": False, "error": "InvalidRange", "detail": "invalid range"},
                headers={"Content-Range": f"bytes */{total}"},
            )
        headers = {
            **resp_headers,
            "Content-Length": str(end_excl - start),
            "Content-Range": f"bytes {start}-{end_excl - 1}/{total}",
        }
        return StreamingResponse(
            iter_file(asset.abs_path, start=start, end_excl=end_excl),
            media_type=mime,
            status_code=206,
            headers=headers,
        )

    headers = {**resp_headers, "Content-Length": str(total)}
    return StreamingResponse(
        iter_file(asset.abs_path, start=0, end_excl=None),
        media_type=mime,
        status_code=200,
        headers=headers,
    )


# ---------- Endpoints (fixed segments first) ----------
@router.get("/meta/{tenant}/{collection}/{asset_id}")
async def get_metadata(tenant: str, collection: str, asset_id: str,
                       dir: Optional[str] = Query(None), store: MediaStore = Depends(get_store)):
    meta = await run_in_threadpool(store.assets.describe, tenant, collection, asset_id, dir or "")
    source = "sidecar" if meta.authoritative else "fallback"
    return JSONResponse(meta.to_payload(), headers={"X-Metadata-Source": source})

@router.get("/{tenant}")
async def list_collections(tenant: str, store: MediaStore = Depends(get_store)):
    return await run_in_threadpool(store.namespace.list_collections, tenant)

@router.post("/{tenant}/{collection}/upload")
async def upload(
    tenant: str,
    collection: str,
    file: Optional[UploadFile] = File(None),
    dir: Optional[str] = Form(None),
    dir_query: Optional[str] = Query(None, alias="dir"),
    store: MediaStore = Depends(get_store),
):
    try:
        meta = await run_in_threadpool(
            store.uploads.commit,
            tenant,
            collection,
            dir or dir_query or "",
            file.file if file is not None else None,
            file.filename if file is not None else None,
            file.content_type if file is not None else None,
            getattr(file, "size", None),
        )
    finally:
        if file is not None:
            await file.close()
    logger.info("[MEDIA] upload %s/%s -> %s (%d bytes)", tenant, collection, meta.filename, meta.size)
    return meta.to_fields()

@router.get("/{tenant}/{collection}/dir")
async def list_directory(tenant: str, collection: str, path: Optional[str] = Query(None),
                         store: MediaStore = Depends(get_store)):
    return await run_in_threadpool(store.namespace.list_children, tenant, collection, path or "")

@router.get("/{tenant}/{collection}/search")
async def search(tenant: str, collection: str, query: Optional[str] = Query(None),
                 dir: Optional[str] = Query(None), store: MediaStore = Depends(get_store)):
    return await run_in_threadpool(store.namespace.search, tenant, collection, query or "", dir or "")

@router.post("/{tenant}/{collection}/create-folder")
async def create_folder(tenant: str, collection: str, body: Optional[FolderBody] = None,
                        store: MediaStore = Depends(get_store)):
    path = body.path if body else None
    await run_in_threadpool(store.namespace.create_folder, tenant, collection, path)
    return {"status": "created", "path": path}

@router.delete("/{tenant}/{collection}/delete-folder")
async def delete_folder(tenant: str, collection: str, body: Optional[FolderBody] = None,
                        store: MediaStore = Depends(get_store)):
    path = body.path if body else None
    await run_in_threadpool(store.namespace.delete_folder, tenant, collection, path)
    return {"status": "deleted", "path": path}

@router.get("/{tenant}/{collection}")
async def list_files(tenant: str, collection: str, dir: Optional[str] = Query(None),
                     store: MediaStore = Depends(get_store)):
    return await run_in_threadpool(store.namespace.list_files, tenant, collection, dir or "")

@router.post("/{tenant}/{collection}")
async def create_collection(tenant: str, collection: str, store: MediaStore = Depends(get_store)):
    await run_in_threadpool(store.namespace.create_collection, tenant, collection)
    return {"status": "created"}

# ---------- Per-file endpoints ----------
@router.get("/{tenant}/{collection}/{filename}/download")
async def download_file(request: Request, tenant: str, collection: str, filename: str,
                        dir: Optional[str] = Query(None), store: MediaStore = Depends(get_store)):
    return await _serve(request, store, tenant, collection, filename, dir, download=True)

@router.get("/{tenant}/{collection}/{filename}")
async def get_file(request: Request, tenant: str, collection: str, filename: str,
                   dir: Optional[str] = Query(None), store: MediaStore = Depends(get_store)):
    return await _serve(request, store, tenant, collection, filename, dir, download=False)

@router.post("/{tenant}/{collection}/{filename}/move")
async def move_file(tenant: str, collection: str, filename: str, body: Optional[MoveBody] = None,
                    store: MediaStore = Depends(get_store)):
    body = body or MoveBody()
    result = await run_in_threadpool(
        store.relocation.move, tenant, collection, filename, body.from_dir or "", body.to_dir or ""
    )
    return {"status": "moved", "filename": result.filename, "dir": result.address.subdir, "sidecar": result.sidecar}

@router.post("/{tenant}/{collection}/{filename}/rename")
async def rename_file(tenant: str, collection: str, filename: str, body: Optional[RenameBody] = None,
                      dir: Optional[str] = Query(None), store: MediaStore = Depends(get_store)):
    body = body or RenameBody()
    result = await run_in_threadpool(
        store.relocation.rename, tenant, collection, filename, body.dir or dir or "", body.new_name
    )
    return {"status": "renamed", "filename": result.filename, "dir": result.address.subdir, "sidecar": result.sidecar}

@router.delete("/{tenant}/{collection}/{filename}")
async def delete_file(tenant: str, collection: str, filename: str, dir: Optional[str] = Query(None),
                      store: MediaStore = Depends(get_store)):
    address = await run_in_threadpool(store.assets.delete, tenant, collection, filename, dir or "")
    return {
        "status": "deleted",
        "filename": filename,
        "tenantId": address.tenant_id,
        "collectionId": address.collection_id,
        "dir": address.subdir,
    }
