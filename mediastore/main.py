import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .config import settings
from .routes.media import get_store, router as media_router
from .storage import MediaStoreError

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = app.dependency_overrides.get(get_store, get_store)()
    await run_in_threadpool(store.ensure_layout)
    logger.info("[MEDIA] storage root %s (env=%s)", store.resolver.root, settings.app_env)
    yield


def create_app() -> FastAPI:
    logging.getLogger("mediastore").setLevel(settings.log_level.upper())

    app = FastAPI(lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Range", "If-None-Match"],
        expose_headers=["Content-Range", "Content-Disposition", "ETag", "X-Metadata-Source"],
    )

    @app.exception_handler(MediaStoreError)
    async def media_store_error(request: Request, exc: MediaStoreError):
        if exc.status_code >= 500:
            logger.error("[MEDIA] %s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.get("/healthz")
    async def healthz():
        return {"ok": True}

    app.include_router(media_router, prefix=settings.url_prefix.rstrip("/"))
    return app


app = create_app()
