from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import FileResponse, RedirectResponse, Response

from fancyindex.config import load_settings
from fancyindex.services.errors import (
    DirectoryAccessError,
    IOFailure,
    NotFound,
    PermissionDenied,
)
from fancyindex.services.file_catalog import resolve_path
from fancyindex.services.listing import build_listing

settings = load_settings()

DOCUMENT_ROOT = settings.document_root
DOCUMENT_ROOT.mkdir(parents=True, exist_ok=True)

logger = logging.getLogger("fancyindex")
logger.setLevel(settings.log_level)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s - %(message)s"))
    logger.addHandler(handler)

logger.info("Serving directory listings from %s", DOCUMENT_ROOT)
if not settings.listing.enabled:
    logger.info("Directory listings are disabled (FANCYINDEX=off)")

app = FastAPI(
    title="Fancy Index",
    description="Directory index pages rendered in a single pass.",
    version="0.1.0",
)


@app.middleware("http")
async def add_csp_header(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault(
        "Content-Security-Policy",
        "default-src 'self'; style-src 'self' 'unsafe-inline';",
    )
    return response


def _listing_response(target, url_path: str) -> Response:
    if not settings.listing.enabled:
        raise HTTPException(status_code=403, detail="Directory listing is disabled")

    try:
        listing = build_listing(target, quote(url_path), settings.listing, utf8=settings.utf8)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Directory not found") from exc
    except PermissionDenied as exc:
        raise HTTPException(status_code=403, detail="Forbidden") from exc
    except IOFailure as exc:
        raise HTTPException(status_code=500, detail="Could not list directory") from exc

    return Response(content=listing.body, media_type=listing.content_type)


@app.api_route("/{uri_path:path}", methods=["GET", "HEAD"])
async def serve(uri_path: str, request: Request):
    url_path = request.url.path
    try:
        target = resolve_path(DOCUMENT_ROOT, uri_path)
    except DirectoryAccessError as exc:
        raise HTTPException(status_code=404, detail="Not found") from exc

    if url_path.endswith("/"):
        return _listing_response(target, url_path)

    if target.is_file():
        return FileResponse(path=target)
    if target.is_dir():
        return RedirectResponse(url=quote(url_path) + "/", status_code=301)
    raise HTTPException(status_code=404, detail="Not found")
