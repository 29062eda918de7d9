"""FastAPI asset and share server."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from slideomatic.core.config import ServerSettings
from slideomatic.core.deck import Deck
from slideomatic.core.errors import MalformedReferenceError, ShareTooLargeError, UnsupportedImageError
from slideomatic.core.images import decode_data_uri, format_bytes
from slideomatic.server.blobs import FileBlobStore
from slideomatic.server.cleanup import CleanupReport, cleanup_expired
from slideomatic.server.common import (
    ASSET_STORE_NAME,
    IMMUTABLE_CACHE_CONTROL,
    NO_STORE_CACHE_CONTROL,
    SHARE_STORE_NAME,
    build_asset_url,
    build_share_url,
    create_asset_id,
    now_ms,
)
from slideomatic.server.externalizer import ShareExternalizer

logger = logging.getLogger(__name__)

router = APIRouter()


class UploadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data_url: str = Field(default="", alias="dataUrl")
    filename: str = "upload"
    mime_type: str | None = Field(default=None, alias="mimeType")
    size: int | None = None


class DeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    asset_ids: list[Any] = Field(default_factory=list, alias="assetIds")
    ids: list[Any] = Field(default_factory=list)


class ShareRequest(BaseModel):
    slides: list[Any] | None = None
    theme: Any = None
    meta: dict[str, Any] | None = None


def _settings(request: Request) -> ServerSettings:
    return request.app.state.settings


def _assets(request: Request) -> FileBlobStore:
    return request.app.state.assets


def _shares(request: Request) -> FileBlobStore:
    return request.app.state.shares


@router.post("/assets")
def upload_asset(body: UploadRequest, request: Request) -> dict[str, Any]:
    if not body.data_url:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Missing data URL")
    try:
        data, mime_type = decode_data_uri(body.data_url, body.mime_type)
    except UnsupportedImageError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc)) from exc
    if not mime_type.startswith("image/"):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Only image uploads are supported")
    limit = _settings(request).max_asset_bytes
    if len(data) > limit:
        raise HTTPException(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            f"Image exceeds {format_bytes(limit)} limit",
        )

    asset_id = create_asset_id(body.filename)
    _assets(request).set(
        asset_id,
        data,
        {
            "bytes": len(data),
            "filename": body.filename,
            "mimeType": mime_type,
            "uploadedAt": now_ms(),
            "sourceSize": body.size if body.size is not None else len(data),
        },
    )
    logger.info("Stored asset %s (%s, %s)", asset_id, mime_type, format_bytes(len(data)))
    return {
        "assetId": asset_id,
        "url": build_asset_url(request, asset_id),
        "bytes": len(data),
        "mimeType": mime_type,
    }


@router.get("/assets")
def get_asset(request: Request, asset_id: str = Query(default="", alias="id")) -> Response:
    if not asset_id.strip():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Missing asset id")
    stored = _assets(request).get_with_metadata(asset_id.strip())
    if stored is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Asset not found")
    return Response(
        content=stored.data,
        media_type=stored.metadata.get("mimeType") or "application/octet-stream",
        headers={"Cache-Control": IMMUTABLE_CACHE_CONTROL},
    )


@router.head("/assets")
def head_asset(request: Request, asset_id: str = Query(default="", alias="id")) -> Response:
    if not asset_id.strip():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Missing asset id")
    metadata = _assets(request).get_metadata(asset_id.strip())
    if metadata is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Asset not found")
    headers = {
        "Content-Type": metadata.get("mimeType") or "application/octet-stream",
        "Cache-Control": IMMUTABLE_CACHE_CONTROL,
    }
    if metadata.get("bytes"):
        headers["Content-Length"] = str(int(metadata["bytes"]))
    return Response(headers=headers)


@router.post("/assets/delete")
def delete_assets(body: DeleteRequest, request: Request) -> dict[str, int]:
    ids = [str(value).strip() for value in [*body.asset_ids, *body.ids]]
    ids = [value for value in dict.fromkeys(ids) if value]
    if not ids:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "No asset ids provided")
    store = _assets(request)
    deleted = 0
    for asset_id in ids:
        try:
            if store.delete(asset_id):
                deleted += 1
        except OSError as exc:
            logger.warning("Failed to delete asset %s: %s", asset_id, exc)
    return {"deleted": deleted}


@router.post("/shares")
def publish_share(body: ShareRequest, request: Request) -> dict[str, Any]:
    if not isinstance(body.slides, list):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Missing slides array")
    try:
        deck = Deck.model_validate({"slides": body.slides})
    except ValidationError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid slides payload") from exc

    settings = _settings(request)
    externalizer = ShareExternalizer(
        _assets(request),
        _shares(request),
        max_asset_bytes=settings.max_share_asset_bytes,
        max_deck_bytes=settings.max_deck_bytes,
        ttl_days=settings.share_ttl_days,
    )
    try:
        published = externalizer.publish(
            deck,
            theme=body.theme,
            meta=body.meta,
            asset_url=lambda asset_id: build_asset_url(request, asset_id),
        )
    except ShareTooLargeError as exc:
        return _error_response(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            str(exc),
            bytes=exc.bytes_size,
            limit=exc.limit,
        )
    except (MalformedReferenceError, UnsupportedImageError) as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, str(exc)) from exc

    return {
        "id": published.id,
        "bytes": published.bytes,
        "shareUrl": build_share_url(request, published.id),
    }


@router.get("/shares")
def get_share(request: Request, share_id: str = Query(default="", alias="id")) -> Response:
    if not share_id.strip():
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Missing share id")
    record = _shares(request).get(share_id.strip())
    if record is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Share not found")
    return Response(
        content=record,
        media_type="application/json",
        headers={"Cache-Control": NO_STORE_CACHE_CONTROL},
    )


@router.api_route("/cleanup", methods=["GET", "POST"])
def cleanup(request: Request, dry_run: bool = Query(default=False, alias="dryRun")) -> dict[str, Any]:
    report: CleanupReport = cleanup_expired(_assets(request), _shares(request), dry_run=dry_run)
    return report.model_dump(by_alias=True)


def _error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, **extra},
        headers={"Cache-Control": NO_STORE_CACHE_CONTROL},
    )


def create_app(
    settings: ServerSettings | None = None,
    *,
    data_dir: Path | None = None,
) -> FastAPI:
    """Build the server app with blob stores under `data_dir`."""
    settings = settings or ServerSettings()
    root = Path(data_dir or settings.data_dir).expanduser()

    app = FastAPI(title="slideomatic", docs_url=None, redoc_url=None)
    app.state.settings = settings
    app.state.assets = FileBlobStore(root / ASSET_STORE_NAME)
    app.state.shares = FileBlobStore(root / SHARE_STORE_NAME)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "HEAD", "POST", "OPTIONS"],
        allow_headers=["content-type"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        logger.debug("Rejected request payload: %s", exc.errors())
        return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid JSON payload")

    @app.exception_handler(OSError)
    async def storage_error(_: Request, exc: OSError) -> JSONResponse:
        logger.error("Blob storage failure: %s", exc)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to store asset")

    app.include_router(router)
    return app
