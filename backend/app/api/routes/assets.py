"""Asset bundle routes — cover, video and subtitles stored under book/title."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse, Response
from pydantic import TypeAdapter, ValidationError

from app.api.deps import get_cache_admin, get_listing_cache, get_storage_client
from app.api.errors import storage_http_error
from app.api.uploads import UploadTooLarge, read_limited
from app.config import settings
from app.schemas.assets import CreateAssetResponse, SubtitleLine, SubtitleResponse
from app.services.cache_admin import CacheAdmin
from app.services.folder_resolver import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS, list_files
from app.services.listing_cache import ListingCache
from app.services.storage_client import (
    ObjectNotFound,
    ObjectRecord,
    StorageClient,
    StorageError,
    UploadResult,
)

logger = logging.getLogger(__name__)
router = APIRouter()

ASSET_VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi")
COVER_EXTENSIONS = (".png", ".jpg", ".jpeg")
DEFAULT_SUBTITLE_FILE = "subtitle.json"

_subtitle_adapter = TypeAdapter(list[SubtitleLine])


def _failure(status_code: int, message: str) -> JSONResponse:
    body = CreateAssetResponse(success=False, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _extension(filename: str) -> str:
    dot = filename.rfind(".")
    return filename[dot:] if dot >= 0 else ""


def _first_url(results: list[UploadResult], extensions: tuple[str, ...]) -> str | None:
    for r in results:
        if r.original_file.lower().endswith(extensions):
            return r.url
    return None


@router.post("", response_model=CreateAssetResponse)
async def create_asset(
    book_id: str = Form(""),
    title: str = Form(""),
    subtitles: str = Form(""),
    cover_image: Optional[UploadFile] = File(None),
    video_file: Optional[UploadFile] = File(None),
    storage: StorageClient = Depends(get_storage_client),
    admin: CacheAdmin = Depends(get_cache_admin),
):
    """Upload a cover/video/subtitle bundle to ``{book_id}/{title}/``."""
    book_id, title = book_id.strip(), title.strip()
    if not book_id or not title:
        return _failure(400, "Missing required fields: book_id, title")
    if "/" in book_id or "/" in title:
        return _failure(400, "book_id and title must not contain '/'")

    # Stored names follow the title, keeping the original extension
    renamed: list[tuple[str, bytes]] = []
    has_video = False
    for upload in (cover_image, video_file):
        if upload is None or not upload.filename:
            continue
        try:
            data = await read_limited(upload, settings.max_upload_bytes)
        except UploadTooLarge as e:
            logger.warning("Asset upload rejected: %s", e)
            return _failure(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                f"File too large: {e.filename} (max {settings.max_upload_bytes} bytes)",
            )
        name = f"{title}{_extension(upload.filename)}"
        if name.lower().endswith(ASSET_VIDEO_EXTENSIONS):
            has_video = True
        logger.info("Asset %s/%s: %s -> %s (%.2fMB)", book_id, title, upload.filename, name, len(data) / 1024 / 1024)
        renamed.append((name, data))

    if not has_video:
        return _failure(400, "A video file (mp4, mov, avi) is required")

    if subtitles:
        try:
            _subtitle_adapter.validate_json(subtitles)
        except ValidationError as e:
            logger.info("Rejected subtitles for %s/%s: %s", book_id, title, e)
            return _failure(400, "Subtitles must be a JSON list of {page_num, sentence_num, text}")
        renamed.append((DEFAULT_SUBTITLE_FILE, subtitles.encode("utf-8")))

    full_path = f"{book_id}/{title}/"
    try:
        results = await storage.upload_files(renamed, full_path)
    except StorageError as e:
        logger.error("Asset creation failed for %s: %s", full_path, e)
        return _failure(503, "Asset creation failed, please try again later")

    admin.invalidate(full_path, category=storage.default_bucket)
    logger.info("Asset created: %s - %s", book_id, title)
    return CreateAssetResponse(
        success=True,
        asset_id=f"{book_id}_{title}",
        message="Asset created successfully",
        cover_image_url=_first_url(results, IMAGE_EXTENSIONS),
        video_url=_first_url(results, VIDEO_EXTENSIONS),
    )


async def _asset_files(
    cache: ListingCache, storage: StorageClient, book_id: str, title: str
) -> list[ObjectRecord]:
    snapshot = await cache.get_all(storage.default_bucket)
    return list_files(snapshot, f"{book_id}/{title}")


def _find_subtitle(records: list[ObjectRecord]) -> str:
    for record in records:
        name = record.filename.lower()
        if name.endswith(".json") and "sub" in name:
            return record.filename
    return DEFAULT_SUBTITLE_FILE


@router.get("/{book_id}/{title}/subtitles", response_model=SubtitleResponse)
async def get_subtitles(
    book_id: str,
    title: str,
    cache: ListingCache = Depends(get_listing_cache),
    storage: StorageClient = Depends(get_storage_client),
):
    """Subtitle lines stored alongside an asset's video."""
    try:
        filename = _find_subtitle(await _asset_files(cache, storage, book_id, title))
    except StorageError as e:
        logger.warning("Listing unavailable, assuming %s: %s", DEFAULT_SUBTITLE_FILE, e)
        filename = DEFAULT_SUBTITLE_FILE

    key = f"{book_id}/{title}/{filename}"
    try:
        content, _ = await storage.download_file(key)
    except ObjectNotFound:
        return SubtitleResponse(message="No subtitle file found")
    except StorageError as e:
        raise storage_http_error(e, f"Subtitle download {key}")

    try:
        lines = _subtitle_adapter.validate_json(content)
    except ValidationError as e:
        logger.error("Failed to parse subtitle JSON %s: %s", key, e)
        return SubtitleResponse(message="Subtitle data could not be parsed")

    logger.info("Loaded %d subtitle lines from %s", len(lines), key)
    return SubtitleResponse(data=lines, path=key, filename=filename)


@router.get("/{book_id}/{title}/cover")
async def get_cover_image(
    book_id: str,
    title: str,
    cache: ListingCache = Depends(get_listing_cache),
    storage: StorageClient = Depends(get_storage_client),
):
    """Proxy the asset's cover image."""
    try:
        records = await _asset_files(cache, storage, book_id, title)
    except StorageError as e:
        raise storage_http_error(e, f"Cover lookup {book_id}/{title}")

    cover = next((r for r in records if r.filename.lower().endswith(COVER_EXTENSIONS)), None)
    if cover is None:
        raise HTTPException(404, "No image file found")

    try:
        content, _ = await storage.download_file(cover.key)
    except StorageError as e:
        raise storage_http_error(e, f"Cover download {cover.key}")

    media_type = "image/png" if cover.filename.lower().endswith(".png") else "image/jpeg"
    return Response(
        content=content,
        media_type=media_type,
        headers={"cache-control": "public, max-age=3600"},
    )
