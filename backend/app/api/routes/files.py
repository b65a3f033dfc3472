"""File API routes — storage worker proxy with cache invalidation on writes."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response

from app.api.deps import get_cache_admin, get_listing_cache, get_storage_client
from app.api.errors import storage_http_error
from app.api.uploads import UploadTooLarge, read_limited
from app.config import settings
from app.schemas.files import (
    DeleteFileRequest,
    DeleteFileResponse,
    FileInfo,
    FileListResponse,
    UploadedFile,
    UploadResponse,
)
from app.services.cache_admin import CacheAdmin
from app.services.listing_cache import ListingCache
from app.services.storage_client import StorageClient, StorageError, UploadResult

logger = logging.getLogger(__name__)
router = APIRouter()


def _uploaded(results: list[UploadResult]) -> list[UploadedFile]:
    return [
        UploadedFile(
            file=r.file,
            original_file=r.original_file,
            size=r.size,
            subtitle=list(r.subtitle),
            url=r.url,
        )
        for r in results
    ]


async def _read_parts(files: list[UploadFile]) -> list[tuple[str, bytes]]:
    parts = []
    for upload in files:
        try:
            data = await read_limited(upload, settings.max_upload_bytes)
        except UploadTooLarge as e:
            logger.warning("Upload rejected: %s", e)
            raise HTTPException(
                status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                f"File too large: {e.filename} (max {settings.max_upload_bytes} bytes)",
            )
        parts.append((upload.filename or "unknown", data))
    return parts


@router.get("", response_model=FileListResponse)
async def list_files(
    bucket: str | None = None,
    cache: ListingCache = Depends(get_listing_cache),
    storage: StorageClient = Depends(get_storage_client),
):
    """Full cached listing of a bucket."""
    category = bucket or storage.default_bucket
    try:
        snapshot = await cache.get_all(category)
    except StorageError as e:
        raise storage_http_error(e, f"File listing for {category}")

    return FileListResponse(
        bucket=category,
        files=[
            FileInfo(
                key=r.key,
                size=r.size,
                last_modified=r.modified_at,
                created_at=r.created_at,
                original_file=r.original_filename,
                subtitle=list(r.subtitle_refs),
                url=storage.file_url(r.key),
            )
            for r in snapshot.records
        ],
    )


@router.post("/upload", response_model=UploadResponse)
async def upload_files(
    file: Optional[list[UploadFile]] = File(None),
    fullpath: str = Form(""),
    bucket: str = Form(""),
    storage: StorageClient = Depends(get_storage_client),
    admin: CacheAdmin = Depends(get_cache_admin),
):
    """Relay one or more files to ``fullpath`` on the storage worker."""
    if not file or not fullpath:
        raise HTTPException(400, "Missing required fields: file or fullpath")

    parts = await _read_parts(file)
    try:
        results = await storage.upload_files(parts, fullpath, bucket=bucket or None)
    except StorageError as e:
        raise storage_http_error(e, f"Upload to {fullpath}")

    admin.invalidate(fullpath, category=bucket or storage.default_bucket)
    return UploadResponse(full_path=fullpath, uploaded=_uploaded(results))


@router.post("/upload-single", response_model=UploadResponse)
async def upload_single_file(
    file: Optional[UploadFile] = File(None),
    full_path: str = Form(""),
    storage: StorageClient = Depends(get_storage_client),
    admin: CacheAdmin = Depends(get_cache_admin),
):
    """Upload one file to an explicit ``dir/.../name`` path."""
    if file is None:
        raise HTTPException(400, "No file provided")
    if not full_path:
        raise HTTPException(400, "Missing full_path parameter")

    # Directory part incl. trailing slash; the worker keeps the file's own name
    slash = full_path.rfind("/")
    base_path = full_path[: slash + 1] if slash >= 0 else ""

    parts = await _read_parts([file])
    try:
        results = await storage.upload_files(parts, base_path)
    except StorageError as e:
        raise storage_http_error(e, f"Upload to {full_path}")

    admin.invalidate(base_path, category=storage.default_bucket)
    return UploadResponse(full_path=full_path, uploaded=_uploaded(results))


@router.post("/delete", response_model=DeleteFileResponse)
async def delete_file(
    request: DeleteFileRequest,
    storage: StorageClient = Depends(get_storage_client),
    admin: CacheAdmin = Depends(get_cache_admin),
):
    """Delete one object and invalidate the listing cache."""
    if not request.key:
        raise HTTPException(400, "Missing key")

    try:
        result = await storage.delete_file(request.key, bucket=request.bucket or None)
    except StorageError as e:
        raise storage_http_error(e, f"Delete of {request.key}")

    admin.invalidate(request.key, category=request.bucket or storage.default_bucket)
    return DeleteFileResponse(key=request.key, result=result)


@router.get("/download/{key:path}")
async def download_file(
    key: str,
    storage: StorageClient = Depends(get_storage_client),
):
    """Proxy object bytes from the storage worker."""
    try:
        content, content_type = await storage.download_file(key)
    except StorageError as e:
        raise storage_http_error(e, f"Download of {key}")
    return Response(content=content, media_type=content_type)
