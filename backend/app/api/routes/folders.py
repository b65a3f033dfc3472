"""Virtual folder browsing over the cached full listing."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_listing_cache, get_storage_client
from app.api.errors import storage_http_error
from app.schemas.files import Breadcrumb, FolderContents, FolderItem
from app.services.folder_resolver import (
    build_breadcrumbs,
    file_type,
    list_children,
    list_files,
    normalize_path,
)
from app.services.listing_cache import ListingCache
from app.services.storage_client import StorageClient, StorageError

logger = logging.getLogger(__name__)
router = APIRouter()


async def _folder_contents(
    folder_path: str,
    bucket: str | None,
    cache: ListingCache,
    storage: StorageClient,
) -> FolderContents:
    path = normalize_path(folder_path)
    category = bucket or storage.default_bucket

    try:
        snapshot = await cache.get_all(category)
    except StorageError as e:
        raise storage_http_error(e, f"Folder listing for '{path}'")

    try:
        folders = list_children(snapshot, path)
        files = list_files(snapshot, path)
    except (TypeError, ValueError) as e:
        logger.warning("Inconsistent listing for %s:'%s' — returning empty: %s", category, path, e)
        folders, files = [], []

    items = [
        FolderItem(name=name, path=f"{path}/{name}" if path else name, item_type="folder")
        for name in folders
    ]
    items.extend(
        FolderItem(
            name=record.filename,
            path=record.key,
            item_type="file",
            size=record.size,
            file_type=file_type(record.filename),
            url=storage.file_url(record.key),
            modified_at=record.modified_at,
        )
        for record in files
    )

    return FolderContents(
        current_path=path,
        items=items,
        breadcrumbs=[Breadcrumb(name=c.name, path=c.path) for c in build_breadcrumbs(path)],
    )


@router.get("", response_model=FolderContents)
async def root_folders(
    bucket: str | None = None,
    cache: ListingCache = Depends(get_listing_cache),
    storage: StorageClient = Depends(get_storage_client),
):
    """Top-level folders (curricula / book ids)."""
    return await _folder_contents("", bucket, cache, storage)


@router.get("/{folder_path:path}", response_model=FolderContents)
async def folder_contents(
    folder_path: str,
    bucket: str | None = None,
    cache: ListingCache = Depends(get_listing_cache),
    storage: StorageClient = Depends(get_storage_client),
):
    """Child folders and files under ``folder_path``."""
    return await _folder_contents(folder_path, bucket, cache, storage)
