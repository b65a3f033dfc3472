"""Remote object storage (R2 worker) client — listing, upload, delete, download."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Iterable
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

UPLOAD_TIMEOUT = 600.0  # seconds, large video uploads
MAX_LISTING_PAGES = 1000

# Outer keys the worker has used for the record array
_LISTING_KEYS = ("files", "objects", "items")


class StorageError(Exception):
    """Base class for remote storage failures."""


class UpstreamUnavailable(StorageError):
    """Network error, timeout or non-success status from the storage API."""


class UpstreamParseError(StorageError):
    """Storage API payload does not have the expected outer shape."""


class ObjectNotFound(UpstreamUnavailable):
    """Requested object key does not exist upstream (downloads only)."""


@dataclass(frozen=True)
class ObjectRecord:
    """One stored object as reported by the full listing."""
    key: str
    category: str
    size: int = 0
    modified_at: str | None = None
    created_at: str | None = None
    original_filename: str | None = None
    subtitle_refs: tuple[str, ...] = ()

    @property
    def filename(self) -> str:
        return self.key.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class UploadResult:
    """One uploaded file as acknowledged by the storage API."""
    file: str
    original_file: str
    size: int = 0
    subtitle: tuple[str, ...] = ()
    url: str = ""


def _as_int(value: Any, key: str) -> int:
    if value is None:
        return 0
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        logger.warning("Non-numeric size %r for %s — defaulting to 0", value, key)
        return 0


def _as_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _as_str_tuple(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,) if value else ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value if v)
    return ()


def parse_record(item: Any, category: str) -> ObjectRecord | None:
    """Build an ObjectRecord from one listing item, tolerating missing fields.

    Accepts the flat shape ``{"key", "size", "last_modified"}`` and the
    nested worker shape ``{"key", "value": {"file", "size", "modifiedDate"}}``.
    Returns None for items without a usable key.
    """
    if not isinstance(item, dict):
        logger.warning("Skipping listing item of type %s", type(item).__name__)
        return None
    key = item.get("key")
    if not isinstance(key, str) or not key:
        logger.warning("Skipping listing item without key: %r", item)
        return None

    value = item.get("value")
    fields = value if isinstance(value, dict) else item

    return ObjectRecord(
        key=key,
        category=category,
        size=_as_int(fields.get("size"), key),
        modified_at=_as_str(
            fields.get("modifiedDate") or fields.get("last_modified") or fields.get("uploaded")
        ),
        created_at=_as_str(fields.get("createdDate") or fields.get("created_at")),
        original_filename=_as_str(fields.get("original_file") or fields.get("file")),
        subtitle_refs=_as_str_tuple(fields.get("subtitle")),
    )


def _extract_items(payload: Any) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for name in _LISTING_KEYS:
            items = payload.get(name)
            if isinstance(items, list):
                return items
    raise UpstreamParseError(
        f"Unexpected listing payload: {type(payload).__name__}"
    )


def _next_cursor(payload: Any) -> str | None:
    if isinstance(payload, dict) and payload.get("truncated") and payload.get("cursor"):
        return str(payload["cursor"])
    return None


class StorageClient:
    """Stateless client for the remote storage worker HTTP API."""

    def __init__(
        self,
        base_url: str,
        default_bucket: str,
        public_url: str | None = None,
        timeout: float = 30.0,
        listing_deadline: float | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._public_url = (public_url or base_url).rstrip("/")
        self._bucket = default_bucket
        self._timeout = timeout
        # Whole paginated listing, all pages together
        self._listing_deadline = listing_deadline or timeout * 4

    @property
    def default_bucket(self) -> str:
        return self._bucket

    def file_url(self, key: str) -> str:
        """Public URL for a stored object."""
        return f"{self._public_url}/file?key={quote(key, safe='/')}"

    async def _request(
        self,
        method: str,
        path: str,
        timeout: float | None = None,
        missing_is_not_found: bool = False,
        **kwargs,
    ) -> httpx.Response:
        """Single bounded request; transport failures become UpstreamUnavailable.

        A 404 is reported as ObjectNotFound only when ``missing_is_not_found``
        is set (object downloads). Anywhere else a 404 is an ordinary failed status.
        """
        timeout = timeout or self._timeout
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailable(f"{method} {path} timed out after {timeout}s") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"{method} {path} failed: {exc}") from exc

        if resp.status_code == 404 and missing_is_not_found:
            raise ObjectNotFound(f"{method} {path}: not found")
        if not 200 <= resp.status_code < 300:
            raise UpstreamUnavailable(
                f"{method} {path} returned {resp.status_code}: {resp.text[:200]}"
            )
        return resp

    @staticmethod
    def _json(resp: httpx.Response, what: str) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamParseError(f"{what}: response is not JSON") from exc

    async def fetch_full_listing(self, category: str) -> list[ObjectRecord]:
        """Every object in ``category``, following upstream cursors.

        The per-request timeout bounds each page; the listing deadline bounds
        the whole walk so a slow paginating upstream cannot stall a cold read.
        """
        try:
            return await asyncio.wait_for(
                self._walk_listing(category), timeout=self._listing_deadline
            )
        except asyncio.TimeoutError as exc:
            raise UpstreamUnavailable(
                f"Listing for {category} exceeded {self._listing_deadline}s deadline"
            ) from exc

    async def _walk_listing(self, category: str) -> list[ObjectRecord]:
        records: list[ObjectRecord] = []
        skipped = 0
        cursor: str | None = None

        for _ in range(MAX_LISTING_PAGES):
            params = {"bucket": category}
            if cursor:
                params["cursor"] = cursor
            resp = await self._request("GET", "/all-file", params=params)
            payload = self._json(resp, "listing")

            for item in _extract_items(payload):
                record = parse_record(item, category)
                if record is None:
                    skipped += 1
                else:
                    records.append(record)

            cursor = _next_cursor(payload)
            if cursor is None:
                break
        else:
            logger.warning("Listing for %s exceeded %d pages — truncated", category, MAX_LISTING_PAGES)

        if skipped:
            logger.warning("Listing for %s: skipped %d malformed items", category, skipped)
        logger.debug("Fetched %d records for category %s", len(records), category)
        return records

    async def upload_files(
        self,
        files: Iterable[tuple[str, bytes]],
        full_path: str,
        bucket: str | None = None,
    ) -> list[UploadResult]:
        """Multipart upload of one or more files under ``full_path``."""
        parts = [("file", (filename, data)) for filename, data in files]
        if not parts:
            raise ValueError("No files to upload")

        resp = await self._request(
            "POST",
            "/upload",
            timeout=UPLOAD_TIMEOUT,
            data={"bucket": bucket or self._bucket, "fullpath": full_path},
            files=parts,
        )
        payload = self._json(resp, "upload")
        uploaded = payload.get("uploaded", []) if isinstance(payload, dict) else []

        results = []
        for item in uploaded:
            if not isinstance(item, dict) or not item.get("file"):
                continue
            file_key = str(item["file"])
            results.append(
                UploadResult(
                    file=file_key,
                    original_file=str(item.get("original_file") or file_key.rsplit("/", 1)[-1]),
                    size=_as_int(item.get("size"), file_key),
                    subtitle=_as_str_tuple(item.get("subtitle")),
                    url=self.file_url(file_key),
                )
            )
        logger.info("Uploaded %d files to %s", len(results), full_path)
        return results

    async def delete_file(self, key: str, bucket: str | None = None) -> bool:
        """Delete one object. Returns the worker's result flag."""
        resp = await self._request(
            "POST",
            "/delete-file",
            json={"bucket": bucket or self._bucket, "key": key},
        )
        payload = self._json(resp, "delete")
        result = bool(payload.get("result", True)) if isinstance(payload, dict) else True
        logger.info("Deleted %s (result=%s)", key, result)
        return result

    async def download_file(self, key: str) -> tuple[bytes, str]:
        """Fetch object bytes and content type."""
        resp = await self._request(
            "GET", f"/download/{quote(key, safe='/')}", missing_is_not_found=True
        )
        content_type = resp.headers.get("content-type", "application/octet-stream")
        return resp.content, content_type
