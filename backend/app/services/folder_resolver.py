"""Virtual folder tree derived from a flat key listing."""

from __future__ import annotations

from dataclasses import dataclass

from app.services.listing_cache import ListingSnapshot
from app.services.storage_client import ObjectRecord

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp")
VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi", ".mkv", ".webm")
TEXT_EXTENSIONS = (".txt", ".json", ".xml", ".csv")


@dataclass(frozen=True)
class Crumb:
    name: str
    path: str


def normalize_path(path: str | None) -> str:
    """Root is ``""``; leading/trailing slashes are dropped."""
    if not path or path == "/":
        return ""
    return path.strip("/")


def _key_prefix(prefix: str) -> str:
    if prefix.endswith("/"):
        prefix = prefix[:-1]
    return f"{prefix}/" if prefix else ""


def list_children(snapshot: ListingSnapshot, prefix: str) -> list[str]:
    """Immediate child folder names under ``prefix``, sorted."""
    key_prefix = _key_prefix(prefix)
    names: set[str] = set()
    for record in snapshot.records:
        if not record.key.startswith(key_prefix):
            continue
        remainder = record.key[len(key_prefix):]
        name, sep, _ = remainder.partition("/")
        if sep and name:
            names.add(name)
    return sorted(names)


def list_files(snapshot: ListingSnapshot, prefix: str) -> list[ObjectRecord]:
    """Leaf records directly under ``prefix``, sorted by file name."""
    key_prefix = _key_prefix(prefix)
    files = [
        record
        for record in snapshot.records
        if record.key.startswith(key_prefix)
        and record.key != key_prefix
        and "/" not in record.key[len(key_prefix):]
    ]
    return sorted(files, key=lambda r: r.filename)


def build_breadcrumbs(path: str) -> list[Crumb]:
    crumbs = [Crumb(name="Home", path="")]
    current = ""
    for part in normalize_path(path).split("/"):
        if not part:
            continue
        current = f"{current}/{part}" if current else part
        crumbs.append(Crumb(name=part, path=current))
    return crumbs


def file_type(filename: str) -> str:
    lower = filename.lower()
    if lower.endswith(IMAGE_EXTENSIONS):
        return "image"
    if lower.endswith(VIDEO_EXTENSIONS):
        return "video"
    if lower.endswith(".pdf"):
        return "pdf"
    if lower.endswith(TEXT_EXTENSIONS):
        return "text"
    return "other"
