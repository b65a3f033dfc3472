"""Tests for asset bundle upload and lookup routes."""

import json
from unittest.mock import patch

import pytest
from httpx import AsyncClient

from app.services.storage_client import ObjectNotFound, UploadResult, UpstreamUnavailable
from conftest import make_records

SUBTITLES = [{"page_num": 1, "sentence_num": 1, "text": "Hello"}]


def _uploaded(*names):
    return [
        UploadResult(file=f"b1/Lesson 1/{n}", original_file=n, url=f"https://files.test/{n}")
        for n in names
    ]


@pytest.mark.asyncio
async def test_create_asset_renames_and_invalidates(client: AsyncClient, storage, listing_cache):
    await client.get("/api/folders")
    storage.upload_files.return_value = _uploaded("Lesson 1.png", "Lesson 1.mp4", "subtitle.json")

    resp = await client.post(
        "/api/assets",
        data={"book_id": "b1", "title": "Lesson 1", "subtitles": json.dumps(SUBTITLES)},
        files=[
            ("cover_image", ("IMG_1.PNG", b"png", "image/png")),
            ("video_file", ("raw.mp4", b"mp4", "video/mp4")),
        ],
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["asset_id"] == "b1_Lesson 1"
    assert data["cover_image_url"] == "https://files.test/Lesson 1.png"
    assert data["video_url"] == "https://files.test/Lesson 1.mp4"

    parts, full_path = storage.upload_files.await_args.args
    assert full_path == "b1/Lesson 1/"
    assert [name for name, _ in parts] == ["Lesson 1.PNG", "Lesson 1.mp4", "subtitle.json"]
    assert listing_cache.snapshots() == {}


@pytest.mark.asyncio
async def test_create_asset_requires_video(client: AsyncClient, storage):
    resp = await client.post(
        "/api/assets",
        data={"book_id": "b1", "title": "t"},
        files=[("cover_image", ("c.png", b"png", "image/png"))],
    )

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    storage.upload_files.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_asset_requires_ids(client: AsyncClient):
    resp = await client.post(
        "/api/assets",
        data={"title": "t"},
        files=[("video_file", ("v.mp4", b"mp4", "video/mp4"))],
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_create_asset_rejects_bad_subtitles(client: AsyncClient):
    resp = await client.post(
        "/api/assets",
        data={"book_id": "b1", "title": "t", "subtitles": "{not json"},
        files=[("video_file", ("v.mp4", b"mp4", "video/mp4"))],
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_create_asset_rejects_subtitles_of_wrong_shape(client: AsyncClient, storage):
    resp = await client.post(
        "/api/assets",
        data={"book_id": "b1", "title": "t", "subtitles": json.dumps([{"text": "no page"}])},
        files=[("video_file", ("v.mp4", b"mp4", "video/mp4"))],
    )
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    storage.upload_files.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_asset_too_large(client: AsyncClient, storage):
    with patch("app.api.routes.assets.settings") as mock_settings:
        mock_settings.max_upload_bytes = 2
        resp = await client.post(
            "/api/assets",
            data={"book_id": "b1", "title": "t"},
            files=[("video_file", ("v.mp4", b"12345", "video/mp4"))],
        )

    assert resp.status_code == 413
    storage.upload_files.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_asset_upstream_failure(client: AsyncClient, storage):
    storage.upload_files.side_effect = UpstreamUnavailable("worker down")

    resp = await client.post(
        "/api/assets",
        data={"book_id": "b1", "title": "t"},
        files=[("video_file", ("v.mp4", b"mp4", "video/mp4"))],
    )

    assert resp.status_code == 503
    assert "worker down" not in resp.text


@pytest.mark.asyncio
async def test_subtitles_found_via_listing(client: AsyncClient, storage):
    storage.fetch_full_listing.return_value = make_records(
        "b1/t/t.mp4", "b1/t/t_sub.json", "b1/other/subtitle.json"
    )
    storage.download_file.return_value = (json.dumps(SUBTITLES).encode(), "application/json")

    resp = await client.get("/api/assets/b1/t/subtitles")

    data = resp.json()
    assert data["success"] is True
    assert data["filename"] == "t_sub.json"
    assert data["data"] == SUBTITLES
    storage.download_file.assert_awaited_once_with("b1/t/t_sub.json")


@pytest.mark.asyncio
async def test_subtitles_missing_returns_empty(client: AsyncClient, storage):
    storage.download_file.side_effect = ObjectNotFound("404")

    resp = await client.get("/api/assets/b1/t/subtitles")

    assert resp.status_code == 200
    assert resp.json()["data"] == []
    storage.download_file.assert_awaited_once_with("b1/t/subtitle.json")


@pytest.mark.asyncio
async def test_subtitles_unparseable(client: AsyncClient, storage):
    storage.download_file.return_value = (b'{"oops": 1}', "application/json")

    resp = await client.get("/api/assets/b1/t/subtitles")

    data = resp.json()
    assert data["data"] == []
    assert "parsed" in data["message"]


@pytest.mark.asyncio
async def test_cover_image(client: AsyncClient, storage):
    storage.download_file.return_value = (b"\x89PNG", "application/octet-stream")

    resp = await client.get("/api/assets/curr1/jan/cover")

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.headers["cache-control"] == "public, max-age=3600"
    storage.download_file.assert_awaited_once_with("curr1/jan/cover.png")


@pytest.mark.asyncio
async def test_cover_image_missing(client: AsyncClient):
    resp = await client.get("/api/assets/curr2/mar/cover")
    assert resp.status_code == 404
