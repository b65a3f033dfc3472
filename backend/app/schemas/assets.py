"""Asset bundle (cover + video + subtitles) schemas."""

from pydantic import BaseModel


class SubtitleLine(BaseModel):
    page_num: int
    sentence_num: int
    text: str


class CreateAssetResponse(BaseModel):
    success: bool
    asset_id: str | None = None
    message: str
    cover_image_url: str | None = None
    video_url: str | None = None


class SubtitleResponse(BaseModel):
    success: bool = True
    data: list[SubtitleLine] = []
    path: str | None = None
    filename: str | None = None
    message: str | None = None
