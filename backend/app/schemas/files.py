"""Folder browsing and file proxy schemas."""

from pydantic import BaseModel


class FolderItem(BaseModel):
    """One entry of a folder listing, either a virtual folder or a stored file."""
    name: str
    path: str
    item_type: str  # "folder" | "file"
    size: int | None = None
    file_type: str | None = None  # image, video, pdf, text, other
    url: str | None = None
    modified_at: str | None = None


class Breadcrumb(BaseModel):
    name: str
    path: str


class FolderContents(BaseModel):
    current_path: str
    items: list[FolderItem]
    breadcrumbs: list[Breadcrumb]


class FileInfo(BaseModel):
    key: str
    size: int
    last_modified: str | None = None
    created_at: str | None = None
    original_file: str | None = None
    subtitle: list[str] = []
    url: str


class FileListResponse(BaseModel):
    bucket: str
    files: list[FileInfo]


class UploadedFile(BaseModel):
    file: str
    original_file: str
    size: int
    subtitle: list[str] = []
    url: str


class UploadResponse(BaseModel):
    success: bool = True
    full_path: str
    uploaded: list[UploadedFile]


class DeleteFileRequest(BaseModel):
    key: str
    bucket: str | None = None


class DeleteFileResponse(BaseModel):
    success: bool = True
    key: str
    result: bool
