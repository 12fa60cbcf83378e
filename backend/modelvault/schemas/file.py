"""File request/response schemas."""
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_serializer

from modelvault.models.file_record import FileRecord
from modelvault.services.tags import split_tags


class FileItem(BaseModel):
    id: str
    original_name: str
    storage_name: str
    extension: str
    size: int
    mime_type: str = ""
    created_at: datetime
    tags: list[str] = Field(default_factory=list)
    file_url: str

    @field_serializer("created_at")
    def _iso_utc(self, value: datetime) -> str:
        # SQLite hands back naive datetimes; they were written as UTC.
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileItem":
        return cls(
            id=record.id,
            original_name=record.original_name,
            storage_name=record.storage_name,
            extension=record.extension,
            size=record.size,
            mime_type=record.mime_type or "",
            created_at=record.created_at,
            tags=split_tags(record.tags),
            file_url=f"/api/files/{record.id}/file",
        )


class FileItemResponse(BaseModel):
    item: FileItem


class FileListResponse(BaseModel):
    items: list[FileItem]


class AutotagResponse(BaseModel):
    item: FileItem
    suggested: list[str]


class TagsUpdate(BaseModel):
    # Comma-separated string or list; normalized server-side.
    tags: Any = None


class BulkTagsRequest(BaseModel):
    ids: list[str]
    mode: str
    tags: Any = None


class BulkTagsResponse(BaseModel):
    items: list[FileItem]
    missing: list[str] = Field(default_factory=list)


class DeleteResponse(BaseModel):
    deleted: bool = True
