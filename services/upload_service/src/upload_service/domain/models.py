from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class SourceKind(StrEnum):
    UPLOAD = "upload"
    URL = "url"


class NamingStrategy(StrEnum):
    ORIGINAL = "original"
    TIMESTAMP = "timestamp"
    RANDOM = "random"


class FileTypeCategory(BaseModel):
    """Named policy bucket: allowed extensions and a size ceiling in KiB."""

    model_config = ConfigDict(frozen=True)

    name: str
    mimes: tuple[str, ...]
    max_size: int = Field(ge=0, description="Ceiling in KiB")
    path: str | None = Field(default=None, description="Base path override")

    @property
    def max_size_bytes(self) -> int:
        return self.max_size * 1024


class LocalFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["local"] = "local"
    path: Path
    declared_name: str
    declared_mime_type: str | None = None
    size: int


class RemoteUrl(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["url"] = "url"
    url: str


UploadSource = Annotated[LocalFile | RemoteUrl, Field(discriminator="kind")]


class OwnerRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner_type: str = Field(min_length=1, max_length=255)
    owner_id: str = Field(min_length=1, max_length=255)


class NewFileRecord(BaseModel):
    """Metadata for bytes that have been written but not yet persisted."""

    model_config = ConfigDict(frozen=True)

    original_name: str
    file_name: str
    file_path: str
    file_size: int = Field(ge=0)
    mime_type: str
    extension: str
    file_type: str
    source_type: SourceKind = SourceKind.UPLOAD
    source_url: str | None = None
    disk: str
    owner_type: str | None = None
    owner_id: str | None = None


class FileRecord(NewFileRecord):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime

    @property
    def is_from_url(self) -> bool:
        return self.source_type == SourceKind.URL

    @property
    def is_from_upload(self) -> bool:
        return self.source_type == SourceKind.UPLOAD

    @property
    def owner(self) -> OwnerRef | None:
        if self.owner_type is None or self.owner_id is None:
            return None
        return OwnerRef(owner_type=self.owner_type, owner_id=self.owner_id)


class FetchedResource(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    content: bytes
    content_type: str | None = None
    truncated: bool = False


class ProbeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    status_code: int
    content_type: str | None = None
    content_length: int | None = None

    @property
    def successful(self) -> bool:
        return 200 <= self.status_code < 300


class UrlUploadRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str = Field(min_length=1, max_length=2048)
    file_type: str = "any"
    max_size: int | None = Field(default=None, ge=0, description="Override in bytes")
    folder: str | None = None
    owner_type: str | None = None
    owner_id: str | None = None


class FileRecordResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    original_name: str
    file_name: str
    file_path: str
    file_size: int
    mime_type: str
    extension: str
    file_type: str
    source_type: SourceKind
    source_url: str | None
    disk: str
    owner_type: str | None
    owner_id: str | None
    url: str
    created_at: datetime
    updated_at: datetime


class FileTypeCategoryResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    mimes: list[str]
    max_size: int
    mime_types: list[str]
