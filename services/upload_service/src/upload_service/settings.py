from __future__ import annotations

from pydantic import BaseModel, Field
from shared.config.base import BaseServiceSettings

from upload_service.domain.models import FileTypeCategory, NamingStrategy

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class DiskSettings(BaseModel):
    root: str
    url_prefix: str = ""


class StorageSettings(BaseModel):
    disk: str = "public"
    path: str = "files"
    disks: dict[str, DiskSettings] = Field(
        default_factory=lambda: {
            "public": DiskSettings(root="storage/app/public", url_prefix="/storage"),
            "local": DiskSettings(root="storage/app"),
        }
    )


class NamingSettings(BaseModel):
    strategy: NamingStrategy = NamingStrategy.RANDOM
    length: int = Field(default=40, ge=8, le=200)


class FileTypeSettings(BaseModel):
    mimes: list[str]
    max_size: int = Field(ge=0, description="KiB")
    path: str | None = None


class UrlValidationSettings(BaseModel):
    timeout: float = Field(default=60, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    probe: bool = False


class ValidationSettings(BaseModel):
    url: UrlValidationSettings = Field(default_factory=UrlValidationSettings)


def _default_file_types() -> dict[str, FileTypeSettings]:
    return {
        "image": FileTypeSettings(
            mimes=["jpg", "jpeg", "png", "gif", "webp", "bmp", "svg"], max_size=5120
        ),
        "video": FileTypeSettings(mimes=["mp4", "mkv", "avi", "mov", "webm"], max_size=51200),
        "pdf": FileTypeSettings(mimes=["pdf"], max_size=10240),
        "document": FileTypeSettings(
            mimes=["doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt", "rtf"], max_size=20480
        ),
        "excel": FileTypeSettings(mimes=["xls", "xlsx", "csv"], max_size=10240),
        "audio": FileTypeSettings(mimes=["mp3", "wav", "ogg", "aac", "flac"], max_size=20480),
        "archive": FileTypeSettings(mimes=["zip", "rar", "7z", "tar", "gz"], max_size=51200),
        "any": FileTypeSettings(
            mimes=[
                "jpg", "jpeg", "png", "gif", "webp", "bmp", "svg",
                "mp4", "mkv", "avi", "mov", "webm",
                "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt", "rtf", "csv",
                "mp3", "wav", "zip", "rar",
            ],
            max_size=5120,
        ),
    }


class Settings(BaseServiceSettings):
    service_name: str = "upload_service"

    storage: StorageSettings = Field(default_factory=StorageSettings)
    naming: NamingSettings = Field(default_factory=NamingSettings)
    file_types: dict[str, FileTypeSettings] = Field(default_factory=_default_file_types)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    auto_create_schema: bool = Field(default=False)

    def categories(self) -> dict[str, FileTypeCategory]:
        return {
            name: FileTypeCategory(
                name=name,
                mimes=tuple(ext.lower() for ext in cfg.mimes),
                max_size=cfg.max_size,
                path=cfg.path,
            )
            for name, cfg in self.file_types.items()
        }
