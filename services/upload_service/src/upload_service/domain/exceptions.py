from __future__ import annotations

from typing import Any


class UploadError(Exception):
    def __init__(
        self,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details


class InvalidFileError(UploadError):
    def __init__(self, detail: str = "The uploaded file is invalid.") -> None:
        super().__init__(message=detail, error_code="INVALID_FILE")


class InvalidSourceError(InvalidFileError):
    def __init__(self, source_type: str) -> None:
        super().__init__(f"Source of type '{source_type}' is neither a local file nor an http(s) URL.")
        self.error_code = "INVALID_SOURCE"
        self.details = {"source_type": source_type}


class InvalidUrlError(UploadError):
    def __init__(self, url: str, reason: str | None = None) -> None:
        message = f"Invalid URL: {url}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message=message, error_code="INVALID_URL", details={"url": url})
        self.url = url


class DownloadFailedError(UploadError):
    def __init__(self, url: str, status_code: int | None = None) -> None:
        message = f"Failed to download file from URL: {url}"
        if status_code is not None:
            message = f"{message} (HTTP {status_code})"
        super().__init__(
            message=message,
            error_code="DOWNLOAD_FAILED",
            details={"url": url, "status_code": status_code},
        )
        self.url = url
        self.status_code = status_code


class SizeExceededError(UploadError):
    def __init__(self, max_size_kb: int) -> None:
        super().__init__(
            message=f"File size exceeds maximum limit of {max_size_kb} KB.",
            error_code="SIZE_EXCEEDED",
            details={"max_size_kb": max_size_kb},
        )
        self.max_size_kb = max_size_kb


class InvalidMimeTypeError(UploadError):
    def __init__(self, mime_type: str) -> None:
        super().__init__(
            message=f"Unsupported MIME type: {mime_type}",
            error_code="INVALID_MIME_TYPE",
            details={"mime_type": mime_type},
        )
        self.mime_type = mime_type


class UnknownCategoryError(UploadError):
    def __init__(self, name: str) -> None:
        super().__init__(
            message=f"File type category '{name}' is not configured.",
            error_code="UNKNOWN_CATEGORY",
            details={"file_type": name},
        )
        self.name = name


class EmptyContentError(UploadError):
    def __init__(self) -> None:
        super().__init__(message="File content is empty.", error_code="EMPTY_CONTENT")


class StorageError(UploadError):
    def __init__(self, detail: str) -> None:
        super().__init__(
            message=f"Storage operation failed: {detail}",
            error_code="STORAGE_ERROR",
        )
