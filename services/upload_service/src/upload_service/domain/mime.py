from __future__ import annotations

from collections.abc import Iterable, Mapping

# Extension -> canonical MIME. Order matters: the first extension registered
# for a MIME is the one used when naming stored files.
EXTENSION_MIMES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "svg": "image/svg+xml",
    "mp4": "video/mp4",
    "mkv": "video/x-matroska",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "webm": "video/webm",
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
    "rtf": "text/rtf",
    "csv": "text/csv",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "zip": "application/zip",
    "rar": "application/vnd.rar",
    "7z": "application/x-7z-compressed",
    "tar": "application/x-tar",
    "gz": "application/gzip",
}

# Alternative spellings reported by libmagic or remote servers.
MIME_ALIASES: dict[str, str] = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
    "image/x-ms-bmp": "image/bmp",
    "image/x-bmp": "image/bmp",
    "image/svg": "image/svg+xml",
    "video/avi": "video/x-msvideo",
    "video/msvideo": "video/x-msvideo",
    "application/rtf": "text/rtf",
    "application/csv": "text/csv",
    "audio/mp3": "audio/mpeg",
    "audio/x-wav": "audio/wav",
    "audio/wave": "audio/wav",
    "audio/vnd.wave": "audio/wav",
    "audio/x-aac": "audio/aac",
    "audio/x-hx-aac-adts": "audio/aac",
    "audio/x-flac": "audio/flac",
    "application/ogg": "audio/ogg",
    "application/x-zip-compressed": "application/zip",
    "application/x-rar": "application/vnd.rar",
    "application/x-rar-compressed": "application/vnd.rar",
    "application/x-gzip": "application/gzip",
}

FALLBACK_EXTENSION = "bin"


class MimeTable:
    """Bidirectional extension/MIME lookup shared by validation and naming."""

    def __init__(
        self,
        extension_mimes: Mapping[str, str] = EXTENSION_MIMES,
        aliases: Mapping[str, str] = MIME_ALIASES,
    ) -> None:
        self._by_extension = {ext.lower(): mime.lower() for ext, mime in extension_mimes.items()}
        self._aliases = {alias.lower(): mime.lower() for alias, mime in aliases.items()}
        self._by_mime: dict[str, str] = {}
        for ext, mime in self._by_extension.items():
            self._by_mime.setdefault(mime, ext)

    def canonical(self, mime_type: str) -> str:
        # Drop parameters such as "; charset=utf-8".
        base = mime_type.split(";", 1)[0].strip().lower()
        return self._aliases.get(base, base)

    def mime_for(self, extension: str) -> str | None:
        return self._by_extension.get(extension.lower().lstrip("."))

    def extension_for(self, mime_type: str) -> str:
        return self._by_mime.get(self.canonical(mime_type), FALLBACK_EXTENSION)

    def mimes_for(self, extensions: Iterable[str]) -> frozenset[str]:
        return frozenset(mime for ext in extensions if (mime := self.mime_for(ext)) is not None)

    def is_allowed(self, mime_type: str, extensions: Iterable[str]) -> bool:
        return self.canonical(mime_type) in self.mimes_for(extensions)
