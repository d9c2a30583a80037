from __future__ import annotations

import math
import os
from collections.abc import Callable, Mapping

import structlog
from pydantic import HttpUrl, TypeAdapter, ValidationError

from upload_service.domain.exceptions import (
    EmptyContentError,
    InvalidFileError,
    InvalidMimeTypeError,
    InvalidUrlError,
    SizeExceededError,
    UnknownCategoryError,
)
from upload_service.domain.mime import MimeTable
from upload_service.domain.models import FileTypeCategory, LocalFile

logger = structlog.get_logger(__name__)

_HTTP_URL = TypeAdapter(HttpUrl)

Sniffer = Callable[[bytes], str]


def libmagic_sniffer(content: bytes) -> str:
    import magic

    return magic.from_buffer(content, mime=True)


class FileValidator:
    """Decides whether a payload is acceptable under a named category.

    Declared MIME types and filenames are never consulted: the type is always
    sniffed from the bytes. Declared sizes are trusted for local files since
    they come from the filesystem, not the client.
    """

    def __init__(
        self,
        categories: Mapping[str, FileTypeCategory],
        mime_table: MimeTable | None = None,
        sniffer: Sniffer = libmagic_sniffer,
    ) -> None:
        self._categories = dict(categories)
        self._mime_table = mime_table or MimeTable()
        self._sniff = sniffer

    @property
    def mime_table(self) -> MimeTable:
        return self._mime_table

    def resolve_category(self, name: str) -> FileTypeCategory:
        category = self._categories.get(name)
        if category is None:
            logger.warning("validation.rejected.unknown_category", file_type=name)
            raise UnknownCategoryError(name)
        return category

    def ceiling_for(self, category: FileTypeCategory, max_size: int | None = None) -> int:
        return max_size if max_size is not None else category.max_size_bytes

    def detect_mime_type(self, content: bytes) -> str:
        if not content:
            raise EmptyContentError()
        return self._mime_table.canonical(self._sniff(content))

    def check_size(self, actual_bytes: int, ceiling_bytes: int) -> None:
        if actual_bytes > ceiling_bytes:
            logger.warning(
                "validation.rejected.size_exceeded",
                size_bytes=actual_bytes,
                limit_bytes=ceiling_bytes,
            )
            raise SizeExceededError(math.ceil(ceiling_bytes / 1024))

    def check_mime_allowed(self, detected_mime: str, category: FileTypeCategory) -> None:
        if not self._mime_table.is_allowed(detected_mime, category.mimes):
            logger.warning(
                "validation.rejected.mime_type",
                mime_type=detected_mime,
                file_type=category.name,
            )
            raise InvalidMimeTypeError(detected_mime)

    def check_integrity(self, source: LocalFile) -> None:
        path = source.path
        if source.size < 0:
            raise InvalidFileError(f"Declared size {source.size} is negative.")
        if not path.is_file():
            raise InvalidFileError(f"Uploaded file '{source.declared_name}' is missing.")
        if not os.access(path, os.R_OK):
            raise InvalidFileError(f"Uploaded file '{source.declared_name}' is not readable.")

    def validate_local(
        self,
        source: LocalFile,
        category_name: str,
        max_size: int | None = None,
        content: bytes | None = None,
    ) -> str:
        """Validate a materialized file and return its detected MIME type.

        Callers that already hold the bytes pass them as ``content``; otherwise
        the file is read here.
        """
        category = self.resolve_category(category_name)
        ceiling = self.ceiling_for(category, max_size)
        self.check_integrity(source)
        self.check_size(source.size, ceiling)

        if content is None:
            try:
                content = source.path.read_bytes()
            except OSError as exc:
                raise InvalidFileError(str(exc)) from exc

        self.check_size(len(content), ceiling)
        detected = self.detect_mime_type(content)
        self.check_mime_allowed(detected, category)
        return detected

    def validate_url_shape(self, url: str) -> str:
        try:
            parsed = _HTTP_URL.validate_python(url)
        except ValidationError as exc:
            logger.warning("validation.rejected.url", url=url)
            raise InvalidUrlError(url, "expected an http or https URL") from exc
        return str(parsed)
