from __future__ import annotations

from collections.abc import Mapping
from pathlib import PurePosixPath
from urllib.parse import unquote, urlsplit

import aiofiles
import structlog

from upload_service.domain.exceptions import (
    DownloadFailedError,
    InvalidFileError,
    InvalidSourceError,
    InvalidUrlError,
    StorageError,
    UploadError,
)
from upload_service.domain.interfaces import (
    BlobStoragePort,
    FileRepositoryPort,
    RemoteFetcherPort,
)
from upload_service.domain.mime import MimeTable
from upload_service.domain.models import (
    FileRecord,
    FileTypeCategory,
    LocalFile,
    NamingStrategy,
    NewFileRecord,
    OwnerRef,
    RemoteUrl,
    SourceKind,
)
from upload_service.domain.naming import build_destination, generate_file_name
from upload_service.domain.staging import staged_file
from upload_service.domain.validator import FileValidator

logger = structlog.get_logger(__name__)

DEFAULT_DOWNLOAD_NAME = "downloaded_file"


def classify_source(source: object) -> LocalFile | RemoteUrl:
    if isinstance(source, (LocalFile, RemoteUrl)):
        return source
    if isinstance(source, str):
        parts = urlsplit(source.strip())
        if parts.scheme.lower() in ("http", "https") and parts.netloc:
            return RemoteUrl(url=source.strip())
    raise InvalidSourceError(type(source).__name__)


def filename_from_url(url: str, extension: str) -> str:
    name = PurePosixPath(unquote(urlsplit(url).path)).name
    if name and PurePosixPath(name).suffix not in ("", "."):
        return name
    stem = PurePosixPath(name).stem.rstrip(".") if name else ""
    return f"{stem or DEFAULT_DOWNLOAD_NAME}.{extension}"


class UploadService:
    def __init__(
        self,
        validator: FileValidator,
        disks: Mapping[str, BlobStoragePort],
        repository: FileRepositoryPort,
        fetcher: RemoteFetcherPort,
        default_disk: str = "public",
        storage_path: str = "files",
        naming_strategy: NamingStrategy = NamingStrategy.RANDOM,
        naming_length: int = 40,
        probe_urls: bool = False,
    ) -> None:
        if default_disk not in disks:
            raise ValueError(f"Default disk '{default_disk}' is not configured.")
        self._validator = validator
        self._disks = dict(disks)
        self._repository = repository
        self._fetcher = fetcher
        self._default_disk = default_disk
        self._storage_path = storage_path
        self._naming_strategy = naming_strategy
        self._naming_length = naming_length
        self._probe_urls = probe_urls

    @property
    def repository(self) -> FileRepositoryPort:
        return self._repository

    @property
    def mime_table(self) -> MimeTable:
        return self._validator.mime_table

    def get_category_config(self, file_type: str) -> FileTypeCategory:
        return self._validator.resolve_category(file_type)

    async def handle(
        self,
        source: LocalFile | RemoteUrl | str,
        file_type: str = "any",
        max_size: int | None = None,
        folder: str | None = None,
        owner: OwnerRef | None = None,
    ) -> FileRecord:
        resolved = classify_source(source)
        if isinstance(resolved, LocalFile):
            return await self.upload(resolved, file_type, max_size, folder, owner)
        return await self.upload_from_url(resolved.url, file_type, max_size, folder, owner)

    async def upload(
        self,
        source: LocalFile,
        file_type: str = "any",
        max_size: int | None = None,
        folder: str | None = None,
        owner: OwnerRef | None = None,
    ) -> FileRecord:
        log = logger.bind(
            file_type=file_type,
            original_name=source.declared_name,
            declared_mime_type=source.declared_mime_type,
        )

        category, content, mime_type = await self._read_validated(source, file_type, max_size)
        extension = self._validator.mime_table.extension_for(mime_type)
        log.debug("upload.validated", mime_type=mime_type, size_bytes=len(content))

        destination = build_destination(category.path or self._storage_path, folder)
        file_name = generate_file_name(
            self._naming_strategy,
            source.declared_name,
            extension,
            self._naming_length,
        )
        storage = self._disks[self._default_disk]
        file_path = await storage.put(
            f"{destination}/{file_name}" if destination else file_name,
            content,
        )
        log.debug("upload.stored", disk=self._default_disk, file_path=file_path)

        pending = NewFileRecord(
            original_name=source.declared_name,
            file_name=file_name,
            file_path=file_path,
            file_size=len(content),
            mime_type=mime_type,
            extension=extension,
            file_type=category.name,
            source_type=SourceKind.UPLOAD,
            disk=self._default_disk,
            owner_type=owner.owner_type if owner else None,
            owner_id=owner.owner_id if owner else None,
        )

        try:
            record = await self._repository.create(pending)
        except StorageError as exc:
            log.error("upload.failed.persist", file_path=file_path, error=str(exc))
            await self._discard(storage, file_path)
            raise

        log.info(
            "upload.completed",
            file_id=record.id,
            file_path=record.file_path,
            file_size=record.file_size,
            mime_type=record.mime_type,
        )
        return record

    async def upload_from_url(
        self,
        url: str,
        file_type: str = "any",
        max_size: int | None = None,
        folder: str | None = None,
        owner: OwnerRef | None = None,
    ) -> FileRecord:
        log = logger.bind(file_type=file_type, source_url=url)

        self._validator.validate_url_shape(url)
        category = self._validator.resolve_category(file_type)
        ceiling = self._validator.ceiling_for(category, max_size)
        if self._probe_urls:
            await self._probe(url, category, ceiling)

        resource = await self._fetcher.fetch(url, max_bytes=ceiling)
        self._validator.check_size(len(resource.content), ceiling)

        mime_type = self._validator.detect_mime_type(resource.content)
        self._validator.check_mime_allowed(mime_type, category)
        extension = self._validator.mime_table.extension_for(mime_type)
        original_name = filename_from_url(url, extension)
        log.debug("upload.url.downloaded", mime_type=mime_type, size_bytes=len(resource.content))

        async with staged_file(resource.content, suffix=f".{extension}") as staged_path:
            source = LocalFile(
                path=staged_path,
                declared_name=original_name,
                declared_mime_type=mime_type,
                size=len(resource.content),
            )
            record = await self.upload(source, file_type, max_size, folder, owner)

        try:
            record = await self._repository.update(
                record.id,
                {"source_type": SourceKind.URL, "source_url": url},
            )
        except StorageError as exc:
            log.error("upload.url.failed.persist", file_id=record.id, error=str(exc))
            await self._discard(self._disks[record.disk], record.file_path, record_id=record.id)
            raise

        log.info("upload.url.completed", file_id=record.id, file_path=record.file_path)
        return record

    async def validate_file(
        self,
        source: LocalFile,
        file_type: str = "any",
        max_size: int | None = None,
    ) -> bool:
        await self._read_validated(source, file_type, max_size)
        return True

    async def validate_url(
        self,
        url: str,
        file_type: str = "any",
        max_size: int | None = None,
        probe: bool = True,
    ) -> bool:
        self._validator.validate_url_shape(url)
        category = self._validator.resolve_category(file_type)
        if probe:
            await self._probe(url, category, self._validator.ceiling_for(category, max_size))
        return True

    async def delete(self, record: FileRecord) -> bool:
        log = logger.bind(file_id=record.id, disk=record.disk, file_path=record.file_path)

        storage = self._disks.get(record.disk)
        if storage is None:
            log.error("upload.delete.unknown_disk")
            return False

        try:
            removed = await storage.delete(record.file_path)
            if not removed:
                log.info("upload.delete.already_absent")
            deleted = await self._repository.delete(record.id)
        except UploadError as exc:
            log.error(
                "upload.delete.failed",
                error_code=exc.error_code,
                error_type=type(exc.__cause__ or exc).__name__,
                error=str(exc),
            )
            return False

        log.info("upload.delete.completed", record_deleted=deleted)
        return deleted

    def url_for(self, record: FileRecord) -> str:
        return self._storage_for(record).url(record.file_path)

    def absolute_path_for(self, record: FileRecord) -> str:
        return self._storage_for(record).absolute_path(record.file_path)

    def _storage_for(self, record: FileRecord) -> BlobStoragePort:
        storage = self._disks.get(record.disk or self._default_disk)
        if storage is None:
            raise StorageError(f"disk '{record.disk}' is not configured")
        return storage

    async def _probe(self, url: str, category: FileTypeCategory, ceiling: int) -> None:
        try:
            result = await self._fetcher.probe(url)
        except DownloadFailedError as exc:
            raise InvalidUrlError(url, "unreachable") from exc
        if not result.successful:
            raise InvalidUrlError(url, f"HTTP {result.status_code}")

        if result.content_type and not self._validator.mime_table.is_allowed(
            result.content_type, category.mimes
        ):
            logger.warning(
                "upload.rejected.declared_content_type",
                source_url=url,
                content_type=result.content_type,
            )
            raise InvalidUrlError(url, f"content type '{result.content_type}' not allowed")

        if result.content_length is not None:
            self._validator.check_size(result.content_length, ceiling)

    async def _read_validated(
        self,
        source: LocalFile,
        file_type: str,
        max_size: int | None,
    ) -> tuple[FileTypeCategory, bytes, str]:
        """Read at most one byte past the ceiling, then run the local validation."""
        category = self._validator.resolve_category(file_type)
        ceiling = self._validator.ceiling_for(category, max_size)

        try:
            async with aiofiles.open(source.path, "rb") as f:
                content = await f.read(max(ceiling, 0) + 1)
        except OSError as exc:
            logger.warning(
                "upload.rejected.unreadable",
                original_name=source.declared_name,
                error=str(exc),
            )
            raise InvalidFileError(str(exc)) from exc

        mime_type = self._validator.validate_local(source, file_type, max_size, content=content)
        return category, content, mime_type

    async def _discard(
        self,
        storage: BlobStoragePort,
        file_path: str,
        record_id: int | None = None,
    ) -> None:
        try:
            await storage.delete(file_path)
            if record_id is not None:
                await self._repository.delete(record_id)
        except StorageError as exc:
            logger.error(
                "upload.compensate.failed",
                file_path=file_path,
                file_id=record_id,
                error=str(exc),
            )
        else:
            logger.info("upload.compensate.deleted", file_path=file_path, file_id=record_id)
