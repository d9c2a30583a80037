from __future__ import annotations

from fastapi import Request

from upload_service.domain.services import UploadService
from upload_service.domain.validator import FileValidator
from upload_service.infrastructure.http_client import HttpxRemoteFetcher
from upload_service.infrastructure.repository import SqlFileRepository
from upload_service.infrastructure.storage import LocalDiskStorage
from upload_service.settings import Settings


def build_upload_service(
    settings: Settings,
    repository: SqlFileRepository,
) -> UploadService:
    disks = {
        name: LocalDiskStorage(name=name, root=disk.root, url_prefix=disk.url_prefix)
        for name, disk in settings.storage.disks.items()
    }
    fetcher = HttpxRemoteFetcher(
        timeout=settings.validation.url.timeout,
        user_agent=settings.validation.url.user_agent,
    )
    return UploadService(
        validator=FileValidator(settings.categories()),
        disks=disks,
        repository=repository,
        fetcher=fetcher,
        default_disk=settings.storage.disk,
        storage_path=settings.storage.path,
        naming_strategy=settings.naming.strategy,
        naming_length=settings.naming.length,
        probe_urls=settings.validation.url.probe,
    )


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service
