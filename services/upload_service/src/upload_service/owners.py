from __future__ import annotations

import structlog

from upload_service.domain.models import FileRecord, LocalFile, OwnerRef, RemoteUrl
from upload_service.domain.services import UploadService

logger = structlog.get_logger(__name__)


class OwnerFiles:
    """Files attached to one owning entity, identified by (owner_type, owner_id)."""

    def __init__(self, service: UploadService, owner: OwnerRef) -> None:
        self._service = service
        self._owner = owner

    @property
    def owner(self) -> OwnerRef:
        return self._owner

    async def attach(
        self,
        source: LocalFile | RemoteUrl | str,
        file_type: str = "any",
        max_size: int | None = None,
        folder: str | None = None,
    ) -> FileRecord:
        return await self._service.handle(source, file_type, max_size, folder, owner=self._owner)

    async def files(self) -> list[FileRecord]:
        return await self._service.repository.list_by_owner(self._owner)

    async def latest_url(self) -> str | None:
        records = await self.files()
        return self._service.url_for(records[0]) if records else None

    async def delete_all(self) -> bool:
        results = [await self._service.delete(record) for record in await self.files()]
        if not all(results):
            logger.warning(
                "owner.files.delete_incomplete",
                owner_type=self._owner.owner_type,
                owner_id=self._owner.owner_id,
                failed=results.count(False),
            )
        return all(results)
