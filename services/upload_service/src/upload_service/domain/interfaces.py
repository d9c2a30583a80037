from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from upload_service.domain.models import (
    FetchedResource,
    FileRecord,
    NewFileRecord,
    OwnerRef,
    ProbeResult,
)


class BlobStoragePort(ABC):
    @abstractmethod
    async def put(self, path: str, content: bytes) -> str:
        """Persist bytes at a path relative to the disk root. Returns the stored path."""

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """Remove the bytes at path. Returns False when nothing was there."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check whether bytes exist at the given path."""

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Read back stored bytes."""

    @abstractmethod
    def url(self, path: str) -> str:
        """Public URL for a stored path."""

    @abstractmethod
    def absolute_path(self, path: str) -> str:
        """Backend-specific absolute location for a stored path."""


class FileRepositoryPort(ABC):
    @abstractmethod
    async def create(self, record: NewFileRecord) -> FileRecord:
        """Persist a metadata record and return it with id and timestamps."""

    @abstractmethod
    async def update(self, record_id: int, changes: dict[str, Any]) -> FileRecord:
        """Apply column changes to an existing record."""

    @abstractmethod
    async def delete(self, record_id: int) -> bool:
        """Delete a metadata record. Returns False if it did not exist."""

    @abstractmethod
    async def get_by_id(self, record_id: int) -> FileRecord | None:
        """Retrieve a metadata record by id."""

    @abstractmethod
    async def list_by_owner(self, owner: OwnerRef) -> list[FileRecord]:
        """Records attached to an owner, newest first."""


class RemoteFetcherPort(ABC):
    @abstractmethod
    async def fetch(self, url: str, max_bytes: int | None = None) -> FetchedResource:
        """Download a resource. Reading stops once more than max_bytes were received."""

    @abstractmethod
    async def probe(self, url: str) -> ProbeResult:
        """Fetch response headers only."""
