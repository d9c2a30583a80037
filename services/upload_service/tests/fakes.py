from __future__ import annotations

import struct
import zlib
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from upload_service.domain.exceptions import StorageError
from upload_service.domain.interfaces import FileRepositoryPort
from upload_service.domain.models import FileRecord, FileTypeCategory, NewFileRecord, OwnerRef

CATEGORIES = {
    "image": FileTypeCategory(name="image", mimes=("jpg", "jpeg", "png", "gif"), max_size=5120),
    "pdf": FileTypeCategory(name="pdf", mimes=("pdf",), max_size=10240),
    "small": FileTypeCategory(name="small", mimes=("png", "pdf"), max_size=1024),
    "any": FileTypeCategory(name="any", mimes=("jpg", "jpeg", "png", "gif", "pdf"), max_size=5120),
}

_SIGNATURES = [
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"%PDF-", "application/pdf"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF8", "image/gif"),
]


def signature_sniffer(content: bytes) -> str:
    for prefix, mime in _SIGNATURES:
        if content.startswith(prefix):
            return mime
    return "application/octet-stream"


def png_bytes(size: int = 10 * 1024) -> bytes:
    """A 1x1 PNG header padded with trailing zeros to ``size`` bytes."""
    ihdr = struct.pack(">IIBBBBB", 1, 1, 8, 6, 0, 0, 0)
    chunk = b"IHDR" + ihdr
    header = b"\x89PNG\r\n\x1a\n" + struct.pack(">I", len(ihdr)) + chunk + struct.pack(">I", zlib.crc32(chunk))
    return header + b"\x00" * (size - len(header))


def pdf_bytes(size: int = 2048) -> bytes:
    header = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<< /Type /Catalog >>\nendobj\n"
    return header + b" " * (size - len(header))


class InMemoryFileRepository(FileRepositoryPort):
    def __init__(self) -> None:
        self.records: dict[int, FileRecord] = {}
        self.fail_on_create = False
        self.fail_on_update = False
        self._next_id = 1
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def create(self, record: NewFileRecord) -> FileRecord:
        if self.fail_on_create:
            raise StorageError("database unavailable")
        now = self._tick()
        created = FileRecord(**record.model_dump(), id=self._next_id, created_at=now, updated_at=now)
        self.records[created.id] = created
        self._next_id += 1
        return created

    async def update(self, record_id: int, changes: dict[str, Any]) -> FileRecord:
        if self.fail_on_update:
            raise StorageError("database unavailable")
        updated = self.records[record_id].model_copy(update={**changes, "updated_at": self._tick()})
        self.records[record_id] = updated
        return updated

    async def delete(self, record_id: int) -> bool:
        return self.records.pop(record_id, None) is not None

    async def get_by_id(self, record_id: int) -> FileRecord | None:
        return self.records.get(record_id)

    async def list_by_owner(self, owner: OwnerRef) -> list[FileRecord]:
        owned = [r for r in self.records.values() if r.owner == owner]
        return sorted(owned, key=lambda r: r.created_at, reverse=True)


def mock_transport(routes: dict[str, httpx.Response]) -> httpx.MockTransport:
    """Serve canned responses by URL; anything else is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        response = routes.get(str(request.url))
        if response is None:
            return httpx.Response(404)
        if request.method == "HEAD":
            return httpx.Response(response.status_code, headers=response.headers)
        return httpx.Response(response.status_code, headers=response.headers, content=response.content)

    return httpx.MockTransport(handler)
