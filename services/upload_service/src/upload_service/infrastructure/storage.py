from __future__ import annotations

from pathlib import Path

import aiofiles
import structlog

from upload_service.domain.exceptions import StorageError
from upload_service.domain.interfaces import BlobStoragePort

logger = structlog.get_logger(__name__)


class LocalDiskStorage(BlobStoragePort):
    """Filesystem-backed disk.

    Paths handed in are relative to ``root``; anything resolving outside of it
    is refused.
    """

    def __init__(self, name: str, root: str, url_prefix: str = "") -> None:
        self._name = name
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._url_prefix = url_prefix.rstrip("/")

    @property
    def name(self) -> str:
        return self._name

    def _resolve(self, path: str) -> Path:
        target = (self._root / path.lstrip("/")).resolve()
        if not target.is_relative_to(self._root):
            raise StorageError(f"path '{path}' escapes disk '{self._name}'")
        return target

    async def put(self, path: str, content: bytes) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(content)
        except OSError as exc:
            logger.error("storage.write.failed", disk=self._name, path=path, error=str(exc))
            raise StorageError(str(exc)) from exc

        stored = target.relative_to(self._root).as_posix()
        logger.debug("storage.write.success", disk=self._name, path=stored, size_bytes=len(content))
        return stored

    async def delete(self, path: str) -> bool:
        target = self._resolve(path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.error("storage.delete.failed", disk=self._name, path=path, error=str(exc))
            raise StorageError(str(exc)) from exc
        logger.debug("storage.delete.success", disk=self._name, path=path)
        return True

    async def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    async def read(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            async with aiofiles.open(target, "rb") as f:
                return await f.read()
        except OSError as exc:
            raise StorageError(str(exc)) from exc

    def url(self, path: str) -> str:
        return f"{self._url_prefix}/{path.lstrip('/')}"

    def absolute_path(self, path: str) -> str:
        return str(self._resolve(path))
