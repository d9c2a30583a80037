from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from upload_service.domain.exceptions import StorageError
from upload_service.domain.interfaces import FileRepositoryPort
from upload_service.domain.models import FileRecord, NewFileRecord, OwnerRef
from upload_service.infrastructure.tables import Base, FileRow

logger = structlog.get_logger(__name__)

_UPDATABLE = frozenset({"source_type", "source_url", "owner_type", "owner_id", "file_type"})


class SqlFileRepository(FileRepositoryPort):
    def __init__(self, database_url: str, **engine_options: Any) -> None:
        self._engine: AsyncEngine = create_async_engine(database_url, **engine_options)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    async def create_schema(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def create(self, record: NewFileRecord) -> FileRecord:
        row = FileRow(**record.model_dump(mode="json"))
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
                await session.refresh(row)
        except SQLAlchemyError as exc:
            logger.error("repository.file.create_failed", file_path=record.file_path, error=str(exc))
            raise StorageError(str(exc)) from exc

        logger.debug("repository.file.created", file_id=row.id, file_path=row.file_path)
        return FileRecord.model_validate(row)

    async def update(self, record_id: int, changes: dict[str, Any]) -> FileRecord:
        unknown = set(changes) - _UPDATABLE
        if unknown:
            raise ValueError(f"Columns not updatable: {sorted(unknown)}")

        try:
            async with self._session_factory() as session:
                row = await session.get(FileRow, record_id)
                if row is None:
                    raise StorageError(f"file record {record_id} not found")
                for column, value in changes.items():
                    setattr(row, column, str(value) if column == "source_type" else value)
                await session.commit()
                await session.refresh(row)
        except SQLAlchemyError as exc:
            logger.error("repository.file.update_failed", file_id=record_id, error=str(exc))
            raise StorageError(str(exc)) from exc

        logger.debug("repository.file.updated", file_id=record_id, columns=sorted(changes))
        return FileRecord.model_validate(row)

    async def delete(self, record_id: int) -> bool:
        try:
            async with self._session_factory() as session:
                row = await session.get(FileRow, record_id)
                if row is None:
                    return False
                await session.delete(row)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("repository.file.delete_failed", file_id=record_id, error=str(exc))
            raise StorageError(str(exc)) from exc

        logger.debug("repository.file.deleted", file_id=record_id)
        return True

    async def get_by_id(self, record_id: int) -> FileRecord | None:
        async with self._session_factory() as session:
            row = await session.get(FileRow, record_id)
        return FileRecord.model_validate(row) if row else None

    async def list_by_owner(self, owner: OwnerRef) -> list[FileRecord]:
        stmt = (
            select(FileRow)
            .where(FileRow.owner_id == owner.owner_id, FileRow.owner_type == owner.owner_type)
            .order_by(FileRow.created_at.desc(), FileRow.id.desc())
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [FileRecord.model_validate(row) for row in rows]

    async def dispose(self) -> None:
        await self._engine.dispose()
