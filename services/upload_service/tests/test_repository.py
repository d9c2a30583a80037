import tempfile
from pathlib import Path
from unittest import IsolatedAsyncioTestCase

import pytest

from upload_service.domain.models import NewFileRecord, OwnerRef, SourceKind
from upload_service.infrastructure.repository import SqlFileRepository

pytest.importorskip("aiosqlite")


def new_record(**overrides) -> NewFileRecord:
    fields = dict(
        original_name="photo.png",
        file_name="abc123.png",
        file_path="files/abc123.png",
        file_size=10240,
        mime_type="image/png",
        extension="png",
        file_type="image",
        disk="public",
    )
    fields.update(overrides)
    return NewFileRecord(**fields)


class SqlFileRepositoryTests(IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        db_path = Path(self._tmp.name) / "files.db"
        self.repository = SqlFileRepository(f"sqlite+aiosqlite:///{db_path}")
        await self.repository.create_schema()

    async def asyncTearDown(self):
        await self.repository.dispose()
        self._tmp.cleanup()

    async def test_create_assigns_id_and_timestamps(self):
        record = await self.repository.create(new_record())

        self.assertIsInstance(record.id, int)
        self.assertIsNotNone(record.created_at)
        self.assertIsNotNone(record.updated_at)
        self.assertEqual(record.source_type, SourceKind.UPLOAD)
        self.assertEqual(await self.repository.get_by_id(record.id), record)

    async def test_update_marks_url_source(self):
        record = await self.repository.create(new_record())

        updated = await self.repository.update(
            record.id, {"source_type": SourceKind.URL, "source_url": "https://example.com/a.png"}
        )

        self.assertEqual(updated.source_type, SourceKind.URL)
        self.assertEqual(updated.source_url, "https://example.com/a.png")
        self.assertEqual(updated.file_path, record.file_path)

    async def test_update_refuses_immutable_columns(self):
        record = await self.repository.create(new_record())

        with self.assertRaises(ValueError):
            await self.repository.update(record.id, {"file_path": "elsewhere.png"})

    async def test_delete(self):
        record = await self.repository.create(new_record())

        self.assertTrue(await self.repository.delete(record.id))
        self.assertFalse(await self.repository.delete(record.id))
        self.assertIsNone(await self.repository.get_by_id(record.id))

    async def test_list_by_owner_newest_first(self):
        owner = OwnerRef(owner_type="post", owner_id="7")
        first = await self.repository.create(new_record(owner_type="post", owner_id="7"))
        second = await self.repository.create(
            new_record(file_path="files/def.png", owner_type="post", owner_id="7")
        )
        await self.repository.create(new_record(owner_type="post", owner_id="8"))
        await self.repository.create(new_record(owner_type="user", owner_id="7"))

        records = await self.repository.list_by_owner(owner)

        self.assertEqual([r.id for r in records], [second.id, first.id])
