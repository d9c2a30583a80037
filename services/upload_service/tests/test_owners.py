import tempfile
from pathlib import Path
from unittest import IsolatedAsyncioTestCase
from unittest.mock import patch

import httpx

from fakes import CATEGORIES, InMemoryFileRepository, mock_transport, pdf_bytes, png_bytes, signature_sniffer
from upload_service.domain.exceptions import StorageError
from upload_service.domain.models import LocalFile, OwnerRef
from upload_service.domain.services import UploadService
from upload_service.domain.validator import FileValidator
from upload_service.infrastructure.http_client import HttpxRemoteFetcher
from upload_service.infrastructure.storage import LocalDiskStorage
from upload_service.owners import OwnerFiles


class OwnerFilesTests(IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.storage = LocalDiskStorage(name="public", root=str(self.root / "disk"), url_prefix="/storage")
        self.repository = InMemoryFileRepository()
        routes = {"https://cdn.example.com/doc.pdf": httpx.Response(200, content=pdf_bytes())}
        self.service = UploadService(
            validator=FileValidator(CATEGORIES, sniffer=signature_sniffer),
            disks={"public": self.storage},
            repository=self.repository,
            fetcher=HttpxRemoteFetcher(timeout=5, user_agent="tests", transport=mock_transport(routes)),
        )
        self.owner = OwnerRef(owner_type="post", owner_id="7")
        self.files = OwnerFiles(self.service, self.owner)

    def local_file(self, name: str) -> LocalFile:
        path = self.root / name
        content = png_bytes()
        path.write_bytes(content)
        return LocalFile(path=path, declared_name=name, size=len(content))

    async def test_attach_sets_owner(self):
        record = await self.files.attach(self.local_file("a.png"), "image")
        remote = await self.files.attach("https://cdn.example.com/doc.pdf", "pdf")

        self.assertEqual(record.owner, self.owner)
        self.assertEqual(remote.owner, self.owner)
        self.assertEqual([r.id for r in await self.files.files()], [remote.id, record.id])

    async def test_latest_url(self):
        self.assertIsNone(await self.files.latest_url())

        await self.files.attach(self.local_file("a.png"), "image")
        newest = await self.files.attach(self.local_file("b.png"), "image")

        self.assertEqual(await self.files.latest_url(), f"/storage/{newest.file_path}")

    async def test_other_owners_are_untouched(self):
        other = OwnerFiles(self.service, OwnerRef(owner_type="post", owner_id="8"))
        await other.attach(self.local_file("x.png"), "image")
        await self.files.attach(self.local_file("y.png"), "image")

        self.assertTrue(await self.files.delete_all())
        self.assertEqual(await self.files.files(), [])
        self.assertEqual(len(await other.files()), 1)

    async def test_delete_all_reports_failures(self):
        await self.files.attach(self.local_file("a.png"), "image")

        async def broken_delete(path):
            raise StorageError("read-only filesystem")

        with patch.object(self.storage, "delete", broken_delete):
            self.assertFalse(await self.files.delete_all())

        self.assertEqual(len(await self.files.files()), 1)
