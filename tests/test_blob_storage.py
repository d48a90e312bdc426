from __future__ import annotations

import sys
import tempfile
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from blob_storage import LocalBlobStorage  # noqa: E402
from document_store import DocumentStore, ingest_bytes_to_text  # noqa: E402
from errors import ExternalCollaboratorError  # noqa: E402
from reconciler import GuidanceCatalogStore  # noqa: E402
from schemas import GuidanceEntry  # noqa: E402


class LocalBlobStorageTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.storage = LocalBlobStorage(self.root)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    async def test_written_blob_can_be_read_by_name_and_file_url(self) -> None:
        await self.storage.update_file("nested/rules.txt", "a|b")
        self.assertEqual(await self.storage.fetch_file("nested/rules.txt"), b"a|b")
        url = (self.root / "nested" / "rules.txt").resolve().as_uri()
        self.assertEqual(await self.storage.fetch_file_from_url(url), b"a|b")

    async def test_missing_blob_is_a_collaborator_error(self) -> None:
        with self.assertRaises(ExternalCollaboratorError):
            await self.storage.fetch_file("missing.txt")

    async def test_names_cannot_escape_the_root(self) -> None:
        with self.assertRaises(ValueError):
            await self.storage.fetch_file("../outside.txt")

    async def test_file_urls_outside_the_root_are_refused(self) -> None:
        with tempfile.TemporaryDirectory() as other:
            secret = Path(other) / "secret.txt"
            secret.write_text("TOP-SECRET", encoding="utf-8")
            with self.assertRaises(ValueError):
                await self.storage.fetch_file_from_url(secret.resolve().as_uri())
        with self.assertRaises(ValueError):
            await self.storage.fetch_file_from_url("file:///etc/passwd")

    async def test_guidance_catalog_is_written_whole(self) -> None:
        store = GuidanceCatalogStore(self.storage, "catalog.txt")
        await store.save([GuidanceEntry(source_name="Fee", mapping_key="K1"), GuidanceEntry(source_name="Cutoff")])
        loaded = await store.load()
        self.assertEqual([(g.source_name, g.mapping_key) for g in loaded], [("Fee", "K1"), ("Cutoff", None)])

    async def test_document_store_reads_text_under_prefix(self) -> None:
        await self.storage.update_file("documents/notes.txt", "Minimum payment is $5")
        texts = await DocumentStore(self.storage, "documents").get_texts(["notes.txt"])
        self.assertEqual(texts, {"notes.txt": "Minimum payment is $5"})


class IngestTests(unittest.TestCase):
    def test_plain_text_is_decoded(self) -> None:
        self.assertEqual(ingest_bytes_to_text("héllo".encode("utf-8"), "a.txt"), "héllo")


if __name__ == "__main__":
    unittest.main()
