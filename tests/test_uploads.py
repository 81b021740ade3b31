import io
import json
import tempfile
from pathlib import Path
from unittest import TestCase
from unittest.mock import patch

from mediastore.storage import MediaStore
from mediastore.storage.errors import (
    InvalidAddress,
    MissingIdentity,
    MissingParameter,
    StorageIOError,
    UploadTooLarge,
)
from mediastore.storage.models import DerivedMetadata


class UploadPipelineTests(TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.store = MediaStore.create(self.root, max_bytes=1024)
        self.staging = self.root / "tmp"

    def tearDown(self):
        self._tmp.cleanup()

    def _commit(self, data=b"hello", name="report.pdf", tenant="u1", collection="proj1", subdir=""):
        return self.store.uploads.commit(tenant, collection, subdir, io.BytesIO(data), name, "application/pdf", len(data))

    def _staged(self):
        return list(self.staging.iterdir()) if self.staging.exists() else []

    def test_commit_places_bytes_and_sidecar(self):
        meta = self._commit(b"%PDF-1.4 body", subdir="docs/2024")

        self.assertEqual(len(meta.id), 32)
        self.assertEqual(meta.filename, f"{meta.id}.pdf")
        self.assertEqual(meta.stored_name, meta.filename)
        self.assertEqual(meta.original_name, "report.pdf")
        self.assertEqual(meta.size, 13)
        self.assertEqual(meta.dir, "docs/2024")
        self.assertEqual(meta.url, f"/media/u1/proj1/{meta.filename}?dir=docs%2F2024")

        dest = self.root / "u1" / "proj1" / "docs" / "2024"
        self.assertEqual((dest / meta.filename).read_bytes(), b"%PDF-1.4 body")
        sidecar = json.loads((dest / f"{meta.id}.meta.json").read_text(encoding="utf-8"))
        self.assertEqual(sidecar["originalname"], "report.pdf")
        self.assertEqual(sidecar["mimetype"], "application/pdf")
        self.assertEqual(sidecar["storedName"], meta.filename)
        self.assertEqual(sidecar["tenantId"], "u1")
        self.assertEqual(self._staged(), [])

    def test_ids_are_unique_per_upload(self):
        a = self._commit()
        b = self._commit()
        self.assertNotEqual(a.id, b.id)

    def test_odd_extension_is_dropped(self):
        meta = self._commit(name="weird.name.with space")
        self.assertEqual(meta.filename, meta.id)

    def test_missing_identity_discards_staged_file(self):
        for tenant, collection in (("", "proj1"), ("u1", None)):
            with self.subTest(tenant=tenant, collection=collection):
                with self.assertRaises(MissingIdentity):
                    self._commit(tenant=tenant, collection=collection)
                self.assertEqual(self._staged(), [])

    def test_missing_file(self):
        with self.assertRaises(MissingParameter):
            self.store.uploads.commit("u1", "proj1", "", None, None, None)
        with self.assertRaises(MissingParameter):
            self._commit(name="")
        self.assertEqual(self._staged(), [])

    def test_invalid_address_discards_staged_file(self):
        with self.assertRaises(InvalidAddress):
            self._commit(subdir="../escape")
        self.assertEqual(self._staged(), [])
        self.assertFalse((self.root / "u1").exists())

    def test_too_large_discards_staged_file(self):
        with self.assertRaises(UploadTooLarge):
            self._commit(b"x" * 2048)
        self.assertEqual(self._staged(), [])

    def test_commit_rename_failure_discards_staged_file(self):
        with patch("mediastore.storage.uploads.os.replace", side_effect=OSError("cross-device link")):
            with self.assertRaises(StorageIOError):
                self._commit()
        self.assertEqual(self._staged(), [])

    def test_sidecar_failure_does_not_roll_back_commit(self):
        with patch.object(self.store.sidecars, "write", side_effect=StorageIOError("disk full")):
            meta = self._commit(b"payload")

        path = self.root / "u1" / "proj1" / meta.filename
        self.assertEqual(path.read_bytes(), b"payload")
        self.assertFalse((self.root / "u1" / "proj1" / f"{meta.id}.meta.json").exists())

        fallback = self.store.assets.describe("u1", "proj1", meta.id)
        self.assertIsInstance(fallback, DerivedMetadata)
        self.assertEqual(fallback.fields["size"], 7)
