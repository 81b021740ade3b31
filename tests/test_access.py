import io
import tempfile
from pathlib import Path
from unittest import TestCase
from unittest.mock import patch

from mediastore.storage import MediaStore
from mediastore.storage.errors import NotFound, StorageIOError
from mediastore.storage.models import FALLBACK_NOTE, AuthoritativeMetadata, DerivedMetadata


class AssetAccessTests(TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.store = MediaStore.create(self.root)
        self.collection = self.root / "u1" / "proj1"

    def tearDown(self):
        self._tmp.cleanup()

    def _upload(self, data=b"bytes", name="photo.png", mime="image/png"):
        return self.store.uploads.commit("u1", "proj1", "", io.BytesIO(data), name, mime)

    def test_describe_by_id_and_by_stored_name(self):
        meta = self._upload()
        for ref in (meta.id, meta.filename):
            with self.subTest(ref=ref):
                described = self.store.assets.describe("u1", "proj1", ref)
                self.assertIsInstance(described, AuthoritativeMetadata)
                self.assertTrue(described.authoritative)
                self.assertEqual(described.to_payload()["originalname"], "photo.png")

    def test_describe_falls_back_to_stat(self):
        self.collection.mkdir(parents=True)
        (self.collection / "legacy.txt").write_text("12345")

        described = self.store.assets.describe("u1", "proj1", "legacy.txt")

        self.assertIsInstance(described, DerivedMetadata)
        self.assertFalse(described.authoritative)
        payload = described.to_payload()
        self.assertEqual(payload["size"], 5)
        self.assertEqual(payload["mimetype"], "text/plain")
        self.assertEqual(payload["note"], FALLBACK_NOTE)
        self.assertTrue(payload["fallback"])
        self.assertEqual(self.store.assets.describe("u1", "proj1", "legacy").fields["filename"], "legacy.txt")

    def test_orphaned_sidecar_is_not_found(self):
        meta = self._upload()
        (self.collection / meta.filename).unlink()
        with self.assertRaises(NotFound):
            self.store.assets.describe("u1", "proj1", meta.id)

    def test_locate_uses_stored_mime(self):
        meta = self._upload(name="clip", mime="video/webm")
        asset = self.store.assets.locate("u1", "proj1", meta.filename)
        self.assertEqual(asset.mime, "video/webm")
        self.assertEqual(asset.original_name, "clip")
        self.assertEqual(asset.size, 5)

    def test_locate_missing(self):
        with self.assertRaises(NotFound):
            self.store.assets.locate("u1", "proj1", "nope.png")

    def test_delete_removes_bytes_and_sidecar(self):
        meta = self._upload()
        self.store.assets.delete("u1", "proj1", meta.filename)
        self.assertEqual(list(self.collection.iterdir()), [])
        with self.assertRaises(NotFound):
            self.store.assets.delete("u1", "proj1", meta.filename)

    def test_delete_survives_sidecar_failure(self):
        meta = self._upload()
        with patch.object(self.store.sidecars, "delete", return_value=False) as sidecar_delete:
            self.store.assets.delete("u1", "proj1", meta.filename)
        sidecar_delete.assert_called_once()
        self.assertFalse((self.collection / meta.filename).exists())

    def test_delete_io_failure_surfaces(self):
        meta = self._upload()
        with patch("pathlib.Path.unlink", side_effect=PermissionError("denied")):
            with self.assertRaises(StorageIOError):
                self.store.assets.delete("u1", "proj1", meta.filename)

    def test_describe_ignores_metadata_of_sibling_with_same_stem(self):
        meta = self._upload(b"png", name="photo.png")
        self.store.relocation.rename("u1", "proj1", meta.filename, "", "shot.png")
        (self.collection / "shot.jpg").write_bytes(b"jpeg!")

        described = self.store.assets.describe("u1", "proj1", "shot.jpg")

        self.assertIsInstance(described, DerivedMetadata)
        self.assertEqual(described.fields["filename"], "shot.jpg")
        self.assertEqual(described.fields["mimetype"], "image/jpeg")
        self.assertEqual(described.fields["size"], 5)
        self.assertTrue(self.store.assets.describe("u1", "proj1", "shot.png").authoritative)
