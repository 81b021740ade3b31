import os
import tempfile
from pathlib import Path
from unittest import TestCase

from mediastore.storage.errors import InvalidAddress
from mediastore.storage.models import Address
from mediastore.storage.paths import PathResolver, asset_key, is_sidecar, sidecar_name


class PathResolverTests(TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name) / "store"
        self.resolver = PathResolver(self.root)

    def tearDown(self):
        self._tmp.cleanup()

    def test_resolves_under_collection_and_subdir(self):
        path = self.resolver.resolve("u1", "proj1", "a/b", "x.pdf")
        self.assertEqual(path, self.root / "u1" / "proj1" / "a" / "b" / "x.pdf")

    def test_empty_subdir_is_collection_top_level(self):
        self.assertEqual(self.resolver.resolve("u1", "proj1", "", "x.pdf"), self.root / "u1" / "proj1" / "x.pdf")
        self.assertEqual(self.resolver.resolve("u1", "proj1", None, "x.pdf"), self.root / "u1" / "proj1" / "x.pdf")

    def test_subdir_slashes_are_normalized(self):
        addr = self.resolver.address("u1", "proj1", "/a//b/")
        self.assertEqual(addr, Address("u1", "proj1", "a/b"))

    def test_resolution_does_not_touch_disk(self):
        self.resolver.resolve("u1", "proj1", "deep/dir", "x.pdf")
        self.assertFalse(self.root.exists())

    def test_rejects_traversal_and_illegal_segments(self):
        bad = [
            ("..", "proj1", "", "x"),
            ("u1", "..", "", "x"),
            ("u1", "proj1", "a/../../..", "x"),
            ("u1", "proj1", "", ".."),
            ("u1", "proj1", "", "../x"),
            ("u1", "proj1", "", "a\\b"),
            ("u1", "proj1", "", "bad\x00name"),
            ("u1/evil", "proj1", "", "x"),
            ("", "proj1", "", "x"),
            ("u1", "  ", "", "x"),
        ]
        for tenant, collection, subdir, name in bad:
            with self.subTest(tenant=tenant, collection=collection, subdir=subdir, name=name):
                with self.assertRaises(InvalidAddress):
                    self.resolver.resolve(tenant, collection, subdir, name)

    def test_staging_namespace_is_reserved(self):
        with self.assertRaises(InvalidAddress):
            self.resolver.resolve("tmp", "proj1", "", "x")
        self.assertEqual(self.resolver.staging_dir(), self.root / "tmp")

    def test_urls(self):
        addr = self.resolver.address("u1", "proj1", "a/b")
        self.assertEqual(self.resolver.url_for(addr, "x.pdf"), "/media/u1/proj1/x.pdf?dir=a%2Fb")
        self.assertEqual(
            self.resolver.download_url_for(Address("u1", "proj1"), "x y.pdf"),
            "/media/u1/proj1/x%20y.pdf/download",
        )

    def test_root_is_absolute(self):
        resolver = PathResolver("relative-root")
        self.assertTrue(os.path.isabs(str(resolver.root)))


class NamingTests(TestCase):
    def test_asset_key_and_sidecar_names(self):
        self.assertEqual(asset_key("ab12.pdf"), "ab12")
        self.assertEqual(asset_key("noext"), "noext")
        self.assertEqual(sidecar_name("ab12"), "ab12.meta.json")
        self.assertTrue(is_sidecar("ab12.meta.json"))
        self.assertFalse(is_sidecar("ab12.json"))
