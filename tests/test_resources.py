from __future__ import annotations

import io
import tarfile
import tempfile
import unittest
import zipfile
from pathlib import Path

import zstandard as zstd

import sqlci
from sqlci.errors import ResourceStagingError
from sqlci.resources import (
    DEFAULT_RESOURCES,
    PRIMARY_SCRIPT,
    ArchiveResourceBundle,
    PackageResourceBundle,
    ResourceStager,
    resolve_archive_format,
)

FILES = {
    "PowerShell/Runner.ps1": b"param($a)\r\nWrite-Output $a\r\n",
    "PowerShell/nested/Helper.ps1": b"\x00\x01binary\xff",
}


def _tar_bytes(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


class PackageResourceBundleTests(unittest.TestCase):
    def test_default_resources_are_bundled(self) -> None:
        bundle = PackageResourceBundle()
        scripts_dir = Path(sqlci.__file__).resolve().parent / "scripts"
        for name in DEFAULT_RESOURCES:
            with self.subTest(name=name):
                self.assertEqual(bundle.read(name), (scripts_dir / name).read_bytes())

    def test_missing_resource(self) -> None:
        with self.assertRaises(FileNotFoundError):
            PackageResourceBundle().read("PowerShell/Missing.ps1")

    def test_rejects_escaping_names(self) -> None:
        with self.assertRaises(ValueError):
            PackageResourceBundle().read("../cli.py")


class ResourceStagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.workspace = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_stage_copies_bytes_and_creates_directories(self) -> None:
        staged = ResourceStager().stage(self.workspace / "deep" / "work", PRIMARY_SCRIPT)
        self.assertEqual(staged, self.workspace / "deep" / "work" / PRIMARY_SCRIPT)
        self.assertEqual(staged.read_bytes(), PackageResourceBundle().read(PRIMARY_SCRIPT))

    def test_stage_overwrites_existing_file(self) -> None:
        target = self.workspace / PRIMARY_SCRIPT
        target.parent.mkdir(parents=True)
        target.write_bytes(b"stale content " * 1000)
        stager = ResourceStager()
        stager.stage(self.workspace, PRIMARY_SCRIPT)
        stager.stage(self.workspace, PRIMARY_SCRIPT)
        self.assertEqual(target.read_bytes(), PackageResourceBundle().read(PRIMARY_SCRIPT))

    def test_missing_resource_raises_staging_error(self) -> None:
        with self.assertRaises(ResourceStagingError) as ctx:
            ResourceStager().stage(self.workspace, "PowerShell/Missing.ps1")
        self.assertEqual(ctx.exception.resource_name, "PowerShell/Missing.ps1")
        self.assertFalse((self.workspace / "PowerShell" / "Missing.ps1").exists())

    def test_invalid_name_raises_staging_error(self) -> None:
        with self.assertRaises(ResourceStagingError):
            ResourceStager().stage(self.workspace, "../outside.ps1")

    def test_unwritable_destination_raises_staging_error(self) -> None:
        blocker = self.workspace / "not-a-dir"
        blocker.write_text("file")
        with self.assertRaises(ResourceStagingError):
            ResourceStager().stage(blocker, PRIMARY_SCRIPT)

    def test_backslash_names_are_normalized(self) -> None:
        staged = ResourceStager().stage(self.workspace, "PowerShell\\SqlCi.ps1")
        self.assertEqual(staged, self.workspace / "PowerShell" / "SqlCi.ps1")


class ArchiveResourceBundleTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _assert_bundle(self, bundle: ArchiveResourceBundle) -> None:
        for name, data in FILES.items():
            with self.subTest(name=name):
                self.assertEqual(bundle.read(name), data)

    def test_tar_zst_bundle(self) -> None:
        archive = self.root / "scripts.tar.zst"
        archive.write_bytes(zstd.ZstdCompressor().compress(_tar_bytes(FILES)))
        self._assert_bundle(ArchiveResourceBundle(archive))

    def test_tar_gz_bundle(self) -> None:
        archive = self.root / "scripts.tgz"
        with tarfile.open(archive, "w:gz") as tar:
            for name, data in FILES.items():
                info = tarfile.TarInfo(name)
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
        self._assert_bundle(ArchiveResourceBundle(archive))

    def test_zip_bundle(self) -> None:
        archive = self.root / "scripts.zip"
        with zipfile.ZipFile(archive, "w") as handle:
            for name, data in FILES.items():
                handle.writestr(name, data)
        self._assert_bundle(ArchiveResourceBundle(archive))

    def test_unknown_suffix(self) -> None:
        with self.assertRaises(ValueError):
            ArchiveResourceBundle(self.root / "scripts.rar")

    def test_resolve_archive_format(self) -> None:
        self.assertEqual(resolve_archive_format("Scripts.TAR.ZST"), "zst")
        self.assertEqual(resolve_archive_format(Path("b/scripts.tgz")), "gztar")
        self.assertEqual(resolve_archive_format("scripts.tar"), "tar")
        with self.assertRaises(ValueError):
            resolve_archive_format("scripts.rar")

    def test_missing_member(self) -> None:
        archive = self.root / "scripts.tar"
        archive.write_bytes(_tar_bytes(FILES))
        with self.assertRaises(FileNotFoundError):
            ArchiveResourceBundle(archive).read("PowerShell/Other.ps1")

    def test_stage_from_archive(self) -> None:
        archive = self.root / "scripts.tar.zst"
        archive.write_bytes(zstd.ZstdCompressor().compress(_tar_bytes(FILES)))
        work = self.root / "work"
        staged = ResourceStager(ArchiveResourceBundle(archive)).stage(work, "PowerShell/nested/Helper.ps1")
        self.assertEqual(staged.read_bytes(), FILES["PowerShell/nested/Helper.ps1"])

    def test_missing_archive_raises_staging_error(self) -> None:
        stager = ResourceStager(ArchiveResourceBundle(self.root / "absent.tar.zst"))
        with self.assertRaises(ResourceStagingError):
            stager.stage(self.root / "work", "PowerShell/Runner.ps1")

    def test_corrupt_archive_raises_staging_error(self) -> None:
        archive = self.root / "broken.zip"
        archive.write_bytes(b"not a zip")
        with self.assertRaises(ResourceStagingError):
            ResourceStager(ArchiveResourceBundle(archive)).stage(self.root / "work", "PowerShell/Runner.ps1")


if __name__ == "__main__":
    unittest.main()
