"""Bundled script resources and staging into a working directory."""
from __future__ import annotations

from importlib import resources as importlib_resources
from pathlib import Path, PurePosixPath
from typing import Dict, Protocol, runtime_checkable
import tarfile
import zipfile

import zstandard as zstd

from .errors import ResourceStagingError

PRIMARY_SCRIPT = "PowerShell/SqlChangeAutomationRunner.ps1"
DEFAULT_RESOURCES = (
    PRIMARY_SCRIPT,
    "PowerShell/PowershellGallery.ps1",
    "PowerShell/SqlCi.ps1",
)

_SUFFIX_FORMATS: list[tuple[str, str]] = [
    (".tar.zst", "zst"),
    (".tzst", "zst"),
    (".tar.gz", "gztar"),
    (".tgz", "gztar"),
    (".tar.bz2", "bztar"),
    (".tbz", "bztar"),
    (".tar.xz", "xztar"),
    (".txz", "xztar"),
    (".tar", "tar"),
    (".zip", "zip"),
]

_TAR_MODES: dict[str, str] = {
    "gztar": "r:gz",
    "bztar": "r:bz2",
    "xztar": "r:xz",
    "tar": "r:",
}


@runtime_checkable
class ResourceBundle(Protocol):
    """Read-only collection of byte blobs addressed by relative name."""

    def read(self, name: str) -> bytes:
        """Return the bytes of *name*; raise :class:`FileNotFoundError` if absent."""
        ...


def resolve_archive_format(archive: Path | str) -> str:
    """Return the archive format name for *archive* from its file suffix.

    Raises :class:`ValueError` when the suffix is not a supported bundle format.
    """
    filename = Path(archive).name.lower()
    for suffix, fmt in sorted(_SUFFIX_FORMATS, key=lambda item: len(item[0]), reverse=True):
        if filename.endswith(suffix):
            return fmt
    raise ValueError(f"Unable to determine archive format for resource bundle '{archive}'")


def _normalize_name(name: str) -> str:
    path = PurePosixPath(name.replace("\\", "/"))
    if path.is_absolute() or ".." in path.parts or not path.parts:
        raise ValueError(f"Invalid resource name '{name}'")
    return path.as_posix()


class PackageResourceBundle:
    """Resources shipped as package data inside ``sqlci/scripts``."""

    def __init__(self, package: str = "sqlci", root: str = "scripts") -> None:
        self._package = package
        self._root = root

    def read(self, name: str) -> bytes:
        resource = importlib_resources.files(self._package).joinpath(self._root)
        for part in PurePosixPath(_normalize_name(name)).parts:
            resource = resource.joinpath(part)
        if not resource.is_file():
            raise FileNotFoundError(f"Resource '{name}' is not bundled with {self._package}")
        return resource.read_bytes()


class ArchiveResourceBundle:
    """Resources packed into a single archive, read by member name.

    The archive format is inferred from the file suffix. Members are loaded
    once on first access.
    """

    def __init__(self, archive_path: Path | str) -> None:
        self._archive = Path(archive_path).expanduser()
        self._format = resolve_archive_format(self._archive)
        self._members: Dict[str, bytes] | None = None

    @property
    def path(self) -> Path:
        return self._archive

    def read(self, name: str) -> bytes:
        members = self._load()
        key = _normalize_name(name)
        if key not in members:
            raise FileNotFoundError(f"Resource '{name}' not found in {self._archive}")
        return members[key]

    def _load(self) -> Dict[str, bytes]:
        if self._members is None:
            if not self._archive.exists():
                raise FileNotFoundError(f"Resource bundle '{self._archive}' does not exist")
            if self._format == "zip":
                self._members = self._read_zip()
            elif self._format == "zst":
                self._members = self._read_zst()
            else:
                with tarfile.open(self._archive, _TAR_MODES[self._format]) as tar:
                    self._members = self._read_tar(tar)
        return self._members

    def _read_zip(self) -> Dict[str, bytes]:
        members: Dict[str, bytes] = {}
        with zipfile.ZipFile(self._archive, "r") as archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                members[_normalize_name(info.filename)] = archive.read(info)
        return members

    def _read_zst(self) -> Dict[str, bytes]:
        dctx = zstd.ZstdDecompressor()
        with self._archive.open("rb") as ifh:
            with dctx.stream_reader(ifh) as reader:
                with tarfile.open(fileobj=reader, mode="r|") as tar:
                    return self._read_tar(tar)

    @staticmethod
    def _read_tar(tar: tarfile.TarFile) -> Dict[str, bytes]:
        members: Dict[str, bytes] = {}
        for member in tar:
            if not member.isfile():
                continue
            handle = tar.extractfile(member)
            if handle is None:
                continue
            with handle:
                members[_normalize_name(member.name)] = handle.read()
        return members


class ResourceStager:
    """Copies bundled resources into a working directory."""

    def __init__(self, bundle: ResourceBundle | None = None) -> None:
        self._bundle = bundle if bundle is not None else PackageResourceBundle()

    def stage(self, working_dir: Path, resource_name: str) -> Path:
        try:
            relative = _normalize_name(resource_name)
        except ValueError as exc:
            raise ResourceStagingError(resource_name, str(exc)) from exc

        try:
            payload = self._bundle.read(relative)
        except (OSError, tarfile.TarError, zipfile.BadZipFile, zstd.ZstdError) as exc:
            raise ResourceStagingError(resource_name, str(exc)) from exc

        target = Path(working_dir) / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(payload)
        except OSError as exc:
            raise ResourceStagingError(resource_name, str(exc)) from exc
        return target


__all__ = [
    "ArchiveResourceBundle",
    "DEFAULT_RESOURCES",
    "PRIMARY_SCRIPT",
    "PackageResourceBundle",
    "ResourceBundle",
    "ResourceStager",
    "resolve_archive_format",
]
