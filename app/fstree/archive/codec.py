"""Archive container codecs.

fstree never parses archive bytes itself. Each codec adapts one standard
library module to two small interfaces: an EntrySink that receives files
while packing, and an entry iterator used while unpacking.
"""

import logging
import shutil
import tarfile
import time
import zipfile
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import IO

from fstree.core.errors import UnsupportedArchiveError

logger = logging.getLogger(__name__)

# Earliest timestamp a zip header can hold (1980-01-01).
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)

Opener = Callable[[], IO[bytes]]


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    """Metadata of one archive member.

    Attributes:
        name: POSIX path inside the archive, without trailing slash.
        is_directory: Whether the member is a directory.
        size: Uncompressed size in bytes.
        modified: Modification time as a POSIX timestamp.
    """

    name: str
    is_directory: bool
    size: int
    modified: float


class EntrySink:
    """Writable side of an archive. Use as a context manager."""

    def add(self, name: str, source: Path, size: int, modified: float) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self) -> "EntrySink":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class ArchiveCodec:
    """Factory for the sink and source of one container format."""

    name: str
    extensions: tuple[str, ...]

    def open_sink(self, path: Path) -> EntrySink:
        raise NotImplementedError

    def read_entries(self, path: Path) -> Iterator[tuple[ArchiveEntry, Opener]]:
        raise NotImplementedError


class _ZipSink(EntrySink):
    def __init__(self, path: Path) -> None:
        self._zip = zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED)

    @staticmethod
    def _info(name: str, modified: float) -> zipfile.ZipInfo:
        date_time = max(time.localtime(modified)[:6], _ZIP_EPOCH)
        info = zipfile.ZipInfo(name, date_time=date_time)
        info.compress_type = zipfile.ZIP_DEFLATED
        return info

    def add(self, name: str, source: Path, size: int, modified: float) -> None:
        info = self._info(name, modified)
        info.file_size = size
        with open(source, "rb") as src, self._zip.open(info, "w", force_zip64=True) as out:
            shutil.copyfileobj(src, out)

    def close(self) -> None:
        self._zip.close()


class ZipCodec(ArchiveCodec):
    name = "zip"
    extensions = (".zip", ".jar")

    def open_sink(self, path: Path) -> EntrySink:
        return _ZipSink(path)

    def read_entries(self, path: Path) -> Iterator[tuple[ArchiveEntry, Opener]]:
        with zipfile.ZipFile(path) as archive:
            for info in archive.infolist():
                modified = time.mktime((*info.date_time, 0, 0, -1))
                entry = ArchiveEntry(
                    name=info.filename.rstrip("/"),
                    is_directory=info.is_dir(),
                    size=info.file_size,
                    modified=modified,
                )
                yield entry, lambda info=info: archive.open(info)


class _TarSink(EntrySink):
    def __init__(self, path: Path, mode: str) -> None:
        self._tar = tarfile.open(path, mode)  # noqa: SIM115

    def add(self, name: str, source: Path, size: int, modified: float) -> None:
        info = self._tar.gettarinfo(str(source), arcname=name)
        info.size = size
        info.mtime = int(modified)
        with open(source, "rb") as src:
            self._tar.addfile(info, src)

    def close(self) -> None:
        self._tar.close()


class TarCodec(ArchiveCodec):
    name = "tar"
    extensions = (".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz")

    _WRITE_MODES = {
        ".tar": "w",
        ".tar.gz": "w:gz",
        ".tgz": "w:gz",
        ".tar.bz2": "w:bz2",
        ".tbz2": "w:bz2",
        ".tar.xz": "w:xz",
        ".txz": "w:xz",
    }

    def open_sink(self, path: Path) -> EntrySink:
        return _TarSink(path, self._WRITE_MODES[_extension_of(path, self.extensions)])

    def read_entries(self, path: Path) -> Iterator[tuple[ArchiveEntry, Opener]]:
        with tarfile.open(path, "r:*") as archive:
            for member in archive:
                if not (member.isfile() or member.isdir()):
                    logger.debug("Skipping special tar member %s", member.name)
                    continue
                entry = ArchiveEntry(
                    name=member.name.rstrip("/"),
                    is_directory=member.isdir(),
                    size=member.size if member.isfile() else 0,
                    modified=float(member.mtime),
                )
                yield entry, lambda member=member: _extract(archive, member)


def _extract(archive: tarfile.TarFile, member: tarfile.TarInfo) -> IO[bytes]:
    stream = archive.extractfile(member)
    if stream is None:
        msg = f"Tar member {member.name} has no content"
        raise OSError(msg)
    return stream


CODECS: tuple[ArchiveCodec, ...] = (ZipCodec(), TarCodec())


def _extension_of(path: Path, extensions: tuple[str, ...]) -> str:
    name = path.name.lower()
    for extension in extensions:
        if name.endswith(extension):
            return extension
    return ""


def codec_for(path: Path) -> ArchiveCodec:
    """Pick the codec for an archive path by its extension.

    Raises:
        UnsupportedArchiveError: If no codec handles the extension.
    """
    for codec in CODECS:
        if _extension_of(path, codec.extensions):
            return codec
    msg = f"Unsupported archive format: {path.name}"
    raise UnsupportedArchiveError(msg)


def is_archive(path: Path) -> bool:
    return any(_extension_of(path, codec.extensions) for codec in CODECS)
