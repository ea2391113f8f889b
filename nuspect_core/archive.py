"""Lazy traversal of the binary modules bundled in a package archive."""

from __future__ import annotations

import logging
import posixpath
import zipfile
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Sequence

from .source.errors import PackageArchiveError

logger = logging.getLogger(__name__)

DEFAULT_MODULE_SUFFIXES: tuple[str, ...] = (".dll",)


@dataclass(frozen=True)
class ArchiveEntry:
    path: str
    data: bytes

    @property
    def file_name(self) -> str:
        return posixpath.basename(self.path.replace("\\", "/"))


def is_module_path(path: str, suffixes: Sequence[str] = DEFAULT_MODULE_SUFFIXES) -> bool:
    lowered = path.lower()
    return any(lowered.endswith(suffix.lower()) for suffix in suffixes)


def iter_module_entries(
    stream: BinaryIO,
    suffixes: Sequence[str] = DEFAULT_MODULE_SUFFIXES,
) -> Iterator[ArchiveEntry]:
    """Yield module entries of the archive in entry order.

    The stream is consumed once and closed when the iteration finishes or the
    generator is closed.
    """

    with stream:
        try:
            archive = zipfile.ZipFile(stream)
        except zipfile.BadZipFile as exc:
            raise PackageArchiveError(f"not a package archive: {exc}") from exc
        with archive:
            for info in archive.infolist():
                if info.is_dir() or not is_module_path(info.filename, suffixes):
                    continue
                try:
                    data = archive.read(info)
                except (zipfile.BadZipFile, NotImplementedError, OSError) as exc:
                    logger.debug("Unreadable archive entry %s: %s", info.filename, exc)
                    continue
                yield ArchiveEntry(path=info.filename, data=data)
