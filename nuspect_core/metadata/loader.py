"""Failure-tolerant module loading on top of a metadata reader."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from ..archive import ArchiveEntry
from .models import ModuleMetadata

logger = logging.getLogger(__name__)


@runtime_checkable
class MetadataReader(Protocol):
    """Parses the bytes of one binary module into its type universe."""

    def read(self, data: bytes, *, file_name: str) -> ModuleMetadata:
        ...


class ModuleLoader:
    """Turn archive entries into metadata, skipping anything unreadable.

    Packages bundle several target-framework builds and sometimes native
    binaries under the same suffix; one bad entry must not stop the scan.
    """

    def __init__(self, reader: MetadataReader | None = None) -> None:
        if reader is None:
            from .dotnet import DotNetMetadataReader

            reader = DotNetMetadataReader()
        self.reader = reader

    def load(self, entry: ArchiveEntry) -> ModuleMetadata | None:
        try:
            return self.reader.read(entry.data, file_name=entry.file_name)
        except Exception as exc:
            logger.debug("Skipping archive entry %s: %s", entry.path, exc, exc_info=True)
            return None
