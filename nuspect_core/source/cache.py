"""On-disk archive cache that composes around any package source."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO

from .types import PackageReference, PackageSource

logger = logging.getLogger(__name__)


class CachedPackageSource:
    """Keep downloaded archives under ``root/<id>/<version>/``.

    Version listing always goes to the wrapped source; archives are immutable
    once published, so a cached file is served without revalidation.
    """

    def __init__(self, inner: PackageSource, root: Path | str) -> None:
        self.inner = inner
        self.root = Path(root)

    def cache_path(self, package_id: str, version: str) -> Path:
        ref = PackageReference(package_id=package_id.strip(), version=version.strip())
        return self.root / ref.package_id.lower() / ref.version.lower() / ref.file_name

    def list_versions(self, package_id: str) -> list[str]:
        return self.inner.list_versions(package_id)

    def resolve_latest_version(self, package_id: str) -> str:
        return self.inner.resolve_latest_version(package_id)

    def fetch_archive(self, package_id: str, version: str) -> BinaryIO:
        target = self.cache_path(package_id, version)
        if target.is_file():
            logger.debug("cache hit %s", target)
            return target.open("rb")

        target.parent.mkdir(parents=True, exist_ok=True)
        with self.inner.fetch_archive(package_id, version) as stream:
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, suffix=".part")
            try:
                with os.fdopen(fd, "wb") as out:
                    shutil.copyfileobj(stream, out)
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        logger.debug("cached %s %s at %s", package_id, version, target)
        return target.open("rb")

    def clear(self) -> int:
        """Remove every cached archive and return how many files were deleted."""

        if not self.root.exists():
            return 0
        removed = 0
        for path in self.root.rglob("*.nupkg"):
            path.unlink()
            removed += 1
        return removed
