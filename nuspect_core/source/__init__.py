"""Package source layer: NuGet feed client, archive cache and version helpers."""

from .cache import CachedPackageSource
from .client import NuGetPackageSource
from .errors import (
    PackageArchiveError,
    PackageNotFoundError,
    PackageRetrievalError,
    PackageSourceError,
)
from .types import (
    NUGET_FLAT_CONTAINER_URL,
    PackageReference,
    PackageSource,
    SourceConfig,
)
from .versions import is_prerelease, latest_version, normalize_version, version_key

__all__ = [
    "NuGetPackageSource",
    "CachedPackageSource",
    "PackageSource",
    "PackageReference",
    "SourceConfig",
    "NUGET_FLAT_CONTAINER_URL",
    "PackageSourceError",
    "PackageNotFoundError",
    "PackageRetrievalError",
    "PackageArchiveError",
    "is_prerelease",
    "latest_version",
    "normalize_version",
    "version_key",
]
