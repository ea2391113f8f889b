"""Package source datatypes and configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Protocol, runtime_checkable

NUGET_FLAT_CONTAINER_URL = "https://api.nuget.org/v3-flatcontainer"


@dataclass(frozen=True)
class PackageReference:
    package_id: str
    version: str

    @property
    def file_name(self) -> str:
        return f"{self.package_id.lower()}.{self.version.lower()}.nupkg"

    def __str__(self) -> str:
        return f"{self.package_id} {self.version}"


@dataclass(frozen=True)
class SourceConfig:
    base_url: str = NUGET_FLAT_CONTAINER_URL
    timeout_seconds: float = 30.0
    max_retries: int = 2
    backoff_seconds: float = 0.5
    include_prerelease: bool = False
    user_agent: str = "nuspect"


@runtime_checkable
class PackageSource(Protocol):
    """Anything able to resolve versions and hand out package archives."""

    def list_versions(self, package_id: str) -> list[str]:
        ...

    def resolve_latest_version(self, package_id: str) -> str:
        ...

    def fetch_archive(self, package_id: str, version: str) -> BinaryIO:
        ...
