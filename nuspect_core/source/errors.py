"""Typed package source errors."""

from __future__ import annotations


class PackageSourceError(RuntimeError):
    """Base package source error."""


class PackageNotFoundError(PackageSourceError):
    """The package id (or the requested version) is unknown to the feed."""

    def __init__(self, package_id: str, version: str | None = None) -> None:
        target = f"{package_id} {version}" if version else package_id
        super().__init__(f"package '{target}' was not found")
        self.package_id = package_id
        self.version = version


class PackageRetrievalError(PackageSourceError):
    """Network or HTTP failure while talking to the feed."""


class PackageArchiveError(PackageSourceError):
    """The downloaded payload is not a readable package archive."""
