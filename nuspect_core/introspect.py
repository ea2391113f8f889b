"""Entry operations: describe one type, or list every interface of a package."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, Sequence

from .archive import DEFAULT_MODULE_SUFFIXES, iter_module_entries
from .formatting import format_declaration
from .matching import find_type
from .metadata.loader import ModuleLoader
from .metadata.models import ModuleMetadata, TypeDescriptor
from .source.types import PackageReference, PackageSource
from .source.versions import normalize_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TypeListing:
    package_id: str
    version: str
    types: tuple[TypeDescriptor, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "package_id": self.package_id,
            "version": self.version,
            "count": len(self.types),
            "types": [t.to_dict() for t in self.types],
        }


def not_found_message(query: str, package_id: str) -> str:
    return f"Interface '{query}' not found in package {package_id}."


def _require(value: str | None, name: str) -> str:
    if value is None or not str(value).strip():
        raise ValueError(f"{name} must not be empty")
    return str(value).strip()


def resolve_reference(source: PackageSource, package_id: str, version: str | None) -> PackageReference:
    resolved = normalize_version(version)
    if resolved is None:
        resolved = source.resolve_latest_version(package_id)
    return PackageReference(package_id=package_id, version=resolved)


def _iter_modules(
    source: PackageSource,
    ref: PackageReference,
    loader: ModuleLoader,
    suffixes: Sequence[str],
) -> Iterator[ModuleMetadata]:
    stream = source.fetch_archive(ref.package_id, ref.version)
    entries = iter_module_entries(stream, suffixes)
    try:
        for entry in entries:
            module = loader.load(entry)
            if module is not None:
                yield module
    finally:
        entries.close()


def describe_type(
    package_id: str,
    query: str,
    version: str | None = None,
    *,
    source: PackageSource,
    loader: ModuleLoader | None = None,
    suffixes: Sequence[str] = DEFAULT_MODULE_SUFFIXES,
) -> str:
    """Return the declaration of the first interface named ``query``.

    Modules are searched in archive entry order. Internal interfaces are
    candidates too, so a short name can resolve to a type that
    :func:`list_types` does not report. A miss yields the not-found message
    rather than an exception.
    """

    package_id = _require(package_id, "package_id")
    _require(query, "query")
    ref = resolve_reference(source, package_id, version)
    loader = loader or ModuleLoader()

    logger.info("Fetching interface %s from package %s version %s", query, ref.package_id, ref.version)
    modules = _iter_modules(source, ref, loader, suffixes)
    try:
        for module in modules:
            match = find_type(module, query)
            if match is not None:
                logger.debug("matched %s in %s", match.full_name, module.file_name)
                return format_declaration(match, module.file_name)
    finally:
        modules.close()
    return not_found_message(query, package_id)


def list_types(
    package_id: str,
    version: str | None = None,
    *,
    source: PackageSource,
    loader: ModuleLoader | None = None,
    suffixes: Sequence[str] = DEFAULT_MODULE_SUFFIXES,
) -> TypeListing:
    """Collect every public interface from every readable module of the package."""

    package_id = _require(package_id, "package_id")
    ref = resolve_reference(source, package_id, version)
    loader = loader or ModuleLoader()

    logger.info("Listing interfaces of package %s version %s", ref.package_id, ref.version)
    found: list[TypeDescriptor] = []
    for module in _iter_modules(source, ref, loader, suffixes):
        found.extend(
            TypeDescriptor.from_type(t, module.file_name)
            for t in module.interfaces()
            if t.is_public
        )
    return TypeListing(package_id=ref.package_id, version=ref.version, types=tuple(found))


class Introspector:
    """Bundle a package source, a module loader and the module suffixes."""

    def __init__(
        self,
        source: PackageSource,
        *,
        loader: ModuleLoader | None = None,
        suffixes: Sequence[str] = DEFAULT_MODULE_SUFFIXES,
    ) -> None:
        self.source = source
        self.loader = loader or ModuleLoader()
        self.suffixes = tuple(suffixes)

    @classmethod
    def from_settings(cls, settings: Any | None = None) -> "Introspector":
        from .config import build_source, load_settings

        settings = settings or load_settings()
        return cls(build_source(settings), suffixes=settings.module_suffixes)

    def describe_type(self, package_id: str, query: str, version: str | None = None) -> str:
        return describe_type(
            package_id,
            query,
            version,
            source=self.source,
            loader=self.loader,
            suffixes=self.suffixes,
        )

    def list_types(self, package_id: str, version: str | None = None) -> TypeListing:
        return list_types(
            package_id,
            version,
            source=self.source,
            loader=self.loader,
            suffixes=self.suffixes,
        )

    def list_versions(self, package_id: str) -> list[str]:
        return self.source.list_versions(_require(package_id, "package_id"))
