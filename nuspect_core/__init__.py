"""Locate and render types declared in NuGet package assemblies."""

from .archive import ArchiveEntry, iter_module_entries
from .config import Settings, build_source, load_settings
from .formatting import format_declaration, render_type
from .introspect import Introspector, TypeListing, describe_type, list_types
from .matching import find_type, matches, strip_arity
from .metadata import ModuleLoader, ModuleMetadata, TypeDescriptor, TypeMetadata
from .paths import UserDirs
from .source import (
    CachedPackageSource,
    NuGetPackageSource,
    PackageNotFoundError,
    PackageReference,
    PackageRetrievalError,
    PackageSource,
    PackageSourceError,
)

__all__ = [
    "ArchiveEntry",
    "iter_module_entries",
    "Settings",
    "build_source",
    "load_settings",
    "format_declaration",
    "render_type",
    "Introspector",
    "TypeListing",
    "describe_type",
    "list_types",
    "find_type",
    "matches",
    "strip_arity",
    "ModuleLoader",
    "ModuleMetadata",
    "TypeDescriptor",
    "TypeMetadata",
    "UserDirs",
    "CachedPackageSource",
    "NuGetPackageSource",
    "PackageNotFoundError",
    "PackageReference",
    "PackageRetrievalError",
    "PackageSource",
    "PackageSourceError",
]
