"""Name matching between a caller query and a declared type."""

from __future__ import annotations

from typing import Optional

from .metadata.models import ModuleMetadata, TypeMetadata


def strip_arity(name: str) -> str:
    """Drop the ``\\`N`` arity suffix of a generic metadata name."""

    index = name.find("`")
    if index <= 0:
        return name
    return name[:index]


def _base_name_matches(name: str, query: str) -> bool:
    index = name.find("`")
    if index <= 0:
        return False
    return name[:index] == query


def matches(candidate: TypeMetadata, query: str) -> bool:
    """Decide whether ``query`` names ``candidate``.

    Rules, first hit wins: exact short name, exact full name, then for
    generic types the short or full name with the arity suffix removed.
    The query itself is never rewritten.
    """

    if candidate.name == query:
        return True
    full_name = candidate.full_name
    if full_name and full_name == query:
        return True
    if candidate.is_generic:
        if _base_name_matches(candidate.name, query):
            return True
        if full_name and _base_name_matches(full_name, query):
            return True
    return False


def find_type(module: ModuleMetadata, query: str) -> Optional[TypeMetadata]:
    """Return the first interface of ``module`` (declaration order) matching ``query``.

    Visibility is not considered: an internal interface declared before a
    public one with the same short name wins, even though
    :func:`nuspect_core.introspect.list_types` only reports public interfaces.
    Query by full name to reach a specific one.
    """

    for candidate in module.types:
        if candidate.is_interface and matches(candidate, query):
            return candidate
    return None
