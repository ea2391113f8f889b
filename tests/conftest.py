"""Shared fixtures: an in-memory package feed and a JSON-backed metadata reader."""

from __future__ import annotations

import io
import json
import zipfile
from typing import Any, BinaryIO, Callable, Iterable

import pytest

from nuspect_core.metadata.models import (
    GenericParameter,
    GenericParamSig,
    MemberInfo,
    ModuleMetadata,
    NamedSig,
    ParameterInfo,
    PrimitiveSig,
    TypeMetadata,
    TypeSig,
)
from nuspect_core.source import PackageNotFoundError, latest_version

_PRIMITIVES = {"void": "Void", "int": "Int32", "string": "String", "bool": "Boolean", "object": "Object"}


def build_archive(entries: Iterable[tuple[str, bytes]]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path, data in entries:
            archive.writestr(path, data)
    return buffer.getvalue()


class TrackingStream(io.BytesIO):
    """BytesIO registered with its source so tests can check it was closed."""

    def __init__(self, data: bytes, registry: list["TrackingStream"]) -> None:
        super().__init__(data)
        registry.append(self)


class InMemorySource:
    """Package source serving archives from a dict, recording every call."""

    def __init__(self) -> None:
        self.packages: dict[str, dict[str, bytes]] = {}
        self.calls: list[tuple[str, ...]] = []
        self.streams: list[TrackingStream] = []

    def add(self, package_id: str, version: str, archive: bytes) -> None:
        self.packages.setdefault(package_id.lower(), {})[version] = archive

    def list_versions(self, package_id: str) -> list[str]:
        self.calls.append(("list_versions", package_id))
        versions = self.packages.get(package_id.lower())
        if versions is None:
            raise PackageNotFoundError(package_id)
        return list(versions)

    def resolve_latest_version(self, package_id: str) -> str:
        self.calls.append(("resolve_latest_version", package_id))
        versions = self.packages.get(package_id.lower())
        latest = latest_version(versions or ())
        if latest is None:
            raise PackageNotFoundError(package_id)
        return latest

    def fetch_archive(self, package_id: str, version: str) -> BinaryIO:
        self.calls.append(("fetch_archive", package_id, version))
        try:
            data = self.packages[package_id.lower()][version]
        except KeyError:
            raise PackageNotFoundError(package_id, version) from None
        return TrackingStream(data, self.streams)


def _sig(text: str, generics: tuple[str, ...]) -> TypeSig:
    if text in generics:
        return GenericParamSig(generics.index(text), name=text)
    if text in _PRIMITIVES:
        return PrimitiveSig(_PRIMITIVES[text])
    namespace, _, name = text.rpartition(".")
    return NamedSig(namespace=namespace, name=name)


def module_bytes(*types: dict[str, Any], assembly: str = "Test") -> bytes:
    """Encode a module description understood by :class:`JsonMetadataReader`."""

    return json.dumps({"assembly": assembly, "types": list(types)}).encode("utf-8")


class JsonMetadataReader:
    """Metadata reader over a small JSON encoding, used instead of real assemblies."""

    def __init__(self) -> None:
        self.read_count = 0

    def read(self, data: bytes, *, file_name: str) -> ModuleMetadata:
        self.read_count += 1
        payload = json.loads(data.decode("utf-8"))
        types: list[TypeMetadata] = []
        for raw in payload["types"]:
            generics = tuple(raw.get("generic", ()))
            members = []
            for member in raw.get("members", ()):
                params = tuple(
                    ParameterInfo(name=p["name"], type=_sig(p["type"], generics))
                    for p in member.get("params", ())
                )
                members.append(
                    MemberInfo(
                        kind=member.get("kind", "method"),
                        name=member["name"],
                        return_type=_sig(member.get("type", "void"), generics),
                        parameters=params,
                        has_getter=member.get("get", False),
                        has_setter=member.get("set", False),
                    )
                )
            types.append(
                TypeMetadata(
                    name=raw["name"],
                    namespace=raw.get("namespace", ""),
                    kind=raw.get("kind", "interface"),
                    is_public=raw.get("public", True),
                    generic_parameters=tuple(GenericParameter(name=g) for g in generics),
                    interfaces=tuple(_sig(i, generics) for i in raw.get("extends", ())),
                    members=tuple(members),
                )
            )
        return ModuleMetadata(file_name=file_name, assembly_name=payload.get("assembly", ""), types=tuple(types))


@pytest.fixture
def source() -> InMemorySource:
    return InMemorySource()


@pytest.fixture
def reader() -> JsonMetadataReader:
    return JsonMetadataReader()


@pytest.fixture
def archive_factory() -> Callable[[Iterable[tuple[str, bytes]]], bytes]:
    return build_archive


@pytest.fixture
def module_factory() -> Callable[..., bytes]:
    return module_bytes
