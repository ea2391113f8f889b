"""Datatypes describing the type universe of one binary module."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

TYPE_KINDS = ("interface", "class", "struct", "enum", "delegate")
MEMBER_KINDS = ("method", "property", "event")


# ------------------------- type signatures -------------------------


@dataclass(frozen=True)
class TypeSig:
    """Base node of a decoded type signature."""


@dataclass(frozen=True)
class PrimitiveSig(TypeSig):
    name: str  # CLR name, e.g. ``Int32``


@dataclass(frozen=True)
class NamedSig(TypeSig):
    namespace: str
    name: str
    enclosing: Tuple[str, ...] = ()
    is_value_type: bool = False

    @property
    def full_name(self) -> str:
        parts = [*self.enclosing, self.name]
        qualified = "+".join(parts)
        return f"{self.namespace}.{qualified}" if self.namespace else qualified


@dataclass(frozen=True)
class GenericInstSig(TypeSig):
    generic: TypeSig
    arguments: Tuple[TypeSig, ...]


@dataclass(frozen=True)
class SzArraySig(TypeSig):
    element: TypeSig


@dataclass(frozen=True)
class ArraySig(TypeSig):
    element: TypeSig
    rank: int


@dataclass(frozen=True)
class PointerSig(TypeSig):
    element: TypeSig


@dataclass(frozen=True)
class ByRefSig(TypeSig):
    element: TypeSig


@dataclass(frozen=True)
class GenericParamSig(TypeSig):
    index: int
    method_scope: bool = False
    name: str | None = None


@dataclass(frozen=True)
class FunctionPointerSig(TypeSig):
    pass


@dataclass(frozen=True)
class UnknownSig(TypeSig):
    """Stand-in for a type that could not be decoded."""

    hint: str = ""


# ------------------------- members and types -------------------------


@dataclass(frozen=True)
class ParameterInfo:
    name: str
    type: TypeSig
    direction: str | None = None  # "in", "out", "ref" or None


@dataclass(frozen=True)
class GenericParameter:
    name: str
    variance: str | None = None  # "in", "out" or None
    reference_type: bool = False
    value_type: bool = False
    default_constructor: bool = False
    constraints: Tuple[TypeSig, ...] = ()

    @property
    def has_constraints(self) -> bool:
        return bool(
            self.reference_type or self.value_type or self.default_constructor or self.constraints
        )


@dataclass(frozen=True)
class MemberInfo:
    kind: str
    name: str
    return_type: TypeSig
    parameters: Tuple[ParameterInfo, ...] = ()
    generic_parameters: Tuple[GenericParameter, ...] = ()
    is_static: bool = False
    has_getter: bool = False
    has_setter: bool = False
    signature_complete: bool = True

    @property
    def is_indexer(self) -> bool:
        return self.kind == "property" and bool(self.parameters)


@dataclass(frozen=True)
class TypeMetadata:
    name: str
    namespace: str = ""
    kind: str = "class"
    is_public: bool = True
    generic_parameters: Tuple[GenericParameter, ...] = ()
    base_type: TypeSig | None = None
    interfaces: Tuple[TypeSig, ...] = ()
    members: Tuple[MemberInfo, ...] = ()
    declaring_type: str | None = None
    declaring_arity: int = 0

    @property
    def full_name(self) -> str:
        if self.declaring_type:
            return f"{self.declaring_type}+{self.name}"
        return f"{self.namespace}.{self.name}" if self.namespace else self.name

    @property
    def generic_arity(self) -> int:
        return len(self.generic_parameters)

    @property
    def is_generic(self) -> bool:
        return self.generic_arity > 0

    @property
    def is_interface(self) -> bool:
        return self.kind == "interface"

    @property
    def own_generic_parameters(self) -> Tuple[GenericParameter, ...]:
        """Parameters introduced by this type, excluding those of enclosing types."""

        return self.generic_parameters[self.declaring_arity:]


@dataclass(frozen=True)
class ModuleMetadata:
    file_name: str
    assembly_name: str = ""
    types: Tuple[TypeMetadata, ...] = ()

    def interfaces(self) -> Tuple[TypeMetadata, ...]:
        return tuple(t for t in self.types if t.is_interface)


@dataclass(frozen=True)
class TypeDescriptor:
    name: str
    full_name: str
    generic_arity: int
    module_file_name: str

    @classmethod
    def from_type(cls, type_: TypeMetadata, module_file_name: str) -> "TypeDescriptor":
        return cls(
            name=type_.name,
            full_name=type_.full_name,
            generic_arity=type_.generic_arity,
            module_file_name=module_file_name,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "full_name": self.full_name,
            "module": self.module_file_name,
        }


__all__ = [
    "TYPE_KINDS",
    "MEMBER_KINDS",
    "TypeSig",
    "PrimitiveSig",
    "NamedSig",
    "GenericInstSig",
    "SzArraySig",
    "ArraySig",
    "PointerSig",
    "ByRefSig",
    "GenericParamSig",
    "FunctionPointerSig",
    "UnknownSig",
    "ParameterInfo",
    "GenericParameter",
    "MemberInfo",
    "TypeMetadata",
    "ModuleMetadata",
    "TypeDescriptor",
]
