"""Decoder for ECMA-335 signature blobs (partition II, 23.2)."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Tuple

from dnfile.utils import read_compressed_int as _decode_compressed_uint

from .errors import SignatureError
from .models import (
    ArraySig,
    ByRefSig,
    FunctionPointerSig,
    GenericInstSig,
    GenericParamSig,
    NamedSig,
    PointerSig,
    PrimitiveSig,
    SzArraySig,
    TypeSig,
)

TokenResolver = Callable[[str, int], TypeSig]

# Element types.
ELEMENT_TYPE_VOID = 0x01
ELEMENT_TYPE_STRING = 0x0E
ELEMENT_TYPE_PTR = 0x0F
ELEMENT_TYPE_BYREF = 0x10
ELEMENT_TYPE_VALUETYPE = 0x11
ELEMENT_TYPE_CLASS = 0x12
ELEMENT_TYPE_VAR = 0x13
ELEMENT_TYPE_ARRAY = 0x14
ELEMENT_TYPE_GENERICINST = 0x15
ELEMENT_TYPE_FNPTR = 0x1B
ELEMENT_TYPE_SZARRAY = 0x1D
ELEMENT_TYPE_MVAR = 0x1E
ELEMENT_TYPE_CMOD_REQD = 0x1F
ELEMENT_TYPE_CMOD_OPT = 0x20
ELEMENT_TYPE_SENTINEL = 0x41
ELEMENT_TYPE_PINNED = 0x45

PRIMITIVE_ELEMENT_TYPES: dict[int, str] = {
    0x01: "Void",
    0x02: "Boolean",
    0x03: "Char",
    0x04: "SByte",
    0x05: "Byte",
    0x06: "Int16",
    0x07: "UInt16",
    0x08: "Int32",
    0x09: "UInt32",
    0x0A: "Int64",
    0x0B: "UInt64",
    0x0C: "Single",
    0x0D: "Double",
    0x0E: "String",
    0x16: "TypedReference",
    0x18: "IntPtr",
    0x19: "UIntPtr",
    0x1C: "Object",
}

# Calling convention byte.
SIG_HASTHIS = 0x20
SIG_EXPLICITTHIS = 0x40
SIG_GENERIC = 0x10
SIG_KIND_MASK = 0x0F
SIG_VARARG = 0x05
SIG_PROPERTY = 0x08

_TYPE_DEF_OR_REF_TABLES = ("TypeDef", "TypeRef", "TypeSpec")
_MAX_DEPTH = 64


@dataclass(frozen=True)
class MethodSignature:
    has_this: bool
    generic_count: int
    return_type: TypeSig
    parameters: Tuple[TypeSig, ...]
    is_vararg: bool = False


@dataclass(frozen=True)
class PropertySignature:
    has_this: bool
    type: TypeSig
    parameters: Tuple[TypeSig, ...]


def decode_type_def_or_ref(value: int) -> tuple[str, int]:
    """Split a TypeDefOrRefOrSpecEncoded value into ``(table, row)``."""

    tag = value & 0x03
    if tag >= len(_TYPE_DEF_OR_REF_TABLES):
        raise SignatureError(f"invalid TypeDefOrRef tag {tag}")
    return _TYPE_DEF_OR_REF_TABLES[tag], value >> 2


class SignatureReader:
    """Sequential reader over one blob."""

    def __init__(self, data: bytes, resolve: TokenResolver) -> None:
        self.data = bytes(data)
        self.pos = 0
        self.resolve = resolve
        self._depth = 0

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    def read_byte(self) -> int:
        if self.pos >= len(self.data):
            raise SignatureError("unexpected end of signature blob")
        value = self.data[self.pos]
        self.pos += 1
        return value

    def peek_byte(self) -> int:
        if self.pos >= len(self.data):
            raise SignatureError("unexpected end of signature blob")
        return self.data[self.pos]

    def read_compressed_uint(self) -> int:
        decoded = _decode_compressed_uint(self.data[self.pos : self.pos + 4])
        if decoded is None:
            raise SignatureError(f"invalid or truncated compressed integer at offset {self.pos}")
        value, size = decoded
        self.pos += size
        return value

    def read_compressed_int(self) -> int:
        lead = self.peek_byte()
        raw = self.read_compressed_uint()
        if lead & 0x80 == 0:
            bits = 7
        elif lead & 0xC0 == 0x80:
            bits = 14
        else:
            bits = 29
        # Rotated right by one; the sign bit lives in bit 0.
        value = raw >> 1
        if raw & 1:
            value -= 1 << (bits - 1)
        return value

    def read_type_token(self) -> TypeSig:
        table, row = decode_type_def_or_ref(self.read_compressed_uint())
        return self.resolve(table, row)

    def skip_custom_modifiers(self) -> None:
        while not self.at_end and self.peek_byte() in (ELEMENT_TYPE_CMOD_REQD, ELEMENT_TYPE_CMOD_OPT):
            self.read_byte()
            self.read_compressed_uint()

    def read_type(self) -> TypeSig:
        self._depth += 1
        if self._depth > _MAX_DEPTH:
            raise SignatureError("signature nesting too deep")
        try:
            return self._read_type()
        finally:
            self._depth -= 1

    def _read_type(self) -> TypeSig:
        self.skip_custom_modifiers()
        element = self.read_byte()

        if element in PRIMITIVE_ELEMENT_TYPES:
            return PrimitiveSig(PRIMITIVE_ELEMENT_TYPES[element])
        if element == ELEMENT_TYPE_PINNED:
            return self.read_type()
        if element in (ELEMENT_TYPE_CLASS, ELEMENT_TYPE_VALUETYPE):
            named = self.read_type_token()
            if element == ELEMENT_TYPE_VALUETYPE and isinstance(named, NamedSig):
                named = replace(named, is_value_type=True)
            return named
        if element == ELEMENT_TYPE_PTR:
            return PointerSig(self.read_type())
        if element == ELEMENT_TYPE_BYREF:
            return ByRefSig(self.read_type())
        if element == ELEMENT_TYPE_SZARRAY:
            return SzArraySig(self.read_type())
        if element == ELEMENT_TYPE_ARRAY:
            inner = self.read_type()
            rank = self.read_compressed_uint()
            for _ in range(self.read_compressed_uint()):
                self.read_compressed_uint()
            for _ in range(self.read_compressed_uint()):
                self.read_compressed_int()
            return ArraySig(inner, rank)
        if element == ELEMENT_TYPE_GENERICINST:
            kind = self.read_byte()
            if kind not in (ELEMENT_TYPE_CLASS, ELEMENT_TYPE_VALUETYPE):
                raise SignatureError(f"invalid generic instantiation kind 0x{kind:02x}")
            generic = self.read_type_token()
            count = self.read_compressed_uint()
            arguments = tuple(self.read_type() for _ in range(count))
            return GenericInstSig(generic, arguments)
        if element == ELEMENT_TYPE_VAR:
            return GenericParamSig(self.read_compressed_uint(), method_scope=False)
        if element == ELEMENT_TYPE_MVAR:
            return GenericParamSig(self.read_compressed_uint(), method_scope=True)
        if element == ELEMENT_TYPE_FNPTR:
            self.read_method_signature()
            return FunctionPointerSig()
        raise SignatureError(f"unsupported element type 0x{element:02x}")

    def read_method_signature(self) -> MethodSignature:
        header = self.read_byte()
        generic_count = self.read_compressed_uint() if header & SIG_GENERIC else 0
        count = self.read_compressed_uint()
        return_type = self.read_type()
        parameters: list[TypeSig] = []
        while len(parameters) < count:
            if self.peek_byte() == ELEMENT_TYPE_SENTINEL:
                self.read_byte()
                continue
            parameters.append(self.read_type())
        return MethodSignature(
            has_this=bool(header & SIG_HASTHIS),
            generic_count=generic_count,
            return_type=return_type,
            parameters=tuple(parameters),
            is_vararg=(header & SIG_KIND_MASK) == SIG_VARARG,
        )


def decode_method_signature(blob: bytes, resolve: TokenResolver) -> MethodSignature:
    return SignatureReader(blob, resolve).read_method_signature()


def decode_property_signature(blob: bytes, resolve: TokenResolver) -> PropertySignature:
    reader = SignatureReader(blob, resolve)
    header = reader.read_byte()
    if header & SIG_KIND_MASK != SIG_PROPERTY:
        raise SignatureError(f"not a property signature (header 0x{header:02x})")
    count = reader.read_compressed_uint()
    prop_type = reader.read_type()
    parameters = tuple(reader.read_type() for _ in range(count))
    return PropertySignature(has_this=bool(header & SIG_HASTHIS), type=prop_type, parameters=parameters)


def decode_type_spec(blob: bytes, resolve: TokenResolver) -> TypeSig:
    return SignatureReader(blob, resolve).read_type()
