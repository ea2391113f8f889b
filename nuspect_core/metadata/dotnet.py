"""Metadata reader for .NET assemblies built on ``dnfile``.

``dnfile`` parses the PE container and the ECMA-335 table stream; this module
turns the raw table rows into :class:`ModuleMetadata`. Row objects are only
touched through the small accessor helpers below, which accept both parsed
``dnfile`` heap items and plain Python values.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Any, Callable, Collection, Iterable

import dnfile
import pefile

from .errors import ModuleFormatError, SignatureError
from .models import (
    ArraySig,
    ByRefSig,
    GenericInstSig,
    GenericParameter,
    GenericParamSig,
    MemberInfo,
    ModuleMetadata,
    NamedSig,
    ParameterInfo,
    PointerSig,
    SzArraySig,
    TypeMetadata,
    TypeSig,
    UnknownSig,
)
from .signatures import (
    decode_method_signature,
    decode_property_signature,
    decode_type_spec,
)

logger = logging.getLogger(__name__)

# TypeAttributes
TD_VISIBILITY_MASK = 0x07
TD_PUBLIC = 0x01
TD_NESTED_PUBLIC = 0x02
TD_INTERFACE = 0x20

# MethodAttributes
MD_STATIC = 0x10
MD_SPECIAL_NAME = 0x800
MD_RT_SPECIAL_NAME = 0x1000

# ParamAttributes
PD_IN = 0x01
PD_OUT = 0x02

# GenericParamAttributes
GP_VARIANCE_MASK = 0x03
GP_COVARIANT = 0x01
GP_CONTRAVARIANT = 0x02
GP_REFERENCE_TYPE = 0x04
GP_VALUE_TYPE = 0x08
GP_DEFAULT_CONSTRUCTOR = 0x10

_KIND_BY_BASE = {
    "System.Enum": "enum",
    "System.ValueType": "struct",
    "System.MulticastDelegate": "delegate",
}

DEFAULT_MEMBER_KINDS: tuple[str, ...] = ("interface",)


class DotNetMetadataReader:
    """Read type metadata from the bytes of a managed ``.dll``.

    Members are decoded only for types whose kind is in ``member_kinds``;
    ``None`` decodes every type. Other types keep an empty member list.
    """

    def __init__(self, member_kinds: Collection[str] | None = DEFAULT_MEMBER_KINDS) -> None:
        self.member_kinds = member_kinds

    def read(self, data: bytes, *, file_name: str) -> ModuleMetadata:
        try:
            pe = dnfile.dnPE(data=data)
        except pefile.PEFormatError as exc:
            raise ModuleFormatError(f"{file_name}: not a PE image ({exc})") from exc
        try:
            net = getattr(pe, "net", None)
            tables = getattr(net, "mdtables", None) if net is not None else None
            if tables is None:
                raise ModuleFormatError(f"{file_name}: no CLI metadata")
            return build_module(tables, file_name, member_kinds=self.member_kinds)
        finally:
            pe.close()


def build_module(
    tables: Any,
    file_name: str,
    *,
    member_kinds: Collection[str] | None = DEFAULT_MEMBER_KINDS,
) -> ModuleMetadata:
    """Build :class:`ModuleMetadata` from a ``dnfile`` table collection."""

    return _ModuleBuilder(tables, file_name, member_kinds).build()


# ------------------------- row accessors -------------------------


def _rows(tables: Any, name: str) -> list[Any]:
    table = getattr(tables, name, None)
    if table is None:
        return []
    return list(getattr(table, "rows", None) or [])


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    inner = getattr(value, "value", None)
    if isinstance(inner, str):
        return inner
    if isinstance(inner, (bytes, bytearray)):
        return bytes(inner).decode("utf-8", errors="replace")
    return str(value)


def _blob(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    inner = getattr(value, "value", None)
    if isinstance(inner, (bytes, bytearray, memoryview)):
        return bytes(inner)
    raise SignatureError(f"unreadable blob of type {type(value).__name__}")


def _raw(row: Any, name: str) -> int:
    struct = getattr(row, "struct", None)
    value = getattr(struct, name, None) if struct is not None else None
    if isinstance(value, int):
        return value
    value = getattr(row, name, 0)
    if isinstance(value, int):
        return value
    inner = getattr(value, "value", None)
    return inner if isinstance(inner, int) else 0


def _index(ref: Any) -> int:
    if ref is None:
        return 0
    if isinstance(ref, int):
        return ref
    return int(getattr(ref, "row_index", 0) or 0)


def _coded(ref: Any) -> tuple[str | None, int]:
    if ref is None:
        return None, 0
    table = getattr(ref, "table", None)
    name = table if isinstance(table, str) else getattr(table, "name", None)
    return name, _index(ref)


def _index_list(refs: Iterable[Any] | None) -> list[int]:
    return [i for i in (_index(ref) for ref in (refs or ())) if i > 0]


# ------------------------- generic name binding -------------------------


def bind_generic_names(
    sig: TypeSig,
    type_params: tuple[str, ...],
    method_params: tuple[str, ...] = (),
) -> TypeSig:
    """Attach declared names to generic parameter references inside ``sig``."""

    def bind(node: TypeSig) -> TypeSig:
        if isinstance(node, GenericParamSig):
            names = method_params if node.method_scope else type_params
            if node.index < len(names):
                return replace(node, name=names[node.index])
            return node
        if isinstance(node, GenericInstSig):
            return GenericInstSig(bind(node.generic), tuple(bind(a) for a in node.arguments))
        if isinstance(node, SzArraySig):
            return SzArraySig(bind(node.element))
        if isinstance(node, ArraySig):
            return ArraySig(bind(node.element), node.rank)
        if isinstance(node, PointerSig):
            return PointerSig(bind(node.element))
        if isinstance(node, ByRefSig):
            return ByRefSig(bind(node.element))
        return node

    return bind(sig)


# ------------------------- builder -------------------------


class _ModuleBuilder:
    def __init__(self, tables: Any, file_name: str, member_kinds: Collection[str] | None) -> None:
        self.file_name = file_name
        self.member_kinds = None if member_kinds is None else frozenset(member_kinds)
        self.type_defs = _rows(tables, "TypeDef")
        self.type_refs = _rows(tables, "TypeRef")
        self.type_specs = _rows(tables, "TypeSpec")
        self.methods = _rows(tables, "MethodDef")
        self.params = _rows(tables, "Param")
        self.properties = _rows(tables, "Property")
        self.events = _rows(tables, "Event")
        self.generic_params = _rows(tables, "GenericParam")
        assemblies = _rows(tables, "Assembly")
        self.assembly_name = _text(getattr(assemblies[0], "Name", None)) if assemblies else ""

        self.enclosing: dict[int, int] = {}
        for row in _rows(tables, "NestedClass"):
            self.enclosing[_index(row.NestedClass)] = _index(row.EnclosingClass)

        self.interface_impls: dict[int, list[Any]] = defaultdict(list)
        for row in _rows(tables, "InterfaceImpl"):
            self.interface_impls[_index(row.Class)].append(row.Interface)

        self.property_lists: dict[int, list[int]] = defaultdict(list)
        for row in _rows(tables, "PropertyMap"):
            self.property_lists[_index(row.Parent)].extend(_index_list(row.PropertyList))

        self.event_lists: dict[int, list[int]] = defaultdict(list)
        for row in _rows(tables, "EventMap"):
            self.event_lists[_index(row.Parent)].extend(_index_list(row.EventList))

        self.generic_owners: dict[tuple[str | None, int], list[int]] = defaultdict(list)
        for position, row in enumerate(self.generic_params, start=1):
            self.generic_owners[_coded(row.Owner)].append(position)
        for owned in self.generic_owners.values():
            owned.sort(key=lambda position: _raw(self.generic_params[position - 1], "Number"))

        self.constraints: dict[int, list[Any]] = defaultdict(list)
        for row in _rows(tables, "GenericParamConstraint"):
            self.constraints[_index(row.Owner)].append(row.Constraint)

        self._spec_cache: dict[int, TypeSig] = {}
        self._spec_active: set[int] = set()

    # -- lookups --

    def _row(self, rows: list[Any], index: int, table: str) -> Any:
        if index < 1 or index > len(rows):
            raise SignatureError(f"{table} row {index} out of range")
        return rows[index - 1]

    def resolve(self, table: str | None, index: int) -> TypeSig:
        if table == "TypeDef":
            return self._type_def_sig(index)
        if table == "TypeRef":
            return self._type_ref_sig(index)
        if table == "TypeSpec":
            return self._type_spec_sig(index)
        raise SignatureError(f"cannot resolve type token in table {table!r}")

    def _resolve_coded(self, ref: Any) -> TypeSig:
        table, index = _coded(ref)
        return self.resolve(table, index)

    def _type_def_sig(self, index: int) -> NamedSig:
        row = self._row(self.type_defs, index, "TypeDef")
        chain: list[str] = []
        outer = self.enclosing.get(index)
        namespace = _text(row.TypeNamespace)
        seen = {index}
        while outer and outer not in seen:
            seen.add(outer)
            outer_row = self._row(self.type_defs, outer, "TypeDef")
            chain.insert(0, _text(outer_row.TypeName))
            namespace = _text(outer_row.TypeNamespace)
            outer = self.enclosing.get(outer)
        return NamedSig(namespace=namespace, name=_text(row.TypeName), enclosing=tuple(chain))

    def _type_ref_sig(self, index: int) -> NamedSig:
        row = self._row(self.type_refs, index, "TypeRef")
        chain: list[str] = []
        namespace = _text(row.TypeNamespace)
        scope_table, scope_index = _coded(getattr(row, "ResolutionScope", None))
        seen = {index}
        while scope_table == "TypeRef" and scope_index and scope_index not in seen:
            seen.add(scope_index)
            outer_row = self._row(self.type_refs, scope_index, "TypeRef")
            chain.insert(0, _text(outer_row.TypeName))
            namespace = _text(outer_row.TypeNamespace)
            scope_table, scope_index = _coded(getattr(outer_row, "ResolutionScope", None))
        return NamedSig(namespace=namespace, name=_text(row.TypeName), enclosing=tuple(chain))

    def _type_spec_sig(self, index: int) -> TypeSig:
        if index in self._spec_cache:
            return self._spec_cache[index]
        if index in self._spec_active:
            raise SignatureError(f"TypeSpec row {index} refers to itself")
        self._spec_active.add(index)
        try:
            row = self._row(self.type_specs, index, "TypeSpec")
            sig = decode_type_spec(_blob(row.Signature), self.resolve)
        finally:
            self._spec_active.discard(index)
        self._spec_cache[index] = sig
        return sig

    def _generic_parameters(
        self,
        owner: tuple[str, int],
        type_params: tuple[str, ...] = (),
    ) -> tuple[GenericParameter, ...]:
        positions = self.generic_owners.get(owner, ())
        names = tuple(_text(self.generic_params[p - 1].Name) for p in positions)
        # Constraints may refer back to the owner's own parameters.
        if owner[0] == "MethodDef":
            type_names, method_names = type_params, names
        else:
            type_names, method_names = names, ()

        out: list[GenericParameter] = []
        for position in positions:
            row = self.generic_params[position - 1]
            flags = _raw(row, "Flags")
            variance = {GP_COVARIANT: "out", GP_CONTRAVARIANT: "in"}.get(flags & GP_VARIANCE_MASK)
            value_type = bool(flags & GP_VALUE_TYPE)
            constraints: list[TypeSig] = []
            for ref in self.constraints.get(position, ()):
                try:
                    constraint = bind_generic_names(self._resolve_coded(ref), type_names, method_names)
                except SignatureError as exc:
                    logger.debug("%s: unreadable constraint on %s: %s", self.file_name, _text(row.Name), exc)
                    constraint = UnknownSig("constraint")
                if value_type and isinstance(constraint, NamedSig) and constraint.full_name == "System.ValueType":
                    continue
                constraints.append(constraint)
            out.append(
                GenericParameter(
                    name=_text(row.Name),
                    variance=variance,
                    reference_type=bool(flags & GP_REFERENCE_TYPE),
                    value_type=value_type,
                    default_constructor=bool(flags & GP_DEFAULT_CONSTRUCTOR) and not value_type,
                    constraints=tuple(constraints),
                )
            )
        return tuple(out)

    # -- building --

    def build(self) -> ModuleMetadata:
        types: list[TypeMetadata] = []
        public: dict[int, bool] = {}
        for index, row in enumerate(self.type_defs, start=1):
            name = _text(row.TypeName)
            if name == "<Module>":
                continue
            types.append(self._build_type(index, row, public))
        return ModuleMetadata(
            file_name=self.file_name,
            assembly_name=self.assembly_name,
            types=tuple(types),
        )

    def _is_public(self, index: int, public: dict[int, bool]) -> bool:
        if index in public:
            return public[index]
        public[index] = False
        row = self.type_defs[index - 1]
        visibility = _raw(row, "Flags") & TD_VISIBILITY_MASK
        if visibility == TD_PUBLIC:
            result = True
        elif visibility == TD_NESTED_PUBLIC:
            outer = self.enclosing.get(index)
            result = bool(outer) and self._is_public(outer, public)
        else:
            result = False
        public[index] = result
        return result

    def _kind(self, row: Any, base_type: TypeSig | None) -> str:
        if _raw(row, "Flags") & TD_INTERFACE:
            return "interface"
        if isinstance(base_type, NamedSig):
            kind = _KIND_BY_BASE.get(base_type.full_name)
            full_name = f"{_text(row.TypeNamespace)}.{_text(row.TypeName)}"
            if kind and full_name not in _KIND_BY_BASE:
                return kind
        return "class"

    def _build_type(self, index: int, row: Any, public: dict[int, bool]) -> TypeMetadata:
        generics = self._generic_parameters(("TypeDef", index))
        type_param_names = tuple(p.name for p in generics)

        base_type: TypeSig | None = None
        extends_table, extends_index = _coded(getattr(row, "Extends", None))
        if extends_index:
            try:
                base_type = bind_generic_names(self.resolve(extends_table, extends_index), type_param_names)
            except SignatureError as exc:
                logger.debug("%s: unreadable base type of %s: %s", self.file_name, _text(row.TypeName), exc)
                base_type = UnknownSig("base")

        interfaces: list[TypeSig] = []
        for ref in self.interface_impls.get(index, ()):
            try:
                interfaces.append(bind_generic_names(self._resolve_coded(ref), type_param_names))
            except SignatureError as exc:
                logger.debug("%s: unreadable interface on %s: %s", self.file_name, _text(row.TypeName), exc)
                interfaces.append(UnknownSig("interface"))

        declaring_type = None
        declaring_arity = 0
        outer = self.enclosing.get(index)
        if outer:
            declaring_type = self._type_def_sig(outer).full_name
            declaring_arity = len(self.generic_owners.get(("TypeDef", outer), ()))

        kind = self._kind(row, base_type)
        members: list[MemberInfo] = []
        if self.member_kinds is None or kind in self.member_kinds:
            members = self._members(index, row, type_param_names)

        return TypeMetadata(
            name=_text(row.TypeName),
            namespace=self._type_def_sig(index).namespace,
            kind=kind,
            is_public=self._is_public(index, public),
            generic_parameters=generics,
            base_type=base_type,
            interfaces=tuple(interfaces),
            members=tuple(members),
            declaring_type=declaring_type,
            declaring_arity=declaring_arity,
        )

    def _members(self, index: int, row: Any, type_params: tuple[str, ...]) -> list[MemberInfo]:
        method_indices = _index_list(getattr(row, "MethodList", None))
        by_name: dict[str, int] = {}
        for method_index in method_indices:
            method = self._row(self.methods, method_index, "MethodDef")
            if _raw(method, "Flags") & MD_SPECIAL_NAME:
                by_name.setdefault(_text(method.Name), method_index)

        # accessor method index -> slot of the owning property/event
        owners: dict[int, int] = {}
        pending: list[Callable[[], MemberInfo]] = []

        for property_index in self.property_lists.get(index, ()):
            prop = self._row(self.properties, property_index, "Property")
            name = _text(prop.Name)
            getter = by_name.get(f"get_{name}")
            setter = by_name.get(f"set_{name}")
            slot = len(pending)
            pending.append(
                lambda prop=prop, getter=getter, setter=setter: self._property(prop, getter, setter, type_params)
            )
            for accessor in (getter, setter):
                if accessor is not None:
                    owners.setdefault(accessor, slot)

        for event_index in self.event_lists.get(index, ()):
            event = self._row(self.events, event_index, "Event")
            name = _text(event.Name)
            adder = by_name.get(f"add_{name}")
            remover = by_name.get(f"remove_{name}")
            slot = len(pending)
            pending.append(lambda event=event, adder=adder: self._event(event, adder, type_params))
            for accessor in (adder, remover):
                if accessor is not None:
                    owners.setdefault(accessor, slot)

        members: list[MemberInfo] = []
        emitted: set[int] = set()
        for method_index in method_indices:
            method = self._row(self.methods, method_index, "MethodDef")
            if method_index in owners:
                slot = owners[method_index]
                if slot not in emitted:
                    emitted.add(slot)
                    members.append(pending[slot]())
                continue
            if _raw(method, "Flags") & MD_RT_SPECIAL_NAME:
                continue
            members.append(self._method(method_index, method, type_params))

        for slot, build in enumerate(pending):
            if slot not in emitted:
                members.append(build())
        return members

    def _parameter_rows(self, method: Any) -> dict[int, Any]:
        found: dict[int, Any] = {}
        for param_index in _index_list(getattr(method, "ParamList", None)):
            param = self._row(self.params, param_index, "Param")
            found[_raw(param, "Sequence")] = param
        return found

    def _parameters(self, method: Any, types: tuple[TypeSig, ...]) -> tuple[ParameterInfo, ...]:
        rows = self._parameter_rows(method) if method is not None else {}
        out: list[ParameterInfo] = []
        for position, param_type in enumerate(types, start=1):
            param = rows.get(position)
            name = _text(param.Name) if param is not None else ""
            flags = _raw(param, "Flags") if param is not None else 0
            direction = None
            if isinstance(param_type, ByRefSig):
                if flags & PD_OUT and not flags & PD_IN:
                    direction = "out"
                elif flags & PD_IN:
                    direction = "in"
                else:
                    direction = "ref"
                param_type = param_type.element
            out.append(ParameterInfo(name=name or f"arg{position}", type=param_type, direction=direction))
        return tuple(out)

    def _method(self, method_index: int, method: Any, type_params: tuple[str, ...]) -> MemberInfo:
        name = _text(method.Name)
        generics = self._generic_parameters(("MethodDef", method_index), type_params)
        is_static = bool(_raw(method, "Flags") & MD_STATIC)
        try:
            sig = decode_method_signature(_blob(method.Signature), self.resolve)
        except SignatureError as exc:
            logger.debug("%s: unreadable signature for %s: %s", self.file_name, name, exc)
            return MemberInfo(
                kind="method",
                name=name,
                return_type=UnknownSig("return"),
                generic_parameters=generics,
                is_static=is_static,
                signature_complete=False,
            )
        if len(generics) < sig.generic_count:
            generics += tuple(GenericParameter(name=f"T{i}") for i in range(len(generics), sig.generic_count))
        method_params = tuple(p.name for p in generics)
        bound = tuple(bind_generic_names(t, type_params, method_params) for t in sig.parameters)
        return MemberInfo(
            kind="method",
            name=name,
            return_type=bind_generic_names(sig.return_type, type_params, method_params),
            parameters=self._parameters(method, bound),
            generic_parameters=generics,
            is_static=is_static,
        )

    def _property(
        self,
        prop: Any,
        getter: int | None,
        setter: int | None,
        type_params: tuple[str, ...],
    ) -> MemberInfo:
        name = _text(prop.Name)
        accessor_index = getter if getter is not None else setter
        accessor = self.methods[accessor_index - 1] if accessor_index is not None else None
        is_static = bool(accessor is not None and _raw(accessor, "Flags") & MD_STATIC)
        try:
            sig = decode_property_signature(_blob(prop.Type), self.resolve)
        except SignatureError as exc:
            logger.debug("%s: unreadable property signature for %s: %s", self.file_name, name, exc)
            return MemberInfo(
                kind="property",
                name=name,
                return_type=UnknownSig("property"),
                is_static=is_static,
                has_getter=getter is not None,
                has_setter=setter is not None,
                signature_complete=False,
            )
        bound = tuple(bind_generic_names(t, type_params) for t in sig.parameters)
        return MemberInfo(
            kind="property",
            name=name,
            return_type=bind_generic_names(sig.type, type_params),
            parameters=self._parameters(accessor, bound),
            is_static=is_static or not sig.has_this,
            has_getter=getter is not None,
            has_setter=setter is not None,
        )

    def _event(self, event: Any, adder: int | None, type_params: tuple[str, ...]) -> MemberInfo:
        name = _text(event.Name)
        accessor = self.methods[adder - 1] if adder is not None else None
        is_static = bool(accessor is not None and _raw(accessor, "Flags") & MD_STATIC)
        try:
            event_type = bind_generic_names(self._resolve_coded(event.EventType), type_params)
        except SignatureError as exc:
            logger.debug("%s: unreadable event type for %s: %s", self.file_name, name, exc)
            return MemberInfo(
                kind="event",
                name=name,
                return_type=UnknownSig("event"),
                is_static=is_static,
                signature_complete=False,
            )
        return MemberInfo(kind="event", name=name, return_type=event_type, is_static=is_static)


__all__ = ["DEFAULT_MEMBER_KINDS", "DotNetMetadataReader", "bind_generic_names", "build_module"]
