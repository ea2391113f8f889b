"""Render declared types as C#-like source declarations."""

from __future__ import annotations

import re
from typing import Sequence

from .matching import strip_arity
from .metadata.models import (
    ArraySig,
    ByRefSig,
    FunctionPointerSig,
    GenericInstSig,
    GenericParameter,
    GenericParamSig,
    MemberInfo,
    NamedSig,
    ParameterInfo,
    PointerSig,
    PrimitiveSig,
    SzArraySig,
    TypeMetadata,
    TypeSig,
    UnknownSig,
)

INCOMPLETE_SIGNATURE_NOTE = "// signature could not be fully decoded"

_ARITY_RE = re.compile(r"`(\d+)$")

_KEYWORD_ALIASES: dict[str, str] = {
    "System.Void": "void",
    "System.Boolean": "bool",
    "System.Char": "char",
    "System.SByte": "sbyte",
    "System.Byte": "byte",
    "System.Int16": "short",
    "System.UInt16": "ushort",
    "System.Int32": "int",
    "System.UInt32": "uint",
    "System.Int64": "long",
    "System.UInt64": "ulong",
    "System.Single": "float",
    "System.Double": "double",
    "System.Decimal": "decimal",
    "System.String": "string",
    "System.Object": "object",
    "System.IntPtr": "nint",
    "System.UIntPtr": "nuint",
}

_IMPLICIT_BASES = frozenset(
    {"System.Object", "System.ValueType", "System.Enum", "System.MulticastDelegate"}
)


def _arity_of(name: str) -> int:
    match = _ARITY_RE.search(name)
    return int(match.group(1)) if match else 0


def _named(sig: NamedSig, arguments: Sequence[str] = ()) -> str:
    alias = _KEYWORD_ALIASES.get(sig.full_name)
    if alias and not arguments:
        return alias

    parts = [*sig.enclosing, sig.name]
    remaining = list(arguments)
    rendered: list[str] = []
    for position, part in enumerate(parts):
        take = _arity_of(part)
        if position == len(parts) - 1:
            take = len(remaining)
        own, remaining = remaining[:take], remaining[take:]
        text = strip_arity(part)
        if own:
            text += f"<{', '.join(own)}>"
        rendered.append(text)
    return ".".join(rendered)


def render_type(sig: TypeSig | None) -> str:
    """Render one type signature the way it would be written in C#."""

    if sig is None or isinstance(sig, UnknownSig):
        return "object"
    if isinstance(sig, PrimitiveSig):
        return _KEYWORD_ALIASES.get(f"System.{sig.name}", sig.name)
    if isinstance(sig, NamedSig):
        return _named(sig)
    if isinstance(sig, GenericInstSig):
        arguments = [render_type(a) for a in sig.arguments]
        generic = sig.generic
        if isinstance(generic, NamedSig):
            full_name = generic.full_name
            if full_name == "System.Nullable`1" and len(arguments) == 1:
                return f"{arguments[0]}?"
            if full_name.startswith("System.ValueTuple`") and 2 <= len(arguments) <= 7:
                return f"({', '.join(arguments)})"
            return _named(generic, arguments)
        return f"{render_type(generic)}<{', '.join(arguments)}>"
    if isinstance(sig, SzArraySig):
        return f"{render_type(sig.element)}[]"
    if isinstance(sig, ArraySig):
        return f"{render_type(sig.element)}[{',' * max(sig.rank - 1, 0)}]"
    if isinstance(sig, PointerSig):
        return f"{render_type(sig.element)}*"
    if isinstance(sig, ByRefSig):
        return f"ref {render_type(sig.element)}"
    if isinstance(sig, GenericParamSig):
        if sig.name:
            return sig.name
        return f"{'TMethod' if sig.method_scope else 'T'}{sig.index}"
    if isinstance(sig, FunctionPointerSig):
        return "nint"
    return "object"


def display_name(type_: TypeMetadata) -> str:
    """Short name with the arity suffix replaced by ``<T, ...>`` placeholders."""

    base = strip_arity(type_.name)
    own = type_.own_generic_parameters
    if own:
        names = [f"{p.variance} {p.name}" if p.variance else p.name for p in own]
    else:
        names = [f"T{i}" for i in range(1, _arity_of(type_.name) + 1)]
    if not names:
        return base
    return f"{base}<{', '.join(names)}>"


def _parameter(param: ParameterInfo) -> str:
    text = f"{render_type(param.type)} {param.name}"
    if param.direction:
        text = f"{param.direction} {text}"
    return text


def _parameters(params: Sequence[ParameterInfo]) -> str:
    return ", ".join(_parameter(p) for p in params)


def _constraint_clause(param: GenericParameter) -> str:
    clauses: list[str] = []
    if param.reference_type:
        clauses.append("class")
    if param.value_type:
        clauses.append("struct")
    clauses.extend(render_type(c) for c in param.constraints)
    if param.default_constructor:
        clauses.append("new()")
    return f"where {param.name} : {', '.join(clauses)}"


def format_member(member: MemberInfo) -> str:
    prefix = "static " if member.is_static else ""
    type_text = render_type(member.return_type)

    if member.kind == "property":
        accessors = " ".join(
            label for label, present in (("get;", member.has_getter), ("set;", member.has_setter)) if present
        )
        target = f"this[{_parameters(member.parameters)}]" if member.is_indexer else member.name
        body = f"{{ {accessors} }}" if accessors else "{ }"
        line = f"{prefix}{type_text} {target} {body}"
    elif member.kind == "event":
        line = f"{prefix}event {type_text} {member.name};"
    else:
        names = [p.name for p in member.generic_parameters]
        generics = f"<{', '.join(names)}>" if names else ""
        clauses = "".join(
            f" {_constraint_clause(p)}" for p in member.generic_parameters if p.has_constraints
        )
        line = f"{prefix}{type_text} {member.name}{generics}({_parameters(member.parameters)}){clauses};"

    if not member.signature_complete:
        line = f"{line} {INCOMPLETE_SIGNATURE_NOTE}"
    return line


def _bases(type_: TypeMetadata) -> list[str]:
    if type_.kind in ("enum", "delegate"):
        return []
    bases: list[str] = []
    base = type_.base_type
    if type_.kind == "class" and base is not None:
        full_name = base.full_name if isinstance(base, NamedSig) else ""
        if full_name not in _IMPLICIT_BASES:
            bases.append(render_type(base))
    bases.extend(render_type(i) for i in type_.interfaces)
    return bases


def format_declaration(type_: TypeMetadata, module_file_name: str) -> str:
    """Render ``type_`` as a declaration annotated with its module file name."""

    lines = [f"/* C# {type_.kind.upper()} FROM {module_file_name} */"]
    visibility = "public" if type_.is_public else "internal"
    header = f"{visibility} {type_.kind} {display_name(type_)}"
    bases = _bases(type_)
    if bases:
        header += f" : {', '.join(bases)}"
    lines.append(header)
    for param in type_.own_generic_parameters:
        if param.has_constraints:
            lines.append(f"    {_constraint_clause(param)}")
    lines.append("{")
    for member in type_.members:
        lines.append(f"    {format_member(member)}")
    lines.append("}")
    return "\n".join(lines)
