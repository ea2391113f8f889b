"""Tests for declaration rendering."""

from __future__ import annotations

from nuspect_core.formatting import (
    INCOMPLETE_SIGNATURE_NOTE,
    display_name,
    format_declaration,
    format_member,
    render_type,
)
from nuspect_core.metadata.models import (
    ArraySig,
    ByRefSig,
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
    UnknownSig,
)

INT = PrimitiveSig("Int32")
STRING = PrimitiveSig("String")
T = GenericParamSig(0, name="T")


def _generic(namespace: str, name: str, *args) -> GenericInstSig:
    return GenericInstSig(NamedSig(namespace=namespace, name=name), tuple(args))


def test_render_primitives_use_csharp_keywords() -> None:
    assert render_type(INT) == "int"
    assert render_type(PrimitiveSig("Void")) == "void"
    assert render_type(PrimitiveSig("Object")) == "object"
    assert render_type(PrimitiveSig("IntPtr")) == "nint"
    assert render_type(NamedSig("System", "Decimal")) == "decimal"


def test_render_generic_instances_without_arity_suffix() -> None:
    func = _generic("System", "Func`2", T, STRING)
    assert render_type(func) == "Func<T, string>"
    assert render_type(_generic("System", "Nullable`1", INT)) == "int?"
    assert render_type(_generic("System", "ValueTuple`2", INT, STRING)) == "(int, string)"


def test_render_nested_generic_distributes_arguments() -> None:
    nested = GenericInstSig(
        NamedSig("System.Collections.Generic", "Enumerator", enclosing=("Dictionary`2",)),
        (STRING, INT),
    )
    assert render_type(nested) == "Dictionary<string, int>.Enumerator"


def test_render_arrays_pointers_and_refs() -> None:
    assert render_type(SzArraySig(INT)) == "int[]"
    assert render_type(ArraySig(STRING, 3)) == "string[,,]"
    assert render_type(PointerSig(PrimitiveSig("Byte"))) == "byte*"
    assert render_type(ByRefSig(INT)) == "ref int"


def test_render_unnamed_generic_parameters_and_unknown() -> None:
    assert render_type(GenericParamSig(1)) == "T1"
    assert render_type(GenericParamSig(0, method_scope=True)) == "TMethod0"
    assert render_type(UnknownSig()) == "object"


def test_display_name_uses_own_parameters_and_variance() -> None:
    covariant = TypeMetadata(
        name="IProducer`1",
        kind="interface",
        generic_parameters=(GenericParameter(name="TItem", variance="out"),),
    )
    assert display_name(covariant) == "IProducer<out TItem>"

    nested = TypeMetadata(
        name="IInner`1",
        kind="interface",
        declaring_type="Acme.Outer`1",
        declaring_arity=1,
        generic_parameters=(GenericParameter(name="TOuter"), GenericParameter(name="TInner")),
    )
    assert display_name(nested) == "IInner<TInner>"


def test_display_name_never_leaks_arity_suffix() -> None:
    bare = TypeMetadata(name="IPair`2", kind="interface")
    assert display_name(bare) == "IPair<T1, T2>"


def test_format_members() -> None:
    method = MemberInfo(
        kind="method",
        name="TryGet",
        return_type=PrimitiveSig("Boolean"),
        parameters=(
            ParameterInfo("key", STRING),
            ParameterInfo("value", T, direction="out"),
        ),
    )
    generic_method = MemberInfo(
        kind="method",
        name="Map",
        return_type=GenericParamSig(0, method_scope=True, name="TResult"),
        parameters=(
            ParameterInfo(
                "selector",
                _generic("System", "Func`2", T, GenericParamSig(0, method_scope=True, name="TResult")),
            ),
        ),
        generic_parameters=(GenericParameter(name="TResult"),),
    )
    indexer = MemberInfo(
        kind="property",
        name="Item",
        return_type=T,
        parameters=(ParameterInfo("index", INT),),
        has_getter=True,
        has_setter=True,
    )
    event = MemberInfo(kind="event", name="Changed", return_type=NamedSig("System", "EventHandler"))
    static_prop = MemberInfo(kind="property", name="Default", return_type=STRING, has_getter=True, is_static=True)

    assert format_member(method) == "bool TryGet(string key, out T value);"
    assert format_member(generic_method) == "TResult Map<TResult>(Func<T, TResult> selector);"
    assert format_member(indexer) == "T this[int index] { get; set; }"
    assert format_member(event) == "event EventHandler Changed;"
    assert format_member(static_prop) == "static string Default { get; }"


def test_method_constraints_render_after_parameter_list() -> None:
    source = GenericParamSig(0, method_scope=True, name="TSource")
    method = MemberInfo(
        kind="method",
        name="Parse",
        return_type=source,
        parameters=(ParameterInfo("text", STRING),),
        generic_parameters=(
            GenericParameter(
                name="TSource",
                value_type=True,
                constraints=(_generic("System", "IParsable`1", source),),
            ),
            GenericParameter(name="TOther"),
        ),
        is_static=True,
    )

    assert format_member(method) == (
        "static TSource Parse<TSource, TOther>(string text) where TSource : struct, IParsable<TSource>;"
    )


def test_incomplete_signature_gets_stand_in_instead_of_failing() -> None:
    broken = MemberInfo(kind="method", name="Broken", return_type=UnknownSig(), signature_complete=False)
    assert format_member(broken) == f"object Broken(); {INCOMPLETE_SIGNATURE_NOTE}"


def test_format_declaration_full_layout() -> None:
    maze = TypeMetadata(
        name="IMaze`1",
        namespace="DimonSmart.MazeGenerator",
        kind="interface",
        generic_parameters=(
            GenericParameter(
                name="T",
                reference_type=True,
                constraints=(NamedSig("DimonSmart.MazeGenerator", "ICell"),),
                default_constructor=True,
            ),
        ),
        interfaces=(_generic("System.Collections.Generic", "IEnumerable`1", T),),
        members=(
            MemberInfo(kind="property", name="Width", return_type=INT, has_getter=True),
            MemberInfo(
                kind="method",
                name="GetCell",
                return_type=T,
                parameters=(ParameterInfo("x", INT), ParameterInfo("y", INT)),
            ),
        ),
    )

    assert format_declaration(maze, "DimonSmart.MazeGenerator.dll") == "\n".join(
        [
            "/* C# INTERFACE FROM DimonSmart.MazeGenerator.dll */",
            "public interface IMaze<T> : IEnumerable<T>",
            "    where T : class, ICell, new()",
            "{",
            "    int Width { get; }",
            "    T GetCell(int x, int y);",
            "}",
        ]
    )


def test_format_declaration_for_internal_class_skips_implicit_base() -> None:
    cls = TypeMetadata(
        name="Worker",
        namespace="Acme",
        kind="class",
        is_public=False,
        base_type=NamedSig("System", "Object"),
        interfaces=(NamedSig("System", "IDisposable"),),
    )
    text = format_declaration(cls, "Acme.dll")
    assert text.splitlines()[1] == "internal class Worker : IDisposable"
    assert text.endswith("{\n}")
