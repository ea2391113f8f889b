"""Binary module metadata: model, signature decoding and loading."""

from .dotnet import DotNetMetadataReader, build_module
from .errors import MetadataError, ModuleFormatError, SignatureError
from .loader import MetadataReader, ModuleLoader
from .models import (
    ArraySig,
    ByRefSig,
    FunctionPointerSig,
    GenericInstSig,
    GenericParameter,
    GenericParamSig,
    MemberInfo,
    ModuleMetadata,
    NamedSig,
    ParameterInfo,
    PointerSig,
    PrimitiveSig,
    SzArraySig,
    TypeDescriptor,
    TypeMetadata,
    TypeSig,
    UnknownSig,
)

__all__ = [
    "DotNetMetadataReader",
    "build_module",
    "MetadataReader",
    "ModuleLoader",
    "MetadataError",
    "ModuleFormatError",
    "SignatureError",
    "ArraySig",
    "ByRefSig",
    "FunctionPointerSig",
    "GenericInstSig",
    "GenericParameter",
    "GenericParamSig",
    "MemberInfo",
    "ModuleMetadata",
    "NamedSig",
    "ParameterInfo",
    "PointerSig",
    "PrimitiveSig",
    "SzArraySig",
    "TypeDescriptor",
    "TypeMetadata",
    "TypeSig",
    "UnknownSig",
]
