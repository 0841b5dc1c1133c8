"""Go target types and the catalog type resolver."""
from .target import (
    ArrayType,
    BuiltinType,
    CompositeType,
    EnumType,
    OpaqueType,
    TargetType,
    extract_short_package,
    parse_opaque_type,
)
from .builtins import KNOWN_TYPES, find_known_type
from .resolver import TypeResolver

__all__ = [
    "ArrayType",
    "BuiltinType",
    "CompositeType",
    "EnumType",
    "OpaqueType",
    "TargetType",
    "extract_short_package",
    "parse_opaque_type",
    "KNOWN_TYPES",
    "find_known_type",
    "TypeResolver",
]
