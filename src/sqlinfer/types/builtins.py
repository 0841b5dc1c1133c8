"""Known Postgres scalar types and the Go types they map to."""

from typing import Dict, Optional, Union

from .target import BuiltinType, OpaqueType, parse_opaque_type


PGTYPE_PKG = "github.com/jackc/pgtype"

# pg_catalog type name -> qualified Go type. Arrays are not listed; they map
# through their element type.
KNOWN_TYPES: Dict[str, str] = {
    "bool": "bool",
    "bytea": "[]byte",
    "int2": "int16",
    "int4": "int32",
    "int8": "int64",
    "float4": "float32",
    "float8": "float64",
    "oid": "uint32",
    "text": "string",
    "varchar": "string",
    "bpchar": "string",
    "name": "string",
    "date": "time.Time",
    "timestamp": "time.Time",
    "timestamptz": "time.Time",
    "numeric": f"{PGTYPE_PKG}.Numeric",
    "interval": f"{PGTYPE_PKG}.Interval",
    "uuid": f"{PGTYPE_PKG}.UUID",
    "inet": f"{PGTYPE_PKG}.Inet",
    "cidr": f"{PGTYPE_PKG}.CIDR",
    "json": f"{PGTYPE_PKG}.JSON",
    "jsonb": f"{PGTYPE_PKG}.JSONB",
}

_PARSED: Dict[str, Union[BuiltinType, OpaqueType]] = {
    pg_name: parse_opaque_type(go_type) for pg_name, go_type in KNOWN_TYPES.items()
}


def find_known_type(schema: str, name: str) -> Optional[Union[BuiltinType, OpaqueType]]:
    """Return the Go type for a pg_catalog scalar, or None if unknown."""
    if schema != "pg_catalog":
        return None
    return _PARSED.get(name)
