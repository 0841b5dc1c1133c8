"""
Domain models for Postgres catalog types and prepared statement shapes.
Values here are fetched live from the engine and never modified.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class CatalogKind(str, Enum):
    """Kind of a Postgres type, derived from pg_type.typtype and typelem."""
    SCALAR = "scalar"
    ENUM = "enum"
    COMPOSITE = "composite"
    DOMAIN = "domain"
    ARRAY = "array"
    RANGE = "range"
    PSEUDO = "pseudo"


@dataclass(frozen=True)
class CompositeField:
    """One attribute of a composite type, in declaration order."""
    name: str
    type_oid: int


@dataclass(frozen=True)
class CatalogType:
    """
    The engine's descriptor for a column or parameter type.

    Only the attributes matching the kind are populated: labels for enums,
    fields for composites, element_oid for arrays, base_oid for domains.
    Referenced types are kept as OIDs so self-referencing composites can
    be described without recursion.
    """
    oid: int
    name: str
    kind: CatalogKind = CatalogKind.SCALAR
    schema: str = "pg_catalog"
    labels: Tuple[str, ...] = ()
    fields: Tuple[CompositeField, ...] = ()
    element_oid: Optional[int] = None
    base_oid: Optional[int] = None

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}"

    def override_keys(self) -> List[str]:
        """Names a user override may be keyed by, most specific first."""
        keys = [self.qualified_name]
        if self.schema in ("pg_catalog", "public"):
            keys.append(self.name)
        return keys

    def __str__(self):
        return self.qualified_name


@dataclass(frozen=True)
class ColumnDescription:
    """
    One result column as reported by describe.

    nullable is None when the engine gives no hint either way.
    """
    name: str
    type_oid: int
    nullable: Optional[bool] = None


@dataclass(frozen=True)
class StatementDescription:
    """Parameter and result shape of a prepared statement."""
    param_oids: Tuple[int, ...]
    columns: Tuple[ColumnDescription, ...]
