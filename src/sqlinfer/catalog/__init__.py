"""Postgres catalog introspection."""
from .models import (
    CatalogKind,
    CatalogType,
    CompositeField,
    ColumnDescription,
    StatementDescription,
)
from .introspector import Introspector, PostgresIntrospector

__all__ = [
    "CatalogKind",
    "CatalogType",
    "CompositeField",
    "ColumnDescription",
    "StatementDescription",
    "Introspector",
    "PostgresIntrospector",
]
