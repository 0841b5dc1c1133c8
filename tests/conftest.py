"""Shared fixtures: an in-memory stand-in for the Postgres introspector."""

from typing import Dict, Tuple

import pytest

from sqlinfer.catalog import (
    CatalogKind,
    CatalogType,
    ColumnDescription,
    CompositeField,
    StatementDescription,
)
from sqlinfer.errors import QuerySyntaxError, UnresolvableTypeError


BOOL = CatalogType(oid=16, name="bool")
INT8 = CatalogType(oid=20, name="int8")
INT4 = CatalogType(oid=23, name="int4")
TEXT = CatalogType(oid=25, name="text")
TIMESTAMPTZ = CatalogType(oid=1184, name="timestamptz")
TEXT_ARRAY = CatalogType(oid=1009, name="_text", kind=CatalogKind.ARRAY, element_oid=25)
TSVECTOR = CatalogType(oid=3614, name="tsvector")
VOID = CatalogType(oid=2278, name="void", kind=CatalogKind.PSEUDO)

DEVICE_TYPE = CatalogType(
    oid=90001,
    name="device_type",
    kind=CatalogKind.ENUM,
    schema="public",
    labels=("undefined", "phone", "laptop", "ipad", "desktop", "iot"),
)
USER = CatalogType(
    oid=90002,
    name="user",
    kind=CatalogKind.COMPOSITE,
    schema="public",
    fields=(CompositeField("id", 20), CompositeField("name", 25)),
)
DEVICE = CatalogType(
    oid=90003,
    name="device",
    kind=CatalogKind.COMPOSITE,
    schema="public",
    fields=(
        CompositeField("mac", 25),
        CompositeField("type", 90001),
        CompositeField("owner", 90002),
    ),
)
DEVICE_ARRAY = CatalogType(
    oid=90004, name="_device", kind=CatalogKind.ARRAY, schema="public", element_oid=90003
)
EMAIL = CatalogType(
    oid=90005, name="email", kind=CatalogKind.DOMAIN, schema="public", base_oid=25
)
# Cycle: node -> edge -> node
NODE = CatalogType(
    oid=90010,
    name="node",
    kind=CatalogKind.COMPOSITE,
    schema="public",
    fields=(CompositeField("id", 23), CompositeField("out", 90011)),
)
EDGE = CatalogType(
    oid=90011,
    name="edge",
    kind=CatalogKind.COMPOSITE,
    schema="public",
    fields=(CompositeField("target", 90010),),
)

ALL_TYPES = [
    BOOL, INT8, INT4, TEXT, TIMESTAMPTZ, TEXT_ARRAY, TSVECTOR, VOID,
    DEVICE_TYPE, USER, DEVICE, DEVICE_ARRAY, EMAIL, NODE, EDGE,
]

FIND_BY_FIRST_NAME_SQL = "SELECT first_name FROM author WHERE first_name = $1;"
DELETE_AUTHOR_SQL = "DELETE FROM author WHERE author_id = $1;"
DELETE_AUTHOR_RETURNING_SQL = (
    "DELETE FROM author WHERE author_id = $1 RETURNING author_id, first_name;"
)

# author(author_id serial PRIMARY KEY, first_name text NOT NULL,
#        last_name text NOT NULL, suffix text NULL)
AUTHOR_STATEMENTS = {
    FIND_BY_FIRST_NAME_SQL: StatementDescription(
        param_oids=(25,),
        columns=(ColumnDescription("first_name", 25, nullable=False),),
    ),
    DELETE_AUTHOR_SQL: StatementDescription(param_oids=(23,), columns=()),
    DELETE_AUTHOR_RETURNING_SQL: StatementDescription(
        param_oids=(23,),
        columns=(
            ColumnDescription("author_id", 23, nullable=False),
            ColumnDescription("first_name", 25, nullable=False),
        ),
    ),
}


class FakeIntrospector:
    """Answers describe and catalog lookups from fixed tables."""

    def __init__(self, statements: Dict[str, StatementDescription] = None, types=None):
        self.statements = dict(statements or {})
        self.types: Dict[int, CatalogType] = {t.oid: t for t in (types or ALL_TYPES)}
        self.describe_calls = []
        self.fetch_calls = []

    async def describe(self, sql: str, query_name: str = "") -> StatementDescription:
        self.describe_calls.append(sql)
        if sql not in self.statements:
            raise QuerySyntaxError(query_name, 'syntax error at or near "SELEC"')
        return self.statements[sql]

    async def fetch_type(self, oid: int) -> CatalogType:
        self.fetch_calls.append(oid)
        if oid not in self.types:
            raise UnresolvableTypeError(f"no catalog type with oid {oid}")
        return self.types[oid]

    async def fetch_enum_def(self, oid: int) -> Tuple[str, ...]:
        return self.types[oid].labels

    async def fetch_composite_def(self, oid: int) -> Tuple[CompositeField, ...]:
        return self.types[oid].fields


@pytest.fixture
def introspector():
    """Fake introspector loaded with the author schema."""
    return FakeIntrospector(AUTHOR_STATEMENTS)
