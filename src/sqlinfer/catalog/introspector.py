"""Postgres introspection - prepare/describe and catalog lookups, no execution."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Protocol, Tuple

import asyncpg
from asyncpg import exceptions as pg_exceptions

from sqlinfer.errors import EngineConnectionError, QuerySyntaxError, UnresolvableTypeError
from .models import (
    CatalogKind,
    CatalogType,
    ColumnDescription,
    CompositeField,
    StatementDescription,
)


logger = logging.getLogger(__name__)

TYPE_SQL = """
SELECT t.oid, t.typname, n.nspname, t.typtype, t.typcategory,
       t.typelem, t.typbasetype, t.typrelid
FROM pg_catalog.pg_type t
JOIN pg_catalog.pg_namespace n ON n.oid = t.typnamespace
WHERE t.oid = $1
"""

ENUM_LABELS_SQL = """
SELECT enumlabel
FROM pg_catalog.pg_enum
WHERE enumtypid = $1
ORDER BY enumsortorder
"""

COMPOSITE_FIELDS_SQL = """
SELECT a.attname, a.atttypid
FROM pg_catalog.pg_type t
JOIN pg_catalog.pg_attribute a ON a.attrelid = t.typrelid
WHERE t.oid = $1
  AND a.attnum > 0
  AND NOT a.attisdropped
ORDER BY a.attnum
"""

# Errors that mean the engine is gone rather than that the SQL is wrong.
CONNECTION_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    pg_exceptions.PostgresConnectionError,
    pg_exceptions.InterfaceError,
)


class Introspector(Protocol):
    """Engine surface the inferrer and resolver depend on."""

    async def describe(self, sql: str, query_name: str = "") -> StatementDescription: ...

    async def fetch_type(self, oid: int) -> CatalogType: ...

    async def fetch_enum_def(self, oid: int) -> Tuple[str, ...]: ...

    async def fetch_composite_def(self, oid: int) -> Tuple[CompositeField, ...]: ...


def catalog_kind(typtype: str, typcategory: str, typelem: int) -> CatalogKind:
    """Map pg_type.typtype/typcategory to a CatalogKind."""
    if typtype == "e":
        return CatalogKind.ENUM
    if typtype == "c":
        return CatalogKind.COMPOSITE
    if typtype == "d":
        return CatalogKind.DOMAIN
    if typtype in ("r", "m"):
        return CatalogKind.RANGE
    if typtype == "p":
        return CatalogKind.PSEUDO
    if typcategory == "A" and typelem:
        return CatalogKind.ARRAY
    return CatalogKind.SCALAR


class PostgresIntrospector:
    """
    Describe prepared statements and load catalog types with asyncpg.

    Holds a single connection, or a pool when concurrency > 1. With a single
    connection, calls are serialized so at most one prepare/describe is in
    flight. Catalog types are cached by OID for the lifetime of the object.

    Usage:
        async with PostgresIntrospector("postgres://localhost/app") as db:
            desc = await db.describe("SELECT 1")
    """

    def __init__(self, dsn: str, concurrency: int = 1, connect_timeout: float = 10.0):
        self.dsn = dsn
        self.concurrency = max(1, concurrency)
        self.connect_timeout = connect_timeout
        self._conn: Optional[asyncpg.Connection] = None
        self._pool: Optional[asyncpg.Pool] = None
        self._conn_lock = asyncio.Lock()
        self._types: Dict[int, CatalogType] = {}

    async def open(self) -> None:
        """Open the connection (or pool) to Postgres."""
        if self._pool is not None or (self._conn is not None and not self._conn.is_closed()):
            return  # Already connected

        try:
            if self.concurrency > 1:
                logger.debug(f"Creating connection pool (max_size={self.concurrency})")
                self._pool = await asyncpg.create_pool(
                    self.dsn,
                    min_size=1,
                    max_size=self.concurrency,
                    timeout=self.connect_timeout,
                )
            else:
                logger.debug("Creating database connection")
                self._conn = await asyncpg.connect(self.dsn, timeout=self.connect_timeout)
        except CONNECTION_ERRORS as e:
            raise EngineConnectionError(f"connect to postgres: {e}") from e
        except pg_exceptions.PostgresError as e:
            # Server-side refusals: bad password, unknown database or role
            raise EngineConnectionError(f"connect to postgres: {e}") from e

    async def close(self) -> None:
        """Close the connection or pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
        logger.debug("Closed database connection")

    async def __aenter__(self) -> "PostgresIntrospector":
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @asynccontextmanager
    async def _acquire(self):
        if self._pool is None and self._conn is None:
            await self.open()

        if self._pool is not None:
            async with self._pool.acquire() as conn:
                yield conn
            return

        async with self._conn_lock:
            if self._conn is None or self._conn.is_closed():
                logger.warning("Connection is closed, reconnecting")
                self._conn = None
                await self.open()
            yield self._conn

    async def describe(self, sql: str, query_name: str = "") -> StatementDescription:
        """
        Prepare sql and report its parameter and result types.

        The statement is never executed. Nullability is not reported by the
        extended query protocol, so every column comes back without a hint.

        Raises:
            QuerySyntaxError: Postgres rejected the statement
            EngineConnectionError: The connection failed
        """
        try:
            async with self._acquire() as conn:
                stmt = await conn.prepare(sql)
                params = stmt.get_parameters()
                attrs = stmt.get_attributes()
        except CONNECTION_ERRORS as e:
            raise EngineConnectionError(f"describe query {query_name}: {e}") from e
        except pg_exceptions.PostgresError as e:
            logger.error(f"Postgres rejected query {query_name}: {e}")
            raise QuerySyntaxError(query_name, str(e)) from e

        columns = tuple(
            ColumnDescription(name=attr.name, type_oid=attr.type.oid, nullable=None)
            for attr in attrs
        )
        logger.debug(
            f"Described {query_name}: {len(params)} params, {len(columns)} columns"
        )
        return StatementDescription(
            param_oids=tuple(p.oid for p in params),
            columns=columns,
        )

    async def fetch_type(self, oid: int) -> CatalogType:
        """
        Load one catalog type, including enum labels or composite fields.

        Raises:
            UnresolvableTypeError: No pg_type row exists for oid
        """
        cached = self._types.get(oid)
        if cached is not None:
            return cached

        row = await self._fetchrow(TYPE_SQL, oid)
        if row is None:
            raise UnresolvableTypeError(f"no catalog type with oid {oid}")

        kind = catalog_kind(row["typtype"], row["typcategory"], row["typelem"])
        labels: Tuple[str, ...] = ()
        fields: Tuple[CompositeField, ...] = ()
        if kind is CatalogKind.ENUM:
            labels = await self.fetch_enum_def(oid)
        elif kind is CatalogKind.COMPOSITE:
            fields = await self.fetch_composite_def(oid)

        typ = CatalogType(
            oid=oid,
            name=row["typname"],
            kind=kind,
            schema=row["nspname"],
            labels=labels,
            fields=fields,
            element_oid=row["typelem"] if kind is CatalogKind.ARRAY else None,
            base_oid=row["typbasetype"] if kind is CatalogKind.DOMAIN else None,
        )
        logger.debug(f"Fetched catalog type {typ.qualified_name} ({kind.value}, oid={oid})")
        return self._types.setdefault(oid, typ)

    async def fetch_enum_def(self, oid: int) -> Tuple[str, ...]:
        """Enum labels in declared sort order."""
        rows = await self._fetch(ENUM_LABELS_SQL, oid)
        return tuple(r["enumlabel"] for r in rows)

    async def fetch_composite_def(self, oid: int) -> Tuple[CompositeField, ...]:
        """Composite attributes in declared order, dropped columns excluded."""
        rows = await self._fetch(COMPOSITE_FIELDS_SQL, oid)
        return tuple(CompositeField(name=r["attname"], type_oid=r["atttypid"]) for r in rows)

    async def _fetch(self, sql: str, *args) -> List[Any]:
        try:
            async with self._acquire() as conn:
                return await conn.fetch(sql, *args)
        except CONNECTION_ERRORS as e:
            raise EngineConnectionError(f"catalog lookup: {e}") from e

    async def _fetchrow(self, sql: str, *args) -> Optional[Any]:
        try:
            async with self._acquire() as conn:
                return await conn.fetchrow(sql, *args)
        except CONNECTION_ERRORS as e:
            raise EngineConnectionError(f"catalog lookup: {e}") from e
