"""Infer parameter and result types of source queries from a live Postgres."""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Set

from sqlinfer.catalog.introspector import Introspector
from sqlinfer.errors import (
    DuplicateQueryError,
    InferenceTimeoutError,
    ParamCountMismatchError,
    ResultKindMismatchError,
)
from sqlinfer.queries.models import ResultKind, SourceQuery
from sqlinfer.types.resolver import TypeResolver
from sqlinfer.utils.casing import Caser, choose_fallback_name, disambiguate
from .models import InferenceResult, InputParam, OutputColumn, TypedQuery


logger = logging.getLogger(__name__)


class TypeInferrer:
    """
    Build TypedQuery records by preparing each query against Postgres.

    The inferrer shares one TypeResolver across all queries of a run, so a
    catalog type seen by several queries maps to one Go type. Any failure
    aborts the run; nothing is retried or skipped.
    """

    def __init__(
        self,
        introspector: Introspector,
        resolver: TypeResolver,
        caser: Optional[Caser] = None,
    ):
        self._introspector = introspector
        self.resolver = resolver
        self._caser = caser or Caser()

    async def infer_types(self, query: SourceQuery) -> TypedQuery:
        """
        Infer the input and output types of a single query.

        Args:
            query: Validated source query

        Returns:
            TypedQuery with one InputParam per parameter name and, unless the
            query is :exec, one OutputColumn per result column

        Raises:
            QuerySyntaxError: Postgres rejected the SQL
            ParamCountMismatchError: Placeholder count differs from param names
            ResultKindMismatchError: :one or :many query returns no columns
        """
        logger.info(f"Inferring types: {query.name}")
        desc = await self._introspector.describe(query.prepared_sql, query.name)

        if len(desc.param_oids) != len(query.param_names):
            raise ParamCountMismatchError(
                query.name, len(query.param_names), len(desc.param_oids)
            )

        if query.result_kind is not ResultKind.EXEC and not desc.columns:
            raise ResultKindMismatchError(query.name, query.result_kind.value)

        inputs = []
        for name, oid in zip(query.param_names, desc.param_oids):
            inputs.append(InputParam(
                name=name,
                pg_type=await self._introspector.fetch_type(oid),
                target_type=await self.resolver.resolve(oid),
                nullable=False,
            ))

        outputs = []
        if query.result_kind is not ResultKind.EXEC:
            taken: Set[str] = set()
            for i, column in enumerate(desc.columns):
                ident = self._caser.to_upper_ident(column.name)
                if ident == "":
                    ident = choose_fallback_name(column.name, f"UnnamedColumn{i}")
                ident = disambiguate(ident, taken, i)
                taken.add(ident)
                outputs.append(OutputColumn(
                    pg_name=column.name,
                    name=ident,
                    pg_type=await self._introspector.fetch_type(column.type_oid),
                    target_type=await self.resolver.resolve(column.type_oid),
                    # No hint means we cannot prove the column is never null
                    nullable=True if column.nullable is None else column.nullable,
                ))
        elif desc.columns:
            logger.debug(f"Ignoring {len(desc.columns)} result columns of :exec query {query.name}")

        return TypedQuery(
            name=query.name,
            prepared_sql=query.prepared_sql,
            inputs=tuple(inputs),
            outputs=tuple(outputs),
        )

    async def infer_all(
        self,
        queries: Sequence[SourceQuery],
        concurrency: int = 1,
        timeout_seconds: Optional[float] = None,
    ) -> InferenceResult:
        """
        Infer every query of a run, all or nothing.

        Args:
            queries: Source queries in output order
            concurrency: Maximum queries described at once; 1 is sequential
            timeout_seconds: Deadline for the whole run, None for no limit

        Returns:
            InferenceResult with typed queries in input order

        Raises:
            DuplicateQueryError: Two queries share a name
            InferenceTimeoutError: The deadline passed
            InferenceError: The first failure of any query
        """
        seen: Dict[str, SourceQuery] = {}
        for query in queries:
            if query.name in seen:
                raise DuplicateQueryError(f"Duplicate query name: {query.name}")
            seen[query.name] = query

        try:
            typed = await asyncio.wait_for(
                self._infer_queries(list(queries), concurrency), timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise InferenceTimeoutError(
                f"Type inference did not finish within {timeout_seconds}s"
            ) from e

        logger.info(
            f"Inferred {len(typed)} queries, "
            f"{len(self.resolver.declarations())} type declarations"
        )
        return InferenceResult(
            queries=tuple(typed),
            declarations=self.resolver.declarations(),
        )

    async def _infer_queries(
        self, queries: List[SourceQuery], concurrency: int
    ) -> List[TypedQuery]:
        if concurrency <= 1:
            return [await self.infer_types(q) for q in queries]

        semaphore = asyncio.Semaphore(concurrency)

        async def infer_one(query: SourceQuery) -> TypedQuery:
            async with semaphore:
                return await self.infer_types(query)

        tasks = [asyncio.create_task(infer_one(q)) for q in queries]
        if not tasks:
            return []

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        failed = [t for t in tasks if t in done and t.exception() is not None]
        if failed:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise failed[0].exception()

        return [t.result() for t in tasks]
