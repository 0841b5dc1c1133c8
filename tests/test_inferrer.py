"""Tests for sqlinfer.inference module."""

import asyncio

import pytest

from sqlinfer.catalog import ColumnDescription, StatementDescription
from sqlinfer.errors import (
    DuplicateQueryError,
    InferenceTimeoutError,
    ParamCountMismatchError,
    QuerySyntaxError,
    ResultKindMismatchError,
)
from sqlinfer.inference import InputParam, OutputColumn, TypedQuery, TypeInferrer
from sqlinfer.queries import ResultKind, SourceQuery
from sqlinfer.types import BuiltinType, CompositeType, EnumType, TypeResolver
from sqlinfer.utils.casing import Caser

from conftest import (
    AUTHOR_STATEMENTS,
    DELETE_AUTHOR_RETURNING_SQL,
    DELETE_AUTHOR_SQL,
    FIND_BY_FIRST_NAME_SQL,
    INT4,
    TEXT,
    FakeIntrospector,
)


PKG = "github.com/acme/app/author"


def make_inferrer(introspector, caser=None, **kwargs):
    resolver = TypeResolver(introspector, pkg_path=PKG, caser=caser, **kwargs)
    return TypeInferrer(introspector, resolver, caser)


def infer(inferrer, query):
    return asyncio.run(inferrer.infer_types(query))


def query(name, sql, params, kind):
    return SourceQuery(name=name, prepared_sql=sql, param_names=params, result_kind=kind)


class TestInferTypes:
    """Tests for TypeInferrer.infer_types against the author schema."""

    def test_find_by_first_name(self, introspector):
        got = infer(make_inferrer(introspector), query(
            "FindByFirstName", FIND_BY_FIRST_NAME_SQL, ["FirstName"], ResultKind.MANY
        ))
        assert got == TypedQuery(
            name="FindByFirstName",
            prepared_sql=FIND_BY_FIRST_NAME_SQL,
            inputs=(
                InputParam(name="FirstName", pg_type=TEXT, target_type=BuiltinType("string")),
            ),
            # The Go identifier is the cased column name; pg_name keeps the raw one
            outputs=(
                OutputColumn(
                    pg_name="first_name",
                    name="FirstName",
                    pg_type=TEXT,
                    target_type=BuiltinType("string"),
                    nullable=False,
                ),
            ),
        )

    def test_delete_exec(self, introspector):
        got = infer(make_inferrer(introspector), query(
            "DeleteAuthorByID", DELETE_AUTHOR_SQL, ["AuthorID"], ResultKind.EXEC
        ))
        assert got == TypedQuery(
            name="DeleteAuthorByID",
            prepared_sql=DELETE_AUTHOR_SQL,
            inputs=(
                InputParam(name="AuthorID", pg_type=INT4, target_type=BuiltinType("int32")),
            ),
            outputs=(),
        )
        assert got.inputs[0].nullable is False

    def test_delete_returning(self, introspector):
        caser = Caser({"id": "ID"})
        got = infer(make_inferrer(introspector, caser), query(
            "DeleteAuthorByIDReturning", DELETE_AUTHOR_RETURNING_SQL, ["AuthorID"],
            ResultKind.MANY,
        ))
        # Identifiers go through the acronym table, not the raw column names
        assert [(c.pg_name, c.name, c.pg_type, c.target_type) for c in got.outputs] == [
            ("author_id", "AuthorID", INT4, BuiltinType("int32")),
            ("first_name", "FirstName", TEXT, BuiltinType("string")),
        ]

    def test_exec_ignores_reported_columns(self, introspector):
        got = infer(make_inferrer(introspector), query(
            "FindByFirstNameExec", FIND_BY_FIRST_NAME_SQL, ["FirstName"], ResultKind.EXEC
        ))
        assert got.outputs == ()

    @pytest.mark.parametrize("kind", [ResultKind.MANY, ResultKind.ONE])
    def test_result_kind_mismatch(self, introspector, kind):
        name = f"DeleteAuthorByID{kind.value.capitalize()}"
        with pytest.raises(ResultKindMismatchError) as exc_info:
            infer(make_inferrer(introspector), query(name, DELETE_AUTHOR_SQL, ["AuthorID"], kind))
        assert str(exc_info.value) == (
            f"query {name} has incompatible result kind :{kind.value}; "
            "the query doesn't return any rows"
        )

    def test_param_count_mismatch(self, introspector):
        with pytest.raises(ParamCountMismatchError) as exc_info:
            infer(make_inferrer(introspector), query(
                "DeleteAuthor", DELETE_AUTHOR_SQL, ["AuthorID", "Extra"], ResultKind.EXEC
            ))
        assert exc_info.value.expected == 2
        assert exc_info.value.actual == 1

    def test_syntax_error(self, introspector):
        with pytest.raises(QuerySyntaxError, match="Broken"):
            infer(make_inferrer(introspector), query(
                "Broken", "SELEC 1", [], ResultKind.ONE
            ))


class TestOutputColumns:
    """Tests for nullability and identifier derivation."""

    def test_nullable_without_hint(self):
        introspector = FakeIntrospector({
            "SELECT suffix FROM author": StatementDescription(
                param_oids=(), columns=(ColumnDescription("suffix", 25),)
            ),
        })
        got = infer(make_inferrer(introspector), query(
            "Suffixes", "SELECT suffix FROM author", [], ResultKind.MANY
        ))
        assert got.outputs[0].nullable is True

    def test_duplicate_identifiers_get_position(self):
        sql = "SELECT a.first_name, b.first_name, count(*) FROM author a, author b"
        introspector = FakeIntrospector({
            sql: StatementDescription(
                param_oids=(),
                columns=(
                    ColumnDescription("first_name", 25),
                    ColumnDescription("first_name", 25),
                    ColumnDescription("count", 20),
                ),
            ),
        })
        got = infer(make_inferrer(introspector), query("Pairs", sql, [], ResultKind.MANY))
        assert [c.name for c in got.outputs] == ["FirstName", "FirstName1", "Count"]
        assert [c.pg_name for c in got.outputs] == ["first_name", "first_name", "count"]

    def test_unnamed_column_fallback(self):
        introspector = FakeIntrospector({
            "SELECT 1 AS \"???\"": StatementDescription(
                param_oids=(), columns=(ColumnDescription("???", 23),)
            ),
        })
        got = infer(make_inferrer(introspector), query(
            "Odd", "SELECT 1 AS \"???\"", [], ResultKind.ONE
        ))
        assert got.outputs[0].name == "UnnamedColumn0"

    def test_enum_and_composite_outputs(self):
        sql = "SELECT device, type FROM device"
        introspector = FakeIntrospector({
            sql: StatementDescription(
                param_oids=(90001,),
                columns=(ColumnDescription("device", 90003), ColumnDescription("type", 90001)),
            ),
        })
        inferrer = make_inferrer(introspector)
        got = infer(inferrer, query("Devices", sql, ["Type"], ResultKind.MANY))
        assert isinstance(got.inputs[0].target_type, EnumType)
        assert isinstance(got.outputs[0].target_type, CompositeType)
        # The enum referenced by the param, column and composite field is one object
        assert got.inputs[0].target_type is got.outputs[1].target_type
        assert got.outputs[0].target_type.field_types[1] is got.inputs[0].target_type


class TestInferAll:
    """Tests for TypeInferrer.infer_all."""

    def queries(self):
        return [
            query("FindByFirstName", FIND_BY_FIRST_NAME_SQL, ["FirstName"], ResultKind.MANY),
            query("DeleteAuthorByID", DELETE_AUTHOR_SQL, ["AuthorID"], ResultKind.EXEC),
            query("DeleteAuthorByIDReturning", DELETE_AUTHOR_RETURNING_SQL, ["AuthorID"],
                  ResultKind.MANY),
        ]

    def test_sequential(self, introspector):
        result = asyncio.run(make_inferrer(introspector).infer_all(self.queries()))
        assert [q.name for q in result.queries] == [
            "FindByFirstName", "DeleteAuthorByID", "DeleteAuthorByIDReturning"
        ]
        assert result.declarations == ()

    def test_concurrent_keeps_order(self, introspector):
        result = asyncio.run(
            make_inferrer(introspector).infer_all(self.queries(), concurrency=3)
        )
        assert [q.name for q in result.queries] == [
            "FindByFirstName", "DeleteAuthorByID", "DeleteAuthorByIDReturning"
        ]

    @pytest.mark.parametrize("concurrency", [1, 4])
    def test_all_or_nothing(self, introspector, concurrency):
        queries = self.queries() + [
            query("DeleteAuthorByIDOne", DELETE_AUTHOR_SQL, ["AuthorID"], ResultKind.ONE)
        ]
        with pytest.raises(ResultKindMismatchError, match="DeleteAuthorByIDOne"):
            asyncio.run(
                make_inferrer(introspector).infer_all(queries, concurrency=concurrency)
            )

    def test_duplicate_names(self, introspector):
        queries = self.queries() + self.queries()[:1]
        with pytest.raises(DuplicateQueryError):
            asyncio.run(make_inferrer(introspector).infer_all(queries))
        assert introspector.describe_calls == []

    def test_timeout(self):
        class SlowIntrospector(FakeIntrospector):
            async def describe(self, sql, query_name=""):
                await asyncio.sleep(1)
                return await super().describe(sql, query_name)

        inferrer = make_inferrer(SlowIntrospector(AUTHOR_STATEMENTS))
        with pytest.raises(InferenceTimeoutError):
            asyncio.run(inferrer.infer_all(self.queries(), timeout_seconds=0.01))

    def test_declarations_collected(self):
        sql = "SELECT device FROM device"
        introspector = FakeIntrospector({
            sql: StatementDescription(param_oids=(), columns=(ColumnDescription("device", 90003),)),
        })
        result = asyncio.run(make_inferrer(introspector).infer_all([
            query("Devices", sql, [], ResultKind.MANY),
            query("MoreDevices", sql, [], ResultKind.ONE),
        ]))
        assert [d.name for d in result.declarations] == ["DeviceType", "User", "Device"]
