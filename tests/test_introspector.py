"""Tests for SQL Server catalog introspection and table enumeration."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import ProgrammingError

from db_mirror.errors import EnumerationFailedError
from db_mirror.schema.introspector import SchemaIntrospector, enumerate_tables
from db_mirror.schema.models import ColumnDef, TableRef

from fakes import FakeSource, orders_table


def _engine_returning(rows: list[tuple]) -> tuple[MagicMock, AsyncMock]:
    result = MagicMock()
    result.fetchall = MagicMock(return_value=rows)
    conn = AsyncMock()
    conn.execute = AsyncMock(return_value=result)
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=conn)
    cm.__aexit__ = AsyncMock(return_value=False)
    engine = MagicMock()
    engine.connect = MagicMock(return_value=cm)
    return engine, conn


class TestListBaseTables:
    """Verify base table listing."""

    @pytest.mark.asyncio
    async def test_returns_table_refs(self) -> None:
        """Rows become TableRefs; sysdiagrams is skipped by default."""
        engine, conn = _engine_returning(
            [("dbo", "Orders"), ("sales", "Lines"), ("dbo", "sysdiagrams")]
        )

        tables = await SchemaIntrospector(engine).list_base_tables()

        assert tables == [
            TableRef(schema_name="dbo", table_name="Orders"),
            TableRef(schema_name="sales", table_name="Lines"),
        ]
        query = str(conn.execute.call_args.args[0])
        assert "sys.tables" in query
        assert "is_ms_shipped = 0" in query

    @pytest.mark.asyncio
    async def test_custom_exclusions(self) -> None:
        """excluded_tables replaces the default exclusions."""
        engine, _ = _engine_returning([("dbo", "Orders"), ("dbo", "sysdiagrams")])

        tables = await SchemaIntrospector(engine, excluded_tables={"dbo.Orders"}).list_base_tables()

        assert [t.qualified_name for t in tables] == ["dbo.sysdiagrams"]

    @pytest.mark.asyncio
    async def test_catalog_error(self) -> None:
        """A failing catalog query raises EnumerationFailedError."""
        engine, conn = _engine_returning([])
        conn.execute = AsyncMock(
            side_effect=ProgrammingError("SELECT", {}, Exception("permission denied"))
        )

        with pytest.raises(EnumerationFailedError, match="permission denied"):
            await SchemaIntrospector(engine).list_base_tables()


class TestListColumns:
    """Verify column metadata mapping."""

    @pytest.mark.asyncio
    async def test_maps_rows_in_order(self) -> None:
        """Columns keep catalog order and carry qualifiers."""
        engine, conn = _engine_returning([
            ("Id", "int", None, 10, 0),
            ("Note", "nvarchar", 50, None, None),
            ("Body", "varchar", -1, None, None),
            ("Total", "decimal", None, 18, 2),
        ])
        ref = TableRef(schema_name="dbo", table_name="Orders")

        columns = await SchemaIntrospector(engine).list_columns(ref)

        assert [c.name for c in columns] == ["Id", "Note", "Body", "Total"]
        assert columns[1] == ColumnDef(name="Note", type_name="nvarchar", max_length=50)
        assert columns[2].max_length == -1
        assert (columns[3].precision, columns[3].scale) == (18, 2)
        statement, params = conn.execute.call_args.args
        assert "ORDER BY ORDINAL_POSITION" in str(statement)
        assert params == {"schema_name": "dbo", "table_name": "Orders"}


class TestEnumerateTables:
    """Verify enumerate_tables() dedupes and wraps errors."""

    @pytest.mark.asyncio
    async def test_each_table_once(self) -> None:
        """Duplicate catalog rows are visited once, order kept."""
        ref, _, _ = orders_table()
        other = TableRef(schema_name="dbo", table_name="Customers")
        catalog = AsyncMock()
        catalog.list_base_tables = AsyncMock(return_value=[ref, other, ref])

        assert await enumerate_tables(catalog) == [ref, other]

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self) -> None:
        """Any catalog failure becomes EnumerationFailedError."""
        catalog = FakeSource(list_error=ConnectionError("network down"))

        with pytest.raises(EnumerationFailedError) as exc_info:
            await enumerate_tables(catalog)

        assert exc_info.value.kind == "EnumerationFailed"
