"""In-memory stand-ins for the source database and the remote endpoint."""

import asyncio
from collections.abc import Sequence

from db_mirror.errors import RemoteUnreachableError
from db_mirror.schema.models import ColumnDef, TableRef


def orders_table() -> tuple[TableRef, list[ColumnDef], list[tuple]]:
    """``dbo.Orders (Id int, Note nvarchar(50))`` with three rows."""
    return (
        TableRef(schema_name="dbo", table_name="Orders"),
        [
            ColumnDef(name="Id", type_name="int", precision=10, scale=0),
            ColumnDef(name="Note", type_name="nvarchar", max_length=50),
        ],
        [(1, "first"), (2, "second"), (3, None)],
    )


def simple_table(name: str, rows: int = 2) -> tuple[TableRef, list[ColumnDef], list[tuple]]:
    """``dbo.<name> (Id int)`` with ``rows`` rows."""
    return (
        TableRef(schema_name="dbo", table_name=name),
        [ColumnDef(name="Id", type_name="int")],
        [(i,) for i in range(rows)],
    )


class FakeSource:
    """Source database holding tables in memory."""

    def __init__(
        self,
        tables: list[tuple[TableRef, list[ColumnDef], list[tuple]]] | None = None,
        backup_error: Exception | None = None,
        list_error: Exception | None = None,
    ) -> None:
        self.tables = {ref: (cols, rows) for ref, cols, rows in tables or []}
        self.backup_error = backup_error
        self.list_error = list_error
        self.backups: list[tuple[str, str]] = []
        self.open_streams = 0
        self.closed = False

    async def backup(self, database: str, path: str) -> None:
        if self.backup_error is not None:
            raise self.backup_error
        self.backups.append((database, path))

    async def list_base_tables(self) -> list[TableRef]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.tables)

    async def list_columns(self, table: TableRef) -> list[ColumnDef]:
        return list(self.tables[table][0])

    async def fetch_rows(self, table: TableRef, columns: Sequence[str], chunk_size: int):
        rows = self.tables[table][1]
        self.open_streams += 1
        try:
            for i in range(0, len(rows), chunk_size):
                yield rows[i:i + chunk_size]
        finally:
            self.open_streams -= 1

    async def close(self) -> None:
        self.closed = True


class FakeRemote:
    """Remote endpoint holding tables in memory.

    ``bulk_insert`` stages every chunk and only commits once all chunks
    arrived, like a single transaction.
    """

    def __init__(
        self,
        tables: dict[str, list[tuple]] | None = None,
        unreachable: set[str] | None = None,
        fail_create: set[str] | None = None,
        fail_copy: set[str] | None = None,
        slow_copy: set[str] | None = None,
    ) -> None:
        self.tables: dict[str, list[tuple]] = {
            k: list(v) for k, v in (tables or {}).items()
        }
        self.unreachable = unreachable or set()
        self.fail_create = fail_create or set()
        self.fail_copy = fail_copy or set()
        self.slow_copy = slow_copy or set()
        self.ddl: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def _reach(self, name: str) -> None:
        if name in self.unreachable:
            raise RemoteUnreachableError(f"Login timeout expired for {name}")

    async def table_exists(self, name: str) -> bool:
        self._reach(name)
        self.calls.append(("check", name))
        return name in self.tables

    async def execute(self, statement: str, params: dict | None = None) -> None:
        name = statement.split("[", 1)[1].split("]", 1)[0]
        self._reach(name)
        self.calls.append(("execute", name))
        if statement.startswith("CREATE TABLE"):
            if name in self.fail_create:
                raise RuntimeError(f"There is already an object named '{name}'")
            self.tables[name] = []
            self.ddl[name] = statement
        elif statement.startswith("DELETE FROM"):
            self.tables[name] = []

    async def clear_table(self, name: str) -> None:
        self._reach(name)
        self.calls.append(("clear", name))
        self.tables[name] = []

    async def bulk_insert(self, target: str, columns: Sequence[str], chunks) -> int:
        self._reach(target)
        self.calls.append(("copy", target))
        staged: list[tuple] = []
        async for chunk in chunks:
            staged.extend(tuple(row) for row in chunk)
            if target in self.fail_copy:
                raise RuntimeError("String or binary data would be truncated")
        if target in self.slow_copy:
            await asyncio.sleep(10)
        self.tables[target].extend(staged)
        return len(staged)

    async def close(self) -> None:
        self.closed = True
