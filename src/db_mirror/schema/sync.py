"""Table replication from the source database to a remote endpoint (async).

Each table goes through a fixed sequence that is never reordered:

1. **Check** whether the target table exists remotely.
2. **Create** it from the translated ``CREATE TABLE`` when absent.
3. **Clear** every existing row.
4. **Copy** all source rows in one remote transaction.

Failures are caught at the table boundary and recorded in a
``TableOutcome``; whether the remaining tables still run is decided by
``ReplicationSettings.on_table_error``.

Usage:
    from db_mirror.schema.sync import replicate_tables

    report = await replicate_tables(
        catalog=source,
        source=source,
        remote=remote,
        tables=tables,
        suffix="bi",
    )
    print(report.format_report())
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from contextlib import aclosing
from typing import TYPE_CHECKING, TypeVar

from sqlalchemy.exc import DBAPIError

from db_mirror.config.models import ReplicationSettings
from db_mirror.errors import (
    DeadlineExceededError,
    MirrorError,
    RemoteCopyFailedError,
    RemoteDDLFailedError,
    RemoteUnreachableError,
    TargetNameCollisionError,
)
from db_mirror.schema.models import (
    RemoteTableState,
    ReplicationReport,
    TableOutcome,
    TableRef,
)
from db_mirror.schema.translator import target_table_name, translate_table

if TYPE_CHECKING:
    from db_mirror.adapters.base import CatalogReader, RemoteEndpoint, SourceReader

logger = logging.getLogger(__name__)

T = TypeVar("T")

OnTableDone = Callable[[TableOutcome], None]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _is_connection_error(error: BaseException) -> bool:
    if isinstance(error, (ConnectionError, TimeoutError)):
        return True
    return isinstance(error, DBAPIError) and error.connection_invalidated


async def _step(
    awaitable: Awaitable[T],
    error_cls: type[MirrorError],
    action: str,
) -> T:
    """Await one remote step, classifying failures into ``error_cls``.

    Errors that are already ``MirrorError`` pass through unchanged, and
    lost connections become ``RemoteUnreachableError`` whatever the step.
    """
    try:
        return await awaitable
    except MirrorError:
        raise
    except Exception as e:
        if _is_connection_error(e):
            raise RemoteUnreachableError(f"{action}: {e}") from e
        raise error_cls(f"{action}: {e}") from e


def find_target_collisions(
    tables: list[TableRef],
    suffix: str,
) -> dict[str, list[TableRef]]:
    """Group tables whose derived remote names collide.

    Names are compared case-insensitively, matching the default SQL Server
    collation; each group is keyed by the first table's remote name.

    Example:
        >>> tables = [
        ...     TableRef(schema_name="a.b", table_name="c"),
        ...     TableRef(schema_name="a", table_name="b.c"),
        ... ]
        >>> sorted(find_target_collisions(tables, "x"))
        ['a_b_c_x']
    """
    by_key: dict[str, list[TableRef]] = defaultdict(list)
    for table in tables:
        by_key[target_table_name(table, suffix).casefold()].append(table)
    return {
        target_table_name(refs[0], suffix): refs
        for refs in by_key.values()
        if len(refs) > 1
    }


def _failed(table: TableRef, target: str, error: MirrorError) -> TableOutcome:
    return TableOutcome(
        source=table.qualified_name,
        target=target,
        status="failed",
        error_kind=error.kind,
        error=str(error),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def sync_table(
    catalog: CatalogReader,
    source: SourceReader,
    remote: RemoteEndpoint,
    table: TableRef,
    suffix: str,
    chunk_size: int = 1000,
) -> TableOutcome:
    """Replicate one source table to its remote counterpart.

    Never raises for per-table failures; the returned outcome carries the
    error kind instead.  Cancellation propagates, and the copy transaction
    is rolled back by the remote endpoint.

    Args:
        catalog: Reads the source table's columns.
        source: Streams the source rows.
        remote: Remote endpoint receiving the table.
        table: Source table to replicate.
        suffix: Suffix appended to the derived remote table name.
        chunk_size: Rows per insert batch.

    Returns:
        ``TableOutcome`` with status ``succeeded`` or ``failed``.

    Example:
        >>> outcome = await sync_table(src, src, remote, orders, "bi")
        >>> outcome.target
        'dbo_Orders_bi'
    """
    target = target_table_name(table, suffix)
    outcome = TableOutcome(
        source=table.qualified_name,
        target=target,
        status="failed",
    )

    try:
        translation = await translate_table(catalog, table, suffix)

        # Check
        exists = await _step(
            remote.table_exists(target),
            RemoteUnreachableError,
            f"Checking for remote table '{target}' failed",
        )
        outcome.remote_state = (
            RemoteTableState.PRESENT if exists else RemoteTableState.ABSENT
        )

        # Create
        if not exists:
            logger.info("Creating remote table %s", target)
            await _step(
                remote.execute(translation.create_statement),
                RemoteDDLFailedError,
                f"Creating remote table '{target}' failed",
            )

        # Clear
        await _step(
            remote.clear_table(target),
            RemoteCopyFailedError,
            f"Clearing remote table '{target}' failed",
        )

        # Copy
        async with aclosing(
            source.fetch_rows(table, translation.column_names, chunk_size)
        ) as chunks:
            outcome.rows_copied = await _step(
                remote.bulk_insert(target, translation.column_names, chunks),
                RemoteCopyFailedError,
                f"Copying rows into '{target}' failed",
            )
    except MirrorError as e:
        outcome.error_kind = e.kind
        outcome.error = str(e)
        logger.warning(
            "Table %s failed (%s): %s", table.qualified_name, e.kind, e
        )
        return outcome

    outcome.status = "succeeded"
    logger.info(
        "Replicated %s -> %s (%d rows)",
        table.qualified_name,
        target,
        outcome.rows_copied,
    )
    return outcome


async def replicate_tables(
    catalog: CatalogReader,
    source: SourceReader,
    remote: RemoteEndpoint,
    tables: list[TableRef],
    suffix: str,
    settings: ReplicationSettings | None = None,
    on_table_done: OnTableDone | None = None,
) -> ReplicationReport:
    """Replicate every table in ``tables`` and report per-table outcomes.

    Tables whose remote names collide are all reported failed with
    ``TargetNameCollision`` and are not touched.  With
    ``settings.max_workers == 1`` (the default) tables run one at a time in
    the given order.

    Args:
        catalog: Reads source column metadata.
        source: Streams source rows.
        remote: Remote endpoint receiving the tables.
        tables: Tables to replicate.  Duplicates are visited once.
        suffix: Suffix appended to every remote table name.
        settings: Failure policy, concurrency, chunk size and deadline.
        on_table_done: Called with each table's outcome as it completes.

    Returns:
        ``ReplicationReport`` with one outcome per distinct table, in the
        order given.
    """
    settings = settings or ReplicationSettings()
    unique = list(dict.fromkeys(tables))
    outcomes: dict[TableRef, TableOutcome] = {}
    started: set[TableRef] = set()
    stop = asyncio.Event()
    semaphore = asyncio.Semaphore(settings.max_workers)

    def _record(table: TableRef, outcome: TableOutcome) -> None:
        outcomes[table] = outcome
        if on_table_done is None:
            return
        try:
            on_table_done(outcome)
        except Exception:
            logger.exception(
                "on_table_done callback failed for %s", table.qualified_name
            )

    colliding = {
        table: group
        for group in find_target_collisions(unique, suffix).values()
        for table in group
    }
    runnable: list[TableRef] = []
    for table in unique:
        target = target_table_name(table, suffix)
        if table in colliding:
            others = ", ".join(
                t.qualified_name for t in colliding[table] if t != table
            )
            error = TargetNameCollisionError(
                f"Remote name '{target}' is also derived from {others}"
            )
            logger.warning("Table %s skipped: %s", table.qualified_name, error)
            _record(table, _failed(table, target, error))
        else:
            runnable.append(table)

    async def _worker(table: TableRef) -> None:
        async with semaphore:
            if stop.is_set():
                _record(
                    table,
                    TableOutcome(
                        source=table.qualified_name,
                        target=target_table_name(table, suffix),
                        status="skipped",
                    ),
                )
                return
            started.add(table)
            outcome = await sync_table(
                catalog, source, remote, table, suffix, settings.chunk_size
            )
            _record(table, outcome)
            if outcome.status == "failed" and settings.on_table_error == "abort":
                logger.error(
                    "Stopping after failure of %s", table.qualified_name
                )
                stop.set()

    try:
        async with asyncio.timeout(settings.deadline_seconds):
            async with asyncio.TaskGroup() as tg:
                for table in runnable:
                    tg.create_task(_worker(table))
    except TimeoutError:
        logger.error(
            "Replication deadline of %ss exceeded", settings.deadline_seconds
        )
        for table in runnable:
            if table in outcomes:
                continue
            target = target_table_name(table, suffix)
            if table in started:
                error = DeadlineExceededError(
                    f"Cancelled after {settings.deadline_seconds}s deadline"
                )
                _record(table, _failed(table, target, error))
            else:
                _record(
                    table,
                    TableOutcome(
                        source=table.qualified_name,
                        target=target,
                        status="skipped",
                    ),
                )

    return ReplicationReport(outcomes=[outcomes[t] for t in unique])
