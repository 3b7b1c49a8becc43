"""Backup-then-replicate run orchestration.

``run_backup_and_sync()`` is the single operation behind the CLI:

1. Build the timestamped backup path and back up the source database.
2. Enumerate the source base tables.
3. Replicate every table to the remote endpoint.

A failed backup or enumeration stops the run with ``BackupFailedError`` /
``EnumerationFailedError``.  Per-table failures are reported, not raised.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from pydantic import BaseModel, Field

from db_mirror.adapters.base import RemoteEndpoint, SourceDatabase
from db_mirror.backup.invoker import run_backup
from db_mirror.backup.models import BackupDescriptor
from db_mirror.backup.naming import build_backup_descriptor
from db_mirror.config.models import RunConfig
from db_mirror.factory import create_remote, create_source
from db_mirror.schema.introspector import enumerate_tables
from db_mirror.schema.models import ReplicationReport, TableOutcome, TableRef
from db_mirror.schema.sync import replicate_tables

logger = logging.getLogger(__name__)


class RunReport(BaseModel):
    """Result of a complete backup-and-sync run."""

    backup: BackupDescriptor
    tables: list[TableRef] = Field(default_factory=list)
    replication: ReplicationReport = Field(default_factory=ReplicationReport)

    @property
    def success(self) -> bool:
        return self.replication.success


async def run_backup_and_sync(
    config: RunConfig,
    source: SourceDatabase | None = None,
    remote: RemoteEndpoint | None = None,
    clock: Callable[[], datetime] | None = None,
    on_table_done: Callable[[TableOutcome], None] | None = None,
) -> RunReport:
    """Back up the source database, then replicate its tables remotely.

    Adapters created here are closed before returning; adapters passed in
    are left open for the caller.

    Args:
        config: Run configuration.
        source: Local database adapter.  Created from ``config`` when
            ``None``.
        remote: Remote endpoint adapter.  Created from ``config`` when
            ``None``.
        clock: Returns the timestamp used to name the backup file.
            Defaults to ``datetime.now``.
        on_table_done: Called with each table's outcome as it completes.

    Returns:
        ``RunReport`` with the backup descriptor and per-table outcomes.

    Raises:
        BackupFailedError: If the backup failed.  No table is replicated.
        EnumerationFailedError: If the source tables could not be listed.
    """
    owned: list[SourceDatabase | RemoteEndpoint] = []
    try:
        if source is None:
            source = create_source(config)
            owned.append(source)
        if remote is None:
            remote = create_remote(config)
            owned.append(remote)

        descriptor = build_backup_descriptor(
            config.source_database,
            config.backup_directory,
            timestamp=clock() if clock is not None else None,
        )
        await run_backup(source, config.source_database, descriptor)

        tables = await enumerate_tables(source)

        logger.info(
            "Replicating %d tables to %s/%s with suffix '%s'",
            len(tables),
            config.remote_server,
            config.remote_database,
            config.suffix,
        )
        replication = await replicate_tables(
            catalog=source,
            source=source,
            remote=remote,
            tables=tables,
            suffix=config.suffix,
            settings=config.replication,
            on_table_done=on_table_done,
        )
    finally:
        for adapter in owned:
            await adapter.close()

    return RunReport(backup=descriptor, tables=tables, replication=replication)
