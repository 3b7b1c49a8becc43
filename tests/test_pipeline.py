"""End-to-end tests for run_backup_and_sync() with in-memory adapters."""

from datetime import datetime
from unittest.mock import patch

import pytest

from db_mirror.config.models import RunConfig
from db_mirror.errors import BackupFailedError, EnumerationFailedError
from db_mirror.pipeline import run_backup_and_sync

from fakes import FakeRemote, FakeSource, orders_table, simple_table

FIXED = datetime(2026, 10, 16, 14, 5)


def _config(**kwargs) -> RunConfig:
    values = {
        "source_database": "Shop",
        "suffix": "bi",
        "backup_directory": "/backups",
        "remote_server": "warehouse.internal",
        "remote_database": "Warehouse",
    }
    values.update(kwargs)
    return RunConfig(**values)


class TestRunBackupAndSync:
    """Verify backup-then-replicate orchestration."""

    @pytest.mark.asyncio
    async def test_shop_orders_scenario(self) -> None:
        """dbo.Orders in Shop is backed up, created remotely and populated."""
        ref, columns, rows = orders_table()
        source = FakeSource([(ref, columns, rows)])
        remote = FakeRemote()

        report = await run_backup_and_sync(
            _config(), source=source, remote=remote, clock=lambda: FIXED
        )

        assert source.backups == [("Shop", "/backups/Shop_16102026_14_05.bak")]
        assert report.backup.file_name == "Shop_16102026_14_05.bak"
        assert report.tables == [ref]
        assert report.success
        assert remote.ddl["dbo_Orders_bi"] == (
            "CREATE TABLE [dbo_Orders_bi] ([Id] int, [Note] nvarchar(50))"
        )
        assert remote.tables["dbo_Orders_bi"] == rows

    @pytest.mark.asyncio
    async def test_backup_failure_stops_run(self) -> None:
        """No table is touched when the backup fails."""
        source = FakeSource(
            [orders_table()], backup_error=RuntimeError("BACKUP DATABASE is terminating abnormally")
        )
        remote = FakeRemote()

        with pytest.raises(BackupFailedError):
            await run_backup_and_sync(_config(), source=source, remote=remote)

        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_enumeration_failure_stops_run(self) -> None:
        """A catalog failure after the backup is fatal."""
        source = FakeSource(list_error=RuntimeError("catalog unavailable"))
        remote = FakeRemote()

        with pytest.raises(EnumerationFailedError, match="catalog unavailable"):
            await run_backup_and_sync(_config(), source=source, remote=remote)

        assert len(source.backups) == 1
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_per_table_failures_reported(self) -> None:
        """A table failure yields a report, not an exception."""
        source = FakeSource([simple_table(n) for n in ("A", "B")])
        remote = FakeRemote(fail_create={"dbo_A_bi"})

        report = await run_backup_and_sync(_config(), source=source, remote=remote)

        assert not report.success
        assert report.replication.outcome_for("dbo.A").error_kind == "RemoteDDLFailed"
        assert report.replication.outcome_for("dbo.B").status == "succeeded"

    @pytest.mark.asyncio
    async def test_passed_adapters_left_open(self) -> None:
        """Adapters supplied by the caller are not closed."""
        source = FakeSource([orders_table()])
        remote = FakeRemote()

        await run_backup_and_sync(_config(), source=source, remote=remote)

        assert not source.closed
        assert not remote.closed

    @pytest.mark.asyncio
    async def test_created_adapters_closed(self) -> None:
        """Adapters built from the config are closed, even on failure."""
        source = FakeSource(backup_error=RuntimeError("disk full"))
        remote = FakeRemote()

        with patch("db_mirror.pipeline.create_source", return_value=source), \
             patch("db_mirror.pipeline.create_remote", return_value=remote):
            with pytest.raises(BackupFailedError):
                await run_backup_and_sync(_config())

        assert source.closed
        assert remote.closed

    @pytest.mark.asyncio
    async def test_source_closed_when_remote_cannot_be_built(self) -> None:
        """The source adapter is closed if building the remote one fails."""
        source = FakeSource()

        with patch("db_mirror.pipeline.create_source", return_value=source), \
             patch("db_mirror.pipeline.create_remote", side_effect=ValueError("bad driver")):
            with pytest.raises(ValueError, match="bad driver"):
                await run_backup_and_sync(_config())

        assert source.closed
        assert source.backups == []
