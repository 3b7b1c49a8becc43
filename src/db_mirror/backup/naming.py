"""Backup file naming.

Backups are named ``<DatabaseName>_<ddMMyyyy>_<HH_mm>.bak``, e.g.
``Shop_16102026_14_05.bak`` for a backup taken at 14:05 on 16 Oct 2026.
"""

from datetime import datetime
from pathlib import PurePath, PurePosixPath, PureWindowsPath

from db_mirror.backup.models import BackupDescriptor

BACKUP_TIMESTAMP_FORMAT = "%d%m%Y_%H_%M"


def backup_file_name(database: str, timestamp: datetime) -> str:
    """Return the backup file name for ``database`` at ``timestamp``.

    Example:
        >>> backup_file_name("Shop", datetime(2026, 10, 16, 14, 5))
        'Shop_16102026_14_05.bak'
    """
    return f"{database}_{timestamp.strftime(BACKUP_TIMESTAMP_FORMAT)}.bak"


def _join(directory: str, file_name: str) -> str:
    # The path is resolved by the database server, which may be Windows
    # even when this process is not.
    path_type: type[PurePath] = (
        PureWindowsPath if "\\" in directory or ":" in directory[:3] else PurePosixPath
    )
    return str(path_type(directory) / file_name)


def build_backup_descriptor(
    database: str,
    directory: str,
    timestamp: datetime | None = None,
) -> BackupDescriptor:
    """Build the descriptor for a backup of ``database`` into ``directory``.

    The directory is not checked for existence or writability; the backup
    itself reports that.

    Args:
        database: Source database name.
        directory: Directory on the database server host.
        timestamp: Clock reading to name the file after.  Defaults to now.

    Returns:
        ``BackupDescriptor`` with the file name and full path.
    """
    if timestamp is None:
        timestamp = datetime.now()
    file_name = backup_file_name(database, timestamp)
    return BackupDescriptor(
        file_name=file_name,
        full_path=_join(directory, file_name),
        timestamp=timestamp,
    )
