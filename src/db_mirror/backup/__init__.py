"""Full database backup to a timestamped local file.

Usage:
    from db_mirror.backup import build_backup_descriptor, run_backup

    descriptor = build_backup_descriptor("Shop", "D:/Backups")
    await run_backup(source, "Shop", descriptor)
"""

from db_mirror.backup.invoker import run_backup
from db_mirror.backup.models import BackupDescriptor
from db_mirror.backup.naming import backup_file_name, build_backup_descriptor

__all__ = [
    "BackupDescriptor",
    "backup_file_name",
    "build_backup_descriptor",
    "run_backup",
]
