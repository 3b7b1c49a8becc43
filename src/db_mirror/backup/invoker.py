"""Full database backup invocation."""

import logging

from db_mirror.adapters.base import BackupSink
from db_mirror.backup.models import BackupDescriptor
from db_mirror.errors import BackupFailedError

logger = logging.getLogger(__name__)


async def run_backup(
    sink: BackupSink,
    database: str,
    descriptor: BackupDescriptor,
) -> BackupDescriptor:
    """Write a full backup of ``database`` to ``descriptor.full_path``.

    An existing file at that path is overwritten.

    Raises:
        BackupFailedError: If the backup did not complete.  Callers must
            treat this as fatal and not start replication.
    """
    logger.info("Backing up %s to %s", database, descriptor.full_path)
    try:
        await sink.backup(database, descriptor.full_path)
    except BackupFailedError:
        raise
    except Exception as e:
        raise BackupFailedError(
            f"Backup of '{database}' to '{descriptor.full_path}' failed: {e}"
        ) from e
    logger.info("Backup of %s complete", database)
    return descriptor
