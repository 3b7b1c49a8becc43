"""Exception hierarchy for backup and replication runs.

Every error carries a ``kind`` string that is written into the outcome
report, so a failed table reads ``RemoteUnreachable`` rather than a
Python class name.

Run-fatal errors (``BackupFailedError``, ``EnumerationFailedError``) stop the
run.  The remaining kinds are caught at the table boundary by
``replicate_tables()`` and recorded per table.
"""


class MirrorError(Exception):
    """Base class for all db-mirror errors."""

    kind = "MirrorError"


class ConfigError(MirrorError):
    """Raised when run configuration is missing or invalid."""

    kind = "ConfigError"


class BackupFailedError(MirrorError):
    """Raised when the full database backup could not be written."""

    kind = "BackupFailed"


class EnumerationFailedError(MirrorError):
    """Raised when the source catalog could not be read."""

    kind = "EnumerationFailed"


class TranslationFailedError(MirrorError):
    """Raised when a CREATE TABLE statement cannot be built for a table."""

    kind = "TranslationFailed"


class RemoteUnreachableError(MirrorError):
    """Raised when the remote endpoint cannot be reached or rejects the login."""

    kind = "RemoteUnreachable"


class RemoteDDLFailedError(MirrorError):
    """Raised when the remote endpoint rejects a CREATE TABLE statement."""

    kind = "RemoteDDLFailed"


class RemoteCopyFailedError(MirrorError):
    """Raised when clearing or populating a remote table fails."""

    kind = "RemoteCopyFailed"


class TargetNameCollisionError(MirrorError):
    """Raised when two source tables map to the same remote table name."""

    kind = "TargetNameCollision"


class DeadlineExceededError(MirrorError):
    """Raised when the overall replication deadline expires."""

    kind = "DeadlineExceeded"
