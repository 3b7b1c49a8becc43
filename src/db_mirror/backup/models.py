"""Backup descriptor model."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class BackupDescriptor(BaseModel):
    """Where a full backup is written.  Created once per run."""

    model_config = ConfigDict(frozen=True)

    file_name: str
    full_path: str
    timestamp: datetime
