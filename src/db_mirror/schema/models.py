"""Pydantic models for catalog metadata and replication outcomes.

This module contains schema-domain models:
- Catalog models: TableRef, ColumnDef
- Translation result: TableTranslation
- Outcome models: TableOutcome, ReplicationReport
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Catalog Models
# ============================================================================


class TableRef(BaseModel):
    """A base table in the source database.

    Example:
        >>> TableRef(schema_name="dbo", table_name="Orders").qualified_name
        'dbo.Orders'
    """

    model_config = ConfigDict(frozen=True)

    schema_name: str
    table_name: str

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"

    def __str__(self) -> str:
        return self.qualified_name


class ColumnDef(BaseModel):
    """One column of a source table, as read from the catalog.

    ``max_length`` is the declared character/byte length; ``-1`` means
    ``MAX``.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type_name: str
    max_length: int | None = None
    precision: int | None = None
    scale: int | None = None


class RemoteTableState(str, Enum):
    """Whether the remote target table existed when checked."""

    ABSENT = "absent"
    PRESENT = "present"


# ============================================================================
# Translation Result
# ============================================================================


class TableTranslation(BaseModel):
    """Everything needed to replicate one source table."""

    source: TableRef
    target: str
    columns: list[ColumnDef]
    create_statement: str

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]


# ============================================================================
# Outcome Models
# ============================================================================


class TableOutcome(BaseModel):
    """Result of replicating one table."""

    source: str
    target: str = ""
    status: Literal["succeeded", "failed", "skipped"]
    remote_state: RemoteTableState | None = None
    rows_copied: int = 0
    error_kind: str | None = None
    error: str | None = None

    @property
    def created(self) -> bool:
        """True when the remote table was created during this run."""
        return self.remote_state is RemoteTableState.ABSENT and self.status == "succeeded"


class ReplicationReport(BaseModel):
    """Per-table outcomes of a replication run.

    Example:
        >>> report = ReplicationReport()
        >>> report.success
        True
        >>> report.format_report()
        'No tables replicated'
    """

    outcomes: list[TableOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[TableOutcome]:
        return [o for o in self.outcomes if o.status == "succeeded"]

    @property
    def failed(self) -> list[TableOutcome]:
        return [o for o in self.outcomes if o.status == "failed"]

    @property
    def skipped(self) -> list[TableOutcome]:
        return [o for o in self.outcomes if o.status == "skipped"]

    @property
    def success(self) -> bool:
        """True when no table failed or was skipped."""
        return not self.failed and not self.skipped

    def outcome_for(self, source: str) -> TableOutcome | None:
        for outcome in self.outcomes:
            if outcome.source == source:
                return outcome
        return None

    def format_report(self) -> str:
        """Format outcomes as a human-readable report."""
        if not self.outcomes:
            return "No tables replicated"

        lines = [
            f"Replicated {len(self.succeeded)}/{len(self.outcomes)} tables"
        ]
        for outcome in self.outcomes:
            if outcome.status == "succeeded":
                lines.append(
                    f"  ok      {outcome.source} -> {outcome.target} "
                    f"({outcome.rows_copied} rows)"
                )
            elif outcome.status == "failed":
                lines.append(
                    f"  FAILED  {outcome.source}: "
                    f"{outcome.error_kind}: {outcome.error}"
                )
            else:
                lines.append(f"  skipped {outcome.source}")
        return "\n".join(lines)
