"""Non-fatal conversion issues and the fatal conversion failure."""

from __future__ import annotations

from enum import StrEnum, auto
from typing import NamedTuple


class IssueKind(StrEnum):
    """Kinds of non-fatal conditions accumulated during a conversion."""

    MISSING_REFERENCED_TABLE = auto()
    ROW_COUNT_UNAVAILABLE = auto()
    UNSUPPORTED_TYPE = auto()
    CONSISTENCY_MISMATCH = auto()

    @property
    def label(self) -> str:
        """Human readable label, e.g. ``UnsupportedTypeWarning``."""
        if self is IssueKind.CONSISTENCY_MISMATCH:
            return "ConsistencyMismatch"
        words = self.value.split("_")
        return "".join(word.capitalize() for word in words) + "Warning"


class Issue(NamedTuple):
    """A non-fatal condition, reported instead of raised."""

    kind: IssueKind
    message: str
    table: str | None = None
    column: str | None = None

    def __str__(self) -> str:
        """Render as a warning line."""
        return f"{self.kind.label}: {self.message}"


def missing_referenced_table(table: str, column: str, target: str) -> Issue:
    """Foreign key pointing at a table absent from the snapshot."""
    return Issue(
        IssueKind.MISSING_REFERENCED_TABLE,
        f"{table}.{column} references missing table '{target}'; edge skipped",
        table,
        column,
    )


def row_count_unavailable(table: str | None, default: int, reason: str) -> Issue:
    """Row count could not be fetched and a default estimate is used."""
    subject = f"table '{table}'" if table else "all tables"
    return Issue(
        IssueKind.ROW_COUNT_UNAVAILABLE,
        f"row count for {subject} unavailable ({reason}); assuming {default} rows",
        table,
    )


def unsupported_type(table: str, column: str, type_name: str) -> Issue:
    """Relational type without a document mapping."""
    return Issue(
        IssueKind.UNSUPPORTED_TYPE,
        f"{table}.{column} has unsupported type '{type_name}'; mapped to String",
        table,
        column,
    )


def consistency_mismatch(message: str, table: str | None = None) -> Issue:
    """Coverage violation found after the conversion."""
    return Issue(IssueKind.CONSISTENCY_MISMATCH, message, table)


class ConversionFailure(Exception):
    """Unrecoverable error that aborts a conversion run."""
