"""JSON schema snapshots: loading and validation."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, cast

from conversion import Column, ForeignKey, Table

if TYPE_CHECKING:
    from pathlib import Path

    from introspection.types import (
        ColumnSnapshot,
        ForeignKeySnapshot,
        SchemaSnapshot,
        TableSnapshot,
    )

SNAPSHOT_EXTENSIONS = {".json"}


def _require(data: Any, key: str, kind: type, where: str) -> Any:  # noqa: ANN401
    """Fetch a required key of a given type from a JSON object."""
    if not isinstance(data, dict) or key not in data:
        msg = f"{where}: missing '{key}'"
        raise ValueError(msg)
    value = data[key]
    if not isinstance(value, kind) or (isinstance(value, bool) and kind is not bool):
        msg = f"{where}: '{key}' must be of type {kind.__name__}"
        raise ValueError(msg)
    return value


def _column(data: ColumnSnapshot, where: str) -> Column:
    name = _require(data, "name", str, where)
    return Column(
        name=name,
        type=_require(data, "type", str, f"{where}.{name}"),
        nullable=bool(data.get("nullable", True)),
        primary_key=bool(data.get("primary_key", False)),
        default=data.get("default"),
    )


def _foreign_key(data: ForeignKeySnapshot, where: str) -> ForeignKey:
    return ForeignKey(
        column=_require(data, "column", str, where),
        referenced_table=_require(data, "referenced_table", str, where),
        referenced_column=_require(data, "referenced_column", str, where),
    )


def _table(data: TableSnapshot) -> Table:
    name = _require(data, "name", str, "table")
    columns = _require(data, "columns", list, name)
    foreign_keys = data.get("foreign_keys", [])
    if not isinstance(foreign_keys, list):
        msg = f"{name}: 'foreign_keys' must be of type list"
        raise ValueError(msg)
    primary_key = data.get("primary_key")
    if primary_key is not None and not isinstance(primary_key, str):
        msg = f"{name}: 'primary_key' must be a column name"
        raise ValueError(msg)
    return Table(
        name=name,
        columns=tuple(_column(column, name) for column in columns),
        primary_key=primary_key,
        foreign_keys=tuple(_foreign_key(fk, name) for fk in foreign_keys),
    )


def _row_counts(data: object) -> dict[str, int]:
    if not isinstance(data, dict):
        msg = "'row_counts' must be an object"
        raise ValueError(msg)
    counts = cast("dict[object, object]", data)
    for name, count in counts.items():
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            msg = f"row count of '{name}' must be a non-negative integer"
            raise ValueError(msg)
    return cast("dict[str, int]", counts)


def parse_snapshot(data: object) -> tuple[list[Table], dict[str, int] | None]:
    """Parse decoded snapshot JSON into tables and optional row counts.

    Raises:
        ValueError: If the snapshot is malformed

    """
    snapshot = cast("SchemaSnapshot", data)
    tables = _require(snapshot, "tables", list, "snapshot")
    row_counts = snapshot.get("row_counts")
    return (
        [_table(table) for table in tables],
        None if row_counts is None else _row_counts(row_counts),
    )


def load_snapshot(path: Path) -> tuple[list[Table], dict[str, int] | None]:
    """Load a JSON schema snapshot from a file."""
    with path.open(encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            msg = f"{path} is not valid JSON: {e}"
            raise ValueError(msg) from e
    return parse_snapshot(data)


def snapshot_from_tables(
    tables: list[Table],
    row_counts: dict[str, int] | None = None,
) -> SchemaSnapshot:
    """Build the JSON snapshot structure for a list of tables."""
    snapshot: SchemaSnapshot = {
        "tables": [
            {
                "name": table.name,
                "columns": [
                    {
                        "name": column.name,
                        "type": column.type,
                        "nullable": column.nullable,
                        "primary_key": column.primary_key,
                        "default": column.default,
                    }
                    for column in table.columns
                ],
                "primary_key": table.primary_key,
                "foreign_keys": [
                    {
                        "column": fk.column,
                        "referenced_table": fk.referenced_table,
                        "referenced_column": fk.referenced_column,
                    }
                    for fk in table.foreign_keys
                ],
            }
            for table in tables
        ],
    }
    if row_counts is not None:
        snapshot["row_counts"] = row_counts
    return snapshot
