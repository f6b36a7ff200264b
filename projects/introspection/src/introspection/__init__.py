"""Schema snapshots for the conversion engine, from databases or JSON files."""

from introspection.reflection import read_only_sqlite, reflect_tables, table_row_counter
from introspection.snapshot import (
    SNAPSHOT_EXTENSIONS,
    load_snapshot,
    parse_snapshot,
    snapshot_from_tables,
)

__all__ = [
    "SNAPSHOT_EXTENSIONS",
    "load_snapshot",
    "parse_snapshot",
    "read_only_sqlite",
    "reflect_tables",
    "snapshot_from_tables",
    "table_row_counter",
]
