"""Schema snapshots and row counts read from a live database."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, func, inspect, select, table

from conversion import Column, ForeignKey, Table

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy import Engine, Inspector
    from sqlalchemy.engine.interfaces import (
        ReflectedColumn,
        ReflectedForeignKeyConstraint,
    )

    from conversion import RowCountProvider

logger = getLogger(__name__)


def read_only_sqlite(sqlite_location: Path) -> Engine:
    """Create a read-only SQLAlchemy engine for SQLite database."""
    connection_string = f"sqlite:///{sqlite_location}?mode=ro"
    return create_engine(connection_string, connect_args={"uri": True})


def _build_column(col_info: ReflectedColumn, primary_keys: list[str]) -> Column:
    """Build a column from SQLAlchemy column info."""
    return Column(
        name=col_info["name"],
        type=str(col_info["type"]),
        nullable=bool(col_info["nullable"]),
        primary_key=col_info["name"] in primary_keys,
        default=col_info.get("default"),
    )


def _build_foreign_keys(fk: ReflectedForeignKeyConstraint) -> list[ForeignKey]:
    """Split a (possibly composite) foreign key constraint per column."""
    return [
        ForeignKey(
            column=source_col,
            referenced_table=fk["referred_table"],
            referenced_column=target_col,
        )
        for source_col, target_col in zip(
            fk["constrained_columns"],
            fk["referred_columns"],
            strict=True,
        )
    ]


def _build_table(inspector: Inspector, table_name: str, schema: str | None) -> Table:
    """Build a table from database introspection."""
    columns_info = inspector.get_columns(table_name, schema=schema)
    pk_constraint = inspector.get_pk_constraint(table_name, schema=schema)
    foreign_keys = inspector.get_foreign_keys(table_name, schema=schema)

    primary_keys = pk_constraint.get("constrained_columns") or []
    return Table(
        name=table_name,
        columns=tuple(_build_column(col, primary_keys) for col in columns_info),
        primary_key=primary_keys[0] if len(primary_keys) == 1 else None,
        foreign_keys=tuple(
            key
            for constraint in foreign_keys
            for key in _build_foreign_keys(constraint)
        ),
    )


def reflect_tables(engine: Engine, schema: str | None = None) -> list[Table]:
    """Reflect every table of a database into an immutable snapshot."""
    inspector = inspect(engine)
    table_names = inspector.get_table_names(schema=schema)
    logger.debug("Reflecting %d tables from %s", len(table_names), engine.url)
    return [_build_table(inspector, name, schema) for name in table_names]


def table_row_counter(engine: Engine, schema: str | None = None) -> RowCountProvider:
    """Row-count provider issuing ``SELECT count(*)`` through ``engine``.

    Each call opens its own connection, so the provider can be used from
    several threads at once.
    """

    def count(table_name: str) -> int:
        query = select(func.count()).select_from(table(table_name, schema=schema))
        with engine.connect() as connection:
            return int(connection.execute(query).scalar_one())

    return count
