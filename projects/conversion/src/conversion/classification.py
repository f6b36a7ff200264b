"""Entity classification of relational tables."""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from conversion.types import EntityKind

if TYPE_CHECKING:
    from collections.abc import Iterable

    from conversion.relationships import RelationshipGraph
    from conversion.settings import Settings
    from conversion.types import Table

JUNCTION_KEY_COUNT = 2


class EntityProfile(NamedTuple):
    """Classification of a table with the evidence it was based on."""

    table: str
    kind: EntityKind
    incoming: int
    outgoing: int
    columns: int


def has_primary_key(table: Table) -> bool:
    """Check for a declared or flagged primary key."""
    return table.primary_key is not None or any(c.primary_key for c in table.columns)


def is_view_like(table: Table, settings: Settings) -> bool:
    """Keyless, unlinked tables named like a derived listing or report."""
    return (
        not has_primary_key(table)
        and not table.foreign_keys
        and table.name.lower().endswith(settings.view_suffixes)
    )


def is_junction(table: Table, by_name: dict[str, Table], settings: Settings) -> bool:
    """Narrow linking tables between two substantial tables."""
    if len(table.foreign_keys) != JUNCTION_KEY_COUNT:
        return False
    if table.column_count > settings.junction_max_columns or "_" not in table.name:
        return False
    referenced = [by_name.get(fk.referenced_table) for fk in table.foreign_keys]
    return all(
        target is not None
        and target.column_count >= settings.junction_min_referenced_columns
        for target in referenced
    )


def is_core(table: Table, graph: RelationshipGraph, settings: Settings) -> bool:
    """Tables with enough fan-in, fan-out or width to stand on their own."""
    return (
        graph.fan_in(table.name) >= settings.core_min_incoming
        or graph.fan_out(table.name) >= settings.core_min_outgoing
        or table.column_count >= settings.core_min_columns
    )


def classify_table(
    table: Table,
    by_name: dict[str, Table],
    graph: RelationshipGraph,
    settings: Settings,
) -> EntityKind:
    """Assign exactly one kind to a table.

    Structural patterns (view-like, junction) are checked first, since a
    junction always owns two edges and would otherwise pass the core rule.
    """
    if is_view_like(table, settings):
        return EntityKind.VIEW
    if is_junction(table, by_name, settings):
        return EntityKind.JUNCTION
    if is_core(table, graph, settings):
        return EntityKind.CORE
    if table.column_count <= settings.reference_max_columns:
        return EntityKind.REFERENCE
    return EntityKind.STANDALONE


def profile_tables(
    tables: Iterable[Table],
    graph: RelationshipGraph,
    settings: Settings,
) -> list[EntityProfile]:
    """Classify every table, in input order."""
    tables = list(tables)
    by_name = {table.name: table for table in tables}
    return [
        EntityProfile(
            table=table.name,
            kind=classify_table(table, by_name, graph, settings),
            incoming=graph.fan_in(table.name),
            outgoing=graph.fan_out(table.name),
            columns=table.column_count,
        )
        for table in tables
    ]


def classify_tables(
    tables: Iterable[Table],
    graph: RelationshipGraph,
    settings: Settings,
) -> dict[str, EntityKind]:
    """Map every table name to its entity kind."""
    return {
        profile.table: profile.kind
        for profile in profile_tables(tables, graph, settings)
    }
