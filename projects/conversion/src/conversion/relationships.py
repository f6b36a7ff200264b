"""Foreign key graph construction and relationship scoring."""

from __future__ import annotations

from collections import Counter
from logging import getLogger
from typing import TYPE_CHECKING, NamedTuple

from conversion.issues import Issue, missing_referenced_table
from conversion.statistics import collect_row_counts
from conversion.types import (
    Recommendation,
    RelationshipEdge,
    Strength,
    Table,
    UsageFrequency,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from conversion.settings import Settings
    from conversion.statistics import RowCountProvider
    from conversion.types import ForeignKey

logger = getLogger(__name__)


class ResolvedKey(NamedTuple):
    """A foreign key whose referenced table exists in the snapshot."""

    source: Table
    foreign_key: ForeignKey
    target: Table


def resolve_foreign_keys(
    tables: Iterable[Table],
) -> tuple[list[ResolvedKey], list[Issue]]:
    """Resolve every foreign key against the snapshot.

    Dangling keys are skipped and reported once each.
    """
    tables = list(tables)
    by_name = {table.name: table for table in tables}

    resolved: list[ResolvedKey] = []
    issues: list[Issue] = []
    for table in tables:
        for foreign_key in table.foreign_keys:
            target = by_name.get(foreign_key.referenced_table)
            if target is None:
                logger.debug(
                    "Skipping %s.%s: no table %s",
                    table.name,
                    foreign_key.column,
                    foreign_key.referenced_table,
                )
                issues.append(
                    missing_referenced_table(
                        table.name,
                        foreign_key.column,
                        foreign_key.referenced_table,
                    ),
                )
                continue
            resolved.append(ResolvedKey(table, foreign_key, target))
    return resolved, issues


def usage_frequency(source: Table, target: Table, settings: Settings) -> UsageFrequency:
    """Structural usage estimate from the column counts of both tables."""
    widest = max(source.column_count, target.column_count)
    if widest > settings.high_usage_columns:
        return UsageFrequency.HIGH
    if widest > settings.medium_usage_columns:
        return UsageFrequency.MEDIUM
    return UsageFrequency.LOW


def score_strength(
    source_rows: int,
    target_rows: int,
    settings: Settings,
) -> tuple[Strength, Recommendation]:
    """Score a relationship from the row ratio of its two tables.

    Many source rows per target row favour embedding, few favour a reference.
    """
    ratio = source_rows / max(target_rows, 1)
    if ratio >= settings.strong_ratio:
        return Strength.STRONG, Recommendation.EMBED
    if ratio <= settings.weak_ratio:
        return Strength.WEAK, Recommendation.REFERENCE
    return Strength.WEAK, Recommendation.HYBRID


def score_edges(
    resolved: Iterable[ResolvedKey],
    row_counts: Mapping[str, int],
    settings: Settings,
) -> list[RelationshipEdge]:
    """Score resolved foreign keys into relationship edges.

    Edges depend only on the schema and row-count snapshots; tables missing
    from ``row_counts`` use the default estimate.
    """
    edges: list[RelationshipEdge] = []
    for source, foreign_key, target in resolved:
        strength, recommendation = score_strength(
            row_counts.get(source.name, settings.default_row_count),
            row_counts.get(target.name, settings.default_row_count),
            settings,
        )
        edges.append(
            RelationshipEdge(
                source_table=source.name,
                source_column=foreign_key.column,
                target_table=target.name,
                target_column=foreign_key.referenced_column,
                strength=strength,
                usage_frequency=usage_frequency(source, target, settings),
                recommendation=recommendation,
            ),
        )
    return edges


class RelationshipGraph:
    """Directed foreign key graph over scored edges."""

    def __init__(self, edges: Iterable[RelationshipEdge]) -> None:
        """Index edges by source and target table."""
        self.edges = list(edges)
        self.incoming = Counter(edge.target_table for edge in self.edges)
        self.outgoing = Counter(edge.source_table for edge in self.edges)

    def edges_from(self, table: str) -> list[RelationshipEdge]:
        """Edges owned by a table, in declaration order."""
        return [edge for edge in self.edges if edge.source_table == table]

    def edges_to(self, table: str) -> list[RelationshipEdge]:
        """Edges targeting a table, in declaration order."""
        return [edge for edge in self.edges if edge.target_table == table]

    def edge(self, source: str, column: str) -> RelationshipEdge | None:
        """The edge created by a given foreign key column, if resolved."""
        return next(
            (
                edge
                for edge in self.edges
                if edge.source_table == source and edge.source_column == column
            ),
            None,
        )

    def fan_in(self, table: str) -> int:
        """Number of edges targeting a table."""
        return self.incoming[table]

    def fan_out(self, table: str) -> int:
        """Number of edges owned by a table."""
        return self.outgoing[table]


def analyze_relationships(
    tables: Iterable[Table],
    provider: RowCountProvider | None,
    settings: Settings,
) -> tuple[list[RelationshipEdge], list[Issue]]:
    """Build scored edges for every resolvable foreign key.

    Row counts are fetched only for tables taking part in a resolved edge.

    Returns:
        Tuple of (edges, issues)

    """
    resolved, issues = resolve_foreign_keys(tables)
    involved = (
        name for key in resolved for name in (key.source.name, key.target.name)
    )
    row_counts, count_issues = collect_row_counts(provider, involved, settings)
    edges = score_edges(resolved, row_counts, settings)
    logger.debug("Scored %d relationship edges", len(edges))
    return edges, [*issues, *count_issues]
