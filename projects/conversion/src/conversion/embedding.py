"""Embedding planner: which tables fold into which root collections."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum, auto
from logging import getLogger
from typing import TYPE_CHECKING, NamedTuple

from conversion.types import (
    EmbeddingStrategy,
    EntityKind,
    Recommendation,
    RelationshipEdge,
    RelationshipType,
    Table,
    UsageFrequency,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from conversion.relationships import RelationshipGraph
    from conversion.settings import Settings

logger = getLogger(__name__)

NEVER_EMBEDDED = frozenset({EntityKind.JUNCTION, EntityKind.VIEW})


class Direction(StrEnum):
    """Which side of the edge the embedded table sits on."""

    CHILD = auto()  # embedded table points at its parent
    TARGET = auto()  # parent points at the embedded table


class EmbeddingLink(NamedTuple):
    """A table folded into a root collection."""

    table: str
    parent: str
    edge: RelationshipEdge
    direction: Direction
    relationship_type: RelationshipType
    strategy: EmbeddingStrategy


@dataclass
class EmbeddingPlan:
    """Root tables in input order and the links folded into each."""

    roots: list[str] = field(default_factory=list)
    links: dict[str, list[EmbeddingLink]] = field(default_factory=dict)

    @property
    def owners(self) -> dict[str, str]:
        """Embedded table -> root table owning it."""
        return {
            link.table: root for root, links in self.links.items() for link in links
        }

    def host(self, table: str) -> str | None:
        """Root table whose collection represents ``table``."""
        if table in self.links:
            return table
        return self.owners.get(table)


def relationship_type(
    link_direction: Direction,
    edge: RelationshipEdge,
    table: Table,
) -> RelationshipType:
    """Cardinality of an embedded table relative to its parent.

    A child linked through its own primary key holds at most one row per
    parent; other children are lists. A table the parent points at is a
    single sub-document.
    """
    if link_direction is Direction.TARGET:
        return RelationshipType.ONE_TO_ONE
    if edge.source_column == table.key_column:
        return RelationshipType.ONE_TO_ONE
    return RelationshipType.ONE_TO_MANY


def embedding_strategy(edge: RelationshipEdge) -> EmbeddingStrategy:
    """Full embedding for strong edges, partial for busy hybrid edges."""
    if edge.recommendation is Recommendation.EMBED:
        return EmbeddingStrategy.FULL_EMBED
    if edge.usage_frequency is UsageFrequency.HIGH:
        return EmbeddingStrategy.PARTIAL_EMBED
    return EmbeddingStrategy.FULL_EMBED


class EmbeddingPlanner:
    """Plans cycle-safe embeddings with exclusive ownership."""

    def __init__(
        self,
        tables: Iterable[Table],
        graph: RelationshipGraph,
        kinds: dict[str, EntityKind],
        settings: Settings,
    ) -> None:
        """Initialize with the classified schema snapshot."""
        self.tables = list(tables)
        self.by_name = {table.name: table for table in self.tables}
        self.position = {table.name: i for i, table in enumerate(self.tables)}
        self.graph = graph
        self.kinds = kinds
        self.settings = settings

    def is_embeddable(self, name: str) -> bool:
        """Narrow enough to embed and not a shared or structural table."""
        return (
            self.kinds[name] not in NEVER_EMBEDDED
            and self.by_name[name].column_count <= self.settings.embeddable_max_columns
            and self.graph.fan_in(name) < self.settings.core_min_incoming
        )

    def candidates(self, parent: str, excluded: set[str]) -> list[EmbeddingLink]:
        """Embeddable neighbours of ``parent``, deduplicated by table name.

        Tables pointing at the parent come first, then tables the parent
        points at. Edges recommending a reference never produce a link.
        """
        neighbours = [
            (edge.source_table, edge, Direction.CHILD)
            for edge in self.graph.edges_to(parent)
        ] + [
            (edge.target_table, edge, Direction.TARGET)
            for edge in self.graph.edges_from(parent)
        ]

        found: dict[str, EmbeddingLink] = {}
        for name, edge, direction in neighbours:
            if name == parent or name in excluded or name in found:
                continue
            if edge.recommendation is Recommendation.REFERENCE:
                continue
            if not self.is_embeddable(name):
                continue
            found[name] = EmbeddingLink(
                table=name,
                parent=parent,
                edge=edge,
                direction=direction,
                relationship_type=relationship_type(
                    direction,
                    edge,
                    self.by_name[name],
                ),
                strategy=embedding_strategy(edge),
            )
        return list(found.values())

    def plan(self) -> EmbeddingPlan:
        """Assign every table to exactly one root collection.

        Core tables are visited by descending fan-in, then input order. Each
        root takes its direct candidates and flattens one further level of
        candidates beside them; the per-root visited set keeps mutually
        referencing tables from being revisited.
        """
        core = sorted(
            (t.name for t in self.tables if self.kinds[t.name] is EntityKind.CORE),
            key=lambda name: (-self.graph.fan_in(name), self.position[name]),
        )

        assigned: set[str] = set()
        links: dict[str, list[EmbeddingLink]] = {}
        for root in core:
            if root in assigned:
                continue
            assigned.add(root)
            visited = {root}

            direct = self.candidates(root, visited | assigned)
            visited.update(link.table for link in direct)
            root_links = list(direct)
            for link in direct:
                nested = self.candidates(link.table, visited | assigned)
                visited.update(n.table for n in nested)
                root_links.extend(nested)

            assigned.update(visited)
            links[root] = root_links
            logger.debug(
                "Root %s embeds %s",
                root,
                ", ".join(link.table for link in root_links) or "nothing",
            )

        for table in self.tables:
            if table.name not in assigned:
                assigned.add(table.name)
                links[table.name] = []

        roots = sorted(links, key=self.position.__getitem__)
        return EmbeddingPlan(roots=roots, links={root: links[root] for root in roots})


def plan_embeddings(
    tables: Iterable[Table],
    graph: RelationshipGraph,
    kinds: dict[str, EntityKind],
    settings: Settings,
) -> EmbeddingPlan:
    """Plan embeddings for a classified schema."""
    return EmbeddingPlanner(tables, graph, kinds, settings).plan()
