"""Compatibility report, recommendations and warnings of a conversion."""

from __future__ import annotations

from typing import TYPE_CHECKING

from conversion.types import (
    CompatibilityReport,
    DocumentType,
    EntityKind,
    Recommendation,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from conversion.embedding import EmbeddingPlan
    from conversion.issues import Issue
    from conversion.relationships import RelationshipGraph
    from conversion.type_mapping import TypeMapping
    from conversion.types import Collection, Table

MANY_EMBEDDED = 3
WIDE_COLLECTION = 20

GENERAL_CONSIDERATIONS = (
    "Embedded documents grow the parent document; keep them under the 16MB "
    "document limit",
    "Reference fields need application-side lookups or $lookup stages",
    "Create indexes before bulk loading only where writes are light",
)


def incompatible_tables(tables: Iterable[Table], types: TypeMapping) -> list[str]:
    """Tables with unmapped or array typed columns, in input order."""
    flagged = {name for name, _ in types.unsupported_columns | types.array_columns}
    return [table.name for table in tables if table.name in flagged]


def relationship_strategy(
    table: Table,
    plan: EmbeddingPlan,
    kinds: dict[str, EntityKind],
    graph: RelationshipGraph,
) -> str:
    """One sentence describing what happened to a table."""
    owners = plan.owners
    if table.name in owners:
        return f"Embedded into '{owners[table.name]}'"

    parts: list[str] = []
    links = plan.links.get(table.name, [])
    if links:
        parts.append("embeds " + ", ".join(link.table for link in links))
    referenced = [
        edge.target_table
        for edge in graph.edges_from(table.name)
        if edge.target_table not in {link.table for link in links}
    ]
    if referenced:
        parts.append("references " + ", ".join(dict.fromkeys(referenced)))
    kind = kinds[table.name]
    if not parts:
        return f"Standalone {kind} collection"
    return f"{kind.capitalize()} collection; " + "; ".join(parts)


def build_compatibility_report(
    tables: Sequence[Table],
    types: TypeMapping,
    collections: Sequence[Collection],
    plan: EmbeddingPlan,
    kinds: dict[str, EntityKind],
    graph: RelationshipGraph,
) -> CompatibilityReport:
    """Per-table compatibility, type mappings and relationship strategies."""
    incompatible = incompatible_tables(tables, types)
    considerations = list(GENERAL_CONSIDERATIONS)
    for collection in collections:
        if len(collection.embedded_documents) > MANY_EMBEDDED:
            considerations.append(
                f"Collection '{collection.name}' embeds "
                f"{len(collection.embedded_documents)} documents; watch document "
                "size and update contention",
            )
        if len(collection.fields) > WIDE_COLLECTION:
            considerations.append(
                f"Collection '{collection.name}' has {len(collection.fields)} "
                "fields; consider projections for common reads",
            )

    return CompatibilityReport(
        compatible_tables=[t.name for t in tables if t.name not in incompatible],
        incompatible_tables=incompatible,
        type_mappings={
            f"{table}.{column}": str(document_type)
            for (table, column), document_type in types.types.items()
        },
        relationship_strategies={
            table.name: relationship_strategy(table, plan, kinds, graph)
            for table in tables
        },
        performance_considerations=considerations,
    )


def build_recommendations(
    collections: Sequence[Collection],
    report: CompatibilityReport,
    graph: RelationshipGraph,
) -> list[str]:
    """Optimisation hints for the converted schema."""
    recommendations: list[str] = []
    for collection in collections:
        if collection.embedded_documents:
            recommendations.append(
                f"'{collection.name}': read-heavy strategy; embedded data is "
                "returned with the parent in one read",
            )
        elif collection.references:
            recommendations.append(
                f"'{collection.name}': write-heavy strategy; references keep "
                "updates local to one collection",
            )
        if len(collection.embedded_documents) > MANY_EMBEDDED:
            recommendations.append(
                f"'{collection.name}': more than {MANY_EMBEDDED} embedded "
                "documents; consider moving rarely read ones to references",
            )
        if len(collection.fields) > WIDE_COLLECTION:
            recommendations.append(
                f"'{collection.name}': more than {WIDE_COLLECTION} fields; "
                "consider splitting rarely used fields out",
            )
        if collection.kind is EntityKind.JUNCTION:
            recommendations.append(
                f"'{collection.name}': junction collection; consider arrays of "
                "references on the linked collections",
            )

    recommendations.extend(
        f"Review table '{name}': it contains types without a direct document "
        "equivalent"
        for name in report.incompatible_tables
    )
    references = [
        edge
        for edge in graph.edges
        if edge.recommendation is Recommendation.REFERENCE
    ]
    if references:
        recommendations.append(
            f"{len(references)} relationship(s) kept as references because the "
            "referenced side is much larger",
        )
    return recommendations


def build_warnings(issues: Iterable[Issue], types: TypeMapping) -> list[str]:
    """Issues rendered in pipeline order, then general type notes."""
    warnings = [str(issue) for issue in issues]
    if DocumentType.OBJECT in types.types.values():
        warnings.append("JSON columns become embedded objects; validate their shape")
    if types.array_columns:
        warnings.append("Array columns need element type validation after import")
    return warnings
