"""Relational to document schema conversion pipeline."""

from __future__ import annotations

from collections import Counter
from logging import getLogger
from typing import TYPE_CHECKING

from conversion.assembly import assemble_collections
from conversion.classification import classify_tables
from conversion.compatibility import (
    build_compatibility_report,
    build_recommendations,
    build_warnings,
)
from conversion.embedding import plan_embeddings
from conversion.indexes import plan_indexes
from conversion.issues import ConversionFailure, consistency_mismatch
from conversion.planning import plan_migration
from conversion.relationships import RelationshipGraph, analyze_relationships
from conversion.settings import Settings
from conversion.type_mapping import map_schema_types
from conversion.types import Column, ConversionResult, ForeignKey, Table
from conversion.validation import validate_consistency

if TYPE_CHECKING:
    from collections.abc import Iterable

    from conversion.statistics import RowCountProvider

logger = getLogger(__name__)

DEFAULT_SETTINGS = Settings()


def _duplicates(names: Iterable[str]) -> list[str]:
    return [name for name, count in Counter(names).items() if count > 1]


def _check_column(table: Table, column: object) -> None:
    if not isinstance(column, Column):
        msg = f"Expected Column in {table.name}, got {type(column).__name__}"
        raise ConversionFailure(msg)
    if not isinstance(column.name, str) or not column.name:
        msg = f"Column without a name in {table.name}"
        raise ConversionFailure(msg)
    if not isinstance(column.type, str):
        msg = f"Column {table.name}.{column.name} has no type name"
        raise ConversionFailure(msg)


def _check_foreign_key(table: Table, foreign_key: object) -> None:
    if not isinstance(foreign_key, ForeignKey):
        msg = f"Expected ForeignKey in {table.name}, got {type(foreign_key).__name__}"
        raise ConversionFailure(msg)
    if not all(isinstance(part, str) and part for part in foreign_key):
        msg = f"Incomplete foreign key in {table.name}: {foreign_key!r}"
        raise ConversionFailure(msg)


def validate_tables(tables: Iterable[object]) -> list[Table]:
    """Check the Table/Column contract of an input snapshot.

    Raises:
        ConversionFailure: If the snapshot is malformed

    """
    checked: list[Table] = []
    for table in tables:
        if not isinstance(table, Table):
            msg = f"Expected Table, got {type(table).__name__}"
            raise ConversionFailure(msg)
        if not isinstance(table.name, str) or not table.name:
            msg = "Table without a name"
            raise ConversionFailure(msg)
        checked.append(table)

    if duplicates := _duplicates(table.name for table in checked):
        msg = f"Duplicate table names: {', '.join(duplicates)}"
        raise ConversionFailure(msg)

    for table in checked:
        for column in table.columns:
            _check_column(table, column)
        for foreign_key in table.foreign_keys:
            _check_foreign_key(table, foreign_key)
        if duplicates := _duplicates(table.column_names):
            msg = f"Duplicate columns in {table.name}: {', '.join(duplicates)}"
            raise ConversionFailure(msg)
        columns = set(table.column_names)
        if table.primary_key is not None and table.primary_key not in columns:
            msg = f"Primary key {table.name}.{table.primary_key} is not a column"
            raise ConversionFailure(msg)
        for foreign_key in table.foreign_keys:
            if foreign_key.column not in columns:
                msg = f"Foreign key on unknown column {table.name}.{foreign_key.column}"
                raise ConversionFailure(msg)
    return checked


def run_pipeline(
    tables: list[Table],
    row_count_provider: RowCountProvider | None,
    settings: Settings,
) -> ConversionResult:
    """Run every stage in order over a validated snapshot."""
    edges, issues = analyze_relationships(tables, row_count_provider, settings)
    graph = RelationshipGraph(edges)
    logger.debug("Relationship analysis: %d edges, %d issues", len(edges), len(issues))

    kinds = classify_tables(tables, graph, settings)
    logger.debug("Classified %d tables", len(kinds))

    plan = plan_embeddings(tables, graph, kinds, settings)
    logger.debug("Planned %d root collections", len(plan.roots))

    types, type_issues = map_schema_types(tables)
    issues.extend(type_issues)
    collections = assemble_collections(tables, plan, kinds, types)
    by_name = {table.name: table for table in tables}
    for collection in collections:
        collection.indexes = plan_indexes(
            collection,
            by_name[collection.source_table],
            [by_name[doc.source_table] for doc in collection.embedded_documents],
        )
    logger.debug("Assembled %d collections", len(collections))

    report = build_compatibility_report(tables, types, collections, plan, kinds, graph)
    migration_plan = plan_migration(
        collections,
        edges,
        incompatible=len(report.incompatible_tables),
    )

    consistency = validate_consistency(
        (table.name for table in tables),
        collections,
        migration_plan,
    )
    issues.extend(consistency_mismatch(message) for message in consistency.mismatches)
    if not consistency.is_valid:
        logger.warning(
            "Consistency check found %d mismatches",
            len(consistency.mismatches),
        )

    return ConversionResult(
        success=True,
        collections=collections,
        compatibility_report=report,
        recommendations=build_recommendations(collections, report, graph),
        warnings=build_warnings(issues, types),
        relationships=edges,
        classifications=kinds,
        migration_plan=migration_plan,
        consistency=consistency,
        issues=issues,
    )


def convert(
    tables: Iterable[Table],
    row_count_provider: RowCountProvider | None = None,
    *,
    settings: Settings = DEFAULT_SETTINGS,
) -> ConversionResult:
    """Convert a relational schema snapshot into a document schema.

    Non-fatal conditions are reported in ``warnings`` and ``issues``. Any
    contract violation or internal error aborts the run and yields a failed
    result with no collections.

    Args:
        tables: Relational schema snapshot
        row_count_provider: Optional callable returning a table's row count
        settings: Thresholds used by every stage

    Returns:
        ConversionResult with ``success`` set accordingly

    """
    try:
        checked = validate_tables(tables)
        logger.debug("Converting %d tables", len(checked))
        return run_pipeline(checked, row_count_provider, settings)
    except (
        ConversionFailure,
        AttributeError,
        LookupError,
        TypeError,
        ValueError,
    ) as e:
        logger.exception("Conversion failed")
        return ConversionResult.failed(f"{type(e).__name__}: {e}")
