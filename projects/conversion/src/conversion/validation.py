"""Consistency checks between the input schema and the produced output."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from conversion.types import ConsistencyReport

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from conversion.types import Collection, MigrationPlan


def validate_consistency(
    table_names: Iterable[str],
    collections: Sequence[Collection],
    plan: MigrationPlan | None = None,
) -> ConsistencyReport:
    """Cross-check table coverage, collection names and plan references.

    Every violation is collected; nothing short-circuits.
    """
    table_names = list(table_names)
    mismatches: list[str] = []

    roots = Counter(collection.source_table for collection in collections)
    embedded = Counter(
        doc.source_table
        for collection in collections
        for doc in collection.embedded_documents
    )
    covered = roots + embedded

    mismatches.extend(
        f"Table '{name}' is not represented by any collection"
        for name in table_names
        if name not in covered
    )
    for name, count in covered.items():
        if count > 1:
            places = []
            if roots[name]:
                places.append(f"{roots[name]} collection(s)")
            if embedded[name]:
                places.append(f"{embedded[name]} embedded document(s)")
            mismatches.append(
                f"Table '{name}' appears {count} times ({' and '.join(places)})",
            )
    known = set(table_names)
    mismatches.extend(
        f"Collection source '{name}' is not an input table"
        for name in covered
        if name not in known
    )
    names = Counter(collection.name for collection in collections)
    mismatches.extend(
        f"Collection name '{name}' is used by {count} collections"
        for name, count in names.items()
        if count > 1
    )

    if plan is not None:
        mismatches.extend(
            f"Step {step.step} ({step.action}) references unknown "
            f"collection '{collection}'"
            for step in plan.steps
            for collection in step.collections
            if collection not in names
        )

    return ConsistencyReport(mismatches=mismatches)
