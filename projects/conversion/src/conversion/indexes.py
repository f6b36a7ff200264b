"""Index planning for assembled collections."""

from __future__ import annotations

from typing import TYPE_CHECKING

from conversion.assembly import ID_FIELD
from conversion.types import DocumentType, Index

if TYPE_CHECKING:
    from collections.abc import Iterable

    from conversion.types import Collection, Table

QUERY_FIELDS = ("created_at", "updated_at", "status", "type")


def index_name(collection: str, keys: Iterable[str]) -> str:
    """Conventional index name, e.g. ``idx_users_created_at``."""
    suffix = "_".join(key.replace(".", "_") for key in keys)
    return f"idx_{collection}_{suffix}"


def unreferenced_keys(
    collection: Collection,
    table: Table,
    embedded_tables: Iterable[Table] = (),
) -> list[tuple[str, str]]:
    """Retained foreign key fields without a reference, as (path, target).

    These are keys whose referenced table is absent from the snapshot.
    """
    referenced = {reference.field for reference in collection.references}
    documents = [(table, "", [field.name for field in collection.fields])]
    by_name = {source.name: source for source in embedded_tables}
    documents.extend(
        (by_name[doc.source_table], f"{doc.name}.", [f.name for f in doc.fields])
        for doc in collection.embedded_documents
        if doc.source_table in by_name
    )
    return [
        (f"{prefix}{fk.column}", fk.referenced_table)
        for source, prefix, fields in documents
        for fk in source.foreign_keys
        if fk.column in fields and f"{prefix}{fk.column}" not in referenced
    ]


def plan_indexes(
    collection: Collection,
    table: Table,
    embedded_tables: Iterable[Table] = (),
) -> list[Index]:
    """Indexes for one collection, without the implicit ``_id`` index.

    Every retained foreign key field is indexed, referenced or not. Every
    key tuple is emitted at most once; the first rule producing it wins.
    """
    field_names = [field.name for field in collection.fields]
    candidates: list[Index] = []

    primary_key = table.key_column
    if primary_key is not None and primary_key in field_names:
        candidates.append(
            Index(
                name=index_name(collection.name, (primary_key,)),
                keys=(primary_key,),
                unique=True,
                description=f"Original primary key of {table.name}",
            ),
        )

    candidates.extend(
        Index(
            name=index_name(collection.name, (reference.field,)),
            keys=(reference.field,),
            description=f"Reference to {reference.collection}",
        )
        for reference in collection.references
    )
    candidates.extend(
        Index(
            name=index_name(collection.name, (path,)),
            keys=(path,),
            description=f"Foreign key to missing table {target}",
        )
        for path, target in unreferenced_keys(collection, table, embedded_tables)
    )

    searchable = tuple(
        field.name
        for field in collection.fields
        if field.type is DocumentType.STRING and field.name != ID_FIELD
    )
    if searchable:
        candidates.append(
            Index(
                name=f"idx_{collection.name}_search",
                keys=searchable,
                description="Compound search index over string fields",
            ),
        )

    candidates.extend(
        Index(
            name=index_name(collection.name, (name,)),
            keys=(name,),
            description=f"Common query field {name}",
        )
        for name in QUERY_FIELDS
        if name in field_names
    )

    indexes: dict[tuple[str, ...], Index] = {}
    for index in candidates:
        indexes.setdefault(index.keys, index)
    return list(indexes.values())
