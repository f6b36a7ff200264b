"""Collection assembly: root tables merged with their embedded documents."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from conversion.embedding import Direction
from conversion.naming import is_link_column, pluralize, singularize
from conversion.types import (
    Collection,
    DocumentType,
    EmbeddedDocument,
    Field,
    Reference,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from conversion.embedding import EmbeddingLink, EmbeddingPlan
    from conversion.type_mapping import TypeMapping
    from conversion.types import Column, EntityKind, ForeignKey, Table

logger = getLogger(__name__)

ID_FIELD = "_id"
ID_COLUMN = "id"
OBJECT_ID_PLACEHOLDER = 'ObjectId("...")'

SAMPLE_VALUES: dict[DocumentType, Any] = {
    DocumentType.STRING: "sample_string",
    DocumentType.NUMBER: 42,
    DocumentType.BOOLEAN: True,
    DocumentType.DATE: "2025-01-27T00:00:00.000Z",
    DocumentType.OBJECT: {"key": "value"},
    DocumentType.BINARY: 'BinData(0, "")',
    DocumentType.ARRAY: ["item1", "item2"],
    DocumentType.OBJECT_ID: OBJECT_ID_PLACEHOLDER,
}


def sample_value(document_type: DocumentType) -> Any:  # noqa: ANN401
    """Representative literal for a document type, copied per call."""
    value = SAMPLE_VALUES[document_type]
    if isinstance(value, dict | list):
        return value.copy()
    return value


def sample_document(
    fields: Iterable[Field],
    embedded: Iterable[EmbeddedDocument] = (),
) -> dict[str, Any]:
    """Deterministic example document, fields in declaration order."""
    document = {field.name: sample_value(field.type) for field in fields}
    for doc in embedded:
        document[doc.name] = sample_document(doc.fields)
    return document


def is_replaced_key(table: Table, column: Column) -> bool:
    """Primary key column standing in for the synthetic identifier."""
    is_key = column.primary_key or column.name == table.primary_key
    return is_key and column.name.lower() == ID_COLUMN


def to_field(table: Table, column: Column, types: TypeMapping) -> Field:
    """Document field for a relational column."""
    return Field(
        name=column.name,
        type=types.of(table.name, column.name),
        required=not column.nullable,
        source_column=column.name,
        source_type=column.type,
        default=column.default,
    )


def folded_key(foreign_key: ForeignKey | None, tables: Iterable[str]) -> str | None:
    """Table a link column folds into, if it points at one of ``tables``."""
    if foreign_key is None:
        return None
    for table in tables:
        if foreign_key.referenced_table == table and is_link_column(
            foreign_key.column,
            table,
        ):
            return table
    return None


def collection_names(roots: Iterable[str]) -> dict[str, str]:
    """Distinct collection name per root table.

    Roots already named in plural form claim their plural first; a root whose
    plural is taken keeps its table name, suffixed if that is taken too.
    """
    roots = list(roots)
    names: dict[str, str] = {}
    taken: set[str] = set()
    for root in sorted(roots, key=lambda name: pluralize(name) != name):
        name = pluralize(root)
        if name in taken:
            name = root
        base, suffix = name, 2
        while name in taken:
            name = f"{base}_{suffix}"
            suffix += 1
        names[root] = name
        taken.add(name)
    return {root: names[root] for root in roots}


def embedded_targets(links: Iterable[EmbeddingLink]) -> dict[tuple[str, str], str]:
    """Foreign key columns, as (table, column), whose target is embedded."""
    return {
        (link.edge.source_table, link.edge.source_column): link.table
        for link in links
        if link.direction is Direction.TARGET
    }


class CollectionAssembler:
    """Builds one collection per root table of an embedding plan."""

    def __init__(
        self,
        tables: Iterable[Table],
        plan: EmbeddingPlan,
        kinds: dict[str, EntityKind],
        types: TypeMapping,
    ) -> None:
        """Initialize with the planned schema and its type mapping."""
        self.by_name = {table.name: table for table in tables}
        self.plan = plan
        self.kinds = kinds
        self.types = types
        self.names = collection_names(plan.roots)

    def collection_name(self, table: str) -> str:
        """Name of the collection hosting ``table``."""
        host = self.plan.host(table) or table
        return self.names.get(host, pluralize(host))

    def assemble(self) -> list[Collection]:
        """Assemble every root, in plan order."""
        return [self.assemble_root(root) for root in self.plan.roots]

    def assemble_root(self, root: str) -> Collection:
        """Assemble the collection for one root table."""
        table = self.by_name[root]
        links = self.plan.links.get(root, [])
        embedded_tables = [link.table for link in links]
        name = self.names[root]
        notes = [f"Table '{root}' becomes collection '{name}'"]
        if name != pluralize(root):
            notes.append(f"Collection named '{name}'; '{pluralize(root)}' is taken")
        targets = embedded_targets(links)

        fields = [Field(name=ID_FIELD, type=DocumentType.OBJECT_ID, required=True)]
        kept: list[Column] = []
        keys = {fk.column: fk for fk in table.foreign_keys}
        for column in table.columns:
            if is_replaced_key(table, column):
                notes.append(f"Primary key '{column.name}' replaced by '{ID_FIELD}'")
                continue
            folded = targets.get((root, column.name)) or folded_key(
                keys.get(column.name),
                embedded_tables,
            )
            if folded is not None:
                notes.append(
                    f"Column '{column.name}' dropped; '{folded}' is embedded",
                )
                continue
            kept.append(column)
            fields.append(to_field(table, column, self.types))

        embedded = self.embed(root, links, targets)
        for doc in embedded:
            notes.append(
                f"Embedded '{doc.source_table}' as '{doc.name}' "
                f"({doc.relationship_type}, {doc.embedding_strategy})",
            )

        references = self.references(table, kept, prefix="")
        for doc in embedded:
            source = self.by_name[doc.source_table]
            columns = [
                c for c in source.columns if c.name in {f.name for f in doc.fields}
            ]
            references.extend(self.references(source, columns, prefix=doc.name))
        notes.extend(
            f"Field '{ref.field}' references collection '{ref.collection}'"
            for ref in references
        )
        notes.extend(self.conversion_notes(table, embedded))

        logger.debug(
            "Assembled %s: %d fields, %d embedded, %d references",
            name,
            len(fields),
            len(embedded),
            len(references),
        )
        return Collection(
            name=name,
            source_table=root,
            kind=self.kinds[root],
            fields=fields,
            embedded_documents=embedded,
            references=references,
            sample_document=sample_document(fields, embedded),
            migration_notes=notes,
        )

    def embed(
        self,
        root: str,
        links: list[EmbeddingLink],
        targets: dict[tuple[str, str], str],
    ) -> list[EmbeddedDocument]:
        """Embedded documents for a root, pruning links inside the document."""
        root_table = self.by_name[root]
        taken = {column.name for column in root_table.columns} | {ID_FIELD}

        documents: list[EmbeddedDocument] = []
        for link in links:
            source = self.by_name[link.table]
            keys = {fk.column: fk for fk in source.foreign_keys}
            linked = (root, link.parent)
            fields = [
                to_field(source, column, self.types)
                for column in source.columns
                if folded_key(keys.get(column.name), linked) is None
                and (source.name, column.name) not in targets
            ]

            name = singularize(source.name)
            if name in taken:
                name = source.name
            taken.add(name)

            documents.append(
                EmbeddedDocument(
                    name=name,
                    source_table=source.name,
                    fields=fields,
                    relationship_type=link.relationship_type,
                    embedding_strategy=link.strategy,
                    parent_table=link.parent,
                ),
            )
        return documents

    def references(
        self,
        table: Table,
        columns: Iterable[Column],
        prefix: str,
    ) -> list[Reference]:
        """References for retained foreign key columns of a table.

        Keys whose target is absent from the snapshot produce no reference.
        """
        keys = {fk.column: fk for fk in table.foreign_keys}
        references: list[Reference] = []
        for column in columns:
            foreign_key = keys.get(column.name)
            if foreign_key is None or foreign_key.referenced_table not in self.by_name:
                continue
            references.append(
                Reference(
                    field=f"{prefix}.{column.name}" if prefix else column.name,
                    collection=self.collection_name(foreign_key.referenced_table),
                    source_foreign_key=f"{table.name}.{column.name}",
                ),
            )
        return references

    def conversion_notes(
        self,
        table: Table,
        embedded: Iterable[EmbeddedDocument],
    ) -> list[str]:
        """Notes on dangling keys and type conversions needing attention."""
        notes = [
            f"Foreign key '{fk.column}' targets missing table "
            f"'{fk.referenced_table}' and is kept as a plain field"
            for fk in table.foreign_keys
            if fk.referenced_table not in self.by_name
        ]
        covered = [table.name, *(doc.source_table for doc in embedded)]
        for name in covered:
            for column in self.by_name[name].columns:
                key = (name, column.name)
                if key in self.types.unsupported_columns:
                    notes.append(
                        f"Column '{name}.{column.name}' of type '{column.type}' "
                        "stored as String; review the conversion",
                    )
                elif key in self.types.array_columns:
                    notes.append(
                        f"Array column '{name}.{column.name}' needs element "
                        "type validation",
                    )
        return notes


def assemble_collections(
    tables: Iterable[Table],
    plan: EmbeddingPlan,
    kinds: dict[str, EntityKind],
    types: TypeMapping,
) -> list[Collection]:
    """Assemble the collections of an embedding plan, in plan order."""
    return CollectionAssembler(tables, plan, kinds, types).assemble()
