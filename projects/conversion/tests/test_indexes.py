"""Tests for index planning."""

from conversion.indexes import index_name, plan_indexes
from conversion.types import (
    Collection,
    Column,
    DocumentType,
    EmbeddedDocument,
    EmbeddingStrategy,
    EntityKind,
    Field,
    ForeignKey,
    Reference,
    RelationshipType,
    Table,
)


def _collection(fields: list[Field], references: list[Reference] = []) -> Collection:  # noqa: B006
    return Collection(
        name="orders",
        source_table="orders",
        kind=EntityKind.CORE,
        fields=[Field("_id", DocumentType.OBJECT_ID, required=True), *fields],
        references=references,
    )


def test_index_name() -> None:
    """Test that dotted paths are flattened into the index name."""
    assert index_name("users", ("order.product_id",)) == "idx_users_order_product_id"


def test_reference_and_query_field_indexes() -> None:
    """Test reference indexes, the search index and common query fields."""
    table = Table("orders", (Column("id", "integer", primary_key=True),), "id")
    collection = _collection(
        [
            Field("customer_id", DocumentType.NUMBER),
            Field("status", DocumentType.STRING),
            Field("note", DocumentType.STRING),
            Field("created_at", DocumentType.DATE),
        ],
        [Reference("customer_id", "customers", "orders.customer_id")],
    )

    indexes = plan_indexes(collection, table)

    assert [(index.name, index.keys, index.unique) for index in indexes] == [
        ("idx_orders_customer_id", ("customer_id",), False),
        ("idx_orders_search", ("status", "note"), False),
        ("idx_orders_created_at", ("created_at",), False),
        ("idx_orders_status", ("status",), False),
    ]


def test_surviving_primary_key_is_unique() -> None:
    """Test that a primary key kept as a field gets a unique index."""
    table = Table("orders", (Column("number", "integer", primary_key=True),), "number")
    collection = _collection([Field("number", DocumentType.NUMBER)])

    indexes = plan_indexes(collection, table)

    assert [(index.keys, index.unique) for index in indexes] == [(("number",), True)]


def test_replaced_primary_key_not_indexed() -> None:
    """Test that no index is emitted for the identifier or a missing key."""
    table = Table("orders", (Column("id", "integer", primary_key=True),), "id")

    assert plan_indexes(_collection([]), table) == []


def test_indexes_deduplicated() -> None:
    """Test that a reference named like a query field is indexed once."""
    table = Table("orders", (Column("type", "integer"),))
    collection = _collection(
        [Field("type", DocumentType.NUMBER)],
        [Reference("type", "order_types", "orders.type")],
    )

    indexes = plan_indexes(collection, table)

    assert [index.keys for index in indexes] == [("type",)]
    assert indexes[0].description == "Reference to order_types"


def test_unreferenced_foreign_keys_indexed() -> None:
    """Test that keys to missing tables are indexed in roots and embeds."""
    table = Table(
        "orders",
        (Column("id", "integer"), Column("customer_id", "integer")),
        "id",
        (ForeignKey("customer_id", "customers", "id"),),
    )
    notes = Table(
        "order_notes",
        (Column("author_id", "integer"), Column("body", "integer")),
        None,
        (ForeignKey("author_id", "staff", "id"),),
    )
    collection = _collection([Field("customer_id", DocumentType.NUMBER)])
    collection.embedded_documents = [
        EmbeddedDocument(
            name="order_note",
            source_table="order_notes",
            fields=[
                Field("author_id", DocumentType.NUMBER),
                Field("body", DocumentType.NUMBER),
            ],
            relationship_type=RelationshipType.ONE_TO_MANY,
            embedding_strategy=EmbeddingStrategy.FULL_EMBED,
            parent_table="orders",
        ),
    ]

    indexes = plan_indexes(collection, table, [notes])

    assert [(index.name, index.keys, index.unique) for index in indexes] == [
        ("idx_orders_customer_id", ("customer_id",), False),
        ("idx_orders_order_note_author_id", ("order_note.author_id",), False),
    ]
    assert indexes[0].description == "Foreign key to missing table customers"
