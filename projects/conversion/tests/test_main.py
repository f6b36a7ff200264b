"""Tests for the conversion pipeline."""

from collections import Counter

import pytest

from conversion.issues import ConversionFailure, IssueKind
from conversion.main import convert, validate_tables
from conversion.reporting import result_to_json
from conversion.settings import Settings
from conversion.statistics import static_row_counter
from conversion.types import Column, ConversionResult, EntityKind, ForeignKey, Table


def _covered(result: ConversionResult) -> list[str]:
    return [
        table for collection in result.collections for table in collection.covered_tables
    ]


def test_users_embed_profiles_and_orders(users_tables: list[Table]) -> None:
    """Test that users embeds both children and no child collection exists."""
    result = convert(users_tables)

    assert result.success
    assert result.error is None
    assert [c.name for c in result.collections] == ["users"]
    users = result.collections[0]
    assert [doc.name for doc in users.embedded_documents] == ["profile", "order"]
    for doc in users.embedded_documents:
        assert "user_id" not in [field.name for field in doc.fields]
    assert [index.name for index in users.indexes] == [
        "idx_users_search",
        "idx_users_created_at",
        "idx_users_updated_at",
    ]


def test_reference_not_embedded(
    reference_tables: list[Table],
    reference_counts: dict[str, int],
) -> None:
    """Test that a huge target stays a referenced collection."""
    result = convert(reference_tables, static_row_counter(reference_counts))

    assert result.success
    assert [c.name for c in result.collections] == ["sessions", "accounts"]
    sessions, accounts = result.collections
    assert sessions.embedded_documents == []
    assert accounts.embedded_documents == []
    assert [(r.field, r.collection) for r in sessions.references] == [
        ("account_id", "accounts"),
    ]
    assert "idx_sessions_account_id" in [index.name for index in sessions.indexes]
    assert result.issues == []
    assert any("kept as references" in r for r in result.recommendations)


def test_junction_is_standalone(junction_tables: list[Table]) -> None:
    """Test that a junction table becomes its own collection."""
    result = convert(junction_tables)

    assert result.success
    assert result.classifications["order_items"] is EntityKind.JUNCTION
    assert [c.name for c in result.collections] == [
        "orders",
        "products",
        "order_items",
    ]
    assert all(c.embedded_documents == [] for c in result.collections)


def test_missing_table_is_not_fatal(dangling_tables: list[Table]) -> None:
    """Test that a dangling key yields one warning and a successful run."""
    result = convert(dangling_tables)

    assert result.success
    missing = [
        issue
        for issue in result.issues
        if issue.kind is IssueKind.MISSING_REFERENCED_TABLE
    ]
    assert len(missing) == 1
    assert result.warnings[0].startswith("MissingReferencedTableWarning:")
    assert result.relationships == []
    orders = result.collections[0]
    assert "idx_orders_customer_id" in [index.name for index in orders.indexes]


def test_row_counts_unavailable_warning(users_tables: list[Table]) -> None:
    """Test that running without statistics is flagged once."""
    result = convert(users_tables)

    assert [issue.kind for issue in result.issues] == [
        IssueKind.ROW_COUNT_UNAVAILABLE,
    ]
    assert result.warnings == [str(result.issues[0])]


def test_unsupported_type_warned_once() -> None:
    """Test that an unknown column type is reported exactly once."""
    places = Table(
        "places",
        (Column("id", "integer", primary_key=True), Column("shape", "geometry")),
        "id",
    )

    result = convert([places])

    unsupported = [i for i in result.issues if i.kind is IssueKind.UNSUPPORTED_TYPE]
    assert len(unsupported) == 1
    assert result.compatibility_report.incompatible_tables == ["places"]
    assert result.compatibility_report.type_mappings["places.shape"] == "String"


def test_every_table_covered_once(
    users_tables: list[Table],
    junction_tables: list[Table],
    shared_child_tables: list[Table],
) -> None:
    """Test coverage over a schema mixing every scenario."""
    renamed = [
        table._replace(name=f"blog_{table.name}") for table in shared_child_tables
    ]
    renamed = [
        table._replace(
            foreign_keys=tuple(
                fk._replace(referenced_table=f"blog_{fk.referenced_table}")
                for fk in table.foreign_keys
            ),
        )
        for table in renamed
    ]
    tables = (
        users_tables
        + [table for table in junction_tables if table.name != "orders"]
        + renamed
    )

    result = convert(tables)

    assert result.success
    covered = _covered(result)
    assert Counter(covered) == Counter(table.name for table in tables)
    assert result.consistency is not None
    assert result.consistency.is_valid


def test_conversion_is_deterministic(
    users_tables: list[Table],
    junction_tables: list[Table],
) -> None:
    """Test that identical inputs produce byte-identical output."""
    tables = users_tables + junction_tables[1:]

    assert result_to_json(convert(tables)) == result_to_json(convert(tables))


def test_migration_plan_attached(users_tables: list[Table]) -> None:
    """Test that the plan only touches produced collections."""
    result = convert(users_tables)

    assert result.migration_plan is not None
    assert len(result.migration_plan.steps) == 6
    names = {c.name for c in result.collections}
    for step in result.migration_plan.steps:
        assert set(step.collections) <= names


def test_settings_change_outcome(users_tables: list[Table]) -> None:
    """Test that thresholds are taken from the given settings."""
    result = convert(users_tables, settings=Settings(embeddable_max_columns=4))

    assert [c.name for c in result.collections] == ["users", "orders"]


@pytest.mark.parametrize(
    ("tables", "message"),
    [
        (
            [Table("a", (Column("id", "integer"),)), Table("a", ())],
            "Duplicate table names: a",
        ),
        (
            [Table("a", (Column("x", "integer"), Column("x", "text")))],
            "Duplicate columns in a: x",
        ),
        ([Table("a", (Column("x", "integer"),), "id")], "Primary key a.id"),
        (
            [Table("a", (), None, (ForeignKey("b_id", "b", "id"),))],
            "Foreign key on unknown column a.b_id",
        ),
        ([{"name": "a"}], "Expected Table, got dict"),
        ([Table("a", (("id", "integer"),))], "Expected Column in a, got tuple"),
        (
            [Table("a", (Column("id", None),), "id")],  # type: ignore[arg-type]
            "Column a.id has no type name",
        ),
        (
            [
                Table(
                    "a",
                    (Column("b_id", "integer"),),
                    None,
                    (("b_id", "b", "id"),),  # type: ignore[arg-type]
                ),
            ],
            "Expected ForeignKey in a, got tuple",
        ),
        (
            [
                Table(
                    "a",
                    (Column("b_id", "integer"),),
                    None,
                    (ForeignKey("b_id", "", "id"),),
                ),
            ],
            "Incomplete foreign key in a",
        ),
    ],
)
def test_malformed_input_fails(tables: list[Table], message: str) -> None:
    """Test that contract violations abort with no partial output."""
    result = convert(tables)

    assert not result.success
    assert result.error is not None
    assert message in result.error
    assert result.collections == []
    assert result.migration_plan is None


def test_validate_tables_raises() -> None:
    """Test that the contract check raises a conversion failure."""
    with pytest.raises(ConversionFailure, match="Table without a name"):
        validate_tables([Table("", ())])


def test_failing_provider_degrades(users_tables: list[Table]) -> None:
    """Test that a broken provider never fails the run."""

    def provider(table: str) -> int:
        msg = f"no access to {table}"
        raise PermissionError(msg)

    result = convert(users_tables, provider)

    assert result.success
    assert len(result.issues) == 3
    assert {issue.table for issue in result.issues} == {"users", "profiles", "orders"}
