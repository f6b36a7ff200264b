"""Shared schema fixtures for conversion tests."""

import pytest

from conversion.settings import Settings
from conversion.types import Column, ForeignKey, Table


def _table(
    name: str,
    columns: str,
    foreign_keys: tuple[ForeignKey, ...] = (),
    primary_key: str | None = "id",
) -> Table:
    """Build a table from a ``"name:type, name:type"`` column spec."""
    parsed = []
    for spec in columns.split(","):
        column_name, column_type = spec.strip().split(":")
        parsed.append(
            Column(
                name=column_name,
                type=column_type,
                nullable=column_name != primary_key,
                primary_key=column_name == primary_key,
            ),
        )
    return Table(name, tuple(parsed), primary_key, foreign_keys)


@pytest.fixture(name="settings")
def default_settings() -> Settings:
    """Default thresholds."""
    return Settings()


@pytest.fixture(name="users_tables")
def users_profiles_orders() -> list[Table]:
    """Users with profiles and orders pointing at them."""
    return [
        _table(
            "users",
            "id:integer, name:varchar(100), email:varchar(255), "
            "created_at:timestamp, updated_at:timestamp",
        ),
        _table(
            "profiles",
            "id:integer, user_id:integer, bio:text, avatar:varchar",
            (ForeignKey("user_id", "users", "id"),),
        ),
        _table(
            "orders",
            "id:integer, user_id:integer, total:numeric, status:varchar, "
            "created_at:timestamp",
            (ForeignKey("user_id", "users", "id"),),
        ),
    ]


@pytest.fixture(name="junction_tables")
def orders_products_items() -> list[Table]:
    """Orders and products linked through a narrow junction table."""
    return [
        _table(
            "orders",
            "id:integer, customer_name:varchar, total:numeric, status:varchar, "
            "created_at:timestamp",
        ),
        _table(
            "products",
            "id:integer, name:varchar, price:numeric, sku:varchar, "
            "created_at:timestamp",
        ),
        _table(
            "order_items",
            "order_id:integer, product_id:integer, qty:integer",
            (
                ForeignKey("order_id", "orders", "id"),
                ForeignKey("product_id", "products", "id"),
            ),
            primary_key=None,
        ),
    ]


@pytest.fixture(name="reference_tables")
def accounts_sessions() -> list[Table]:
    """Many sessions rows pointing at a much larger accounts table."""
    return [
        _table(
            "sessions",
            "id:integer, account_id:integer, token:varchar, created_at:timestamp, "
            "expires_at:timestamp",
            (ForeignKey("account_id", "accounts", "id"),),
        ),
        _table(
            "accounts",
            "id:integer, name:varchar, email:varchar, plan:varchar, "
            "created_at:timestamp, updated_at:timestamp",
        ),
    ]


@pytest.fixture(name="reference_counts")
def accounts_sessions_counts() -> dict[str, int]:
    """Row counts making sessions much smaller than accounts."""
    return {"sessions": 50, "accounts": 10_000}


@pytest.fixture(name="dangling_tables")
def orders_with_missing_customer() -> list[Table]:
    """A foreign key pointing at a table absent from the snapshot."""
    return [
        _table(
            "orders",
            "id:integer, customer_id:integer, total:numeric",
            (ForeignKey("customer_id", "customers", "id"),),
        ),
    ]


@pytest.fixture(name="cyclic_tables")
def authors_books() -> list[Table]:
    """Two tables referencing each other."""
    return [
        _table(
            "authors",
            "id:integer, featured_book_id:integer, name:varchar, bio:text, "
            "country:varchar",
            (ForeignKey("featured_book_id", "books", "id"),),
        ),
        _table(
            "books",
            "id:integer, author_id:integer, title:varchar",
            (ForeignKey("author_id", "authors", "id"),),
        ),
    ]


@pytest.fixture(name="nested_tables")
def users_orders_notes() -> list[Table]:
    """A chain users <- orders <- order_notes."""
    return [
        _table(
            "users",
            "id:integer, name:varchar, email:varchar, created_at:timestamp, "
            "updated_at:timestamp",
        ),
        _table(
            "orders",
            "id:integer, user_id:integer, total:numeric, status:varchar",
            (ForeignKey("user_id", "users", "id"),),
        ),
        _table(
            "order_notes",
            "id:integer, order_id:integer, note:text",
            (ForeignKey("order_id", "orders", "id"),),
        ),
    ]


@pytest.fixture(name="shared_child_tables")
def users_posts_comments() -> list[Table]:
    """A narrow table pointing at two core tables."""
    return [
        _table(
            "users",
            "id:integer, name:varchar, email:varchar, created_at:timestamp, "
            "updated_at:timestamp",
        ),
        _table(
            "posts",
            "id:integer, title:varchar, body:text, status:varchar, "
            "created_at:timestamp, updated_at:timestamp, slug:varchar, "
            "author_name:varchar, views:integer",
        ),
        _table(
            "comments",
            "id:integer, user_id:integer, post_id:integer, body:text",
            (
                ForeignKey("user_id", "users", "id"),
                ForeignKey("post_id", "posts", "id"),
            ),
        ),
    ]
