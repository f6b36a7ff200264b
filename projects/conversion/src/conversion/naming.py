"""Naming rules for collections, embedded documents and link columns."""

from __future__ import annotations

VOWELS = frozenset("aeiou")
ES_SUFFIXES = ("ss", "us", "x", "z", "ch", "sh")
ES_PLURAL_SUFFIXES = ("sses", "uses", "xes", "zes", "ches", "shes")


def pluralize(name: str) -> str:
    """Pluralize a table name into a collection name.

    Names that already look plural are kept as they are.

    Examples:
        user -> users
        users -> users
        category -> categories
        address -> addresses
        analysis -> analyses

    """
    lower = name.lower()
    if lower.endswith("is") and len(name) > 2:  # noqa: PLR2004
        return f"{name[:-2]}es"
    if lower.endswith(ES_SUFFIXES):
        return f"{name}es"
    if lower.endswith("s"):
        return name
    if lower.endswith("y") and len(name) > 1 and lower[-2] not in VOWELS:
        return f"{name[:-1]}ies"
    return f"{name}s"


def singularize(name: str) -> str:
    """Singularize a table name into an embedded document name."""
    lower = name.lower()
    if lower.endswith("ies") and len(name) > 3:  # noqa: PLR2004
        return f"{name[:-3]}y"
    if lower.endswith(ES_PLURAL_SUFFIXES):
        return name[:-2]
    if lower.endswith(("ss", "us", "is")):
        return name
    if lower.endswith("s") and len(name) > 1:
        return name[:-1]
    return name


def is_link_column(column: str, table: str) -> bool:
    """Check whether a column name encodes a link to the given table.

    Matches ``{table}_id``, ``{table}id``, ``fk_{table}``, ``{table}_fk`` and
    any name containing both the table name and ``id``, for the table name
    as written and in its singular form.
    """
    column = column.lower()
    for name in {table.lower(), singularize(table).lower()}:
        if column in {f"{name}_id", f"{name}id", f"fk_{name}", f"{name}_fk"}:
            return True
        if name in column and "id" in column.replace(name, "", 1):
            return True
    return False
