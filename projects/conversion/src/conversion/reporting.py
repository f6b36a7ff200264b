"""Serialization of conversion results."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from conversion.types import ConversionResult


def json_default(obj: object) -> object:
    """Convert non-serializable objects for JSON encoding."""
    if isinstance(obj, set | frozenset):
        return sorted(obj) if obj else []
    msg = f"Object of type {type(obj)} is not JSON serializable"
    raise TypeError(msg)


def result_to_dict(result: ConversionResult) -> dict[str, Any]:
    """Convert a ConversionResult to plain JSON-compatible structures.

    Named tuples are expanded to objects; enum members stay strings.
    """
    data = asdict(result)
    data["relationships"] = [edge._asdict() for edge in result.relationships]
    data["issues"] = [issue._asdict() for issue in result.issues]
    return data


def result_to_json(result: ConversionResult, *, indent: int | None = 2) -> str:
    """Convert a ConversionResult to a JSON string.

    Args:
        result: ConversionResult dataclass
        indent: Indentation passed to ``json.dumps``

    Returns:
        JSON string representation

    """
    return json.dumps(result_to_dict(result), indent=indent, default=json_default)
