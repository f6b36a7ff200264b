"""Tunable thresholds for the conversion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from tomllib import load
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

SETTINGS_TABLE = "conversion"


@dataclass(frozen=True)
class Settings:
    """Thresholds used by the heuristics, passed explicitly to every stage.

    The defaults are unvalidated starting points and are meant to be tuned
    per schema through a settings file.
    """

    # Relationship strength: source_rows / target_rows
    strong_ratio: float = 10.0
    weak_ratio: float = 0.1
    default_row_count: int = 1000

    # Usage frequency: column counts of either side
    high_usage_columns: int = 10
    medium_usage_columns: int = 5

    # Entity classification
    core_min_incoming: int = 2
    core_min_outgoing: int = 2
    core_min_columns: int = 5
    junction_max_columns: int = 4
    junction_min_referenced_columns: int = 5
    reference_max_columns: int = 3
    view_suffixes: tuple[str, ...] = (
        "_list",
        "_summary",
        "_report",
        "_view",
        "_stats",
    )

    # Embedding
    embeddable_max_columns: int = 8

    # Row-count fetching
    max_workers: int = 8
    fetch_timeout: float = 5.0
    retry_attempts: int = 3
    retry_delay: float = 0.5


def _coerce(name: str, value: Any, default: Any) -> Any:  # noqa: ANN401
    """Check a configured value against the type of its default."""
    if isinstance(default, tuple):
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            msg = f"Setting '{name}' must be a list of strings"
            raise ValueError(msg)
        return tuple(value)
    if isinstance(default, float) and isinstance(value, int | float):
        if isinstance(value, bool):
            msg = f"Setting '{name}' must be a number"
            raise ValueError(msg)
        return float(value)
    if isinstance(default, int) and (
        isinstance(value, bool) or not isinstance(value, int)
    ):
        msg = f"Setting '{name}' must be an integer"
        raise ValueError(msg)
    if not isinstance(value, type(default)):
        msg = f"Setting '{name}' must be of type {type(default).__name__}"
        raise ValueError(msg)
    return value


def settings_from_mapping(
    values: dict[str, Any],
    base: Settings | None = None,
) -> Settings:
    """Build settings from a mapping, rejecting unknown keys."""
    base = base or Settings()
    known = {f.name: getattr(base, f.name) for f in fields(base)}

    unknown = sorted(set(values) - set(known))
    if unknown:
        msg = f"Unknown settings: {', '.join(unknown)}"
        raise ValueError(msg)

    return replace(
        base,
        **{name: _coerce(name, value, known[name]) for name, value in values.items()},
    )


def load_settings(path: Path) -> Settings:
    """Load settings from the ``[conversion]`` table of a TOML file."""
    with path.open("rb") as f:
        document = load(f)

    values = document.get(SETTINGS_TABLE, {})
    if not isinstance(values, dict):
        msg = f"[{SETTINGS_TABLE}] must be a table"
        raise ValueError(msg)  # noqa: TRY004
    return settings_from_mapping(values)
