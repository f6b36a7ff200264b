"""Migration plan generation."""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from conversion.types import Level, MigrationPlan, MigrationStep

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from conversion.types import Collection, RelationshipEdge

STEP_MEDIUM_HOURS = 4.0
STEP_HIGH_HOURS = 8.0
RISK_MEDIUM_SCORE = 5.0
RISK_HIGH_SCORE = 15.0


class Counts(NamedTuple):
    """Size of the converted schema driving the estimates."""

    collections: int
    embedded: int
    edges: int


class Phase(NamedTuple):
    """A fixed migration phase and its effort formula."""

    action: str
    description: str
    base: float
    per_collection: float
    per_embedded: float
    per_edge: float

    def hours(self, counts: Counts) -> float:
        """Estimated hours, rounded to the nearest half hour."""
        raw = (
            self.base
            + self.per_collection * counts.collections
            + self.per_embedded * counts.embedded
            + self.per_edge * counts.edges
        )
        return round(raw * 2) / 2


PHASES = (
    Phase(
        "Schema Preparation",
        "Freeze the relational schema and snapshot row counts",
        1.0,
        0.1,
        0.0,
        0.1,
    ),
    Phase(
        "Collection Design",
        "Create collections, validators and indexes",
        2.0,
        0.5,
        0.75,
        0.0,
    ),
    Phase(
        "Data-Migration Script Generation",
        "Write export and transform scripts folding embedded tables",
        4.0,
        1.0,
        1.5,
        0.25,
    ),
    Phase(
        "Application-Layer Update",
        "Rewrite joins as embedded reads and reference lookups",
        6.0,
        1.0,
        0.5,
        0.5,
    ),
    Phase(
        "Configuration Update",
        "Switch connection settings and drivers to the document store",
        2.0,
        0.1,
        0.0,
        0.0,
    ),
    Phase(
        "Testing & Validation",
        "Compare document counts and sample queries against the source",
        3.0,
        0.5,
        0.5,
        0.0,
    ),
)


def _all(collections: Sequence[Collection]) -> list[str]:
    return [collection.name for collection in collections]


def _linked(collections: Sequence[Collection]) -> list[str]:
    return [c.name for c in collections if c.embedded_documents or c.references]


def _none(_: Sequence[Collection]) -> list[str]:
    return []


TOUCHED: dict[str, Callable[[Sequence[Collection]], list[str]]] = {
    "Schema Preparation": _none,
    "Collection Design": _all,
    "Data-Migration Script Generation": _all,
    "Application-Layer Update": _linked,
    "Configuration Update": _none,
    "Testing & Validation": _all,
}


def phase_risks(action: str, counts: Counts, incompatible: int) -> list[str]:
    """Risks worth calling out for a phase."""
    risks: list[str] = []
    match action:
        case "Schema Preparation" if incompatible:
            risks.append(f"{incompatible} table(s) contain unsupported types")
        case "Data-Migration Script Generation" if counts.embedded:
            risks.append("Embedded tables must be joined during export")
        case "Application-Layer Update":
            if counts.embedded:
                risks.append("Queries joining embedded tables must be rewritten")
            if counts.edges:
                risks.append("Reference lookups replace foreign key joins")
        case "Testing & Validation" if counts.collections:
            risks.append("Document counts differ from row counts for embeds")
    return risks


def plan_migration(
    collections: Sequence[Collection],
    edges: Sequence[RelationshipEdge],
    incompatible: int = 0,
) -> MigrationPlan:
    """Fixed, linearly dependent migration phases with effort estimates."""
    counts = Counts(
        collections=len(collections),
        embedded=sum(len(c.embedded_documents) for c in collections),
        edges=len(edges),
    )

    steps: list[MigrationStep] = []
    for number, phase in enumerate(PHASES, start=1):
        hours = phase.hours(counts)
        steps.append(
            MigrationStep(
                step=number,
                action=phase.action,
                description=phase.description,
                complexity=Level.from_score(hours, STEP_MEDIUM_HOURS, STEP_HIGH_HOURS),
                estimated_hours=hours,
                dependencies=[steps[-1].action] if steps else [],
                collections=TOUCHED[phase.action](collections),
                risks=phase_risks(phase.action, counts, incompatible),
            ),
        )

    score = counts.embedded + 0.5 * counts.edges + 2 * incompatible
    return MigrationPlan(
        steps=steps,
        risk_level=Level.from_score(score, RISK_MEDIUM_SCORE, RISK_HIGH_SCORE),
    )
