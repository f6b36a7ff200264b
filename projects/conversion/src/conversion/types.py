"""Type definitions for the relational and document schema models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import Any, NamedTuple

from conversion.issues import Issue

# Relational input snapshot


class Column(NamedTuple):
    """A relational column."""

    name: str
    type: str
    nullable: bool = True
    primary_key: bool = False
    default: Any = None


class ForeignKey(NamedTuple):
    """Single-column foreign key owned by a table."""

    column: str
    referenced_table: str
    referenced_column: str


class Table(NamedTuple):
    """A relational table as extracted by schema introspection."""

    name: str
    columns: tuple[Column, ...]
    primary_key: str | None = None
    foreign_keys: tuple[ForeignKey, ...] = ()

    @property
    def column_count(self) -> int:
        """Number of columns in the table."""
        return len(self.columns)

    @property
    def column_names(self) -> tuple[str, ...]:
        """Column names in declaration order."""
        return tuple(column.name for column in self.columns)

    @property
    def key_column(self) -> str | None:
        """Single primary key column, declared or flagged on the column."""
        if self.primary_key is not None:
            return self.primary_key
        flagged = [column.name for column in self.columns if column.primary_key]
        return flagged[0] if len(flagged) == 1 else None


# Derived relationship graph


class Strength(StrEnum):
    """Strength of a foreign key relationship."""

    STRONG = auto()
    WEAK = auto()
    OPTIONAL = auto()


class UsageFrequency(StrEnum):
    """Structural estimate of how often a relationship is traversed."""

    HIGH = auto()
    MEDIUM = auto()
    LOW = auto()


class Recommendation(StrEnum):
    """Embedding recommendation for a relationship."""

    EMBED = auto()
    REFERENCE = auto()
    HYBRID = auto()


class RelationshipEdge(NamedTuple):
    """A scored foreign key edge from source table to target table."""

    source_table: str
    source_column: str
    target_table: str
    target_column: str
    strength: Strength
    usage_frequency: UsageFrequency
    recommendation: Recommendation


class EntityKind(StrEnum):
    """Role of a table in the relational schema."""

    CORE = auto()
    REFERENCE = auto()
    JUNCTION = auto()
    VIEW = auto()
    STANDALONE = auto()


# Document output model


class DocumentType(StrEnum):
    """Field types of the document model."""

    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    DATE = "Date"
    OBJECT = "Object"
    BINARY = "Binary"
    ARRAY = "Array"
    OBJECT_ID = "ObjectId"


class RelationshipType(StrEnum):
    """Cardinality of an embedded document relative to its parent."""

    ONE_TO_ONE = auto()
    ONE_TO_MANY = auto()
    MANY_TO_MANY = auto()


class EmbeddingStrategy(StrEnum):
    """How an embedded document is folded into its parent."""

    FULL_EMBED = auto()
    PARTIAL_EMBED = auto()
    REFERENCE = auto()


class Level(StrEnum):
    """Closed LOW/MEDIUM/HIGH scale for complexity and risk."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @classmethod
    def from_score(cls, score: float, medium: float, high: float) -> Level:
        """Map a score onto the scale; every score yields exactly one level."""
        if score >= high:
            return cls.HIGH
        if score >= medium:
            return cls.MEDIUM
        return cls.LOW


@dataclass
class Field:
    """A document field."""

    name: str
    type: DocumentType
    required: bool = False
    source_column: str | None = None
    source_type: str | None = None
    default: Any = None


@dataclass
class EmbeddedDocument:
    """A related table folded into a parent collection."""

    name: str
    source_table: str
    fields: list[Field]
    relationship_type: RelationshipType
    embedding_strategy: EmbeddingStrategy
    parent_table: str


@dataclass
class Reference:
    """A retained pointer to another collection."""

    field: str
    collection: str
    source_foreign_key: str  # "table.column"


@dataclass
class Index:
    """A secondary index on a collection."""

    name: str
    keys: tuple[str, ...]
    unique: bool = False
    description: str = ""


@dataclass
class Collection:
    """A document collection produced from one relational table."""

    name: str
    source_table: str
    kind: EntityKind
    fields: list[Field] = field(default_factory=list)
    embedded_documents: list[EmbeddedDocument] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)
    indexes: list[Index] = field(default_factory=list)
    sample_document: dict[str, Any] = field(default_factory=dict)
    migration_notes: list[str] = field(default_factory=list)

    @property
    def covered_tables(self) -> tuple[str, ...]:
        """Source tables represented by this collection."""
        return (
            self.source_table,
            *(doc.source_table for doc in self.embedded_documents),
        )


@dataclass
class MigrationStep:
    """One phase of the migration plan."""

    step: int
    action: str
    description: str
    complexity: Level
    estimated_hours: float
    dependencies: list[str] = field(default_factory=list)
    collections: list[str] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)


@dataclass
class MigrationPlan:
    """Ordered, linearly dependent migration phases."""

    steps: list[MigrationStep]
    risk_level: Level
    total_hours: float = field(init=False)

    def __post_init__(self) -> None:
        """Compute total effort from the steps."""
        self.total_hours = sum(step.estimated_hours for step in self.steps)


@dataclass
class ConsistencyReport:
    """Outcome of the schema coverage cross-check."""

    mismatches: list[str]
    is_valid: bool = field(init=False)

    def __post_init__(self) -> None:
        """A report is valid when nothing mismatched."""
        self.is_valid = not self.mismatches


@dataclass
class CompatibilityReport:
    """Per-table compatibility of the relational schema with documents."""

    compatible_tables: list[str] = field(default_factory=list)
    incompatible_tables: list[str] = field(default_factory=list)
    type_mappings: dict[str, str] = field(default_factory=dict)
    relationship_strategies: dict[str, str] = field(default_factory=dict)
    performance_considerations: list[str] = field(default_factory=list)


@dataclass
class ConversionResult:
    """Complete result of a relational to document conversion."""

    success: bool
    collections: list[Collection] = field(default_factory=list)
    compatibility_report: CompatibilityReport = field(
        default_factory=CompatibilityReport,
    )
    recommendations: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str | None = None
    relationships: list[RelationshipEdge] = field(default_factory=list)
    classifications: dict[str, EntityKind] = field(default_factory=dict)
    migration_plan: MigrationPlan | None = None
    consistency: ConsistencyReport | None = None
    issues: list[Issue] = field(default_factory=list)

    @classmethod
    def failed(cls, error: str) -> ConversionResult:
        """Build an aborted result that carries no partial output."""
        return cls(success=False, error=error)
