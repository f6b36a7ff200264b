"""Relational to document schema conversion engine."""

from conversion.issues import ConversionFailure, Issue, IssueKind
from conversion.main import convert, validate_tables
from conversion.reporting import result_to_dict, result_to_json
from conversion.settings import Settings, load_settings
from conversion.statistics import RowCountProvider, static_row_counter, with_retry
from conversion.types import (
    Collection,
    Column,
    ConversionResult,
    DocumentType,
    EmbeddedDocument,
    EntityKind,
    Field,
    ForeignKey,
    Index,
    Level,
    MigrationPlan,
    MigrationStep,
    Recommendation,
    Reference,
    RelationshipEdge,
    Table,
)

__all__ = [
    "Collection",
    "Column",
    "ConversionFailure",
    "ConversionResult",
    "DocumentType",
    "EmbeddedDocument",
    "EntityKind",
    "Field",
    "ForeignKey",
    "Index",
    "Issue",
    "IssueKind",
    "Level",
    "MigrationPlan",
    "MigrationStep",
    "Recommendation",
    "Reference",
    "RelationshipEdge",
    "RowCountProvider",
    "Settings",
    "Table",
    "convert",
    "load_settings",
    "result_to_dict",
    "result_to_json",
    "static_row_counter",
    "validate_tables",
    "with_retry",
]
