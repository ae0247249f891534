"""Managers for dbmapper."""

from dbmapper.managers.change_applier import (
    ChangeApplier,
    SqlAlchemyExecutor,
    normalize_on_delete,
)
from dbmapper.managers.change_planner import ChangePlanner
from dbmapper.managers.codegen import CodegenManager
from dbmapper.managers.mapping import MappingSynthesizer
from dbmapper.managers.relationship import (
    RelationshipAnalyzer,
    default_audit_column,
    make_audit_predicate,
)
from dbmapper.managers.schema import SchemaInspector

__all__ = [
    "ChangeApplier",
    "SqlAlchemyExecutor",
    "normalize_on_delete",
    "ChangePlanner",
    "CodegenManager",
    "MappingSynthesizer",
    "RelationshipAnalyzer",
    "default_audit_column",
    "make_audit_predicate",
    "SchemaInspector",
]
