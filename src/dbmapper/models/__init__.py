"""Core data models for dbmapper."""

from .base import DbMapperBaseModel, FrozenModel
from .table import Column, ForeignKeyRef, TableSnapshot, UniqueConstraint
from .relation import (
    JoinTableClassification,
    ManyToManyRelation,
    RelationEdge,
    RelationGraph,
    owning_table,
)
from .change import (
    AddColumnChange,
    AddRelationChange,
    ApplyReport,
    Change,
    RelationKind,
)
from .field_plan import (
    FieldPlan,
    NameTable,
    ScalarField,
    TableNames,
    TablePlan,
    ToManyField,
    ToManyThroughJoinField,
    ToOneField,
)

__all__ = [
    "DbMapperBaseModel",
    "FrozenModel",
    "Column",
    "ForeignKeyRef",
    "TableSnapshot",
    "UniqueConstraint",
    "JoinTableClassification",
    "ManyToManyRelation",
    "RelationEdge",
    "RelationGraph",
    "owning_table",
    "AddColumnChange",
    "AddRelationChange",
    "ApplyReport",
    "Change",
    "RelationKind",
    "FieldPlan",
    "NameTable",
    "ScalarField",
    "TableNames",
    "TablePlan",
    "ToManyField",
    "ToManyThroughJoinField",
    "ToOneField",
]
