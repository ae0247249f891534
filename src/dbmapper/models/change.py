"""Staged schema change models for dbmapper."""

from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import Field, field_validator

from .base import DbMapperBaseModel
from ..utils.name_validator import validate_identifier


class RelationKind(str, Enum):
    """Cardinality of a relation declared by the user."""

    MANY_TO_ONE = "many-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_MANY = "many-to-many"
    ONE_TO_ONE = "one-to-one"


class AddColumnChange(DbMapperBaseModel):
    """Add one scalar column to an existing table."""

    type: Literal["add_column"] = Field(default="add_column", description="Change tag")
    table: str = Field(description="Table receiving the column")
    name: str = Field(description="New column name")
    column_type: str = Field(description="Portable type name, e.g. 'string', 'integer'")
    nullable: bool = Field(default=True, description="Whether column allows NULL values")

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return validate_identifier(value, "column")

    def describe(self) -> str:
        """One-line summary for plan listings."""
        return (
            f"[ADD COLUMN] Table {self.table}: {self.name} ({self.column_type}), "
            f"nullable: {'yes' if self.nullable else 'no'}"
        )


class AddRelationChange(DbMapperBaseModel):
    """Add a relation between two existing tables."""

    type: Literal["add_relation"] = Field(default="add_relation", description="Change tag")
    source_table: str = Field(description="Table the relation is declared on")
    kind: RelationKind = Field(description="Relation cardinality")
    target_table: str = Field(description="Related table")
    field_name: str = Field(description="Field name on the source side")
    inverse_field: Optional[str] = Field(
        default=None, description="Field name on the target side"
    )
    join_table: Optional[str] = Field(
        default=None, description="Join table name (many-to-many only)"
    )
    join_columns: Optional[Tuple[str, str]] = Field(
        default=None,
        description="Join table columns pointing at source and target (many-to-many only)",
    )
    nullable: bool = Field(default=True, description="Whether the foreign key allows NULL")
    on_delete: Optional[str] = Field(
        default=None, description="ON DELETE action; defaults depend on the kind"
    )

    @field_validator("field_name")
    @classmethod
    def _check_field_name(cls, value: str) -> str:
        return validate_identifier(value, "field")

    @field_validator("inverse_field", "join_table")
    @classmethod
    def _check_optional_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return validate_identifier(value)

    @field_validator("join_columns")
    @classmethod
    def _check_join_columns(
        cls, value: Optional[Tuple[str, str]]
    ) -> Optional[Tuple[str, str]]:
        if value is None:
            return None
        return (
            validate_identifier(value[0], "join column"),
            validate_identifier(value[1], "join column"),
        )

    def describe(self) -> str:
        """One-line summary for plan listings."""
        details = (
            f"[ADD RELATION] Table {self.source_table} -> {self.target_table}: "
            f"{self.kind} (field: {self.field_name})"
        )
        if self.inverse_field:
            details += f", inverse: {self.inverse_field}"
        if self.join_table:
            details += f", join table: {self.join_table}"
        return details


Change = Annotated[
    Union[AddColumnChange, AddRelationChange], Field(discriminator="type")
]


class ApplyReport(DbMapperBaseModel):
    """Outcome of executing a compiled plan."""

    success: bool = Field(description="True only if every statement succeeded")
    executed: List[str] = Field(
        default_factory=list, description="Statements that ran successfully, in order"
    )
    errors: List[str] = Field(
        default_factory=list, description="One message per failed statement"
    )
