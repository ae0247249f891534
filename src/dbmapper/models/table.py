"""Table snapshot models for dbmapper."""

from typing import List, Optional, Tuple

from pydantic import Field

from .base import FrozenModel


class Column(FrozenModel):
    """Represents a column as reported by the database catalog."""

    name: str = Field(description="Column name")
    data_type: str = Field(description="Raw data type, e.g. 'varchar'")
    column_type: str = Field(
        default="", description="Raw type string with size/precision, e.g. 'varchar(255)'"
    )
    nullable: bool = Field(
        default=True, description="Whether column allows NULL values"
    )
    unique: bool = Field(
        default=False, description="Whether a single-column unique constraint covers it"
    )

    @property
    def type_string(self) -> str:
        """Raw type string, falling back to the data type."""
        return self.column_type or self.data_type


class ForeignKeyRef(FrozenModel):
    """Foreign key reference as reported by the catalog."""

    column: str = Field(description="Constrained column in the source table")
    referenced_table: str = Field(description="Referenced table name")
    referenced_column: str = Field(default="id", description="Referenced column name")


class UniqueConstraint(FrozenModel):
    """A unique constraint or unique index entry for one column."""

    column: str = Field(description="Constrained column name")
    index_name: Optional[str] = Field(default=None, description="Index name")


class TableSnapshot(FrozenModel):
    """Point-in-time description of one table's columns, keys and constraints."""

    name: str = Field(description="Table name")
    columns: Tuple[Column, ...] = Field(default=(), description="Ordered columns")
    primary_keys: Tuple[str, ...] = Field(
        default=(), description="Primary key column names"
    )
    foreign_keys: Tuple[ForeignKeyRef, ...] = Field(
        default=(), description="Foreign keys, deduplicated"
    )
    unique_constraints: Tuple[UniqueConstraint, ...] = Field(
        default=(), description="Unique constraints (excluding the primary key)"
    )

    def get_column(self, name: str) -> Optional[Column]:
        """Find a column by name, case-insensitively.

        Args:
            name: Column name

        Returns:
            Column, or None if the table has no such column
        """
        lowered = name.lower()
        for column in self.columns:
            if column.name.lower() == lowered:
                return column
        return None

    def foreign_key_columns(self) -> List[str]:
        """Names of every column that carries a foreign key."""
        return [fk.column for fk in self.foreign_keys]

    def distinct_foreign_keys(self) -> List[ForeignKeyRef]:
        """Foreign keys, dropping repeated rows for one (column, referenced table)."""
        seen = set()
        distinct = []
        for fk in self.foreign_keys:
            key = (fk.column, fk.referenced_table)
            if key in seen:
                continue
            seen.add(key)
            distinct.append(fk)
        return distinct

    def unique_columns(self) -> List[str]:
        """Names of every column covered by a unique constraint."""
        names = [uc.column for uc in self.unique_constraints]
        names.extend(col.name for col in self.columns if col.unique and col.name not in names)
        return names

    def with_primary_keys(self, primary_keys: List[str]) -> "TableSnapshot":
        """Return a copy of this snapshot with a different primary key set."""
        return self.model_copy(update={"primary_keys": tuple(primary_keys)})
