"""In-memory plan of schema changes staged during an editing session."""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import TypeAdapter

from dbmapper.models import AddColumnChange, AddRelationChange, Change, RelationKind

logger = logging.getLogger(__name__)

_change_adapter = TypeAdapter(Change)


class ChangePlanner:
    """Holds staged changes in insertion order until they are applied."""

    def __init__(self):
        self._changes: List[Change] = []

    def add_change(self, change: Union[Change, Dict[str, Any]]) -> Change:
        """Append a change to the plan.

        Args:
            change: A change model, or a dict tagged with ``type``

        Returns:
            The validated change

        Raises:
            pydantic.ValidationError: If the record is malformed
        """
        if isinstance(change, dict):
            change = _change_adapter.validate_python(change)
        self._changes.append(change)
        logger.debug(f"Staged change: {change.describe()}")
        return change

    def add_column(
        self, table: str, name: str, column_type: str, nullable: bool = True
    ) -> AddColumnChange:
        """Stage a new scalar column."""
        change = AddColumnChange(
            table=table, name=name, column_type=column_type, nullable=nullable
        )
        self.add_change(change)
        return change

    def add_relation(
        self,
        source_table: str,
        kind: Union[RelationKind, str],
        target_table: str,
        field_name: str,
        inverse_field: Optional[str] = None,
        join_table: Optional[str] = None,
        join_columns: Optional[Tuple[str, str]] = None,
        nullable: bool = True,
        on_delete: Optional[str] = None,
    ) -> AddRelationChange:
        """Stage a new relation between two tables.

        Args:
            source_table: Table the relation is declared on
            kind: Relation cardinality
            target_table: Related table
            field_name: Field name on the source side
            inverse_field: Field name on the target side
            join_table: Join table name (many-to-many only)
            join_columns: Join columns for source and target (many-to-many only)
            nullable: Whether the foreign key allows NULL
            on_delete: ON DELETE action

        Returns:
            The staged change
        """
        change = AddRelationChange(
            source_table=source_table,
            kind=kind,
            target_table=target_table,
            field_name=field_name,
            inverse_field=inverse_field,
            join_table=join_table,
            join_columns=join_columns,
            nullable=nullable,
            on_delete=on_delete,
        )
        self.add_change(change)
        return change

    def has_changes(self) -> bool:
        return bool(self._changes)

    def list_changes(self) -> List[Change]:
        """Staged changes in the order they were added."""
        return list(self._changes)

    def clear(self) -> None:
        self._changes = []

    def __len__(self) -> int:
        return len(self._changes)
