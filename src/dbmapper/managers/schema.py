"""Schema snapshots read through SQLAlchemy's runtime inspection API."""

import logging
from typing import Dict, List, Set, Tuple

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import CompileError, SQLAlchemyError

from dbmapper.exceptions import DbMapperError, SnapshotError
from dbmapper.models import Column, ForeignKeyRef, TableSnapshot, UniqueConstraint
from dbmapper.utils.type_utils import base_data_type

logger = logging.getLogger(__name__)


class SchemaInspector:
    """Reads table snapshots from a live database."""

    def __init__(self, engine: Engine):
        """Initialize the inspector.

        Args:
            engine: SQLAlchemy engine for the target database
        """
        self.engine = engine
        self._inspector = None

    @property
    def inspector(self):
        """Lazy-loaded SQLAlchemy inspector."""
        if self._inspector is None:
            self._inspector = inspect(self.engine)
        return self._inspector

    def refresh(self) -> None:
        """Drop cached catalog data so the next read sees schema changes."""
        self._inspector = None

    def get_tables(self) -> List[str]:
        """List all table names, sorted.

        Raises:
            DbMapperError: If the catalog cannot be read
        """
        try:
            return sorted(self.inspector.get_table_names())
        except SQLAlchemyError as e:
            raise DbMapperError(f"Failed to list tables: {e}") from e

    def get_columns(self, table: str) -> List[Column]:
        """Columns of a table in catalog order, without unique flags.

        Raises:
            SnapshotError: If the table cannot be read
        """
        try:
            return [self._to_column(table, info) for info in self.inspector.get_columns(table)]
        except SQLAlchemyError as e:
            raise SnapshotError(table, str(e)) from e

    def get_snapshot(self, table: str) -> TableSnapshot:
        """Read columns, keys and unique constraints of one table.

        Repeated foreign key rows are collapsed.

        Args:
            table: Table name

        Returns:
            TableSnapshot

        Raises:
            SnapshotError: If the table cannot be read
        """
        try:
            raw_columns = self.inspector.get_columns(table)
            pk = self.inspector.get_pk_constraint(table) or {}
            raw_foreign_keys = self.inspector.get_foreign_keys(table)
            unique_constraints = self._get_unique_constraints(table)
        except SQLAlchemyError as e:
            raise SnapshotError(table, str(e)) from e

        unique_columns = {uc.column for uc in unique_constraints}
        columns = []
        for info in raw_columns:
            column = self._to_column(table, info)
            if column.name in unique_columns:
                column = column.model_copy(update={"unique": True})
            columns.append(column)

        foreign_keys = []
        seen: Set[Tuple[str, str]] = set()
        for fk in raw_foreign_keys:
            referred_table = fk.get("referred_table")
            if not referred_table:
                continue
            for column_name, referred_column in zip(
                fk.get("constrained_columns") or [], fk.get("referred_columns") or []
            ):
                key = (column_name, referred_table)
                if key in seen:
                    continue
                seen.add(key)
                foreign_keys.append(
                    ForeignKeyRef(
                        column=column_name,
                        referenced_table=referred_table,
                        referenced_column=referred_column,
                    )
                )

        logger.debug(
            f"Read table '{table}': {len(columns)} columns, "
            f"{len(foreign_keys)} foreign keys"
        )

        return TableSnapshot(
            name=table,
            columns=tuple(columns),
            primary_keys=tuple(pk.get("constrained_columns") or ()),
            foreign_keys=tuple(foreign_keys),
            unique_constraints=tuple(unique_constraints),
        )

    def get_all_snapshots(self) -> Dict[str, TableSnapshot]:
        """Snapshots of every table, keyed by name.

        Raises:
            SnapshotError: If any table cannot be read
        """
        return {table: self.get_snapshot(table) for table in self.get_tables()}

    def _get_unique_constraints(self, table: str) -> List[UniqueConstraint]:
        """Single-column unique constraints and unique indexes."""
        entries = []
        try:
            entries.extend(self.inspector.get_unique_constraints(table))
        except NotImplementedError:
            pass
        entries.extend(
            index for index in self.inspector.get_indexes(table) if index.get("unique")
        )

        constraints = []
        seen: Set[str] = set()
        for entry in entries:
            column_names = [name for name in entry.get("column_names") or [] if name]
            if len(column_names) != 1 or column_names[0] in seen:
                continue
            seen.add(column_names[0])
            constraints.append(
                UniqueConstraint(column=column_names[0], index_name=entry.get("name"))
            )
        return constraints

    def _to_column(self, table: str, info: dict) -> Column:
        column_type = info["type"]
        try:
            type_string = column_type.compile(dialect=self.engine.dialect)
        except CompileError:
            type_string = type(column_type).__name__.upper()

        return Column(
            name=info["name"],
            data_type=base_data_type(type_string),
            column_type=type_string.lower(),
            nullable=bool(info.get("nullable", True)),
        )
