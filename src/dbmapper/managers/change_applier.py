"""DDL compilation and execution for staged schema changes."""

import logging
from typing import List, Optional, Sequence

from sqlalchemy.engine import Engine

from dbmapper.exceptions import ApplyError, PlanValidationError
from dbmapper.models import (
    AddColumnChange,
    AddRelationChange,
    ApplyReport,
    Change,
    RelationKind,
)
from dbmapper.utils.type_utils import ddl_column_type

logger = logging.getLogger(__name__)

ON_DELETE_ACTIONS = ("SET NULL", "CASCADE", "RESTRICT", "NO ACTION")

# Column type used for every generated foreign key
FOREIGN_KEY_TYPE = "BIGINT"


def normalize_on_delete(action: Optional[str], default: str = "RESTRICT") -> str:
    """Normalize an ON DELETE action.

    Matching is case-insensitive; anything unrecognized becomes RESTRICT.

    Args:
        action: User-supplied action, or None to use ``default``
        default: Action used when none was given

    Returns:
        One of SET NULL, CASCADE, RESTRICT, NO ACTION
    """
    if action is None:
        action = default
    normalized = " ".join(action.strip().upper().split())
    return normalized if normalized in ON_DELETE_ACTIONS else "RESTRICT"


def _q(identifier: str) -> str:
    return "`" + identifier.replace("`", "``") + "`"


class SqlAlchemyExecutor:
    """Runs each statement in its own transaction on a SQLAlchemy engine."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def execute(self, statement: str) -> None:
        with self.engine.begin() as conn:
            conn.exec_driver_sql(statement)


class ChangeApplier:
    """Compiles staged changes to MySQL DDL and executes them in order."""

    def compile_sql(self, changes: Sequence[Change]) -> List[str]:
        """Compile changes to DDL statements without executing anything.

        Args:
            changes: Staged changes in order

        Returns:
            Statements in execution order

        Raises:
            PlanValidationError: If any change cannot be compiled; no
                statements are returned in that case
        """
        statements: List[str] = []
        for change in changes:
            if isinstance(change, AddColumnChange):
                statements.append(self._compile_add_column(change))
            elif isinstance(change, AddRelationChange):
                statements.extend(self._compile_add_relation(change))
            else:
                raise PlanValidationError(f"Unknown change: {change!r}")
        return statements

    def apply(self, changes: Sequence[Change], executor) -> ApplyReport:
        """Execute staged changes one statement at a time.

        The whole plan is compiled before anything runs. A failing statement
        is recorded and the remaining statements are still attempted.

        Args:
            changes: Staged changes in order
            executor: Object with an ``execute(statement)`` method

        Returns:
            ApplyReport listing executed statements and errors

        Raises:
            PlanValidationError: If the plan cannot be compiled
        """
        statements = self.compile_sql(changes)

        executed: List[str] = []
        errors: List[str] = []
        for statement in statements:
            logger.debug(f"Executing: {statement}")
            try:
                executor.execute(statement)
            except Exception as e:
                error = ApplyError(statement, e)
                logger.error(str(error))
                errors.append(str(error))
                continue
            executed.append(statement)

        logger.info(f"Applied {len(executed)}/{len(statements)} statements")
        return ApplyReport(success=not errors, executed=executed, errors=errors)

    def _compile_add_column(self, change: AddColumnChange) -> str:
        try:
            column_type = ddl_column_type(change.column_type)
        except ValueError as e:
            raise PlanValidationError(
                f"Cannot add column '{change.table}.{change.name}': {e}"
            ) from e

        null_clause = "NULL" if change.nullable else "NOT NULL"
        return (
            f"ALTER TABLE {_q(change.table)} ADD COLUMN {_q(change.name)} "
            f"{column_type} {null_clause}"
        )

    def _compile_add_relation(self, change: AddRelationChange) -> List[str]:
        kind = change.kind
        source = change.source_table
        target = change.target_table

        if kind in (RelationKind.MANY_TO_ONE, RelationKind.ONE_TO_ONE):
            return self._compile_foreign_key(
                table=source,
                column=f"{change.field_name}_id",
                referenced_table=target,
                nullable=change.nullable,
                unique=kind == RelationKind.ONE_TO_ONE,
                on_delete=normalize_on_delete(change.on_delete, "SET NULL"),
            )

        if kind == RelationKind.ONE_TO_MANY:
            # The "many" side carries the column
            prefix = change.inverse_field or source.lower()
            return self._compile_foreign_key(
                table=target,
                column=f"{prefix}_id",
                referenced_table=source,
                nullable=change.nullable,
                unique=False,
                on_delete=normalize_on_delete(change.on_delete, "CASCADE"),
            )

        if kind == RelationKind.MANY_TO_MANY:
            return [self._compile_join_table(change)]

        raise PlanValidationError(f"Unsupported relation kind '{kind}' on table '{source}'")

    def _compile_foreign_key(
        self,
        table: str,
        column: str,
        referenced_table: str,
        nullable: bool,
        unique: bool,
        on_delete: str,
    ) -> List[str]:
        null_clause = "NULL" if nullable else "NOT NULL"
        unique_clause = " UNIQUE" if unique else ""
        return [
            f"ALTER TABLE {_q(table)} ADD COLUMN {_q(column)} "
            f"{FOREIGN_KEY_TYPE} {null_clause}{unique_clause}",
            f"ALTER TABLE {_q(table)} ADD CONSTRAINT {_q(f'fk_{table}_{column}')} "
            f"FOREIGN KEY ({_q(column)}) REFERENCES {_q(referenced_table)}(`id`) "
            f"ON DELETE {on_delete}",
        ]

    def _compile_join_table(self, change: AddRelationChange) -> str:
        source = change.source_table
        target = change.target_table
        join_table = change.join_table or f"{source}_{target}"
        if change.join_columns:
            source_column, target_column = change.join_columns
        else:
            source_column, target_column = f"{source}_id", f"{target}_id"

        if source_column == target_column:
            raise PlanValidationError(
                f"Join table '{join_table}' needs two distinct join columns, "
                f"got '{source_column}' twice"
            )

        return (
            f"CREATE TABLE IF NOT EXISTS {_q(join_table)} ("
            f"{_q(source_column)} {FOREIGN_KEY_TYPE} NOT NULL, "
            f"{_q(target_column)} {FOREIGN_KEY_TYPE} NOT NULL, "
            f"PRIMARY KEY ({_q(source_column)}, {_q(target_column)}), "
            f"CONSTRAINT {_q(f'fk_{join_table}_{source_column}')} FOREIGN KEY ({_q(source_column)}) "
            f"REFERENCES {_q(source)}(`id`) ON DELETE CASCADE, "
            f"CONSTRAINT {_q(f'fk_{join_table}_{target_column}')} FOREIGN KEY ({_q(target_column)}) "
            f"REFERENCES {_q(target)}(`id`) ON DELETE CASCADE)"
        )
