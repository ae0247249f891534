"""Exception hierarchy for dbmapper.

Every failure carries the table, column or statement it concerns so the
message is actionable on its own.
"""

from typing import Optional


class DbMapperError(Exception):
    """Base class for all dbmapper errors."""

    pass


class SnapshotError(DbMapperError):
    """Raised when schema metadata for a table cannot be read."""

    def __init__(self, table: str, message: str):
        self.table = table
        super().__init__(f"Failed to read schema for table '{table}': {message}")


class GenerationError(DbMapperError):
    """Raised when a mapped type cannot be synthesized for a table."""

    def __init__(self, table: str, message: str, column: Optional[str] = None):
        self.table = table
        self.column = column
        location = f"'{table}.{column}'" if column else f"'{table}'"
        super().__init__(f"Cannot generate mapping for {location}: {message}")


class PlanValidationError(DbMapperError):
    """Raised when a staged change cannot be compiled to DDL."""

    pass


class ApplyError(DbMapperError):
    """A single DDL statement failed during apply."""

    def __init__(self, statement: str, cause: BaseException):
        self.statement = statement
        self.cause = cause
        super().__init__(f'Error executing "{statement}": {cause}')
