"""dbmapper - infer SQLAlchemy mappings from a live schema and stage schema changes."""

from dbmapper.exceptions import (
    ApplyError,
    DbMapperError,
    GenerationError,
    PlanValidationError,
    SnapshotError,
)

try:
    from importlib.metadata import version

    __version__ = version("dbmapper")
except Exception:
    # Package metadata is not available when running from a source checkout
    __version__ = "0.1.0"

__all__ = [
    "ApplyError",
    "DbMapperError",
    "GenerationError",
    "PlanValidationError",
    "SnapshotError",
]
