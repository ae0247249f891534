"""Utility functions for dbmapper."""

from .name_validator import (
    InvalidNameError,
    is_valid_identifier,
    validate_identifier,
)
from .naming import (
    clean_relation_property_name,
    extract_semantic_name,
    inverse_collection_name,
    lcfirst,
    pluralize,
    resolve_collision,
    singularize,
    to_camel_case,
    ucfirst,
)
from .type_utils import (
    SUPPORTED_COLUMN_TYPES,
    ddl_column_type,
    is_supported_type,
    python_type,
    sqlalchemy_type,
)

__all__ = [
    "InvalidNameError",
    "is_valid_identifier",
    "validate_identifier",
    "clean_relation_property_name",
    "extract_semantic_name",
    "inverse_collection_name",
    "lcfirst",
    "pluralize",
    "resolve_collision",
    "singularize",
    "to_camel_case",
    "ucfirst",
    "SUPPORTED_COLUMN_TYPES",
    "ddl_column_type",
    "is_supported_type",
    "python_type",
    "sqlalchemy_type",
]
