"""Type utilities for mapping catalog types to Python, SQLAlchemy and DDL types."""

import re
from typing import List, Optional, Tuple

# Catalog data types grouped by the Python type they map to
INTEGER_TYPES = {
    "int",
    "integer",
    "bigint",
    "smallint",
    "mediumint",
    "serial",
    "bigserial",
}
BOOLEAN_TYPES = {"bool", "boolean", "tinyint", "bit"}
STRING_TYPES = {"varchar", "char", "string", "nvarchar", "nchar", "character", "enum", "set"}
TEXT_TYPES = {"text", "longtext", "mediumtext", "tinytext", "clob"}
DATETIME_TYPES = {
    "datetime",
    "datetimetz",
    "timestamp",
    "timestamptz",
    "datetime_immutable",
    "datetimetz_immutable",
}
DATE_TYPES = {"date", "date_immutable"}
TIME_TYPES = {"time", "time_immutable"}
FLOAT_TYPES = {"float", "double", "real"}
DECIMAL_TYPES = {"decimal", "numeric"}
JSON_TYPES = {"json", "jsonb"}

# Python annotation for each family
PYTHON_TYPE_MAPPING = {
    **{t: "int" for t in INTEGER_TYPES},
    **{t: "bool" for t in BOOLEAN_TYPES},
    **{t: "str" for t in STRING_TYPES | TEXT_TYPES},
    **{t: "datetime.datetime" for t in DATETIME_TYPES},
    **{t: "datetime.date" for t in DATE_TYPES},
    **{t: "datetime.time" for t in TIME_TYPES},
    **{t: "float" for t in FLOAT_TYPES},
    **{t: "decimal.Decimal" for t in DECIMAL_TYPES},
    **{t: "dict" for t in JSON_TYPES},
}

# Portable column types accepted when staging a new column, with their DDL
DDL_TYPE_MAPPING = {
    "string": "VARCHAR(255)",
    "text": "TEXT",
    "integer": "INT",
    "smallint": "SMALLINT",
    "bigint": "BIGINT",
    "boolean": "TINYINT(1)",
    "datetime": "DATETIME",
    "datetimetz": "DATETIME",
    "datetime_immutable": "DATETIME",
    "date": "DATE",
    "time": "TIME",
    "float": "DOUBLE",
    "decimal": "DECIMAL(10, 2)",
    "json": "JSON",
}

SUPPORTED_COLUMN_TYPES: List[str] = list(DDL_TYPE_MAPPING.keys())

_LENGTH_PATTERN = re.compile(r"\((\d+)\)")
_PRECISION_PATTERN = re.compile(r"\((\d+)\s*,\s*(\d+)\)")
_BASE_TYPE_PATTERN = re.compile(r"^\s*([A-Za-z_]+)")


def base_data_type(type_string: str) -> str:
    """Extract the lowercase base type name from a raw type string.

    Args:
        type_string: Raw type such as 'VARCHAR(255)' or 'int unsigned'

    Returns:
        Base type such as 'varchar' or 'int', or '' when nothing matches
    """
    match = _BASE_TYPE_PATTERN.match(type_string or "")
    return match.group(1).lower() if match else ""


def python_type(data_type: str) -> str:
    """Map a catalog data type to a Python annotation.

    Unrecognized types map to ``str`` so generated mappings stay typed.
    """
    return PYTHON_TYPE_MAPPING.get((data_type or "").lower(), "str")


def is_integer_type(data_type: str) -> bool:
    return (data_type or "").lower() in INTEGER_TYPES


def column_length(data_type: str, column_type: str) -> Optional[int]:
    """Length for character columns, read from the raw type string."""
    if not re.search(r"char|string", (data_type or "").lower()):
        return None
    match = _LENGTH_PATTERN.search(column_type or "")
    return int(match.group(1)) if match else None


def numeric_precision(column_type: str) -> Optional[Tuple[int, int]]:
    """Precision and scale for fixed-point columns, read from the raw type string."""
    match = _PRECISION_PATTERN.search(column_type or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def sqlalchemy_type(data_type: str, column_type: str = "") -> str:
    """Render the SQLAlchemy column type expression for a catalog type.

    Args:
        data_type: Catalog data type, e.g. 'varchar'
        column_type: Raw type string carrying size/precision

    Returns:
        Source expression such as 'types.String(255)'
    """
    data_type = (data_type or "").lower()

    if data_type in ("int", "integer", "mediumint", "serial"):
        return "types.Integer()"
    if data_type in ("bigint", "bigserial"):
        return "types.BigInteger()"
    if data_type == "smallint":
        return "types.SmallInteger()"
    if data_type in BOOLEAN_TYPES:
        return "types.Boolean()"
    if data_type in STRING_TYPES:
        length = column_length(data_type, column_type)
        return f"types.String({length})" if length else "types.String()"
    if data_type in TEXT_TYPES:
        return "types.Text()"
    if data_type in ("datetimetz", "timestamptz", "datetimetz_immutable"):
        return "types.DateTime(timezone=True)"
    if data_type in DATETIME_TYPES:
        return "types.DateTime()"
    if data_type in DATE_TYPES:
        return "types.Date()"
    if data_type in TIME_TYPES:
        return "types.Time()"
    if data_type in ("double", "real"):
        return "types.Double()"
    if data_type == "float":
        return "types.Float()"
    if data_type in DECIMAL_TYPES:
        precision = numeric_precision(column_type)
        if precision:
            return f"types.Numeric({precision[0]}, {precision[1]}, asdecimal=True)"
        return "types.Numeric(asdecimal=True)"
    if data_type in JSON_TYPES:
        return "types.JSON()"

    return "types.String()"


def is_supported_type(type_name: str) -> bool:
    """Check whether a portable type can be used for a new column."""
    return (type_name or "").strip().lower() in DDL_TYPE_MAPPING


def ddl_column_type(type_name: str) -> str:
    """Resolve a portable type name to its native DDL column type.

    Args:
        type_name: Portable type, case-insensitive (e.g. 'String')

    Returns:
        Native column type, e.g. 'VARCHAR(255)'

    Raises:
        ValueError: If the type is not supported
    """
    if not type_name:
        raise ValueError("Type cannot be empty")

    native = DDL_TYPE_MAPPING.get(type_name.strip().lower())
    if not native:
        raise ValueError(
            f"Unsupported column type: '{type_name}'. "
            f"Valid types: {', '.join(SUPPORTED_COLUMN_TYPES)}"
        )
    return native
