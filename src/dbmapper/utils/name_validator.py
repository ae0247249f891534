"""Identifier validation for staged schema changes.

Names that end up inside generated DDL must be plain SQL identifiers so they
can be quoted safely. Existing table names are read from the catalog and are
trusted; only names typed in by the user go through here.
"""

import re


# Letters, digits and underscore; must not start with a digit
VALID_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# MySQL's identifier length limit
MAX_IDENTIFIER_LENGTH = 64


class InvalidNameError(ValueError):
    """Raised when a name doesn't meet validation requirements."""

    pass


def validate_identifier(name: str, entity_type: str = "identifier") -> str:
    """Validate that a name can be used as a SQL identifier.

    Valid names must:
    - Be non-empty after trimming whitespace
    - Not exceed 64 characters
    - Contain only letters, digits and underscore
    - Not start with a digit

    Args:
        name: The name to validate
        entity_type: Kind of name (column, table, field) for error messages

    Returns:
        The trimmed name

    Raises:
        InvalidNameError: If the name is invalid
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidNameError(f"{entity_type.capitalize()} name cannot be empty")

    if len(cleaned) > MAX_IDENTIFIER_LENGTH:
        raise InvalidNameError(
            f"{entity_type.capitalize()} name cannot exceed {MAX_IDENTIFIER_LENGTH} characters"
        )

    if "\x00" in cleaned or "`" in cleaned:
        raise InvalidNameError(
            f"Security violation: {entity_type} name '{cleaned}' contains forbidden characters"
        )

    if not VALID_IDENTIFIER_PATTERN.match(cleaned):
        raise InvalidNameError(
            f"Invalid {entity_type} name '{cleaned}'. "
            f"Names must contain only letters, numbers, and underscore (_), "
            f"and must not start with a number."
        )

    return cleaned


def is_valid_identifier(name: str) -> bool:
    """Check if a name is valid without raising an exception.

    Args:
        name: The name to check

    Returns:
        True if valid, False otherwise
    """
    try:
        validate_identifier(name)
        return True
    except InvalidNameError:
        return False
