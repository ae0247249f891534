"""Naming rules for generated mappings.

Everything here is a pure function of its arguments. The only state is the
per-table set of already-assigned names, which callers pass in explicitly.
"""

import keyword
import re
from typing import MutableSet

from ..exceptions import GenerationError


# Checked before the regular pluralization rules
IRREGULAR_PLURALS = {
    "person": "people",
    "Person": "People",
    "child": "children",
    "Child": "Children",
}

IRREGULAR_SINGULARS = {plural: singular for singular, plural in IRREGULAR_PLURALS.items()}

# Role names with a dedicated past-tense prefix for inverse collections.
# Order matters: the first key found in the property name wins.
INVERSE_SYNONYMS = (
    ("sender", "sent"),
    ("receiver", "received"),
    ("author", "authored"),
    ("creator", "created"),
    ("owner", "owned"),
    ("parent", "child"),
)

MAX_COLLISION_SUFFIX = 100

_CONSONANT_Y = re.compile(r"[^aeiou]y$", re.IGNORECASE)
_SIBILANT_ENDING = re.compile(r"(ch|sh|ss|x|z)$", re.IGNORECASE)


def ucfirst(value: str) -> str:
    return value[:1].upper() + value[1:]


def lcfirst(value: str) -> str:
    return value[:1].lower() + value[1:]


def to_camel_case(value: str, capitalize_first: bool = False) -> str:
    """Convert an underscore-delimited identifier to camel case.

    Only the first letter of each segment is touched, the rest keeps its
    original case: ``"user_profile"`` becomes ``"userProfile"`` and
    ``"user_profile"`` with ``capitalize_first`` becomes ``"UserProfile"``.
    """
    result = "".join(ucfirst(part) for part in value.split("_"))
    return result if capitalize_first else lcfirst(result)


def pluralize(word: str) -> str:
    """Pluralize an English word.

    Words that already end in "s" are treated as plural and returned as-is.
    """
    if word in IRREGULAR_PLURALS:
        return IRREGULAR_PLURALS[word]

    if word.endswith("s"):
        return word

    if _CONSONANT_Y.search(word):
        return word[:-1] + "ies"

    if _SIBILANT_ENDING.search(word):
        return word + "es"

    return word + "s"


def singularize(word: str) -> str:
    if word in IRREGULAR_SINGULARS:
        return IRREGULAR_SINGULARS[word]

    if len(word) > 1 and word.endswith("s"):
        return word[:-1]

    return word


def extract_semantic_name(column: str, target_table: str) -> str:
    """Derive a role name from a foreign key column.

    Used when a table has several foreign keys to the same target, so
    ``sender_id`` and ``receiver_id`` become ``sender`` and ``receiver``
    instead of both collapsing to the target's name.

    Args:
        column: Foreign key column name
        target_table: Referenced table name

    Returns:
        Role name in lower camel case
    """
    name = to_camel_case(column)

    # A leading "id" only counts as a token when a new word follows it
    if name.startswith("id") and len(name) > 2 and name[2].isupper():
        name = name[2:]
    if name.endswith("Id") and len(name) > 2:
        name = name[:-2]

    if not name or name.lower() == "id":
        return lcfirst(singularize(to_camel_case(target_table, True)))

    return lcfirst(name)


def clean_relation_property_name(column: str, referenced_table: str) -> str:
    """Name a to-one reference when it is the only foreign key to its target.

    ``idUser`` referencing ``user`` becomes ``user``; anything else falls back
    to the singular name of the referenced table.
    """
    name = to_camel_case(column)
    entity = to_camel_case(referenced_table, True)

    if name.startswith("id") and len(name) > 2 and name[2:].lower() == entity.lower():
        return lcfirst(name[2:])

    return lcfirst(singularize(entity))


def inverse_collection_name(property_name: str, entity: str) -> str:
    """Name the collection on the referenced side of a disambiguated foreign key.

    Args:
        property_name: Role name of the to-one reference, e.g. 'sender'
        entity: Name of the referencing type, e.g. 'message'

    Returns:
        Collection name such as 'sentMessages', or 'reviewerMessages' when
        the role has no dedicated prefix
    """
    lowered = property_name.lower()
    for role, prefix in INVERSE_SYNONYMS:
        if role in lowered:
            return prefix + ucfirst(pluralize(entity))

    return property_name + ucfirst(pluralize(entity))


def to_python_identifier(name: str, table: str = "") -> str:
    """Make a generated name usable as a Python attribute.

    Keywords get a trailing underscore; anything that still isn't a valid
    identifier is rejected.

    Raises:
        GenerationError: If the name cannot be used as an identifier
    """
    if keyword.iskeyword(name):
        name = name + "_"

    if not name.isidentifier():
        raise GenerationError(table, f"'{name}' is not a valid Python identifier")

    return name


def resolve_collision(candidate: str, used: MutableSet[str], table: str = "") -> str:
    """Return a name not yet in ``used`` and register it there.

    Taken names get an increasing numeric suffix starting at 2.

    Args:
        candidate: Preferred name
        used: Names already assigned for the current table (mutated)
        table: Table being generated, for error messages

    Returns:
        The assigned name

    Raises:
        GenerationError: If the candidate is not a valid identifier or no
            free suffix is found
    """
    base = to_python_identifier(candidate, table)
    name = base
    suffix = 2
    while name in used:
        if suffix > MAX_COLLISION_SUFFIX:
            raise GenerationError(
                table, f"could not find a free name for '{base}' after {MAX_COLLISION_SUFFIX} attempts"
            )
        name = f"{base}{suffix}"
        suffix += 1

    used.add(name)
    return name
