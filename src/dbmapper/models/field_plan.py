"""Per-table field plan consumed by the mapping emitters.

A plan is resolved once per table and then read by both the field emitter
and the accessor emitter, so the two can never disagree about names.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from ..exceptions import GenerationError
from .table import Column


@dataclass(frozen=True)
class ScalarField:
    """A plain column attribute."""

    name: str
    column: Column
    python_type: str
    sa_type: str
    is_primary_key: bool = False
    is_generated: bool = False
    is_unique: bool = False

    @property
    def nullable(self) -> bool:
        # Generated keys stay empty until the row is first flushed
        return self.column.nullable or self.is_generated


@dataclass(frozen=True)
class ToOneField:
    """A reference to a single related instance, backed by a foreign key column."""

    name: str
    fk_attribute: str
    column: Column
    target_table: str
    target_class: str
    referenced_column: str
    python_type: str
    sa_type: str
    is_primary_key: bool = False
    is_unique: bool = False
    inverse_name: Optional[str] = None
    remote_side: Optional[str] = None

    @property
    def nullable(self) -> bool:
        return self.column.nullable


@dataclass(frozen=True)
class ToManyField:
    """A collection of instances whose foreign key points back at this table."""

    name: str
    target_table: str
    target_class: str
    mapped_by: str
    foreign_key_attribute: str


@dataclass(frozen=True)
class ToManyThroughJoinField:
    """A collection linked through a pure association table."""

    name: str
    target_table: str
    target_class: str
    join_table: str
    is_owner: bool
    join_column: str
    join_referenced_column: str
    inverse_join_column: str
    inverse_join_referenced_column: str
    inverse_name: Optional[str] = None


FieldPlan = Union[ScalarField, ToOneField, ToManyField, ToManyThroughJoinField]

# ("to_many", source table, foreign key column) or
# ("many_to_many", target table, join table)
RelationKey = Tuple[str, str, str]


@dataclass(frozen=True)
class TableNames:
    """Every attribute name assigned on one mapped type."""

    table: str
    class_name: str
    scalars: Dict[str, str] = field(default_factory=dict)
    # foreign key column -> (relation attribute, key attribute)
    references: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    collections: Dict[RelationKey, str] = field(default_factory=dict)


@dataclass(frozen=True)
class NameTable:
    """Attribute names for a whole schema.

    Both sides of a relation read their partner's names from here instead
    of deriving them again, so a collision suffix applied on one side is
    always seen by the other.
    """

    tables: Dict[str, TableNames] = field(default_factory=dict)
    errors: Dict[str, GenerationError] = field(default_factory=dict)

    def reference(self, table: str, column: str) -> Optional[Tuple[str, str]]:
        """(relation attribute, key attribute) for a foreign key column."""
        names = self.tables.get(table)
        return names.references.get(column) if names else None

    def collection(
        self, table: str, kind: str, related_table: str, discriminator: str
    ) -> Optional[str]:
        """Look up a collection attribute assigned on a table.

        Args:
            table: Table holding the collection
            kind: 'to_many' or 'many_to_many'
            related_table: Source table (to_many) or target table (many_to_many)
            discriminator: Foreign key column (to_many) or join table (many_to_many)

        Returns:
            The attribute name, or None if no such collection was assigned
        """
        names = self.tables.get(table)
        if names is None:
            return None
        return names.collections.get((kind, related_table, discriminator))


@dataclass(frozen=True)
class TablePlan:
    """Resolved fields for one table, in emission order."""

    table: str
    class_name: str
    fields: Tuple[FieldPlan, ...] = ()
    primary_keys: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    def scalars(self) -> List[ScalarField]:
        return [f for f in self.fields if isinstance(f, ScalarField)]

    def to_one(self) -> List[ToOneField]:
        return [f for f in self.fields if isinstance(f, ToOneField)]

    def to_many(self) -> List[ToManyField]:
        return [f for f in self.fields if isinstance(f, ToManyField)]

    def through_join(self) -> List[ToManyThroughJoinField]:
        return [f for f in self.fields if isinstance(f, ToManyThroughJoinField)]

    def collections(self) -> List[Union[ToManyField, ToManyThroughJoinField]]:
        """Every collection-valued field, in emission order."""
        return [
            f for f in self.fields if isinstance(f, (ToManyField, ToManyThroughJoinField))
        ]
