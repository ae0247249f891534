"""Derived relation models produced by the relationship analyzer."""

from typing import Dict, List, Optional, Tuple

from pydantic import Field

from .base import FrozenModel
from .table import ForeignKeyRef, TableSnapshot


def owning_table(first: str, second: str) -> str:
    """Pick the owning side of a many-to-many pair.

    The owner is the table whose name sorts first, compared
    case-insensitively, so both sides agree regardless of scan order.
    """
    return min(first, second, key=lambda name: (name.lower(), name))


class RelationEdge(FrozenModel):
    """One foreign key seen from the referenced table's side."""

    source_table: str = Field(description="Table that carries the foreign key")
    source_column: str = Field(description="Foreign key column in the source table")
    referenced_table: str = Field(description="Table being referenced")
    referenced_column: str = Field(default="id", description="Referenced column")
    is_many_to_many: bool = Field(
        default=False, description="Whether the source table is a pure join table"
    )
    sibling_count: int = Field(
        default=1,
        description="Number of foreign keys in the source table targeting the same table",
    )

    @property
    def key(self) -> Tuple[str, str, str]:
        """Identity of the edge: (source table, source column, referenced table)."""
        return (self.source_table, self.source_column, self.referenced_table)


class JoinTableClassification(FrozenModel):
    """Result of testing a table for pure many-to-many association shape."""

    table: str = Field(description="Classified table name")
    is_many_to_many: bool = Field(description="Whether it is a pure association table")
    foreign_keys: Tuple[ForeignKeyRef, ...] = Field(
        default=(), description="The two foreign keys when classified"
    )
    referenced_tables: Tuple[str, ...] = Field(
        default=(), description="The two referenced tables when classified"
    )
    owner: Optional[str] = Field(
        default=None, description="Referenced table that owns the join mapping"
    )


class ManyToManyRelation(FrozenModel):
    """A many-to-many edge resolved from one participant's perspective."""

    join_table: str
    target_table: str
    join_column: str
    join_referenced_column: str
    inverse_join_column: str
    inverse_join_referenced_column: str
    is_owner: bool


class RelationGraph(FrozenModel):
    """Immutable result of analyzing a full set of table snapshots."""

    tables: Tuple[str, ...] = Field(default=(), description="All analyzed table names")
    join_tables: Dict[str, JoinTableClassification] = Field(default_factory=dict)
    inverse_index: Dict[str, Tuple[RelationEdge, ...]] = Field(default_factory=dict)
    unresolved_edges: Tuple[RelationEdge, ...] = Field(default=())
    snapshots: Dict[str, TableSnapshot] = Field(
        default_factory=dict, description="Analyzed snapshots keyed by table name"
    )

    def has_table(self, table_name: str) -> bool:
        return table_name in self.tables

    def owner(self, first: str, second: str) -> str:
        """Owning side of a many-to-many pair."""
        return owning_table(first, second)

    def is_many_to_many_table(self, table_name: str) -> bool:
        """Check whether a table is a pure many-to-many association table."""
        return table_name in self.join_tables

    def list_many_to_many_tables(self) -> List[str]:
        """All pure association tables, in scan order."""
        return list(self.join_tables.keys())

    def get_inverse_relations(self, table_name: str) -> List[RelationEdge]:
        """Relations where the table is referenced, excluding join-table edges.

        Args:
            table_name: Referenced table

        Returns:
            List of RelationEdge objects in discovery order
        """
        return [
            edge
            for edge in self.inverse_index.get(table_name, ())
            if not edge.is_many_to_many
        ]

    def get_many_to_many_relations(self, table_name: str) -> List[ManyToManyRelation]:
        """Resolve every many-to-many edge the table participates in.

        Join tables whose other side is missing from the snapshot set, or
        whose two keys reference the same table, yield nothing.

        Args:
            table_name: Participating table

        Returns:
            List of ManyToManyRelation objects in join-table scan order
        """
        relations = []
        for join_table, classification in self.join_tables.items():
            if table_name not in classification.referenced_tables:
                continue

            others = [t for t in classification.referenced_tables if t != table_name]
            if not others or not self.has_table(others[0]):
                continue
            other_table = others[0]

            own_fk = next(
                fk for fk in classification.foreign_keys if fk.referenced_table == table_name
            )
            inverse_fk = next(
                fk for fk in classification.foreign_keys if fk.referenced_table == other_table
            )

            relations.append(
                ManyToManyRelation(
                    join_table=join_table,
                    target_table=other_table,
                    join_column=own_fk.column,
                    join_referenced_column=own_fk.referenced_column,
                    inverse_join_column=inverse_fk.column,
                    inverse_join_referenced_column=inverse_fk.referenced_column,
                    is_owner=owning_table(table_name, other_table) == table_name,
                )
            )
        return relations
