"""Relationship analysis across a full set of table snapshots."""

import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from dbmapper.models import (
    Column,
    JoinTableClassification,
    RelationEdge,
    RelationGraph,
    TableSnapshot,
    owning_table,
)

logger = logging.getLogger(__name__)

AuditPredicate = Callable[[Column], bool]

DEFAULT_AUDIT_COLUMN_NAMES = ("created_at", "updated_at")
DEFAULT_AUDIT_NAME_MARKERS = ("created", "updated")
DEFAULT_AUDIT_COLUMN_TYPES = ("timestamp", "datetime")


def make_audit_predicate(
    names: Iterable[str] = DEFAULT_AUDIT_COLUMN_NAMES,
    name_markers: Iterable[str] = DEFAULT_AUDIT_NAME_MARKERS,
    column_types: Iterable[str] = DEFAULT_AUDIT_COLUMN_TYPES,
) -> AuditPredicate:
    """Build the predicate deciding which extra columns a join table may carry.

    A column is an audit column when its name is one of ``names``, or when
    its data type is one of ``column_types`` and its name contains one of
    ``name_markers`` (case-insensitive).

    Args:
        names: Exact column names always accepted
        name_markers: Substrings marking a timestamp column as audit data
        column_types: Data types eligible for the substring match

    Returns:
        Predicate taking a Column
    """
    exact = set(names)
    markers = tuple(marker.lower() for marker in name_markers)
    types = {t.lower() for t in column_types}

    def is_audit_column(column: Column) -> bool:
        if column.name in exact:
            return True
        if column.data_type.lower() not in types:
            return False
        lowered = column.name.lower()
        return any(marker in lowered for marker in markers)

    return is_audit_column


default_audit_column = make_audit_predicate()


class RelationshipAnalyzer:
    """Classifies join tables and indexes who references whom."""

    def __init__(
        self,
        is_audit_column: Optional[AuditPredicate] = None,
        detect_many_to_many: bool = True,
    ):
        """Initialize the analyzer.

        Args:
            is_audit_column: Predicate for columns a join table may carry
                besides its two keys (defaults to created/updated timestamps)
            detect_many_to_many: Set to False to treat every table as a
                regular entity
        """
        self.is_audit_column = is_audit_column or default_audit_column
        self.detect_many_to_many = detect_many_to_many

    @staticmethod
    def owner(first: str, second: str) -> str:
        """Owning side of a many-to-many pair."""
        return owning_table(first, second)

    def classify(self, snapshot: TableSnapshot) -> JoinTableClassification:
        """Test whether a table is a pure many-to-many association table.

        A table qualifies when it has exactly two foreign keys, their
        columns are exactly the primary key, and every other column is an
        audit column.

        Args:
            snapshot: Table to classify

        Returns:
            JoinTableClassification
        """
        not_join = JoinTableClassification(table=snapshot.name, is_many_to_many=False)

        foreign_keys = snapshot.distinct_foreign_keys()
        if len(foreign_keys) != 2:
            return not_join

        fk_columns = {fk.column for fk in foreign_keys}
        if len(fk_columns) != 2 or fk_columns != set(snapshot.primary_keys):
            return not_join

        for column in snapshot.columns:
            if column.name in fk_columns:
                continue
            if not self.is_audit_column(column):
                return not_join

        referenced = tuple(fk.referenced_table for fk in foreign_keys)
        return JoinTableClassification(
            table=snapshot.name,
            is_many_to_many=True,
            foreign_keys=tuple(foreign_keys),
            referenced_tables=referenced,
            owner=owning_table(referenced[0], referenced[1]),
        )

    def analyze(self, tables: Mapping[str, TableSnapshot]) -> RelationGraph:
        """Build the relation graph for a complete snapshot set.

        Args:
            tables: Snapshots keyed by table name, in scan order

        Returns:
            Immutable RelationGraph
        """
        join_tables: Dict[str, JoinTableClassification] = {}
        if self.detect_many_to_many:
            for name, snapshot in tables.items():
                classification = self.classify(snapshot)
                if classification.is_many_to_many:
                    join_tables[name] = classification

        inverse_index: Dict[str, List[RelationEdge]] = {}
        unresolved: List[RelationEdge] = []
        seen: Set[Tuple[str, str, str]] = set()

        for name, snapshot in tables.items():
            foreign_keys = snapshot.distinct_foreign_keys()

            targets: Dict[str, Set[str]] = {}
            for fk in foreign_keys:
                targets.setdefault(fk.referenced_table, set()).add(fk.column)

            for fk in foreign_keys:
                edge = RelationEdge(
                    source_table=name,
                    source_column=fk.column,
                    referenced_table=fk.referenced_table,
                    referenced_column=fk.referenced_column,
                    is_many_to_many=name in join_tables,
                    sibling_count=len(targets[fk.referenced_table]),
                )
                if edge.key in seen:
                    continue
                seen.add(edge.key)

                if fk.referenced_table not in tables:
                    logger.warning(
                        f"Foreign key {name}.{fk.column} references unknown table "
                        f"'{fk.referenced_table}'"
                    )
                    unresolved.append(edge)
                    continue

                inverse_index.setdefault(fk.referenced_table, []).append(edge)

        logger.debug(
            f"Analyzed {len(tables)} tables: {len(join_tables)} join tables, "
            f"{sum(len(edges) for edges in inverse_index.values())} relations"
        )

        return RelationGraph(
            tables=tuple(tables.keys()),
            join_tables=join_tables,
            inverse_index={
                table: tuple(edges) for table, edges in inverse_index.items()
            },
            unresolved_edges=tuple(unresolved),
            snapshots=dict(tables),
        )
