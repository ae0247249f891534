"""Mapped type synthesis for SQLAlchemy declarative models."""

import json
import logging
import re
from typing import AbstractSet, Dict, List, Optional, Sequence, Set

from dbmapper.exceptions import GenerationError
from dbmapper.models import (
    Column,
    ForeignKeyRef,
    NameTable,
    RelationGraph,
    ScalarField,
    TableNames,
    TablePlan,
    TableSnapshot,
    ToManyField,
    ToManyThroughJoinField,
    ToOneField,
)
from dbmapper.utils.naming import (
    clean_relation_property_name,
    extract_semantic_name,
    inverse_collection_name,
    lcfirst,
    pluralize,
    resolve_collision,
    singularize,
    to_camel_case,
    to_python_identifier,
    ucfirst,
)
from dbmapper.utils.type_utils import is_integer_type, python_type, sqlalchemy_type

logger = logging.getLogger(__name__)

# Attribute names the declarative base already claims
RESERVED_ATTRIBUTES = frozenset({"metadata", "registry"})


def class_name_for(table: str) -> str:
    """Mapped class name for a table, e.g. 'user_profiles' -> 'UserProfiles'."""
    return to_python_identifier(to_camel_case(table, capitalize_first=True), table)


def module_name_for(class_name: str) -> str:
    """Module name for a mapped class, e.g. 'UserProfiles' -> 'user_profiles'."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", class_name)
    name = re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()
    return to_python_identifier(name, class_name)


def _quote(value: str) -> str:
    return json.dumps(value)


def _item_name(collection: str) -> str:
    """Parameter and method stem for one element of a collection."""
    item = singularize(collection)
    return item if item != collection else f"{collection}_item"


class MappingSynthesizer:
    """Turns table snapshots into SQLAlchemy mapped types and repositories.

    Output is a pure function of the snapshot and the relation graph, so
    running it twice on an unchanged schema yields identical text.
    """

    def __init__(self, entity_package: str = "models", bidirectional: bool = True):
        """Initialize the synthesizer.

        Args:
            entity_package: Import path of the package holding generated types
            bidirectional: Whether to emit inverse collections and
                back_populates wiring
        """
        self.entity_package = entity_package
        self.bidirectional = bidirectional

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def detect_primary_key(self, table: str, columns: Sequence[Column]) -> List[str]:
        """Guess the primary key of a table the catalog reports none for.

        Column names are tested in order against variants of ``id`` combined
        with the table name; failing that, the first column whose name
        contains both "id" and the table name wins.

        Args:
            table: Table name
            columns: Table columns in catalog order

        Returns:
            A single-element list with the detected column, or an empty list
        """
        patterns = {
            f"id{table}",
            f"id{ucfirst(table)}",
            f"id{table.lower()}",
            f"id{lcfirst(table)}",
            f"id_{table.lower()}",
            "id",
            f"{table}Id",
            f"{table}_id",
            f"{table.lower()}_id",
        }
        lowered_table = table.lower()

        for column in columns:
            if column.name in patterns:
                return [column.name]

            lowered = column.name.lower()
            if "id" in lowered and lowered_table in lowered:
                return [column.name]

        return []

    def _is_mappable_target(
        self, table: str, graph: RelationGraph, excluded: AbstractSet[str] = frozenset()
    ) -> bool:
        return (
            graph.has_table(table)
            and not graph.is_many_to_many_table(table)
            and table not in excluded
        )

    def _mappable_foreign_keys(
        self, snapshot: TableSnapshot, graph: RelationGraph, excluded: AbstractSet[str]
    ) -> List[ForeignKeyRef]:
        return [
            fk
            for fk in snapshot.distinct_foreign_keys()
            if self._is_mappable_target(fk.referenced_table, graph, excluded)
        ]

    def resolve_names(self, graph: RelationGraph) -> NameTable:
        """Assign every attribute name in the schema in one deterministic pass.

        Each table claims its names in a fixed order: scalars, references,
        inverse collections, then collections through join tables. Names
        on one table never depend on names chosen on another, so the
        opposite side of a relation can simply look them up.

        A table whose names can't be resolved is recorded in ``errors`` and
        stops counting as a relation target; the remaining tables are then
        named again without it.

        Args:
            graph: Relation graph carrying the analyzed snapshots

        Returns:
            NameTable covering every mappable table
        """
        errors: Dict[str, GenerationError] = {}
        while True:
            tables: Dict[str, TableNames] = {}
            failed = False
            for table, snapshot in graph.snapshots.items():
                if table in errors or graph.is_many_to_many_table(table):
                    continue
                try:
                    tables[table] = self._assign_names(snapshot, graph, errors.keys())
                except GenerationError as e:
                    errors[table] = e
                    failed = True
            if not failed:
                return NameTable(tables=tables, errors=dict(errors))

    def _assign_names(
        self, snapshot: TableSnapshot, graph: RelationGraph, excluded: AbstractSet[str]
    ) -> TableNames:
        table = snapshot.name
        class_name = class_name_for(table)
        foreign_keys = self._mappable_foreign_keys(snapshot, graph, excluded)
        fk_columns = {fk.column.lower() for fk in foreign_keys}
        target_counts: Dict[str, int] = {}
        for fk in foreign_keys:
            target_counts[fk.referenced_table] = target_counts.get(fk.referenced_table, 0) + 1

        used: Set[str] = set(RESERVED_ATTRIBUTES)
        names = TableNames(table=table, class_name=class_name)

        for column in snapshot.columns:
            if column.name.lower() not in fk_columns:
                names.scalars[column.name] = resolve_collision(
                    to_camel_case(column.name), used, table
                )

        for fk in foreign_keys:
            if snapshot.get_column(fk.column) is None:
                raise GenerationError(
                    table, "foreign key column is missing from the column list", fk.column
                )
            if target_counts[fk.referenced_table] > 1:
                role = extract_semantic_name(fk.column, fk.referenced_table)
            else:
                role = clean_relation_property_name(fk.column, fk.referenced_table)

            name = resolve_collision(role, used, table)
            names.references[fk.column] = (name, resolve_collision(f"{name}Id", used, table))

        if self.bidirectional:
            for edge in graph.get_inverse_relations(table):
                if edge.source_table in excluded:
                    continue
                source_entity = lcfirst(class_name_for(edge.source_table))
                if edge.sibling_count > 1:
                    role = extract_semantic_name(edge.source_column, table)
                    candidate = inverse_collection_name(role, source_entity)
                else:
                    candidate = pluralize(source_entity)
                key = ("to_many", edge.source_table, edge.source_column)
                names.collections[key] = resolve_collision(candidate, used, table)

        # Both sides walk the join tables in the same order, so repeated
        # pairs get matching ordinal suffixes.
        occurrences: Dict[str, int] = {}
        for relation in graph.get_many_to_many_relations(table):
            count = occurrences.get(relation.target_table, 0) + 1
            occurrences[relation.target_table] = count
            ordinal = str(count) if count > 1 else ""

            if relation.target_table in excluded:
                continue
            if not relation.is_owner and not self.bidirectional:
                continue

            candidate = pluralize(lcfirst(class_name_for(relation.target_table))) + ordinal
            key = ("many_to_many", relation.target_table, relation.join_table)
            names.collections[key] = resolve_collision(candidate, used, table)

        return names

    def plan_fields(
        self,
        snapshot: TableSnapshot,
        graph: RelationGraph,
        names: Optional[NameTable] = None,
    ) -> TablePlan:
        """Resolve every field of a table's mapped type.

        Args:
            snapshot: Table to plan
            graph: Relation graph for the full snapshot set
            names: Schema-wide names from ``resolve_names``; computed from
                the graph when omitted

        Returns:
            TablePlan with fields in emission order

        Raises:
            GenerationError: If a name cannot be resolved
        """
        if names is None:
            names = self.resolve_names(graph)

        table = snapshot.name
        if table in names.errors:
            raise names.errors[table]

        excluded = names.errors.keys()
        local = names.tables.get(table)
        if local is None:
            local = self._assign_names(snapshot, graph, excluded)

        def names_of(other: str) -> Optional[TableNames]:
            return local if other == table else names.tables.get(other)

        class_name = local.class_name
        warnings: List[str] = []

        primary_keys = list(snapshot.primary_keys)
        if not primary_keys:
            primary_keys = self.detect_primary_key(table, snapshot.columns)
            if not primary_keys:
                warnings.append(
                    f"Table '{table}' has no primary key; add one before using '{class_name}'"
                )
        pk_set = set(primary_keys)
        unique_columns = set(snapshot.unique_columns())
        foreign_keys = self._mappable_foreign_keys(snapshot, graph, excluded)
        fields = []

        for column in snapshot.columns:
            name = local.scalars.get(column.name)
            if name is None:
                continue

            is_primary_key = column.name in pk_set
            fields.append(
                ScalarField(
                    name=name,
                    column=column,
                    python_type=python_type(column.data_type),
                    sa_type=sqlalchemy_type(column.data_type, column.column_type),
                    is_primary_key=is_primary_key,
                    is_generated=(
                        is_primary_key
                        and len(primary_keys) == 1
                        and is_integer_type(column.data_type)
                    ),
                    is_unique=column.name in unique_columns,
                )
            )

        for fk in foreign_keys:
            column = snapshot.get_column(fk.column)
            name, fk_attribute = local.references[fk.column]
            target = names_of(fk.referenced_table)

            inverse_name = None
            if self.bidirectional and target is not None:
                inverse_name = target.collections.get(("to_many", table, fk.column))

            remote_side = None
            if fk.referenced_table == table:
                referenced_attribute = local.scalars.get(
                    fk.referenced_column, to_camel_case(fk.referenced_column)
                )
                remote_side = f"{class_name}.{referenced_attribute}"

            fields.append(
                ToOneField(
                    name=name,
                    fk_attribute=fk_attribute,
                    column=column,
                    target_table=fk.referenced_table,
                    target_class=class_name_for(fk.referenced_table),
                    referenced_column=fk.referenced_column,
                    python_type=python_type(column.data_type),
                    sa_type=sqlalchemy_type(column.data_type, column.column_type),
                    is_primary_key=fk.column in pk_set,
                    is_unique=fk.column in unique_columns,
                    inverse_name=inverse_name,
                    remote_side=remote_side,
                )
            )

        for edge in graph.get_inverse_relations(table):
            name = local.collections.get(("to_many", edge.source_table, edge.source_column))
            source = names_of(edge.source_table)
            if name is None or source is None or edge.source_column not in source.references:
                continue

            mapped_by, fk_attribute = source.references[edge.source_column]
            fields.append(
                ToManyField(
                    name=name,
                    target_table=edge.source_table,
                    target_class=source.class_name,
                    mapped_by=mapped_by,
                    foreign_key_attribute=f"{source.class_name}.{fk_attribute}",
                )
            )

        for relation in graph.get_many_to_many_relations(table):
            key = ("many_to_many", relation.target_table, relation.join_table)
            name = local.collections.get(key)
            target = names_of(relation.target_table)
            if name is None or target is None:
                continue

            inverse_name = None
            if self.bidirectional:
                inverse_name = target.collections.get(
                    ("many_to_many", table, relation.join_table)
                )

            fields.append(
                ToManyThroughJoinField(
                    name=name,
                    target_table=relation.target_table,
                    target_class=target.class_name,
                    join_table=relation.join_table,
                    is_owner=relation.is_owner,
                    join_column=relation.join_column,
                    join_referenced_column=relation.join_referenced_column,
                    inverse_join_column=relation.inverse_join_column,
                    inverse_join_referenced_column=relation.inverse_join_referenced_column,
                    inverse_name=inverse_name,
                )
            )

        for warning in warnings:
            logger.warning(warning)

        return TablePlan(
            table=table,
            class_name=class_name,
            fields=tuple(fields),
            primary_keys=tuple(primary_keys),
            warnings=tuple(warnings),
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def synthesize_mapping(self, snapshot: TableSnapshot, graph: RelationGraph) -> str:
        """Generate the mapped type module for one table.

        Args:
            snapshot: Table to generate
            graph: Relation graph for the full snapshot set

        Returns:
            Python source text

        Raises:
            GenerationError: If a name cannot be resolved
        """
        return self.render_mapping(self.plan_fields(snapshot, graph))

    def render_mapping(self, plan: TablePlan) -> str:
        """Render a resolved plan as a Python module."""
        imports: Dict[str, Set[str]] = {"typing": set(), "sqlalchemy": set(), "orm": set()}
        stdlib: Set[str] = set()

        def optional(annotation: str, nullable: bool) -> str:
            if not nullable:
                return annotation
            imports["typing"].add("Optional")
            return f"Optional[{annotation}]"

        def note_python_type(annotation: str) -> None:
            module = annotation.split(".")[0]
            if module in ("datetime", "decimal"):
                stdlib.add(module)

        class_name = plan.class_name
        preamble: List[str] = []
        body: List[str] = [
            f"class {class_name}(Base):",
            f'    """Mapped type for the {plan.table} table."""',
            "",
            f"    __tablename__ = {_quote(plan.table)}",
            "",
        ]

        scalars = plan.scalars()
        if scalars:
            for f in scalars:
                imports["sqlalchemy"].add("types")
                imports["orm"].update(("Mapped", "mapped_column"))
                note_python_type(f.python_type)

                args = [_quote(f.column.name), f.sa_type]
                if f.is_primary_key:
                    args.append("primary_key=True")
                    if f.is_generated:
                        args.append("autoincrement=True")
                else:
                    if f.is_unique:
                        args.append("unique=True")
                    args.append(f"nullable={f.column.nullable}")

                annotation = optional(f.python_type, f.nullable)
                body.append(
                    f"    {f.name}: Mapped[{annotation}] = mapped_column({', '.join(args)})"
                )
            body.append("")

        references = plan.to_one()
        if references:
            for f in references:
                imports["sqlalchemy"].update(("ForeignKey", "types"))
                imports["orm"].update(("Mapped", "mapped_column", "relationship"))
                note_python_type(f.python_type)

                target = _quote(f"{f.target_table}.{f.referenced_column}")
                args = [_quote(f.column.name), f.sa_type, f"ForeignKey({target})"]
                if f.is_primary_key:
                    args.append("primary_key=True")
                else:
                    if f.is_unique:
                        args.append("unique=True")
                    args.append(f"nullable={f.nullable}")
                body.append(
                    f"    {f.fk_attribute}: Mapped[{optional(f.python_type, f.nullable)}]"
                    f" = mapped_column({', '.join(args)})"
                )

                rel_args = [_quote(f.target_class), f"foreign_keys=[{f.fk_attribute}]"]
                if f.remote_side:
                    rel_args.append(f"remote_side={_quote(f.remote_side)}")
                if f.inverse_name:
                    rel_args.append(f"back_populates={_quote(f.inverse_name)}")
                annotation = optional(_quote(f.target_class), f.nullable)
                body.append(
                    f"    {f.name}: Mapped[{annotation}] = relationship({', '.join(rel_args)})"
                )
            body.append("")

        collections = plan.collections()
        for f in collections:
            imports["typing"].add("List")
            imports["orm"].update(("Mapped", "relationship"))

            rel_args = [_quote(f.target_class)]
            if isinstance(f, ToManyField):
                rel_args.append(f"foreign_keys={_quote(f.foreign_key_attribute)}")
                rel_args.append(f"back_populates={_quote(f.mapped_by)}")
            else:
                if f.is_owner:
                    table_variable = self._join_table_variable(f.join_table)
                    preamble.extend(self._render_join_table(plan.table, f, table_variable))
                    imports["sqlalchemy"].update(("Column", "ForeignKey", "Table"))
                    rel_args.append(f"secondary={table_variable}")
                else:
                    rel_args.append(f"secondary={_quote(f.join_table)}")
                if f.inverse_name:
                    rel_args.append(f"back_populates={_quote(f.inverse_name)}")

            body.append(
                f"    {f.name}: Mapped[List[{_quote(f.target_class)}]]"
                f" = relationship({', '.join(rel_args)})"
            )
        if collections:
            body.append("")
            body.extend(self._render_initializer(collections))

        for f in scalars:
            body.extend(self._render_scalar_accessors(class_name, f))
        for f in references:
            body.extend(self._render_reference_accessors(class_name, f))
        for f in collections:
            body.extend(self._render_collection_accessors(class_name, f))

        while body and body[-1] == "":
            body.pop()

        lines = [f'"""Mapped type for the {plan.table} table."""', ""]
        for module in sorted(stdlib):
            lines.append(f"import {module}")
        if imports["typing"]:
            lines.append(f"from typing import {', '.join(sorted(imports['typing']))}")
        if stdlib or imports["typing"]:
            lines.append("")
        if imports["sqlalchemy"]:
            lines.append(f"from sqlalchemy import {', '.join(sorted(imports['sqlalchemy']))}")
        if imports["orm"]:
            lines.append(f"from sqlalchemy.orm import {', '.join(sorted(imports['orm']))}")
        if imports["sqlalchemy"] or imports["orm"]:
            lines.append("")
        lines.append(f"from {self.entity_package}.base import Base")
        lines.extend(["", ""])
        if preamble:
            lines.extend(preamble)
        lines.extend(body)

        return "\n".join(lines) + "\n"

    def _join_table_variable(self, join_table: str) -> str:
        name = re.sub(r"\W", "_", join_table)
        if name[:1].isdigit():
            name = f"_{name}"
        return f"{name}_table"

    def _render_join_table(
        self, table: str, f: ToManyThroughJoinField, variable: str
    ) -> List[str]:
        own_target = _quote(f"{table}.{f.join_referenced_column}")
        other_target = _quote(f"{f.target_table}.{f.inverse_join_referenced_column}")
        return [
            f"{variable} = Table(",
            f"    {_quote(f.join_table)},",
            "    Base.metadata,",
            f"    Column({_quote(f.join_column)}, ForeignKey({own_target}), primary_key=True),",
            f"    Column({_quote(f.inverse_join_column)}, ForeignKey({other_target}), primary_key=True),",
            ")",
            "",
            "",
        ]

    def _render_initializer(self, collections) -> List[str]:
        lines = ["    def __init__(self, **kwargs):"]
        for f in collections:
            lines.append(f"        kwargs.setdefault({_quote(f.name)}, [])")
        lines.extend(["        super().__init__(**kwargs)", ""])
        return lines

    def _render_scalar_accessors(self, class_name: str, f: ScalarField) -> List[str]:
        annotation = f"Optional[{f.python_type}]" if f.nullable else f.python_type
        method = ucfirst(f.name)
        lines = [
            f"    def get{method}(self) -> {annotation}:",
            f"        return self.{f.name}",
            "",
        ]
        # Generated keys are assigned by the database
        if not f.is_generated:
            lines.extend(
                [
                    f"    def set{method}(self, value: {annotation}) -> {_quote(class_name)}:",
                    f"        self.{f.name} = value",
                    "        return self",
                    "",
                ]
            )
        return lines

    def _render_reference_accessors(self, class_name: str, f: ToOneField) -> List[str]:
        target = _quote(f.target_class)
        annotation = f"Optional[{target}]" if f.nullable else target
        method = ucfirst(f.name)
        return [
            f"    def get{method}(self) -> {annotation}:",
            f"        return self.{f.name}",
            "",
            f"    def set{method}(self, value: {annotation}) -> {_quote(class_name)}:",
            f"        self.{f.name} = value",
            "        return self",
            "",
        ]

    def _render_collection_accessors(self, class_name, f) -> List[str]:
        target = _quote(f.target_class)
        item = _item_name(f.name)
        method = ucfirst(item)
        owner = _quote(class_name)

        lines = [
            f"    def get{ucfirst(f.name)}(self) -> List[{target}]:",
            f"        return self.{f.name}",
            "",
            f"    def add{method}(self, {item}: {target}) -> {owner}:",
            f"        if {item} not in self.{f.name}:",
            f"            self.{f.name}.append({item})",
        ]
        if isinstance(f, ToManyField):
            lines.append(f"            {item}.set{ucfirst(f.mapped_by)}(self)")
        elif not f.is_owner and f.inverse_name:
            lines.append(f"            {item}.add{ucfirst(_item_name(f.inverse_name))}(self)")
        lines.extend(
            [
                "        return self",
                "",
                f"    def remove{method}(self, {item}: {target}) -> {owner}:",
                f"        if {item} in self.{f.name}:",
                f"            self.{f.name}.remove({item})",
            ]
        )
        if isinstance(f, ToManyField):
            lines.extend(
                [
                    f"            if {item}.get{ucfirst(f.mapped_by)}() is self:",
                    f"                {item}.set{ucfirst(f.mapped_by)}(None)",
                ]
            )
        elif not f.is_owner and f.inverse_name:
            lines.append(f"            {item}.remove{ucfirst(_item_name(f.inverse_name))}(self)")
        lines.extend(["        return self", ""])
        return lines

    def synthesize_data_access_type(self, type_name: str) -> str:
        """Generate the repository module for a mapped type.

        Args:
            type_name: Mapped class name

        Returns:
            Python source text
        """
        module = module_name_for(type_name)
        lines = [
            f'"""Repository for {type_name}."""',
            "",
            "from typing import Any, List, Optional",
            "",
            "from sqlalchemy import func, select",
            "from sqlalchemy.orm import Session",
            "",
            f"from {self.entity_package}.{module} import {type_name}",
            "",
            "",
            f"class {type_name}Repository:",
            f'    """Data access for {type_name} instances."""',
            "",
            "    def __init__(self, session: Session):",
            "        self.session = session",
            "",
            f"    def find(self, ident: Any) -> Optional[{type_name}]:",
            f"        return self.session.get({type_name}, ident)",
            "",
            f"    def find_all(self) -> List[{type_name}]:",
            f"        return list(self.session.scalars(select({type_name})))",
            "",
            f"    def find_by(self, **criteria: Any) -> List[{type_name}]:",
            f"        return list(self.session.scalars(select({type_name}).filter_by(**criteria)))",
            "",
            f"    def find_one_by(self, **criteria: Any) -> Optional[{type_name}]:",
            f"        return self.session.scalars(select({type_name}).filter_by(**criteria)).first()",
            "",
            "    def count(self, **criteria: Any) -> int:",
            f"        query = select({type_name}).filter_by(**criteria).subquery()",
            "        return self.session.scalar(select(func.count()).select_from(query))",
            "",
            f"    def add(self, entity: {type_name}, flush: bool = False) -> {type_name}:",
            "        self.session.add(entity)",
            "        if flush:",
            "            self.session.flush()",
            "        return entity",
            "",
            f"    def remove(self, entity: {type_name}, flush: bool = False) -> None:",
            "        self.session.delete(entity)",
            "        if flush:",
            "            self.session.flush()",
        ]
        return "\n".join(lines) + "\n"

    def synthesize_base(self) -> str:
        """Generate the declarative base module shared by all mapped types."""
        lines = [
            '"""Declarative base for generated mapped types."""',
            "",
            "from sqlalchemy.orm import DeclarativeBase",
            "",
            "",
            "class Base(DeclarativeBase):",
            "    pass",
        ]
        return "\n".join(lines) + "\n"
