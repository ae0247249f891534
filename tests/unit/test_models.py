"""Tests for dbmapper models."""

import pytest
from pydantic import ValidationError

from dbmapper.models import (
    AddColumnChange,
    ApplyReport,
    Column,
    RelationEdge,
    TableSnapshot,
    UniqueConstraint,
    owning_table,
)


class TestTableSnapshot:
    """Test snapshot helpers."""

    @pytest.fixture
    def snapshot(self, messaging_schema):
        return messaging_schema["messages"]

    def test_get_column_is_case_insensitive(self, snapshot):
        assert snapshot.get_column("SENDER_ID").name == "sender_id"
        assert snapshot.get_column("missing") is None

    def test_foreign_key_columns(self, snapshot):
        assert snapshot.foreign_key_columns() == ["sender_id", "receiver_id"]

    def test_distinct_foreign_keys(self, make_snapshot):
        snapshot = make_snapshot(
            "messages",
            [("id", "int"), ("sender_id", "int")],
            foreign_keys=[
                ("sender_id", "users", "id"),
                ("sender_id", "users", "id"),
                ("sender_id", "accounts", "id"),
            ],
        )

        distinct = snapshot.distinct_foreign_keys()
        assert [(fk.column, fk.referenced_table) for fk in distinct] == [
            ("sender_id", "users"),
            ("sender_id", "accounts"),
        ]

    def test_unique_columns_merge_sources(self):
        snapshot = TableSnapshot(
            name="users",
            columns=(
                Column(name="email", data_type="varchar", unique=True),
                Column(name="login", data_type="varchar"),
            ),
            unique_constraints=(UniqueConstraint(column="login"),),
        )
        assert snapshot.unique_columns() == ["login", "email"]

    def test_with_primary_keys(self, snapshot):
        changed = snapshot.with_primary_keys(["body"])

        assert changed.primary_keys == ("body",)
        assert snapshot.primary_keys == ("id",)

    def test_snapshots_are_frozen(self, snapshot):
        with pytest.raises(ValidationError):
            snapshot.name = "other"

    def test_type_string_fallback(self):
        assert Column(name="a", data_type="int").type_string == "int"
        assert Column(name="a", data_type="int", column_type="int(11)").type_string == "int(11)"


class TestRelationModels:
    """Test relation values."""

    def test_edge_key(self):
        edge = RelationEdge(
            source_table="messages", source_column="sender_id", referenced_table="users"
        )
        assert edge.key == ("messages", "sender_id", "users")

    def test_owning_table(self):
        assert owning_table("tags", "posts") == "posts"
        assert owning_table("posts", "tags") == "posts"


class TestChangeModels:
    """Test staged change records."""

    def test_column_name_is_trimmed(self):
        change = AddColumnChange(table="users", name="  nickname ", column_type="string")
        assert change.name == "nickname"

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            AddColumnChange(table="users", name="a", column_type="string", default="x")

    def test_apply_report_defaults(self):
        report = ApplyReport(success=True)
        assert report.executed == []
        assert report.errors == []
