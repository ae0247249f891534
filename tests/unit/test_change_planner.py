"""Tests for ChangePlanner."""

import pytest
from pydantic import ValidationError

from dbmapper.managers import ChangePlanner
from dbmapper.models import AddColumnChange, AddRelationChange, RelationKind


class TestChangePlanner:
    """Test staging of schema changes."""

    @pytest.fixture
    def planner(self):
        return ChangePlanner()

    def test_starts_empty(self, planner):
        assert not planner.has_changes()
        assert planner.list_changes() == []
        assert len(planner) == 0

    def test_preserves_insertion_order(self, planner):
        planner.add_column("users", "nickname", "string")
        planner.add_relation("posts", RelationKind.MANY_TO_ONE, "users", "author")
        planner.add_column("users", "age", "integer", nullable=False)

        changes = planner.list_changes()
        assert [type(c) for c in changes] == [AddColumnChange, AddRelationChange, AddColumnChange]
        assert changes[2].name == "age"
        assert changes[2].nullable is False

    def test_list_changes_returns_copy(self, planner):
        planner.add_column("users", "nickname", "string")
        planner.list_changes().clear()
        assert len(planner) == 1

    def test_clear(self, planner):
        planner.add_column("users", "nickname", "string")
        planner.clear()
        assert not planner.has_changes()

    def test_add_change_from_dict(self, planner):
        change = planner.add_change(
            {
                "type": "add_relation",
                "source_table": "posts",
                "kind": "many-to-many",
                "target_table": "tags",
                "field_name": "tags",
                "join_table": "post_tags",
            }
        )

        assert isinstance(change, AddRelationChange)
        assert change.kind == "many-to-many"
        assert planner.list_changes() == [change]

    def test_unknown_change_type_rejected(self, planner):
        with pytest.raises(ValidationError):
            planner.add_change({"type": "drop_table", "table": "users"})
        assert not planner.has_changes()

    def test_invalid_field_name_rejected(self, planner):
        with pytest.raises(ValidationError):
            planner.add_column("users", "bad name", "string")
        with pytest.raises(ValidationError):
            planner.add_relation("posts", "many-to-one", "users", "author`; DROP")
        assert not planner.has_changes()

    def test_unknown_kind_rejected(self, planner):
        with pytest.raises(ValidationError):
            planner.add_relation("posts", "few-to-some", "users", "author")

    def test_describe(self, planner):
        column = planner.add_column("users", "nickname", "string")
        relation = planner.add_relation(
            "posts", "many-to-many", "tags", "tags", inverse_field="posts", join_table="post_tags"
        )

        assert column.describe() == (
            "[ADD COLUMN] Table users: nickname (string), nullable: yes"
        )
        assert relation.describe() == (
            "[ADD RELATION] Table posts -> tags: many-to-many (field: tags), "
            "inverse: posts, join table: post_tags"
        )
