"""Tests for ChangeApplier."""

import pytest
from sqlalchemy import create_engine, inspect

from dbmapper.exceptions import PlanValidationError
from dbmapper.managers import ChangeApplier, ChangePlanner, SqlAlchemyExecutor, normalize_on_delete
from dbmapper.models import AddColumnChange, AddRelationChange


class RecordingExecutor:
    """Executor that records statements and fails on request."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.statements = []

    def execute(self, statement):
        self.statements.append(statement)
        if len(self.statements) in self.fail_on:
            raise RuntimeError("duplicate column")


class TestOnDelete:
    """Test ON DELETE normalization."""

    @pytest.mark.parametrize(
        "action,expected",
        [
            ("cascade", "CASCADE"),
            ("Set Null", "SET NULL"),
            ("  no   action ", "NO ACTION"),
            ("RESTRICT", "RESTRICT"),
            ("drop everything", "RESTRICT"),
            ("", "RESTRICT"),
        ],
    )
    def test_normalize(self, action, expected):
        assert normalize_on_delete(action) == expected

    def test_default_used_when_missing(self):
        assert normalize_on_delete(None, "SET NULL") == "SET NULL"


class TestCompileSql:
    """Test DDL compilation per change kind."""

    @pytest.fixture
    def applier(self):
        return ChangeApplier()

    def test_add_column(self, applier):
        change = AddColumnChange(table="users", name="nickname", column_type="String")
        assert applier.compile_sql([change]) == [
            "ALTER TABLE `users` ADD COLUMN `nickname` VARCHAR(255) NULL"
        ]

    def test_add_column_not_null(self, applier):
        change = AddColumnChange(
            table="users", name="balance", column_type="decimal", nullable=False
        )
        assert applier.compile_sql([change]) == [
            "ALTER TABLE `users` ADD COLUMN `balance` DECIMAL(10, 2) NOT NULL"
        ]

    def test_unsupported_type_fails_whole_plan(self, applier):
        changes = [
            AddColumnChange(table="users", name="nickname", column_type="string"),
            AddColumnChange(table="users", name="shape", column_type="geometry"),
        ]

        with pytest.raises(PlanValidationError) as exc_info:
            applier.compile_sql(changes)
        assert "users.shape" in str(exc_info.value)

    def test_unsupported_type_executes_nothing(self, applier):
        executor = RecordingExecutor()
        changes = [AddColumnChange(table="users", name="shape", column_type="geometry")]

        with pytest.raises(PlanValidationError):
            applier.apply(changes, executor)
        assert executor.statements == []

    def test_many_to_one(self, applier):
        change = AddRelationChange(
            source_table="posts", kind="many-to-one", target_table="users", field_name="author"
        )
        assert applier.compile_sql([change]) == [
            "ALTER TABLE `posts` ADD COLUMN `author_id` BIGINT NULL",
            "ALTER TABLE `posts` ADD CONSTRAINT `fk_posts_author_id` FOREIGN KEY (`author_id`) "
            "REFERENCES `users`(`id`) ON DELETE SET NULL",
        ]

    def test_one_to_one_is_unique(self, applier):
        change = AddRelationChange(
            source_table="users",
            kind="one-to-one",
            target_table="profiles",
            field_name="profile",
            nullable=False,
            on_delete="cascade",
        )
        statements = applier.compile_sql([change])

        assert statements[0] == "ALTER TABLE `users` ADD COLUMN `profile_id` BIGINT NOT NULL UNIQUE"
        assert statements[1].endswith("ON DELETE CASCADE")

    def test_one_to_many_goes_on_target(self, applier):
        change = AddRelationChange(
            source_table="users",
            kind="one-to-many",
            target_table="posts",
            field_name="posts",
            inverse_field="author",
        )
        assert applier.compile_sql([change]) == [
            "ALTER TABLE `posts` ADD COLUMN `author_id` BIGINT NULL",
            "ALTER TABLE `posts` ADD CONSTRAINT `fk_posts_author_id` FOREIGN KEY (`author_id`) "
            "REFERENCES `users`(`id`) ON DELETE CASCADE",
        ]

    def test_one_to_many_defaults_to_source_name(self, applier):
        change = AddRelationChange(
            source_table="Users", kind="one-to-many", target_table="posts", field_name="posts"
        )
        assert applier.compile_sql([change])[0] == (
            "ALTER TABLE `posts` ADD COLUMN `users_id` BIGINT NULL"
        )

    def test_many_to_many_defaults(self, applier):
        change = AddRelationChange(
            source_table="posts", kind="many-to-many", target_table="tags", field_name="tags"
        )
        assert applier.compile_sql([change]) == [
            "CREATE TABLE IF NOT EXISTS `posts_tags` ("
            "`posts_id` BIGINT NOT NULL, `tags_id` BIGINT NOT NULL, "
            "PRIMARY KEY (`posts_id`, `tags_id`), "
            "CONSTRAINT `fk_posts_tags_posts_id` FOREIGN KEY (`posts_id`) "
            "REFERENCES `posts`(`id`) ON DELETE CASCADE, "
            "CONSTRAINT `fk_posts_tags_tags_id` FOREIGN KEY (`tags_id`) "
            "REFERENCES `tags`(`id`) ON DELETE CASCADE)"
        ]

    def test_many_to_many_custom_join(self, applier):
        change = AddRelationChange(
            source_table="users",
            kind="many-to-many",
            target_table="users",
            field_name="friends",
            join_table="friendships",
            join_columns=("user_id", "friend_id"),
        )
        statement = applier.compile_sql([change])[0]

        assert statement.startswith("CREATE TABLE IF NOT EXISTS `friendships` (")
        assert "PRIMARY KEY (`user_id`, `friend_id`)" in statement

    def test_many_to_many_same_join_columns_rejected(self, applier):
        change = AddRelationChange(
            source_table="users", kind="many-to-many", target_table="users", field_name="friends"
        )
        with pytest.raises(PlanValidationError):
            applier.compile_sql([change])

    def test_order_follows_plan(self, applier):
        planner = ChangePlanner()
        planner.add_column("users", "nickname", "string")
        planner.add_relation("posts", "many-to-one", "users", "author")
        planner.add_column("posts", "title", "text")

        statements = applier.compile_sql(planner.list_changes())

        assert len(statements) == 4
        assert "`nickname`" in statements[0]
        assert "`author_id`" in statements[1]
        assert "fk_posts_author_id" in statements[2]
        assert "`title`" in statements[3]


class TestApply:
    """Test statement execution."""

    @pytest.fixture
    def applier(self):
        return ChangeApplier()

    def test_all_succeed(self, applier):
        executor = RecordingExecutor()
        changes = [AddColumnChange(table="users", name="nickname", column_type="string")]

        report = applier.apply(changes, executor)

        assert report.success
        assert report.executed == executor.statements
        assert report.errors == []

    def test_failure_is_recorded_and_execution_continues(self, applier):
        executor = RecordingExecutor(fail_on={2})
        changes = [
            AddRelationChange(
                source_table="posts", kind="many-to-one", target_table="users", field_name="author"
            ),
            AddColumnChange(table="users", name="nickname", column_type="string"),
        ]

        report = applier.apply(changes, executor)

        assert not report.success
        assert len(executor.statements) == 3
        assert report.executed == [executor.statements[0], executor.statements[2]]
        assert len(report.errors) == 1
        assert executor.statements[1] in report.errors[0]
        assert "duplicate column" in report.errors[0]

    def test_single_failure_leaves_only_first_statement(self, applier):
        executor = RecordingExecutor(fail_on={2})
        change = AddRelationChange(
            source_table="posts", kind="many-to-one", target_table="users", field_name="author"
        )

        report = applier.apply([change], executor)

        assert report.executed == [executor.statements[0]]
        assert len(report.errors) == 1
        assert report.success is False


class TestSqlAlchemyExecutor:
    """Test statement execution on a real engine."""

    def test_executes_statement(self):
        engine = create_engine("sqlite://")
        try:
            executor = SqlAlchemyExecutor(engine)
            executor.execute("CREATE TABLE users (id INTEGER PRIMARY KEY)")
            executor.execute("ALTER TABLE users ADD COLUMN nickname VARCHAR(255) NULL")

            columns = [c["name"] for c in inspect(engine).get_columns("users")]
            assert columns == ["id", "nickname"]
        finally:
            engine.dispose()

    def test_failure_propagates(self):
        engine = create_engine("sqlite://")
        try:
            with pytest.raises(Exception):
                SqlAlchemyExecutor(engine).execute("ALTER TABLE missing ADD COLUMN x INT")
        finally:
            engine.dispose()
