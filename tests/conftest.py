"""Shared fixtures for dbmapper tests."""

import shutil
import tempfile
from pathlib import Path

import pytest

from dbmapper.models import Column, ForeignKeyRef, TableSnapshot, UniqueConstraint


def _snapshot(name, columns, primary_keys=("id",), foreign_keys=(), unique=()):
    """Build a snapshot from (name, data_type[, column_type[, nullable]]) tuples."""
    built = []
    for entry in columns:
        column_name, data_type = entry[0], entry[1]
        column_type = entry[2] if len(entry) > 2 else data_type
        nullable = entry[3] if len(entry) > 3 else True
        built.append(
            Column(
                name=column_name,
                data_type=data_type,
                column_type=column_type,
                nullable=nullable,
            )
        )
    return TableSnapshot(
        name=name,
        columns=tuple(built),
        primary_keys=tuple(primary_keys),
        foreign_keys=tuple(
            ForeignKeyRef(column=column, referenced_table=table, referenced_column=ref)
            for column, table, ref in foreign_keys
        ),
        unique_constraints=tuple(UniqueConstraint(column=column) for column in unique),
    )


@pytest.fixture
def make_snapshot():
    """Factory for hand-built table snapshots."""
    return _snapshot


@pytest.fixture
def messaging_schema():
    """Users and messages, where messages reference users twice."""
    users = _snapshot(
        "users",
        [
            ("id", "int", "int", False),
            ("email", "varchar", "varchar(180)", False),
            ("created_at", "datetime"),
        ],
        unique=["email"],
    )
    messages = _snapshot(
        "messages",
        [
            ("id", "int", "int", False),
            ("sender_id", "int", "int", False),
            ("receiver_id", "int", "int", False),
            ("body", "text"),
        ],
        foreign_keys=[
            ("sender_id", "users", "id"),
            ("receiver_id", "users", "id"),
        ],
    )
    return {"users": users, "messages": messages}


@pytest.fixture
def blog_schema():
    """Posts and tags linked through a pure join table with an audit column."""
    posts = _snapshot(
        "posts",
        [
            ("id", "int", "int", False),
            ("title", "varchar", "varchar(255)", False),
            ("price", "decimal", "decimal(10,2)"),
        ],
    )
    tags = _snapshot(
        "tags",
        [
            ("id", "int", "int", False),
            ("label", "varchar", "varchar(64)", False),
        ],
    )
    post_tags = _snapshot(
        "post_tags",
        [
            ("post_id", "int", "int", False),
            ("tag_id", "int", "int", False),
            ("created_at", "datetime"),
        ],
        primary_keys=("post_id", "tag_id"),
        foreign_keys=[
            ("post_id", "posts", "id"),
            ("tag_id", "tags", "id"),
        ],
    )
    return {"posts": posts, "tags": tags, "post_tags": post_tags}


@pytest.fixture
def category_schema():
    """A self-referencing tree of categories."""
    categories = _snapshot(
        "categories",
        [
            ("id", "int", "int", False),
            ("parent_id", "int"),
            ("name", "varchar", "varchar(100)", False),
        ],
        foreign_keys=[("parent_id", "categories", "id")],
    )
    return {"categories": categories}


@pytest.fixture
def temp_dir():
    """Create a temporary directory removed after the test."""
    temp = tempfile.mkdtemp()
    yield Path(temp)
    shutil.rmtree(temp)


@pytest.fixture
def category_link_schema():
    """Links between categories whose two roles map to the same collection prefix."""
    category = _snapshot(
        "category",
        [
            ("id", "int", "int", False),
            ("name", "varchar", "varchar(100)", False),
        ],
    )
    category_link = _snapshot(
        "category_link",
        [
            ("id", "int", "int", False),
            ("parent_id", "int", "int", False),
            ("child_id", "int", "int", False),
        ],
        foreign_keys=[
            ("parent_id", "category", "id"),
            ("child_id", "category", "id"),
        ],
    )
    return {"category": category, "category_link": category_link}


@pytest.fixture
def author_schema():
    """Books with both a plain 'author' column and an author_id reference."""
    author = _snapshot(
        "author",
        [
            ("id", "int", "int", False),
            ("name", "varchar", "varchar(100)", False),
        ],
    )
    book = _snapshot(
        "book",
        [
            ("id", "int", "int", False),
            ("author", "varchar", "varchar(100)"),
            ("author_id", "int"),
        ],
        foreign_keys=[("author_id", "author", "id")],
    )
    return {"author": author, "book": book}
