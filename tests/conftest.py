"""Shared pytest fixtures for coredata-rest tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
import sqlalchemy as sa

from coredata_rest.converters import convert_model_description
from coredata_rest.specs import DataModelSpec, EntitySpec

# Post is declared before User, so its author relationship is a
# forward reference. Comment references itself through parent/replies.
BLOG_MODEL: dict[str, Any] = {
    "name": "blog",
    "entities": [
        {
            "name": "Post",
            "attributes": [
                {"name": "title", "type": "String", "optional": False, "minimumValue": 3},
                {"name": "body", "type": "String"},
                {"name": "views", "type": "Integer 32", "defaultValue": "0"},
                {"name": "rating", "type": "Decimal"},
            ],
            "relationships": [
                {"name": "author", "destination": "User", "optional": False, "inverseName": "posts"},
                {"name": "comments", "destination": "Comment", "toMany": True, "inverseName": "post"},
            ],
        },
        {
            "name": "User",
            "attributes": [
                {
                    "name": "name",
                    "type": "String",
                    "optional": False,
                    "indexed": True,
                    "minimumValue": 2,
                    "maximumValue": 40,
                },
                {"name": "age", "type": "Integer 16"},
                {"name": "score", "type": "Double"},
                {"name": "deviceToken", "type": "String"},
                {"name": "active", "type": "Boolean", "defaultValue": "YES"},
                {"name": "joined", "type": "Date"},
                {"name": "avatar", "type": "Binary"},
                {"name": "nickname", "type": "String", "transient": True},
            ],
            "relationships": [
                {"name": "posts", "destination": "Post", "toMany": True, "inverseName": "author"},
            ],
        },
        {
            "name": "Comment",
            "attributes": [{"name": "text", "type": "String"}],
            "relationships": [
                {"name": "post", "destination": "Post"},
                {"name": "parent", "destination": "Comment"},
                {"name": "replies", "destination": "Comment", "toMany": True, "inverseName": "parent"},
            ],
        },
    ],
}


@pytest.fixture
def blog_description() -> dict[str, Any]:
    """The blog model as decoded JSON."""
    return BLOG_MODEL


@pytest.fixture
def blog_model() -> DataModelSpec:
    """The blog model used across the suite."""
    return convert_model_description(BLOG_MODEL)


@pytest.fixture
def blog_entities(blog_model: DataModelSpec) -> list[EntitySpec]:
    return list(blog_model.entities)


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """URL of a fresh SQLite database file."""
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def engine(database_url: str) -> Iterator[sa.Engine]:
    engine = sa.create_engine(database_url, connect_args={"check_same_thread": False})
    yield engine
    engine.dispose()
