"""
Tests for derived names: record keys, tables, envelope keys, foreign keys.
"""

from __future__ import annotations

import pytest

from coredata_rest.core.strings import (
    foreign_key_column,
    pluralize,
    record_key,
    singular_key,
    table_name_for,
)


class TestPluralize:
    @pytest.mark.parametrize(
        "word,plural",
        [
            ("user", "users"),
            ("post", "posts"),
            ("category", "categories"),
            ("day", "days"),
            ("status", "statuses"),
            ("box", "boxes"),
            ("match", "matches"),
            ("wish", "wishes"),
            ("leaf", "leaves"),
            ("knife", "knives"),
            ("hero", "heroes"),
            ("person", "people"),
            ("child", "children"),
            ("sheep", "sheep"),
            ("", ""),
        ],
    )
    def test_pluralize(self, word, plural):
        assert pluralize(word) == plural


class TestDerivedNames:
    def test_record_key(self):
        assert record_key("user") == "User"
        assert record_key("blogPost") == "Blogpost"

    def test_singular_key(self):
        assert singular_key("BlogPost") == "blogpost"

    def test_table_name(self):
        assert table_name_for("User") == "users"
        assert table_name_for("Category") == "categories"
        assert table_name_for("Person") == "people"

    def test_foreign_key_column(self):
        assert foreign_key_column("author") == "author_id"
