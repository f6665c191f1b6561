"""
Tests for the coredata CLI.
"""

from __future__ import annotations

import json

import pytest
import sqlalchemy as sa
from typer.testing import CliRunner

from coredata_rest.cli import app

runner = CliRunner()


@pytest.fixture
def model_file(tmp_path, blog_description):
    path = tmp_path / "blog.json"
    path.write_text(json.dumps(blog_description))
    return path


class TestMigrateCommand:
    def test_migrate_creates_tables(self, model_file, database_url, engine):
        result = runner.invoke(app, ["migrate", str(model_file), "--database-url", database_url])

        assert result.exit_code == 0, result.output
        assert "Applied migrations" in result.output
        assert set(sa.inspect(engine).get_table_names()) == {"users", "posts", "comments"}

    def test_second_migrate_is_up_to_date(self, model_file, database_url):
        runner.invoke(app, ["migrate", str(model_file), "--database-url", database_url])
        result = runner.invoke(app, ["migrate", str(model_file), "--database-url", database_url])

        assert result.exit_code == 0
        assert "up to date" in result.output

    def test_dry_run_changes_nothing(self, model_file, database_url, engine):
        result = runner.invoke(
            app, ["migrate", str(model_file), "--database-url", database_url, "--dry-run"]
        )

        assert result.exit_code == 0, result.output
        assert "Planned migrations" in result.output
        assert sa.inspect(engine).get_table_names() == []

    def test_broken_model_exits_nonzero(self, tmp_path, database_url):
        path = tmp_path / "broken.json"
        path.write_text(json.dumps([{"name": "Post", "relationships": [{"name": "a", "destination": "Nope"}]}]))

        result = runner.invoke(app, ["migrate", str(path), "--database-url", database_url])

        assert result.exit_code == 1
        assert "Nope" in result.output


class TestRoutesCommand:
    def test_lists_generated_routes(self, model_file):
        result = runner.invoke(app, ["routes", str(model_file)])

        assert result.exit_code == 0, result.output
        assert "/users/:id/posts" in result.output
        assert "/comments/:id/replies" in result.output

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "model.json"
        path.write_text("nope")

        result = runner.invoke(app, ["routes", str(path)])

        assert result.exit_code == 1

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["routes", str(tmp_path / "absent.json")])
        assert result.exit_code != 0


class TestVersionCommand:
    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "coredata-rest" in result.output

    def test_version_matches_project_metadata(self):
        import tomllib
        from pathlib import Path

        from coredata_rest._version import get_version

        pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
        expected = tomllib.loads(pyproject.read_text())["project"]["version"]
        assert get_version() == expected
