"""
Tests for the app factory helpers and route conflict detection.
"""

from __future__ import annotations

import json
import logging

import pytest
from fastapi import APIRouter, FastAPI

from coredata_rest.runtime.app_factory import (
    create_app,
    create_app_factory,
    create_app_from_dict,
    create_app_from_json,
    run_app,
)
from coredata_rest.runtime.route_validator import describe_routes, validate_routes


def _dispose(app: FastAPI) -> None:
    app.state.engine.dispose()


class TestFactories:
    def test_create_app_routes(self, blog_model, database_url):
        app = create_app(blog_model, database_url=database_url)
        try:
            routes = set(describe_routes(app))
            assert ("GET", "/users") in routes
            assert ("POST", "/users") in routes
            assert ("PUT", "/users/{record_id}") in routes
            assert ("DELETE", "/posts/{record_id}") in routes
            assert ("GET", "/posts/{record_id}/comments") in routes
            assert ("GET", "/comments/{record_id}/replies") in routes
            assert ("GET", "/posts/{record_id}/author") not in routes
        finally:
            _dispose(app)

    def test_from_dict(self, blog_description, database_url):
        app = create_app_from_dict(blog_description, database_url=database_url)
        try:
            assert app.title == "blog"
        finally:
            _dispose(app)

    def test_from_json(self, tmp_path, blog_description, database_url):
        path = tmp_path / "blog.json"
        path.write_text(json.dumps(blog_description))

        app = create_app_from_json(path, database_url=database_url)
        try:
            assert set(app.state.registry) == {"Post", "User", "Comment"}
        finally:
            _dispose(app)

    def test_env_factory_requires_model(self, monkeypatch):
        monkeypatch.delenv("COREDATA_MODEL", raising=False)
        with pytest.raises(RuntimeError, match="COREDATA_MODEL"):
            create_app_factory()

    def test_env_factory(self, monkeypatch, tmp_path, blog_description, database_url):
        path = tmp_path / "blog.json"
        path.write_text(json.dumps(blog_description))
        monkeypatch.setenv("COREDATA_MODEL", str(path))
        monkeypatch.setenv("DATABASE_URL", database_url)
        monkeypatch.delenv("COREDATA_LOG_DIR", raising=False)

        app = create_app_factory()
        try:
            assert app.state.engine.url.database.endswith("test.db")
        finally:
            _dispose(app)
            root = logging.getLogger("coredata")
            root.handlers.clear()
            root.propagate = True


class TestRouteConflicts:
    def _app_with_duplicate(self) -> FastAPI:
        app = FastAPI()
        for _ in range(2):
            router = APIRouter()
            router.add_api_route("/users", lambda: {}, methods=["GET"])
            app.include_router(router)
        return app

    def test_conflicts_reported(self):
        conflicts = validate_routes(self._app_with_duplicate())
        assert conflicts == ["GET /users registered 2 times"]

    def test_strict_mode_raises(self):
        with pytest.raises(RuntimeError, match="Route conflicts"):
            validate_routes(self._app_with_duplicate(), strict=True)

    def test_clean_app(self):
        assert validate_routes(FastAPI()) == []


class TestStartupLogging:
    def test_start_message_reaches_coredata_tree(self, monkeypatch, blog_model, database_url, caplog):
        import uvicorn

        monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: None)
        with caplog.at_level(logging.INFO, logger="coredata"):
            run_app(blog_model, port=8123, database_url=database_url)

        messages = [r.getMessage() for r in caplog.records if r.name.startswith("coredata.")]
        assert "Starting server on http://127.0.0.1:8123" in messages
