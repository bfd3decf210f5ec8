"""Tests for Laravel-aware PHP chunking."""

import pytest

from codechunker.indexer.laravel.adapter import LaravelAdapter
from codechunker.indexer.laravel.controllers import guess_http_methods
from codechunker.indexer.models import ChunkKind

from laravel_fixture import APP_FILES


@pytest.fixture
def app_root(write_tree):
    return write_tree(APP_FILES)


@pytest.fixture
def chunks(app_root, registry):
    return LaravelAdapter(registry).analyze_paths([app_root])


def class_chunk(chunks, name):
    return [c for c in chunks if c.kind == ChunkKind.CLASS and c.name == name][0]


class TestEnrichment:
    """Model and controller metadata merged into class chunks."""

    def test_model_metadata(self, chunks):
        user = class_chunk(chunks, "User")
        assert user.metadata["framework"] == "laravel"
        assert user.metadata["laravel_type"] == "model"
        assert user.metadata["table"] == "app_users"
        assert [r["related_type"] for r in user.metadata["relations"]] == [
            "App\\Models\\Post",
            "App\\Billing\\Invoice",
            "App\\Teams\\Team",
        ]

    def test_non_model_untouched(self, chunks):
        helper = class_chunk(chunks, "Helper")
        assert "laravel_type" not in helper.metadata

    def test_controller_metadata(self, chunks):
        controller = class_chunk(chunks, "PostController")
        assert controller.metadata["laravel_type"] == "controller"
        assert controller.metadata["is_resource"] is True
        actions = {a["name"]: a["http_methods"] for a in controller.metadata["actions"]}
        assert "authorizeUser" not in actions
        assert actions["update"] == ["PUT", "PATCH"]
        assert actions["publish"] == ["GET"]


class TestRouteChunks:
    """Route registrations as chunks."""

    def test_routes_discovered(self, chunks):
        routes = [c for c in chunks if c.kind == ChunkKind.ROUTE]
        names = [c.name for c in routes]
        assert "GET /" in names
        assert "POST /posts/{id}/publish" in names
        assert len([n for n in names if n.endswith("photos")]) == 2
        assert len([c for c in routes if c.file_path.endswith("api.php")]) == 5

    def test_route_chunk_fields(self, chunks):
        about = [c for c in chunks if c.kind == ChunkKind.ROUTE and c.name == "GET /about"][0]
        assert about.package == "routes"
        assert about.signature == "Route::get('/about', ...)"
        assert about.docstring == "Route GET /about -> PageController@about"
        assert about.metadata["route_name"] == "about"
        assert about.start_line == about.end_line == 10

    def test_explicit_route_files(self, app_root, registry):
        adapter = LaravelAdapter(registry, route_files=[app_root / "routes" / "api.php"])
        routes = [c for c in adapter.analyze_paths([app_root]) if c.kind == ChunkKind.ROUTE]
        assert len(routes) == 5

    def test_output_sorted(self, chunks):
        keys = [(c.file_path, c.start_line) for c in chunks]
        assert keys == sorted(keys)


def test_guess_http_methods():
    assert guess_http_methods("index") == ["GET"]
    assert guess_http_methods("saveDraft") == ["POST"]
    assert guess_http_methods("removeItem") == ["DELETE"]
    assert guess_http_methods("custom") == ["GET"]
