"""Tests for Laravel route file parsing."""

import pytest

from codechunker.indexer.laravel.routes import RouteParser

from laravel_fixture import API_ROUTES, WEB_ROUTES


@pytest.fixture(scope="module")
def parser():
    return RouteParser()


@pytest.fixture
def web_routes(write_tree, parser):
    root = write_tree({"routes/web.php": WEB_ROUTES})
    return parser.parse_file(root / "routes" / "web.php")


def summary(routes):
    return [(r.method, r.uri, r.controller, r.action) for r in routes]


class TestSingleRoutes:
    """Single-verb and match registrations."""

    def test_closure_route(self, web_routes):
        home = web_routes[0]
        assert (home.method, home.uri, home.controller, home.action) == ("GET", "/", "Closure", "")
        assert home.line == 6

    def test_controller_at_action_with_name(self, web_routes):
        about = [r for r in web_routes if r.uri == "/about"][0]
        assert (about.controller, about.action) == ("PageController", "about")
        assert about.name == "about"
        assert about.line == 10

    def test_match_fans_out_per_verb(self, web_routes):
        contact = [r for r in web_routes if r.uri == "/contact"]
        assert summary(contact) == [
            ("GET", "/contact", "ContactController", "handle"),
            ("POST", "/contact", "ContactController", "handle"),
        ]

    def test_middleware_before_and_after(self, web_routes):
        publish = [r for r in web_routes if r.uri == "/posts/{id}/publish"]
        assert len(publish) == 1
        assert publish[0].method == "POST"
        assert (publish[0].controller, publish[0].action) == ("PostController", "publish")
        assert publish[0].middleware == ["auth", "verified"]

    def test_unrecognized_action_yields_empty_strings(self, web_routes):
        dynamic = [r for r in web_routes if r.uri == "/dynamic"][0]
        assert (dynamic.controller, dynamic.action) == ("", "")


class TestResourceRoutes:
    """Resource expansion."""

    def test_resource_expands_in_order(self, web_routes):
        photos = [r for r in web_routes if r.uri.startswith("photos")]
        assert summary(photos) == [
            ("GET", "photos", "PhotoController", "index"),
            ("GET", "photos/create", "PhotoController", "create"),
            ("POST", "photos", "PhotoController", "store"),
            ("GET", "photos/{id}", "PhotoController", "show"),
            ("GET", "photos/{id}/edit", "PhotoController", "edit"),
            ("PUT/PATCH", "photos/{id}", "PhotoController", "update"),
            ("DELETE", "photos/{id}", "PhotoController", "destroy"),
        ]
        assert all(r.line == 16 for r in photos)
        assert photos[0].description == "Resource route for photos.index"

    def test_api_resource_skips_form_routes(self, write_tree, parser):
        root = write_tree({"routes/api.php": API_ROUTES})
        routes = parser.parse_file(root / "routes" / "api.php")
        assert [r.action for r in routes] == ["index", "store", "show", "update", "destroy"]
        assert {r.controller for r in routes} == {"PostController"}


class TestRouteFileErrors:
    """Unreadable and partially broken files."""

    def test_missing_file_yields_no_routes(self, tmp_path, parser):
        assert parser.parse_file(tmp_path / "nope.php") == []

    def test_only_route_facade_calls_count(self, write_tree, parser):
        root = write_tree(
            {
                "routes/web.php": "<?php\n$router->get('/x', 'A@b');\nOther::get('/y', 'A@b');\nRoute::post('/z', 'A@c');\n",
            }
        )
        routes = parser.parse_file(root / "routes" / "web.php")
        assert summary(routes) == [("POST", "/z", "A", "c")]
