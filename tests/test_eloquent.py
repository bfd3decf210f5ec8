"""Tests for Eloquent model detection and metadata."""

import pytest

from codechunker.indexer.laravel.eloquent import EloquentAnalyzer, resolve_class_name, snake_case
from codechunker.indexer.php_analyzer import PhpAnalyzer, PhpClass

from laravel_fixture import APP_FILES


@pytest.fixture
def models(write_tree, registry):
    root = write_tree(APP_FILES)
    units = PhpAnalyzer(registry).analyze_units([root / "app"])
    return {model.class_name: model for model in EloquentAnalyzer(units).analyze_models()}


class TestModelDetection:
    """Which classes count as models."""

    def test_direct_and_inherited_models(self, models):
        assert set(models) == {"User", "Admin"}

    def test_inheritance_cycle_terminates(self, write_tree, registry):
        root = write_tree(
            {
                "A.php": "<?php\nnamespace App;\nclass A extends B {}\n",
                "B.php": "<?php\nnamespace App;\nclass B extends A {}\n",
            }
        )
        units = PhpAnalyzer(registry).analyze_units([root])
        assert EloquentAnalyzer(units).analyze_models() == []


class TestModelMetadata:
    """Declarative properties and naming conventions."""

    def test_properties(self, models):
        user = models["User"]
        assert user.fqn == "App\\Models\\User"
        assert user.table == "app_users"
        assert user.primary_key == "user_id"
        assert user.fillable == ["name", "email"]
        assert user.casts == {"email_verified_at": "datetime", "is_admin": "boolean"}
        assert user.timestamps is False
        assert user.soft_deletes is True

    def test_unsupported_list_element_empties_result(self, models):
        assert models["User"].hidden == []

    def test_scopes_accessors_mutators(self, models):
        user = models["User"]
        assert user.scopes == ["active"]
        assert user.accessors == ["full_name"]
        assert user.mutators == ["password_hash"]

    def test_defaults_for_undeclared_properties(self, models):
        admin = models["Admin"]
        assert admin.table == ""
        assert admin.fillable == []
        assert admin.timestamps is True


class TestRelations:
    """Relation extraction and class name resolution."""

    def test_relations_resolved(self, models):
        relations = {r.name: r for r in models["User"].relations}
        assert set(relations) == {"posts", "invoices", "team"}

        posts = relations["posts"]
        assert (posts.relation_kind, posts.related_type, posts.foreign_key) == ("hasMany", "App\\Models\\Post", "author_id")

        assert relations["invoices"].related_type == "App\\Billing\\Invoice"

        team = relations["team"]
        assert team.relation_kind == "belongsTo"
        assert team.related_type == "App\\Teams\\Team"
        assert (team.foreign_key, team.local_key) == ("team_id", "id")

    def test_fully_qualified_reference(self, models):
        roles = models["Admin"].relations[0]
        assert (roles.relation_kind, roles.related_type) == ("belongsToMany", "App\\Auth\\Role")


class TestHelpers:
    """Name helpers."""

    def test_snake_case(self):
        assert snake_case("FullName") == "full_name"
        assert snake_case("Name") == "name"

    def test_resolve_class_name(self):
        php_class = PhpClass(name="User", namespace="App\\Models", imports={"Carbon": "Illuminate\\Support\\Carbon"})
        assert resolve_class_name("Post::class", php_class) == "App\\Models\\Post"
        assert resolve_class_name("Carbon", php_class) == "Illuminate\\Support\\Carbon"
        assert resolve_class_name("Carbon\\Sub", php_class) == "Illuminate\\Support\\Carbon\\Sub"
        assert resolve_class_name("\\Other\\Thing", php_class) == "Other\\Thing"
        assert resolve_class_name("App\\X", php_class, is_string=True) == "App\\X"
