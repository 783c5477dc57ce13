"""
Test the model registry: naming defaults, relationship defaults and the
column cache.
"""

import pytest

from starorm import Database, Model, ModelRegistry, Settings, default_registry
from starorm.core.inflector import plural, singular, underscore
from starorm.core.registry import BELONGS_TO, HAS_MANY, HAS_ONE

from sample_models import Author, Post, Tag, Writer


def test_inflector():
    assert plural("post") == "posts"
    assert plural("user_category") == "user_categories"
    assert singular("posts_tags") == "posts_tag"
    assert singular("roles") == "role"
    assert underscore("UserToken") == "user_token"


def test_naming_defaults():
    definition = default_registry.definition(Post)
    assert definition.object_name == "post"
    assert definition.object_plural == "posts"
    assert definition.table_name == "posts"
    assert definition.primary_key == "id"


def test_explicit_table_name():
    assert default_registry.definition(Writer).table_name == "authors"
    assert default_registry.definition(Writer).object_name == "writer"


def test_relationship_defaults():
    post = default_registry.definition(Post)
    author = post.relationship("author")
    assert author.kind == BELONGS_TO
    assert author.model == "author"
    assert author.foreign_key == "author_id"

    tags = post.relationship("tags")
    assert tags.kind == HAS_MANY
    assert tags.model == "tag"
    assert tags.foreign_key == "post_id"
    assert tags.through == "posts_tags"
    assert tags.far_key == "tag_id"
    assert tags.update

    profile = default_registry.definition(Author).relationship("profile")
    assert profile.kind == HAS_ONE
    assert profile.foreign_key == "author_id"

    assert default_registry.definition(Author).aliases() == ["profile", "posts"]


def test_foreign_key_suffix_comes_from_settings():
    registry = ModelRegistry(Settings(foreign_key_suffix="_fk"))
    assert registry.definition(Post).relationship("author").foreign_key == "author_fk"


def test_resolve_model():
    assert default_registry.resolve_model("tag") is Tag
    assert default_registry.resolve_model("Tag") is Tag
    assert default_registry.resolve_model(Tag) is Tag
    with pytest.raises(LookupError):
        default_registry.resolve_model("unicorn")


def test_columns_are_introspected_once(database, monkeypatch):
    calls = []
    original = database.list_columns

    def counting(table):
        calls.append(table)
        return original(table)

    monkeypatch.setattr(database, "list_columns", counting)

    Tag()
    Tag()
    assert calls == ["tags"]

    default_registry.columns(Tag, force=True)
    assert calls == ["tags", "tags"]


def test_declared_columns_skip_introspection(database, monkeypatch):
    class Note(Model):
        _table_columns = {"id": {"type": "int"}, "text": {"type": "string"}}

    monkeypatch.setattr(database, "list_columns", lambda table: pytest.fail("introspected"))
    assert list(Note().table_columns) == ["id", "text"]


def test_initialize_and_reset(database):
    default_registry.initialize(Author, Post)
    assert "author" in default_registry._columns

    default_registry.reset()
    assert default_registry._columns == {}

    replacement = default_registry.add_database(Database("sqlite://"))
    assert default_registry.database() is replacement


def test_unknown_group():
    with pytest.raises(KeyError):
        default_registry.database("reporting")
