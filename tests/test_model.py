"""
Test the Active Record lifecycle: loading, dirty tracking, validation gates
and persistence.
"""

import logging
import pickle

import pytest

from starorm import ModelStateError, StorageError, UnknownPropertyError, ValidationError, db

from sample_models import Author, Post, Tag


def test_create_leaves_clean_loaded_model(database):
    post = Post().values({"title": "Hello", "meta": {"draft": True}})
    assert post.has_changed("title")

    post.create()

    assert post.loaded
    assert post.saved
    assert post.changed() == {}
    assert post.pk() == 1
    assert post.original_values == post._object
    assert isinstance(post.created, int)


def test_load_by_primary_key_and_mapping(author):
    assert Author(author.pk()).name == "Ada"
    assert Author({"email": "ada@example.com"}).pk() == author.pk()

    missing = Author(999)
    assert not missing.loaded
    assert missing.pk() is None
    assert missing.name is None


def test_find_on_loaded_model_fails_without_query(author, database):
    before = database.last_query
    with pytest.raises(ModelStateError):
        author.find()
    with pytest.raises(ModelStateError):
        author.find_all()
    assert database.last_query == before


def test_create_on_loaded_and_update_on_new_fail(author):
    with pytest.raises(ModelStateError):
        author.create()
    with pytest.raises(ModelStateError):
        Author().update()
    with pytest.raises(ModelStateError):
        Author().delete()


def test_update_without_changes_is_a_noop(author, database):
    before = database.last_query
    author.update()
    assert database.last_query == before
    assert author.saved
    assert author.loaded


def test_setting_current_value_is_not_a_change(author):
    author.name = "Ada"
    assert author.changed() == {}

    # Filters run first: " Ada " trims to the stored value
    author.name = " Ada "
    assert not author.has_changed()


def test_strict_comparison_detects_type_change(author):
    author.set("email", 1)
    assert author.has_changed("email")


def test_reverting_removes_the_change(author):
    author.name = "Grace"
    author.name = "Grace"
    assert author.changed() == {"name": "name"}

    author.name = "Ada"
    assert author.changed() == {}


def test_update_writes_only_changed_columns(author, database):
    author.email = "ada@lovelace.org"
    author.update()

    assert "email" in database.last_query
    assert "name" not in database.last_query.split("WHERE")[0]
    assert Author(author.pk()).email == "ada@lovelace.org"
    assert author.changed() == {}


def test_unique(author):
    other = Author().values({"name": "Bob"}).create()

    assert Author().unique("name", "Cy")
    assert not Author().unique("name", "Ada")
    # The loaded row's own value does not count as a duplicate
    assert author.unique("name", "Ada")
    assert not other.unique("name", "Ada")


def test_duplicate_create_fails_validation(database):
    Author().values({"name": "dup"}).create()

    with pytest.raises(ValidationError) as info:
        Author().values({"name": "dup"}).create()

    assert info.value.errors() == {"name": ["unique", ["name", "dup"]]}
    assert info.value.errors("models") == {"name": "author name must be unique"}


def test_validation_gates_writes(database):
    with pytest.raises(ValidationError):
        Post().values({"title": ""}).create()
    assert db.select().from_("posts").execute(database).count() == 0


def test_unknown_property(author):
    with pytest.raises(UnknownPropertyError):
        author.get("nickname")
    with pytest.raises(AttributeError):
        author.nickname
    with pytest.raises(UnknownPropertyError):
        author.nickname = "x"
    assert "name" in author
    assert "posts" in author
    assert "nickname" not in author


def test_serialized_columns(database):
    post = Post().values({"title": "Meta", "meta": {"tags": ["a", "b"]}}).create()
    assert post._object["meta"] == '{"tags": ["a", "b"]}'
    assert Post(post.pk()).meta == {"tags": ["a", "b"]}


def test_created_and_updated_columns(database, monkeypatch):
    monkeypatch.setattr("starorm.core.model.time.time", lambda: 1000)
    post = Post().values({"title": "Stamped"}).create()
    assert post.created == 1000
    assert post.updated is None

    monkeypatch.setattr("starorm.core.model.time.time", lambda: 2000)
    post.title = "Changed"
    post.update()
    assert Post(post.pk()).updated == 2000
    assert Post(post.pk()).created == 1000


def test_save_creates_then_updates(database):
    tag = Tag()
    tag.name = "python"
    tag.save()
    assert tag.loaded

    tag.name = "sql"
    tag.save()
    assert Tag(tag.pk()).name == "sql"


def test_values_with_expected_list(database):
    post = Post().values({"title": "T", "body": "B", "id": 99}, ["title"])
    assert post.changed() == {"title": "title"}

    # Without an expected list the primary key is ignored
    post = Post().values({"title": "T", "id": 99})
    assert post.id is None


def test_delete_clears_the_model(author, database):
    author.delete()
    assert not author.loaded
    assert author.pk() is None
    assert not Author(1).loaded


def test_find_all_count_all_and_delete_all(database):
    for name in ("b", "c", "a"):
        Tag().values({"name": name}).create()

    tags = Tag().find_all()
    # Default sorting applies when no order_by is queued
    assert [tag.name for tag in tags] == ["a", "b", "c"]
    assert tags.pks() == [3, 1, 2]
    assert [tag.name for tag in Tag().order_by("id", "DESC").find_all()] == ["a", "c", "b"]

    assert Tag().where("name", "!=", "a").count_all() == 2
    assert Tag().where("name", "=", "b").delete_all() == 1
    assert Tag().count_all() == 2


def test_count_all_ignores_and_keeps_selects(database):
    Tag().values({"name": "x"}).create()

    query = Tag().select("tag.name").reset(False)
    assert query.count_all() == 1
    assert query._query.names() == ["select"]


def test_find_all_is_lazy(database):
    Tag().values({"name": "x"}).create()
    result = Tag().find_all()
    assert result._objects == {}
    assert result[0].loaded
    assert result.first() is result[0]


def test_reload(author, database):
    db.update("authors").set({"name": "Changed"}).where("id", "=", author.pk()).execute(database)
    assert author.name == "Ada"
    assert author.reload().name == "Changed"


def test_clear_and_str(author):
    assert str(author) == "1"
    author.clear()
    assert str(author) == ""
    assert not author.loaded


def test_as_dict_hides_private_columns(database):
    post = Post().values({"title": "Secret", "body": "hidden"}).create()
    assert "body" not in post.as_dict()
    assert post.as_dict(show_all=True)["body"] == "hidden"


def test_as_dict_includes_resolved_relations(author):
    post = Post().values({"title": "T", "author_id": author.pk()}).create()
    post.author
    assert post.as_dict()["author"]["name"] == "Ada"


def test_pickle_reloads_row(author, database):
    data = pickle.dumps(author)
    db.update("authors").set({"name": "Fresh"}).where("id", "=", author.pk()).execute(database)

    restored = pickle.loads(data)
    assert restored.loaded
    assert restored.name == "Fresh"


def test_table_column_type(author):
    assert author.table_column_type("id") == "int"
    assert author.table_column_type("name") == "string"
    assert author.table_column_type("nickname") is None


def test_storage_errors_are_wrapped(database):
    tag = Tag()
    tag._columns = {**tag._columns, "missing": {"type": "string"}}
    tag._object["missing"] = None
    tag.set("missing", "x")

    with pytest.raises(StorageError) as info:
        tag.create()
    assert isinstance(info.value.__cause__, db.DatabaseError)


def test_check_with_extra_validation(author):
    from starorm import Validation

    extra = Validation({"agree": ""}).rule("agree", "not_empty")
    with pytest.raises(ValidationError) as info:
        author.check(extra)
    assert info.value.errors() == {"_external": {"agree": ["not_empty", [""]]}}


def test_failed_query_clears_the_queue(database):
    Tag().values({"name": "x"}).create()

    tag = Tag()
    with pytest.raises(StorageError):
        tag.where("tag.nope", "=", 1).find_all()
    assert tag._query.names() == []

    # The same instance runs the next query without the stale condition
    assert [t.name for t in tag.where("tag.name", "=", "x").find_all()] == ["x"]

    with pytest.raises(StorageError):
        tag.where("nope", "=", 1).delete_all()
    assert tag.where("tag.name", "=", "x").count_all() == 1


def test_failed_count_all_keeps_selects(database):
    query = Tag().select("tag.name").reset(False)
    with pytest.raises(StorageError):
        query.where("tag.nope", "=", 1).count_all()
    assert query._query.names() == ["select", "where"]


def test_delete_all_logs_row_count(database, caplog):
    Tag().values({"name": "x"}).create()
    with caplog.at_level(logging.DEBUG, logger="starorm.core.model"):
        Tag().where("name", "=", "x").delete_all()
    assert "Deleted 1 rows from tags" in caplog.text


def test_deleting_an_attribute_forgets_the_column(author):
    author.name = "Grace"
    del author.name

    assert "name" not in author.changed()
    assert "name" not in author.as_dict()
    assert author.as_dict()["email"] == "ada@example.com"


def test_as_object(author):
    post = Post().values({"title": "T", "body": "hidden", "author_id": author.pk()}).create()
    post.author

    data = post.as_object()
    assert data.title == "T"
    assert data.author.name == "Ada"
    assert not hasattr(data, "body")
    assert post.as_object(show_all=True).body == "hidden"
