"""
Test lifecycle behaviors: callbacks, external keys and GUIDs.
"""

import logging
import uuid

import pytest

from starorm import Behavior, Guid, Local, Model, OrmError
from starorm.behaviors import guid as guid_module

from sample_models import Article, Writer


class Counter(Model):
    _table_name = "tags"
    events = []

    def behaviors(self):
        return {"log": lambda event, model, id=None: Counter.events.append(event)}


class Upper(Behavior):
    def on_create(self, model):
        model.name = model.name.upper()


class ShoutingTag(Model):
    _table_name = "tags"

    def behaviors(self):
        return {Upper: None}


class Readonly(Model):
    _table_name = "tags"

    def behaviors(self):
        return {"stop": lambda event, model, id=None: False if event == "construct" else None}


@pytest.fixture(autouse=True)
def clear_events():
    Counter.events = []


def test_factory():
    assert isinstance(Behavior.factory("guid", {"column": "uid"}), Guid)
    assert isinstance(Behavior.factory("anything", lambda *args: None), Local)
    assert isinstance(Behavior.factory(Upper), Upper)
    with pytest.raises(OrmError):
        Behavior.factory("missing", {})


def test_local_callback_receives_events(database):
    tag = Counter().values({"name": "x"}).create()
    tag.name = "y"
    tag.update()
    assert Counter.events == ["construct", "create", "update"]


def test_behavior_class_runs_before_validation(database):
    tag = ShoutingTag().values({"name": "loud"}).create()
    assert ShoutingTag(tag.pk()).name == "LOUD"


def test_construct_returning_false_skips_loading(database):
    ShoutingTag().values({"name": "x"}).create()
    assert not Readonly(1).loaded


def test_external_key(author, database):
    author.slug = "ada-lovelace"
    author.update()

    writer = Writer("ada-lovelace")
    assert writer.loaded
    assert writer.name == "Ada"

    # Numeric ids still use the primary key
    assert Writer(author.pk()).loaded
    assert Writer("1").loaded
    assert not Writer("nobody").loaded


def test_guid_assigned_on_create(database):
    article = Article().values({"title": "First"}).create()
    assert uuid.UUID(article.guid)

    assert Article(article.guid).pk() == article.pk()


def test_guid_kept_when_present(database):
    value = str(uuid.uuid4())
    article = Article().values({"title": "Given", "guid": value}).create()
    assert article.guid == value


def test_invalid_guid_is_rejected(database):
    with pytest.raises(OrmError):
        Article("not-a-uuid")


def test_guid_collision_retries(database, monkeypatch, caplog):
    taken = str(uuid.uuid4())
    Article().values({"title": "Taken", "guid": taken}).create()

    fresh = str(uuid.uuid4())
    values = iter([taken, fresh])
    monkeypatch.setattr(guid_module, "new_guid", lambda: next(values))

    with caplog.at_level(logging.WARNING, logger="starorm.behaviors.guid"):
        article = Article().values({"title": "Second"}).create()

    assert article.guid == fresh
    assert "Duplicate GUID created for articles" in caplog.text


def test_guid_gives_up_after_max_attempts(database, monkeypatch):
    taken = str(uuid.uuid4())
    Article().values({"title": "Taken", "guid": taken}).create()
    monkeypatch.setattr(guid_module, "new_guid", lambda: taken)

    with pytest.raises(OrmError):
        Article().values({"title": "Again"}).create()
