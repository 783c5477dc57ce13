"""Pytest configuration and fixtures."""

import pytest
from sqlmodel import SQLModel

from starorm import AuthSettings, Database, Settings, default_registry
from starorm.auth import create_auth_schema
from starorm.validation.messages import reset_messages

from sample_models import SAMPLE_TABLES

HASH_KEY = "test-hash-key"


@pytest.fixture
def settings():
    return Settings(auth=AuthSettings(hash_key=HASH_KEY, token_gc_probability=1000000))


@pytest.fixture(autouse=True)
def database(settings):
    """Fresh in-memory database and registry state for every test."""
    default_registry.reset()
    default_registry.configure(settings)

    database = default_registry.add_database(Database("sqlite://"))
    SQLModel.metadata.create_all(database.engine, tables=[model.__table__ for model in SAMPLE_TABLES])
    create_auth_schema(database)

    yield database

    reset_messages()
    default_registry.reset()


@pytest.fixture
def author():
    from sample_models import Author

    return Author().values({"name": "Ada", "email": "ada@example.com"}).create()
