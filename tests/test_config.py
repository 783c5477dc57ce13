"""
Test settings defaults, environment overrides and validators.
"""

import pytest
from pydantic import ValidationError

from starorm import AuthSettings, Settings, get_settings


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    settings = Settings()
    assert settings.database.url == "sqlite://"
    assert settings.foreign_key_suffix == "_id"
    assert settings.auth.driver == "orm"
    assert settings.auth.hash_key is None
    assert settings.auth.lifetime == 1209600
    assert settings.auth.session_key == "auth_user"
    assert settings.auth.autologin_cookie == "authautologin"
    assert settings.auth.login_role == "login"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("STARORM_DATABASE__URL", "sqlite:///app.db")
    monkeypatch.setenv("STARORM_AUTH__HASH_KEY", "secret")
    monkeypatch.setenv("STARORM_AUTH__LIFETIME", "3600")
    monkeypatch.setenv("STARORM_AUTH__TOKEN_GC_PROBABILITY", "10")
    monkeypatch.setenv("STARORM_FOREIGN_KEY_SUFFIX", "_fk")
    monkeypatch.setenv("STARORM_UNKNOWN", "ignored")

    settings = Settings()
    assert settings.database.url == "sqlite:///app.db"
    assert settings.auth.hash_key == "secret"
    assert settings.auth.lifetime == 3600
    assert settings.auth.token_gc_probability == 10
    assert settings.foreign_key_suffix == "_fk"


def test_lifetime_must_be_positive():
    with pytest.raises(ValidationError):
        AuthSettings(lifetime=0)


def test_bcrypt_cost_minimum():
    with pytest.raises(ValidationError):
        AuthSettings(driver="bcrypt", cost=4)
    # The cost only matters for the bcrypt driver
    assert AuthSettings(driver="orm", cost=4).cost == 4


def test_gc_probability_minimum():
    with pytest.raises(ValidationError):
        AuthSettings(token_gc_probability=0)


def test_get_settings_reads_environment_once(fresh_settings, monkeypatch):
    monkeypatch.setenv("STARORM_AUTH__HASH_KEY", "from-env")
    settings = get_settings()
    assert settings.auth.hash_key == "from-env"

    monkeypatch.setenv("STARORM_AUTH__HASH_KEY", "changed")
    assert get_settings() is settings
