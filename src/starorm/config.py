"""
starorm Configuration

Runtime settings for the database connection and the auth layer. Values come
from defaults, keyword arguments, STARORM_* environment variables or a .env
file. Nested sections use a double underscore: STARORM_AUTH__HASH_KEY sets
auth.hash_key.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Connection settings for the default database group."""
    url: str = "sqlite://"
    echo: bool = False


class AuthSettings(BaseModel):
    """Settings for the auth drivers and the remember-me token."""

    driver: Literal["orm", "bcrypt"] = "orm"
    hash_method: str = "sha256"
    hash_key: Optional[str] = None
    lifetime: int = 1209600  # two weeks
    session_key: str = "auth_user"
    autologin_cookie: str = "authautologin"
    cost: int = 10
    login_role: str = "login"
    token_gc_probability: int = Field(default=100, ge=1)

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("lifetime")
    @classmethod
    def _positive_lifetime(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("lifetime must be a positive number of seconds")
        return value

    @model_validator(mode="after")
    def _check_bcrypt_cost(self) -> "AuthSettings":
        if self.driver == "bcrypt" and self.cost < 10:
            raise ValueError("bcrypt cost parameter must be an integer >= 10")
        return self


class Settings(BaseSettings):
    """Complete starorm configuration."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    foreign_key_suffix: str = "_id"

    model_config = SettingsConfigDict(
        env_prefix="STARORM_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor."""
    return Settings()


__all__ = ["AuthSettings", "DatabaseSettings", "Settings", "get_settings"]
