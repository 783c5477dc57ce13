"""
Auth Models - User, Role and UserToken

Tables (see starorm.auth.schema):

- users: id, email, username, password, logins, last_login
- roles: id, name, description
- roles_users: user_id, role_id
- user_tokens: id, user_id, user_agent, token, created, expires
"""

import logging
import random
import secrets
import time
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional

from .. import db
from ..core import AutoColumn, BelongsTo, HasMany, Model
from ..validation import Validation
from ..validation.rules import email as valid_email
from .hashing import PasswordHasher, hasher_for

logger = logging.getLogger(__name__)


def hash_password(value: Any, user: "User") -> Any:
    """Column filter hashing a plaintext password with the user's hasher."""
    if value is None or value == "":
        return value
    return user.hasher().hash(value)


class Role(Model):
    """Named role; users need the login role to sign in."""

    _has_many = {
        "users": HasMany(model="user", through="roles_users"),
    }

    def rules(self) -> Dict[str, List[Any]]:
        return {
            "name": [
                ("not_empty",),
                ("min_length", [":value", 4]),
                ("max_length", [":value", 32]),
            ],
            "description": [
                ("max_length", [":value", 255]),
            ],
        }


class User(Model):
    """
    Account with a hashed password, a login counter and roles.

    Passwords are hashed by a column filter as soon as they are assigned,
    so user.password never holds plaintext. The hasher is the one bound with
    use_hasher() (auth drivers bind their own to the users they load), else
    the one the registry's auth settings call for.
    """

    _has_many = {
        "user_tokens": HasMany(model="user_token"),
        "roles": HasMany(model="role", through="roles_users"),
    }
    _private_columns = ["password"]
    _hasher: ClassVar[Optional[PasswordHasher]] = None

    def rules(self) -> Dict[str, List[Any]]:
        return {
            "username": [
                ("not_empty",),
                ("max_length", [":value", 32]),
                (self.unique, ["username", ":value"]),
            ],
            "password": [
                ("not_empty",),
            ],
            "email": [
                ("not_empty",),
                ("email",),
                (self.unique, ["email", ":value"]),
            ],
        }

    def filters(self) -> Dict[str, List[Any]]:
        return {
            "password": [(hash_password, [":value", ":model"])],
        }

    def labels(self) -> Dict[str, str]:
        return {
            "username": "username",
            "email": "email address",
            "password": "password",
        }

    def hasher(self) -> PasswordHasher:
        return self._hasher or hasher_for(self._registry.settings.auth)

    def use_hasher(self, hasher: Optional[PasswordHasher]) -> "User":
        """Hash passwords assigned to this user with hasher; None falls back to the settings."""
        self._hasher = hasher
        return self

    def complete_login(self) -> None:
        """Count the login and stamp its time."""
        if self._loaded:
            self.logins = (self.logins or 0) + 1
            self.last_login = int(time.time())
            self.update()

    def unique_key(self, value: str) -> str:
        """Column a login name is looked up in: email for addresses, username otherwise."""
        return "email" if valid_email(value) else "username"

    def unique_key_exists(self, value: Any, field: Optional[str] = None) -> bool:
        """
        Whether another user already has value in field.

        Args:
            value: Value to look for
            field: Column to search (default: unique_key(value))
        """
        if field is None:
            field = self.unique_key(value)

        query = db.select((db.count(), "total_count")).from_(self.table_name).where(field, "=", value)
        if self.pk() is not None:
            query.where(self.primary_key, "!=", self.pk())

        with self._storage():
            return bool(query.execute(self._db).get("total_count"))

    @staticmethod
    def get_password_validation(values: Mapping[str, Any]) -> Validation:
        """Password length and confirmation rules, checked against the plaintext values."""
        return (
            Validation.factory(values)
            .rule("password", "min_length", [":value", 8])
            .rule("password_confirm", "matches", [":data", ":field", "password"])
        )

    def create_user(self, values: Mapping[str, Any], expected: Iterable[Any]) -> "User":
        """
        Create a user from form values.

        Raises:
            ValidationError: If the user or the password checks fail
        """
        extra_validation = self.get_password_validation(values).rule("password", "not_empty")
        return self.values(values, expected).create(extra_validation)

    def update_user(self, values: Mapping[str, Any], expected: Optional[Iterable[Any]] = None) -> "User":
        """Update a user; an empty password keeps the current one."""
        values = dict(values)
        if not values.get("password"):
            values.pop("password", None)
            values.pop("password_confirm", None)

        extra_validation = self.get_password_validation(values)
        return self.values(values, expected).update(extra_validation)


class UserToken(Model):
    """
    Remember-me token.

    Loading a token sometimes sweeps every expired token from the table
    (one time in gc_probability), and an expired token deletes itself when
    loaded. The token value changes on every create and update.

    Args:
        id: Primary key or mapping to load
        gc_probability: Sweep odds, 1 in N (default: the registry's
            auth.token_gc_probability)
    """

    _belongs_to = {
        "user": BelongsTo(model="user"),
    }
    _created_column = AutoColumn("created")

    def __init__(self, id: Any = None, gc_probability: Optional[int] = None):
        super().__init__(id)

        if gc_probability is None:
            gc_probability = self._registry.settings.auth.token_gc_probability
        if random.randint(1, gc_probability) == 1:
            self.delete_expired()

        if self._loaded and self.expires is not None and self.expires < time.time():
            self.delete()

    def delete_expired(self) -> "UserToken":
        """Delete every expired token."""
        query = db.delete(self.table_name).where("expires", "<", int(time.time()))
        with self._storage():
            count = query.execute(self._db)
        logger.debug(f"Deleted {count} expired tokens from {self.table_name}")
        return self

    def create(self, extra_validation: Optional[Validation] = None) -> "UserToken":
        self.token = self.create_token()
        return super().create(extra_validation)

    def update(self, extra_validation: Optional[Validation] = None) -> "UserToken":
        self.token = self.create_token()
        return super().update(extra_validation)

    def create_token(self) -> str:
        """Random 40 character token not used by any other row."""
        while True:
            token = secrets.token_hex(20)
            if self.unique("token", token):
                return token
