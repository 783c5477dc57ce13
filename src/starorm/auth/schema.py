"""
Auth Schema - SQLModel tables for users, roles and tokens

The models in starorm.auth.models introspect these tables at runtime; the
SQLModel classes only exist to create them.
"""

import logging
from typing import Iterable, Optional

from sqlmodel import Field, SQLModel

from .. import db

logger = logging.getLogger(__name__)

DEFAULT_ROLES = (
    ("login", "Login privileges, granted after account confirmation"),
    ("admin", "Administrative user, has access to everything."),
)


class RoleRecord(SQLModel, table=True):
    __tablename__ = "roles"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=32, unique=True)
    description: str = Field(default="", max_length=255)


class UserRecord(SQLModel, table=True):
    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(max_length=254, unique=True)
    username: str = Field(default="", max_length=32, unique=True)
    password: str = Field(max_length=64)
    logins: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    last_login: Optional[int] = None


class RoleUserRecord(SQLModel, table=True):
    __tablename__ = "roles_users"
    __table_args__ = {"extend_existing": True}

    user_id: int = Field(foreign_key="users.id", primary_key=True)
    role_id: int = Field(foreign_key="roles.id", primary_key=True)


class UserTokenRecord(SQLModel, table=True):
    __tablename__ = "user_tokens"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    user_agent: str = Field(max_length=64)
    token: str = Field(max_length=40, unique=True)
    created: int
    expires: int = Field(index=True)


AUTH_TABLES = (RoleRecord, UserRecord, RoleUserRecord, UserTokenRecord)


def create_auth_schema(
    database: db.Database,
    seed_roles: bool = True,
    roles: Iterable[tuple] = DEFAULT_ROLES,
) -> None:
    """
    Create the auth tables that do not exist yet.

    Args:
        database: Target database
        seed_roles: Insert the login and admin roles
        roles: (name, description) pairs to seed
    """
    SQLModel.metadata.create_all(database.engine, tables=[model.__table__ for model in AUTH_TABLES])
    logger.debug(f"Created auth tables in {database.url}")

    if seed_roles:
        query = db.insert("roles", ["name", "description"])
        for name, description in roles:
            query.values([name, description])
        query.execute(database)
