"""
Sample schema and models shared by the test suite.

Blog schema: authors write posts, posts carry tags through posts_tags,
each author may have one profile.
"""

from typing import Optional

from sqlmodel import Field, SQLModel

from starorm import AutoColumn, BelongsTo, HasMany, HasOne, Model


# Tables


class AuthorRecord(SQLModel, table=True):
    __tablename__ = "authors"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(default="")
    email: Optional[str] = None
    slug: Optional[str] = None


class ProfileRecord(SQLModel, table=True):
    __tablename__ = "profiles"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    author_id: Optional[int] = Field(default=None, foreign_key="authors.id")
    bio: Optional[str] = None


class PostRecord(SQLModel, table=True):
    __tablename__ = "posts"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    author_id: Optional[int] = Field(default=None, foreign_key="authors.id")
    title: str = Field(default="")
    body: Optional[str] = None
    meta: Optional[str] = None
    created: Optional[int] = None
    updated: Optional[int] = None


class TagRecord(SQLModel, table=True):
    __tablename__ = "tags"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(default="")


class PostTagRecord(SQLModel, table=True):
    __tablename__ = "posts_tags"
    __table_args__ = {"extend_existing": True}

    post_id: int = Field(foreign_key="posts.id", primary_key=True)
    tag_id: int = Field(foreign_key="tags.id", primary_key=True)


class ArticleRecord(SQLModel, table=True):
    __tablename__ = "articles"
    __table_args__ = {"extend_existing": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    guid: Optional[str] = None
    title: str = Field(default="")


SAMPLE_TABLES = (AuthorRecord, ProfileRecord, PostRecord, TagRecord, PostTagRecord, ArticleRecord)


# Models


class Author(Model):
    _has_many = {"posts": HasMany()}
    _has_one = {"profile": HasOne()}

    def rules(self):
        return {
            "name": [
                ("not_empty",),
                ("max_length", [":value", 32]),
                (self.unique, ["name", ":value"]),
            ],
            "email": [("email",)],
        }

    def filters(self):
        return {"name": ["trim"]}

    def labels(self):
        return {"name": "author name"}


class Profile(Model):
    _belongs_to = {"author": BelongsTo()}


class Post(Model):
    _belongs_to = {"author": BelongsTo()}
    _has_many = {"tags": HasMany(through="posts_tags", update=True)}
    _serialize_columns = ["meta"]
    _created_column = AutoColumn("created")
    _updated_column = AutoColumn("updated")
    _private_columns = ["body"]

    def rules(self):
        return {"title": [("not_empty",)]}


class Tag(Model):
    _has_many = {"posts": HasMany(through="posts_tags")}
    _sorting = {"name": "ASC"}


class Writer(Model):
    """Authors addressed by slug."""
    _table_name = "authors"

    def behaviors(self):
        return {"external_key": {"column": "slug"}}


class Article(Model):
    def behaviors(self):
        return {"guid": {"verify": True, "max_attempts": 3}}
