"""
starorm Database Layer - Connection Wrapper

Thin wrapper around a SQLAlchemy engine. Every statement runs in its own
transaction block; failures surface as DatabaseError with the SQLAlchemy
error chained as the cause.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy import MetaData, Table, create_engine, inspect
from sqlalchemy.engine import Connection, CursorResult, Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import Executable

from ..config import DatabaseSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")

# Column types are reported the same way for every dialect
_TYPE_NAMES = {
    int: "int",
    float: "float",
    str: "string",
    bool: "bool",
    bytes: "binary",
}


class DatabaseError(Exception):
    """Raised for any failure inside the database layer."""

    def __init__(self, message: str, code: Any = 0):
        super().__init__(message)
        self.message = message
        self.code = code

    @classmethod
    def wrap(cls, exc: Exception) -> "DatabaseError":
        """Build a DatabaseError carrying the message and code of exc."""
        message = str(getattr(exc, "orig", None) or exc)
        return cls(message, getattr(exc, "code", None) or 0)


class Database:
    """
    A named connection to one database.

    Args:
        url: SQLAlchemy connection URL
        echo: Log all SQL emitted by the engine
        engine: Use an existing engine instead of creating one
    """

    def __init__(self, url: str = "sqlite://", echo: bool = False, engine: Optional[Engine] = None):
        self.url = url
        self._engine = engine if engine is not None else self._create_engine(url, echo)
        self.metadata = MetaData()
        self.last_query: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "Database":
        return cls(settings.url, echo=settings.echo)

    @staticmethod
    def _create_engine(url: str, echo: bool) -> Engine:
        if url in MEMORY_URLS:
            # One shared connection, otherwise each statement sees an empty database
            return create_engine(
                url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_engine(url, echo=echo)

    @property
    def engine(self) -> Engine:
        return self._engine

    def dispose(self) -> None:
        self._engine.dispose()

    def table(self, name: str) -> Table:
        """Return the reflected table, loading it on first use."""
        table = self.metadata.tables.get(name)
        if table is not None:
            return table
        try:
            return Table(name, self.metadata, autoload_with=self._engine)
        except NoSuchTableError as exc:
            raise DatabaseError(f"Table {name} does not exist") from exc
        except SQLAlchemyError as exc:
            raise DatabaseError.wrap(exc) from exc

    def list_columns(self, table_name: str) -> Dict[str, Dict[str, Any]]:
        """
        Introspect the columns of a table.

        Returns:
            Ordered mapping of column name to metadata with the keys
            type, data_type, is_nullable, column_default and primary_key.
        """
        try:
            inspector = inspect(self._engine)
            columns = inspector.get_columns(table_name)
            primary = set(inspector.get_pk_constraint(table_name).get("constrained_columns") or [])
        except NoSuchTableError as exc:
            raise DatabaseError(f"Table {table_name} does not exist") from exc
        except SQLAlchemyError as exc:
            raise DatabaseError.wrap(exc) from exc

        if not columns:
            raise DatabaseError(f"Table {table_name} does not exist")

        result: Dict[str, Dict[str, Any]] = {}
        for column in columns:
            result[column["name"]] = {
                "type": _type_name(column["type"]),
                "data_type": str(column["type"]),
                "is_nullable": bool(column.get("nullable", True)),
                "column_default": column.get("default"),
                "primary_key": column["name"] in primary,
            }
        return result

    def fetch(self, statement: Executable) -> List[Dict[str, Any]]:
        """Run a SELECT and return every row as a dict."""
        return self._run(statement, lambda result: [dict(row) for row in result.mappings()])

    def insert(self, statement: Executable, single_row: bool = True) -> Tuple[Any, int]:
        """Run an INSERT and return (inserted primary key, affected rows)."""
        def handler(result: CursorResult) -> Tuple[Any, int]:
            insert_id = None
            if single_row:
                key = result.inserted_primary_key
                insert_id = key[0] if key else None
            return insert_id, result.rowcount

        return self._run(statement, handler)

    def execute(self, statement: Executable) -> int:
        """Run an UPDATE or DELETE and return the affected row count."""
        return self._run(statement, lambda result: result.rowcount)

    def _run(self, statement: Executable, handler: Callable[[CursorResult], T]) -> T:
        self.last_query = self._render(statement)
        logger.debug(f"Executing {self.last_query}")
        try:
            with self._engine.begin() as connection:
                return handler(self._execute(connection, statement))
        except SQLAlchemyError as exc:
            logger.error(f"Query failed on {self.url}: {exc}")
            raise DatabaseError.wrap(exc) from exc

    @staticmethod
    def _execute(connection: Connection, statement: Executable) -> CursorResult:
        return connection.execute(statement)

    def _render(self, statement: Executable) -> str:
        try:
            return str(statement.compile(dialect=self._engine.dialect))
        except SQLAlchemyError:
            return repr(statement)


def _type_name(sql_type: Any) -> str:
    try:
        python_type = sql_type.python_type
    except NotImplementedError:
        return "string"
    return _TYPE_NAMES.get(python_type, "string")
