"""
QueryMixin: deferred query builder calls on a model.

Every method records a call on the model's QueryDescriptor and returns the
model so calls can be chained. Nothing runs until find(), find_all(),
count_all() or delete_all() builds the statement.
"""

from typing import Any, Optional

from ...db import Expression
from ..query import QueryDescriptor


class QueryMixin:
    """
    Query building mixin.

    Expects the host class to provide a ``_query`` QueryDescriptor and a
    ``_db_reset`` flag.
    """

    _query: QueryDescriptor
    _db_reset: bool

    def _enqueue(self, name: str, *args: Any):
        self._query.enqueue(name, *args)
        return self

    # Conditions

    def where(self, column: Any, op: str, value: Any = None):
        return self._enqueue("where", column, op, value)

    def and_where(self, column: Any, op: str, value: Any = None):
        return self._enqueue("and_where", column, op, value)

    def or_where(self, column: Any, op: str, value: Any = None):
        return self._enqueue("or_where", column, op, value)

    def where_open(self):
        return self._enqueue("where_open")

    def and_where_open(self):
        return self._enqueue("and_where_open")

    def or_where_open(self):
        return self._enqueue("or_where_open")

    def where_close(self):
        return self._enqueue("where_close")

    def and_where_close(self):
        return self._enqueue("and_where_close")

    def or_where_close(self):
        return self._enqueue("or_where_close")

    # Select shape

    def distinct(self, value: bool = True):
        return self._enqueue("distinct", value)

    def select(self, *columns: Any):
        return self._enqueue("select", *columns)

    def from_(self, *tables: Any):
        return self._enqueue("from_", *tables)

    def join(self, table: Any, type: Optional[str] = None):
        return self._enqueue("join", table, type)

    def on(self, c1: Any, op: str, c2: Any):
        return self._enqueue("on", c1, op, c2)

    def group_by(self, *columns: Any):
        return self._enqueue("group_by", *columns)

    def having(self, column: Any, op: str, value: Any = None):
        return self._enqueue("having", column, op, value)

    def and_having(self, column: Any, op: str, value: Any = None):
        return self._enqueue("and_having", column, op, value)

    def or_having(self, column: Any, op: str, value: Any = None):
        return self._enqueue("or_having", column, op, value)

    def having_open(self):
        return self._enqueue("having_open")

    def and_having_open(self):
        return self._enqueue("and_having_open")

    def or_having_open(self):
        return self._enqueue("or_having_open")

    def having_close(self):
        return self._enqueue("having_close")

    def and_having_close(self):
        return self._enqueue("and_having_close")

    def or_having_close(self):
        return self._enqueue("or_having_close")

    def order_by(self, column: Any, direction: Optional[str] = None):
        return self._enqueue("order_by", column, direction)

    def limit(self, number: Optional[int]):
        return self._enqueue("limit", number)

    def offset(self, number: Optional[int]):
        return self._enqueue("offset", number)

    def expr(self, sql: str) -> Expression:
        return Expression(sql)

    # Lifecycle of the queue

    def reset(self, next: bool = True):
        """
        Clear the queued calls.

        Args:
            next: Passing False keeps the queue for the next terminal
                call, so count_all() and find_all() can share conditions.
        """
        if next and self._db_reset:
            self._query.clear()
            self._with_applied = {}
        self._db_reset = next
        return self
