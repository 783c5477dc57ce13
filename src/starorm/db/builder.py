"""
starorm Database Layer - Query Builder

Chainable SELECT/INSERT/UPDATE/DELETE builders. Builders only record calls;
they are compiled to SQLAlchemy Core statements against a Database when
executed, so table references are resolved through reflection at that point.

Column references are either plain names ("name"), qualified names
("post.title", where the qualifier is a table name or alias), an
Expression, or any SQLAlchemy clause element. Select columns may also be
given as a (column, label) pair.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import (
    and_,
    delete as sa_delete,
    func,
    insert as sa_insert,
    literal_column,
    or_,
    select as sa_select,
    update as sa_update,
)
from sqlalchemy.sql import ClauseElement, ColumnElement
from sqlalchemy.sql.selectable import FromClause

from .database import Database, DatabaseError
from .result import Result

TableRef = Union[str, Tuple[str, str]]

JOIN_TYPES = ("INNER", "LEFT", "FULL")


class Expression:
    """Raw SQL fragment used where a column or value is expected."""

    def __init__(self, sql: str):
        self.sql = sql

    def compile(self, scope: "_Scope") -> ColumnElement:
        return literal_column(self.sql)

    def __repr__(self) -> str:
        return f"Expression({self.sql!r})"


class Count(Expression):
    """COUNT(column), or COUNT(*) without a column."""

    def __init__(self, column: Any = None):
        super().__init__("COUNT(*)")
        self.column = column

    def compile(self, scope: "_Scope") -> ColumnElement:
        if self.column is None:
            return func.count()
        return func.count(scope.column(self.column))


def _split_table(ref: TableRef) -> Tuple[str, str]:
    if isinstance(ref, (tuple, list)):
        name, alias = ref
        return name, alias
    return ref, ref


class _Scope:
    """Table sources visible to one statement, keyed by alias."""

    def __init__(self, database: Database):
        self.database = database
        self.sources: Dict[str, FromClause] = {}
        self.default: Optional[FromClause] = None

    def add(self, ref: TableRef) -> FromClause:
        name, alias = _split_table(ref)
        table = self.database.table(name)
        source = table if alias == name else table.alias(alias)
        self.sources[alias] = source
        if self.default is None:
            self.default = source
        return source

    def bind(self, alias: str, source: FromClause) -> None:
        self.sources[alias] = source
        if self.default is None:
            self.default = source

    def column(self, ref: Any, strict: bool = True) -> ColumnElement:
        if isinstance(ref, Expression):
            return ref.compile(self)
        if isinstance(ref, ClauseElement):
            return ref

        name = str(ref)
        prefix, dot, column = name.rpartition(".")
        if dot:
            source = self.sources.get(prefix)
            if source is None:
                raise DatabaseError(f"Unknown table or alias {prefix} in {name}")
            if column == "*":
                return literal_column(f"{prefix}.*")
            if column not in source.c:
                raise DatabaseError(f"Unknown column {name}")
            return source.c[column]

        if name == "*":
            return literal_column("*")

        candidates = list(self.sources.values())
        if self.default is not None:
            candidates.insert(0, self.default)
        for source in candidates:
            if name in source.c:
                return source.c[name]

        # Labels from the select list (ORDER BY records_found, HAVING total > 1)
        if not strict:
            return literal_column(name)
        raise DatabaseError(f"Unknown column {name}")

    def value(self, value: Any) -> Any:
        if isinstance(value, Expression):
            return value.compile(self)
        if isinstance(value, Select):
            return value.subquery_for(self.database)
        return value


def _compare(column: ColumnElement, op: str, value: Any) -> ColumnElement:
    op = op.strip().upper()
    if op in ("=", "=="):
        return column.is_(None) if value is None else column == value
    if op in ("!=", "<>"):
        return column.is_not(None) if value is None else column != value
    if op == "IS":
        return column.is_(value)
    if op == "IS NOT":
        return column.is_not(value)
    if op == "<":
        return column < value
    if op == "<=":
        return column <= value
    if op == ">":
        return column > value
    if op == ">=":
        return column >= value
    if op == "IN":
        return column.in_(value)
    if op == "NOT IN":
        return column.not_in(value)
    if op == "LIKE":
        return column.like(value)
    if op == "NOT LIKE":
        return column.not_like(value)
    if op == "BETWEEN":
        low, high = value
        return column.between(low, high)
    raise DatabaseError(f"Unsupported operator {op}")


def _fold(items: List[Tuple[str, ColumnElement]]) -> Optional[ColumnElement]:
    # OR binds looser than AND, the same as in written SQL
    groups: List[List[ColumnElement]] = []
    for conjunction, clause in items:
        if not groups or conjunction == "OR":
            groups.append([clause])
        else:
            groups[-1].append(clause)
    if not groups:
        return None
    terms = [group[0] if len(group) == 1 else and_(*group) for group in groups]
    return terms[0] if len(terms) == 1 else or_(*terms)


class _Conditional:
    """WHERE handling shared by SELECT, UPDATE and DELETE."""

    def __init__(self):
        self._where: List[Tuple[str, Any]] = []

    def where(self, column: Any, op: str, value: Any = None):
        return self.and_where(column, op, value)

    def and_where(self, column: Any, op: str, value: Any = None):
        self._where.append(("AND", (column, op, value)))
        return self

    def or_where(self, column: Any, op: str, value: Any = None):
        self._where.append(("OR", (column, op, value)))
        return self

    def where_open(self):
        return self.and_where_open()

    def and_where_open(self):
        self._where.append(("AND", "("))
        return self

    def or_where_open(self):
        self._where.append(("OR", "("))
        return self

    def where_close(self):
        return self.and_where_close()

    def and_where_close(self):
        self._where.append(("AND", ")"))
        return self

    def or_where_close(self):
        self._where.append(("OR", ")"))
        return self

    @staticmethod
    def _conditions(tokens: Sequence[Tuple[str, Any]], scope: _Scope, strict: bool = True) -> Optional[ColumnElement]:
        stack: List[List[Tuple[str, ColumnElement]]] = [[]]
        openers: List[str] = []

        for conjunction, item in tokens:
            if item == "(":
                stack.append([])
                openers.append(conjunction)
            elif item == ")":
                if not openers:
                    raise DatabaseError("Condition group closed without being opened")
                clause = _fold(stack.pop())
                opener = openers.pop()
                if clause is not None:
                    stack[-1].append((opener, clause))
            else:
                column, op, value = item
                stack[-1].append((conjunction, _compare(scope.column(column, strict), op, scope.value(value))))

        if openers:
            raise DatabaseError("Condition group opened without being closed")
        return _fold(stack[0])


class _Join:
    def __init__(self, table: TableRef, type: Optional[str] = None):
        join_type = (type or "INNER").upper()
        if join_type not in JOIN_TYPES:
            raise DatabaseError(f"Unsupported join type {type}")
        self.table = table
        self.type = join_type
        self.conditions: List[Tuple[Any, str, Any]] = []


class Select(_Conditional):
    """SELECT statement builder."""

    def __init__(self, *columns: Any):
        super().__init__()
        self._select: List[Any] = list(columns)
        self._distinct = False
        self._from: List[TableRef] = []
        self._join: List[_Join] = []
        self._group_by: List[Any] = []
        self._having: List[Tuple[str, Any]] = []
        self._order_by: List[Tuple[Any, Optional[str]]] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._last_join: Optional[_Join] = None

    def select(self, *columns: Any) -> "Select":
        self._select.extend(columns)
        return self

    def select_array(self, columns: Iterable[Any]) -> "Select":
        self._select.extend(columns)
        return self

    def distinct(self, value: bool = True) -> "Select":
        self._distinct = bool(value)
        return self

    def from_(self, *tables: TableRef) -> "Select":
        self._from.extend(tables)
        return self

    def join(self, table: TableRef, type: Optional[str] = None) -> "Select":
        self._last_join = _Join(table, type)
        self._join.append(self._last_join)
        return self

    def on(self, c1: Any, op: str, c2: Any) -> "Select":
        if self._last_join is None:
            raise DatabaseError("on() called before join()")
        self._last_join.conditions.append((c1, op, c2))
        return self

    def group_by(self, *columns: Any) -> "Select":
        self._group_by.extend(columns)
        return self

    def having(self, column: Any, op: str, value: Any = None) -> "Select":
        return self.and_having(column, op, value)

    def and_having(self, column: Any, op: str, value: Any = None) -> "Select":
        self._having.append(("AND", (column, op, value)))
        return self

    def or_having(self, column: Any, op: str, value: Any = None) -> "Select":
        self._having.append(("OR", (column, op, value)))
        return self

    def having_open(self) -> "Select":
        return self.and_having_open()

    def and_having_open(self) -> "Select":
        self._having.append(("AND", "("))
        return self

    def or_having_open(self) -> "Select":
        self._having.append(("OR", "("))
        return self

    def having_close(self) -> "Select":
        return self.and_having_close()

    def and_having_close(self) -> "Select":
        self._having.append(("AND", ")"))
        return self

    def or_having_close(self) -> "Select":
        self._having.append(("OR", ")"))
        return self

    def order_by(self, column: Any, direction: Optional[str] = None) -> "Select":
        self._order_by.append((column, direction))
        return self

    def limit(self, number: Optional[int]) -> "Select":
        self._limit = number
        return self

    def offset(self, number: Optional[int]) -> "Select":
        self._offset = number
        return self

    def compile(self, database: Database):
        """Build the SQLAlchemy Select for this query."""
        scope = _Scope(database)
        bases = [scope.add(table) for table in self._from]
        joined = [(join, scope.add(join.table)) for join in self._join]

        columns = []
        labels = set()
        for ref in self._select:
            label = None
            if isinstance(ref, (tuple, list)):
                ref, label = ref
            column = scope.column(ref)
            key = label or getattr(column, "key", None) or str(ref)
            if key in labels:
                continue
            labels.add(key)
            columns.append(column.label(label) if label else column)
        if not columns:
            columns = [literal_column("*")]

        statement = sa_select(*columns)

        if bases:
            source = bases[0]
            for join, target in joined:
                onclause = and_(*[
                    _compare(scope.column(c1), op, scope.column(c2))
                    for c1, op, c2 in join.conditions
                ]) if join.conditions else None
                if onclause is None:
                    raise DatabaseError(f"Join on {join.table} has no ON condition")
                source = source.join(
                    target,
                    onclause,
                    isouter=join.type == "LEFT",
                    full=join.type == "FULL",
                )
            statement = statement.select_from(source, *bases[1:])

        where = self._conditions(self._where, scope)
        if where is not None:
            statement = statement.where(where)

        if self._group_by:
            statement = statement.group_by(*[scope.column(c, strict=False) for c in self._group_by])

        having = self._conditions(self._having, scope, strict=False)
        if having is not None:
            statement = statement.having(having)

        for column, direction in self._order_by:
            clause = scope.column(column, strict=False)
            if direction and direction.strip().upper() == "DESC":
                clause = clause.desc()
            elif direction:
                clause = clause.asc()
            statement = statement.order_by(clause)

        if self._distinct:
            statement = statement.distinct()
        if self._limit is not None:
            statement = statement.limit(self._limit)
        if self._offset is not None:
            statement = statement.offset(self._offset)

        return statement

    def subquery_for(self, database: Database):
        return self.compile(database).scalar_subquery()

    def execute(self, database: Database, as_object: Any = None) -> Result:
        """
        Run the query.

        Args:
            database: Database to run against
            as_object: Optional callable turning each row dict into an object

        Returns:
            Result over the fetched rows
        """
        rows = database.fetch(self.compile(database))
        if as_object is None:
            return Result(rows)
        return Result(rows, as_object)


class Insert:
    """INSERT statement builder."""

    def __init__(self, table: str, columns: Optional[Sequence[str]] = None):
        self._table = table
        self._columns: List[str] = list(columns or [])
        self._values: List[Sequence[Any]] = []

    def columns(self, columns: Sequence[str]) -> "Insert":
        self._columns = list(columns)
        return self

    def values(self, *rows: Any) -> "Insert":
        """Add one or more rows, each a sequence aligned with columns() or a mapping."""
        for row in rows:
            if isinstance(row, Mapping):
                if not self._columns:
                    self._columns = list(row.keys())
                row = [row[column] for column in self._columns]
            self._values.append(list(row))
        return self

    def compile(self, database: Database):
        table = database.table(self._table)
        if not self._values:
            # INSERT ... DEFAULT VALUES
            return sa_insert(table)
        rows = [dict(zip(self._columns, row)) for row in self._values]
        for row in rows:
            unknown = [column for column in row if column not in table.c]
            if unknown:
                raise DatabaseError(f"Unknown column {unknown[0]} in table {self._table}")
        return sa_insert(table).values(rows[0] if len(rows) == 1 else rows)

    def execute(self, database: Database) -> Tuple[Any, int]:
        """Run the insert and return (inserted primary key, affected rows)."""
        return database.insert(self.compile(database), single_row=len(self._values) <= 1)


class Update(_Conditional):
    """UPDATE statement builder."""

    def __init__(self, table: TableRef):
        super().__init__()
        self._table, self._alias = _split_table(table)
        self._set: Dict[str, Any] = {}

    def set(self, pairs: Mapping[str, Any]) -> "Update":
        self._set.update(pairs)
        return self

    def value(self, column: str, value: Any) -> "Update":
        self._set[column] = value
        return self

    def compile(self, database: Database):
        table = database.table(self._table)
        scope = _Scope(database)
        scope.bind(self._table, table)
        scope.bind(self._alias, table)
        values = {}
        for column, value in self._set.items():
            name = str(column).rpartition(".")[2]
            if name not in table.c:
                raise DatabaseError(f"Unknown column {column} in table {self._table}")
            values[table.c[name]] = scope.value(value)
        statement = sa_update(table).values(values)
        where = self._conditions(self._where, scope)
        if where is not None:
            statement = statement.where(where)
        return statement

    def execute(self, database: Database) -> int:
        return database.execute(self.compile(database))


class Delete(_Conditional):
    """DELETE statement builder."""

    def __init__(self, table: TableRef):
        super().__init__()
        self._table, self._alias = _split_table(table)

    def compile(self, database: Database):
        table = database.table(self._table)
        scope = _Scope(database)
        scope.bind(self._table, table)
        scope.bind(self._alias, table)
        statement = sa_delete(table)
        where = self._conditions(self._where, scope)
        if where is not None:
            statement = statement.where(where)
        return statement

    def execute(self, database: Database) -> int:
        return database.execute(self.compile(database))


def select(*columns: Any) -> Select:
    return Select(*columns)


def insert(table: str, columns: Optional[Sequence[str]] = None) -> Insert:
    return Insert(table, columns)


def update(table: TableRef) -> Update:
    return Update(table)


def delete(table: TableRef) -> Delete:
    return Delete(table)


def expr(sql: str) -> Expression:
    return Expression(sql)


def count(column: Any = None) -> Count:
    return Count(column)
