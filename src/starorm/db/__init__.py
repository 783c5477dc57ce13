"""
starorm Database Layer

The storage contract the ORM core relies on: a Database wrapper over a
SQLAlchemy engine and chainable statement builders.
"""

from .database import Database, DatabaseError
from .builder import (
    Count,
    Delete,
    Expression,
    Insert,
    Select,
    Update,
    count,
    delete,
    expr,
    insert,
    select,
    update,
)
from .result import Result

__all__ = [
    'Database',
    'DatabaseError',
    'Result',
    'Select',
    'Insert',
    'Update',
    'Delete',
    'Expression',
    'Count',
    'select',
    'insert',
    'update',
    'delete',
    'expr',
    'count',
]
