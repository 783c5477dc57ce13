"""
starorm Database Layer - Result Sets

Rows are fetched eagerly from the cursor; turning a row into an object
(a model instance, for example) happens lazily on first access and is
cached per row.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional


class Result:
    """
    Sequence of rows returned by a SELECT.

    Args:
        rows: Fetched rows as dicts
        factory: Optional callable building an object from one row
    """

    def __init__(self, rows: List[Dict[str, Any]], factory: Optional[Callable[[Dict[str, Any]], Any]] = None):
        self._rows = rows
        self._factory = factory
        self._objects: Dict[int, Any] = {}

    def __len__(self) -> int:
        return len(self._rows)

    def __bool__(self) -> bool:
        return bool(self._rows)

    def __iter__(self) -> Iterator[Any]:
        for index in range(len(self._rows)):
            yield self[index]

    def __getitem__(self, index: int) -> Any:
        if index < 0:
            index += len(self._rows)
        if index not in self._objects:
            row = self._rows[index]
            self._objects[index] = self._factory(row) if self._factory else row
        return self._objects[index]

    def count(self) -> int:
        return len(self._rows)

    def current(self) -> Any:
        """First row (or object), None for an empty result."""
        return self[0] if self._rows else None

    first = current

    def get(self, name: str, default: Any = None) -> Any:
        """Column value from the first row."""
        if not self._rows:
            return default
        return self._rows[0].get(name, default)

    def rows(self) -> List[Dict[str, Any]]:
        return list(self._rows)

    def as_list(self, value: Optional[str] = None) -> List[Any]:
        """All rows, or only the given column of each row."""
        if value is None:
            return list(self)
        return [self._value(item, value) for item in self]

    def as_dict(self, key: str, value: Optional[str] = None) -> Dict[Any, Any]:
        """Rows keyed by one column, optionally reduced to another column."""
        result = {}
        for item in self:
            result[self._value(item, key)] = item if value is None else self._value(item, value)
        return result

    @staticmethod
    def _value(item: Any, name: str) -> Any:
        if isinstance(item, dict):
            return item.get(name)
        return getattr(item, name)
