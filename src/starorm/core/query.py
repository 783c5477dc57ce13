"""
starorm Core - Query Descriptor

Builder calls made on a model (where, join, order_by, ...) are recorded here
until a terminal operation decides which statement they apply to. The
descriptor is then replayed onto that statement in the original order.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Set, Tuple

# Calls a model may queue, in the builder method names they replay to
QUERY_METHODS = (
    "where",
    "and_where",
    "or_where",
    "where_open",
    "and_where_open",
    "or_where_open",
    "where_close",
    "and_where_close",
    "or_where_close",
    "distinct",
    "select",
    "from_",
    "join",
    "on",
    "group_by",
    "having",
    "and_having",
    "or_having",
    "having_open",
    "and_having_open",
    "or_having_open",
    "having_close",
    "and_having_close",
    "or_having_close",
    "order_by",
    "limit",
    "offset",
)

SELECT_METHODS = frozenset({"select"})


@dataclass(frozen=True)
class PendingCall:
    """One deferred builder call."""
    name: str
    args: Tuple[Any, ...] = ()

    def apply(self, builder: Any) -> Any:
        method = getattr(builder, self.name, None)
        if method is None:
            raise AttributeError(f"{type(builder).__name__} does not support {self.name}()")
        return method(*self.args)


@dataclass
class QueryDescriptor:
    """Ordered queue of deferred builder calls."""

    calls: List[PendingCall] = field(default_factory=list)
    applied: Set[str] = field(default_factory=set)

    def enqueue(self, name: str, *args: Any) -> "QueryDescriptor":
        if name not in QUERY_METHODS:
            raise ValueError(f"Unknown query method {name}")
        self.calls.append(PendingCall(name, tuple(args)))
        return self

    def materialize(self, builder: Any, only: Optional[Set[str]] = None) -> Any:
        """
        Replay the queued calls onto builder in their original order.

        Args:
            builder: Statement builder receiving the calls
            only: Restrict replay to these method names (UPDATE and DELETE
                only accept conditions)

        Returns:
            The builder
        """
        for call in self.calls:
            if only is not None and call.name not in only:
                continue
            call.apply(builder)
            self.applied.add(call.name)
        return builder

    def was_applied(self, name: str) -> bool:
        return name in self.applied

    def pop_selects(self) -> List[Tuple[int, PendingCall]]:
        """Remove select-type calls, returning them with their positions."""
        removed = [(index, call) for index, call in enumerate(self.calls) if call.name in SELECT_METHODS]
        self.calls = [call for call in self.calls if call.name not in SELECT_METHODS]
        return removed

    def restore(self, removed: List[Tuple[int, PendingCall]]) -> None:
        """Put calls taken by pop_selects() back where they were."""
        for index, call in removed:
            self.calls.insert(index, call)

    def clear(self) -> None:
        self.calls = []
        self.applied = set()

    def __len__(self) -> int:
        return len(self.calls)

    def __bool__(self) -> bool:
        return True

    def names(self) -> List[str]:
        return [call.name for call in self.calls]


WHERE_METHODS = frozenset(name for name in QUERY_METHODS if "where" in name)
