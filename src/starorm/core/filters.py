"""
starorm Core - Column Filters

Filters transform a value before it is assigned to a column. A model's
filters() hook maps a column name (or "*" for every column) to a list of
filters, each one of:

- the name of a registered filter ("trim", "lower", ...)
- a callable, called with the value
- a (filter, params) tuple where params may reference ":value", ":field"
  and ":model"

Filters run in order, each receiving the output of the previous one.
"""

import re
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

WILDCARD = "*"

FilterSpec = Any


def _none_safe(fn: Callable[[Any], Any]) -> Callable[[Any], Any]:
    def wrapper(value: Any) -> Any:
        return None if value is None else fn(value)
    wrapper.__name__ = fn.__name__
    return wrapper


def _null_if_empty(value: Any) -> Any:
    return None if value in ("", [], {}) else value


def _strip_tags(value: str) -> str:
    return re.sub(r"<[^>]*>", "", value)


# Named filters available to every model
FILTERS: Dict[str, Callable[..., Any]] = {
    "trim": _none_safe(lambda value: str(value).strip()),
    "lower": _none_safe(lambda value: str(value).lower()),
    "upper": _none_safe(lambda value: str(value).upper()),
    "strip_tags": _none_safe(lambda value: _strip_tags(str(value))),
    "int": _none_safe(int),
    "float": _none_safe(float),
    "str": _none_safe(str),
    "null_if_empty": _null_if_empty,
}


def register_filter(name: str, fn: Callable[..., Any]) -> None:
    """Make fn available to filters() under name."""
    FILTERS[name] = fn


def resolve_filter(spec: Any) -> Callable[..., Any]:
    if callable(spec):
        return spec
    try:
        return FILTERS[spec]
    except KeyError:
        raise LookupError(f"Unknown filter {spec}") from None


def run_filters(filters: Mapping[str, Iterable[FilterSpec]], field: str, value: Any, model: Optional[Any] = None) -> Any:
    """
    Apply the wildcard filters and then the field's own filters to value.

    Args:
        filters: Mapping of column name (or "*") to filter list
        field: Column being assigned
        value: Incoming value
        model: Model bound to ":model"

    Returns:
        The filtered value
    """
    chain = [*filters.get(WILDCARD, ()), *filters.get(field, ())]
    bound = {":field": field, ":model": model}

    for spec in chain:
        bound[":value"] = value
        if isinstance(spec, tuple):
            fn, params = spec[0], (spec[1] if len(spec) > 1 else [":value"])
        else:
            fn, params = spec, [":value"]
        args = [bound[param] if isinstance(param, str) and param in bound else param for param in params]
        value = resolve_filter(fn)(*args)

    return value
