"""
Validation Rules - built-in named rules

Each rule receives the bound parameters of a rule declaration (by default
only the field value) and returns True when the value passes.
"""

import re
from numbers import Number
from typing import Any, Callable, Dict, Iterable, Mapping, Optional
from urllib.parse import urlparse

_EMAIL = re.compile(
    r"^[-_a-z0-9'+*$^&%=~!?{}]+(?:\.[-_a-z0-9'+*$^&%=~!?{}]+)*@"
    r"(?:(?![-.])[-a-z0-9.]+(?<![-.])\.[a-z]{2,24}|\d{1,3}(?:\.\d{1,3}){3})$",
    re.IGNORECASE,
)


def not_empty(value: Any) -> bool:
    """Value is not None, not blank and not an empty collection."""
    if value is None:
        return False
    if value is False or value == "":
        return False
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


def min_length(value: Any, length: int) -> bool:
    return len(str(value)) >= length


def max_length(value: Any, length: int) -> bool:
    return len(str(value)) <= length


def exact_length(value: Any, length: Any) -> bool:
    if isinstance(length, (list, tuple, set)):
        return len(str(value)) in length
    return len(str(value)) == length


def email(value: Any) -> bool:
    value = str(value)
    if len(value) > 254:
        return False
    return bool(_EMAIL.match(value))


def regex(value: Any, expression: str) -> bool:
    return re.search(expression, str(value)) is not None


def matches(data: Mapping[str, Any], field: str, match: str) -> bool:
    """Two fields of the validated data hold the same value."""
    return data.get(field) == data.get(match)


def equals(value: Any, required: Any) -> bool:
    return value == required


def digit(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    return str(value).isdigit()


def numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, Number):
        return True
    return re.fullmatch(r"-?\d+(?:\.\d+)?", str(value)) is not None


def range_(value: Any, minimum: Any, maximum: Any, step: Optional[Any] = None) -> bool:
    if not numeric(value):
        return False
    number = float(value)
    if number < minimum or number > maximum:
        return False
    if step:
        return (number - minimum) % step == 0
    return True


def in_array(value: Any, choices: Iterable[Any]) -> bool:
    return value in choices


def url(value: Any) -> bool:
    parsed = urlparse(str(value))
    return parsed.scheme in ("http", "https", "ftp") and bool(parsed.netloc)


# Named rules available to Validation.rule()
RULES: Dict[str, Callable[..., bool]] = {
    "not_empty": not_empty,
    "min_length": min_length,
    "max_length": max_length,
    "exact_length": exact_length,
    "email": email,
    "regex": regex,
    "matches": matches,
    "equals": equals,
    "digit": digit,
    "numeric": numeric,
    "range": range_,
    "in_array": in_array,
    "url": url,
}

# Rules that run even when the field value is empty
EMPTY_RULES = frozenset({"not_empty", "matches"})


def register_rule(name: str, fn: Callable[..., bool]) -> None:
    """Make fn available to Validation.rule() under name."""
    RULES[name] = fn

