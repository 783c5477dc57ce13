"""
Validation - rule engine for a flat mapping of field values

Rules are registered per field with a parameter list. Parameters that name
a bound key (":value", ":field", ":data", ":validation", or anything passed
to bind()) are replaced by the bound value when the rule runs.
"""

import re
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from . import messages
from .rules import EMPTY_RULES, RULES, not_empty

Rule = Union[str, Callable[..., Any]]

_NON_LETTERS = re.compile(r"[^\w]+|_+")


def _default_label(field: str) -> str:
    return _NON_LETTERS.sub(" ", field).strip()


def _rule_name(rule: Rule) -> str:
    if isinstance(rule, str):
        return rule
    return getattr(rule, "__name__", type(rule).__name__)


def _flatten(values: Iterable[Any]) -> List[Any]:
    flat = []
    for value in values:
        if isinstance(value, (list, tuple, set)):
            flat.extend(_flatten(value))
        else:
            flat.append(value)
    return flat


class Validation:
    """
    Validates a mapping of field values against per-field rules.

    Args:
        data: Field values to validate
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, Any] = dict(data or {})
        self._rules: Dict[str, List[Tuple[Rule, List[Any]]]] = {}
        self._labels: Dict[str, str] = {}
        self._bound: Dict[str, Any] = {}
        self._errors: Dict[str, List[Any]] = {}

    @classmethod
    def factory(cls, data: Optional[Mapping[str, Any]] = None) -> "Validation":
        return cls(data)

    def copy(self, data: Mapping[str, Any]) -> "Validation":
        """New Validation with the same rules, labels and bindings over other data."""
        other = type(self)(data)
        other._rules = {field: list(rules) for field, rules in self._rules.items()}
        other._labels = dict(self._labels)
        other._bound = dict(self._bound)
        return other

    def data(self) -> Dict[str, Any]:
        return dict(self._data)

    def get(self, field: str, default: Any = None) -> Any:
        return self._data.get(field, default)

    def __getitem__(self, field: str) -> Any:
        return self._data.get(field)

    def __contains__(self, field: str) -> bool:
        return field in self._data

    def bind(self, key: Union[str, Mapping[str, Any]], value: Any = None) -> "Validation":
        """Bind a value to a parameter placeholder such as ":model"."""
        if isinstance(key, Mapping):
            self._bound.update(key)
        else:
            self._bound[key] = value
        return self

    def label(self, field: str, label: str) -> "Validation":
        self._labels[field] = label
        return self

    def labels(self, labels: Mapping[str, str]) -> "Validation":
        self._labels.update(labels)
        return self

    def rule(self, field: str, rule: Rule, params: Optional[Iterable[Any]] = None) -> "Validation":
        """
        Add a rule to a field.

        Args:
            field: Field name
            rule: Name of a registered rule, or a callable
            params: Rule arguments (default: [":value"])

        Returns:
            self
        """
        if field not in self._labels:
            self._labels[field] = _default_label(field)
        self._rules.setdefault(field, []).append((rule, list(params) if params is not None else [":value"]))
        return self

    def rules(self, field: str, rules: Iterable[Any]) -> "Validation":
        """Add several rules, each a rule or a (rule, params) pair."""
        for declaration in rules:
            if isinstance(declaration, (tuple, list)):
                self.rule(field, *declaration)
            else:
                self.rule(field, declaration)
        return self

    def check(self) -> bool:
        """Run every rule; returns True when no field failed."""
        self._errors = {}

        for field, rules in self._rules.items():
            value = self._data.get(field)
            bound = {
                **self._bound,
                ":validation": self,
                ":data": self._data,
                ":field": field,
                ":value": value,
            }

            for rule, params in rules:
                name = _rule_name(rule)
                if name not in EMPTY_RULES and not not_empty(value):
                    continue

                args = [bound[param] if isinstance(param, str) and param in bound else param for param in params]
                fn = RULES[rule] if isinstance(rule, str) else rule
                passed = fn(*args)

                if passed is False:
                    self.error(field, name, args)
                    break
                if field in self._errors:
                    # The rule added its own error
                    break

        return not self._errors

    def error(self, field: str, error: str, params: Optional[List[Any]] = None) -> "Validation":
        self._errors[field] = [error, list(params or [])]
        return self

    def errors(self, file: Optional[str] = None, translate: bool = True) -> Dict[str, Any]:
        """
        Errors of the last check().

        Args:
            file: Message file used to render messages; None returns the
                raw {field: [rule, params]} mapping
            translate: Translate labels and messages

        Returns:
            Mapping of field to raw error or rendered message
        """
        if file is None:
            return {field: [error, list(params)] for field, (error, params) in self._errors.items()}

        rendered = {}
        for field, (error, params) in self._errors.items():
            label = self._labels.get(field, field)
            if translate:
                label = messages.translate(label)

            values = {":field": label, ":value": self._render_value(self._data.get(field))}
            for index, param in enumerate(params, start=1):
                if isinstance(param, (list, tuple, set)):
                    param = ", ".join(str(item) for item in _flatten(param))
                elif not isinstance(param, (str, int, float)) or isinstance(param, bool):
                    continue
                if isinstance(param, str) and param in self._labels:
                    param = self._labels[param]
                    if translate:
                        param = messages.translate(param)
                values[f":param{index}"] = param

            message = (
                messages.message(file, f"{field}.{error}")
                or messages.message(file, f"{field}.default")
                or messages.message(file, error)
                or messages.message("validation", error)
                or f"{file}.{field}.{error}"
            )
            if translate:
                message = messages.translate(message)
            rendered[field] = _substitute(message, values)

        return rendered

    @staticmethod
    def _render_value(value: Any) -> Any:
        if isinstance(value, (list, tuple, set)):
            return ", ".join(str(item) for item in _flatten(value))
        return value

    def __repr__(self) -> str:
        return f"Validation(fields={list(self._rules)}, errors={list(self._errors)})"


def _substitute(message: str, values: Mapping[str, Any]) -> str:
    if not values:
        return message
    # Longest placeholder first so :param1 never eats :param10
    keys = sorted(values, key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(key) for key in keys))
    return pattern.sub(lambda match: "" if values[match.group(0)] is None else str(values[match.group(0)]), message)
