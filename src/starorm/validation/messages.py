"""
Validation Messages - message catalog

Messages are grouped in named files ("validation" holds the defaults,
"models/user" the messages of the user model, ...). Inside a file, keys are
rule names or "field.rule" / "field.default" paths. Placeholders :field,
:value and :param1..N are substituted when an error is rendered.
"""

from typing import Any, Callable, Dict, Optional

# Default messages for the built-in rules
DEFAULT_MESSAGES: Dict[str, Any] = {
    "digit": ":field must be a digit",
    "email": ":field must be an email address",
    "equals": ":field must equal :param2",
    "exact_length": ":field must be exactly :param2 characters long",
    "in_array": ":field must be one of the available options",
    "matches": ":field must be the same as :param3",
    "max_length": ":field must not exceed :param2 characters long",
    "min_length": ":field must be at least :param2 characters long",
    "not_empty": ":field must not be empty",
    "numeric": ":field must be numeric",
    "range": ":field must be within the range of :param2 to :param3",
    "regex": ":field does not match the required format",
    "url": ":field must be a url",
    "unique": ":field must be unique",
}

_catalog: Dict[str, Dict[str, Any]] = {"validation": dict(DEFAULT_MESSAGES)}

_translator: Callable[[str], str] = lambda text: text


def register_messages(file: str, messages: Dict[str, Any]) -> None:
    """Add (or extend) a message file."""
    _catalog.setdefault(file, {}).update(messages)


def message(file: str, path: str, default: Optional[str] = None) -> Optional[str]:
    """
    Look up a message by dotted path.

    Args:
        file: Message file name
        path: Key inside the file ("min_length", "username.unique")
        default: Returned when nothing matches

    Returns:
        The message string, or default
    """
    node: Any = _catalog.get(file)
    for key in path.split("."):
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node if isinstance(node, str) else default


def set_translator(translator: Optional[Callable[[str], str]]) -> None:
    """Install the function used to translate labels and messages."""
    global _translator
    _translator = translator or (lambda text: text)


def translate(text: str) -> str:
    return _translator(text)


def reset_messages() -> None:
    """Drop every registered file except the defaults."""
    _catalog.clear()
    _catalog["validation"] = dict(DEFAULT_MESSAGES)
