"""
starorm Core - Inflector

Name conversions used to derive object names, table names and key names.
Only the last underscore-separated word of a compound name is inflected,
so "user_token" becomes "user_tokens" and "blog_categories" becomes
"blog_category".
"""

import re
from functools import lru_cache

import inflect

_engine = inflect.engine()

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


@lru_cache(maxsize=512)
def plural(word: str) -> str:
    head, sep, last = word.rpartition("_")
    if not last:
        return word
    return f"{head}{sep}{_engine.plural_noun(last)}"


@lru_cache(maxsize=512)
def singular(word: str) -> str:
    head, sep, last = word.rpartition("_")
    if not last:
        return word
    # singular_noun() returns False for words that are already singular
    result = _engine.singular_noun(last)
    return f"{head}{sep}{result or last}"


def underscore(name: str) -> str:
    """CamelCase class name to snake_case object name."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()
