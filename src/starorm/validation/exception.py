"""
Validation Exception - failures of a model and its related models

A ValidationError is a tree. Every node holds an "_object" Validation and a
"_has_many" flag; child nodes are keyed by relationship alias. Nodes of
has-many relationships hold one child per related record, keyed by an
integer index or by an explicit key. The "_external" child holds the
failures of an extra Validation passed to create()/update()/check().
"""

from typing import Any, Dict, Optional, Union

from ..exceptions import OrmError
from .validation import Validation

EXTERNAL = "_external"

HasMany = Union[bool, str, int]


class ValidationError(OrmError):
    """
    Raised when a model fails validation.

    Args:
        alias: Alias (usually the errors filename) of the failing model
        validation: The failed Validation
        message: Exception message
        code: Error code
    """

    def __init__(self, alias: str, validation: Validation, message: str = "Failed to validate array", code: Any = 0):
        super().__init__(message, code)
        self._alias = alias
        self._objects: Dict[Any, Any] = {"_object": validation, "_has_many": False}

    def add_object(self, alias: str, validation: Validation, has_many: HasMany = False) -> "ValidationError":
        """
        Attach another Validation under alias.

        Args:
            alias: Relationship alias, or "_external"
            validation: The failed Validation
            has_many: True appends under the next integer index, a key
                stores under that key, False stores the node directly

        Returns:
            self
        """
        node = self._node(alias, has_many)
        if has_many is True:
            node[self._next_index(node)] = {"_object": validation}
        elif has_many is not False:
            node[has_many] = {"_object": validation}
        else:
            node["_object"] = validation
        return self

    def merge(self, other: "ValidationError", has_many: HasMany = False) -> "ValidationError":
        """Attach the whole tree of another ValidationError under its alias."""
        alias = other.alias()
        if has_many is True:
            node = self._node(alias, has_many)
            node[self._next_index(node)] = other.objects()
        elif has_many is not False:
            node = self._node(alias, has_many)
            node[has_many] = other.objects()
        else:
            self._objects[alias] = other.objects()
        return self

    def _node(self, alias: str, has_many: HasMany) -> Dict[Any, Any]:
        node = self._objects.get(alias)
        if not isinstance(node, dict):
            node = {}
            self._objects[alias] = node
        node["_has_many"] = has_many is not False
        return node

    @staticmethod
    def _next_index(node: Dict[Any, Any]) -> int:
        indexes = [key for key in node if isinstance(key, int) and not isinstance(key, bool)]
        return max(indexes) + 1 if indexes else 0

    def errors(self, directory: Optional[str] = None, translate: bool = True) -> Dict[Any, Any]:
        """
        Flatten the tree into nested error mappings.

        Args:
            directory: Message directory; each node renders with the file
                "<directory>/<alias>". None returns raw errors.
            translate: Translate labels and messages

        Returns:
            Field errors of the root merged with one nested mapping per
            child alias
        """
        return self._generate(self._alias, self._objects, directory, translate)

    def _generate(self, alias: str, objects: Dict[Any, Any], directory: Optional[str], translate: bool) -> Dict[Any, Any]:
        errors: Dict[Any, Any] = {}
        for key, value in objects.items():
            if isinstance(value, dict):
                if key == EXTERNAL:
                    # Messages for extra validation live in <alias>/_external
                    errors[key] = self._generate(f"{alias}/{key}", value, directory, translate)
                elif isinstance(key, int):
                    # Records of a has-many relationship share the relationship's messages
                    errors[key] = self._generate(alias, value, directory, translate)
                else:
                    errors[key] = self._generate(key, value, directory, translate)
            elif isinstance(value, Validation):
                file = None if directory is None else f"{directory}/{alias}".strip("/")
                for field, error in value.errors(file, translate).items():
                    errors.setdefault(field, error)
        return errors

    def objects(self) -> Dict[Any, Any]:
        return self._objects

    def alias(self) -> str:
        return self._alias

    def __str__(self) -> str:
        return f"{self.message}: {self.errors()}"
