"""
starorm Core - Relationship Resolver

Resolves relationship aliases of one model instance:

- belongs_to / has_one aliases load (once) the related model
- has_many aliases return a related model with its conditions queued
- with_() joins one-to-one relationships into the owner's next SELECT,
  selecting their columns as "path:column" so rows can be routed back to
  the nested related models when they load
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

from ..exceptions import UnknownPropertyError
from .registry import RelationshipDefinition

if TYPE_CHECKING:
    from .model import Model

PATH_SEPARATOR = ":"


class RelationDescriptor:
    """Attribute access for a relationship alias, generated per declared alias."""

    def __init__(self, alias: str) -> None:
        self.alias = alias

    def __get__(self, instance, owner):
        if instance is None:
            return self
        return instance.get(self.alias)

    def __set__(self, instance, value) -> None:
        instance.set(self.alias, value)

    def __repr__(self) -> str:
        return f"RelationDescriptor({self.alias!r})"


class RelationshipResolver:
    """
    Relationship lookups for one model instance.

    Related models are memoized in the owner's ``_related`` mapping.
    """

    def __init__(self, owner: "Model"):
        self.owner = owner

    @property
    def definition(self):
        return self.owner._definition

    def related(self, alias: str) -> Optional["Model"]:
        """Memoized, not yet loaded model for a belongs_to or has_one alias."""
        cache = self.owner._related
        if alias in cache:
            return cache[alias]

        relationship = self.definition.belongs_to.get(alias) or self.definition.has_one.get(alias)
        if relationship is None:
            return None

        model = self.owner.factory(relationship.model)
        cache[alias] = model
        return model

    def resolve(self, alias: str) -> Any:
        """Value of a relationship alias, loading it when needed."""
        owner = self.owner
        if alias in owner._related:
            return owner._related[alias]

        definition = self.definition
        if alias in definition.belongs_to:
            relationship = definition.belongs_to[alias]
            model = self.related(alias)
            value = owner._object.get(relationship.foreign_key)
            # A NULL key never matches; skip the query
            if value is not None:
                model.where(f"{model.object_name}.{model.primary_key}", "=", value).find()
            return model

        if alias in definition.has_one:
            relationship = definition.has_one[alias]
            model = self.related(alias)
            value = owner.pk()
            if value is not None:
                model.where(f"{model.object_name}.{relationship.foreign_key}", "=", value).find()
            return model

        if alias in definition.has_many:
            return self.many(definition.has_many[alias])

        raise UnknownPropertyError(alias, type(owner).__name__)

    def many(self, relationship: RelationshipDefinition) -> "Model":
        """Related model with the has_many conditions queued, not executed."""
        owner = self.owner
        model = owner.factory(relationship.model)

        if relationship.through:
            model.join(relationship.through).on(
                f"{relationship.through}.{relationship.far_key}",
                "=",
                f"{model.object_name}.{model.primary_key}",
            )
            column = f"{relationship.through}.{relationship.foreign_key}"
        else:
            column = f"{model.object_name}.{relationship.foreign_key}"

        value = owner.pk()
        if value is None:
            # An unsaved owner has no related rows
            return model.where(column, "IN", [])
        return model.where(column, "=", value)

    def with_(self, target_path: str) -> "Model":
        """
        Join a one-to-one relationship path ("author" or "author:profile")
        into the owner's next SELECT.
        """
        owner = self.owner
        if owner._with_applied.get(target_path):
            return owner

        aliases = target_path.split(PATH_SEPARATOR)
        parent = target = owner
        for alias in aliases:
            parent = target
            target = parent._resolver.related(alias)
            if target is None:
                # Not a one-to-one relationship
                return owner

        target_alias = aliases[-1]
        parent_path = PATH_SEPARATOR.join(aliases[:-1])
        if not parent_path:
            parent_path = owner.object_name
        elif not owner._with_applied.get(parent_path):
            # Parents first, otherwise the LEFT JOIN has nothing to attach to
            self.with_(parent_path)

        owner._with_applied[target_path] = True

        for column in target._object:
            owner.select((f"{target_path}.{column}", f"{target_path}{PATH_SEPARATOR}{column}"))

        parent_definition = parent._definition
        if target_alias in parent_definition.belongs_to:
            join_col1 = f"{target_path}.{target.primary_key}"
            join_col2 = f"{parent_path}.{parent_definition.belongs_to[target_alias].foreign_key}"
        else:
            join_col1 = f"{parent_path}.{parent.primary_key}"
            join_col2 = f"{target_path}.{parent_definition.has_one[target_alias].foreign_key}"

        owner.join((target.table_name, target_path), "LEFT").on(join_col1, "=", join_col2)
        return owner

    def route(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Split prefixed values off to related models.

        Returns:
            The values that belong to the owner itself
        """
        own: Dict[str, Any] = {}
        nested: Dict[str, Dict[str, Any]] = {}
        for column, value in values.items():
            if PATH_SEPARATOR in column:
                prefix, rest = column.split(PATH_SEPARATOR, 1)
                nested.setdefault(prefix, {})[rest] = value
            else:
                own[column] = value

        for alias, related_values in nested.items():
            model = self.related(alias)
            if model is None:
                raise UnknownPropertyError(alias, type(self.owner).__name__)
            model._load_values(related_values)

        return own
