"""
RelationMixin: many-to-many operations on a ``through`` table.

Join table rows are counted, inserted and deleted directly with the
statement builders; the related models themselves are never loaded.
"""

from typing import TYPE_CHECKING, Any, Iterable, List

from ... import db
from ...exceptions import UnknownPropertyError
from ..registry import RelationshipDefinition

if TYPE_CHECKING:
    from ..model import Model


def far_key_values(far_keys: Any) -> List[Any]:
    """Normalize a model, a scalar or an iterable of either into a list of keys."""
    from ..model import Model

    if isinstance(far_keys, Model):
        return [far_keys.pk()]
    if isinstance(far_keys, (str, bytes)) or not isinstance(far_keys, Iterable):
        return [far_keys]
    return [key.pk() if isinstance(key, Model) else key for key in far_keys]


class RelationMixin:
    """
    Many-to-many mixin.

    Provides has, has_any, count_relations, add and remove for ``has_many``
    relationships declared with a ``through`` table.
    """

    def _through(self: "Model", alias: str) -> RelationshipDefinition:
        relationship = self._definition.has_many.get(alias)
        if relationship is None or not relationship.through:
            raise UnknownPropertyError(
                alias,
                type(self).__name__,
                f"{alias} is not a many-to-many relationship of the {type(self).__name__} class",
            )
        return relationship

    def has(self: "Model", alias: str, far_keys: Any = None) -> bool:
        """
        Check whether this model is related to all of the given keys.

        Without far_keys, checks whether any relation exists at all.
        """
        count = self.count_relations(alias, far_keys)
        if far_keys is None:
            return bool(count)
        return count == len(set(far_key_values(far_keys)))

    def has_any(self: "Model", alias: str, far_keys: Any = None) -> bool:
        """Check whether this model is related to at least one of the given keys."""
        return bool(self.count_relations(alias, far_keys))

    def count_relations(self: "Model", alias: str, far_keys: Any = None) -> int:
        """Number of join table rows linking this model to far_keys (or to anything)."""
        relationship = self._through(alias)
        query = db.select((db.count(), "records_found")).from_(relationship.through)
        query.where(relationship.foreign_key, "=", self.pk())

        if far_keys is not None:
            keys = far_key_values(far_keys)
            if not keys or not self.loaded:
                return 0
            query.where(relationship.far_key, "IN", keys)
        elif self.pk() is None:
            return 0

        with self._storage():
            return int(query.execute(self._db).get("records_found") or 0)

    def add(self: "Model", alias: str, far_keys: Any):
        """Insert join table rows linking this model to far_keys."""
        relationship = self._through(alias)
        keys = far_key_values(far_keys)
        if not keys:
            return self
        query = db.insert(relationship.through, [relationship.foreign_key, relationship.far_key])
        foreign_key = self.pk()
        for key in keys:
            query.values([foreign_key, key])
        with self._storage():
            query.execute(self._db)
        return self

    def remove(self: "Model", alias: str, far_keys: Any = None):
        """Delete join table rows for far_keys, or every row of this model."""
        relationship = self._through(alias)
        if self.pk() is None:
            return self
        query = db.delete(relationship.through).where(relationship.foreign_key, "=", self.pk())
        if far_keys is not None:
            query.where(relationship.far_key, "IN", far_key_values(far_keys))
        with self._storage():
            query.execute(self._db)
        return self
