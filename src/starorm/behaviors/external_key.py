"""
Behaviors - ExternalKey

Lets a model be constructed from an alternate key: Model("some-slug") loads
the row whose key column equals "some-slug" instead of looking up the
primary key. Integer and all-digit ids still go through the primary key.
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Dict, Optional

from .base import Behavior

if TYPE_CHECKING:
    from ..core.model import Model


def is_external_id(id: Any) -> bool:
    if id is None or isinstance(id, (Mapping, int)):
        return False
    return not str(id).isdigit()


class ExternalKey(Behavior):
    """
    Load by an alternate key column.

    Config:
        column: Column holding the external key
    """

    default_column = "slug"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.column: str = self.config.get("column", self.default_column)

    def validate_key(self, id: Any) -> None:
        pass

    def on_construct(self, model: "Model", id: Any) -> bool:
        if not is_external_id(id):
            return True
        self.validate_key(id)
        model.where(f"{model.object_name}.{self.column}", "=", id).find()
        # The row (if any) is loaded, skip the primary key lookup
        return False
