"""
Behaviors - Local

Adapts a plain callable to the behavior hooks. The callable is invoked as
callback(event, model, id) on construct and callback(event, model) on
create and update, where event is "construct", "create" or "update".
"""

from typing import TYPE_CHECKING, Any, Callable

from .base import Behavior

if TYPE_CHECKING:
    from ..core.model import Model


class Local(Behavior):
    """Behavior backed by a single callback."""

    def __init__(self, callback: Callable[..., Any]):
        super().__init__()
        self.callback = callback

    def on_construct(self, model: "Model", id: Any) -> bool:
        result = self.callback("construct", model, id)
        if isinstance(result, bool):
            return result
        # Anything but a bool continues loading the record
        return True

    def on_update(self, model: "Model") -> None:
        self.callback("update", model)

    def on_create(self, model: "Model") -> None:
        self.callback("create", model)
