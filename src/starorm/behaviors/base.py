"""
Behaviors - Base Class

A behavior observes the lifecycle of every instance of a model class. Models
list their behaviors in the behaviors() hook as a mapping of key to config:

    def behaviors(self):
        return {
            "guid": {"column": "guid", "verify": True},
            "audit": lambda event, model, id=None: audit_log.append(event),
        }

A callable config becomes a Local behavior; otherwise the key is a Behavior
subclass or a registered behavior name and config is passed to it.
"""

from typing import TYPE_CHECKING, Any, Dict, Optional, Type, Union

from ..exceptions import OrmError

if TYPE_CHECKING:
    from ..core.model import Model

BehaviorKey = Union[str, Type["Behavior"]]

_BEHAVIORS: Dict[str, Type["Behavior"]] = {}


def register_behavior(name: str, behavior: Type["Behavior"]) -> None:
    """Make a behavior class available by name in behaviors()."""
    _BEHAVIORS[name] = behavior


class Behavior:
    """
    Base behavior; every hook is a no-op.

    Args:
        config: Behavior options
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config: Dict[str, Any] = dict(config or {})

    @staticmethod
    def factory(key: BehaviorKey, config: Any = None) -> "Behavior":
        """
        Build the behavior declared as key: config.

        Raises:
            OrmError: If the key names no known behavior
        """
        if callable(config) and not isinstance(config, type):
            from .local import Local
            return Local(config)

        if isinstance(key, type) and issubclass(key, Behavior):
            return key(config)

        behavior = _BEHAVIORS.get(str(key))
        if behavior is None:
            raise OrmError(f"Behavior cannot be created: {key} is neither a behavior nor a callable")
        return behavior(config)

    def on_construct(self, model: "Model", id: Any) -> bool:
        """
        Called before a new instance loads its record.

        Returns:
            False to stop the default primary key lookup
        """
        return True

    def on_create(self, model: "Model") -> None:
        pass

    def on_update(self, model: "Model") -> None:
        pass
