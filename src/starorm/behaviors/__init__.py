"""
starorm Behaviors

Lifecycle hooks attached to model classes through the behaviors() hook.
"""

from .base import Behavior, register_behavior
from .local import Local
from .external_key import ExternalKey
from .guid import Guid

register_behavior("external_key", ExternalKey)
register_behavior("guid", Guid)

__all__ = ["Behavior", "Local", "ExternalKey", "Guid", "register_behavior"]
