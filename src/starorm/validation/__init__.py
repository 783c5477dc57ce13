"""
starorm Validation

Rule engine used by models and the aggregated exception raised when a
model (or any of its related models) fails validation.
"""

from .validation import Validation
from .exception import ValidationError
from .messages import message, register_messages, set_translator
from .rules import RULES, register_rule

__all__ = [
    "Validation",
    "ValidationError",
    "RULES",
    "register_rule",
    "register_messages",
    "message",
    "set_translator",
]
