"""
starorm Core

Model base class, relationship declarations and the registry that holds
type-level state.
"""

from .model import Model, ModelResult
from .query import PendingCall, QueryDescriptor
from .registry import (
    AutoColumn,
    BelongsTo,
    HasMany,
    HasOne,
    ModelDefinition,
    ModelRegistry,
    RelationshipDefinition,
    default_registry,
)
from .relationships import RelationDescriptor, RelationshipResolver
from .filters import register_filter

__all__ = [
    "Model",
    "ModelResult",
    "PendingCall",
    "QueryDescriptor",
    "AutoColumn",
    "BelongsTo",
    "HasMany",
    "HasOne",
    "ModelDefinition",
    "ModelRegistry",
    "RelationshipDefinition",
    "default_registry",
    "RelationDescriptor",
    "RelationshipResolver",
    "register_filter",
]
