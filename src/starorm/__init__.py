"""
starorm - Active Record ORM over SQLAlchemy Core

Models that load, validate and persist one row each, with lazily resolved
belongs_to / has_one / has_many relationships, deferred query building and
lifecycle behaviors. The auth layer (starorm.auth) builds users, roles and
remember-me tokens on top of it.
"""

from .config import AuthSettings, DatabaseSettings, Settings, get_settings
from .core import (
    AutoColumn,
    BelongsTo,
    HasMany,
    HasOne,
    Model,
    ModelRegistry,
    ModelResult,
    default_registry,
    register_filter,
)
from .db import Database, DatabaseError
from .behaviors import Behavior, ExternalKey, Guid, Local, register_behavior
from .exceptions import AuthError, ModelStateError, OrmError, StorageError, UnknownPropertyError
from .validation import Validation, ValidationError, register_messages, register_rule

# Import the auth models and drivers from starorm.auth
# from .auth import OrmAuth, BcryptAuth, User, Role, UserToken

__all__ = [
    # Core
    'Model',
    'ModelResult',
    'ModelRegistry',
    'default_registry',
    'BelongsTo',
    'HasOne',
    'HasMany',
    'AutoColumn',
    'register_filter',

    # Database
    'Database',
    'DatabaseError',

    # Behaviors
    'Behavior',
    'Local',
    'ExternalKey',
    'Guid',
    'register_behavior',

    # Validation
    'Validation',
    'ValidationError',
    'register_rule',
    'register_messages',

    # Errors
    'OrmError',
    'ModelStateError',
    'UnknownPropertyError',
    'StorageError',
    'AuthError',

    # Configuration
    'Settings',
    'DatabaseSettings',
    'AuthSettings',
    'get_settings',
]
