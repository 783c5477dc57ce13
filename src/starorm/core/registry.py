"""
starorm Core - Model Registry

Type-level state shared by every instance of a model class lives here
instead of on the classes themselves:

- the named Database handles (one per group)
- the model-name lookup table used to resolve relationship targets
- resolved model definitions (names, keys, relationship defaults)
- introspected table columns

Caches fill lazily on first use, or eagerly through initialize(), and are
only dropped through reset().
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Type, Union

from ..config import Settings, get_settings
from ..db import Database
from .inflector import plural, singular, underscore

if TYPE_CHECKING:
    from .model import Model

logger = logging.getLogger(__name__)

BELONGS_TO = "belongs_to"
HAS_ONE = "has_one"
HAS_MANY = "has_many"

ModelRef = Union[str, Type["Model"]]


@dataclass(frozen=True)
class BelongsTo:
    """The foreign key is stored on this model."""
    model: Optional[ModelRef] = None
    foreign_key: Optional[str] = None

    kind = BELONGS_TO


@dataclass(frozen=True)
class HasOne:
    """The foreign key is stored on the related model."""
    model: Optional[ModelRef] = None
    foreign_key: Optional[str] = None

    kind = HAS_ONE


@dataclass(frozen=True)
class HasMany:
    """
    One-to-many, or many-to-many when through names a join table.

    Args:
        model: Related model class or name (default: singular of the alias)
        foreign_key: Column pointing at this model (default: object_name + "_id")
        through: Join table for many-to-many relationships
        far_key: Join table column pointing at the related model
        update: Assigning a list of keys to the alias syncs the join table
    """
    model: Optional[ModelRef] = None
    foreign_key: Optional[str] = None
    through: Optional[str] = None
    far_key: Optional[str] = None
    update: bool = False

    kind = HAS_MANY


@dataclass(frozen=True)
class RelationshipDefinition:
    """Relationship declaration with every default resolved."""
    kind: str
    alias: str
    model: ModelRef
    foreign_key: str
    through: Optional[str] = None
    far_key: Optional[str] = None
    update: bool = False


@dataclass(frozen=True)
class AutoColumn:
    """
    Column stamped automatically on create or update.

    Args:
        column: Column name
        format: True stores epoch seconds, a string is a strftime() format
    """
    column: str
    format: Union[bool, str] = True


@dataclass
class ModelDefinition:
    """Resolved type-level description of one model class."""
    model: Type["Model"]
    object_name: str
    object_plural: str
    table_name: str
    primary_key: str
    db_group: str
    belongs_to: Dict[str, RelationshipDefinition] = field(default_factory=dict)
    has_one: Dict[str, RelationshipDefinition] = field(default_factory=dict)
    has_many: Dict[str, RelationshipDefinition] = field(default_factory=dict)

    def relationship(self, alias: str) -> Optional[RelationshipDefinition]:
        return self.belongs_to.get(alias) or self.has_one.get(alias) or self.has_many.get(alias)

    def aliases(self):
        return [*self.belongs_to, *self.has_one, *self.has_many]


class ModelRegistry:
    """
    Registry of model classes, database handles and type-level caches.

    Args:
        settings: Settings used to open the default database lazily
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings
        self._databases: Dict[str, Database] = {}
        self._models: Dict[str, Type["Model"]] = {}
        self._definitions: Dict[Type["Model"], ModelDefinition] = {}
        self._columns: Dict[str, Dict[str, Dict[str, Any]]] = {}

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    def configure(self, settings: Settings) -> None:
        """Replace the settings; already opened databases are kept."""
        self._settings = settings

    # Databases

    def add_database(self, database: Database, group: str = "default") -> Database:
        self._databases[group] = database
        return database

    def database(self, group: str = "default") -> Database:
        database = self._databases.get(group)
        if database is None:
            if group != "default":
                raise KeyError(f"No database registered for group {group}")
            database = Database.from_settings(self.settings.database)
            self._databases[group] = database
            logger.debug(f"Opened default database {database.url}")
        return database

    # Models

    def register_model(self, model: Type["Model"]) -> None:
        """Make a model class resolvable by class name and object name."""
        for key in {model.__name__.lower(), model.object_name_for_class()}:
            existing = self._models.get(key)
            if existing is not None and existing is not model:
                logger.debug(f"Model name {key} now refers to {model.__qualname__}")
            self._models[key] = model

    def resolve_model(self, ref: ModelRef) -> Type["Model"]:
        if isinstance(ref, type):
            return ref
        model = self._models.get(str(ref).lower()) or self._models.get(underscore(str(ref)))
        if model is None:
            raise LookupError(f"No model registered under the name {ref}")
        return model

    def definition(self, model: Type["Model"]) -> ModelDefinition:
        """Resolved definition of a model class, built on first use."""
        definition = self._definitions.get(model)
        if definition is None:
            definition = self._build_definition(model)
            self._definitions[model] = definition
        return definition

    def _build_definition(self, model: Type["Model"]) -> ModelDefinition:
        suffix = self.settings.foreign_key_suffix
        object_name = model.object_name_for_class()
        object_plural = plural(object_name)

        if model._table_name:
            table_name = model._table_name
        elif model._table_names_plural:
            table_name = object_plural
        else:
            table_name = object_name

        definition = ModelDefinition(
            model=model,
            object_name=object_name,
            object_plural=object_plural,
            table_name=table_name,
            primary_key=model._primary_key,
            db_group=model._db_group,
        )

        for alias, declared in (model._belongs_to or {}).items():
            definition.belongs_to[alias] = RelationshipDefinition(
                kind=BELONGS_TO,
                alias=alias,
                model=declared.model or alias,
                foreign_key=declared.foreign_key or f"{alias}{suffix}",
            )

        for alias, declared in (model._has_one or {}).items():
            definition.has_one[alias] = RelationshipDefinition(
                kind=HAS_ONE,
                alias=alias,
                model=declared.model or alias,
                foreign_key=declared.foreign_key or f"{object_name}{suffix}",
            )

        for alias, declared in (model._has_many or {}).items():
            definition.has_many[alias] = RelationshipDefinition(
                kind=HAS_MANY,
                alias=alias,
                model=declared.model or singular(alias),
                foreign_key=declared.foreign_key or f"{object_name}{suffix}",
                through=declared.through,
                far_key=declared.far_key or f"{singular(alias)}{suffix}",
                update=declared.update,
            )

        return definition

    # Columns

    def columns(self, model: Type["Model"], force: bool = False) -> Dict[str, Dict[str, Any]]:
        """Column metadata of the model's table, introspected once."""
        definition = self.definition(model)
        key = definition.object_name
        if force or key not in self._columns:
            declared = model.declared_columns()
            if declared is not None:
                self._columns[key] = declared
            else:
                database = self.database(definition.db_group)
                self._columns[key] = database.list_columns(definition.table_name)
                logger.debug(f"Loaded {len(self._columns[key])} columns for {definition.table_name}")
        return self._columns[key]

    def initialize(self, *models: Type["Model"]) -> None:
        """Resolve definitions and columns up front."""
        for model in models:
            self.register_model(model)
            self.columns(model)

    def reset(self, models: bool = False) -> None:
        """
        Drop cached state.

        Args:
            models: Also forget registered model classes
        """
        for database in self._databases.values():
            database.dispose()
        self._databases.clear()
        self._definitions.clear()
        self._columns.clear()
        if models:
            self._models.clear()


# Global registry instance
default_registry = ModelRegistry()
