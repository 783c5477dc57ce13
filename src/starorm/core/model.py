"""
starorm Core - Model

Active Record base class. One instance represents one row of one table:
it owns the column values, tracks which columns changed since the row was
loaded, validates before writing and resolves relationships lazily.

    class Post(Model):
        _belongs_to = {"author": BelongsTo()}
        _has_many = {"tags": HasMany(through="posts_tags")}

        def rules(self):
            return {"title": [("not_empty",), ("max_length", [":value", 200])]}

    post = Post(1)
    post.title = "Hello"
    post.save()
    for tag in post.tags.order_by("name").find_all():
        ...

Class-level configuration uses underscore attributes; instance state is
only reachable through get()/set(), attribute access and the accessors
below.
"""

import json
import logging
import time
from contextlib import contextmanager
from types import SimpleNamespace
from typing import Any, ClassVar, Dict, Iterable, Iterator, List, Mapping, Optional, Type, Union

from .. import db
from ..behaviors import Behavior
from ..exceptions import ModelStateError, StorageError, UnknownPropertyError
from ..validation import Validation, ValidationError
from .filters import run_filters
from .inflector import underscore
from .mixins import QueryMixin, RelationMixin, far_key_values
from .query import WHERE_METHODS, QueryDescriptor
from .registry import AutoColumn, BelongsTo, HasMany, HasOne, ModelDefinition, ModelRegistry, default_registry
from .relationships import RelationDescriptor, RelationshipResolver

logger = logging.getLogger(__name__)

# Row state kept when a model is pickled
SERIALIZED_STATE = (
    "_primary_key_value",
    "_object",
    "_changed",
    "_loaded",
    "_saved",
    "_sorting",
    "_original_values",
)


def _differs(old: Any, new: Any) -> bool:
    """Strict comparison: 1, "1" and True are all different values."""
    return type(old) is not type(new) or old != new


class ModelResult(db.Result):
    """Rows of a find_all(), turned into models on first access."""

    def __init__(self, rows: List[Dict[str, Any]], model: Type["Model"]):
        super().__init__(rows, model._from_row)
        self.model = model

    def pks(self) -> List[Any]:
        return [item.pk() for item in self]

    def __repr__(self) -> str:
        return f"<ModelResult {self.model.__name__} x{len(self)}>"


class Model(QueryMixin, RelationMixin):
    """
    Base class for all models.

    Args:
        id: Primary key to load, a mapping of column to value to load the
            first matching row, or None for an empty model
    """

    # Configuration as class attributes (underscore keeps them out of column access)
    _registry: ClassVar[ModelRegistry] = default_registry
    _db_group: ClassVar[str] = "default"
    _object_name: ClassVar[Optional[str]] = None
    _table_name: ClassVar[Optional[str]] = None
    _table_names_plural: ClassVar[bool] = True
    _table_columns: ClassVar[Optional[Dict[str, Dict[str, Any]]]] = None
    _primary_key: ClassVar[str] = "id"
    _belongs_to: ClassVar[Dict[str, BelongsTo]] = {}
    _has_one: ClassVar[Dict[str, HasOne]] = {}
    _has_many: ClassVar[Dict[str, HasMany]] = {}
    _load_with: ClassVar[List[str]] = []
    _sorting: ClassVar[Optional[Dict[str, str]]] = None
    _serialize_columns: ClassVar[List[str]] = []
    _private_columns: ClassVar[List[str]] = []
    _created_column: ClassVar[Optional[AutoColumn]] = None
    _updated_column: ClassVar[Optional[AutoColumn]] = None
    _reload_on_wakeup: ClassVar[bool] = True
    _errors_filename: ClassVar[Optional[str]] = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)

        # Attribute access for every relationship alias
        for declared in (cls._belongs_to, cls._has_one, cls._has_many):
            for alias in declared:
                if not isinstance(getattr(cls, alias, None), RelationDescriptor) and alias in cls.__dict__:
                    continue
                setattr(cls, alias, RelationDescriptor(alias))

        cls._registry.register_model(cls)

    @classmethod
    def object_name_for_class(cls) -> str:
        return cls._object_name or underscore(cls.__name__)

    @classmethod
    def declared_columns(cls) -> Optional[Dict[str, Dict[str, Any]]]:
        """Columns given in the class body; None means introspect the table."""
        return cls._table_columns

    @classmethod
    def factory(cls, model: Union[str, Type["Model"]], id: Any = None) -> "Model":
        """Create a model by class or registered name."""
        return cls._registry.resolve_model(model)(id)

    @classmethod
    def _from_row(cls, row: Dict[str, Any]) -> "Model":
        model = cls()
        model._load_values(row)
        return model

    def __init__(self, id: Any = None):
        self._initialize()

        for behavior in self._behaviors:
            if not behavior.on_construct(self, id) or self._loaded:
                return

        if id is None:
            return

        if isinstance(id, Mapping):
            for column, value in id.items():
                self.where(f"{self.object_name}.{column}", "=", value)
        else:
            self.where(f"{self.object_name}.{self.primary_key}", "=", id)
        self.find()

    def _initialize(self) -> None:
        cls = type(self)
        self._definition: ModelDefinition = cls._registry.definition(cls)
        self._resolver = RelationshipResolver(self)
        self._query = QueryDescriptor()
        self._db_builder = None
        self._db_reset = True
        self._with_applied: Dict[str, bool] = {}
        self._validation: Optional[Validation] = None
        self._valid = False
        self._saved = False
        self._loaded = False
        self._primary_key_value = None
        self._object: Dict[str, Any] = {}
        self._original_values: Dict[str, Any] = {}
        self._changed: Dict[str, str] = {}
        self._related: Dict[str, Any] = {}
        self._sorting = dict(cls._sorting) if cls._sorting else None
        self._behaviors: List[Behavior] = [
            Behavior.factory(key, config) for key, config in self.behaviors().items()
        ]
        self.reload_columns()
        self.clear()

    # Hooks

    def behaviors(self) -> Dict[Any, Any]:
        """Behavior declarations, key to config."""
        return {}

    def rules(self) -> Dict[str, List[Any]]:
        """Validation rules per column."""
        return {}

    def filters(self) -> Dict[str, List[Any]]:
        """Filters per column; "*" applies to every column."""
        return {}

    def labels(self) -> Dict[str, str]:
        """Labels used in validation messages."""
        return {}

    # Accessors

    @property
    def object_name(self) -> str:
        return self._definition.object_name

    @property
    def object_plural(self) -> str:
        return self._definition.object_plural

    @property
    def table_name(self) -> str:
        return self._definition.table_name

    @property
    def primary_key(self) -> str:
        return self._definition.primary_key

    @property
    def table_columns(self) -> Dict[str, Dict[str, Any]]:
        return self._columns

    @property
    def original_values(self) -> Dict[str, Any]:
        return dict(self._original_values)

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def saved(self) -> bool:
        return self._saved

    @property
    def valid(self) -> bool:
        return self._valid

    @property
    def errors_filename(self) -> str:
        return self._errors_filename or self.object_name

    def pk(self) -> Any:
        return self._primary_key_value

    def table_column_type(self, column: str) -> Optional[str]:
        info = self._columns.get(column)
        return info["type"] if info else None

    def database(self) -> db.Database:
        return self._registry.database(self._definition.db_group)

    @property
    def _db(self) -> db.Database:
        return self.database()

    def last_query(self) -> Optional[str]:
        return self._db.last_query

    def changed(self, field: Optional[str] = None) -> Any:
        """All changed keys (key to column), or the column of one key."""
        if field is None:
            return dict(self._changed)
        return self._changed.get(field)

    def has_changed(self, field: Union[None, str, Iterable[str]] = None) -> bool:
        if field is None:
            return bool(self._changed)
        if isinstance(field, str):
            return field in self._changed
        return any(name in self._changed for name in field)

    # Column access

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or isinstance(getattr(type(self), name, None), (property, RelationDescriptor)):
            object.__setattr__(self, name, value)
        else:
            self.set(name, value)

    def __delattr__(self, name: str) -> None:
        if name.startswith("_"):
            object.__delattr__(self, name)
            return
        self._object.pop(name, None)
        self._changed.pop(name, None)
        self._related.pop(name, None)

    def __contains__(self, name: str) -> bool:
        return name in self._object or self._definition.relationship(name) is not None

    def get(self, column: str) -> Any:
        """
        Value of a column or relationship alias.

        Raises:
            UnknownPropertyError: If column is neither a column nor an alias
        """
        if column in self._object:
            value = self._object[column]
            if column in self._serialize_columns:
                return self._unserialize_value(value)
            return value
        return self._resolver.resolve(column)

    def set(self, column: str, value: Any) -> "Model":
        """
        Assign a column or relationship alias.

        Raises:
            UnknownPropertyError: If column is not assignable
        """
        if column in self._serialize_columns:
            value = self._serialize_value(value)

        if column in self._object:
            value = run_filters(self.filters(), column, value, self)
            if _differs(self._object[column], value):
                self._object[column] = value
                self._saved = self._valid = False
                self._track(column, column)
            return self

        definition = self._definition
        if column in definition.belongs_to:
            foreign_key = definition.belongs_to[column].foreign_key
            self._related[column] = value
            self._object[foreign_key] = value.pk() if isinstance(value, Model) else None
            self._saved = self._valid = False
            self._track(column, foreign_key)
            return self

        if column in definition.has_many and definition.has_many[column].update:
            self._sync_many(column, value)
            return self

        raise UnknownPropertyError(column, type(self).__name__)

    def _track(self, key: str, column: str) -> None:
        original = self._original_values
        if column in original and not _differs(original[column], self._object[column]):
            # Back to the stored value, nothing to write
            self._changed = {k: c for k, c in self._changed.items() if c != column}
        else:
            self._changed[key] = column

    def _sync_many(self, alias: str, value: Any) -> None:
        related = self.factory(self._definition.has_many[alias].model)
        current = [getattr(model, related.primary_key) for model in self.get(alias).find_all()]
        wanted = far_key_values(value) if value is not None else []

        added = [key for key in wanted if key not in current]
        if added:
            self.add(alias, added)

        removed = [key for key in current if key not in wanted]
        if removed:
            self.remove(alias, removed)

    def values(self, values: Mapping[str, Any], expected: Optional[Iterable[Any]] = None) -> "Model":
        """
        Assign many columns at once.

        Args:
            values: Column (or alias) to value
            expected: Columns to take from values. Entries may be a mapping
                of alias to the expected columns of that related model.
                Without it, every table column except the primary key.

        Returns:
            self
        """
        values = dict(values)
        if expected is None:
            expected = list(self._columns)
            values.pop(self.primary_key, None)

        for entry in expected:
            if isinstance(entry, Mapping):
                for alias, nested in entry.items():
                    if alias in values:
                        self.get(alias).values(values[alias], nested)
            elif entry in values:
                self.set(entry, values[entry])
        return self

    def _serialize_value(self, value: Any) -> Any:
        return json.dumps(value)

    def _unserialize_value(self, value: Any) -> Any:
        if value is None:
            return None
        return json.loads(value)

    # Loading

    def _load_values(self, values: Mapping[str, Any]) -> "Model":
        pk = self.primary_key
        if pk in values:
            if values[pk] is not None:
                self._loaded = self._valid = True
                self._primary_key_value = values[pk]
            else:
                self._loaded = self._valid = False

        self._object.update(self._resolver.route(dict(values)))

        if self._loaded:
            self._original_values = dict(self._object)
        return self

    def clear(self) -> "Model":
        """Empty every column and forget the loaded row."""
        self._object = {}
        self._changed = {}
        self._related = {}
        self._original_values = {}
        self._load_values(dict.fromkeys(self._columns))
        self._primary_key_value = None
        self._loaded = False
        self.reset()
        return self

    def reload(self) -> "Model":
        """Load the row again from the database."""
        primary_key = self.pk()
        self._object = {}
        self._changed = {}
        self._related = {}
        self._original_values = {}

        if self._loaded:
            return self.clear().where(f"{self.object_name}.{self.primary_key}", "=", primary_key).find()
        return self.clear()

    def reload_columns(self, force: bool = False) -> "Model":
        with self._storage():
            self._columns = self._registry.columns(type(self), force)
        return self

    def with_(self, target_path: str) -> "Model":
        """Load a one-to-one relationship path in the same query."""
        return self._resolver.with_(target_path)

    @contextmanager
    def _storage(self) -> Iterator[None]:
        try:
            yield
        except db.DatabaseError as exc:
            raise StorageError(exc.message, exc.code) from exc

    def _build(self, kind: str):
        if kind == "select":
            builder = db.select()
            self._query.materialize(builder)
        elif kind == "delete":
            builder = db.delete((self.table_name, self.object_name))
            self._query.materialize(builder, only=WHERE_METHODS)
        else:
            raise ValueError(f"Unknown statement type {kind}")
        self._db_builder = builder
        return builder

    def _build_select(self) -> List[Any]:
        return [(f"{self.object_name}.{column}", column) for column in self._columns]

    def _apply_load_with(self) -> None:
        for alias in self._load_with:
            self.with_(alias)

    def find(self) -> "Model":
        """
        Load the first row matching the queued conditions.

        Raises:
            ModelStateError: If the model is already loaded
        """
        if self._loaded:
            raise ModelStateError(f"Method find() cannot be called on loaded {type(self).__name__} objects")
        self._apply_load_with()
        self._build("select")
        return self._load_result(multiple=False)

    def find_all(self) -> ModelResult:
        """All rows matching the queued conditions."""
        if self._loaded:
            raise ModelStateError(f"Method find_all() cannot be called on loaded {type(self).__name__} objects")
        self._apply_load_with()
        self._build("select")
        return self._load_result(multiple=True)

    def _load_result(self, multiple: bool):
        builder = self._db_builder
        builder.from_((self.table_name, self.object_name))
        if not multiple:
            builder.limit(1)

        builder.select_array(self._build_select())

        if not self._query.was_applied("order_by") and self._sorting:
            for column, direction in self._sorting.items():
                if "." not in column:
                    column = f"{self.object_name}.{column}"
                builder.order_by(column, direction)

        try:
            with self._storage():
                result = builder.execute(self._db)
        finally:
            self.reset()

        if multiple:
            return ModelResult(result.rows(), type(self))

        if len(result) == 1:
            self._load_values(result.current())
        else:
            self.clear()
        return self

    def count_all(self) -> int:
        """Number of rows matching the queued conditions; select() calls are ignored."""
        self._apply_load_with()
        selects = self._query.pop_selects()

        builder = self._build("select")
        builder.from_((self.table_name, self.object_name))
        builder.select((db.count(f"{self.object_name}.{self.primary_key}"), "records_found"))
        try:
            with self._storage():
                records = builder.execute(self._db).get("records_found")
        finally:
            self._query.restore(selects)
            self.reset()
        return int(records or 0)

    def delete_all(self) -> int:
        """Delete every row matching the queued conditions; returns the row count."""
        builder = self._build("delete")
        try:
            with self._storage():
                count = builder.execute(self._db)
        finally:
            self.reset()
        logger.debug(f"Deleted {count} rows from {self.table_name}")
        return count

    # Validation

    def validation(self) -> Validation:
        if self._validation is None:
            self._build_validation()
        return self._validation

    def _build_validation(self) -> None:
        validation = Validation(self._object).bind({
            ":model": self,
            ":original_values": self._original_values,
            ":changed": self._changed,
        })
        for field, rules in self.rules().items():
            validation.rules(field, rules)

        labels = {column: column for column in self._columns}
        labels.update(self.labels())
        validation.labels(labels)
        self._validation = validation

    def check(self, extra_validation: Optional[Validation] = None) -> "Model":
        """
        Validate the model, and extra_validation when given.

        Raises:
            ValidationError: If either validation fails
        """
        extra_errors = extra_validation is not None and not extra_validation.check()

        self._build_validation()
        self._valid = self._validation.check()

        if not self._valid or extra_errors:
            exception = ValidationError(self.errors_filename, self._validation)
            if extra_errors:
                exception.add_object("_external", extra_validation)
            raise exception
        return self

    # Writing

    def _stamp(self, auto: AutoColumn) -> Any:
        if auto.format is True:
            return int(time.time())
        return time.strftime(auto.format)

    def create(self, extra_validation: Optional[Validation] = None) -> "Model":
        """
        Insert a new row.

        Raises:
            ModelStateError: If the model is already loaded
            ValidationError: If validation fails
        """
        if self._loaded:
            raise ModelStateError(f"Cannot create {self.object_name} model because it is already loaded")

        for behavior in self._behaviors:
            behavior.on_create(self)

        if not self._valid or extra_validation is not None:
            self.check(extra_validation)

        data = {column: self._object[column] for column in self._changed.values()}

        if self._created_column:
            column = self._created_column.column
            data[column] = self._object[column] = self._stamp(self._created_column)

        query = db.insert(self.table_name, list(data)).values(list(data.values())) if data else db.insert(self.table_name)
        with self._storage():
            insert_id, _ = query.execute(self._db)

        if self.primary_key not in data:
            self._object[self.primary_key] = self._primary_key_value = insert_id
        else:
            self._primary_key_value = self._object[self.primary_key]

        self._loaded = self._saved = True
        self._changed = {}
        self._original_values = dict(self._object)
        return self

    def update(self, extra_validation: Optional[Validation] = None) -> "Model":
        """
        Write changed columns to the loaded row.

        Raises:
            ModelStateError: If the model is not loaded
            ValidationError: If validation fails
        """
        if not self._loaded:
            raise ModelStateError(f"Cannot update {self.object_name} model because it is not loaded")

        for behavior in self._behaviors:
            behavior.on_update(self)

        if not self._valid or extra_validation is not None:
            self.check(extra_validation)

        if not self._changed:
            return self

        data = {column: self._object[column] for column in self._changed.values()}

        if self._updated_column:
            column = self._updated_column.column
            data[column] = self._object[column] = self._stamp(self._updated_column)

        query = db.update(self.table_name).set(data).where(self.primary_key, "=", self.pk())
        with self._storage():
            query.execute(self._db)

        if self.primary_key in data:
            self._primary_key_value = data[self.primary_key]

        self._saved = True
        self._changed = {}
        self._original_values = dict(self._object)
        return self

    def save(self, extra_validation: Optional[Validation] = None) -> "Model":
        if self._loaded:
            return self.update(extra_validation)
        return self.create(extra_validation)

    def delete(self) -> "Model":
        """
        Delete the loaded row and clear the model.

        Raises:
            ModelStateError: If the model is not loaded
        """
        if not self._loaded:
            raise ModelStateError(f"Cannot delete {self.object_name} model because it is not loaded")

        query = db.delete(self.table_name).where(self.primary_key, "=", self.pk())
        with self._storage():
            query.execute(self._db)
        return self.clear()

    def unique(self, field: str, value: Any) -> bool:
        """True when no other row has value in field."""
        model = self.factory(type(self)).where(f"{self.object_name}.{field}", "=", value).find()
        if self._loaded:
            return not (model.loaded and model.pk() != self.pk())
        return not model.loaded

    # Export

    def as_dict(self, show_all: bool = False) -> Dict[str, Any]:
        """Column values plus already resolved related models; private columns are hidden unless show_all."""
        hidden = () if show_all else self._private_columns
        result = {column: self.get(column) for column in self._object if column not in hidden}
        for alias, model in self._related.items():
            if isinstance(model, Model):
                result[alias] = model.as_dict()
        return result

    def as_object(self, show_all: bool = False) -> SimpleNamespace:
        """as_dict() with attribute access; resolved related models become nested objects."""
        hidden = () if show_all else self._private_columns
        values = {column: self.get(column) for column in self._object if column not in hidden}
        for alias, model in self._related.items():
            if isinstance(model, Model):
                values[alias] = model.as_object()
        return SimpleNamespace(**values)

    def __getstate__(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in SERIALIZED_STATE}

    def __setstate__(self, state: Dict[str, Any]) -> None:
        self._initialize()
        for name, value in state.items():
            object.__setattr__(self, name, value)
        if self._reload_on_wakeup:
            self.reload()

    def __str__(self) -> str:
        pk = self.pk()
        return "" if pk is None else str(pk)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.primary_key}={self.pk()!r} loaded={self._loaded}>"
