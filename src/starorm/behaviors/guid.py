"""
Behaviors - Guid

Assigns a UUID4 to a column when a record is created or updated without
one, and loads records by that UUID: Model("0b8e...") finds the row whose
guid column matches.

With verify enabled, every generated value is checked against the table
before use. A collision is logged and a new value generated, up to
max_attempts times.
"""

import logging
import uuid
from typing import TYPE_CHECKING, Any, Dict, Optional

from .. import db
from ..exceptions import OrmError, StorageError
from .external_key import ExternalKey

if TYPE_CHECKING:
    from ..core.model import Model

logger = logging.getLogger(__name__)


def new_guid() -> str:
    return str(uuid.uuid4())


def valid_guid(value: Any) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


class Guid(ExternalKey):
    """
    GUID column behavior.

    Config:
        column: GUID column (default "guid")
        verify: Check each new value for uniqueness in the table
        max_attempts: Values generated before giving up when verifying
    """

    default_column = "guid"

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.verify: bool = bool(self.config.get("verify", False))
        self.max_attempts: int = int(self.config.get("max_attempts", 10))

    def validate_key(self, id: Any) -> None:
        if not valid_guid(id):
            raise OrmError(f"Invalid UUID: {id}")

    def on_create(self, model: "Model") -> None:
        self.create_guid(model)

    def on_update(self, model: "Model") -> None:
        self.create_guid(model)

    def create_guid(self, model: "Model") -> None:
        if model.get(self.column):
            return

        if not self.verify:
            model.set(self.column, new_guid())
            return

        for _ in range(self.max_attempts):
            candidate = new_guid()
            query = (
                db.select(model.primary_key)
                .from_(model.table_name)
                .where(self.column, "=", candidate)
                .limit(1)
            )
            try:
                taken = query.execute(model.database()).count() > 0
            except db.DatabaseError as exc:
                raise StorageError(exc.message, exc.code) from exc

            if taken:
                logger.warning(f"Duplicate GUID created for {model.table_name}")
                continue

            model.set(self.column, candidate)
            return

        raise OrmError(f"Could not create a unique GUID for {model.table_name} in {self.max_attempts} attempts")
