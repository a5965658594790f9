"""Custom SQLAlchemy JSON type with validation.

Stored as native JSONB on PostgreSQL and as plain JSON on other dialects
(SQLite is used for local runs and tests).
"""

import json
import logging
from typing import Any

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator

logger = logging.getLogger(__name__)


class JSONType(TypeDecorator):
    """JSON column that only accepts dicts and lists.

    Usage:
        class MyModel(Base):
            data: Mapped[dict] = mapped_column(JSONType)

    Python None is stored as SQL NULL, not JSON null.
    """

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB(none_as_null=True))
        return dialect.type_descriptor(JSON(none_as_null=True))

    def process_bind_param(self, value: Any, dialect: Dialect) -> dict | list | None:
        if value is None:
            return None

        if not isinstance(value, dict | list):
            logger.warning(
                f"JSONType received non-JSON type: {type(value).__name__}. "
                f"Converting to empty dict to prevent data corruption."
            )
            value = {}

        return value

    def process_result_value(self, value: Any, dialect: Dialect) -> dict | list | None:
        if value is None:
            return None

        # Some drivers hand back the raw string
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                logger.error(f"Invalid JSON stored in database: {value[:100]}")
                return None

        if not isinstance(value, dict | list):
            logger.warning(f"Unexpected JSON type from database: {type(value).__name__}")
            return None

        return value
