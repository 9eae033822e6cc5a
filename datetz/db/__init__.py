"""Database layer - column type, field adapter, listeners and query predicates."""

from datetz.db.base import Base
from datetz.db.field import FieldAdapter
from datetz.db.listeners import register_datetz_listeners, unregister_datetz_listeners
from datetz.db.types import DateTzType, datetz_column

__all__ = [
    "Base",
    "DateTzType",
    "datetz_column",
    "FieldAdapter",
    "register_datetz_listeners",
    "unregister_datetz_listeners",
]
