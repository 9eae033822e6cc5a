"""
Module: datetz.db.queries
Responsibility: Predicate builders for DateTz columns.  Every operand is
    cast through the column's FieldAdapter (cast_for_query) so query values
    are canonicalized exactly as writes are.
Architecture position: DB.  Imports db/types.py.  Returns SQLAlchemy
    ColumnElements; never executes anything and never owns a session.

Predicates compare the stored ``timestamp`` member (the instant) unless
the name says otherwise:

    at(col, v)            same instant AND same timezone (value equality)
    same_instant(col, v)  same instant, any timezone
    after / before        strict by default, ``inclusive=True`` for >= / <=
    between(col, lo, hi)  inclusive range
    any_of(col, values)   value equality against any element
    in_timezone(col, tz)  stored timezone equals ``tz``

Failure modes:
    - DateTzCastError if an operand is rejected, or is null/absent where
      an instant is needed.
    - TypeError if the column is not a DateTz column.
"""

from typing import Any, Iterable

from sqlalchemy import and_, false, or_
from sqlalchemy.sql.elements import ColumnElement

from datetz.db.field import FieldAdapter
from datetz.db.types import DateTzType
from datetz.domain.coercion import is_record_shaped
from datetz.domain.date_tz import PersistableRecord
from datetz.exceptions import DateTzCastError


def adapter_for(column: Any) -> FieldAdapter:
    """The column's FieldAdapter, bound to the column's attribute key."""
    expression = getattr(column, "expression", column)
    column_type = expression.type
    if not isinstance(column_type, DateTzType):
        raise TypeError(f"{column!r} is not a DateTz column")
    return column_type.adapter.named(column.key)


def instant_of(column: Any) -> ColumnElement:
    """SQL expression for the stored epoch milliseconds."""
    return column["timestamp"].as_integer()


def timezone_of(column: Any) -> ColumnElement:
    """SQL expression for the stored timezone name."""
    return column["timezone"].as_string()


def _record(column: Any, operand: Any) -> PersistableRecord:
    adapter = adapter_for(column)
    record = adapter.cast_for_query(operand)
    if not is_record_shaped(record):
        raise DateTzCastError(adapter.field_name, operand, "query operand must be a value")
    return record


def at(column: Any, value: Any) -> ColumnElement:
    record = _record(column, value)
    return and_(
        instant_of(column) == record["timestamp"],
        timezone_of(column) == record["timezone"],
    )


def same_instant(column: Any, value: Any) -> ColumnElement:
    return instant_of(column) == _record(column, value)["timestamp"]


def after(column: Any, value: Any, inclusive: bool = False) -> ColumnElement:
    instant = _record(column, value)["timestamp"]
    return instant_of(column) >= instant if inclusive else instant_of(column) > instant


def before(column: Any, value: Any, inclusive: bool = False) -> ColumnElement:
    instant = _record(column, value)["timestamp"]
    return instant_of(column) <= instant if inclusive else instant_of(column) < instant


def between(column: Any, low: Any, high: Any) -> ColumnElement:
    """Inclusive instant range; operands are cast as one sequence."""
    adapter = adapter_for(column)
    records = adapter.cast_for_query((low, high))
    for operand, record in zip((low, high), records):
        if not is_record_shaped(record):
            raise DateTzCastError(adapter.field_name, operand, "query operand must be a value")
    return instant_of(column).between(records[0]["timestamp"], records[1]["timestamp"])


def any_of(column: Any, values: Iterable[Any]) -> ColumnElement:
    """Value equality against any element of ``values``."""
    values = list(values)
    if not values:
        return false()
    adapter = adapter_for(column)
    clauses = []
    for operand, record in zip(values, adapter.cast_for_query(values)):
        if not is_record_shaped(record):
            raise DateTzCastError(adapter.field_name, operand, "query operand must be a value")
        clauses.append(
            and_(
                instant_of(column) == record["timestamp"],
                timezone_of(column) == record["timezone"],
            )
        )
    return or_(*clauses)


def in_timezone(column: Any, timezone: str) -> ColumnElement:
    return timezone_of(column) == timezone
