"""
Module: datetz.db.listeners
Responsibility: ORM event listeners that put the field adapter at the two
    lifecycle points the column type alone cannot reach: attribute
    assignment and the "required" constraint.
Architecture position: DB.  Imports db/types.py and db/field.py.

  Listener                 | Event                    | Adapter call
  -------------------------|--------------------------|------------------------------
  _cast_on_set             | attribute "set"          | cast_on_assign
  _check_required          | Session "before_flush"   | is_satisfied_when_required

Invariants enforced:
    - An invalid assignment raises DateTzCastError at the assignment site,
      naming the attribute.
    - A DateTz column declared ``required`` never flushes without a value.
    - Every instrumented DateTz column type carries its attribute key, so
      rejected inserts and query operands name the column.

Failure modes:
    - DateTzCastError on assignment.
    - RequiredFieldError on flush.
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm import Mapper, Session

from datetz.db.field import FieldAdapter
from datetz.db.types import DateTzType
from datetz.exceptions import RequiredFieldError
from datetz.logging_config import get_logger

logger = get_logger("db.listeners")

# (class, attribute key) -> registered set listener
_set_listeners: dict[tuple[type, str], object] = {}
_registered = False


def datetz_columns(mapper: Mapper) -> list[tuple[str, FieldAdapter, bool]]:
    """(attribute key, named adapter, required) for every DateTz column."""
    found = []
    for key, column in mapper.columns.items():
        if isinstance(column.type, DateTzType):
            required = bool(column.info.get("required", False))
            found.append((key, column.type.adapter.named(key), required))
    return found


def _name_column_types(mapper: Mapper) -> None:
    """Give each DateTz column a type that reports errors under its key."""
    for key, column in mapper.columns.items():
        if isinstance(column.type, DateTzType) and column.type.field_name != key:
            column.type = column.type.named(key)
            column._reset_memoizations()


def _make_set_listener(column):
    def _cast_on_set(target, value, oldvalue, initiator):
        return column.type.adapter.cast_on_assign(value)

    return _cast_on_set


def _instrument_mapper(mapper: Mapper, class_=None) -> None:
    cls = mapper.class_
    _name_column_types(mapper)
    for key, column in mapper.columns.items():
        if not isinstance(column.type, DateTzType) or (cls, key) in _set_listeners:
            continue
        listener = _make_set_listener(column)
        event.listen(getattr(cls, key), "set", listener, retval=True)
        _set_listeners[(cls, key)] = listener
        logger.debug(
            "datetz_set_listener_registered",
            extra={"model": cls.__name__, "field_name": key},
        )


def _check_required(session, flush_context, instances):
    """
    Reject new or dirty objects whose required DateTz field is unset.

    Only attributes present in the instance dict are checked on dirty
    objects; unloaded attributes were not touched by this unit of work.
    """
    dirty = session.dirty
    for obj in list(session.new) + list(dirty):
        state = inspect(obj)
        for key, adapter, required in datetz_columns(state.mapper):
            if not required:
                continue
            if obj in dirty and key not in state.dict:
                continue
            value = state.dict.get(key)
            if not adapter.is_satisfied_when_required(value):
                raise RequiredFieldError(key, type(obj).__name__)


def register_datetz_listeners(*bases) -> None:
    """
    Register cast-on-assignment and required-field listeners.

    Mappers already registered on ``bases`` (default: datetz.db.base.Base)
    are instrumented immediately; mappers configured later are picked up
    through the ``mapper_configured`` event.
    """
    global _registered
    if not bases:
        from datetz.db.base import Base

        bases = (Base,)

    for base in bases:
        for mapper in base.registry.mappers:
            _instrument_mapper(mapper)

    if not _registered:
        event.listen(Mapper, "mapper_configured", _instrument_mapper)
        event.listen(Session, "before_flush", _check_required)
        _registered = True


def unregister_datetz_listeners() -> None:
    """Remove every listener registered by register_datetz_listeners()."""
    global _registered
    for (cls, key), listener in list(_set_listeners.items()):
        attr = getattr(cls, key)
        if event.contains(attr, "set", listener):
            event.remove(attr, "set", listener)
    _set_listeners.clear()

    if _registered:
        event.remove(Mapper, "mapper_configured", _instrument_mapper)
        event.remove(Session, "before_flush", _check_required)
        _registered = False
