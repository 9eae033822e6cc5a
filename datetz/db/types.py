"""
Module: datetz.db.types
Responsibility: SQLAlchemy column type for DateTz values.  Stores the
    two-field ``{timestamp, timezone}`` record in a JSON column and hands
    bind/result processing to a FieldAdapter.
Architecture position: DB.  May be imported by db/base.py, models and
    application code.  MUST NOT import from db/listeners.py or db/queries.py.

Invariants enforced:
    - The only shape bound for the column is the PersistableRecord.
    - Null and absent both bind SQL NULL (``none_as_null`` defaults True).
    - Comparison operands (``==``, ``in_``) go through the same bind
      processing as writes.
    - Options left unset follow the active settings, including settings
      replaced after the type was built.

Failure modes:
    - DateTzCastError (wrapped by SQLAlchemy in StatementError) when a bound
      value is rejected.  It names the column once the mapper has been
      instrumented (see db/listeners.py) or when ``field_name`` is given.
"""

from typing import Any

from sqlalchemy import JSON
from sqlalchemy.orm import mapped_column
from sqlalchemy.types import TypeDecorator

from datetz.config import get_settings
from datetz.domain.coercion import UNSET
from datetz.db.field import FieldAdapter


class DateTzType(TypeDecorator):
    """
    DateTz stored as a JSON ``{timestamp, timezone}`` document.

    Contract:
        ``DateTzType(format=..., timezone=..., parse_strings=...,
        read_as=..., field_name=...)``.  Any other arguments are kept in
        the adapter's ``options`` and build the underlying ``JSON`` type.

    Guarantees:
        - process_bind_param: FieldAdapter.cast_on_write.
        - process_result_value: FieldAdapter.cast_on_read.
        - cache_ok=True; every field option is part of the cache key.
    """

    impl = JSON
    cache_ok = True

    def __init__(
        self,
        format: str | None = None,
        timezone: str | None = None,
        parse_strings: bool | None = None,
        read_as: str | None = None,
        field_name: str | None = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("none_as_null", True)
        self.field_name = field_name
        self.format = format
        self.timezone = timezone
        self.parse_strings = parse_strings
        self.read_as = read_as
        self._options = kwargs
        self._adapter = None
        # Bad options fail here, not at first bind.
        adapter = self.adapter
        super().__init__(**adapter.options)

    @property
    def adapter(self) -> FieldAdapter:
        """The field adapter for the active settings; rebuilt when they are replaced."""
        settings = get_settings()
        if self._adapter is None or self._adapter[0] is not settings:
            adapter = FieldAdapter.construct(
                self.field_name,
                format=self.format,
                timezone=self.timezone,
                parse_strings=self.parse_strings,
                read_as=self.read_as,
                **self._options,
            )
            self._adapter = (settings, adapter)
        return self._adapter[1]

    def named(self, field_name: str) -> "DateTzType":
        """Same options, reporting errors against ``field_name``."""
        if field_name == self.field_name:
            return self
        return DateTzType(
            format=self.format,
            timezone=self.timezone,
            parse_strings=self.parse_strings,
            read_as=self.read_as,
            field_name=field_name,
            **self._options,
        )

    def process_bind_param(self, value, dialect):
        """Cast to the persisted record; absent and null bind NULL."""
        record = self.adapter.cast_on_write(value)
        if record is UNSET:
            return None
        return record

    def process_result_value(self, value, dialect):
        """Rehydrate the stored record; malformed rows come back unchanged."""
        return self.adapter.cast_on_read(value)

    def __repr__(self) -> str:
        options = [
            f"{name}={getattr(self, name)!r}"
            for name in ("field_name", "format", "timezone", "parse_strings", "read_as")
            if getattr(self, name) is not None
        ]
        return f"DateTzType({', '.join(options)})"


def datetz_column(
    *args: Any,
    format: str | None = None,
    timezone: str | None = None,
    parse_strings: bool | None = None,
    read_as: str | None = None,
    required: bool = False,
    info: dict[str, Any] | None = None,
    **kwargs: Any,
):
    """
    ``mapped_column`` for a DateTz attribute.

    ``required=True`` makes the column NOT NULL and marks it for the
    before-flush required check (see db/listeners.py).  Remaining
    arguments pass straight through to ``mapped_column``.

    Usage:
        class Booking(Base):
            starts_at: Mapped[DateTz] = datetz_column(
                timezone="Europe/Rome", required=True
            )
    """
    column_type = DateTzType(
        format=format,
        timezone=timezone,
        parse_strings=parse_strings,
        read_as=read_as,
    )
    info = dict(info or {})
    info["required"] = required
    kwargs.setdefault("nullable", not required)
    return mapped_column(*args, column_type, info=info, **kwargs)
