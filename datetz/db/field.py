"""
Module: datetz.db.field
Responsibility: The field adapter.  Binds the coercion engine to the four
    points at which a persistence framework lets a custom field participate:
    write casting, read casting, query-operand casting, and the "required"
    check.
Architecture position: DB.  Imports from domain/, config and exceptions.
    The SQLAlchemy binding (db/types.py) and the ORM listeners
    (db/listeners.py) call into this module; it never calls back into them.

Invariants enforced:
    - Configuration is captured once at construction (frozen dataclass).
    - Timezone precedence: input timezone, then the field's ``timezone``
      option, then the settings default, then "UTC".
    - Write/query rejection raises DateTzCastError naming the field and the
      offending value.  Read rejection never raises.

Failure modes:
    - DateTzCastError from cast_on_write / cast_for_query / cast_on_assign.
    - InvalidTimezoneError / ConfigurationError from construct() when the
      field options themselves are invalid.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from datetz.config import READ_AS_CHOICES, ReadAs, get_settings
from datetz.domain.coercion import (
    UNSET,
    Coercion,
    CoercionContext,
    Outcome,
    coerce,
    from_record,
    is_record_shaped,
    to_record,
)
from datetz.domain.date_tz import DateTz, PersistableRecord, get_zone
from datetz.exceptions import ConfigurationError, DateTzCastError, DateTzError
from datetz.logging_config import LogContext, get_logger

logger = get_logger("db.field")

_SEQUENCE_TYPES = (list, tuple, set, frozenset)


@dataclass(frozen=True)
class FieldAdapter:
    """
    Immutable configuration plus the four cast functions of a DateTz field.

    Contract:
        Build with ``FieldAdapter.construct(field_name, **options)``.  The
        recognised options are ``format``, ``timezone``, ``parse_strings``
        and ``read_as``; everything else is kept untouched in ``options``
        for the surrounding column machinery.

    Guarantees:
        - ``cast_on_write`` returns a PersistableRecord, None (null) or
          UNSET (absent).
        - ``cast_on_read`` never raises.
    """

    field_name: str | None
    default_timezone: str
    parse_format: str
    parse_strings: bool
    read_as: ReadAs
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), hash=False)

    @classmethod
    def construct(
        cls,
        field_name: str | None = None,
        *,
        format: str | None = None,
        timezone: str | None = None,
        parse_strings: bool | None = None,
        read_as: ReadAs | None = None,
        **options: Any,
    ) -> FieldAdapter:
        """
        Capture field options, falling back to the active settings.

        A field with an explicit ``format`` parses strings unless
        ``parse_strings=False`` is given.
        """
        settings = get_settings()
        if timezone:
            get_zone(timezone)
        if parse_strings is None:
            parse_strings = True if format is not None else settings.parse_strings
        read_as = read_as or settings.read_as
        if read_as not in READ_AS_CHOICES:
            raise ConfigurationError("read_as", read_as, f"expected one of {READ_AS_CHOICES}")

        return cls(
            field_name=field_name,
            default_timezone=timezone or settings.default_timezone,
            parse_format=format or settings.default_format,
            parse_strings=parse_strings,
            read_as=read_as,
            options=MappingProxyType(dict(options)),
        )

    def named(self, field_name: str) -> FieldAdapter:
        """Same configuration, bound to ``field_name``."""
        if field_name == self.field_name:
            return self
        return replace(self, field_name=field_name)

    @property
    def context(self) -> CoercionContext:
        return CoercionContext(
            default_timezone=self.default_timezone,
            parse_format=self.parse_format,
            parse_strings=self.parse_strings,
        )

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def _coerce_or_raise(self, raw: Any, operation: str) -> Coercion:
        result = coerce(raw, self.context)
        if result.outcome is Outcome.REJECTED:
            with LogContext.bind(field_name=self.field_name, operation=operation):
                logger.info(
                    "datetz_cast_rejected",
                    extra={"input_kind": result.kind.value, "reason": result.reason},
                )
            raise DateTzCastError(self.field_name, raw, result.reason)
        return result

    def cast_on_write(self, raw: Any) -> PersistableRecord | None:
        """
        Coerce ``raw`` and project it onto the persisted shape.

        Returns:
            The record, None for explicit null, UNSET for absent input.

        Raises:
            DateTzCastError: If the input is present but unusable.
        """
        result = self._coerce_or_raise(raw, "write")
        if result.outcome is Outcome.NULL:
            return None
        if result.outcome is Outcome.ABSENT:
            return UNSET
        return to_record(result.value)

    def cast_for_query(self, operand: Any) -> Any:
        """Write-path cast of one operand, or element-wise over a sequence."""
        if isinstance(operand, _SEQUENCE_TYPES):
            return [self.cast_on_write(item) for item in operand]
        return self.cast_on_write(operand)

    def cast_on_assign(self, raw: Any) -> DateTz | PersistableRecord | None:
        """
        Cast an attribute assignment to its in-memory form.

        Null and absent both clear the attribute.  Otherwise the value is
        what a read of the stored record would return.
        """
        result = self._coerce_or_raise(raw, "assign")
        if result.outcome is not Outcome.VALUE:
            return None
        if self.read_as == "record":
            return to_record(result.value)
        return result.value

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def cast_on_read(self, stored: Any) -> Any:
        """
        Rehydrate a stored record.

        Malformed data (wrong shape, unknown zone, ...) is returned unchanged
        so that legacy rows never abort a read.
        """
        if stored is None:
            return None
        if isinstance(stored, DateTz):
            value = stored
        elif is_record_shaped(stored):
            try:
                value = from_record(stored, self.default_timezone)
            except DateTzError as exc:
                self._log_read_fallback(stored, str(exc))
                return stored
        else:
            self._log_read_fallback(stored, f"unexpected stored type {type(stored).__name__}")
            return stored

        if self.read_as == "record":
            return to_record(value)
        return value

    def _log_read_fallback(self, stored: Any, reason: str) -> None:
        with LogContext.bind(field_name=self.field_name, operation="read"):
            logger.warning(
                "datetz_read_fallback",
                extra={"stored_value": repr(stored), "reason": reason},
            )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def is_satisfied_when_required(self, value: Any) -> bool:
        """True only for a DateTz or a record-shaped mapping."""
        return isinstance(value, DateTz) or is_record_shaped(value)
