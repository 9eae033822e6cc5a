"""
Coercion -- Ordered conversion of raw inputs into DateTz values.

Responsibility:
    Given an arbitrary input, produce exactly one of: a DateTz, an explicit
    null, an absence signal, or a definitive rejection.  Also owns the pure
    projection between DateTz and its PersistableRecord.

Architecture position:
    Domain -- pure functional core, zero I/O.  Consumed by
    datetz.db.field; must not import from db/ or outer layers.

Resolution order (first match wins, no fallthrough):
    1. EXISTING        a DateTz                 -> returned unchanged (same object)
    2. NULL            None                     -> Outcome.NULL
    3. ABSENT          UNSET or ""              -> Outcome.ABSENT
    4. NATIVE_DATE     datetime / date          -> instant, default timezone
    5. NUMBER          finite int/float/Decimal -> instant, default timezone
    6. TEXT            str                      -> strict parse, or rejected when
                                                   string parsing is disabled
    7. PARTIAL_RECORD  mapping w/ numeric timestamp
                                                -> record timezone, else default
    8. UNSUPPORTED     anything else            -> Outcome.REJECTED

Invariants enforced:
    - Timezone precedence in every path: input timezone, then the context
      default, then "UTC".
    - No partial results: a Coercion either carries a complete DateTz or
      none at all.
    - coerce() never raises for bad input; rejection is a value.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from datetz.domain.date_tz import (
    DateTz,
    PersistableRecord,
    is_finite_number,
    resolve_timezone,
)
from datetz.domain.formats import DEFAULT_FORMAT
from datetz.exceptions import DateTzError


class _Unset:
    """Sentinel type for a value that was never supplied."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


class InputKind(str, Enum):
    """Variants of raw input, in resolution order."""

    EXISTING = "existing"
    NULL = "null"
    ABSENT = "absent"
    NATIVE_DATE = "native_date"
    NUMBER = "number"
    TEXT = "text"
    PARTIAL_RECORD = "partial_record"
    UNSUPPORTED = "unsupported"


class Outcome(str, Enum):
    VALUE = "value"
    NULL = "null"
    ABSENT = "absent"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class CoercionContext:
    """
    Per-field coercion configuration, fixed at construction.

    ``parse_strings`` selects the string policy: when False (the minimal
    configuration) text input is rejected; when True it is parsed with
    ``parse_format`` or, if that is None, DEFAULT_FORMAT.
    """

    default_timezone: str | None = None
    parse_format: str | None = None
    parse_strings: bool = False

    @property
    def timezone(self) -> str:
        return resolve_timezone(self.default_timezone)

    @property
    def format(self) -> str:
        return self.parse_format or DEFAULT_FORMAT


@dataclass(frozen=True, slots=True)
class Coercion:
    """Tagged coercion result."""

    outcome: Outcome
    kind: InputKind
    value: DateTz | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is not Outcome.REJECTED


def _has_numeric_timestamp(value: Any) -> bool:
    return isinstance(value, Mapping) and is_finite_number(value.get("timestamp"))


def classify(value: Any) -> InputKind:
    """Return the first input variant ``value`` matches."""
    if isinstance(value, DateTz):
        return InputKind.EXISTING
    if value is None:
        return InputKind.NULL
    if value is UNSET or (isinstance(value, str) and value == ""):
        return InputKind.ABSENT
    if isinstance(value, date):
        return InputKind.NATIVE_DATE
    if is_finite_number(value):
        return InputKind.NUMBER
    if isinstance(value, str):
        return InputKind.TEXT
    if _has_numeric_timestamp(value):
        return InputKind.PARTIAL_RECORD
    return InputKind.UNSUPPORTED


def _rejected(kind: InputKind, reason: str) -> Coercion:
    return Coercion(Outcome.REJECTED, kind, reason=reason)


def coerce(value: Any, context: CoercionContext | None = None) -> Coercion:
    """
    Coerce ``value`` into a DateTz.

    Postconditions:
        - Outcome.VALUE carries a DateTz; EXISTING input is returned as the
          same object.
        - Outcome.REJECTED carries a human-readable reason.
    """
    context = context or CoercionContext()
    kind = classify(value)

    if kind is InputKind.EXISTING:
        return Coercion(Outcome.VALUE, kind, value)
    if kind is InputKind.NULL:
        return Coercion(Outcome.NULL, kind)
    if kind is InputKind.ABSENT:
        return Coercion(Outcome.ABSENT, kind)
    if kind is InputKind.UNSUPPORTED:
        return _rejected(kind, f"unsupported input type {type(value).__name__}")
    if kind is InputKind.TEXT and not context.parse_strings:
        return _rejected(kind, "string input is not accepted by this field")

    try:
        if kind is InputKind.NATIVE_DATE:
            result = DateTz.from_datetime(value, context.timezone)
        elif kind is InputKind.NUMBER:
            result = DateTz(value, context.timezone)
        elif kind is InputKind.TEXT:
            result = DateTz.parse(value, context.format, context.timezone)
        else:
            result = DateTz.from_record(value, context.default_timezone)
    except (DateTzError, OverflowError) as exc:
        return _rejected(kind, str(exc))
    return Coercion(Outcome.VALUE, kind, result)


def to_record(value: DateTz) -> PersistableRecord:
    """Pure field copy of a DateTz onto the persisted shape."""
    return value.to_record()


def from_record(record: Mapping[str, Any], default_timezone: str | None = None) -> DateTz:
    """Rebuild a DateTz through the same path partial records take in coerce()."""
    return DateTz.from_record(record, default_timezone)


def is_record_shaped(value: Any) -> bool:
    """True if ``value`` has a numeric timestamp and a string timezone."""
    return _has_numeric_timestamp(value) and isinstance(value.get("timezone"), str)
