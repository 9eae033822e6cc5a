"""
DateTz -- Immutable timezone-aware instant value object.

Responsibility:
    Pairs an absolute instant (integer milliseconds since the Unix epoch)
    with the IANA timezone it is displayed and interpreted in.  This is the
    rich in-memory value that application code works with; its persisted
    echo is the two-field PersistableRecord.

Architecture position:
    Domain -- pure functional core, zero I/O.  Zone lookups go through
    ``zoneinfo`` (tz database correctness is delegated there).

Invariants enforced:
    - timestamp is always an ``int`` (floored once, at construction)
      within MIN_TIMESTAMP..MAX_TIMESTAMP (0001-01-02 to 9999-12-30 UTC).
    - timezone is always a non-empty, known IANA identifier.  A missing
      timezone resolves to DEFAULT_TIMEZONE ("UTC").
    - Equality and hashing use BOTH fields: the same instant in two zones
      is two different values.

Failure modes:
    - InvalidTimestampError on bool, non-numeric, non-finite or
      out-of-range timestamps.
    - InvalidTimezoneError on unknown zone names.
    - DateTzParseError from DateTz.parse on malformed text.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from functools import lru_cache
from typing import Any, TypedDict
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from datetz.domain.formats import DEFAULT_FORMAT, EPOCH, epoch_millis, parse_to_millis, render
from datetz.exceptions import InvalidTimestampError, InvalidTimezoneError

DEFAULT_TIMEZONE = "UTC"

# One day inside datetime's range at each end, so every value renders in any zone.
MIN_TIMESTAMP = -62_135_596_800_000 + 86_400_000  # 0001-01-02T00:00:00.000Z
MAX_TIMESTAMP = 253_402_300_799_999 - 86_400_000  # 9999-12-30T23:59:59.999Z


class PersistableRecord(TypedDict):
    """The only shape ever written to storage."""

    timestamp: int
    timezone: str


def is_finite_number(value: Any) -> bool:
    """True for finite int/float/Decimal values; bools are not numbers here."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, Decimal):
        return value.is_finite()
    return False


def resolve_timezone(*candidates: Any) -> str:
    """
    Return the first non-empty string among ``candidates``, else "UTC".

    Callers pass candidates in precedence order: the timezone carried by
    the input, then the field's configured default.
    """
    for candidate in candidates:
        if isinstance(candidate, str) and candidate:
            return candidate
    return DEFAULT_TIMEZONE


@lru_cache(maxsize=512)
def get_zone(name: str) -> ZoneInfo:
    """
    Look up an IANA zone.

    Raises:
        InvalidTimezoneError: If the name is not a known zone.
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidTimezoneError(name) from exc


def is_valid_timezone(name: Any) -> bool:
    if not isinstance(name, str) or not name:
        return False
    try:
        get_zone(name)
        return True
    except InvalidTimezoneError:
        return False


@dataclass(frozen=True, slots=True, order=True)
class DateTz:
    """
    Timezone-aware instant value object.

    Contract:
        Constructed from ``(epoch_millis, timezone)``; use
        ``DateTz.from_record`` for the ``{timestamp, timezone}`` mapping form.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - ``int(value)`` and ``value.value_of()`` return the canonical
          epoch milliseconds
        - Ordering compares (timestamp, timezone), consistent with equality

    Non-goals:
        - Does NOT do calendar arithmetic; convert with to_datetime().
    """

    timestamp: int
    timezone: str = DEFAULT_TIMEZONE

    def __post_init__(self) -> None:
        if not is_finite_number(self.timestamp):
            raise InvalidTimestampError(self.timestamp)
        timestamp = math.floor(self.timestamp)
        if not MIN_TIMESTAMP <= timestamp <= MAX_TIMESTAMP:
            raise InvalidTimestampError(self.timestamp)
        object.__setattr__(self, "timestamp", timestamp)

        timezone = resolve_timezone(self.timezone)
        get_zone(timezone)
        object.__setattr__(self, "timezone", timezone)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        default_timezone: str | None = None,
    ) -> DateTz:
        """
        Build from a ``{timestamp, timezone}`` mapping.

        The record timezone wins when it is a non-empty string; otherwise
        ``default_timezone``, then "UTC".

        Raises:
            InvalidTimestampError: If ``timestamp`` is missing or not numeric.
            InvalidTimezoneError: If the resolved zone is unknown.
        """
        timestamp = record.get("timestamp")
        if not is_finite_number(timestamp):
            raise InvalidTimestampError(timestamp)
        return cls(timestamp, resolve_timezone(record.get("timezone"), default_timezone))

    @classmethod
    def from_datetime(cls, moment: datetime | date, timezone: str | None = None) -> DateTz:
        """
        Build from a native ``datetime`` or ``date``.

        Aware datetimes keep their instant.  Naive datetimes and plain dates
        (taken at midnight) are wall time in the target timezone.  Without an
        explicit ``timezone`` an aware datetime keeps its own IANA zone when
        it has one.
        """
        if timezone is None and isinstance(moment, datetime) and isinstance(moment.tzinfo, ZoneInfo):
            timezone = moment.tzinfo.key
        zone_name = resolve_timezone(timezone)
        zone = get_zone(zone_name)

        if not isinstance(moment, datetime):
            moment = datetime.combine(moment, time())
        if moment.tzinfo is None or moment.utcoffset() is None:
            moment = moment.replace(tzinfo=zone)
        return cls(epoch_millis(moment), zone_name)

    @classmethod
    def parse(
        cls,
        text: str,
        format: str = DEFAULT_FORMAT,
        timezone: str | None = None,
    ) -> DateTz:
        """
        Strictly parse ``text`` as wall time in ``timezone``.

        Raises:
            DateTzParseError: If text does not match ``format``.
            InvalidTimezoneError: If the zone is unknown.
        """
        zone_name = resolve_timezone(timezone)
        get_zone(zone_name)
        return cls(parse_to_millis(text, format, zone_name), zone_name)

    @classmethod
    def now(cls, timezone: str | None = None) -> DateTz:
        """Current instant in ``timezone``."""
        return cls.from_datetime(datetime.now(UTC), resolve_timezone(timezone))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def value_of(self) -> int:
        """Canonical epoch milliseconds."""
        return self.timestamp

    def __int__(self) -> int:
        return self.timestamp

    @property
    def zone(self) -> ZoneInfo:
        return get_zone(self.timezone)

    def to_datetime(self) -> datetime:
        """Aware datetime for this instant, in this value's zone."""
        return (EPOCH + timedelta(milliseconds=self.timestamp)).astimezone(self.zone)

    def with_timezone(self, timezone: str) -> DateTz:
        """Same instant, displayed in another zone."""
        return DateTz(self.timestamp, timezone)

    def format(self, pattern: str = DEFAULT_FORMAT) -> str:
        """Render wall time in this value's zone."""
        return render(self.to_datetime(), pattern)

    def to_record(self) -> PersistableRecord:
        """Pure projection onto the persisted shape."""
        return {"timestamp": self.timestamp, "timezone": self.timezone}

    def __str__(self) -> str:
        return f"{self.to_datetime().isoformat(timespec='milliseconds')}[{self.timezone}]"

    def __repr__(self) -> str:
        return f"DateTz({self.timestamp!r}, {self.timezone!r})"
