"""Domain layer - the DateTz value, its formats and the coercion engine."""

from datetz.domain.coercion import (
    UNSET,
    Coercion,
    CoercionContext,
    InputKind,
    Outcome,
    classify,
    coerce,
    from_record,
    is_record_shaped,
    to_record,
)
from datetz.domain.date_tz import (
    DEFAULT_TIMEZONE,
    DateTz,
    PersistableRecord,
    resolve_timezone,
)
from datetz.domain.formats import DEFAULT_FORMAT

__all__ = [
    "DateTz",
    "PersistableRecord",
    "DEFAULT_TIMEZONE",
    "DEFAULT_FORMAT",
    "resolve_timezone",
    "UNSET",
    "Coercion",
    "CoercionContext",
    "InputKind",
    "Outcome",
    "classify",
    "coerce",
    "to_record",
    "from_record",
    "is_record_shaped",
]
