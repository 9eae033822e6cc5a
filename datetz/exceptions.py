"""
Typed Exception Hierarchy for datetz.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from DateTzError:

    DateTzError (base)
    |
    +-- InvalidTimezoneError
    +-- InvalidTimestampError
    +-- DateTzParseError
    +-- DateTzCastError
    +-- RequiredFieldError
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Code                   | When Raised
-----------------------|------------------------------------------------------
INVALID_TIMEZONE       | Zone name is not a known IANA identifier
INVALID_TIMESTAMP      | Timestamp is not a finite in-range number (or is a bool)
DATETZ_PARSE_FAILED    | Text does not match the parse format
DATETZ_CAST_FAILED     | A field rejected a value on the write/query path
DATETZ_REQUIRED        | A required field is unset at flush time
DATETZ_CONFIG_INVALID  | Settings file or environment override is invalid

===============================================================================
HANDLING PATTERNS
===============================================================================

Absence and explicit null are NOT errors and never raise.  Only a present
but unusable value does:

    try:
        session.flush()
    except DateTzCastError as e:
        return {"error": e.code, "field": e.field_name, "value": repr(e.value)}

Read paths never raise DateTzCastError: a stored value that cannot be
rehydrated is returned unchanged.
"""

from typing import Any


class DateTzError(Exception):
    """
    Base exception for all datetz errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "DATETZ_ERROR"


class InvalidTimezoneError(DateTzError, ValueError):
    """Timezone name is not a known IANA zone identifier."""

    code: str = "INVALID_TIMEZONE"

    def __init__(self, timezone: Any):
        self.timezone = timezone
        super().__init__(f"Unknown timezone: {timezone!r}")


class InvalidTimestampError(DateTzError, ValueError):
    """Timestamp is not a finite epoch-millisecond number within the supported range."""

    code: str = "INVALID_TIMESTAMP"

    def __init__(self, timestamp: Any):
        self.timestamp = timestamp
        super().__init__(f"Invalid timestamp: {timestamp!r}")


class DateTzParseError(DateTzError, ValueError):
    """Text could not be parsed with the given format."""

    code: str = "DATETZ_PARSE_FAILED"

    def __init__(self, text: str, format: str, detail: str | None = None):
        self.text = text
        self.format = format
        self.detail = detail
        message = f"Cannot parse {text!r} with format {format!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class DateTzCastError(DateTzError, ValueError):
    """
    A field rejected a value on the write or query path.

    Names the field and carries the offending value so that invalid writes
    are never silently dropped.
    """

    code: str = "DATETZ_CAST_FAILED"

    def __init__(self, field_name: str | None, value: Any, reason: str | None = None):
        self.field_name = field_name
        self.value = value
        self.reason = reason
        message = f"Cast to DateTz failed for value {value!r} at path {field_name!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class RequiredFieldError(DateTzError):
    """A required DateTz field holds no usable value."""

    code: str = "DATETZ_REQUIRED"

    def __init__(self, field_name: str, entity: str):
        self.field_name = field_name
        self.entity = entity
        super().__init__(f"Path {field_name!r} is required on {entity}")


class ConfigurationError(DateTzError):
    """Settings could not be loaded or contain an invalid value."""

    code: str = "DATETZ_CONFIG_INVALID"

    def __init__(self, key: str, value: Any, detail: str | None = None):
        self.key = key
        self.value = value
        message = f"Invalid setting {key}={value!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
