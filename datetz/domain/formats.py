"""
Formats -- Token-based date pattern parsing and rendering.

Responsibility:
    Converts between text and epoch milliseconds using moment-style format
    patterns (``YYYY-MM-DD HH:mm:ss.SS``) interpreted as wall-clock time in
    an IANA timezone.

Architecture position:
    Domain -- pure functional core, zero I/O.  Imported by
    datetz.domain.date_tz; must not import from db/ or outer layers.

Supported tokens:
    YYYY  four-digit year             YY   two-digit year (2000-2099)
    MM    two-digit month             M    month, one or two digits
    DD    two-digit day               D    day, one or two digits
    HH    two-digit hour (00-23)      H    hour, one or two digits
    mm    two-digit minute            m    minute, one or two digits
    ss    two-digit second            s    second, one or two digits
    SSS   milliseconds                SS   hundredths      S  tenths
    Z     UTC offset (+01:00, -0530 or a literal Z)
    [..]  literal text, e.g. ``YYYY-MM-DD[T]HH:mm``

Any other character in a pattern is matched literally.

Failure modes:
    - DateTzParseError when the text does not match the pattern or a
      component is out of range (month 13, Feb 30, ...).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from datetz.exceptions import DateTzParseError

DEFAULT_FORMAT = "YYYY-MM-DD HH:mm:ss.SS"

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)

_TOKEN_RE = re.compile(
    r"\[[^\]]*\]|YYYY|YY|SSS|SS|S|MM|M|DD|D|HH|H|mm|m|ss|s|Z"
)

# token -> (component, regex)
_TOKEN_PATTERNS: dict[str, tuple[str, str]] = {
    "YYYY": ("year", r"\d{4}"),
    "YY": ("year2", r"\d{2}"),
    "MM": ("month", r"\d{2}"),
    "M": ("month", r"\d{1,2}"),
    "DD": ("day", r"\d{2}"),
    "D": ("day", r"\d{1,2}"),
    "HH": ("hour", r"\d{2}"),
    "H": ("hour", r"\d{1,2}"),
    "mm": ("minute", r"\d{2}"),
    "m": ("minute", r"\d{1,2}"),
    "ss": ("second", r"\d{2}"),
    "s": ("second", r"\d{1,2}"),
    "SSS": ("millis", r"\d{3}"),
    "SS": ("centis", r"\d{2}"),
    "S": ("decis", r"\d"),
    "Z": ("offset", r"Z|[+-]\d{2}:?\d{2}"),
}

_FRACTION_SCALE = {"millis": 1, "centis": 10, "decis": 100}


@dataclass(frozen=True, slots=True)
class _CompiledFormat:
    regex: re.Pattern[str]
    components: tuple[str, ...]


def tokenize(pattern: str) -> list[str]:
    """Split a pattern into tokens and literal chunks."""
    parts: list[str] = []
    pos = 0
    for match in _TOKEN_RE.finditer(pattern):
        if match.start() > pos:
            parts.append(pattern[pos:match.start()])
        parts.append(match.group(0))
        pos = match.end()
    if pos < len(pattern):
        parts.append(pattern[pos:])
    return parts


@lru_cache(maxsize=64)
def _compile(pattern: str) -> _CompiledFormat:
    regex_parts: list[str] = []
    components: list[str] = []
    for part in tokenize(pattern):
        if part in _TOKEN_PATTERNS:
            component, expr = _TOKEN_PATTERNS[part]
            if component in components:
                raise DateTzParseError("", pattern, f"token {part!r} repeats a component")
            components.append(component)
            regex_parts.append(f"(?P<{component}>{expr})")
        elif part.startswith("[") and part.endswith("]"):
            regex_parts.append(re.escape(part[1:-1]))
        else:
            regex_parts.append(re.escape(part))
    return _CompiledFormat(re.compile("".join(regex_parts)), tuple(components))


def _parse_offset(raw: str) -> timezone:
    if raw == "Z":
        return UTC
    sign = -1 if raw[0] == "-" else 1
    digits = raw[1:].replace(":", "")
    delta = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
    return timezone(sign * delta)


def epoch_millis(moment: datetime) -> int:
    """Exact epoch milliseconds of an aware datetime (sub-ms truncated)."""
    return (moment - EPOCH) // _ONE_MS


def parse_to_millis(text: str, pattern: str, tz_name: str) -> int:
    """
    Parse ``text`` with ``pattern`` as wall time in ``tz_name``.

    Preconditions: tz_name is a valid IANA zone (callers resolve it first).
    Postconditions: Returns the epoch milliseconds of the parsed instant.
        A ``Z`` token in the pattern takes precedence over ``tz_name`` for
        computing the instant.

    Raises:
        DateTzParseError: If text does not fully match or is out of range.
    """
    compiled = _compile(pattern)
    match = compiled.regex.fullmatch(text)
    if match is None:
        raise DateTzParseError(text, pattern, "text does not match format")

    groups = match.groupdict()
    if "year" in groups:
        year = int(groups["year"])
    elif "year2" in groups:
        year = 2000 + int(groups["year2"])
    else:
        year = 1970

    millis = 0
    for component, scale in _FRACTION_SCALE.items():
        if component in groups:
            millis = int(groups[component]) * scale

    tzinfo = _parse_offset(groups["offset"]) if "offset" in groups else ZoneInfo(tz_name)
    try:
        moment = datetime(
            year,
            int(groups.get("month", 1)),
            int(groups.get("day", 1)),
            int(groups.get("hour", 0)),
            int(groups.get("minute", 0)),
            int(groups.get("second", 0)),
            millis * 1000,
            tzinfo=tzinfo,
        )
    except ValueError as exc:
        raise DateTzParseError(text, pattern, str(exc)) from exc

    return epoch_millis(moment)


def _render_offset(moment: datetime) -> str:
    offset = moment.utcoffset() or timedelta(0)
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def render(moment: datetime, pattern: str) -> str:
    """Render an aware datetime with ``pattern``."""
    values = {
        "YYYY": f"{moment.year:04d}",
        "YY": f"{moment.year % 100:02d}",
        "MM": f"{moment.month:02d}",
        "M": str(moment.month),
        "DD": f"{moment.day:02d}",
        "D": str(moment.day),
        "HH": f"{moment.hour:02d}",
        "H": str(moment.hour),
        "mm": f"{moment.minute:02d}",
        "m": str(moment.minute),
        "ss": f"{moment.second:02d}",
        "s": str(moment.second),
        "SSS": f"{moment.microsecond // 1000:03d}",
        "SS": f"{moment.microsecond // 10000:02d}",
        "S": str(moment.microsecond // 100000),
    }
    out: list[str] = []
    for part in tokenize(pattern):
        if part == "Z":
            out.append(_render_offset(moment))
        elif part in values:
            out.append(values[part])
        elif part.startswith("[") and part.endswith("]"):
            out.append(part[1:-1])
        else:
            out.append(part)
    return "".join(out)
