"""
Settings (``datetz.config``).

Responsibility
--------------
Process-wide defaults for DateTz fields: the fallback timezone, the string
parse format, whether string input is parsed at all, and whether reads
return rich ``DateTz`` values or plain records.  Field options override
these settings; these settings override the hard-coded ``"UTC"``.

Sources, later wins
-------------------
1. Built-in defaults (``DateTzSettings()``).
2. A YAML file named by ``DATETZ_CONFIG``::

       default_timezone: Europe/Rome
       default_format: "YYYY-MM-DD HH:mm"
       parse_strings: true
       read_as: value

3. Environment overrides ``DATETZ_DEFAULT_TIMEZONE``,
   ``DATETZ_DEFAULT_FORMAT``, ``DATETZ_PARSE_STRINGS``, ``DATETZ_READ_AS``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key, unknown timezone or bad ``read_as``  -> ``ConfigurationError``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml

from datetz.domain.date_tz import DEFAULT_TIMEZONE, is_valid_timezone
from datetz.domain.formats import DEFAULT_FORMAT
from datetz.exceptions import ConfigurationError
from datetz.logging_config import get_logger

logger = get_logger("config")

ReadAs = Literal["value", "record"]
READ_AS_CHOICES: tuple[str, ...] = ("value", "record")

_ENV_PREFIX = "DATETZ_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class DateTzSettings:
    """Immutable process-wide defaults for DateTz fields."""

    default_timezone: str = DEFAULT_TIMEZONE
    default_format: str = DEFAULT_FORMAT
    parse_strings: bool = False
    read_as: ReadAs = "value"

    def __post_init__(self) -> None:
        if not is_valid_timezone(self.default_timezone):
            raise ConfigurationError("default_timezone", self.default_timezone, "unknown timezone")
        if not isinstance(self.default_format, str) or not self.default_format:
            raise ConfigurationError("default_format", self.default_format, "must be a non-empty string")
        if not isinstance(self.parse_strings, bool):
            raise ConfigurationError("parse_strings", self.parse_strings, "must be a boolean")
        if self.read_as not in READ_AS_CHOICES:
            raise ConfigurationError("read_as", self.read_as, f"expected one of {READ_AS_CHOICES}")


def _parse_bool(key: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigurationError(key, raw, "expected a boolean")


def settings_from_mapping(data: Mapping[str, Any], base: DateTzSettings | None = None) -> DateTzSettings:
    """
    Overlay ``data`` onto ``base`` (or the built-in defaults).

    Raises:
        ConfigurationError: On unknown keys or invalid values.
    """
    known = {f.name for f in fields(DateTzSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(unknown[0], data[unknown[0]], "unknown setting")
    return replace(base or DateTzSettings(), **dict(data))


def load_settings(path: Path | str) -> DateTzSettings:
    """
    Load settings from a YAML file.

    Preconditions:
        - ``path`` points to an existing YAML mapping (an empty file is
          the defaults).
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("file", str(path), "top level must be a mapping")
    return settings_from_mapping(data)


def settings_from_env(
    environ: Mapping[str, str] | None = None,
    base: DateTzSettings | None = None,
) -> DateTzSettings:
    """Apply ``DATETZ_*`` environment overrides to ``base``."""
    environ = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    for f in fields(DateTzSettings):
        raw = environ.get(f"{_ENV_PREFIX}{f.name.upper()}")
        if raw is None:
            continue
        overrides[f.name] = _parse_bool(f.name, raw) if f.name == "parse_strings" else raw
    return settings_from_mapping(overrides, base)


_active: DateTzSettings | None = None


def get_settings() -> DateTzSettings:
    """
    Return the active settings, building them on first use.

    File named by ``DATETZ_CONFIG`` first, then environment overrides.
    """
    global _active
    if _active is None:
        path = os.environ.get(f"{_ENV_PREFIX}CONFIG")
        base = load_settings(path) if path else DateTzSettings()
        _active = settings_from_env(base=base)
        logger.debug(
            "settings_loaded",
            extra={
                "source": path or "defaults",
                "default_timezone": _active.default_timezone,
                "read_as": _active.read_as,
            },
        )
    return _active


def set_settings(settings: DateTzSettings | None) -> None:
    """Replace the active settings; ``None`` rebuilds them on next use."""
    global _active
    _active = settings
