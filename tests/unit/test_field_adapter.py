"""
Unit tests for the FieldAdapter.

Verifies:
- Construction captures options and passes unknown ones through
- Write casting: record / null / absent / typed rejection
- Read casting: rehydration, read_as knob, fallback on malformed data
- Query casting over single values and sequences
- The required-field predicate
"""

import dataclasses
from datetime import UTC, datetime

import pytest

from datetz.config import DateTzSettings, set_settings
from datetz.db.field import FieldAdapter
from datetz.domain.coercion import UNSET
from datetz.domain.date_tz import DateTz
from datetz.exceptions import ConfigurationError, DateTzCastError, InvalidTimezoneError

INSTANT = 1_701_234_567_890
RECORD = {"timestamp": INSTANT, "timezone": "Europe/Rome"}


@pytest.fixture
def adapter():
    return FieldAdapter.construct("executed_at", timezone="Europe/Rome")


@pytest.fixture
def parsing_adapter():
    return FieldAdapter.construct(
        "pickup_at",
        format="YYYY-MM-DD HH:mm:ss.SS",
        timezone="Europe/London",
    )


class TestConstruct:
    """Tests for FieldAdapter.construct."""

    def test_captures_options(self, adapter):
        assert adapter.field_name == "executed_at"
        assert adapter.default_timezone == "Europe/Rome"
        assert adapter.parse_strings is False
        assert adapter.read_as == "value"

    def test_unknown_options_pass_through(self):
        adapter = FieldAdapter.construct("starts_at", timezone="UTC", index=True, comment="start")
        assert dict(adapter.options) == {"index": True, "comment": "start"}

    def test_options_are_read_only(self):
        adapter = FieldAdapter.construct("starts_at", index=True)
        with pytest.raises(TypeError):
            adapter.options["index"] = False

    def test_frozen(self, adapter):
        with pytest.raises(dataclasses.FrozenInstanceError):
            adapter.default_timezone = "UTC"

    def test_format_enables_string_parsing(self, parsing_adapter):
        assert parsing_adapter.parse_strings is True
        assert parsing_adapter.parse_format == "YYYY-MM-DD HH:mm:ss.SS"

    def test_explicit_parse_strings_false_wins_over_format(self):
        adapter = FieldAdapter.construct("pickup_at", format="YYYY", parse_strings=False)
        with pytest.raises(DateTzCastError):
            adapter.cast_on_write("2025")

    def test_settings_fill_unspecified_options(self):
        set_settings(DateTzSettings(default_timezone="Asia/Tokyo", parse_strings=True, read_as="record"))
        adapter = FieldAdapter.construct("starts_at")
        assert adapter.default_timezone == "Asia/Tokyo"
        assert adapter.parse_strings is True
        assert adapter.read_as == "record"

    def test_field_options_beat_settings(self):
        set_settings(DateTzSettings(default_timezone="Asia/Tokyo"))
        adapter = FieldAdapter.construct("starts_at", timezone="Europe/Rome")
        assert adapter.cast_on_write({"timestamp": 1})["timezone"] == "Europe/Rome"

    def test_unknown_timezone_option_rejected(self):
        with pytest.raises(InvalidTimezoneError):
            FieldAdapter.construct("starts_at", timezone="Nowhere/Land")

    def test_bad_read_as_rejected(self):
        with pytest.raises(ConfigurationError):
            FieldAdapter.construct("starts_at", read_as="json")

    def test_named_rebinds_field_name_only(self, adapter):
        renamed = adapter.named("finished_at")
        assert renamed.field_name == "finished_at"
        assert renamed.default_timezone == adapter.default_timezone
        assert adapter.named("executed_at") is adapter


class TestCastOnWrite:
    """Tests for cast_on_write."""

    def test_value_to_record(self, adapter):
        assert adapter.cast_on_write(DateTz(INSTANT, "Europe/Rome")) == RECORD

    def test_record_is_canonicalized(self, adapter):
        assert adapter.cast_on_write({"timestamp": INSTANT + 0.7, "timezone": "Europe/Rome"}) == RECORD

    def test_default_timezone_from_field(self, adapter):
        assert adapter.cast_on_write({"timestamp": 123456}) == {"timestamp": 123456, "timezone": "Europe/Rome"}

    def test_number_and_datetime(self, adapter):
        moment = datetime.fromtimestamp(INSTANT / 1000, tz=UTC)
        assert adapter.cast_on_write(INSTANT) == RECORD
        assert adapter.cast_on_write(moment) == RECORD

    def test_null(self, adapter):
        assert adapter.cast_on_write(None) is None

    @pytest.mark.parametrize("value", ["", UNSET])
    def test_absent(self, adapter, value):
        assert adapter.cast_on_write(value) is UNSET

    def test_string_parsed_when_enabled(self, parsing_adapter):
        assert parsing_adapter.cast_on_write("2025-11-01 22:35:00.00") == {
            "timestamp": 1_762_036_500_000,
            "timezone": "Europe/London",
        }

    @pytest.mark.parametrize("value", ["2025-11-01 22:35:00.00", True, [1], {"timezone": "UTC"}])
    def test_rejection_names_field_and_value(self, adapter, value):
        with pytest.raises(DateTzCastError) as exc_info:
            adapter.cast_on_write(value)
        assert exc_info.value.field_name == "executed_at"
        assert exc_info.value.value == value
        assert exc_info.value.code == "DATETZ_CAST_FAILED"
        assert isinstance(exc_info.value, ValueError)

    def test_parse_failure_raises(self, parsing_adapter):
        with pytest.raises(DateTzCastError) as exc_info:
            parsing_adapter.cast_on_write("01/11/2025")
        assert "does not match" in exc_info.value.reason

    def test_rejection_is_logged(self, adapter, captured_logs):
        with pytest.raises(DateTzCastError):
            adapter.cast_on_write(True)
        logs = [r for r in captured_logs() if r["message"] == "datetz_cast_rejected"]
        assert len(logs) == 1
        assert logs[0]["field_name"] == "executed_at"
        assert logs[0]["operation"] == "write"
        assert logs[0]["input_kind"] == "unsupported"


class TestCastOnRead:
    """Tests for cast_on_read."""

    def test_record_to_value(self, adapter):
        assert adapter.cast_on_read(RECORD) == DateTz(INSTANT, "Europe/Rome")

    def test_read_as_record(self):
        adapter = FieldAdapter.construct("executed_at", read_as="record")
        result = adapter.cast_on_read({"timestamp": INSTANT, "timezone": "Europe/Rome"})
        assert result == RECORD
        assert isinstance(result, dict)

    def test_value_passes_through(self, adapter):
        value = DateTz(INSTANT, "UTC")
        assert adapter.cast_on_read(value) is value

    def test_none(self, adapter):
        assert adapter.cast_on_read(None) is None

    def test_empty_timezone_uses_field_default(self, adapter):
        assert adapter.cast_on_read({"timestamp": 1, "timezone": ""}) == DateTz(1, "Europe/Rome")

    @pytest.mark.parametrize(
        "stored",
        [
            {"timezone": "UTC"},
            {"timestamp": INSTANT},
            {"timestamp": "1", "timezone": "UTC"},
            {"timestamp": 1, "timezone": "Nowhere/Land"},
            "2025-11-01",
            [1, 2],
            True,
            42,
        ],
    )
    def test_malformed_returns_raw_unchanged(self, adapter, stored):
        assert adapter.cast_on_read(stored) is stored

    def test_fallback_is_logged(self, adapter, captured_logs):
        adapter.cast_on_read({"timezone": "UTC"})
        logs = [r for r in captured_logs() if r["message"] == "datetz_read_fallback"]
        assert len(logs) == 1
        assert logs[0]["level"] == "WARNING"
        assert logs[0]["field_name"] == "executed_at"
        assert logs[0]["operation"] == "read"


class TestCastForQuery:
    """Tests for cast_for_query."""

    def test_single_operand(self, adapter):
        assert adapter.cast_for_query(INSTANT) == RECORD

    @pytest.mark.parametrize("container", [list, tuple])
    def test_sequence_is_cast_element_wise(self, adapter, container):
        operands = container([INSTANT, DateTz(1, "UTC"), None])
        assert adapter.cast_for_query(operands) == [
            RECORD,
            {"timestamp": 1, "timezone": "UTC"},
            None,
        ]

    def test_set_operand(self, adapter):
        assert adapter.cast_for_query({INSTANT}) == [RECORD]

    def test_rejected_element_raises(self, adapter):
        with pytest.raises(DateTzCastError) as exc_info:
            adapter.cast_for_query([INSTANT, "garbage"])
        assert exc_info.value.value == "garbage"


class TestCastOnAssign:
    """Tests for cast_on_assign (attribute assignment form)."""

    def test_value(self, adapter):
        assert adapter.cast_on_assign(INSTANT) == DateTz(INSTANT, "Europe/Rome")

    def test_record_form(self):
        adapter = FieldAdapter.construct("executed_at", timezone="Europe/Rome", read_as="record")
        assert adapter.cast_on_assign(INSTANT) == RECORD

    @pytest.mark.parametrize("value", [None, "", UNSET])
    def test_null_and_absent_clear(self, adapter, value):
        assert adapter.cast_on_assign(value) is None

    def test_rejection_raises(self, adapter):
        with pytest.raises(DateTzCastError):
            adapter.cast_on_assign(False)


class TestRequired:
    """Tests for is_satisfied_when_required."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (DateTz(INSTANT), True),
            (RECORD, True),
            ({"timestamp": INSTANT}, False),
            ({"timestamp": True, "timezone": "UTC"}, False),
            ({"timezone": "UTC"}, False),
            (None, False),
            (UNSET, False),
            (INSTANT, False),
            ("", False),
        ],
    )
    def test_predicate(self, adapter, value, expected):
        assert adapter.is_satisfied_when_required(value) is expected
