"""Tests for the error types and generic helpers."""

from datetime import UTC, datetime

import pytest

from charmscript.foundation.errors import (
    BreakSignal,
    CharmError,
    CooldownActive,
    ErrorCode,
    PermissionDenied,
    ThrownError,
    UnknownCapability,
    format_wait,
)
from charmscript.foundation.utils import (
    format_uptime,
    parse_duration,
    render_value,
    safe_json_loads,
    utc_timestamp,
)


class TestErrors:
    """CharmError structure."""

    def test_str_includes_error_id(self):
        err = UnknownCapability("sya")
        assert str(err) == "[CS-2001] Unknown charm: sya"
        assert err.category == "dispatch"

    def test_to_dict(self):
        data = ThrownError("bad", {"status": 404}).to_dict()
        assert data["type"] == "ThrownError"
        assert data["message"] == "bad"
        assert data["fields"] == {"status": 404}
        assert data["error_id"] == "CS-4001"

    def test_missing_context_falls_back_to_template(self):
        err = CharmError(ErrorCode.CHARM_UNKNOWN)
        assert err.message == "Unknown charm: {charm}"

    def test_rejection_codes(self):
        assert ErrorCode.COMMAND_COOLDOWN_ACTIVE.is_rejection
        assert not ErrorCode.SCRIPT_THROWN.is_rejection

    def test_permission_subjects(self):
        assert PermissionDenied("x", ["a"]).message == "You need the following permissions: a"
        assert PermissionDenied("x", ["a", "b"], subject="bot").message == "I need the following permissions: a, b"

    def test_cooldown_message(self):
        assert CooldownActive("daily", 1.2).message == "Please wait 2 seconds before using this command again."

    def test_control_signals_are_not_charm_errors(self):
        assert not issubclass(BreakSignal, CharmError)

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0.2, "1 second"),
            (1, "1 second"),
            (10, "10 seconds"),
            (59.5, "1 minute"),
            (61, "2 minutes"),
        ],
    )
    def test_format_wait(self, seconds, expected):
        assert format_wait(seconds) == expected


class TestDurations:
    """parse_duration"""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("10ms", 0.01),
            ("3s", 3.0),
            ("2m", 120.0),
            ("1h", 3600.0),
            ("1d", 86400.0),
            ("1.5", 1.5),
            (4, 4.0),
            (" 5 S ", 5.0),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["soon", "", "-3s", -1, True, None, "5 weeks"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)

    def test_default_for_invalid(self):
        assert parse_duration("soon", default=3.0) == 3.0


class TestRendering:
    """Values as chat text."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, ""),
            (True, "true"),
            (False, "false"),
            (3.0, "3"),
            (2.5, "2.5"),
            ([1, "a"], '[1, "a"]'),
            ({"k": "é"}, '{"k": "é"}'),
            ("text", "text"),
        ],
    )
    def test_render_value(self, value, expected):
        assert render_value(value) == expected

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "0s"),
            (59.9, "59s"),
            (65, "1m 5s"),
            (3600, "1h 0m 0s"),
            (93784, "1d 2h 3m 4s"),
        ],
    )
    def test_format_uptime(self, seconds, expected):
        assert format_uptime(seconds) == expected

    def test_utc_timestamp(self):
        stamp = utc_timestamp(datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC))
        assert stamp == "2024-01-02T03:04:05+00:00"

    def test_safe_json_loads(self):
        assert safe_json_loads('{"a": 1}') == {"a": 1}
        with pytest.raises(ValueError, match="Invalid JSON"):
            safe_json_loads("{oops")
        with pytest.raises(ValueError, match="nested too deeply"):
            safe_json_loads("[" * 100_000 + "]" * 100_000)
