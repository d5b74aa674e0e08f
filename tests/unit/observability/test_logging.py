"""Tests for structured logging."""

import json
from collections.abc import Generator
from io import StringIO

import pytest
import structlog

from orderflow.observability.logging import (
    PIIRedactor,
    get_logger,
    resolve_level,
    session_log_context,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Keep loggers from holding on to a stream captured by an earlier test."""
    yield
    structlog.reset_defaults()


class TestSetupLogging:
    """setup_logging writes to stderr in the configured format."""

    def test_json_lines_with_redaction(self, capsys) -> None:
        setup_logging(level="INFO", format="json", redact_pii=True)
        get_logger("test").info("user_registered", phone="+998901234567", scene="welcome")

        event = json.loads(capsys.readouterr().err.strip())
        assert event["event"] == "user_registered"
        assert event["level"] == "info"
        assert event["phone"] == "[REDACTED]"
        assert event["scene"] == "welcome"
        assert "timestamp" in event

    def test_level_filters(self, capsys) -> None:
        setup_logging(level="WARNING", format="json", redact_pii=False)
        get_logger("test").info("session_saved")

        assert capsys.readouterr().err == ""

    def test_configured_redact_keys(self, capsys) -> None:
        setup_logging(level="INFO", format="json", redact_keys=["comment"])
        get_logger("test").info("order_placed", comment="leave at the door")

        assert json.loads(capsys.readouterr().err)["comment"] == "[REDACTED]"

    def test_console_format(self, capsys) -> None:
        setup_logging(level="DEBUG", format="console", redact_pii=False)
        get_logger("test").debug("scene_entered", scene="cart")

        assert "scene_entered" in capsys.readouterr().err


class TestPIIRedactor:
    """Tests for PII redaction."""

    @pytest.fixture
    def redactor(self) -> PIIRedactor:
        return PIIRedactor()

    def test_redacts_phone_by_key(self, redactor: PIIRedactor) -> None:
        """Phone numbers are redacted by key name."""
        event_dict = {"phone": "+998901234567", "scene": "registration"}
        result = redactor(None, None, event_dict)  # type: ignore
        assert result["phone"] == "[REDACTED]"
        assert result["scene"] == "registration"

    def test_redacts_otp_and_address(self, redactor: PIIRedactor) -> None:
        event_dict = {"otp_code": "123456", "address": "Chilanzar 1", "key": "1:2"}
        result = redactor(None, None, event_dict)  # type: ignore
        assert result["otp_code"] == "[REDACTED]"
        assert result["address"] == "[REDACTED]"
        assert result["key"] == "1:2"

    def test_key_match_is_case_insensitive(self, redactor: PIIRedactor) -> None:
        result = redactor(None, None, {"Phone": "+998901234567"})  # type: ignore
        assert result["Phone"] == "[REDACTED]"

    def test_redacts_phone_pattern_in_string_value(self, redactor: PIIRedactor) -> None:
        """Phone numbers inside free text are masked."""
        event_dict = {"error": "Could not reach +998 90 123 45 67 today"}
        result = redactor(None, None, event_dict)  # type: ignore
        assert "123 45 67" not in result["error"]
        assert "[PHONE]" in result["error"]

    def test_redacts_email_pattern_in_string_value(self, redactor: PIIRedactor) -> None:
        event_dict = {"error": "Bounce for user@example.com"}
        result = redactor(None, None, event_dict)  # type: ignore
        assert "[EMAIL]" in result["error"]

    def test_handles_nested_dicts_and_lists(self, redactor: PIIRedactor) -> None:
        event_dict = {
            "order": {"phone": "+998901234567", "total": 75000},
            "notes": ["call +998901234567", 3],
        }
        result = redactor(None, None, event_dict)  # type: ignore
        assert result["order"] == {"phone": "[REDACTED]", "total": 75000}
        assert result["notes"] == ["call [PHONE]", 3]

    def test_preserves_non_pii_data(self, redactor: PIIRedactor) -> None:
        event_dict = {
            "event": "sweep_completed",
            "scanned": 12,
            "removed": 3,
            "dry_run": False,
        }
        result = redactor(None, None, event_dict)  # type: ignore
        assert result == event_dict


class TestJSONLogging:
    """Tests for JSON log output format."""

    def test_json_output_is_valid_json(self) -> None:
        """Should produce valid JSON output with redaction applied."""
        output = StringIO()
        structlog.configure(
            processors=[
                structlog.processors.add_log_level,
                PIIRedactor(),
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(0),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(output),
            cache_logger_on_first_use=False,
        )

        structlog.get_logger("test").info("session_saved", key="1:2", phone="+998901234567")

        parsed = json.loads(output.getvalue().strip())
        assert parsed["event"] == "session_saved"
        assert parsed["key"] == "1:2"
        assert parsed["phone"] == "[REDACTED]"


class TestRedactorDetails:
    def test_extra_keys(self) -> None:
        redactor = PIIRedactor(extra_keys=["Comment"])
        result = redactor(None, None, {"comment": "ring twice", "scene": "cart"})  # type: ignore
        assert result == {"comment": "[REDACTED]", "scene": "cart"}

    def test_timestamps_and_slots_survive(self) -> None:
        """Dates and delivery slots are not mistaken for phone numbers."""
        event_dict = {"timestamp": "2026-10-18T12:00:00Z", "slot": "17:20-17:40"}
        result = PIIRedactor()(None, None, event_dict)  # type: ignore
        assert result == event_dict

    def test_tuples_keep_their_type(self) -> None:
        result = PIIRedactor()(None, None, {"pair": ("+998901234567", 1)})  # type: ignore
        assert result["pair"] == ("[PHONE]", 1)


class TestResolveLevel:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [("debug", 10), ("INFO", 20), ("Warning", 30), ("error", 40), ("verbose", 20)],
    )
    def test_names(self, name: str, expected: int) -> None:
        assert resolve_level(name) == expected


class TestSessionLogContext:
    """Events logged inside the block carry the session key."""

    def test_binds_and_clears_key(self) -> None:
        output = StringIO()
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(0),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(output),
            cache_logger_on_first_use=False,
        )
        logger = structlog.get_logger("test")

        with session_log_context(7, 8):
            logger.info("inside")
        logger.info("outside")

        inside, outside = (json.loads(line) for line in output.getvalue().splitlines())
        assert (inside["user_id"], inside["chat_id"]) == (7, 8)
        assert "user_id" not in outside
