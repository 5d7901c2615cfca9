"""
Property-based tests for Audit Logger module.

Uses Hypothesis to verify output formats, level filtering, sensitive data
masking and error context.
"""

import json
from io import StringIO

import pytest
from hypothesis import given, settings, assume
from hypothesis import strategies as st

from domain_expiry.audit_logger import AuditLogger
from domain_expiry.config import LoggingConfig
from domain_expiry.enums import LogLevel
from domain_expiry.exceptions import NotificationError


@st.composite
def log_level_strategy(draw) -> LogLevel:
    """Generate valid LogLevel values."""
    return draw(st.sampled_from(list(LogLevel)))


@st.composite
def component_name_strategy(draw) -> str:
    """Generate valid component names."""
    return draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_-"),
        min_size=1,
        max_size=50,
    ))


@st.composite
def message_strategy(draw) -> str:
    """Generate valid log messages."""
    return draw(st.text(
        alphabet=st.characters(
            whitelist_categories=('L', 'N', 'P', 'S', 'Z'),
            blacklist_characters='\x00\n\r',
        ),
        min_size=1,
        max_size=200,
    ))


@st.composite
def non_sensitive_key_strategy(draw) -> str:
    """Generate keys that are NOT sensitive."""
    key = draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz_"),
        min_size=1,
        max_size=20,
    ))
    for pattern in AuditLogger.SENSITIVE_KEYS:
        assume(pattern not in key)
    return key


@st.composite
def sensitive_key_strategy(draw) -> str:
    """Generate keys that ARE sensitive."""
    base = draw(st.sampled_from([
        'token', 'secret', 'password', 'api_key', 'slack_token',
        'authorization', 'credentials', 'private_key', 'access_token',
    ]))
    prefix = draw(st.sampled_from(['', 'my_', 'SLACK_', 'app_']))
    suffix = draw(st.sampled_from(['', '_value', '_data', '_1']))
    return f"{prefix}{base}{suffix}"


class TestDualFormatProperty:
    """
    Property-based tests for output formats.

    **Property 31: 'both' writes a JSON line and a text line per entry**
    """

    @given(
        component=component_name_strategy(),
        message=message_strategy(),
    )
    @settings(max_examples=100)
    def test_dual_format_produces_both_outputs(self, component: str, message: str) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="both", output_stream=output, capture=True)

        logger.error(component, message, {"domain": "example.com"})

        json_line, text_line = output.getvalue().rstrip("\n").split("\n")
        parsed = json.loads(json_line)
        assert parsed["level"] == "error"
        assert parsed["component"] == component
        assert parsed["message"] == message
        assert parsed["data"] == {"domain": "example.com"}
        assert f"ERROR [{component}] {message}" in text_line

    def test_json_only_format(self) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output, capture=True)

        logger.info("Checker", "hello")

        assert json.loads(output.getvalue())["message"] == "hello"

    def test_text_only_format_omits_empty_data(self) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="text", output_stream=output, capture=True)

        logger.warn("Checker", "hello")

        assert output.getvalue().rstrip().endswith("WARN [Checker] hello")

    def test_invalid_format_rejected(self) -> None:
        with pytest.raises(ValueError):
            AuditLogger(output_format="xml")


class TestLevelFilteringProperty:
    """
    Property-based tests for level filtering.

    **Property 32: Entries below the minimum level are dropped**
    """

    @given(min_level=log_level_strategy(), level=log_level_strategy())
    @settings(max_examples=100)
    def test_filtering(self, min_level: LogLevel, level: LogLevel) -> None:
        output = StringIO()
        logger = AuditLogger(
            output_format="json", output_stream=output, min_level=min_level, capture=True
        )

        entry = logger.log(level, "Checker", "message")

        if level.rank >= min_level.rank:
            assert entry is not None
            assert logger.entries == [entry]
            assert output.getvalue()
        else:
            assert entry is None
            assert logger.entries == []
            assert output.getvalue() == ""

    @pytest.mark.parametrize(
        "level, expected",
        [("debug", LogLevel.DEBUG), ("info", LogLevel.INFO), ("WARNING", LogLevel.WARN),
         ("error", LogLevel.ERROR), ("verbose", LogLevel.INFO)],
    )
    def test_from_config(self, level: str, expected: LogLevel) -> None:
        logger = AuditLogger.from_config(LoggingConfig(level=level, output_format="json"))

        assert logger.min_level == expected
        assert logger.output_format == "json"


class TestSensitiveDataMaskingProperty:
    """
    Property-based tests for sensitive data masking.

    **Property 33: Sensitive data masked in logs**
    """

    @given(
        sensitive_key=sensitive_key_strategy(),
        sensitive_value=st.text(alphabet=st.sampled_from("QWXYZ"), min_size=5, max_size=20),
        message=message_strategy(),
    )
    @settings(max_examples=100)
    def test_sensitive_data_masked(
        self, sensitive_key: str, sensitive_value: str, message: str
    ) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output, capture=True)

        entry = logger.error("Notifier", message, {sensitive_key: sensitive_value})

        assert entry.data[sensitive_key] == AuditLogger.MASK_VALUE
        parsed = json.loads(output.getvalue().strip())
        assert parsed["data"][sensitive_key] == AuditLogger.MASK_VALUE

    @given(key=non_sensitive_key_strategy(), value=st.text(min_size=1, max_size=50))
    @settings(max_examples=100)
    def test_non_sensitive_data_not_masked(self, key: str, value: str) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO(), capture=True)

        entry = logger.info("Checker", "message", {key: value})

        assert entry.data[key] == value

    @given(sensitive_key=sensitive_key_strategy(), value=st.text(min_size=1, max_size=50))
    @settings(max_examples=100)
    def test_nested_sensitive_data_masked(self, sensitive_key: str, value: str) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO(), capture=True)
        data = {
            "config": {sensitive_key: value, "other": "visible"},
            "channels": [{sensitive_key: value}],
        }

        entry = logger.info("Checker", "message", data)

        assert entry.data["config"][sensitive_key] == AuditLogger.MASK_VALUE
        assert entry.data["config"]["other"] == "visible"
        assert entry.data["channels"][0][sensitive_key] == AuditLogger.MASK_VALUE


class TestErrorContextProperty:
    """
    Property-based tests for error context logging.

    **Property 34: Error logs include exception type, message and code**
    """

    @given(message=message_strategy())
    @settings(max_examples=50)
    def test_error_logs_include_error_context(self, message: str) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO(), capture=True)
        error = NotificationError(code="slack_api_error", message=message)

        entry = logger.log_error(
            "Notifier",
            "Failed to send",
            error=error,
            request_url="https://slack.com/api/chat.postMessage",
            additional_data={"domain": "example.com"},
        )

        assert entry.level == LogLevel.ERROR
        assert entry.data["error_type"] == "NotificationError"
        assert entry.data["error_message"] == message
        assert entry.data["error_code"] == "slack_api_error"
        assert entry.data["request_url"] == "https://slack.com/api/chat.postMessage"
        assert entry.data["domain"] == "example.com"

    def test_plain_exception_has_no_code(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO(), capture=True)

        entry = logger.log_error("Checker", "boom", error=RuntimeError("bad"))

        assert entry.data == {"error_message": "bad", "error_type": "RuntimeError"}

    def test_additional_data_is_not_mutated(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO(), capture=True)
        extra = {"domain": "example.com"}

        logger.log_error("Checker", "boom", error=RuntimeError("bad"), additional_data=extra)

        assert extra == {"domain": "example.com"}

    def test_clear_entries(self) -> None:
        logger = AuditLogger(output_format="json", output_stream=StringIO(), capture=True)
        logger.info("Checker", "one")

        logger.clear_entries()

        assert logger.entries == []


class TestRetentionProperty:
    """
    Property-based tests for in-memory retention.

    **Property 35: Only capturing loggers keep emitted entries**
    """

    @given(count=st.integers(min_value=1, max_value=200))
    @settings(max_examples=20)
    def test_default_logger_retains_nothing(self, count: int) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output)

        for i in range(count):
            logger.info("Checker", f"entry {i}")

        assert logger.entries == []
        assert len(output.getvalue().splitlines()) == count

    def test_from_config_does_not_capture(self) -> None:
        logger = AuditLogger.from_config(LoggingConfig(), output_stream=StringIO())

        logger.error("Checker", "boom")

        assert logger.entries == []
