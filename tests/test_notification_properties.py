"""
Property-based tests for notifications.

Uses Hypothesis to verify the Slack message layout and the single-attempt
delivery semantics. Slack traffic is served by ``httpx.MockTransport``.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from io import StringIO

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from domain_expiry.alert_evaluator import AlertEvaluator
from domain_expiry.audit_logger import AuditLogger
from domain_expiry.config import SlackConfig, SystemConfig
from domain_expiry.enums import LogLevel, SeverityTier
from domain_expiry.exceptions import NotificationError
from domain_expiry.models import DomainTarget
from domain_expiry.notifications import (
    SLACK_POST_MESSAGE_URL,
    LogChannel,
    NotificationPayload,
    Notifier,
    SlackChannel,
    build_error_message,
    build_expiration_warning,
    build_not_found_message,
    create_notifier,
    format_expiration_date,
    ordinal,
)


NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)
SLACK_CONFIG = SlackConfig(token="xoxb-secret", channel="C0123456")


def run_async(coro):
    """Helper to run async code in tests."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.composite
def domain_strategy(draw) -> str:
    """Generate valid domain names."""
    sld = draw(
        st.text(
            alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789"),
            min_size=1,
            max_size=20,
        )
    )
    tld = draw(st.sampled_from(["com", "net", "org", "in", "de"]))
    return f"{sld}.{tld}"


class MockChannel:
    """Channel recording payloads, optionally failing."""

    def __init__(self, name: str = "mock", fail: bool = False) -> None:
        self._name = name
        self._fail = fail
        self.payloads: list[NotificationPayload] = []

    async def send(self, payload: NotificationPayload) -> None:
        self.payloads.append(payload)
        if self._fail:
            raise NotificationError(code="http_error", message="Simulated channel failure")

    def get_name(self) -> str:
        return self._name


class SlackStub:
    """Records Slack requests and answers with a fixed response."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._response

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class TestDateFormattingProperty:
    """
    Tests for the human-readable expiration date.
    """

    @pytest.mark.parametrize(
        "day, expected",
        [(1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"),
         (12, "12th"), (13, "13th"), (21, "21st"), (22, "22nd"), (23, "23rd"), (31, "31st")],
    )
    def test_ordinal(self, day: int, expected: str) -> None:
        assert ordinal(day) == expected

    def test_format_expiration_date(self) -> None:
        assert format_expiration_date(datetime(2025, 6, 15)) == "June 15th, 2025"
        assert format_expiration_date(datetime(2026, 1, 1)) == "January 1st, 2026"


class TestWarningMessageProperty:
    """
    Property-based tests for the expiration warning layout.

    **Property 20: The warning carries domain, date, day count and tier emoji**
    """

    @given(domain=domain_strategy(), days=st.integers(min_value=-10, max_value=30))
    @settings(max_examples=100)
    def test_warning_layout(self, domain: str, days: int) -> None:
        decision = AlertEvaluator(30).evaluate(NOW + timedelta(days=days), NOW)
        payload = build_expiration_warning(domain, decision)
        formatted = format_expiration_date(decision.expiration)

        assert payload.kind == "warning"
        assert payload.text == f"Domain {domain} will expire in {days} days ({formatted})"

        header, fields, summary, divider = payload.blocks
        assert header["type"] == "header"
        assert header["text"]["text"] == f"{decision.tier.emoji} Domain Expiration Warning"
        assert fields["fields"][0]["text"] == f"*Domain:*\n{domain}"
        assert fields["fields"][1]["text"] == f"*Expiration Date:*\n{formatted}"
        assert f"*{days} days*" in summary["text"]["text"]
        assert divider == {"type": "divider"}

    @pytest.mark.parametrize(
        "days, emoji",
        [(7, "🔴"), (14, "🟠"), (30, "🟡"), (45, "🟢")],
    )
    def test_tier_emoji(self, days: int, emoji: str) -> None:
        decision = AlertEvaluator(60).evaluate(NOW + timedelta(days=days), NOW)
        payload = build_expiration_warning("example.com", decision)

        assert payload.blocks[0]["text"]["text"].startswith(emoji)

    def test_emoji_per_tier(self) -> None:
        assert [t.emoji for t in SeverityTier] == ["🔴", "🟠", "🟡", "🟢"]


class TestErrorMessagesProperty:
    """
    Tests for not-found and error messages.
    """

    def test_not_found_message(self) -> None:
        payload = build_not_found_message("example.com")

        assert payload.kind == "not_found"
        assert payload.blocks[0]["text"]["text"] == "⚠️ Domain Check Error"
        assert "*example.com*" in payload.blocks[1]["text"]["text"]

    def test_error_message_includes_error_text(self) -> None:
        payload = build_error_message("example.com", "boom")

        assert payload.kind == "error"
        assert payload.blocks[0]["text"]["text"] == "🚨 Domain Check Error"
        assert "```boom```" in payload.blocks[1]["text"]["text"]
        assert "boom" in payload.text


class TestSlackChannelProperty:
    """
    Property-based tests for the Slack channel.

    **Property 21: Slack delivery succeeds only when the API answers ok**
    """

    @given(domain=domain_strategy())
    @settings(max_examples=30)
    def test_request_shape(self, domain: str) -> None:
        stub = SlackStub(httpx.Response(200, json={"ok": True}))
        channel = SlackChannel(SLACK_CONFIG, transport=stub.transport())
        payload = build_not_found_message(domain)

        run_async(channel.send(payload))

        assert len(stub.requests) == 1
        request = stub.requests[0]
        assert str(request.url) == SLACK_POST_MESSAGE_URL
        assert request.method == "POST"
        assert request.headers["Authorization"] == "Bearer xoxb-secret"
        body = json.loads(request.content)
        assert body == {"channel": "C0123456", "text": payload.text, "blocks": payload.blocks}

    @pytest.mark.parametrize(
        "response, code",
        [
            (httpx.Response(200, json={"ok": False, "error": "channel_not_found"}), "slack_api_error"),
            (httpx.Response(200, json=["unexpected"]), "slack_api_error"),
            (httpx.Response(500, text="oops"), "http_error"),
            (httpx.Response(200, text="not json"), "invalid_response"),
        ],
    )
    def test_failures_raise_notification_error(self, response: httpx.Response, code: str) -> None:
        stub = SlackStub(response)
        channel = SlackChannel(SLACK_CONFIG, transport=stub.transport())

        with pytest.raises(NotificationError) as exc_info:
            run_async(channel.send(build_not_found_message("example.com")))
        assert exc_info.value.code == code
        assert len(stub.requests) == 1

    def test_slack_error_field_is_reported(self) -> None:
        stub = SlackStub(httpx.Response(200, json={"ok": False, "error": "invalid_auth"}))
        channel = SlackChannel(SLACK_CONFIG, transport=stub.transport())

        with pytest.raises(NotificationError) as exc_info:
            run_async(channel.send(build_not_found_message("example.com")))
        assert exc_info.value.details["slack_error"] == "invalid_auth"

    def test_network_failure(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        channel = SlackChannel(SLACK_CONFIG, transport=httpx.MockTransport(refuse))

        with pytest.raises(NotificationError) as exc_info:
            run_async(channel.send(build_not_found_message("example.com")))
        assert exc_info.value.code == "network_error"


class TestNotifierProperty:
    """
    Property-based tests for the notifier.

    **Property 22: One attempt per channel, failures never propagate**
    """

    @given(domain=domain_strategy(), fail=st.booleans())
    @settings(max_examples=50)
    def test_single_attempt(self, domain: str, fail: bool) -> None:
        channel = MockChannel(fail=fail)
        notifier = Notifier()
        notifier.register_channel(channel)

        results = run_async(notifier.notify(build_not_found_message(domain)))

        assert len(channel.payloads) == 1
        assert len(results) == 1
        assert results[0].success is not fail
        assert (results[0].error is not None) == fail

    def test_failing_channel_does_not_block_others(self) -> None:
        failing = MockChannel(name="failing", fail=True)
        working = MockChannel(name="working")
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output, capture=True)
        notifier = Notifier(logger=logger)
        notifier.register_channel(failing)
        notifier.register_channel(working)

        results = run_async(notifier.notify(build_error_message("example.com", "boom")))

        assert [(r.channel, r.success) for r in results] == [("failing", False), ("working", True)]
        errors = [e for e in logger.entries if e.level == LogLevel.ERROR]
        assert len(errors) == 1
        assert errors[0].data["channel"] == "failing"
        assert errors[0].data["error_code"] == "http_error"

    def test_slack_token_never_logged(self) -> None:
        stub = SlackStub(httpx.Response(200, json={"ok": False, "error": "invalid_auth"}))
        output = StringIO()
        logger = AuditLogger(output_format="both", output_stream=output, capture=True)
        notifier = Notifier(logger=logger)
        notifier.register_channel(SlackChannel(SLACK_CONFIG, transport=stub.transport()))

        run_async(notifier.notify(build_not_found_message("example.com")))

        assert "xoxb-secret" not in output.getvalue()


class TestCreateNotifierProperty:
    """
    Tests for channel selection.
    """

    def _config(self, dry_run: bool, slack) -> SystemConfig:
        return SystemConfig(
            domains=[DomainTarget("example.com")],
            slack=slack,
            dry_run=dry_run,
        )

    def test_slack_channel_by_default(self) -> None:
        notifier = create_notifier(self._config(False, SLACK_CONFIG))
        assert [c.get_name() for c in notifier.channels] == ["slack"]

    def test_dry_run_uses_log_channel(self) -> None:
        notifier = create_notifier(self._config(True, SLACK_CONFIG))
        assert [c.get_name() for c in notifier.channels] == ["log"]

    def test_log_channel_records_and_logs(self) -> None:
        output = StringIO()
        logger = AuditLogger(output_format="text", output_stream=output, capture=True)
        channel = LogChannel(logger, capture=True)
        payload = build_not_found_message("example.com")

        run_async(channel.send(payload))

        assert channel.sent == [payload]
        assert "[dry run]" in output.getvalue()
