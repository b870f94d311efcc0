"""Tests for the mail dispatcher's timeout and error mapping."""

from __future__ import annotations

import asyncio
import gc
import logging
import time

import pytest

from portfolio_contact.contact.dispatcher import MailDispatcher, map_transport_code
from portfolio_contact.core.interfaces import TransportError
from portfolio_contact.core.models import (
    ComposedMessage,
    DispatchCode,
    Failed,
    Sent,
    TransportReceipt,
)


def _message() -> ComposedMessage:
    return ComposedMessage(
        recipient="owner@example.com",
        sender="relay@example.com",
        subject="Subject",
        text_body="text",
        html_body="<p>html</p>",
        reply_to="ann@example.com",
    )


class StubTransport:
    """Transport stub returning a fixed receipt."""

    configured = True

    def __init__(self) -> None:
        self.sent: list[ComposedMessage] = []

    async def send_mail(self, message: ComposedMessage) -> TransportReceipt:
        self.sent.append(message)
        return TransportReceipt(message_id="<abc@example.com>", response="250 OK")

    async def verify(self) -> bool:
        return True


class FailingTransport:
    """Transport stub raising a configured error."""

    configured = True

    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls = 0

    async def send_mail(self, message: ComposedMessage) -> TransportReceipt:
        del message
        self.calls += 1
        raise self.error

    async def verify(self) -> bool:
        raise self.error


class HangingTransport:
    """Transport stub that never completes on its own."""

    configured = True

    def __init__(self) -> None:
        self.cancelled = False

    async def send_mail(self, message: ComposedMessage) -> TransportReceipt:
        del message
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        raise AssertionError("unreachable")

    async def verify(self) -> bool:
        await asyncio.Event().wait()
        return True


class StubbornTransport:
    """Transport stub that ignores cancellation and finishes late."""

    configured = True

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.finished = False

    async def send_mail(self, message: ComposedMessage) -> TransportReceipt:
        del message
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            pass
        await asyncio.sleep(0.01)
        self.finished = True
        if self.error is not None:
            raise self.error
        return TransportReceipt(message_id="<late@example.com>", response="250 OK")

    async def verify(self) -> bool:
        return True


def test_successful_send_returns_message_id() -> None:
    transport = StubTransport()
    dispatcher = MailDispatcher(transport, timeout_seconds=1)

    outcome = asyncio.run(dispatcher.send(_message()))

    assert outcome == Sent(message_id="<abc@example.com>")
    assert len(transport.sent) == 1


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("ECONNREFUSED", DispatchCode.CONNECTION_REFUSED),
        ("ECONNECTION", DispatchCode.CONNECTION_REFUSED),
        ("EAUTH", DispatchCode.AUTH_FAILURE),
        ("ETIMEDOUT", DispatchCode.TRANSPORT_TIMEOUT),
        ("EMESSAGE", DispatchCode.UNKNOWN),
        (None, DispatchCode.UNKNOWN),
    ],
)
def test_transport_errors_are_mapped(code: str | None, expected: DispatchCode) -> None:
    transport = FailingTransport(
        TransportError("535 5.7.8 secret server detail", code=code, command="AUTH")
    )
    dispatcher = MailDispatcher(transport, timeout_seconds=1)

    outcome = asyncio.run(dispatcher.send(_message()))

    assert isinstance(outcome, Failed)
    assert outcome.code is expected
    assert "secret server detail" not in outcome.message
    assert transport.calls == 1


def test_unexpected_exception_maps_to_unknown() -> None:
    dispatcher = MailDispatcher(FailingTransport(KeyError("boom")), timeout_seconds=1)

    outcome = asyncio.run(dispatcher.send(_message()))

    assert isinstance(outcome, Failed)
    assert outcome.code is DispatchCode.UNKNOWN


def test_hanging_transport_times_out_promptly() -> None:
    transport = HangingTransport()
    dispatcher = MailDispatcher(transport, timeout_seconds=30)

    async def run() -> Failed | Sent:
        outcome = await dispatcher.send(_message(), timeout_seconds=0.05)
        await asyncio.sleep(0)
        return outcome

    started = time.monotonic()
    outcome = asyncio.run(run())
    elapsed = time.monotonic() - started

    assert isinstance(outcome, Failed)
    assert outcome.code is DispatchCode.REQUEST_TIMEOUT
    assert elapsed < 1
    assert transport.cancelled is True


def test_map_transport_code_is_case_insensitive() -> None:
    assert map_transport_code("eauth") is DispatchCode.AUTH_FAILURE


def test_verify_reports_reachability() -> None:
    assert asyncio.run(MailDispatcher(StubTransport()).verify()) is True
    failing = MailDispatcher(
        FailingTransport(TransportError("refused", code="ECONNREFUSED"))
    )
    assert asyncio.run(failing.verify()) is False
    assert asyncio.run(MailDispatcher(HangingTransport()).verify(0.05)) is False


@pytest.mark.parametrize(
    ("error", "expected_log"),
    [
        (None, "finished after timeout; result discarded"),
        (TransportError("late refusal", code="ECONNREFUSED"), "late refusal"),
    ],
)
def test_result_arriving_after_timeout_is_only_logged(
    caplog: pytest.LogCaptureFixture,
    error: Exception | None,
    expected_log: str,
) -> None:
    caplog.set_level(logging.WARNING)
    transport = StubbornTransport(error)
    dispatcher = MailDispatcher(transport, timeout_seconds=30)

    async def run() -> Failed | Sent:
        outcome = await dispatcher.send(_message(), timeout_seconds=0.01)
        await asyncio.sleep(0.2)
        return outcome

    outcome = asyncio.run(run())
    gc.collect()

    assert transport.finished is True
    assert isinstance(outcome, Failed)
    assert outcome.code is DispatchCode.REQUEST_TIMEOUT
    messages = [record.getMessage() for record in caplog.records]
    assert any(expected_log in message for message in messages)
    assert not any("never retrieved" in message for message in messages)
