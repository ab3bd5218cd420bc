"""Tests for the retry policy and error classification."""

import asyncio

import httpx
import pytest

from commute_brief.ai.errors import ContentBlockedError, InputError, ProviderError, is_retryable
from commute_brief.ai.retry import with_retry


class _Recorder:
    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0
        self.sleeps = []

    async def operation(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result

    async def sleep(self, seconds):
        self.sleeps.append(seconds)


def test_one_retry_means_two_calls():
    rec = _Recorder([ProviderError("boom", status_code=500)] * 2)

    with pytest.raises(ProviderError):
        asyncio.run(with_retry(rec.operation, retries=1, delay=1.0, sleep=rec.sleep))

    assert rec.calls == 2
    assert rec.sleeps == [1.0]


def test_delay_doubles_between_retries():
    rec = _Recorder([ProviderError("boom", status_code=503)] * 2)

    result = asyncio.run(with_retry(rec.operation, retries=2, delay=1.0, sleep=rec.sleep))

    assert result == "ok"
    assert rec.calls == 3
    assert rec.sleeps == [1.0, 2.0]


def test_network_errors_are_retried():
    rec = _Recorder([httpx.ConnectError("down")])

    assert asyncio.run(with_retry(rec.operation, sleep=rec.sleep)) == "ok"
    assert rec.calls == 2


@pytest.mark.parametrize(
    "error",
    [
        ProviderError("bad request", status_code=400),
        ProviderError("unauthorized", status_code=401),
        ContentBlockedError("blocked", status_code=500),
        InputError("empty"),
        httpx.UnsupportedProtocol("Request URL is missing an 'http://' or 'https://' protocol."),
        httpx.LocalProtocolError("bad header"),
    ],
)
def test_permanent_errors_fail_on_first_attempt(error):
    rec = _Recorder([error])

    with pytest.raises(type(error)):
        asyncio.run(with_retry(rec.operation, retries=3, sleep=rec.sleep))

    assert rec.calls == 1
    assert rec.sleeps == []


def test_is_retryable():
    assert is_retryable(httpx.ReadTimeout("slow"))
    assert is_retryable(ProviderError("x", status_code=599))
    assert not is_retryable(ProviderError("x", status_code=429))
    assert not is_retryable(ProviderError("x"))
    assert not is_retryable(ValueError("x"))
    assert is_retryable(httpx.RemoteProtocolError("peer closed"))
    assert not is_retryable(httpx.UnsupportedProtocol("no scheme"))
