import asyncio
from dataclasses import dataclass, field
from typing import List

import pytest
import requests

from solbotx.core.errors import (
    AppError,
    ErrorLogger,
    ErrorType,
    NetworkError,
    StrategyError,
    WalletError,
    classify,
    user_friendly_message,
    with_retry,
)


@dataclass
class StubSink:
    errors: List[str] = field(default_factory=list)

    def log_error(self, message: str) -> None:
        self.errors.append(message)


class BrokenSink:
    def log_error(self, message: str) -> None:
        raise OSError("disk full")


def test_error_logger_is_newest_first_and_bounded() -> None:
    log = ErrorLogger(capacity=100)
    for i in range(150):
        log.log(ErrorType.API_ERROR, f"e{i}")

    errors = log.get_errors()
    assert len(errors) == 100
    assert errors[0].message == "e149"
    assert errors[-1].message == "e50"

    log.clear()
    assert log.get_errors() == []


def test_error_logger_forwards_to_sink_and_survives_broken_sink() -> None:
    sink = StubSink()
    log = ErrorLogger(sink=sink)
    err = log.log(ErrorType.WALLET_ERROR, "Wallet not connected", {"attempt": 1})

    assert err.type == ErrorType.WALLET_ERROR
    assert sink.errors == ["[WALLET_ERROR] Wallet not connected ({'attempt': 1})"]

    quiet = ErrorLogger(sink=BrokenSink())
    quiet.log(ErrorType.UNKNOWN_ERROR, "still recorded")
    assert len(quiet) == 1


def test_classify_maps_exceptions_to_kinds() -> None:
    assert classify(WalletError("x")) == ErrorType.WALLET_ERROR
    assert classify(StrategyError("x")) == ErrorType.STRATEGY_ERROR
    assert classify(requests.ConnectionError()) == ErrorType.NETWORK_ERROR
    assert classify(requests.HTTPError()) == ErrorType.API_ERROR
    assert classify(asyncio.TimeoutError()) == ErrorType.NETWORK_ERROR
    assert classify(KeyError("x")) == ErrorType.UNKNOWN_ERROR
    assert classify(KeyError("x"), default=ErrorType.STRATEGY_ERROR) == ErrorType.STRATEGY_ERROR


def test_log_exception_uses_class_name_for_empty_message() -> None:
    log = ErrorLogger()
    err = log.log_exception(NetworkError())
    assert err.type == ErrorType.NETWORK_ERROR
    assert err.message == "NetworkError"


@pytest.mark.parametrize(
    "kind,prefix",
    [
        (ErrorType.WALLET_ERROR, "Wallet error: boom."),
        (ErrorType.NETWORK_ERROR, "Network error: boom."),
        (ErrorType.TRANSACTION_ERROR, "Transaction error: boom."),
        (ErrorType.API_ERROR, "Service error: boom."),
        (ErrorType.STRATEGY_ERROR, "Strategy error: boom."),
        (ErrorType.UNKNOWN_ERROR, "An unexpected error occurred: boom"),
    ],
)
def test_user_friendly_message_per_kind(kind: ErrorType, prefix: str) -> None:
    assert user_friendly_message(AppError(type=kind, message="boom")).startswith(prefix)


def test_with_retry_succeeds_after_failures() -> None:
    calls: List[int] = []

    async def flaky() -> str:
        calls.append(1)
        if len(calls) < 3:
            raise NetworkError("try again")
        return "ok"

    assert asyncio.run(with_retry(flaky, max_retries=3, delay=0.0)) == "ok"
    assert len(calls) == 3


def test_with_retry_reraises_last_error() -> None:
    calls: List[int] = []

    async def always_fails() -> None:
        calls.append(1)
        raise NetworkError(f"attempt {len(calls)}")

    with pytest.raises(NetworkError, match="attempt 2"):
        asyncio.run(with_retry(always_fails, max_retries=2, delay=0.0))
    assert len(calls) == 2
