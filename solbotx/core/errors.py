from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, List, Optional, Protocol, TypeVar

import requests


T = TypeVar("T")


class ErrorType(str, Enum):
    WALLET_ERROR = "WALLET_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    TRANSACTION_ERROR = "TRANSACTION_ERROR"
    API_ERROR = "API_ERROR"
    STRATEGY_ERROR = "STRATEGY_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class BotError(Exception):
    kind: ErrorType = ErrorType.UNKNOWN_ERROR


class WalletError(BotError):
    kind = ErrorType.WALLET_ERROR


class NetworkError(BotError):
    kind = ErrorType.NETWORK_ERROR


class TransactionError(BotError):
    kind = ErrorType.TRANSACTION_ERROR


class ApiError(BotError):
    kind = ErrorType.API_ERROR


class StrategyError(BotError):
    kind = ErrorType.STRATEGY_ERROR


def classify(exc: BaseException, default: ErrorType = ErrorType.UNKNOWN_ERROR) -> ErrorType:
    if isinstance(exc, BotError):
        return exc.kind
    if isinstance(exc, requests.HTTPError):
        return ErrorType.API_ERROR
    if isinstance(exc, (requests.ConnectionError, requests.Timeout, asyncio.TimeoutError, ConnectionError)):
        return ErrorType.NETWORK_ERROR
    return default


@dataclass(frozen=True)
class AppError:
    type: ErrorType
    message: str
    details: Any = None
    timestamp: float = field(default_factory=time.time)


class ErrorSink(Protocol):
    def log_error(self, message: str) -> None: ...


@dataclass
class ErrorLogger:
    """Bounded, newest-first record of everything that went wrong.

    Logging an error never raises and never changes what the caller does next;
    entries are only kept for display and forwarded to ``sink`` when one is set.
    """

    capacity: int = 100
    sink: Optional[ErrorSink] = None

    _errors: Deque[AppError] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.capacity <= 0:
            raise ValueError("capacity must be > 0")
        self._errors = deque(maxlen=self.capacity)

    def log(self, kind: ErrorType, message: str, details: Any = None) -> AppError:
        error = AppError(type=kind, message=message, details=details)
        self._errors.appendleft(error)

        if self.sink is not None:
            suffix = f" ({details})" if details else ""
            try:
                self.sink.log_error(f"[{kind.value}] {message}{suffix}")
            except Exception:
                pass
        return error

    def log_exception(
        self,
        exc: BaseException,
        details: Any = None,
        default: ErrorType = ErrorType.UNKNOWN_ERROR,
    ) -> AppError:
        return self.log(classify(exc, default), str(exc) or exc.__class__.__name__, details)

    def get_errors(self) -> List[AppError]:
        return list(self._errors)

    def clear(self) -> None:
        self._errors.clear()

    def __len__(self) -> int:
        return len(self._errors)


def user_friendly_message(error: AppError) -> str:
    if error.type == ErrorType.WALLET_ERROR:
        return f"Wallet error: {error.message}. Please check your wallet connection and try again."
    if error.type == ErrorType.NETWORK_ERROR:
        return f"Network error: {error.message}. Please check your internet connection and try again."
    if error.type == ErrorType.TRANSACTION_ERROR:
        return f"Transaction error: {error.message}. Your transaction could not be completed."
    if error.type == ErrorType.API_ERROR:
        return f"Service error: {error.message}. Please try again later."
    if error.type == ErrorType.STRATEGY_ERROR:
        return f"Strategy error: {error.message}. Please adjust your strategy parameters."
    return f"An unexpected error occurred: {error.message}"


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delay: float = 1.0,
) -> T:
    """Await ``fn()`` up to ``max_retries`` times, sleeping ``delay * attempt`` in between."""

    if max_retries <= 0:
        raise ValueError("max_retries must be > 0")

    attempt = 0
    while True:
        try:
            return await fn()
        except Exception:
            attempt += 1
            if attempt >= max_retries:
                raise
            await asyncio.sleep(delay * attempt)
