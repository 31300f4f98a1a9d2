from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Literal, Optional


Action = Literal["buy", "sell"]

ACTIONS = ("buy", "sell")


def opposite(action: str) -> Action:
    if action == "buy":
        return "sell"
    if action == "sell":
        return "buy"
    raise ValueError(f"action must be one of {ACTIONS}, got {action!r}")


def _check_action(action: str) -> None:
    if action not in ACTIONS:
        raise ValueError(f"action must be one of {ACTIONS}, got {action!r}")


@dataclass(frozen=True)
class Position:
    id: str
    pair: str
    action: Action  # "buy" = long, "sell" = short
    entry_price: float
    amount: float
    timestamp: datetime

    def __post_init__(self) -> None:
        _check_action(self.action)
        if self.entry_price <= 0:
            raise ValueError("entry_price must be > 0")
        if self.amount <= 0:
            raise ValueError("amount must be > 0")

    def unrealized_pnl(self, current_price: float) -> float:
        delta = current_price - self.entry_price
        if self.action == "sell":
            delta = -delta
        return delta * self.amount


@dataclass(frozen=True)
class Trade:
    timestamp: datetime
    pair: str
    action: Action
    amount: float
    price: Optional[float]  # None only for a failed trade that never got a quote
    strategy: str
    success: bool
    signature: Optional[str] = None
    pnl: Optional[float] = None  # realized, set on closing trades

    def __post_init__(self) -> None:
        _check_action(self.action)
        if self.price is None:
            if self.success:
                raise ValueError("a successful trade needs a price")
        elif self.price <= 0:
            raise ValueError("price must be > 0")
        if self.amount < 0:
            raise ValueError("amount must be >= 0")


@dataclass(frozen=True)
class StopLossConfig:
    enabled: bool = True
    percentage: float = 2.5

    def __post_init__(self) -> None:
        if self.percentage <= 0:
            raise ValueError("percentage must be > 0")

    def with_enabled(self, enabled: bool) -> "StopLossConfig":
        return replace(self, enabled=enabled)


DEFAULT_STOP_LOSS_CONFIG = StopLossConfig(enabled=True, percentage=2.5)
