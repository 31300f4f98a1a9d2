from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from solbotx.core.errors import StrategyError
from solbotx.models.trade import Action, ACTIONS


STRATEGY_TYPES = ("Mean Reversion", "Breakout Momentum", "Range Scalping", "Multi-Indicator")

INDICATOR_DEFAULTS: Dict[str, Dict[str, float]] = {
    "SMA": {"period": 14},
    "RSI": {"period": 14},
    "MACD": {"fast": 12, "slow": 26},
    "Bollinger Bands": {"period": 20, "deviation": 2},
}


@dataclass(frozen=True)
class Indicator:
    type: str
    parameters: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.type not in INDICATOR_DEFAULTS:
            raise StrategyError(f"Unknown indicator type: {self.type}")

    @classmethod
    def with_defaults(cls, indicator_type: str, overrides: Optional[Mapping[str, float]] = None) -> "Indicator":
        if indicator_type not in INDICATOR_DEFAULTS:
            raise StrategyError(f"Unknown indicator type: {indicator_type}")
        params = dict(INDICATOR_DEFAULTS[indicator_type])
        params.update(overrides or {})
        return cls(type=indicator_type, parameters=params)


def default_indicators() -> Tuple[Indicator, ...]:
    return (
        Indicator.with_defaults("SMA"),
        Indicator.with_defaults("RSI", {"period": 30}),
        Indicator.with_defaults("MACD"),
    )


@dataclass(frozen=True)
class StrategyParams:
    """What the bot trades and how much of it per order."""

    type: str = "Multi-Indicator"
    pair: str = "SOL/USDC"
    action: Action = "buy"
    amount: float = 0.5
    indicators: Tuple[Indicator, ...] = field(default_factory=default_indicators)

    def __post_init__(self) -> None:
        if self.type not in STRATEGY_TYPES:
            raise StrategyError(f"Unknown strategy type: {self.type}")
        if self.action not in ACTIONS:
            raise StrategyError(f"Unknown trade action: {self.action}")
        if self.amount <= 0:
            raise StrategyError("Order amount must be > 0")
        if not self.pair or "/" not in self.pair:
            raise StrategyError(f"Invalid trading pair: {self.pair!r}")

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "pair": self.pair,
            "action": self.action,
            "amount": self.amount,
            "indicators": [{"type": i.type, "parameters": dict(i.parameters)} for i in self.indicators],
        }
