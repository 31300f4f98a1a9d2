from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from solbotx.models.strategy import StrategyParams
from solbotx.models.trade import Trade


class MarketSimulator(Protocol):
    def next_synthetic_trade(self, params: StrategyParams) -> Trade: ...

    def perturb(self, price: float) -> float: ...

    def slip(self, price: float) -> float: ...


@dataclass
class RandomMarketSimulator:
    """Pseudo-random stand-in for a market feed and an execution venue."""

    seed: Optional[int] = None
    success_rate: float = 0.9
    price_min: float = 50.0
    price_max: float = 150.0
    perturbation_pct: float = 3.0
    slip_pct: float = 5.0
    min_amount: float = 0.001

    _rng: random.Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not (0.0 <= self.success_rate <= 1.0):
            raise ValueError("success_rate must be in [0, 1]")
        if not (0 < self.price_min < self.price_max):
            raise ValueError("price band must satisfy 0 < price_min < price_max")
        if self.perturbation_pct < 0 or self.slip_pct < 0:
            raise ValueError("perturbation percentages must be >= 0")
        self._rng = random.Random(self.seed)

    def next_synthetic_trade(self, params: StrategyParams) -> Trade:
        action = "buy" if self._rng.random() > 0.5 else "sell"
        price = round(self._rng.uniform(self.price_min, self.price_max), 2)
        amount = max(self.min_amount, round(self._rng.uniform(0.0, params.amount), 3))

        return Trade(
            timestamp=datetime.now(timezone.utc),
            pair=params.pair,
            action=action,
            amount=amount,
            price=price,
            strategy=params.type,
            success=self._rng.random() < self.success_rate,
        )

    def perturb(self, price: float) -> float:
        move = self._rng.uniform(-self.perturbation_pct, self.perturbation_pct)
        return price * (1.0 + move / 100.0)

    def slip(self, price: float) -> float:
        return price * (1.0 - self._rng.uniform(0.0, self.slip_pct) / 100.0)
