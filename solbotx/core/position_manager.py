from __future__ import annotations

import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional

from solbotx.models.trade import Position, Trade, opposite


STOP_LOSS_STRATEGY = "Stop Loss"


def _new_position_id() -> str:
    return f"pos-{uuid.uuid4().hex[:12]}"


@dataclass
class PositionManager:
    history_limit: int = 10

    realized_pnl: float = field(default=0.0, init=False)
    _closed_notional: float = field(default=0.0, init=False, repr=False)
    _positions: Dict[str, Position] = field(default_factory=dict, init=False)
    _history: Deque[Trade] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.history_limit <= 0:
            raise ValueError("history_limit must be > 0")
        self._history = deque(maxlen=self.history_limit)

    def record_trade(self, trade: Trade) -> None:
        # Newest first; the deque drops the oldest entry from the right.
        self._history.appendleft(trade)

    def open_from_trade(self, trade: Trade) -> Position:
        if not trade.success or trade.price is None:
            raise ValueError("cannot open a position from an unsuccessful trade")

        position = Position(
            id=_new_position_id(),
            pair=trade.pair,
            action=trade.action,
            entry_price=trade.price,
            amount=trade.amount,
            timestamp=trade.timestamp,
        )
        self._positions[position.id] = position
        return position

    def close_position(self, position: Position, exit_price: float, strategy: str = STOP_LOSS_STRATEGY) -> Trade:
        if position.id not in self._positions:
            raise KeyError(position.id)
        if exit_price <= 0:
            raise ValueError("exit_price must be > 0")

        pnl = position.unrealized_pnl(exit_price)
        trade = Trade(
            timestamp=datetime.now(timezone.utc),
            pair=position.pair,
            action=opposite(position.action),
            amount=position.amount,
            price=exit_price,
            strategy=strategy,
            success=True,
            pnl=pnl,
        )

        del self._positions[position.id]
        self.realized_pnl += pnl
        self._closed_notional += position.entry_price * position.amount
        self.record_trade(trade)
        return trade

    @property
    def pnl_percentage(self) -> float:
        """Realized PnL as a percentage of the entry value of every closed position."""
        if self._closed_notional <= 0:
            return 0.0
        return self.realized_pnl / self._closed_notional * 100.0

    def get_open_positions(self) -> List[Position]:
        return list(self._positions.values())

    def get_position(self, position_id: str) -> Optional[Position]:
        return self._positions.get(position_id)

    def get_trade_history(self) -> List[Trade]:
        return list(self._history)

    def clear(self) -> None:
        self._positions.clear()
        self._history.clear()
        self.realized_pnl = 0.0
        self._closed_notional = 0.0
