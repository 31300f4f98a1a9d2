from datetime import datetime, timezone

import pytest

from solbotx.core.errors import StrategyError
from solbotx.models.strategy import Indicator, StrategyParams
from solbotx.models.trade import Position, StopLossConfig, Trade, opposite


def test_position_rejects_unknown_direction() -> None:
    with pytest.raises(ValueError):
        Position(
            id="p",
            pair="SOL/USDC",
            action="hold",  # type: ignore[arg-type]
            entry_price=100.0,
            amount=1.0,
            timestamp=datetime.now(timezone.utc),
        )


def test_position_requires_positive_price_and_amount() -> None:
    now = datetime.now(timezone.utc)
    with pytest.raises(ValueError):
        Position(id="p", pair="SOL/USDC", action="buy", entry_price=0.0, amount=1.0, timestamp=now)
    with pytest.raises(ValueError):
        Position(id="p", pair="SOL/USDC", action="buy", entry_price=10.0, amount=0.0, timestamp=now)


def test_trade_rejects_unknown_direction() -> None:
    with pytest.raises(ValueError):
        Trade(
            timestamp=datetime.now(timezone.utc),
            pair="SOL/USDC",
            action="BUY",  # type: ignore[arg-type]
            amount=1.0,
            price=10.0,
            strategy="Mean Reversion",
            success=True,
        )


def test_opposite_and_unrealized_pnl() -> None:
    assert opposite("buy") == "sell"
    assert opposite("sell") == "buy"

    now = datetime.now(timezone.utc)
    long = Position(id="a", pair="SOL/USDC", action="buy", entry_price=100.0, amount=2.0, timestamp=now)
    short = Position(id="b", pair="SOL/USDC", action="sell", entry_price=100.0, amount=2.0, timestamp=now)
    assert long.unrealized_pnl(110.0) == 20.0
    assert short.unrealized_pnl(110.0) == -20.0


def test_stop_loss_config_toggle_returns_new_config() -> None:
    cfg = StopLossConfig()
    off = cfg.with_enabled(False)

    assert cfg.enabled is True
    assert off.enabled is False
    assert off.percentage == cfg.percentage

    with pytest.raises(ValueError):
        StopLossConfig(percentage=0.0)


def test_strategy_params_validation() -> None:
    params = StrategyParams()
    assert params.type == "Multi-Indicator"
    assert params.pair == "SOL/USDC"
    assert [i.type for i in params.indicators] == ["SMA", "RSI", "MACD"]
    assert params.as_dict()["indicators"][2]["parameters"] == {"fast": 12, "slow": 26}

    with pytest.raises(StrategyError):
        StrategyParams(type="Martingale")
    with pytest.raises(StrategyError):
        StrategyParams(amount=0)
    with pytest.raises(StrategyError):
        Indicator(type="VWAP")


def test_indicator_defaults_can_be_overridden() -> None:
    bb = Indicator.with_defaults("Bollinger Bands", {"deviation": 3})
    assert bb.parameters == {"period": 20, "deviation": 3}


def test_only_failed_trades_may_lack_a_price() -> None:
    now = datetime.now(timezone.utc)
    failed = Trade(timestamp=now, pair="SOL/USDC", action="buy", amount=0.5, price=None, strategy="Mean Reversion", success=False)
    assert failed.price is None

    with pytest.raises(ValueError):
        Trade(timestamp=now, pair="SOL/USDC", action="buy", amount=0.5, price=None, strategy="Mean Reversion", success=True)
