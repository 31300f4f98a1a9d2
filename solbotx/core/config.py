from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from solbotx.models.strategy import STRATEGY_TYPES, StrategyParams
from solbotx.models.trade import ACTIONS, StopLossConfig


def _getenv_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _getenv_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def _getenv_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw)


def _getenv_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


@dataclass(frozen=True)
class BotConfig:
    test_mode: bool
    mock_mode: bool

    trading_pair: str
    strategy_type: str
    trade_action: str
    order_amount: float

    stop_loss_enabled: bool
    stop_loss_percentage: float

    tick_interval_seconds: float
    strategy_interval_seconds: float

    success_rate: float
    price_band_min: float
    price_band_max: float
    price_perturbation_pct: float
    early_exit_check: bool
    early_exit_pct: float
    simulation_seed: Optional[int]

    trade_history_limit: int
    error_log_limit: int

    venue_timeout_seconds: float
    slippage_pct: float
    retry_attempts: int
    retry_delay_seconds: float

    solana_rpc_url: str
    jupiter_quote_api: str
    wallet_public_key: str

    log_level: str
    log_dir: str

    @classmethod
    def load(cls, dotenv_path: Optional[str] = None) -> "BotConfig":
        load_dotenv(dotenv_path=dotenv_path)

        return cls(
            test_mode=_getenv_bool("TEST_MODE", True),
            mock_mode=_getenv_bool("MOCK_MODE", True),
            trading_pair=os.getenv("TRADING_PAIR", "SOL/USDC"),
            strategy_type=os.getenv("STRATEGY_TYPE", "Multi-Indicator"),
            trade_action=os.getenv("TRADE_ACTION", "buy").strip().lower(),
            order_amount=_getenv_float("ORDER_AMOUNT", 0.5),
            stop_loss_enabled=_getenv_bool("STOP_LOSS_ENABLED", True),
            stop_loss_percentage=_getenv_float("STOP_LOSS_PERCENTAGE", 2.5),
            tick_interval_seconds=_getenv_float("TICK_INTERVAL_SECONDS", 10.0),
            strategy_interval_seconds=_getenv_float("STRATEGY_INTERVAL_SECONDS", 30.0),
            success_rate=_getenv_float("SUCCESS_RATE", 0.9),
            price_band_min=_getenv_float("PRICE_BAND_MIN", 50.0),
            price_band_max=_getenv_float("PRICE_BAND_MAX", 150.0),
            price_perturbation_pct=_getenv_float("PRICE_PERTURBATION_PCT", 3.0),
            early_exit_check=_getenv_bool("EARLY_EXIT_CHECK", False),
            early_exit_pct=_getenv_float("EARLY_EXIT_PCT", 5.0),
            simulation_seed=_getenv_optional_int("SIMULATION_SEED"),
            trade_history_limit=_getenv_int("TRADE_HISTORY_LIMIT", 10),
            error_log_limit=_getenv_int("ERROR_LOG_LIMIT", 100),
            venue_timeout_seconds=_getenv_float("VENUE_TIMEOUT_SECONDS", 15.0),
            slippage_pct=_getenv_float("SLIPPAGE_PCT", 1.0),
            retry_attempts=_getenv_int("RETRY_ATTEMPTS", 3),
            retry_delay_seconds=_getenv_float("RETRY_DELAY_SECONDS", 1.0),
            solana_rpc_url=os.getenv("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com"),
            jupiter_quote_api=os.getenv("JUPITER_QUOTE_API", "https://quote-api.jup.ag/v6/quote"),
            wallet_public_key=os.getenv("WALLET_PUBLIC_KEY", ""),
            log_level=os.getenv("LOG_LEVEL", "info"),
            log_dir=os.getenv("LOG_DIR", "logs"),
        )

    def validate(self) -> None:
        if self.strategy_type not in STRATEGY_TYPES:
            raise ValueError(f"STRATEGY_TYPE must be one of {STRATEGY_TYPES}")
        if self.trade_action not in ACTIONS:
            raise ValueError("TRADE_ACTION must be 'buy' or 'sell'")
        if self.order_amount <= 0:
            raise ValueError("ORDER_AMOUNT must be > 0")
        if self.stop_loss_percentage <= 0:
            raise ValueError("STOP_LOSS_PERCENTAGE must be > 0")
        if self.tick_interval_seconds <= 0:
            raise ValueError("TICK_INTERVAL_SECONDS must be > 0")
        if self.strategy_interval_seconds <= 0:
            raise ValueError("STRATEGY_INTERVAL_SECONDS must be > 0")
        if not (0.0 <= self.success_rate <= 1.0):
            raise ValueError("SUCCESS_RATE must be in [0, 1]")
        if not (0 < self.price_band_min < self.price_band_max):
            raise ValueError("PRICE_BAND_MIN must be > 0 and < PRICE_BAND_MAX")
        if self.price_perturbation_pct < 0:
            raise ValueError("PRICE_PERTURBATION_PCT must be >= 0")
        if self.early_exit_pct < 0:
            raise ValueError("EARLY_EXIT_PCT must be >= 0")
        if self.trade_history_limit <= 0:
            raise ValueError("TRADE_HISTORY_LIMIT must be > 0")
        if self.error_log_limit <= 0:
            raise ValueError("ERROR_LOG_LIMIT must be > 0")
        if self.venue_timeout_seconds <= 0:
            raise ValueError("VENUE_TIMEOUT_SECONDS must be > 0")
        if self.slippage_pct < 0:
            raise ValueError("SLIPPAGE_PCT must be >= 0")
        if self.retry_attempts <= 0:
            raise ValueError("RETRY_ATTEMPTS must be > 0")
        if self.retry_delay_seconds < 0:
            raise ValueError("RETRY_DELAY_SECONDS must be >= 0")

    def stop_loss_config(self) -> StopLossConfig:
        return StopLossConfig(enabled=self.stop_loss_enabled, percentage=self.stop_loss_percentage)

    def strategy_params(self) -> StrategyParams:
        return StrategyParams(
            type=self.strategy_type,
            pair=self.trading_pair,
            action=self.trade_action,  # type: ignore[arg-type]
            amount=self.order_amount,
        )
