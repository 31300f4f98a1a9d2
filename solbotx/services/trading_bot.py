from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Protocol, Tuple

from solbotx.connectors.jupiter_connector import ExecutionResult, ExecutionVenue, Quote, mints_for_pair
from solbotx.connectors.wallet import WalletProvider
from solbotx.core.errors import ErrorLogger, ErrorType, classify, user_friendly_message
from solbotx.core.position_manager import PositionManager
from solbotx.core.simulation import MarketSimulator
from solbotx.core.stop_loss import compute_threshold, format_trigger_message, is_triggered
from solbotx.models.strategy import StrategyParams
from solbotx.models.trade import DEFAULT_STOP_LOSS_CONFIG, Position, StopLossConfig, Trade


class Logger(Protocol):
    def log_error(self, message: str) -> None: ...

    def log_info(self, message: str) -> None: ...


class BotState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class TickReport:
    trades: Tuple[Trade, ...] = ()
    opened: Tuple[Position, ...] = ()
    stop_losses: Tuple[Tuple[str, Trade], ...] = ()


@dataclass(frozen=True)
class BotSnapshot:
    state: BotState
    open_positions: Tuple[Position, ...]
    trade_history: Tuple[Trade, ...]
    last_trigger_message: str
    last_error: Optional[str]
    last_tick: Optional[TickReport]
    realized_pnl: float = 0.0
    pnl_percentage: float = 0.0


Subscriber = Callable[[BotSnapshot], None]

_VENUE_FAILURE_KINDS = frozenset({ErrorType.NETWORK_ERROR, ErrorType.API_ERROR})


@dataclass
class TradingBotService:
    """Owns the open positions and trade history and drives them tick by tick.

    In test mode every tick trades against ``simulator``; otherwise the tick
    asks ``venue`` for a swap. Either way the stop-loss sweep prices open
    positions with ``simulator.perturb`` since there is no live market feed.
    """

    params: StrategyParams
    simulator: MarketSimulator
    logger: Logger
    error_logger: ErrorLogger

    stop_loss_config: StopLossConfig = DEFAULT_STOP_LOSS_CONFIG
    test_mode: bool = True
    wallet: Optional[WalletProvider] = None
    venue: Optional[ExecutionVenue] = None

    tick_interval_seconds: float = 10.0
    strategy_interval_seconds: float = 30.0
    venue_timeout_seconds: float = 15.0
    slippage_pct: float = 1.0
    early_exit_check: bool = False
    history_limit: int = 10

    positions: PositionManager = field(init=False)

    _running: bool = field(default=False, init=False)
    _stop_event: asyncio.Event | None = field(default=None, init=False, repr=False)
    _subscribers: List[Subscriber] = field(default_factory=list, init=False, repr=False)
    _last_trigger_message: str = field(default="", init=False)
    _last_error: Optional[str] = field(default=None, init=False)
    _last_tick: Optional[TickReport] = field(default=None, init=False)

    def __post_init__(self) -> None:
        if not self.test_mode and self.venue is None:
            raise ValueError("an execution venue is required when test_mode is off")
        if self.tick_interval_seconds <= 0 or self.strategy_interval_seconds <= 0:
            raise ValueError("tick intervals must be > 0")
        self.positions = PositionManager(history_limit=self.history_limit)

    @property
    def state(self) -> BotState:
        return BotState.RUNNING if self._running else BotState.STOPPED

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def interval_seconds(self) -> float:
        return self.tick_interval_seconds if self.test_mode else self.strategy_interval_seconds

    @property
    def last_trigger_message(self) -> str:
        return self._last_trigger_message

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def may_trade(self) -> bool:
        return self.wallet is None or self.wallet.is_connected

    def activate(self) -> bool:
        if self._running:
            return True

        if not self.may_trade():
            err = self.error_logger.log(ErrorType.WALLET_ERROR, "Wallet not connected")
            self._last_error = user_friendly_message(err)
            self._notify()
            return False

        self._running = True
        self._stop_event = asyncio.Event()
        self._last_trigger_message = ""
        self._last_error = None
        self.logger.log_info(
            f"Starting bot | strategy={self.params.type} pair={self.params.pair} "
            f"test_mode={self.test_mode} stop_loss={self.stop_loss_config.percentage}% "
            f"({'on' if self.stop_loss_config.enabled else 'off'})"
        )
        self._notify()
        return True

    async def start(self) -> None:
        if not self.activate():
            return

        # A stop() followed by a new activate() swaps in a fresh event, which
        # retires this loop even though _running is True again.
        run_event = self._stop_event

        while self._is_current_run(run_event):
            started = time.monotonic()
            await self.run_tick()
            elapsed = time.monotonic() - started

            if not self._is_current_run(run_event):
                break

            sleep_for = max(0.0, self.interval_seconds - elapsed)

            # Allow stop() to interrupt the sleep.
            try:
                if run_event is not None:
                    await asyncio.wait_for(run_event.wait(), timeout=sleep_for)
                else:
                    await asyncio.sleep(sleep_for)
            except asyncio.TimeoutError:
                pass

    def _is_current_run(self, run_event: asyncio.Event | None) -> bool:
        return self._running and self._stop_event is run_event

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        self.logger.log_info("Stopping bot...")
        self._notify()

    async def run_tick(self) -> None:
        if not self._running:
            return

        try:
            self._last_tick = await self._tick()
        except Exception as e:
            err = self.error_logger.log_exception(e, {"strategy": self.params.type}, default=ErrorType.STRATEGY_ERROR)
            self._last_error = user_friendly_message(err)
            self._last_tick = None
            self._running = False
            if self._stop_event is not None:
                self._stop_event.set()

        self._notify()

    async def _tick(self) -> TickReport:
        trades: List[Trade] = []
        opened: List[Position] = []
        stop_losses: List[Tuple[str, Trade]] = []

        trade = await self._next_trade()
        self.positions.record_trade(trade)
        trades.append(trade)

        if trade.success:
            opened.append(self.positions.open_from_trade(trade))

        # Config is read once so a swap mid-sweep can't split the evaluation.
        config = self.stop_loss_config

        for position in self.positions.get_open_positions():
            current_price = self.simulator.perturb(position.entry_price)
            closed = self._apply_stop_loss(position, current_price, config)
            if closed is not None:
                stop_losses.append(closed)
                trades.append(closed[1])

        if self.early_exit_check:
            for position in self.positions.get_open_positions():
                current_price = self.simulator.slip(position.entry_price)
                closed = self._apply_stop_loss(position, current_price, config)
                if closed is not None:
                    stop_losses.append(closed)
                    trades.append(closed[1])

        return TickReport(trades=tuple(trades), opened=tuple(opened), stop_losses=tuple(stop_losses))

    def _apply_stop_loss(
        self,
        position: Position,
        current_price: float,
        config: StopLossConfig,
    ) -> Optional[Tuple[str, Trade]]:
        if not is_triggered(position, current_price, config):
            return None

        message = format_trigger_message(position, current_price, config)
        exit_trade = self.positions.close_position(position, exit_price=current_price)
        self._last_trigger_message = message
        self.logger.log_info(message)
        return message, exit_trade

    async def _next_trade(self) -> Trade:
        if self.test_mode:
            return self.simulator.next_synthetic_trade(self.params)
        return await self._venue_trade()

    async def _venue_trade(self) -> Trade:
        venue = self.venue
        if venue is None:
            raise ValueError("an execution venue is required when test_mode is off")

        input_mint, output_mint = mints_for_pair(self.params.pair)
        if self.params.action == "buy":
            input_mint, output_mint = output_mint, input_mint

        quotes: List[Quote] = []

        async def _swap() -> ExecutionResult:
            quote = await venue.quote(input_mint, output_mint, self.params.amount, self.slippage_pct)
            quotes.append(quote)
            return await venue.execute(quote)

        details = {"pair": self.params.pair, "strategy": self.params.type}
        try:
            result = await asyncio.wait_for(_swap(), timeout=self.venue_timeout_seconds)
        except asyncio.TimeoutError:
            self.error_logger.log(
                ErrorType.NETWORK_ERROR,
                f"Execution venue timed out after {self.venue_timeout_seconds:.1f}s",
                details,
            )
            return self._failed_trade(quotes[0] if quotes else None)
        except Exception as e:
            if classify(e) not in _VENUE_FAILURE_KINDS:
                raise
            self.error_logger.log_exception(e, details)
            return self._failed_trade(quotes[0] if quotes else None)

        quote = quotes[0]
        if not result.success:
            self.error_logger.log(
                ErrorType.TRANSACTION_ERROR,
                f"Trade failed: {result.error or 'unknown error'}",
                details,
            )
            return self._failed_trade(quote)

        in_amount = result.input_amount or quote.in_amount
        out_amount = result.output_amount or quote.out_amount
        amount, price = self._fill(in_amount, out_amount)

        return Trade(
            timestamp=datetime.now(timezone.utc),
            pair=self.params.pair,
            action=self.params.action,
            amount=amount,
            price=price,
            strategy=self.params.type,
            success=True,
            signature=result.signature,
        )

    def _fill(self, in_amount: float, out_amount: float) -> Tuple[float, float]:
        # Price is quote asset per base asset; a buy spends quote to receive base.
        if self.params.action == "sell":
            return in_amount, out_amount / in_amount
        return out_amount, in_amount / out_amount

    def _failed_trade(self, quote: Optional[Quote] = None) -> Trade:
        # Without a fill, the quoted rate is the only known price.
        price: Optional[float] = None
        if quote is not None and quote.in_amount > 0 and quote.out_amount > 0:
            _, price = self._fill(quote.in_amount, quote.out_amount)
        return Trade(
            timestamp=datetime.now(timezone.utc),
            pair=self.params.pair,
            action=self.params.action,
            amount=self.params.amount,
            price=price,
            strategy=self.params.type,
            success=False,
        )

    def get_open_positions(self) -> List[Position]:
        return self.positions.get_open_positions()

    def get_trade_history(self) -> List[Trade]:
        return self.positions.get_trade_history()

    def stop_price(self, position: Position) -> float:
        return compute_threshold(position, self.stop_loss_config)

    def snapshot(self) -> BotSnapshot:
        return BotSnapshot(
            state=self.state,
            open_positions=tuple(self.positions.get_open_positions()),
            trade_history=tuple(self.positions.get_trade_history()),
            last_trigger_message=self._last_trigger_message,
            last_error=self._last_error,
            last_tick=self._last_tick,
            realized_pnl=self.positions.realized_pnl,
            pnl_percentage=self.positions.pnl_percentage,
        )

    def subscribe(self, callback: Subscriber) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _notify(self) -> None:
        if not self._subscribers:
            return
        snap = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snap)
            except Exception as e:
                self.logger.log_error(f"subscriber error: {e}")
