from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from solbotx.models.trade import Position, Trade


_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _ts() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _usd(x: float) -> str:
    return f"${x:,.2f}"


@dataclass
class ConsoleLogger:
    log_dir: str = "logs"
    log_file: str = "bot.log"
    log_level: str = "info"
    title: str = "SOLBOTX - SOL/USDC TRADING BOT"

    console: Console = field(default_factory=lambda: Console(encoding="utf-8"), init=False)
    file_logger: logging.Logger = field(default_factory=lambda: logging.getLogger("solbotx"), init=False)

    def __post_init__(self) -> None:
        os.makedirs(self.log_dir, exist_ok=True)

        level = _LEVELS.get(self.log_level.strip().lower(), logging.INFO)
        self.file_logger.setLevel(level)
        self.file_logger.propagate = False
        self.file_logger.handlers.clear()

        fh = logging.FileHandler(os.path.join(self.log_dir, self.log_file), encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
        self.file_logger.addHandler(fh)

        self._print_header()

    def _print_header(self) -> None:
        self.console.print(Panel(Text(self.title, style="bold cyan"), expand=False, border_style="cyan"))

    def _log(self, message: str, *, style: Optional[str] = None, level: int = logging.INFO) -> None:
        if level < self.file_logger.level:
            return
        prefix = f"[{_ts()}] "
        if style:
            self.console.print(prefix + message, style=style)
        else:
            self.console.print(prefix + message)
        self.file_logger.log(level, message)

    def log_wallet(self, public_key: str, balance: Optional[float]) -> None:
        shown = f"{public_key[:4]}...{public_key[-4:]}" if len(public_key) > 8 else public_key
        bal = f"{balance:.4f} SOL" if balance is not None else "unavailable"
        self._log(f"👛 Wallet connected: {shown} | Balance: {bal}", style="magenta")

    def log_state(self, state: str, strategy: str) -> None:
        self._log(f"🤖 Bot {state} | strategy={strategy}", style="bold cyan")

    def log_trade(self, trade: Trade) -> None:
        status = "✅" if trade.success else "⚠️"
        style = "green" if trade.success else "yellow"
        price = f"{trade.price:.2f}" if trade.price is not None else "n/a"
        self._log(
            f"{status} TRADE {trade.action.upper()} {trade.amount:.3f} {trade.pair} @ {price} "
            f"[{trade.strategy}] success={trade.success}",
            style=style,
        )

    def log_position_opened(self, position: Position, stop_price: float) -> None:
        self._log(
            f"📈 POSITION OPENED | {position.id} {position.action} {position.amount:.3f} {position.pair} "
            f"@ {position.entry_price:.2f} SL={stop_price:.2f}",
            style="bold green",
        )

    def log_stop_loss(self, message: str, trade: Trade) -> None:
        self._log(
            f"🛑 {message} | exit {trade.action} @ {trade.price:.2f} pnl={_usd(trade.pnl or 0.0)}",
            style="bold red",
        )

    def log_debug(self, message: str) -> None:
        self._log(message, style="dim", level=logging.DEBUG)

    def log_info(self, message: str) -> None:
        self._log(message)

    def log_error(self, message: str) -> None:
        self._log(f"❌ {message}", style="bold red", level=logging.ERROR)

    def log_summary(
        self,
        total_trades: int,
        stop_losses: int,
        open_positions: int,
        realized_pnl: float,
        pnl_percentage: float,
        potential_loss: float,
    ) -> None:
        self._log(
            f"📌 SUMMARY | trades={total_trades} stop_losses={stop_losses} open={open_positions} "
            f"pnl={_usd(realized_pnl)} ({pnl_percentage:+.2f}%) loss_at_stop={_usd(potential_loss)}",
            style="bold cyan",
        )
