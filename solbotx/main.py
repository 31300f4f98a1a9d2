from __future__ import annotations

import asyncio
import signal
from typing import Optional

from solbotx.connectors.jupiter_connector import JupiterClient
from solbotx.connectors.wallet import MockWalletProvider, SolanaRpcClient
from solbotx.core.config import BotConfig
from solbotx.core.errors import ErrorLogger, WalletError
from solbotx.core.position_manager import STOP_LOSS_STRATEGY
from solbotx.core.simulation import RandomMarketSimulator
from solbotx.core.stop_loss import potential_loss_at_stop
from solbotx.logger.console_logger import ConsoleLogger
from solbotx.services.trading_bot import BotSnapshot, TradingBotService


def _report_tick(logger: ConsoleLogger, bot: TradingBotService):
    def _on_change(snap: BotSnapshot) -> None:
        tick = snap.last_tick
        if tick is None:
            return
        closing = {id(trade) for _, trade in tick.stop_losses}
        for trade in tick.trades:
            if id(trade) not in closing:
                logger.log_trade(trade)
        for position in tick.opened:
            logger.log_position_opened(position, bot.stop_price(position))
        for message, trade in tick.stop_losses:
            logger.log_stop_loss(message, trade)
        logger.log_debug(f"open positions={len(snap.open_positions)} history={len(snap.trade_history)}")

    return _on_change


async def run_bot(cfg: BotConfig, logger: ConsoleLogger) -> TradingBotService:
    error_logger = ErrorLogger(capacity=cfg.error_log_limit, sink=logger)

    wallet = MockWalletProvider(public_key=cfg.wallet_public_key)
    try:
        public_key = wallet.connect()
    except WalletError as e:
        error_logger.log_exception(e)
        raise

    rpc = SolanaRpcClient(
        rpc_url=cfg.solana_rpc_url,
        mock_mode=cfg.mock_mode,
        error_logger=error_logger,
        retry_attempts=cfg.retry_attempts,
        retry_delay_seconds=cfg.retry_delay_seconds,
    )
    logger.log_wallet(public_key, await rpc.get_balance(public_key))

    simulator = RandomMarketSimulator(
        seed=cfg.simulation_seed,
        success_rate=cfg.success_rate,
        price_min=cfg.price_band_min,
        price_max=cfg.price_band_max,
        perturbation_pct=cfg.price_perturbation_pct,
        slip_pct=cfg.early_exit_pct,
    )

    venue: Optional[JupiterClient] = None
    if not cfg.test_mode:
        venue = JupiterClient(
            wallet=wallet,
            quote_api=cfg.jupiter_quote_api,
            mock_mode=cfg.mock_mode,
            timeout_seconds=cfg.venue_timeout_seconds,
            retry_attempts=cfg.retry_attempts,
            retry_delay_seconds=cfg.retry_delay_seconds,
        )

    bot = TradingBotService(
        params=cfg.strategy_params(),
        simulator=simulator,
        logger=logger,
        error_logger=error_logger,
        stop_loss_config=cfg.stop_loss_config(),
        test_mode=cfg.test_mode,
        wallet=wallet,
        venue=venue,
        tick_interval_seconds=cfg.tick_interval_seconds,
        strategy_interval_seconds=cfg.strategy_interval_seconds,
        venue_timeout_seconds=cfg.venue_timeout_seconds,
        slippage_pct=cfg.slippage_pct,
        early_exit_check=cfg.early_exit_check,
        history_limit=cfg.trade_history_limit,
    )
    bot.subscribe(_report_tick(logger, bot))

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, bot.stop)
        except NotImplementedError:
            # add_signal_handler is not available on some platforms.
            pass

    logger.log_state("started", cfg.strategy_type)
    await bot.start()
    logger.log_state("stopped", cfg.strategy_type)

    if bot.last_error:
        logger.log_error(bot.last_error)

    return bot


def _summarize(logger: ConsoleLogger, bot: TradingBotService) -> None:
    history = bot.get_trade_history()
    open_positions = bot.get_open_positions()
    stop_losses = sum(1 for t in history if t.strategy == STOP_LOSS_STRATEGY)
    exposure = sum(potential_loss_at_stop(p, bot.stop_loss_config) for p in open_positions)
    logger.log_summary(
        len(history),
        stop_losses,
        len(open_positions),
        bot.positions.realized_pnl,
        bot.positions.pnl_percentage,
        exposure,
    )
    if bot.last_trigger_message:
        logger.log_info(f"Last stop loss: {bot.last_trigger_message}")


def main() -> None:
    cfg = BotConfig.load()
    cfg.validate()

    logger = ConsoleLogger(log_dir=cfg.log_dir, log_level=cfg.log_level)

    try:
        bot = asyncio.run(run_bot(cfg, logger))
    except KeyboardInterrupt:
        return

    _summarize(logger, bot)


if __name__ == "__main__":
    main()
