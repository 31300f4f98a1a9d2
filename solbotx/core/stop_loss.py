from __future__ import annotations

from solbotx.models.trade import DEFAULT_STOP_LOSS_CONFIG, Position, StopLossConfig


class StopLossConfigError(ValueError):
    pass


def compute_threshold(position: Position, config: StopLossConfig = DEFAULT_STOP_LOSS_CONFIG) -> float:
    """Price at which ``position`` is stopped out.

    Longs stop below entry and shorts stop above it, by ``config.percentage`` percent.
    """

    if position.action == "buy":
        return position.entry_price * (1.0 - config.percentage / 100.0)
    if position.action == "sell":
        return position.entry_price * (1.0 + config.percentage / 100.0)
    raise StopLossConfigError(f"Unsupported position action: {position.action!r}")


def is_triggered(
    position: Position,
    current_price: float,
    config: StopLossConfig = DEFAULT_STOP_LOSS_CONFIG,
) -> bool:
    if not config.enabled:
        return False

    threshold = compute_threshold(position, config)
    if position.action == "buy":
        return current_price <= threshold
    return current_price >= threshold


def format_trigger_message(
    position: Position,
    current_price: float,
    config: StopLossConfig = DEFAULT_STOP_LOSS_CONFIG,
) -> str:
    direction = "dropped" if position.action == "buy" else "increased"
    return (
        f"Stop loss triggered for {position.pair}: Price {direction} to {current_price:.2f} "
        f"({config.percentage}% from entry price of {position.entry_price:.2f})"
    )


def potential_loss_at_stop(position: Position, config: StopLossConfig = DEFAULT_STOP_LOSS_CONFIG) -> float:
    threshold = compute_threshold(position, config)
    return abs(threshold - position.entry_price) * position.amount
