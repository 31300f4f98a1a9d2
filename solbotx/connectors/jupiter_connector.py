from __future__ import annotations

import asyncio
import random
import string
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Tuple

import requests

from solbotx.connectors.wallet import WalletProvider
from solbotx.core.errors import ApiError, TransactionError, with_retry


JUPITER_QUOTE_API = "https://quote-api.jup.ag/v6/quote"

SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

TOKEN_DECIMALS: Dict[str, int] = {SOL_MINT: 9, USDC_MINT: 6}

PAIR_MINTS: Dict[str, Tuple[str, str]] = {
    "SOL/USDC": (SOL_MINT, USDC_MINT),
    "USDC/SOL": (USDC_MINT, SOL_MINT),
}


@dataclass(frozen=True)
class Quote:
    input_mint: str
    output_mint: str
    in_amount: float
    out_amount: float
    slippage_bps: int
    route: Tuple[str, ...]
    price_impact_pct: float = 0.0


@dataclass(frozen=True)
class ExecutionResult:
    success: bool
    signature: Optional[str] = None
    error: Optional[str] = None
    input_amount: float = 0.0
    output_amount: float = 0.0


class ExecutionVenue(Protocol):
    async def quote(self, input_mint: str, output_mint: str, amount: float, slippage_pct: float) -> Quote: ...

    async def execute(self, quote: Quote) -> ExecutionResult: ...


def mints_for_pair(pair: str) -> Tuple[str, str]:
    try:
        return PAIR_MINTS[pair.upper()]
    except KeyError:
        raise ApiError(f"No mint mapping for pair {pair!r}") from None


@dataclass
class JupiterClient:
    """Swap venue client. Mock mode returns canned quotes and fake signatures."""

    wallet: Optional[WalletProvider] = None
    quote_api: str = JUPITER_QUOTE_API
    mock_mode: bool = True
    timeout_seconds: float = 15.0
    retry_attempts: int = 3
    retry_delay_seconds: float = 1.0

    async def quote(self, input_mint: str, output_mint: str, amount: float, slippage_pct: float) -> Quote:
        if amount <= 0:
            raise ValueError("amount must be > 0")
        if slippage_pct < 0:
            raise ValueError("slippage_pct must be >= 0")

        slippage_bps = int(round(slippage_pct * 100))

        if self.mock_mode:
            return Quote(
                input_mint=input_mint,
                output_mint=output_mint,
                in_amount=amount,
                out_amount=amount * 1.02,
                slippage_bps=slippage_bps,
                route=("Orca",),
                price_impact_pct=0.1,
            )

        in_decimals = TOKEN_DECIMALS.get(input_mint, 9)
        out_decimals = TOKEN_DECIMALS.get(output_mint, 9)
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(int(amount * 10**in_decimals)),
            "slippageBps": slippage_bps,
        }
        payload = await with_retry(
            lambda: self._get_json(params),
            max_retries=self.retry_attempts,
            delay=self.retry_delay_seconds,
        )
        return _parse_quote(payload, input_mint, output_mint, slippage_bps, in_decimals, out_decimals)

    async def execute(self, quote: Quote) -> ExecutionResult:
        if self.wallet is not None and not self.wallet.is_connected:
            return ExecutionResult(success=False, error="Wallet not connected")

        if not self.mock_mode:
            raise TransactionError("Real swap execution is not enabled in this repository.")

        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=13))
        return ExecutionResult(
            success=True,
            signature=f"mock_transaction_{suffix}",
            input_amount=quote.in_amount,
            output_amount=quote.out_amount,
        )

    async def _get_json(self, params: Dict[str, Any]) -> Any:
        def _do() -> Any:
            resp = requests.get(self.quote_api, params=params, timeout=self.timeout_seconds)
            resp.raise_for_status()
            return resp.json()

        return await asyncio.to_thread(_do)


def _parse_quote(
    payload: Any,
    input_mint: str,
    output_mint: str,
    slippage_bps: int,
    in_decimals: int,
    out_decimals: int,
) -> Quote:
    if not isinstance(payload, dict):
        raise ApiError("Unexpected quote response")

    try:
        in_amount = float(payload["inAmount"]) / 10**in_decimals
        out_amount = float(payload["outAmount"]) / 10**out_decimals
    except (KeyError, TypeError, ValueError) as e:
        raise ApiError(f"Malformed quote response: {e}") from e

    labels = []
    for step in payload.get("routePlan") or []:
        info = step.get("swapInfo") if isinstance(step, dict) else None
        if isinstance(info, dict) and info.get("label"):
            labels.append(str(info["label"]))

    try:
        impact = float(payload.get("priceImpactPct") or 0.0)
    except (TypeError, ValueError):
        impact = 0.0

    return Quote(
        input_mint=input_mint,
        output_mint=output_mint,
        in_amount=in_amount,
        out_amount=out_amount,
        slippage_bps=int(payload.get("slippageBps", slippage_bps)),
        route=tuple(labels),
        price_impact_pct=impact,
    )
