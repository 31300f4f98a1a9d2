from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import requests

from solbotx.core.errors import ErrorLogger, ErrorType, NetworkError, WalletError, with_retry


LAMPORTS_PER_SOL = 1_000_000_000

_BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


class WalletProvider(Protocol):
    @property
    def is_connected(self) -> bool: ...

    def connect(self) -> str: ...

    def disconnect(self) -> None: ...


def _random_public_key(rng: random.Random) -> str:
    return "".join(rng.choice(_BASE58_ALPHABET) for _ in range(44))


@dataclass
class MockWalletProvider:
    """Phantom-style wallet with no extension behind it."""

    public_key: str = ""
    trusted: bool = False

    _connected: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        if not self.public_key:
            self.public_key = _random_public_key(random.Random())
        if any(c not in _BASE58_ALPHABET for c in self.public_key):
            raise WalletError(f"Invalid wallet public key: {self.public_key!r}")

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self, only_if_trusted: bool = False) -> str:
        if only_if_trusted and not self.trusted:
            raise WalletError("Wallet has not approved this app yet")
        self._connected = True
        self.trusted = True
        return self.public_key

    def disconnect(self) -> None:
        self._connected = False


@dataclass
class SolanaRpcClient:
    rpc_url: str = "https://api.mainnet-beta.solana.com"
    mock_mode: bool = True
    error_logger: Optional[ErrorLogger] = None
    retry_attempts: int = 3
    retry_delay_seconds: float = 1.0
    timeout_seconds: float = 15.0

    mock_balance: float = 12.5

    async def get_balance(self, public_key: str) -> Optional[float]:
        """SOL balance of ``public_key``, or None when the RPC node can't be reached."""

        if self.mock_mode:
            return self.mock_balance

        try:
            lamports = await with_retry(
                lambda: self._rpc_call("getBalance", [public_key]),
                max_retries=self.retry_attempts,
                delay=self.retry_delay_seconds,
            )
        except Exception as e:
            if self.error_logger is not None:
                self.error_logger.log_exception(e, {"public_key": public_key}, default=ErrorType.NETWORK_ERROR)
            return None

        return _lamports_to_sol(lamports)

    async def _rpc_call(self, method: str, params: list[Any]) -> Any:
        def _do() -> Any:
            resp = requests.post(
                self.rpc_url,
                json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
                timeout=self.timeout_seconds,
            )
            resp.raise_for_status()
            return resp.json()

        payload = await asyncio.to_thread(_do)
        if not isinstance(payload, dict):
            raise NetworkError(f"Unexpected RPC response for {method}")
        if payload.get("error"):
            raise NetworkError(f"RPC {method} failed: {payload['error']}")

        result = payload.get("result")
        if isinstance(result, dict):
            return result.get("value")
        return result


def _lamports_to_sol(lamports: Any) -> Optional[float]:
    if lamports is None:
        return None
    try:
        return float(lamports) / LAMPORTS_PER_SOL
    except (TypeError, ValueError):
        return None
