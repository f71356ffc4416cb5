"""Helius-backed Solana JSON-RPC balance provider."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..errors import TransportError
from .base import LedgerProvider, RawTokenBalance


class SolanaRpcProvider(LedgerProvider):
    """Fetch SOL and SPL token balances over Solana JSON-RPC."""

    name = "helius"
    timeout_s = 20

    def __init__(self, rpc_url: Optional[str] = None, api_key: Optional[str] = None) -> None:
        self.api_key = settings.helius_api_key if api_key is None else api_key
        self.rpc_url = (rpc_url or settings.solana_rpc_url).rstrip("/")
        self.timeout_s = settings.request_timeout_seconds or self.timeout_s
        self._client: Optional[httpx.AsyncClient] = None
        self._request_id = 0

    async def ready(self) -> bool:
        return bool(self.api_key)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "API key not configured"}
        # Avoid hitting the RPC on every health check - report configured state.
        return {"status": "configured"}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout_s)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _rpc_call(self, method: str, params: list[Any]) -> Any:
        client = await self._get_client()
        self._request_id += 1
        params_qs = {"api-key": self.api_key} if self.api_key else None

        try:
            response = await client.post(
                self.rpc_url,
                params=params_qs,
                json={"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise TransportError(self.name, f"{method} returned HTTP {exc.response.status_code}",
                                 status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            raise TransportError(self.name, f"{method} request failed: {exc}") from exc
        except ValueError as exc:
            raise TransportError(self.name, f"{method} returned invalid JSON") from exc

        if not isinstance(payload, dict):
            raise TransportError(self.name, f"Unexpected {method} response")
        if payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise TransportError(self.name, f"{method} error: {message}")
        return payload.get("result")

    async def get_native_balance(self, address: str) -> int:
        result = await self._rpc_call("getBalance", [address])
        value = result.get("value") if isinstance(result, dict) else result
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise TransportError(self.name, "getBalance returned a non-integer balance") from exc

    async def get_fungible_holdings(self, address: str, program_id: str) -> List[RawTokenBalance]:
        result = await self._rpc_call(
            "getTokenAccountsByOwner",
            [address, {"programId": program_id}, {"encoding": "jsonParsed"}],
        )
        accounts = result.get("value") if isinstance(result, dict) else None
        if not isinstance(accounts, list):
            raise TransportError(self.name, "getTokenAccountsByOwner returned no account list")

        balances: List[RawTokenBalance] = []
        for account in accounts:
            info = _parsed_info(account)
            if info is None:
                continue
            mint = info.get("mint")
            token_amount = info.get("tokenAmount") or {}
            if not isinstance(mint, str) or not mint or not isinstance(token_amount, dict):
                continue
            try:
                raw_amount = int(token_amount.get("amount") or 0)
                decimals = int(token_amount.get("decimals") or 0)
            except (TypeError, ValueError):
                continue
            balances.append(RawTokenBalance(asset_id=mint, raw_amount=raw_amount, decimals=decimals))

        return balances


def _parsed_info(account: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(account, dict):
        return None
    inner = account.get("account")
    if not isinstance(inner, dict):
        return None
    data = inner.get("data")
    if not isinstance(data, dict):
        return None
    # base64-encoded accounts (non-parsable programs) have no "parsed" object
    parsed = data.get("parsed")
    if not isinstance(parsed, dict):
        return None
    info = parsed.get("info")
    return info if isinstance(info, dict) else None
