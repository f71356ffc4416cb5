"""Discover a wallet's native and fungible balances from the ledger."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from ..config import WRAPPED_SOL_MINT, settings
from ..errors import DiscoveryFailed, TransportError
from ..providers.base import LedgerProvider, RawTokenBalance
from ..types.portfolio import DiscoveryResult, RawHolding
from .address import require_solana_address

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000
SOL_DECIMALS = 9


def to_display_units(raw_amount: int, decimals: int) -> Decimal:
    """Convert base units into display units (``raw / 10**decimals``)."""

    return Decimal(raw_amount) / (Decimal(10) ** decimals)


def merge_token_balances(balances: Iterable[RawTokenBalance]) -> List[RawHolding]:
    """Sum balances per mint and drop the ones that are zero.

    A wallet can own several token accounts for one mint; the result has
    exactly one RawHolding per mint, in first-seen order.
    """

    totals: Dict[str, int] = {}
    decimals_by_mint: Dict[str, int] = {}
    for balance in balances:
        if balance.raw_amount < 0:
            continue
        totals[balance.asset_id] = totals.get(balance.asset_id, 0) + balance.raw_amount
        decimals_by_mint.setdefault(balance.asset_id, balance.decimals)

    holdings: List[RawHolding] = []
    for mint, raw_amount in totals.items():
        quantity = to_display_units(raw_amount, decimals_by_mint[mint])
        if quantity == 0:
            continue
        holdings.append(
            RawHolding(asset_id=mint, quantity=quantity, raw_amount=raw_amount, decimals=decimals_by_mint[mint])
        )
    return holdings


class BalanceDiscovery:
    """Fetch the native SOL balance plus every non-zero token balance."""

    def __init__(
        self,
        provider: LedgerProvider,
        *,
        program_ids: Optional[List[str]] = None,
        include_native_holding: Optional[bool] = None,
    ) -> None:
        self.provider = provider
        self.program_ids = list(program_ids or settings.token_program_ids)
        self.include_native_holding = (
            settings.include_native_holding if include_native_holding is None else include_native_holding
        )

    async def discover(self, address: str) -> DiscoveryResult:
        address = require_solana_address(address)

        try:
            lamports = await self.provider.get_native_balance(address)
            balances: List[RawTokenBalance] = []
            for program_id in self.program_ids:
                balances.extend(await self.provider.get_fungible_holdings(address, program_id))
        except TransportError as exc:
            logger.error("Balance discovery failed for %s: %s", address, exc.message)
            raise DiscoveryFailed(address, exc.message) from exc

        native_balance = to_display_units(lamports, SOL_DECIMALS)
        if self.include_native_holding and lamports > 0:
            # Native SOL joins any wrapped-SOL token accounts as one wSOL holding.
            balances.insert(0, RawTokenBalance(WRAPPED_SOL_MINT, lamports, SOL_DECIMALS))
        holdings = merge_token_balances(balances)

        logger.info(
            "Discovered %d holdings for %s (native balance %s SOL)",
            len(holdings), address, native_balance,
        )
        return DiscoveryResult(address=address, native_balance=native_balance, holdings=tuple(holdings))
