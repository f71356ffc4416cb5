"""
Error taxonomy for portfolio queries.

Providers raise TransportError; the calling layer converts it into
InvalidAddress / DiscoveryFailed, or into a NotFound enrichment miss
(see solscope.types.portfolio) which is a value, not an exception.
"""

from typing import Optional


class PortfolioError(Exception):
    """Base class for errors surfaced by the portfolio pipeline."""

    code = "portfolio_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidAddress(PortfolioError):
    """The wallet address is not a well-formed Solana address."""

    code = "invalid_address"

    def __init__(self, address: str):
        super().__init__(f"Invalid Solana wallet address: {address!r}")
        self.address = address


class DiscoveryFailed(PortfolioError):
    """The ledger could not be queried; terminal for the query."""

    code = "discovery_failed"

    def __init__(self, address: str, reason: str):
        super().__init__(f"Failed to load balances for {address}: {reason}")
        self.address = address
        self.reason = reason


class TransportError(PortfolioError):
    """Network, HTTP or payload failure inside a provider call."""

    code = "transport_error"

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code


__all__ = [
    "PortfolioError",
    "InvalidAddress",
    "DiscoveryFailed",
    "TransportError",
]
