"""Helpers for validating Solana wallet addresses."""

from __future__ import annotations

from functools import lru_cache

from ..errors import InvalidAddress

_BASE58_ALPHABET = set("123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz")


def normalize_address(address: str | None) -> str:
    """Strip surrounding whitespace from user input."""

    return (address or "").strip()


@lru_cache(maxsize=128)
def is_valid_solana_address(address: str) -> bool:
    if not address:
        return False
    length = len(address)
    if length < 32 or length > 44:
        return False
    return all(ch in _BASE58_ALPHABET for ch in address)


def require_solana_address(address: str | None) -> str:
    """Return the normalized address or raise InvalidAddress."""

    normalized = normalize_address(address)
    if not is_valid_solana_address(normalized):
        raise InvalidAddress(address or "")
    return normalized


__all__ = [
    "normalize_address",
    "is_valid_solana_address",
    "require_solana_address",
]
