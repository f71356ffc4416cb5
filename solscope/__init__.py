"""Enriched, risk-scored snapshots of Solana wallet portfolios."""

__version__ = "0.1.0"
