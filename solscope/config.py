from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

SPL_TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
USDT_MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Ledger RPC (Helius)
    helius_api_key: str = Field(
        default="",
        description="Helius API key used for Solana RPC balance discovery",
        validation_alias=AliasChoices("helius_api_key", "HELIUS_API_KEY", "VITE_HELIUS_API_KEY"),
    )
    solana_rpc_url: str = Field(
        default="https://mainnet.helius-rpc.com",
        description="Solana JSON-RPC endpoint",
    )
    token_program_ids: List[str] = Field(
        default_factory=lambda: [SPL_TOKEN_PROGRAM_ID],
        description="Token programs scanned for fungible balances",
    )

    # Market data (DexScreener)
    market_data_base_url: str = Field(
        default="https://api.dexscreener.com/latest/dex",
        description="Base URL for the DexScreener token pairs API",
    )

    # Rate Limiting / Timeouts
    request_timeout_seconds: int = Field(default=20, description="Outbound request timeout")
    enrichment_delay_seconds: float = Field(
        default=0.2,
        ge=0,
        description="Delay between two consecutive market data lookups",
    )
    query_deadline_seconds: Optional[float] = Field(
        default=120.0,
        description="Seconds before pending enrichments are abandoned (None disables)",
    )

    # Portfolio policy
    include_native_holding: bool = Field(
        default=False,
        description="Enrich native SOL as a synthetic wrapped-SOL holding",
    )
    known_stable_mints: List[str] = Field(
        default_factory=lambda: [WRAPPED_SOL_MINT, USDC_MINT, USDT_MINT],
        description="Mints always classified as the stable risk tier",
    )
    small_asset_floor_usd: float = Field(
        default=1.0,
        ge=0,
        description="Default USD floor used by the hide-small-assets filter",
    )

    @property
    def has_helius_key(self) -> bool:
        return bool(self.helius_api_key)


# Global settings instance
settings = Settings()
