from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict


class DailyPackPolicy(str, Enum):
    """
    How the free daily pack allowance is decided.

    COOLDOWN: once per rolling window since the last daily pack (default)
    ALWAYS: a daily pack is always available
    INVENTORY_GATED: a daily pack is available only while the inventory is empty
    """

    COOLDOWN = "cooldown"
    ALWAYS = "always"
    INVENTORY_GATED = "inventory_gated"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "Corporate Legends"
    debug: bool = False

    database_url: str = "sqlite+aiosqlite:///./corplegends.db"

    # Pack economy
    pack_size: int = 5
    daily_pack_policy: DailyPackPolicy = DailyPackPolicy.COOLDOWN
    daily_cooldown_hours: float = 24.0
    starter_pack_grant: int = 1
    # Onboarding override: element N holds the fixed card ids for pack N+1
    starter_sequences: list[list[int]] = []

    # Roster provider
    roster_size: int = 250
    anthropic_api_key: str = ""
    roster_model: str = "claude-sonnet-4-20250514"
    roster_url: str = ""

    # Storage quota per persisted value (bytes)
    max_blob_bytes: int = 5_000_000


settings = Settings()


# =============================================================================
# FIXED RULES
# =============================================================================

# Duplicates spent per burn trade (not configurable)
BURN_TRADE_SIZE = 3
