from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # General
    LOG_LEVEL: str = "INFO"
    ENV: str = "development"

    # Pricing
    DEFAULT_SOL_PRICE_USD: float = 150.0 # Used when the caller has no live SOL price

    # Dust / closure heuristics (tuned empirically, keep configurable)
    DUST_ABSOLUTE_TOKENS: float = 1e-6
    DUST_MAX_VALUE_USD: float = 1.0
    DUST_MAX_REMAINING_RATIO: float = 0.05

    # Sniper detection
    SNIPER_WINDOW_MINUTES: int = 15

    # Sentinel for profit factor / win-loss ratio when the denominator is zero
    RATIO_CAP: float = 999.0

    # Mints skipped on top of the built-in quote currency / altcoin blocklist
    EXTRA_IGNORED_MINTS: List[str] = []

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
