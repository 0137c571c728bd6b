"""
Application configuration for api-price-feed.

Centralizes environment variables using python-dotenv.

Note:
- Token ids map our tracked symbols to Jupiter price API keys.
- Intervals keep the historical *_MS names of the deployment environment.
"""

import os
from typing import Dict, List

from dotenv import load_dotenv

load_dotenv()


def _csv(value: str) -> List[str]:
    return [s.strip().upper() for s in (value or "").split(",") if s.strip()]


class Settings:
    """
    Configuration settings for the api-price-feed service.
    """

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    APP_NAME: str = os.getenv("APP_NAME", "api-price-feed")
    PORT: int = int(os.getenv("PORT", "10000"))

    # Mongo
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DB_NAME: str = os.getenv("MONGODB_DB_NAME", "price_feed")

    # Upstream (Jupiter price API v2)
    JUPITER_PRICE_API_URL: str = os.getenv("JUPITER_PRICE_API_URL", "https://lite-api.jup.ag/price/v2")
    JUPITER_TIMEOUT_S: float = float(os.getenv("JUPITER_TIMEOUT_S", "5"))

    TOKEN_IDS: Dict[str, str] = {
        "JLP": os.getenv("JLP_TOKEN_ID", "27G8MtK7VtTcCHkpASjSDdkWWYfoqT6ggEuKidVJidD4"),
        "SOL": "So11111111111111111111111111111111111111112",
        "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    }

    # Pipeline cadence
    POLL_EVERY_S: float = int(os.getenv("FAST_FETCH_INTERVAL_MS", "1000")) / 1000.0
    FLUSH_EVERY_S: float = int(os.getenv("DB_SAVE_INTERVAL_MS", "5000")) / 1000.0
    SNAPSHOT_EVERY_S: float = float(os.getenv("SNAPSHOT_INTERVAL_S", "60"))
    MAX_FETCH_ATTEMPTS: int = int(os.getenv("MAX_FETCH_ATTEMPTS", "5"))
    BACKOFF_UNIT_S: float = float(os.getenv("BACKOFF_UNIT_S", "1"))

    # Symbols required for a minute snapshot (all must be cached)
    SNAPSHOT_SYMBOLS: List[str] = _csv(os.getenv("SNAPSHOT_SYMBOLS", "JLP,SOL"))

    # Empty means every tracked symbol is persisted
    PERSIST_SYMBOLS: List[str] = _csv(os.getenv("PERSIST_SYMBOLS", ""))

    ALLOWED_ORIGINS: List[str] = [
        o.strip()
        for o in os.getenv(
            "ALLOWED_ORIGINS",
            "https://solmate-weld.vercel.app,http://localhost:3000,http://localhost:5173",
        ).split(",")
        if o.strip()
    ]


settings = Settings()
