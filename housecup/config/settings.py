"""
Runtime Settings

Centralized configuration for the House Cup service.
All values are loaded from environment variables (a local .env file is
honoured via python-dotenv).
"""
import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable, falling back on junk."""
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    """
    Settings for the application.

    To add a new setting:
    1. Add it here as a class property
    2. Load it from environment variable
    3. Read it through the `settings` instance
    """

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./housecup.db")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Seeded houses take HOUSE_NAMES in order, then "House N" past the end of the list
    HOUSE_COUNT: int = get_int_env("HOUSE_COUNT", 4)
    HOUSE_NAMES: List[str] = ["Gryffindor", "Hufflepuff", "Ravenclaw", "Slytherin"]

    # Ledger policy
    LEDGER_REJECT_ZERO_AMOUNT: bool = get_bool_env("LEDGER_REJECT_ZERO_AMOUNT", False)

    # Crossword bonuses (house-level awards)
    CROSSWORD_WORD_COUNT: int = 7
    CROSSWORD_WORD_BONUS: int = get_int_env("CROSSWORD_WORD_BONUS", 5)
    CROSSWORD_FULL_BONUS: int = get_int_env("CROSSWORD_FULL_BONUS", 15)

    # HTTP
    ALLOWED_ORIGINS: List[str] = [
        origin for origin in os.getenv("ALLOWED_ORIGINS", "").split(",") if origin
    ]
    WRITE_RATE_LIMIT: str = os.getenv("WRITE_RATE_LIMIT", "30/minute")
    RATE_LIMIT_ENABLED: bool = get_bool_env("RATE_LIMIT_ENABLED", True)


# Singleton instance for easy importing
settings = Settings()
