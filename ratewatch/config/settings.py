# ratewatch/config/settings.py

"""Central configuration for the ratewatch engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the ratewatch engine."""

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data" / "rates"
    LOGS_DIR: Path = BASE_DIR / "logs"
    CHARTS_DIR: Path = BASE_DIR / "charts"

    # Directory or http(s) base URL holding history/<lender>.json,
    # <lender>.json and lenders.json
    HISTORY_SOURCE: str = os.getenv(
        "RATEWATCH_SOURCE", str(DATA_DIR)
    )

    # --- Fetching ---
    REQUEST_DELAY: float = 1.0          # Seconds between retries
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Retry count on transient failures
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": "application/json",
        "Accept-Language": "en-IE,en;q=0.9",
    }

    # --- Buyer categories (mutually exclusive) ---
    PDH_BUYER_TYPES: frozenset[str] = frozenset(
        {"ftb", "mover", "switcher-pdh"}
    )
    BTL_BUYER_TYPES: frozenset[str] = frozenset(
        {"btl", "switcher-btl"}
    )

    # --- Diffing ---
    # Non-rate attributes compared between two versions of a product
    COMPARABLE_FIELDS: tuple[str, ...] = (
        "apr",
        "name",
        "min_ltv",
        "max_ltv",
        "buyer_types",
        "ber_eligible",
        "perks",
        "fixed_term",
        "min_loan",
        "new_business",
        "warning",
    )
    # Attributes compared as unordered collections
    UNORDERED_FIELDS: frozenset[str] = frozenset(
        {"buyer_types", "ber_eligible", "perks"}
    )

    # --- Filtering ---
    RATE_TYPE_KEYS: list[str] = [
        "fixed-1",
        "fixed-2",
        "fixed-3",
        "fixed-4",
        "fixed-5",
        "fixed-7",
        "fixed-10",
        "variable",
    ]
    DEFAULT_VISIBLE_STATUSES: frozenset[str] = frozenset(
        {"decreased", "increased", "modified", "new", "removed"}
    )
