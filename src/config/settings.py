# src/config/settings.py

"""Central configuration for the price_watch engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the price_watch engine."""

    # --- Fetching ---
    REQUEST_TIMEOUT: int = int(
        os.getenv("REQUEST_TIMEOUT", "15")
    )                                   # Seconds before a fetch times out
    FETCH_ENGINE: str = os.getenv(
        "FETCH_ENGINE", "curl_cffi"
    )                                   # "curl_cffi" or "cloudscraper"

    # --- Batch runs ---
    MAX_CONCURRENT_SCRAPES: int = int(
        os.getenv("MAX_CONCURRENT_SCRAPES", "4")
    )                                   # Listings scraped in parallel
    CRON_SECRET: str = os.getenv("CRON_SECRET", "")

    # --- HTTP API ---
    API_HOST: str = os.getenv("API_HOST", "127.0.0.1")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    DB_PATH: Path = Path(
        os.getenv(
            "PRICE_WATCH_DB_PATH",
            str(DATA_DIR / "price_watch.db"),
        )
    )
    LOGS_DIR: Path = BASE_DIR / "logs"
