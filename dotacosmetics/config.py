import os
from pathlib import Path

from dotenv import load_dotenv

from dotacosmetics.utils.rate_limiter_v2 import RateLimiter

load_dotenv()


def _env_path(name, default):
    return Path(os.getenv(name, str(default)))


def _env_float(name, default):
    return float(os.getenv(name, str(default)))


def _env_int(name, default):
    return int(os.getenv(name, str(default)))


# Directory layout
DATA_DIR = _env_path("DOTACOSMETICS_DATA_DIR", "data")
RAW_DIR = DATA_DIR / "raw"
PROCESSED_DIR = DATA_DIR / "processed"
MATCHES_DIR = DATA_DIR / "matches"
FILTERED_MATCHES_DIR = DATA_DIR / "filtered_matches"
DATABASE_DIR = _env_path("DOTACOSMETICS_DATABASE_DIR", DATA_DIR / "database")
PRICES_DIR = DATA_DIR / "prices"

# OpenDota
OPENDOTA_API_KEY = os.getenv("OPENDOTA_API_KEY", "").strip()

BASE_URLS = {
    "live": "https://api.opendota.com/api/live",
    "match": "https://api.opendota.com/api/matches/",
    "market_listing": "https://steamcommunity.com/market/listings/570/",
}

HEADERS = {
    "accept": "application/json",
}

# Steam serves an interstitial page to clients that don't look like a browser
MARKET_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/98.0.4758.102 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

# HTTP behaviour
CONNECT_TIMEOUT = _env_float("DOTACOSMETICS_CONNECT_TIMEOUT", 10)
READ_TIMEOUT = _env_float("DOTACOSMETICS_READ_TIMEOUT", 30)
MAX_RETRIES = _env_int("DOTACOSMETICS_MAX_RETRIES", 3)

# Live polling and top-N filtering
POLL_INTERVAL_SECONDS = _env_float("DOTACOSMETICS_POLL_INTERVAL", 900)
LIVE_FILE_PREFIX = "live_data_"
NUMBER_OF_TOP_MATCHES = _env_int("DOTACOSMETICS_TOP_MATCHES", 15)
FILTERED_LIVE_FILE = PROCESSED_DIR / "filtered_live_matches.json"
PROCESSED_PREFIX = "filtered_live_matches"

# Match details
MINIMUM_MATCH_AGE_HOURS = _env_float("DOTACOSMETICS_MIN_MATCH_AGE_HOURS", 3)
MATCH_REQUEST_DELAY_SECONDS = _env_float("DOTACOSMETICS_MATCH_REQUEST_DELAY", 20)

# Aggregation database
DB_FILE = DATABASE_DIR / "daily_cosmetic_stats.json"
FILTERED_DB_FILE = DATABASE_DIR / "daily_cosmetic_stats_marketable.json"
NON_MARKETABLE_FILE = _env_path("DOTACOSMETICS_NON_MARKETABLE_FILE", DATABASE_DIR / "nonmarketable.txt")

# Steam market prices
PRICE_DB_FILE = PRICES_DIR / "pricedb.json"
DAILY_PRICES_FILE = PRICES_DIR / "daily_prices.json"
PRICE_MIN_DELAY_SECONDS = _env_float("DOTACOSMETICS_PRICE_MIN_DELAY", 8)
PRICE_MAX_JITTER_SECONDS = _env_float("DOTACOSMETICS_PRICE_JITTER", 7)
PRICE_CHECKPOINT_EVERY = _env_int("DOTACOSMETICS_PRICE_CHECKPOINT_EVERY", 10)

# Shared limiters, one per remote host
opendota_rate_limiter = RateLimiter(
    max_requests=max(1, int(3600 / MATCH_REQUEST_DELAY_SECONDS)) if MATCH_REQUEST_DELAY_SECONDS > 0 else 3600,
    window_seconds=3600,
    strategy="distributed",
    name="opendota",
)

steam_rate_limiter = RateLimiter(
    max_requests=max(1, int(3600 / PRICE_MIN_DELAY_SECONDS)) if PRICE_MIN_DELAY_SECONDS > 0 else 3600,
    window_seconds=3600,
    strategy="distributed",
    jitter_seconds=PRICE_MAX_JITTER_SECONDS,
    name="steam",
)
