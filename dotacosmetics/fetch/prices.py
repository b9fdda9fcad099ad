from urllib.parse import quote

import requests

from dotacosmetics.config import (
    BASE_URLS, MARKET_HEADERS, CONNECT_TIMEOUT, READ_TIMEOUT, MAX_RETRIES, steam_rate_limiter,
)
from dotacosmetics.utils.logger import get_fetch_logger
from dotacosmetics.utils.retry_handler import retry_with_backoff

logger = get_fetch_logger()


def listing_url(item_name):
    return f"{BASE_URLS['market_listing']}{quote(item_name, safe='')}"


@retry_with_backoff(max_retries=MAX_RETRIES, base_delay=30.0)
def fetch_listing_page(item_name):
    """Fetches the Steam Community Market listing page HTML for an item."""
    steam_rate_limiter.wait_if_needed()

    url = listing_url(item_name)
    logger.info(f"Fetching URL for {item_name}: {url}")
    r = requests.get(url, headers=MARKET_HEADERS, timeout=(CONNECT_TIMEOUT, READ_TIMEOUT))
    r.raise_for_status()
    return r.text
