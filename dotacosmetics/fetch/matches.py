import requests

from dotacosmetics.config import (
    BASE_URLS, HEADERS, CONNECT_TIMEOUT, READ_TIMEOUT, MAX_RETRIES, OPENDOTA_API_KEY,
    opendota_rate_limiter,
)
from dotacosmetics.utils.exceptions import DataValidationException
from dotacosmetics.utils.logger import get_fetch_logger
from dotacosmetics.utils.retry_handler import retry_with_backoff

logger = get_fetch_logger()


@retry_with_backoff(max_retries=MAX_RETRIES, base_delay=5.0)
def _get_match(url, params):
    # Enforce rate limit before every attempt, retries included
    opendota_rate_limiter.wait_if_needed()
    r = requests.get(url, headers=HEADERS, params=params, timeout=(CONNECT_TIMEOUT, READ_TIMEOUT))
    r.raise_for_status()
    return r


def fetch_match_detail(match_id):
    """
    Fetches the full detail of a single match.

    Raises:
        NotFoundException: OpenDota has no such match (yet)
        DataFetchException: for any other failure
    """
    url = f"{BASE_URLS['match']}{match_id}"
    params = {"api_key": OPENDOTA_API_KEY} if OPENDOTA_API_KEY else {}
    logger.debug(f"  -> Fetching from: {url}")

    r = _get_match(url, params)

    try:
        data = r.json()
    except ValueError as e:
        raise DataValidationException(
            "Match detail is not valid JSON", url=url, status_code=r.status_code, response_body=r.text
        ) from e

    if not data or not isinstance(data, dict):
        raise DataValidationException("Match detail is empty", url=url, status_code=r.status_code)
    return data
