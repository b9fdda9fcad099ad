import requests

from dotacosmetics.config import BASE_URLS, HEADERS, CONNECT_TIMEOUT, READ_TIMEOUT, MAX_RETRIES, OPENDOTA_API_KEY
from dotacosmetics.utils.exceptions import DataValidationException
from dotacosmetics.utils.logger import get_fetch_logger
from dotacosmetics.utils.retry_handler import retry_with_backoff

logger = get_fetch_logger()


def _params():
    return {"api_key": OPENDOTA_API_KEY} if OPENDOTA_API_KEY else {}


@retry_with_backoff(max_retries=MAX_RETRIES, base_delay=2.0)
def fetch_live_matches():
    """Fetches the current list of live matches from OpenDota."""
    url = BASE_URLS["live"]
    logger.info(f"Fetching live data from {url}")

    r = requests.get(url, headers=HEADERS, params=_params(), timeout=(CONNECT_TIMEOUT, READ_TIMEOUT))
    r.raise_for_status()

    try:
        data = r.json()
    except ValueError as e:
        raise DataValidationException(
            "Live endpoint returned invalid JSON", url=url, status_code=r.status_code, response_body=r.text
        ) from e

    if not isinstance(data, list):
        raise DataValidationException(
            f"Live endpoint returned {type(data).__name__}, expected a list", url=url, status_code=r.status_code
        )

    logger.info(f"  -> Received {len(data)} live matches.")
    return data
