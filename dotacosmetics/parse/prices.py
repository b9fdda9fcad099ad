"""
Steam Community Market price history extraction and daily consolidation.

The listing page embeds the full history as a JavaScript array
``var line1=[["Nov 27 2013 01: +0", 1.234, "15"], ...];`` where each
point is (hour, median price, volume sold).
"""

import json
import re
from datetime import datetime

import pandas as pd
from bs4 import BeautifulSoup

from dotacosmetics.utils.logger import get_parse_logger

logger = get_parse_logger()

TARGET_FINGERPRINT = "var line1=[["
LINE1_PATTERN = re.compile(r"\bvar\s+line1\s*=\s*(\[\[[\s\S]*?\]\]);")


def extract_price_history(html):
    """
    Extract the raw price history array from a listing page.

    Returns:
        List of [date_string, price, volume] points, or None if the page has none
    """
    soup = BeautifulSoup(html, "html.parser")

    script_text = None
    for script in soup.find_all("script"):
        text = script.string or script.get_text()
        if text and TARGET_FINGERPRINT in text:
            script_text = text
            break

    if script_text is None:
        # Usually a captcha page or an item that was never listed
        logger.warning(f"Target script containing '{TARGET_FINGERPRINT}' not found")
        return None

    match = LINE1_PATTERN.search(script_text)
    if not match:
        logger.warning("Could not find 'var line1=[[...]];' in the target script")
        return None

    try:
        history = json.loads(match.group(1))
    except ValueError as e:
        logger.error(f"Error parsing the extracted line1 array as JSON: {e}")
        return None

    if not isinstance(history, list):
        return None
    return history


def parse_point_time(value):
    """'Nov 27 2013 01: +0' -> datetime(2013, 11, 27, 1)."""
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.split(":")[0].strip(), "%b %d %Y %H")
    except ValueError:
        return None


def consolidate_daily(history):
    """
    Collapse a raw price history into one record per day.

    Returns:
        List of {"date": "YYYY-MM-DD", "median_price": float, "volume": int},
        sorted by date
    """
    rows = []
    for point in history or []:
        if not isinstance(point, (list, tuple)) or len(point) < 3:
            continue
        timestamp = parse_point_time(point[0])
        if timestamp is None:
            continue
        try:
            price = float(point[1])
            volume = int(str(point[2]).replace(",", ""))
        except (TypeError, ValueError):
            continue
        rows.append({"day": timestamp.date(), "price": price, "volume": volume})

    if not rows:
        return []

    df = pd.DataFrame(rows)
    daily = (
        df.groupby("day")
        .agg(median_price=("price", "median"), volume=("volume", "sum"))
        .reset_index()
        .sort_values("day")
    )

    return [
        {
            "date": row.day.isoformat(),
            "median_price": round(float(row.median_price), 3),
            "volume": int(row.volume),
        }
        for row in daily.itertuples(index=False)
    ]
