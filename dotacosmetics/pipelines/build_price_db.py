"""
Harvest Steam Community Market price history for every tracked cosmetic.

Items come from the marketable database plus anything already in the price
database. Each item's raw history is replaced only when a fresh extraction
succeeds. After fetching, every history is consolidated into daily median
price and volume records.

Usage:
    python -m dotacosmetics.pipelines.build_price_db
    python -m dotacosmetics.pipelines.build_price_db --consolidate-only
    python -m dotacosmetics.pipelines.build_price_db --limit 20
"""

import sys
from pathlib import Path

from dotacosmetics import config
from dotacosmetics.fetch.prices import fetch_listing_page
from dotacosmetics.parse.prices import consolidate_daily, extract_price_history
from dotacosmetics.utils.exceptions import DataFetchException, RateLimitException, StorageException
from dotacosmetics.utils.files import ensure_dir_exists, read_json_file, write_json_atomic
from dotacosmetics.utils.logger import get_pipeline_logger

logger = get_pipeline_logger()


def load_price_db(path):
    """
    Load the raw price database ({item_name: [[date, price, volume], ...]}).

    A missing or empty file starts a new database. Unlike the cosmetic
    database, a corrupt price file stops the run so that a day of scraping
    is not silently overwritten.
    """
    path = Path(path)
    if not path.exists() or path.stat().st_size == 0:
        logger.info(f"PriceDB file {path} not found or empty. Starting with an empty database.")
        return {}

    data = read_json_file(path)
    if not isinstance(data, dict):
        raise ValueError(f"PriceDB file {path} is not a JSON object; fix or remove it")
    logger.info(f"Loaded {path}: {len(data)} items")
    return data


def list_item_names(records):
    """Unique item names across persisted daily entries, in first-seen order."""
    names = {}
    for record in records:
        if isinstance(record, dict) and isinstance(record.get("items"), dict):
            for name in record["items"]:
                names.setdefault(name, None)
    return list(names)


def collect_items(items_db_file, price_db):
    records = read_json_file(items_db_file)
    if not isinstance(records, list):
        logger.warning(f"Items database {items_db_file} missing or not a list; only known PriceDB items will be updated")
        records = []
    names = list_item_names(records)
    for name in price_db:
        if name not in names:
            names.append(name)
    return names


def build_daily_prices(price_db):
    return {item: consolidate_daily(history) for item, history in sorted(price_db.items())}


def build_price_db(items_db_file=config.FILTERED_DB_FILE, price_db_file=config.PRICE_DB_FILE,
                   daily_file=config.DAILY_PRICES_FILE, limit=None, consolidate_only=False,
                   fetch=fetch_listing_page, checkpoint_every=config.PRICE_CHECKPOINT_EVERY):
    """
    Returns:
        Dictionary with updated, failed, and total item counts
    """
    ensure_dir_exists(Path(price_db_file).parent)
    ensure_dir_exists(Path(daily_file).parent)

    price_db = load_price_db(price_db_file)
    counts = {"items": 0, "updated": 0, "failed": 0}

    if not consolidate_only:
        items = collect_items(items_db_file, price_db)
        if limit is not None:
            items = items[:limit]
        counts["items"] = len(items)
        logger.info(f"Found {len(items)} unique items to process")

        for i, item in enumerate(items, start=1):
            logger.info(f"[{i}/{len(items)}] Processing item: {item}")
            try:
                history = extract_price_history(fetch(item))
            except RateLimitException as e:
                logger.error(f"Steam keeps rate limiting ({e}); stopping early and keeping what we have")
                counts["failed"] += len(items) - i + 1
                break
            except DataFetchException as e:
                logger.error(f"  -> Error fetching {item}: {e}")
                history = None

            if history:
                price_db[item] = history
                counts["updated"] += 1
                logger.info(f"  -> Extracted {len(history)} data points")
            else:
                counts["failed"] += 1
                logger.warning(f"  -> Skipping update for {item} due to failed data extraction")

            if checkpoint_every and i % checkpoint_every == 0:
                write_json_atomic(price_db_file, price_db)
                logger.info(f"Progress saved after {i} items")

        write_json_atomic(price_db_file, price_db)
        logger.info(f"Saved PriceDB to {price_db_file}. Total items: {len(price_db)}")

    daily = build_daily_prices(price_db)
    write_json_atomic(daily_file, daily)
    logger.info(f"Saved daily median prices for {len(daily)} items to {daily_file}")

    logger.info("=" * 80)
    logger.info(f"Items processed: {counts['items']} | Updated: {counts['updated']} | Failed: {counts['failed']}")
    logger.info("=" * 80)
    counts["total"] = len(price_db)
    return counts


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description="Fetch Steam market price history for tracked cosmetics")
    parser.add_argument("--items-db", default=str(config.FILTERED_DB_FILE), help="Database listing the items to price")
    parser.add_argument("--price-db", default=str(config.PRICE_DB_FILE))
    parser.add_argument("--daily", default=str(config.DAILY_PRICES_FILE))
    parser.add_argument("--limit", type=int, default=None, help="Only process the first N items")
    parser.add_argument("--consolidate-only", action="store_true", help="Skip fetching; rebuild daily records")
    args = parser.parse_args(argv)

    try:
        build_price_db(args.items_db, args.price_db, args.daily, args.limit, args.consolidate_only)
    except (StorageException, ValueError, OSError) as e:
        logger.error(f"Price harvesting failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
