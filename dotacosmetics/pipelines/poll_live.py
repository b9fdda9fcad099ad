"""
Poll the OpenDota live endpoint and store each snapshot.

Usage:
    python -m dotacosmetics.pipelines.poll_live
    python -m dotacosmetics.pipelines.poll_live --once
"""

import sys
import time
from datetime import datetime

from dotacosmetics import config
from dotacosmetics.fetch.live import fetch_live_matches
from dotacosmetics.utils.exceptions import DataFetchException, StorageException
from dotacosmetics.utils.files import ensure_dir_exists, write_json_atomic
from dotacosmetics.utils.logger import get_pipeline_logger

logger = get_pipeline_logger()


def snapshot_filename(now=None):
    now = now or datetime.now()
    return f"{config.LIVE_FILE_PREFIX}{now.strftime('%Y%m%d_%H%M%S')}.json"


def poll_once(output_dir=config.RAW_DIR, fetch=fetch_live_matches):
    """
    Fetch one live snapshot and save it.

    Returns:
        Path of the written file, or None if the fetch failed
    """
    output_dir = ensure_dir_exists(output_dir)

    try:
        live_data = fetch()
    except DataFetchException as e:
        logger.error(f"Error fetching live data: {e}")
        return None

    output_path = output_dir / snapshot_filename()
    if not live_data:
        logger.warning("Server returned no live games; saving an empty snapshot")

    # Written atomically so a failed save never leaves a partial snapshot behind
    write_json_atomic(output_path, live_data)
    logger.info(f"Success. Data saved to {output_path.name}")
    return output_path


def poll_forever(output_dir=config.RAW_DIR, interval=config.POLL_INTERVAL_SECONDS):
    logger.info(f"Starting live data fetcher. Interval: {interval} seconds.")
    while True:
        try:
            poll_once(output_dir)
        except OSError as e:
            logger.error(f"Failed to save snapshot: {e}")
        logger.info(f"Waiting for {interval} seconds...")
        time.sleep(interval)


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description="Poll OpenDota live matches")
    parser.add_argument("--output", default=str(config.RAW_DIR), help=f"Snapshot directory (default: {config.RAW_DIR})")
    parser.add_argument("--interval", type=float, default=config.POLL_INTERVAL_SECONDS, help="Seconds between polls")
    parser.add_argument("--once", action="store_true", help="Take a single snapshot and exit")
    args = parser.parse_args(argv)

    try:
        if args.once:
            if poll_once(args.output) is None:
                sys.exit(1)
        else:
            poll_forever(args.output, args.interval)
    except StorageException as e:
        logger.error(f"Output directory cannot be created/accessed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Live polling stopped")


if __name__ == "__main__":
    main()
