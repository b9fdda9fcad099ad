"""
Download match details for top matches once they are old enough.

OpenDota only has parsed detail (including cosmetics) some time after a
match ends, so matches younger than the configured age are left for a
later run. Already downloaded matches are never fetched again.

Usage:
    python -m dotacosmetics.pipelines.fetch_match_details
    python -m dotacosmetics.pipelines.fetch_match_details --min-age-hours 6
"""

import sys
import time
from pathlib import Path

from dotacosmetics import config
from dotacosmetics.fetch.matches import fetch_match_detail
from dotacosmetics.parse.snapshots import collect_mature_matches
from dotacosmetics.pipelines.filter_top_matches import load_blocks
from dotacosmetics.utils.exceptions import DataFetchException, NotFoundException, StorageException
from dotacosmetics.utils.files import ensure_dir_exists, write_json_atomic
from dotacosmetics.utils.logger import get_pipeline_logger

logger = get_pipeline_logger()


def fetch_match_details(filtered_file=config.FILTERED_LIVE_FILE, output_dir=config.MATCHES_DIR,
                        min_age_hours=config.MINIMUM_MATCH_AGE_HOURS, now=None, fetch=fetch_match_detail):
    """
    Fetch and save details for every mature top match not yet downloaded.

    Returns:
        Dictionary with fetched, skipped, not_found, and errored counts
    """
    output_dir = ensure_dir_exists(output_dir)
    now = time.time() if now is None else now

    blocks = load_blocks(filtered_file)
    if not blocks:
        logger.info(f"No top-match blocks in {filtered_file}; nothing to fetch")

    logger.info(f"Checking match age against current time. Minimum age: {min_age_hours} hours.")
    mature = collect_mature_matches(blocks, now, min_age_hours)
    logger.info(f"Found {len(mature)} unique match IDs meeting the age requirement")

    counts = {"candidates": len(mature), "fetched": 0, "skipped": 0, "not_found": 0, "errored": 0}

    for i, match_id in enumerate(mature, start=1):
        output_path = Path(output_dir) / f"{match_id}.json"
        progress = f"({i}/{len(mature)})"

        if output_path.exists():
            logger.info(f"{progress} Skipping {match_id}.json (already exists)")
            counts["skipped"] += 1
            continue

        logger.info(f"{progress} Downloading match {match_id}...")
        try:
            detail = fetch(match_id)
            write_json_atomic(output_path, detail)
            logger.info(f"  -> Success! Saved to {output_path.name}")
            counts["fetched"] += 1
        except NotFoundException:
            logger.warning(f"  -> Match {match_id} not found on OpenDota API (404)")
            counts["not_found"] += 1
        except DataFetchException as e:
            logger.error(f"  -> Error fetching match {match_id}: {e}")
            counts["errored"] += 1
        except OSError as e:
            logger.error(f"  -> Failed to write downloaded data for {match_id}: {e}")
            counts["errored"] += 1

    logger.info("=" * 80)
    logger.info("Match Detail Summary")
    logger.info("=" * 80)
    logger.info(f"Matches meeting age criteria: {counts['candidates']}")
    logger.info(f"Successfully downloaded: {counts['fetched']}")
    logger.info(f"Skipped (already existed): {counts['skipped']}")
    logger.info(f"Not found (404): {counts['not_found']}")
    logger.info(f"Errors (network/API/write): {counts['errored']}")
    logger.info("=" * 80)
    return counts


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description="Download OpenDota match details for mature top matches")
    parser.add_argument("--input", default=str(config.FILTERED_LIVE_FILE))
    parser.add_argument("--output", default=str(config.MATCHES_DIR))
    parser.add_argument("--min-age-hours", type=float, default=config.MINIMUM_MATCH_AGE_HOURS)
    args = parser.parse_args(argv)

    try:
        fetch_match_details(args.input, args.output, args.min_age_hours)
    except StorageException as e:
        logger.error(f"Output directory cannot be created/accessed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
