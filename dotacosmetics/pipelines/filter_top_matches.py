"""
Reduce raw live snapshots to the top matches by spectator count.

Each unprocessed ``live_data_YYYYMMDD_HHMMSS.json`` becomes one block in
``filtered_live_matches.json`` and is then renamed with the
``filtered_live_matches`` prefix so it is not picked up again.

Usage:
    python -m dotacosmetics.pipelines.filter_top_matches
    python -m dotacosmetics.pipelines.filter_top_matches --top 10
"""

import sys
from pathlib import Path

from dotacosmetics import config
from dotacosmetics.parse.snapshots import LIVE_FILE_PATTERN, select_top_matches, timestamp_from_filename
from dotacosmetics.utils.exceptions import StorageException
from dotacosmetics.utils.files import ensure_dir_exists, read_json_file, write_json_atomic
from dotacosmetics.utils.logger import get_pipeline_logger

logger = get_pipeline_logger()


def load_blocks(path):
    blocks = read_json_file(path)
    if blocks is None:
        return []
    if not isinstance(blocks, list):
        logger.warning(f"Existing output file {path} is not a valid JSON array. Starting fresh.")
        return []
    return blocks


def _mark_processed(path: Path):
    target = path.with_name(f"{config.PROCESSED_PREFIX}{path.name}")
    path.rename(target)
    logger.info(f"  -> Renamed to: {target.name}")


def filter_top_matches(raw_dir=config.RAW_DIR, output_file=config.FILTERED_LIVE_FILE,
                       top_n=config.NUMBER_OF_TOP_MATCHES):
    """
    Process every new raw snapshot into a top-match block.

    Returns:
        Dictionary with processed, added, and errored counts
    """
    raw_dir = ensure_dir_exists(raw_dir)
    ensure_dir_exists(Path(output_file).parent)

    blocks = load_blocks(output_file)
    existing = {b.get("timestamp") for b in blocks if isinstance(b, dict)}
    logger.info(f"Loaded {len(blocks)} existing timestamp blocks")

    files = sorted(p for p in raw_dir.iterdir() if LIVE_FILE_PATTERN.match(p.name))
    logger.info(f"Found {len(files)} new raw data files to process")

    processed = added = errored = 0

    for path in files:
        logger.info(f"Processing file: {path.name}")
        timestamp = timestamp_from_filename(path.name)

        try:
            if timestamp in existing:
                logger.warning(f"  -> Timestamp {timestamp} already exists in output. Skipping but renaming file.")
                _mark_processed(path)
                continue

            live_data = read_json_file(path)
            if not isinstance(live_data, list):
                logger.warning(f"  -> Content of {path.name} is missing or not a JSON array. Skipping.")
                errored += 1
                continue

            top = select_top_matches(live_data, top_n)
            if top:
                blocks.append({"timestamp": timestamp, "top_matches": top})
                existing.add(timestamp)
                added += 1
                logger.info(f"  -> Added {len(top)} top matches for timestamp {timestamp}")
            else:
                logger.info(f"  -> No valid top matches found in {path.name}")

            _mark_processed(path)
            processed += 1
        except OSError as e:
            logger.error(f"  -> Failed to process {path.name}: {e}")
            errored += 1

    if added:
        blocks.sort(key=lambda b: b.get("timestamp", ""))
        write_json_atomic(output_file, blocks)
        logger.info(f"Updated {output_file} with {added} new timestamp blocks")
    elif not Path(output_file).exists():
        write_json_atomic(output_file, [])

    logger.info("=" * 80)
    logger.info(f"Files processed: {processed} | New blocks: {added} | Errors: {errored} | Total blocks: {len(blocks)}")
    logger.info("=" * 80)
    return {"processed": processed, "added": added, "errored": errored, "total_blocks": len(blocks)}


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description="Filter live snapshots down to the top matches")
    parser.add_argument("--raw-dir", default=str(config.RAW_DIR))
    parser.add_argument("--output", default=str(config.FILTERED_LIVE_FILE))
    parser.add_argument("--top", type=int, default=config.NUMBER_OF_TOP_MATCHES, help="Matches kept per snapshot")
    args = parser.parse_args(argv)

    try:
        filter_top_matches(args.raw_dir, args.output, args.top)
    except (StorageException, OSError) as e:
        logger.error(f"Top match filtering failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
