"""
Extract per-match cosmetic usage from downloaded match details.

For every ``<match_id>.json`` detail, writes ``filtered_<match_id>.json``
with the match day, the unique cosmetic names and the peak spectator count
seen across all snapshots. An existing output is rewritten only when the
peak spectator count grew since it was written.

Usage:
    python -m dotacosmetics.pipelines.extract_cosmetics
"""

import re
import sys
from pathlib import Path

from dotacosmetics import config
from dotacosmetics.parse.matches import build_contribution
from dotacosmetics.parse.snapshots import build_spectator_map
from dotacosmetics.pipelines.filter_top_matches import load_blocks
from dotacosmetics.utils.exceptions import StorageException
from dotacosmetics.utils.files import ensure_dir_exists, read_json_file, write_json_atomic
from dotacosmetics.utils.logger import get_pipeline_logger

logger = get_pipeline_logger()

DETAIL_FILE_PATTERN = re.compile(r"^(\d+)\.json$")


def _is_current(output_path: Path, spectators: int) -> bool:
    existing = read_json_file(output_path)
    return isinstance(existing, dict) and existing.get("spectators") == spectators


def extract_cosmetics(matches_dir=config.MATCHES_DIR, filtered_live_file=config.FILTERED_LIVE_FILE,
                      output_dir=config.FILTERED_MATCHES_DIR):
    """
    Returns:
        Dictionary with written, unchanged, missing_spectators, and errored counts
    """
    output_dir = ensure_dir_exists(output_dir)
    matches_dir = Path(matches_dir)

    spectator_map = build_spectator_map(load_blocks(filtered_live_file))
    logger.info(f"Built spectator map for {len(spectator_map)} matches")

    detail_files = sorted(p for p in matches_dir.glob("*.json") if DETAIL_FILE_PATTERN.match(p.name)) \
        if matches_dir.is_dir() else []
    logger.info(f"Found {len(detail_files)} match detail files")

    counts = {"written": 0, "unchanged": 0, "missing_spectators": 0, "errored": 0}

    for path in detail_files:
        match_id = DETAIL_FILE_PATTERN.match(path.name).group(1)
        spectators = spectator_map.get(match_id)
        if spectators is None:
            logger.warning(f"  -> No spectator data for match {match_id}; skipping")
            counts["missing_spectators"] += 1
            continue

        output_path = output_dir / f"filtered_{match_id}.json"
        if _is_current(output_path, spectators):
            counts["unchanged"] += 1
            continue

        detail = read_json_file(path)
        record = build_contribution(detail, spectators) if detail is not None else None
        if record is None:
            logger.warning(f"  -> Could not extract cosmetics from {path.name}")
            counts["errored"] += 1
            continue

        try:
            write_json_atomic(output_path, record)
        except OSError as e:
            logger.error(f"  -> Failed to write {output_path.name}: {e}")
            counts["errored"] += 1
            continue

        logger.info(
            f"  -> {output_path.name}: {len(record['cosmetics'])} cosmetics, "
            f"{spectators} spectators on {record['date']}"
        )
        counts["written"] += 1

    logger.info(
        f"Extraction finished. Written: {counts['written']}, unchanged: {counts['unchanged']}, "
        f"no spectator data: {counts['missing_spectators']}, errors: {counts['errored']}"
    )
    return counts


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description="Extract cosmetic usage from match details")
    parser.add_argument("--matches-dir", default=str(config.MATCHES_DIR))
    parser.add_argument("--live-file", default=str(config.FILTERED_LIVE_FILE))
    parser.add_argument("--output", default=str(config.FILTERED_MATCHES_DIR))
    args = parser.parse_args(argv)

    try:
        extract_cosmetics(args.matches_dir, args.live_file, args.output)
    except StorageException as e:
        logger.error(f"Output directory cannot be created/accessed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
