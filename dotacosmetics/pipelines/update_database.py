"""
Update the daily cosmetic stats database from extracted match files.

Reads every ``filtered_<match_id>.json`` produced by the extraction stage,
applies it to the database, and writes both the full and the marketable
view. Replaying the same files is safe: a match is only re-applied when its
spectator count grew.

Usage:
    python -m dotacosmetics.pipelines.update_database
    python -m dotacosmetics.pipelines.update_database --input data/filtered_matches
    python -m dotacosmetics.pipelines.update_database --non-marketable nonmarketable.txt
"""

import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple

from dotacosmetics import config
from dotacosmetics.database.engine import AggregationEngine, AggregationSummary
from dotacosmetics.database.marketability import project_marketable
from dotacosmetics.database.serializer import save_database
from dotacosmetics.database.store import CosmeticDatabase, load_non_marketable_items
from dotacosmetics.utils.exceptions import StorageException
from dotacosmetics.utils.files import ensure_dir_exists, read_json_file
from dotacosmetics.utils.logger import get_pipeline_logger

logger = get_pipeline_logger()

FILTERED_FILE_PATTERN = re.compile(r"^filtered_\d+\.json$")


@dataclass
class UpdateResult:
    """What an update run did, as reported to the caller."""

    summary: AggregationSummary = field(default_factory=AggregationSummary)
    files_found: int = 0
    original_saved: bool = False
    filtered_saved: bool = False
    total_dates: int = 0
    marketable_dates: int = 0
    tracked_matches: int = 0

    @property
    def success(self) -> bool:
        return self.original_saved and self.filtered_saved

    def as_dict(self) -> Dict[str, Any]:
        result = self.summary.as_dict()
        result.update({
            "files_found": self.files_found,
            "original_saved": self.original_saved,
            "filtered_saved": self.filtered_saved,
            "total_dates": self.total_dates,
            "marketable_dates": self.marketable_dates,
            "tracked_matches": self.tracked_matches,
        })
        return result


def find_contribution_files(directory) -> List[Path]:
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning(f"Input directory {directory} not found; no contributions to apply")
        return []
    return sorted(p for p in directory.iterdir() if FILTERED_FILE_PATTERN.match(p.name))


def iter_contributions(paths: List[Path]) -> Iterator[Tuple[str, Any]]:
    for path in paths:
        # Unreadable files come through as None and are rejected by the validator
        yield path.name, read_json_file(path)


def update_database(
    input_dir=config.FILTERED_MATCHES_DIR,
    db_file=config.DB_FILE,
    filtered_db_file=config.FILTERED_DB_FILE,
    non_marketable_file=config.NON_MARKETABLE_FILE,
) -> UpdateResult:
    """
    Apply all extracted match files to the database and save both views.

    Args:
        input_dir: Directory holding filtered_<match_id>.json files
        db_file: Path of the full database
        filtered_db_file: Path of the marketable-only database
        non_marketable_file: Newline-delimited list of excluded item names

    Returns:
        UpdateResult with outcome counts and per-view save flags

    Raises:
        StorageException: if the database directories cannot be created
    """
    logger.info("=" * 80)
    logger.info("Updating Cosmetic Stats Database")
    logger.info("=" * 80)
    logger.info(f"Input: {input_dir}")
    logger.info(f"Database: {db_file}")
    logger.info(f"Marketable database: {filtered_db_file}")

    ensure_dir_exists(Path(db_file).parent)
    ensure_dir_exists(Path(filtered_db_file).parent)

    non_marketable = load_non_marketable_items(non_marketable_file)
    database = CosmeticDatabase.load(db_file)
    engine = AggregationEngine(database)

    paths = find_contribution_files(input_dir)
    logger.info(f"Found {len(paths)} filtered match files to process")

    result = UpdateResult(summary=engine.summary, files_found=len(paths))

    if not paths and len(database) == 0:
        logger.info("No filtered match files found and database is empty. Nothing to do.")
        return result

    engine.apply_batch(iter_contributions(paths))

    database.prune()
    marketable = project_marketable(database, non_marketable)

    # Both views are computed before either file is touched
    result.original_saved = save_database(database, db_file, label="original database")
    result.filtered_saved = save_database(marketable, filtered_db_file, label="marketable database")
    result.total_dates = len(database)
    result.marketable_dates = len(marketable)
    result.tracked_matches = len(engine.ledger)

    log_summary(result, non_marketable)
    return result


def log_summary(result: UpdateResult, non_marketable) -> None:
    summary = result.summary
    logger.info("=" * 80)
    logger.info("Database Update Summary")
    logger.info("=" * 80)
    logger.info(f"Filtered files found: {result.files_found}")
    logger.info(f"New matches added: {summary.added}")
    logger.info(f"Existing matches updated: {summary.updated}")
    logger.info(f"Matches skipped (already processed, spectators <=): {summary.skipped}")
    logger.info(f"Files skipped/errored: {summary.errored}")
    logger.info(f"Total dates in database: {result.total_dates}")
    logger.info(f"Dates with marketable items: {result.marketable_dates}")
    logger.info(f"Unique matches tracked: {result.tracked_matches}")
    logger.info(f"Non-marketable items list size: {len(non_marketable) if non_marketable else 0}")
    logger.info(f"Original database saved: {'yes' if result.original_saved else 'NO'}")
    logger.info(f"Marketable database saved: {'yes' if result.filtered_saved else 'NO'}")
    logger.info("=" * 80)


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(
        description="Apply extracted match files to the daily cosmetic stats database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m dotacosmetics.pipelines.update_database
  python -m dotacosmetics.pipelines.update_database --input data/filtered_matches
        """
    )
    parser.add_argument(
        "--input",
        default=str(config.FILTERED_MATCHES_DIR),
        help=f"Directory of filtered_<match_id>.json files (default: {config.FILTERED_MATCHES_DIR})"
    )
    parser.add_argument(
        "--db",
        default=str(config.DB_FILE),
        help=f"Database file (default: {config.DB_FILE})"
    )
    parser.add_argument(
        "--filtered-db",
        default=str(config.FILTERED_DB_FILE),
        help=f"Marketable database file (default: {config.FILTERED_DB_FILE})"
    )
    parser.add_argument(
        "--non-marketable",
        default=str(config.NON_MARKETABLE_FILE),
        help=f"Non-marketable item list (default: {config.NON_MARKETABLE_FILE})"
    )

    args = parser.parse_args(argv)

    try:
        result = update_database(
            input_dir=args.input,
            db_file=args.db,
            filtered_db_file=args.filtered_db,
            non_marketable_file=args.non_marketable,
        )
    except StorageException as e:
        logger.error(f"Database storage is not accessible: {e}")
        sys.exit(1)

    if result.files_found and not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
