"""
Run the offline stages of the match pipeline once, in order:
top-match filtering, detail download, cosmetic extraction, database update.

Usage:
    python -m dotacosmetics.pipelines.run_extraction
    python -m dotacosmetics.pipelines.run_extraction --skip-fetch
"""

import sys

from dotacosmetics.pipelines.extract_cosmetics import extract_cosmetics
from dotacosmetics.pipelines.fetch_match_details import fetch_match_details
from dotacosmetics.pipelines.filter_top_matches import filter_top_matches
from dotacosmetics.pipelines.update_database import update_database
from dotacosmetics.utils.exceptions import StorageException
from dotacosmetics.utils.logger import get_pipeline_logger

logger = get_pipeline_logger()


def run_extraction(skip_fetch=False):
    results = {"filter": filter_top_matches()}
    if skip_fetch:
        logger.info("Skipping match detail download")
    else:
        results["fetch"] = fetch_match_details()
    results["extract"] = extract_cosmetics()
    results["database"] = update_database().as_dict()
    return results


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description="Run filtering, download, extraction, and database update")
    parser.add_argument("--skip-fetch", action="store_true", help="Do not download new match details")
    args = parser.parse_args(argv)

    try:
        results = run_extraction(skip_fetch=args.skip_fetch)
    except StorageException as e:
        logger.error(f"Storage is not accessible: {e}")
        sys.exit(1)

    for stage, counts in results.items():
        logger.info(f"{stage}: {counts}")

    database = results["database"]
    if not (database["original_saved"] and database["filtered_saved"]) and database["files_found"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
