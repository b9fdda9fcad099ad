from typing import AbstractSet, Optional

from dotacosmetics.database.store import CosmeticDatabase
from dotacosmetics.utils.logger import get_database_logger

logger = get_database_logger()


def project_marketable(database: CosmeticDatabase,
                       non_marketable: Optional[AbstractSet[str]] = None) -> CosmeticDatabase:
    """
    Build the marketable view of a database.

    Every date keeps only items that have a positive score and are not in
    ``non_marketable``; dates left without items are omitted. The source
    database is not modified.

    Args:
        database: Unfiltered database
        non_marketable: Item names to exclude (None or empty excludes nothing)

    Returns:
        A new, independent database
    """
    excluded = non_marketable or frozenset()
    projected = CosmeticDatabase()

    for entry in database:
        items = {
            name: score
            for name, score in entry.items.items()
            if score > 0 and name not in excluded
        }
        if not items:
            continue
        view = entry.copy()
        view.items = items
        projected.entries[entry.date] = view

    dropped = len(database) - len(projected)
    logger.info(
        f"Marketable view: {len(projected)} dates kept, {dropped} dropped, "
        f"{len(excluded)} excluded item names"
    )
    return projected
