"""
Deterministic serialization of the cosmetic database.

Dates are ordered by calendar date, items and matches by name and id, and
zero scores are dropped. Files are replaced atomically, so a failed or
interrupted write leaves the previous snapshot in place.
"""

import json
from datetime import date
from typing import Any, Dict, List

from dotacosmetics.database.models import DailyEntry
from dotacosmetics.database.store import CosmeticDatabase
from dotacosmetics.utils.files import write_json_atomic
from dotacosmetics.utils.logger import get_database_logger
from dotacosmetics.utils.validators import parse_day

logger = get_database_logger()


def _entry_sort_key(entry: DailyEntry):
    day = parse_day(entry.date)
    positive_items = sum(1 for score in entry.items.values() if score > 0)
    # Unparseable dates go last, ordered by their raw text
    if day is None:
        return (1, date.max, entry.date, positive_items)
    return (0, day, "", positive_items)


def serialize_entry(entry: DailyEntry) -> Dict[str, Any]:
    return {
        "date": entry.date,
        "items": {
            name: entry.items[name]
            for name in sorted(entry.items)
            if entry.items[name] > 0
        },
        "matches": [
            entry.matches[match_id].to_dict()
            for match_id in sorted(entry.matches)
        ],
    }


def serialize_database(database: CosmeticDatabase) -> List[Dict[str, Any]]:
    """Return the persisted form: a list of daily entries in ascending date order."""
    records = [serialize_entry(entry) for entry in sorted(database, key=_entry_sort_key)]
    return [record for record in records if record["items"] or record["matches"]]


def dumps(records: List[Dict[str, Any]]) -> str:
    return json.dumps(records, indent=2, ensure_ascii=False) + "\n"


def save_database(database: CosmeticDatabase, path, label: str = "database") -> bool:
    """
    Serialize and write one database view.

    Returns:
        True if the file was written, False on any serialization or I/O error
    """
    try:
        text = dumps(serialize_database(database))
        write_json_atomic(path, text)
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to write {label} to {path}: {e}")
        return False

    logger.info(f"Saved {label} ({len(database)} dates) to {path}")
    return True
