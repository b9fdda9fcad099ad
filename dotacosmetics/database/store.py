"""
In-memory cosmetic popularity database.

Holds one ``DailyEntry`` per calendar day. It is loaded once at the start
of a run, mutated by the aggregation engine, and written back by the
serializer after the whole batch has been applied.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from dotacosmetics.database.models import DailyEntry, MatchRecord
from dotacosmetics.utils.logger import get_database_logger
from dotacosmetics.utils.validators import normalize_match_id

logger = get_database_logger()


class CosmeticDatabase:
    """Per-date item scores plus the matches contributing to them."""

    def __init__(self, entries: Optional[Dict[str, DailyEntry]] = None):
        self.entries: Dict[str, DailyEntry] = entries if entries is not None else {}

    def __len__(self):
        return len(self.entries)

    def __iter__(self) -> Iterator[DailyEntry]:
        return iter(self.entries.values())

    def __contains__(self, date):
        return date in self.entries

    def get(self, date: str) -> Optional[DailyEntry]:
        return self.entries.get(date)

    def upsert(self, date: str) -> DailyEntry:
        """Return the entry for ``date``, creating an empty one if absent."""
        entry = self.entries.get(date)
        if entry is None:
            logger.debug(f"Creating new date entry for {date}")
            entry = DailyEntry(date=date)
            self.entries[date] = entry
        return entry

    def apply_delta(self, date: str, item: str, amount: int) -> int:
        """
        Add a signed amount to an item's score on a date.

        The stored score never drops below 0. Returns the new score.
        """
        entry = self.upsert(date)
        current = entry.items.get(item, 0)
        updated = current + amount
        if updated < 0:
            logger.warning(
                f"Score for '{item}' on {date} would drop to {updated}; clamping to 0"
            )
            updated = 0
        entry.items[item] = updated
        return updated

    def add_match(self, date: str, match_id: str, spectators: int,
                  cosmetics: Optional[Tuple[str, ...]] = None) -> None:
        """Record ``match_id`` as contributing to ``date``, overwriting any existing record there."""
        entry = self.upsert(date)
        if match_id in entry.matches:
            logger.warning(f"Match {match_id} already referenced on {date}; overwriting its record")
        entry.matches[match_id] = MatchRecord(match_id, spectators, cosmetics)

    def remove_match(self, date: str, match_id: str) -> Optional[MatchRecord]:
        """Drop ``match_id`` from the matches of ``date``. Returns the removed record."""
        entry = self.entries.get(date)
        if entry is None:
            return None
        return entry.matches.pop(match_id, None)

    def find_match(self, date: str, match_id: str) -> Optional[MatchRecord]:
        entry = self.entries.get(date)
        if entry is None:
            return None
        return entry.matches.get(match_id)

    def prune(self) -> int:
        """
        Remove items whose score reached 0, then dates left with neither
        items nor matches. Returns the number of items removed.
        """
        removed = 0
        for entry in self.entries.values():
            for item in [name for name, score in entry.items.items() if score <= 0]:
                del entry.items[item]
                removed += 1
        for date in [d for d, entry in self.entries.items() if not entry.items and not entry.matches]:
            logger.debug(f"Dropping empty date entry {date}")
            del self.entries[date]
        return removed

    def copy(self) -> "CosmeticDatabase":
        return CosmeticDatabase({date: entry.copy() for date, entry in self.entries.items()})

    def match_count(self) -> int:
        return sum(len(entry.matches) for entry in self.entries.values())

    def subtract_match(self, date: str, match_id: str, spectators: int, cosmetics) -> None:
        """Take a match's contribution off ``date`` (clamped at 0) and drop its reference there."""
        for item in cosmetics:
            self.apply_delta(date, item, -spectators)
        self.remove_match(date, match_id)

    def resolve_duplicate_matches(self) -> int:
        """
        Keep a single reference per match id: the one with the most spectators,
        the first one on ties.

        Every other reference is removed along with its item contribution,
        replayed from its own stored cosmetics or else from the kept
        reference's. When neither side knows its cosmetics both references
        stay, and the aggregation engine clears the extra one on the match's
        next update. Returns the number of references removed.
        """
        kept: Dict[str, Tuple[str, MatchRecord]] = {}
        extra: List[Tuple[str, MatchRecord]] = []
        for entry in self.entries.values():
            for record in entry.matches.values():
                current = kept.get(record.match_id)
                if current is None:
                    kept[record.match_id] = (entry.date, record)
                elif current[1].spectators >= record.spectators:
                    extra.append((entry.date, record))
                else:
                    extra.append(current)
                    kept[record.match_id] = (entry.date, record)

        removed = 0
        for date, record in extra:
            kept_date, kept_record = kept[record.match_id]
            cosmetics = record.cosmetics if record.cosmetics is not None else kept_record.cosmetics
            if cosmetics is None:
                logger.warning(
                    f"Match {record.match_id} referenced on {date} and {kept_date} without stored cosmetics; "
                    f"leaving both until its next update"
                )
                continue
            logger.warning(
                f"Match {record.match_id} referenced on {date} and {kept_date}; "
                f"removing its {record.spectators}-spectator copy from {date}"
            )
            self.subtract_match(date, record.match_id, record.spectators, cosmetics)
            removed += 1
        return removed

    # Loading

    @classmethod
    def from_records(cls, records: Any) -> "CosmeticDatabase":
        """
        Build a database from the persisted list of daily entries.

        Structurally invalid entries and match references are dropped with a
        warning; they never abort the load. A match referenced on several
        dates keeps only its largest observation.
        """
        database = cls()

        if not isinstance(records, list):
            logger.warning(
                f"Database content is not a list ({type(records).__name__}); starting with an empty database"
            )
            return database

        for record in records:
            entry = _parse_daily_entry(record)
            if entry is None:
                continue
            if entry.date in database.entries:
                logger.warning(f"Duplicate date entry {entry.date} in database; merging it into the first one")
                _merge_entry(database.entries[entry.date], entry)
            else:
                database.entries[entry.date] = entry

        database.resolve_duplicate_matches()
        return database

    @classmethod
    def load(cls, path) -> "CosmeticDatabase":
        """
        Load the database from a JSON file.

        A missing file yields an empty database. A corrupt file also yields an
        empty database, with a warning, so the run can make forward progress.
        """
        path = Path(path)
        logger.info(f"Loading database from {path}")

        if not path.exists():
            logger.info(f"No database file at {path}; starting with an empty database")
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                records = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read or parse database file {path}: {e}. Starting with an empty database")
            return cls()

        database = cls.from_records(records)
        logger.info(f"Database loaded: {len(database)} dates, {database.match_count()} match references")
        return database


def _parse_daily_entry(record: Any) -> Optional[DailyEntry]:
    if not isinstance(record, dict):
        logger.warning(f"Invalid daily entry (not an object) in database: {record!r}")
        return None

    date = record.get("date")
    if not isinstance(date, str) or not date:
        logger.warning(f"Daily entry without a date in database: {record!r}")
        return None

    items = record.get("items")
    if not isinstance(items, dict):
        logger.warning(f"Daily entry {date} has items that are not a mapping; dropping it")
        return None

    matches = record.get("matches", [])
    if not isinstance(matches, list):
        logger.warning(f"Daily entry {date} has matches that are not a list; dropping it")
        return None

    entry = DailyEntry(date=date)

    for name, score in items.items():
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            logger.warning(f"Item '{name}' on {date} has a non-numeric score {score!r}; dropping it")
            continue
        entry.items[name] = max(0, int(score))

    for match in matches:
        parsed = _parse_match_record(match, date)
        if parsed is None:
            continue
        if parsed.match_id in entry.matches:
            logger.warning(f"Match {parsed.match_id} listed twice on {date}; keeping the later reference")
        entry.matches[parsed.match_id] = parsed

    return entry


def _parse_match_record(match: Any, date: str) -> Optional[MatchRecord]:
    if not isinstance(match, dict):
        logger.warning(f"Invalid match entry on {date}: {match!r}")
        return None

    match_id = normalize_match_id(match.get("match_id"))
    spectators = match.get("spectators")
    if match_id is None or isinstance(spectators, bool) or not isinstance(spectators, (int, float)):
        logger.warning(f"Invalid match entry on {date}: {match!r}")
        return None

    cosmetics = match.get("cosmetics")
    if cosmetics is not None:
        if isinstance(cosmetics, list) and all(isinstance(name, str) for name in cosmetics):
            cosmetics = tuple(dict.fromkeys(cosmetics))
        else:
            logger.warning(f"Match {match_id} on {date} has malformed cosmetics; treating them as unknown")
            cosmetics = None

    return MatchRecord(match_id, int(spectators), cosmetics)


def _merge_entry(target: DailyEntry, extra: DailyEntry) -> None:
    for name, score in extra.items.items():
        target.items[name] = target.items.get(name, 0) + score

    for match_id, record in extra.matches.items():
        first = target.matches.get(match_id)
        if first is None:
            target.matches[match_id] = record
            continue
        # Listed in both entries: the summed items hold its contribution twice
        cosmetics = record.cosmetics if record.cosmetics is not None else first.cosmetics
        if cosmetics is None:
            logger.warning(
                f"Match {match_id} listed twice on {target.date} without stored cosmetics; "
                f"its second contribution cannot be taken back"
            )
            continue
        logger.warning(f"Match {match_id} listed twice on {target.date}; keeping the first reference")
        for item in cosmetics:
            target.items[item] = max(0, target.items.get(item, 0) - record.spectators)


def load_non_marketable_items(path) -> Optional[set]:
    """
    Read the newline-delimited list of items excluded from the marketable view.

    Returns None when the file does not exist; blank lines are ignored.
    """
    path = Path(path)
    logger.info(f"Loading non-marketable items list from {path}")

    if not path.exists():
        logger.warning(f"Non-marketable items file not found at {path}. No items will be excluded.")
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            names = {line.strip() for line in f}
    except OSError as e:
        logger.error(f"Error reading non-marketable items file {path}: {e}. No items will be excluded.")
        return None

    names.discard("")
    logger.info(f"Loaded {len(names)} unique non-marketable item names")
    return names
