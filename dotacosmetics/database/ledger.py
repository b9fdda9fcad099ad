from typing import Dict, Iterator, List, Optional

from dotacosmetics.database.models import LedgerEntry
from dotacosmetics.database.store import CosmeticDatabase
from dotacosmetics.utils.logger import get_database_logger

logger = get_database_logger()


class ContributionLedger:
    """
    Index from match id to the contribution it was last applied with.

    Always derived from the database's match references; it is never
    persisted on its own. The aggregation engine records every contribution
    it applies so the index stays in step with the database during a run.

    A match referenced on more than one date is indexed by its largest
    observation; the other references are kept as stale entries for the
    engine to take back on the match's next update.
    """

    def __init__(self):
        self._entries: Dict[str, LedgerEntry] = {}
        self._stale: Dict[str, List[LedgerEntry]] = {}

    @classmethod
    def build(cls, database: CosmeticDatabase) -> "ContributionLedger":
        ledger = cls()
        for entry in database:
            for record in entry.matches.values():
                observed = LedgerEntry(entry.date, record.spectators, record.cosmetics)
                previous = ledger._entries.get(record.match_id)
                if previous is not None:
                    logger.warning(
                        f"Match {record.match_id} referenced on both {previous.date} and {entry.date}"
                    )
                    if previous.spectators >= record.spectators:
                        ledger._stale.setdefault(record.match_id, []).append(observed)
                        continue
                    ledger._stale.setdefault(record.match_id, []).append(previous)
                ledger._entries[record.match_id] = observed
        logger.info(f"Ledger built: {len(ledger)} previously processed matches")
        return ledger

    def get(self, match_id: str) -> Optional[LedgerEntry]:
        return self._entries.get(match_id)

    def stale(self, match_id: str) -> List[LedgerEntry]:
        return list(self._stale.get(match_id, ()))

    def pop_stale(self, match_id: str) -> List[LedgerEntry]:
        return self._stale.pop(match_id, [])

    def record(self, match_id: str, entry: LedgerEntry) -> None:
        self._entries[match_id] = entry

    def __contains__(self, match_id):
        return match_id in self._entries

    def __len__(self):
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def as_dict(self) -> Dict[str, LedgerEntry]:
        return dict(self._entries)
