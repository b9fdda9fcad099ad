"""
Record types for the daily cosmetic popularity database.

A ``MatchContribution`` is one validated match observation on its way into
the database. A ``DailyEntry`` holds, for one calendar day, the accumulated
item scores and the matches currently contributing to them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class MatchContribution:
    """A validated match observation: its day, unique cosmetic names and peak spectators."""

    match_id: str
    date: str
    cosmetics: Tuple[str, ...]
    spectators: int


@dataclass
class MatchRecord:
    """
    A match as stored inside a ``DailyEntry``.

    ``cosmetics`` is the exact list the match was applied with, so its
    contribution can be removed later. It is ``None`` for entries written
    before cosmetics were persisted alongside each match.
    """

    match_id: str
    spectators: int
    cosmetics: Optional[Tuple[str, ...]] = None

    def to_dict(self):
        record = {"match_id": self.match_id, "spectators": self.spectators}
        if self.cosmetics is not None:
            record["cosmetics"] = sorted(self.cosmetics)
        return record


@dataclass
class DailyEntry:
    date: str
    items: Dict[str, int] = field(default_factory=dict)
    matches: Dict[str, MatchRecord] = field(default_factory=dict)

    def copy(self):
        return DailyEntry(
            date=self.date,
            items=dict(self.items),
            matches={
                match_id: MatchRecord(record.match_id, record.spectators, record.cosmetics)
                for match_id, record in self.matches.items()
            },
        )


@dataclass(frozen=True)
class LedgerEntry:
    """Most recently applied contribution of one match."""

    date: str
    spectators: int
    cosmetics: Optional[Tuple[str, ...]] = None


class Outcome(Enum):
    """What the aggregation engine did with a contribution."""

    ADDED = "added"
    UPDATED = "updated"
    SKIPPED = "skipped"
    REJECTED = "rejected"
