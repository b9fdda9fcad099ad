"""
Incremental aggregation of match contributions into the daily database.

For each contribution the engine consults the ledger and decides whether
the match is new, an update of an earlier observation, or a replay:

- new: add ``spectators`` to every cosmetic on the contribution's date.
- update (strictly more spectators than last applied): first subtract the
  previously applied contribution from its old date, then add the new one.
- otherwise: skip without touching the database.

Spectator counts for a match only ever grow upstream, so replaying a batch
leaves the database unchanged.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dotacosmetics.database.ledger import ContributionLedger
from dotacosmetics.database.models import LedgerEntry, MatchContribution, Outcome
from dotacosmetics.database.store import CosmeticDatabase
from dotacosmetics.utils.logger import get_database_logger
from dotacosmetics.utils.validators import is_valid_date, validate_contribution

logger = get_database_logger()


@dataclass
class AggregationSummary:
    """Outcome counts for one batch."""

    added: int = 0
    updated: int = 0
    skipped: int = 0
    errored: int = 0
    errors: List[str] = field(default_factory=list)

    def record(self, outcome: Outcome) -> None:
        if outcome is Outcome.ADDED:
            self.added += 1
        elif outcome is Outcome.UPDATED:
            self.updated += 1
        elif outcome is Outcome.SKIPPED:
            self.skipped += 1
        else:
            self.errored += 1

    @property
    def total(self) -> int:
        return self.added + self.updated + self.skipped + self.errored

    def as_dict(self) -> Dict[str, int]:
        return {
            "new": self.added,
            "updated": self.updated,
            "skipped": self.skipped,
            "errored": self.errored,
        }


def _remove_contribution(match_id: str, previous: LedgerEntry, fallback_cosmetics: Tuple[str, ...],
                         database: CosmeticDatabase) -> None:
    if database.get(previous.date) is None:
        logger.warning(
            f"Cannot remove old contribution for {match_id}: date {previous.date} not in database"
        )
        return

    cosmetics = previous.cosmetics
    if cosmetics is None:
        # Written before cosmetics were stored per match; the newly observed list is the best guess
        logger.warning(
            f"Match {match_id} has no stored cosmetics on {previous.date}; "
            f"removing its old contribution using the newly observed cosmetics"
        )
        cosmetics = fallback_cosmetics

    logger.debug(f"  -> Removing old contribution ({previous.spectators} spectators) of {match_id} from {previous.date}")
    database.subtract_match(previous.date, match_id, previous.spectators, cosmetics)


def _remove_stale_references(match_id: str, ledger: ContributionLedger, fallback_cosmetics: Tuple[str, ...],
                             database: CosmeticDatabase) -> None:
    for stale in ledger.pop_stale(match_id):
        logger.warning(f"  -> Clearing extra reference of match {match_id} on {stale.date}")
        _remove_contribution(match_id, stale, fallback_cosmetics, database)


def _add_contribution(contribution: MatchContribution, database: CosmeticDatabase,
                      ledger: ContributionLedger) -> None:
    logger.debug(
        f"  -> Adding contribution ({contribution.spectators} spectators) of "
        f"{contribution.match_id} to {contribution.date}"
    )
    database.upsert(contribution.date)
    for item in contribution.cosmetics:
        database.apply_delta(contribution.date, item, contribution.spectators)
    database.add_match(contribution.date, contribution.match_id, contribution.spectators, contribution.cosmetics)
    ledger.record(
        contribution.match_id,
        LedgerEntry(contribution.date, contribution.spectators, contribution.cosmetics),
    )


def apply_contribution(contribution: MatchContribution, database: CosmeticDatabase,
                       ledger: ContributionLedger) -> Outcome:
    """
    Apply one validated contribution to the database.

    Args:
        contribution: Validated match contribution
        database: Database to mutate
        ledger: Ledger built from ``database``; updated in place

    Returns:
        The outcome: ADDED, UPDATED, SKIPPED, or REJECTED when the
        contribution turns out to be malformed
    """
    if not isinstance(contribution, MatchContribution) or contribution.cosmetics is None:
        logger.warning(f"  -> Rejecting malformed contribution: {contribution!r}")
        return Outcome.REJECTED
    if not is_valid_date(contribution.date):
        logger.warning(f"  -> Rejecting contribution {contribution.match_id}: invalid date {contribution.date!r}")
        return Outcome.REJECTED

    match_id = contribution.match_id
    previous = ledger.get(match_id)
    outcome = Outcome.ADDED

    if previous is None:
        logger.info(f"  -> New match found: {match_id}")
    elif not is_valid_date(previous.date):
        logger.warning(
            f"  -> Previous entry of match {match_id} has an invalid date {previous.date!r}; treating it as new"
        )
        # Nothing trustworthy to subtract, but the stale reference must not outlive this one
        database.remove_match(previous.date, match_id)
    elif contribution.spectators > previous.spectators:
        logger.info(
            f"  -> Update detected for match {match_id}: new spectators "
            f"({contribution.spectators}) > old ({previous.spectators})"
        )
        _remove_contribution(match_id, previous, contribution.cosmetics, database)
        outcome = Outcome.UPDATED
    else:
        logger.info(
            f"  -> Skipping: match {match_id} already processed with {previous.spectators} "
            f"spectators (>= current {contribution.spectators})"
        )
        return Outcome.SKIPPED

    _remove_stale_references(match_id, ledger, contribution.cosmetics, database)

    if not contribution.cosmetics:
        logger.info(f"  -> Match {match_id} has no cosmetics; recording it without item changes")

    _add_contribution(contribution, database, ledger)
    return outcome


class AggregationEngine:
    """
    Applies a batch of contributions to a database, strictly in input order.

    The engine owns the database for the duration of a run; the ledger is
    rebuilt from it on construction.
    """

    def __init__(self, database: CosmeticDatabase, ledger: Optional[ContributionLedger] = None):
        self.database = database
        self.ledger = ledger if ledger is not None else ContributionLedger.build(database)
        self.summary = AggregationSummary()

    def apply(self, contribution: MatchContribution) -> Outcome:
        outcome = apply_contribution(contribution, self.database, self.ledger)
        self.summary.record(outcome)
        return outcome

    def apply_payload(self, payload: Any, source: str = "payload") -> Outcome:
        """Validate a raw record and apply it. Never raises."""
        contribution, errors = validate_contribution(payload)
        if contribution is None:
            message = f"{source}: " + "; ".join(errors)
            logger.warning(f"  -> Skipping invalid contribution from {message}")
            self.summary.errors.append(message)
            self.summary.record(Outcome.REJECTED)
            return Outcome.REJECTED

        try:
            return self.apply(contribution)
        except Exception as e:
            logger.error(f"  -> Error applying contribution {contribution.match_id} from {source}: {e}")
            self.summary.errors.append(f"{source}: {e}")
            self.summary.record(Outcome.REJECTED)
            return Outcome.REJECTED

    def apply_batch(self, payloads: Iterable[Tuple[str, Any]]) -> AggregationSummary:
        """
        Apply ``(source, payload)`` pairs in order.

        Returns:
            The running summary for this engine
        """
        for source, payload in payloads:
            logger.info(f"Processing {source}...")
            self.apply_payload(payload, source=source)
        return self.summary
