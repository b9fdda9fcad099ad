"""Tests for the incremental aggregation of match contributions."""

from dotacosmetics.database.engine import AggregationEngine, apply_contribution
from dotacosmetics.database.ledger import ContributionLedger
from dotacosmetics.database.models import LedgerEntry, MatchContribution, Outcome
from dotacosmetics.database.serializer import serialize_database
from dotacosmetics.database.store import CosmeticDatabase

D1 = "05/03/2024"
D2 = "06/03/2024"
D3 = "07/03/2024"


def contribution(match_id, date, spectators, cosmetics):
    return MatchContribution(match_id=match_id, date=date, cosmetics=tuple(cosmetics), spectators=spectators)


def score(database, date, item):
    entry = database.get(date)
    if entry is None:
        return 0
    return entry.items.get(item, 0)


def new_engine():
    return AggregationEngine(CosmeticDatabase())


def test_new_match_adds_spectators_to_each_cosmetic():
    engine = new_engine()
    outcome = engine.apply(contribution("M", D1, 10, ["A", "B"]))

    assert outcome is Outcome.ADDED
    assert score(engine.database, D1, "A") == 10
    assert score(engine.database, D1, "B") == 10
    assert engine.database.find_match(D1, "M").spectators == 10
    assert engine.ledger.get("M") == LedgerEntry(D1, 10, ("A", "B"))


def test_applying_same_contribution_twice_is_a_no_op():
    engine = new_engine()
    c = contribution("M", D1, 10, ["A", "B"])
    engine.apply(c)
    once = serialize_database(engine.database)

    outcome = engine.apply(c)

    assert outcome is Outcome.SKIPPED
    assert serialize_database(engine.database) == once
    assert engine.summary.as_dict() == {"new": 1, "updated": 0, "skipped": 1, "errored": 0}


def test_update_moves_contribution_to_new_date_and_cosmetics():
    engine = new_engine()
    engine.apply(contribution("M", D1, 10, ["A", "B"]))

    outcome = engine.apply(contribution("M", D2, 15, ["B", "C"]))

    assert outcome is Outcome.UPDATED
    assert score(engine.database, D1, "A") == 0
    assert score(engine.database, D1, "B") == 0
    assert score(engine.database, D2, "B") == 15
    assert score(engine.database, D2, "C") == 15
    assert engine.database.find_match(D1, "M") is None
    assert engine.database.find_match(D2, "M").spectators == 15
    assert engine.ledger.get("M").date == D2
    assert engine.ledger.get("M").spectators == 15

    engine.database.prune()
    assert D1 not in engine.database, "Emptied date is pruned"


def test_smaller_observation_after_update_is_skipped():
    engine = new_engine()
    engine.apply(contribution("M", D1, 10, ["A", "B"]))
    engine.apply(contribution("M", D2, 15, ["B", "C"]))
    before = serialize_database(engine.database)

    outcome = engine.apply(contribution("M", D3, 5, ["D"]))

    assert outcome is Outcome.SKIPPED
    assert serialize_database(engine.database) == before
    assert D3 not in engine.database


def test_equal_spectators_is_not_an_update():
    engine = new_engine()
    engine.apply(contribution("M", D1, 10, ["A"]))

    outcome = engine.apply(contribution("M", D2, 10, ["B"]))

    assert outcome is Outcome.SKIPPED
    assert score(engine.database, D1, "A") == 10
    assert D2 not in engine.database


def test_distinct_matches_on_same_date_are_additive():
    engine = new_engine()
    engine.apply(contribution("M1", D1, 7, ["A"]))
    engine.apply(contribution("M2", D1, 3, ["A", "B"]))

    assert score(engine.database, D1, "A") == 10
    assert score(engine.database, D1, "B") == 3

    # Moving M2 away leaves exactly M1's contribution behind
    engine.apply(contribution("M2", D2, 4, ["A"]))
    assert score(engine.database, D1, "A") == 7
    assert score(engine.database, D1, "B") == 0
    assert score(engine.database, D2, "A") == 4


def test_item_scores_match_contributing_matches_after_every_step():
    engine = new_engine()
    steps = [
        contribution("M1", D1, 7, ["A", "B"]),
        contribution("M2", D1, 3, ["A"]),
        contribution("M1", D1, 9, ["B", "C"]),
        contribution("M3", D2, 20, ["C"]),
        contribution("M2", D2, 3, ["A"]),
        contribution("M2", D2, 6, ["A", "C"]),
        contribution("M3", D1, 25, []),
    ]
    for step in steps:
        engine.apply(step)
        for entry in engine.database:
            expected = {}
            for record in entry.matches.values():
                for item in record.cosmetics:
                    expected[item] = expected.get(item, 0) + record.spectators
            actual = {item: s for item, s in entry.items.items() if s > 0}
            assert actual == expected, f"{entry.date} after {step}: {actual} != {expected}"


def test_empty_cosmetics_still_takes_a_ledger_slot():
    engine = new_engine()

    outcome = engine.apply(contribution("M", D1, 40, []))

    assert outcome is Outcome.ADDED
    assert engine.database.get(D1).items == {}
    assert engine.database.find_match(D1, "M").spectators == 40
    assert engine.ledger.get("M").spectators == 40

    # A later observation with cosmetics is an update, not a new match
    outcome = engine.apply(contribution("M", D1, 50, ["A"]))
    assert outcome is Outcome.UPDATED
    assert score(engine.database, D1, "A") == 50


def test_invalid_previous_date_is_treated_as_new():
    database = CosmeticDatabase.from_records([
        {"date": "2024-03-05", "items": {"A": 10}, "matches": [{"match_id": "M", "spectators": 10}]},
    ])
    engine = AggregationEngine(database)
    assert engine.ledger.get("M").date == "2024-03-05"

    outcome = engine.apply(contribution("M", D1, 5, ["B"]))

    assert outcome is Outcome.ADDED
    assert score(database, "2024-03-05", "A") == 10, "Nothing is subtracted from an untrusted entry"
    assert database.find_match("2024-03-05", "M") is None
    assert score(database, D1, "B") == 5
    assert engine.ledger.get("M") == LedgerEntry(D1, 5, ("B",))


def test_update_of_legacy_entry_uses_observed_cosmetics():
    database = CosmeticDatabase.from_records([
        {"date": D1, "items": {"A": 10, "B": 4}, "matches": [{"match_id": "M", "spectators": 10}]},
    ])
    engine = AggregationEngine(database)

    outcome = engine.apply(contribution("M", D1, 12, ["A", "Z"]))

    assert outcome is Outcome.UPDATED
    assert score(database, D1, "A") == 12
    assert score(database, D1, "Z") == 12, "Clamped at 0 before adding"
    assert score(database, D1, "B") == 4


def test_malformed_contribution_is_rejected_and_batch_continues():
    engine = new_engine()

    summary = engine.apply_batch([
        ("filtered_1.json", {"match_id": "1", "date": D1, "cosmetics": ["A"], "spectators": 5}),
        ("filtered_2.json", None),
        ("filtered_3.json", {"match_id": "3", "date": "2024/03/05", "cosmetics": ["A"], "spectators": 5}),
        ("filtered_4.json", {"match_id": "4", "date": D1, "spectators": 5}),
        ("filtered_5.json", {"match_id": "5", "date": D1, "cosmetics": ["A"], "spectators": 2}),
    ])

    assert summary.as_dict() == {"new": 2, "updated": 0, "skipped": 0, "errored": 3}
    assert len(summary.errors) == 3
    assert score(engine.database, D1, "A") == 7


def test_apply_contribution_rejects_non_contribution():
    database = CosmeticDatabase()
    ledger = ContributionLedger.build(database)

    assert apply_contribution({"match_id": "1"}, database, ledger) is Outcome.REJECTED
    assert apply_contribution(contribution("1", "bad", 5, ["A"]), database, ledger) is Outcome.REJECTED
    assert len(database) == 0
    assert len(ledger) == 0


def test_out_of_order_dates_across_matches():
    engine = new_engine()
    engine.apply(contribution("M1", D3, 1, ["A"]))
    engine.apply(contribution("M2", D1, 2, ["A"]))
    engine.apply(contribution("M3", D2, 3, ["A"]))

    assert [record["date"] for record in serialize_database(engine.database)] == [D1, D2, D3]
