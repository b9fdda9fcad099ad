"""Tests for the database store, ledger, marketable projection and serializer."""

import os
import tempfile
from pathlib import Path

from dotacosmetics.database.engine import AggregationEngine
from dotacosmetics.database.ledger import ContributionLedger
from dotacosmetics.database.marketability import project_marketable
from dotacosmetics.database.models import MatchContribution, Outcome
from dotacosmetics.database.serializer import dumps, save_database, serialize_database
from dotacosmetics.database.store import CosmeticDatabase, load_non_marketable_items

PERSISTED = [
    {
        "date": "10/03/2024",
        "items": {"Golden Basher Blades": 30, "Arms of Desolation": 12},
        "matches": [
            {"match_id": "200", "spectators": 18, "cosmetics": ["Golden Basher Blades"]},
            {"match_id": "100", "spectators": 12, "cosmetics": ["Arms of Desolation", "Golden Basher Blades"]},
        ],
    },
    {
        "date": "02/03/2024",
        "items": {"Arms of Desolation": 5},
        "matches": [{"match_id": "300", "spectators": 5}],
    },
]


def test_load_keeps_valid_entries_and_drops_broken_ones():
    records = PERSISTED + [
        {"items": {"A": 1}, "matches": []},
        {"date": "11/03/2024", "items": ["A"], "matches": []},
        {"date": "12/03/2024", "items": {"A": 1}, "matches": "none"},
        "garbage",
        {"date": "13/03/2024", "items": {"A": 4}, "matches": [{"match_id": "400"}, {"match_id": 500, "spectators": 4}]},
    ]

    database = CosmeticDatabase.from_records(records)

    assert sorted(database.entries) == ["02/03/2024", "10/03/2024", "13/03/2024"]
    assert list(database.get("13/03/2024").matches) == ["500"], "Invalid match refs are dropped, ids normalized"
    assert database.get("02/03/2024").matches["300"].cosmetics is None
    assert database.get("10/03/2024").matches["100"].cosmetics == ("Arms of Desolation", "Golden Basher Blades")


def test_load_missing_or_corrupt_file_starts_empty():
    with tempfile.TemporaryDirectory() as tmp:
        missing = CosmeticDatabase.load(Path(tmp) / "nope.json")
        assert len(missing) == 0

        corrupt = Path(tmp) / "db.json"
        corrupt.write_text("[{not json", encoding="utf-8")
        assert len(CosmeticDatabase.load(corrupt)) == 0

        not_a_list = Path(tmp) / "obj.json"
        not_a_list.write_text('{"date": "01/01/2024"}', encoding="utf-8")
        assert len(CosmeticDatabase.load(not_a_list)) == 0


def test_apply_delta_creates_and_clamps():
    database = CosmeticDatabase()

    assert database.apply_delta("01/01/2024", "A", 5) == 5
    assert database.apply_delta("01/01/2024", "A", -3) == 2
    assert database.apply_delta("01/01/2024", "A", -10) == 0
    assert database.apply_delta("01/01/2024", "B", -1) == 0
    assert database.get("01/01/2024").items == {"A": 0, "B": 0}

    database.prune()
    assert "01/01/2024" not in database, "Date with no items and no matches is dropped"


def test_add_match_overwrites_existing_reference():
    database = CosmeticDatabase()
    database.add_match("01/01/2024", "M", 5, ("A",))
    database.add_match("01/01/2024", "M", 9, ("A",))

    entry = database.get("01/01/2024")
    assert len(entry.matches) == 1
    assert entry.matches["M"].spectators == 9

    removed = database.remove_match("01/01/2024", "M")
    assert removed.spectators == 9
    assert database.remove_match("01/01/2024", "M") is None
    assert database.remove_match("02/01/2024", "M") is None


def test_ledger_is_built_from_match_references():
    database = CosmeticDatabase.from_records(PERSISTED)

    ledger = ContributionLedger.build(database)

    assert len(ledger) == 3
    assert ledger.get("200").date == "10/03/2024"
    assert ledger.get("200").spectators == 18
    assert ledger.get("300").cosmetics is None
    assert "999" not in ledger


def test_ledger_keeps_larger_observation_for_duplicated_match():
    database = CosmeticDatabase.from_records([
        {"date": "01/01/2024", "items": {"A": 10}, "matches": [{"match_id": "M", "spectators": 10}]},
        {"date": "02/01/2024", "items": {"A": 15}, "matches": [{"match_id": "M", "spectators": 15}]},
    ])

    ledger = ContributionLedger.build(database)

    assert ledger.get("M").date == "02/01/2024"
    assert ledger.get("M").spectators == 15
    assert [stale.date for stale in ledger.stale("M")] == ["01/01/2024"]

    engine = AggregationEngine(database, ledger)
    assert engine.apply(MatchContribution("M", "03/01/2024", ("A",), 20)) is Outcome.UPDATED

    holders = [entry.date for entry in database if "M" in entry.matches]
    assert holders == ["03/01/2024"], "Every older reference is cleared on update"
    assert database.get("01/01/2024").items["A"] == 0
    assert database.get("02/01/2024").items["A"] == 0
    assert database.get("03/01/2024").items["A"] == 20
    assert ledger.stale("M") == []


def test_duplicated_match_with_stored_cosmetics_is_resolved_on_load():
    database = CosmeticDatabase.from_records([
        {"date": "01/01/2024", "items": {"A": 10, "B": 3}, "matches": [
            {"match_id": "M", "spectators": 10, "cosmetics": ["A"]},
            {"match_id": "N", "spectators": 3, "cosmetics": ["B"]},
        ]},
        {"date": "02/01/2024", "items": {"A": 15, "C": 15}, "matches": [
            {"match_id": "M", "spectators": 15},
        ]},
        {"date": "03/01/2024", "items": {"C": 4}, "matches": [
            {"match_id": "M", "spectators": 4, "cosmetics": ["C"]},
        ]},
    ])

    assert [entry.date for entry in database if "M" in entry.matches] == ["02/01/2024"]
    assert database.get("01/01/2024").items == {"A": 0, "B": 3}
    assert database.get("03/01/2024").items == {"C": 0}
    assert database.get("02/01/2024").items == {"A": 15, "C": 15}

    ledger = ContributionLedger.build(database)
    assert ledger.get("M").date == "02/01/2024"
    assert ledger.stale("M") == []
    assert len(ledger) == 2


def test_duplicate_date_entries_count_a_shared_match_once():
    database = CosmeticDatabase.from_records([
        {"date": "01/01/2024", "items": {"A": 5}, "matches": [
            {"match_id": "M", "spectators": 5, "cosmetics": ["A"]},
        ]},
        {"date": "01/01/2024", "items": {"A": 5, "B": 2}, "matches": [
            {"match_id": "M", "spectators": 5, "cosmetics": ["A"]},
            {"match_id": "N", "spectators": 2, "cosmetics": ["B"]},
        ]},
    ])

    entry = database.get("01/01/2024")
    assert entry.items == {"A": 5, "B": 2}
    assert sorted(entry.matches) == ["M", "N"]


def test_marketable_projection_excludes_items_and_empty_dates():
    database = CosmeticDatabase.from_records(PERSISTED)
    database.apply_delta("10/03/2024", "Zero Item", 0)
    before = serialize_database(database)

    projected = project_marketable(database, {"Arms of Desolation"})

    assert list(projected.entries) == ["10/03/2024"]
    assert projected.get("10/03/2024").items == {"Golden Basher Blades": 30}
    assert set(projected.get("10/03/2024").matches) == {"100", "200"}
    assert serialize_database(database) == before, "Source database is not modified"

    projected.get("10/03/2024").items["Golden Basher Blades"] = 1
    assert database.get("10/03/2024").items["Golden Basher Blades"] == 30, "Projection is independent"


def test_projection_without_exclusions_keeps_positive_items():
    database = CosmeticDatabase.from_records(PERSISTED)

    for exclusions in (None, set()):
        projected = project_marketable(database, exclusions)
        assert sorted(projected.entries) == ["02/03/2024", "10/03/2024"]
        assert projected.get("10/03/2024").items == database.get("10/03/2024").items


def test_serializer_orders_dates_items_and_matches():
    database = CosmeticDatabase.from_records(PERSISTED + [
        {"date": "01/04/2023", "items": {"B": 1}, "matches": []},
    ])
    database.apply_delta("10/03/2024", "Faded", 0)

    records = serialize_database(database)

    assert [r["date"] for r in records] == ["01/04/2023", "02/03/2024", "10/03/2024"], "Calendar order, not string order"
    assert list(records[2]["items"]) == ["Arms of Desolation", "Golden Basher Blades"]
    assert [m["match_id"] for m in records[2]["matches"]] == ["100", "200"]
    assert records[2]["matches"][0] == {
        "match_id": "100",
        "spectators": 12,
        "cosmetics": ["Arms of Desolation", "Golden Basher Blades"],
    }
    assert records[1]["matches"] == [{"match_id": "300", "spectators": 5}], "Legacy refs keep their shape"


def test_serialization_is_deterministic():
    database = CosmeticDatabase.from_records(PERSISTED)

    assert dumps(serialize_database(database)) == dumps(serialize_database(database))

    # Same content inserted in a different order
    reordered = CosmeticDatabase.from_records(list(reversed(PERSISTED)))
    assert dumps(serialize_database(reordered)) == dumps(serialize_database(database))


def test_save_and_reload_round_trip_and_failed_save_keeps_old_file():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "db.json"
        database = CosmeticDatabase.from_records(PERSISTED)

        assert save_database(database, path) is True
        reloaded = CosmeticDatabase.load(path)
        assert serialize_database(reloaded) == serialize_database(database)
        original_text = path.read_text(encoding="utf-8")

        blocked = Path(tmp) / "blocked.json"
        blocked.mkdir()
        assert save_database(database, blocked) is False
        assert path.read_text(encoding="utf-8") == original_text
        assert [p for p in os.listdir(tmp) if p.endswith(".tmp")] == [], "No temp files left behind"


def test_end_to_end_scores_and_marketable_view():
    engine = AggregationEngine(CosmeticDatabase())
    for c in [
        MatchContribution("1", "01/05/2024", ("Hood", "Blade", "Cape"), 100),
        MatchContribution("2", "01/05/2024", ("Blade",), 40),
        MatchContribution("3", "02/05/2024", ("Blade", "Cape"), 25),
    ]:
        engine.apply(c)
    engine.database.prune()

    records = serialize_database(engine.database)
    assert records[0]["items"] == {"Blade": 140, "Cape": 100, "Hood": 100}
    assert records[1]["items"] == {"Blade": 25, "Cape": 25}

    marketable = serialize_database(project_marketable(engine.database, {"Cape"}))
    assert marketable[0]["items"] == {"Blade": 140, "Hood": 100}
    assert marketable[1]["items"] == {"Blade": 25}


def test_non_marketable_list():
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "nonmarketable.txt"
        assert load_non_marketable_items(path) is None

        path.write_text("Hood\n\n  Cape  \r\nHood\n", encoding="utf-8")
        assert load_non_marketable_items(path) == {"Hood", "Cape"}
