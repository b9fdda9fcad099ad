"""
Data validation utilities.

Provides validators for match contributions, live snapshot rows and match
details with detailed error reporting. Validators never raise; they return
the errors so the caller can count and log them.
"""

from typing import Dict, Any, List, Tuple, Optional
from datetime import datetime, date
from numbers import Number

from dotacosmetics.database.models import MatchContribution

DAY_FORMAT = "%d/%m/%Y"


def is_valid_date(date_str: str, format: str = DAY_FORMAT) -> bool:
    """
    Check if a date string is valid.

    Args:
        date_str: Date string to validate
        format: Expected date format

    Returns:
        True if valid, False otherwise
    """
    return parse_day(date_str, format) is not None


def parse_day(date_str: Any, format: str = DAY_FORMAT) -> Optional[date]:
    """Parse a day-resolution date string, or return None when it isn't one."""
    if not isinstance(date_str, str) or date_str == "":
        return None
    # strptime accepts single-digit fields; the stored keys must be zero padded
    if format == DAY_FORMAT and len(date_str) != 10:
        return None

    try:
        return datetime.strptime(date_str, format).date()
    except (ValueError, TypeError):
        return None


def _is_non_negative_integer(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, Number):
        return False
    if isinstance(value, float) and not value.is_integer():
        return False
    return value >= 0


def normalize_match_id(value: Any) -> Optional[str]:
    """OpenDota returns numeric ids; the database keys them as strings."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value) if value >= 0 else None
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def validate_contribution(payload: Any) -> Tuple[Optional[MatchContribution], List[str]]:
    """
    Validate a candidate match contribution and normalize it.

    Args:
        payload: Dictionary with match_id, date, cosmetics and spectators

    Returns:
        Tuple of (contribution or None, list_of_error_messages)
    """
    errors = []

    if not payload or not isinstance(payload, dict):
        errors.append("Contribution is empty or not a mapping")
        return None, errors

    match_id = normalize_match_id(payload.get("match_id"))
    if match_id is None:
        errors.append(f"Missing or invalid match_id: {payload.get('match_id')!r}")

    date_str = payload.get("date")
    if not is_valid_date(date_str):
        errors.append(f"Invalid or missing date (expected DD/MM/YYYY): {date_str!r}")

    cosmetics = payload.get("cosmetics")
    names: List[str] = []
    if not isinstance(cosmetics, (list, tuple, set, frozenset)):
        errors.append(f"cosmetics is not a list: {type(cosmetics).__name__}")
    else:
        for name in cosmetics:
            if not isinstance(name, str):
                errors.append(f"Cosmetic name is not a string: {name!r}")
                continue
            name = name.strip()
            if name and name not in names:
                names.append(name)

    spectators = payload.get("spectators")
    if not _is_non_negative_integer(spectators):
        errors.append(f"spectators is not a non-negative integer: {spectators!r}")

    if errors:
        return None, errors

    return MatchContribution(
        match_id=match_id,
        date=date_str,
        cosmetics=tuple(names),
        spectators=int(spectators),
    ), errors


def validate_live_match(match: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate one row of a live-match snapshot.

    Args:
        match: Match dictionary from the live endpoint

    Returns:
        Tuple of (is_valid, list_of_error_messages)
    """
    errors = []

    if not match or not isinstance(match, dict):
        errors.append("Live match is empty or not a mapping")
        return False, errors

    if normalize_match_id(match.get("match_id")) is None:
        errors.append("Missing match_id")

    if not _is_non_negative_integer(match.get("spectators")):
        errors.append(f"Invalid spectators: {match.get('spectators')!r}")

    activate_time = match.get("activate_time")
    if isinstance(activate_time, bool) or not isinstance(activate_time, Number):
        errors.append(f"Missing or non-numeric activate_time: {activate_time!r}")

    return len(errors) == 0, errors


def validate_match_detail(detail: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate a match detail payload from OpenDota.

    Args:
        detail: Match detail dictionary

    Returns:
        Tuple of (is_valid, list_of_error_messages)
    """
    errors = []

    if not detail or not isinstance(detail, dict):
        errors.append("Match detail is empty or not a mapping")
        return False, errors

    if normalize_match_id(detail.get("match_id")) is None:
        errors.append("Missing match_id")

    start_time = detail.get("start_time")
    if isinstance(start_time, bool) or not isinstance(start_time, Number) or start_time <= 0:
        errors.append(f"Invalid start_time: {start_time!r}")

    players = detail.get("players")
    if not isinstance(players, list):
        errors.append(f"players is not a list: {type(players).__name__}")
    else:
        for i, player in enumerate(players):
            if not isinstance(player, dict):
                errors.append(f"Player {i} is not a dictionary: {type(player).__name__}")

    return len(errors) == 0, errors
