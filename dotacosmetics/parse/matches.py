from datetime import datetime, timezone

from dotacosmetics.utils.logger import get_parse_logger
from dotacosmetics.utils.validators import DAY_FORMAT, normalize_match_id, validate_match_detail

logger = get_parse_logger()


def format_day(unix_timestamp):
    """Day of a Unix timestamp as DD/MM/YYYY (UTC), or None if it isn't one."""
    if isinstance(unix_timestamp, bool) or not isinstance(unix_timestamp, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(unix_timestamp, tz=timezone.utc).strftime(DAY_FORMAT)
    except (OverflowError, OSError, ValueError):
        logger.warning(f"Error formatting timestamp {unix_timestamp}")
        return None


def extract_cosmetic_names(detail):
    """Unique cosmetic names used by any player of a match, in first-seen order."""
    names = {}
    for player in detail.get("players") or []:
        if not isinstance(player, dict):
            continue
        for cosmetic in player.get("cosmetics") or []:
            if not isinstance(cosmetic, dict):
                continue
            name = cosmetic.get("name") or cosmetic.get("item_name")
            if isinstance(name, str) and name.strip():
                names.setdefault(name.strip(), None)
    return list(names)


def build_contribution(detail, spectators):
    """
    Turn a match detail and its peak spectator count into a contribution record.

    Returns None when the detail is unusable.
    """
    is_valid, errors = validate_match_detail(detail)
    if not is_valid:
        logger.warning(f"  -> Invalid match detail: {'; '.join(errors)}")
        return None

    return {
        "match_id": normalize_match_id(detail["match_id"]),
        "date": format_day(detail["start_time"]),
        "cosmetics": extract_cosmetic_names(detail),
        "spectators": int(spectators),
    }
