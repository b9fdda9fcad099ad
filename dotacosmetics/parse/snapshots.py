"""
Parsing of live-match snapshots into top-match blocks.

A block is ``{"timestamp": "YYYYMMDD_HHMMSS", "top_matches": {match_id:
[spectators, activate_time]}}``, one per polled snapshot.
"""

import re
from typing import Any, Dict, List, Optional

from dotacosmetics.utils.logger import get_parse_logger
from dotacosmetics.utils.validators import normalize_match_id, validate_live_match

logger = get_parse_logger()

LIVE_FILE_PATTERN = re.compile(r"^live_data_(\d{8}_\d{6})\.json$")


def timestamp_from_filename(filename: str) -> Optional[str]:
    match = LIVE_FILE_PATTERN.match(filename)
    return match.group(1) if match else None


def select_top_matches(live_data: List[Dict[str, Any]], limit: int) -> Dict[str, List[int]]:
    """
    Keep the ``limit`` most watched matches of a snapshot.

    Ranking only needs a match id and numeric spectators; a ranked match is
    then dropped if it has no activate_time, without promoting the next one.
    """
    ranked = [
        m for m in live_data
        if isinstance(m, dict)
        and normalize_match_id(m.get("match_id")) is not None
        and isinstance(m.get("spectators"), (int, float))
        and not isinstance(m.get("spectators"), bool)
    ]
    ranked.sort(key=lambda m: m["spectators"], reverse=True)

    top = {}
    for match in ranked[:limit]:
        is_valid, errors = validate_live_match(match)
        if not is_valid:
            logger.warning(f"  -> Match {match.get('match_id')} excluded from top matches: {'; '.join(errors)}")
            continue
        top[normalize_match_id(match["match_id"])] = [int(match["spectators"]), int(match["activate_time"])]
    return top


def _iter_top_matches(blocks):
    for block in blocks:
        if not isinstance(block, dict) or not isinstance(block.get("top_matches"), dict):
            continue
        for match_id, info in block["top_matches"].items():
            if (
                isinstance(info, list) and len(info) == 2
                and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in info)
            ):
                yield block.get("timestamp"), str(match_id), info
            else:
                logger.warning(
                    f"  -> Invalid match data format for match_id {match_id} in block {block.get('timestamp')}. Skipping."
                )


def build_spectator_map(blocks: List[Dict[str, Any]]) -> Dict[str, int]:
    """Peak spectator count per match id across all snapshot blocks."""
    peaks: Dict[str, int] = {}
    for _, match_id, (spectators, _activate) in _iter_top_matches(blocks):
        peaks[match_id] = max(peaks.get(match_id, 0), int(spectators))
    return peaks


def collect_mature_matches(blocks: List[Dict[str, Any]], now: float, min_age_hours: float) -> Dict[str, int]:
    """
    Match ids whose activate_time is at least ``min_age_hours`` before ``now``.

    Returns:
        Ordered mapping of match id to activate_time, in order of first appearance
    """
    min_age_seconds = min_age_hours * 3600
    mature: Dict[str, int] = {}
    for _, match_id, (_spectators, activate_time) in _iter_top_matches(blocks):
        if match_id in mature:
            continue
        age = now - activate_time
        if age >= min_age_seconds:
            mature[match_id] = int(activate_time)
        else:
            logger.debug(f"  -> Match {match_id} is too recent ({age / 3600:.2f}h old). Skipping for now.")
    return mature
