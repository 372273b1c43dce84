"""
Current-period matchup quality and start/bench recommendations.
"""

from typing import NamedTuple, Optional

import config
from fplsleeper.common.text_helpers import map_position


class Matchup(NamedTuple):
    quality: str
    label: str
    opponent: str = "TBD"
    difficulty: Optional[float] = None
    adjusted_difficulty: Optional[float] = None
    is_home: Optional[bool] = None


class Recommendation(NamedTuple):
    recommendation: str
    label: str
    confidence: str


UNKNOWN_MATCHUP = Matchup("unknown", "UNKNOWN")
UNKNOWN_RECOMMENDATION = Recommendation("UNKNOWN", "UNKNOWN", "none")


def adjust_difficulty(difficulty, is_home: Optional[bool]) -> float:
    """
    Home eases the fixture by 0.5, away makes it 0.3 harder; result stays in [1, 5].

    An unknown home/away flag (None) applies no shift.
    """
    d = float(difficulty) if difficulty is not None else float(config.NEUTRAL_DIFFICULTY)
    if is_home is True:
        d = max(1.0, d + config.HOME_DIFFICULTY_SHIFT)
    elif is_home is False:
        d = min(5.0, d + config.AWAY_DIFFICULTY_SHIFT)
    return d


def classify_difficulty(adjusted: float):
    """(quality, label) for an adjusted difficulty."""
    for upper, quality, label in config.MATCHUP_TIERS:
        if adjusted <= upper:
            return quality, label
    _, quality, label = config.MATCHUP_TIERS[-1]
    return quality, label


def classify_matchup(player, current_period: int) -> Matchup:
    """Matchup for the player's current-period fixture, 'unknown' when there is none."""
    entry = next((p for p in player.predictions if p.period == current_period), None)
    if entry is None:
        return UNKNOWN_MATCHUP
    adjusted = adjust_difficulty(entry.opponent_difficulty, entry.is_home)
    quality, label = classify_difficulty(adjusted)
    return Matchup(
        quality=quality,
        label=label,
        opponent=entry.opponent or "TBD",
        difficulty=entry.opponent_difficulty if entry.opponent_difficulty is not None else config.NEUTRAL_DIFFICULTY,
        adjusted_difficulty=round(adjusted, 2),
        is_home=entry.is_home,
    )


def start_recommendation(points: float, position: str) -> Recommendation:
    """MUST_START / SAFE_START / FLEX / BENCH from position thresholds."""
    must, safe, flex = config.START_THRESHOLDS[map_position(position)]
    points = float(points)
    if points >= must:
        return Recommendation("MUST_START", "MUST START", "high")
    if points >= safe:
        return Recommendation("SAFE_START", "SAFE START", "medium")
    if points >= flex:
        return Recommendation("FLEX", "FLEX PLAY", "low")
    return Recommendation("BENCH", "BENCH", "none")
