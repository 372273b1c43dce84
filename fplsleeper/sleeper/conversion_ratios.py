"""
Base FPL -> Sleeper conversion ratio selection.

Priority: per-player calibrated factor > calibrated position ratio >
archetype ratio > fixed position ratio.
"""

from typing import NamedTuple, Optional, Tuple

import config
from fplsleeper.common.matching_settings import get_settings
from fplsleeper.common.text_helpers import base_normalize, map_position

SOURCE_PLAYER = "player_calibration"
SOURCE_CALIBRATED = "calibrated_position"
SOURCE_ARCHETYPE = "archetype"
SOURCE_FALLBACK = "position_fallback"


class RatioChoice(NamedTuple):
    ratio: float
    source: str
    archetype: Optional[str] = None


def find_archetype(name, position: str, archetypes: dict = None) -> Optional[Tuple[str, float]]:
    """(archetype, ratio) when the player is listed for their position, else None."""
    if archetypes is None:
        archetypes = get_settings()["archetypes"]
    norm = base_normalize(name)
    if not norm:
        return None
    for archetype, info in archetypes.get(position, {}).items():
        for listed in info.get("players", []):
            if listed == norm or listed in norm or norm in listed:
                return archetype, info["ratio"]
    return None


def get_conversion_ratio(player, calibration=None, archetypes: dict = None) -> RatioChoice:
    """Pick the base ratio for a JoinedPlayer."""
    position = map_position(player.position)
    if calibration is not None:
        factor = calibration.player_factors.get(str(player.player_id))
        if factor is not None:
            return RatioChoice(factor, SOURCE_PLAYER)
        if position in calibration.calibrated_positions:
            return RatioChoice(calibration.position_ratios[position], SOURCE_CALIBRATED)

    found = find_archetype(player.name, position, archetypes)
    if found is not None:
        return RatioChoice(found[1], SOURCE_ARCHETYPE, found[0])
    return RatioChoice(config.FALLBACK_CONVERSION_RATIOS.get(position, 1.0), SOURCE_FALLBACK)
