"""
Conversion ratio calibration.

Learns FPL -> Sleeper multipliers from past periods where both the FPL
result (from the projection feed's `results`) and the actual Sleeper score
are known. Position ratios use a trimmed mean; players with enough history
get their own factor, regressed toward the position ratio.
"""

from typing import Dict, Iterable, List, NamedTuple

import numpy as np

import config
from fplsleeper.common.error_helpers import get_logger
from fplsleeper.common.text_helpers import POSITIONS

_logger = get_logger("fpl_sleeper.calibration")


class CalibrationResult(NamedTuple):
    position_ratios: Dict[str, float]   # every position, calibrated or fallback
    calibrated_positions: frozenset     # positions with enough samples of their own
    player_factors: Dict[str, float]    # player_id -> blended factor
    sample_count: int
    position_sample_counts: Dict[str, int]
    confidence: str                     # 'high', 'medium', 'low' or 'none'
    calibrated: bool
    fallback_reason: str = ""


def fallback_calibration(reason: str, sample_count: int = 0) -> CalibrationResult:
    """Hard-coded position ratios, no player factors."""
    _logger.info("Calibration fallback (%s): using fixed position ratios", reason)
    return CalibrationResult(
        position_ratios=dict(config.FALLBACK_CONVERSION_RATIOS),
        calibrated_positions=frozenset(),
        player_factors={},
        sample_count=sample_count,
        position_sample_counts={},
        confidence="none",
        calibrated=False,
        fallback_reason=reason,
    )


def trimmed_mean(values: Iterable[float], trim: float = config.CALIBRATION_TRIM) -> float:
    """Mean after dropping floor(n * trim) values from each end."""
    ordered = sorted(values)
    if not ordered:
        return 0.0
    k = int(len(ordered) * trim)
    kept = ordered[k:len(ordered) - k] if k > 0 else ordered
    return float(np.mean(kept))


def _paired_ratios(player, actual_by_period: dict) -> List[float]:
    lo, hi = config.CALIBRATION_RATIO_BOUNDS
    fpl_by_period = {
        p.period: p.predicted_points
        for p in player.predictions
        if p.source == "results" and p.predicted_points > 0
    }
    ratios = []
    for period, sleeper_pts in actual_by_period.items():
        try:
            period, sleeper_pts = int(period), float(sleeper_pts)
        except (TypeError, ValueError):
            continue
        fpl_pts = fpl_by_period.get(period)
        # zero on either side means a blank, an injury or an unused sub
        if not fpl_pts or sleeper_pts <= 0:
            continue
        ratio = sleeper_pts / fpl_pts
        if lo <= ratio <= hi:
            ratios.append(ratio)
    return ratios


def compute_calibration(players: Iterable, actuals: Dict) -> CalibrationResult:
    """
    Calibrate ratios from history.

    Args:
        players: JoinedPlayer records (their `results` entries are the FPL side)
        actuals: {player_id: {period: sleeper_points}}

    Returns:
        CalibrationResult; a fallback result when there are fewer than
        CALIBRATION_MIN_TOTAL_SAMPLES usable pairs.
    """
    if not actuals:
        return fallback_calibration("no_history")
    actuals = {str(k): v for k, v in actuals.items()}

    position_samples = {pos: [] for pos in POSITIONS}
    player_samples = {}
    for player in players:
        history = actuals.get(str(player.player_id))
        if not isinstance(history, dict) or player.position not in position_samples:
            continue
        ratios = _paired_ratios(player, history)
        if not ratios:
            continue
        position_samples[player.position].extend(ratios)
        player_samples.setdefault(str(player.player_id), (player.position, []))[1].extend(ratios)

    total = sum(len(r) for r in position_samples.values())
    if total < config.CALIBRATION_MIN_TOTAL_SAMPLES:
        return fallback_calibration("insufficient_data", total)

    position_ratios, calibrated_positions = {}, set()
    for pos, ratios in position_samples.items():
        if len(ratios) < config.CALIBRATION_MIN_POSITION_SAMPLES:
            position_ratios[pos] = config.FALLBACK_CONVERSION_RATIOS[pos]
            continue
        position_ratios[pos] = round(trimmed_mean(ratios), 3)
        calibrated_positions.add(pos)

    player_factors = {}
    for player_id, (pos, ratios) in player_samples.items():
        if len(ratios) < config.CALIBRATION_MIN_PLAYER_SAMPLES:
            continue
        weight = min(len(ratios) / config.CALIBRATION_FULL_TRUST_SAMPLES, 1.0)
        blended = float(np.mean(ratios)) * weight + position_ratios[pos] * (1 - weight)
        player_factors[player_id] = round(blended, 3)

    confidence = "high" if total >= 50 else "medium" if total >= 20 else "low"
    _logger.info(
        "Calibration complete: %d samples, confidence=%s, %d player factors",
        total, confidence, len(player_factors),
    )
    return CalibrationResult(
        position_ratios=position_ratios,
        calibrated_positions=frozenset(calibrated_positions),
        player_factors=player_factors,
        sample_count=total,
        position_sample_counts={pos: len(r) for pos, r in position_samples.items()},
        confidence=confidence,
        calibrated=True,
    )
